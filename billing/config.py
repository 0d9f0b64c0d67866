import os
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


class Settings(BaseModel):
    """Service configuration, read from the environment."""

    database_url: str = Field(default="sqlite:///./billing.db")
    log_level: str = Field(default="INFO")
    jwt_secret: Optional[str] = Field(default=None, description="Enables bearer auth when set")
    invoice_page_default: int = Field(default=20, ge=1)
    invoice_page_max: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def check_page_sizes(self):
        if self.invoice_page_default > self.invoice_page_max:
            raise ValueError("INVOICE_PAGE_DEFAULT must not exceed INVOICE_PAGE_MAX")
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "database_url": os.getenv("DATABASE_URL"),
            "log_level": os.getenv("LOG_LEVEL"),
            "jwt_secret": os.getenv("JWT_SECRET") or None,
            "invoice_page_default": os.getenv("INVOICE_PAGE_DEFAULT"),
            "invoice_page_max": os.getenv("INVOICE_PAGE_MAX"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})


def setup_logging(level: str = "INFO") -> logging.Logger:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return logging.getLogger("billing")


settings = Settings.from_env()
