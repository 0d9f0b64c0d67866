import enum
from typing import Optional

DECLINED_LAST_DIGITS = frozenset({3, 7})


class Outcome(str, enum.Enum):
    SUCCESS = "success"
    FAIL = "fail"


def decide(amount_minor: int, forced: Optional[Outcome] = None) -> Outcome:
    """Forced outcome wins; otherwise last digit 3 or 7 declines."""
    if forced is not None:
        return Outcome(forced)
    if amount_minor % 10 in DECLINED_LAST_DIGITS:
        return Outcome.FAIL
    return Outcome.SUCCESS
