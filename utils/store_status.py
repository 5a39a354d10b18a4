"""Open/closed status derived from the manual flag and the weekly schedule."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

WEEKDAY_KEYS = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]
MIDNIGHT = "00:00"
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")  # HH:MM


class StoreState(enum.Enum):
    OPEN = "open"
    CLOSED_MANUAL = "closed_manual"
    CLOSED_NO_SCHEDULE = "closed_no_schedule"
    CLOSED_SCHEDULE = "closed_schedule"


@dataclass(frozen=True)
class StoreStatus:
    state: StoreState
    next_open: Optional[str] = None
    close_time: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state is StoreState.OPEN

    @property
    def is_manual_close(self) -> bool:
        return self.state is StoreState.CLOSED_MANUAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_open": self.is_open,
            "state": self.state.value,
            "is_manual_close": self.is_manual_close,
            "next_open": self.next_open,
            "close_time": self.close_time,
        }


def evaluate_store_status(
    is_open: bool,
    opening_hours: Optional[Mapping[str, Any]],
    now: datetime,
) -> StoreStatus:
    """Derive the store status at ``now`` (already in store local time).

    Times are compared as zero-padded ``HH:MM`` strings. A close time of
    ``00:00`` means open until midnight. Only today's entry is consulted, so
    a late session from the previous day does not carry past midnight.
    """
    if not is_open:
        return StoreStatus(StoreState.CLOSED_MANUAL)

    today = (opening_hours or {}).get(WEEKDAY_KEYS[now.weekday()])
    if not today or not today.get("open") or not today.get("close"):
        return StoreStatus(StoreState.CLOSED_NO_SCHEDULE)

    open_at, close_at = today["open"], today["close"]
    current = f"{now.hour:02d}:{now.minute:02d}"

    within = current >= open_at and (close_at == MIDNIGHT or current < close_at)
    state = StoreState.OPEN if within else StoreState.CLOSED_SCHEDULE
    return StoreStatus(state, next_open=open_at, close_time=close_at)


def validate_schedule(opening_hours: Mapping[str, Any]) -> List[str]:
    """Return a list of problems with a weekly schedule, empty when valid.

    Ranges must stay within a single day: ``close`` has to be after ``open``
    unless it is ``00:00``.
    """
    errors: List[str] = []
    for day, hours in opening_hours.items():
        if day not in WEEKDAY_KEYS:
            errors.append(f"unknown day: {day}")
            continue
        if hours is None:
            continue
        if not isinstance(hours, Mapping):
            errors.append(f"{day} must be an object with open, close")
            continue

        open_at, close_at = hours.get("open"), hours.get("close")
        if open_at is None and close_at is None:
            continue
        if not (isinstance(open_at, str) and _TIME_RE.match(open_at)) or not (
            isinstance(close_at, str) and _TIME_RE.match(close_at)
        ):
            errors.append(f"{day} time format must be HH:MM")
            continue
        if close_at != MIDNIGHT and close_at <= open_at:
            errors.append(f"{day} must close after it opens (use 00:00 for midnight)")
    return errors
