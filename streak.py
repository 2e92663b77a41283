"""
Daily completion streak.

A streak counts consecutive calendar days on which at least one task was
completed. It lives only in client-local storage, one record per user.
"""
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Optional

from board_filter import as_date


@dataclass
class Streak:
    current: int = 0
    best: int = 0
    last_date: Optional[str] = None  # YYYY-MM-DD

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["lastDate"] = data.pop("last_date")
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Streak":
        if not isinstance(data, dict):
            return cls()
        try:
            current = max(0, int(data.get("current") or 0))
            best = max(0, int(data.get("best") or 0))
        except (TypeError, ValueError):
            # Hand-edited or corrupt record: start over
            return cls()
        last_date = data.get("lastDate") or None
        return cls(current=current, best=best, last_date=last_date if isinstance(last_date, str) else None)


def increment_streak_if_needed(streak: Streak, today: date) -> bool:
    """Count ``today`` toward the streak. Returns False if already counted."""
    today_str = as_date(today).isoformat()
    if streak.last_date == today_str:
        return False

    last = as_date(streak.last_date)
    if last is None:
        streak.current = 1
    else:
        gap = (as_date(today) - last).days
        if gap == 1:
            streak.current += 1
        elif gap > 1:
            streak.current = 1
        # gap < 0 means the clock went backwards; keep the count as is

    streak.best = max(streak.best, streak.current)
    streak.last_date = today_str
    return True
