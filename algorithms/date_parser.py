from __future__ import annotations
import datetime
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class DateParser:
    """Parse and format the short ``"12 Out"`` dates shown on exercise cards."""

    MONTHS = {
        "jan": 1,
        "fev": 2,
        "mar": 3,
        "abr": 4,
        "mai": 5,
        "jun": 6,
        "jul": 7,
        "ago": 8,
        "set": 9,
        "out": 10,
        "nov": 11,
        "dez": 12,
    }
    POLICIES = ("january", "exclude")

    def __init__(self, policy: str = "january") -> None:
        if policy not in self.POLICIES:
            raise ValueError(f"unknown date policy: {policy}")
        self.policy = policy

    def parse(self, text: str, year: int) -> Optional[datetime.date]:
        """Return ``text`` as a date in ``year``.

        A missing or non-numeric day (such as the ``"-"`` placeholder) or an
        impossible calendar date always yields ``None``. An unknown month
        becomes January under the ``january`` policy and yields ``None``
        under ``exclude``.
        """
        parts = (text or "").strip().lower().split()
        try:
            day = int(parts[0])
        except (IndexError, ValueError):
            return None
        month = self.MONTHS.get(parts[1][:3]) if len(parts) > 1 else None
        if month is None:
            if self.policy == "exclude":
                logger.warning("Unknown month in exercise date %r, row excluded", text)
                return None
            logger.warning("Unknown month in exercise date %r, using January", text)
            month = 1
        try:
            return datetime.date(year, month, day)
        except ValueError:
            logger.warning("Invalid exercise date %r", text)
            return None

    @classmethod
    def format(cls, value: datetime.date) -> str:
        """Return ``value`` in display form, e.g. ``"05 Out"``."""
        names = {idx: name for name, idx in cls.MONTHS.items()}
        return f"{value.day:02d} {names[value.month].title()}"
