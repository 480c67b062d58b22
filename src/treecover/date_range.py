"""The date range used to select scenes."""

from __future__ import annotations

from dataclasses import dataclass

import arrow
from arrow import Arrow

ISO8601_WITHOUT_TZ = "YYYY-MM-DDTHH:mm:ss"
ISO8601_DATE_ONLY = "YYYY-MM-DD"


@dataclass(frozen=True)
class DateRange:
    """
    A half-open range of instants, `[start, end)`.

    The start is inclusive and the end is exclusive, which is also how Earth
    Engine's `filterDate` treats its arguments. A full calendar year is
    therefore `[YYYY-01-01, (YYYY+1)-01-01)`.
    """

    start: Arrow
    end: Arrow

    def __post_init__(self) -> None:
        """Validate the range."""
        if self.end <= self.start:
            msg = f"Date range end {self.end} must be after its start {self.start}."
            raise ValueError(msg)

    @staticmethod
    def parse(start: str, end: str) -> DateRange:
        """Create a range from two YYYY-MM-DD strings, in UTC."""
        return DateRange(
            start=arrow.get(start, ISO8601_DATE_ONLY),
            end=arrow.get(end, ISO8601_DATE_ONLY),
        )

    @staticmethod
    def for_year(year: int) -> DateRange:
        """Create the range covering one calendar year."""
        return DateRange(
            start=arrow.get(year, 1, 1),
            end=arrow.get(year + 1, 1, 1),
        )

    def contains(self, instant: Arrow) -> bool:
        """Check whether an instant falls in the range."""
        return self.start <= instant < self.end

    @property
    def start_iso(self) -> str:
        """Return the start as an ISO 8601 string without time zone."""
        return self.start.to("UTC").format(ISO8601_WITHOUT_TZ)

    @property
    def end_iso(self) -> str:
        """Return the end as an ISO 8601 string without time zone."""
        return self.end.to("UTC").format(ISO8601_WITHOUT_TZ)

    def __str__(self) -> str:
        """Return the range in interval notation."""
        return f"[{self.start_iso}, {self.end_iso})"
