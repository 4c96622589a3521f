# models.py
"""Domain types shared by the store, the expander, the builder and the intersector."""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum, IntEnum

from errors import InvalidInput
from wallclock import format_hhmm

MAX_INTERVAL = timedelta(days=7)


class Category(str, Enum):
    SLEEP = "sleep"
    BUSY = "busy"
    OTHER = "other"
    AVAILABLE = "available"
    MATCH = "match"


BUSY_CATEGORIES = frozenset({Category.SLEEP, Category.BUSY, Category.OTHER})


class Weekday(IntEnum):
    """Monday=1 ... Sunday=7."""
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        return cls(day.isoweekday())

    @classmethod
    def parse(cls, value) -> "Weekday":
        """
        Conversion boundary for stored day ids.

        Accepts Weekday members, ints 1..7, the Sunday=0 numbering used by
        calendar libraries (0 maps to Sunday), digit strings and English day
        names or abbreviations.
        """
        if isinstance(value, Weekday):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text.isdigit():
                value = int(text)
            else:
                for day in cls:
                    if len(text) >= 3 and day.name.lower().startswith(text):
                        return day
                raise InvalidInput(f"Invalid day of week: {value!r}", code="INVALID_RECURRENCE")
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 7:
            raise InvalidInput(f"Invalid day of week: {value!r}", code="INVALID_RECURRENCE")
        return cls.SUNDAY if value == 0 else cls(value)

    def next(self) -> "Weekday":
        return Weekday(self % 7 + 1)


ALL_DAYS = frozenset(Weekday)


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class RecurrenceRule:
    type: RecurrenceType
    days_of_week: frozenset = frozenset()
    day_of_month: int | None = None
    until: datetime | None = None

    def __post_init__(self):
        object.__setattr__(self, "type", RecurrenceType(self.type))
        object.__setattr__(self, "days_of_week", frozenset(Weekday.parse(d) for d in self.days_of_week))
        if self.type is RecurrenceType.WEEKLY and not self.days_of_week:
            raise InvalidInput("Weekly recurrence needs at least one day", code="INVALID_RECURRENCE")
        if self.type is RecurrenceType.MONTHLY:
            if self.day_of_month is None or not 1 <= self.day_of_month <= 31:
                raise InvalidInput("Monthly recurrence needs a day of month in 1..31", code="INVALID_RECURRENCE")

    def effective_days(self, origin: date) -> frozenset:
        """Weekdays an occurrence may fall on, used by the write-path validator."""
        if self.type is RecurrenceType.MONTHLY:
            return frozenset({Weekday.from_date(origin)})
        if self.type is RecurrenceType.DAILY:
            return self.days_of_week or ALL_DAYS
        return self.days_of_week


@dataclass(frozen=True)
class Interval:
    id: str
    owner_id: str
    start: datetime
    end: datetime
    category: Category = Category.BUSY
    description: str | None = None
    recurrence: RecurrenceRule | None = None

    def __post_init__(self):
        try:
            object.__setattr__(self, "category", Category(self.category))
        except ValueError:
            raise InvalidInput(f"Invalid category: {self.category!r}", code="INVALID_INTERVAL") from None
        if self.category not in BUSY_CATEGORIES:
            raise InvalidInput(f"Invalid category: {self.category.value}", code="INVALID_INTERVAL")
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidInput("Interval instants must carry a timezone", code="INVALID_INTERVAL")
        if self.end <= self.start:
            raise InvalidInput("Interval end must be after its start", code="INVALID_INTERVAL")
        if self.end - self.start > MAX_INTERVAL:
            raise InvalidInput("Interval cannot be longer than 7 days", code="INVALID_INTERVAL")

    @property
    def is_template(self) -> bool:
        return self.recurrence is not None


@dataclass(frozen=True)
class RecurrenceException:
    recurrence_id: str
    exception_date: date
    modified: Interval | None = None

    @property
    def key(self) -> tuple:
        return (self.recurrence_id, self.exception_date)


class Source(IntEnum):
    """Read-path precedence, lower wins."""
    ONE_TIME = 0
    MODIFIED = 1
    RECURRING = 2


@dataclass(frozen=True)
class Occurrence:
    interval_id: str
    start: datetime
    end: datetime
    category: Category
    source: Source
    description: str | None = None


@dataclass(frozen=True)
class TimelineSegment:
    start: int
    end: int
    category: Category

    @property
    def start_time(self) -> str:
        return format_hhmm(self.start)

    @property
    def end_time(self) -> str:
        return format_hhmm(self.end)

    def to_dict(self) -> dict:
        return {"start": self.start_time, "end": self.end_time, "category": self.category.value}


@dataclass(frozen=True)
class UserIntervals:
    """What the store returns for one user: (one-time, templates, exceptions)."""
    one_time: tuple = field(default_factory=tuple)
    templates: tuple = field(default_factory=tuple)
    exceptions: tuple = field(default_factory=tuple)
