"""Time-scoped values — a value paired with an optional validity range."""

from datetime import date, datetime, time
from typing import Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, model_validator

T = TypeVar("T")

Instant = Union[date, datetime]


class TimeScoped(BaseModel, Generic[T]):
    """
    One entry of a property history.

    valid_from = None means "active since the dawn of time",
    valid_to = None means "active indefinitely".
    """

    value: T
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_range(self):
        if (
            self.valid_from is not None
            and self.valid_to is not None
            and self.valid_from > self.valid_to
        ):
            raise ValueError("valid_from must not be later than valid_to")
        return self

    @property
    def has_range(self) -> bool:
        """True when at least one bound was given explicitly."""
        return self.valid_from is not None or self.valid_to is not None


def as_instant(value: Optional[Instant]) -> Optional[datetime]:
    """Normalise a date or datetime query instant to a naive datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    return datetime.combine(value, time.min)


def is_active_at(scoped: TimeScoped, at: Optional[Instant] = None) -> bool:
    """
    True when ``at`` is absent (unscoped query) or falls within
    [valid_from, valid_to], missing bounds being unbounded on that side.
    """
    instant = as_instant(at)
    if instant is None:
        return True
    if scoped.valid_from is not None and instant < scoped.valid_from:
        return False
    if scoped.valid_to is not None and instant > scoped.valid_to:
        return False
    return True


def sort_history(history: List[TimeScoped[T]]) -> List[TimeScoped[T]]:
    """Stable sort by valid_from, entries without a start first."""
    return sorted(
        history,
        key=lambda e: (e.valid_from is not None, e.valid_from or datetime.min),
    )


def active_entries(
    history: List[TimeScoped[T]], at: Optional[Instant] = None
) -> List[TimeScoped[T]]:
    """All entries of a sorted history active at ``at``, in history order."""
    return [e for e in history if is_active_at(e, at)]


def last_active(
    history: List[TimeScoped[T]], at: Optional[Instant] = None
) -> Optional[TimeScoped[T]]:
    """The last active entry of a sorted history, or None."""
    for entry in reversed(history):
        if is_active_at(entry, at):
            return entry
    return None
