"""
Temporal Value Model — validity-range parsing.

Raw attribute values look like ``"<text> (<start>:<end>)"``. Either bound may
be empty, and each bound may be a partial date (``YYYY``, ``YYYY-MM``) or a
full ``YYYY-MM-DD`` date. Partial start bounds expand to the first instant of
the period, partial end bounds to the last instant of the period.

Malformed date fragments never fail the parse; the bound is simply left open.
"""

import calendar
import logging
import re
from datetime import date, datetime, time
from typing import Optional

from lore_kernel.models.temporal import TimeScoped

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(
    r"^(?P<text>.*?)\s*\((?P<start>[^():]*):(?P<end>[^():]*)\)\s*$",
    re.DOTALL,
)
_DATE_RE = re.compile(r"^(\d{4})(?:-(\d{1,2})(?:-(\d{1,2}))?)?$")

_END_OF_DAY = time(23, 59, 59, 999999)


def parse_bound(fragment: str, end: bool = False) -> Optional[datetime]:
    """
    Parse one side of a validity range.

    Returns None for an empty or unparseable fragment.
    """
    fragment = fragment.strip()
    if not fragment:
        return None

    match = _DATE_RE.match(fragment)
    if not match:
        logger.warning("Unparseable date fragment %r, leaving bound open", fragment)
        return None

    year = int(match.group(1))
    month = int(match.group(2)) if match.group(2) else None
    day = int(match.group(3)) if match.group(3) else None

    try:
        if month is None:
            day_value = date(year, 12, 31) if end else date(year, 1, 1)
        elif day is None:
            last_day = calendar.monthrange(year, month)[1]
            day_value = date(year, month, last_day if end else 1)
        else:
            day_value = date(year, month, day)
    except ValueError:
        logger.warning("Invalid date %r, leaving bound open", fragment)
        return None

    return datetime.combine(day_value, _END_OF_DAY if end else time.min)


def parse_scoped_value(raw: str) -> TimeScoped[str]:
    """
    Parse ``"<text> (<start>:<end>)"`` into a TimeScoped string.

    A value without a trailing range parenthetical is always active.
    """
    raw = raw.strip()
    match = _RANGE_RE.match(raw)
    if not match:
        return TimeScoped[str](value=raw)

    text = match.group("text").strip()
    valid_from = parse_bound(match.group("start"))
    valid_to = parse_bound(match.group("end"), end=True)

    if valid_from is not None and valid_to is not None and valid_from > valid_to:
        logger.warning(
            "Validity range of %r ends before it starts, dropping end bound", raw
        )
        valid_to = None

    return TimeScoped[str](value=text, valid_from=valid_from, valid_to=valid_to)
