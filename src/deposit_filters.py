"""
Deposit Selection Filters

Compiles caller-supplied query parameters (name -> list of values) into a single
SQLAlchemy filter expression over DepositProperties. The same expression is used
for selecting, bulk deleting and updating the soft delete flag of records.

Parameter names are case-insensitive. Recognized names:
    depositid, user, state, deleted   equality, multiple values are OR-ed
    startdate, enddate                creation date range, see resolve_date_range

Unrecognized names are not an error; they are returned in
CompiledFilter.ignored_parameters so the caller can report them.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement, True_

from models import DepositProperties

START_DATE = "startdate"
END_DATE = "enddate"

_CALENDAR_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


class InvalidArgument(ValueError):
    """Raised when a query parameter value cannot be turned into a filter"""

    def __init__(self, message: str, parameter: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message)
        self.parameter = parameter
        self.value = value


def parse_boolean(value: str, parameter: str = "deleted") -> bool:
    """Parse 'true' or 'false' (any case)"""
    lowered = value.lower() if isinstance(value, str) else None
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise InvalidArgument(f"Invalid boolean value for '{parameter}': '{value}'", parameter, value)


def parse_calendar_date(value: str, parameter: Optional[str] = None) -> datetime:
    """
    Parse a YYYY-MM-DD calendar date into the instant at start of that day in UTC

    Args:
        value: Date string, e.g. "2024-01-31"
        parameter: Name of the query parameter the value came from, for error reporting

    Returns:
        Timezone aware datetime at 00:00 UTC
    """
    if not isinstance(value, str) or not _CALENDAR_DATE.fullmatch(value):
        raise InvalidArgument(f"Invalid date '{value}', expected format YYYY-MM-DD", parameter, value)
    try:
        day = date.fromisoformat(value)
    except ValueError as e:
        raise InvalidArgument(f"Invalid date '{value}': {e}", parameter, value) from e
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class FilterField(Enum):
    """Filterable record fields, keyed by the query parameter that selects them"""

    DEPOSIT_ID = ("depositid", "deposit_id")
    USER = ("user", "depositor")
    STATE = ("state", "deposit_state")
    DELETED = ("deleted", "deleted")

    def __init__(self, parameter: str, attribute: str):
        self.parameter = parameter
        self.attribute = attribute

    @property
    def column(self):
        return getattr(DepositProperties, self.attribute)

    def parse(self, value: str):
        if self is FilterField.DELETED:
            return parse_boolean(value, self.parameter)
        return value

    def clause(self, values: List[str]) -> ColumnElement:
        """OR of equality comparisons, in the order the values were given"""
        return or_(*[self.column == self.parse(value) for value in values])


ALLOWED_PARAMETERS = frozenset([f.parameter for f in FilterField] + [START_DATE, END_DATE])


@dataclass(frozen=True, eq=False)
class CompiledFilter:
    expression: ColumnElement
    ignored_parameters: Tuple[str, ...] = ()

    @property
    def is_unrestricted(self) -> bool:
        return isinstance(self.expression, True_)


def normalize_parameters(
    params: Mapping[str, Optional[List[str]]],
) -> Tuple[Dict[str, Optional[List[str]]], Tuple[str, ...]]:
    """
    Lower-case parameter names and split off the ones that are not recognized

    Returns:
        Tuple of (recognized parameters, sorted ignored parameter names)
    """
    normalized: Dict[str, Optional[List[str]]] = {}
    ignored = set()
    for name, values in params.items():
        key = name.lower()
        if key in ALLOWED_PARAMETERS:
            normalized[key] = values
        else:
            ignored.add(key)
    return normalized, tuple(sorted(ignored))


def resolve_date_range(
    start_dates: Optional[List[str]],
    end_dates: Optional[List[str]],
) -> ColumnElement:
    """
    Build the creation date predicate from the startdate and enddate values

    An empty list for either parameter selects records without a creation
    timestamp, and is only allowed if the other parameter is absent. A single
    start (or end) gives an open-ended range. Equal numbers of starts and ends
    are paired by position into inclusive ranges that are OR-ed together.
    """
    timestamp = DepositProperties.deposit_creation_timestamp

    if start_dates == [] or end_dates == []:
        if start_dates is not None and end_dates is not None:
            raise InvalidArgument("If startdate or enddate is empty, the other must not be specified")
        return timestamp.is_(None)

    if start_dates is not None and len(start_dates) == 1 and end_dates is None:
        return timestamp >= parse_calendar_date(start_dates[0], START_DATE)

    if end_dates is not None and len(end_dates) == 1 and start_dates is None:
        return timestamp <= parse_calendar_date(end_dates[0], END_DATE)

    if start_dates is not None and end_dates is not None and len(start_dates) == len(end_dates):
        return or_(
            *[
                timestamp.between(parse_calendar_date(start, START_DATE), parse_calendar_date(end, END_DATE))
                for start, end in zip(start_dates, end_dates)
            ]
        )

    raise InvalidArgument(
        "Either a single 'startdate' or 'enddate' must be specified, or both must have the same number of values"
    )


def compile_filter(params: Mapping[str, Optional[List[str]]]) -> CompiledFilter:
    """
    Compile query parameters into a filter expression over DepositProperties

    Field clauses come first in FilterField order, followed by the date clause.
    A mapping without recognized restrictions compiles to true().

    Raises:
        InvalidArgument: on a malformed boolean or date, or inconsistent date parameters
    """
    normalized, ignored = normalize_parameters(params)

    clauses = [f.clause(normalized[f.parameter]) for f in FilterField if normalized.get(f.parameter)]

    start_dates = normalized.get(START_DATE)
    end_dates = normalized.get(END_DATE)
    if start_dates is not None or end_dates is not None:
        clauses.append(resolve_date_range(start_dates, end_dates))

    expression = and_(*clauses) if clauses else true()
    return CompiledFilter(expression=expression, ignored_parameters=ignored)
