"""
Django-Grid Filter Utilities

Turns filter descriptors sent by the grid (column "fast" filters and form
"direct" filters) into Q objects, and evaluates the same operators against
in-memory rows.

Supports:
- Equality with boolean normalisation (=, ==, eqv, eq)
- Comparisons with date coercion (lt, gt)
- Prefix match (like) and set membership (in)
- Relative date buckets (dr) and audit user/date filters (lu, ld)
- Raw WHERE templates (where)
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from django_grid.conf import grid_settings
from django_grid.fields import COL_CREATED_DATE, COL_CREATED_USER, COL_UPDATED_DATE, COL_UPDATED_USER, to_lookup


logger = logging.getLogger("django_grid")


OPERATORS = {
    "where",
    "like",
    "=",
    "==",
    "eqv",
    "eq",
    "in",
    "lt",
    "gt",
    "dr",
    "lu",
    "ld",
}

EQUALITY_OPERATORS = {"=", "==", "eqv"}

# Relative date buckets: number of whole days before today the range starts at.
# "lt-2d" is special-cased to cover yesterday only.
DATE_BUCKETS = {
    "lt-1d": 0,
    "lt-2d": 1,
    "lt-1w": 7,
    "lt-1m": 30,
    "lt-1y": 365,
}

END_OF_DAY = time(23, 59, 59)

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


@dataclass(frozen=True)
class FilterDescriptor:
    """One filter clause: `property` `operator` `value`."""

    property: str
    operator: str
    value: Any = ""
    where: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        """
        Build a descriptor from a client dict.

        Returns None when `property` or `operator` is missing or empty.
        """
        if not isinstance(data, dict):
            return None
        if not data.get("property") or not data.get("operator"):
            return None
        value = data.get("value")
        return cls(
            property=data["property"],
            operator=data["operator"],
            value="" if value is None else value,
            where=data.get("where"),
        )

    def to_dict(self):
        return {
            "property": self.property,
            "operator": self.operator,
            "value": self.value,
            "where": self.where,
        }


def format_filter(items):
    """Convert a list of client dicts to descriptors, dropping invalid ones."""
    result = []
    for item in items or []:
        if isinstance(item, FilterDescriptor):
            result.append(item)
            continue
        descriptor = FilterDescriptor.from_dict(item)
        if descriptor is not None:
            result.append(descriptor)
    return result


def parse_filter(raw, strict=False):
    """
    Parse a fast filter request value.

    Args:
        raw: JSON string of [{property, operator, value}, ...], or an
            already decoded list
        strict: Raise ValueError on malformed JSON instead of ignoring it

    Returns:
        List of FilterDescriptor

    Examples:
        >>> parse_filter('[{"property": "name", "operator": "like", "value": "Al"}]')
        [FilterDescriptor(property='name', operator='like', value='Al', where=None)]
        >>> parse_filter('not json')
        []
    """
    if not raw:
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            if strict:
                raise ValueError(f"Unable to decode filter: {e}") from e
            logger.warning("Ignoring malformed filter %r: %s", raw, e)
            return []

    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        if strict:
            raise ValueError("Filter must be a list of {property, operator, value} objects")
        logger.warning("Ignoring filter of unexpected type %s", type(raw).__name__)
        return []

    return format_filter(raw)


def is_numeric(value):
    """
    Whether a value is a number or a numeric string.

    Examples:
        >>> is_numeric(5), is_numeric("5.5"), is_numeric("2024-06-15")
        (True, True, False)
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return bool(_NUMERIC_RE.match(value))
    return False


def normalize_boolean(value):
    """Map True/False and "true"/"false" to 1/0, leave anything else alone."""
    if isinstance(value, bool):
        return 1 if value else 0
    if value == "true":
        return 1
    if value == "false":
        return 0
    return value


def get_time_zone(name=None):
    return ZoneInfo(name or grid_settings.DATA_TIME_ZONE)


def to_filter_date(value, tz):
    """
    Coerce a filter value to a date in time zone `tz`.

    Aware datetimes are converted to `tz` first. Returns None when the value
    cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    else:
        text = str(value).strip()
        try:
            parsed = parse_datetime(text)
            if parsed is None:
                return parse_date(text)
        except ValueError:
            return None

    if timezone.is_aware(parsed):
        parsed = parsed.astimezone(tz)
    return parsed.date()


def day_range(day, tz):
    """(00:00:00, 23:59:59) of `day` as aware datetimes."""
    return (
        datetime.combine(day, time.min, tzinfo=tz),
        datetime.combine(day, END_OF_DAY, tzinfo=tz),
    )


def date_bucket_range(bucket, now, tz):
    """
    Datetime range for a relative date bucket.

    Args:
        bucket: One of "lt-1d" (today), "lt-2d" (yesterday), "lt-1w" (last 7
            days), "lt-1m" (last 30 days), "lt-1y" (last 365 days)
        now: Current datetime (naive values are taken to be in `tz`)
        tz: Time zone the range is expressed in

    Returns:
        Tuple of (from_datetime, to_datetime), or None for unknown buckets

    Example:
        >>> date_bucket_range("lt-1d", datetime(2024, 6, 15, 10, 0), ZoneInfo("UTC"))
        (datetime(2024, 6, 15, 0, 0, tzinfo=...), datetime(2024, 6, 15, 23, 59, 59, tzinfo=...))
    """
    days = DATE_BUCKETS.get(bucket)
    if days is None:
        return None

    if timezone.is_naive(now):
        now = now.replace(tzinfo=tz)
    today = now.astimezone(tz).date()

    if bucket == "lt-2d":
        return day_range(today - timedelta(days=1), tz)

    from_date, _ = day_range(today - timedelta(days=days), tz)
    _, to_date = day_range(today, tz)
    return from_date, to_date


class FilterCompiler:
    """
    Compile filter descriptors into Q objects for a data manager.

    A descriptor whose property has no field options is skipped silently, so
    stale filter state kept by the client never breaks a request.

    Example:
        compiler = FilterCompiler(manager)
        queryset = compiler.apply(Article.objects.all(), params.fast_filter)
    """

    def __init__(self, manager, clock=None, time_zone=None):
        self.manager = manager
        self.clock = clock or timezone.now
        self.time_zone = get_time_zone(time_zone)
        self.builders = {
            "where": self.build_where,
            "like": self.build_like,
            "=": self.build_equal,
            "==": self.build_equal,
            "eqv": self.build_equal,
            "eq": self.build_eq,
            "in": self.build_in,
            "lt": self.build_less_than,
            "gt": self.build_greater_than,
            "dr": self.build_date_range,
            "lu": self.build_audit_user,
            "ld": self.build_audit_date,
        }

    def compile(self, descriptors):
        """
        Compile descriptors into (Q, raw_where_list).

        All clauses are ANDed together. Raw WHERE templates cannot be
        expressed as Q objects and are returned separately.
        """
        result = Q()
        where = []
        for descriptor in descriptors:
            clause = self.build_clause(descriptor)
            if clause is None:
                continue
            if isinstance(clause, str):
                where.append(clause)
            else:
                result &= clause
        return result, where

    def apply(self, queryset, descriptors):
        """Filter a queryset by the given descriptors."""
        if not descriptors:
            return queryset
        q, where = self.compile(descriptors)
        if q:
            queryset = queryset.filter(q)
        if where:
            queryset = queryset.extra(where=where)
        return queryset

    def build_clause(self, descriptor):
        operator = descriptor.operator
        value = descriptor.value
        if value == "none":
            value = ""
        if operator == "=" and value in (None, "", [], False, 0):
            value = "0"

        if not operator or not descriptor.property:
            return None

        options = self.manager.get_field_options(descriptor.property)
        if options is None:
            logger.debug("Skipping filter on unknown property '%s'", descriptor.property)
            return None

        builder = self.builders.get(operator)
        if builder is None:
            logger.debug("Skipping filter with unknown operator '%s'", operator)
            return None

        lookup = to_lookup(options.get("direct") or options["field"])
        return builder(lookup, value, options, descriptor)

    def build_where(self, lookup, value, options, descriptor):
        if not descriptor.where:
            return None
        try:
            return descriptor.where % (value,)
        except (TypeError, ValueError) as e:
            logger.warning("Skipping malformed where template %r: %s", descriptor.where, e)
            return None

    def build_like(self, lookup, value, options, descriptor):
        return Q(**{f"{lookup}__startswith": str(value)})

    def build_equal(self, lookup, value, options, descriptor):
        return Q(**{lookup: normalize_boolean(value)})

    def build_in(self, lookup, value, options, descriptor):
        if not isinstance(value, (list, tuple, set)):
            return None
        return Q(**{f"{lookup}__in": list(value)})

    def _comparison(self, lookup, value, suffix):
        if not is_numeric(value):
            value = to_filter_date(value, self.time_zone)
            if value is None:
                logger.warning("Skipping '%s' filter on '%s': value is neither a number nor a date", suffix, lookup)
                return None
        return Q(**{f"{lookup}__{suffix}": value})

    def build_less_than(self, lookup, value, options, descriptor):
        return self._comparison(lookup, value, "lt")

    def build_greater_than(self, lookup, value, options, descriptor):
        return self._comparison(lookup, value, "gt")

    def build_eq(self, lookup, value, options, descriptor):
        value = normalize_boolean(value)
        if is_numeric(value):
            return Q(**{lookup: value})

        day = to_filter_date(value, self.time_zone)
        if day is None:
            logger.warning("Skipping 'eq' filter on '%s': value is neither a number nor a date", lookup)
            return None
        if options.get("filterType") == "datetime":
            return Q(**{f"{lookup}__range": day_range(day, self.time_zone)})
        return Q(**{lookup: day})

    def build_date_range(self, lookup, value, options, descriptor):
        bounds = date_bucket_range(value, self.clock(), self.time_zone)
        if bounds is None:
            return None
        return Q(**{f"{lookup}__range": bounds})

    def build_audit_user(self, lookup, value, options, descriptor):
        updated = self.manager.get_full_field(COL_UPDATED_USER)
        created = self.manager.get_full_field(COL_CREATED_USER)
        if updated is None or created is None:
            return None
        return Q(**{to_lookup(updated): value}) | Q(**{to_lookup(created): value})

    def build_audit_date(self, lookup, value, options, descriptor):
        created = self.manager.get_full_field(COL_CREATED_DATE)
        updated = self.manager.get_full_field(COL_UPDATED_DATE)
        if created is None or updated is None:
            return None
        bounds = date_bucket_range(value, self.clock(), self.time_zone)
        if bounds is None:
            return None
        return Q(**{f"{to_lookup(created)}__range": bounds}) | Q(**{f"{to_lookup(updated)}__range": bounds})


def loose_equal(left, right):
    """Compare numbers numerically and everything else as strings."""
    if is_numeric(left) and is_numeric(right):
        return float(left) == float(right)
    return str(left) == str(right)


def to_row_moment(value, tz):
    """
    Coerce an in-memory value to a date or an aware datetime.

    Naive datetimes are taken to be in `tz`. Returns None when the value
    cannot be parsed.
    """
    if isinstance(value, datetime):
        return value if timezone.is_aware(value) else value.replace(tzinfo=tz)
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        parsed = parse_datetime(text)
        if parsed is None:
            return parse_date(text)
    except ValueError:
        return None
    return parsed if timezone.is_aware(parsed) else parsed.replace(tzinfo=tz)


def compare_values(value, target, tz):
    """
    Coerce a row value and a filter value for lt/gt.

    Numeric filter values compare numerically, anything else is read as a
    date. Datetime row values compare against the start of that day.

    Returns:
        (value, target), None when the filter value is neither a number nor
        a date, or (None, None) when the row value cannot be compared
    """
    if is_numeric(target):
        if not is_numeric(value):
            return None, None
        return float(value), float(target)

    day = to_filter_date(target, tz)
    if day is None:
        return None
    moment = to_row_moment(value, tz)
    if moment is None:
        return None, None
    if isinstance(moment, datetime):
        return moment, datetime.combine(day, time.min, tzinfo=tz)
    return moment, day


def match_value(descriptor, value, time_zone=None):
    """
    Evaluate one descriptor against an in-memory value.

    Values are coerced the way FilterCompiler coerces them: numeric strings
    compare as numbers, other lt/gt/eq values are read as dates, and `eq`
    on a datetime matches the whole day. A clause the compiler would skip
    (a value that is neither a number nor a date) matches every row.

    Examples:
        >>> match_value(FilterDescriptor("active", "=", True), 1)
        True
        >>> match_value(FilterDescriptor("name", "like", "li"), "Alice")
        True
        >>> match_value(FilterDescriptor("size", "lt", "5"), 3)
        True
    """
    operator = descriptor.operator
    target = descriptor.value
    tz = time_zone if isinstance(time_zone, tzinfo) else get_time_zone(time_zone)

    if operator in ("lt", "gt"):
        pair = compare_values(value, target, tz)
        if pair is None:
            return True
        left, right = pair
        if left is None:
            return False
        return left < right if operator == "lt" else left > right

    if operator == "eq":
        target = normalize_boolean(target)
        if is_numeric(target):
            return loose_equal(normalize_boolean(value), target)
        day = to_filter_date(target, tz)
        if day is None:
            return True
        moment = to_row_moment(value, tz)
        if moment is None:
            return False
        if isinstance(moment, datetime):
            moment = moment.astimezone(tz).date()
        return moment == day

    if operator in EQUALITY_OPERATORS:
        return loose_equal(normalize_boolean(value), normalize_boolean(target))
    if operator == "like":
        return str(target) in str(value)
    if operator == "in":
        if not isinstance(target, (list, tuple, set)):
            return False
        return any(loose_equal(value, item) for item in target)
    return False


def filter_row(row, descriptors, filter_value=None, time_zone=None):
    """
    Whether an in-memory row satisfies every descriptor.

    Args:
        row: Dict of field -> value
        descriptors: Filter descriptors keyed by row field
        filter_value: Optional hook (descriptor, value, row) -> bool or None;
            a non-None result replaces the built-in operator evaluation
        time_zone: Time zone date filter values are read in (defaults to
            DATA_TIME_ZONE)

    A row that lacks a filtered property does not match.
    """
    for descriptor in descriptors:
        if row.get(descriptor.property) is None:
            return False
        value = row[descriptor.property]

        if filter_value is not None:
            matched = filter_value(descriptor, value, row)
            if matched is not None:
                if not matched:
                    return False
                continue

        if not match_value(descriptor, value, time_zone):
            return False
    return True
