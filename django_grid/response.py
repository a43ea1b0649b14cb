"""
Django-Grid Response Utilities

Shapes fetched rows for the client and builds JSON envelopes.

Features:
- Row masks (alias -> source field) with render hooks
- Primary key collection across a fetch
- Audit date localization to the viewer's time zone
- {total, rows} / {total, nodes} / delete outcome envelopes
"""

import logging
from datetime import datetime, timezone as dt_timezone
from zoneinfo import ZoneInfo

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from django_grid.fields import AUDIT_DATE_COLUMNS


logger = logging.getLogger("django_grid")

AUDIT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RenderRegistry:
    """
    Named render hooks.

    A render hook is called as `hook(value, row, field_options)`; a non-None
    return value replaces the raw value.

    Example:
        renders = RenderRegistry()

        @renders.register("upper")
        def render_upper(value, row, options):
            return value.upper() if value else value

        manager.fields["name"]["render"] = "upper"
    """

    def __init__(self, hooks=None):
        self.hooks = dict(hooks or {})

    def register(self, name, func=None):
        if func is None:

            def decorator(func):
                self.hooks[name] = func
                return func

            return decorator

        self.hooks[name] = func
        return func

    def get(self, name):
        return self.hooks.get(name)

    def __contains__(self, name):
        return name in self.hooks


def to_aware_datetime(value):
    """Parse an audit date; naive values are taken to be UTC."""
    if isinstance(value, str):
        value = parse_datetime(value)
    if not isinstance(value, datetime):
        return None
    if timezone.is_naive(value):
        value = value.replace(tzinfo=dt_timezone.utc)
    return value


def audit_row(row, time_zone):
    """
    Localize the audit dates of a shaped row.

    Each audit date is replaced by "Y-m-d H:i:s" in `time_zone` and its UTC
    epoch is written to the matching *UTC alias.

    Example:
        >>> row = {"logCreatedDate": datetime(2024, 6, 15, 7, 0, tzinfo=dt_timezone.utc)}
        >>> audit_row(row, "Europe/Moscow")
        {'logCreatedDate': '2024-06-15 10:00:00', 'logCreatedUTC': 1718434800}
    """
    tz = ZoneInfo(time_zone) if isinstance(time_zone, str) else time_zone
    for date_alias, utc_alias in AUDIT_DATE_COLUMNS:
        moment = to_aware_datetime(row.get(date_alias))
        if moment is None:
            continue
        row[utc_alias] = int(moment.timestamp())
        row[date_alias] = moment.astimezone(tz).strftime(AUDIT_DATE_FORMAT)
    return row


class RowShaper:
    """
    Apply a row mask to fetched rows.

    Mask entries are applied in order over a mutable copy of the row: when a
    render hook returns a value it is also written back under the source
    field, so later entries see the rendered value. The primary key is always
    part of the mask.

    Args:
        mask: Ordered {alias: source_field} map
        primary_key: Primary key field, forced into the mask
        field_options: {alias: options}; an alias whose options name a
            `render` hook is rendered
        renders: RenderRegistry (or dict) resolving render hook names;
            options may also hold the callable itself
        collect_rows_id: Record the primary key of every row seen
        strict: Raise ValueError for render hooks that cannot be resolved
            instead of skipping them

    Example:
        shaper = RowShaper({"name": "full_name"}, primary_key="id")
        shaper.mask_row({"id": 1, "full_name": "Ann"})
        # {'name': 'Ann', 'id': 1}
    """

    def __init__(self, mask, primary_key="id", field_options=None, renders=None, collect_rows_id=False, strict=False):
        self.mask = dict(mask or {})
        self.mask[primary_key] = primary_key
        self.primary_key = primary_key
        self.field_options = field_options or {}
        self.collect_rows_id = collect_rows_id
        self.rows_id = []
        self.hooks = self.resolve_hooks(renders or {}, strict)

    def resolve_hooks(self, renders, strict):
        hooks = {}
        for alias in self.mask:
            render = (self.field_options.get(alias) or {}).get("render")
            if render is None:
                continue
            hook = render if callable(render) else renders.get(render)
            if hook is None:
                if strict:
                    raise ValueError(f"Render hook '{render}' for '{alias}' is not registered")
                logger.warning("Render hook '%s' for '%s' is not registered, skipping", render, alias)
                continue
            hooks[alias] = hook
        return hooks

    def collect(self, row):
        if self.collect_rows_id:
            self.rows_id.append(row.get(self.primary_key))

    def mask_row(self, row):
        if not row or not self.mask:
            return row

        row = dict(row)
        masked = {}
        for alias, field in self.mask.items():
            value = row.get(field)
            hook = self.hooks.get(alias)
            if hook is not None:
                value = hook(value, row, self.field_options.get(alias))
            if value is not None:
                row[field] = value
            masked[alias] = value
        return masked


class GridResponse:
    """
    Response builder for grid requests.

    Example:
        >>> GridResponse.rows(total=2, rows=[{"id": 1}, {"id": 2}]).to_dict()
        {'success': True, 'total': 2, 'rows': [{'id': 1}, {'id': 2}]}

        >>> GridResponse.error("BAD_REQUEST", "Unknown action").to_dict()
        {'success': False, 'error': 'Unknown action'}
    """

    STATUS_MAP = {
        "OK": 200,
        "BAD_REQUEST": 400,
        "NOT_FOUND": 404,
        "METHOD_NOT_ALLOWED": 405,
        "INTERNAL_ERROR": 500,
    }

    MSG_MAP = {
        "OK": "Success",
        "BAD_REQUEST": "Bad request",
        "NOT_FOUND": "Not found",
        "METHOD_NOT_ALLOWED": "Method not allowed",
        "INTERNAL_ERROR": "Internal server error",
    }

    def __init__(self, code="OK", error_message=None, **data):
        self.code = code
        self.error_message = error_message
        self.data = data

    @property
    def success(self):
        return self.code == "OK"

    @property
    def http_status(self):
        return self.STATUS_MAP.get(self.code, 500)

    @classmethod
    def ok(cls, **data):
        return cls(code="OK", **data)

    @classmethod
    def rows(cls, total, rows, **data):
        """{total, rows} envelope of a grid read."""
        return cls(code="OK", total=total, rows=rows, **data)

    @classmethod
    def nodes(cls, total, nodes, **data):
        """{total, nodes} envelope of a tree read."""
        return cls(code="OK", total=total, nodes=nodes, **data)

    @classmethod
    def outcome(cls, outcome):
        """Envelope of a delete outcome; the request itself succeeded."""
        return cls(code="OK", **outcome.to_dict())

    @classmethod
    def error(cls, code, message=None):
        return cls(code=code, error_message=message)

    def to_dict(self):
        result = {"success": self.success}
        if self.error_message:
            result["error"] = self.error_message
        elif not self.success:
            result["error"] = self.MSG_MAP.get(self.code, "An error occurred")
        result.update(self.data)
        return result

    def to_json_response(self):
        """Convert to Django JsonResponse."""
        from django.http import JsonResponse

        return JsonResponse(self.to_dict(), status=self.http_status)
