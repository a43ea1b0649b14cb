"""
Django-Grid Request Parameters

Resolves paging, sort and filter parameters of one grid request.

Every value is resolved the same way:
1. A value preset in the grid configuration wins outright
2. Otherwise it is read from the request under its parameter name
   (a parameter name of None disables reading it)
3. Otherwise, or when the request value is invalid, the default applies

Invalid input never raises in lenient mode; it falls back to the default.
"""

from dataclasses import dataclass, field, replace
from typing import Optional

from django_grid.conf import grid_settings
from django_grid.filters import parse_filter
from django_grid.ordering import OrderCompiler, get_one_order
from django_grid.pagination import PageRange


PAGING_PARAMS = ("limit", "page", "offset")


def to_int(value):
    """Parse an int from a request value, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class RequestParameters:
    """Resolved paging/sort/filter state of one request."""

    limit: Optional[int] = 0
    page: int = 1
    offset: Optional[int] = 0
    order: dict = field(default_factory=dict)
    fast_filter: tuple = ()
    direct_filter: tuple = ()
    rows_selector: tuple = ()
    # Logical names (limit, page, offset, ...) actually sent by the client
    provided: frozenset = frozenset()

    @property
    def page_range(self):
        return PageRange.from_offset(self.offset, self.limit)

    @property
    def has_fast_filter(self):
        return bool(self.fast_filter)

    @property
    def has_direct_filter(self):
        return bool(self.direct_filter)

    def get_one_order(self, default=None):
        return get_one_order(self.order, default)

    def with_direct_filter(self, descriptors):
        return replace(self, direct_filter=tuple(descriptors))

    def query_params(self, param_names=None):
        """
        Paging parameters to echo back, keyed by request parameter name.

        Only parameters the client actually sent are included.

        Example:
            >>> RequestParameters(limit=20, offset=40, provided=frozenset({"limit"})).query_params()
            {'limit': 20}
        """
        names = {**grid_settings.PARAMS, **(param_names or {})}
        result = {}
        for name in PAGING_PARAMS:
            if name in self.provided and names.get(name):
                result[names[name]] = getattr(self, name)
        return result


class ParameterResolver:
    """
    Build RequestParameters from a request parameter source.

    Args:
        manager: DataManager used for sort aliases and per-grid defaults
        config: Preset values and defaults for this grid. Preset keys
            (`limit`, `page`, `offset`, `order`) win over the request;
            `default_limit`, `default_page`, `default_offset`,
            `default_order`, `limit_filter` and `max_limit` replace the
            project settings
        param_names: Overrides of the request parameter names
        strict: Raise ValueError on malformed sort/filter input

    Example:
        resolver = ParameterResolver(manager, config={"limit_filter": [10, 20, 30]})
        params = resolver.resolve(request.POST)
    """

    def __init__(self, manager, config=None, param_names=None, strict=None):
        self.manager = manager
        self.config = dict(config or {})
        self.param_names = {**grid_settings.PARAMS, **(param_names or {})}
        self.strict = grid_settings.STRICT if strict is None else strict
        self.order_compiler = OrderCompiler(manager, strict=self.strict)

    def get_default(self, name, setting=None):
        value = self.config.get(f"default_{name}")
        if value is not None:
            return value
        value = getattr(self.manager, name, None)
        if value is not None:
            return value
        return getattr(grid_settings, setting) if setting else None

    def get_option(self, name, setting):
        value = self.config.get(name)
        if value is not None:
            return value
        return getattr(grid_settings, setting)

    def read(self, source, name):
        """Raw request value for a logical parameter, or None."""
        param = self.param_names.get(name)
        if not param or source is None:
            return None
        value = source.get(param, None)
        if value is None or value == "":
            return None
        return value

    def is_provided(self, source, name):
        return self.config.get(name) is None and self.read(source, name) is not None

    def resolve_limit(self, source):
        if self.config.get("limit") is not None:
            return self.config["limit"]

        default = self.get_default("limit", "DEFAULT_LIMIT")
        value = to_int(self.read(source, "limit"))
        if value is None or value <= 1:
            return default

        limit_filter = self.get_option("limit_filter", "LIMIT_FILTER")
        if limit_filter:
            return value if value in {int(item) for item in limit_filter} else default

        max_limit = self.get_option("max_limit", "MAX_LIMIT")
        if max_limit and value > max_limit:
            return default
        return value

    def resolve_offset(self, source):
        if self.config.get("offset") is not None:
            return self.config["offset"]

        default = self.get_default("offset", "DEFAULT_OFFSET")
        value = to_int(self.read(source, "offset"))
        if value is None or value < 0:
            return default
        return value

    def resolve_page(self, source):
        if self.config.get("page") is not None:
            return self.config["page"]

        default = self.get_default("page", "DEFAULT_PAGE")
        value = to_int(self.read(source, "page"))
        if value is None or value < 0:
            return default
        return value

    def resolve_order(self, source):
        if self.config.get("order") is not None:
            return self.order_compiler.compile(self.config["order"])

        order = self.order_compiler.compile(self.read(source, "order"))
        if order:
            return order
        return self.order_compiler.compile(self.get_default("order"))

    def resolve_fast_filter(self, source):
        return tuple(parse_filter(self.read(source, "filter"), strict=self.strict))

    def resolve_rows_id(self, source):
        """
        Selected row identifiers, from a list or a comma separated string.

        Example:
            >>> resolver.resolve_rows_id({"id": "1, 2,3"})
            ('1', '2', '3')
        """
        value = self.read(source, "rows")
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            items = value
        else:
            items = str(value).split(",")
        return tuple(str(item).strip() for item in items if str(item).strip())

    def resolve(self, source, direct_filter=None):
        """Resolve every parameter of one request."""
        return RequestParameters(
            limit=self.resolve_limit(source),
            page=self.resolve_page(source),
            offset=self.resolve_offset(source),
            order=self.resolve_order(source),
            fast_filter=self.resolve_fast_filter(source),
            direct_filter=tuple(direct_filter or ()),
            rows_selector=self.resolve_rows_id(source),
            provided=frozenset(name for name in self.param_names if self.is_provided(source, name)),
        )
