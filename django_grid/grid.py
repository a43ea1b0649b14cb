"""
Django-Grid Models

Grid models tie the pipeline together for one grid:
request parameters -> filters and order -> query -> shaped rows -> envelope.

Provides:
- BaseGridModel: parameter resolution, direct filter, read/delete skeleton
- GridModel: QuerySet-backed grid
- ArrayGridModel: in-memory grid (static or dynamic pagination)

Every step is a method so a grid can override just the part it needs.

Example:
    class ArticleGrid(GridModel):
        queryset = Article.objects.select_related("author")
        data_manager = DataManager(
            fields={
                "title": {"field": "title"},
                "author": {"field": "author.name"},
                "created": {"field": "created_date", "filterType": "datetime"},
            },
            order={"created": "DESC"},
        )

    grid = ArticleGrid(request.POST, store=SessionFilterStore(request.session), user=request.user)
    grid.get_rows()  # {"total": 42, "rows": [...]}
"""

import logging

from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from django_grid.delete import DeleteOrchestrator
from django_grid.fields import to_lookup
from django_grid.filters import FilterCompiler, filter_row
from django_grid.ordering import apply_order, sort_rows
from django_grid.pagination import DYNAMIC, STATIC, RowSource, paginate
from django_grid.params import ParameterResolver
from django_grid.response import RowShaper, audit_row
from django_grid.store import MemoryFilterStore, read_direct_filter, validate_filter_value


logger = logging.getLogger("django_grid")


class BaseGridModel:
    """
    Base class of all grid models.

    Class attributes:
        model_name: Key of this grid's direct filter in the filter store
            (defaults to the lowercased class name)
        data_manager: DataManager describing the grid's fields
        params_config: ParameterResolver config (preset values and defaults)
        param_names: Overrides of request parameter names
        renders: RenderRegistry resolving render hooks named in field options
        collect_rows_id: Record the primary key of every fetched row

    Args:
        source: Request parameter source (e.g. request.POST)
        store: FilterStore holding direct filters between requests
        user: Current user, passed to record permissions
        clock: Callable returning "now" for relative date filters
        time_zone: Viewer time zone for audit columns (defaults to the active
            Django time zone)
        strict: Raise ValueError on malformed sort/filter input
        **config: Extra ParameterResolver config for this instance
    """

    model_name = None
    data_manager = None
    params_config = None
    param_names = None
    renders = None
    collect_rows_id = False

    def __init__(self, source=None, store=None, user=None, clock=None, time_zone=None, strict=None, **config):
        self.source = source if source is not None else {}
        self.store = store if store is not None else MemoryFilterStore()
        self.user = user
        self.clock = clock or timezone.now
        self.time_zone = time_zone

        self.manager = self.get_data_manager()
        self.config = {**(self.params_config or {}), **config}
        self.resolver = ParameterResolver(self.manager, config=self.config, param_names=self.param_names, strict=strict)
        self.strict = self.resolver.strict
        self.filter_compiler = FilterCompiler(self.manager, clock=self.clock)
        self.params = self.resolve_params()
        self.shaper = self.get_row_shaper()

    def get_data_manager(self):
        if self.data_manager is None:
            raise ImproperlyConfigured(f"{type(self).__name__} requires a data_manager")
        return self.data_manager

    def get_model_name(self):
        return self.model_name or type(self).__name__.lower()

    def resolve_params(self):
        return self.resolver.resolve(self.source, direct_filter=self.store.get(self.get_model_name()))

    def get_viewer_time_zone(self):
        return self.time_zone or timezone.get_current_timezone()

    # Direct filter

    def set_direct_filter(self, source=None):
        """
        Read the direct filter form from `source` and store it.

        The stored list replaces the previous one of this grid.

        Returns:
            List of FilterDescriptor
        """
        source = self.source if source is None else source
        include_audit = self.manager.use_audit and self.manager.can_view_audit(self.user)

        self.before_set_filter()
        descriptors = read_direct_filter(source, self.manager, include_audit, validate=self.validate_filter_value)
        descriptors = self.on_set_filter(descriptors)
        self.store.set(self.get_model_name(), descriptors)
        logger.debug("Stored %d direct filter(s) for %s", len(descriptors), self.get_model_name())
        self.params = self.params.with_direct_filter(descriptors)
        self.after_set_filter(descriptors)
        return descriptors

    def clear_direct_filter(self):
        self.store.clear(self.get_model_name())
        self.params = self.params.with_direct_filter([])

    def validate_filter_value(self, key, value):
        return validate_filter_value(value)

    def before_set_filter(self):
        pass

    def on_set_filter(self, descriptors):
        return descriptors

    def after_set_filter(self, descriptors):
        pass

    def has_fast_filter(self):
        return self.params.has_fast_filter

    def has_direct_filter(self):
        return self.params.has_direct_filter

    def has_filter(self):
        return self.has_fast_filter() or self.has_direct_filter()

    def get_one_order(self, default=None):
        return self.params.get_one_order(default)

    # Read path

    def masked_row(self):
        """Row mask: {alias: source field} of every declared field."""
        return dict(self.manager.field_aliases)

    def get_row_shaper(self):
        mask = self.masked_row()
        if self.manager.lock_rows:
            self.manager.add_lock_fields_to_mask(mask)
        if self.manager.use_audit:
            self.manager.add_audit_fields_to_mask(mask)
        return RowShaper(
            mask,
            primary_key=self.manager.primary_key,
            field_options=self.manager.fields,
            renders=self.renders,
            collect_rows_id=self.collect_rows_id,
            strict=self.strict,
        )

    def get_rows(self):
        return self.select_rows()

    def select_rows(self):
        receiver = self.build_query()
        self.before_fetch_rows()
        rows = self.fetch_rows(receiver)
        rows = self.after_fetch_rows(rows)
        return self.after_select_rows(rows, receiver)

    def build_query(self):
        raise NotImplementedError

    def get_total_rows(self, receiver=None):
        return 0

    def fetch_rows(self, receiver):
        """Shape every row yielded by `receiver`."""
        if receiver is None:
            return []

        use_audit = self.manager.use_audit and self.manager.can_view_audit(self.user)
        rows = []
        for row in receiver:
            self.shaper.collect(row)
            row = self.before_fetch_row(row)
            if row is None:
                continue
            row = self.fetch_row(row)
            if row is None:
                continue
            row = self.shaper.mask_row(row)
            if use_audit:
                audit_row(row, self.get_viewer_time_zone())
            self.prepare_row(row)
            self.after_fetch_row(row, rows)
        return rows

    def before_fetch_rows(self):
        pass

    def after_fetch_rows(self, rows):
        return rows

    def after_select_rows(self, rows, receiver=None):
        return {"total": self.get_total_rows(receiver), "rows": rows}

    def before_fetch_row(self, row):
        """Return the raw row, or None to skip it."""
        return row

    def fetch_row(self, row):
        """Return the raw row, or None to skip it."""
        return row

    def prepare_row(self, row):
        """Adjust a shaped row in place."""
        pass

    def after_fetch_row(self, row, rows):
        rows.append(row)

    def get_selected_count(self):
        return len(self.params.rows_selector)

    def get_collected_rows_id(self):
        return list(self.shaper.rows_id)

    # Delete path

    def get_delete_orchestrator(self):
        raise NotImplementedError(f"{type(self).__name__} does not support deleting rows")

    def expand_delete_ids(self, ids):
        """Widen a delete selection (e.g. to child rows)."""
        return ids

    def before_delete(self, some_rows=True):
        """Return False to cancel the delete."""
        return True

    def after_delete(self, some_rows=True, result=None):
        pass

    def delete(self):
        """Delete the rows selected by the request; returns a DeleteOutcome."""
        return self.get_delete_orchestrator().delete(self.params.rows_selector)

    def delete_all(self):
        """Delete every deletable row; returns a DeleteOutcome."""
        return self.get_delete_orchestrator().delete_all()


class GridModel(BaseGridModel):
    """
    Grid backed by a Django QuerySet.

    Rows are fetched with `.values()` over the mask's source fields (dotted
    fields are read through their ORM lookup), filtered by the fast filter,
    the direct filter and record-level sharing, ordered, then sliced.
    """

    queryset = None

    def get_queryset(self):
        if self.queryset is None:
            raise ImproperlyConfigured(f"{type(self).__name__} requires a queryset")
        return self.queryset.all()

    def masked_row(self):
        return {alias: to_lookup(field) for alias, field in self.manager.field_aliases.items()}

    def get_values_fields(self):
        return list(dict.fromkeys(self.shaper.mask.values()))

    def build_fast_filter(self, queryset):
        return self.filter_compiler.apply(queryset, self.params.fast_filter)

    def build_direct_filter(self, queryset):
        return self.filter_compiler.apply(queryset, self.params.direct_filter)

    def build_filter(self, queryset):
        if self.has_fast_filter():
            queryset = self.build_fast_filter(queryset)
        if self.has_direct_filter():
            queryset = self.build_direct_filter(queryset)
        if self.manager.can_use_record_rls(self.user):
            queryset = queryset.filter(self.manager.get_record_filter(self.user))
        return queryset

    def build_order(self, queryset):
        return apply_order(queryset, self.params.order)

    def build_limit(self, queryset):
        limit = self.params.limit
        offset = self.params.offset or 0
        if limit:
            return queryset[offset : offset + limit]
        if offset:
            return queryset[offset:]
        return queryset

    def build_query(self):
        queryset = self.build_filter(self.get_queryset())
        self.filtered_queryset = queryset
        queryset = self.build_order(queryset).values(*self.get_values_fields())
        return self.build_limit(queryset)

    def get_total_rows(self, receiver=None):
        return self.filtered_queryset.count()

    def get_delete_orchestrator(self):
        return DeleteOrchestrator(
            self.get_queryset(),
            self.manager,
            expand_ids=self.expand_delete_ids,
            before_delete=self.before_delete,
            after_delete=self.after_delete,
        )


class ArrayGridModel(BaseGridModel):
    """
    Grid over in-memory rows (lists of dicts, generators, file listings).

    Modes:
        static: every row is filtered and sorted, counted, then the page is
            sliced out
        dynamic: rows are filtered while walking the source, which is left
            unconsumed past the page; only the page is sorted

    Rows are matched by their own keys. `filter_value()` can take over the
    evaluation of a single filter value.

    Example:
        class LogGrid(ArrayGridModel):
            mode = DYNAMIC
            data_manager = DataManager(fields={"level": {"field": "level"}})

            def get_data(self):
                return read_log_entries()
    """

    mode = STATIC
    use_direct_filter_on_fetch = False
    data = None

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.total_rows = 0

    def get_data(self):
        return self.data if self.data is not None else []

    def masked_row(self):
        return {}

    def build_query(self):
        return RowSource(self.get_data(), mode=self.mode)

    def get_total_rows(self, receiver=None):
        return self.total_rows

    def filter_value(self, descriptor, value, row):
        """Return True/False to decide a filter yourself, None to use the operator."""
        return None

    def accept_row(self, row):
        if self.use_direct_filter_on_fetch and self.has_direct_filter():
            if not filter_row(row, self.params.direct_filter, self.filter_value):
                return False
        if self.has_fast_filter():
            if not filter_row(row, self.params.fast_filter, self.filter_value):
                return False
        return True

    def sort_rows(self, rows):
        return sort_rows(rows, self.params.order)

    def fetch_rows(self, receiver):
        if receiver is None:
            return []

        candidates = (row for row in map(self.before_fetch_row, receiver) if row is not None)
        page = paginate(
            RowSource(candidates, mode=receiver.mode),
            self.params.page_range,
            predicate=self.accept_row,
            sort=self.sort_rows,
        )
        self.total_rows = page.total

        page_rows = page.rows
        if receiver.mode == DYNAMIC:
            page_rows = self.sort_rows(page_rows)

        rows = []
        for row in page_rows:
            self.shaper.collect(row)
            row = self.fetch_row(row)
            if row is None:
                continue
            self.prepare_row(row)
            self.after_fetch_row(row, rows)
        return rows
