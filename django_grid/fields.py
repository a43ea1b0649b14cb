"""
Django-Grid Field Metadata

The data manager describes the fields a grid exposes: the client-facing
alias, the source field it reads from, the lookup used for filtering and
sorting, and per-field options such as render hooks and filter types.

Features:
- Alias -> field options lookup
- Model introspection for building a manager from a Django model
- Row locking and record audit column registration
- Delete dependencies per delete mode
"""

from django.apps import apps


# Client-facing aliases of the audit columns
COL_UPDATED_DATE = "logUpdatedDate"
COL_UPDATED_UTC = "logUpdatedUTC"
COL_UPDATED_USER = "logUpdatedUser"
COL_CREATED_DATE = "logCreatedDate"
COL_CREATED_UTC = "logCreatedUTC"
COL_CREATED_USER = "logCreatedUser"

AUDIT_DATE_COLUMNS = (
    (COL_CREATED_DATE, COL_CREATED_UTC),
    (COL_UPDATED_DATE, COL_UPDATED_UTC),
)


def get_model_fields(model):
    """
    Get list of concrete field names for a model.

    Only returns fields with database columns (excludes reverse relations,
    many-to-many through tables, etc.).

    Args:
        model: Django model class

    Returns:
        List of field names

    Example:
        >>> get_model_fields(Article)
        ['id', 'title', 'author', 'created_date', ...]
    """
    fields = []
    for field in model._meta.get_fields():
        if hasattr(field, "column") and field.column:
            fields.append(field.name)
    return fields


def get_fk_fields(model):
    """
    Get set of ForeignKey field names for a model.

    Example:
        >>> get_fk_fields(Article)
        {'author', 'parent'}
    """
    from django.db.models import ForeignKey

    fk_fields = set()
    for field in model._meta.get_fields():
        if isinstance(field, ForeignKey):
            fk_fields.add(field.name)
    return fk_fields


def resolve_model(model):
    """Accept a model class or an "app_label.ModelName" string."""
    if isinstance(model, str):
        return apps.get_model(model)
    return model


def to_lookup(field):
    """
    Convert a dotted field path into a Django ORM lookup.

    Examples:
        >>> to_lookup("customer.name")
        'customer__name'
        >>> to_lookup("name")
        'name'
    """
    return field.replace(".", "__")


class DataManager:
    """
    Field metadata for one grid.

    Field options are keyed by alias. Recognised option keys:

        field       source field name as it appears in fetched rows
        direct      lookup used for filtering/sorting when it differs from field
        filterType  "datetime", "date", "number", ... (affects date filters)
        render      name of a render hook registered on the row shaper
        label       human readable column title

    Example:
        manager = DataManager(
            fields={
                "name": {"field": "full_name", "direct": "users.full_name"},
                "created": {"field": "created_date", "filterType": "datetime"},
            },
            primary_key="id",
            order={"name": "ASC"},
        )
    """

    primary_key = "id"

    # Defaults consumed by the parameter resolver (None = not set)
    limit = None
    offset = None
    page = None
    order = None

    # Direct filter form: {request_key: {"operator": ..., "where": ...}}
    filter = None

    # Row locking ("system" rows that cannot be deleted)
    lock_rows = False
    lock_field = "_lock"

    # Record audit
    use_audit = False
    audit_fields = {
        COL_CREATED_DATE: "created_date",
        COL_CREATED_USER: "created_user",
        COL_UPDATED_DATE: "updated_date",
        COL_UPDATED_USER: "updated_user",
    }

    # Tree columns
    parent_key = "parent_id"
    count_key = "count"

    def __init__(self, fields=None, permission=None, dependencies=None, reset_increments=None, **options):
        for key, value in options.items():
            if not hasattr(type(self), key):
                raise TypeError(f"Unknown data manager option: '{key}'")
            setattr(self, key, value)

        self.fields = dict(fields or {})
        self.permission = permission
        # {"delete": [(model, fk_field), ...], "deleteAll": [...]}
        self.dependencies = dict(dependencies or {})
        # {"delete": [callable(ids)], "deleteAll": [callable()]}
        self.cleanups = {}
        self.reset_increments = list(reset_increments or [])

        if self.use_audit:
            self.add_audit_fields()

    @classmethod
    def from_model(cls, model, exclude=None, **options):
        """
        Build a manager exposing the concrete fields of a Django model.

        Every field is exposed under its own name; ForeignKeys are exposed
        through their `<name>_id` column.
        """
        model = resolve_model(model)
        exclude = set(exclude or [])
        fk_fields = get_fk_fields(model)

        fields = {}
        for name in get_model_fields(model):
            if name in exclude:
                continue
            column = f"{name}_id" if name in fk_fields else name
            fields[name] = {"field": column}

        options.setdefault("primary_key", model._meta.pk.name)
        return cls(fields=fields, **options)

    def get_field_options(self, alias):
        """Return the option dict for `alias`, or None if unknown."""
        if alias is None:
            return None
        return self.fields.get(alias)

    def get_full_field(self, alias):
        """Return the filter/sort lookup for `alias` (direct, else field)."""
        options = self.get_field_options(alias)
        if options is None:
            return None
        return options.get("direct") or options.get("field")

    @property
    def field_aliases(self):
        """Alias -> source field map, in declaration order."""
        return {alias: options.get("field", alias) for alias, options in self.fields.items()}

    def add_audit_fields(self):
        """Register field options for the audit aliases."""
        for alias, field in self.audit_fields.items():
            options = {"field": field}
            if alias in (COL_CREATED_DATE, COL_UPDATED_DATE):
                options["filterType"] = "datetime"
            self.fields.setdefault(alias, options)

    def add_lock_fields_to_mask(self, mask):
        mask.setdefault(self.lock_field, self.lock_field)

    def add_audit_fields_to_mask(self, mask):
        for alias, field in self.audit_fields.items():
            mask.setdefault(alias, self.fields.get(alias, {}).get("field", field))

    def get_dependency(self, mode):
        """
        Dependencies to cascade for a delete mode ("delete" or "deleteAll").

        Returns:
            Tuple of (list of (model, fk_field), list of cleanup callables)
        """
        dependencies = [(resolve_model(model), field) for model, field in self.dependencies.get(mode, [])]
        return dependencies, list(self.cleanups.get(mode, []))

    def add_cleanup(self, mode, func):
        """Register a callable run after dependent rows are deleted."""
        self.cleanups.setdefault(mode, []).append(func)
        return func

    def can_use_record_rls(self, user):
        return self.permission is not None and self.permission.can_use_record_rls(user, self)

    def get_record_filter(self, user):
        return self.permission.get_record_filter(user, self)

    def can_view_audit(self, user=None):
        if self.permission is None:
            return True
        return self.permission.can_view_audit(user, self)
