"""
Django-Grid Settings

Configuration is read from Django settings under the DJANGO_GRID key.
All settings have sensible defaults.

Example:
    # settings.py
    DJANGO_GRID = {
        'DEFAULT_LIMIT': 50,
        'MAX_LIMIT': 200,
        'DATA_TIME_ZONE': 'Europe/Moscow',
        'PARAMS': {'offset': 'offset'},
    }
"""

from django.conf import settings

DEFAULTS = {
    # Pagination
    "DEFAULT_LIMIT": 10,
    "MAX_LIMIT": 0,  # 0 = no upper bound
    "LIMIT_FILTER": [],  # Allow-list of page sizes, overrides MAX_LIMIT when set
    "DEFAULT_OFFSET": 0,
    "DEFAULT_PAGE": 1,
    # Raise ValueError on malformed sort/filter input instead of falling back
    "STRICT": False,
    # Time zone dates are stored and compared in
    "DATA_TIME_ZONE": "UTC",
    # Node identifier that selects the top level of a tree
    "ROOT_NODE": "root",
    # Session key holding the per-model direct filters
    "SESSION_KEY": "django_grid.direct_filter",
    # Request parameter names (None disables reading the parameter)
    "PARAMS": {},
}

PARAM_DEFAULTS = {
    "limit": "limit",
    "page": "page",
    "offset": "start",
    "order": "sort",
    "filter": "filter",
    "rows": "id",
    "node": "node",
}


class GridSettings:
    """
    A settings object that allows django-grid settings to be accessed as
    properties. For example:

        from django_grid.conf import grid_settings
        print(grid_settings.DEFAULT_LIMIT)

    Settings can be overridden in Django settings.py under DJANGO_GRID key.
    """

    def __init__(self, defaults=None):
        self.defaults = defaults or DEFAULTS
        self._cached_attrs = set()

    @property
    def user_settings(self):
        if not hasattr(self, "_user_settings"):
            self._user_settings = getattr(settings, "DJANGO_GRID", {})
        return self._user_settings

    def __getattr__(self, attr):
        if attr not in self.defaults:
            raise AttributeError(f"Invalid django-grid setting: '{attr}'")

        try:
            val = self.user_settings[attr]
        except KeyError:
            val = self.defaults[attr]

        # PARAMS is merged so a project can rename a single parameter
        if attr == "PARAMS":
            val = {**PARAM_DEFAULTS, **val}

        self._cached_attrs.add(attr)
        setattr(self, attr, val)
        return val

    def param(self, name):
        """Request parameter name for `name` (limit, page, offset, ...)."""
        return self.PARAMS.get(name)

    def reload(self):
        """Reload settings (useful for testing)."""
        for attr in self._cached_attrs:
            try:
                delattr(self, attr)
            except AttributeError:
                pass
        self._cached_attrs.clear()
        if hasattr(self, "_user_settings"):
            delattr(self, "_user_settings")


grid_settings = GridSettings(DEFAULTS)
