"""
Django-Grid Direct Filter Store

Direct filters are the filters a user sets through a grid's filter form.
Unlike column ("fast") filters they outlive the request: each grid keeps its
own list, stored under the grid's model name so several grids on one page
hold independent state.

Stores:
- MemoryFilterStore: plain dict, for tests and background jobs
- SessionFilterStore: Django session, lists kept as JSON-friendly dicts

Concurrent requests of one session are last-writer-wins.
"""

import logging

from django_grid.conf import grid_settings
from django_grid.fields import COL_CREATED_DATE, COL_CREATED_USER
from django_grid.filters import FilterDescriptor, format_filter


logger = logging.getLogger("django_grid")


class FilterStore:
    """
    Base class for direct filter stores.

    Subclasses implement `load()` and `save()` on the raw
    {model_name: [descriptor dict, ...]} mapping.
    """

    def load(self):
        raise NotImplementedError

    def save(self, data):
        raise NotImplementedError

    def get(self, model_name):
        """Descriptors stored for `model_name` (empty list if none)."""
        return format_filter(self.load().get(model_name, []))

    def set(self, model_name, descriptors):
        """Replace the descriptors stored for `model_name`."""
        data = dict(self.load())
        data[model_name] = [
            descriptor.to_dict() if isinstance(descriptor, FilterDescriptor) else dict(descriptor)
            for descriptor in descriptors
        ]
        self.save(data)

    def clear(self, model_name):
        data = dict(self.load())
        if data.pop(model_name, None) is not None:
            self.save(data)


class MemoryFilterStore(FilterStore):
    def __init__(self, data=None):
        self.data = dict(data or {})

    def load(self):
        return self.data

    def save(self, data):
        self.data = data


class SessionFilterStore(FilterStore):
    """
    Direct filter store backed by a Django session.

    Example:
        store = SessionFilterStore(request.session)
        store.set("articles", descriptors)
    """

    def __init__(self, session, key=None):
        self.session = session
        self.key = key or grid_settings.SESSION_KEY

    def load(self):
        return self.session.get(self.key) or {}

    def save(self, data):
        self.session[self.key] = data
        self.session.modified = True


def validate_filter_value(value):
    """
    Whether a direct filter form value is set.

    Empty strings and the literal "null" sent by cleared form fields are
    treated as unset.
    """
    if value is None:
        return False
    text = value if isinstance(value, str) else str(value)
    return len(text) > 0 and text != "null"


def read_direct_filter(source, manager, include_audit=False, validate=None):
    """
    Read the direct filter form from a request parameter source.

    Each key of `manager.filter` is read from `source`; the key is the
    filtered alias and its options give the operator (and an optional raw
    WHERE template). With `include_audit`, the `logUser` and `logDate` form
    fields add "lu" and "ld" audit filters.

    Args:
        source: Request parameter source (e.g. request.POST)
        manager: DataManager with a `filter` map
        include_audit: Read the audit user/date form fields
        validate: Optional callable(key, value) -> bool replacing
            validate_filter_value

    Returns:
        List of FilterDescriptor

    Example:
        >>> manager.filter = {"status": {"operator": "="}}
        >>> read_direct_filter({"status": "1", "name": ""}, manager)
        [FilterDescriptor(property='status', operator='=', value='1', where=None)]
    """
    if validate is None:

        def validate(key, value):
            return validate_filter_value(value)

    descriptors = []

    if include_audit:
        user = source.get("logUser", None)
        if user is not None and validate("logUser", user):
            descriptors.append(FilterDescriptor(property=COL_CREATED_USER, operator="lu", value=user))
        day = source.get("logDate", None)
        if day is not None and validate("logDate", day):
            descriptors.append(FilterDescriptor(property=COL_CREATED_DATE, operator="ld", value=day))

    for key, options in (manager.filter or {}).items():
        value = source.get(key, None)
        if value is None or not validate(key, value):
            continue
        descriptors.append(
            FilterDescriptor(
                property=key,
                operator=options["operator"],
                value=value,
                where=options.get("where"),
            )
        )

    logger.debug("Direct filter read: %d descriptor(s)", len(descriptors))
    return descriptors
