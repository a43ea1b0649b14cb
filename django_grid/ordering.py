"""
Django-Grid Ordering

Maps client sort aliases to source fields and normalizes directions.

Accepted shapes:
- {"name": "desc", "created": "asc"}             alias -> direction map
- '[{"property": "name", "direction": "desc"}]'  JSON array of sorters
- '{"property": "name", "direction": "desc"}'    single JSON sorter
- '{"name": "desc"}'                             JSON alias -> direction map
"""

import json
import logging

from django_grid.fields import to_lookup


logger = logging.getLogger("django_grid")

ASC = "ASC"
DESC = "DESC"
DIRECTIONS = (ASC, DESC)


class OrderCompiler:
    """
    Compile sort input into an ordered {source_field: direction} map.

    In lenient mode malformed input and unknown aliases are logged and
    dropped. In strict mode they raise ValueError.

    Example:
        >>> OrderCompiler(manager).compile('{"property": "name", "direction": "desc"}')
        {'users.full_name': 'DESC'}
    """

    def __init__(self, manager, strict=False):
        self.manager = manager
        self.strict = strict

    def fail(self, message):
        if self.strict:
            raise ValueError(message)
        logger.warning("Ignoring sort: %s", message)

    def compile(self, value):
        if not value:
            return {}

        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as e:
                self.fail(f"unable to decode {value!r}: {e}")
                return {}

        if isinstance(value, dict):
            if "property" in value:
                return self.compile_list([value])
            return self.compile_map(value)

        if isinstance(value, (list, tuple)):
            return self.compile_list(value)

        self.fail(f"unsupported sort value of type {type(value).__name__}")
        return {}

    def compile_list(self, sorters):
        result = {}
        for sorter in sorters:
            if not isinstance(sorter, dict) or not sorter.get("property"):
                self.fail(f"sorter {sorter!r} has no 'property'")
                continue
            self.add(result, sorter["property"], sorter.get("direction") or ASC)
        return result

    def compile_map(self, mapping):
        result = {}
        for alias, direction in mapping.items():
            self.add(result, alias, direction or ASC)
        return result

    def add(self, result, alias, direction):
        field = self.manager.get_full_field(alias)
        if field is None:
            self.fail(f"unknown sort field '{alias}'")
            return

        direction = str(direction).upper()
        if direction not in DIRECTIONS:
            self.fail(f"invalid direction '{direction}' for '{alias}'")
            direction = ASC

        result[field] = direction


def get_one_order(order, default=None):
    """
    First (field, direction) pair of an order map, or `default`.

    Examples:
        >>> get_one_order({"name": "DESC", "id": "ASC"})
        ('name', 'DESC')
        >>> get_one_order({}, ("id", "ASC"))
        ('id', 'ASC')
    """
    for field, direction in (order or {}).items():
        return field, direction
    return default


def to_order_by(order):
    """
    Convert an order map to QuerySet.order_by() arguments.

    Example:
        >>> to_order_by({"customer.name": "DESC", "id": "ASC"})
        ['-customer__name', 'id']
    """
    return [("-" if direction == DESC else "") + to_lookup(field) for field, direction in order.items()]


def apply_order(queryset, order):
    if not order:
        return queryset
    return queryset.order_by(*to_order_by(order))


def sort_rows(rows, order):
    """
    Sort in-memory rows by an order map.

    Sorting is stable and applied from the last key to the first, so the first
    field of the map is the primary key. None values sort first.
    """
    rows = list(rows)
    for field, direction in reversed(list((order or {}).items())):
        rows.sort(key=lambda row: (row.get(field) is not None, row.get(field)), reverse=direction == DESC)
    return rows
