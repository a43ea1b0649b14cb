"""
Django-Grid Trees

Tree grids load one level of an adjacency list per request. The client sends
the identifier of the node being expanded; the reserved "root" identifier
asks for the top level.

Root requests are paginated and honour the fast filter: without a fast
filter they return top-level rows (parent IS NULL), with one they search the
whole table. Child requests return every child of the node: no limit, no
offset, no fast filter.

Provides:
- TreeNodeQuery: the node being loaded
- TreeGridModel: {total, nodes} tree reads
- AdjacencyGridModel: deleting a node deletes its descendants
- TreeComboModel: tree reads from the query string with an optional
  "[None]" row
"""

from dataclasses import dataclass, replace
from typing import Any

from django.db.models import Count, IntegerField, OuterRef, Subquery, Value
from django.db.models.functions import Coalesce
from django.utils.translation import gettext

from django_grid.conf import grid_settings
from django_grid.grid import GridModel
from django_grid.params import to_int


@dataclass(frozen=True)
class TreeNodeQuery:
    """The node whose children are requested."""

    parent_id: Any = None
    is_root: bool = True

    @classmethod
    def from_node(cls, node, root_node=None):
        """
        Examples:
            >>> TreeNodeQuery.from_node("root")
            TreeNodeQuery(parent_id=None, is_root=True)
            >>> TreeNodeQuery.from_node("12")
            TreeNodeQuery(parent_id='12', is_root=False)

        Only the root identifier marks a root request. A missing node loads
        the top level as a child request: every parentless row, unpaged.
        """
        root_node = root_node or grid_settings.ROOT_NODE
        if node == root_node:
            return cls(parent_id=None, is_root=True)
        return cls(parent_id=node, is_root=False)


class TreeGridModel(GridModel):
    """
    Grid returning tree nodes.

    Each node carries its child count (under the data manager's `count_key`),
    `leaf` (no children) and `expanded` flags. Unless `annotate_count` is
    False, the child count is computed with a subquery over `parent_key`;
    set it to False when the table stores the count itself.
    """

    expanded = False
    annotate_count = True

    def read_node(self):
        return self.resolver.read(self.source, "node")

    def resolve_params(self):
        self.node = TreeNodeQuery.from_node(self.read_node())
        params = super().resolve_params()
        if not self.node.is_root:
            params = replace(params, limit=None, offset=None, fast_filter=())
        return params

    def is_root_node(self):
        return self.node.is_root

    def masked_row(self):
        mask = super().masked_row()
        mask[self.manager.count_key] = self.manager.count_key
        return mask

    def get_queryset(self):
        queryset = super().get_queryset()
        if not self.annotate_count:
            return queryset

        parent_key = self.manager.parent_key
        children = (
            queryset.model._default_manager.filter(**{parent_key: OuterRef("pk")})
            .order_by()
            .values(parent_key)
            .annotate(total=Count("pk"))
            .values("total")
        )
        return queryset.annotate(
            **{self.manager.count_key: Coalesce(Subquery(children), Value(0), output_field=IntegerField())}
        )

    def build_filter(self, queryset):
        queryset = super().build_filter(queryset)
        if self.node.is_root and self.has_fast_filter():
            return queryset
        if self.node.is_root or self.node.parent_id is None:
            return queryset.filter(**{f"{self.manager.parent_key}__isnull": True})
        return queryset.filter(**{self.manager.parent_key: self.node.parent_id})

    def fetch_child_count(self, row):
        return to_int(row.get(self.manager.count_key)) or 0

    def after_fetch_row(self, row, rows):
        count = self.fetch_child_count(row)
        row[self.manager.count_key] = count
        row["leaf"] = 0 if count > 0 else 1
        row["expanded"] = self.expanded
        rows.append(row)

    def after_select_rows(self, rows, receiver=None):
        return {"total": self.get_total_rows(receiver), "nodes": rows}

    def get_tree_nodes(self):
        return self.select_rows()


class AdjacencyGridModel(TreeGridModel):
    """Tree grid whose deletes cascade to every descendant of the selection."""

    def get_descendant_ids(self, ids):
        """
        Selected ids followed by the ids of all their descendants,
        breadth-first.
        """
        queryset = super(TreeGridModel, self).get_queryset().order_by()
        primary_key = self.manager.primary_key
        parent_key = self.manager.parent_key

        result = list(ids)
        seen = {str(value) for value in result}
        level = list(ids)
        while level:
            children = queryset.filter(**{f"{parent_key}__in": level}).values_list(primary_key, flat=True)
            level = [child for child in children if str(child) not in seen]
            seen.update(str(child) for child in level)
            result.extend(level)
        return result

    def expand_delete_ids(self, ids):
        return self.get_descendant_ids(ids)


class TreeComboModel(TreeGridModel):
    """
    Tree for combo box pickers.

    Reads `node`, `filter` and `noneRow` from the query string (request.GET).
    With `noneRow=1` the top level starts with a "[None]" row.
    """

    def __init__(self, source=None, *args, **kwargs):
        super().__init__(source, *args, **kwargs)
        self.use_none_row = str(self.source.get("noneRow", "")) == "1"

    def none_row(self):
        return {
            self.manager.primary_key: "null",
            "name": gettext("[None]"),
            self.manager.count_key: 0,
            "leaf": 1,
            "expanded": False,
        }

    def get_tree_nodes(self):
        result = super().get_tree_nodes()
        if self.use_none_row and self.node.is_root:
            result["total"] += 1
            result["nodes"].insert(0, self.none_row())
        return result
