"""
Django-Grid: Data Grids for Django

Turns grid requests (paging, sorting, column filters, filter forms) into
QuerySets and returns rows shaped for rich-client data grids and trees.

Example:
    from django_grid import DataManager, GridModel

    class ArticleGrid(GridModel):
        queryset = Article.objects.all()
        data_manager = DataManager(fields={"title": {"field": "title"}})

    ArticleGrid(request.POST).get_rows()
"""

__version__ = "1.2.0"

# Field metadata
from django_grid.fields import DataManager, get_model_fields, to_lookup

# Request parameters
from django_grid.params import ParameterResolver, RequestParameters

# Filters and ordering
from django_grid.filters import (
    FilterCompiler,
    FilterDescriptor,
    date_bucket_range,
    filter_row,
    parse_filter,
    OPERATORS,
)
from django_grid.ordering import OrderCompiler, get_one_order

# Pagination
from django_grid.pagination import DYNAMIC, STATIC, PageRange, RowSource, page_count, paginate

# Direct filter stores
from django_grid.store import FilterStore, MemoryFilterStore, SessionFilterStore

# Rows and responses
from django_grid.response import GridResponse, RenderRegistry, RowShaper

# Permissions
from django_grid.permissions import GridPermission, OwnerRecordPermission

# Deleting
from django_grid.delete import DeleteOrchestrator, DeleteOutcome

# Grid models
from django_grid.grid import ArrayGridModel, BaseGridModel, GridModel
from django_grid.tree import AdjacencyGridModel, TreeComboModel, TreeGridModel, TreeNodeQuery

# Views
from django_grid.views import GridView, TreeComboView, TreeGridView

# Configuration
from django_grid.conf import grid_settings

__all__ = [
    # Version
    "__version__",
    # Fields
    "DataManager",
    "get_model_fields",
    "to_lookup",
    # Parameters
    "ParameterResolver",
    "RequestParameters",
    # Filters
    "FilterCompiler",
    "FilterDescriptor",
    "date_bucket_range",
    "filter_row",
    "parse_filter",
    "OPERATORS",
    # Ordering
    "OrderCompiler",
    "get_one_order",
    # Pagination
    "DYNAMIC",
    "STATIC",
    "PageRange",
    "RowSource",
    "page_count",
    "paginate",
    # Stores
    "FilterStore",
    "MemoryFilterStore",
    "SessionFilterStore",
    # Response
    "GridResponse",
    "RenderRegistry",
    "RowShaper",
    # Permissions
    "GridPermission",
    "OwnerRecordPermission",
    # Delete
    "DeleteOrchestrator",
    "DeleteOutcome",
    # Grid models
    "BaseGridModel",
    "GridModel",
    "ArrayGridModel",
    "TreeGridModel",
    "AdjacencyGridModel",
    "TreeComboModel",
    "TreeNodeQuery",
    # Views
    "GridView",
    "TreeGridView",
    "TreeComboView",
    # Settings
    "grid_settings",
]
