"""
Django-Grid Views

Class-based views serving grid models over HTTP.

Features:
- GridView: rows, delete, clear (delete all) and filter actions
- TreeGridView: tree node loading on top of GridView
- TreeComboView: tree node loading from the query string
- Direct filters kept in the Django session
"""

import logging

from django.views import View

from django_grid.response import GridResponse
from django_grid.store import MemoryFilterStore, SessionFilterStore


logger = logging.getLogger("django_grid")


class GridView(View):
    """
    Generic view for a grid model.

    The action comes from the `action` URL kwarg and defaults to
    `default_action`. Grid parameters are read from request.POST.

    Example:
        # views.py
        class ArticleGridView(GridView):
            grid_class = ArticleGrid

        # urls.py
        urlpatterns = [
            path("articles/", ArticleGridView.as_view()),
            path("articles/<str:action>/", ArticleGridView.as_view()),
        ]
    """

    # Required: the grid model class
    grid_class = None

    default_action = "rows"
    allowed_actions = ["rows", "delete", "clear", "filter"]

    http_method_names = ["post", "options"]

    def get_grid_class(self):
        return self.grid_class

    def get_source(self, request):
        return request.POST

    def get_user(self, request):
        return request.user if hasattr(request, "user") else None

    def get_store(self, request):
        session = getattr(request, "session", None)
        if session is None:
            return MemoryFilterStore()
        return SessionFilterStore(session)

    def get_grid(self, request):
        return self.get_grid_class()(
            self.get_source(request),
            store=self.get_store(request),
            user=self.get_user(request),
        )

    def post(self, request, *args, **kwargs):
        return self.handle_action(request, kwargs.get("action") or self.default_action)

    def handle_action(self, request, action):
        if action not in self.allowed_actions:
            return GridResponse.error("BAD_REQUEST", f"Unknown action: {action}").to_json_response()

        if self.get_grid_class() is None:
            return GridResponse.error("INTERNAL_ERROR", "Grid not configured").to_json_response()

        try:
            grid = self.get_grid(request)
            response = self.dispatch_action(grid, action)
        except ValueError as e:
            # Raised for malformed sort/filter input by strict grids
            logger.warning("Rejected %s request: %s", action, e)
            return GridResponse.error("BAD_REQUEST", str(e)).to_json_response()

        return response.to_json_response()

    def dispatch_action(self, grid, action):
        if action == "rows":
            result = grid.get_rows()
            return GridResponse.rows(**result)
        if action == "delete":
            return GridResponse.outcome(grid.delete())
        if action == "clear":
            return GridResponse.outcome(grid.delete_all())
        if action == "filter":
            descriptors = grid.set_direct_filter()
            return GridResponse.ok(filter=[descriptor.to_dict() for descriptor in descriptors])
        return GridResponse.error("BAD_REQUEST", f"Unknown action: {action}")


class TreeGridView(GridView):
    """GridView whose default action loads tree nodes."""

    default_action = "nodes"
    allowed_actions = ["nodes", "delete", "clear", "filter"]

    def dispatch_action(self, grid, action):
        if action == "nodes":
            return GridResponse.nodes(**grid.get_tree_nodes())
        return super().dispatch_action(grid, action)


class TreeComboView(TreeGridView):
    """Read-only tree view answering GET requests from the query string."""

    allowed_actions = ["nodes"]

    http_method_names = ["get", "options"]

    def get_source(self, request):
        return request.GET

    def get(self, request, *args, **kwargs):
        return self.handle_action(request, kwargs.get("action") or self.default_action)
