"""
Tests for django_grid.views module.
"""

import json
from unittest.mock import MagicMock

import pytest
from django.test import RequestFactory


@pytest.fixture
def factory():
    return RequestFactory()


def make_view(base=None, **attrs):
    from django_grid.views import GridView

    grid_class = attrs.pop("grid_class", MagicMock())
    view_class = type("ArticleGridView", (base or GridView,), {"grid_class": grid_class, **attrs})
    return view_class.as_view(), grid_class


class TestGridView:
    """Tests for GridView actions."""

    def test_rows_action(self, factory):
        view, grid_class = make_view()
        grid_class.return_value.get_rows.return_value = {"total": 1, "rows": [{"id": 1}]}

        response = view(factory.post("/articles/", {"limit": "10"}), action="rows")

        assert response.status_code == 200
        assert json.loads(response.content) == {"success": True, "total": 1, "rows": [{"id": 1}]}
        source = grid_class.call_args[0][0]
        assert source["limit"] == "10"

    def test_default_action_is_rows(self, factory):
        view, grid_class = make_view()
        grid_class.return_value.get_rows.return_value = {"total": 0, "rows": []}

        response = view(factory.post("/articles/"))

        assert json.loads(response.content)["rows"] == []
        grid_class.return_value.get_rows.assert_called_once_with()

    def test_delete_action(self, factory):
        from django_grid.delete import DeleteOutcome

        view, grid_class = make_view()
        grid_class.return_value.delete.return_value = DeleteOutcome.for_selection(3, 2)

        data = json.loads(view(factory.post("/articles/", {"id": "1,2,3"}), action="delete").content)

        assert data["success"] is False
        assert data["missed"] == 1
        assert data["type"] == "warning"

    def test_clear_action(self, factory):
        from django_grid.delete import DeleteOutcome

        view, grid_class = make_view()
        grid_class.return_value.delete_all.return_value = DeleteOutcome.for_all(4, 0)

        data = json.loads(view(factory.post("/articles/"), action="clear").content)

        assert data["success"] is True
        assert data["deleted"] == 4

    def test_filter_action(self, factory):
        from django_grid.filters import FilterDescriptor

        view, grid_class = make_view()
        grid_class.return_value.set_direct_filter.return_value = [FilterDescriptor("status", "=", "1")]

        data = json.loads(view(factory.post("/articles/", {"status": "1"}), action="filter").content)

        assert data == {
            "success": True,
            "filter": [{"property": "status", "operator": "=", "value": "1", "where": None}],
        }

    def test_unknown_action(self, factory):
        view, grid_class = make_view()

        response = view(factory.post("/articles/"), action="export")

        assert response.status_code == 400
        assert json.loads(response.content)["error"] == "Unknown action: export"
        grid_class.assert_not_called()

    def test_missing_grid_class(self, factory):
        view, _ = make_view(grid_class=None)

        response = view(factory.post("/articles/"))

        assert response.status_code == 500

    def test_malformed_input_is_bad_request(self, factory):
        view, grid_class = make_view()
        grid_class.side_effect = ValueError("Invalid sort direction: sideways")

        response = view(factory.post("/articles/", {"sort": "x"}))

        assert response.status_code == 400
        assert json.loads(response.content) == {"success": False, "error": "Invalid sort direction: sideways"}

    def test_get_not_allowed(self, factory):
        view, _ = make_view()

        assert view(factory.get("/articles/")).status_code == 405

    def test_session_store(self, factory):
        from django_grid.store import MemoryFilterStore, SessionFilterStore

        view, grid_class = make_view()
        grid_class.return_value.get_rows.return_value = {"total": 0, "rows": []}

        view(factory.post("/articles/"))
        assert isinstance(grid_class.call_args[1]["store"], MemoryFilterStore)

        request = factory.post("/articles/")
        request.session = {}
        request.user = MagicMock()
        view(request)
        assert isinstance(grid_class.call_args[1]["store"], SessionFilterStore)
        assert grid_class.call_args[1]["user"] is request.user


class TestTreeViews:
    """Tests for TreeGridView and TreeComboView."""

    def test_tree_nodes(self, factory):
        from django_grid.views import TreeGridView

        view, grid_class = make_view(TreeGridView)
        grid_class.return_value.get_tree_nodes.return_value = {"total": 1, "nodes": [{"id": 1, "leaf": 1}]}

        data = json.loads(view(factory.post("/categories/", {"node": "root"})).content)

        assert data == {"success": True, "total": 1, "nodes": [{"id": 1, "leaf": 1}]}

    def test_tree_delete_falls_back_to_grid_actions(self, factory):
        from django_grid.delete import DeleteOutcome
        from django_grid.views import TreeGridView

        view, grid_class = make_view(TreeGridView)
        grid_class.return_value.delete.return_value = DeleteOutcome.for_selection(1, 1)

        data = json.loads(view(factory.post("/categories/", {"id": "1"}), action="delete").content)

        assert data["success"] is True

    def test_combo_reads_query_string(self, factory):
        from django_grid.views import TreeComboView

        view, grid_class = make_view(TreeComboView)
        grid_class.return_value.get_tree_nodes.return_value = {"total": 0, "nodes": []}

        response = view(factory.get("/categories/combo/", {"node": "root", "noneRow": "1"}))

        assert response.status_code == 200
        source = grid_class.call_args[0][0]
        assert source["node"] == "root"
        assert source["noneRow"] == "1"

    def test_combo_is_read_only(self, factory):
        from django_grid.views import TreeComboView

        view, grid_class = make_view(TreeComboView)

        assert view(factory.post("/categories/combo/")).status_code == 405
        assert view(factory.get("/categories/combo/"), action="delete").status_code == 400
