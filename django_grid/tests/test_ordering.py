"""
Tests for django_grid.ordering module.
"""

import pytest
from unittest.mock import MagicMock


def make_manager():
    from django_grid.fields import DataManager

    return DataManager(
        fields={
            "name": {"field": "full_name", "direct": "users.full_name"},
            "age": {"field": "age"},
            "city": {"field": "address.city"},
        }
    )


class TestOrderCompiler:
    """Tests for OrderCompiler.compile."""

    def test_alias_direction_map(self):
        from django_grid.ordering import OrderCompiler

        order = OrderCompiler(make_manager()).compile({"name": "asc", "age": "desc"})

        assert order == {"users.full_name": "ASC", "age": "DESC"}
        assert list(order) == ["users.full_name", "age"]

    def test_json_array_of_sorters(self):
        from django_grid.ordering import OrderCompiler

        order = OrderCompiler(make_manager()).compile(
            '[{"property": "age", "direction": "DESC"}, {"property": "name", "direction": "asc"}]'
        )

        assert list(order.items()) == [("age", "DESC"), ("users.full_name", "ASC")]

    def test_json_single_sorter(self):
        from django_grid.ordering import OrderCompiler

        order = OrderCompiler(make_manager()).compile('{"property":"name","direction":"desc"}')

        assert order == {"users.full_name": "DESC"}

    def test_json_alias_map(self):
        from django_grid.ordering import OrderCompiler

        order = OrderCompiler(make_manager()).compile('{"age": "desc"}')

        assert order == {"age": "DESC"}

    def test_missing_direction_defaults_to_asc(self):
        from django_grid.ordering import OrderCompiler

        order = OrderCompiler(make_manager()).compile([{"property": "age"}])

        assert order == {"age": "ASC"}

    def test_unknown_alias_is_dropped(self):
        from django_grid.ordering import OrderCompiler

        order = OrderCompiler(make_manager()).compile({"password": "asc", "age": "asc"})

        assert order == {"age": "ASC"}

    def test_unknown_alias_raises_in_strict_mode(self):
        from django_grid.ordering import OrderCompiler

        with pytest.raises(ValueError, match="password"):
            OrderCompiler(make_manager(), strict=True).compile({"password": "asc"})

    def test_invalid_direction(self):
        from django_grid.ordering import OrderCompiler

        assert OrderCompiler(make_manager()).compile({"age": "sideways"}) == {"age": "ASC"}

        with pytest.raises(ValueError, match="direction"):
            OrderCompiler(make_manager(), strict=True).compile({"age": "sideways"})

    def test_sorter_without_property(self):
        from django_grid.ordering import OrderCompiler

        assert OrderCompiler(make_manager()).compile([{"direction": "asc"}]) == {}

        with pytest.raises(ValueError):
            OrderCompiler(make_manager(), strict=True).compile([{"direction": "asc"}])

    def test_malformed_json(self):
        from django_grid.ordering import OrderCompiler

        assert OrderCompiler(make_manager()).compile("{nope") == {}

    def test_empty_values(self):
        from django_grid.ordering import OrderCompiler

        compiler = OrderCompiler(make_manager(), strict=True)

        assert compiler.compile(None) == {}
        assert compiler.compile("") == {}
        assert compiler.compile([]) == {}


class TestGetOneOrder:
    """Tests for get_one_order function."""

    def test_returns_first_pair(self):
        from django_grid.ordering import get_one_order

        assert get_one_order({"name": "DESC", "id": "ASC"}) == ("name", "DESC")

    def test_returns_default_without_order(self):
        from django_grid.ordering import get_one_order

        assert get_one_order({}, ("id", "ASC")) == ("id", "ASC")
        assert get_one_order(None) is None


class TestApplyOrder:
    """Tests for QuerySet ordering."""

    def test_to_order_by(self):
        from django_grid.ordering import to_order_by

        assert to_order_by({"address.city": "DESC", "id": "ASC"}) == ["-address__city", "id"]

    def test_apply_order(self):
        from django_grid.ordering import apply_order

        queryset = MagicMock()

        apply_order(queryset, {"users.full_name": "DESC"})

        queryset.order_by.assert_called_once_with("-users__full_name")

    def test_apply_empty_order_leaves_queryset(self):
        from django_grid.ordering import apply_order

        queryset = MagicMock()

        assert apply_order(queryset, {}) is queryset
        queryset.order_by.assert_not_called()


class TestSortRows:
    """Tests for in-memory sorting."""

    def test_sort_descending(self):
        from django_grid.ordering import sort_rows

        rows = [{"n": 2}, {"n": 3}, {"n": 1}]

        assert sort_rows(rows, {"n": "DESC"}) == [{"n": 3}, {"n": 2}, {"n": 1}]

    def test_first_field_is_primary_key(self):
        from django_grid.ordering import sort_rows

        rows = [
            {"group": "b", "n": 1},
            {"group": "a", "n": 2},
            {"group": "a", "n": 1},
        ]

        result = sort_rows(rows, {"group": "ASC", "n": "DESC"})

        assert result == [
            {"group": "a", "n": 2},
            {"group": "a", "n": 1},
            {"group": "b", "n": 1},
        ]

    def test_none_sorts_first(self):
        from django_grid.ordering import sort_rows

        rows = [{"n": 2}, {"n": None}, {}]

        assert sort_rows(rows, {"n": "ASC"})[2] == {"n": 2}
