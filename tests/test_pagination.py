"""
Tests for django_grid.pagination module.
"""

import pytest


def counting(rows, consumed):
    for row in rows:
        consumed.append(row)
        yield row


class TestPageRange:
    """Tests for PageRange."""

    def test_from_offset(self):
        from django_grid.pagination import PageRange

        page_range = PageRange.from_offset(10, 10)

        assert (page_range.begin, page_range.end) == (10, 20)
        assert page_range.limit == 10
        assert page_range.bounded

    def test_no_limit(self):
        from django_grid.pagination import PageRange

        page_range = PageRange.from_offset(None, 0)

        assert page_range.limit == 0
        assert not page_range.bounded


class TestRowSource:
    """Tests for RowSource mode detection."""

    def test_sized_rows_are_static(self):
        from django_grid.pagination import STATIC, RowSource

        assert RowSource([1, 2]).mode == STATIC

    def test_generators_are_dynamic(self):
        from django_grid.pagination import DYNAMIC, RowSource

        assert RowSource(row for row in [1, 2]).mode == DYNAMIC

    def test_explicit_mode(self):
        from django_grid.pagination import DYNAMIC, RowSource

        assert RowSource([1, 2], mode=DYNAMIC).mode == DYNAMIC


class TestPaginateStatic:
    """Tests for static pagination."""

    @pytest.mark.parametrize("offset,limit", [(0, 10), (10, 10), (20, 10), (5, 7), (0, 30)])
    def test_page_is_slice_of_filtered_rows(self, offset, limit):
        from django_grid.pagination import PageRange, paginate_static

        rows = [{"n": n} for n in range(25)]
        even = [row for row in rows if row["n"] % 2 == 0]

        page = paginate_static(rows, PageRange.from_offset(offset, limit), predicate=lambda row: row["n"] % 2 == 0)

        assert page.total == len(even)
        assert page.rows == even[offset : offset + limit]

    def test_sort_before_slice(self):
        from django_grid.pagination import PageRange, paginate_static

        page = paginate_static([3, 1, 2], PageRange.from_offset(0, 2), sort=sorted)

        assert page == (3, [1, 2])

    def test_limit_zero_returns_everything(self):
        from django_grid.pagination import PageRange, paginate_static

        page = paginate_static(list(range(5)), PageRange.from_offset(0, 0))

        assert page.total == 5
        assert page.rows == [0, 1, 2, 3, 4]


class TestPaginateDynamic:
    """Tests for dynamic pagination."""

    def test_stops_at_page_end(self):
        from django_grid.pagination import PageRange, paginate_dynamic

        consumed = []

        page = paginate_dynamic(counting(range(1000), consumed), PageRange(begin=10, end=20))

        assert page.rows == list(range(10, 20))
        assert page.total == 20
        assert len(consumed) == 20

    def test_rejected_rows_take_no_slot(self):
        from django_grid.pagination import PageRange, paginate_dynamic

        page = paginate_dynamic(range(100), PageRange(begin=2, end=4), predicate=lambda n: n % 3 == 0)

        assert page.rows == [6, 9]
        assert page.total == 4

    def test_short_source(self):
        from django_grid.pagination import PageRange, paginate_dynamic

        page = paginate_dynamic(iter([1, 2, 3]), PageRange(begin=2, end=12))

        assert page.rows == [3]
        assert page.total == 3

    def test_paginate_dispatches_on_mode(self):
        from django_grid.pagination import DYNAMIC, PageRange, RowSource, paginate

        consumed = []
        source = RowSource(counting(range(50), consumed), mode=DYNAMIC)

        page = paginate(source, PageRange(begin=0, end=5), sort=lambda rows: list(reversed(rows)))

        assert page.rows == [0, 1, 2, 3, 4]
        assert len(consumed) == 5


class TestPageCount:
    """Tests for page_count function."""

    @pytest.mark.parametrize("total,limit,expected", [(25, 10, 3), (20, 10, 2), (1, 10, 1), (0, 10, 0), (25, 0, 1)])
    def test_page_count(self, total, limit, expected):
        from django_grid.pagination import page_count

        assert page_count(total, limit) == expected
