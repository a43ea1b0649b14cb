"""
Django-Grid Pagination

Page ranges and the two row-fetch strategies:

- static: materialize, filter and sort every candidate row, count them, then
  return the [offset, offset + limit) slice
- dynamic: walk the rows once, skipping up to the range begin and stopping as
  soon as the range end is reached, without consuming the rest of the source
"""

import math
from collections import namedtuple
from dataclasses import dataclass


STATIC = "static"
DYNAMIC = "dynamic"

Page = namedtuple("Page", ["total", "rows"])


@dataclass(frozen=True)
class PageRange:
    """
    Row window of one page: rows with index in (begin, end] are returned.

    `end - begin` always equals the limit. A limit of 0 means no cap, in
    which case begin == end and the range is unbounded.
    """

    begin: int = 0
    end: int = 0

    @classmethod
    def from_offset(cls, offset, limit):
        begin = offset or 0
        return cls(begin=begin, end=begin + (limit or 0))

    @property
    def limit(self):
        return self.end - self.begin

    @property
    def bounded(self):
        return self.limit > 0


class RowSource:
    """
    Rows to paginate.

    Sized sources (lists, tuples, anything with __len__) are paginated
    statically; plain iterables and generators dynamically.
    """

    def __init__(self, rows, mode=None):
        self.rows = rows
        self.mode = mode or (STATIC if hasattr(rows, "__len__") else DYNAMIC)

    def __iter__(self):
        return iter(self.rows)

    def __len__(self):
        return len(self.rows)


def paginate_static(rows, page_range, predicate=None, sort=None):
    """
    Filter and sort every row, then slice the page out of the result.

    Args:
        rows: Iterable of rows
        page_range: PageRange to slice
        predicate: Optional callable(row) -> bool, rows failing it are dropped
        sort: Optional callable(rows) -> rows applied before slicing

    Returns:
        Page(total, rows) where total counts every row that passed `predicate`
    """
    candidates = [row for row in rows if predicate is None or predicate(row)]
    if sort is not None:
        candidates = sort(candidates)

    if not page_range.bounded:
        return Page(len(candidates), candidates)
    return Page(len(candidates), candidates[page_range.begin : page_range.end])


def paginate_dynamic(rows, page_range, predicate=None):
    """
    Walk rows once, keeping those inside the page range.

    Rows failing `predicate` do not take a slot in the range. Iteration stops
    right after the row at index `page_range.end`, so nothing past the page is
    pulled from the source.

    Returns:
        Page(total, rows) where total is the number of matching rows consumed
    """
    result = []
    index = 0
    for row in rows:
        if predicate is not None and not predicate(row):
            continue
        index += 1
        if index <= page_range.begin:
            continue
        result.append(row)
        if page_range.bounded and index >= page_range.end:
            break
    return Page(index, result)


def paginate(source, page_range, predicate=None, sort=None):
    """
    Paginate a RowSource with the strategy it asks for.

    Sorting needs every row in hand, so it is only honoured in static mode.
    """
    if not isinstance(source, RowSource):
        source = RowSource(source)
    if source.mode == STATIC:
        return paginate_static(source, page_range, predicate=predicate, sort=sort)
    return paginate_dynamic(source, page_range, predicate=predicate)


def page_count(total, limit):
    """
    Number of pages needed for `total` rows.

    Examples:
        >>> page_count(25, 10)
        3
        >>> page_count(25, 0)
        1
        >>> page_count(0, 10)
        0
    """
    if total <= 0:
        return 0
    if not limit:
        return 1
    return math.ceil(total / limit)
