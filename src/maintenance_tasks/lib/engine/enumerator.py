"""Restartable cursor enumerators.

Every enumerator yields ``(item, cursor_after_item)`` pairs in a total, stable
order. Calling it again with the last cursor it produced yields exactly the
remaining items: no duplicates, no omissions (as long as the underlying
collection is not reordered between slices).

Batch variants yield ``(list_of_items, cursor_after_last_item)`` so that the
cursor only ever lands on a batch boundary.
"""

import itertools
from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator, Callable, Iterable, Iterator, Sequence
from typing import Any

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

CursorPair = tuple[Any, Any]
PairSource = Iterable[CursorPair] | AsyncIterable[CursorPair]


class CollectionCursorEnumerator:
    """Wraps a collaborator-supplied ``cursor -> pairs`` factory.

    The factory may return a plain iterable (including generators) or an async
    iterable; ``resume`` always hands back an async iterator so the engine can
    drive both the same way.

    Args:
        factory: Callable producing the pair source for a given cursor.
    """

    def __init__(self, factory: Callable[[Any], PairSource]) -> None:
        self._factory = factory

    def resume(self, cursor: Any) -> AsyncGenerator[CursorPair, None]:
        return aiter_pairs(self._factory(cursor))


async def aiter_pairs(source: PairSource) -> AsyncGenerator[CursorPair, None]:
    """Iterate a sync or async pair source asynchronously."""
    if isinstance(source, AsyncIterable):
        async for pair in source:
            yield pair
    else:
        for pair in source:
            yield pair


def _as_position(key: Any) -> Any:
    # Tuples come back from JSON as lists; compare and store them as lists.
    return list(key) if isinstance(key, tuple) else key


def on_sequence(items: Sequence[Any], cursor: int | None) -> Iterator[CursorPair]:
    """Enumerate a sequence using the index of the last processed item as cursor."""
    start = 0 if cursor is None else int(cursor) + 1
    for index in range(start, len(items)):
        yield items[index], index


def on_iterable(iterable: Iterable[Any], cursor: int | None) -> Iterator[CursorPair]:
    """Enumerate any iterable (finite or not) by position, skipping the consumed prefix."""
    start = 0 if cursor is None else int(cursor) + 1
    for index, item in enumerate(itertools.islice(iterable, start, None), start=start):
        yield item, index


def on_keyed(items: Iterable[Any], key: Callable[[Any], Any], cursor: Any) -> Iterator[CursorPair]:
    """Enumerate items in ascending ``key`` order; the cursor is the last processed key.

    Keys must be unique and storable as a cursor (see :mod:`cursor`). Resuming yields only items whose key
    is strictly greater than the cursor.
    """
    last = _as_position(cursor)
    for item in sorted(items, key=lambda i: _as_position(key(i))):
        position = _as_position(key(item))
        if last is not None and position <= last:
            continue
        yield item, position


async def in_batches(source: PairSource, batch_size: int) -> AsyncIterator[tuple[list[Any], Any]]:
    """Group a pair source into batches whose cursor is the last item's cursor.

    Resuming the underlying source from a batch cursor continues with the next batch.
    """
    if batch_size <= 0:
        msg = f"batch_size must be positive, got {batch_size}"
        raise ValueError(msg)
    batch: list[Any] = []
    last_cursor: Any = None
    async for item, cursor in aiter_pairs(source):
        batch.append(item)
        last_cursor = cursor
        if len(batch) >= batch_size:
            yield batch, last_cursor
            batch = []
    if batch:
        yield batch, last_cursor


async def _record_pages(
    session: AsyncSession,
    statement: Select[Any],
    key_column: InstrumentedAttribute[Any],
    cursor: Any,
    batch_size: int,
) -> AsyncIterator[list[Any]]:
    """Keyset-paginate ``statement`` ordered by ``key_column``."""
    if batch_size <= 0:
        msg = f"batch_size must be positive, got {batch_size}"
        raise ValueError(msg)
    last = cursor
    while True:
        page_query = statement.order_by(key_column).limit(batch_size)
        if last is not None:
            page_query = page_query.where(key_column > last)
        result = await session.execute(page_query)
        rows = list(result.scalars().all())
        if not rows:
            return
        yield rows
        last = getattr(rows[-1], key_column.key)
        if len(rows) < batch_size:
            return


async def on_records(
    session: AsyncSession,
    statement: Select[Any],
    key_column: InstrumentedAttribute[Any],
    cursor: Any = None,
    batch_size: int = 100,
) -> AsyncIterator[CursorPair]:
    """Enumerate ORM records in key order, loading ``batch_size`` rows per query.

    Args:
        session: Database session used for the page queries.
        statement: ``select(Model)`` with any filters applied (no ORDER BY/LIMIT).
        key_column: Unique, totally ordered column (usually the integer, string or
            UUID primary key); its value is the cursor.
        cursor: Key of the last processed record, or None.
        batch_size: Rows fetched per query.
    """
    async for rows in _record_pages(session, statement, key_column, cursor, batch_size):
        for row in rows:
            yield row, getattr(row, key_column.key)


async def on_record_batches(
    session: AsyncSession,
    statement: Select[Any],
    key_column: InstrumentedAttribute[Any],
    cursor: Any = None,
    batch_size: int = 100,
) -> AsyncIterator[tuple[list[Any], Any]]:
    """Like :func:`on_records`, but yields each page with the key of its last row."""
    async for rows in _record_pages(session, statement, key_column, cursor, batch_size):
        yield rows, getattr(rows[-1], key_column.key)
