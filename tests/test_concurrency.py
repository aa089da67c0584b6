"""
Concurrency and stress tests for the store.
"""

import asyncio
import random

from anysql_store.engine.store import Store


class TestHighConcurrency:
    """High concurrency stress tests."""

    async def test_many_concurrent_writers(self, store):
        """Test many concurrent write operations."""

        async def writer(writer_id: int, count: int) -> None:
            for i in range(count):
                await store.put(["writer", writer_id, i], f"value{i}")

        tasks = [writer(i, 50) for i in range(10)]
        await asyncio.gather(*tasks)

        # Verify all writes
        for writer_id in range(10):
            assert await store.count_range(prefix=["writer", writer_id]) == 50
        assert await store.get(["writer", 3, 7]) == "value7"

    async def test_many_concurrent_readers(self, store):
        """Test many concurrent read operations."""
        await store.put_many([(["key", i], i) for i in range(500)])

        async def reader(count: int) -> bool:
            results = []
            for _ in range(count):
                i = random.randint(0, 499)
                results.append(await store.get(["key", i]) == i)
            return all(results)

        results = await asyncio.gather(*(reader(50) for _ in range(10)))
        assert all(results)

    async def test_transactions_alongside_plain_writes(self, store):
        """Plain writes issued during a transaction never land inside it."""
        snapshots = []

        async def increment(transaction: Store) -> None:
            before = await transaction.count_range(prefix=["outside"])
            value = await transaction.get(["counter"], error_if_missing=False) or 0
            await asyncio.sleep(0)
            await transaction.put(["counter"], value + 1)
            snapshots.append((before, await transaction.count_range(prefix=["outside"])))

        async def plain_writer() -> None:
            for i in range(40):
                await store.put(["outside", i], i)

        await asyncio.gather(plain_writer(), *(store.transaction(increment) for _ in range(20)))

        assert await store.get(["counter"]) == 20
        assert await store.count_range(prefix=["outside"]) == 40
        assert all(before == after for before, after in snapshots)

    async def test_large_range_with_respiration(self, small_batch_store):
        """Large materializations complete while other tasks keep running."""
        await small_batch_store.put_many([(["r", i], i) for i in range(300)])
        progress = []

        async def ticker() -> None:
            for i in range(5):
                progress.append(i)
                await asyncio.sleep(0)

        items, _ = await asyncio.gather(
            small_batch_store.get_range(prefix=["r"], limit=300),
            ticker(),
        )
        assert [item.value for item in items] == list(range(300))
        assert progress == list(range(5))
