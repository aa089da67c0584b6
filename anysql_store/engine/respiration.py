"""
Respirator - periodic cooperative yield for long-running loops.
"""

import asyncio

from anysql_store.models.options import StoreOptions


class Respirator:
    """
    Counts loop iterations and yields to the event loop every `rate` of them.

    Usage:
        respirator = Respirator(250)
        for row in rows:
            ...
            await respirator.breathe()
    """

    def __init__(self, rate: int = StoreOptions.DEFAULT_RESPIRATION_RATE) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        self._rate = rate
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    async def breathe(self) -> None:
        self._count += 1
        if self._count % self._rate == 0:
            await asyncio.sleep(0)
