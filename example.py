import asyncio
import logging
import os
import sys

from anysql_store import NotFoundError, Store

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger()


async def main(path: str) -> None:
    async with Store.open(path) as store:
        logger.info("=== put, get and delete an object ===")
        key = ["users", "mvila"]
        await store.put(key, {"firstName": "Manu", "age": 42})
        user = await store.get(key)
        logger.info(f"get {key}: {user}")

        deleted = await store.delete(key)
        logger.info(f"deleted: {deleted}")
        try:
            await store.get(key)
        except NotFoundError as e:
            logger.info(f"after delete: {e}")

        logger.info("=== range scan ===")
        await store.put_many([(["letters", c], ord(c)) for c in "abcde"])
        for item in await store.get_range(prefix=["letters"], start_after=["letters", "b"], reverse=True):
            logger.info(f"{item.key} -> {item.value}")
        await store.delete_range(prefix=["letters"])


if __name__ == "__main__":
    try:
        asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else ":memory:"))
    except KeyboardInterrupt:
        pass
