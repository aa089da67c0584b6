"""
Shared pytest fixtures for async store tests.
"""

import os
import tempfile

import pytest
import pytest_asyncio

from anysql_store.engine.sqlite_database import SQLiteDatabase
from anysql_store.engine.store import Store
from anysql_store.models.options import StoreOptions


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def db_path(temp_dir):
    """Provide a path for a SQLite database file."""
    return os.path.join(temp_dir, "store.db")


@pytest_asyncio.fixture
async def database(db_path):
    """Provide a SQLiteDatabase that is closed after the test."""
    db = SQLiteDatabase(db_path)
    yield db
    await db.close()


@pytest_asyncio.fixture
async def store(db_path):
    """Provide a Store backed by a temporary SQLite file."""
    async with Store.open(db_path) as s:
        yield s


@pytest_asyncio.fixture
async def small_batch_store(db_path):
    """Provide a Store with tiny batches so chunking and respiration kick in."""
    options = StoreOptions(batch_size=3, respiration_rate=2, default_limit=5)
    async with Store.open(db_path, options) as s:
        yield s


@pytest.fixture
def sample_keys():
    """Keys in ascending logical order, covering every component type."""
    return [
        [None],
        [False],
        [True],
        [-1e300],
        [-42],
        [-1.5],
        [0],
        [0.0],
        [0.5],
        [1],
        [2**53],
        [1e300],
        [""],
        ["\x00"],
        ["\x00\x00"],
        ["\x00a"],
        ["a"],
        ["a", None],
        ["a", 1],
        ["a", "b"],
        ["a", []],
        ["a\x00"],
        ["ab"],
        ["b"],
        ["é"],
        ["\U0001f600"],
        [[]],
        [[None]],
        [[1]],
        [[1], "x"],
        [[1, 2]],
        [[1, [2]]],
        [[2]],
        [["a"]],
    ]
