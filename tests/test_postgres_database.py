from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from scribe_rag.core.exceptions import TransientProviderError
from scribe_rag.infrastructure.database.postgres import PostgresDatabase

MODULE = "scribe_rag.infrastructure.database.postgres"


def fake_connection(extension_installed: bool):
    conn = MagicMock()
    conn.execute = AsyncMock()
    conn.fetchval = AsyncMock(return_value=extension_installed)
    conn.close = AsyncMock()
    return conn


def fake_pool(conn):
    pool = MagicMock()
    pool.acquire = AsyncMock(return_value=conn)
    pool.release = AsyncMock()
    pool.close = AsyncMock()
    return pool


@pytest.mark.asyncio
@pytest.mark.parametrize("installed,column", [(True, "vector(8)"), (False, "real[]")])
async def test_schema_matches_extension_availability(installed, column):
    conn = fake_connection(installed)
    pool = fake_pool(conn)
    db = PostgresDatabase("postgresql://localhost/test", dimension=8)

    with patch(f"{MODULE}.asyncpg.connect", AsyncMock(return_value=conn)), patch(
        f"{MODULE}.asyncpg.create_pool", AsyncMock(return_value=pool)
    ):
        await db.connect()
        await db.ensure_schema()

    assert db.vector_available is installed
    statements = [c.args[0] for c in conn.execute.await_args_list]
    assert any(f"embedding {column}" in s for s in statements)
    assert any("ON DELETE CASCADE" in s for s in statements)
    assert any("UNIQUE (document_id, chunk_index)" in s for s in statements)
    pool.release.assert_awaited()


@pytest.mark.asyncio
async def test_register_vector_runs_on_new_connections():
    db = PostgresDatabase("postgresql://localhost/test")
    db._vector_available = True
    conn = MagicMock()

    with patch(f"{MODULE}.register_vector", AsyncMock()) as register:
        await db._init_connection(conn)

    register.assert_awaited_once_with(conn)


@pytest.mark.asyncio
async def test_register_failure_disables_vector_search():
    db = PostgresDatabase("postgresql://localhost/test")
    db._vector_available = True

    with patch(f"{MODULE}.register_vector", AsyncMock(side_effect=ValueError("unknown type"))):
        await db._init_connection(MagicMock())

    assert db.vector_available is False


@pytest.mark.asyncio
async def test_unreachable_server_is_transient():
    db = PostgresDatabase("postgresql://localhost/test")

    with patch(f"{MODULE}.asyncpg.connect", AsyncMock(side_effect=OSError("refused"))):
        with pytest.raises(TransientProviderError):
            await db.connect()


def test_pool_before_connect():
    with pytest.raises(TransientProviderError):
        PostgresDatabase("postgresql://localhost/test").pool
