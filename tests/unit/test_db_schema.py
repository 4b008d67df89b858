import pytest

from fitlife.db import create_schema, ddl_statements


def test_tables_are_created_parents_first():
    statements = ddl_statements()
    tables = [s for s in statements if s.startswith("CREATE TABLE")]

    assert all("IF NOT EXISTS" in s for s in statements)
    names = [s.split("IF NOT EXISTS ")[1].split(" ")[0] for s in tables]
    assert set(names) == {"user_profiles", "classes", "interactions", "recommendations"}
    assert names.index("user_profiles") < names.index("interactions")
    assert names.index("user_profiles") < names.index("recommendations")


def test_recommendations_keyed_by_user_and_item():
    ddl = next(s for s in ddl_statements() if s.startswith("CREATE TABLE IF NOT EXISTS recommendations"))

    assert "PRIMARY KEY (user_id, item_id)" in ddl
    assert "ON DELETE CASCADE" in ddl


def test_indexes_are_included():
    statements = " ".join(ddl_statements())

    for index in ("ix_recommendations_user_rank", "ix_interactions_user_time", "ix_classes_active_start"):
        assert index in statements


@pytest.mark.asyncio
async def test_create_schema_runs_every_statement(mock_db_pool):
    conn = mock_db_pool.acquire.return_value.__aenter__.return_value

    await create_schema(mock_db_pool)

    conn.transaction.assert_called_once()
    assert conn.execute.await_count == len(ddl_statements())
