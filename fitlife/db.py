import logging
from typing import List

from asyncpg import Pool
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from .models.base import Base
# Imported for their side effect of registering tables on Base.metadata
from .models import fitness_class, interaction, recommendation, user  # noqa: F401

logger = logging.getLogger(__name__)


def ddl_statements() -> List[str]:
    """CREATE TABLE / CREATE INDEX statements for every table, parents first."""
    dialect = postgresql.dialect()
    statements = []
    for table in Base.metadata.sorted_tables:
        statements.append(str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)).strip())
        for index in sorted(table.indexes, key=lambda ix: ix.name):
            statements.append(str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)).strip())
    return statements


async def create_schema(db: Pool):
    """Create any missing tables. Existing tables are left as they are."""
    statements = ddl_statements()
    async with db.acquire() as conn:
        async with conn.transaction():
            for statement in statements:
                await conn.execute(statement)
    logger.info("Database schema ensured", extra={"statements": len(statements)})
