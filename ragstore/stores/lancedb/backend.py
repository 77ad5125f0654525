"""Table level lancedb operations shared by StoreLancedb and IndexLancedb.

Every lancedb, pyarrow or filesystem failure raised in here is wrapped into
StoreError so that callers only see the ragstore error taxonomy.
"""

from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

import pyarrow as pa
from lancedb import connect_async
from lancedb.db import AsyncConnection
from lancedb.table import AsyncTable

from ragstore.errors import RagStoreError, StoreError
from ragstore.models.sources import SourceData, SourceType
from ragstore.stores.lancedb.schema import decode_sources, encode_sources, input_from_table


@contextmanager
def backend_errors(operation: str) -> Iterator[None]:
    """Wrap backend exceptions raised inside the block into StoreError."""
    try:
        yield
    except RagStoreError:
        raise
    except (OSError, ValueError, RuntimeError, pa.ArrowException) as e:
        raise StoreError(f"{operation} failed: {e}") from e


##########################################
############### PREDICATES ###############
##########################################

def sql_literal(value: str | UUID) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def id_predicate(ids: list[UUID], column: str = "id") -> str:
    """`column IN ('..', '..')` over the canonical text form of the ids."""
    return f"{column} IN ({', '.join(sql_literal(i) for i in ids)})"


def and_predicates(*predicates: str | None) -> str | None:
    parts = [f"({p})" for p in predicates if p]
    return " AND ".join(parts) if parts else None


##########################################
################# TABLES #################
##########################################

async def connect(uri: str) -> AsyncConnection:
    with backend_errors(f"Connecting to lancedb at {uri}"):
        return await connect_async(uri)


async def list_tables(connection: AsyncConnection) -> list[str]:
    names: list[str] = []
    page_token = None
    with backend_errors("Listing tables"):
        while True:
            response = await connection.list_tables(page_token=page_token)
            names.extend(response.tables)
            page_token = response.page_token
            if not page_token:
                return names


async def create_table(connection: AsyncConnection, name: str, schema: pa.Schema, overwrite: bool = False) -> AsyncTable:
    with backend_errors(f"Creating table {name}"):
        return await connection.create_table(name, schema=schema, mode="overwrite" if overwrite else "create")


async def open_table(connection: AsyncConnection, kind: SourceType) -> AsyncTable:
    with backend_errors(f"Opening table {kind.table_name()}"):
        return await connection.open_table(kind.table_name())


async def insert_sources(connection: AsyncConnection, data: SourceData, dimension: int) -> int:
    """Append the rows of `data` to their table. Returns the number of rows written."""
    if len(data) == 0:
        return 0
    # encode first, a dimension mismatch must not reach the backend
    table_data = encode_sources(data, dimension)
    table = await open_table(connection, data.kind())
    with backend_errors(f"Inserting into {data.table_name()}"):
        await table.add(table_data)
    return table_data.num_rows


async def delete_rows(connection: AsyncConnection, kind: SourceType, where: str) -> None:
    table = await open_table(connection, kind)
    with backend_errors(f"Deleting from {kind.table_name()}"):
        await table.delete(where)


async def fetch_sources(
    connection: AsyncConnection,
    kind: SourceType,
    dimension: int,
    where: str | None = None,
) -> SourceData:
    """Run a plain (non-vector) query and decode the rows. Row order is unspecified."""
    table = await open_table(connection, kind)
    with backend_errors(f"Querying {kind.table_name()}"):
        query = table.query()
        if where:
            query = query.where(where)
        result = await query.to_arrow()
    return decode_sources(input_from_table(result, kind), dimension)


async def count_rows(connection: AsyncConnection, kind: SourceType, where: str | None = None) -> int:
    table = await open_table(connection, kind)
    with backend_errors(f"Counting {kind.table_name()}"):
        return await table.count_rows(where)
