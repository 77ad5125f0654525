"""Column layouts of every lancedb table and the codec between entities and pyarrow batches.

UUIDs and enum tags are stored as utf8, counters and offsets as int32,
timestamps as millisecond UTC timestamps (64-bit epoch values) and the
embedding vector as fixed_size_list<float32>[dimension] in column "vector".
"""

from enum import Enum
from typing import Any, NamedTuple
from uuid import UUID

import pyarrow as pa
from pydantic import ValidationError

from ragstore.errors import DimensionMismatchError, StoreCorruptionError
from ragstore.helper.timestamp import from_epoch_ms, to_epoch_ms
from ragstore.models.Document import DocumentSourceType, DocumentType
from ragstore.models.Node import ContentType
from ragstore.models.Search import SimilarResult
from ragstore.models.TextEmbedded import TextEmbedded, TextSourceType
from ragstore.models.sources import SourceData, SourceInputData, SourceType

VECTOR_COLUMN = "vector"
DISTANCE_COLUMN = "_distance"

# column kinds
UUID_COL = "uuid"
STRING_COL = "string"
ENUM_COL = "enum"
INT_COL = "int32"
FLOAT_COL = "float64"
TIMESTAMP_COL = "timestamp"
VECTOR_COL = "vector"

_TIMESTAMP_TYPE = pa.timestamp("ms", tz="UTC")


class Column(NamedTuple):
    """One physical column. `attr` is the entity attribute when it differs from the column name."""

    name: str
    kind: str
    nullable: bool = False
    enum: type[Enum] | None = None
    attr: str | None = None

    @property
    def field(self) -> str:
        return self.attr or self.name


_COLUMNS: dict[SourceType, list[Column]] = {
    SourceType.STORE_METADATA: [
        Column("id", UUID_COL),
        Column("name", STRING_COL),
        Column("created_at", TIMESTAMP_COL),
        Column("model_id", UUID_COL, nullable=True),
        Column("uri", STRING_COL),
    ],
    SourceType.MODEL_METADATA: [
        Column("id", UUID_COL),
        Column("name", STRING_COL),
        Column("author", STRING_COL),
        Column("description", STRING_COL, nullable=True),
        Column("url", STRING_COL),
        Column("accessed_at", TIMESTAMP_COL),
        Column("dimensions", INT_COL),
        Column("max_input", INT_COL),
        Column("pricing_per_1k_tokens", FLOAT_COL),
        Column("pricing_update_at", TIMESTAMP_COL),
    ],
    SourceType.INDEX_METADATA: [
        Column("id", UUID_COL),
        Column("name", STRING_COL),
        Column("description", STRING_COL, nullable=True),
        Column("document_count", INT_COL),
        Column("created_at", TIMESTAMP_COL),
        Column("updated_at", TIMESTAMP_COL),
    ],
    SourceType.TEXT_EMBEDDED: [
        Column("id", UUID_COL),
        Column("index_id", UUID_COL, nullable=True),
        Column("text", STRING_COL, nullable=True),
        Column("hash", STRING_COL),
        Column("embedding_model", STRING_COL),
        Column("created_at", TIMESTAMP_COL),
        Column(VECTOR_COLUMN, VECTOR_COL, attr="embeddings"),
        Column("embedded_at", TIMESTAMP_COL),
        Column("used_at", TIMESTAMP_COL),
        Column("source_type", ENUM_COL, enum=TextSourceType),
        Column("source_id", UUID_COL, nullable=True),
    ],
    SourceType.DOCUMENT: [
        Column("id", UUID_COL),
        Column("index_id", UUID_COL),
        Column("name", STRING_COL),
        Column("document_type", ENUM_COL, enum=DocumentType),
        Column("raw_content", STRING_COL, nullable=True),
        Column("source_type", ENUM_COL, enum=DocumentSourceType),
        Column("source_uri", STRING_COL),
        Column("summary_text_id", UUID_COL, nullable=True),
    ],
    SourceType.SECTION: [
        Column("id", UUID_COL),
        Column("index_id", UUID_COL),
        Column("document_id", UUID_COL),
        Column("name", STRING_COL),
        Column("section_order", INT_COL),
        Column("section_level", INT_COL),
        Column("content", STRING_COL, nullable=True),
        Column("start_char_index", INT_COL, nullable=True),
        Column("end_char_index", INT_COL, nullable=True),
        Column("summary_text_id", UUID_COL, nullable=True),
    ],
    SourceType.NODE: [
        Column("id", UUID_COL),
        Column("index_id", UUID_COL),
        Column("document_id", UUID_COL),
        Column("section_id", UUID_COL),
        Column("content", STRING_COL),
        Column("content_embeddings_id", UUID_COL, nullable=True),
        Column("content_embedded_at", TIMESTAMP_COL, nullable=True),
        Column("content_type", ENUM_COL, enum=ContentType),
        Column("tokens", INT_COL),
        Column("index", INT_COL),
        Column("start_char_index", INT_COL),
        Column("end_char_index", INT_COL),
    ],
}


##########################################
################ SCHEMA ##################
##########################################

def get_columns(kind: SourceType) -> list[Column]:
    return _COLUMNS[kind]


def _arrow_type(column: Column, dimension: int) -> pa.DataType:
    if column.kind in (UUID_COL, STRING_COL, ENUM_COL):
        return pa.utf8()
    if column.kind == INT_COL:
        return pa.int32()
    if column.kind == FLOAT_COL:
        return pa.float64()
    if column.kind == TIMESTAMP_COL:
        return _TIMESTAMP_TYPE
    if column.kind == VECTOR_COL:
        return pa.list_(pa.float32(), dimension)
    raise ValueError(f"Unknown column kind '{column.kind}'")


def get_schema(kind: SourceType, dimension: int) -> pa.Schema:
    """Arrow schema of the table holding rows of `kind`, with vectors sized to `dimension`."""
    return pa.schema([
        pa.field(column.name, _arrow_type(column, dimension), nullable=column.nullable)
        for column in get_columns(kind)
    ])


def get_all_schema(dimension: int) -> dict[str, pa.Schema]:
    """Schemas of every table of a store, keyed by table name."""
    return {kind.table_name(): get_schema(kind, dimension) for kind in SourceType}


##########################################
################ ENCODE ##################
##########################################

def _encode_value(column: Column, value: Any, dimension: int, row_id: Any) -> Any:
    if value is None:
        return None
    if column.kind == UUID_COL:
        return str(value)
    if column.kind == ENUM_COL:
        return value.value if isinstance(value, Enum) else str(value)
    if column.kind == TIMESTAMP_COL:
        return to_epoch_ms(value)
    if column.kind == VECTOR_COL:
        if len(value) != dimension:
            raise DimensionMismatchError(
                f"Vector of row {row_id} has length {len(value)}, store dimension is {dimension}",
                expected=dimension,
                actual=len(value),
            )
        return [float(v) for v in value]
    return value


def encode_sources(data: SourceData, dimension: int) -> pa.Table:
    """Encode the rows of a SourceData into a pyarrow table matching get_schema(kind, dimension).

    Raises:
        DimensionMismatchError: If a vector's length differs from `dimension`.
    """
    kind = data.kind()
    schema = get_schema(kind, dimension)
    items = data.items()
    arrays = []
    for column in get_columns(kind):
        values = [
            _encode_value(column, getattr(item, column.field), dimension, item.id)
            for item in items
        ]
        arrays.append(pa.array(values, type=schema.field(column.name).type))
    return pa.Table.from_arrays(arrays, schema=schema)


##########################################
################ DECODE ##################
##########################################

def _type_matches(column: Column, arrow_type: pa.DataType) -> bool:
    if column.kind in (UUID_COL, STRING_COL, ENUM_COL):
        return pa.types.is_string(arrow_type) or pa.types.is_large_string(arrow_type)
    if column.kind == INT_COL:
        return pa.types.is_integer(arrow_type)
    if column.kind == FLOAT_COL:
        return pa.types.is_floating(arrow_type)
    if column.kind == TIMESTAMP_COL:
        return pa.types.is_timestamp(arrow_type) or pa.types.is_date64(arrow_type) or pa.types.is_int64(arrow_type)
    if column.kind == VECTOR_COL:
        return pa.types.is_fixed_size_list(arrow_type) or pa.types.is_list(arrow_type) or pa.types.is_large_list(arrow_type)
    return False


def _read_column(batch: pa.RecordBatch, column: Column, kind: SourceType) -> list:
    index = batch.schema.get_field_index(column.name)
    if index < 0:
        if column.nullable:
            return [None] * batch.num_rows
        raise StoreCorruptionError(f"Required column '{column.name}' is missing from table '{kind.table_name()}'")
    array = batch.column(index)
    if not _type_matches(column, array.type):
        raise StoreCorruptionError(
            f"Column '{column.name}' of table '{kind.table_name()}' has type {array.type}, expected {column.kind}"
        )
    if column.kind == TIMESTAMP_COL:
        array = array.cast(pa.int64())
    return array.to_pylist()


def _decode_value(column: Column, value: Any, kind: SourceType, dimension: int) -> Any:
    if value is None:
        if column.nullable:
            return None
        raise StoreCorruptionError(f"Required column '{column.name}' of table '{kind.table_name()}' holds a null")
    try:
        if column.kind == UUID_COL:
            return UUID(value)
        if column.kind == ENUM_COL:
            return column.enum(value)
        if column.kind == TIMESTAMP_COL:
            return from_epoch_ms(value)
    except ValueError as e:
        raise StoreCorruptionError(f"Cannot decode column '{column.name}' of table '{kind.table_name()}': {e}") from e
    if column.kind == VECTOR_COL and len(value) != dimension:
        raise StoreCorruptionError(
            f"Vector in table '{kind.table_name()}' has length {len(value)}, store dimension is {dimension}"
        )
    return value


def _decode_rows(batch: pa.RecordBatch, kind: SourceType, dimension: int) -> list[dict]:
    columns = get_columns(kind)
    values = {column.field: _read_column(batch, column, kind) for column in columns}
    rows = []
    for row in range(batch.num_rows):
        rows.append({
            column.field: _decode_value(column, values[column.field][row], kind, dimension)
            for column in columns
        })
    return rows


def _build_entity(kind: SourceType, row: dict) -> Any:
    try:
        return kind.entity_class()(**row)
    except ValidationError as e:
        raise StoreCorruptionError(f"Row of table '{kind.table_name()}' is not a valid {kind.value}: {e}") from e


def decode_sources(data: SourceInputData[pa.RecordBatch], dimension: int) -> SourceData:
    """Decode record batches into entities. Relations (Node.content_embeddings,
    StoreMetadata.model) are left unresolved.

    Raises:
        StoreCorruptionError: If a required column is missing, mistyped, null or unparsable.
    """
    kind = data.kind()
    items = []
    for batch in data.batches():
        items.extend(_build_entity(kind, row) for row in _decode_rows(batch, kind, dimension))
    return SourceData(kind, items)


def decode_text_embedded_search_result(
    data: SourceInputData[pa.RecordBatch], dimension: int
) -> list[SimilarResult[TextEmbedded]]:
    """Decode nearest-neighbour hits on the text_embedded table, best first.

    The absolute value of the backend's "_distance" column becomes the hit's
    distance; rows without a distance get 0.
    """
    batches = data.get_batches(SourceType.TEXT_EMBEDDED)
    if batches is None:
        raise StoreCorruptionError(f"Search results must come from text_embedded, got {data.kind().value}")
    results: list[SimilarResult[TextEmbedded]] = []
    for batch in batches:
        index = batch.schema.get_field_index(DISTANCE_COLUMN)
        distances = batch.column(index).to_pylist() if index >= 0 else [None] * batch.num_rows
        for row, distance in zip(_decode_rows(batch, SourceType.TEXT_EMBEDDED, dimension), distances):
            text_embedded = _build_entity(SourceType.TEXT_EMBEDDED, row)
            results.append(SimilarResult[TextEmbedded](
                distance=abs(float(distance)) if distance is not None else 0.0,
                data=text_embedded,
                data_id=text_embedded.id,
            ))
    return results


def input_from_table(table: pa.Table, kind: SourceType) -> SourceInputData[pa.RecordBatch]:
    """Wrap a query result table as undecoded input of `kind`."""
    return SourceInputData.from_data(table.to_batches(), kind)
