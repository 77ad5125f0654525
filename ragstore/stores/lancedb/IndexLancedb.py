from uuid import UUID

from lancedb.db import AsyncConnection
from lancedb.table import AsyncTable

from ragstore.clients.embed.EmbedClientInterface import EmbedClientInterface
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.models.IndexMetadata import IndexMetadata
from ragstore.models.Node import Node
from ragstore.models.Search import SimilarResult
from ragstore.models.StoreMetadata import StoreMetadata
from ragstore.models.TextEmbedded import TextEmbedded, TextSourceType
from ragstore.models.sources import SourceData, SourceType
from ragstore.stores.IndexInterface import IndexInterface
from ragstore.stores.lancedb.backend import (
    and_predicates,
    backend_errors,
    count_rows,
    delete_rows,
    fetch_sources,
    id_predicate,
    insert_sources,
    open_table,
    sql_literal,
)
from ragstore.stores.lancedb.schema import (
    VECTOR_COLUMN,
    decode_text_embedded_search_result,
    input_from_table,
)

DISTANCE_METRIC = "cosine"


class IndexLancedb(IndexInterface):
    """Index whose rows live in the shared tables of a lancedb store, tagged by index_id."""

    def __init__(
        self,
        helper_config: HelperConfig,
        connection: AsyncConnection,
        index_metadata: IndexMetadata,
        store_metadata: StoreMetadata,
        embedder: EmbedClientInterface | None = None,
    ):
        super().__init__(helper_config, index_metadata, store_metadata, embedder)
        self._connection = connection

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _scope(self, kind: SourceType, predicate: str | None = None) -> str | None:
        """Restrict a predicate to this index for index scoped kinds."""
        if kind.is_index_scoped():
            return and_predicates(f"index_id = {sql_literal(self.get_index_id())}", predicate)
        return predicate

    async def open_source_table(self, kind: SourceType) -> AsyncTable:
        return await open_table(self._connection, kind)

    ##########################################
    ############### PRIMITIVES ###############
    ##########################################

    async def _do_insert(self, data: SourceData) -> None:
        await insert_sources(self._connection, data, self.get_dimension())

    async def _do_delete(self, ids: list[UUID], kind: SourceType) -> None:
        await delete_rows(self._connection, kind, self._scope(kind, id_predicate(ids)))

    async def _do_fetch_by_ids(self, kind: SourceType, ids: list[UUID]) -> SourceData:
        return await fetch_sources(
            self._connection, kind, self.get_dimension(), where=self._scope(kind, id_predicate(ids))
        )

    async def _do_vector_search(
        self, vector: list[float], text_source_type: TextSourceType, top_k: int
    ) -> list[SimilarResult[TextEmbedded]]:
        table = await self.open_source_table(SourceType.TEXT_EMBEDDED)
        where = self._scope(SourceType.TEXT_EMBEDDED, f"source_type = {sql_literal(text_source_type.value)}")
        with backend_errors(f"Vector search on index {self.get_index_name()}"):
            result = await (
                table.query()
                .nearest_to(vector)
                .column(VECTOR_COLUMN)
                .distance_type(DISTANCE_METRIC)
                .where(where)
                .limit(top_k)
                .to_arrow()
            )
        return decode_text_embedded_search_result(
            input_from_table(result, SourceType.TEXT_EMBEDDED), self.get_dimension()
        )

    async def get_unembedded_nodes(self, document_ids: list[UUID] | None = None) -> list[Node]:
        predicate = "content_embeddings_id IS NULL"
        if document_ids:
            predicate = and_predicates(predicate, id_predicate(document_ids, column="document_id"))
        data = await fetch_sources(
            self._connection, SourceType.NODE, self.get_dimension(), where=self._scope(SourceType.NODE, predicate)
        )
        return data.get_nodes()

    async def count_records(self, kind: SourceType) -> int:
        return await count_rows(self._connection, kind, self._scope(kind))
