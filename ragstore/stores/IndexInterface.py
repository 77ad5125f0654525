from abc import ABC, abstractmethod
from uuid import UUID

from ragstore.clients.embed.EmbedClientInterface import EmbedClientInterface
from ragstore.errors import ConfigurationError, ContractViolationError
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.helper.timestamp import now
from ragstore.models.IndexMetadata import IndexMetadata
from ragstore.models.ModelMetadata import EmbeddingModelMetadata
from ragstore.models.Node import Node
from ragstore.models.ParsedDocument import ParsedDocument
from ragstore.models.Search import SearchOptions, SimilarResult
from ragstore.models.StoreMetadata import StoreMetadata
from ragstore.models.TextEmbedded import TextEmbedded, TextEmbeddingOptions, TextInput, TextSourceType
from ragstore.models.sources import SourceData, SourceType


class IndexInterface(ABC):
    """A logical index: documents, sections, nodes and embedded texts tagged with one index id.

    The generic behaviour (insert order, update, similarity search, relation
    resolution, embedding backfill) lives here; a backend implements the
    row-level primitives.

    Multi-step operations (update, embed_nodes) are sequences of independent
    backend calls without a transaction. A failure between the steps can leave
    a row deleted and not yet re-inserted, or an embedding persisted without the
    node pointing at it; running embed_nodes again repairs the latter.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        index_metadata: IndexMetadata,
        store_metadata: StoreMetadata,
        embedder: EmbedClientInterface | None = None,
    ):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._index_metadata = index_metadata
        self._store_metadata = store_metadata
        self._embedder = embedder

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_index_name(self) -> str:
        return self._index_metadata.name

    def get_index_id(self) -> UUID:
        return self._index_metadata.id

    def get_index_metadata(self) -> IndexMetadata:
        return self._index_metadata.model_copy()

    def get_store_metadata(self) -> StoreMetadata:
        return self._store_metadata.model_copy()

    def get_model(self) -> EmbeddingModelMetadata:
        """
        Raises:
            ConfigurationError: If the store has no bound embedding model.
        """
        if self._store_metadata.model is None:
            raise ConfigurationError(f"Store '{self._store_metadata.name}' has no bound embedding model")
        return self._store_metadata.model

    def get_dimension(self) -> int:
        return self.get_model().dimensions

    def get_index_embedder(self) -> EmbedClientInterface:
        """
        Raises:
            ConfigurationError: If no embedder is bound to the index.
        """
        if self._embedder is None:
            raise ConfigurationError(f"Index '{self.get_index_name()}' has no embedder")
        return self._embedder

    ##########################################
    ############### PRIMITIVES ###############
    ##########################################

    @abstractmethod
    async def _do_insert(self, data: SourceData) -> None:
        """Append rows to the table of data.kind()."""
        pass

    @abstractmethod
    async def _do_delete(self, ids: list[UUID], kind: SourceType) -> None:
        """Delete the rows of `kind` whose id is in `ids`."""
        pass

    @abstractmethod
    async def _do_fetch_by_ids(self, kind: SourceType, ids: list[UUID]) -> SourceData:
        """Fetch the rows of `kind` whose id is in `ids` in one round trip, order unspecified."""
        pass

    @abstractmethod
    async def _do_vector_search(
        self, vector: list[float], text_source_type: TextSourceType, top_k: int
    ) -> list[SimilarResult[TextEmbedded]]:
        """Nearest embedded texts of the given source type by cosine distance, best first."""
        pass

    @abstractmethod
    async def get_unembedded_nodes(self, document_ids: list[UUID] | None = None) -> list[Node]:
        """Nodes of this index without an embedding reference, optionally limited to some documents."""
        pass

    @abstractmethod
    async def count_records(self, kind: SourceType) -> int:
        """Number of rows of `kind`; scoped to this index for documents, sections, nodes and embedded texts."""
        pass

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def add_source_data(self, data: SourceData) -> None:
        if len(data) == 0:
            return
        await self._do_insert(data)
        self.logging.debug("Added %d %s rows to index %s", len(data), data.kind().value, self.get_index_name())

    async def add_text_embeddings(self, texts: list[TextEmbedded]) -> None:
        """Persist embedded texts, tagging the ones without index id with this index."""
        scoped = [
            text if text.index_id is not None else text.model_copy(update={"index_id": self.get_index_id()})
            for text in texts
        ]
        await self.add_source_data(SourceData.text_embedded(scoped))

    async def add_document(self, parsed_documents: list[ParsedDocument]) -> None:
        """Insert every document with its sections and nodes, children first.

        Afterwards the stored index metadata is re-read and its document_count
        set to the number of documents the index holds.
        """
        for parsed in parsed_documents:
            await self.add_source_data(parsed.to_source_nodes())
            await self.add_source_data(parsed.to_source_sections())
            await self.add_source_data(parsed.to_source_document())
            self.logging.info(
                "Added document '%s' (%d sections, %d nodes) to index %s",
                parsed.document.name, len(parsed.sections), len(parsed.nodes), self.get_index_name(),
            )
        if parsed_documents:
            # other handles may have written the row since this one was opened
            stored = (await self._do_fetch_by_ids(SourceType.INDEX_METADATA, [self.get_index_id()])).get_index_metadata()
            current = stored[0] if stored else self._index_metadata
            self._index_metadata = current.model_copy(update={
                "document_count": await self.count_records(SourceType.DOCUMENT),
                "updated_at": now(),
            })
            await self.update(SourceData.index_metadata([self._index_metadata]))

    async def delete(self, ids: list[UUID], kind: SourceType) -> None:
        if not ids:
            return
        await self._do_delete(ids, kind)
        self.logging.debug("Deleted up to %d %s rows from index %s", len(ids), kind.value, self.get_index_name())

    async def update(self, data: SourceData) -> None:
        """Replace whole rows: delete by id, then insert. Not atomic."""
        await self.delete(data.ids(), data.kind())
        await self.add_source_data(data)

    ##########################################
    ################ SEARCH ##################
    ##########################################

    async def similar_embedded_text(
        self,
        text_input: TextInput,
        text_source_type: TextSourceType,
        options: SearchOptions | None = None,
    ) -> list[SimilarResult[TextEmbedded]]:
        """Embed the input, persist the embedding, and return the nearest embedded texts of the given source type.

        Every query embedding is kept in the text_embedded table (with its text)
        and never deleted by this layer.
        """
        options = options or SearchOptions()
        embedder = self.get_index_embedder()
        embedded = await embedder.embed_input(text_input, TextEmbeddingOptions(save_text=True))
        await self.add_text_embeddings([embedded])
        results = await self._do_vector_search(embedded.embeddings, text_source_type, options.top_k)
        self.logging.info(
            "Similarity search on index %s returned %d %s hits",
            self.get_index_name(), len(results), text_source_type.value,
        )
        return results

    async def similar_sources(
        self,
        text_input: TextInput,
        kind: SourceType,
        options: SearchOptions | None = None,
    ) -> SourceData:
        """Entities whose embedded content is closest to the input, best first.

        Only nodes are searchable.

        Raises:
            NotImplementedError: For any kind other than SourceType.NODE.
            ContractViolationError: If a node content hit has no source id.
        """
        if kind != SourceType.NODE:
            raise NotImplementedError(f"Similarity search over {kind.value} is not supported, only Node")
        hits = await self.similar_embedded_text(text_input, TextSourceType.NODE_CONTENT, options)
        node_ids = []
        for hit in hits:
            if hit.data.source_id is None:
                raise ContractViolationError(f"Embedded node content {hit.data_id} has no source id")
            node_ids.append(hit.data.source_id)
        return await self.get_source_data_by_ids(SourceType.NODE, node_ids, preserve_order=True)

    ##########################################
    ################# READS ##################
    ##########################################

    async def get_source_data_by_id(self, kind: SourceType, id: UUID) -> SourceData:
        """Scalar fetch: relations such as Node.content_embeddings stay unresolved."""
        return await self._do_fetch_by_ids(kind, [id])

    async def get_source_data_by_ids(self, kind: SourceType, ids: list[UUID], preserve_order: bool = False) -> SourceData:
        """Fetch several rows by id.

        With preserve_order the result follows `ids` exactly (duplicates repeated)
        at the cost of one query per id; otherwise one query, order unspecified.
        """
        if not ids:
            return SourceData(kind)
        if not preserve_order:
            return await self._do_fetch_by_ids(kind, ids)
        result = SourceData(kind)
        for id in ids:
            result.extend(await self.get_source_data_by_id(kind, id))
        return result

    async def get_source_data_with_relations_by_id(self, kind: SourceType, id: UUID) -> SourceData:
        """Fetch a row and, for nodes, merge the referenced embedded text into content_embeddings."""
        data = await self.get_source_data_by_id(kind, id)
        nodes = data.get_nodes()
        if not nodes:
            return data
        for node in nodes:
            if node.content_embeddings_id is None:
                continue
            texts = (await self.get_source_data_by_id(SourceType.TEXT_EMBEDDED, node.content_embeddings_id)).get_text_embedded()
            if texts:
                node.content_embeddings = texts[0]
        return SourceData.nodes(nodes)

    ##########################################
    ############### BACKFILL #################
    ##########################################

    async def embed_nodes(self, document_ids: list[UUID] | None = None) -> int:
        """Embed every node without an embedding reference and point the nodes at the new rows.

        Embeddings are persisted before the nodes are rewritten. A failing
        embedding call aborts the whole run before anything is written.

        Returns:
            int: Number of nodes embedded.
        """
        nodes = await self.get_unembedded_nodes(document_ids)
        if not nodes:
            self.logging.debug("No unembedded nodes in index %s", self.get_index_name())
            return 0
        embedder = self.get_index_embedder()
        self.logging.info("Embedding %d nodes of index %s", len(nodes), self.get_index_name())
        # node content is already stored on the node row
        embedded_nodes = await embedder.embed_nodes(nodes, TextEmbeddingOptions(save_text=False))
        texts = []
        for node in embedded_nodes:
            if node.content_embeddings is None:
                raise ContractViolationError(f"Embedder returned node {node.id} without embeddings")
            texts.append(node.content_embeddings)
        await self.add_text_embeddings(texts)
        await self.update(SourceData.nodes(embedded_nodes))
        self.logging.info("Embedded %d nodes of index %s", len(embedded_nodes), self.get_index_name())
        return len(embedded_nodes)
