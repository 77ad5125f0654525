import os
from pathlib import Path

from lancedb.db import AsyncConnection

from ragstore.clients.embed.EmbedClientInterface import EmbedClientInterface
from ragstore.errors import AlreadyExistsError, NotFoundError, StoreCorruptionError, StoreError
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.models.IndexMetadata import IndexMetadata
from ragstore.models.StoreMetadata import StoreMetadata
from ragstore.models.sources import SourceData, SourceType
from ragstore.stores.StoreInterface import StoreInterface
from ragstore.stores.lancedb.IndexLancedb import IndexLancedb
from ragstore.stores.lancedb.backend import (
    connect,
    count_rows,
    create_table,
    delete_rows,
    fetch_sources,
    id_predicate,
    insert_sources,
    list_tables,
    sql_literal,
)
from ragstore.stores.lancedb.schema import get_all_schema

# metadata tables hold no vectors, any width decodes them
_METADATA_DIMENSION = 0

_REMOVAL_ORDER = (SourceType.TEXT_EMBEDDED, SourceType.NODE, SourceType.SECTION, SourceType.DOCUMENT)


class StoreLancedb(StoreInterface):
    """Store backed by a local lancedb directory. One table per entity kind, shared by all indices."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_metadata: StoreMetadata,
        embedder: EmbedClientInterface,
        connection: AsyncConnection,
    ):
        super().__init__(helper_config, store_metadata, embedder)
        self._connection = connection

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @classmethod
    async def exists(cls, uri: str) -> bool:
        """A store exists once its store metadata row is written, which create() does last."""
        if not os.path.isdir(uri):
            return False
        connection = await connect(uri)
        if SourceType.STORE_METADATA.table_name() not in await list_tables(connection):
            return False
        return await count_rows(connection, SourceType.STORE_METADATA) > 0

    @classmethod
    async def create(cls, helper_config: HelperConfig, name: str, folder: str, embedder: EmbedClientInterface) -> "StoreLancedb":
        logger = helper_config.get_logger()
        model = await embedder.do_load_model_metadata()
        uri = str(Path(folder) / name)
        if await cls.exists(uri):
            raise AlreadyExistsError(f"Store already exists at {uri}")
        try:
            os.makedirs(uri, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create store folder {uri}: {e}") from e

        store_metadata = StoreMetadata(name=name, uri=uri, model=model, model_id=model.id)
        connection = await connect(uri)
        # leftovers of an interrupted create hold no store row and are replaced
        for table_name, schema in get_all_schema(model.dimensions).items():
            await create_table(connection, table_name, schema, overwrite=True)
            logger.debug("Created table %s in store %s", table_name, name)
        await insert_sources(connection, SourceData.model_metadata([model]), model.dimensions)
        await insert_sources(connection, SourceData.store_metadata([store_metadata]), model.dimensions)
        logger.info("Created store %s at %s bound to %s (%d dimensions)", name, uri, model.name, model.dimensions)
        return cls(helper_config, store_metadata, embedder, connection)

    @classmethod
    async def open(cls, helper_config: HelperConfig, uri: str, embedder: EmbedClientInterface) -> "StoreLancedb":
        logger = helper_config.get_logger()
        if not await cls.exists(uri):
            raise NotFoundError(f"No store found at {uri}")
        connection = await connect(uri)
        stores = (await fetch_sources(connection, SourceType.STORE_METADATA, _METADATA_DIMENSION)).get_store_metadata()
        if not stores:
            raise StoreCorruptionError(f"Store at {uri} has no store metadata row")
        store_metadata = stores[0]
        if store_metadata.model_id is not None:
            models = (await fetch_sources(
                connection, SourceType.MODEL_METADATA, _METADATA_DIMENSION,
                where=id_predicate([store_metadata.model_id]),
            )).get_model_metadata()
            if models:
                store_metadata.model = models[0]
        if store_metadata.model is None:
            raise StoreCorruptionError(f"Store at {uri} has no bound embedding model row")

        embedder_model = await embedder.do_load_model_metadata()
        cls.validate_embedder(store_metadata.model, embedder_model)
        if embedder_model.name != store_metadata.model.name:
            logger.warning(
                "Store %s was created with model %s, opened with %s",
                store_metadata.name, store_metadata.model.name, embedder_model.name,
            )
        logger.info("Opened store %s at %s", store_metadata.name, uri)
        return cls(helper_config, store_metadata, embedder, connection)

    async def close(self) -> None:
        self._connection = None

    def _get_connection(self) -> AsyncConnection:
        if self._connection is None:
            raise StoreError(f"Store {self._store_metadata.name} is closed")
        return self._connection

    ##########################################
    ################ INDICES #################
    ##########################################

    async def _find_index(self, name: str) -> IndexMetadata | None:
        found = (await fetch_sources(
            self._get_connection(), SourceType.INDEX_METADATA, self.get_dimension(),
            where=f"name = {sql_literal(name)}",
        )).get_index_metadata()
        return found[0] if found else None

    def _make_index(self, index_metadata: IndexMetadata) -> IndexLancedb:
        return IndexLancedb(
            self._helper_config, self._get_connection(), index_metadata, self._store_metadata, self._embedder
        )

    async def index_exists(self, name: str) -> bool:
        return await self._find_index(name) is not None

    async def index_open(self, name: str) -> IndexLancedb:
        index_metadata = await self._find_index(name)
        if index_metadata is None:
            raise NotFoundError(f"Index '{name}' does not exist in store {self._store_metadata.name}")
        return self._make_index(index_metadata)

    async def index_create(self, name: str, description: str | None = None) -> IndexLancedb:
        if await self.index_exists(name):
            raise AlreadyExistsError(f"Index '{name}' already exists in store {self._store_metadata.name}")
        index_metadata = IndexMetadata(name=name, description=description)
        await insert_sources(self._get_connection(), SourceData.index_metadata([index_metadata]), self.get_dimension())
        self.logging.info("Created index %s in store %s", name, self._store_metadata.name)
        return self._make_index(index_metadata)

    async def list_indices(self) -> list[IndexMetadata]:
        indices = (await fetch_sources(
            self._get_connection(), SourceType.INDEX_METADATA, self.get_dimension()
        )).get_index_metadata()
        return sorted(indices, key=lambda index: index.created_at)

    async def index_remove(self, name: str) -> None:
        index_metadata = await self._find_index(name)
        if index_metadata is None:
            raise NotFoundError(f"Index '{name}' does not exist in store {self._store_metadata.name}")
        connection = self._get_connection()
        # children first, the metadata row last
        for kind in _REMOVAL_ORDER:
            await delete_rows(connection, kind, f"index_id = {sql_literal(index_metadata.id)}")
        await delete_rows(connection, SourceType.INDEX_METADATA, id_predicate([index_metadata.id]))
        self.logging.info("Removed index %s from store %s", name, self._store_metadata.name)

    ##########################################
    ################ HEALTH ##################
    ##########################################

    async def check_health(self) -> bool:
        stores = (await fetch_sources(
            self._get_connection(), SourceType.STORE_METADATA, self.get_dimension(),
            where=id_predicate([self._store_metadata.id]),
        )).get_store_metadata()
        healthy = bool(stores) and stores[0].name == self._store_metadata.name
        if not healthy:
            self.logging.warning("Store %s failed its metadata read-back", self._store_metadata.name)
        return healthy
