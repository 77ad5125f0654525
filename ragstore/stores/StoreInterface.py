from abc import ABC, abstractmethod

from ragstore.clients.embed.EmbedClientInterface import EmbedClientInterface
from ragstore.errors import ConfigurationError
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.models.IndexMetadata import IndexMetadata
from ragstore.models.ModelMetadata import EmbeddingModelMetadata
from ragstore.models.StoreMetadata import StoreMetadata
from ragstore.models.sources import SourceType
from ragstore.stores.IndexInterface import IndexInterface


class StoreInterface(ABC):
    """A physical store: one location, one bound embedding model, many indices.

    Stores are built through the async classmethods create() and open(), never
    through the constructor directly.
    """

    def __init__(self, helper_config: HelperConfig, store_metadata: StoreMetadata, embedder: EmbedClientInterface):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._store_metadata = store_metadata
        self._embedder = embedder

    ##########################################
    ############### CHECKER ##################
    ##########################################

    @staticmethod
    def validate_embedder(model: EmbeddingModelMetadata, embedder_model: EmbeddingModelMetadata) -> None:
        """
        Raises:
            ConfigurationError: If the embedder produces vectors of another width than the store holds.
        """
        if model.dimensions != embedder_model.dimensions:
            raise ConfigurationError(
                f"Embedder '{embedder_model.name}' produces {embedder_model.dimensions} dimensions, "
                f"store model '{model.name}' uses {model.dimensions}"
            )

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_store_metadata(self) -> StoreMetadata:
        return self._store_metadata.model_copy()

    def get_store_uri(self) -> str:
        return self._store_metadata.uri

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

    def get_embedder(self) -> EmbedClientInterface:
        return self._embedder

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @classmethod
    @abstractmethod
    async def create(cls, helper_config: HelperConfig, name: str, folder: str, embedder: EmbedClientInterface) -> "StoreInterface":
        """
        Create a store at folder/name bound to the embedder's model, with every table materialized.

        Raises:
            AlreadyExistsError: If a store already exists at that location.
            StoreError: If the location cannot be created.
        """
        pass

    @classmethod
    @abstractmethod
    async def open(cls, helper_config: HelperConfig, uri: str, embedder: EmbedClientInterface) -> "StoreInterface":
        """
        Open an existing store and check the embedder against its bound model.

        Raises:
            NotFoundError: If no store exists at uri.
            ConfigurationError: If the embedder's dimension differs from the store's.
        """
        pass

    @classmethod
    @abstractmethod
    async def exists(cls, uri: str) -> bool:
        pass

    async def close(self) -> None:
        """Release the backend connection."""
        pass

    ##########################################
    ################ INDICES #################
    ##########################################

    @abstractmethod
    async def index_open(self, name: str) -> IndexInterface:
        """
        Raises:
            NotFoundError: If the index does not exist.
        """
        pass

    @abstractmethod
    async def index_create(self, name: str, description: str | None = None) -> IndexInterface:
        """
        Raises:
            AlreadyExistsError: If an index with that name exists.
        """
        pass

    @abstractmethod
    async def index_exists(self, name: str) -> bool:
        pass

    @abstractmethod
    async def list_indices(self) -> list[IndexMetadata]:
        pass

    @abstractmethod
    async def index_remove(self, name: str) -> None:
        """
        Remove the index's metadata and every row tagged with it.

        Raises:
            NotFoundError: If the index does not exist.
        """
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Whether the store metadata can be read back and matches this handle."""
        pass

    async def index_open_or_create(self, name: str, description: str | None = None) -> IndexInterface:
        if await self.index_exists(name):
            return await self.index_open(name)
        return await self.index_create(name, description)

    async def index_count_records(self, name: str, kind: SourceType) -> int:
        index = await self.index_open(name)
        return await index.count_records(kind)
