from pathlib import Path

from ragstore.clients.embed.EmbedClientInterface import EmbedClientInterface
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.stores.StoreInterface import StoreInterface


class StoreManager:
    """
    Resolves the store class selected by STORE_ENGINE and opens or creates the configured store.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.engine = self._get_engine_from_env()
        self.store_class = self._initialize_store_class()

    def _get_engine_from_env(self) -> str:
        """
        Reads the store engine from STORE_ENGINE, normalised to e.g. "Lancedb".

        Raises:
            ValueError: If STORE_ENGINE is not set.
        """
        engine = self.helper_config.get_string_val("STORE_ENGINE")
        return engine.strip().lower().capitalize()

    def _initialize_store_class(self) -> type[StoreInterface]:
        """
        Imports ragstore.stores.{engine}.Store{Engine}.

        Raises:
            ValueError: If the engine is unsupported.
        """
        class_name = f"Store{self.engine}"
        try:
            module = __import__(
                f"ragstore.stores.{self.engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            store_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported Store engine specified: '{self.engine}'. Error: {e}")
        self.logging.debug("Resolved store class for engine: %s", self.engine)
        return store_class

    def get_store_class(self) -> type[StoreInterface]:
        return self.store_class

    def get_store_location(self) -> tuple[str, str]:
        """
        Returns:
            tuple[str, str]: (store name, parent folder) from STORE_NAME and STORE_{ENGINE}_FOLDER.
        """
        name = self.helper_config.get_string_val("STORE_NAME")
        folder = self.helper_config.get_string_val(f"STORE_{self.engine.upper()}_FOLDER")
        return name, folder

    async def do_open_or_create(self, embedder: EmbedClientInterface) -> StoreInterface:
        """Open the configured store, creating it first if it does not exist yet."""
        name, folder = self.get_store_location()
        uri = str(Path(folder) / name)
        if await self.store_class.exists(uri):
            return await self.store_class.open(self.helper_config, uri, embedder)
        self.logging.info("No store at %s, creating it", uri)
        return await self.store_class.create(self.helper_config, name, folder, embedder)
