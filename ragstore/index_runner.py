"""Embedding backfill entry point.

Opens (or creates) the configured store and index and embeds every node
that has no embedding yet.

Usage:
    python -m ragstore.index_runner
"""

import asyncio

from ragstore.clients.embed.EmbedClientManager import EmbedClientManager
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.logging.logging_setup import setup_logging
from ragstore.models.sources import SourceType
from ragstore.stores.StoreManager import StoreManager


async def main() -> None:
    """Run one embedding backfill over STORE_INDEX."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    embed_client = EmbedClientManager(helper_config=config).get_client()
    store_manager = StoreManager(helper_config=config)
    index_name = config.get_string_val("STORE_INDEX")

    store = None
    try:
        await embed_client.boot()
        await embed_client.do_healthcheck()

        store = await store_manager.do_open_or_create(embed_client)
        if not await store.check_health():
            logger.error("Store %s is not healthy, aborting", store.get_store_uri())
            return
        index = await store.index_open_or_create(index_name)

        embedded = await index.embed_nodes()
        logger.info("Embedded %d nodes in index %s", embedded, index_name, color="green")
        for kind in (SourceType.DOCUMENT, SourceType.SECTION, SourceType.NODE, SourceType.TEXT_EMBEDDED):
            logger.info("%s rows: %d", kind.value, await index.count_records(kind))
    finally:
        await embed_client.close()
        if store is not None:
            await store.close()


if __name__ == "__main__":
    asyncio.run(main())
