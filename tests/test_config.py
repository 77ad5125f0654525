import asyncio
import logging
from datetime import datetime

import pytest
import pytz

from conftest import FakeEmbedClient
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.helper.timestamp import from_epoch_ms, now, to_epoch_ms
from ragstore.logging.logging_setup import ColorLogger, ColoredFormatter, CustomFormatter
from ragstore.stores.StoreManager import StoreManager
from ragstore.stores.lancedb.StoreLancedb import StoreLancedb


@pytest.fixture
def config():
    return HelperConfig(logger=logging.getLogger("ragstore.tests.config"))


def test_string_values(config, monkeypatch):
    monkeypatch.setenv("SOME_KEY", "  value ")
    monkeypatch.setenv("EMPTY_KEY", "")
    assert config.get_string_val("some_key") == "value"
    assert config.get_string_val("EMPTY_KEY", default="fallback") == "fallback"
    monkeypatch.delenv("MISSING_KEY", raising=False)
    with pytest.raises(ValueError):
        config.get_string_val("MISSING_KEY")


def test_number_and_bool_values(config, monkeypatch):
    monkeypatch.setenv("INT_KEY", "32")
    monkeypatch.setenv("FLOAT_KEY", "0.5")
    monkeypatch.setenv("BAD_NUMBER", "many")
    monkeypatch.setenv("FLAG", "Yes")
    assert config.get_number_val("INT_KEY") == 32
    assert isinstance(config.get_number_val("INT_KEY"), int)
    assert config.get_number_val("FLOAT_KEY") == 0.5
    with pytest.raises(ValueError):
        config.get_number_val("BAD_NUMBER")
    assert config.get_bool_val("FLAG") is True
    assert config.get_bool_val("UNSET_FLAG_FOR_TEST", default=False) is False


def test_list_values(config, monkeypatch):
    monkeypatch.setenv("LIST_KEY", "[1, 2,,3]")
    monkeypatch.setenv("BAD_LIST", "1,2")
    assert config.get_list_val("LIST_KEY", element_type=int) == [1, 2, 3]
    with pytest.raises(ValueError):
        config.get_list_val("BAD_LIST")


def test_timestamps_are_millisecond_utc():
    current = now()
    assert current.tzinfo is not None
    assert current.microsecond % 1000 == 0
    assert from_epoch_ms(to_epoch_ms(current)) == current

    assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=pytz.utc)) == 1500
    assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1)) == 1000
    assert from_epoch_ms(1500) == datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=pytz.utc)


def test_formatter_prefixes_and_colors():
    formatter = ColoredFormatter("UTC", fmt="%(levelname)s - %(message)s")
    warning = logging.LogRecord("t", logging.WARNING, __file__, 1, "disk at %d%%", (90,), None)
    assert formatter.format(warning) == "WARNING - ⚠️ disk at 90%"

    info = logging.LogRecord("t", logging.INFO, __file__, 1, "done", (), None)
    info.color = "green"
    assert formatter.format(info) == "\033[32mINFO - done\033[0m"

    plain = CustomFormatter("UTC", fmt="%(message)s")
    error = logging.LogRecord("t", logging.ERROR, __file__, 1, "failed", (), None)
    assert plain.format(error) == "⛔ failed"


def test_color_logger_passes_color(caplog):
    logger = ColorLogger(logging.getLogger("ragstore.tests.color"))
    with caplog.at_level(logging.INFO, logger="ragstore.tests.color"):
        logger.info("created %s", "index", color="green")
    assert caplog.records[0].getMessage() == "created index"
    assert caplog.records[0].color == "green"


def test_store_manager_opens_or_creates(tmp_path, monkeypatch, helper_config):
    monkeypatch.setenv("STORE_ENGINE", "lancedb")
    monkeypatch.setenv("STORE_NAME", "kb")
    monkeypatch.setenv("STORE_LANCEDB_FOLDER", str(tmp_path))
    manager = StoreManager(helper_config)
    assert manager.get_store_class() is StoreLancedb
    assert manager.get_store_location() == ("kb", str(tmp_path))

    async def scenario():
        embedder = FakeEmbedClient(helper_config)
        created = await manager.do_open_or_create(embedder)
        opened = await manager.do_open_or_create(embedder)
        return created, opened

    created, opened = asyncio.run(scenario())
    assert created.get_store_metadata().id == opened.get_store_metadata().id


def test_store_manager_rejects_unknown_engine(monkeypatch, config):
    monkeypatch.setenv("STORE_ENGINE", "qdrant")
    with pytest.raises(ValueError):
        StoreManager(config)
