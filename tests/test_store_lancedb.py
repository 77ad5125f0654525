import asyncio
from pathlib import Path

import pytest

from conftest import DIMENSION, FakeEmbedClient, char_vector, make_parsed_document
from ragstore.errors import (
    AlreadyExistsError,
    ConfigurationError,
    ContractViolationError,
    NotFoundError,
    ProviderServerError,
    StoreError,
)
from ragstore.models.Search import SearchOptions
from ragstore.models.TextEmbedded import TextEmbedded, TextInput, TextSourceType, hash_text
from ragstore.models.sources import SourceData, SourceType
from ragstore.stores.lancedb.StoreLancedb import StoreLancedb
from ragstore.stores.lancedb.backend import connect, create_table, list_tables
from ragstore.stores.lancedb.schema import get_schema


def test_create_and_reopen_store(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        assert store.get_dimension() == DIMENSION
        assert await store.check_health()
        uri = store.get_store_uri()
        await store.close()

        assert await StoreLancedb.exists(uri)
        reopened = await StoreLancedb.open(helper_config, uri, embedder)
        assert reopened.get_store_metadata().id == store.get_store_metadata().id
        assert reopened.get_model().name == "fake-embed"
        assert reopened.get_dimension() == DIMENSION
        assert await reopened.check_health()

    asyncio.run(scenario())
    assert (Path(tmp_path) / "kb").is_dir()


def test_create_twice_fails(tmp_path, helper_config, embedder):
    async def scenario():
        await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        with pytest.raises(AlreadyExistsError):
            await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)

    asyncio.run(scenario())


def test_open_missing_store(tmp_path, helper_config, embedder):
    async def scenario():
        assert not await StoreLancedb.exists(str(tmp_path / "nothing"))
        with pytest.raises(NotFoundError):
            await StoreLancedb.open(helper_config, str(tmp_path / "nothing"), embedder)

    asyncio.run(scenario())


def test_open_with_other_dimension_fails(tmp_path, monkeypatch, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        monkeypatch.setenv("EMBED_MODEL_DIMENSIONS", "8")
        small = FakeEmbedClient(helper_config)
        with pytest.raises(ConfigurationError):
            await StoreLancedb.open(helper_config, store.get_store_uri(), small)

    asyncio.run(scenario())


def test_index_lifecycle(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        assert await store.list_indices() == []

        first = await store.index_create("first", description="first index")
        await store.index_create("second")
        with pytest.raises(AlreadyExistsError):
            await store.index_create("first")

        assert sorted(i.name for i in await store.list_indices()) == ["first", "second"]
        assert await store.index_exists("second")
        opened = await store.index_open("first")
        assert opened.get_index_id() == first.get_index_id()
        assert opened.get_index_metadata().description == "first index"

        await store.index_remove("second")
        assert not await store.index_exists("second")
        assert [i.name for i in await store.list_indices()] == ["first"]
        with pytest.raises(NotFoundError):
            await store.index_open("second")
        with pytest.raises(NotFoundError):
            await store.index_remove("second")

        same = await store.index_open_or_create("first")
        assert same.get_index_id() == first.get_index_id()
        created = await store.index_open_or_create("third")
        assert await store.index_exists("third")
        assert created.get_index_name() == "third"

    asyncio.run(scenario())


def test_add_document_and_backfill(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        index = await store.index_create("docs")
        parsed = make_parsed_document(index.get_index_id(), ["test content", "中文例子"])

        await index.add_document([parsed])
        assert await index.count_records(SourceType.DOCUMENT) == 1
        assert await index.count_records(SourceType.SECTION) == 1
        assert await index.count_records(SourceType.NODE) == 2
        assert await index.count_records(SourceType.TEXT_EMBEDDED) == 0
        assert len(await index.get_unembedded_nodes()) == 2
        assert (await store.index_open("docs")).get_index_metadata().document_count == 1
        before = (await index.get_source_data_by_id(SourceType.NODE, parsed.nodes[0].id)).get_nodes()[0]
        assert before.content_embeddings_id is None
        assert before.content_embedded_at is None

        assert await index.embed_nodes() == 2
        assert await index.get_unembedded_nodes() == []
        assert await index.count_records(SourceType.TEXT_EMBEDDED) == 2
        assert await index.count_records(SourceType.NODE) == 2

        # nothing left to embed
        assert await index.embed_nodes() == 0
        assert await index.count_records(SourceType.TEXT_EMBEDDED) == 2
        assert len(embedder.calls) == 1

        first = parsed.nodes[0]
        node = (await index.get_source_data_with_relations_by_id(SourceType.NODE, first.id)).get_nodes()[0]
        assert node.content_embeddings is not None
        assert node.content_embeddings.id == node.content_embeddings_id
        assert node.content_embeddings.source_id == first.id
        assert node.content_embeddings.source_type == TextSourceType.NODE_CONTENT
        assert node.content_embeddings.text is None
        assert node.content_embeddings.hash == hash_text("test content")
        assert node.content_embeddings.embeddings == char_vector("test content")

        plain = (await index.get_source_data_by_id(SourceType.NODE, first.id)).get_nodes()[0]
        assert plain.content_embeddings is None
        assert plain.content_embeddings_id == node.content_embeddings_id

    asyncio.run(scenario())


def test_similar_sources_ranks_nodes(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        index = await store.index_create("docs")
        parsed = make_parsed_document(index.get_index_id(), ["test content", "中文例子"])
        await index.add_document([parsed])
        await index.embed_nodes()

        latin = (await index.similar_sources(TextInput.from_user_str("test"), SourceType.NODE)).get_nodes()
        assert [n.id for n in latin] == [parsed.nodes[0].id, parsed.nodes[1].id]

        chinese = await index.similar_sources(
            TextInput.from_user_str("中文"), SourceType.NODE, SearchOptions(top_k=1)
        )
        assert chinese.ids() == [parsed.nodes[1].id]

        hits = await index.similar_embedded_text(
            TextInput.from_user_str("test"), TextSourceType.NODE_CONTENT
        )
        assert hits[0].data.source_id == parsed.nodes[0].id
        assert hits[0].distance < hits[1].distance
        assert all(hit.distance >= 0 for hit in hits)

        # every query embedding is kept, with its text
        assert await index.count_records(SourceType.TEXT_EMBEDDED) == 5
        queries = await index.similar_embedded_text(TextInput.from_user_str("test"), TextSourceType.USER_QUERY)
        assert {hit.data.text for hit in queries} == {"test", "中文"}
        assert all(hit.data.source_id is None for hit in queries)

    asyncio.run(scenario())


def test_similar_sources_only_for_nodes(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        index = await store.index_create("docs")
        with pytest.raises(NotImplementedError):
            await index.similar_sources(TextInput.from_user_str("test"), SourceType.DOCUMENT)

    asyncio.run(scenario())


def test_node_content_hit_without_source(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        index = await store.index_create("docs")
        orphan = TextEmbedded(
            hash=hash_text("orphan"),
            embedding_model="fake-embed",
            embeddings=char_vector("orphan"),
            source_type=TextSourceType.NODE_CONTENT,
        )
        await index.add_text_embeddings([orphan])
        with pytest.raises(ContractViolationError):
            await index.similar_sources(TextInput.from_user_str("orphan"), SourceType.NODE)

    asyncio.run(scenario())


def test_fetch_by_ids_preserves_order(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        index = await store.index_create("docs")
        parsed = make_parsed_document(index.get_index_id(), ["alpha", "beta", "gamma"])
        await index.add_document([parsed])
        a, b, c = (node.id for node in parsed.nodes)

        ordered = await index.get_source_data_by_ids(SourceType.NODE, [c, a, c, b], preserve_order=True)
        assert ordered.ids() == [c, a, c, b]

        unordered = await index.get_source_data_by_ids(SourceType.NODE, [c, a])
        assert sorted(unordered.ids()) == sorted([c, a])
        assert len(await index.get_source_data_by_ids(SourceType.NODE, [])) == 0

    asyncio.run(scenario())


def test_delete_and_update(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        index = await store.index_create("docs")
        parsed = make_parsed_document(index.get_index_id(), ["test content", "中文例子"])
        await index.add_document([parsed])
        first, second = parsed.nodes

        await index.delete([first.id], SourceType.NODE)
        assert await index.count_records(SourceType.NODE) == 1
        remaining = await index.get_source_data_by_ids(SourceType.NODE, [first.id, second.id])
        assert remaining.ids() == [second.id]

        changed = second.model_copy(update={"content": "changed", "tokens": 9})
        await index.update(SourceData.nodes([changed]))
        fetched = (await index.get_source_data_by_id(SourceType.NODE, second.id)).get_nodes()
        assert len(fetched) == 1
        assert fetched[0].content == "changed"
        assert fetched[0].tokens == 9

    asyncio.run(scenario())


def test_embed_failure_writes_nothing(tmp_path, helper_config):
    async def scenario():
        failing = FakeEmbedClient(helper_config, fail_on="boom")
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), failing)
        index = await store.index_create("docs")
        await index.add_document([make_parsed_document(index.get_index_id(), ["fine", "boom"])])

        with pytest.raises(ProviderServerError):
            await index.embed_nodes()
        assert await index.count_records(SourceType.TEXT_EMBEDDED) == 0
        assert len(await index.get_unembedded_nodes()) == 2

    asyncio.run(scenario())


def test_embed_nodes_limited_to_documents(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        index = await store.index_create("docs")
        one = make_parsed_document(index.get_index_id(), ["one"], name="one.txt")
        two = make_parsed_document(index.get_index_id(), ["two", "three"], name="two.txt")
        await index.add_document([one, two])
        assert (await store.index_open("docs")).get_index_metadata().document_count == 2

        assert await index.embed_nodes([two.document.id]) == 2
        remaining = await index.get_unembedded_nodes()
        assert [n.id for n in remaining] == [one.nodes[0].id]

    asyncio.run(scenario())


def test_indices_are_isolated(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        left = await store.index_create("left")
        right = await store.index_create("right")
        await left.add_document([make_parsed_document(left.get_index_id(), ["test content"])])
        await right.add_document([make_parsed_document(right.get_index_id(), ["test content", "more"])])
        await left.embed_nodes()
        await right.embed_nodes()

        assert await store.index_count_records("left", SourceType.NODE) == 1
        assert await store.index_count_records("right", SourceType.NODE) == 2

        hits = await left.similar_sources(TextInput.from_user_str("test"), SourceType.NODE)
        assert all(node.index_id == left.get_index_id() for node in hits)
        assert len(hits) == 1

        await store.index_remove("right")
        assert await store.index_count_records("left", SourceType.NODE) == 1
        assert await left.count_records(SourceType.TEXT_EMBEDDED) == 2
        recreated = await store.index_create("right")
        assert await recreated.count_records(SourceType.NODE) == 0

    asyncio.run(scenario())


def test_create_in_unusable_folder(tmp_path, helper_config, embedder):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a folder")

    with pytest.raises(StoreError):
        asyncio.run(StoreLancedb.create(helper_config, "kb", str(blocker), embedder))


def test_document_count_across_handles(tmp_path, helper_config, embedder):
    async def scenario():
        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        first = await store.index_create("docs")
        second = await store.index_open("docs")
        await first.add_document([make_parsed_document(first.get_index_id(), ["one"], name="one.txt")])
        await second.add_document([make_parsed_document(second.get_index_id(), ["two"], name="two.txt")])

        reopened = await store.index_open("docs")
        assert reopened.get_index_metadata().document_count == 2
        assert await reopened.count_records(SourceType.DOCUMENT) == 2

    asyncio.run(scenario())


def test_create_over_interrupted_create(tmp_path, helper_config, embedder):
    uri = str(tmp_path / "kb")

    async def scenario():
        (tmp_path / "kb").mkdir()
        connection = await connect(uri)
        await create_table(connection, SourceType.STORE_METADATA.table_name(), get_schema(SourceType.STORE_METADATA, DIMENSION))

        assert not await StoreLancedb.exists(uri)
        with pytest.raises(NotFoundError):
            await StoreLancedb.open(helper_config, uri, embedder)

        store = await StoreLancedb.create(helper_config, "kb", str(tmp_path), embedder)
        assert await store.check_health()
        assert await StoreLancedb.exists(uri)
        assert set(await list_tables(connection)) == {kind.table_name() for kind in SourceType}

    asyncio.run(scenario())
