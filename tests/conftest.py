import logging

import pytest

from ragstore.clients.embed.EmbedClientInterface import EmbedClientInterface
from ragstore.errors import ProviderServerError
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.logging.logging_setup import ColorLogger
from ragstore.models.Document import Document
from ragstore.models.ModelMetadata import EmbeddingModelMetadata
from ragstore.models.Node import Node
from ragstore.models.ParsedDocument import ParsedDocument
from ragstore.models.Section import Section
from ragstore.models.config import EnvConfig

DIMENSION = 1536


def char_vector(text: str, dimension: int = DIMENSION) -> list[float]:
    """Bag of characters: texts sharing no characters are orthogonal."""
    vector = [0.0] * dimension
    for char in text:
        if not char.isspace():
            vector[ord(char) % dimension] += 1.0
    if not any(vector):
        vector[0] = 1.0
    return vector


class FakeEmbedClient(EmbedClientInterface):
    """Deterministic embedder: no HTTP, vectors from char_vector()."""

    def __init__(self, helper_config: HelperConfig, fail_on: str | None = None):
        super().__init__(helper_config=helper_config)
        self.fail_on = fail_on
        self.calls: list[list[str]] = []

    def _get_engine_name(self) -> str:
        return "Fake"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    def _get_model_catalog(self) -> dict[str, EmbeddingModelMetadata]:
        return {}

    def _get_auth_header(self) -> dict:
        return {}

    def _get_base_url(self) -> str:
        return "http://fake.embed"

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def get_endpoint_embedding(self) -> str:
        return "/embed"

    def get_endpoint_model_details(self) -> str:
        return "/show"

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"input": texts}

    def extract_vector_size_from_model_info(self, model_info: dict) -> int:
        return self.embed_dimensions

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        return response_data["embeddings"]

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        texts = [texts] if isinstance(texts, str) else texts
        self.calls.append(list(texts))
        if self.fail_on and any(self.fail_on in text for text in texts):
            raise ProviderServerError("fake embedder failed", provider="fake", status_code=500)
        return [char_vector(text, self.embed_dimensions) for text in texts]


@pytest.fixture
def helper_config(monkeypatch):
    monkeypatch.setenv("EMBED_MODEL", "fake-embed")
    monkeypatch.setenv("EMBED_MODEL_DIMENSIONS", str(DIMENSION))
    for key in ("EMBED_BATCH_SIZE", "EMBED_MODEL_MAX_CHARS", "EMBED_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)
    return HelperConfig(logger=ColorLogger(logging.getLogger("ragstore.tests")))


@pytest.fixture
def embedder(helper_config):
    return FakeEmbedClient(helper_config)


def make_parsed_document(index_id, contents: list[str], name: str = "doc.txt") -> ParsedDocument:
    """One document with one section holding a node per content string."""
    document = Document(name=name, index_id=index_id, source_uri=f"/tmp/{name}")
    section = Section(index_id=index_id, document_id=document.id, name="page 1", content=" ".join(contents))
    nodes = []
    offset = 0
    for position, content in enumerate(contents):
        nodes.append(Node(
            index_id=index_id,
            document_id=document.id,
            section_id=section.id,
            content=content,
            tokens=len(content.split()),
            index=position,
            start_char_index=offset,
            end_char_index=offset + len(content),
        ))
        offset += len(content) + 1
    return ParsedDocument.build(document, [section], nodes)
