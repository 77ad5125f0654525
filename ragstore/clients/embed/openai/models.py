"""OpenAI embedding models. Pricing in USD per 1k input tokens."""

from ragstore.models.ModelMetadata import EmbeddingModelMetadata

OPENAI_AUTHOR = "OpenAI"
OPENAI_EMBEDDINGS_WEBPAGE = "https://platform.openai.com/docs/guides/embeddings"
OPENAI_EMBEDDING_MAX_INPUT = 8191

TEXT_EMBEDDING_3_SMALL = "text-embedding-3-small"
TEXT_EMBEDDING_3_LARGE = "text-embedding-3-large"
TEXT_EMBEDDING_ADA_002 = "text-embedding-ada-002"

# models accepting the "dimensions" request parameter
SHORTENABLE_MODELS = (TEXT_EMBEDDING_3_SMALL, TEXT_EMBEDDING_3_LARGE)


def _openai_model(name: str, dimensions: int, pricing: float) -> EmbeddingModelMetadata:
    return EmbeddingModelMetadata(
        name=name,
        author=OPENAI_AUTHOR,
        url=OPENAI_EMBEDDINGS_WEBPAGE,
        dimensions=dimensions,
        max_input=OPENAI_EMBEDDING_MAX_INPUT,
        pricing_per_1k_tokens=pricing,
    )


def get_openai_model_catalog() -> dict[str, EmbeddingModelMetadata]:
    return {
        TEXT_EMBEDDING_3_SMALL: _openai_model(TEXT_EMBEDDING_3_SMALL, 1536, 0.00002),
        TEXT_EMBEDDING_3_LARGE: _openai_model(TEXT_EMBEDDING_3_LARGE, 3072, 0.00013),
        TEXT_EMBEDDING_ADA_002: _openai_model(TEXT_EMBEDDING_ADA_002, 1536, 0.0001),
    }
