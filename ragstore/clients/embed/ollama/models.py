"""Embedding models served by Ollama whose metadata is known up front."""

from ragstore.models.ModelMetadata import EmbeddingModelMetadata

NOMIC_EMBED_TEXT_MODEL_NAME = "nomic-embed-text"
NOMIC_AUTHOR = "Nomic AI"
NOMIC_EMBED_TEXT_WEBPAGE = "https://huggingface.co/nomic-ai/nomic-embed-text-v1.5"
# matryoshka dimensions, selectable through EMBED_MODEL_DIMENSIONS
NOMIC_EMBED_TEXT_DIMENSIONS = (64, 128, 256, 512, 768)

ALL_MINILM_MODEL_NAME = "all-minilm"
ALL_MINILM_AUTHORS = "Sentence Transformers"
ALL_MINILM_WEBPAGE = "https://huggingface.co/sentence-transformers/all-MiniLM-L6-v2"


def get_ollama_model_catalog() -> dict[str, EmbeddingModelMetadata]:
    return {
        NOMIC_EMBED_TEXT_MODEL_NAME: EmbeddingModelMetadata(
            name=NOMIC_EMBED_TEXT_MODEL_NAME,
            author=NOMIC_AUTHOR,
            url=NOMIC_EMBED_TEXT_WEBPAGE,
            dimensions=max(NOMIC_EMBED_TEXT_DIMENSIONS),
            max_input=8192,
            pricing_per_1k_tokens=0.0,
        ),
        ALL_MINILM_MODEL_NAME: EmbeddingModelMetadata(
            name=ALL_MINILM_MODEL_NAME,
            author=ALL_MINILM_AUTHORS,
            url=ALL_MINILM_WEBPAGE,
            dimensions=384,
            max_input=256,
            pricing_per_1k_tokens=0.0,
        ),
    }
