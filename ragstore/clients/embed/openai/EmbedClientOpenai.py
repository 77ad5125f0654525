from ragstore.clients.embed.EmbedClientInterface import EmbedClientInterface
from ragstore.clients.embed.openai.models import SHORTENABLE_MODELS, get_openai_model_catalog
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.models.ModelMetadata import EmbeddingModelMetadata
from ragstore.models.config import EnvConfig

# probe sent when the dimension has to be measured
_DIMENSION_PROBE = "dimension probe"


class EmbedClientOpenai(EmbedClientInterface):
    """Embedding client for the OpenAI API and OpenAI-compatible servers."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.openai.com/v1", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "OpenAI"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.openai.com/v1"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ MODEL ##################
    def _get_model_catalog(self) -> dict[str, EmbeddingModelMetadata]:
        return get_openai_model_catalog()

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def get_endpoint_embedding(self) -> str:
        return "/embeddings"

    def get_endpoint_model_details(self) -> str:
        return f"/models/{self.embed_model}"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the OpenAI embedding request body.

        Returns:
            dict: {"model": "...", "input": [...], "encoding_format": "float"} plus
                "dimensions" for text-embedding-3 models with a configured dimension.
        """
        payload = {"model": self.embed_model, "input": texts, "encoding_format": "float"}
        if self.embed_dimensions and self.embed_model in SHORTENABLE_MODELS:
            payload["dimensions"] = self.embed_dimensions
        return payload

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_vector_size_from_model_info(self, model_info: dict) -> int:
        # /models/{id} carries no dimension, only a probe embedding does
        raise ValueError(
            f"OpenAI model details do not contain the vector size of {self.embed_model}; "
            "set EMBED_MODEL_DIMENSIONS"
        )

    async def do_fetch_embedding_vector_size(self) -> int:
        """Measure the dimension by embedding a short probe text."""
        vectors = await self.do_embed([_DIMENSION_PROBE])
        return len(vectors[0])

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        data = response_data.get("data")
        if not data:
            raise ValueError(
                "OpenAI response does not contain embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        ordered = sorted(data, key=lambda item: item.get("index", 0))
        return [item["embedding"] for item in ordered]
