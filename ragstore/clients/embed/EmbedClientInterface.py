from abc import abstractmethod

from ragstore.clients.ClientInterface import ClientInterface
from ragstore.errors import ConfigurationError, ProviderError
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.models.ModelMetadata import EmbeddingModelMetadata
from ragstore.models.Node import Node
from ragstore.models.TextEmbedded import Embeddings, TextEmbedded, TextEmbeddingOptions, TextInput
from ragstore.helper.timestamp import now


class EmbedClientInterface(ClientInterface):
    """The embedder a store is bound to.

    Turns text into vectors through an HTTP provider and knows the metadata
    (name, dimension, max input, pricing) of the model it talks to.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL")
        self.embed_dimensions = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MODEL_DIMENSIONS", default=0))
        self.embed_model_max_chars = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MODEL_MAX_CHARS", default=0))
        self.embed_batch_size = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_BATCH_SIZE", default=32))
        if self.embed_batch_size <= 0:
            raise ValueError(f"{self.get_client_type().upper()}_BATCH_SIZE must be positive, got {self.embed_batch_size}")

        self._model_metadata: EmbeddingModelMetadata | None = self._build_model_metadata()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    ################ MODEL ##################
    @abstractmethod
    def _get_model_catalog(self) -> dict[str, EmbeddingModelMetadata]:
        """
        Returns the models this engine knows the metadata of, keyed by model name.

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    def _build_model_metadata(self) -> EmbeddingModelMetadata | None:
        """Metadata from the catalog, with the dimension overridden by EMBED_MODEL_DIMENSIONS if set.

        Returns None for an unknown model without configured dimension; the
        dimension is then fetched from the provider by do_load_model_metadata().
        """
        catalog = self._get_model_catalog()
        # ollama style tags, e.g. "nomic-embed-text:latest"
        known = catalog.get(self.embed_model) or catalog.get(self.embed_model.split(":")[0])
        if known is not None:
            update = {"name": self.embed_model}
            if self.embed_dimensions:
                update["dimensions"] = self.embed_dimensions
            return known.model_copy(update=update)
        if self.embed_dimensions:
            return EmbeddingModelMetadata(name=self.embed_model, dimensions=self.embed_dimensions)
        return None

    def get_model_metadata(self) -> EmbeddingModelMetadata:
        """
        Returns the metadata of the configured model.

        Raises:
            ConfigurationError: If the dimension is not known yet; call do_load_model_metadata() first.
        """
        if self._model_metadata is None:
            raise ConfigurationError(
                f"Dimension of embedding model '{self.embed_model}' is unknown. "
                f"Set {self.get_client_type().upper()}_MODEL_DIMENSIONS or call do_load_model_metadata()."
            )
        return self._model_metadata

    def get_model_name(self) -> str:
        return self.embed_model

    def get_dimension(self) -> int:
        return self.get_model_metadata().dimensions

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests (e.g. "/api/embed").
        """
        pass

    @abstractmethod
    def get_endpoint_model_details(self) -> str:
        """
        Returns the endpoint path for model details requests (e.g. "/api/show").
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_vector_size_from_model_info(self, model_info: dict) -> int:
        """
        Extracts the embedding vector size from the model details response.

        Raises:
            ValueError: If the vector size cannot be determined.
        """
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}, already ordered
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]}, needs sorting

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> int:
        """
        Ask the provider for the output dimension of the configured model.

        Raises:
            ProviderError: If the provider cannot be reached or answers with an error.
            ValueError: If the dimension cannot be determined from the response.
        """
        response = await self.do_request(
            method="POST",
            json={"name": self.embed_model},
            endpoint=self.get_endpoint_model_details(),
            raise_on_error=True,
        )
        return self.extract_vector_size_from_model_info(model_info=response.json())

    async def do_load_model_metadata(self) -> EmbeddingModelMetadata:
        """Return the model metadata, asking the provider for the dimension if it is not known."""
        if self._model_metadata is None:
            dimensions = await self.do_fetch_embedding_vector_size()
            self.logging.info("Embedding model %s reports %d dimensions", self.embed_model, dimensions)
            self._model_metadata = EmbeddingModelMetadata(name=self.embed_model, dimensions=dimensions)
        return self._model_metadata

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send one embedding request and return the vectors in input order.

        Raises:
            ProviderError: If the request fails or the provider returns a different number of vectors.
            ValueError: If the response does not contain valid embeddings.
        """
        texts = [texts] if isinstance(texts, str) else texts
        if self.embed_model_max_chars:
            texts = [text[: self.embed_model_max_chars] for text in texts]
        body = self.get_embed_payload(texts)
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        if response.status_code != 200:
            self.raise_provider_error(response)
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(texts):
            raise ProviderError(
                f"Provider returned {len(vectors)} embeddings for {len(texts)} texts",
                provider=self.get_engine_name(),
                status_code=response.status_code,
            )
        return vectors

    async def embed_string(self, text: str) -> Embeddings:
        vectors = await self.do_embed([text])
        return Embeddings(vector=vectors[0], model=self.embed_model, embedded_at=now())

    async def embed_input(self, text_input: TextInput, options: TextEmbeddingOptions | None = None) -> TextEmbedded:
        embeddings = await self.embed_string(text_input.text)
        return text_input.to_embedded(embeddings, options)

    async def embed_nodes(self, nodes: list[Node], options: TextEmbeddingOptions | None = None) -> list[Node]:
        """Embed the content of every node and attach the result to a copy of it.

        Nodes are sent in batches of EMBED_BATCH_SIZE. The result has the same
        length and order as `nodes`; a failing batch aborts the whole call.

        Returns:
            list[Node]: Copies of the nodes with content_embeddings set.
        """
        result: list[Node] = []
        for start in range(0, len(nodes), self.embed_batch_size):
            batch = nodes[start:start + self.embed_batch_size]
            vectors = await self.do_embed([node.content for node in batch])
            embedded_at = now()
            for node, vector in zip(batch, vectors):
                text_input = TextInput.from_node_text(node.content, node.id)
                embedded = text_input.to_embedded(
                    Embeddings(vector=vector, model=self.embed_model, embedded_at=embedded_at), options
                )
                embedded.index_id = node.index_id
                copy = node.model_copy()
                copy.merge_embedded_text(embedded)
                result.append(copy)
            self.logging.debug("Embedded %d of %d nodes with %s", len(result), len(nodes), self.embed_model)
        return result
