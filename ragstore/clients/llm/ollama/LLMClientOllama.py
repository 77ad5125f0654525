from ragstore.clients.llm.LLMClientInterface import LLMClientInterface
from ragstore.helper.HelperConfig import HelperConfig
from ragstore.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    """Completion client for a local or proxied Ollama server (/api/chat, non streaming)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._temperature = self.get_config_val("TEMPERATURE", default=0.0, val_type="number")
        # 0 keeps the server's default context window
        self._num_ctx = int(self.get_config_val("NUM_CTX", default=0, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="TEMPERATURE", val_type="number", default=0.0),
            EnvConfig(env_key="NUM_CTX", val_type="number", default=0),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict]) -> dict:
        """
        Returns:
            dict: {"model", "messages", "stream": False, "options": {"temperature", ["num_ctx"]}}
        """
        options = {"temperature": self._temperature}
        if self._num_ctx:
            options["num_ctx"] = self._num_ctx
        return {"model": self.chat_model, "messages": messages, "stream": False, "options": options}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        content = (response_data.get("message") or {}).get("content")
        if content is None:
            raise ValueError(f"Ollama chat response has no message content. Response keys: {list(response_data)}")
        if response_data.get("done_reason") == "length":
            self.logging.warning("Ollama reply from %s was cut at the context or token limit", self.chat_model)
        return content
