from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single environment setting a client, store or runner needs before it can work.

    Attributes:
        env_key (str): Raw key name. Clients prefix it with "{TYPE}_{ENGINE}_", e.g. "BASE_URL" becomes "EMBED_OLLAMA_BASE_URL".
        val_type (str): One of "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when the variable is unset. None marks the setting as required.
    """

    env_key: str
    val_type: str = "string"
    default: str | int | float | bool | list | None = None
