"""
Exceptions raised by the ragstore layer.

Backend (lancedb, pyarrow, filesystem) and provider (HTTP) failures are wrapped
into these classes so callers never have to catch third party exception types.
"""


class RagStoreError(Exception):
    """Base exception for all ragstore errors."""
    pass


class ConfigurationError(RagStoreError):
    """
    The layer is wired incorrectly.

    Raised when:
    - An index that needs an embedder has none bound
    - A store has no bound embedding model
    - An embedder's dimension differs from the dimension the store was created with
    """
    pass


class StoreError(RagStoreError):
    """
    Error reading from or writing to the storage backend.

    Raised when:
    - The backend connection cannot be opened
    - A table is missing or a query is malformed
    - The store folder cannot be created
    """
    pass


class NotFoundError(StoreError):
    """
    A store or index that was asked for does not exist.
    """
    pass


class AlreadyExistsError(StoreError):
    """
    A store or index with the same name already exists.
    """
    pass


class ContractViolationError(RagStoreError):
    """
    Persisted data breaks an invariant the layer relies on.

    Raised when:
    - A similarity hit on node content carries no back-reference id
    - A source container holds rows of the wrong kind
    """
    pass


class StoreCorruptionError(ContractViolationError):
    """
    A column batch cannot be decoded.

    Raised when:
    - A required column is missing or has an unexpected type
    - A required value is null
    - A UUID or enum tag cannot be parsed
    """
    pass


class DimensionMismatchError(RagStoreError, ValueError):
    """
    A vector's length differs from the store's bound embedding dimension.
    """

    def __init__(self, message: str, expected: int = None, actual: int = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ProviderError(RagStoreError):
    """
    Error returned by an embedding or completion provider.

    Raised when:
    - The provider answers with a non-2xx status
    - The provider response cannot be interpreted
    """

    retryable = False

    def __init__(self, message: str, provider: str = None, status_code: int = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class InvalidModelError(ProviderError):
    """The requested model does not exist on the provider."""
    pass


class ProviderAuthenticationError(ProviderError):
    """The API key is missing, wrong, or lacks access."""
    pass


class ProviderRequestError(ProviderError):
    """The provider rejected the request as malformed."""
    pass


class RateLimitError(ProviderError):
    """Too many requests; retrying later may succeed."""

    retryable = True


class QuotaExceededError(ProviderError):
    """The account's quota or billing does not allow further requests."""
    pass


class ProviderServerError(ProviderError):
    """The provider failed or is overloaded; retrying later may succeed."""

    retryable = True


# OpenAI style error "type" / "code" values
_ERROR_CODE_MAP: dict[str, type[ProviderError]] = {
    "invalid_api_key": ProviderAuthenticationError,
    "invalid_authentication": ProviderAuthenticationError,
    "not_member_of_organization": ProviderAuthenticationError,
    "model_not_found": InvalidModelError,
    "rate_limit_exceeded": RateLimitError,
    "rate_limit_reached": RateLimitError,
    "insufficient_quota": QuotaExceededError,
    "billing_not_active": QuotaExceededError,
    "server_error": ProviderServerError,
    "engine_overloaded": ProviderServerError,
}


def classify_provider_error(provider: str, status_code: int, body: dict | str | None = None) -> ProviderError:
    """Build the most specific ProviderError for a failed provider response.

    The error body's "code" and "type" (OpenAI format: {"error": {"type": ..., "code": ...}})
    win over the HTTP status, since e.g. a 429 can mean either rate limit or exhausted quota.

    Args:
        provider (str): Engine name, e.g. "ollama".
        status_code (int): HTTP status of the response.
        body (dict | str | None): Parsed JSON body or raw text.

    Returns:
        ProviderError: The classified, not yet raised, exception.
    """
    detail = ""
    codes: list[str] = []
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            codes = [str(error.get(k)) for k in ("code", "type") if error.get(k)]
            detail = str(error.get("message") or "")
        elif error:
            detail = str(error)
    elif body:
        detail = str(body)[:200]

    message = f"{provider} request failed with status {status_code}"
    if detail:
        message = f"{message}: {detail}"

    for code in codes:
        if code in _ERROR_CODE_MAP:
            return _ERROR_CODE_MAP[code](message, provider=provider, status_code=status_code)

    if status_code in (401, 403):
        error_class = ProviderAuthenticationError
    elif status_code == 404:
        error_class = InvalidModelError
    elif status_code == 429:
        error_class = RateLimitError
    elif status_code >= 500:
        error_class = ProviderServerError
    else:
        error_class = ProviderRequestError
    return error_class(message, provider=provider, status_code=status_code)
