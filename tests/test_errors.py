import pytest

from ragstore.errors import (
    InvalidModelError,
    ProviderAuthenticationError,
    ProviderError,
    ProviderRequestError,
    ProviderServerError,
    QuotaExceededError,
    RateLimitError,
    StoreCorruptionError,
    ContractViolationError,
    NotFoundError,
    StoreError,
    classify_provider_error,
)


@pytest.mark.parametrize("status, expected", [
    (401, ProviderAuthenticationError),
    (403, ProviderAuthenticationError),
    (404, InvalidModelError),
    (429, RateLimitError),
    (400, ProviderRequestError),
    (422, ProviderRequestError),
    (500, ProviderServerError),
    (503, ProviderServerError),
])
def test_classify_by_status(status, expected):
    error = classify_provider_error("ollama", status, None)
    assert type(error) is expected
    assert error.status_code == status
    assert error.provider == "ollama"


@pytest.mark.parametrize("code, expected", [
    ("insufficient_quota", QuotaExceededError),
    ("rate_limit_exceeded", RateLimitError),
    ("invalid_api_key", ProviderAuthenticationError),
    ("model_not_found", InvalidModelError),
    ("server_error", ProviderServerError),
])
def test_classify_by_error_code(code, expected):
    body = {"error": {"message": "nope", "type": "error", "code": code}}
    assert type(classify_provider_error("openai", 400, body)) is expected


def test_quota_wins_over_rate_limit_status():
    body = {"error": {"message": "You exceeded your current quota", "type": "insufficient_quota", "code": None}}
    error = classify_provider_error("openai", 429, body)
    assert isinstance(error, QuotaExceededError)
    assert not error.retryable
    assert "You exceeded your current quota" in str(error)


def test_retryable_errors():
    assert classify_provider_error("openai", 429, None).retryable
    assert classify_provider_error("openai", 502, "bad gateway").retryable
    assert not classify_provider_error("openai", 401, None).retryable


def test_plain_error_body_kept_in_message():
    error = classify_provider_error("ollama", 404, {"error": 'model "x" not found, try pulling it first'})
    assert isinstance(error, InvalidModelError)
    assert 'model "x" not found' in str(error)
    assert isinstance(error, ProviderError)


def test_store_error_hierarchy():
    assert issubclass(NotFoundError, StoreError)
    assert issubclass(StoreCorruptionError, ContractViolationError)
