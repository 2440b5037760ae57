from __future__ import annotations


class RadiocastError(Exception):
    """Base class for every error the service raises on purpose."""
    code = "RADIOCAST_ERROR"


class ConfigError(RadiocastError):
    code = "CONFIG_ERROR"


# -----------------------------
# Fetchers (recovered by the coordinator)
# -----------------------------
class FetchError(RadiocastError):
    code = "FETCH_FAIL"

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class TransportError(FetchError):
    code = "TRANSPORT_FAIL"


class HttpStatusError(FetchError):
    code = "HTTP_STATUS_FAIL"

    def __init__(self, source: str, status_code: int):
        super().__init__(source, f"unexpected HTTP status {status_code}")
        self.status_code = status_code


class ParseError(FetchError):
    code = "PARSE_FAIL"


class EmptyResponseError(FetchError):
    code = "EMPTY_RESPONSE"


# -----------------------------
# LLM (fatal for a generation)
# -----------------------------
class LLMError(RadiocastError):
    code = "LLM_API_ERROR"


class LLMAuthError(LLMError):
    code = "LLM_AUTH_FAIL"


class LLMTimeoutError(LLMError):
    code = "LLM_TIMEOUT"


class LLMEmptyResponseError(LLMError):
    code = "LLM_EMPTY_RESPONSE"


class LLMApiError(LLMError):
    code = "LLM_API_ERROR"


# -----------------------------
# Storage
# -----------------------------
class StorageError(RadiocastError):
    code = "STORAGE_ERROR"


class StorageWriteError(StorageError):
    code = "STORAGE_WRITE_FAIL"


class StorageNotFoundError(StorageError):
    code = "STORAGE_NOT_FOUND"

    def __init__(self, key: str):
        super().__init__(f"not found: {key}")
        self.key = key


# -----------------------------
# Pipeline control
# -----------------------------
class ContextCancelledError(RadiocastError):
    code = "CONTEXT_CANCELLED"


class InvalidInputError(RadiocastError):
    code = "INVALID_INPUT"


class BusyError(RadiocastError):
    code = "BUSY"


class AnimationError(RadiocastError):
    code = "ANIMATION_FAIL"


class MockDataError(RadiocastError):
    code = "MOCK_DATA_ERROR"
