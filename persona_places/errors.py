"""Error taxonomy shared by the adapters and the pipeline.

Adapters never raise across their boundary: they return one of the frozen
error values below. The pipeline maps every adapter kind onto ``ErrorKind``.
"""
from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    CONFIGURATION = "ConfigurationError"
    INPUT_VALIDATION = "InputValidationError"
    UPSTREAM_TIMEOUT = "UpstreamTimeout"
    UPSTREAM_RATE_LIMITED = "UpstreamRateLimited"
    UPSTREAM_AUTH_FAILURE = "UpstreamAuthFailure"
    UPSTREAM_TRANSPORT = "UpstreamTransport"
    UPSTREAM_EMPTY_RESPONSE = "UpstreamEmptyResponse"
    UPSTREAM_INVALID_SCHEMA = "UpstreamInvalidSchema"
    NO_USABLE_RESULTS = "NoUsableResults"


class ConfigurationError(RuntimeError):
    """A required credential or setting is missing or invalid."""


class ExtractionError(ValueError):
    """Search results were empty or not a collection of records."""


class SearchErrorKind(str, Enum):
    AUTH_FAILURE = "auth_failure"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NO_RESULTS = "no_results"
    TRANSPORT = "transport"


class PersonaErrorKind(str, Enum):
    EMPTY_RESPONSE = "empty_response"
    INVALID_SCHEMA = "invalid_schema"
    TIMEOUT = "timeout"
    UPSTREAM = "upstream"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILURE = "auth_failure"


class RecommendationErrorKind(str, Enum):
    EMPTY_RESPONSE = "empty_response"
    NO_RESULTS = "no_results"
    TIMEOUT = "timeout"
    UPSTREAM = "upstream"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILURE = "auth_failure"


@dataclass(frozen=True)
class SearchError:
    kind: SearchErrorKind
    detail: str = ""


@dataclass(frozen=True)
class PersonaError:
    kind: PersonaErrorKind
    detail: str = ""


@dataclass(frozen=True)
class RecommendationError:
    kind: RecommendationErrorKind
    detail: str = ""
