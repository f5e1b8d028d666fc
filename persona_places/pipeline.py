"""The two operations the application exposes: create_persona and create_recommendations.

The pipeline only sequences the adapters, validates input and translates
adapter errors into ErrorKind with a user-safe message. It never retries.
"""
import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

from persona_places.analyzers.generator import OpenAIGenerator
from persona_places.analyzers.persona import PersonaSynthesizer
from persona_places.analyzers.recommendations import RecommendationSynthesizer
from persona_places.cities import CITIES
from persona_places.config import Settings
from persona_places.errors import (
    ErrorKind,
    ExtractionError,
    PersonaError,
    PersonaErrorKind,
    RecommendationError,
    RecommendationErrorKind,
    SearchError,
    SearchErrorKind,
)
from persona_places.fetchers.exa import ExaClient
from persona_places.fetchers.extraction import extract_profile_signal
from persona_places.fetchers.search import ProfileSearch
from persona_places.models import Location, Persona, normalize_handle

_log = logging.getLogger(__name__)

T = TypeVar("T")

PERSONA = "persona"
LOCATIONS = "locations"

_SEARCH_KINDS = {
    SearchErrorKind.AUTH_FAILURE: ErrorKind.UPSTREAM_AUTH_FAILURE,
    SearchErrorKind.RATE_LIMITED: ErrorKind.UPSTREAM_RATE_LIMITED,
    SearchErrorKind.TIMEOUT: ErrorKind.UPSTREAM_TIMEOUT,
    SearchErrorKind.NO_RESULTS: ErrorKind.NO_USABLE_RESULTS,
    SearchErrorKind.TRANSPORT: ErrorKind.UPSTREAM_TRANSPORT,
}
_PERSONA_KINDS = {
    PersonaErrorKind.EMPTY_RESPONSE: ErrorKind.UPSTREAM_EMPTY_RESPONSE,
    PersonaErrorKind.INVALID_SCHEMA: ErrorKind.UPSTREAM_INVALID_SCHEMA,
    PersonaErrorKind.TIMEOUT: ErrorKind.UPSTREAM_TIMEOUT,
    PersonaErrorKind.UPSTREAM: ErrorKind.UPSTREAM_TRANSPORT,
    PersonaErrorKind.RATE_LIMITED: ErrorKind.UPSTREAM_RATE_LIMITED,
    PersonaErrorKind.AUTH_FAILURE: ErrorKind.UPSTREAM_AUTH_FAILURE,
}
_RECOMMENDATION_KINDS = {
    RecommendationErrorKind.EMPTY_RESPONSE: ErrorKind.UPSTREAM_EMPTY_RESPONSE,
    RecommendationErrorKind.NO_RESULTS: ErrorKind.NO_USABLE_RESULTS,
    RecommendationErrorKind.TIMEOUT: ErrorKind.UPSTREAM_TIMEOUT,
    RecommendationErrorKind.UPSTREAM: ErrorKind.UPSTREAM_TRANSPORT,
    RecommendationErrorKind.RATE_LIMITED: ErrorKind.UPSTREAM_RATE_LIMITED,
    RecommendationErrorKind.AUTH_FAILURE: ErrorKind.UPSTREAM_AUTH_FAILURE,
}

_MESSAGES: dict[tuple[str, ErrorKind], str] = {
    (PERSONA, ErrorKind.INPUT_VALIDATION): "Invalid X handle. Please provide a valid X username.",
    (PERSONA, ErrorKind.NO_USABLE_RESULTS): "Could not find X profile data. Please check the handle and try again.",
    (PERSONA, ErrorKind.UPSTREAM_EMPTY_RESPONSE): "Failed to generate persona from the X data. Please try again later.",
    (PERSONA, ErrorKind.UPSTREAM_INVALID_SCHEMA): "Failed to generate persona from the X data. Please try again later.",
    (LOCATIONS, ErrorKind.INPUT_VALIDATION): "Invalid request. Please provide a persona with traits and interests.",
    (LOCATIONS, ErrorKind.NO_USABLE_RESULTS): "No suitable locations found. Please try a different X profile.",
    (LOCATIONS, ErrorKind.UPSTREAM_EMPTY_RESPONSE): "Failed to find recommended locations. Please try again later.",
}
_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.CONFIGURATION: "The server is not configured correctly. Please contact the administrator.",
    ErrorKind.UPSTREAM_TIMEOUT: "An upstream service took too long to respond. Please try again.",
    ErrorKind.UPSTREAM_RATE_LIMITED: "Too many requests right now. Please wait a moment and try again.",
    ErrorKind.UPSTREAM_AUTH_FAILURE: "An upstream service rejected our credentials. Please contact the administrator.",
    ErrorKind.UPSTREAM_TRANSPORT: "Could not reach an upstream service. Please try again later.",
}
_FALLBACK_MESSAGE = "Failed to process your request. Please try again later."


def user_message(operation: str, kind: ErrorKind) -> str:
    return _MESSAGES.get((operation, kind)) or _DEFAULT_MESSAGES.get(kind, _FALLBACK_MESSAGE)


@dataclass(frozen=True)
class PipelineError:
    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        if self.kind is ErrorKind.INPUT_VALIDATION:
            return 400
        if self.kind is ErrorKind.NO_USABLE_RESULTS:
            return 404
        return 500


@dataclass(frozen=True)
class PipelineResult(Generic[T]):
    value: T | None = None
    error: PipelineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, operation: str, kind: ErrorKind) -> "PipelineResult[T]":
        return cls(error=PipelineError(kind, user_message(operation, kind)))


class PersonaPipeline:
    def __init__(
        self,
        search: ProfileSearch,
        personas: PersonaSynthesizer,
        recommendations: RecommendationSynthesizer,
        *,
        tweet_limit: int = 22,
    ) -> None:
        self._search = search
        self._personas = personas
        self._recommendations = recommendations
        self._tweet_limit = tweet_limit

    @classmethod
    def from_settings(cls, settings: Settings) -> "PersonaPipeline":
        """Wire the adapters from settings; raises ConfigurationError on a missing key."""
        exa = ExaClient(settings.exa_api_key, timeout=settings.search_timeout)
        generator = OpenAIGenerator(
            settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.generation_timeout,
        )
        return cls(
            ProfileSearch(exa),
            PersonaSynthesizer(generator, max_tweets=settings.tweet_limit),
            RecommendationSynthesizer(
                generator,
                city=CITIES[settings.city],
                count=settings.recommendation_count,
                strategy=settings.recommendation_strategy,
            ),
            tweet_limit=settings.tweet_limit,
        )

    async def create_persona(self, handle: str | None) -> PipelineResult[Persona]:
        handle = normalize_handle(handle or "")
        if not handle:
            return PipelineResult.failure(PERSONA, ErrorKind.INPUT_VALIDATION)

        records = await self._search.find(handle)
        if isinstance(records, SearchError):
            _log.warning("Search for @%s failed: %s %s", handle, records.kind.value, records.detail)
            return PipelineResult.failure(PERSONA, _SEARCH_KINDS[records.kind])

        try:
            signal = extract_profile_signal(records, handle, tweet_limit=self._tweet_limit)
        except ExtractionError as exc:
            _log.warning("Extraction for @%s failed: %s", handle, exc)
            return PipelineResult.failure(PERSONA, ErrorKind.NO_USABLE_RESULTS)
        if not signal.tweets:
            _log.info("No posts extracted for @%s", handle)
            return PipelineResult.failure(PERSONA, ErrorKind.NO_USABLE_RESULTS)

        persona = await self._personas.synthesize(signal)
        if isinstance(persona, PersonaError):
            return PipelineResult.failure(PERSONA, _PERSONA_KINDS[persona.kind])
        return PipelineResult(value=persona)

    async def create_recommendations(self, persona: Persona | None) -> PipelineResult[list[Location]]:
        if persona is None or not persona.traits or not persona.interests:
            return PipelineResult.failure(LOCATIONS, ErrorKind.INPUT_VALIDATION)

        locations = await self._recommendations.recommend(persona)
        if isinstance(locations, RecommendationError):
            _log.warning("Recommendations for @%s failed: %s %s", persona.handle, locations.kind.value, locations.detail)
            return PipelineResult.failure(LOCATIONS, _RECOMMENDATION_KINDS[locations.kind])
        return PipelineResult(value=locations)
