"""Persona -> exactly N unique places in one city.

Two generation strategies share the same dedup, field repair and backfill:

batch   one request for N places, then up to two corrective requests for the
        shortfall that exclude every name seen so far.
fanout  N concurrent single-place requests, one per slot of a fixed category
        rotation, merged in rotation order.

Backfill from the city catalog only tops up a partial set; when no call
returned parsable content the result is EMPTY_RESPONSE, and when content came
back but no place survived validation it is NO_RESULTS.
"""
import asyncio
import logging
import math
import uuid
from dataclasses import dataclass, field

from persona_places.analyzers.generator import GenerationError, GenerationFailure, OpenAIGenerator
from persona_places.analyzers.schemas import (
    LocationPayload,
    SchemaError,
    parse_location_batch,
    parse_single_location,
)
from persona_places.cities import TORONTO, CatalogPlace, City
from persona_places.errors import RecommendationError, RecommendationErrorKind
from persona_places.models import Coordinates, Location, LocationCategory, Persona
from persona_places.utils.urls import sanitize_website

_log = logging.getLogger(__name__)

DEFAULT_COUNT = 5
DEFAULT_RATING = 4.0
MAX_CORRECTIVE_ROUNDS = 2

FANOUT_ROTATION: tuple[tuple[str, LocationCategory], ...] = (
    ("restaurant", LocationCategory.RESTAURANT),
    ("cafe", LocationCategory.CAFE),
    ("entertainment venue", LocationCategory.ENTERTAINMENT),
    ("cultural attraction", LocationCategory.ATTRACTION),
    ("outdoor space", LocationCategory.OUTDOOR),
)

_CATEGORY_SYNONYMS: dict[str, LocationCategory] = {
    "food": LocationCategory.RESTAURANT,
    "dining": LocationCategory.RESTAURANT,
    "coffee": LocationCategory.CAFE,
    "coffee shop": LocationCategory.CAFE,
    "café": LocationCategory.CAFE,
    "bakery": LocationCategory.CAFE,
    "pub": LocationCategory.BAR,
    "brewery": LocationCategory.BAR,
    "cocktail bar": LocationCategory.BAR,
    "nightclub": LocationCategory.ENTERTAINMENT,
    "night club": LocationCategory.ENTERTAINMENT,
    "entertainment venue": LocationCategory.ENTERTAINMENT,
    "theatre": LocationCategory.ENTERTAINMENT,
    "theater": LocationCategory.ENTERTAINMENT,
    "cinema": LocationCategory.ENTERTAINMENT,
    "cultural attraction": LocationCategory.ATTRACTION,
    "tourist attraction": LocationCategory.ATTRACTION,
    "landmark": LocationCategory.ATTRACTION,
    "gallery": LocationCategory.ART,
    "art gallery": LocationCategory.ART,
    "gym": LocationCategory.FITNESS,
    "yoga studio": LocationCategory.FITNESS,
    "stadium": LocationCategory.SPORTS,
    "arena": LocationCategory.SPORTS,
    "library": LocationCategory.EDUCATION,
    "university": LocationCategory.EDUCATION,
    "market": LocationCategory.SHOPPING,
    "store": LocationCategory.SHOPPING,
    "shop": LocationCategory.SHOPPING,
    "bookstore": LocationCategory.SHOPPING,
    "mall": LocationCategory.SHOPPING,
    "concert hall": LocationCategory.MUSIC,
    "music venue": LocationCategory.MUSIC,
    "live music": LocationCategory.MUSIC,
    "garden": LocationCategory.PARK,
    "outdoor space": LocationCategory.OUTDOOR,
    "beach": LocationCategory.OUTDOOR,
    "trail": LocationCategory.OUTDOOR,
}

_FAILURE_KINDS = {
    GenerationFailure.TIMEOUT: RecommendationErrorKind.TIMEOUT,
    GenerationFailure.TRANSPORT: RecommendationErrorKind.UPSTREAM,
    GenerationFailure.RATE_LIMITED: RecommendationErrorKind.RATE_LIMITED,
    GenerationFailure.AUTH_FAILURE: RecommendationErrorKind.AUTH_FAILURE,
    GenerationFailure.MALFORMED: RecommendationErrorKind.EMPTY_RESPONSE,
}
_ABORT_FAILURES = {GenerationFailure.RATE_LIMITED, GenerationFailure.AUTH_FAILURE}

LOCATION_FIELDS = """- name: the place's name (must be a real, currently operating place)
- address: full street address including the city
- description: why this place fits the persona (1-2 short sentences)
- category: one of restaurant, cafe, bar, park, museum, shopping, entertainment, attraction, sports, fitness, education, art, music, outdoor, other
- coordinates: object with lat and lng (realistic coordinates)
- rating: numeric rating from 1 to 5
- website: the official website URL, or null if unknown (never a maps link)"""


def normalize_category(raw: str | None, default: LocationCategory = LocationCategory.OTHER) -> LocationCategory:
    if not raw:
        return default
    key = " ".join(raw.strip().lower().replace("_", " ").split())
    try:
        return LocationCategory(key)
    except ValueError:
        return _CATEGORY_SYNONYMS.get(key, LocationCategory.OTHER)


def _rating(value: float | None) -> float:
    if value is None or not math.isfinite(value):
        return DEFAULT_RATING
    return round(min(max(value, 1.0), 5.0), 1)


def repair_location(
    payload: LocationPayload,
    city: City,
    default_category: LocationCategory = LocationCategory.OTHER,
) -> Location:
    """Turn a validated candidate into a Location, filling or fixing optional fields."""
    coords = payload.coordinates
    if (
        coords is None
        or not (math.isfinite(coords.lat) and math.isfinite(coords.lng))
        or not city.contains(coords.lat, coords.lng)
    ):
        coordinates = city.center
    else:
        coordinates = Coordinates(lat=coords.lat, lng=coords.lng)

    price_level = payload.price_level if payload.price_level in range(0, 5) else None

    return Location(
        id=str(uuid.uuid4()),
        name=payload.name,
        address=payload.address,
        description=(payload.description or "").strip(),
        category=normalize_category(payload.category, default_category),
        coordinates=coordinates,
        rating=_rating(payload.rating),
        website=sanitize_website(payload.website),
        price_level=price_level,
    )


def catalog_location(place: CatalogPlace) -> Location:
    return Location(
        id=str(uuid.uuid4()),
        name=place.name,
        address=place.address,
        description=place.description,
        category=place.category,
        coordinates=Coordinates(lat=place.lat, lng=place.lng),
        rating=place.rating,
        website=place.website,
    )


def _dedup_key(value: str) -> str:
    return value.strip().lower()


class LocationSet:
    """Accepted locations, unique by normalised name and by normalised address."""

    def __init__(self, target: int) -> None:
        self.target = target
        self.locations: list[Location] = []
        self._names: set[str] = set()
        self._addresses: set[str] = set()

    def __len__(self) -> int:
        return len(self.locations)

    @property
    def full(self) -> bool:
        return len(self.locations) >= self.target

    def offer(self, location: Location) -> bool:
        name, address = _dedup_key(location.name), _dedup_key(location.address)
        if self.full or not name or not address:
            return False
        if name in self._names or address in self._addresses:
            _log.debug("Dropping duplicate location %r", location.name)
            return False
        self._names.add(name)
        self._addresses.add(address)
        self.locations.append(location)
        return True


@dataclass
class _Attempts:
    calls: int = 0
    parsed: bool = False
    failures: list[GenerationFailure] = field(default_factory=list)


def _persona_block(persona: Persona) -> str:
    return (
        f"Name: {persona.name}\n"
        f"Bio: {persona.bio}\n"
        f"Traits: {', '.join(persona.traits)}\n"
        f"Interests: {', '.join(persona.interests)}"
    )


def build_batch_prompt(persona: Persona, city: City, count: int, exclude: list[str] | None = None) -> str:
    prompt = (
        f"Based on this persona, recommend exactly {count} distinct places in {city.name}:\n\n"
        f"{_persona_block(persona)}\n\n"
        "Every place must be different: no two places may share a name or an address. "
        "Mix categories where it suits the persona.\n"
    )
    if exclude:
        prompt += f"Do NOT recommend any of these places: {'; '.join(exclude)}.\n"
    prompt += (
        f'\nReturn a JSON object {{"locations": [...]}} with exactly {count} entries, each with:\n'
        f"{LOCATION_FIELDS}"
    )
    return prompt


def build_slot_prompt(persona: Persona, city: City, label: str) -> str:
    return (
        f"Based on this persona, recommend ONE specific {label} in {city.name}:\n\n"
        f"{_persona_block(persona)}\n\n"
        f"Return ONLY ONE place as a JSON object with these fields:\n{LOCATION_FIELDS}"
    )


def _system_prompt(city: City) -> str:
    return (
        f"You are a {city.name} local expert. Recommend specific, real places in {city.name} "
        "that match the given persona. Keep descriptions extremely brief: 1-2 short sentences."
    )


class RecommendationSynthesizer:
    def __init__(
        self,
        generator: OpenAIGenerator,
        *,
        city: City = TORONTO,
        count: int = DEFAULT_COUNT,
        strategy: str = "batch",
        max_corrective_rounds: int = MAX_CORRECTIVE_ROUNDS,
    ) -> None:
        if strategy not in ("batch", "fanout"):
            raise ValueError(f"unknown recommendation strategy {strategy!r}")
        self._generator = generator
        self._city = city
        self._count = count
        self._strategy = strategy
        self._max_corrective_rounds = max_corrective_rounds

    async def recommend(self, persona: Persona) -> list[Location] | RecommendationError:
        accepted = LocationSet(self._count)
        attempts = _Attempts()

        if self._strategy == "fanout":
            aborted = await self._fan_out(persona, accepted, attempts)
        else:
            aborted = await self._batch(persona, accepted, attempts)
        if aborted is not None:
            return aborted

        if not attempts.parsed:
            return self._empty_outcome(attempts)
        if not accepted:
            return RecommendationError(RecommendationErrorKind.NO_RESULTS, "no valid locations generated")
        if not accepted.full:
            self._backfill(accepted)
        return accepted.locations

    async def _generate(
        self, attempts: _Attempts, user_prompt: str, temperature: float
    ) -> tuple[dict | None, GenerationFailure | None]:
        attempts.calls += 1
        try:
            data = await self._generator.generate(_system_prompt(self._city), user_prompt, temperature=temperature)
        except GenerationError as exc:
            attempts.failures.append(exc.kind)
            _log.warning("Location generation failed (%s): %s", exc.kind.value, exc)
            return None, exc.kind
        if data is None:
            _log.info("Location generation returned no content")
        return data, None

    async def _batch(
        self, persona: Persona, accepted: LocationSet, attempts: _Attempts
    ) -> RecommendationError | None:
        seen_names: list[str] = []
        for round_no in range(1 + self._max_corrective_rounds):
            shortfall = self._count - len(accepted)
            if shortfall <= 0:
                break
            if round_no:
                _log.info("Corrective round %d: asking for %d more locations", round_no, shortfall)

            data, failure = await self._generate(
                attempts, build_batch_prompt(persona, self._city, shortfall, seen_names), 0.7
            )
            if failure in _ABORT_FAILURES:
                return RecommendationError(_FAILURE_KINDS[failure], f"location generation aborted: {failure.value}")
            if data is None:
                continue
            try:
                candidates = parse_location_batch(data)
            except SchemaError as exc:
                _log.warning("Batch response rejected: %s", exc)
                continue

            attempts.parsed = True
            for payload in candidates:
                if payload.name not in seen_names:
                    seen_names.append(payload.name)
                accepted.offer(repair_location(payload, self._city))
        return None

    async def _fan_out(
        self, persona: Persona, accepted: LocationSet, attempts: _Attempts
    ) -> RecommendationError | None:
        slots = [FANOUT_ROTATION[i % len(FANOUT_ROTATION)] for i in range(self._count)]
        results = await asyncio.gather(*(
            self._generate(attempts, build_slot_prompt(persona, self._city, label), 0.5)
            for label, _ in slots
        ))

        abort: GenerationFailure | None = None
        # merge in rotation order, independent of completion order
        for (label, category), (data, failure) in zip(slots, results):
            if failure in _ABORT_FAILURES:
                abort = abort or failure
                continue
            if data is None:
                continue
            try:
                payload = parse_single_location(data)
            except SchemaError as exc:
                _log.warning("Slot %r response rejected: %s", label, exc)
                continue
            attempts.parsed = True
            accepted.offer(repair_location(payload, self._city, default_category=category))

        if abort is not None and not attempts.parsed:
            return RecommendationError(_FAILURE_KINDS[abort], f"location generation aborted: {abort.value}")
        return None

    def _empty_outcome(self, attempts: _Attempts) -> RecommendationError:
        if attempts.calls and len(attempts.failures) == attempts.calls:
            kind = _FAILURE_KINDS[attempts.failures[-1]]
        else:
            kind = RecommendationErrorKind.EMPTY_RESPONSE
        return RecommendationError(kind, f"no parsable content in {attempts.calls} generation calls")

    def _backfill(self, accepted: LocationSet) -> None:
        before = len(accepted)
        for place in self._city.catalog:
            if accepted.full:
                break
            accepted.offer(catalog_location(place))
        _log.info("Backfilled %d catalog locations (%d/%d)", len(accepted) - before, len(accepted), accepted.target)
