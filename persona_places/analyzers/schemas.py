"""Accepted response shapes for structured generation.

Only the shapes listed here are accepted; anything else raises SchemaError.

persona:          {"name", "handle", "bio", "traits": [...], "interests": [...]}
location batch:   {"locations": [location, ...]}
single location:  location  |  {"location": location}
"""
import logging
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

_log = logging.getLogger(__name__)

MAX_LIST_ITEMS = 5


class SchemaError(ValueError):
    pass


def _clean_strings(values: list[str]) -> list[str]:
    return [v.strip() for v in values if v and v.strip()][:MAX_LIST_ITEMS]


class PersonaPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    handle: str | None = None
    bio: str
    traits: list[str]
    interests: list[str]

    @field_validator("traits", "interests")
    @classmethod
    def clean_lists(cls, values: list[str]) -> list[str]:
        return _clean_strings(values)


class CoordinatesPayload(BaseModel):
    lat: float
    lng: float


class LocationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    address: str
    description: str | None = None
    category: str | None = None
    coordinates: CoordinatesPayload | None = None
    rating: float | None = None
    website: str | None = None
    price_level: int | None = Field(default=None, validation_alias=AliasChoices("priceLevel", "price_level"))

    @field_validator("name", "address")
    @classmethod
    def required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("description", "category", "coordinates", "rating", "price_level", "website", mode="wrap")
    @classmethod
    def optional_or_none(cls, value: Any, handler: Any) -> Any:
        # invalid optional values become None; field repair fills them in
        try:
            return handler(value)
        except ValidationError:
            return None


def parse_persona(data: Any) -> PersonaPayload:
    if not isinstance(data, dict):
        raise SchemaError("persona response must be a JSON object")
    try:
        return PersonaPayload.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"persona response does not match schema: {exc.error_count()} errors") from exc


def parse_location_batch(data: Any) -> list[LocationPayload]:
    """Validate ``{"locations": [...]}``; malformed elements are dropped individually."""
    if not isinstance(data, dict) or not isinstance(data.get("locations"), list):
        raise SchemaError('batch response must be {"locations": [...]}')
    locations = []
    for item in data["locations"]:
        try:
            locations.append(LocationPayload.model_validate(item))
        except ValidationError:
            _log.info("Dropping malformed location: %.200r", item)
    return locations


def parse_single_location(data: Any) -> LocationPayload:
    if isinstance(data, dict) and isinstance(data.get("location"), dict):
        data = data["location"]
    if not isinstance(data, dict):
        raise SchemaError("location response must be a JSON object")
    try:
        return LocationPayload.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"location response does not match schema: {exc.error_count()} errors") from exc
