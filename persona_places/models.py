from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    # camelCase on the wire, snake_case in Python; both accepted on input
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchRecord(BaseModel):
    """One raw result returned by the search API."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    title: str | None = None
    url: str | None = None
    text: str | None = None
    highlights: list[str] = []
    author: str | None = None
    image_url: str | None = None
    image: str | None = None
    image_urls: list[str] = []
    extra_info: dict[str, Any] | None = None


class ProfileSignal(BaseModel):
    tweets: list[str]
    bio: str
    name: str
    handle: str
    profile_image_url: str | None = None


class Persona(_ApiModel):
    name: str
    handle: str
    bio: str
    traits: list[str]
    interests: list[str]
    profile_image_url: str | None = None


class LocationCategory(str, Enum):
    RESTAURANT = "restaurant"
    CAFE = "cafe"
    BAR = "bar"
    PARK = "park"
    MUSEUM = "museum"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    ATTRACTION = "attraction"
    SPORTS = "sports"
    FITNESS = "fitness"
    EDUCATION = "education"
    ART = "art"
    MUSIC = "music"
    OUTDOOR = "outdoor"
    OTHER = "other"


class Coordinates(BaseModel):
    lat: float
    lng: float


class Location(_ApiModel):
    id: str
    name: str
    address: str
    description: str
    category: LocationCategory
    coordinates: Coordinates
    rating: float | None = Field(default=None, ge=1.0, le=5.0)
    website: str | None = None
    price_level: int | None = Field(default=None, ge=0, le=4)


def normalize_handle(handle: str) -> str:
    """Strip whitespace and a leading @; handles are case-insensitive on X."""
    return handle.strip().lstrip("@").strip().lower()


def capitalize_handle(handle: str) -> str:
    return handle[:1].upper() + handle[1:]
