import asyncio

import pytest

from persona_places.analyzers.generator import GenerationError, GenerationFailure
from persona_places.analyzers.recommendations import (
    DEFAULT_RATING,
    FANOUT_ROTATION,
    LocationSet,
    RecommendationSynthesizer,
    catalog_location,
    normalize_category,
    repair_location,
)
from persona_places.analyzers.schemas import LocationPayload
from persona_places.cities import TORONTO
from persona_places.errors import RecommendationError, RecommendationErrorKind
from persona_places.models import LocationCategory


def _assert_unique(locations):
    assert len({loc.name.strip().lower() for loc in locations}) == len(locations)
    assert len({loc.address.strip().lower() for loc in locations}) == len(locations)


# ── field repair ─────────────────────────────────────────────────────────────

def test_repair_fills_missing_fields():
    location = repair_location(LocationPayload(name="CN Tower", address="290 Bremner Blvd"), TORONTO)

    assert location.coordinates == TORONTO.center
    assert location.category is LocationCategory.OTHER
    assert location.rating == DEFAULT_RATING
    assert location.description == ""
    assert location.website is None
    assert location.price_level is None
    assert location.id


def test_repair_fixes_out_of_range_values():
    payload = LocationPayload.model_validate({
        "name": "Somewhere",
        "address": "1 Null Island",
        "coordinates": {"lat": 0, "lng": 0},
        "category": "Coffee Shop",
        "rating": 7.26,
        "website": "https://www.google.com/maps/place/Somewhere",
        "priceLevel": 9,
    })
    location = repair_location(payload, TORONTO)

    assert location.coordinates == TORONTO.center
    assert location.category is LocationCategory.CAFE
    assert location.rating == 5.0
    assert location.website is None
    assert location.price_level is None


def test_repair_replaces_non_finite_numbers():
    payload = LocationPayload.model_validate({
        "name": "A",
        "address": "1 A St",
        "coordinates": {"lat": float("nan"), "lng": float("inf")},
        "rating": float("nan"),
    })
    location = repair_location(payload, TORONTO)

    assert location.rating == DEFAULT_RATING
    assert location.coordinates == TORONTO.center


def test_repair_keeps_valid_values_and_slot_default():
    payload = LocationPayload.model_validate({
        "name": "Pai",
        "address": "18 Duncan St, Toronto",
        "coordinates": {"lat": 43.6479, "lng": -79.3887},
        "rating": 4.67,
        "website": "https://www.paitoronto.com",
        "price_level": 2,
    })
    location = repair_location(payload, TORONTO, default_category=LocationCategory.RESTAURANT)

    assert (location.coordinates.lat, location.coordinates.lng) == (43.6479, -79.3887)
    assert location.category is LocationCategory.RESTAURANT
    assert location.rating == 4.7
    assert location.website == "https://www.paitoronto.com"
    assert location.price_level == 2


@pytest.mark.parametrize("raw,expected", [
    ("Museum", LocationCategory.MUSEUM),
    ("cultural_attraction", LocationCategory.ATTRACTION),
    ("brewery", LocationCategory.BAR),
    ("spaceport", LocationCategory.OTHER),
])
def test_normalize_category(raw, expected):
    assert normalize_category(raw) is expected


def test_location_set_dedups_on_name_and_address():
    accepted = LocationSet(3)
    a = catalog_location(TORONTO.catalog[0])
    assert accepted.offer(a)
    assert not accepted.offer(a.model_copy(update={"name": "  cn tower ", "address": "elsewhere"}))
    assert not accepted.offer(a.model_copy(update={"name": "Other", "address": a.address.upper()}))
    assert len(accepted) == 1


# ── batch strategy ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_batch_returns_exactly_count(make_generator, make_place, persona):
    generator = make_generator({"locations": [make_place(i) for i in range(1, 8)]})
    locations = await RecommendationSynthesizer(generator).recommend(persona)

    assert [loc.name for loc in locations] == [f"Place {i}" for i in range(1, 6)]
    assert len(generator.calls) == 1
    assert "exactly 5" in generator.calls[0]["user"]
    assert "Toronto local expert" in generator.calls[0]["system"]


@pytest.mark.asyncio
async def test_batch_nan_rating_is_repaired(make_generator, make_place, persona):
    generator = make_generator(
        {"locations": [{"name": "A", "address": "1 A St", "rating": float("nan")}]},
        {"locations": [make_place(i) for i in range(1, 5)]},
    )
    locations = await RecommendationSynthesizer(generator).recommend(persona)

    assert [loc.name for loc in locations] == ["A", "Place 1", "Place 2", "Place 3", "Place 4"]
    assert locations[0].rating == DEFAULT_RATING
    assert locations[0].coordinates == TORONTO.center


@pytest.mark.asyncio
async def test_batch_corrective_round_excludes_seen_names(make_generator, make_place, persona):
    generator = make_generator(
        {"locations": [
            make_place(1),
            make_place(1, name=" place 1 "),
            make_place(2, address=make_place(1)["address"].upper()),
        ]},
        {"locations": [make_place(i) for i in range(3, 7)]},
    )
    locations = await RecommendationSynthesizer(generator).recommend(persona)

    assert [loc.name for loc in locations] == ["Place 1", "Place 3", "Place 4", "Place 5", "Place 6"]
    _assert_unique(locations)
    assert len(generator.calls) == 2
    corrective = generator.calls[1]["user"]
    assert "exactly 4" in corrective
    assert "Place 1" in corrective and "Place 2" in corrective


@pytest.mark.asyncio
async def test_batch_partial_set_is_backfilled(make_generator, make_place, persona):
    generator = make_generator(
        {"locations": [make_place(1), make_place(2)]},
        {"locations": [make_place(2), make_place(3)]},
        {"locations": [make_place(1), make_place(3)]},
    )
    locations = await RecommendationSynthesizer(generator).recommend(persona)

    assert len(generator.calls) == 3
    assert [loc.name for loc in locations] == [
        "Place 1", "Place 2", "Place 3", TORONTO.catalog[0].name, TORONTO.catalog[1].name,
    ]
    _assert_unique(locations)


@pytest.mark.asyncio
async def test_backfill_skips_catalog_places_already_generated(make_generator, make_place, persona):
    generator = make_generator({"locations": [make_place(1, name="CN Tower")]}, None, None)
    locations = await RecommendationSynthesizer(generator).recommend(persona)

    assert [loc.name for loc in locations] == [
        "CN Tower", "Royal Ontario Museum", "St. Lawrence Market", "Art Gallery of Ontario", "High Park",
    ]


@pytest.mark.asyncio
async def test_batch_all_empty_is_empty_response(make_generator, persona):
    generator = make_generator(None, None, None)
    result = await RecommendationSynthesizer(generator).recommend(persona)

    assert isinstance(result, RecommendationError)
    assert result.kind is RecommendationErrorKind.EMPTY_RESPONSE
    assert len(generator.calls) == 3


@pytest.mark.asyncio
async def test_batch_malformed_everywhere_is_empty_response(make_generator, persona):
    generator = make_generator(
        GenerationError(GenerationFailure.MALFORMED), {"places": []}, GenerationError(GenerationFailure.MALFORMED),
    )
    result = await RecommendationSynthesizer(generator).recommend(persona)
    assert result.kind is RecommendationErrorKind.EMPTY_RESPONSE


@pytest.mark.asyncio
async def test_batch_parsed_but_nothing_valid_is_no_results(make_generator, persona):
    generator = make_generator({"locations": []}, {"locations": [{"name": "x"}]}, {"locations": []})
    result = await RecommendationSynthesizer(generator).recommend(persona)
    assert result.kind is RecommendationErrorKind.NO_RESULTS


@pytest.mark.asyncio
@pytest.mark.parametrize("failure,kind", [
    (GenerationFailure.RATE_LIMITED, RecommendationErrorKind.RATE_LIMITED),
    (GenerationFailure.AUTH_FAILURE, RecommendationErrorKind.AUTH_FAILURE),
])
async def test_batch_aborts_on_rate_limit_and_auth(make_generator, make_place, persona, failure, kind):
    generator = make_generator(GenerationError(failure), {"locations": [make_place(1)]})
    result = await RecommendationSynthesizer(generator).recommend(persona)

    assert result.kind is kind
    assert len(generator.calls) == 1


@pytest.mark.asyncio
async def test_batch_all_timeouts_surface_timeout(make_generator, persona):
    generator = make_generator(*[GenerationError(GenerationFailure.TIMEOUT)] * 3)
    result = await RecommendationSynthesizer(generator).recommend(persona)
    assert result.kind is RecommendationErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_timeout_then_success_still_completes(make_generator, make_place, persona):
    generator = make_generator(
        GenerationError(GenerationFailure.TIMEOUT),
        {"locations": [make_place(i) for i in range(1, 6)]},
    )
    locations = await RecommendationSynthesizer(generator).recommend(persona)
    assert len(locations) == 5


# ── fan-out strategy ─────────────────────────────────────────────────────────

class SlotGenerator:
    """Answers single-place prompts per rotation label; earlier slots finish last."""

    def __init__(self, failures=None):
        self.failures = failures or {}
        self.calls = []

    async def generate(self, system_prompt, user_prompt, *, temperature=0.7):
        self.calls.append(temperature)
        for i, (label, _) in enumerate(FANOUT_ROTATION):
            if f"ONE specific {label} in" in user_prompt:
                await asyncio.sleep(0.01 * (len(FANOUT_ROTATION) - i))
                if label in self.failures:
                    raise GenerationError(self.failures[label])
                return {"location": {
                    "name": f"{label.title()} Spot",
                    "address": f"{i + 1} Queen St W, Toronto",
                    "coordinates": {"lat": 43.65, "lng": -79.39},
                }}
        return None


@pytest.mark.asyncio
async def test_fan_out_merges_in_rotation_order(persona):
    generator = SlotGenerator()
    locations = await RecommendationSynthesizer(generator, strategy="fanout").recommend(persona)

    assert [loc.category for loc in locations] == [category for _, category in FANOUT_ROTATION]
    assert locations[0].name == "Restaurant Spot"
    assert generator.calls == [0.5] * 5


@pytest.mark.asyncio
async def test_fan_out_failed_slot_is_backfilled(persona):
    generator = SlotGenerator(failures={"cafe": GenerationFailure.TRANSPORT})
    locations = await RecommendationSynthesizer(generator, strategy="fanout").recommend(persona)

    assert len(locations) == 5
    assert locations[-1].name == TORONTO.catalog[0].name
    _assert_unique(locations)


@pytest.mark.asyncio
async def test_fan_out_all_auth_failures(make_generator, persona):
    generator = make_generator(*[GenerationError(GenerationFailure.AUTH_FAILURE)] * 5)
    result = await RecommendationSynthesizer(generator, strategy="fanout").recommend(persona)
    assert result.kind is RecommendationErrorKind.AUTH_FAILURE
    assert len(generator.calls) == 5


def test_unknown_strategy_is_rejected(make_generator):
    with pytest.raises(ValueError):
        RecommendationSynthesizer(make_generator(), strategy="greedy")
