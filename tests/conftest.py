import pytest

from persona_places.models import Persona, SearchRecord


class FakeGenerator:
    """Replays scripted generate() outcomes in order: dicts, None, or exceptions to raise."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    async def generate(self, system_prompt, user_prompt, *, temperature=0.7):
        self.calls.append({"system": system_prompt, "user": user_prompt, "temperature": temperature})
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def place(i: int, **overrides) -> dict:
    data = {
        "name": f"Place {i}",
        "address": f"{i} King St W, Toronto, ON",
        "description": "Fits the persona.",
        "category": "restaurant",
        "coordinates": {"lat": 43.65 + i / 1000, "lng": -79.38},
        "rating": 4.5,
        "website": f"https://place{i}.example.com",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_generator():
    return FakeGenerator


@pytest.fixture
def make_place():
    return place


@pytest.fixture
def persona() -> Persona:
    return Persona(
        name="Toronto DAO",
        handle="torontodao",
        bio="A community of crypto builders in Toronto.",
        traits=["collaborative", "optimistic", "curious"],
        interests=["crypto", "community events", "hackathons"],
    )


@pytest.fixture
def profile_records() -> list[SearchRecord]:
    """One profile-shaped page plus eight post-like results for @torontodao."""
    records = [
        SearchRecord(
            id="profile",
            url="https://x.com/torontodao",
            title="Toronto DAO (@torontodao) / X",
            text="Toronto DAO\n@torontodao\nBuilding Canada's most vibrant crypto community 🍁\n2,345 Followers\nJoined March 2021",
            image_url="https://pbs.twimg.com/profile_images/1/avatar.jpg",
        )
    ]
    topics = [
        "Join our builders meetup downtown this Thursday",
        "Hackathon recap: twelve teams shipped projects on Ethereum",
        "Coffee chat with local founders at the waterfront",
        "New governance proposal is live for the community",
        "Thanks to everyone who came to the winter social",
        "We are hiring community moderators for our Discord",
        "Panel on Canadian crypto regulation next week",
        "Our grants program funded five open source tools",
    ]
    for i, topic in enumerate(topics, 1):
        records.append(SearchRecord(
            id=str(i),
            url=f"https://x.com/torontodao/status/{1000 + i}",
            text=topic,
        ))
    return records
