import pytest

from persona_places.errors import ExtractionError
from persona_places.fetchers.extraction import (
    collect_tweets,
    extract_bio,
    extract_image,
    extract_name,
    extract_profile_signal,
    is_profile_page,
    is_relevant,
    partition_records,
)
from persona_places.models import SearchRecord


def rec(**kwargs) -> SearchRecord:
    return SearchRecord(**kwargs)


# ── relevance ────────────────────────────────────────────────────────────────

def test_relevant_on_mention_from_and_profile_path():
    assert is_relevant(rec(text="great thread by @torontodao"), "torontodao")
    assert is_relevant(rec(title="from:torontodao meetup"), "torontodao")
    assert is_relevant(rec(url="https://x.com/torontodao"), "torontodao")
    assert is_relevant(rec(url="https://twitter.com/TorontoDAO/status/1"), "torontodao")


def test_not_relevant_for_lookalike_handles_and_domains():
    assert not is_relevant(rec(text="@torontodao_fan says hi"), "torontodao")
    assert not is_relevant(rec(url="https://netflix.com/torontodao"), "torontodao")
    assert not is_relevant(rec(), "torontodao")


def test_partition_preserves_order():
    a = rec(id="a", text="@torontodao one")
    b = rec(id="b", text="unrelated")
    c = rec(id="c", url="https://x.com/torontodao/status/2")
    relevant, other = partition_records([a, b, c], "torontodao")
    assert [r.id for r in relevant] == ["a", "c"]
    assert [r.id for r in other] == ["b"]


def test_profile_page_detection():
    assert is_profile_page("https://x.com/torontodao", "torontodao")
    assert is_profile_page("https://twitter.com/TorontoDAO/media", "torontodao")
    assert not is_profile_page("https://x.com/torontodao/status/123", "torontodao")
    assert not is_profile_page(None, "torontodao")


# ── bio cascade ──────────────────────────────────────────────────────────────

def test_bio_from_profile_page_paragraph(profile_records):
    assert extract_bio(profile_records, "torontodao") == "Building Canada's most vibrant crypto community 🍁"


def test_bio_from_highlight_skips_boilerplate():
    records = [rec(
        url="https://x.com/torontodao/status/1",
        highlights=["12 Followers", "Crypto builders meetup every Thursday"],
    )]
    assert extract_bio(records, "torontodao") == "Crypto builders meetup every Thursday"


def test_bio_from_generic_text_line():
    records = [rec(url="https://x.com/torontodao/status/1", text="short\nWe host hackathons across the city")]
    assert extract_bio(records, "torontodao") == "We host hackathons across the city"


def test_bio_from_meta_description():
    records = [rec(
        url="https://example.com/torontodao",
        text='<meta name="description" content="Community of builders in Toronto">',
    )]
    assert extract_bio(records, "torontodao") == "Community of builders in Toronto"


def test_bio_from_title_fragment():
    records = [rec(
        url="https://x.com/torontodao/status/2",
        title='Toronto DAO on X: "Join us for the winter meetup"',
    )]
    assert extract_bio(records, "torontodao") == "Join us for the winter meetup"


def test_default_bio_with_inferred_descriptor():
    records = [rec(url="https://x.com/torontodao/status/3", title="GitHub dev")]
    assert extract_bio(records, "torontodao") == "@torontodao is a developer sharing updates on X."


def test_default_bio_without_descriptor():
    records = [rec(url="https://x.com/someone/status/1", title="Hi")]
    assert extract_bio(records, "someone") == "@someone shares thoughts and updates on X."


# ── name / image / tweets ────────────────────────────────────────────────────

def test_name_from_title_prefix():
    assert extract_name([rec(title="Toronto DAO (@torontodao) / X")], "torontodao") == "Toronto DAO"


def test_name_skips_generic_site_titles():
    records = [rec(title="Home | X"), rec(title="Jane Doe (@janedoe) / X")]
    assert extract_name(records, "janedoe") == "Jane Doe"


def test_name_defaults_to_capitalized_handle():
    assert extract_name([rec(title="no delimiters here")], "torontodao") == "Torontodao"


def test_image_direct_field_first():
    records = [rec(text="see https://cdn.example.com/other.png", image_url="https://pbs.twimg.com/a.jpg")]
    assert extract_image(records) == "https://pbs.twimg.com/a.jpg"


def test_image_from_extra_info_and_text_and_platform_url():
    assert extract_image([rec(extra_info={"image_url": "https://img.example.com/x.png"})]) == "https://img.example.com/x.png"
    assert extract_image([rec(text="avatar at https://cdn.example.com/pic.png today")]) == "https://cdn.example.com/pic.png"
    assert extract_image([rec(url="https://twitter.com/torontodao/photo/1")]) == "https://twitter.com/torontodao/photo/1"


def test_image_first_record_with_image_wins():
    records = [rec(text="nothing here"), rec(image="https://img.example.com/second.webp")]
    assert extract_image(records) == "https://img.example.com/second.webp"
    assert extract_image([rec(text="nothing")]) is None


def test_tweets_deduplicated_filtered_and_capped():
    records = [
        rec(title="Meetup tonight at the library", text="Meetup tonight at the library\n1,234 Followers\nok"),
        rec(highlights=["Hackathon winners announced today", "Hackathon winners announced today"]),
        rec(text="Grants round two opens next month\nWorkshop on wallets this Saturday"),
    ]
    assert collect_tweets(records) == [
        "Meetup tonight at the library",
        "Hackathon winners announced today",
        "Grants round two opens next month",
        "Workshop on wallets this Saturday",
    ]
    assert len(collect_tweets(records, limit=2)) == 2


def test_tweets_split_long_lines_into_sentences():
    long_line = " ".join(["This is a long sentence about community building in the city."] * 6)
    tweets = collect_tweets([rec(text=long_line)])
    assert tweets == ["This is a long sentence about community building in the city."]


# ── extract_profile_signal ───────────────────────────────────────────────────

def test_signal_from_profile_records(profile_records):
    signal = extract_profile_signal(profile_records, "torontodao")
    assert signal.handle == "torontodao"
    assert signal.name == "Toronto DAO"
    assert signal.bio == "Building Canada's most vibrant crypto community 🍁"
    assert signal.profile_image_url == "https://pbs.twimg.com/profile_images/1/avatar.jpg"
    assert len(signal.tweets) >= 8
    assert len(signal.tweets) == len(set(signal.tweets))


def test_signal_prefers_relevant_records():
    records = [
        rec(url="https://example.com/else", title="Someone Else (@else)", text="An unrelated biography of someone"),
        rec(url="https://x.com/torontodao", title="Toronto DAO (@torontodao) / X", text="Building a crypto community in Toronto"),
    ]
    signal = extract_profile_signal(records, "torontodao")
    assert signal.name == "Toronto DAO"
    assert signal.bio == "Building a crypto community in Toronto"
    assert all("unrelated" not in t for t in signal.tweets)


def test_signal_never_overwrites_handle():
    records = [rec(url="https://x.com/torontodao", title="Other Person (@otherperson)", text="@otherperson likes things a lot")]
    assert extract_profile_signal(records, "torontodao").handle == "torontodao"


def test_signal_respects_tweet_limit(profile_records):
    assert len(extract_profile_signal(profile_records, "torontodao", tweet_limit=3).tweets) == 3


def test_signal_accepts_plain_dicts():
    signal = extract_profile_signal([{"url": "https://x.com/torontodao", "text": "Building things in Toronto daily"}], "torontodao")
    assert signal.bio == "Building things in Toronto daily"


@pytest.mark.parametrize("records", [[], "not records", None, [42], [{"highlights": "nope"}]])
def test_empty_or_malformed_input_raises(records):
    with pytest.raises(ExtractionError):
        extract_profile_signal(records, "torontodao")
