import json

import httpx
import pytest

from cardsheets import cardsdb
from cardsheets.cards import CardRecord, FaceRef
from cardsheets.cardsdb import CardDbClient, normalize_card, parse_deck_id
from cardsheets.errors import ResolutionError

RAW_CARDS = [
    {
        "code": "01001",
        "name": "Aragorn",
        "imagesrc": "/bundles/cards/01001.png",
        "pack_code": "Core",
        "pack_name": "Core Set",
        "position": 1,
        "type_code": "hero",
    },
    {
        "code": "99001",
        "name": "Double",
        "imagesrc": "/bundles/cards/99001a.png",
        "backimagesrc": "/bundles/cards/99001b.png",
        "double_sided": True,
        "type_name": "Quest",
        "linked_card": {"code": "99002", "name": "Linked", "imagesrc": "/bundles/cards/99002.png"},
        "linked_to_code": "99002",
    },
    {"code": "", "name": "No code"},
]


class FakeSite:
    """Serves canned JSON per URL path; anything else is a 404."""

    def __init__(self, routes):
        self.routes = routes
        self.requested = []

    def __call__(self, url, **kwargs):
        request = httpx.Request("GET", url)
        path = request.url.path
        self.requested.append(path)
        if path not in self.routes:
            return httpx.Response(404, request=request)
        return httpx.Response(200, json=self.routes[path], request=request)


def test_normalize_card():
    card = normalize_card(RAW_CARDS[1])

    assert card.image_src == "/bundles/cards/99001a.png"
    assert card.back_image_src == "/bundles/cards/99001b.png"
    assert card.double_sided
    assert card.type == "quest"
    assert card.linked_code == "99002"
    assert card.linked_card == CardRecord(name="Linked", code="99002", image_src="/bundles/cards/99002.png")

    hero = normalize_card(RAW_CARDS[0])
    assert hero.pack_code == "core"
    assert hero.type == "hero"
    assert hero.position == 1

    assert normalize_card(RAW_CARDS[2]) is None
    assert normalize_card("junk") is None


@pytest.mark.parametrize(
    "text,expected",
    [
        ("12345", (12345, False)),
        ("https://ringsdb.com/decklist/view/12345/some-deck-1.0", (12345, False)),
        ("https://ringsdb.com/api/public/decklist/12345", (12345, False)),
        ("https://marvelcdb.com/deck/view/777", (777, True)),
        ("https://marvelcdb.com/api/public/deck/777.json", (777, True)),
    ],
)
def test_parse_deck_id(text, expected):
    assert parse_deck_id(text) == expected


def test_parse_deck_id_rejects_other_urls():
    with pytest.raises(ResolutionError, match="Could not extract a deck id"):
        parse_deck_id("https://ringsdb.com/card/01001")


def test_load_cards_downloads_once_then_uses_cache(tmp_path, monkeypatch):
    cache = tmp_path / "data" / "cards.json"
    site = FakeSite({"/api/public/cards/": RAW_CARDS})
    monkeypatch.setattr(cardsdb.httpx, "get", site)
    client = CardDbClient("https://ringsdb.com/", cache)

    cards = client.load_cards()
    assert [c.code for c in cards] == ["01001", "99001"]
    assert json.loads(cache.read_text(encoding="utf-8")) == RAW_CARDS

    site.routes.clear()
    assert [c.code for c in client.load_cards()] == ["01001", "99001"]
    assert site.requested == ["/api/public/cards/"]


def test_unreadable_cache_is_replaced(tmp_path, monkeypatch, capsys):
    cache = tmp_path / "cards.json"
    cache.write_text("{not json", encoding="utf-8")
    monkeypatch.setattr(cardsdb.httpx, "get", FakeSite({"/api/public/cards/": RAW_CARDS[:1]}))

    cards = CardDbClient("https://ringsdb.com", cache).load_cards()

    assert [c.name for c in cards] == ["Aragorn"]
    assert "Ignoring unreadable card cache" in capsys.readouterr().err


def test_unexpected_cards_payload(tmp_path, monkeypatch):
    monkeypatch.setattr(cardsdb.httpx, "get", FakeSite({"/api/public/cards/": {"oops": 1}}))

    with pytest.raises(ResolutionError, match="expected an array"):
        CardDbClient("https://ringsdb.com", tmp_path / "cards.json").load_cards()


def test_fetch_decklist_falls_back_to_private_deck(tmp_path, monkeypatch):
    site = FakeSite({"/api/public/deck/42": {"id": 42, "slots": {"01001": 1}}})
    monkeypatch.setattr(cardsdb.httpx, "get", site)

    deck = CardDbClient("https://ringsdb.com", tmp_path / "c.json").fetch_decklist("42")

    assert deck["id"] == 42
    assert site.requested == ["/api/public/decklist/42", "/api/public/deck/42"]


def test_private_deck_url_tries_deck_endpoint_first(tmp_path, monkeypatch):
    site = FakeSite({"/api/public/deck/42": {"id": 42}})
    monkeypatch.setattr(cardsdb.httpx, "get", site)

    CardDbClient("https://ringsdb.com", tmp_path / "c.json").fetch_decklist("https://ringsdb.com/deck/view/42")

    assert site.requested == ["/api/public/deck/42"]


def test_missing_deck(tmp_path, monkeypatch):
    monkeypatch.setattr(cardsdb.httpx, "get", FakeSite({}))

    with pytest.raises(ResolutionError, match='Deck "42" was not found'):
        CardDbClient("https://ringsdb.com", tmp_path / "c.json").fetch_decklist("42")


def test_image_url_and_cached_image(tmp_path):
    client = CardDbClient("https://ringsdb.com", tmp_path / "c.json")
    assert client.image_url("/bundles/cards/01001.png") == "https://ringsdb.com/bundles/cards/01001.png"
    assert client.image_url("https://cdn.example/x.jpg") == "https://cdn.example/x.jpg"

    card = CardRecord(name="Aragorn", code="01001", image_src="/bundles/cards/01001.png")
    cached = tmp_path / "aragorn-01001-ringsdb-com.png"
    cached.write_bytes(b"cached")

    assert client.ensure_card_image(FaceRef(card, card.image_src, "front"), tmp_path) == cached
