import httpx
import pytest

from cardsheets import archon_arcana
from cardsheets.archon_arcana import Adventure, AmbiguousAdventure, derive_image_prefix, resolve_adventure
from cardsheets.cards import CardRecord, FaceRef
from cardsheets.errors import ResolutionError
from cardsheets.images import MissingCardImageError

ADVENTURES = [
    Adventure("Rise of the Keyraken", "ROTK", "KFA001"),
    Adventure("The Abyssal Conspiracy", "TAC", "KFA002"),
    Adventure("Return of the Keyraken", "RETK", "KFA003"),
]


class FakeApi:
    """Stands in for httpx.get and remembers the query parameters it was called with."""

    def __init__(self, *payloads, status_code=200):
        self.payloads = list(payloads)
        self.status_code = status_code
        self.calls = []

    def __call__(self, url, params=None, **kwargs):
        self.calls.append(params)
        request = httpx.Request("GET", url, params=params)
        return httpx.Response(self.status_code, json=self.payloads.pop(0), request=request)


def test_exact_match_beats_partial():
    assert resolve_adventure(ADVENTURES, "rise of the keyraken").set_number == "KFA001"
    assert resolve_adventure(ADVENTURES, "tac").set_number == "KFA002"
    assert resolve_adventure(ADVENTURES, "  KFA003 ").set_name == "Return of the Keyraken"


def test_partial_match():
    assert resolve_adventure(ADVENTURES, "abyssal").set_number == "KFA002"


def test_ambiguous_partial_match():
    result = resolve_adventure(ADVENTURES, "keyraken")

    assert isinstance(result, AmbiguousAdventure)
    assert [a.set_number for a in result.matches] == ["KFA001", "KFA003"]


def test_no_match():
    assert resolve_adventure(ADVENTURES, "dark tidings") is None
    assert resolve_adventure(ADVENTURES, "   ") is None


def test_adventure_str():
    assert str(ADVENTURES[0]) == "Rise of the Keyraken (ROTK) - KFA001"


@pytest.mark.parametrize("set_number,prefix", [("KFA001", "KFA01-"), ("kfa12", "KFA12-"), ("KFA0105", "KFA105-")])
def test_derive_image_prefix(set_number, prefix):
    assert derive_image_prefix(set_number) == prefix


@pytest.mark.parametrize("set_number", ["", "KFA000", "WC01", "KFA1a"])
def test_derive_image_prefix_rejects_bad_numbers(set_number):
    with pytest.raises(ResolutionError):
        derive_image_prefix(set_number)


def test_list_adventures(monkeypatch):
    api = FakeApi(
        {
            "cargoquery": [
                {
                    "title": {
                        "SetName": "Rise of the Keyraken",
                        "ShortName": "ROTK",
                        "SetNumber": "KFA001",
                        "ReleaseYear": "2022",
                        "ReleaseMonth": "",
                    }
                }
            ]
        }
    )
    monkeypatch.setattr(archon_arcana.httpx, "get", api)

    adventures = archon_arcana.list_adventures()

    assert adventures == [Adventure("Rise of the Keyraken", "ROTK", "KFA001", 2022, None)]
    assert api.calls[0]["action"] == "cargoquery"
    assert api.calls[0]["where"] == "IsAdventure=1"
    assert "order_by" in api.calls[0]


def test_list_adventure_cards_skips_rows_without_image(monkeypatch):
    api = FakeApi(
        {
            "cargoquery": [
                {"title": {"Name": "Keyraken", "Image": "KFA01-001.png", "Type": "Creature"}},
                {"title": {"Name": "Broken", "Image": " "}},
            ]
        }
    )
    monkeypatch.setattr(archon_arcana.httpx, "get", api)

    cards = archon_arcana.list_adventure_cards(ADVENTURES[0])

    assert [(c.name, c.image_src, c.set_number) for c in cards] == [("Keyraken", "KFA01-001.png", "KFA001")]
    assert api.calls[0]["where"] == 'Image LIKE "KFA01-%"'
    assert api.calls[0]["limit"] == "5000"


def test_cargo_error_payload(monkeypatch):
    monkeypatch.setattr(archon_arcana.httpx, "get", FakeApi({"error": {"info": "Bad table"}}))

    with pytest.raises(ResolutionError, match="Bad table"):
        archon_arcana.list_adventures()


def test_http_error_status(monkeypatch):
    monkeypatch.setattr(archon_arcana.httpx, "get", FakeApi({}, status_code=503))

    with pytest.raises(ResolutionError, match="Request failed: 503"):
        archon_arcana.list_adventures()


def test_resolve_file_url(monkeypatch):
    api = FakeApi({"query": {"pages": {"12": {"title": "File:KFA01-001.png", "imageinfo": [{"url": "https://x/a.png"}]}}}})
    monkeypatch.setattr(archon_arcana.httpx, "get", api)

    assert archon_arcana.resolve_file_url("KFA01-001.png") == "https://x/a.png"
    assert api.calls[0]["titles"] == "File:KFA01-001.png"


def test_resolve_file_url_without_imageinfo(monkeypatch):
    monkeypatch.setattr(archon_arcana.httpx, "get", FakeApi({"query": {"pages": {"-1": {"title": "File:nope.png"}}}}))

    with pytest.raises(ResolutionError, match='"File:nope.png"'):
        archon_arcana.resolve_file_url("nope.png")


def test_cached_adventure_image_skips_network(tmp_path, monkeypatch):
    (tmp_path / "KFA01-001.png").write_bytes(b"cached")
    monkeypatch.setattr(archon_arcana.httpx, "get", FakeApi())
    face = FaceRef(CardRecord(name="Keyraken", image_src="KFA01-001.png"), "KFA01-001.png", "front")

    assert archon_arcana.ensure_adventure_image(face, tmp_path) == tmp_path / "KFA01-001.png"


def test_adventure_image_without_file_name(tmp_path):
    face = FaceRef(CardRecord(name="Keyraken"), "", "front")

    with pytest.raises(MissingCardImageError, match='"Keyraken"'):
        archon_arcana.ensure_adventure_image(face, tmp_path)
