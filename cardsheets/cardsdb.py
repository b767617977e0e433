"""
RingsDB / MarvelCDB style card databases.

Both sites expose the same public API: /api/public/cards/ for the full card pool
and /api/public/decklist/<id> (or /api/public/deck/<id> for private decks) for a
deck, whose hero/slot/sideboard sections map card codes to counts.
"""

import json
import re
from pathlib import Path
from typing import TypedDict
from urllib.parse import urljoin, urlparse

import click
import httpx

from .cards import CardRecord, FaceRef
from .errors import ResolutionError
from .images import MissingCardImageError, card_cache_file_name, fetch_cached

RINGSDB_BASE_URL = "https://ringsdb.com"
MARVELCDB_BASE_URL = "https://marvelcdb.com"


class CardDbCardResponse(TypedDict, total=False):
    code: str
    name: str
    imagesrc: str
    backimagesrc: str
    linked_to_code: str
    linked_card: "CardDbCardResponse"
    double_sided: bool
    pack_code: str
    pack_name: str
    position: int
    type_code: str
    type_name: str


class CardDbDeckResponse(TypedDict, total=False):
    id: int
    name: str
    hero_code: str
    hero_name: str
    heroes: dict[str, int]
    slots: dict[str, int]
    sideslots: dict[str, int]
    sideboard: dict[str, int]


def _text(value) -> str:
    return str(value).strip() if value is not None else ""


def _position(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_card(raw: CardDbCardResponse) -> CardRecord | None:
    if not isinstance(raw, dict):
        return None

    code = _text(raw.get("code"))
    name = _text(raw.get("name"))
    if not code or not name:
        return None

    linked = raw.get("linked_card")
    linked_card = normalize_card(linked) if isinstance(linked, dict) else None

    return CardRecord(
        name=name,
        code=code,
        image_src=_text(raw.get("imagesrc")),
        back_image_src=_text(raw.get("backimagesrc")),
        linked_code=_text(raw.get("linked_to_code")),
        linked_card=linked_card,
        double_sided=bool(raw.get("double_sided")),
        pack_code=_text(raw.get("pack_code")).lower(),
        pack_name=_text(raw.get("pack_name")),
        position=_position(raw.get("position")),
        type=(_text(raw.get("type_name")) or _text(raw.get("type_code"))).lower(),
    )


def normalize_cards(raw_cards: list) -> list[CardRecord]:
    cards = (normalize_card(raw) for raw in raw_cards or [])
    return [c for c in cards if c is not None]


def parse_deck_id(text: str) -> tuple[int, bool]:
    """
    Accept a bare id or a deck URL. Returns (id, is_private_deck); private decks
    live under /deck/ instead of /decklist/.
    """
    raw = str(text or "").strip()
    if raw.isdigit():
        return int(raw), False

    path = urlparse(raw).path
    for pattern, private in (
        (r"/decklist/view/(\d+)", False),
        (r"/api/public/decklist/(\d+)", False),
        (r"/deck/view/(\d+)", True),
        (r"/api/public/deck/(\d+)", True),
    ):
        match = re.search(pattern, path, flags=re.IGNORECASE)
        if match:
            return int(match[1]), private

    raise ResolutionError(f'Could not extract a deck id from "{raw}".')


class CardDbClient:
    def __init__(self, base_url: str, data_cache: Path):
        self.base_url = base_url.rstrip("/") or RINGSDB_BASE_URL
        self.data_cache = Path(data_cache)

    def _get_json(self, path: str):
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        try:
            resp = httpx.get(url, headers={"accept": "application/json"}, timeout=None)
        except httpx.HTTPError as e:
            raise ResolutionError(f"Request failed: {e} ({url})") from e
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise ResolutionError(f"Request failed: {resp.status_code} {resp.reason_phrase} ({url})")
        return resp.json()

    def load_cards(self, refresh: bool = False) -> list[CardRecord]:
        if not refresh and self.data_cache.exists():
            click.echo(f"Opening card DB at {self.data_cache}", err=True)
            try:
                with open(self.data_cache, encoding="utf-8") as json_file:
                    cached = json.load(json_file)
                if isinstance(cached, list):
                    return normalize_cards(cached)
            except (OSError, json.JSONDecodeError):
                click.secho(f"Ignoring unreadable card cache {self.data_cache}", err=True, fg="yellow")

        click.echo(f"Downloading cards from {self.base_url}", err=True)
        raw = self._get_json("/api/public/cards/")
        if not isinstance(raw, list):
            raise ResolutionError(f"{self.base_url} returned an unexpected payload (expected an array).")

        self.data_cache.parent.mkdir(parents=True, exist_ok=True)
        with open(self.data_cache, "w", encoding="utf-8") as json_file:
            json.dump(raw, json_file, indent=2)
        return normalize_cards(raw)

    def fetch_decklist(self, deck: str) -> CardDbDeckResponse:
        deck_id, private = parse_deck_id(deck)
        endpoints = [f"/api/public/decklist/{deck_id}", f"/api/public/deck/{deck_id}"]
        if private:
            endpoints.reverse()

        for endpoint in endpoints:
            data = self._get_json(endpoint)
            if isinstance(data, dict) and data:
                return data

        raise ResolutionError(f'Deck "{deck_id}" was not found on {self.base_url}.')

    def image_url(self, image_src: str) -> str:
        raw = image_src.strip()
        if re.match(r"^https?://", raw, flags=re.IGNORECASE):
            return raw
        return urljoin(self.base_url + "/", raw.lstrip("/"))

    def ensure_card_image(self, face: FaceRef, cache_dir: Path, refresh: bool = False, upscale: bool = False) -> Path:
        if not face.image_src.strip():
            raise MissingCardImageError(face.label())

        url = self.image_url(face.image_src)
        cache_path = cache_dir / card_cache_file_name(face, url)
        return fetch_cached(url, cache_path, refresh=refresh, upscale_4x=upscale)
