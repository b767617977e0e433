"""KeyForge Adventures from the Archon Arcana wiki (MediaWiki + Cargo API)."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TypedDict

import httpx

from .cards import CardRecord, FaceRef
from .errors import AssetError, ResolutionError
from .images import MissingCardImageError, fetch_cached

ARCHON_ARCANA_API = "https://archonarcana.com/api.php"

HEADERS = {
    "user-agent": "cardsheets/1.0 (keyforge-adventures)",
    "accept": "application/json",
}


class CargoSetInfoRow(TypedDict, total=False):
    SetName: str
    ShortName: str
    SetNumber: str
    ReleaseYear: str
    ReleaseMonth: str


class CargoCardRow(TypedDict, total=False):
    Name: str
    Image: str
    Type: str
    House: str
    Rarity: str


@dataclass(frozen=True)
class Adventure:
    set_name: str
    short_name: str = ""
    set_number: str = ""
    release_year: int | None = None
    release_month: int | None = None

    def __str__(self) -> str:
        short = f" ({self.short_name})" if self.short_name else ""
        number = f" - {self.set_number}" if self.set_number else ""
        return f"{self.set_name}{short}{number}"


@dataclass(frozen=True)
class AmbiguousAdventure:
    matches: list[Adventure]


def fetch_json(params: dict) -> dict:
    clean = {k: str(v) for k, v in params.items() if v is not None}
    try:
        resp = httpx.get(ARCHON_ARCANA_API, params=clean, headers=HEADERS, timeout=None)
    except httpx.HTTPError as e:
        raise ResolutionError(f"Request failed: {e} ({ARCHON_ARCANA_API})") from e
    if resp.status_code >= 400:
        detail = f"\n{resp.text}" if resp.text and len(resp.text) < 500 else ""
        raise ResolutionError(
            f"Request failed: {resp.status_code} {resp.reason_phrase} ({resp.url}){detail}"
        )
    return resp.json()


def cargo_query(
    tables: str,
    fields: str,
    where: str | None = None,
    order_by: str | None = None,
    limit: int = 500,
) -> list[dict]:
    data = fetch_json(
        {
            "action": "cargoquery",
            "format": "json",
            "limit": limit,
            "tables": tables,
            "fields": fields,
            "where": where,
            "order_by": order_by,
        }
    )
    if data.get("error"):
        raise ResolutionError(data["error"].get("info") or "Cargo query failed.")
    return [row.get("title") or {} for row in data.get("cargoquery") or []]


def normalize_query(text: str | None) -> str:
    return re.sub(r"\s+", " ", str(text or "").strip().lower())


def _to_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def list_adventures() -> list[Adventure]:
    rows: list[CargoSetInfoRow] = cargo_query(
        tables="SetInfo",
        fields="SetName,ShortName,SetNumber,ReleaseYear,ReleaseMonth",
        where="IsAdventure=1",
        order_by="ReleaseYear,ReleaseMonth,SetName",
    )
    return [
        Adventure(
            set_name=row.get("SetName") or "",
            short_name=row.get("ShortName") or "",
            set_number=row.get("SetNumber") or "",
            release_year=_to_int(row.get("ReleaseYear")),
            release_month=_to_int(row.get("ReleaseMonth")),
        )
        for row in rows
    ]


def resolve_adventure(
    adventures: list[Adventure], query: str | None
) -> Adventure | AmbiguousAdventure | None:
    """
    Exact matches on set name, short name or set number win over substring
    matches on set name or short name. More than one match is ambiguous.
    """
    normalized = normalize_query(query)
    if not normalized:
        return None

    exact: list[Adventure] = []
    partial: list[Adventure] = []

    for adventure in adventures:
        candidates = [adventure.set_name, adventure.short_name, adventure.set_number]
        if any(normalize_query(c) == normalized for c in candidates if c):
            exact.append(adventure)
            continue
        if normalized in normalize_query(adventure.set_name) or normalized in normalize_query(
            adventure.short_name
        ):
            partial.append(adventure)

    for matches in (exact, partial):
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            return AmbiguousAdventure(matches)
    return None


def derive_image_prefix(set_number: str) -> str:
    """KFA001 -> KFA01-"""
    raw = str(set_number or "").strip()
    match = re.fullmatch(r"KFA0*([0-9]+)", raw, flags=re.IGNORECASE)
    if match is None or int(match[1]) <= 0:
        raise ResolutionError(
            f'Unable to derive card-image prefix from SetNumber "{raw}". Expected e.g. "KFA001".'
        )
    return f"KFA{int(match[1]):02d}-"


def list_adventure_cards(adventure: Adventure) -> list[CardRecord]:
    if not adventure.set_number or not adventure.set_name:
        raise ResolutionError("Adventure is missing SetNumber or SetName.")

    prefix = derive_image_prefix(adventure.set_number)
    rows: list[CargoCardRow] = cargo_query(
        tables="CardData",
        fields="Name,Image,Type,House,Rarity",
        where=f'Image LIKE "{prefix}%"',
        order_by="Image",
        limit=5000,
    )

    return [
        CardRecord(
            name=row.get("Name") or "",
            image_src=(row.get("Image") or "").strip(),
            type=row.get("Type") or "",
            house=row.get("House") or "",
            rarity=row.get("Rarity") or "",
            set_name=adventure.set_name,
            set_number=adventure.set_number,
        )
        for row in rows
        if (row.get("Image") or "").strip()
    ]


def resolve_file_url(file_name: str) -> str:
    """Direct download URL of a wiki file page."""
    safe_name = str(file_name or "").strip()
    if not safe_name:
        raise ResolutionError("A file name is required to resolve a MediaWiki file URL.")

    data = fetch_json(
        {
            "action": "query",
            "format": "json",
            "titles": f"File:{safe_name}",
            "prop": "imageinfo",
            "iiprop": "url",
            "iilimit": 1,
        }
    )
    pages = (data.get("query") or {}).get("pages") or {}
    first_page = next(iter(pages.values()), {})
    image_info = (first_page.get("imageinfo") or [{}])[0]
    direct_url = image_info.get("url")
    if not direct_url:
        title = first_page.get("title") or f"File:{safe_name}"
        raise ResolutionError(f'Unable to resolve MediaWiki file URL for "{title}".')
    return direct_url


def ensure_adventure_image(face: FaceRef, cache_dir: Path, refresh: bool = False) -> Path:
    file_name = face.image_src.strip()
    if not file_name:
        raise MissingCardImageError(face.card.name or "unknown")

    cache_path = cache_dir / file_name
    if cache_path.exists() and not refresh:
        return cache_path

    try:
        url = resolve_file_url(file_name)
    except ResolutionError as e:
        raise AssetError(e.message) from e
    return fetch_cached(url, cache_path, refresh=True)
