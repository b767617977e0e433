"""
Deck list text: parsing, card resolution and formatting.

A deck list is one entry per line, ``<count> <card name> [code]``, optionally with
``[skipback]`` / ``[skipproxy]`` keywords. Blank lines, ``#`` and ``//`` comments and
``/* ... */`` blocks are ignored. ``[include:other]`` splices another file in
(``.txt`` is assumed when there is no extension) and ``[proxypagebreak]`` starts a
new sheet.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import click

from .cards import PAGE_BREAK, CardRecord, PageBreak, PrintEntry, PrintItem
from .errors import ResolutionError
from .text import normalize_name

KNOWN_KEYWORDS = {"skipback", "skipproxy"}

SECTION_ALIASES = {
    "hero": "heroes",
    "heroes": "heroes",
    "ally": "allies",
    "allies": "allies",
    "attachment": "attachments",
    "attachments": "attachments",
    "event": "events",
    "events": "events",
    "side quest": "side_quests",
    "side quests": "side_quests",
    "sidequests": "side_quests",
    "contract": "contracts",
    "contracts": "contracts",
    "deck": "deck",
    "main deck": "deck",
    "player deck": "deck",
    "sideboard": "sideboard",
}


@dataclass(frozen=True)
class PackHint:
    """Pack/position suffix exported by the deck sites, e.g. "(Core Set, 73)"."""

    pack_code: str | None = None
    pack_name: str | None = None
    position: int | None = None


@dataclass
class DeckEntry:
    count: int
    name: str
    code: str | None = None
    keywords: set[str] = field(default_factory=set)
    section: str = "deck"
    hint: PackHint | None = None
    source: str = ""

    @property
    def skip_back(self) -> bool:
        return "skipback" in self.keywords

    @property
    def skip_proxy(self) -> bool:
        return "skipproxy" in self.keywords


type DeckLine = DeckEntry | PageBreak


class AmbiguousCardError(ResolutionError):
    def __init__(self, entry: DeckEntry, candidates: list[CardRecord]):
        self.entry = entry
        self.candidates = candidates
        example = candidates[0].code if candidates and candidates[0].code else "01001"
        super().__init__(
            f'Card "{entry.name}" is ambiguous. Add a code like "[{example}]" to disambiguate.'
        )


def strip_block_comments(text: str) -> str:
    # keep the newlines so line numbers still point at the right line
    return re.sub(r"/\*.*?\*/", lambda m: "\n" * m[0].count("\n"), text, flags=re.DOTALL)


def strip_line_comment(line: str) -> str:
    trimmed = line.lstrip()
    if trimmed.startswith("#") or trimmed.startswith("//"):
        return ""
    return re.split(r"\s//", line, maxsplit=1)[0]


def detect_section_header(line: str) -> str | None:
    normalized = re.sub(r"\s+", " ", line).strip().lower().rstrip(":").strip()
    normalized = re.sub(r"\(\s*\d+\s*\)$", "", normalized).strip()
    return SECTION_ALIASES.get(normalized)


def parse_name_with_code(text: str) -> tuple[str, str | None, set[str]]:
    """Split trailing bracket groups into keywords and a card code."""
    name = text.strip()
    code = None
    keywords: set[str] = set()

    while match := re.search(r"\s*\[([^\]]*)\]\s*$", name):
        token = match[1].strip()
        name = name[: match.start()].rstrip()
        if token.lower() in KNOWN_KEYWORDS:
            keywords.add(token.lower())
        elif token and code is None:
            code = token

    return name, code, keywords


def parse_pack_hint(suffix: str) -> PackHint | None:
    raw = suffix.strip()
    if not raw:
        return None

    if "," in raw:
        pack_part, position_part = (p.strip() for p in raw.split(",", 1))
    else:
        tokens = raw.split()
        if tokens and tokens[-1].isdigit():
            pack_part, position_part = " ".join(tokens[:-1]), tokens[-1]
        else:
            pack_part, position_part = raw, ""

    position = int(position_part) if position_part.isdigit() else None
    pack = pack_part.lower().strip()
    if pack and re.fullmatch(r"[a-z0-9]+", pack):
        return PackHint(pack_code=pack, position=position)
    return PackHint(pack_name=pack_part or None, position=position)


def split_pack_suffix(raw_name: str) -> tuple[str, PackHint | None]:
    """Gandalf (Core Set, 73) -> ("Gandalf", hint); subtitles without digits are kept."""
    raw = raw_name.strip()
    match = re.search(r"\s*\(([^)]*\d[^)]*)\)\s*$", raw)
    if not match:
        return raw, None
    name = raw[: match.start()].strip()
    return name or raw, parse_pack_hint(match[1])


def resolve_include_path(target: str, base_dir: Path) -> Path:
    path = Path(target)
    if not path.suffix:
        path = path.with_name(path.name + ".txt")
    return (base_dir / path).resolve()


def parse_deck_line(text: str, section: str = "deck") -> DeckEntry | None:
    match = re.fullmatch(r"(\d+)\s*[x×](?![a-z])\s*(.+)", text) or re.fullmatch(r"(\d+)\s+(.+)", text)
    if match:
        count, raw_name = int(match[1]), match[2]
    elif section == "heroes":
        count, raw_name = 1, text
    else:
        return None

    if count <= 0:
        return None

    name, code, keywords = parse_name_with_code(raw_name)
    name, hint = split_pack_suffix(name)
    if not name:
        return None
    return DeckEntry(count=count, name=name, code=code, keywords=keywords, section=section, hint=hint)


def parse_deck_list(
    text: str,
    base_dir: str | Path | None = None,
    source: str = "<stdin>",
    section: str = "deck",
    include_stack: tuple[Path, ...] = (),
) -> list[DeckLine]:
    base_dir = Path(base_dir or Path.cwd())
    entries: list[DeckLine] = []

    for line_number, line in enumerate(strip_block_comments(text or "").splitlines(), start=1):
        trimmed = strip_line_comment(line).strip()
        if not trimmed:
            continue

        if trimmed.lower() == "[proxypagebreak]":
            entries.append(PAGE_BREAK)
            continue

        include = re.fullmatch(r"\[include:([^\]]*)\]", trimmed, flags=re.IGNORECASE)
        if include:
            target = include[1].strip()
            if not target:
                click.secho(f'Skipping line "{line}" - include target is missing', err=True, fg="yellow")
                continue

            include_path = resolve_include_path(target, base_dir)
            if include_path in include_stack:
                click.secho(
                    f'Skipping include "{target}" - detected a circular reference', err=True, fg="yellow"
                )
                continue

            try:
                include_text = include_path.read_text(encoding="utf-8")
            except OSError as e:
                click.secho(f'Skipping include "{target}" - {e.strerror}', err=True, fg="yellow")
                continue

            entries.extend(
                parse_deck_list(
                    include_text,
                    base_dir=include_path.parent,
                    source=str(include_path),
                    section=section,
                    include_stack=(*include_stack, include_path),
                )
            )
            continue

        header = detect_section_header(trimmed)
        if header:
            section = header
            continue

        entry = parse_deck_line(trimmed, section)
        if entry is None:
            click.secho(
                f'Skipping line "{line}" - expected format "<count> <card name>"', err=True, fg="yellow"
            )
            continue

        entry.source = f"{source}:{line_number}"
        entries.append(entry)

    return entries


def count_deck_entries(entries: list[DeckLine]) -> int:
    return sum(e.count for e in entries if isinstance(e, DeckEntry))


def split_proxy_entries(entries: list[DeckLine]) -> tuple[list[DeckLine], int]:
    """Drop [skipproxy] entries; returns the kept lines and how many copies were skipped."""
    kept: list[DeckLine] = []
    skipped = 0
    for entry in entries:
        if isinstance(entry, DeckEntry) and entry.skip_proxy:
            skipped += entry.count
        else:
            kept.append(entry)
    return kept, skipped


def build_card_lookup(cards: list[CardRecord]) -> dict[str, list[CardRecord]]:
    """Normalized name or code -> distinct cards sharing it."""
    lookup: dict[str, list[CardRecord]] = {}
    for card in cards:
        if not card.code:
            continue
        for key in (card.code, card.name):
            normalized = normalize_name(key)
            if not normalized:
                continue
            matches = lookup.setdefault(normalized, [])
            if all(c.code != card.code for c in matches):
                matches.append(card)
    return lookup


def disambiguate_by_hint(hint: PackHint | None, candidates: list[CardRecord]) -> CardRecord | None:
    if hint is None:
        return None

    filtered = candidates
    if hint.pack_code:
        filtered = [c for c in filtered if normalize_name(c.pack_code) == hint.pack_code]
    elif hint.pack_name:
        filtered = [c for c in filtered if normalize_name(c.pack_name) == normalize_name(hint.pack_name)]
    if hint.position is not None:
        filtered = [c for c in filtered if c.position == hint.position]

    return filtered[0] if len(filtered) == 1 else None


def resolve_card(
    entry: DeckEntry, lookup: Mapping[str, list[CardRecord]], card_index: Mapping[str, CardRecord]
) -> CardRecord:
    if entry.code:
        card = card_index.get(entry.code)
        if card is None:
            raise ResolutionError(f'Card code "{entry.code}" was not found in the card data.')
        return card

    matches = lookup.get(normalize_name(entry.name)) or []
    if not matches:
        raise ResolutionError(f'Card "{entry.name}" was not found in the card data.')
    if len(matches) == 1:
        return matches[0]

    card = disambiguate_by_hint(entry.hint, matches)
    if card is None:
        raise AmbiguousCardError(entry, matches)
    return card


def format_resolution_failures(failures: list[tuple[DeckEntry, ResolutionError]]) -> str:
    count = len(failures)
    lines = [f"Failed to resolve {count} deck entr{'y' if count == 1 else 'ies'}:"]

    for entry, error in failures:
        where = f" - {entry.source}" if entry.source else ""
        lines.append(f"- {entry.name} (x{entry.count}) [{entry.section}]{where}")
        lines.append(f"  - {error.message}")
        if isinstance(error, AmbiguousCardError):
            for card in error.candidates:
                pack = card.pack_name or card.pack_code or "unknown pack"
                lines.append(f"  - candidate: {card.code or '(no code)'} - {card.name} ({pack})")

    return "\n".join(lines)


def resolve_deck_cards(
    entries: list[DeckLine],
    lookup: Mapping[str, list[CardRecord]],
    card_index: Mapping[str, CardRecord],
) -> list[PrintEntry]:
    """Expand every entry into `count` print items; all failures are reported together."""
    items: list[PrintEntry] = []
    failures: list[tuple[DeckEntry, ResolutionError]] = []

    for entry in entries:
        if isinstance(entry, PageBreak):
            items.append(PAGE_BREAK)
            continue

        try:
            card = resolve_card(entry, lookup, card_index)
        except ResolutionError as e:
            failures.append((entry, e))
            continue

        items.extend(PrintItem(card, skip_back=entry.skip_back) for _ in range(entry.count))

    if failures:
        raise ResolutionError(format_resolution_failures(failures))

    return items


def entries_from_api_deck(
    deck: Mapping, card_index: Mapping[str, CardRecord] | None = None
) -> list[DeckEntry]:
    """
    Turn a deck API payload into entries. ``slots`` repeats the hero codes, so those
    are only listed under heroes. MarvelCDB names its hero with ``hero_code``.
    """
    card_index = card_index or {}
    entries: list[DeckEntry] = []
    hero_codes: set[str] = set()

    hero_code = str(deck.get("hero_code") or "")
    if hero_code:
        hero = card_index.get(hero_code)
        entries.append(
            DeckEntry(1, hero.name if hero else deck.get("hero_name") or hero_code, hero_code, section="heroes")
        )
        hero_codes.add(hero_code)

    sideboard = deck.get("sideslots") or deck.get("sideboard")
    for section, slots in (("heroes", deck.get("heroes")), ("deck", deck.get("slots")), ("sideboard", sideboard)):
        if not isinstance(slots, Mapping):
            continue
        for code, count in slots.items():
            code = str(code).strip()
            if not code or (section != "sideboard" and code in hero_codes):
                continue
            if section == "heroes":
                hero_codes.add(code)
            try:
                count = int(count)
            except (TypeError, ValueError):
                continue
            if count <= 0:
                continue
            card = card_index.get(code)
            entries.append(DeckEntry(count, card.name if card else code, code, section=section))

    return entries


def format_deck_lines(entries: list[DeckLine], include_codes: bool = True) -> str:
    lines: list[str] = []
    current_section = None

    for entry in entries:
        if isinstance(entry, PageBreak):
            lines.append("[proxypagebreak]")
            continue

        if entry.section != current_section:
            if lines:
                lines.append("")
            lines.append(entry.section.replace("_", " ").capitalize() + ":")
            current_section = entry.section

        base = f"{entry.count} {entry.name}"
        lines.append(f"{base} [{entry.code}]" if include_codes and entry.code else base)

    return "\n".join(lines).strip()
