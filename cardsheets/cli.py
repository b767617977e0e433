import functools
from pathlib import Path
from urllib.parse import urlparse

import click
import pyperclip
import yaml

from . import archon_arcana, odds
from .archon_arcana import AmbiguousAdventure
from .cards import PrintItem, build_card_index
from .cardsdb import MARVELCDB_BASE_URL, RINGSDB_BASE_URL, CardDbClient
from .config import DEFAULT_CACHE_ROOT, SheetOptions, resolve_name_and_output, resolve_output_path
from .decklist import (
    DeckEntry,
    build_card_lookup,
    count_deck_entries,
    entries_from_api_deck,
    format_deck_lines,
    parse_deck_list,
    resolve_deck_cards,
    split_proxy_entries,
)
from .errors import ConfigError, ResolutionError
from .fonts import build_font_sheet_pdf, parse_font_overrides
from .pdf import write_pdf
from .pdf_builder import build_proxy_pdf, plural
from .ruler_grid import build_ruler_grid_pdf
from .stickers import build_sticker_sheet_pdf, load_sticker_config
from .text import sanitize_file_name
from .units import CARD_HEIGHT_MM, CARD_WIDTH_MM, CUT_MARK_LENGTH_MM, PAGE_SIZE_CHOICES

POSITIVE = click.FloatRange(min=0, min_open=True)


def sheet_options(default_scale: float):
    """Grid, card size and page flags shared by every proxy command."""

    def decorator(f):
        options = [
            click.option("--grid-size", type=click.IntRange(min=1), default=3, show_default=True, help="Grid size (NxN)."),
            click.option(
                "--card-width-mm", type=POSITIVE, default=CARD_WIDTH_MM, show_default=True, help="Card width in millimetres."
            ),
            click.option(
                "--card-height-mm", type=POSITIVE, default=CARD_HEIGHT_MM, show_default=True, help="Card height in millimetres."
            ),
            click.option(
                "--cut-mark-length-mm",
                type=POSITIVE,
                default=CUT_MARK_LENGTH_MM,
                show_default=True,
                help="Length of cut marks in millimetres.",
            ),
            click.option(
                "--scale",
                type=click.FloatRange(0, 1, min_open=True),
                default=default_scale,
                show_default=True,
                help="Scale factor for card size (below 1 for tight sleeves).",
            ),
            click.option("--page-size", type=click.Choice(PAGE_SIZE_CHOICES), default="a4", show_default=True),
        ]
        for option in reversed(options):
            f = option(f)
        return f

    return decorator


def make_sheet_options(label: str, kwargs: dict) -> SheetOptions:
    return SheetOptions(
        grid_size=kwargs["grid_size"],
        card_width_mm=kwargs["card_width_mm"],
        card_height_mm=kwargs["card_height_mm"],
        cut_mark_length_mm=kwargs["cut_mark_length_mm"],
        scale_factor=kwargs["scale"],
        page_size=kwargs["page_size"],
        label=label,
    )


def read_input_text(input_path: str | None, clipboard: bool = False) -> tuple[str, Path, str]:
    """Text, base directory for includes and a source label; clipboard, file, or stdin."""
    if clipboard:
        return pyperclip.paste(), Path.cwd(), "<clipboard>"

    if input_path and input_path != "-":
        path = Path(input_path).resolve()
        try:
            return path.read_text(encoding="utf-8"), path.parent, str(path)
        except OSError as e:
            raise ConfigError(f"Unable to read --input: {path} ({e.strerror})", header="") from e

    stdin = click.get_text_stream("stdin")
    if input_path is None and stdin.isatty():
        return "", Path.cwd(), "<stdin>"
    return stdin.read(), Path.cwd(), "<stdin>"


def default_data_cache(base_url: str) -> Path:
    host = sanitize_file_name(urlparse(base_url).hostname) or "cards"
    return DEFAULT_CACHE_ROOT / f"{host}-cards.json"


@click.group
def cli():
    pass


@cli.command("adventure", short_help="Proxy sheet for a KeyForge Adventure from Archon Arcana.")
@click.argument("name", required=False)
@click.option("--list", "list_only", is_flag=True, help="List known adventures and exit.")
@click.option("--cards", "cards_only", is_flag=True, help="Print the adventure card list and exit.")
@click.option("-o", "--output", type=str, help="Output PDF filename.")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CACHE_ROOT / "keyforge-adventures",
    show_default=True,
    help="Cache directory for downloaded card images.",
)
@click.option("--refresh", is_flag=True, help="Re-download cached card images.")
@sheet_options(default_scale=0.99)
def adventure(name, list_only, cards_only, output, cache_dir, refresh, **kwargs):
    adventures = archon_arcana.list_adventures()

    if list_only:
        if not adventures:
            click.echo("No KeyForge Adventures found.")
            return
        click.echo("KeyForge Adventures (Archon Arcana):")
        for a in adventures:
            click.echo(f"- {a}")
        return

    if not (name or "").strip():
        raise ResolutionError("Missing adventure name. Use --list to see known adventures.")

    selection = archon_arcana.resolve_adventure(adventures, name)
    if selection is None:
        raise ResolutionError(f'Unknown adventure "{name}". Use --list to see known adventures.')
    if isinstance(selection, AmbiguousAdventure):
        lines = [f'Adventure "{name}" is ambiguous. Matches:']
        lines.extend(f"- {a}" for a in selection.matches)
        raise ResolutionError("\n".join(lines))

    cards = archon_arcana.list_adventure_cards(selection)
    if not cards:
        raise ResolutionError(f'No cards found for "{selection.set_name}" ({selection.set_number}).')

    if cards_only:
        for card in cards:
            click.echo(card.name)
        return

    click.echo(f"Retrieved {plural(len(cards), 'card')} for {selection}.")
    cache_dir = Path(cache_dir).resolve()
    output_path = resolve_output_path(output, selection.set_name, "keyforge-adventure")
    options = make_sheet_options(selection.set_name, kwargs)

    pdf_doc = build_proxy_pdf(
        [PrintItem(c) for c in cards],
        options,
        functools.partial(archon_arcana.ensure_adventure_image, cache_dir=cache_dir, refresh=refresh),
        placeholders=True,
    )
    write_pdf(pdf_doc, output_path)


@cli.command("deck", short_help="Proxy sheet for a RingsDB / MarvelCDB deck list.")
@click.option("-i", "--input", "input_path", type=str, help="Deck list file (- or omitted reads stdin).")
@click.option("--clipboard", is_flag=True, help="Read the deck list from the clipboard.")
@click.option("--deck", "deck_ref", type=str, help="Fetch a published deck by id or URL instead of reading text.")
@click.option("--base-url", default=RINGSDB_BASE_URL, show_default=True, help=f"Card database URL, e.g. {MARVELCDB_BASE_URL}.")
@click.option("--data-cache", type=click.Path(dir_okay=False, path_type=Path), help="Where to cache the cards JSON.")
@click.option("--refresh-data", is_flag=True, help="Re-download the cards JSON into the cache.")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CACHE_ROOT / "card-images",
    show_default=True,
    help="Cache directory for downloaded card images.",
)
@click.option("--refresh", is_flag=True, help="Re-download cached card images.")
@click.option("--upscale", is_flag=True, help="Upscale downloaded images 4x before caching.")
@click.option("-n", "--name", default="deck", type=str, help="The name of your deck!")
@click.option("-o", "--output", type=str, help="Output PDF path (defaults to the deck name).")
@click.option(
    "--expected-size",
    type=click.IntRange(min=0),
    default=0,
    help="Warn when the total card count differs (0 disables).",
)
@sheet_options(default_scale=0.97)
def deck(
    input_path,
    clipboard,
    deck_ref,
    base_url,
    data_cache,
    refresh_data,
    cache_dir,
    refresh,
    upscale,
    name,
    output,
    expected_size,
    **kwargs,
):
    client = CardDbClient(base_url, data_cache or default_data_cache(base_url))
    deck_title = None

    if deck_ref:
        api_deck = client.fetch_decklist(deck_ref)
        cards = client.load_cards(refresh=refresh_data)
        card_index = build_card_index(cards)
        entries = entries_from_api_deck(api_deck, card_index)
        if name == "deck":
            deck_title = (api_deck.get("name") or "").strip() or None
    else:
        text, base_dir, source = read_input_text(input_path, clipboard)
        if not text.strip():
            raise ConfigError("Deck list is empty. Provide --input, --clipboard or pipe data to stdin.", header="")
        stack = (Path(source),) if input_path and input_path != "-" and not clipboard else ()
        entries = parse_deck_list(text, base_dir=base_dir, source=source, include_stack=stack)
        cards = client.load_cards(refresh=refresh_data)
        card_index = build_card_index(cards)

    if not any(isinstance(e, DeckEntry) for e in entries):
        raise ResolutionError("No valid deck entries were found.")

    total = count_deck_entries(entries)
    if expected_size and total != expected_size:
        diff = total - expected_size
        direction = "over" if diff > 0 else "under"
        click.secho(
            f"Warning: deck has {total} cards ({abs(diff)} {direction} expected {expected_size}).",
            err=True,
            fg="yellow",
        )

    entries, skipped = split_proxy_entries(entries)
    if not any(isinstance(e, DeckEntry) for e in entries):
        raise ResolutionError("All deck entries were marked [skipproxy]; nothing to proxy.")
    if skipped:
        click.echo(f"Skipping {plural(skipped, 'card')} marked [skipproxy].")

    items = resolve_deck_cards(entries, build_card_lookup(cards), card_index)

    if deck_title:
        label, output_path = deck_title, resolve_output_path(output, deck_title)
    else:
        label, output_path = resolve_name_and_output(name)
        if output:
            output_path = resolve_output_path(output, label)
    cache_dir = Path(cache_dir).resolve()

    pdf_doc = build_proxy_pdf(
        items,
        make_sheet_options(label, kwargs),
        functools.partial(client.ensure_card_image, cache_dir=cache_dir, refresh=refresh, upscale=upscale),
        card_index=card_index,
    )
    write_pdf(pdf_doc, output_path)


@cli.command("download-deck", short_help="Write a published deck out as deck list text.")
@click.argument("deck_ref")
@click.option("--base-url", default=RINGSDB_BASE_URL, show_default=True, help="Card database URL.")
@click.option("--data-cache", type=click.Path(dir_okay=False, path_type=Path), help="Where to cache the cards JSON.")
@click.option("--refresh-data", is_flag=True, help="Re-download the cards JSON into the cache.")
@click.option("--no-codes", is_flag=True, help="Leave out the [code] suffixes.")
@click.option("--no-header", is_flag=True, help="Do not include the source header comment.")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), help="Write to a file instead of stdout.")
def download_deck(deck_ref, base_url, data_cache, refresh_data, no_codes, no_header, output):
    client = CardDbClient(base_url, data_cache or default_data_cache(base_url))
    api_deck = client.fetch_decklist(deck_ref)
    card_index = build_card_index(client.load_cards(refresh=refresh_data))

    text = format_deck_lines(entries_from_api_deck(api_deck, card_index), include_codes=not no_codes)
    if not no_header:
        title = api_deck.get("name") or f"Deck {api_deck.get('id', deck_ref)}"
        text = f"# {title}\n# {client.base_url} ({deck_ref})\n\n{text}"

    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    click.echo(f"Created {output.resolve()}", err=True)


@cli.command("ruler-grid", short_help="Full-page ruler grid for duplex alignment tests.")
@click.option("--page-size", type=click.Choice(PAGE_SIZE_CHOICES), default="a4", show_default=True)
@click.option("--major-cm", type=POSITIVE, default=1, show_default=True, help="Spacing of major grid lines (cm).")
@click.option("--minor-mm", type=POSITIVE, default=1, show_default=True, help="Spacing of minor tick marks (mm).")
@click.option("-o", "--output", default="ruler-grid.pdf", show_default=True, help="Output PDF path.")
def ruler_grid(page_size, major_cm, minor_mm, output):
    pdf_doc = build_ruler_grid_pdf(page_size, major_cm, minor_mm)
    write_pdf(pdf_doc, resolve_output_path(output, "ruler-grid"))


@cli.command("odds", short_help="Hypergeometric draw odds with weakness redraws.")
@click.option("-d", "--deck-size", type=click.IntRange(min=0), default=33, show_default=True, help="Total deck size.")
@click.option(
    "-w", "--weaknesses", type=click.IntRange(min=0), default=2, show_default=True, help="Weaknesses redrawn in the opening hand."
)
@click.option("-t", "--target-copies", type=click.IntRange(min=0), default=1, show_default=True, help="Copies of the card you care about.")
@click.option("--opening-hand", type=click.IntRange(min=0), default=5, show_default=True, help="Opening hand size.")
@click.option("-n", "--next-draws", type=click.IntRange(min=0), default=10, show_default=True, help="Draws to check after the opening hand.")
def draw_odds(deck_size, weaknesses, target_copies, opening_hand, next_draws):
    rows = odds.draw_odds_rows(deck_size, weaknesses, target_copies, opening_hand, next_draws)

    click.echo("Draw odds (weaknesses discarded during the opening hand, then shuffled back)")
    click.echo(f"Deck size: {deck_size} ({weaknesses} weaknesses)")
    click.echo(f"Target copies: {target_copies}")
    click.echo(f"Opening hand: {opening_hand}")
    click.echo(f"Next draws: {next_draws}")
    click.echo("")
    click.echo(f"{'Step':<16}{'P(1+ hit)':<12}{'P(2+ hits)':<12}")
    for row in rows:
        click.echo(f"{row.step:<16}{row.at_least_one * 100:>8.2f}%   {row.at_least_two * 100:>8.2f}%")
    click.echo("")

    chance = odds.miss_then_hit_chance(deck_size, weaknesses, target_copies, opening_hand, next_draws)
    click.echo(f"P(hit in next {next_draws} given miss in opening): {chance * 100:.2f}%")


@cli.command("font-sheet", short_help="Sample sheet for the Marvel Champions card fonts.")
@click.option(
    "--fonts-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("assets") / "fonts",
    show_default=True,
    help="Directory containing the TTF/OTF files.",
)
@click.option(
    "--font-config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML/JSON mapping of font keys to file paths (null forces the fallback).",
)
@click.option("-o", "--output", default="marvel-fonts.pdf", show_default=True, help="Output PDF path.")
def font_sheet(fonts_dir, font_config, output):
    overrides = {}
    if font_config is not None:
        try:
            raw = yaml.safe_load(font_config.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid --font-config: {e}", header="") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"--font-config must be a mapping: {font_config}", header="")
        overrides = parse_font_overrides(raw, font_config.resolve().parent)

    pdf_doc, warnings = build_font_sheet_pdf(fonts_dir, overrides)
    write_pdf(pdf_doc, resolve_output_path(output, "marvel-fonts"))

    if warnings:
        click.secho("Font notes:\n- " + "\n- ".join(warnings), err=True, fg="yellow")
        click.secho("Tip: put TTF/OTF files in --fonts-dir or map them with --font-config.", err=True, fg="yellow")
    else:
        click.echo("All fonts embedded.")


@cli.command("sticker-sheet", short_help="Deck-box sticker sheet from a YAML config.")
@click.option("-i", "--input", "input_path", required=True, help="YAML config path (- for stdin).")
@click.option("--debug", is_flag=True, help="Draw the debug guides from the YAML debug block.")
@click.option("-o", "--output", type=str, help="Output PDF path.")
def sticker_sheet(input_path, debug, output):
    text, base_dir, _ = read_input_text(input_path)
    config = load_sticker_config(text, base_dir)

    pdf_doc, pages = build_sticker_sheet_pdf(config, debug=debug)
    write_pdf(pdf_doc, resolve_output_path(output, "sticker-sheet"))

    sheet = config.sheet
    click.echo(
        f"Sheet: {sheet.page_width_mm:g}x{sheet.page_height_mm:g}mm ({sheet.orientation}), "
        f"{plural(len(pages), 'page')}, {plural(sheet.columns, 'column')}, "
        f"{plural(len(config.stickers), 'sticker')}"
    )

