from io import BytesIO
from pathlib import Path
from urllib.parse import urlparse

import click
from PIL import Image, ImageEnhance, UnidentifiedImageError
from requests import RequestException, get

from .cards import FaceRef
from .errors import AssetError
from .text import sanitize_file_name

USER_AGENT = "cardsheets/1.0 (+proxy sheets)"

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"


class MissingCardImageError(AssetError):
    """The card has no usable image reference at all."""

    def __init__(self, label: str = ""):
        super().__init__(
            f'Card image source is missing for "{label}".' if label else "Card image source is missing."
        )


def sniff_image_type(data: bytes) -> str:
    if len(data) < 4:
        raise AssetError("Downloaded image file is empty or truncated.")
    if data.startswith(PNG_SIGNATURE):
        return "png"
    if data.startswith(JPEG_SIGNATURE):
        return "jpg"
    raise AssetError("Downloaded image file is not a PNG or JPEG (check the cache entry).")


def upscale(img: Image.Image) -> Image.Image:
    new_size = (img.width * 4, img.height * 4)

    upscaled = img.resize(new_size, resample=Image.Resampling.LANCZOS)

    color_enhance = ImageEnhance.Color(upscaled)
    upscaled = color_enhance.enhance(1.2)

    sharpness_enhance = ImageEnhance.Sharpness(upscaled)
    return sharpness_enhance.enhance(1.2)


def download_to_file(url: str, destination: Path, upscale_4x: bool = False) -> Path:
    try:
        resp = get(url, headers={"user-agent": USER_AGENT}, timeout=None)
    except RequestException as e:
        raise AssetError(f"Download failed: {e} ({url})") from e
    if not resp.ok:
        raise AssetError(f"Download failed: {resp.status_code} {resp.reason} ({url})")

    sniff_image_type(resp.content)
    destination.parent.mkdir(parents=True, exist_ok=True)

    if not upscale_4x:
        destination.write_bytes(resp.content)
        return destination

    with Image.open(BytesIO(resp.content)) as img:
        upscale(img.convert("RGB")).save(destination)
    return destination


def card_cache_file_name(face: FaceRef, url: str) -> str:
    parsed = urlparse(url)
    basename = Path(parsed.path).name
    ext = (Path(basename).suffix or ".png").lower()
    key = basename[: -len(ext)] if basename.lower().endswith(ext) else basename
    key = key or sanitize_file_name(face.card.code) or "card"
    identifier = sanitize_file_name(face.card.name or key) or "card"
    source = sanitize_file_name(parsed.hostname) or "unknown-source"
    return f"{identifier}-{key}-{source}{ext}"


def fetch_cached(url: str, cache_path: Path, refresh: bool = False, upscale_4x: bool = False) -> Path:
    if cache_path.exists() and not refresh:
        return cache_path
    click.echo(f"Fetching new image {cache_path.name}")
    return download_to_file(url, cache_path, upscale_4x)


class ImageCache:
    """Decoded images for one document, keyed by resolved path. No eviction."""

    def __init__(self):
        self._images: dict[Path, Image.Image] = {}

    def __len__(self) -> int:
        return len(self._images)

    def get(self, image_path: str | Path) -> Image.Image:
        resolved = Path(image_path).resolve()
        cached = self._images.get(resolved)
        if cached is not None:
            return cached

        try:
            with Image.open(resolved) as img:
                img.load()
                decoded = img.convert("RGB")
        except (OSError, UnidentifiedImageError) as e:
            raise AssetError(f"Unable to read image {resolved.name}: {e}") from e

        # landscape art goes into portrait slots
        if decoded.width > decoded.height:
            decoded = decoded.rotate(90, expand=True)

        self._images[resolved] = decoded
        return decoded
