import pytest
from PIL import Image
from requests import ConnectionError as RequestsConnectionError

from cardsheets import images
from cardsheets.cards import CardRecord, FaceRef
from cardsheets.errors import AssetError
from cardsheets.images import ImageCache, card_cache_file_name, download_to_file, fetch_cached, sniff_image_type

from .conftest import png_bytes


class FakeResponse:
    def __init__(self, content=b"", status_code=200, reason="OK"):
        self.content = content
        self.status_code = status_code
        self.reason = reason
        self.ok = status_code < 400


def test_sniff_image_type():
    assert sniff_image_type(png_bytes()) == "png"
    assert sniff_image_type(b"\xff\xd8\xff\xe0rest") == "jpg"
    with pytest.raises(AssetError, match="empty or truncated"):
        sniff_image_type(b"")
    with pytest.raises(AssetError, match="not a PNG or JPEG"):
        sniff_image_type(b"<html>nope</html>")


def test_cache_file_name():
    face = FaceRef(CardRecord(name="Steward of Gondor", code="01026"), "/x.png", "front")

    assert card_cache_file_name(face, "https://ringsdb.com/bundles/cards/01026.png") == (
        "steward-of-gondor-01026-ringsdb-com.png"
    )
    assert card_cache_file_name(face, "https://cdn.example/img/01026.JPG") == "steward-of-gondor-01026-cdn-example.jpg"


def test_download_writes_file(tmp_path, monkeypatch):
    monkeypatch.setattr(images, "get", lambda url, **kwargs: FakeResponse(png_bytes()))

    target = download_to_file("https://x/card.png", tmp_path / "sub" / "card.png")

    assert target.read_bytes() == png_bytes()


def test_download_with_upscale(tmp_path, monkeypatch):
    monkeypatch.setattr(images, "get", lambda url, **kwargs: FakeResponse(png_bytes((10, 14))))

    target = download_to_file("https://x/card.png", tmp_path / "card.png", upscale_4x=True)

    with Image.open(target) as img:
        assert img.size == (40, 56)


def test_download_failures(tmp_path, monkeypatch):
    monkeypatch.setattr(images, "get", lambda url, **kwargs: FakeResponse(status_code=404, reason="Not Found"))
    with pytest.raises(AssetError, match="404 Not Found"):
        download_to_file("https://x/card.png", tmp_path / "card.png")

    monkeypatch.setattr(images, "get", lambda url, **kwargs: FakeResponse(b"<html></html>"))
    with pytest.raises(AssetError, match="not a PNG or JPEG"):
        download_to_file("https://x/card.png", tmp_path / "card.png")
    assert not (tmp_path / "card.png").exists()

    def refuse(url, **kwargs):
        raise RequestsConnectionError("refused")

    monkeypatch.setattr(images, "get", refuse)
    with pytest.raises(AssetError, match="Download failed: refused"):
        download_to_file("https://x/card.png", tmp_path / "card.png")


def test_fetch_cached_only_downloads_on_miss_or_refresh(tmp_path, monkeypatch):
    calls = []

    def fake_get(url, **kwargs):
        calls.append(url)
        return FakeResponse(png_bytes())

    monkeypatch.setattr(images, "get", fake_get)
    path = tmp_path / "card.png"

    fetch_cached("https://x/card.png", path)
    fetch_cached("https://x/card.png", path)
    fetch_cached("https://x/card.png", path, refresh=True)

    assert len(calls) == 2


def test_image_cache_rotates_landscape_and_reuses(tmp_path):
    path = tmp_path / "wide.png"
    path.write_bytes(png_bytes((100, 50)))
    cache = ImageCache()

    first = cache.get(path)
    assert first.size == (50, 100)
    assert cache.get(str(path)) is first
    assert len(cache) == 1


def test_image_cache_reports_broken_files(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"garbage")

    with pytest.raises(AssetError, match="Unable to read image broken.png"):
        ImageCache().get(path)
