from io import BytesIO

import pytest
from PIL import Image


def png_bytes(size=(63, 88), color=(200, 30, 30)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def card_png(tmp_path):
    path = tmp_path / "card.png"
    path.write_bytes(png_bytes())
    return path
