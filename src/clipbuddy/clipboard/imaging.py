import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def to_png(data: bytes) -> Optional[bytes]:
    """Re-encode any image Pillow can open as PNG. ``None`` if unreadable."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return data
    try:
        with Image.open(io.BytesIO(data)) as image:
            output = io.BytesIO()
            image.save(output, format="PNG")
            return output.getvalue()
    except (UnidentifiedImageError, OSError) as exc:
        logger.debug("Clipboard image could not be decoded: %s", exc)
        return None


def image_to_png(image: "Image.Image") -> bytes:
    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def png_to_dib(png_bytes: bytes) -> bytes:
    """Convert PNG bytes to a device-independent bitmap (BMP minus file header)."""
    image = Image.open(io.BytesIO(png_bytes))

    if image.mode == "RGBA":
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[3])
        image = background
    elif image.mode != "RGB":
        image = image.convert("RGB")

    output = io.BytesIO()
    image.save(output, "BMP")
    return output.getvalue()[14:]
