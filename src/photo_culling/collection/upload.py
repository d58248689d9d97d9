"""Turn uploaded files into Photo records."""

import base64
import binascii
import logging
from collections.abc import Iterable
from functools import lru_cache
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw, UnidentifiedImageError

from photo_culling.config import (
    PLACEHOLDER_COLOR,
    PLACEHOLDER_SIZE,
    RAW_EXTENSIONS,
    STANDARD_EXTENSIONS,
)
from photo_culling.errors import ValidationError
from photo_culling.models import Photo, TagSet, new_photo_id

logger = logging.getLogger(__name__)


def file_extension(filename: str) -> str:
    return Path(filename).suffix.lower().lstrip(".")


def is_raw_file(filename: str) -> bool:
    return file_extension(filename) in RAW_EXTENSIONS


def is_supported_file(filename: str) -> bool:
    ext = file_extension(filename)
    return ext in STANDARD_EXTENSIONS or ext in RAW_EXTENSIONS


def scan_directory(directory: Path) -> list[Path]:
    """Find every supported image below ``directory``, sorted by path."""
    directory = Path(directory)
    if not directory.is_dir():
        raise ValidationError(f"Not a directory: {directory}")
    images = sorted(p for p in directory.rglob("*") if p.is_file() and is_supported_file(p.name))
    logger.info("Discovered %d images in %s", len(images), directory)
    return images


def build_photo(path: Path) -> Photo:
    """Create an unanalyzed Photo for one file.

    RAW files are tagged "raw" and get a placeholder preview until the
    server has converted them.
    """
    path = Path(path)
    if not is_supported_file(path.name):
        raise ValidationError(f"Unsupported file type: {path.name}")

    if is_raw_file(path.name):
        return Photo(
            id=new_photo_id(),
            filename=path.name,
            source_path=path,
            preview_url=raw_placeholder(),
            tags=TagSet(["raw"]),
        )
    return Photo(
        id=new_photo_id(),
        filename=path.name,
        source_path=path,
        preview_url=path.resolve().as_uri(),
    )


def load_photos(paths: Iterable[Path]) -> tuple[list[Photo], list[Path]]:
    """Build photos for the accepted files. Returns (photos, rejected paths)."""
    photos: list[Photo] = []
    rejected: list[Path] = []
    for path in paths:
        path = Path(path)
        if is_supported_file(path.name):
            photos.append(build_photo(path))
        else:
            rejected.append(path)
    if rejected:
        logger.warning("Rejected %d unsupported files", len(rejected))
    return photos, rejected


@lru_cache(maxsize=1)
def raw_placeholder() -> str:
    """PNG data URI shown for RAW files awaiting conversion."""
    img = Image.new("RGB", PLACEHOLDER_SIZE, PLACEHOLDER_COLOR)
    draw = ImageDraw.Draw(img)
    width, height = PLACEHOLDER_SIZE
    text = "RAW preview pending"
    left, top, right, bottom = draw.textbbox((0, 0), text)
    position = ((width - (right - left)) // 2, (height - (bottom - top)) // 2)
    draw.text(position, text, fill=(153, 163, 175))
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def preview_from_base64(image_base64: str) -> str:
    """Wrap a base64 image in a data URI, detecting its MIME type."""
    try:
        content = base64.b64decode(image_base64, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValidationError("Invalid base64 image data") from e

    try:
        img = Image.open(BytesIO(content))
        mime = Image.MIME.get(img.format or "", "image/jpeg")
    except (UnidentifiedImageError, OSError):
        mime = "image/jpeg"
    return f"data:{mime};base64,{image_base64}"
