import io
import logging
import os
import uuid

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "PNG": ".png",
    "JPEG": ".jpg",
    "WEBP": ".webp",
    "GIF": ".gif",
}


def detect_image_format(image_bytes: bytes) -> str:
    """Return the Pillow format name of an uploaded image.

    Raises:
        ValueError: If the bytes are not a supported image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.verify()
            fmt = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValueError("uploaded file is not a readable image") from exc
    if fmt not in _EXTENSIONS:
        raise ValueError(f"unsupported image format: {fmt}")
    return fmt


class LocalMediaStore:
    def __init__(self, root_dir: str, url_prefix: str):
        self.root_dir = root_dir
        self.url_prefix = url_prefix.rstrip("/")

    def save_candidate_image(self, image_bytes: bytes) -> tuple[str, str]:
        """Write an uploaded candidate photo and return ``(file_path, url)``."""
        fmt = detect_image_format(image_bytes)
        os.makedirs(self.root_dir, exist_ok=True)

        filename = f"candidate-photo-{uuid.uuid4()}{_EXTENSIONS[fmt]}"
        file_path = os.path.join(self.root_dir, filename)

        with open(file_path, "wb") as f:
            f.write(image_bytes)

        url = f"{self.url_prefix}/{filename}"
        logger.info("candidate_image_saved", extra={"media_url": url, "format": fmt})
        return file_path, url
