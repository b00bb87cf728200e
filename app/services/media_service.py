import io
import logging
import os
import time
from typing import Optional, Tuple

import pycouchdb
from PIL import Image, ImageOps, UnidentifiedImageError

from app.errors import UpstreamFailure, ValidationFailure
from app.settings import settings

logger = logging.getLogger(__name__)


class MediaStore:
    """
    Uploaded images kept in CouchDB, one document per file with the bytes
    as its single attachment. Documents are keyed by the public file name.
    """

    def __init__(
        self,
        db,
        url_prefix: str | None = None,
        clock=time.time,
        max_bytes: int | None = None,
        image_size: int | None = None,
    ):
        self.db = db
        self.url_prefix = (url_prefix or settings.MEDIA_URL_PREFIX).rstrip("/")
        self.clock = clock
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES
        self.image_size = image_size or settings.POST_IMAGE_SIZE

    def store(
        self,
        data: bytes,
        filename: str,
        content_type: str | None = None,
        square: bool = False,
    ) -> str:
        """
        Persist one upload and return the URL it is served from.
        With square=True the image is centre-cropped to 1:1 and scaled to
        image_size pixels a side before it is stored.
        """
        if not data:
            raise ValidationFailure(f"Upload {filename or '<unnamed>'} is empty")
        if len(data) > self.max_bytes:
            raise ValidationFailure(
                f"Upload {filename} is larger than {self.max_bytes} bytes"
            )
        stored_as = filename
        if square:
            data, ext, content_type = crop_square(data, self.image_size)
            stored_as = os.path.splitext(filename or "")[0] + ext

        try:
            name = self._generate_name(stored_as)
            mimetype = content_type or get_content_type_from_filename(name)
            doc = self.db.save(
                {
                    "_id": name,
                    "originalName": filename,
                    "contentType": mimetype,
                    "size": len(data),
                }
            )
            self.db.put_attachment(doc, data, filename=name, mimetype=mimetype)
        except Exception as e:
            logger.error(f"Failed to store upload {filename}: {e}")
            raise UpstreamFailure(f"Failed to store {filename}") from e

        logger.info(f"Stored upload {filename} as {name} ({len(data)} bytes)")
        return f"{self.url_prefix}/{name}"

    def fetch(self, name: str) -> Tuple[Optional[bytes], Optional[str]]:
        try:
            doc = self.db.get(name)
            data = self.db.get_attachment(doc, name)
        except pycouchdb.exceptions.NotFound:
            logger.warning(f"Media not found in CouchDB: {name}")
            return None, None
        except Exception as e:
            logger.error(f"Error retrieving media {name}: {e}")
            return None, None

        if not data:
            logger.warning(f"No data found for media: {name}")
            return None, None

        expected_size = doc.get("size")
        if expected_size and len(data) != expected_size:
            logger.warning(
                f"Media size mismatch for {name}. Expected: {expected_size}, Got: {len(data)}"
            )
            return None, None

        return data, doc.get("contentType") or get_content_type_from_filename(name)

    def _generate_name(self, filename: str) -> str:
        _, ext = os.path.splitext(filename or "")
        stem = str(int(self.clock() * 1000))
        name = f"{stem}{ext.lower()}"
        suffix = 1
        while self._exists(name):
            name = f"{stem}-{suffix}{ext.lower()}"
            suffix += 1
        return name

    def _exists(self, name: str) -> bool:
        try:
            self.db.get(name)
        except pycouchdb.exceptions.NotFound:
            return False
        return True


def get_content_type_from_filename(filename: str) -> str:
    """
    Determine content type from file extension
    """
    filename = filename.lower()
    if filename.endswith((".jpg", ".jpeg")):
        return "image/jpeg"
    elif filename.endswith(".png"):
        return "image/png"
    elif filename.endswith(".gif"):
        return "image/gif"
    elif filename.endswith(".svg"):
        return "image/svg+xml"
    elif filename.endswith(".webp"):
        return "image/webp"
    else:
        return "application/octet-stream"


def crop_square(data: bytes, size: int) -> Tuple[bytes, str, str]:
    """
    Centre-crop an image to 1:1 and scale it to size x size.
    Returns the encoded bytes, file extension and content type; images with
    transparency stay PNG, everything else becomes JPEG.
    """
    try:
        image = ImageOps.exif_transpose(Image.open(io.BytesIO(data)))
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationFailure("Upload is not a readable image") from e

    if image.mode in ("RGBA", "LA", "P"):
        image, fmt, ext, mimetype = image.convert("RGBA"), "PNG", ".png", "image/png"
    else:
        image, fmt, ext, mimetype = image.convert("RGB"), "JPEG", ".jpg", "image/jpeg"

    image = ImageOps.fit(image, (size, size), method=Image.Resampling.LANCZOS)
    output = io.BytesIO()
    image.save(output, format=fmt)
    return output.getvalue(), ext, mimetype
