import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from app import dependencies as deps
from app.errors import ValidationFailure
from app.schemas.blog import UploadResult
from app.services.media_service import MediaStore
from app.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter(prefix="/api")


@router.get("/images/{name}")
def get_image(name: str, media: MediaStore = Depends(deps.get_media_store)):
    """
    Serve uploaded images directly from CouchDB
    """
    image_data, content_type = media.fetch(name)

    if not image_data or not content_type:
        raise HTTPException(status_code=404, detail="Image not found")

    # Set proper content length header
    headers = {
        "Content-Length": str(len(image_data)),
        "Accept-Ranges": "bytes",
    }

    return Response(content=image_data, media_type=content_type, headers=headers)


@admin_router.post("/upload", response_model=UploadResult, status_code=201)
def upload_image(
    image: UploadFile | None = File(None),
    media: MediaStore = Depends(deps.get_media_store),
):
    """Store a single file, e.g. an article section image, and return its URL."""
    if image is None or not image.filename:
        raise HTTPException(status_code=400, detail="No file was uploaded")

    try:
        data = image.file.read(settings.MAX_UPLOAD_BYTES + 1)
        url = media.store(data, image.filename, image.content_type)
    except ValidationFailure as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to upload {image.filename}: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload image")
    return UploadResult(url=url)
