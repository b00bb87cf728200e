import datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from app import dependencies as deps
from app.errors import PostNotFound, ValidationFailure
from app.schemas.blog import ArticleCreate, Message, Post, PostUpdate
from app.services.posts_service import PostsService
from app.settings import settings

logger = logging.getLogger(__name__)

# Public reads; admin_router is mounted behind the bearer token in app.main.
router = APIRouter(prefix="/api")
admin_router = APIRouter(prefix="/api")


@router.get("/posts", response_model=List[Post])
def list_posts(service: PostsService = Depends(deps.get_posts_service)):
    """Get all posts, newest first."""
    try:
        return service.list_posts()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error listing posts: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve posts")


@router.get("/posts/{post_id}", response_model=Post)
def get_post(
    post_id: str,
    service: PostsService = Depends(deps.get_posts_service),
):
    """Get a single post by id."""
    try:
        return service.get_post(post_id)
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error retrieving post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve post")


@admin_router.post("/posts", response_model=Post, status_code=201)
def create_post(
    title: str = Form(...),
    date: datetime.date = Form(...),
    content: str = Form(...),
    images: Optional[List[UploadFile]] = File(None),
    service: PostsService = Depends(deps.get_posts_service),
):
    try:
        return service.create_post(
            title=title,
            date=date,
            content=content,
            images=read_uploads(images),
        )
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error creating post: {e}")
        raise HTTPException(status_code=500, detail="Failed to create post")


@admin_router.post("/articles", response_model=Post, status_code=201)
def create_article(
    article: ArticleCreate,
    service: PostsService = Depends(deps.get_posts_service),
):
    try:
        return service.create_article(article)
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error creating article: {e}")
        raise HTTPException(status_code=500, detail="Failed to create article")


@admin_router.put("/posts/{post_id}", response_model=Post)
def update_post(
    post_id: str,
    update: PostUpdate,
    service: PostsService = Depends(deps.get_posts_service),
):
    try:
        return service.update_post(post_id, update)
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error updating post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update post")


@admin_router.delete("/posts/{post_id}", response_model=Message)
def delete_post(
    post_id: str,
    service: PostsService = Depends(deps.get_posts_service),
):
    try:
        service.delete_post(post_id)
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error deleting post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete post")
    return Message(message="Post deleted")


def read_uploads(files: Optional[List[UploadFile]]):
    """(filename, content type, bytes) for every non-empty file field."""
    uploads = []
    for upload in files or []:
        # one byte past the cap is enough for the store to reject it
        data = upload.file.read(settings.MAX_UPLOAD_BYTES + 1)
        if not upload.filename and not data:
            # browsers submit an empty part for an untouched file input
            continue
        uploads.append((upload.filename or "", upload.content_type, data))
    return uploads
