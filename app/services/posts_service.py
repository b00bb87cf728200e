import datetime
import logging
from typing import Iterable, List, Optional, Tuple

from pydantic import ValidationError

from app.db.couchdb import storage_errors
from app.errors import PostNotFound, ValidationFailure
from app.schemas.blog import (
    ArticleCreate,
    ArticlePost,
    NormalPost,
    Post,
    PostUpdate,
    post_adapter,
)
from app.settings import settings

logger = logging.getLogger(__name__)

# (filename, content type, bytes) for one uploaded image
ImageUpload = Tuple[str, Optional[str], bytes]


class PostsService:
    def __init__(self, repo, media=None, max_images: int | None = None):
        self.repo = repo
        self.media = media
        self.max_images = max_images or settings.MAX_POST_IMAGES

    def list_posts(self) -> List[Post]:
        with storage_errors("list posts"):
            docs = self.repo.list_post_docs()

        posts = []
        for doc in docs:
            post = parse_post_doc(doc)
            if post:
                posts.append(post)

        posts.sort(key=lambda p: p.date, reverse=True)
        return posts

    def get_post(self, post_id: str) -> Post:
        with storage_errors(f"load post {post_id}"):
            doc = self.repo.get_post_doc(post_id)
        post = parse_post_doc(doc) if doc else None
        if not post:
            raise PostNotFound(post_id)
        return post

    def create_post(
        self,
        title: str,
        date: datetime.date,
        content: str,
        images: Iterable[ImageUpload] = (),
    ) -> NormalPost:
        images = list(images)
        if len(images) > self.max_images:
            raise ValidationFailure(
                f"A post takes at most {self.max_images} images, got {len(images)}"
            )
        _require_text(title=title, content=content)

        # Each upload is stored, cropped square, before the post references
        # it; earlier uploads stay orphaned if a later one fails.
        urls = [
            self.media.store(data, filename, content_type, square=True)
            for filename, content_type, data in images
        ]
        with storage_errors("create post"):
            doc = self.repo.insert_post_doc(
                {
                    "kind": "normal",
                    "title": title,
                    "date": date.isoformat(),
                    "content": content,
                    "images": urls,
                }
            )
        logger.info(f"Created post {doc['_id']} with {len(urls)} images")
        return parse_post_doc(doc, strict=True)

    def create_article(self, article: ArticleCreate) -> ArticlePost:
        _require_text(title=article.title)
        with storage_errors("create article"):
            doc = self.repo.insert_post_doc(
                {
                    "kind": "article",
                    "title": article.title,
                    "date": article.date.isoformat(),
                    "sections": [s.model_dump() for s in article.sections],
                }
            )
        logger.info(
            f"Created article {doc['_id']} with {len(article.sections)} sections"
        )
        return parse_post_doc(doc, strict=True)

    def update_post(self, post_id: str, update: PostUpdate) -> Post:
        _require_text(title=update.title)
        current = self.get_post(post_id)

        fields = {"title": update.title}
        if isinstance(current, NormalPost):
            _require_text(content=update.content)
            fields["content"] = update.content
        elif update.content:
            raise ValidationFailure("articles carry their content in sections")

        with storage_errors(f"update post {post_id}"):
            doc = self.repo.update_post_doc(post_id, fields)
        if doc is None:
            raise PostNotFound(post_id)
        logger.info(f"Updated post {post_id}")
        return parse_post_doc(doc, strict=True)

    def delete_post(self, post_id: str) -> None:
        with storage_errors(f"delete post {post_id}"):
            deleted = self.repo.delete_post_doc(post_id)
        if not deleted:
            raise PostNotFound(post_id)
        logger.info(f"Deleted post {post_id}")


def parse_post_doc(doc: dict, strict: bool = False) -> Optional[Post]:
    """Convert a stored document into the post variant named by its kind."""
    data = {key: value for key, value in doc.items() if not key.startswith("_")}
    data["id"] = doc.get("_id")
    data["kind"] = data.get("kind") or "normal"
    if isinstance(data.get("date"), str):
        data["date"] = _truncate_date(data["date"])
    if data["kind"] == "normal" and data.get("content") is None:
        data["content"] = ""

    try:
        return post_adapter.validate_python(data)
    except ValidationError as e:
        if strict:
            raise ValidationFailure(str(e)) from e
        logger.warning(f"Skipping malformed post {data.get('id')}: {e}")
        return None


def _truncate_date(value: str) -> str:
    return value.split("T", 1)[0]


def _require_text(**fields) -> None:
    for name, value in fields.items():
        if not value or not value.strip():
            raise ValidationFailure(f"{name} must not be empty")
