"""
View models for the blog pages.

Templates never look at a raw post: they get a ``PostPreview`` for list
pages and a ``PostDetailView`` for the single-post page, both built here.
"""

import datetime
from dataclasses import dataclass, field
from typing import List, Optional, Union

from markupsafe import Markup, escape

from app.schemas.blog import ArticlePost, NormalPost, Post
from app.settings import settings


def format_display_date(value: Union[str, datetime.date]) -> str:
    """``2024-01-31`` or ``2024-01-31T10:00:00Z`` -> ``31/01/2024``."""
    if isinstance(value, datetime.date):
        value = value.isoformat()
    return "/".join(reversed(value.split("T", 1)[0].split("-")))


def nl2br(text: Optional[str]) -> Markup:
    if not text:
        return Markup("")
    return Markup("<br>").join(escape(text.replace("\r\n", "\n")).split("\n"))


@dataclass
class Carousel:
    images: List[str]
    index: int = 0
    placeholder: str = field(default_factory=lambda: settings.PLACEHOLDER_IMAGE)

    def __post_init__(self):
        self.index = self._wrap(self.index)

    @property
    def current(self) -> str:
        if not self.images:
            return self.placeholder
        return self.images[self.index]

    @property
    def has_controls(self) -> bool:
        return len(self.images) > 1

    @property
    def next_index(self) -> int:
        return self._wrap(self.index + 1)

    @property
    def previous_index(self) -> int:
        return self._wrap(self.index - 1)

    def next(self) -> str:
        self.index = self.next_index
        return self.current

    def previous(self) -> str:
        self.index = self.previous_index
        return self.current

    def _wrap(self, index: int) -> int:
        if not self.images:
            return 0
        return index % len(self.images)


@dataclass
class PostPreview:
    id: str
    title: str
    kind: str
    date: str
    thumbnail: str
    excerpt: str


@dataclass
class SectionView:
    subtitle: Optional[str]
    body: Markup
    image: Optional[str]


@dataclass
class PostDetailView:
    id: str
    title: str
    kind: str
    date: str
    author: str
    sections: List[SectionView] = field(default_factory=list)
    carousel: Optional[Carousel] = None
    body: Markup = field(default_factory=Markup)


def preview_thumbnail(post: Post, placeholder: str | None = None) -> str:
    placeholder = placeholder or settings.PLACEHOLDER_IMAGE
    if isinstance(post, ArticlePost):
        return next(
            (section.image for section in post.sections if section.image),
            placeholder,
        )
    return post.images[0] if post.images else placeholder


def preview_excerpt(post: Post) -> str:
    if isinstance(post, ArticlePost):
        return (post.sections[0].content or "") if post.sections else ""
    return post.content or ""


def build_preview(post: Post, placeholder: str | None = None) -> PostPreview:
    return PostPreview(
        id=post.id,
        title=post.title,
        kind=post.kind,
        date=format_display_date(post.date),
        thumbnail=preview_thumbnail(post, placeholder),
        excerpt=preview_excerpt(post),
    )


def build_detail(
    post: Post,
    image_index: int = 0,
    placeholder: str | None = None,
    author: str | None = None,
) -> PostDetailView:
    view = PostDetailView(
        id=post.id,
        title=post.title,
        kind=post.kind,
        date=format_display_date(post.date),
        author=author or settings.SITE_OWNER,
    )
    if isinstance(post, NormalPost):
        view.carousel = Carousel(
            images=list(post.images),
            index=image_index,
            placeholder=placeholder or settings.PLACEHOLDER_IMAGE,
        )
        view.body = nl2br(post.content)
    else:
        view.sections = [
            SectionView(
                subtitle=section.subtitle or None,
                body=nl2br(section.content),
                image=section.image or None,
            )
            for section in post.sections
        ]
    return view
