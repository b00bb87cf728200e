import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class Section(BaseModel):
    subtitle: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None


class PostBase(BaseModel):
    id: str
    title: str = Field(min_length=1)
    date: datetime.date


class NormalPost(PostBase):
    kind: Literal["normal"] = "normal"
    content: str
    images: List[str] = Field(default_factory=list)


class ArticlePost(PostBase):
    kind: Literal["article"] = "article"
    sections: List[Section] = Field(default_factory=list)


Post = Annotated[Union[NormalPost, ArticlePost], Field(discriminator="kind")]
post_adapter: TypeAdapter[Post] = TypeAdapter(Post)


class ArticleCreate(BaseModel):
    title: str = Field(min_length=1)
    date: datetime.date
    sections: List[Section] = Field(default_factory=list)


class PostUpdate(BaseModel):
    title: str = Field(min_length=1)
    content: Optional[str] = None


class UploadResult(BaseModel):
    url: str


class Message(BaseModel):
    message: str
