import datetime

import pytest

from app.errors import PostNotFound, UpstreamFailure, ValidationFailure
from app.schemas.blog import ArticleCreate, ArticlePost, NormalPost, PostUpdate, Section
from app.services.posts_service import PostsService, parse_post_doc
from tests.conftest import FakeMediaStore, FakeRepo, article_doc, normal_doc


def make_service(docs=None, media=None, max_images=None):
    return PostsService(
        repo=FakeRepo(docs), media=media or FakeMediaStore(), max_images=max_images
    )


def test_list_posts_sorts_by_date_desc():
    service = make_service(
        [
            normal_doc("old", date="2023-12-31"),
            article_doc("new", date="2024-06-01"),
            normal_doc("mid", date="2024-01-15T08:30:00.000Z"),
        ]
    )

    result = service.list_posts()

    assert [post.id for post in result] == ["new", "mid", "old"]
    dates = [post.date for post in result]
    assert dates == sorted(dates, reverse=True)


def test_list_posts_skips_malformed_documents():
    service = make_service(
        [normal_doc("ok"), {"_id": "broken", "kind": "normal", "title": "No date"}]
    )

    assert [post.id for post in service.list_posts()] == ["ok"]


def test_list_posts_wraps_storage_errors():
    class BoomRepo(FakeRepo):
        def list_post_docs(self):
            raise ConnectionError("couch down")

    service = PostsService(repo=BoomRepo(), media=FakeMediaStore())

    with pytest.raises(UpstreamFailure):
        service.list_posts()


def test_get_post_returns_variant_for_kind():
    service = make_service([normal_doc("n1"), article_doc("a1")])

    assert isinstance(service.get_post("n1"), NormalPost)
    assert isinstance(service.get_post("a1"), ArticlePost)


def test_get_post_raises_when_missing():
    with pytest.raises(PostNotFound):
        make_service().get_post("missing")


def test_create_post_stores_images_before_referencing_them():
    media = FakeMediaStore()
    service = make_service(media=media)

    post = service.create_post(
        title="A",
        date=datetime.date(2024, 1, 1),
        content="hi",
        images=[("i1.jpg", "image/jpeg", b"one"), ("i2.jpg", "image/jpeg", b"two")],
    )

    assert isinstance(post, NormalPost)
    assert post.kind == "normal"
    assert post.images == ["/images/1-i1.jpg", "/images/2-i2.jpg"]
    assert [name for name, _, _ in media.stored] == ["i1.jpg", "i2.jpg"]
    assert media.squared == [True, True]
    assert service.repo.docs[post.id]["date"] == "2024-01-01"


def test_create_post_without_images_has_empty_list():
    post = make_service().create_post("A", datetime.date(2024, 1, 1), "hi")

    assert post.images == []


def test_create_post_fails_without_persisting_when_an_upload_fails():
    media = FakeMediaStore(fail_on="bad.jpg")
    service = make_service(media=media)

    with pytest.raises(RuntimeError):
        service.create_post(
            "A",
            datetime.date(2024, 1, 1),
            "hi",
            images=[("ok.jpg", None, b"1"), ("bad.jpg", None, b"2")],
        )

    # the first upload is orphaned, no post exists
    assert [name for name, _, _ in media.stored] == ["ok.jpg"]
    assert service.repo.docs == {}


def test_create_post_rejects_too_many_images():
    media = FakeMediaStore()
    service = make_service(media=media, max_images=2)

    with pytest.raises(ValidationFailure):
        service.create_post(
            "A",
            datetime.date(2024, 1, 1),
            "hi",
            images=[(f"{i}.jpg", None, b"x") for i in range(3)],
        )
    assert media.stored == []


@pytest.mark.parametrize(("title", "content"), [("", "hi"), ("  ", "hi"), ("A", "")])
def test_create_post_requires_title_and_content(title, content):
    with pytest.raises(ValidationFailure):
        make_service().create_post(title, datetime.date(2024, 1, 1), content)


def test_create_article_keeps_section_order():
    service = make_service()
    article = ArticleCreate(
        title="Guide",
        date=datetime.date(2024, 2, 2),
        sections=[
            Section(subtitle="Intro", content="first"),
            Section(content="second", image="/images/2.jpg"),
        ],
    )

    post = service.create_article(article)

    assert isinstance(post, ArticlePost)
    assert [s.content for s in post.sections] == ["first", "second"]
    assert post.sections[1].image == "/images/2.jpg"
    assert service.repo.docs[post.id]["kind"] == "article"


def test_update_post_changes_only_title_and_content():
    service = make_service(
        [normal_doc("n1", date="2024-01-01", images=["/i1.jpg", "/i2.jpg"])]
    )
    before = service.get_post("n1")

    after = service.update_post("n1", PostUpdate(title="New", content="changed"))

    assert (after.title, after.content) == ("New", "changed")
    assert after.images == before.images
    assert after.date == before.date
    assert after.kind == before.kind


def test_update_post_requires_content_for_normal_posts():
    service = make_service([normal_doc("n1")])

    with pytest.raises(ValidationFailure):
        service.update_post("n1", PostUpdate(title="New"))


@pytest.mark.parametrize("content", ["", "   "])
def test_update_post_rejects_blank_content_for_normal_posts(content):
    service = make_service([normal_doc("n1", content="keep me")])

    with pytest.raises(ValidationFailure):
        service.update_post("n1", PostUpdate(title="New", content=content))
    assert service.repo.docs["n1"]["content"] == "keep me"


def test_update_article_replaces_title_and_keeps_sections():
    sections = [{"subtitle": "S", "content": "c", "image": None}]
    service = make_service([article_doc("a1", sections=sections)])

    after = service.update_post("a1", PostUpdate(title="Renamed", content=""))

    assert after.title == "Renamed"
    assert [s.model_dump() for s in after.sections] == sections


def test_update_article_rejects_content():
    service = make_service([article_doc("a1")])

    with pytest.raises(ValidationFailure):
        service.update_post("a1", PostUpdate(title="Renamed", content="body"))


def test_update_post_raises_when_missing():
    with pytest.raises(PostNotFound):
        make_service().update_post("missing", PostUpdate(title="x", content="y"))


def test_delete_post_then_repeat_reports_not_found():
    service = make_service([normal_doc("n1")])

    service.delete_post("n1")

    with pytest.raises(PostNotFound):
        service.delete_post("n1")


def test_parse_post_doc_defaults_kind_to_normal():
    doc = normal_doc("legacy")
    del doc["kind"]

    post = parse_post_doc(doc)

    assert isinstance(post, NormalPost)


def test_parse_post_doc_drops_fields_of_the_other_kind():
    doc = normal_doc("n1", sections=[{"content": "ignored"}])

    post = parse_post_doc(doc)

    assert not hasattr(post, "sections")


def test_parse_post_doc_truncates_timestamps_to_dates():
    post = parse_post_doc(normal_doc("n1", date="2024-03-05T00:00:00.000Z"))

    assert post.date == datetime.date(2024, 3, 5)


def test_parse_post_doc_returns_none_for_malformed_doc():
    assert parse_post_doc({"_id": "x", "kind": "video", "title": "t"}) is None


def test_parse_post_doc_strict_raises_validation_failure():
    with pytest.raises(ValidationFailure):
        parse_post_doc({"_id": "x", "kind": "normal", "title": ""}, strict=True)


def test_write_failures_surface_as_upstream_failure():
    class DownRepo(FakeRepo):
        def insert_post_doc(self, fields):
            raise ConnectionError("couch down")

        def delete_post_doc(self, post_id):
            raise ConnectionError("couch down")

    service = PostsService(repo=DownRepo(), media=FakeMediaStore())

    with pytest.raises(UpstreamFailure):
        service.create_post("A", datetime.date(2024, 1, 1), "hi")
    with pytest.raises(UpstreamFailure):
        service.delete_post("n1")


def test_get_post_reports_unreachable_storage():
    class DownRepo(FakeRepo):
        def get_post_doc(self, post_id):
            raise ConnectionError("couch down")

    with pytest.raises(UpstreamFailure):
        PostsService(repo=DownRepo(), media=FakeMediaStore()).get_post("n1")
