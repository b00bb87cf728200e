import itertools

import pycouchdb

from app.errors import PostNotFound


class FakeCouchDB:
    """
    Minimal in-memory CouchDB stand-in.
    Set track_calls=True to record the order of get() calls.
    """

    def __init__(self, docs: dict | None = None, track_calls: bool = False):
        self.docs = dict(docs or {})
        self.attachments = {}
        self.track_calls = track_calls
        self.calls = []
        self._ids = itertools.count(1)

    def get(self, doc_id: str) -> dict:
        if self.track_calls:
            self.calls.append(doc_id)
        if doc_id not in self.docs:
            raise pycouchdb.exceptions.NotFound(doc_id)
        return dict(self.docs[doc_id])

    def save(self, doc: dict) -> dict:
        doc = dict(doc)
        doc.setdefault("_id", f"generated-{next(self._ids)}")
        revision = int(doc.get("_rev", "0-x").split("-")[0]) + 1
        doc["_rev"] = f"{revision}-fake"
        self.docs[doc["_id"]] = doc
        return dict(doc)

    def delete(self, doc_or_id):
        doc_id = doc_or_id if isinstance(doc_or_id, str) else doc_or_id["_id"]
        if doc_id not in self.docs:
            raise pycouchdb.exceptions.NotFound(doc_id)
        del self.docs[doc_id]

    def all(self, include_docs: bool = True):
        if self.track_calls:
            self.calls.append(f"all(include_docs={include_docs})")
        rows = []
        for doc_id, doc in self.docs.items():
            row = {"id": doc_id, "key": doc_id, "value": {"rev": doc.get("_rev")}}
            if include_docs:
                row["doc"] = dict(doc)
            rows.append(row)
        return rows

    def put_attachment(self, doc, content, filename=None, mimetype=None):
        self.attachments[(doc["_id"], filename)] = (content, mimetype)
        return doc

    def get_attachment(self, doc, filename, stream=False):
        key = (doc["_id"], filename)
        if key not in self.attachments:
            raise pycouchdb.exceptions.NotFound(filename)
        return self.attachments[key][0]


class FakeRepo:
    """
    Minimal posts repo stand-in used in service tests.
    """

    def __init__(self, docs=None):
        self.docs = {doc["_id"]: dict(doc) for doc in (docs or [])}
        self._ids = itertools.count(1)

    def list_post_docs(self):
        return [dict(doc) for doc in self.docs.values()]

    def get_post_doc(self, post_id):
        doc = self.docs.get(post_id)
        return dict(doc) if doc else None

    def insert_post_doc(self, fields):
        doc = {"_id": f"post-{next(self._ids)}", **fields}
        self.docs[doc["_id"]] = doc
        return dict(doc)

    def update_post_doc(self, post_id, fields):
        if post_id not in self.docs:
            return None
        self.docs[post_id] = {**self.docs[post_id], **fields}
        return dict(self.docs[post_id])

    def delete_post_doc(self, post_id):
        return self.docs.pop(post_id, None) is not None


class FakeMediaStore:
    """
    Records uploads and hands back predictable URLs.
    """

    def __init__(self, fail_on: str | None = None, error=RuntimeError):
        self.stored = []
        self.squared = []
        self.fail_on = fail_on
        self.error = error

    def store(self, data, filename, content_type=None, square=False):
        if filename == self.fail_on:
            raise self.error(f"upload of {filename} failed")
        self.stored.append((filename, content_type, data))
        self.squared.append(square)
        return f"/images/{len(self.stored)}-{filename}"

    def fetch(self, name):
        for index, (filename, content_type, data) in enumerate(self.stored, start=1):
            if f"{index}-{filename}" == name:
                return data, content_type
        return None, None


class FakeUsersRepo:
    def __init__(self, users=None):
        self.users = dict(users or {})

    def count_users(self):
        return len(self.users)

    def get_user(self, username):
        return self.users.get(username)

    def insert_user(self, username, password_hash):
        self.users[username] = {"username": username, "password": password_hash}
        return self.users[username]


class FakePostsService:
    """
    Minimal posts service stand-in for router tests.
    """

    def __init__(self, list_posts_return=None, get_post_return=None):
        self._list_posts_return = list_posts_return or []
        self._get_post_return = get_post_return
        self.deleted = []

    def list_posts(self):
        return self._list_posts_return

    def get_post(self, post_id: str):
        if self._get_post_return is None:
            raise PostNotFound(post_id)
        return self._get_post_return

    def delete_post(self, post_id: str):
        if self._get_post_return is None:
            raise PostNotFound(post_id)
        self.deleted.append(post_id)


def normal_doc(doc_id="n1", date="2024-01-01", images=None, **extra):
    return {
        "_id": doc_id,
        "_rev": "1-a",
        "kind": "normal",
        "title": f"Post {doc_id}",
        "date": date,
        "content": "hi",
        "images": images if images is not None else [],
        **extra,
    }


def article_doc(doc_id="a1", date="2024-01-01", sections=None, **extra):
    return {
        "_id": doc_id,
        "_rev": "1-a",
        "kind": "article",
        "title": f"Article {doc_id}",
        "date": date,
        "sections": sections if sections is not None else [],
        **extra,
    }
