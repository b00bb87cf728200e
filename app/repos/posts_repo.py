import uuid
from typing import List, Optional

import pycouchdb


class CouchPostsRepo:
    """Post documents stored one per CouchDB document."""

    def __init__(self, couch_db):
        self.db = couch_db

    def list_post_docs(self) -> List[dict]:
        all_docs = [row.get("doc", row) for row in self.db.all(include_docs=True)]
        return [doc for doc in all_docs if self._is_post(doc)]

    def get_post_doc(self, post_id: str) -> Optional[dict]:
        try:
            doc = self.db.get(post_id)
        except pycouchdb.exceptions.NotFound:
            return None
        return doc if self._is_post(doc) else None

    def insert_post_doc(self, fields: dict) -> dict:
        doc = {"_id": uuid.uuid4().hex, **fields}
        return self.db.save(doc)

    def update_post_doc(self, post_id: str, fields: dict) -> Optional[dict]:
        doc = self.get_post_doc(post_id)
        if doc is None:
            return None
        return self.db.save({**doc, **fields})

    def delete_post_doc(self, post_id: str) -> bool:
        if self.get_post_doc(post_id) is None:
            return False
        try:
            self.db.delete(post_id)
        except pycouchdb.exceptions.NotFound:
            return False
        return True

    @staticmethod
    def _is_post(doc: dict | None) -> bool:
        if not doc:
            return False
        return not doc.get("_id", "").startswith("_design/")
