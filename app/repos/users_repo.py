from typing import Optional

import pycouchdb


class CouchUsersRepo:
    """Owner credentials keyed by username."""

    def __init__(self, couch_db):
        self.db = couch_db

    def count_users(self) -> int:
        return sum(
            1
            for row in self.db.all(include_docs=False)
            if not row.get("id", "").startswith("_design/")
        )

    def get_user(self, username: str) -> Optional[dict]:
        try:
            return self.db.get(self._doc_id(username))
        except pycouchdb.exceptions.NotFound:
            return None

    def insert_user(self, username: str, password_hash: str) -> dict:
        return self.db.save(
            {
                "_id": self._doc_id(username),
                "username": username,
                "password": password_hash,
            }
        )

    @staticmethod
    def _doc_id(username: str) -> str:
        return f"user:{username.lower()}"
