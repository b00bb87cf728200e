import logging
from contextlib import contextmanager

import pycouchdb

from app.errors import PortfolioError, UpstreamFailure
from app.settings import settings

logger = logging.getLogger(__name__)

# Opened database handles, keyed by database name
_handles = {}


def get_server():
    return pycouchdb.Server(settings.couchdb_url)


def get_database(name: str, server=None):
    """
    Return a handle to the named database, creating it when missing.
    Handles are cached so the existence check runs once per process.
    """
    if name in _handles:
        return _handles[name]

    server = server or get_server()
    try:
        db = server.database(name)
    except pycouchdb.exceptions.NotFound:
        logger.info(f"Creating CouchDB database {name}")
        db = server.create(name)
    _handles[name] = db
    return db


def reset_handles() -> None:
    _handles.clear()


class LazyDatabase:
    """
    Stand-in for a pycouchdb database that connects on first use, so a
    request only reaches CouchDB from inside the service call guarding it.
    """

    def __init__(self, name: str, opener=get_database):
        self.name = name
        self.opener = opener
        self._db = None

    def __getattr__(self, attr):
        if self._db is None:
            self._db = self.opener(self.name)
        return getattr(self._db, attr)


@contextmanager
def storage_errors(action: str):
    """Re-raise anything but a domain error as UpstreamFailure."""
    try:
        yield
    except PortfolioError:
        raise
    except Exception as e:
        logger.error(f"Failed to {action}: {e}")
        raise UpstreamFailure(f"Failed to {action}") from e


def get_posts_db():
    return LazyDatabase(settings.POSTS_DATABASE)


def get_users_db():
    return LazyDatabase(settings.USERS_DATABASE)


def get_media_db():
    return LazyDatabase(settings.MEDIA_DATABASE)


def ensure_databases(server=None) -> None:
    server = server or get_server()
    for name in (
        settings.POSTS_DATABASE,
        settings.USERS_DATABASE,
        settings.MEDIA_DATABASE,
    ):
        get_database(name, server=server)
