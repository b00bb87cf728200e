from fastapi import Depends

from app.db.couchdb import get_media_db, get_posts_db, get_users_db
from app.repos.posts_repo import CouchPostsRepo
from app.repos.users_repo import CouchUsersRepo
from app.security import get_settings
from app.services.auth_service import AuthService
from app.services.contact_service import ContactService
from app.services.media_service import MediaStore
from app.services.posts_service import PostsService


def get_posts_repo(couch_db=Depends(get_posts_db)):
    return CouchPostsRepo(couch_db)


def get_media_store(couch_db=Depends(get_media_db)):
    return MediaStore(couch_db)


def get_posts_service(
    repo=Depends(get_posts_repo),
    media=Depends(get_media_store),
):
    return PostsService(repo=repo, media=media)


def get_users_repo(couch_db=Depends(get_users_db)):
    return CouchUsersRepo(couch_db)


def get_auth_service(
    repo=Depends(get_users_repo),
    current_settings=Depends(get_settings),
):
    return AuthService(repo=repo, current_settings=current_settings)


def get_contact_service(current_settings=Depends(get_settings)):
    return ContactService(current_settings=current_settings)
