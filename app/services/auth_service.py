import logging

from app.db.couchdb import storage_errors
from app.errors import InvalidCredentials, RegistrationClosed, ValidationFailure
from app.security import create_access_token, hash_password, verify_password
from app.settings import Settings, settings

logger = logging.getLogger(__name__)


class AuthService:
    """Single-owner sign in. Registration closes for good after the first user."""

    def __init__(self, repo, current_settings: Settings | None = None):
        self.repo = repo
        self.settings = current_settings or settings

    def registration_open(self) -> bool:
        with storage_errors("count users"):
            return self.repo.count_users() == 0

    def register(self, username: str, password: str) -> str:
        username = (username or "").strip()
        if not username or not password:
            raise ValidationFailure("username and password are required")
        if not self.registration_open():
            logger.warning(f"Rejected registration attempt for {username}")
            raise RegistrationClosed("Registration is closed")

        with storage_errors(f"save user {username}"):
            self.repo.insert_user(username, hash_password(password))
        logger.info(f"Registered site owner {username}")
        return username

    def login(self, username: str, password: str) -> str:
        with storage_errors("load user"):
            user = self.repo.get_user((username or "").strip())
        if not user or not verify_password(password or "", user.get("password", "")):
            logger.warning(f"Failed login for {username}")
            raise InvalidCredentials("Invalid username or password")
        return create_access_token(user["username"], self.settings)
