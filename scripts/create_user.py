import getpass
import logging
import sys

from app.db.couchdb import get_users_db
from app.errors import RegistrationClosed, UpstreamFailure, ValidationFailure
from app.repos.users_repo import CouchUsersRepo
from app.services.auth_service import AuthService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

if __name__ == "__main__":
    username = sys.argv[1] if len(sys.argv) > 1 else input("Username: ")
    password = getpass.getpass("Password: ")
    service = AuthService(CouchUsersRepo(get_users_db()))
    try:
        service.register(username, password)
        logger.info(f"Created site owner {username}.")
    except (RegistrationClosed, UpstreamFailure, ValidationFailure) as e:
        logger.error(f"Could not create user: {e}")
        sys.exit(1)
