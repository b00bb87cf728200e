import logging

from fastapi import APIRouter, Depends, HTTPException

from app import dependencies as deps
from app.errors import InvalidCredentials, RegistrationClosed, ValidationFailure
from app.schemas.auth import Credentials, RegisteredUser, TokenResponse
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")


@router.post("/register", response_model=RegisteredUser, status_code=201)
def register(
    credentials: Credentials,
    service: AuthService = Depends(deps.get_auth_service),
):
    try:
        username = service.register(credentials.username, credentials.password)
    except RegistrationClosed:
        raise HTTPException(status_code=403, detail="Registration is closed")
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error registering {credentials.username}: {e}")
        raise HTTPException(status_code=500, detail="Failed to register")
    return RegisteredUser(username=username)


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: Credentials,
    service: AuthService = Depends(deps.get_auth_service),
):
    try:
        token = service.login(credentials.username, credentials.password)
    except InvalidCredentials:
        raise HTTPException(
            status_code=401,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Exception as e:
        logger.error(f"Unexpected error logging in {credentials.username}: {e}")
        raise HTTPException(status_code=500, detail="Failed to log in")
    return TokenResponse(token=token)
