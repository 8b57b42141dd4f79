# chat_server/api/auth.py
import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from chat_server.api.dependencies import (
    get_config,
    get_security_service,
    get_token_interactor,
    get_user_interactor,
    oauth2_scheme,
)
from chat_server.config import AppConfig
from chat_server.infrastructure import schemas
from chat_server.infrastructure.security import SecurityService
from chat_server.interactors.token_interactor import TokenInteractor
from chat_server.interactors.user_interactor import UserInteractor

router = APIRouter()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _issue_tokens(
    user: schemas.User,
    token_interactor: TokenInteractor,
    security_service: SecurityService,
    config: AppConfig,
) -> schemas.TokenResponse:
    access_token, access_expire = security_service.create_access_token(
        data={"sub": user.username},
        expires_delta=datetime.timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    refresh_token, _ = security_service.create_refresh_token(data={"sub": user.username})
    return await token_interactor.create_token(
        schemas.TokenCreate(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_at=access_expire,
            user_id=user.id,
        )
    )


@router.post("/login", response_model=schemas.TokenResponse)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    user_interactor: UserInteractor = Depends(get_user_interactor),
    token_interactor: TokenInteractor = Depends(get_token_interactor),
    config: AppConfig = Depends(get_config),
    security_service: SecurityService = Depends(get_security_service),
):
    user = await user_interactor.verify_user_password(
        form_data.username, form_data.password
    )
    if not user:
        raise _unauthorized("Incorrect username or password")
    if not user.is_active:
        raise _unauthorized("Inactive user")
    return await _issue_tokens(user, token_interactor, security_service, config)


@router.post("/register", response_model=schemas.User, status_code=201)
async def register_user(
    user: schemas.UserCreate,
    user_interactor: UserInteractor = Depends(get_user_interactor),
):
    return await user_interactor.create_user(user)


@router.post("/refresh", response_model=schemas.TokenResponse)
async def refresh_token(
    refresh_token_request: schemas.RefreshTokenRequest,
    token_interactor: TokenInteractor = Depends(get_token_interactor),
    user_interactor: UserInteractor = Depends(get_user_interactor),
    security_service: SecurityService = Depends(get_security_service),
    config: AppConfig = Depends(get_config),
):
    token = await token_interactor.get_token_by_refresh_token(
        refresh_token_request.refresh_token
    )
    if not token:
        raise _unauthorized("Invalid refresh token")

    username = security_service.decode_refresh_token(token.refresh_token)
    if not username:
        raise _unauthorized("Invalid refresh token")

    user = await user_interactor.get_user_by_username(username)
    if not user or not user.is_active:
        raise _unauthorized("User not found or inactive")

    await token_interactor.delete_token_by_refresh_token(
        refresh_token_request.refresh_token
    )
    return await _issue_tokens(user, token_interactor, security_service, config)


@router.post("/logout", status_code=204)
async def logout(
    token: str = Depends(oauth2_scheme),
    token_interactor: TokenInteractor = Depends(get_token_interactor),
):
    deleted = await token_interactor.delete_token_by_access_token(token)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
