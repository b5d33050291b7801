# PURPOSE: /auth/register, /auth/login, /auth/profile, /auth/change-password,
# /auth/validate-token, /auth/logout

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from .. import users_db
from ..api.deps import get_db, get_settings
from ..auth import get_current_user, hash_password, issue_token, verify_password
from ..config import Settings, settings as default_settings
from ..exceptions import AuthError, InternalError, ValidationError
from ..logging_utils import log_event
from ..models import (
    ApiResponse,
    AuthData,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    TokenCheck,
    UserCreate,
    UserData,
    UserPublic,
)
from ..rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_data(row, settings: Settings) -> AuthData:
    token = issue_token(row.id, row.name, row.email, settings=settings)
    return AuthData(token=token, user=UserPublic.model_validate(row))


@router.post("/register", response_model=ApiResponse[AuthData], status_code=status.HTTP_201_CREATED)
@limiter.limit(default_settings.RATE_LIMIT_REGISTER)
def register(
    request: Request,
    response: Response,
    payload: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    row = users_db.create_user(
        db,
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
    )
    return ApiResponse[AuthData](message="User created successfully", data=_auth_data(row, settings))


@router.post("/login", response_model=ApiResponse[AuthData])
@limiter.limit(default_settings.RATE_LIMIT_LOGIN)
def login(
    request: Request,
    response: Response,
    payload: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    row = users_db.get_user_by_email(db, payload.email)
    # unknown email and wrong password look the same to the caller
    if row is None or not verify_password(payload.password, row.password_hash):
        client = request.client.host if request.client else None
        log_event(logger, "login_failed", level=logging.WARNING, client=client)
        raise AuthError("Invalid email or password", ["Invalid credentials"])
    log_event(logger, "login_succeeded", user_id=row.id)
    return ApiResponse[AuthData](message="Login successful", data=_auth_data(row, settings))


@router.get("/profile", response_model=ApiResponse[UserData])
def profile(user: UserPublic = Depends(get_current_user)):
    return ApiResponse[UserData](message="Profile retrieved successfully", data=UserData(user=user))


@router.put("/profile", response_model=ApiResponse[UserData])
def update_profile(
    payload: ProfileUpdate,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = users_db.get_user(db, user.id)
    if row is None:
        raise InternalError("Failed to update profile")
    row = users_db.update_profile(db, row, name=payload.name, email=payload.email)
    return ApiResponse[UserData](
        message="Profile updated successfully", data=UserData(user=UserPublic.model_validate(row))
    )


@router.put("/change-password", response_model=ApiResponse[dict])
def change_password(
    payload: PasswordChange,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = users_db.get_user(db, user.id)
    if row is None:
        raise InternalError("Failed to change password")
    if not verify_password(payload.current_password, row.password_hash):
        raise ValidationError("Current password is incorrect", ["Current password does not match"])
    users_db.set_password_hash(db, row, hash_password(payload.new_password))
    return ApiResponse[dict](message="Password changed successfully", data={})


@router.post("/validate-token", response_model=ApiResponse[TokenCheck])
def validate_token(user: UserPublic = Depends(get_current_user)):
    return ApiResponse[TokenCheck](message="Token is valid", data=TokenCheck(user=user))


@router.post("/logout", response_model=ApiResponse[dict])
def logout(user: UserPublic = Depends(get_current_user)):
    # tokens are stateless; the client discards its copy
    log_event(logger, "logout", user_id=user.id)
    return ApiResponse[dict](message="Logout successful", data={})
