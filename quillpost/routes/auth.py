# quillpost/routes/auth.py

"""
API endpoints для регистрации, подтверждения почты и авторизации.

Работа с БД и bcrypt синхронная, поэтому уходит в threadpool,
а в event loop остаются только обращения к Redis.
"""

from fastapi import BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from quillpost.config import settings
from quillpost.schemas import (
    GoogleSignInRequest,
    TokenLogoutRequest,
    TokenRefreshRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from quillpost.services import auth_service
from quillpost.services.google_service import verify_google_id_token
from quillpost.services.mail_service import send_verification_email
from quillpost.utils.database import get_db
from quillpost.utils.exceptions import NotAuthenticated
from quillpost.utils.limiter import limiter
from quillpost.utils.routing import Route, build_router


# ===============================
# РЕГИСТРАЦИЯ НОВОГО ПОЛЬЗОВАТЕЛЯ
# ===============================

@limiter.limit(settings.REGISTER_RATE_LIMIT)
async def register_user(
        user: UserCreate,
        request: Request,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db)
):
    """
    Регистрация. Письмо с подтверждением уходит в фоне, входа сразу нет.
    """
    db_user, token = await run_in_threadpool(auth_service.register_user_in_db, db, user)
    background_tasks.add_task(send_verification_email, db_user.email, token)
    return db_user


async def verify_email(
        token: str,
        db: Session = Depends(get_db)
):
    """Подтверждение почты по ссылке из письма"""
    db_user = await run_in_threadpool(auth_service.verify_email, db, token)
    return await auth_service.issue_tokens(db_user)


# ==============================
# Авторизация созданного профиля
# ==============================

@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login_user(
        user: UserLogin,
        request: Request,
        db: Session = Depends(get_db)
):
    """Логин пользователя"""
    db_user = await run_in_threadpool(auth_service.authenticate_user, db, user)
    return await auth_service.issue_tokens(db_user)


@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def google_sign_in(
        body: GoogleSignInRequest,
        request: Request,
        db: Session = Depends(get_db)
):
    """Вход через Google по ID-токену с фронтенда"""
    profile = await run_in_threadpool(verify_google_id_token, body.id_token)
    if profile is None:
        raise NotAuthenticated("Invalid Google credentials")
    db_user = await run_in_threadpool(auth_service.sign_in_with_google, db, profile)
    return await auth_service.issue_tokens(db_user)


# ================
# REFRESH / LOGOUT
# ================

async def refresh_token_endpoint(
        body: TokenRefreshRequest,
        db: Session = Depends(get_db)
):
    return await auth_service.refresh_access_token(db=db, refresh_token=body.refresh_token)


async def logout(body: TokenLogoutRequest):
    await auth_service.logout(body.refresh_token)


AUTH_ROUTES = [
    Route(
        "POST", "/sign-up/email", None, register_user,
        {"response_model": UserResponse, "status_code": status.HTTP_201_CREATED},
    ),
    Route("GET", "/verify-email", None, verify_email, {"response_model": TokenResponse}),
    Route("POST", "/sign-in/email", None, login_user, {"response_model": TokenResponse}),
    Route("POST", "/sign-in/google", None, google_sign_in, {"response_model": TokenResponse}),
    Route("POST", "/refresh", None, refresh_token_endpoint, {"response_model": TokenResponse}),
    Route("POST", "/logout", None, logout, {"status_code": status.HTTP_204_NO_CONTENT}),
]

# Router для всех auth-эндпоинтов
router = build_router(
    AUTH_ROUTES,
    prefix=f"{settings.API_PREFIX}/auth",
    tags=["auth"],
    responses={400: {"description": "Bad Request"}},
)
