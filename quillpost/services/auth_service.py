# quillpost/services/auth_service.py

"""
Сервисный слой для регистрации, логина и подтверждения почты.

Знает про модели, БД, хэширование и JWT, но не про HTTP.
"""

import logging

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from quillpost.models import User, UserStatus
from quillpost.schemas import UserCreate, UserLogin
from quillpost.services.token_store import token_store
from quillpost.utils.exceptions import AppError, NotAuthenticated, PermissionDeniedError
from quillpost.utils.security import (
    EMAIL_VERIFICATION_TOKEN,
    REFRESH_TOKEN,
    create_access_token,
    create_email_verification_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)


def validate_password_strength(password: str) -> None:
    """
    Проверяет базовую сложность пароля.

    Условия:
    - длина не меньше 8 символов;
    - минимум одна буква;
    - минимум одна цифра;
    """
    if len(password) < 8:
        raise AppError("Password must be at least 8 characters", code="weak_password")

    if not any(ch.isalpha() for ch in password):
        raise AppError("Password must contain at least one letter", code="weak_password")

    if not any(ch.isdigit() for ch in password):
        raise AppError("Password must contain at least one digit", code="weak_password")


async def issue_tokens(user: User) -> dict:
    """
    Выпустить пару access/refresh и запомнить jti refresh-токена в Redis.
    """
    access_token = create_access_token(data={"sub": str(user.id)})
    refresh_token = create_refresh_token(data={"sub": str(user.id)})

    payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
    await token_store.store_refresh_token(payload["jti"], user.id)

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
    }


def register_user_in_db(
    db: Session,
    user_in: UserCreate,
) -> tuple[User, str]:
    """
    Зарегистрировать нового пользователя.

    Возвращает пользователя и токен для письма подтверждения.
    Автоматического входа нет: сначала нужно подтвердить почту.
    """
    validate_password_strength(user_in.password)

    # Проверка уникальности email
    if db.query(User).filter(User.email == user_in.email).first():
        raise AppError("Email already registered", code="email_taken")

    db_user = User(
        name=user_in.name,
        email=user_in.email,
        hashed_password=hash_password(user_in.password),
    )

    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    logger.info("User %s registered", db_user.id)
    return db_user, create_email_verification_token(db_user.id, db_user.email)


def _ensure_can_sign_in(db_user: User) -> None:
    if UserStatus(db_user.status) != UserStatus.ACTIVE:
        raise PermissionDeniedError("Account is blocked", code="account_blocked")


def verify_email(db: Session, token: str) -> User:
    """
    Подтвердить почту по токену из письма.

    Заблокированный аккаунт получает 403, почта при этом не подтверждается.
    """
    payload = decode_token(token, expected_type=EMAIL_VERIFICATION_TOKEN)
    if payload is None or payload.get("sub") is None:
        raise AppError("Invalid or expired verification token", code="invalid_token")

    db_user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if db_user is None or db_user.email != payload.get("email"):
        raise AppError("Invalid or expired verification token", code="invalid_token")

    _ensure_can_sign_in(db_user)

    if not db_user.email_verified:
        db_user.email_verified = True
        db.commit()
        db.refresh(db_user)
        logger.info("User %s verified email", db_user.id)

    return db_user


def authenticate_user(
    db: Session,
    creds: UserLogin,
) -> User:
    """
    Аутентифицировать пользователя по email и паролю.
    """
    db_user = db.query(User).filter(User.email == creds.email).first()

    # Если пользователь не найден или неверный пароль
    if not db_user or not verify_password(creds.password, db_user.hashed_password):
        raise NotAuthenticated("Incorrect email or password")

    if not db_user.email_verified:
        raise PermissionDeniedError("Email is not verified", code="email_not_verified")

    _ensure_can_sign_in(db_user)
    logger.info("User %s signed in", db_user.id)
    return db_user


def sign_in_with_google(db: Session, profile: dict) -> User:
    """
    Вход через Google: находим пользователя по почте или создаём нового.

    Google уже подтвердил адрес, поэтому email_verified выставляется сразу.
    """
    db_user = db.query(User).filter(User.email == profile["email"]).first()

    if db_user is None:
        db_user = User(
            name=profile["name"],
            email=profile["email"],
            image=profile.get("picture"),
            email_verified=True,
        )
        db.add(db_user)
        logger.info("User created from Google sign-in: %s", profile["email"])
    else:
        _ensure_can_sign_in(db_user)
        db_user.email_verified = True

    db.commit()
    db.refresh(db_user)
    return db_user


def _load_user_for_refresh(db: Session, user_id: int) -> User:
    # Проверить, что пользователь еще существует и не заблокирован
    db_user = db.query(User).filter(User.id == user_id).first()
    if not db_user:
        raise NotAuthenticated("User not found")

    _ensure_can_sign_in(db_user)
    return db_user


async def refresh_access_token(db: Session, refresh_token: str) -> dict:
    payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
    if payload is None or not payload.get("jti") or not payload.get("sub"):
        raise NotAuthenticated("Invalid or expired refresh token")

    # Проверяем, не отозван ли токен
    if not await token_store.is_refresh_token_active(payload["jti"]):
        raise NotAuthenticated("Refresh token has been revoked")

    db_user = await run_in_threadpool(_load_user_for_refresh, db, int(payload["sub"]))

    return {
        "access_token": create_access_token(data={"sub": str(db_user.id)}),
        "refresh_token": refresh_token,
        "token_type": "bearer",
    }


async def logout(refresh_token: str) -> None:
    payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
    if payload is None or not payload.get("jti"):
        raise NotAuthenticated("Invalid or expired refresh token")

    # Отзываем refresh-токен: удаляем запись из Redis
    await token_store.revoke_refresh_token(payload["jti"])
