# quillpost/utils/security.py

"""
Утилиты для безопасности: хэширование пароля и JWT токены
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from passlib.context import CryptContext
from quillpost.config import settings

from uuid import uuid4

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
EMAIL_VERIFICATION_TOKEN = "email_verification"

# Контекст bcrypt алгоритм
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# =============================
# ФУНКЦИЯ ДЛЯ РАБОТЫ С ПАРОЛЯМИ
# =============================

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

# Проверка, что введённый пароль совпадает с хэшем в БД
def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    # У аккаунтов Google пароля нет
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)

# =============================
# ФУНКЦИИ ДЛЯ РАБОТЫ С JWT
# =============================

def _encode(data: dict, token_type: str, expires_delta: timedelta, **claims) -> str:
    to_encode = data.copy()

    # Добавляем в токен время истечения и тип
    to_encode.update({
        "exp": datetime.now(timezone.utc) + expires_delta,
        "token_type": token_type,
        **claims,
    })

    # Кодируем в JWT
    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    return _encode(
        data,
        ACCESS_TOKEN,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    return _encode(
        data,
        REFRESH_TOKEN,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        jti=str(uuid4()),
    )


def create_email_verification_token(user_id: int, email: str) -> str:
    """
    Токен для ссылки подтверждения почты.

    Email кладём в токен, чтобы ссылка перестала работать после смены адреса.
    """
    return _encode(
        {"sub": str(user_id), "email": email},
        EMAIL_VERIFICATION_TOKEN,
        timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
    )


def decode_token(token: str, expected_type: Optional[str] = None) -> Optional[dict]:
    """
    Декодируем JWT токен и проверяем подпись и тип
    """

    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except jwt.ExpiredSignatureError:
        # Токен истек
        return None
    except jwt.InvalidTokenError:
        # Токен подделан
        return None

    if expected_type is not None and payload.get("token_type") != expected_type:
        return None
    return payload
