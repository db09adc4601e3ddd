# quillpost/dependencies.py

"""
Зависимости для использования в endpoints

Здесь же живёт проверка ролей: is_authorized() - чистая функция,
require_roles() - обёртка над ней для таблицы маршрутов.
"""

from typing import Callable, Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from quillpost.models import User, UserRole, UserStatus
from quillpost.utils.database import get_db
from quillpost.utils.exceptions import NotAuthenticated, PermissionDeniedError
from quillpost.utils.security import ACCESS_TOKEN, decode_token

security = HTTPBearer(auto_error=False)


def get_current_user_optional(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Необязательный текущий пользователь.

    Если токена нет или он невалиден - возвращаем None,
    иначе - объект User.
    """
    if credentials is None:
        return None

    payload = decode_token(credentials.credentials, expected_type=ACCESS_TOKEN)
    if payload is None:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    return db.query(User).filter(User.id == int(user_id)).first()


def get_current_user(
        user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    """
    Получаем текущего авторизованного пользователя или 401
    """
    if user is None:
        raise NotAuthenticated()
    return user


def is_authorized(user: Optional[User], allowed_roles: Iterable) -> bool:
    """
    Пускаем, только если пользователь есть и его роль входит в allowed_roles
    """
    if user is None:
        return False
    return UserRole(user.role) in {UserRole(role) for role in allowed_roles}


def require_roles(*roles) -> Callable[..., User]:
    """
    Зависимость-гейт для маршрута с набором допустимых ролей.

    Нет пользователя -> 401. Аккаунт заблокирован, почта не подтверждена
    или роль не подходит -> 403.
    """
    allowed = frozenset(UserRole(role) for role in roles)

    def gate(user: Optional[User] = Depends(get_current_user_optional)) -> User:
        if user is None:
            raise NotAuthenticated()
        if UserStatus(user.status) != UserStatus.ACTIVE:
            raise PermissionDeniedError("Account is blocked", code="account_blocked")
        if not user.email_verified:
            raise PermissionDeniedError(
                "Email verification required",
                code="email_not_verified",
            )
        if not is_authorized(user, allowed):
            raise PermissionDeniedError("Forbidden! You don't have access to this resource")
        return user

    return gate
