# quillpost/routes/users.py

"""
API enpoints для работы с текущим пользователем.
"""

from fastapi import Depends

from quillpost.config import settings
from quillpost.dependencies import get_current_user
from quillpost.models import User
from quillpost.schemas import UserResponse
from quillpost.utils.routing import Route, build_router


def get_me(current_user: User = Depends(get_current_user)):
    """
    Возвращает данные текущего пользователя:
    id, name, email, role, status
    """
    return current_user


USER_ROUTES = [
    Route("GET", "/me", None, get_me, {"response_model": UserResponse}),
]

router = build_router(USER_ROUTES, prefix=f"{settings.API_PREFIX}/users", tags=["users"])
