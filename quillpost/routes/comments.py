# quillpost/routes/comments.py

"""
API endpoints для комментариев.

Чтение - публичное. Создание, правка и удаление - для авторизованных,
причём правка и удаление только своих комментариев.
Модерация доступна ролям из settings.MODERATION_ROLES.
"""

from fastapi import Depends, status
from sqlalchemy.orm import Session

from quillpost.config import settings
from quillpost.dependencies import get_current_user
from quillpost.models import User, UserRole
from quillpost.schemas import (
    CommentCreate,
    CommentModerate,
    CommentResponse,
    CommentUpdate,
    CommentWithPost,
)
from quillpost.services import comment_service
from quillpost.utils.database import get_db
from quillpost.utils.routing import Route, build_router

USER_OR_ADMIN = frozenset({UserRole.USER, UserRole.ADMIN})


def create_comment(
    comment: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Создаём комментарий или ответ. Автор - всегда текущий пользователь.
    """
    return comment_service.create_comment_for_post(db=db, author=current_user, comment_in=comment)


def get_comment(
    comment_id: int,
    db: Session = Depends(get_db),
):
    """
    Получить конкретный комментарий.

    Не требует авторизации.
    """
    return comment_service.get_comment_by_id(db=db, comment_id=comment_id)


def list_author_comments(
    author_id: int,
    db: Session = Depends(get_db),
):
    """Все комментарии автора, новые сверху"""
    return comment_service.list_comments_by_author(db=db, author_id=author_id)


def update_comment(
    comment_id: int,
    comment: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Обновить комментарий.

    Только для автора комментария.
    """
    return comment_service.update_comment_for_user(
        db=db,
        comment_id=comment_id,
        comment_update=comment,
        current_user=current_user,
    )


def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Удалить комментарий.

    Только автор комментария.
    """
    return comment_service.delete_comment_for_user(
        db=db,
        comment_id=comment_id,
        current_user=current_user,
    )


def moderate_comment(
    comment_id: int,
    body: CommentModerate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Сменить статус комментария"""
    return comment_service.moderate_comment(
        db=db,
        comment_id=comment_id,
        status=body.status,
        moderator=current_user,
    )


COMMENT_ROUTES = [
    Route(
        "POST", "", USER_OR_ADMIN, create_comment,
        {"response_model": CommentResponse, "status_code": status.HTTP_201_CREATED},
    ),
    Route("GET", "/author/{author_id}", None, list_author_comments, {"response_model": list[CommentWithPost]}),
    Route("GET", "/{comment_id}", None, get_comment, {"response_model": CommentWithPost}),
    Route(
        "PATCH", "/moderate/{comment_id}", frozenset(settings.MODERATION_ROLES), moderate_comment,
        {"response_model": CommentResponse},
    ),
    Route("PATCH", "/{comment_id}", USER_OR_ADMIN, update_comment, {"response_model": CommentResponse}),
    Route("DELETE", "/{comment_id}", USER_OR_ADMIN, delete_comment, {"response_model": CommentResponse}),
]

router = build_router(COMMENT_ROUTES, prefix="/comments", tags=["comments"])
