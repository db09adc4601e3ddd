"""
API endpoints для публикаций

Публичные: лента и чтение поста. Остальное - по ролям из таблицы POST_ROUTES.
"""

from typing import Literal, Optional

from fastapi import Depends, Query, status
from sqlalchemy.orm import Session

from quillpost.config import settings
from quillpost.dependencies import get_current_user
from quillpost.models import PostStatus, User, UserRole
from quillpost.schemas import (
    MyPostsResponse,
    PostCreate,
    PostDetail,
    PostListResponse,
    PostResponse,
    PostStats,
    PostUpdate,
)
from quillpost.services import post_service
from quillpost.utils.database import get_db
from quillpost.utils.pagination import PageParams, parse_bool_flag, parse_csv
from quillpost.utils.routing import Route, build_router

USER_OR_ADMIN = frozenset({UserRole.USER, UserRole.ADMIN})


# ==========================
# ЛЕНТА ПУБЛИКАЦИЙ С ФИЛЬТРАМИ
# ==========================

def list_posts(
    search: Optional[str] = None,
    tags: Optional[str] = Query(default=None, description="Comma-separated, all must match"),
    is_featured: Optional[str] = Query(default=None, alias="isFeatured"),
    post_status: Optional[PostStatus] = Query(default=None, alias="status"),
    author_id: Optional[int] = Query(default=None, alias="authorId"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
):
    """
    Получаем страницу постов.

    Не требует авторизации. Все заданные фильтры объединяются через AND.
    """
    return post_service.list_posts_with_filters(
        db=db,
        params=PageParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order),
        search=search.strip() if search else None,
        tags=parse_csv(tags),
        is_featured=parse_bool_flag(is_featured),
        status=post_status,
        author_id=author_id,
    )


def get_my_posts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Посты текущего пользователя"""
    return post_service.get_my_posts(db=db, user=current_user)


def get_post_stats(db: Session = Depends(get_db)):
    """Сводная статистика для админки"""
    return post_service.get_post_stats(db=db)


# ==========================================
# ПОЛУЧИТЬ ПУБЛИКАЦИЮ С КОММЕНТАРИЯМИ
# ==========================================

def get_post(
    post_id: int,
    db: Session = Depends(get_db),
):
    """
    Получаем пост с одобренными комментариями и засчитываем просмотр.

    Не требует авторизации.
    """
    return post_service.get_post_with_comments(db=db, post_id=post_id)


def create_post(
    post: PostCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Создание публикации с привязкой к текущему пользователю.
    """
    return post_service.create_post_for_user(db=db, author=current_user, post_in=post)


def update_post(
    post_id: int,
    post_update: PostUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Обновление (редактирование) поста.
    """
    return post_service.update_post_for_user(
        db=db,
        post_id=post_id,
        post_update=post_update,
        current_user=current_user,
    )


def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Удаление поста. Возвращает удалённую запись.
    """
    return post_service.delete_post_for_user(db=db, post_id=post_id, current_user=current_user)


POST_ROUTES = [
    Route("GET", "", None, list_posts, {"response_model": PostListResponse}),
    Route("GET", "/my-posts", USER_OR_ADMIN, get_my_posts, {"response_model": MyPostsResponse}),
    Route("GET", "/stats", frozenset({UserRole.ADMIN}), get_post_stats, {"response_model": PostStats}),
    Route("GET", "/{post_id}", None, get_post, {"response_model": PostDetail}),
    Route(
        "POST", "", frozenset({UserRole.USER}), create_post,
        {"response_model": PostResponse, "status_code": status.HTTP_201_CREATED},
    ),
    Route("PATCH", "/{post_id}", USER_OR_ADMIN, update_post, {"response_model": PostResponse}),
    Route("DELETE", "/{post_id}", USER_OR_ADMIN, delete_post, {"response_model": PostResponse}),
]

router = build_router(POST_ROUTES, prefix="/posts", tags=["posts"])
