# quillpost/schemas/__init__.py

from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional, List

from quillpost.models import UserRole, UserStatus, PostStatus, CommentStatus

# =======================
# СХЕМЫ ДЛЯ ПОЛЬЗОВАТЕЛЕЙ
# =======================

class UserBase(BaseModel):
    """
    Базовая схема пользователя
    """
    email: EmailStr
    name: str = Field(min_length=1, max_length=100)


class UserCreate(UserBase):
    """
    Схема для создания пользователя (регистрация)
    """
    password: str


class UserLogin(BaseModel):
    """
    Схема для логина по e-mail
    """
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """
    Схема ответа с инфо о пользователе
    """
    id: int
    name: str
    email: str
    role: UserRole
    status: UserStatus
    email_verified: bool
    image: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefreshRequest(BaseModel):
    refresh_token: str


class TokenLogoutRequest(BaseModel):
    refresh_token: str


class GoogleSignInRequest(BaseModel):
    id_token: str


# ====================
# СХЕМЫ ДЛЯ ПУБЛИКАЦИИ
# ====================


class PostBase(BaseModel):
    """Базовая информация о посте"""
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    thumbnail: Optional[str] = None
    tags: List[str] = []
    status: PostStatus = PostStatus.PUBLISHED


class PostCreate(PostBase):
    """Создание поста. is_featured выставляет только админ через обновление"""
    pass


class PostUpdate(BaseModel):
    """Обновление поста"""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)
    thumbnail: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[PostStatus] = None
    is_featured: Optional[bool] = None

    @field_validator("title", "content", "status", "is_featured", mode="before")
    @classmethod
    def not_null(cls, value):
        # Поле можно не передавать, но обнулить его нельзя
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class PostResponse(PostBase):
    """Ответ с информацией о посте"""
    id: int
    author_id: int
    is_featured: bool
    views: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PostListItem(PostResponse):
    """Пост в ленте вместе с числом комментариев"""
    comment_count: int


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_page: int


class PostListResponse(BaseModel):
    data: List[PostListItem]
    pagination: Pagination


class MyPostsResponse(BaseModel):
    data: List[PostListItem]
    total: int


class PostStats(BaseModel):
    total_posts: int
    published_posts: int
    draft_posts: int
    featured_posts: int
    total_comments: int
    approved_comments: int
    total_users: int
    admin_count: int
    user_count: int
    total_views: int


# ======================
# СХЕМЫ ДЛЯ КОММЕНТАРИЕВ
# ======================

class CommentBase(BaseModel):
    """Базовая информация о комментарии"""
    content: str = Field(min_length=1)


class CommentCreate(CommentBase):
    """Создание комментария. Автор берётся из токена"""
    post_id: int
    parent_id: Optional[int] = None


class CommentUpdate(CommentBase):
    """Обновление комментария"""
    pass


class CommentModerate(BaseModel):
    """Смена статуса комментария модератором"""
    status: CommentStatus


class CommentResponse(CommentBase):
    id: int
    author_id: int
    post_id: int
    parent_id: Optional[int] = None
    status: CommentStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PostBrief(BaseModel):
    """Короткая справка о посте рядом с комментарием"""
    id: int
    title: str
    views: int

    class Config:
        from_attributes = True


class CommentWithPost(CommentResponse):
    post: PostBrief


class CommentNode(CommentResponse):
    """Комментарий в дереве обсуждения"""
    replies: List["CommentNode"] = []


class PostDetail(PostResponse):
    """Пост с одобренными комментариями"""
    comments: List[CommentNode]
    comment_count: int
