# quillpost/services/comment_service.py

"""
Сервисный слой для комментариев.

Знает про Comment/Post/User и БД, но не про HTTP-статусы.
"""

import logging
from typing import List

from sqlalchemy.orm import Session, joinedload

from quillpost.models import Comment, CommentStatus, Post, User
from quillpost.schemas import CommentCreate, CommentResponse, CommentUpdate
from quillpost.utils.exceptions import AppError, NotFound

logger = logging.getLogger(__name__)


def create_comment_for_post(
    db: Session,
    author: User,
    comment_in: CommentCreate,
) -> Comment:
    """
    Создать комментарий (или ответ) от имени пользователя.

    Пост должен существовать; родитель ответа - тоже, причём в том же посте.
    """
    post = db.query(Post.id).filter(Post.id == comment_in.post_id).first()
    if post is None:
        raise NotFound("Post not found")

    if comment_in.parent_id is not None:
        parent = (
            db.query(Comment.post_id)
            .filter(Comment.id == comment_in.parent_id)
            .first()
        )
        if parent is None:
            raise NotFound("Parent comment not found")
        if parent.post_id != comment_in.post_id:
            raise AppError(
                "Parent comment belongs to another post",
                code="parent_post_mismatch",
            )

    db_comment = Comment(
        content=comment_in.content,
        author_id=author.id,
        post_id=comment_in.post_id,
        parent_id=comment_in.parent_id,
    )
    db.add(db_comment)
    db.commit()
    db.refresh(db_comment)

    logger.info("Comment %s created on post %s by user %s", db_comment.id, comment_in.post_id, author.id)
    return db_comment


def get_comment_by_id(db: Session, comment_id: int) -> Comment:
    """
    Комментарий вместе с краткой справкой о посте.
    """
    comment = (
        db.query(Comment)
        .options(joinedload(Comment.post))
        .filter(Comment.id == comment_id)
        .first()
    )
    if comment is None:
        raise NotFound("Comment not found")
    return comment


def list_comments_by_author(db: Session, author_id: int) -> List[Comment]:
    """
    Все комментарии автора, новые сверху.
    """
    return (
        db.query(Comment)
        .options(joinedload(Comment.post))
        .filter(Comment.author_id == author_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )


def _get_own_comment(db: Session, comment_id: int, author: User, action: str) -> Comment:
    # Чужой и несуществующий комментарий неразличимы для вызывающего
    db_comment = (
        db.query(Comment)
        .filter(Comment.id == comment_id, Comment.author_id == author.id)
        .first()
    )
    if db_comment is None:
        raise NotFound(f"Comment not found or you are not authorized to {action} this comment")
    return db_comment


def update_comment_for_user(
    db: Session,
    comment_id: int,
    comment_update: CommentUpdate,
    current_user: User,
) -> Comment:
    """
    Обновить текст своего комментария.
    """
    db_comment = _get_own_comment(db, comment_id, current_user, "update")

    update_data = comment_update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(db_comment, key, value)

    db.commit()
    db.refresh(db_comment)
    return db_comment


def delete_comment_for_user(
    db: Session,
    comment_id: int,
    current_user: User,
) -> CommentResponse:
    """
    Удалить свой комментарий вместе с ответами на него.
    """
    db_comment = _get_own_comment(db, comment_id, current_user, "delete")
    deleted = CommentResponse.model_validate(db_comment)

    db.delete(db_comment)
    db.commit()

    logger.info("Comment %s deleted by user %s", comment_id, current_user.id)
    return deleted


def moderate_comment(
    db: Session,
    comment_id: int,
    status: CommentStatus,
    moderator: User,
) -> Comment:
    """
    Сменить статус любого комментария. Переход в тот же статус - ошибка.
    """
    db_comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if db_comment is None:
        raise NotFound("Comment not found")

    if CommentStatus(db_comment.status) == status:
        raise AppError("Comment is already in the desired status", code="status_unchanged")

    previous = db_comment.status
    db_comment.status = status
    db.commit()
    db.refresh(db_comment)

    logger.info(
        "Comment %s moderated by user %s: %s -> %s",
        comment_id, moderator.id, CommentStatus(previous).value, status.value,
    )
    return db_comment
