# quillpost/services/post_service.py

"""
Сервисный слой для постов.

Знает про модели и БД, но не про HTTP. Ошибки бросает через AppError,
а в HTTP-ответы их превращают глобальные обработчики.
"""

import logging
from typing import Optional

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.orm import Session, selectinload

from quillpost.config import settings
from quillpost.models import (
    Comment,
    CommentStatus,
    Post,
    PostStatus,
    PostTag,
    User,
    UserRole,
    UserStatus,
)
from quillpost.schemas import (
    CommentNode,
    CommentResponse,
    MyPostsResponse,
    Pagination,
    PostCreate,
    PostDetail,
    PostListItem,
    PostListResponse,
    PostResponse,
    PostStats,
    PostUpdate,
)
from quillpost.utils.exceptions import AppError, NotFound, PermissionDeniedError
from quillpost.utils.pagination import PageParams, total_pages

logger = logging.getLogger(__name__)

# Поля, по которым разрешена сортировка ленты
SORTABLE_FIELDS = {
    "createdAt": Post.created_at,
    "created_at": Post.created_at,
    "updatedAt": Post.updated_at,
    "updated_at": Post.updated_at,
    "title": Post.title,
    "views": Post.views,
}


def _comment_count():
    # Коррелированный подзапрос: сколько всего комментариев у поста
    return (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


def _list_item(post: Post, comment_count: int) -> PostListItem:
    return PostListItem(
        **PostResponse.model_validate(post).model_dump(),
        comment_count=comment_count,
    )


def is_admin(user: User) -> bool:
    return UserRole(user.role) == UserRole.ADMIN


def create_post_for_user(
    db: Session,
    author: User,
    post_in: PostCreate,
) -> Post:
    """
    Создать пост для конкретного пользователя.
    """
    db_post = Post(
        title=post_in.title,
        content=post_in.content,
        thumbnail=post_in.thumbnail,
        status=post_in.status,
        author_id=author.id,
    )
    db_post.tags = post_in.tags

    db.add(db_post)
    db.commit()
    db.refresh(db_post)

    logger.info("Post %s created by user %s", db_post.id, author.id)
    return db_post


def build_post_filters(
    search: Optional[str] = None,
    tags: Optional[list[str]] = None,
    is_featured: Optional[bool] = None,
    status: Optional[PostStatus] = None,
    author_id: Optional[int] = None,
) -> list:
    """
    Собрать список условий для WHERE. Каждое условие добавляется,
    только если задан соответствующий параметр; все они объединяются через AND.
    """
    conditions = []

    if search:
        # % и _ в запросе ищутся как обычные символы
        conditions.append(
            or_(
                Post.title.icontains(search, autoescape=True),
                Post.content.icontains(search, autoescape=True),
                Post.tag_links.any(PostTag.name == search),
            )
        )

    # Пост должен содержать все запрошенные теги
    for tag in tags or []:
        conditions.append(Post.tag_links.any(PostTag.name == tag))

    if is_featured is not None:
        conditions.append(Post.is_featured == is_featured)

    if status is not None:
        conditions.append(Post.status == status)

    if author_id is not None:
        conditions.append(Post.author_id == author_id)

    return conditions


def list_posts_with_filters(
    db: Session,
    params: PageParams,
    search: Optional[str] = None,
    tags: Optional[list[str]] = None,
    is_featured: Optional[bool] = None,
    status: Optional[PostStatus] = None,
    author_id: Optional[int] = None,
) -> PostListResponse:
    """
    Вернуть страницу постов и общее количество по тем же условиям.
    """
    sort_column = SORTABLE_FIELDS.get(params.sort_by)
    if sort_column is None:
        raise AppError(f"Cannot sort posts by '{params.sort_by}'", code="invalid_sort_field")

    conditions = build_post_filters(
        search=search,
        tags=tags,
        is_featured=is_featured,
        status=status,
        author_id=author_id,
    )

    # id как второй ключ, чтобы страницы не пересекались при равных значениях
    direction = asc if params.sort_order == "asc" else desc
    rows = (
        db.query(Post, _comment_count())
        .options(selectinload(Post.tag_links))
        .filter(*conditions)
        .order_by(direction(sort_column), direction(Post.id))
        .offset(params.skip)
        .limit(params.limit)
        .all()
    )

    total = db.query(func.count(Post.id)).filter(*conditions).scalar()

    return PostListResponse(
        data=[_list_item(post, count) for post, count in rows],
        pagination=Pagination(
            total=total,
            page=params.page,
            limit=params.limit,
            total_page=total_pages(total, params.limit),
        ),
    )


def _build_comment_tree(comments: list[Comment], max_depth: int) -> list[CommentNode]:
    """
    Собрать дерево из плоского списка одобренных комментариев.

    Верхний уровень - от новых к старым, ответы на любом уровне - от старых к новым.
    Уровни глубже max_depth отбрасываются.
    """
    children: dict[Optional[int], list[Comment]] = {}
    for comment in comments:
        children.setdefault(comment.parent_id, []).append(comment)

    def build(parent_id: int, depth: int) -> list[CommentNode]:
        if depth > max_depth:
            return []
        replies = sorted(children.get(parent_id, []), key=lambda c: (c.created_at, c.id))
        return [_node(reply, depth) for reply in replies]

    def _node(comment: Comment, depth: int) -> CommentNode:
        return CommentNode(
            **CommentResponse.model_validate(comment).model_dump(),
            replies=build(comment.id, depth + 1),
        )

    top_level = sorted(
        children.get(None, []),
        key=lambda c: (c.created_at, c.id),
        reverse=True,
    )
    return [_node(comment, 1) for comment in top_level]


def get_post_with_comments(
    db: Session,
    post_id: int,
) -> PostDetail:
    """
    Засчитать просмотр и вернуть пост с одобренными комментариями.

    Инкремент и чтение выполняются в одной транзакции: ответ собирается
    до commit, так что просмотр без чтения (и наоборот) не фиксируется.
    """
    try:
        updated = (
            db.query(Post)
            .filter(Post.id == post_id)
            .update({Post.views: Post.views + 1}, synchronize_session=False)
        )
        if not updated:
            raise NotFound("Post not found")

        post = db.query(Post).populate_existing().filter(Post.id == post_id).one()
        approved = (
            db.query(Comment)
            .filter(
                Comment.post_id == post_id,
                Comment.status == CommentStatus.APPROVED,
            )
            .all()
        )
        comment_count = (
            db.query(func.count(Comment.id))
            .filter(Comment.post_id == post_id)
            .scalar()
        )

        detail = PostDetail(
            **PostResponse.model_validate(post).model_dump(),
            comments=_build_comment_tree(approved, settings.COMMENT_TREE_DEPTH),
            comment_count=comment_count,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return detail


def get_my_posts(db: Session, user: User) -> MyPostsResponse:
    """
    Посты текущего пользователя, новые сверху. Только для активных аккаунтов.
    """
    active = (
        db.query(User.id)
        .filter(User.id == user.id, User.status == UserStatus.ACTIVE)
        .first()
    )
    if active is None:
        raise NotFound("Active user not found")

    rows = (
        db.query(Post, _comment_count())
        .options(selectinload(Post.tag_links))
        .filter(Post.author_id == user.id)
        .order_by(desc(Post.created_at), desc(Post.id))
        .all()
    )
    return MyPostsResponse(
        data=[_list_item(post, count) for post, count in rows],
        total=len(rows),
    )


def _load_post_for_mutation(db: Session, post_id: int, current_user: User) -> Post:
    db_post = db.query(Post).filter(Post.id == post_id).first()
    if not db_post:
        raise NotFound("Post not found")

    if not is_admin(current_user) and db_post.author_id != current_user.id:
        raise PermissionDeniedError("You are not authorized to modify this post")

    return db_post


def update_post_for_user(
    db: Session,
    post_id: int,
    post_update: PostUpdate,
    current_user: User,
) -> Post:
    """
    Обновить пост. Править может автор или админ,
    флаг is_featured меняет только админ.
    """
    db_post = _load_post_for_mutation(db, post_id, current_user)

    update_data = post_update.model_dump(exclude_unset=True)
    if not is_admin(current_user):
        update_data.pop("is_featured", None)

    for key, value in update_data.items():
        if key == "tags" and value is None:
            continue
        setattr(db_post, key, value)

    db.commit()
    db.refresh(db_post)

    logger.info("Post %s updated by user %s", post_id, current_user.id)
    return db_post


def delete_post_for_user(
    db: Session,
    post_id: int,
    current_user: User,
) -> PostResponse:
    """
    Удалить пост (автор или админ). Возвращает удалённую запись.
    """
    db_post = _load_post_for_mutation(db, post_id, current_user)
    deleted = PostResponse.model_validate(db_post)

    db.delete(db_post)
    db.commit()

    logger.info("Post %s deleted by user %s", post_id, current_user.id)
    return deleted


def get_post_stats(db: Session) -> PostStats:
    """
    Сводная статистика одним SELECT из скалярных подзапросов,
    чтобы все цифры были сняты с одного состояния БД.
    """
    def count(model, *where):
        query = select(func.count(model.id))
        if where:
            query = query.where(*where)
        return query.scalar_subquery()

    row = db.execute(
        select(
            count(Post).label("total_posts"),
            count(Post, Post.status == PostStatus.PUBLISHED).label("published_posts"),
            count(Post, Post.status == PostStatus.DRAFT).label("draft_posts"),
            count(Post, Post.is_featured.is_(True)).label("featured_posts"),
            count(Comment).label("total_comments"),
            count(Comment, Comment.status == CommentStatus.APPROVED).label("approved_comments"),
            count(User).label("total_users"),
            count(User, User.role == UserRole.ADMIN).label("admin_count"),
            count(User, User.role == UserRole.USER).label("user_count"),
            select(func.coalesce(func.sum(Post.views), 0)).scalar_subquery().label("total_views"),
        )
    ).one()

    return PostStats(**row._mapping)
