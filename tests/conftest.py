"""
Общие фикстуры для тестов.

Приложение работает поверх SQLite в памяти: get_db подменяется через
dependency_overrides, таблицы пересоздаются для каждого теста.
Пользователи создаются напрямую через ORM, токены - настоящие JWT.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quillpost.main import app
from quillpost.models import Base, Comment, CommentStatus, Post, PostStatus, User, UserRole
from quillpost.utils.database import get_db
from quillpost.utils.limiter import limiter
from quillpost.utils.security import create_access_token, hash_password

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    # Без контекстного менеджера: lifespan (Redis) в тестах не запускается
    return TestClient(app)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role=UserRole.USER, verified=True, **kwargs):
        counter["n"] += 1
        user = User(
            name=kwargs.pop("name", f"user{counter['n']}"),
            email=kwargs.pop("email", f"user{counter['n']}@example.com"),
            hashed_password=hash_password(kwargs.pop("password", "password123")),
            role=role,
            email_verified=verified,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN)


@pytest.fixture
def make_post(db):
    base_time = datetime(2025, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make_post(author, tags=(), status=PostStatus.PUBLISHED, **kwargs):
        counter["n"] += 1
        post = Post(
            title=kwargs.pop("title", f"Post {counter['n']}"),
            content=kwargs.pop("content", f"Content of post {counter['n']}"),
            status=status,
            author_id=author.id,
            created_at=kwargs.pop("created_at", base_time + timedelta(minutes=counter["n"])),
            **kwargs,
        )
        post.tags = list(tags)
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    return _make_post


@pytest.fixture
def make_comment(db):
    base_time = datetime(2025, 2, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make_comment(post, author, parent=None, status=CommentStatus.APPROVED, **kwargs):
        counter["n"] += 1
        comment = Comment(
            content=kwargs.pop("content", f"Comment {counter['n']}"),
            post_id=post.id,
            author_id=author.id,
            parent_id=parent.id if parent is not None else None,
            status=status,
            created_at=kwargs.pop("created_at", base_time + timedelta(minutes=counter["n"])),
        )
        db.add(comment)
        db.commit()
        db.refresh(comment)
        return comment

    return _make_comment
