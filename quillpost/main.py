"""
Главный файл приложения
Здесь инициализируется FastAPI и подключаются маршруты
"""

from contextlib import asynccontextmanager

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from quillpost.config import settings
from quillpost.models import Base
from quillpost.routes import auth, comments, posts, users
from quillpost.services.token_store import token_store
from quillpost.utils.database import engine
from quillpost.utils.exceptions import register_exception_handlers
from quillpost.utils.limiter import limiter
from quillpost.utils.logger import setup_logging

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Схемой управляют миграции; create_all лишь создаёт недостающие таблицы
    Base.metadata.create_all(bind=engine)
    await token_store.connect()
    yield
    await token_store.close()


# Создаем приложение
app = FastAPI(
    title="Quillpost API",
    description="Blog backend with posts, threaded comments and moderation",
    version="1.0.0",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    lifespan=lifespan,
)

# Глобальные обработчики ошибок
register_exception_handlers(app)

# =============================
# Ограничитель частоты запросов
# =============================

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# CORS (чтобы фронтенд мог обращаться к API)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    )


# ==============
# HEALTH-CHECKING
# ==============

@app.get("/health")
async def health_check():
    """Проверка, что приложение живо"""
    return {"status": "ok", "redis": await token_store.ping()}


# =====================
# Подключаем все ROUTES
# =====================

app.include_router(auth.router) # Регистрация и авторизация
app.include_router(users.router) # Текущий пользователь
app.include_router(posts.router) # Посты
app.include_router(comments.router) # Комментарии


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
