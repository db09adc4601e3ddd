from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from quillpost.config import settings

engine = create_engine(
    settings.DATABASE_URL,
    future=True,
    # SQLite используется локально и в тестах
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
