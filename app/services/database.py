from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import StaticPool
from app.config.settings import settings


def build_engine(url: str):
    """Create the SQLAlchemy engine for `url`.

    SQLite (local runs and tests) shares a single in-memory connection across
    threads; anything else gets the pooled Postgres setup.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        echo=False
    )


# create engine for the configured database
engine = build_engine(settings.database_url)

# session factory (scoped session if multithreaded or async)
SessionLocal = scoped_session(sessionmaker(autocommit=False, autoflush=False, bind=engine))


def get_db():
    """
    generates a new database session.
    """
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
