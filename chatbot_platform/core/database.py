from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def _engine_kwargs(url: str) -> dict:
    """SQLite connections may be handed across threads by the pool."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {}


def create_db_engine(url: str) -> Engine:
    return create_engine(url, echo=False, future=True, **_engine_kwargs(url))


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


def init_db(engine: Engine) -> None:
    # Import models so their tables are registered on Base
    from chatbot_platform.models import store  # noqa: F401

    Base.metadata.create_all(bind=engine)
