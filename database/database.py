from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.models import Base


def create_session_factory(database_url: str, echo: bool = False) -> sessionmaker:
    """Build an engine and session factory for the given URL."""
    engine_kwargs = {'echo': echo}
    is_memory_sqlite = database_url == "sqlite://" or (
        database_url.startswith("sqlite") and ":memory:" in database_url
    )
    if is_memory_sqlite:
        # Single shared connection so every session sees the same in-memory DB
        engine_kwargs.update(
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
        )
    else:
        engine_kwargs['pool_pre_ping'] = True

    engine = create_engine(database_url, **engine_kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(session_factory: sessionmaker) -> None:
    Base.metadata.create_all(session_factory.kw['bind'])

