from typing import Annotated

from fastapi import Depends
from sqlmodel import SQLModel, create_engine

import config
from store import SQLStore

engine = create_engine(
    config.DATABASE_URL,
    echo=config.SQL_ECHO,
    pool_pre_ping=True,
)

store = SQLStore(engine)


def create_db_and_tables() -> None:
    """Create all tables in the database if they don't exist."""
    SQLModel.metadata.create_all(engine)


def get_store() -> SQLStore:
    """Return the shared store for dependency injection."""
    return store


StoreDep = Annotated[SQLStore, Depends(get_store)]
