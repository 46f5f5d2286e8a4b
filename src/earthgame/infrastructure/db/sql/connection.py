import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


DEFAULT_DATABASE_URL = "sqlite:///earth.db"


def database_url() -> str:
    return os.getenv("EARTH_DATABASE_URL", "").strip() or DEFAULT_DATABASE_URL


engine = create_engine(database_url(), future=True, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, future=True)
