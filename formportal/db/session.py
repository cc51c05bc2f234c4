from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from formportal.core.config import settings
from formportal.db.base import Base
from formportal.db.document_store import DualStore, SqlDocumentStore


def make_engine(url: str, **kwargs) -> AsyncEngine:
    return create_async_engine(url, pool_pre_ping=True, **kwargs)


def make_store(name: str, engine: AsyncEngine) -> SqlDocumentStore:
    sessionmaker = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    return SqlDocumentStore(name, sessionmaker)


primary_engine = make_engine(settings.DATABASE_URL)
mirror_engine = make_engine(settings.MIRROR_DATABASE_URL)

stores = DualStore(
    primary=make_store("primary", primary_engine),
    mirror=make_store("mirror", mirror_engine),
)


async def init_models(*engines: AsyncEngine) -> None:
    for engine in engines or (primary_engine, mirror_engine):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


def get_stores() -> DualStore:
    return stores
