"""
broadcast_bot/database.py

Configuração do banco de dados via SQLAlchemy assíncrono.

Exporta:
- `Base`                  : classe base para os modelos ORM
- `create_engine()`       : engine assíncrona a partir da URL configurada
- `create_session_factory()`: fábrica de sessões ligada a uma engine
- `init_db()`             : cria as tabelas na inicialização da aplicação

Nenhuma engine é criada no import: o lifespan da aplicação monta a engine
a partir das settings e a entrega ao registro de followers.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool


# ---------------------------------------------------------------------------
# Base declarativa
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def create_engine(database_url: str) -> AsyncEngine:
    """
    Cria a engine assíncrona.

    Para SQLite em memória usamos StaticPool: cada conexão nova abriria
    um banco vazio diferente.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
        return create_async_engine(database_url, echo=False, **kwargs)
    return create_async_engine(database_url, echo=False)


# ---------------------------------------------------------------------------
# Fábrica de sessões
# ---------------------------------------------------------------------------

def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,  # evita lazy-load após commit em contexto assíncrono
        class_=AsyncSession,
    )


# ---------------------------------------------------------------------------
# Inicialização
# ---------------------------------------------------------------------------

async def init_db(engine: AsyncEngine) -> None:
    """
    Cria todas as tabelas definidas nos modelos ORM caso ainda não existam.
    Deve ser chamado uma única vez no startup da aplicação (lifespan do FastAPI).
    """
    # Importa os modelos para que o SQLAlchemy os registre no metadata da Base
    # antes de criar as tabelas. Sem este import, as tabelas não serão criadas.
    from broadcast_bot.models import follower  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
