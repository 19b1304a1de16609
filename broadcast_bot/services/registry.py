"""
broadcast_bot/services/registry.py

Registro de followers: conjunto durável de actors remotos que seguem o bot.

Contrato mínimo usado pelo resto da aplicação:
- put(key, value)      → upsert; repetir o mesmo Follow não duplica o follower
- list(prefix=None)    → ids dos followers (opcionalmente filtrados por prefixo)
- delete(key)          → remove o follower, se existir

Qualquer falha do SQLAlchemy vira RegistryUnavailable.
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from broadcast_bot.errors import RegistryUnavailable
from broadcast_bot.models.follower import STATUS_ACTIVE, Follower

log = logging.getLogger(__name__)


class FollowerRegistry:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], owner: str):
        self._session_factory = session_factory
        self.owner = owner

    async def put(self, key: str, value: str = STATUS_ACTIVE) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.merge(
                        Follower(owner=self.owner, actor_url=key, status=value)
                    )
        except SQLAlchemyError as e:
            raise RegistryUnavailable(f"Falha ao gravar follower {key}: {e}") from e
        log.info(f"Follower registrado: {key} ({value})")

    async def list(self, prefix: str | None = None) -> list[str]:
        stmt = select(Follower.actor_url).where(Follower.owner == self.owner)
        if prefix:
            stmt = stmt.where(Follower.actor_url.startswith(prefix, autoescape=True))
        stmt = stmt.order_by(Follower.followed_at, Follower.actor_url)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RegistryUnavailable(f"Falha ao listar followers: {e}") from e

    async def delete(self, key: str) -> None:
        stmt = delete(Follower).where(
            Follower.owner == self.owner,
            Follower.actor_url == key,
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(stmt)
        except SQLAlchemyError as e:
            raise RegistryUnavailable(f"Falha ao remover follower {key}: {e}") from e
