"""
broadcast_bot/activitypub/federation.py

Agrupa os componentes da federação, construídos uma vez no startup a partir
das settings e passados explicitamente a quem precisa.
"""

from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from broadcast_bot.activitypub.actor import ActorIdentity, build_identity
from broadcast_bot.activitypub.broadcast import BroadcastCoordinator
from broadcast_bot.activitypub.delivery import DeliveryUnit
from broadcast_bot.activitypub.keys import import_private_key, load_private_key_pem
from broadcast_bot.activitypub.resolver import InboxResolver
from broadcast_bot.activitypub.signatures import Signer
from broadcast_bot.services.registry import FollowerRegistry

USER_AGENT = "broadcast-bot/1.0.0"


@dataclass(frozen=True)
class Federation:
    identity: ActorIdentity
    registry: FollowerRegistry
    resolver: InboxResolver
    delivery: DeliveryUnit
    coordinator: BroadcastCoordinator


def create_http_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def build_federation(
    settings,
    client: httpx.AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
) -> Federation:
    identity = build_identity(settings)
    # KeyImportError aqui aborta o startup: sem chave não há entrega possível
    private_key = import_private_key(load_private_key_pem(settings.private_key_path))
    signer = Signer(identity.public_key_id, private_key)

    resolver = InboxResolver(client)
    delivery = DeliveryUnit(
        signer,
        client,
        max_attempts=int(settings.delivery_max_attempts),
        retry_backoff=float(settings.delivery_retry_backoff),
    )
    return Federation(
        identity=identity,
        registry=FollowerRegistry(session_factory, owner=identity.id),
        resolver=resolver,
        delivery=delivery,
        coordinator=BroadcastCoordinator(
            resolver, delivery, concurrency=int(settings.delivery_concurrency)
        ),
    )
