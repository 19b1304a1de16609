"""
broadcast_bot/activitypub/broadcast.py

Fan-out de uma atividade para todos os followers.

Cada follower passa, de forma independente, por: resolver inbox → entregar.
A falha de um follower nunca interrompe os demais; o resultado tem sempre
um DeliveryOutcome por follower. A ordem entre followers não importa.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Generic, Iterable, TypeVar

from apkit.models import ActivityPubModel

from broadcast_bot.activitypub.delivery import DeliveryOutcome, DeliveryUnit, to_document
from broadcast_bot.activitypub.resolver import InboxResolver

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Settled(Generic[T, R]):
    item: T
    value: R | None = None
    error: Exception | None = None


async def map_settled(
    fn: Callable[[T], Awaitable[R]],
    items: Iterable[T],
    limit: int = 8,
) -> list[Settled[T, R]]:
    """
    Aplica `fn` a cada item com no máximo `limit` execuções simultâneas.

    Erros de um item são capturados no seu próprio Settled; nunca abortam
    o percurso. Cancelamento (CancelledError) continua propagando.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run(item: T) -> Settled[T, R]:
        async with semaphore:
            try:
                return Settled(item, value=await fn(item))
            except Exception as e:
                return Settled(item, error=e)

    return list(await asyncio.gather(*(run(item) for item in items)))


class BroadcastCoordinator:
    def __init__(self, resolver: InboxResolver, delivery: DeliveryUnit, concurrency: int = 8):
        self._resolver = resolver
        self._delivery = delivery
        self.concurrency = concurrency

    async def _deliver_to(self, activity: dict, follower: str) -> DeliveryOutcome:
        inbox = await self._resolver.resolve(follower)
        if inbox is None:
            log.warning(f"Follower {follower} ignorado: inbox não encontrado")
            return DeliveryOutcome(
                target=None,
                success=False,
                error_detail="inbox não encontrado",
                follower=follower,
            )
        outcome = await self._delivery.deliver(activity, inbox)
        return replace(outcome, follower=follower)

    async def broadcast(
        self, activity: ActivityPubModel | dict, follower_ids: Iterable[str]
    ) -> list[DeliveryOutcome]:
        activity = to_document(activity)
        followers = list(dict.fromkeys(follower_ids))
        if not followers:
            log.info(f"Nenhum follower para {activity.get('id')}; nada a entregar")
            return []

        log.info(f"Transmitindo {activity.get('id')} para {len(followers)} followers")
        results = await map_settled(
            lambda follower: self._deliver_to(activity, follower),
            followers,
            self.concurrency,
        )

        outcomes = []
        for result in results:
            if result.error is None:
                outcomes.append(result.value)
                continue
            log.error(
                f"Erro ao processar follower {result.item}: {result.error!r}",
                exc_info=result.error,
            )
            outcomes.append(
                DeliveryOutcome(
                    target=None,
                    success=False,
                    error_detail=repr(result.error),
                    follower=result.item,
                )
            )

        delivered = sum(1 for o in outcomes if o.success)
        log.info(f"Broadcast {activity.get('id')}: {delivered}/{len(outcomes)} entregas")
        return outcomes
