"""
broadcast_bot/activitypub/handlers.py

Tratamento das atividades recebidas em POST /inbox.

Estados: Recebida → Validada → {Follow | Create | Ignorada} → Respondida

Handlers:
- Follow  → registra o follower, envia Accept assinado e responde com o Accept
            (falha na entrega do Accept não falha o handshake)
- Create  → re-publica a Note para todos os followers e responde com o Create
- demais  → aceitas sem efeito (None)

Erros:
- MalformedInput      → corpo inválido, nada é gravado
- RegistryUnavailable → propaga; a camada HTTP responde 500
"""

import json
import logging

from apkit.models import Accept, Create

from broadcast_bot.activitypub.activities import (
    build_accept,
    build_create,
    build_note,
    is_broadcastable,
)
from broadcast_bot.activitypub.federation import Federation
from broadcast_bot.errors import MalformedInput

log = logging.getLogger(__name__)


def parse_activity(raw: bytes) -> dict:
    try:
        activity = json.loads(raw)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedInput(f"JSON inválido: {e}") from e

    if not isinstance(activity, dict):
        raise MalformedInput("A atividade deve ser um objeto JSON")
    if not isinstance(activity.get("type"), str):
        raise MalformedInput("Campo `type` ausente")
    return activity


async def on_follow(fed: Federation, activity: dict) -> Accept:
    follower_id = activity.get("actor")
    if not isinstance(follower_id, str) or not follower_id:
        raise MalformedInput("Follow sem `actor`")

    await fed.registry.put(follower_id)
    accept = build_accept(fed.identity, activity)

    inbox = await fed.resolver.resolve(follower_id)
    if inbox is None:
        log.warning(f"Accept não enviado: inbox de {follower_id} não encontrado")
    else:
        outcome = await fed.delivery.deliver(accept, inbox)
        if not outcome.success:
            log.warning(f"Accept para {follower_id} falhou: {outcome.error_detail}")

    log.info(f"Follow aceito de {follower_id}")
    return accept


async def on_create(fed: Federation, activity: dict) -> Create:
    followers = await fed.registry.list()

    author_actor = await fed.resolver.fetch(activity["actor"])
    note = build_note(fed.identity, activity, author_actor)
    create = build_create(fed.identity, note, followers)

    await fed.coordinator.broadcast(create, followers)
    return create


async def dispatch(fed: Federation, activity: dict) -> Accept | Create | None:
    """Roteia a atividade já validada. None significa 'aceita, sem corpo'."""
    kind = activity["type"]
    log.info(f"{kind} recebido de {activity.get('actor')}")

    if kind == "Follow":
        return await on_follow(fed, activity)
    if is_broadcastable(activity):
        return await on_create(fed, activity)

    log.info(f"Atividade {kind} ignorada")
    return None
