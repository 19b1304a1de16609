"""
broadcast_bot/activitypub/resolver.py

Descobre o inbox de um actor remoto buscando o documento do actor.

Qualquer falha (URL inválida, rede, timeout, status não-2xx, JSON inválido, sem `inbox`)
resulta em None: o chamador trata como follower a pular, não como erro fatal.
"""

import logging

import httpx

log = logging.getLogger(__name__)

ACCEPT_HEADER = "application/activity+json, application/ld+json"


class InboxResolver:
    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def fetch(self, actor_uri: str) -> dict | None:
        try:
            resp = await self._client.get(actor_uri, headers={"Accept": ACCEPT_HEADER})
        except httpx.HTTPError as e:
            log.warning(f"Falha ao buscar actor {actor_uri}: {e!r}")
            return None
        except (httpx.InvalidURL, ValueError) as e:
            log.warning(f"URL de actor inválida {actor_uri!r}: {e}")
            return None

        if not resp.is_success:
            log.warning(f"Actor {actor_uri} respondeu {resp.status_code}")
            return None

        try:
            data = resp.json()
        except ValueError:
            log.warning(f"Actor {actor_uri} retornou JSON inválido")
            return None

        return data if isinstance(data, dict) else None

    async def resolve(self, actor_uri: str) -> str | None:
        actor = await self.fetch(actor_uri)
        if actor is None:
            return None

        inbox = actor.get("inbox")
        if not isinstance(inbox, str) or not inbox:
            log.warning(f"Nenhum inbox encontrado para {actor_uri}")
            return None
        return inbox
