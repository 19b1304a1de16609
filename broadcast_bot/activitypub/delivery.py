"""
broadcast_bot/activitypub/delivery.py

Entrega de uma atividade assinada a um único inbox.

Fluxo de cada tentativa:
1. Serializa a atividade uma vez (os mesmos bytes são digeridos e enviados)
2. Monta um SigningContext novo (Date atual, host/path do inbox)
3. Assina e faz o POST

Nenhuma falha é propagada: o resultado é sempre um DeliveryOutcome.
"""

import asyncio
import json
import logging
import random
from dataclasses import dataclass

import apmodel
import httpx
from apkit.models import ActivityPubModel

from broadcast_bot.activitypub.resolver import ACCEPT_HEADER
from broadcast_bot.activitypub.signatures import Signer, SigningContext
from broadcast_bot.errors import (
    FederationError,
    KeyImportError,
    RemoteRejected,
    RemoteUnreachable,
    SigningError,
)

log = logging.getLogger(__name__)

CONTENT_TYPE = "application/activity+json"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Resultado da entrega a um follower. `target` é sempre o inbox (None se não resolvido)."""

    target: str | None
    success: bool
    http_status: int | None = None
    error_detail: str | None = None
    follower: str | None = None


def to_document(activity: ActivityPubModel | dict) -> dict:
    if isinstance(activity, ActivityPubModel):
        return apmodel.to_dict(activity)
    return activity


def serialize(activity: ActivityPubModel | dict) -> bytes:
    return json.dumps(to_document(activity), ensure_ascii=False).encode("utf-8")


class DeliveryUnit:
    def __init__(
        self,
        signer: Signer,
        client: httpx.AsyncClient,
        max_attempts: int = 1,
        retry_backoff: float = 0.0,
    ):
        self._signer = signer
        self._client = client
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff = retry_backoff

    async def _post(self, inbox: str, body: bytes) -> httpx.Response:
        ctx = SigningContext.for_request("POST", inbox, body)
        headers = self._signer.signed_headers(ctx)
        headers["Accept"] = ACCEPT_HEADER
        headers["Content-Type"] = CONTENT_TYPE

        try:
            resp = await self._client.post(inbox, content=body, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteUnreachable(f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            raise RemoteRejected(
                f"HTTP {resp.status_code}: {resp.text[:200]}", resp.status_code
            )
        return resp

    def _should_retry(self, error: FederationError) -> bool:
        if isinstance(error, RemoteUnreachable):
            return True
        return isinstance(error, RemoteRejected) and error.status_code >= 500

    async def _backoff(self, attempt: int) -> None:
        delay = self.retry_backoff * 2 ** (attempt - 1) * random.uniform(0.5, 1.5)
        if delay > 0:
            await asyncio.sleep(delay)

    async def deliver(self, activity: ActivityPubModel | dict, inbox: str) -> DeliveryOutcome:
        body = serialize(activity)

        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = await self._post(inbox, body)
            except (KeyImportError, SigningError) as e:
                log.error(f"Falha ao assinar entrega para {inbox}: {e}")
                return DeliveryOutcome(target=inbox, success=False, error_detail=str(e))
            except (httpx.InvalidURL, ValueError) as e:
                # URL de inbox inválida: nenhuma tentativa adicional pode dar certo
                log.warning(f"Inbox inválido {inbox!r}: {e}")
                return DeliveryOutcome(
                    target=inbox,
                    success=False,
                    error_detail=f"URL de inbox inválida: {e}",
                )
            except (RemoteUnreachable, RemoteRejected) as e:
                status = getattr(e, "status_code", None)
                if attempt < self.max_attempts and self._should_retry(e):
                    log.info(f"Tentativa {attempt} para {inbox} falhou ({e}); repetindo")
                    await self._backoff(attempt)
                    continue
                log.warning(f"Falha ao entregar para {inbox}: {e}")
                return DeliveryOutcome(
                    target=inbox, success=False, http_status=status, error_detail=str(e)
                )

            log.info(f"Entregue em {inbox} (status {resp.status_code})")
            return DeliveryOutcome(target=inbox, success=True, http_status=resp.status_code)
