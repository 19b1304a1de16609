"""
broadcast_bot/activitypub/signatures.py

Assinatura HTTP (draft-cavage) das requisições de saída.

Peças:
- compute_digest()  → valor do header `Digest` ("SHA-256=<base64>")
- canonicalize()    → signing string a partir do SigningContext
- Signer            → assina a signing string com RSA PKCS#1 v1.5 + SHA-256
                      e monta o header `Signature`

A ordem de SIGNED_HEADERS é a mesma anunciada no campo `headers` do
header `Signature`. O receptor reconstrói a string nessa ordem.
"""

import base64
import hashlib
from dataclasses import dataclass
from email.utils import formatdate
from urllib.parse import urlsplit

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from broadcast_bot.errors import SigningError

SIGNED_HEADERS = ("(request-target)", "host", "date", "digest")
SIGNATURE_ALGORITHM = "rsa-sha256"


def http_date(timestamp: float | None = None) -> str:
    """Data no formato RFC 1123, ex: 'Sun, 18 Oct 2026 17:30:00 GMT'."""
    return formatdate(timestamp, usegmt=True)


def compute_digest(body: bytes) -> str:
    digest = hashlib.sha256(body).digest()
    return "SHA-256=" + base64.b64encode(digest).decode("ascii")


@dataclass(frozen=True)
class SigningContext:
    """
    Dados de uma única requisição assinada.

    Criado a cada tentativa de entrega: `date` e `digest` são específicos
    do momento e do corpo, então nunca é reaproveitado entre inboxes.
    """

    method: str
    host: str
    path: str
    date: str
    digest: str

    @classmethod
    def for_request(cls, method: str, url: str, body: bytes, date: str | None = None):
        parts = urlsplit(url)
        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"
        return cls(
            method=method,
            host=parts.netloc,
            path=path,
            date=date or http_date(),
            digest=compute_digest(body),
        )

    def header_value(self, name: str) -> str:
        if name == "(request-target)":
            return f"{self.method.lower()} {self.path}"
        return getattr(self, name)


def canonicalize(ctx: SigningContext, headers: tuple[str, ...] = SIGNED_HEADERS) -> str:
    return "\n".join(f"{name}: {ctx.header_value(name)}" for name in headers)


class Signer:
    """
    Dono exclusivo da chave privada do bot.

    A chave é importada uma vez (ver keys.import_private_key) e só é usada
    para assinar. `key_id` precisa apontar para o publicKey do actor público.
    """

    def __init__(self, key_id: str, private_key: RSAPrivateKey):
        self.key_id = key_id
        self._private_key = private_key

    def __repr__(self) -> str:
        return f"<Signer key_id={self.key_id!r}>"

    def sign(self, canonical: str) -> str:
        try:
            signature = self._private_key.sign(
                canonical.encode("utf-8"),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningError(f"Falha ao assinar requisição: {e}") from e
        return base64.b64encode(signature).decode("ascii")

    def signature_header(self, ctx: SigningContext) -> str:
        signature = self.sign(canonicalize(ctx))
        return (
            f'keyId="{self.key_id}",'
            f'algorithm="{SIGNATURE_ALGORITHM}",'
            f'headers="{" ".join(SIGNED_HEADERS)}",'
            f'signature="{signature}"'
        )

    def signed_headers(self, ctx: SigningContext) -> dict[str, str]:
        """Headers Host, Date, Digest e Signature prontos para o POST."""
        return {
            "Host": ctx.host,
            "Date": ctx.date,
            "Digest": ctx.digest,
            "Signature": self.signature_header(ctx),
        }
