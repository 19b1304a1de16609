"""
Fixtures compartilhadas entre todos os testes.
"""

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


# ---------------------------------------------------------------------------
# Chaves RSA geradas em memória: evita dependência de arquivos em disco
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def rsa_private_key():
    """Par de chaves RSA gerado uma única vez por sessão de testes."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_key_pem(rsa_private_key) -> bytes:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def rsa_public_key_pem(rsa_private_key) -> str:
    return (
        rsa_private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )


# ---------------------------------------------------------------------------
# Configuração Dynaconf isolada para testes
# Usa monkeypatch para sobrescrever os atributos sem tocar em arquivos .toml
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def patch_settings(monkeypatch, rsa_private_key_pem, rsa_public_key_pem, tmp_path):
    """
    Sobrescreve as settings do Dynaconf com valores de teste.
    `autouse=True` garante que nenhum teste acesse configurações reais
    ou tente ler arquivos de chave do disco.
    """
    from broadcast_bot import config

    private_pem_path = tmp_path / "private.pem"
    public_pem_path = tmp_path / "public.pem"
    private_pem_path.write_bytes(rsa_private_key_pem)
    public_pem_path.write_text(rsa_public_key_pem)

    monkeypatch.setattr(config.settings, "domain", "bot.test")
    monkeypatch.setattr(config.settings, "actor_username", "testbot")
    monkeypatch.setattr(config.settings, "actor_name", "Test Bot")
    monkeypatch.setattr(config.settings, "actor_summary", "Bot de teste")
    monkeypatch.setattr(config.settings, "actor_icon", "https://bot.test/icon.png")
    monkeypatch.setattr(config.settings, "private_key_path", str(private_pem_path))
    monkeypatch.setattr(config.settings, "public_key_path", str(public_pem_path))
    monkeypatch.setattr(config.settings, "database_url", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setattr(config.settings, "delivery_timeout", 2.0)
    monkeypatch.setattr(config.settings, "delivery_concurrency", 4)
    monkeypatch.setattr(config.settings, "delivery_max_attempts", 1)
    monkeypatch.setattr(config.settings, "delivery_retry_backoff", 0.0)


# ---------------------------------------------------------------------------
# Identidade e assinatura do bot
# ---------------------------------------------------------------------------


@pytest.fixture
def identity(rsa_public_key_pem):
    from broadcast_bot.activitypub.actor import ActorIdentity

    return ActorIdentity(
        domain="bot.test",
        username="testbot",
        name="Test Bot",
        summary="Bot de teste",
        icon="https://bot.test/icon.png",
        public_key_pem=rsa_public_key_pem,
    )


@pytest.fixture
def signer(identity, rsa_private_key):
    from broadcast_bot.activitypub.signatures import Signer

    return Signer(identity.public_key_id, rsa_private_key)


# ---------------------------------------------------------------------------
# Banco em memória isolado por teste
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine():
    from broadcast_bot.database import create_engine, init_db

    eng = create_engine("sqlite+aiosqlite:///:memory:")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    from broadcast_bot.database import create_session_factory

    return create_session_factory(engine)


@pytest_asyncio.fixture
async def registry(session_factory, identity):
    from broadcast_bot.services.registry import FollowerRegistry

    return FollowerRegistry(session_factory, owner=identity.id)


# ---------------------------------------------------------------------------
# Fediverso falso: servidores remotos simulados via httpx.MockTransport
# ---------------------------------------------------------------------------


class FakeFediverse:
    """
    Simula actors e inboxes remotos.

    - actors:        url do actor → documento JSON servido em GET
    - inbox_status:  url do inbox → status devolvido no POST (padrão 202)
    - unreachable:   urls que levantam ConnectError
    - deliveries:    requisições POST recebidas
    """

    def __init__(self):
        self.actors: dict[str, dict] = {}
        self.inbox_status: dict[str, int | list[int]] = {}
        self.unreachable: set[str] = set()
        self.deliveries: list[httpx.Request] = []
        self.fetches: list[str] = []

    def add_actor(self, url: str, inbox: str | None = "", **extra) -> str:
        doc = {"id": url, "type": "Person", "preferredUsername": url.rsplit("/", 1)[-1]}
        if inbox == "":
            inbox = f"{url}/inbox"
        if inbox is not None:
            doc["inbox"] = inbox
        doc.update(extra)
        self.actors[url] = doc
        return url

    def delivered_to(self, inbox: str) -> list[httpx.Request]:
        return [r for r in self.deliveries if str(r.url) == inbox]

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)

        if request.method == "GET":
            self.fetches.append(url)
            doc = self.actors.get(url)
            if doc is None:
                return httpx.Response(404, json={"error": "Not found"})
            return httpx.Response(200, json=doc)

        self.deliveries.append(request)
        status = self.inbox_status.get(url, 202)
        if isinstance(status, list):
            status = status.pop(0) if len(status) > 1 else status[0]
        return httpx.Response(status, text="")


@pytest.fixture
def fediverse():
    return FakeFediverse()


@pytest_asyncio.fixture
async def http_client(fediverse):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fediverse.handler)) as client:
        yield client


@pytest.fixture
def federation(identity, signer, registry, http_client):
    from broadcast_bot.activitypub.broadcast import BroadcastCoordinator
    from broadcast_bot.activitypub.delivery import DeliveryUnit
    from broadcast_bot.activitypub.federation import Federation
    from broadcast_bot.activitypub.resolver import InboxResolver

    resolver = InboxResolver(http_client)
    delivery = DeliveryUnit(signer, http_client)
    return Federation(
        identity=identity,
        registry=registry,
        resolver=resolver,
        delivery=delivery,
        coordinator=BroadcastCoordinator(resolver, delivery, concurrency=4),
    )


# ---------------------------------------------------------------------------
# Factories de atividades recebidas
# ---------------------------------------------------------------------------


@pytest.fixture
def remote_actor_url() -> str:
    return "https://mastodon.social/users/fulano"


@pytest.fixture
def bot_actor_url() -> str:
    return "https://bot.test/actor"


@pytest.fixture
def make_follow(remote_actor_url, bot_actor_url):
    def _make(follower: str | None = None, follow_id: str | None = None) -> dict:
        return {
            "@context": "https://www.w3.org/ns/activitystreams",
            "id": follow_id or "https://mastodon.social/users/fulano#follows/1",
            "type": "Follow",
            "actor": follower or remote_actor_url,
            "object": bot_actor_url,
        }

    return _make


@pytest.fixture
def make_create(remote_actor_url, bot_actor_url):
    def _make(content: str = "<p>Mensagem de teste</p>", actor: str | None = None, **note_extra) -> dict:
        note = {
            "id": "https://mastodon.social/users/fulano/statuses/1",
            "type": "Note",
            "attributedTo": actor or remote_actor_url,
            "content": content,
            "to": ["https://www.w3.org/ns/activitystreams#Public"],
            "cc": [bot_actor_url],
        }
        note.update(note_extra)
        return {
            "@context": "https://www.w3.org/ns/activitystreams",
            "id": "https://mastodon.social/users/fulano/statuses/1/activity",
            "type": "Create",
            "actor": actor or remote_actor_url,
            "object": note,
        }

    return _make


def verify_signed_request(request: httpx.Request, public_key) -> None:
    """Reconstrói a signing string a partir da requisição e verifica a assinatura."""
    import base64
    import re

    from cryptography.hazmat.primitives import hashes
    from cryptography.hazmat.primitives.asymmetric import padding

    params = dict(re.findall(r'(\w+)="([^"]*)"', request.headers["Signature"]))
    target = request.url.raw_path.decode()
    values = {
        "(request-target)": f"{request.method.lower()} {target}",
        "host": request.headers["Host"],
        "date": request.headers["Date"],
        "digest": request.headers["Digest"],
    }
    signing_string = "\n".join(f"{h}: {values[h]}" for h in params["headers"].split(" "))
    public_key.verify(
        base64.b64decode(params["signature"]),
        signing_string.encode(),
        padding.PKCS1v15(),
        hashes.SHA256(),
    )


@pytest.fixture
def verify_signed(rsa_private_key):
    """Verifica uma requisição assinada contra a chave pública do bot."""
    public_key = rsa_private_key.public_key()
    return lambda request: verify_signed_request(request, public_key)
