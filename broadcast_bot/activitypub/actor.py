from dataclasses import dataclass

from apkit.models import CryptographicKey, Person

from broadcast_bot.activitypub.keys import load_public_key_pem


@dataclass(frozen=True)
class ActorIdentity:
    """Identidade pública do bot. Montada uma vez no startup."""

    domain: str
    username: str
    name: str
    summary: str
    icon: str
    public_key_pem: str

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"

    @property
    def id(self) -> str:
        return f"{self.base_url}/actor"

    @property
    def inbox(self) -> str:
        return f"{self.base_url}/inbox"

    @property
    def public_key_id(self) -> str:
        return f"{self.id}#main-key"

    @property
    def acct(self) -> str:
        return f"acct:{self.username}@{self.domain}"


def build_identity(settings) -> ActorIdentity:
    return ActorIdentity(
        domain=settings.domain,
        username=settings.actor_username,
        name=settings.actor_name,
        summary=settings.actor_summary,
        icon=settings.actor_icon,
        public_key_pem=load_public_key_pem(settings.public_key_path),
    )


def build_actor(identity: ActorIdentity) -> Person:
    base = identity.base_url

    return Person(
        id=identity.id,
        name=identity.name,
        preferredUsername=identity.username,
        summary=identity.summary,
        inbox=identity.inbox,
        outbox=f"{base}/outbox",
        followers=f"{base}/followers",
        following=f"{base}/following",
        icon={"type": "Image", "mediaType": "image/png", "url": identity.icon},
        publicKey=CryptographicKey(
            id=identity.public_key_id,
            owner=identity.id,
            publicKeyPem=identity.public_key_pem,
        ),
        manuallyApprovesFollowers=False,
    )
