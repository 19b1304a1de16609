"""
broadcast_bot/activitypub/activities.py

Construção das atividades enviadas pelo bot: Accept (resposta a Follow)
e Create (re-publicação de uma Note recebida para os followers).

Todas são modelos apkit; a serialização para JSON-LD fica em
delivery.to_document().
"""

import secrets
import time
from datetime import datetime, timezone
from urllib.parse import urlsplit

from apkit.models import Accept, Create, Note

from broadcast_bot.activitypub.actor import ActorIdentity

AS_CONTEXT = "https://www.w3.org/ns/activitystreams"
SECURITY_CONTEXT = "https://w3id.org/security/v1"
PUBLIC = "https://www.w3.org/ns/activitystreams#Public"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def new_object_id(identity: ActorIdentity, kind: str) -> str:
    """IDs únicos: timestamp em ms + sufixo base36, ex: .../notes/1760808600000-k3f2a9c1b7d4"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(12))
    return f"{identity.base_url}/{kind}/{int(time.time() * 1000)}-{suffix}"


def build_accept(identity: ActorIdentity, follow: dict) -> Accept:
    return Accept(
        id=new_object_id(identity, "activities/accept"),
        actor=identity.id,
        object=dict(follow),
    )


def is_broadcastable(activity: dict) -> bool:
    """Só Create de Note com conteúdo é re-publicado."""
    note = activity.get("object")
    return (
        activity.get("type") == "Create"
        and isinstance(note, dict)
        and note.get("type") == "Note"
        and bool(note.get("content"))
        and isinstance(activity.get("actor"), str)
    )


def author_username(author_url: str, author_actor: dict | None) -> str:
    if author_actor and isinstance(author_actor.get("preferredUsername"), str):
        return author_actor["preferredUsername"]
    return urlsplit(author_url).path.rstrip("/").split("/")[-1]


def _reply_target(in_reply_to) -> dict | None:
    # o campo inReplyTo do apkit só aceita objeto; uma URI vira referência {id, type}
    if isinstance(in_reply_to, str) and in_reply_to:
        return {"id": in_reply_to, "type": "Note"}
    if isinstance(in_reply_to, dict):
        return in_reply_to
    return None


def build_note(identity: ActorIdentity, activity: dict, author_actor: dict | None = None) -> Note:
    source = activity["object"]
    tags = source.get("tag")
    if not isinstance(tags, list):
        tags = [tags] if isinstance(tags, dict) else []
    attachment = source.get("attachment")
    if not isinstance(attachment, list):
        attachment = [attachment] if isinstance(attachment, dict) else []

    author_url = activity["actor"]
    username = author_username(author_url, author_actor)
    author_domain = urlsplit(author_url).netloc
    handle = f"@{username}@{author_domain}"

    extra = {
        "sensitive": bool(source.get("sensitive")),
        "originalAuthor": {
            "type": "Person",
            "id": author_url,
            "name": username,
            "preferredUsername": username,
            "url": author_url,
        },
    }
    if isinstance(source.get("contentMap"), dict):
        extra["contentMap"] = source["contentMap"]

    return Note(
        context=[AS_CONTEXT, SECURITY_CONTEXT],
        id=new_object_id(identity, "notes"),
        published=datetime.now(timezone.utc).isoformat(),
        attributed_to=identity.id,
        content=f"RT {handle}\n\n{source['content']}",
        to=[PUBLIC],
        cc=[],
        attachment=attachment,
        tag=[
            {"type": "Mention", "href": author_url, "name": handle},
            *tags,
        ],
        in_reply_to=_reply_target(source.get("inReplyTo")),
        **extra,
    )


def build_create(identity: ActorIdentity, note: Note, followers: list[str]) -> Create:
    return Create(
        context=[AS_CONTEXT, SECURITY_CONTEXT],
        id=new_object_id(identity, "activities/create"),
        actor=identity.id,
        object=note,
        to=[PUBLIC],
        cc=list(followers),
    )
