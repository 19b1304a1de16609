"""
broadcast_bot/models/follower.py

Modelo ORM para persistência de followers do bot.

A chave primária é composta: (owner, actor_url). `owner` é o id do actor
local seguido, `actor_url` é o actor remoto que seguiu. O bot só publica
um actor, mas a chave estruturada evita prefixos ad hoc em strings.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from broadcast_bot.database import Base

STATUS_ACTIVE = "active"


class Follower(Base):
    __tablename__ = "followers"

    # ex: "https://board.example.com/actor"
    owner: Mapped[str] = mapped_column(String(2048), primary_key=True)

    # URL canônica do actor remoto: identificador único no Fediverso
    # ex: "https://mastodon.social/users/fulano"
    actor_url: Mapped[str] = mapped_column(String(2048), primary_key=True)

    status: Mapped[str] = mapped_column(String(32), default=STATUS_ACTIVE)

    # insert_default é avaliado pelo SQLAlchemy no momento do INSERT,
    # garantindo o timezone correto independente da configuração do sistema
    followed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Follower owner={self.owner!r} actor_url={self.actor_url!r}>"
