from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from .user import User


class ExternalIdentity(SQLModel, table=True):
    """Relación entre un identificador federado (p. ej. Firebase UID) y el usuario interno."""
    __tablename__ = "external_identity"
    __table_args__ = (
        UniqueConstraint("provider", "external_id",
                         name="uq_external_identity"),
    )
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    provider: str = Field(default="firebase")
    external_id: str = Field(index=True)
    user_id: UUID = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False)

    user: Optional["User"] = Relationship(back_populates="external_identities")


class ExternalIdentityCreate(SQLModel):
    provider: str = "firebase"
    external_id: str
