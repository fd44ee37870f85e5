from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from pydantic import field_validator
from enum import Enum
from datetime import datetime
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from .user_notification import UserNotification
    from .external_identity import ExternalIdentity


class UserRole(str, Enum):
    OWNER = "owner"
    WORKER = "worker"
    EDITOR = "editor"
    WORKER_EDITOR = "worker_editor"
    TRANSPORTER = "transporter"
    TRANSPORTER_WORKER = "transporter_worker"


# Roles que pueden asignarse a cada tipo de trabajo
WORKER_ROLES = (UserRole.WORKER, UserRole.WORKER_EDITOR,
                UserRole.TRANSPORTER_WORKER)
EDITOR_ROLES = (UserRole.EDITOR, UserRole.WORKER_EDITOR)
TRANSPORTER_ROLES = (UserRole.TRANSPORTER, UserRole.TRANSPORTER_WORKER)


class UserBase(SQLModel):
    first_name: str
    last_name: str
    email: str = Field(index=True)
    role: UserRole
    phone: str = Field(default="")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Invalid email address.")
        return value


class User(UserBase, table=True):
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    email: str = Field(index=True, unique=True)
    shop_name: str = Field(index=True)
    # Agregados de salario; se recalculan a partir de las entradas Salary
    total_earnings: int = Field(default=0)
    paid_salary: int = Field(default=0)
    remaining_salary: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )

    # Relaciones
    notifications: List["UserNotification"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    external_identities: List["ExternalIdentity"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class UserCreate(UserBase):
    pass


class UserRead(SQLModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    role: UserRole
    phone: str
    shop_name: str
    total_earnings: int
    paid_salary: int
    remaining_salary: int


class Actor(SQLModel):
    """Identidad ya resuelta de quien hace la llamada."""
    user_id: UUID
    role: UserRole
    shop_name: str

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER
