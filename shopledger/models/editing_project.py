from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import event
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4

from shopledger.models.order import WorkStatus
from shopledger.utils.ledger_math import commission_amount, remaining_payment

if TYPE_CHECKING:
    from .client import Client


class EditingProject(SQLModel, table=True):
    __tablename__ = "editing_project"
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    client_id: UUID = Field(foreign_key="client.id", index=True)
    editor_id: UUID = Field(foreign_key="user.id", index=True)
    project_name: str
    description: str = Field(default="")
    # Valor de edición y pendrive; la comisión solo se calcula sobre la edición
    editing_value: int
    pendrive_included: bool = Field(default=False)
    pendrive_value: int = Field(default=0)
    commission_percentage: float = Field(ge=0, le=100)
    commission_amount: int = Field(default=0)
    # Importes
    total_amount: int
    received_payment: int = Field(default=0)
    remaining_payment: int = Field(default=0)
    start_date: datetime = Field(default_factory=datetime.utcnow)
    end_date: datetime
    completion_date: Optional[datetime] = None
    status: WorkStatus = Field(default=WorkStatus.IN_PROGRESS)
    created_by: Optional[UUID] = Field(default=None, foreign_key="user.id")
    shop_name: str = Field(index=True)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )

    client: Optional["Client"] = Relationship(back_populates="editing_projects")


# Comisión y saldo pendiente se recalculan en cada escritura, no solo al crear
@event.listens_for(EditingProject, 'before_insert')
@event.listens_for(EditingProject, 'before_update')
def set_derived_amounts(mapper, connection, target):
    target.commission_amount = commission_amount(
        target.editing_value, target.commission_percentage)
    target.remaining_payment = remaining_payment(
        target.total_amount, target.received_payment)


class EditingProjectCreate(SQLModel):
    client_id: UUID
    editor_id: UUID
    project_name: str = Field(min_length=1)
    description: str = ""
    editing_value: int = Field(gt=0)
    pendrive_included: bool = False
    pendrive_value: int = Field(default=0, ge=0)
    total_amount: int = Field(gt=0)
    commission_percentage: float = Field(gt=0, le=100)
    start_date: Optional[datetime] = None
    end_date: datetime
    received_payment: int = Field(default=0, ge=0)


class EditingProjectRead(SQLModel):
    id: UUID
    client_id: UUID
    editor_id: UUID
    project_name: str
    description: str
    editing_value: int
    pendrive_included: bool
    pendrive_value: int
    commission_percentage: float
    commission_amount: int
    total_amount: int
    received_payment: int
    remaining_payment: int
    start_date: datetime
    end_date: datetime
    completion_date: Optional[datetime] = None
    status: WorkStatus
    shop_name: str
