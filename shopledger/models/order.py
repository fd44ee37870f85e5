from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import event
from typing import Optional, List, TYPE_CHECKING
from enum import Enum
from datetime import datetime
from uuid import UUID, uuid4

from shopledger.utils.ledger_math import remaining_payment

if TYPE_CHECKING:
    from .client import Client


class WorkStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Order(SQLModel, table=True):
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    client_id: UUID = Field(foreign_key="client.id", index=True)
    order_name: str
    venue_place: str
    description: str = Field(default="")
    # Importes
    total_amount: int
    received_payment: int = Field(default=0)
    remaining_payment: int = Field(default=0)
    order_date: datetime = Field(default_factory=datetime.utcnow)
    completion_date: Optional[datetime] = None
    status: WorkStatus = Field(default=WorkStatus.PENDING)
    business_type: str = Field(default="led_walls_drones_cameras")
    created_by: Optional[UUID] = Field(default=None, foreign_key="user.id")
    shop_name: str = Field(index=True)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )

    # Relaciones
    client: Optional["Client"] = Relationship(back_populates="orders")
    products: List["OrderProduct"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "OrderProduct.position"
        }
    )
    workers: List["OrderWorker"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "OrderWorker.position"
        }
    )
    transporters: List["OrderTransporter"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "OrderTransporter.position"
        }
    )


class OrderProduct(SQLModel, table=True):
    __tablename__ = "order_product"
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    order_id: UUID = Field(foreign_key="order.id", index=True)
    position: int = Field(default=0)
    name: str
    quantity: int
    price: int
    size_info: str = Field(default="")

    order: Optional[Order] = Relationship(back_populates="products")


class OrderWorker(SQLModel, table=True):
    __tablename__ = "order_worker"
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    order_id: UUID = Field(foreign_key="order.id", index=True)
    position: int = Field(default=0)
    worker_id: UUID = Field(foreign_key="user.id", index=True)
    payment: int

    order: Optional[Order] = Relationship(back_populates="workers")


class OrderTransporter(SQLModel, table=True):
    __tablename__ = "order_transporter"
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    order_id: UUID = Field(foreign_key="order.id", index=True)
    position: int = Field(default=0)
    transporter_id: UUID = Field(foreign_key="user.id", index=True)
    payment: int

    order: Optional[Order] = Relationship(back_populates="transporters")


# El saldo pendiente se recalcula en cada escritura
@event.listens_for(Order, 'before_insert')
@event.listens_for(Order, 'before_update')
def set_remaining_payment(mapper, connection, target):
    target.remaining_payment = remaining_payment(
        target.total_amount, target.received_payment)


# Modelos de entrada / salida

class OrderProductIn(SQLModel):
    name: str
    quantity: int = Field(ge=0)
    price: int = Field(ge=0)
    size_info: str = ""


class WorkerAssignment(SQLModel):
    worker: UUID
    payment: int = Field(ge=0)


class TransporterAssignment(SQLModel):
    transporter: UUID
    payment: int = Field(ge=0)


class WorkStatusUpdate(SQLModel):
    status: WorkStatus


class WorkPaymentSet(SQLModel):
    received_payment: Optional[int] = None


class OrderCreate(SQLModel):
    client_id: UUID
    order_name: str = Field(min_length=1)
    venue_place: str = Field(min_length=1)
    total_amount: int = Field(gt=0)
    received_payment: int = Field(default=0, ge=0)
    products: Optional[List[OrderProductIn]] = None
    workers: List[WorkerAssignment] = []
    transporters: List[TransporterAssignment] = []
    description: str = ""
    order_date: Optional[datetime] = None


class OrderProductRead(SQLModel):
    name: str
    quantity: int
    price: int
    size_info: str


class OrderWorkerRead(SQLModel):
    worker_id: UUID
    payment: int


class OrderTransporterRead(SQLModel):
    transporter_id: UUID
    payment: int


class OrderRead(SQLModel):
    id: UUID
    client_id: UUID
    order_name: str
    venue_place: str
    description: str
    total_amount: int
    received_payment: int
    remaining_payment: int
    order_date: datetime
    completion_date: Optional[datetime] = None
    status: WorkStatus
    shop_name: str
    products: List[OrderProductRead] = []
    workers: List[OrderWorkerRead] = []
    transporters: List[OrderTransporterRead] = []
