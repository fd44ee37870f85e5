from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, Union, TYPE_CHECKING
from pydantic import field_validator
from enum import Enum
from datetime import datetime
from uuid import UUID, uuid4
import phonenumbers

from shopledger.core.config import settings

if TYPE_CHECKING:
    from .order import Order
    from .editing_project import EditingProject


class ClientType(str, Enum):
    INDIVIDUAL = "individual"
    COMPANY = "company"
    WEDDING = "wedding"
    EVENT = "event"


class BusinessCategory(str, Enum):
    VIDEO_EDITING = "video_editing"
    LED_WALLS = "led_walls"
    DRONES = "drones"
    CAMERAS = "cameras"
    MIXED = "mixed"


class PriorityLevel(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    VIP = "vip"


class ClientPaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    PARTIAL = "partial"


def _validate_phone(value: str) -> str:
    try:
        parsed = phonenumbers.parse(value, settings.DEFAULT_PHONE_REGION)
        if not phonenumbers.is_possible_number(parsed):
            raise ValueError("Invalid phone number.")
    except phonenumbers.NumberParseException as e:
        raise ValueError("Invalid phone number format.") from e
    return value


class ClientBase(SQLModel):
    name: str
    phone: str
    email: Optional[str] = Field(default="")
    address: Optional[str] = Field(default="")
    client_type: ClientType = Field(default=ClientType.INDIVIDUAL)
    business_category: BusinessCategory = Field(default=BusinessCategory.MIXED)
    priority_level: PriorityLevel = Field(default=PriorityLevel.NORMAL)
    notes: Optional[str] = Field(default="")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return _validate_phone(value)


class Client(ClientBase, table=True):
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    shop_name: str = Field(index=True)
    # Agregados de cobro
    total_payments_due: int = Field(default=0)
    received_payments: int = Field(default=0)
    pending_payments: int = Field(default=0)
    payment_status: ClientPaymentStatus = Field(
        default=ClientPaymentStatus.PENDING)
    # Estadísticas históricas
    lifetime_orders: int = Field(default=0)
    lifetime_editing_projects: int = Field(default=0)
    lifetime_value: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )

    # Relaciones
    payment_history: List["ClientPaymentHistory"] = Relationship(
        back_populates="client",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "ClientPaymentHistory.date"
        }
    )
    orders: List["Order"] = Relationship(back_populates="client")
    editing_projects: List["EditingProject"] = Relationship(
        back_populates="client")


class ClientPaymentHistory(SQLModel, table=True):
    """Registro de solo inserción de ajustes manuales del cobro."""
    __tablename__ = "client_payment_history"
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    client_id: UUID = Field(foreign_key="client.id", index=True)
    date: datetime = Field(default_factory=datetime.utcnow)
    amount: int
    notes: Optional[str] = None
    updated_by: Optional[str] = None

    client: Optional[Client] = Relationship(back_populates="payment_history")


class ClientCreate(ClientBase):
    pass


class ClientUpdate(SQLModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _validate_phone(value)


class ClientPaymentHistoryRead(SQLModel):
    date: datetime
    amount: int
    notes: Optional[str] = None
    updated_by: Optional[str] = None


class ClientRead(SQLModel):
    id: UUID
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    client_type: ClientType
    business_category: BusinessCategory
    priority_level: PriorityLevel
    notes: Optional[str] = None
    shop_name: str
    total_payments_due: int
    received_payments: int
    pending_payments: int
    payment_status: ClientPaymentStatus
    lifetime_orders: int
    lifetime_editing_projects: int
    lifetime_value: int
    created_at: datetime


# Solicitudes de cobro

class WorkPaymentUpdate(SQLModel):
    work_type: str
    received_amount: Optional[int] = None


class WorkPaymentInstruction(SQLModel):
    # Un id mal formado se informa como error de esa instrucción
    work_id: Optional[Union[UUID, str]] = None
    work_type: Optional[str] = None
    amount: Optional[int] = None


class BulkPaymentRequest(SQLModel):
    payments: List[WorkPaymentInstruction] = []


class QuickPaymentAction(str, Enum):
    MARK_ALL_PAID = "mark-all-paid"
    CLEAR_PAYMENTS = "clear-payments"
    ADD_PAYMENT = "add-payment"


class QuickPaymentRequest(SQLModel):
    action: str
    amount: Optional[int] = None


class ClientPaymentAdjustment(SQLModel):
    received_amount: int
    notes: Optional[str] = None
