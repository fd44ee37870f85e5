from sqlmodel import SQLModel, Field
from typing import Optional
from enum import Enum
from datetime import datetime
from uuid import UUID, uuid4


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    UPI = "upi"
    CHEQUE = "cheque"
    CARD = "card"
    OTHER = "other"


class Payment(SQLModel, table=True):
    """Registro histórico de dinero recibido contra una orden de un cliente."""
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    order_id: UUID = Field(foreign_key="order.id", index=True)
    client_id: UUID = Field(foreign_key="client.id", index=True)
    amount: int
    payment_date: datetime = Field(default_factory=datetime.utcnow)
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)
    received_by: UUID = Field(foreign_key="user.id")
    notes: str = Field(default="")
    shop_name: str = Field(index=True)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False)


class PaymentCreate(SQLModel):
    order_id: UUID
    client_id: UUID
    amount: int = Field(gt=0)
    payment_date: Optional[datetime] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: str = ""


class PaymentRead(SQLModel):
    id: UUID
    order_id: UUID
    client_id: UUID
    amount: int
    payment_date: datetime
    payment_method: PaymentMethod
    received_by: UUID
    notes: str
    shop_name: str
