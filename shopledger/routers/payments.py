from fastapi import APIRouter, status
from uuid import UUID
from typing import List

from shopledger.core.db import SessionDep
from shopledger.core.dependencies.auth import CurrentActor, OwnerActor
from shopledger.models.payment import PaymentCreate, PaymentRead
from shopledger.services.payment_service import PaymentService

router = APIRouter(
    prefix="/payments",
    tags=["payments"]
)


@router.get("/order/{order_id}", response_model=List[PaymentRead])
def list_order_payments(order_id: UUID, session: SessionDep, actor: CurrentActor):
    return PaymentService(session).list_for_order(order_id, actor.shop_name)


@router.get("/client/{client_id}", response_model=List[PaymentRead])
def list_client_payments(client_id: UUID, session: SessionDep, actor: CurrentActor):
    return PaymentService(session).list_for_client(client_id, actor.shop_name)


@router.post("/", response_model=PaymentRead, status_code=status.HTTP_201_CREATED, description="""
Registra un pago recibido contra una orden. Suma el monto a lo recibido por
la orden y por el cliente.

**Parámetros:**
- `order_id`, `client_id`: La orden debe pertenecer al cliente.
- `amount`: Mayor que cero; lo recibido no puede superar el total de la orden.
- `payment_method`: cash, bank_transfer, upi, cheque, card u other.
""")
def create_payment(data: PaymentCreate, session: SessionDep, actor: OwnerActor):
    return PaymentService(session).create_payment(data, actor)


@router.delete("/{payment_id}", status_code=status.HTTP_200_OK)
def delete_payment(payment_id: UUID, session: SessionDep, actor: OwnerActor):
    PaymentService(session).delete_payment(payment_id, actor)
    return {"message": "Payment deleted successfully"}
