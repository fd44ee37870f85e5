from fastapi import APIRouter, HTTPException, status
from uuid import UUID
import logging
from typing import List
from sqlmodel import SQLModel

from shopledger.core.db import SessionDep
from shopledger.core.dependencies.auth import CurrentActor, OwnerActor
from shopledger.core.exceptions import LedgerError
from shopledger.models.order import OrderCreate, OrderRead, WorkStatusUpdate, WorkPaymentSet
from shopledger.services.order_service import OrderService

router = APIRouter(
    prefix="/orders",
    tags=["orders"]
)


class OrderCreateResponse(SQLModel):
    order: OrderRead
    salary_accrual_failed: bool


@router.get("/", response_model=List[OrderRead], description="""
Lista las órdenes de la tienda. El dueño ve todas; trabajadores y
transportistas solo las órdenes en las que están asignados.
""")
def list_orders(session: SessionDep, actor: CurrentActor):
    return OrderService(session).list_orders(actor)


@router.post("/", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED, description="""
Crea una orden y genera un salario pendiente por cada trabajador y
transportista con pago.

**Respuesta:**
La orden creada y `salary_accrual_failed`, que es `true` si los salarios no
se pudieron generar (la orden se crea igualmente; `POST /salary/sync` los
completa).
""")
def create_order(data: OrderCreate, session: SessionDep, actor: CurrentActor):
    service = OrderService(session)
    try:
        return service.create_order(data, actor)
    except LedgerError:
        raise
    except Exception:
        logging.exception("Unexpected error creating order")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{order_id}/status", response_model=OrderRead)
def update_order_status(order_id: UUID, data: WorkStatusUpdate, session: SessionDep, actor: CurrentActor):
    return OrderService(session).update_status(order_id, data.status, actor.shop_name)


@router.put("/{order_id}/payment", response_model=OrderRead, description="""
Fija el monto recibido de la orden (entre 0 y el total) y recalcula los
totales del cliente.
""")
def update_order_payment(order_id: UUID, data: WorkPaymentSet, session: SessionDep, actor: OwnerActor):
    return OrderService(session).update_payment(order_id, data.received_payment, actor.shop_name)


@router.delete("/{order_id}", status_code=status.HTTP_200_OK, description="""
Borra la orden junto con sus salarios y pagos. Si alguno de sus salarios ya
se pagó la orden no se borra (409).
""")
def delete_order(order_id: UUID, session: SessionDep, actor: OwnerActor):
    OrderService(session).delete_order(order_id, actor)
    return {"message": "Order and related data deleted successfully"}
