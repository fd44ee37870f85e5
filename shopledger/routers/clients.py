from fastapi import APIRouter, HTTPException, status
from uuid import UUID
import logging
from typing import List, Optional, Union
from datetime import datetime
from sqlmodel import SQLModel

from shopledger.core.db import SessionDep
from shopledger.core.dependencies.auth import CurrentActor, OwnerActor
from shopledger.core.exceptions import LedgerError
from shopledger.models.client import (
    ClientCreate, ClientUpdate, ClientRead, ClientPaymentStatus,
    WorkPaymentUpdate, BulkPaymentRequest, QuickPaymentRequest,
    ClientPaymentAdjustment)
from shopledger.models.order import WorkStatus
from shopledger.services.client_service import ClientService
from shopledger.services.client_payment_service import ClientPaymentService

router = APIRouter(
    prefix="/clients",
    tags=["clients"]
)


class ClientTotals(SQLModel):
    id: UUID
    name: str
    total_payments_due: int
    received_payments: int
    pending_payments: int
    payment_status: ClientPaymentStatus


class WorkHistoryItem(SQLModel):
    id: UUID
    type: str
    name: str
    total_amount: int
    received_payment: int
    remaining_payment: int
    status: WorkStatus
    date: datetime
    is_paid: bool


class WorkHistoryResponse(SQLModel):
    client: ClientTotals
    work_history: List[WorkHistoryItem]


class WorkPaymentResponse(SQLModel):
    work_id: UUID
    received_payment: int
    remaining_payment: int
    client: ClientTotals


class BulkPaymentResult(SQLModel):
    work_id: Optional[Union[UUID, str]] = None
    success: bool = False
    amount: Optional[int] = None
    error: Optional[str] = None


class BulkPaymentResponse(SQLModel):
    results: List[BulkPaymentResult]
    total_updated: int


class QuickPaymentResponse(SQLModel):
    updated_count: int
    total_due: int
    total_received: int
    pending_payments: int


@router.get("/", response_model=List[ClientRead], description="""
Lista los clientes de la tienda. Solo el dueño los ve; para el resto de
roles la lista está vacía.
""")
def list_clients(session: SessionDep, actor: CurrentActor):
    return ClientService(session).list_clients(actor)


@router.post("/", response_model=ClientRead, status_code=status.HTTP_201_CREATED, description="""
Crea un cliente en la tienda del dueño.

**Parámetros:**
- `name`: Nombre del cliente.
- `phone`: Teléfono (se valida contra la región configurada).
- `client_type`, `business_category`, `priority_level`: opcionales.
""")
def create_client(client_data: ClientCreate, session: SessionDep, actor: OwnerActor):
    return ClientService(session).create_client(client_data, actor)


@router.get("/{client_id}", response_model=ClientRead)
def get_client(client_id: UUID, session: SessionDep, actor: CurrentActor):
    return ClientService(session).get_client(client_id, actor)


@router.put("/{client_id}", response_model=ClientRead)
def update_client(client_id: UUID, client_data: ClientUpdate, session: SessionDep, actor: OwnerActor):
    return ClientService(session).update_client(client_id, client_data, actor)


@router.put("/{client_id}/payment", response_model=ClientTotals, description="""
Ajuste manual del total recibido del cliente (0 ≤ monto ≤ total adeudado).
Si se envían notas queda registrado en el historial de pagos del cliente.
""")
def update_client_payment(
    client_id: UUID,
    data: ClientPaymentAdjustment,
    session: SessionDep,
    actor: OwnerActor
):
    return ClientPaymentService(session).record_manual_adjustment(
        client_id, data.received_amount, data.notes, actor)


@router.get("/{client_id}/work-history", response_model=WorkHistoryResponse, description="""
Órdenes y proyectos del cliente con su estado de cobro, del más reciente al
más antiguo, junto con los totales del cliente.
""")
def client_work_history(client_id: UUID, session: SessionDep, actor: OwnerActor):
    return ClientPaymentService(session).work_history(client_id, actor.shop_name)


@router.put("/{client_id}/work/{work_id}/payment", response_model=WorkPaymentResponse, description="""
Fija el monto recibido de una orden o proyecto del cliente.

**Parámetros:**
- `work_type`: "order" o "project".
- `received_amount`: Monto recibido, entre 0 y el total del trabajo.
""")
def update_work_payment(
    client_id: UUID,
    work_id: UUID,
    data: WorkPaymentUpdate,
    session: SessionDep,
    actor: OwnerActor
):
    service = ClientPaymentService(session)
    work, client = service.update_work_payment(
        client_id, work_id, data.work_type, data.received_amount, actor.shop_name)
    return {
        "work_id": work.id,
        "received_payment": work.received_payment,
        "remaining_payment": work.remaining_payment,
        "client": client
    }


@router.put("/{client_id}/bulk-payment", response_model=BulkPaymentResponse, description="""
Aplica varios pagos `{work_id, work_type, amount}` de una vez. Cada uno se
valida y se guarda por separado; los que fallan aparecen con `error` en
`results` sin afectar al resto.
""")
def bulk_payment(
    client_id: UUID,
    data: BulkPaymentRequest,
    session: SessionDep,
    actor: OwnerActor
):
    service = ClientPaymentService(session)
    try:
        return service.bulk_payment(client_id, data.payments, actor.shop_name)
    except LedgerError:
        raise
    except Exception:
        logging.exception("Unexpected error in bulk payment update")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{client_id}/quick-payment", response_model=QuickPaymentResponse, description="""
Acciones rápidas de cobro sobre todos los trabajos del cliente.

**Parámetros:**
- `action`: "mark-all-paid", "clear-payments" o "add-payment".
- `amount`: Obligatorio para "add-payment"; se reparte primero entre las
  órdenes y después entre los proyectos.
""")
def quick_payment(
    client_id: UUID,
    data: QuickPaymentRequest,
    session: SessionDep,
    actor: OwnerActor
):
    service = ClientPaymentService(session)
    try:
        return service.quick_payment(client_id, data.action, data.amount, actor.shop_name)
    except LedgerError:
        raise
    except Exception:
        logging.exception("Unexpected error in quick payment action")
        raise HTTPException(status_code=500, detail="Internal server error")
