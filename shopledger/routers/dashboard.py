from fastapi import APIRouter, HTTPException
import logging

from shopledger.core.db import SessionDep
from shopledger.core.dependencies.auth import CurrentActor
from shopledger.core.exceptions import LedgerError
from shopledger.models.user import UserRole
from shopledger.services.dashboard_service import DashboardService
from sqlmodel import SQLModel

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"]
)


class DashboardStats(SQLModel):
    remaining_orders: int = 0
    done_orders: int = 0
    total_payment: int = 0
    received_payment: int = 0
    active_orders: int = 0
    completed_orders: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    total_earnings: int = 0
    paid_salary: int = 0
    remaining_salary: int = 0
    remaining_client_payments: int = 0
    worker_payments: int = 0
    user_role: UserRole


@router.get("/stats", response_model=DashboardStats, description="""
Cifras del panel principal según el rol de quien llama.

**Dueño:** órdenes pendientes y terminadas, total facturado y cobrado en
órdenes, proyectos activos y terminados, saldo pendiente de los clientes y
salarios sin pagar de la tienda.

**Empleados:** órdenes y proyectos asignados (activos y terminados) y su
salario total, pagado y pendiente.
""")
def dashboard_stats(session: SessionDep, actor: CurrentActor):
    try:
        return DashboardService(session).stats(actor)
    except LedgerError:
        raise
    except Exception:
        logging.exception("Unexpected error computing dashboard stats")
        raise HTTPException(status_code=500, detail="Internal server error")
