from fastapi import APIRouter, HTTPException, status
from uuid import UUID
import logging
from typing import List

from shopledger.core.db import SessionDep
from shopledger.core.dependencies.auth import CurrentActor, OwnerActor
from shopledger.core.exceptions import LedgerError
from shopledger.models.salary import SalaryCreate, SalaryRead, SalaryPayRequest
from shopledger.services.salary_accrual_service import SalaryAccrualService
from shopledger.services.salary_settlement_service import SalarySettlementService
from sqlmodel import SQLModel

router = APIRouter(
    prefix="/salary",
    tags=["salary"]
)


class SalaryPayResponse(SQLModel):
    paid_amount: int
    paid_salaries: List[SalaryRead]
    unallocated_amount: int


class EmployeeSalarySummary(SQLModel):
    total_earnings: int
    paid_salary: int
    remaining_salary: int
    salaries: List[SalaryRead]


class SalarySyncResponse(SQLModel):
    synced_entries: int
    orders_processed: int
    projects_processed: int
    failed_items: int
    skipped_assignments: int = 0


@router.get("/", response_model=List[SalaryRead], description="""
Lista las entradas de salario.

El dueño ve todas las entradas de los empleados de su tienda; el resto de
roles solo ve las suyas. Ordenadas de la más reciente a la más antigua.
""")
def list_salaries(session: SessionDep, actor: CurrentActor):
    return SalarySettlementService(session).list_salaries(actor)


@router.get("/my-salary/{employee_id}", response_model=EmployeeSalarySummary, description="""
Resumen de salario de un empleado calculado a partir de sus entradas.

**Respuesta:**
`total_earnings`, `paid_salary`, `remaining_salary` y la lista de entradas.
""")
def employee_salary(employee_id: UUID, session: SessionDep, actor: CurrentActor):
    return SalarySettlementService(session).employee_summary(employee_id, actor)


@router.post("/", response_model=SalaryRead, status_code=status.HTTP_201_CREATED, description="""
Agrega una entrada manual (bonificación, comisión...) a un empleado de la tienda.
""")
def create_salary_entry(data: SalaryCreate, session: SessionDep, actor: OwnerActor):
    return SalaryAccrualService(session).create_entry(data, actor)


@router.post("/pay", response_model=SalaryPayResponse, description="""
Paga salario a un empleado repartiendo el monto entre sus entradas pendientes,
de la más antigua a la más reciente.

**Parámetros:**
- `employee_id`: UUID del empleado.
- `amount`: Monto a pagar (mayor que cero).

**Respuesta:**
Monto asignado, entradas pagadas (incluida la parcial si la hubo) y el
excedente que no se pudo asignar.
""")
def pay_salary(data: SalaryPayRequest, session: SessionDep, actor: OwnerActor):
    service = SalarySettlementService(session)
    try:
        return service.pay(data.employee_id, data.amount,
                           shop_name=actor.shop_name, approved_by=actor.user_id)
    except LedgerError:
        raise
    except Exception:
        logging.exception("Unexpected error paying salary")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{salary_id}/pay", response_model=SalaryRead, description="""
Marca como pagada una entrada concreta, sin tener en cuenta su antigüedad.
""")
def pay_single_salary(salary_id: UUID, session: SessionDep, actor: OwnerActor):
    return SalarySettlementService(session).pay_one(
        salary_id, shop_name=actor.shop_name, approved_by=actor.user_id)


@router.post("/sync", response_model=SalarySyncResponse, description="""
Genera las entradas de salario que falten para las órdenes y proyectos de la
tienda y recalcula los totales de todos sus usuarios. Es idempotente.
""")
def sync_salaries(session: SessionDep, actor: OwnerActor):
    service = SalaryAccrualService(session)
    try:
        return service.sync(actor.shop_name)
    except Exception:
        logging.exception("Unexpected error syncing salaries")
        raise HTTPException(status_code=500, detail="Internal server error")
