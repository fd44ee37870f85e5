from fastapi import APIRouter, HTTPException, status
from uuid import UUID
import logging
from typing import List
from sqlmodel import SQLModel

from shopledger.core.db import SessionDep
from shopledger.core.dependencies.auth import CurrentActor, OwnerActor
from shopledger.core.exceptions import LedgerError
from shopledger.models.editing_project import EditingProjectCreate, EditingProjectRead
from shopledger.models.order import WorkStatusUpdate, WorkPaymentSet
from shopledger.services.editing_service import EditingService

router = APIRouter(
    prefix="/editing",
    tags=["editing"]
)


class ProjectCreateResponse(SQLModel):
    project: EditingProjectRead
    salary_accrual_failed: bool


@router.get("/", response_model=List[EditingProjectRead], description="""
Lista los proyectos de edición. El dueño ve todos los de la tienda; los
editores solo los que editan.
""")
def list_projects(session: SessionDep, actor: CurrentActor):
    return EditingService(session).list_projects(actor)


@router.post("/", response_model=ProjectCreateResponse, status_code=status.HTTP_201_CREATED, description="""
Crea un proyecto de edición. La comisión del editor se calcula sobre
`editing_value` (el pendrive no cuenta) y se registra como salario pendiente.
""")
def create_project(data: EditingProjectCreate, session: SessionDep, actor: CurrentActor):
    service = EditingService(session)
    try:
        return service.create_project(data, actor)
    except LedgerError:
        raise
    except Exception:
        logging.exception("Unexpected error creating editing project")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{project_id}/status", response_model=EditingProjectRead)
def update_project_status(project_id: UUID, data: WorkStatusUpdate, session: SessionDep, actor: CurrentActor):
    return EditingService(session).update_status(project_id, data.status, actor.shop_name)


@router.put("/{project_id}/payment", response_model=EditingProjectRead)
def update_project_payment(project_id: UUID, data: WorkPaymentSet, session: SessionDep, actor: OwnerActor):
    return EditingService(session).update_payment(project_id, data.received_payment, actor.shop_name)


@router.delete("/{project_id}", status_code=status.HTTP_200_OK)
def delete_project(project_id: UUID, session: SessionDep, actor: OwnerActor):
    EditingService(session).delete_project(project_id, actor)
    return {"message": "Project and related data deleted successfully"}
