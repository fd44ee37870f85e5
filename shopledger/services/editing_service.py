import logging
from sqlmodel import Session, select
from uuid import UUID
from datetime import datetime
from typing import List, Optional

from shopledger.core.exceptions import (
    LedgerValidationError, NotFoundError, PermissionDeniedError)
from shopledger.core.locks import client_lock, employee_locks
from shopledger.models.user import User, Actor
from shopledger.models.client import Client
from shopledger.models.order import WorkStatus
from shopledger.models.editing_project import EditingProject, EditingProjectCreate
from shopledger.models.salary import WorkReference
from shopledger.services.client_payment_service import ClientPaymentService
from shopledger.services.salary_accrual_service import SalaryAccrualService
from shopledger.utils.ledger_math import validate_received_amount

logger = logging.getLogger(__name__)


class EditingService:
    def __init__(self, session: Session):
        self.session = session

    def get_project(self, project_id: UUID, shop_name: str) -> EditingProject:
        project = self.session.get(EditingProject, project_id)
        if not project or project.shop_name != shop_name:
            raise NotFoundError("Project not found")
        return project

    def create_project(self, data: EditingProjectCreate, actor: Actor) -> dict:
        """
        Crea el proyecto de edición y genera la comisión del editor.

        La comisión se calcula solo sobre editing_value. Igual que con las
        órdenes, un fallo al generar el salario no deshace el proyecto.
        """
        client = self.session.get(Client, data.client_id)
        if not client or client.shop_name != actor.shop_name:
            raise NotFoundError("Client not found")
        editor = self.session.get(User, data.editor_id)
        if not editor or editor.shop_name != actor.shop_name:
            raise NotFoundError("Editor not found")
        validate_received_amount(data.received_payment, data.total_amount)
        if not 0 <= data.commission_percentage <= 100:
            raise LedgerValidationError(
                "Commission percentage must be between 0 and 100")

        project = EditingProject(
            client_id=client.id,
            editor_id=editor.id,
            project_name=data.project_name,
            description=data.description or "",
            editing_value=data.editing_value,
            pendrive_included=data.pendrive_included,
            pendrive_value=data.pendrive_value or 0,
            commission_percentage=data.commission_percentage,
            total_amount=data.total_amount,
            received_payment=data.received_payment or 0,
            start_date=data.start_date or datetime.utcnow(),
            end_date=data.end_date,
            created_by=actor.user_id,
            shop_name=actor.shop_name
        )

        with client_lock(client.id):
            self.session.add(project)
            client.lifetime_editing_projects = (
                client.lifetime_editing_projects or 0) + 1
            client.lifetime_value = (client.lifetime_value or 0) + data.total_amount
            self.session.add(client)
            self.session.commit()
            ClientPaymentService(self.session).recompute_client_totals(client.id)
        self.session.refresh(project)
        logger.info("Editing project %s created for client %s",
                    project.id, client.id)

        salary_accrual_failed = False
        try:
            SalaryAccrualService(self.session).accrue_for_project(project)
        except Exception:
            self.session.rollback()
            salary_accrual_failed = True
            logger.exception(
                "Salary accrual failed for project %s; run salary sync to recover", project.id)
        self.session.refresh(project)

        return {"project": project, "salary_accrual_failed": salary_accrual_failed}

    def update_status(self, project_id: UUID, status: WorkStatus, shop_name: str) -> EditingProject:
        project = self.get_project(project_id, shop_name)
        project.status = status
        if status == WorkStatus.COMPLETED:
            project.completion_date = datetime.utcnow()
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        return project

    def update_payment(self, project_id: UUID, received_payment: Optional[int], shop_name: str) -> EditingProject:
        project = self.get_project(project_id, shop_name)
        validate_received_amount(received_payment, project.total_amount)
        with client_lock(project.client_id):
            project.received_payment = received_payment
            self.session.add(project)
            self.session.commit()
            ClientPaymentService(self.session).recompute_client_totals(
                project.client_id)
        self.session.refresh(project)
        return project

    def delete_project(self, project_id: UUID, actor: Actor) -> None:
        if not actor.is_owner:
            raise PermissionDeniedError("Only owners can delete projects")
        project = self.get_project(project_id, actor.shop_name)
        client_id = project.client_id

        accrual = SalaryAccrualService(self.session)
        employees = accrual.employees_for(WorkReference.project(project.id))

        with client_lock(client_id), employee_locks(employees):
            accrual.reverse_for_project(project)
            client = self.session.get(Client, client_id)
            if client:
                client.lifetime_editing_projects = max(
                    0, (client.lifetime_editing_projects or 0) - 1)
                client.lifetime_value = max(
                    0, (client.lifetime_value or 0) - project.total_amount)
                self.session.add(client)
            self.session.delete(project)
            self.session.flush()
            if client:
                ClientPaymentService(self.session).recompute_client_totals(
                    client_id, commit=False)
            self.session.commit()
        logger.info("Editing project %s deleted", project_id)

    def list_projects(self, actor: Actor) -> List[EditingProject]:
        # Los editores solo ven los proyectos que editan
        query = select(EditingProject).where(
            EditingProject.shop_name == actor.shop_name)
        if not actor.is_owner:
            query = query.where(EditingProject.editor_id == actor.user_id)
        return self.session.exec(
            query.order_by(EditingProject.created_at.desc())).all()
