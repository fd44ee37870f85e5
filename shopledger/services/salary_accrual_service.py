import logging
from sqlmodel import Session, select
from sqlalchemy import func
from uuid import UUID
from datetime import datetime
from typing import Dict, List, Tuple

from shopledger.core.exceptions import NotFoundError, PermissionDeniedError, ConflictError
from shopledger.core.locks import employee_lock, employee_locks
from shopledger.models.user import User, Actor
from shopledger.models.order import Order
from shopledger.models.editing_project import EditingProject
from shopledger.models.salary import (
    Salary, SalaryCreate, SalaryType, WorkKind, WorkReference)

logger = logging.getLogger(__name__)

_DESCRIPTION_PREFIX = {
    SalaryType.ORDER_WORK: "Order work",
    SalaryType.TRANSPORT_WORK: "Transport work",
    SalaryType.EDITING_WORK: "Editing project",
    SalaryType.BONUS: "Bonus",
    SalaryType.COMMISSION: "Commission",
}


def recompute_user_totals(session: Session, user: User) -> User:
    """
    Recalcula los agregados de salario del usuario a partir de sus entradas.

    total_earnings = suma de todas las entradas, paid_salary = suma de las
    pagadas, remaining_salary = diferencia. No hace commit: quien llama
    debe tener el candado del empleado hasta su commit.
    """
    session.refresh(user, with_for_update=True)
    total = session.exec(
        select(func.coalesce(func.sum(Salary.amount), 0)).where(
            Salary.employee_id == user.id)
    ).one()
    paid = session.exec(
        select(func.coalesce(func.sum(Salary.amount), 0)).where(
            Salary.employee_id == user.id,
            Salary.is_paid == True
        )
    ).one()
    user.total_earnings = int(total)
    user.paid_salary = int(paid)
    user.remaining_salary = user.total_earnings - user.paid_salary
    session.add(user)
    return user


def _work_column(ref: WorkReference):
    if ref.kind == WorkKind.ORDER:
        return Salary.related_order_id
    return Salary.related_project_id


class SalaryAccrualService:
    """
    Genera (y revierte) las entradas de salario que deja cada trabajo.

    La creación de la orden o del proyecto y la acumulación de salarios son
    dos fases: la entidad se guarda primero y después se llama a
    accrue_for_order / accrue_for_project, que son idempotentes. Si la
    segunda fase falla, sync() la completa más tarde.
    """

    def __init__(self, session: Session):
        self.session = session

    def _existing_keys(self, ref: WorkReference) -> set:
        rows = self.session.exec(
            select(Salary.employee_id, Salary.salary_type).where(
                _work_column(ref) == ref.id)
        ).all()
        return {(employee_id, salary_type) for employee_id, salary_type in rows}

    def _get_employee(self, employee_id: UUID) -> User:
        employee = self.session.get(User, employee_id)
        if not employee:
            raise NotFoundError(f"Employee {employee_id} not found")
        return employee

    def _accrue(
        self,
        ref: WorkReference,
        planned: Dict[Tuple[UUID, SalaryType], int],
        work_date: datetime,
        work_name: str
    ) -> Tuple[int, int]:
        """
        Crea las entradas que falten para un trabajo.

        Una asignación cuyo empleado ya no existe se registra y se salta; las
        demás asignaciones del mismo trabajo se acumulan igualmente.

        Returns:
            tuple: (entradas creadas, asignaciones saltadas)
        """
        pending = {
            key: amount for key, amount in planned.items() if amount > 0}
        skipped = 0
        employees: Dict[UUID, User] = {}
        for employee_id, _ in pending:
            employee = self.session.get(User, employee_id)
            if employee:
                employees[employee_id] = employee
        for key in list(pending):
            if key[0] not in employees:
                logger.warning("Skipping salary for missing employee %s on %s %s",
                               key[0], ref.kind.value, ref.id)
                del pending[key]
                skipped += 1
        if not pending:
            return 0, skipped

        with employee_locks(employees):
            existing = self._existing_keys(ref)
            created: List[Salary] = []
            for (employee_id, salary_type), amount in pending.items():
                if (employee_id, salary_type) in existing:
                    continue
                entry = Salary(
                    employee_id=employee_id,
                    amount=amount,
                    salary_type=salary_type,
                    work_date=work_date,
                    description=f"{_DESCRIPTION_PREFIX[salary_type]}: {work_name}"
                )
                entry.assign_work(ref)
                self.session.add(entry)
                created.append(entry)

            if not created:
                return 0, skipped

            self.session.flush()
            for employee_id in {entry.employee_id for entry in created}:
                recompute_user_totals(self.session, employees[employee_id])
            self.session.commit()
        logger.info("Accrued %d salary entries for %s %s",
                    len(created), ref.kind.value, ref.id)
        return len(created), skipped

    def _order_plan(self, order: Order) -> Dict[Tuple[UUID, SalaryType], int]:
        # Dos asignaciones del mismo empleado en la misma orden se suman
        planned: Dict[Tuple[UUID, SalaryType], int] = {}
        for assignment in order.workers:
            key = (assignment.worker_id, SalaryType.ORDER_WORK)
            planned[key] = planned.get(key, 0) + (assignment.payment or 0)
        for assignment in order.transporters:
            key = (assignment.transporter_id, SalaryType.TRANSPORT_WORK)
            planned[key] = planned.get(key, 0) + (assignment.payment or 0)
        return planned

    def _accrue_order(self, order: Order) -> Tuple[int, int]:
        return self._accrue(
            WorkReference.order(order.id),
            self._order_plan(order),
            order.order_date,
            order.order_name
        )

    def _accrue_project(self, project: EditingProject) -> Tuple[int, int]:
        if not project.editor_id:
            return 0, 0
        planned = {
            (project.editor_id, SalaryType.EDITING_WORK): project.commission_amount or 0
        }
        return self._accrue(
            WorkReference.project(project.id),
            planned,
            project.start_date,
            project.project_name
        )

    def accrue_for_order(self, order: Order) -> int:
        """
        Crea una entrada sin pagar por cada trabajador y transportista con
        pago distinto de cero. Devuelve cuántas entradas se crearon.
        """
        return self._accrue_order(order)[0]

    def accrue_for_project(self, project: EditingProject) -> int:
        return self._accrue_project(project)[0]

    def employees_for(self, ref: WorkReference) -> set:
        """Empleados con entradas de salario ligadas al trabajo."""
        return set(self.session.exec(
            select(Salary.employee_id).where(_work_column(ref) == ref.id)
        ).all())

    def _reverse(self, ref: WorkReference) -> int:
        entries = self.session.exec(
            select(Salary).where(_work_column(ref) == ref.id).with_for_update().execution_options(
                populate_existing=True)
        ).all()
        if any(entry.is_paid for entry in entries):
            raise ConflictError(
                f"Cannot delete this {ref.kind.value}: some of its salary entries are already paid")

        affected = {entry.employee_id for entry in entries}
        with employee_locks(affected):
            for entry in entries:
                self.session.delete(entry)
            self.session.flush()

            for employee_id in affected:
                employee = self.session.get(User, employee_id)
                if employee:
                    recompute_user_totals(self.session, employee)
        logger.info("Reversed %d salary entries for %s %s",
                    len(entries), ref.kind.value, ref.id)
        return len(entries)

    def reverse_for_order(self, order: Order) -> int:
        """
        Borra las entradas de la orden. No hace commit: quien borra la orden
        debe tener employee_locks(employees_for(...)) tomado hasta su commit.
        """
        return self._reverse(WorkReference.order(order.id))

    def reverse_for_project(self, project: EditingProject) -> int:
        return self._reverse(WorkReference.project(project.id))

    def sync(self, shop_name: str) -> dict:
        """
        Reconcilia los salarios de una tienda.

        Recorre todas las órdenes y proyectos, crea las entradas que falten
        (commit por trabajo; un fallo no deshace los anteriores) y recalcula
        por completo los agregados de cada usuario de la tienda.
        """
        synced_entries = 0
        orders_processed = 0
        projects_processed = 0
        failed_items = 0
        skipped_assignments = 0

        orders = self.session.exec(
            select(Order).where(Order.shop_name == shop_name).order_by(
                Order.created_at)
        ).all()
        for order in orders:
            order_id = order.id
            try:
                created, skipped = self._accrue_order(order)
                synced_entries += created
                skipped_assignments += skipped
                orders_processed += 1
            except Exception:
                self.session.rollback()
                failed_items += 1
                logger.exception("Salary sync failed for order %s", order_id)

        projects = self.session.exec(
            select(EditingProject).where(EditingProject.shop_name == shop_name).order_by(
                EditingProject.created_at)
        ).all()
        for project in projects:
            project_id = project.id
            try:
                created, skipped = self._accrue_project(project)
                synced_entries += created
                skipped_assignments += skipped
                projects_processed += 1
            except Exception:
                self.session.rollback()
                failed_items += 1
                logger.exception(
                    "Salary sync failed for project %s", project_id)

        users = self.session.exec(
            select(User).where(User.shop_name == shop_name)).all()
        with employee_locks(user.id for user in users):
            for user in users:
                recompute_user_totals(self.session, user)
            self.session.commit()

        logger.info(
            "Salary sync for shop %s: %d entries created, %d orders, %d projects, "
            "%d failures, %d skipped assignments",
            shop_name, synced_entries, orders_processed, projects_processed,
            failed_items, skipped_assignments)
        return {
            "synced_entries": synced_entries,
            "orders_processed": orders_processed,
            "projects_processed": projects_processed,
            "failed_items": failed_items,
            "skipped_assignments": skipped_assignments
        }

    def create_entry(self, data: SalaryCreate, actor: Actor) -> Salary:
        """Entrada manual (bonificación, comisión...) creada por el dueño."""
        if not actor.is_owner:
            raise PermissionDeniedError("Only owners can add salary entries")
        employee = self._get_employee(data.employee_id)
        if employee.shop_name != actor.shop_name:
            raise PermissionDeniedError("Employee does not belong to your shop")

        if data.work_ref is not None:
            model = Order if data.work_ref.kind == WorkKind.ORDER else EditingProject
            work = self.session.get(model, data.work_ref.id)
            if not work or work.shop_name != actor.shop_name:
                raise NotFoundError(f"{data.work_ref.kind.value.capitalize()} not found")

        now = datetime.utcnow()
        entry = Salary(
            employee_id=employee.id,
            amount=data.amount,
            salary_type=data.salary_type,
            description=data.description,
            work_date=now,
            approved_by=actor.user_id,
            approved_date=now
        )
        entry.assign_work(data.work_ref)
        with employee_lock(employee.id):
            self.session.add(entry)
            self.session.flush()
            recompute_user_totals(self.session, employee)
            self.session.commit()
        self.session.refresh(entry)
        return entry
