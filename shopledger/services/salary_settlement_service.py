import logging
from sqlmodel import Session, select
from uuid import UUID
from datetime import datetime
from typing import List, Optional

from shopledger.core.exceptions import (
    LedgerValidationError, NotFoundError, PermissionDeniedError)
from shopledger.core.locks import employee_lock
from shopledger.models.user import User, Actor
from shopledger.models.salary import Salary
from shopledger.services.salary_accrual_service import recompute_user_totals
from shopledger.utils.salary_notifications import notify_salary_paid

logger = logging.getLogger(__name__)


class SalarySettlementService:
    def __init__(self, session: Session):
        self.session = session

    def _get_employee(self, employee_id: UUID, shop_name: Optional[str] = None) -> User:
        employee = self.session.get(User, employee_id)
        if not employee:
            raise NotFoundError("Employee not found")
        if shop_name is not None and employee.shop_name != shop_name:
            raise PermissionDeniedError("Employee does not belong to your shop")
        return employee

    def pay(
        self,
        employee_id: UUID,
        amount: int,
        shop_name: Optional[str] = None,
        approved_by: Optional[UUID] = None
    ) -> dict:
        """
        Liquida salario pendiente empezando por las entradas más antiguas.

        Cada entrada que cabe entera en el monto se marca pagada. Si la
        siguiente no cabe, se crea una entrada pagada por lo que queda del
        monto y la original se reduce en esa cantidad (sigue sin pagar). Lo
        que supere el total pendiente no se asigna.

        Args:
            employee_id: Empleado al que se paga
            amount: Monto a repartir, mayor que cero
            shop_name: Tienda de quien paga; el empleado debe pertenecer a ella
            approved_by: Usuario que aprueba el pago

        Returns:
            dict: paid_amount, paid_salaries y unallocated_amount

        Raises:
            LedgerValidationError: si el monto no es positivo
            NotFoundError: si el empleado no existe
            PermissionDeniedError: si el empleado es de otra tienda
        """
        if amount is None or amount <= 0:
            raise LedgerValidationError(
                "Payment amount must be greater than zero")
        employee = self._get_employee(employee_id, shop_name)

        with employee_lock(employee.id):
            unpaid = self.session.exec(
                select(Salary).where(
                    Salary.employee_id == employee.id,
                    Salary.is_paid == False
                ).order_by(
                    Salary.created_at, Salary.work_date, Salary.id
                ).with_for_update().execution_options(populate_existing=True)
            ).all()

            now = datetime.utcnow()
            remaining = amount
            paid_salaries: List[Salary] = []
            for entry in unpaid:
                if remaining <= 0:
                    break
                if entry.amount <= remaining:
                    entry.is_paid = True
                    entry.paid_date = now
                    entry.approved_by = approved_by
                    entry.approved_date = now
                    remaining -= entry.amount
                    self.session.add(entry)
                    paid_salaries.append(entry)
                    continue

                # Pago parcial: solo se divide una entrada por llamada
                split = Salary(
                    employee_id=entry.employee_id,
                    amount=remaining,
                    salary_type=entry.salary_type,
                    is_paid=True,
                    paid_date=now,
                    approved_by=approved_by,
                    approved_date=now,
                    description=f"Partial payment: {entry.description or ''}".rstrip(),
                    work_date=entry.work_date
                )
                split.assign_work(entry.work_ref)
                entry.amount -= remaining
                remaining = 0
                self.session.add(entry)
                self.session.add(split)
                paid_salaries.append(split)

            allocated = amount - remaining
            self.session.flush()
            recompute_user_totals(self.session, employee)
            if allocated > 0:
                notify_salary_paid(self.session, employee, allocated)
            self.session.commit()

        for salary in paid_salaries:
            self.session.refresh(salary)
        logger.info("Paid %s of %s to employee %s (%d entries)",
                    allocated, amount, employee_id, len(paid_salaries))
        return {
            "paid_amount": allocated,
            "paid_salaries": paid_salaries,
            "unallocated_amount": remaining
        }

    def pay_one(self, salary_id: UUID, shop_name: Optional[str] = None,
                approved_by: Optional[UUID] = None) -> Salary:
        """Marca pagada una entrada concreta, sin respetar el orden de antigüedad."""
        salary = self.session.get(Salary, salary_id)
        if not salary:
            raise NotFoundError("Salary record not found")
        employee = self._get_employee(salary.employee_id, shop_name)

        with employee_lock(employee.id):
            self.session.refresh(salary, with_for_update=True)
            if salary.is_paid:
                raise LedgerValidationError("Salary already paid")
            now = datetime.utcnow()
            salary.is_paid = True
            salary.paid_date = now
            salary.approved_by = approved_by
            salary.approved_date = now
            self.session.add(salary)
            self.session.flush()
            recompute_user_totals(self.session, employee)
            notify_salary_paid(self.session, employee, salary.amount)
            self.session.commit()
        self.session.refresh(salary)
        return salary

    def list_salaries(self, actor: Actor) -> List[Salary]:
        query = select(Salary)
        if actor.is_owner:
            query = query.join(User, User.id == Salary.employee_id).where(
                User.shop_name == actor.shop_name)
        else:
            query = query.where(Salary.employee_id == actor.user_id)
        return self.session.exec(
            query.order_by(Salary.created_at.desc())).all()

    def employee_summary(self, employee_id: UUID, actor: Actor) -> dict:
        employee = self._get_employee(employee_id)
        if employee.shop_name != actor.shop_name:
            raise PermissionDeniedError("Access denied")
        salaries = self.session.exec(
            select(Salary).where(Salary.employee_id == employee.id).order_by(
                Salary.created_at.desc())
        ).all()
        total_earnings = sum(s.amount for s in salaries)
        paid_salary = sum(s.amount for s in salaries if s.is_paid)
        return {
            "total_earnings": total_earnings,
            "paid_salary": paid_salary,
            "remaining_salary": total_earnings - paid_salary,
            "salaries": salaries
        }
