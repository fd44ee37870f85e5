import logging
from sqlmodel import Session, select
from sqlalchemy import func

from shopledger.models.user import User, Actor
from shopledger.models.client import Client
from shopledger.models.order import WorkStatus
from shopledger.models.salary import Salary
from shopledger.services.order_service import OrderService
from shopledger.services.editing_service import EditingService

logger = logging.getLogger(__name__)


def _split_by_status(works) -> tuple:
    completed = sum(1 for work in works if work.status == WorkStatus.COMPLETED)
    return len(works) - completed, completed


class DashboardService:
    def __init__(self, session: Session):
        self.session = session

    def stats(self, actor: Actor) -> dict:
        """
        Cifras del panel principal.

        El dueño recibe las cifras del negocio (órdenes, cobros a clientes y
        salarios pendientes de la tienda). El resto de roles recibe las
        suyas: trabajos asignados y salario a partir de sus entradas.
        Los campos que no aplican al rol quedan en cero.
        """
        stats = {
            "remaining_orders": 0,
            "done_orders": 0,
            "total_payment": 0,
            "received_payment": 0,
            "active_orders": 0,
            "completed_orders": 0,
            "active_projects": 0,
            "completed_projects": 0,
            "total_earnings": 0,
            "paid_salary": 0,
            "remaining_salary": 0,
            "remaining_client_payments": 0,
            "worker_payments": 0,
            "user_role": actor.role
        }
        orders = OrderService(self.session).list_orders(actor)
        projects = EditingService(self.session).list_projects(actor)
        active_projects, completed_projects = _split_by_status(projects)
        stats["active_projects"] = active_projects
        stats["completed_projects"] = completed_projects

        if actor.is_owner:
            remaining, done = _split_by_status(orders)
            stats["remaining_orders"] = remaining
            stats["done_orders"] = done
            stats["total_payment"] = sum(o.total_amount or 0 for o in orders)
            stats["received_payment"] = sum(o.received_payment or 0 for o in orders)

            clients = self.session.exec(
                select(Client).where(Client.shop_name == actor.shop_name)).all()
            stats["remaining_client_payments"] = sum(
                max(0, (c.total_payments_due or 0) - (c.received_payments or 0))
                for c in clients)

            stats["worker_payments"] = int(self.session.exec(
                select(func.coalesce(func.sum(Salary.amount), 0)).join(
                    User, User.id == Salary.employee_id
                ).where(
                    User.shop_name == actor.shop_name,
                    Salary.is_paid == False
                )
            ).one())
        else:
            active, completed = _split_by_status(orders)
            stats["active_orders"] = active
            stats["completed_orders"] = completed

            total = self.session.exec(
                select(func.coalesce(func.sum(Salary.amount), 0)).where(
                    Salary.employee_id == actor.user_id)
            ).one()
            paid = self.session.exec(
                select(func.coalesce(func.sum(Salary.amount), 0)).where(
                    Salary.employee_id == actor.user_id,
                    Salary.is_paid == True
                )
            ).one()
            stats["total_earnings"] = int(total)
            stats["paid_salary"] = int(paid)
            stats["remaining_salary"] = int(total) - int(paid)

        logger.debug("Dashboard stats for %s in shop %s", actor.user_id, actor.shop_name)
        return stats
