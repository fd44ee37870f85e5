import logging
from sqlmodel import Session, select, or_
from uuid import UUID
from datetime import datetime
from typing import List, Optional

from shopledger.core.exceptions import NotFoundError, PermissionDeniedError
from shopledger.core.locks import client_lock, employee_locks
from shopledger.models.user import User, Actor
from shopledger.models.client import Client
from shopledger.models.order import (
    Order, OrderCreate, OrderProduct, OrderWorker, OrderTransporter, WorkStatus)
from shopledger.models.payment import Payment
from shopledger.models.salary import WorkReference
from shopledger.services.client_payment_service import ClientPaymentService
from shopledger.services.salary_accrual_service import SalaryAccrualService
from shopledger.utils.ledger_math import validate_received_amount

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, session: Session):
        self.session = session

    def _get_client(self, client_id: UUID, shop_name: str) -> Client:
        client = self.session.get(Client, client_id)
        if not client or client.shop_name != shop_name:
            raise NotFoundError("Client not found")
        return client

    def _check_assignee(self, user_id: UUID, shop_name: str, label: str) -> None:
        user = self.session.get(User, user_id)
        if not user or user.shop_name != shop_name:
            raise NotFoundError(f"{label} {user_id} not found")

    def get_order(self, order_id: UUID, shop_name: str) -> Order:
        order = self.session.get(Order, order_id)
        if not order or order.shop_name != shop_name:
            raise NotFoundError("Order not found")
        return order

    def create_order(self, data: OrderCreate, actor: Actor) -> dict:
        """
        Crea la orden y después genera los salarios de sus asignaciones.

        Si la generación de salarios falla la orden queda creada igualmente y
        el resultado lleva salary_accrual_failed=True; POST /salary/sync lo
        repara.

        Returns:
            dict: order y salary_accrual_failed
        """
        client = self._get_client(data.client_id, actor.shop_name)
        validate_received_amount(data.received_payment, data.total_amount)
        for assignment in data.workers:
            self._check_assignee(assignment.worker, actor.shop_name, "Worker")
        for assignment in data.transporters:
            self._check_assignee(
                assignment.transporter, actor.shop_name, "Transporter")

        order = Order(
            client_id=client.id,
            order_name=data.order_name,
            venue_place=data.venue_place,
            description=data.description or "",
            total_amount=data.total_amount,
            received_payment=data.received_payment or 0,
            order_date=data.order_date or datetime.utcnow(),
            created_by=actor.user_id,
            shop_name=actor.shop_name
        )
        # Sin productos, la orden misma es el único producto
        products = data.products or []
        if not products:
            order.products.append(OrderProduct(
                name=data.order_name, quantity=1, price=data.total_amount))
        for position, product in enumerate(products):
            order.products.append(OrderProduct(
                position=position,
                name=product.name,
                quantity=product.quantity,
                price=product.price,
                size_info=product.size_info
            ))
        for position, assignment in enumerate(data.workers):
            order.workers.append(OrderWorker(
                position=position, worker_id=assignment.worker, payment=assignment.payment))
        for position, assignment in enumerate(data.transporters):
            order.transporters.append(OrderTransporter(
                position=position, transporter_id=assignment.transporter, payment=assignment.payment))

        with client_lock(client.id):
            self.session.add(order)
            client.lifetime_orders = (client.lifetime_orders or 0) + 1
            client.lifetime_value = (client.lifetime_value or 0) + data.total_amount
            self.session.add(client)
            self.session.commit()
            ClientPaymentService(self.session).recompute_client_totals(client.id)
        self.session.refresh(order)
        logger.info("Order %s created for client %s", order.id, client.id)

        salary_accrual_failed = False
        try:
            SalaryAccrualService(self.session).accrue_for_order(order)
        except Exception:
            self.session.rollback()
            salary_accrual_failed = True
            logger.exception(
                "Salary accrual failed for order %s; run salary sync to recover", order.id)
        self.session.refresh(order)

        return {"order": order, "salary_accrual_failed": salary_accrual_failed}

    def update_status(self, order_id: UUID, status: WorkStatus, shop_name: str) -> Order:
        order = self.get_order(order_id, shop_name)
        order.status = status
        if status == WorkStatus.COMPLETED:
            order.completion_date = datetime.utcnow()
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    def update_payment(self, order_id: UUID, received_payment: Optional[int], shop_name: str) -> Order:
        order = self.get_order(order_id, shop_name)
        validate_received_amount(received_payment, order.total_amount)
        with client_lock(order.client_id):
            order.received_payment = received_payment
            self.session.add(order)
            self.session.commit()
            ClientPaymentService(self.session).recompute_client_totals(
                order.client_id)
        self.session.refresh(order)
        return order

    def delete_order(self, order_id: UUID, actor: Actor) -> None:
        """
        Borra la orden, sus salarios y sus pagos, y recalcula el cliente.

        Raises:
            ConflictError: si algún salario de la orden ya está pagado
        """
        if not actor.is_owner:
            raise PermissionDeniedError("Only owners can delete orders")
        order = self.get_order(order_id, actor.shop_name)
        client_id = order.client_id

        accrual = SalaryAccrualService(self.session)
        employees = accrual.employees_for(WorkReference.order(order.id))

        with client_lock(client_id), employee_locks(employees):
            accrual.reverse_for_order(order)
            payments = self.session.exec(
                select(Payment).where(Payment.order_id == order.id)).all()
            for payment in payments:
                self.session.delete(payment)

            client = self.session.get(Client, client_id)
            if client:
                client.lifetime_orders = max(0, (client.lifetime_orders or 0) - 1)
                client.lifetime_value = max(
                    0, (client.lifetime_value or 0) - order.total_amount)
                self.session.add(client)
            self.session.delete(order)
            self.session.flush()
            if client:
                ClientPaymentService(self.session).recompute_client_totals(
                    client_id, commit=False)
            self.session.commit()
        logger.info("Order %s deleted", order_id)

    def list_orders(self, actor: Actor) -> List[Order]:
        """
        Dueños: todas las órdenes de la tienda. Resto: solo las órdenes en las
        que están asignados como trabajador o transportista.
        """
        query = select(Order).where(Order.shop_name == actor.shop_name)
        if not actor.is_owner:
            as_worker = select(OrderWorker.order_id).where(
                OrderWorker.worker_id == actor.user_id)
            as_transporter = select(OrderTransporter.order_id).where(
                OrderTransporter.transporter_id == actor.user_id)
            query = query.where(or_(
                Order.id.in_(as_worker),
                Order.id.in_(as_transporter)
            ))
        return self.session.exec(query.order_by(Order.created_at.desc())).all()
