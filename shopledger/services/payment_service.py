import logging
from sqlmodel import Session, select
from uuid import UUID
from datetime import datetime
from typing import List, Optional

from shopledger.core.exceptions import (
    LedgerValidationError, NotFoundError, PermissionDeniedError)
from shopledger.core.locks import client_lock
from shopledger.models.user import Actor
from shopledger.models.client import Client, ClientPaymentStatus
from shopledger.models.order import Order
from shopledger.models.payment import Payment, PaymentCreate
from shopledger.utils.ledger_math import pending_amount, payment_status

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Registro de pagos recibidos contra una orden.

    Crear o borrar un pago ajusta la orden y el cliente de forma incremental
    en lugar de recalcular todo el cliente; el resultado coincide con
    ClientPaymentService.recompute_client_totals mientras los cobros pasen
    por aquí.
    """

    def __init__(self, session: Session):
        self.session = session

    def _apply_to_client(self, client: Client, delta: int) -> None:
        client.received_payments = max(0, (client.received_payments or 0) + delta)
        client.pending_payments = pending_amount(
            client.total_payments_due, client.received_payments)
        client.payment_status = ClientPaymentStatus(
            payment_status(client.total_payments_due, client.received_payments))
        self.session.add(client)

    def create_payment(self, data: PaymentCreate, actor: Actor) -> Payment:
        if data.amount is None or data.amount <= 0:
            raise LedgerValidationError("Payment amount must be greater than zero")

        order = self.session.get(Order, data.order_id)
        if not order:
            raise NotFoundError("Order not found")
        client = self.session.get(Client, data.client_id)
        if not client:
            raise NotFoundError("Client not found")
        if order.client_id != client.id:
            raise LedgerValidationError("Order does not belong to this client")
        if client.shop_name != actor.shop_name:
            raise PermissionDeniedError("Client does not belong to your shop")

        with client_lock(client.id):
            self.session.refresh(order, with_for_update=True)
            self.session.refresh(client, with_for_update=True)
            if (order.received_payment or 0) + data.amount > order.total_amount:
                raise LedgerValidationError(
                    "Payment amount cannot exceed total amount")

            payment = Payment(
                order_id=order.id,
                client_id=client.id,
                amount=data.amount,
                payment_date=data.payment_date or datetime.utcnow(),
                payment_method=data.payment_method,
                received_by=actor.user_id,
                notes=data.notes,
                shop_name=client.shop_name
            )
            self.session.add(payment)

            order.received_payment = (order.received_payment or 0) + data.amount
            self.session.add(order)
            self._apply_to_client(client, data.amount)
            self.session.commit()

        self.session.refresh(payment)
        logger.info("Payment %s of %s recorded for order %s",
                    payment.id, payment.amount, order.id)
        return payment

    def delete_payment(self, payment_id: UUID, actor: Actor) -> None:
        payment = self.session.get(Payment, payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        if payment.shop_name != actor.shop_name:
            raise PermissionDeniedError("Payment does not belong to your shop")

        with client_lock(payment.client_id):
            order = self.session.get(Order, payment.order_id, with_for_update=True)
            if order:
                order.received_payment = max(
                    0, (order.received_payment or 0) - payment.amount)
                self.session.add(order)
            client = self.session.get(Client, payment.client_id, with_for_update=True)
            if client:
                self._apply_to_client(client, -payment.amount)
            self.session.delete(payment)
            self.session.commit()
        logger.info("Payment %s deleted", payment_id)

    def list_for_order(self, order_id: UUID, shop_name: Optional[str] = None) -> List[Payment]:
        query = select(Payment).where(Payment.order_id == order_id)
        if shop_name is not None:
            query = query.where(Payment.shop_name == shop_name)
        return self.session.exec(query.order_by(Payment.payment_date.desc())).all()

    def list_for_client(self, client_id: UUID, shop_name: Optional[str] = None) -> List[Payment]:
        query = select(Payment).where(Payment.client_id == client_id)
        if shop_name is not None:
            query = query.where(Payment.shop_name == shop_name)
        return self.session.exec(query.order_by(Payment.payment_date.desc())).all()
