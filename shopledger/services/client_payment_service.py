import logging
from sqlmodel import Session, select
from uuid import UUID
from datetime import datetime
from typing import List, Optional, Union

from shopledger.core.exceptions import (
    LedgerValidationError, NotFoundError, PermissionDeniedError)
from shopledger.core.locks import client_lock
from shopledger.models.user import Actor
from shopledger.models.client import (
    Client, ClientPaymentHistory, ClientPaymentStatus, QuickPaymentAction,
    WorkPaymentInstruction)
from shopledger.models.order import Order
from shopledger.models.editing_project import EditingProject
from shopledger.models.salary import WorkKind
from shopledger.utils.ledger_math import (
    pending_amount, payment_status, validate_received_amount)

logger = logging.getLogger(__name__)


def _parse_work_type(work_type: Optional[str]) -> WorkKind:
    try:
        return WorkKind(work_type)
    except ValueError:
        raise LedgerValidationError(
            'Invalid work type. Must be "order" or "project"')


def _parse_work_id(work_id: Union[UUID, str]) -> UUID:
    if isinstance(work_id, UUID):
        return work_id
    try:
        return UUID(str(work_id))
    except ValueError:
        raise LedgerValidationError("Invalid work id")


class ClientPaymentService:
    """
    Agregados de cobro del cliente.

    Los totales del cliente se recalculan siempre a partir de sus órdenes y
    proyectos; cualquier cambio en received_payment de un trabajo termina en
    recompute_client_totals.
    """

    def __init__(self, session: Session):
        self.session = session

    def _get_client(self, client_id: UUID, shop_name: Optional[str] = None) -> Client:
        client = self.session.get(Client, client_id)
        if not client:
            raise NotFoundError("Client not found")
        if shop_name is not None and client.shop_name != shop_name:
            raise PermissionDeniedError("Client does not belong to your shop")
        return client

    def _client_orders(self, client_id: UUID) -> List[Order]:
        return self.session.exec(
            select(Order).where(Order.client_id == client_id).order_by(
                Order.created_at, Order.id).with_for_update().execution_options(
                    populate_existing=True)
        ).all()

    def _client_projects(self, client_id: UUID) -> List[EditingProject]:
        return self.session.exec(
            select(EditingProject).where(EditingProject.client_id == client_id).order_by(
                EditingProject.created_at, EditingProject.id).with_for_update().execution_options(
                    populate_existing=True)
        ).all()

    def _get_work(self, client_id: UUID, work_id: UUID, kind: WorkKind):
        model = Order if kind == WorkKind.ORDER else EditingProject
        work = self.session.get(model, work_id)
        if not work or work.client_id != client_id:
            raise NotFoundError(
                "Order not found" if kind == WorkKind.ORDER else "Project not found")
        return work

    def recompute_client_totals(self, client_id: UUID, commit: bool = True) -> Client:
        """
        Recalcula total adeudado, recibido, pendiente y estado de pago del
        cliente sumando todas sus órdenes y proyectos de edición.
        """
        with client_lock(client_id):
            client = self._get_client(client_id)
            self.session.refresh(client, with_for_update=True)
            works = list(self._client_orders(client_id)) + \
                list(self._client_projects(client_id))
            total_due = sum(work.total_amount or 0 for work in works)
            total_received = sum(work.received_payment or 0 for work in works)

            client.total_payments_due = total_due
            client.received_payments = total_received
            client.pending_payments = pending_amount(total_due, total_received)
            client.payment_status = ClientPaymentStatus(
                payment_status(total_due, total_received))
            self.session.add(client)
            if commit:
                self.session.commit()
                self.session.refresh(client)
            else:
                self.session.flush()
        return client

    def update_work_payment(
        self,
        client_id: UUID,
        work_id: UUID,
        work_type: str,
        received_amount: Optional[int],
        shop_name: Optional[str] = None
    ):
        """Fija el monto recibido de una orden o proyecto y recalcula el cliente."""
        kind = _parse_work_type(work_type)
        self._get_client(client_id, shop_name)
        with client_lock(client_id):
            work = self._get_work(client_id, work_id, kind)
            validate_received_amount(received_amount, work.total_amount)
            work.received_payment = received_amount
            self.session.add(work)
            self.session.commit()
            client = self.recompute_client_totals(client_id)
        self.session.refresh(work)
        return work, client

    def bulk_payment(
        self,
        client_id: UUID,
        payments: List[WorkPaymentInstruction],
        shop_name: Optional[str] = None
    ) -> dict:
        """
        Aplica una lista de pagos independientes.

        Cada instrucción se valida y se guarda por separado; los fallos se
        devuelven en results sin deshacer las que ya se aplicaron.
        """
        if not payments:
            raise LedgerValidationError("No payments provided")
        self._get_client(client_id, shop_name)

        results = []
        total_updated = 0
        with client_lock(client_id):
            for instruction in payments:
                work_id = instruction.work_id
                try:
                    if not work_id or instruction.work_type is None or instruction.amount is None:
                        raise LedgerValidationError("Missing required fields")
                    if instruction.amount < 0:
                        raise LedgerValidationError("Invalid amount")
                    work_id = _parse_work_id(work_id)
                    kind = _parse_work_type(instruction.work_type)
                    work = self._get_work(client_id, work_id, kind)
                    if instruction.amount > work.total_amount:
                        raise LedgerValidationError("Amount exceeds total")
                    work.received_payment = instruction.amount
                    self.session.add(work)
                    self.session.commit()
                except Exception as e:
                    self.session.rollback()
                    if not isinstance(e, (LedgerValidationError, NotFoundError)):
                        logger.exception(
                            "Bulk payment failed for work %s", work_id)
                    results.append({"work_id": work_id, "error": str(e)})
                    continue
                results.append(
                    {"work_id": work_id, "success": True, "amount": instruction.amount})
                total_updated += 1

            if total_updated > 0:
                self.recompute_client_totals(client_id)

        logger.info("Bulk payment for client %s: %d of %d updated",
                    client_id, total_updated, len(payments))
        return {"results": results, "total_updated": total_updated}

    def quick_payment(
        self,
        client_id: UUID,
        action: str,
        amount: Optional[int] = None,
        shop_name: Optional[str] = None
    ) -> dict:
        """
        Acciones rápidas sobre todos los trabajos del cliente.

        - mark-all-paid: todo trabajo con saldo queda pagado por completo
        - clear-payments: todo trabajo con algo recibido vuelve a cero
        - add-payment: reparte `amount` entre los trabajos con saldo,
          primero las órdenes y después los proyectos, por orden de creación
        """
        try:
            action = QuickPaymentAction(action)
        except ValueError:
            raise LedgerValidationError(f"Unknown quick payment action: {action}")
        if action == QuickPaymentAction.ADD_PAYMENT and (amount is None or amount <= 0):
            raise LedgerValidationError("Invalid payment amount")
        self._get_client(client_id, shop_name)

        updated_count = 0
        with client_lock(client_id):
            works = list(self._client_orders(client_id)) + \
                list(self._client_projects(client_id))

            if action == QuickPaymentAction.MARK_ALL_PAID:
                for work in works:
                    if work.received_payment < work.total_amount:
                        work.received_payment = work.total_amount
                        self.session.add(work)
                        updated_count += 1

            elif action == QuickPaymentAction.CLEAR_PAYMENTS:
                for work in works:
                    if work.received_payment > 0:
                        work.received_payment = 0
                        self.session.add(work)
                        updated_count += 1

            else:
                remaining = amount
                for work in works:
                    if remaining <= 0:
                        break
                    unpaid = work.total_amount - (work.received_payment or 0)
                    if unpaid <= 0:
                        continue
                    allocated = min(unpaid, remaining)
                    work.received_payment = (work.received_payment or 0) + allocated
                    remaining -= allocated
                    self.session.add(work)
                    updated_count += 1

            self.session.flush()
            client = self.recompute_client_totals(client_id)

        logger.info("Quick payment '%s' on client %s updated %d items",
                    action.value, client_id, updated_count)
        return {
            "updated_count": updated_count,
            "total_due": client.total_payments_due,
            "total_received": client.received_payments,
            "pending_payments": client.pending_payments
        }

    def record_manual_adjustment(
        self,
        client_id: UUID,
        received_amount: int,
        notes: Optional[str],
        actor: Actor
    ) -> Client:
        """
        El dueño fija directamente el total recibido del cliente.

        El ajuste no toca órdenes ni proyectos, así que el siguiente
        recálculo completo lo sustituye.
        """
        if not actor.is_owner:
            raise PermissionDeniedError("Only owners can update client payments")
        client = self._get_client(client_id, actor.shop_name)

        with client_lock(client_id):
            self.session.refresh(client, with_for_update=True)
            total_due = client.total_payments_due or 0
            if received_amount is None or received_amount < 0:
                raise LedgerValidationError("Received amount cannot be negative")
            if received_amount > total_due:
                raise LedgerValidationError(
                    "Received amount cannot exceed total due amount")

            client.received_payments = received_amount
            client.pending_payments = pending_amount(total_due, received_amount)
            client.payment_status = ClientPaymentStatus(
                payment_status(total_due, received_amount))
            if notes:
                client.payment_history.append(ClientPaymentHistory(
                    client_id=client.id,
                    date=datetime.utcnow(),
                    amount=received_amount,
                    notes=notes,
                    updated_by=str(actor.user_id)
                ))
            self.session.add(client)
            self.session.commit()
        self.session.refresh(client)
        return client

    def work_history(self, client_id: UUID, shop_name: Optional[str] = None) -> dict:
        client = self._get_client(client_id, shop_name)
        orders = self.session.exec(
            select(Order).where(Order.client_id == client_id)).all()
        projects = self.session.exec(
            select(EditingProject).where(EditingProject.client_id == client_id)).all()

        history = []
        for order in orders:
            history.append({
                "id": order.id,
                "type": WorkKind.ORDER.value,
                "name": order.order_name,
                "total_amount": order.total_amount,
                "received_payment": order.received_payment,
                "remaining_payment": order.remaining_payment,
                "status": order.status,
                "date": order.order_date or order.created_at,
                "is_paid": order.received_payment >= order.total_amount
            })
        for project in projects:
            history.append({
                "id": project.id,
                "type": WorkKind.PROJECT.value,
                "name": project.project_name,
                "total_amount": project.total_amount,
                "received_payment": project.received_payment,
                "remaining_payment": project.remaining_payment,
                "status": project.status,
                "date": project.start_date or project.created_at,
                "is_paid": project.received_payment >= project.total_amount
            })
        history.sort(key=lambda item: item["date"], reverse=True)

        return {
            "client": {
                "id": client.id,
                "name": client.name,
                "total_payments_due": client.total_payments_due,
                "received_payments": client.received_payments,
                "pending_payments": client.pending_payments,
                "payment_status": client.payment_status
            },
            "work_history": history
        }
