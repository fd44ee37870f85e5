from decimal import Decimal, ROUND_HALF_UP
from shopledger.core.exceptions import LedgerValidationError

# Estados de pago del cliente
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PENDING = "pending"


def commission_amount(editing_value, commission_percentage) -> int:
    """
    Comisión del editor sobre el valor de edición (el pendrive no cuenta).

    Redondea a la unidad con ROUND_HALF_UP, igual que el resto de repartos
    monetarios del sistema.
    """
    value = Decimal(str(editing_value or 0))
    percentage = Decimal(str(commission_percentage or 0))
    return int((value * percentage / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def remaining_payment(total_amount, received_payment) -> int:
    # Sin recorte: un sobrepago deja el saldo en negativo
    return (total_amount or 0) - (received_payment or 0)


def pending_amount(total_due, total_received) -> int:
    return max(0, (total_due or 0) - (total_received or 0))


def payment_status(total_due, total_received) -> str:
    total_due = total_due or 0
    total_received = total_received or 0
    if total_due == 0:
        return PAYMENT_STATUS_PENDING
    if total_received >= total_due:
        return PAYMENT_STATUS_PAID
    if total_received > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_PENDING


def validate_received_amount(received_amount, total_amount) -> int:
    """
    Valida un monto recibido para una orden o proyecto.

    Raises:
        LedgerValidationError: si es negativo o supera el total
    """
    if received_amount is None:
        raise LedgerValidationError("Received amount is required")
    if received_amount < 0:
        raise LedgerValidationError("Invalid payment amount")
    if received_amount > total_amount:
        raise LedgerValidationError(
            "Payment amount cannot exceed total amount")
    return received_amount
