import logging
from sqlmodel import Session
from shopledger.core.config import settings
from shopledger.models.user import User
from shopledger.models.user_notification import UserNotification, NotificationType

logger = logging.getLogger(__name__)


def notify_salary_paid(session: Session, employee: User, amount: int) -> UserNotification:
    """
    Agrega al empleado la notificación de salario pagado.

    No hace commit: la notificación se guarda junto con la liquidación.

    Args:
        session: Sesión de base de datos
        employee: Empleado que recibe el pago
        amount: Monto efectivamente asignado
    """
    message = (
        f"Salary of {settings.CURRENCY_SYMBOL}{amount} has been paid. "
        "Please collect it."
    )
    notification = UserNotification(
        user_id=employee.id,
        message=message,
        type=NotificationType.SALARY,
    )
    session.add(notification)
    logger.info("Salary notification queued for %s: %s",
                employee.id, message)
    return notification
