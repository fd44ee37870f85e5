"""Constructores de datos para los tests; insertan directamente con la sesión."""
from datetime import datetime, timedelta
from uuid import uuid4
from sqlmodel import Session

from shopledger.models import (
    User, UserRole, Actor, Client, Order, OrderWorker, OrderTransporter,
    EditingProject, Salary, SalaryType, WorkReference)
from shopledger.services.auth_service import AuthService

SHOP = "Lights & Lenses"
OTHER_SHOP = "Other Shop"


def make_user(session: Session, role: UserRole = UserRole.WORKER, shop_name: str = SHOP,
              first_name: str = "Ravi", email: str = None) -> User:
    user = User(
        first_name=first_name,
        last_name="Kumar",
        email=email or f"{first_name.lower()}.{uuid4().hex[:8]}@example.com",
        role=role,
        shop_name=shop_name
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, role=user.role, shop_name=user.shop_name)


def auth_headers(session: Session, user: User) -> dict:
    token = AuthService(session).create_access_token(user.id)
    return {"Authorization": f"Bearer {token}"}


def make_client(session: Session, shop_name: str = SHOP, name: str = "Sharma Weddings") -> Client:
    client = Client(name=name, phone="+919876543210", shop_name=shop_name)
    session.add(client)
    session.commit()
    session.refresh(client)
    return client


def make_order(session: Session, client: Client, total_amount: int, received_payment: int = 0,
               workers=(), transporters=(), created_at: datetime = None, name: str = "Sangeet night") -> Order:
    """Inserta una orden directamente, sin pasar por OrderService (no genera salarios)."""
    order = Order(
        client_id=client.id,
        order_name=name,
        venue_place="Jaipur",
        total_amount=total_amount,
        received_payment=received_payment,
        shop_name=client.shop_name,
        created_at=created_at or datetime.utcnow()
    )
    for position, (worker, payment) in enumerate(workers):
        order.workers.append(OrderWorker(
            position=position, worker_id=worker.id, payment=payment))
    for position, (transporter, payment) in enumerate(transporters):
        order.transporters.append(OrderTransporter(
            position=position, transporter_id=transporter.id, payment=payment))
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def make_project(session: Session, client: Client, editor: User, total_amount: int,
                 editing_value: int = None, commission_percentage: float = 10,
                 received_payment: int = 0, created_at: datetime = None,
                 name: str = "Wedding highlights") -> EditingProject:
    project = EditingProject(
        client_id=client.id,
        editor_id=editor.id,
        project_name=name,
        editing_value=editing_value if editing_value is not None else total_amount,
        commission_percentage=commission_percentage,
        total_amount=total_amount,
        received_payment=received_payment,
        end_date=datetime.utcnow() + timedelta(days=14),
        shop_name=client.shop_name,
        created_at=created_at or datetime.utcnow()
    )
    session.add(project)
    session.commit()
    session.refresh(project)
    return project


def make_salary(session: Session, employee: User, amount: int, created_at: datetime,
                salary_type: SalaryType = SalaryType.BONUS, description: str = None,
                is_paid: bool = False, work_ref: WorkReference = None) -> Salary:
    salary = Salary(
        employee_id=employee.id,
        amount=amount,
        salary_type=salary_type,
        description=description,
        is_paid=is_paid,
        work_date=created_at,
        created_at=created_at
    )
    salary.assign_work(work_ref)
    session.add(salary)
    session.commit()
    session.refresh(salary)
    return salary
