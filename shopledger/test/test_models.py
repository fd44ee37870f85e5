import pytest
from uuid import uuid4
from sqlalchemy.exc import IntegrityError
from pydantic import ValidationError

from shopledger.models import Salary, SalaryType, WorkReference, WorkKind, ClientCreate
from shopledger.test.factories import make_user, make_order, make_project


def test_order_remaining_payment_follows_every_write(session, shop_client):
    order = make_order(session, shop_client, total_amount=50000, received_payment=10000)
    assert order.remaining_payment == 40000

    order.received_payment = 35000
    session.add(order)
    session.commit()
    session.refresh(order)
    assert order.remaining_payment == 15000

    order.total_amount = 30000
    session.add(order)
    session.commit()
    session.refresh(order)
    assert order.remaining_payment == -5000


def test_project_commission_recomputed_on_update(session, shop_client):
    editor = make_user(session, first_name="Meera")
    project = make_project(session, shop_client, editor, total_amount=25000,
                           editing_value=20000, commission_percentage=10)
    project.pendrive_included = True
    project.pendrive_value = 5000
    session.add(project)
    session.commit()
    session.refresh(project)
    # El pendrive no entra en la base de la comisión
    assert project.commission_amount == 2000
    assert project.remaining_payment == 25000

    project.editing_value = 30000
    project.commission_percentage = 12.5
    project.received_payment = 5000
    session.add(project)
    session.commit()
    session.refresh(project)
    assert project.commission_amount == 3750
    assert project.remaining_payment == 20000


def test_project_with_zero_commission(session, shop_client):
    editor = make_user(session, first_name="Meera")
    project = make_project(session, shop_client, editor, total_amount=8000,
                           editing_value=0, commission_percentage=20)
    assert project.commission_amount == 0


def test_salary_work_reference(session, shop_client):
    worker = make_user(session)
    order = make_order(session, shop_client, total_amount=1000)

    salary = Salary(employee_id=worker.id, amount=100,
                    salary_type=SalaryType.ORDER_WORK)
    assert salary.work_ref is None

    salary.assign_work(WorkReference.order(order.id))
    assert salary.related_order_id == order.id
    assert salary.related_project_id is None
    assert salary.work_ref == WorkReference(kind=WorkKind.ORDER, id=order.id)

    project_id = uuid4()
    salary.assign_work(WorkReference.project(project_id))
    assert salary.related_order_id is None
    assert salary.work_ref.kind == WorkKind.PROJECT


def test_salary_rejects_two_work_references(session, shop_client):
    worker = make_user(session)
    editor = make_user(session, first_name="Meera")
    order = make_order(session, shop_client, total_amount=1000)
    project = make_project(session, shop_client, editor, total_amount=1000)

    salary = Salary(
        employee_id=worker.id,
        amount=100,
        salary_type=SalaryType.BONUS,
        related_order_id=order.id,
        related_project_id=project.id
    )
    session.add(salary)
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()


def test_client_phone_is_validated():
    client = ClientCreate(name="Kapoor Events", phone="+91 98765 43210")
    assert client.phone == "+91 98765 43210"

    with pytest.raises(ValidationError):
        ClientCreate(name="Kapoor Events", phone="not-a-phone")
