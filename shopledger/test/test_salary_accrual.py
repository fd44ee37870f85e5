import pytest
from datetime import datetime
from uuid import uuid4
from sqlmodel import select

from shopledger.core.exceptions import LedgerError
from shopledger.models import Salary, SalaryCreate, SalaryType, UserRole, WorkReference, OrderWorker
from shopledger.services.salary_accrual_service import SalaryAccrualService, recompute_user_totals
from shopledger.test.factories import (
    make_user, make_client, make_order, make_project, make_salary, actor_for, OTHER_SHOP)


def _entries(session, employee):
    return session.exec(
        select(Salary).where(Salary.employee_id == employee.id).order_by(Salary.amount)
    ).all()


def test_accrue_for_order_creates_unpaid_entries(session, shop_client):
    worker = make_user(session, first_name="Ravi")
    helper = make_user(session, first_name="Arjun")
    driver = make_user(session, UserRole.TRANSPORTER, first_name="Sunil")
    order = make_order(
        session, shop_client, total_amount=50000,
        workers=[(worker, 5000), (helper, 0)],
        transporters=[(driver, 1500)]
    )

    created = SalaryAccrualService(session).accrue_for_order(order)

    assert created == 2
    [worker_entry] = _entries(session, worker)
    assert worker_entry.amount == 5000
    assert worker_entry.salary_type == SalaryType.ORDER_WORK
    assert worker_entry.related_order_id == order.id
    assert worker_entry.is_paid is False
    assert worker_entry.work_date == order.order_date
    assert worker_entry.description == "Order work: Sangeet night"

    [driver_entry] = _entries(session, driver)
    assert driver_entry.salary_type == SalaryType.TRANSPORT_WORK
    assert driver_entry.description == "Transport work: Sangeet night"

    # Un pago cero no genera salario
    assert _entries(session, helper) == []

    session.refresh(worker)
    session.refresh(driver)
    assert (worker.total_earnings, worker.paid_salary, worker.remaining_salary) == (5000, 0, 5000)
    assert driver.remaining_salary == 1500


def test_accrue_for_order_is_idempotent(session, shop_client):
    worker = make_user(session)
    order = make_order(session, shop_client, total_amount=20000,
                       workers=[(worker, 3000)])
    service = SalaryAccrualService(session)

    assert service.accrue_for_order(order) == 1
    assert service.accrue_for_order(order) == 0

    assert len(_entries(session, worker)) == 1
    session.refresh(worker)
    assert worker.total_earnings == 3000


def test_same_worker_twice_in_one_order_gets_one_entry(session, shop_client):
    worker = make_user(session)
    order = make_order(session, shop_client, total_amount=20000,
                       workers=[(worker, 1000), (worker, 500)])

    SalaryAccrualService(session).accrue_for_order(order)

    [entry] = _entries(session, worker)
    assert entry.amount == 1500


def test_worker_and_transporter_roles_are_separate_entries(session, shop_client):
    both = make_user(session, UserRole.TRANSPORTER_WORKER)
    order = make_order(session, shop_client, total_amount=20000,
                       workers=[(both, 2000)], transporters=[(both, 700)])

    assert SalaryAccrualService(session).accrue_for_order(order) == 2
    session.refresh(both)
    assert both.total_earnings == 2700


def test_accrue_for_project_uses_commission(session, shop_client):
    editor = make_user(session, UserRole.EDITOR, first_name="Meera")
    project = make_project(session, shop_client, editor, total_amount=25000,
                           editing_value=20000, commission_percentage=15)

    assert SalaryAccrualService(session).accrue_for_project(project) == 1

    [entry] = _entries(session, editor)
    assert entry.amount == 3000
    assert entry.salary_type == SalaryType.EDITING_WORK
    assert entry.related_project_id == project.id
    assert entry.description == "Editing project: Wedding highlights"
    session.refresh(editor)
    assert editor.remaining_salary == 3000


def test_project_without_commission_accrues_nothing(session, shop_client):
    editor = make_user(session, UserRole.EDITOR)
    project = make_project(session, shop_client, editor, total_amount=5000,
                           editing_value=0)
    assert SalaryAccrualService(session).accrue_for_project(project) == 0


def test_reverse_for_order_restores_employee_totals(session, shop_client):
    worker = make_user(session)
    make_salary(session, worker, 400, datetime(2024, 1, 1))
    order = make_order(session, shop_client, total_amount=9000,
                       workers=[(worker, 2500)])
    service = SalaryAccrualService(session)
    service.accrue_for_order(order)
    session.refresh(worker)
    assert worker.total_earnings == 2900

    assert service.reverse_for_order(order) == 1
    session.commit()

    session.refresh(worker)
    assert worker.total_earnings == 400
    assert worker.remaining_salary == 400
    assert session.exec(
        select(Salary).where(Salary.related_order_id == order.id)).all() == []


def test_reverse_refuses_when_entries_are_paid(session, shop_client):
    worker = make_user(session)
    order = make_order(session, shop_client, total_amount=9000)
    make_salary(session, worker, 1000, datetime(2024, 1, 1), is_paid=True,
                salary_type=SalaryType.ORDER_WORK, work_ref=WorkReference.order(order.id))

    with pytest.raises(LedgerError) as exc_info:
        SalaryAccrualService(session).reverse_for_order(order)
    assert exc_info.value.status_code == 409


def test_sync_twice_creates_no_duplicates(session, shop_client):
    worker = make_user(session)
    editor = make_user(session, UserRole.EDITOR, first_name="Meera")
    make_order(session, shop_client, total_amount=10000, workers=[(worker, 1000)])
    make_order(session, shop_client, total_amount=12000, workers=[(worker, 2000)],
               name="Reception")
    make_project(session, shop_client, editor, total_amount=10000,
                 editing_value=10000, commission_percentage=10)
    service = SalaryAccrualService(session)

    first = service.sync(shop_client.shop_name)
    second = service.sync(shop_client.shop_name)

    assert first == {"synced_entries": 3, "orders_processed": 2,
                     "projects_processed": 1, "failed_items": 0,
                     "skipped_assignments": 0}
    assert second["synced_entries"] == 0
    assert len(session.exec(select(Salary)).all()) == 3
    session.refresh(worker)
    assert worker.total_earnings == 3000


def test_sync_recomputes_drifted_totals(session, shop_client):
    worker = make_user(session)
    make_salary(session, worker, 1000, datetime(2024, 1, 1), is_paid=True)
    make_salary(session, worker, 2500, datetime(2024, 1, 2))
    worker.total_earnings = 99999
    worker.paid_salary = 5
    worker.remaining_salary = 1
    session.add(worker)
    session.commit()

    SalaryAccrualService(session).sync(worker.shop_name)

    session.refresh(worker)
    assert worker.total_earnings == 3500
    assert worker.paid_salary == 1000
    assert worker.remaining_salary == 2500


def test_sync_skips_only_the_assignment_of_a_missing_employee(session, shop_client):
    worker = make_user(session)
    order = make_order(session, shop_client, total_amount=7000, workers=[(worker, 1200)])
    # Asignación a un empleado que ya no existe, en la misma orden
    session.add(OrderWorker(order_id=order.id, position=1, worker_id=uuid4(), payment=800))
    session.commit()

    result = SalaryAccrualService(session).sync(shop_client.shop_name)

    assert result == {"synced_entries": 1, "orders_processed": 1,
                      "projects_processed": 0, "failed_items": 0,
                      "skipped_assignments": 1}
    session.refresh(worker)
    assert worker.remaining_salary == 1200
    assert len(session.exec(
        select(Salary).where(Salary.related_order_id == order.id)).all()) == 1


def test_sync_continues_after_a_failing_order(session, shop_client, monkeypatch):
    worker = make_user(session)
    make_order(session, shop_client, total_amount=5000, name="Broken",
               workers=[(worker, 800)], created_at=datetime(2024, 1, 1))
    make_order(session, shop_client, total_amount=7000, workers=[(worker, 1200)],
               name="Reception", created_at=datetime(2024, 1, 2))
    service = SalaryAccrualService(session)
    original = SalaryAccrualService._order_plan

    def plan_or_fail(self, order):
        if order.order_name == "Broken":
            raise RuntimeError("corrupt assignment")
        return original(self, order)

    monkeypatch.setattr(SalaryAccrualService, "_order_plan", plan_or_fail)
    result = service.sync(shop_client.shop_name)

    assert result["failed_items"] == 1
    assert result["orders_processed"] == 1
    assert result["synced_entries"] == 1
    session.refresh(worker)
    assert worker.remaining_salary == 1200


def test_sync_only_touches_its_shop(session, shop_client):
    other_client = make_client(session, shop_name=OTHER_SHOP)
    other_worker = make_user(session, shop_name=OTHER_SHOP)
    make_order(session, other_client, total_amount=5000,
               workers=[(other_worker, 900)])

    result = SalaryAccrualService(session).sync(shop_client.shop_name)

    assert result["synced_entries"] == 0
    assert _entries(session, other_worker) == []


def test_recompute_user_totals(session):
    worker = make_user(session)
    make_salary(session, worker, 700, datetime(2024, 2, 1), is_paid=True)
    make_salary(session, worker, 300, datetime(2024, 2, 2))

    recompute_user_totals(session, worker)

    assert worker.total_earnings == 1000
    assert worker.paid_salary == 700
    assert worker.remaining_salary == 300


def test_create_manual_entry(session, owner, owner_actor):
    worker = make_user(session)
    entry = SalaryAccrualService(session).create_entry(
        SalaryCreate(employee_id=worker.id, amount=1500, description="Diwali bonus"),
        owner_actor
    )

    assert entry.salary_type == SalaryType.BONUS
    assert entry.approved_by == owner.id
    assert entry.work_ref is None
    session.refresh(worker)
    assert worker.remaining_salary == 1500


def test_create_manual_entry_permissions(session, owner_actor):
    worker = make_user(session)
    outsider = make_user(session, shop_name=OTHER_SHOP)
    service = SalaryAccrualService(session)

    with pytest.raises(LedgerError) as exc_info:
        service.create_entry(SalaryCreate(employee_id=worker.id, amount=100),
                             actor_for(worker))
    assert exc_info.value.status_code == 403

    with pytest.raises(LedgerError) as exc_info:
        service.create_entry(SalaryCreate(employee_id=outsider.id, amount=100),
                             owner_actor)
    assert exc_info.value.status_code == 403

    with pytest.raises(LedgerError) as exc_info:
        service.create_entry(
            SalaryCreate(employee_id=worker.id, amount=100,
                         work_ref=WorkReference.order(uuid4())),
            owner_actor)
    assert exc_info.value.status_code == 404
