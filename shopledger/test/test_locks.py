import gc
from datetime import datetime
from uuid import uuid4

from shopledger.core import locks
from shopledger.core.locks import employee_lock, employee_locks, client_lock
from shopledger.services.salary_accrual_service import SalaryAccrualService
from shopledger.services.salary_settlement_service import SalarySettlementService
from shopledger.test.factories import make_user, make_order, make_salary


def _key(employee_id):
    return ("employee", str(employee_id))


def test_lock_is_released_from_registry_after_use():
    employee_id = uuid4()

    with employee_lock(employee_id):
        assert _key(employee_id) in locks._locks
        # Reentrante dentro del mismo hilo
        with employee_lock(employee_id):
            pass

    gc.collect()
    assert _key(employee_id) not in locks._locks


def test_many_entities_do_not_accumulate_locks():
    before = len(locks._locks)
    for _ in range(200):
        with client_lock(uuid4()):
            pass
    gc.collect()
    assert len(locks._locks) == before


def test_employee_locks_accepts_duplicates():
    employee_id = uuid4()
    with employee_locks([employee_id, str(employee_id), employee_id]):
        assert _key(employee_id) in locks._locks
    gc.collect()
    assert _key(employee_id) not in locks._locks


def _record_locks_on_commit(session, monkeypatch, employee_id):
    held = []
    commit = session.commit

    def commit_and_record():
        held.append(_key(employee_id) in locks._locks)
        commit()

    monkeypatch.setattr(session, "commit", commit_and_record)
    return held


def test_accrual_commits_while_holding_the_employee_lock(session, shop_client, monkeypatch):
    worker = make_user(session)
    order = make_order(session, shop_client, total_amount=8000, workers=[(worker, 2000)])
    held = _record_locks_on_commit(session, monkeypatch, worker.id)

    SalaryAccrualService(session).accrue_for_order(order)

    assert held == [True]


def test_settlement_commits_while_holding_the_employee_lock(session, monkeypatch):
    worker = make_user(session)
    make_salary(session, worker, 1000, datetime(2024, 1, 1))
    held = _record_locks_on_commit(session, monkeypatch, worker.id)

    SalarySettlementService(session).pay(worker.id, 600)

    assert held == [True]
    session.refresh(worker)
    assert worker.paid_salary == 600
    assert worker.remaining_salary == 400
