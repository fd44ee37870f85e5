import pytest
from datetime import datetime
from uuid import uuid4
from sqlmodel import select

from shopledger.core.exceptions import LedgerError
from shopledger.models import Payment, PaymentCreate, PaymentMethod, ClientPaymentStatus
from shopledger.services.client_payment_service import ClientPaymentService
from shopledger.services.payment_service import PaymentService
from shopledger.test.factories import make_client, make_order, make_user, actor_for, OTHER_SHOP


@pytest.fixture(name="order")
def order_fixture(session, shop_client):
    order = make_order(session, shop_client, total_amount=10000)
    ClientPaymentService(session).recompute_client_totals(shop_client.id)
    return order


def test_create_payment_updates_order_and_client(session, shop_client, order, owner_actor):
    payment = PaymentService(session).create_payment(PaymentCreate(
        order_id=order.id,
        client_id=shop_client.id,
        amount=4000,
        payment_method=PaymentMethod.UPI,
        notes="First instalment"
    ), owner_actor)

    assert payment.amount == 4000
    assert payment.received_by == owner_actor.user_id
    assert payment.shop_name == shop_client.shop_name
    session.refresh(order)
    assert order.received_payment == 4000
    assert order.remaining_payment == 6000
    session.refresh(shop_client)
    assert shop_client.received_payments == 4000
    assert shop_client.pending_payments == 6000
    assert shop_client.payment_status == ClientPaymentStatus.PARTIAL


def test_incremental_path_agrees_with_full_recompute(session, shop_client, order, owner_actor):
    second = make_order(session, shop_client, total_amount=3000, name="Reception")
    service = ClientPaymentService(session)
    service.recompute_client_totals(shop_client.id)
    payments = PaymentService(session)

    for order_id, amount in ((order.id, 2500), (second.id, 3000), (order.id, 7500)):
        payments.create_payment(PaymentCreate(
            order_id=order_id, client_id=shop_client.id, amount=amount), owner_actor)

    session.refresh(shop_client)
    incremental = (shop_client.received_payments, shop_client.pending_payments,
                   shop_client.payment_status)
    client = service.recompute_client_totals(shop_client.id)
    assert incremental == (client.received_payments, client.pending_payments,
                           client.payment_status)
    assert client.payment_status == ClientPaymentStatus.PAID


def test_create_payment_validation(session, shop_client, order, owner_actor):
    service = PaymentService(session)

    with pytest.raises(LedgerError) as exc_info:
        service.create_payment(PaymentCreate(
            order_id=order.id, client_id=shop_client.id, amount=10001), owner_actor)
    assert exc_info.value.status_code == 400
    assert session.exec(select(Payment)).all() == []
    session.refresh(order)
    assert order.received_payment == 0

    with pytest.raises(LedgerError) as exc_info:
        service.create_payment(PaymentCreate(
            order_id=uuid4(), client_id=shop_client.id, amount=10), owner_actor)
    assert exc_info.value.status_code == 404

    other_client = make_client(session, name="Mehta Corp")
    with pytest.raises(LedgerError) as exc_info:
        service.create_payment(PaymentCreate(
            order_id=order.id, client_id=other_client.id, amount=10), owner_actor)
    assert exc_info.value.detail == "Order does not belong to this client"

    outsider = make_user(session, shop_name=OTHER_SHOP)
    with pytest.raises(LedgerError) as exc_info:
        service.create_payment(PaymentCreate(
            order_id=order.id, client_id=shop_client.id, amount=10), actor_for(outsider))
    assert exc_info.value.status_code == 403


def test_delete_payment_reverses_amounts(session, shop_client, order, owner_actor):
    service = PaymentService(session)
    payment = service.create_payment(PaymentCreate(
        order_id=order.id, client_id=shop_client.id, amount=3000), owner_actor)

    service.delete_payment(payment.id, owner_actor)

    assert session.exec(select(Payment)).all() == []
    session.refresh(order)
    assert order.received_payment == 0
    assert order.remaining_payment == 10000
    session.refresh(shop_client)
    assert shop_client.received_payments == 0
    assert shop_client.pending_payments == 10000
    assert shop_client.payment_status == ClientPaymentStatus.PENDING


def test_delete_payment_clamps_at_zero(session, shop_client, order, owner_actor):
    service = PaymentService(session)
    payment = service.create_payment(PaymentCreate(
        order_id=order.id, client_id=shop_client.id, amount=3000), owner_actor)
    # Ajustes manuales previos dejaron los totales por debajo del pago
    order.received_payment = 1000
    shop_client.received_payments = 500
    session.add(order)
    session.add(shop_client)
    session.commit()

    service.delete_payment(payment.id, owner_actor)

    session.refresh(order)
    session.refresh(shop_client)
    assert order.received_payment == 0
    assert shop_client.received_payments == 0
    assert shop_client.pending_payments == 10000


def test_delete_unknown_payment(session, owner_actor):
    with pytest.raises(LedgerError) as exc_info:
        PaymentService(session).delete_payment(uuid4(), owner_actor)
    assert exc_info.value.status_code == 404


def test_list_payments_newest_first(session, shop_client, order, owner_actor):
    service = PaymentService(session)
    for day, amount in ((1, 1000), (3, 3000), (2, 2000)):
        service.create_payment(PaymentCreate(
            order_id=order.id, client_id=shop_client.id, amount=amount,
            payment_date=datetime(2024, 5, day)), owner_actor)

    assert [p.amount for p in service.list_for_order(order.id)] == [3000, 2000, 1000]
    assert [p.amount for p in service.list_for_client(shop_client.id)] == [3000, 2000, 1000]
    assert service.list_for_client(shop_client.id, shop_name=OTHER_SHOP) == []
