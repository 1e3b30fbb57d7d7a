import json
import threading
from decimal import Decimal

import pytest

from fulfillment.data.models import OrderModel, PaymentModel
from fulfillment.domain.errors import InvalidError, NotFoundError, UnauthorizedError
from fulfillment.domain.status import OrderStatus, PaymentStatus
from fulfillment.services.payment_gateway import sign_payment, sign_webhook
from fulfillment.services.payment_service import PaymentService
from tests.conftest import KEY_ID, KEY_SECRET, WEBHOOK_SECRET


def webhook(event, gateway_order_id, payment_id="pay_wh_1"):
    body = json.dumps(
        {
            "event": event,
            "payload": {"payment": {"entity": {"id": payment_id, "order_id": gateway_order_id}}},
        }
    ).encode("utf-8")
    return body, sign_webhook(WEBHOOK_SECRET, body)


def order_status(session_factory, order_id):
    # osobna sesja - stan z bazy, nie z identity map
    session = session_factory()
    try:
        return session.get(OrderModel, order_id).status
    finally:
        session.close()


@pytest.fixture
def payments(db, gateway, notifier, invoices):
    return PaymentService(db, gateway=gateway, notifier=notifier, invoices=invoices)


def test_initiate_returns_amount_in_minor_units(payments, place_order, gateway, seed):
    order = place_order()

    intent = payments.initiate(order.id, seed.alice)

    assert intent == {
        "gateway_order_id": "order_gw_1",
        "amount": 24000,
        "currency": "INR",
        "key": KEY_ID,
    }
    assert gateway.intents == [(24000, str(order.id))]


def test_initiate_reissues_existing_intent(db, payments, place_order, gateway, seed):
    order = place_order()

    first = payments.initiate(order.id, seed.alice)
    second = payments.initiate(order.id, seed.alice)

    assert first == second
    assert len(gateway.intents) == 1
    assert db.query(PaymentModel).count() == 1


def test_concurrent_initiate_reuses_stored_intent(db, payments, place_order, monkeypatch, seed):
    order = place_order()
    stored = payments.initiate(order.id, seed.alice)

    real_get = payments.payments.get_by_order
    calls = {"n": 0}

    def miss_once(order_id):
        calls["n"] += 1
        return None if calls["n"] == 1 else real_get(order_id)

    monkeypatch.setattr(payments.payments, "get_by_order", miss_once)

    again = payments.initiate(order.id, seed.alice)

    assert again["gateway_order_id"] == stored["gateway_order_id"]
    assert db.query(PaymentModel).count() == 1


def test_initiate_foreign_order_is_not_found(payments, place_order, seed):
    order = place_order()

    with pytest.raises(NotFoundError):
        payments.initiate(order.id, seed.bob)


def test_initiate_on_failed_order_is_rejected(payments, place_order, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    payments.handle_webhook(*webhook("payment.failed", intent["gateway_order_id"]))

    with pytest.raises(InvalidError):
        payments.initiate(order.id, seed.alice)


def test_initiate_on_paid_order_is_rejected(payments, place_order, pay_order, seed):
    order = place_order()
    pay_order(order)

    with pytest.raises(InvalidError):
        payments.initiate(order.id, seed.alice)


def test_client_confirmation_marks_paid(payments, place_order, session_factory, notifier, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    signature = sign_payment(KEY_SECRET, intent["gateway_order_id"], "pay_abc")

    result = payments.confirm_client_side(
        order.id, seed.alice, intent["gateway_order_id"], "pay_abc", signature
    )

    assert result == {"order_id": order.id, "status": OrderStatus.PAID}
    assert order_status(session_factory, order.id) == OrderStatus.PAID

    payment = payments.get_payment(order.id, seed.alice)
    assert payment.status == PaymentStatus.PAID
    assert payment.gateway_payment_id == "pay_abc"
    assert notifier.payment_success == [(order.id, "alice@example.com")]


def test_bad_client_signature_changes_nothing(payments, place_order, session_factory, notifier, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    forged = sign_payment("not-the-secret", intent["gateway_order_id"], "pay_abc")

    with pytest.raises(UnauthorizedError):
        payments.confirm_client_side(order.id, seed.alice, intent["gateway_order_id"], "pay_abc", forged)

    assert order_status(session_factory, order.id) == OrderStatus.CREATED
    assert notifier.payment_success == []


def test_client_confirmation_for_other_users_order(payments, place_order, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    signature = sign_payment(KEY_SECRET, intent["gateway_order_id"], "pay_abc")

    with pytest.raises(NotFoundError):
        payments.confirm_client_side(order.id, seed.bob, intent["gateway_order_id"], "pay_abc", signature)


def test_webhook_with_bad_signature_changes_nothing(payments, place_order, session_factory, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    body, _ = webhook("payment.captured", intent["gateway_order_id"])

    with pytest.raises(UnauthorizedError):
        payments.handle_webhook(body, "0" * 64)
    with pytest.raises(UnauthorizedError):
        payments.handle_webhook(body, None)

    assert order_status(session_factory, order.id) == OrderStatus.CREATED


def test_webhook_signed_with_key_secret_is_rejected(payments, place_order, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    body, _ = webhook("payment.captured", intent["gateway_order_id"])

    with pytest.raises(UnauthorizedError):
        payments.handle_webhook(body, sign_webhook(KEY_SECRET, body))


def test_captured_webhook_marks_paid(payments, place_order, session_factory, notifier, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)

    ack = payments.handle_webhook(*webhook("payment.captured", intent["gateway_order_id"], "pay_wh_9"))

    assert ack == {"received": True}
    assert order_status(session_factory, order.id) == OrderStatus.PAID
    assert payments.get_payment(order.id, seed.alice).gateway_payment_id == "pay_wh_9"
    assert len(notifier.payment_success) == 1


def test_failed_webhook_marks_failed(payments, place_order, session_factory, notifier, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)

    payments.handle_webhook(*webhook("payment.failed", intent["gateway_order_id"]))

    assert order_status(session_factory, order.id) == OrderStatus.FAILED
    assert payments.get_payment(order.id, seed.alice).status == PaymentStatus.FAILED
    assert notifier.payment_success == []


def test_failure_after_paid_is_ignored(payments, place_order, pay_order, session_factory, seed):
    order = place_order()
    pay_order(order)
    gateway_order_id = payments.get_payment(order.id, seed.alice).gateway_order_id

    payments.handle_webhook(*webhook("payment.failed", gateway_order_id))

    assert order_status(session_factory, order.id) == OrderStatus.PAID
    assert payments.get_payment(order.id, seed.alice).status == PaymentStatus.PAID


def test_duplicate_webhook_is_noop(payments, place_order, notifier, session_factory, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    delivery = webhook("payment.captured", intent["gateway_order_id"])

    payments.handle_webhook(*delivery)
    payments.handle_webhook(*delivery)

    assert order_status(session_factory, order.id) == OrderStatus.PAID
    assert len(notifier.payment_success) == 1


def test_client_and_webhook_race_settles_once(
    db, gateway, notifier, invoices, place_order, session_factory, seed
):
    order = place_order()
    client_side = PaymentService(db, gateway=gateway, notifier=notifier, invoices=invoices)
    intent = client_side.initiate(order.id, seed.alice)
    gateway_order_id = intent["gateway_order_id"]

    other = session_factory()
    try:
        webhook_side = PaymentService(other, gateway=gateway, notifier=notifier, invoices=invoices)
        # webhook widzi jeszcze CREATED zanim klient zdazy zapisac
        assert webhook_side.payments.get_by_gateway_order_id(gateway_order_id).status == PaymentStatus.CREATED

        signature = sign_payment(KEY_SECRET, gateway_order_id, "pay_1")
        client_result = client_side.confirm_client_side(
            order.id, seed.alice, gateway_order_id, "pay_1", signature
        )
        ack = webhook_side.handle_webhook(*webhook("payment.captured", gateway_order_id, "pay_1"))
    finally:
        other.close()

    assert client_result["status"] == OrderStatus.PAID
    assert ack == {"received": True}
    assert order_status(session_factory, order.id) == OrderStatus.PAID
    assert len(notifier.payment_success) == 1
    assert invoices.generated == [order.id]


def test_unknown_event_is_acknowledged(payments, place_order, session_factory, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)

    ack = payments.handle_webhook(*webhook("refund.created", intent["gateway_order_id"]))

    assert ack == {"received": True}
    assert order_status(session_factory, order.id) == OrderStatus.CREATED


def test_webhook_for_unknown_payment_is_acknowledged(payments, seed):
    assert payments.handle_webhook(*webhook("payment.captured", "order_unknown")) == {"received": True}


def test_order_paid_event_uses_order_entity(payments, place_order, session_factory, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    body = json.dumps(
        {"event": "order.paid", "payload": {"order": {"entity": {"id": intent["gateway_order_id"]}}}}
    ).encode("utf-8")

    payments.handle_webhook(body, sign_webhook(WEBHOOK_SECRET, body))

    assert order_status(session_factory, order.id) == OrderStatus.PAID


def test_signed_garbage_payload_is_invalid(payments, seed):
    body = b"not json"

    with pytest.raises(InvalidError):
        payments.handle_webhook(body, sign_webhook(WEBHOOK_SECRET, body))


def test_get_payment(payments, place_order, seed):
    order = place_order()
    payments.initiate(order.id, seed.alice)

    payment = payments.get_payment(order.id, seed.alice)

    assert payment.amount == Decimal("240")
    assert payment.status == PaymentStatus.CREATED
    assert payment.gateway == "RAZORPAY"
    with pytest.raises(NotFoundError):
        payments.get_payment(order.id, seed.bob)


def test_get_payment_before_initiate(payments, place_order, seed):
    order = place_order()

    with pytest.raises(NotFoundError):
        payments.get_payment(order.id, seed.alice)


def test_concurrent_client_and_webhook_threads_settle_once(
    gateway, notifier, invoices, place_order, session_factory, seed
):
    order = place_order()
    setup = session_factory()
    try:
        intent = PaymentService(setup, gateway=gateway, notifier=notifier, invoices=invoices).initiate(
            order.id, seed.alice
        )
    finally:
        setup.close()
    gateway_order_id = intent["gateway_order_id"]
    signature = sign_payment(KEY_SECRET, gateway_order_id, "pay_1")
    delivery = webhook("payment.captured", gateway_order_id, "pay_1")

    start = threading.Barrier(2)
    results, errors = {}, []

    def run(name, call):
        # kazdy watek ma wlasna sesje, jak osobne requesty
        session = session_factory()
        try:
            svc = PaymentService(session, gateway=gateway, notifier=notifier, invoices=invoices)
            start.wait()
            results[name] = call(svc)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [
        threading.Thread(
            target=run,
            args=("client", lambda svc: svc.confirm_client_side(
                order.id, seed.alice, gateway_order_id, "pay_1", signature
            )),
        ),
        threading.Thread(target=run, args=("webhook", lambda svc: svc.handle_webhook(*delivery))),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert results["client"] == {"order_id": order.id, "status": OrderStatus.PAID}
    assert results["webhook"] == {"received": True}
    assert order_status(session_factory, order.id) == OrderStatus.PAID
    assert len(notifier.payment_success) == 1
    assert invoices.generated == [order.id]


def test_invoice_requested_once_across_both_paths(payments, place_order, invoices, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    gateway_order_id = intent["gateway_order_id"]

    payments.confirm_client_side(
        order.id, seed.alice, gateway_order_id, "pay_1", sign_payment(KEY_SECRET, gateway_order_id, "pay_1")
    )
    payments.handle_webhook(*webhook("payment.captured", gateway_order_id, "pay_1"))
    payments.handle_webhook(*webhook("payment.captured", gateway_order_id, "pay_1"))

    assert invoices.generated == [order.id]


def test_failed_payment_gets_no_invoice(payments, place_order, invoices, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)

    payments.handle_webhook(*webhook("payment.failed", intent["gateway_order_id"]))

    assert invoices.generated == []


def test_non_ascii_signatures_are_unauthorized(payments, place_order, session_factory, seed):
    order = place_order()
    intent = payments.initiate(order.id, seed.alice)
    body, _ = webhook("payment.captured", intent["gateway_order_id"])

    with pytest.raises(UnauthorizedError):
        payments.confirm_client_side(order.id, seed.alice, intent["gateway_order_id"], "pay_1", "é" * 64)
    with pytest.raises(UnauthorizedError):
        payments.handle_webhook(body, "é" * 64)

    assert order_status(session_factory, order.id) == OrderStatus.CREATED
