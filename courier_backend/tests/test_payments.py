"""
Integration tests for payment intents and payment recording.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from courier_backend.app.core.exceptions import ConflictError
from courier_backend.app.models.parcel import Parcel
from courier_backend.app.models.payment import Payment
from courier_backend.app.services import parcel_lifecycle, payments


async def create_parcel(client, headers, payload):
    response = await client.post("/parcels", json=payload, headers=headers)
    return response.json()["insertedId"]


def checkout(parcel_id, transaction_id="txn_1", **overrides):
    body = {
        "parcelId": parcel_id,
        "userEmail": "customer@example.com",
        "userName": "Alice",
        "amount": 150.0,
        "transactionId": transaction_id,
        "paymentMethod": "card",
    }
    body.update(overrides)
    return body


async def count_payments(session_factory):
    async with session_factory() as session:
        return (await session.execute(select(func.count(Payment.id)))).scalar_one()


# TEST 1: Payment intent
@pytest.mark.asyncio
async def test_create_payment_intent(client, auth_headers, stripe_stub):
    response = await client.post("/create-payment-intent", json={"amountInCent": 15000}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"clientSecret": "pi_123_secret_15000"}

    sent = stripe_stub.requests[0]
    assert sent["path"] == "/v1/payment_intents"
    assert sent["form"] == {"amount": "15000", "currency": "bdt", "payment_method_types[]": "card"}
    assert sent["headers"]["authorization"] == "Bearer sk_test_123"


@pytest.mark.asyncio
async def test_payment_intent_requires_auth(client, stripe_stub):
    response = await client.post("/create-payment-intent", json={"amountInCent": 100})

    assert response.status_code == 401
    assert stripe_stub.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -500])
async def test_payment_intent_rejects_non_positive_amount(client, auth_headers, stripe_stub, amount):
    response = await client.post("/create-payment-intent", json={"amountInCent": amount}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"message": "Invalid payment amount"}
    assert stripe_stub.requests == []


@pytest.mark.asyncio
async def test_payment_intent_provider_error(client, auth_headers, stripe_stub):
    stripe_stub.fail_with = 500

    response = await client.post("/create-payment-intent", json={"amountInCent": 100}, headers=auth_headers)

    assert response.status_code == 502
    assert response.json() == {"message": "Failed to create payment intent"}


@pytest.mark.asyncio
async def test_payment_intent_circuit_opens_after_repeated_failures(client, auth_headers, stripe_stub):
    stripe_stub.fail_with = 503

    for _ in range(2):
        response = await client.post("/create-payment-intent", json={"amountInCent": 100}, headers=auth_headers)
        assert response.status_code == 502

    stripe_stub.fail_with = None
    response = await client.post("/create-payment-intent", json={"amountInCent": 100}, headers=auth_headers)

    assert response.status_code == 502
    assert response.json() == {"message": "Payment provider temporarily unavailable"}
    assert len(stripe_stub.requests) == 2


# TEST 2: Recording payments
@pytest.mark.asyncio
async def test_record_payment_marks_parcel_paid(client, auth_headers, parcel_payload):
    parcel_id = await create_parcel(client, auth_headers, parcel_payload())

    response = await client.post("/payments", json=checkout(parcel_id), headers=auth_headers)

    assert response.status_code == 201
    assert response.json()["message"] == "Payment recorded and parcel marked as paid"
    assert response.json()["insertedId"]

    parcel = (await client.get(f"/parcels/{parcel_id}", headers=auth_headers)).json()
    assert parcel["payment_status"] == "paid"


@pytest.mark.asyncio
async def test_replayed_transaction_returns_original(client, auth_headers, parcel_payload, session_factory):
    parcel_id = await create_parcel(client, auth_headers, parcel_payload())

    first = await client.post("/payments", json=checkout(parcel_id), headers=auth_headers)
    replay = await client.post("/payments", json=checkout(parcel_id), headers=auth_headers)

    assert replay.status_code == 200
    assert replay.json()["insertedId"] == first.json()["insertedId"]
    assert replay.json()["message"] == "Payment already recorded"
    assert await count_payments(session_factory) == 1


@pytest.mark.asyncio
async def test_idempotency_key_header_takes_precedence(client, auth_headers, parcel_payload, session_factory):
    parcel_id = await create_parcel(client, auth_headers, parcel_payload())
    headers = {**auth_headers, "Idempotency-Key": "checkout-42"}

    first = await client.post("/payments", json=checkout(parcel_id, "txn_a"), headers=headers)
    # Same key, different transaction id: still the same checkout
    retry = await client.post("/payments", json=checkout(parcel_id, "txn_b"), headers=headers)

    assert first.status_code == 201
    assert retry.status_code == 200
    assert retry.json()["insertedId"] == first.json()["insertedId"]
    assert await count_payments(session_factory) == 1


@pytest.mark.asyncio
async def test_idempotency_key_reused_for_other_parcel(client, auth_headers, parcel_payload):
    first_parcel = await create_parcel(client, auth_headers, parcel_payload())
    other_parcel = await create_parcel(client, auth_headers, parcel_payload())
    headers = {**auth_headers, "Idempotency-Key": "checkout-42"}

    await client.post("/payments", json=checkout(first_parcel, "txn_a"), headers=headers)
    response = await client.post("/payments", json=checkout(other_parcel, "txn_b"), headers=headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_second_payment_for_paid_parcel_conflicts(client, auth_headers, parcel_payload, session_factory):
    parcel_id = await create_parcel(client, auth_headers, parcel_payload())
    await client.post("/payments", json=checkout(parcel_id, "txn_a"), headers=auth_headers)

    response = await client.post("/payments", json=checkout(parcel_id, "txn_b"), headers=auth_headers)

    assert response.status_code == 409
    assert response.json() == {"message": "Parcel is already paid"}
    assert await count_payments(session_factory) == 1


@pytest.mark.asyncio
async def test_payment_for_missing_parcel(client, auth_headers, session_factory):
    response = await client.post("/payments", json=checkout(uuid.uuid4().hex), headers=auth_headers)

    assert response.status_code == 404
    assert await count_payments(session_factory) == 0


@pytest.mark.asyncio
async def test_payment_with_invalid_parcel_id(client, auth_headers):
    response = await client.post("/payments", json=checkout("nope"), headers=auth_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -1])
async def test_payment_rejects_non_positive_amount(client, auth_headers, parcel_payload, amount):
    parcel_id = await create_parcel(client, auth_headers, parcel_payload())

    response = await client.post("/payments", json=checkout(parcel_id, amount=amount), headers=auth_headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_failed_payment_insert_leaves_parcel_unpaid(
    client, lenient_client, auth_headers, parcel_payload, session_factory, monkeypatch
):
    parcel_id = await create_parcel(client, auth_headers, parcel_payload())

    def broken_payment(**fields):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(payments, "build_payment", broken_payment)

    response = await lenient_client.post("/payments", json=checkout(parcel_id), headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"message": "An internal server error occurred"}
    async with session_factory() as session:
        parcel = (await session.execute(select(Parcel).where(Parcel.id == parcel_id))).scalar_one()
        assert parcel.payment_status.value == "unpaid"
    assert await count_payments(session_factory) == 0


# TEST 3: Payment history
@pytest.mark.asyncio
async def test_list_payments_by_email_newest_first(client, auth_headers, parcel_payload, session_factory):
    older = await create_parcel(client, auth_headers, parcel_payload())
    newer = await create_parcel(client, auth_headers, parcel_payload())
    foreign = await create_parcel(client, auth_headers, parcel_payload())

    await client.post("/payments", json=checkout(older, "txn_1"), headers=auth_headers)
    await client.post("/payments", json=checkout(newer, "txn_2"), headers=auth_headers)
    await client.post(
        "/payments",
        json=checkout(foreign, "txn_3", userEmail="someone@example.com"),
        headers=auth_headers,
    )

    base = datetime(2026, 3, 1, tzinfo=timezone.utc)
    async with session_factory() as session:
        for offset, txn in enumerate(["txn_1", "txn_2", "txn_3"]):
            payment = (await session.execute(
                select(Payment).where(Payment.transaction_id == txn)
            )).scalar_one()
            payment.paid_at = base + timedelta(days=offset)
        await session.commit()

    response = await client.get("/payments", params={"email": "customer@example.com"}, headers=auth_headers)

    assert response.status_code == 200
    assert [p["parcelId"] for p in response.json()] == [newer, older]
    assert response.json()[0]["transactionId"] == "txn_2"

    everything = await client.get("/payments", headers=auth_headers)
    assert len(everything.json()) == 3


@pytest.mark.asyncio
async def test_payment_history_shows_local_time(client, auth_headers, parcel_payload):
    parcel_id = await create_parcel(client, auth_headers, parcel_payload())
    await client.post("/payments", json=checkout(parcel_id), headers=auth_headers)

    history = (await client.get("/payments", headers=auth_headers)).json()

    assert history[0]["paid_at_string"]


def test_local_time_uses_display_timezone():
    moment = datetime(2026, 10, 18, 9, 4, 5, tzinfo=timezone.utc)

    # Asia/Dhaka is UTC+6
    assert payments.format_local_time(moment) == "18/10/2026, 03:04:05 PM"


# TEST 4: Racing checkouts
@pytest.mark.asyncio
async def test_racing_checkouts_record_one_payment(session_factory, parcel_payload):
    async with session_factory() as setup:
        data = parcel_payload()
        data["parcel_type"] = data.pop("type")
        parcel_id = (await parcel_lifecycle.create_parcel(setup, data, created_by="a@x.com")).id

    async with session_factory() as winner, session_factory() as loser:
        # Loser reads the parcel as unpaid before the winner commits
        await parcel_lifecycle.get_parcel(loser, parcel_id)

        payment, created = await payments.record_payment(
            winner, parcel_id, email="a@x.com", amount=150.0, transaction_id="tx-1"
        )
        assert created is True

        with pytest.raises(ConflictError):
            await payments.record_payment(
                loser, parcel_id, email="a@x.com", amount=150.0, transaction_id="tx-2"
            )

    assert await count_payments(session_factory) == 1
    async with session_factory() as session:
        stored = (await session.execute(select(Payment))).scalar_one()
        assert stored.transaction_id == "tx-1"


@pytest.mark.asyncio
async def test_one_payment_row_per_parcel(db_session, parcel_payload):
    data = parcel_payload()
    data["parcel_type"] = data.pop("type")
    parcel = await parcel_lifecycle.create_parcel(db_session, data, created_by="a@x.com")
    parcel_id = parcel.id

    for txn in ("tx-1", "tx-2"):
        db_session.add(Payment(
            parcel_id=parcel_id,
            email="a@x.com",
            amount=150.0,
            transaction_id=txn,
            idempotency_key=txn,
        ))

    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


# TEST 5: Provider rejections do not trip the circuit
@pytest.mark.asyncio
async def test_rejected_intents_leave_circuit_closed(client, auth_headers, stripe_stub):
    stripe_stub.fail_with = 400

    for _ in range(3):
        response = await client.post("/create-payment-intent", json={"amountInCent": 1}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid payment amount"}

    stripe_stub.fail_with = None
    response = await client.post("/create-payment-intent", json={"amountInCent": 5000}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"clientSecret": "pi_123_secret_5000"}


@pytest.mark.asyncio
async def test_provider_auth_failure_is_upstream_failure(client, auth_headers, stripe_stub):
    stripe_stub.fail_with = 401

    for _ in range(3):
        response = await client.post("/create-payment-intent", json={"amountInCent": 100}, headers=auth_headers)
        assert response.status_code == 502
        assert response.json() == {"message": "Failed to create payment intent"}

    # Three calls reached the provider: none was refused by an open circuit
    assert len(stripe_stub.requests) == 3
