"""Credits endpoints."""

from unittest.mock import patch

from src.api.core.messages import MessageCode
from src.database.models import PurchaseStatus
from tests.factories import CreditPurchaseFactory
from tests.utils.assertions import (
    assert_error_response,
    assert_paginated_response,
    assert_success_response,
    assert_validation_error,
)


async def test_balance(authorized_client, test_account, fund_account):
    await fund_account(test_account.id, 1500)

    response = await authorized_client.get("/v1/credits/balance")

    assert_success_response(
        response, data_assertions={"balance_cents": 1500}
    )


async def test_transactions_newest_first(
    authorized_client, test_account, fund_account
):
    await fund_account(test_account.id, 100)
    await fund_account(test_account.id, 250)

    response = await authorized_client.get(
        "/v1/credits/transactions", params={"limit": 1}
    )

    items = assert_paginated_response(response, expected_total=2, expected_limit=1)
    assert len(items) == 1
    assert items[0]["amount_cents"] == 250
    assert items[0]["balance_after_cents"] == 350
    assert items[0]["kind"] == "bonus"
    assert response.json()["data"]["pagination"]["has_more"] is True


async def test_transactions_limit_is_bounded(authorized_client):
    response = await authorized_client.get(
        "/v1/credits/transactions", params={"limit": 1000}
    )

    assert_validation_error(response)


async def test_purchase_creates_checkout_session(authorized_client):
    with patch(
        "stripe.checkout.Session.create",
        return_value={"id": "cs_test_api", "url": "https://checkout.stripe.com/x"},
    ) as create:
        response = await authorized_client.post(
            "/v1/credits/purchase", json={"amount_cents": 2000}
        )

    data = assert_success_response(response, MessageCode.CHECKOUT_CREATED)
    assert data["checkout_url"] == "https://checkout.stripe.com/x"
    assert data["purchase"]["amount_cents"] == 2000
    assert data["purchase"]["status"] == "pending"
    assert "{CHECKOUT_SESSION_ID}" in create.call_args.kwargs["success_url"]


async def test_purchase_below_minimum(authorized_client):
    with patch("stripe.checkout.Session.create") as create:
        response = await authorized_client.post(
            "/v1/credits/purchase", json={"amount_cents": 100}
        )

    assert_error_response(response, MessageCode.INVALID_AMOUNT, 400)
    create.assert_not_called()


async def test_confirm_paid_purchase_credits_balance(
    authorized_client, db_session, test_account
):
    purchase = await CreditPurchaseFactory.create_async(
        db_session, account_id=test_account.id, amount_cents=900
    )
    await db_session.commit()

    with patch(
        "stripe.checkout.Session.retrieve",
        return_value={"payment_status": "paid", "payment_intent": "pi_api"},
    ):
        response = await authorized_client.get(
            "/v1/credits/confirm",
            params={"session_id": purchase.stripe_checkout_session_id},
        )

    data = assert_success_response(response, MessageCode.CREDITS_GRANTED)
    assert data["status"] == PurchaseStatus.COMPLETED.value

    balance = await authorized_client.get("/v1/credits/balance")
    assert balance.json()["data"]["balance_cents"] == 900


async def test_confirm_unknown_session(authorized_client):
    response = await authorized_client.get(
        "/v1/credits/confirm", params={"session_id": "cs_missing"}
    )

    assert_error_response(response, MessageCode.PURCHASE_NOT_FOUND, 404)
