"""Credit top-ups through Stripe Checkout."""

import json
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import stripe  # type: ignore
from stripe import StripeError  # type: ignore
from fastapi import status
from sqlalchemy import select, update

from src.api.core.exceptions.base import (
    InvalidAmountError,
    MarketplaceException,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import (
    Account,
    CreditPurchase,
    LedgerEntryKind,
    LedgerReferenceType,
    PurchaseStatus,
)
from src.modules.billing.constants import (
    MAX_PURCHASE_CENTS,
    MIN_PURCHASE_CENTS,
    PRODUCT_NAME,
    credits_for_amount,
)
from src.modules.ledger.service import LedgerService
from src.utils.settings.stripe import StripeSettings

CREDIT_PURCHASE_TYPE = "credit_purchase"


def as_plain_dict(obj: Any) -> dict:
    """Stripe object as a plain nested dict.

    Recent stripe releases no longer subclass ``dict`` and have no ``.get``.
    The ``str()`` of a Stripe object is its JSON form.
    """
    if isinstance(obj, dict):
        return obj
    return json.loads(str(obj))


class StripePaymentService(BaseService):
    def __init__(self, db):
        super().__init__(db)
        self.settings = StripeSettings()
        stripe.api_key = self.settings.STRIPE_SECRET_KEY.get_secret_value()

    async def create_checkout_session(
        self,
        account: Account,
        amount_cents: int,
        success_url: str,
        cancel_url: str,
        currency: str | None = None,
    ) -> tuple[CreditPurchase, str]:
        """Open a one-off Checkout session and record the pending purchase.

        Returns the purchase and the hosted checkout URL.
        """
        if not MIN_PURCHASE_CENTS <= amount_cents <= MAX_PURCHASE_CENTS:
            raise InvalidAmountError(
                {
                    "description": "Purchase amount out of range",
                    "minimum_cents": MIN_PURCHASE_CENTS,
                    "maximum_cents": MAX_PURCHASE_CENTS,
                }
            )

        currency = (currency or self.settings.STRIPE_DEFAULT_CURRENCY).lower()
        credits = credits_for_amount(amount_cents)
        purchase_id = uuid4()

        try:
            checkout_session = stripe.checkout.Session.create(
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {
                                "name": PRODUCT_NAME,
                                "description": f"{credits} credits",
                            },
                            "unit_amount": amount_cents,
                        },
                        "quantity": 1,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                customer_email=account.email or None,
                client_reference_id=str(account.id),
                metadata={
                    "account_id": str(account.id),
                    "purchase_id": str(purchase_id),
                    "credits": str(credits),
                    "type": CREDIT_PURCHASE_TYPE,
                },
            )
        except StripeError as e:
            self.logger.error(
                "Failed to create checkout session",
                account_id=str(account.id),
                error=str(e),
            )
            raise MarketplaceException(
                MessageCode.EXTERNAL_SERVICE_ERROR,
                status.HTTP_502_BAD_GATEWAY,
                {"description": "Payment provider unavailable"},
            )

        purchase = CreditPurchase(
            id=purchase_id,
            account_id=account.id,
            amount_cents=amount_cents,
            credits_purchased=credits,
            currency=currency,
            stripe_checkout_session_id=checkout_session["id"],
            status=PurchaseStatus.PENDING,
        )
        self.db.add(purchase)
        await self.db.commit()

        self.logger.info(
            "Checkout session created",
            account_id=str(account.id),
            purchase_id=str(purchase_id),
            amount_cents=amount_cents,
        )
        return purchase, checkout_session["url"]

    async def _find_purchase_by_session(self, session_id: str) -> CreditPurchase | None:
        result = await self.db.execute(
            select(CreditPurchase)
            .where(CreditPurchase.stripe_checkout_session_id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def complete_purchase(
        self, purchase_id: UUID, payment_intent_id: str | None = None
    ) -> bool:
        """Mark a pending purchase completed and credit the account.

        Returns False when the purchase was already settled, so replayed
        webhooks and repeated confirmations credit at most once.
        """
        transitioned = await self.db.execute(
            update(CreditPurchase)
            .where(
                CreditPurchase.id == purchase_id,
                CreditPurchase.status == PurchaseStatus.PENDING,
            )
            .values(
                status=PurchaseStatus.COMPLETED,
                completed_at=datetime.now(timezone.utc),
                stripe_payment_intent_id=payment_intent_id,
            )
            .returning(
                CreditPurchase.account_id,
                CreditPurchase.credits_purchased,
                CreditPurchase.amount_cents,
            )
            .execution_options(synchronize_session=False)
        )
        row = transitioned.one_or_none()
        if row is None:
            await self.db.rollback()
            self.logger.info(
                "Purchase already settled, skipping", purchase_id=str(purchase_id)
            )
            return False

        account_id, credits, amount_cents = row
        await LedgerService(self.db).append_entry(
            account_id,
            credits,
            LedgerEntryKind.PURCHASE,
            f"Credit purchase - {credits} credits",
            reference_type=LedgerReferenceType.PURCHASE,
            reference_id=str(purchase_id),
            metadata={
                "amount_cents": amount_cents,
                "payment_intent_id": payment_intent_id,
            },
        )
        await self.db.commit()

        self.logger.info(
            "Purchase completed",
            purchase_id=str(purchase_id),
            account_id=str(account_id),
            amount_cents=amount_cents,
            credits=credits,
        )
        return True

    async def fail_purchase(self, purchase_id: UUID) -> bool:
        transitioned = await self.db.execute(
            update(CreditPurchase)
            .where(
                CreditPurchase.id == purchase_id,
                CreditPurchase.status == PurchaseStatus.PENDING,
            )
            .values(status=PurchaseStatus.FAILED)
            .returning(CreditPurchase.id)
            .execution_options(synchronize_session=False)
        )
        failed = transitioned.one_or_none() is not None
        await self.db.commit()
        if failed:
            self.logger.info("Purchase failed", purchase_id=str(purchase_id))
        return failed

    async def confirm_checkout_session(
        self, account_id: UUID, session_id: str
    ) -> CreditPurchase:
        """Settle a purchase by polling Stripe, for when the webhook is late."""
        purchase = await self._find_purchase_by_session(session_id)
        if purchase is None or purchase.account_id != account_id:
            raise NotFoundError(
                MessageCode.PURCHASE_NOT_FOUND, {"session_id": session_id}
            )

        if purchase.status != PurchaseStatus.PENDING:
            return purchase

        try:
            checkout_session = stripe.checkout.Session.retrieve(session_id)
        except StripeError as e:
            self.logger.error(
                "Failed to retrieve checkout session",
                session_id=session_id,
                error=str(e),
            )
            raise MarketplaceException(
                MessageCode.EXTERNAL_SERVICE_ERROR,
                status.HTTP_502_BAD_GATEWAY,
                {"description": "Payment provider unavailable"},
            )

        checkout_session = as_plain_dict(checkout_session)
        payment_status = checkout_session.get("payment_status")
        if payment_status != "paid":
            raise MarketplaceException(
                MessageCode.PAYMENT_NOT_COMPLETED,
                status.HTTP_409_CONFLICT,
                {"payment_status": payment_status},
            )

        await self.complete_purchase(
            purchase.id, checkout_session.get("payment_intent")
        )
        return await self._find_purchase_by_session(session_id)

    def validate_webhook_signature(self, payload: bytes, signature: str) -> dict:
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.settings.STRIPE_WEBHOOK_SECRET,
                tolerance=self.settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
            )
        except (ValueError, stripe.SignatureVerificationError):
            raise ValueError("Invalid webhook data")
        return as_plain_dict(event)

    async def handle_webhook_event(self, event: dict) -> bool:
        """Dispatch a verified Stripe event. Returns False for ignored events."""
        event = as_plain_dict(event)
        event_type = event["type"]
        data = event["data"]["object"]

        webhook_handlers = {
            "checkout.session.completed": self._handle_checkout_completed,
            "checkout.session.async_payment_succeeded": self._handle_checkout_completed,
            "checkout.session.expired": self._handle_checkout_failed,
            "checkout.session.async_payment_failed": self._handle_checkout_failed,
        }

        handler = webhook_handlers.get(event_type)
        if not handler:
            return False

        return await handler(data)

    async def _purchase_for_session(self, session_data: dict) -> CreditPurchase | None:
        metadata = session_data.get("metadata") or {}
        if metadata.get("type") != CREDIT_PURCHASE_TYPE:
            self.logger.debug(
                "Ignoring checkout session without credit purchase metadata",
                session_id=session_data.get("id"),
            )
            return None

        purchase = await self._find_purchase_by_session(session_data.get("id", ""))
        if purchase is None:
            self.logger.error(
                "Credit purchase not found for checkout session",
                session_id=session_data.get("id"),
                purchase_id=metadata.get("purchase_id"),
            )
        return purchase

    async def _handle_checkout_completed(self, session_data: dict) -> bool:
        if session_data.get("payment_status") != "paid":
            # Delayed payment methods settle via async_payment_succeeded
            return False

        purchase = await self._purchase_for_session(session_data)
        if purchase is None:
            return False

        await self.complete_purchase(purchase.id, session_data.get("payment_intent"))
        return True

    async def _handle_checkout_failed(self, session_data: dict) -> bool:
        purchase = await self._purchase_for_session(session_data)
        if purchase is None:
            return False
        await self.fail_purchase(purchase.id)
        return True
