"""Stripe webhook endpoint."""

from fastapi import APIRouter, Request, status

from src.api.core.dependencies import AsyncSessionDep
from src.api.core.exceptions.base import MarketplaceException
from src.api.core.messages import MessageCode
from src.modules.billing.stripe.service import StripePaymentService
from src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/stripe", tags=["stripe"])

MAX_WEBHOOK_PAYLOAD_BYTES = 1024 * 1024


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSessionDep,
):
    """Handle Stripe webhook events after verifying their signature."""
    payload = await request.body()

    if not payload:
        raise MarketplaceException(
            MessageCode.BAD_REQUEST,
            status.HTTP_400_BAD_REQUEST,
            details={"description": "Empty webhook payload"},
        )

    if len(payload) > MAX_WEBHOOK_PAYLOAD_BYTES:
        raise MarketplaceException(
            MessageCode.BAD_REQUEST,
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            details={"description": "Webhook payload too large"},
        )

    signature = request.headers.get("stripe-signature")
    if not signature:
        raise MarketplaceException(
            MessageCode.BAD_REQUEST,
            status.HTTP_400_BAD_REQUEST,
            details={"description": "Missing stripe-signature header"},
        )

    # Header carries a timestamp and at least one v1 signature
    if not signature.startswith("t=") or ",v" not in signature:
        raise MarketplaceException(
            MessageCode.BAD_REQUEST,
            status.HTTP_400_BAD_REQUEST,
            details={"description": "Invalid stripe-signature format"},
        )

    stripe_service = StripePaymentService(db)

    # Signature check also enforces the timestamp tolerance
    try:
        event = stripe_service.validate_webhook_signature(payload, signature)
    except ValueError as e:
        logger.error("Webhook validation error", error=str(e))
        raise MarketplaceException(
            MessageCode.BAD_REQUEST,
            status.HTTP_400_BAD_REQUEST,
            details={"description": "Invalid webhook data"},
        )

    handled = await stripe_service.handle_webhook_event(event)

    if handled:
        logger.info("Processed webhook event", event_type=event["type"])
        return {"status": "success"}

    logger.debug("Webhook event not handled", event_type=event["type"])
    return {"status": "ignored"}
