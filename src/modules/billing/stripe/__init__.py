"""Stripe credit top-up service."""

from .service import StripePaymentService

__all__ = ["StripePaymentService"]
