"""Billing constants shared by the ledger, execution and payout services.

All amounts are integer cents. One credit is worth one cent.
"""

from dataclasses import dataclass

DEFAULT_AGENT_PRICE_CENTS = 50

# Revenue split applied to every charged execution
PLATFORM_FEE_PERCENT = 10

MINIMUM_PAYOUT_CENTS = 500

# Stripe top-up bounds
MIN_PURCHASE_CENTS = 500
MAX_PURCHASE_CENTS = 100_000
CREDITS_PER_CENT = 1

PRODUCT_NAME = "Agent Marketplace Credits"


@dataclass(frozen=True)
class RevenueSplit:
    """Result of splitting one gross charge between platform and creator."""

    gross_cents: int
    platform_fee_cents: int
    creator_share_cents: int


def calculate_revenue_split(gross_cents: int) -> RevenueSplit:
    """Split a gross charge, flooring the platform fee.

    The creator receives the remainder so the two parts always sum to gross.
    """
    if gross_cents < 0:
        raise ValueError("gross_cents must be non-negative")
    platform_fee = gross_cents * PLATFORM_FEE_PERCENT // 100
    return RevenueSplit(
        gross_cents=gross_cents,
        platform_fee_cents=platform_fee,
        creator_share_cents=gross_cents - platform_fee,
    )


def credits_for_amount(amount_cents: int) -> int:
    return amount_cents * CREDITS_PER_CENT
