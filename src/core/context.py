"""Authentication context model for typed account authentication."""

from dataclasses import dataclass, field

from src.database.models import Account


@dataclass
class AuthenticatedAccountContext:
    """Context containing the authenticated account and its token claims."""

    account: Account
    is_admin: bool = False
    claims: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.account:
            raise ValueError("Account is required in authentication context")
