"""Rate limiting types and models."""

from enum import Enum

from pydantic import BaseModel


class RateLimitClientType(str, Enum):
    """Types of clients for rate limiting."""

    ACCOUNT = "account"
    IP = "ip"


# Cache keys: rate_limit:{scope}:{client_type}:{identifier}
# Examples:
# - rate_limit:execute:account:0b5c...
# - rate_limit:execute:ip:1.2.3.4


class ClientIdentifier(BaseModel):
    """Client identifier for rate limiting."""

    client_type: RateLimitClientType
    client_id: str
    scope: str = "default"

    def to_cache_key(self) -> str:
        """Generate Redis cache key for this client."""
        return f"rate_limit:{self.scope}:{self.client_type.value}:{self.client_id}"

    def __str__(self) -> str:
        return f"{self.client_type.value}:{self.client_id}"


class RateLimitResult(BaseModel):
    """Outcome of one request against a caller's window.

    ``retry_after`` is set only on rejection and is what the 429 response
    sends as ``Retry-After``.
    """

    is_allowed: bool
    current_count: int
    retry_after: int | None = None
    client_identifier: ClientIdentifier
    limit: int
    window_seconds: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current_count)
