"""
Loyalty error types.
"""

from __future__ import annotations


class LoyaltyError(Exception):
    code = "loyalty_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class InsufficientPointsError(LoyaltyError):
    code = "insufficient_points"

    def __init__(self, required: int, available: int) -> None:
        super().__init__(f"Insufficient points: {required} required, {available} available")
        self.required = required
        self.available = available


class RewardUnavailableError(LoyaltyError):
    code = "reward_unavailable"


class RedemptionStateError(LoyaltyError):
    """A redemption was reviewed or consumed from the wrong status."""

    code = "invalid_redemption_state"


class RedemptionNotFoundError(LoyaltyError):
    code = "redemption_not_found"
