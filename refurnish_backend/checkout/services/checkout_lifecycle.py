"""
CHECKOUT LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed transitions of a checkout attempt.

DESIGN PRINCIPLES:
- No network calls
- No cart mutation
- No side effects
- Single source of truth
"""

from __future__ import annotations

from enum import Enum

from checkout.services.exceptions import InvalidCheckoutTransitionError

# ============================================================
# STATE DEFINITIONS
# ============================================================


class CheckoutState(str, Enum):
    IDLE = "idle"
    AWAITING_EWALLET_CONFIRMATION = "awaiting_ewallet_confirmation"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# A submit is ignored (not queued) while one of these is active.
BUSY_STATES = {
    CheckoutState.SUBMITTING,
    CheckoutState.AWAITING_EWALLET_CONFIRMATION,
}

ALLOWED_TRANSITIONS = {
    CheckoutState.IDLE: {
        CheckoutState.SUBMITTING,
        CheckoutState.AWAITING_EWALLET_CONFIRMATION,
    },
    CheckoutState.AWAITING_EWALLET_CONFIRMATION: {
        CheckoutState.SUBMITTING,
        CheckoutState.IDLE,
    },
    CheckoutState.SUBMITTING: {
        CheckoutState.SUCCEEDED,
        CheckoutState.FAILED,
    },
    # Re-submission after a failure starts over from IDLE (never automatic).
    CheckoutState.FAILED: {
        CheckoutState.IDLE,
    },
    CheckoutState.SUCCEEDED: {
        CheckoutState.IDLE,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_state: CheckoutState, to_state: CheckoutState) -> bool:
    return to_state in ALLOWED_TRANSITIONS.get(from_state, set())


def validate_transition(*, from_state: CheckoutState, to_state: CheckoutState) -> None:
    if not can_transition(from_state=from_state, to_state=to_state):
        raise InvalidCheckoutTransitionError(
            f"Checkout cannot transition from '{from_state.value}' to '{to_state.value}'"
        )
