"""
Normalized payment events.

Each provider sends its own event strings; gateways translate them to one
EventCategory so the reconciler has a single state machine.
"""
import enum
from typing import Dict, Optional

from entitlements.core.plan_catalog import PaymentProvider


class EventCategory(str, enum.Enum):
    PAYMENT_SUCCESS = "payment_success"
    SUBSCRIPTION_ACTIVATED = "subscription_activated"
    SUBSCRIPTION_RENEWED = "subscription_renewed"
    PAYMENT_FAILED = "payment_failed"
    CHARGEBACK = "chargeback"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    TRIAL_STARTED = "trial_started"


ACTIVATING_CATEGORIES = frozenset({
    EventCategory.PAYMENT_SUCCESS,
    EventCategory.SUBSCRIPTION_ACTIVATED,
    EventCategory.SUBSCRIPTION_RENEWED,
})

CANCELLING_CATEGORIES = frozenset({
    EventCategory.PAYMENT_FAILED,
    EventCategory.CHARGEBACK,
    EventCategory.SUBSCRIPTION_CANCELLED,
    EventCategory.SUBSCRIPTION_EXPIRED,
})

_COMMON_EVENTS: Dict[str, EventCategory] = {
    "payment.success": EventCategory.PAYMENT_SUCCESS,
    "subscription.activated": EventCategory.SUBSCRIPTION_ACTIVATED,
    "subscription.renewed": EventCategory.SUBSCRIPTION_RENEWED,
    "payment.failed": EventCategory.PAYMENT_FAILED,
    "payment.chargeback": EventCategory.CHARGEBACK,
    "subscription.cancelled": EventCategory.SUBSCRIPTION_CANCELLED,
    "subscription.expired": EventCategory.SUBSCRIPTION_EXPIRED,
    "subscription.trial_started": EventCategory.TRIAL_STARTED,
}

PROVIDER_EVENT_MAPPING: Dict[PaymentProvider, Dict[str, EventCategory]] = {
    PaymentProvider.CAKTO: {
        **_COMMON_EVENTS,
        "chargeback": EventCategory.CHARGEBACK,
    },
    PaymentProvider.KIWIFY: {
        **_COMMON_EVENTS,
        "chargeback": EventCategory.CHARGEBACK,
    },
}


def normalize_event(provider, event: Optional[str]) -> Optional[EventCategory]:
    """Map a provider event string to its category, or None if unrecognized."""
    if not event:
        return None
    return PROVIDER_EVENT_MAPPING.get(PaymentProvider(provider), {}).get(event)
