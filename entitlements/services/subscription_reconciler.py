"""
Subscription state reconciler.

Applies a normalized payment event to a user's subscription record.

The target state is computed from the event alone and written as an
unconditional upsert keyed by user_id, so replaying an event converges on
the same record instead of stacking deltas.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from entitlements.core import config
from entitlements.core.plan_catalog import (
    PaymentProvider,
    PlanTier,
    is_annual_plan,
    resolve_tier,
)
from entitlements.core.timeutils import to_naive_utc, utcnow
from entitlements.db.models.subscription import Subscription
from entitlements.schemas.webhook import WebhookData
from entitlements.services.event_catalog import (
    ACTIVATING_CATEGORIES,
    CANCELLING_CATEGORIES,
    EventCategory,
)

logger = logging.getLogger(__name__)

MONTHLY_PERIOD_DAYS = 30
ANNUAL_PERIOD_DAYS = 365


class SubscriptionStatus:
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    TRIALING = "trialing"


def _base_state(provider: PaymentProvider, data: WebhookData) -> Dict[str, Any]:
    """Fields every recognized event carries over from the provider payload."""
    return {
        "payment_provider": provider.value,
        "external_subscription_id": data.id,
        "external_customer_key": data.customer_email,
        "amount": data.amount,
        "currency": data.currency or config.DEFAULT_CURRENCY,
        "period_start": to_naive_utc(data.created_at),
    }


def compute_target_state(
    provider,
    category: Optional[EventCategory],
    data: WebhookData,
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """
    Compute the subscription fields an event leads to.

    Args:
        provider: Payment provider that sent the event
        category: Normalized event category (None when unrecognized)
        data: Parsed provider payload
        now: Reference time for computed expiries

    Returns:
        Column values to upsert, or None when the event changes nothing
    """
    if category is None:
        return None

    provider = PaymentProvider(provider)
    now = now or utcnow()
    event_time = to_naive_utc(data.updated_at) or now
    state = _base_state(provider, data)

    if category in ACTIVATING_CATEGORIES:
        period_days = ANNUAL_PERIOD_DAYS if is_annual_plan(provider, data.plan_id) else MONTHLY_PERIOD_DAYS
        period_end = to_naive_utc(data.expires_at) or now + timedelta(days=period_days)

        if period_end <= now:
            # An active record must always have a future period end
            logger.warning(
                f"Activation with past expiry treated as expired: provider={provider.value}, "
                f"subscription_id={data.id}, expires_at={period_end.isoformat()}"
            )
            state.update({
                "status": SubscriptionStatus.EXPIRED,
                "plan_tier": PlanTier.FREE.value,
                "period_end": period_end,
                "trial_end": None,
            })
            return state

        state.update({
            "status": SubscriptionStatus.ACTIVE,
            "plan_tier": resolve_tier(provider, data.plan_id).value,
            "period_end": period_end,
            "activated_at": event_time,
            "trial_end": None,
            "cancelled_at": None,
            "cancel_reason": None,
        })
        return state

    if category in CANCELLING_CATEGORIES:
        state.update({
            "status": SubscriptionStatus.CANCELLED,
            "plan_tier": PlanTier.FREE.value,
            "cancelled_at": event_time,
            "cancel_reason": category.value,
            "trial_end": None,
        })
        return state

    if category == EventCategory.TRIAL_STARTED:
        trial_days = data.trial_days or config.DEFAULT_TRIAL_DAYS
        trial_end = to_naive_utc(data.expires_at) or now + timedelta(days=trial_days)
        state.update({
            "status": SubscriptionStatus.TRIALING,
            "plan_tier": resolve_tier(provider, data.plan_id).value,
            "trial_end": trial_end,
            "cancelled_at": None,
            "cancel_reason": None,
        })
        return state

    return None


def _upsert(db: Session, user_id: int, state: Dict[str, Any]) -> Subscription:
    # Two first deliveries can race on the unique user_id; the loser retries as an update
    for attempt in range(2):
        subscription = db.query(Subscription).filter(Subscription.user_id == user_id).first()
        if not subscription:
            subscription = Subscription(user_id=user_id)
            db.add(subscription)

        for field, value in state.items():
            setattr(subscription, field, value)
        subscription.updated_at = utcnow()

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt:
                raise
            logger.info(f"Concurrent subscription insert for user_id={user_id}, retrying as update")
            continue

        db.refresh(subscription)
        return subscription


def apply_event(
    db: Session,
    user_id: int,
    provider,
    event: str,
    category: Optional[EventCategory],
    data: WebhookData,
    raw_payload: Optional[Dict[str, Any]] = None,
) -> Optional[Subscription]:
    """
    Reconcile a user's subscription with one provider event.

    Args:
        db: Database session
        user_id: Target user, already resolved by the gateway
        provider: Payment provider that sent the event
        event: Raw provider event string
        category: Normalized category, None when unrecognized
        data: Parsed provider payload
        raw_payload: Original JSON body kept as an audit copy

    Returns:
        Updated subscription, or None when the event was not recognized

    Raises:
        SQLAlchemyError: On datastore failure
    """
    state = compute_target_state(provider, category, data)
    if state is None:
        logger.info(
            f"Unrecognized event ignored: provider={PaymentProvider(provider).value}, "
            f"event={event}, user_id={user_id}"
        )
        return None

    state["last_event"] = event
    state["raw_provider_payload"] = raw_payload
    subscription = _upsert(db, user_id, state)

    logger.info(
        f"Subscription reconciled: user_id={user_id}, provider={subscription.payment_provider}, "
        f"event={event}, status={subscription.status}, plan={subscription.plan_tier}"
    )
    return subscription
