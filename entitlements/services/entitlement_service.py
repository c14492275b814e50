"""
Entitlement resolver.

Combines the user's plan tier with the usage ledger to answer admission
questions. Read-only: nothing here mutates state.
"""
import logging
from typing import Dict, NamedTuple, Optional
from sqlalchemy.orm import Session

from entitlements.db.models.subscription import Subscription
from entitlements.core.plan_catalog import (
    PlanTier,
    SUPPORTED_RESOURCES,
    UNLIMITED,
    get_resource_limit,
    limits_for,
    normalize_tier,
)
from entitlements.core.timeutils import get_period_key
from entitlements.services import usage_ledger

logger = logging.getLogger(__name__)


class Admission(NamedTuple):
    allowed: bool
    limit: int
    used: int


def get_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    return db.query(Subscription).filter(Subscription.user_id == user_id).first()


def get_plan_for_user(db: Session, user_id: int) -> PlanTier:
    """
    Get user's plan tier from subscription, defaulting to free if none exists.
    
    Args:
        db: Database session
        user_id: User ID
        
    Returns:
        PlanTier of the stored subscription record
    """
    subscription = get_subscription(db, user_id)
    if not subscription:
        return PlanTier.FREE
    return normalize_tier(subscription.plan_tier)


def check_admission(db: Session, user_id: int, resource_type: str) -> Admission:
    """
    Decide whether the user may create one more resource of this type.
    
    Unlimited plans (-1) are always admitted; otherwise used < limit.
    """
    plan_tier = get_plan_for_user(db, user_id)
    limit = get_resource_limit(plan_tier, resource_type)
    used = usage_ledger.current_count(db, user_id, resource_type)
    
    if limit == UNLIMITED:
        return Admission(allowed=True, limit=limit, used=used)
    
    allowed = used < limit
    if not allowed:
        logger.info(
            f"Admission denied: user_id={user_id}, resource={resource_type}, "
            f"plan={plan_tier.value}, used={used}, limit={limit}"
        )
    return Admission(allowed=allowed, limit=limit, used=used)


def get_usage_for_response(db: Session, user_id: int) -> Dict:
    """
    Get usage data formatted for GET /me/usage response.
    
    Returns:
        Dictionary with plan, status, period_key and per-resource usage
    """
    plan_tier = get_plan_for_user(db, user_id)
    subscription = get_subscription(db, user_id)
    period_key = get_period_key()
    usage = usage_ledger.get_period_usage(db, user_id, period_key)
    limits = limits_for(plan_tier)
    
    resources = []
    for resource_type in SUPPORTED_RESOURCES:
        limit = get_resource_limit(plan_tier, resource_type)
        used = usage.get(resource_type, 0)
        unlimited = limit == UNLIMITED
        resources.append({
            "resource_type": resource_type,
            "limit": limit,
            "used": used,
            "remaining": None if unlimited else max(0, limit - used),
            "unlimited": unlimited,
        })
    
    return {
        "plan": plan_tier.value,
        "status": subscription.status if subscription else None,
        "period_key": period_key,
        "resources": resources,
        "features": limits["features"],
    }
