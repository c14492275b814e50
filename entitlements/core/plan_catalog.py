"""
Plan catalog.

Single source of truth for:
- provider plan identifiers -> internal plan tier
- plan tier -> quota limits and feature flags

-1 means unlimited for every numeric limit.
"""
import enum
from typing import Dict, Any, List


class PlanTier(str, enum.Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"
    ENTERPRISE_ANNUAL = "enterprise_annual"


class PaymentProvider(str, enum.Enum):
    CAKTO = "cakto"
    KIWIFY = "kiwify"
    NONE = "none"


UNLIMITED = -1

# Quota-limited resource types and the limit key that governs each
RESOURCE_LIMIT_KEYS: Dict[str, str] = {
    "job": "max_jobs",
    "project": "max_projects",
}
SUPPORTED_RESOURCES: List[str] = list(RESOURCE_LIMIT_KEYS)

# Checkout links: https://pay.cakto.com.br/<id>, https://pay.kiwify.com.br/<id>
PROVIDER_PLAN_MAPPING: Dict[PaymentProvider, Dict[str, PlanTier]] = {
    PaymentProvider.CAKTO: {
        "yppzpjc": PlanTier.BASIC,
        "kesq5cb": PlanTier.PREMIUM,
        "34p727v": PlanTier.ENTERPRISE,
        "uoxtt9o": PlanTier.ENTERPRISE_ANNUAL,
    },
    PaymentProvider.KIWIFY: {
        "jtksckF": PlanTier.BASIC,
        "kTs280h": PlanTier.PREMIUM,
        "iuQVR8a": PlanTier.ENTERPRISE,
        "CjaLdBJ": PlanTier.ENTERPRISE_ANNUAL,
    },
}

ANNUAL_PLAN_IDS: Dict[PaymentProvider, str] = {
    PaymentProvider.CAKTO: "uoxtt9o",
    PaymentProvider.KIWIFY: "CjaLdBJ",
}

_NO_FEATURES = {
    "advanced_reports": False,
    "collaboration": False,
    "api": False,
    "customizations": False,
    "backup": False,
    "priority_support": False,
    "support_24_7": False,
    "training": False,
    "consulting": False,
}

_ENTERPRISE_FEATURES = {
    "advanced_reports": True,
    "collaboration": True,
    "api": True,
    "customizations": True,
    "backup": True,
    "priority_support": True,
    "support_24_7": True,
    "training": False,
    "consulting": False,
}

PLAN_LIMITS: Dict[PlanTier, Dict[str, Any]] = {
    PlanTier.FREE: {
        "max_jobs": 5,
        "max_projects": 3,
        "max_team_members": 1,
        "max_storage_mb": 100,
        "features": dict(_NO_FEATURES),
    },
    PlanTier.BASIC: {
        "max_jobs": UNLIMITED,
        "max_projects": UNLIMITED,
        "max_team_members": 1,
        "max_storage_mb": 5000,  # 5GB
        "features": {**_NO_FEATURES, "advanced_reports": True, "priority_support": True},
    },
    PlanTier.PREMIUM: {
        "max_jobs": UNLIMITED,
        "max_projects": UNLIMITED,
        "max_team_members": 10,
        "max_storage_mb": 50000,  # 50GB
        "features": {
            **_NO_FEATURES,
            "advanced_reports": True,
            "collaboration": True,
            "customizations": True,
            "backup": True,
            "priority_support": True,
        },
    },
    PlanTier.ENTERPRISE: {
        "max_jobs": UNLIMITED,
        "max_projects": UNLIMITED,
        "max_team_members": UNLIMITED,
        "max_storage_mb": UNLIMITED,
        "features": dict(_ENTERPRISE_FEATURES),
    },
    PlanTier.ENTERPRISE_ANNUAL: {
        "max_jobs": UNLIMITED,
        "max_projects": UNLIMITED,
        "max_team_members": UNLIMITED,
        "max_storage_mb": UNLIMITED,
        "features": {**_ENTERPRISE_FEATURES, "training": True, "consulting": True},
    },
}


def normalize_tier(plan_tier) -> PlanTier:
    """Coerce a stored tier value to PlanTier, falling back to free."""
    if isinstance(plan_tier, PlanTier):
        return plan_tier
    if not plan_tier:
        return PlanTier.FREE
    value = str(plan_tier).lower().replace("-", "_")
    try:
        return PlanTier(value)
    except ValueError:
        return PlanTier.FREE


def resolve_tier(provider, external_plan_id: str) -> PlanTier:
    """
    Map a provider plan identifier to an internal tier.
    
    Unrecognized identifiers resolve to basic, never free: this is called on
    paid events and must not downgrade a paying user on an unmapped plan.
    """
    mapping = PROVIDER_PLAN_MAPPING.get(PaymentProvider(provider), {})
    return mapping.get(external_plan_id or "", PlanTier.BASIC)


def is_annual_plan(provider, external_plan_id: str) -> bool:
    """Check if the plan id is the provider's designated annual plan."""
    return ANNUAL_PLAN_IDS.get(PaymentProvider(provider)) == external_plan_id


def limits_for(plan_tier) -> Dict[str, Any]:
    """Get all limits for a plan tier."""
    return PLAN_LIMITS[normalize_tier(plan_tier)]


def get_resource_limit(plan_tier, resource_type: str) -> int:
    """
    Get the monthly limit for a resource type in a given plan.
    
    Returns:
        Monthly limit, or -1 for unlimited
        
    Raises:
        ValueError: If the resource type is not quota-limited
    """
    if resource_type not in RESOURCE_LIMIT_KEYS:
        raise ValueError(f"Unsupported resource type: {resource_type}")
    return limits_for(plan_tier)[RESOURCE_LIMIT_KEYS[resource_type]]


def has_unlimited_quota(plan_tier, resource_type: str) -> bool:
    """Check if the plan has unlimited quota for a resource type."""
    return get_resource_limit(plan_tier, resource_type) == UNLIMITED
