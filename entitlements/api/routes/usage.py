"""
Usage tracking endpoints.

Provides usage statistics and quota information for authenticated users.
"""
import logging
from fastapi import APIRouter, Depends, status, HTTPException
from sqlalchemy.orm import Session

from entitlements.db.session import get_db
from entitlements.core.auth_dependency import get_current_user
from entitlements.schemas.usage import UsageResponse
from entitlements.services.account_service import get_user_by_email
from entitlements.services.entitlement_service import get_usage_for_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/me", tags=["Usage"])


@router.get("/usage", status_code=status.HTTP_200_OK, response_model=UsageResponse)
def get_usage(
    email: str = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get current month usage statistics for the authenticated user.
    
    Returns:
    - plan: Current plan tier
    - period_key: Current month in YYYY-MM format
    - resources: limit, used, remaining, unlimited per resource type
    - features: feature flags of the plan
    """
    user = get_user_by_email(db, email)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    
    usage_data = get_usage_for_response(db, user.id)
    
    logger.debug(f"Usage summary requested: user_id={user.id}, plan={usage_data['plan']}")
    
    return usage_data
