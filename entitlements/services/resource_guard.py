"""
Guarded creation of quota-limited resources.

Admission check, insert and usage increment run as one logical unit:
- a denied admission has no side effects
- an increment failure after a successful insert is logged and tolerated;
  the resource stays and is undercounted until the next period

Two concurrent creations can both pass the admission check, so a user may
end up at most one resource over the limit per racing pair.
"""
import logging
from typing import Any, Dict, Type
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from entitlements.core.exceptions import QuotaExceeded, ResourceNotFound
from entitlements.db.base import Base
from entitlements.db.models.job import Job
from entitlements.db.models.project import Project
from entitlements.services import usage_ledger
from entitlements.services.entitlement_service import check_admission, get_plan_for_user

logger = logging.getLogger(__name__)

RESOURCE_MODELS: Dict[str, Type[Base]] = {
    "job": Job,
    "project": Project,
}


def _model_for(resource_type: str) -> Type[Base]:
    try:
        return RESOURCE_MODELS[resource_type]
    except KeyError:
        raise ValueError(f"Unsupported resource type: {resource_type}")


def create_guarded(db: Session, user_id: int, resource_type: str, payload: Dict[str, Any]):
    """
    Create a resource if the user's plan admits it, then count it.
    
    Args:
        db: Database session
        user_id: Owner of the new resource
        resource_type: "job" or "project"
        payload: Column values for the new resource
        
    Returns:
        The created resource
        
    Raises:
        QuotaExceeded: Monthly limit reached; nothing was written
        SQLAlchemyError: Resource insert failed
    """
    model = _model_for(resource_type)
    plan_tier = get_plan_for_user(db, user_id)
    
    admission = check_admission(db, user_id, resource_type)
    if not admission.allowed:
        logger.warning(
            f"Quota exceeded: user_id={user_id}, resource={resource_type}, "
            f"plan={plan_tier.value}, limit={admission.limit}, used={admission.used}"
        )
        raise QuotaExceeded(resource_type, admission.limit, admission.used)
    
    resource = model(user_id=user_id, **payload)
    try:
        db.add(resource)
        db.commit()
        db.refresh(resource)
    except SQLAlchemyError:
        db.rollback()
        raise
    
    try:
        usage_ledger.increment(db, user_id, resource_type)
    except SQLAlchemyError as e:
        logger.error(
            f"Usage drift: {resource_type} {resource.id} created for user_id={user_id} "
            f"but usage increment failed: {e}",
            exc_info=True,
        )
    
    logger.info(
        f"{resource_type.capitalize()} created: id={resource.id}, user_id={user_id}, plan={plan_tier.value}"
    )
    return resource


def delete_resource(db: Session, user_id: int, resource_type: str, resource_id: int) -> None:
    """
    Delete a user's resource.
    
    Quota is consumption-based: deleting never gives usage back, so the ledger
    is not touched here.
    
    Raises:
        ResourceNotFound: No such resource for this user
    """
    model = _model_for(resource_type)
    resource = db.query(model).filter(model.id == resource_id, model.user_id == user_id).first()
    if not resource:
        raise ResourceNotFound(resource_type, resource_id)
    
    try:
        db.delete(resource)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    
    logger.info(f"{resource_type.capitalize()} deleted: id={resource_id}, user_id={user_id}")
