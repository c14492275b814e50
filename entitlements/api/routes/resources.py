"""
Quota-limited resource endpoints (jobs, projects).

Creation goes through the resource guard; deletion never refunds usage.
"""
import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from entitlements.core.auth_dependency import get_current_user
from entitlements.core.exceptions import QuotaExceeded, ResourceNotFound
from entitlements.db.session import get_db
from entitlements.schemas.resource import JobCreate, JobResponse, ProjectCreate, ProjectResponse
from entitlements.services.account_service import get_user_by_email
from entitlements.services.resource_guard import create_guarded, delete_resource

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Resources"])


def _user_not_found() -> JSONResponse:
    return JSONResponse({"error": "User not found"}, status_code=status.HTTP_404_NOT_FOUND)


def _create(db: Session, email: str, resource_type: str, payload: dict, response_model):
    user = get_user_by_email(db, email)
    if not user:
        return _user_not_found()
    
    try:
        resource = create_guarded(db, user.id, resource_type, payload)
    except QuotaExceeded as e:
        return JSONResponse(
            {"error": "Limit exceeded", "resource_type": resource_type, "limit": e.limit, "used": e.used},
            status_code=status.HTTP_403_FORBIDDEN,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to create {resource_type}: {e}", exc_info=True)
        return JSONResponse(
            {"error": f"Failed to create {resource_type}", "details": str(e)},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    
    return JSONResponse(
        {"success": True, "resource": response_model.model_validate(resource).model_dump(mode="json")},
        status_code=status.HTTP_201_CREATED,
    )


def _delete(db: Session, email: str, resource_type: str, resource_id: int):
    user = get_user_by_email(db, email)
    if not user:
        return _user_not_found()
    
    try:
        delete_resource(db, user.id, resource_type, resource_id)
    except ResourceNotFound:
        return JSONResponse(
            {"error": f"{resource_type.capitalize()} not found"},
            status_code=status.HTTP_404_NOT_FOUND,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to delete {resource_type} {resource_id}: {e}", exc_info=True)
        return JSONResponse(
            {"error": f"Failed to delete {resource_type}", "details": str(e)},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    
    return {"success": True, "message": f"{resource_type.capitalize()} deleted"}


@router.post("/jobs", status_code=status.HTTP_201_CREATED)
def create_job(
    job_data: JobCreate,
    email: str = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a job if the monthly job quota of the user's plan allows it."""
    return _create(db, email, "job", job_data.model_dump(), JobResponse)


@router.delete("/jobs/{job_id}")
def delete_job(
    job_id: int,
    email: str = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _delete(db, email, "job", job_id)


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_project(
    project_data: ProjectCreate,
    email: str = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a project if the monthly project quota of the user's plan allows it."""
    return _create(db, email, "project", project_data.model_dump(), ProjectResponse)


@router.delete("/projects/{project_id}")
def delete_project(
    project_id: int,
    email: str = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _delete(db, email, "project", project_id)
