"""
Pydantic schemas for usage endpoints.
"""
from typing import Optional, List, Dict
from pydantic import BaseModel, Field


class ResourceUsageDetail(BaseModel):
    """Usage details for a single resource type."""
    resource_type: str = Field(..., description="Resource type (job, project)")
    limit: int = Field(..., description="Monthly limit (-1 for unlimited)")
    used: int = Field(..., description="Current month usage")
    remaining: Optional[int] = Field(None, description="Remaining quota (None for unlimited)")
    unlimited: bool = Field(..., description="Whether this resource has unlimited quota")


class UsageResponse(BaseModel):
    """Response schema for GET /me/usage."""
    plan: str = Field(..., description="Current plan tier")
    status: Optional[str] = Field(None, description="Subscription status, None without a record")
    period_key: str = Field(..., description="Current month in YYYY-MM format")
    resources: List[ResourceUsageDetail]
    features: Dict[str, bool]
    
    class Config:
        json_schema_extra = {
            "example": {
                "plan": "free",
                "status": None,
                "period_key": "2026-01",
                "resources": [
                    {"resource_type": "job", "limit": 5, "used": 2, "remaining": 3, "unlimited": False},
                    {"resource_type": "project", "limit": 3, "used": 0, "remaining": 3, "unlimited": False},
                ],
                "features": {"advanced_reports": False},
            }
        }
