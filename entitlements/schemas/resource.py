"""
Pydantic schemas for quota-limited resources.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class JobCreate(BaseModel):
    """Schema for creating a new job."""
    title: str = Field(..., description="Job title", min_length=1, max_length=255)
    client: Optional[str] = Field(None, description="Client name", max_length=255)
    description: Optional[str] = Field(None, description="Job description")
    status: str = Field(default="pendente", description="Workflow status", max_length=50)
    value: Optional[float] = Field(None, ge=0, description="Job value")


class JobResponse(BaseModel):
    id: int
    user_id: int
    title: str
    client: Optional[str] = None
    description: Optional[str] = None
    status: str
    value: Optional[float] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""
    name: str = Field(..., description="Project name", min_length=1, max_length=255)
    description: Optional[str] = Field(None, description="Project description")


class ProjectResponse(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
