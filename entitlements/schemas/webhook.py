"""
Pydantic schemas for payment provider webhooks.
"""
from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field


class WebhookData(BaseModel):
    """Subscription/payment object sent by Cakto and Kiwify."""
    id: Optional[str] = Field(None, description="Provider subscription id")
    status: Optional[str] = Field(None, description="Provider-side status")
    plan_id: Optional[str] = Field(None, description="Provider plan id (checkout link id)")
    customer_email: str = Field(..., description="Email used to match the local account")
    amount: Optional[float] = Field(None, description="Charged amount")
    currency: Optional[str] = Field(None, description="ISO currency code")
    created_at: Optional[datetime] = Field(None, description="Subscription start")
    updated_at: Optional[datetime] = Field(None, description="Last provider update")
    expires_at: Optional[datetime] = Field(None, description="Paid period or trial end")
    trial_days: Optional[int] = Field(None, ge=0, description="Trial length in days")
    metadata: Optional[Dict[str, Any]] = None


class WebhookPayload(BaseModel):
    event: str = Field(..., description="Provider event name, e.g. subscription.activated")
    data: WebhookData
