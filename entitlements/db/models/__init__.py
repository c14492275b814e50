"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from entitlements.db.models.user import User
from entitlements.db.models.subscription import Subscription
from entitlements.db.models.usage import UsageCounter
from entitlements.db.models.job import Job
from entitlements.db.models.project import Project
from entitlements.db.models.webhook_event import WebhookEvent

__all__ = [
    "User",
    "Subscription",
    "UsageCounter",
    "Job",
    "Project",
    "WebhookEvent",
]
