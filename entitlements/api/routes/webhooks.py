"""
Payment provider webhook endpoints.

Every method is routed to the gateway so that 405 and preflight responses
carry the same CORS headers as the real ones.
"""
from typing import Dict
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from entitlements.core import config
from entitlements.core.plan_catalog import PaymentProvider
from entitlements.core.rate_limit import InMemoryRateLimiter
from entitlements.db.session import get_db
from entitlements.services.webhook_gateway import WebhookGateway

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def build_gateways() -> Dict[PaymentProvider, WebhookGateway]:
    """One gateway, with its own rate-limit window state, per provider."""
    secrets = {
        PaymentProvider.CAKTO: config.CAKTO_WEBHOOK_KEY,
        PaymentProvider.KIWIFY: config.KIWIFY_WEBHOOK_KEY,
    }
    return {
        provider: WebhookGateway(
            provider=provider,
            secret=secret,
            rate_limiter=InMemoryRateLimiter(
                max_requests=config.WEBHOOK_RATE_LIMIT_MAX,
                window_seconds=config.WEBHOOK_RATE_LIMIT_WINDOW,
            ),
            allowed_origins=config.WEBHOOK_ALLOWED_ORIGINS,
        )
        for provider, secret in secrets.items()
    }


_gateways = build_gateways()


def get_gateways() -> Dict[PaymentProvider, WebhookGateway]:
    return _gateways


@router.api_route("/cakto", methods=WEBHOOK_METHODS)
async def cakto_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateways: Dict[PaymentProvider, WebhookGateway] = Depends(get_gateways),
):
    return await gateways[PaymentProvider.CAKTO].handle(request, db)


@router.api_route("/kiwify", methods=WEBHOOK_METHODS)
async def kiwify_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateways: Dict[PaymentProvider, WebhookGateway] = Depends(get_gateways),
):
    return await gateways[PaymentProvider.KIWIFY].handle(request, db)
