"""
Webhook gateway for payment providers.

One gateway instance per provider. Each request runs through:
method check -> origin/CORS -> rate limit -> shared secret -> JSON parse ->
user lookup -> dispatch to the reconciler, and every stage can end the
request with its own status code.

Authentication is a static shared secret compared against a header, not a
signature over the body: a captured request can be replayed. Replays are
harmless to state because reconciliation is idempotent.
"""
import hmac
import json
import logging
from typing import Callable, Dict, Iterable, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from entitlements.core.logging_config import sanitize_log_data
from entitlements.core.plan_catalog import PaymentProvider
from entitlements.core.rate_limit import RateLimiter, get_client_ip
from entitlements.db.models.user import User
from entitlements.db.models.webhook_event import WebhookEvent
from entitlements.schemas.webhook import WebhookPayload
from entitlements.services import subscription_reconciler
from entitlements.services.account_service import get_user_by_email
from entitlements.services.event_catalog import EventCategory, normalize_event

logger = logging.getLogger(__name__)

ALLOWED_HEADERS = "authorization, x-client-info, apikey, content-type, x-webhook-key"
ALLOWED_METHODS = "POST, OPTIONS"


def record_webhook_event(
    db: Session,
    provider: PaymentProvider,
    payload: WebhookPayload,
    category: Optional[EventCategory],
    user_id: int,
    raw_payload: Dict,
) -> WebhookEvent:
    """Persist the raw audit copy of a dispatched webhook."""
    audit = WebhookEvent(
        provider=provider.value,
        event=payload.event,
        category=category.value if category else None,
        user_id=user_id,
        external_subscription_id=payload.data.id,
        processed=category is not None,
        payload=raw_payload,
    )
    db.add(audit)
    db.commit()
    return audit


class WebhookGateway:
    """Authenticates and dispatches webhooks from a single payment provider."""

    def __init__(
        self,
        provider,
        secret: str,
        rate_limiter: RateLimiter,
        allowed_origins: Iterable[str] = (),
        cors_enabled: bool = True,
        user_lookup: Callable[[Session, Optional[str]], Optional[User]] = get_user_by_email,
    ):
        self.provider = PaymentProvider(provider)
        self.secret = secret or ""
        self.rate_limiter = rate_limiter
        self.allowed_origins = set(allowed_origins)
        self.cors_enabled = cors_enabled
        self.user_lookup = user_lookup

    def cors_headers(self, request: Request) -> Dict[str, str]:
        """Reflect the Origin only when allow-listed; otherwise leave Allow-Origin empty."""
        if not self.cors_enabled:
            return {}
        origin = request.headers.get("origin", "")
        return {
            "Access-Control-Allow-Origin": origin if origin in self.allowed_origins else "",
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Vary": "Origin",
        }

    def is_authorized(self, request: Request) -> bool:
        if not self.secret:
            logger.error(f"Webhook secret for {self.provider.value} is not configured; rejecting")
            return False
        provided = request.headers.get("x-webhook-key") or request.headers.get("authorization") or ""
        return hmac.compare_digest(provided.encode(), self.secret.encode())

    async def handle(self, request: Request, db: Session) -> Response:
        headers = self.cors_headers(request)

        if request.method == "OPTIONS":
            return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)

        if request.method != "POST":
            return PlainTextResponse(
                "Method Not Allowed",
                status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
                headers={**headers, "Allow": ALLOWED_METHODS},
            )

        client_ip = get_client_ip(request)
        if not self.rate_limiter.hit(f"{self.provider.value}:{client_ip}"):
            return PlainTextResponse(
                "Too Many Requests",
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={**headers, "Retry-After": str(self.rate_limiter.window_seconds)},
            )

        if not self.is_authorized(request):
            logger.warning(
                f"Unauthorized {self.provider.value} webhook from {client_ip}: "
                f"{sanitize_log_data(dict(request.headers))}"
            )
            return PlainTextResponse("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED, headers=headers)

        try:
            raw_payload = json.loads(await request.body())
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning(f"Invalid JSON in {self.provider.value} webhook from {client_ip}")
            return PlainTextResponse("Invalid JSON", status_code=status.HTTP_400_BAD_REQUEST, headers=headers)

        try:
            payload = WebhookPayload.model_validate(raw_payload)
        except ValidationError as e:
            logger.warning(f"Invalid {self.provider.value} webhook payload: {e.errors()}")
            return PlainTextResponse("Invalid payload", status_code=status.HTTP_400_BAD_REQUEST, headers=headers)

        logger.info(
            f"Webhook received: provider={self.provider.value}, event={payload.event}, "
            f"subscription_id={payload.data.id}, plan_id={payload.data.plan_id}"
        )

        try:
            user_id = await run_in_threadpool(self.dispatch, db, payload, raw_payload)
        except Exception as e:
            db.rollback()
            logger.error(f"Error processing {self.provider.value} webhook: {e}", exc_info=True)
            return JSONResponse(
                {"success": False, "error": str(e)},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                headers=headers,
            )

        if user_id is None:
            return PlainTextResponse("User not found", status_code=status.HTTP_404_NOT_FOUND, headers=headers)

        return JSONResponse(
            {
                "success": True,
                "message": f"Webhook {self.provider.value} processed",
                "event": payload.event,
                "user_id": user_id,
            },
            headers=headers,
        )

    def dispatch(self, db: Session, payload: WebhookPayload, raw_payload: Dict) -> Optional[int]:
        """
        Resolve the user and reconcile. Returns the user id, or None if no account matches.

        No rollback of partial progress: the subscription write commits before
        the audit row is written.
        """
        user = self.user_lookup(db, payload.data.customer_email)
        if not user:
            logger.warning(
                f"User not found for {self.provider.value} webhook: {payload.data.customer_email}"
            )
            return None

        category = normalize_event(self.provider, payload.event)
        subscription_reconciler.apply_event(
            db,
            user_id=user.id,
            provider=self.provider,
            event=payload.event,
            category=category,
            data=payload.data,
            raw_payload=raw_payload,
        )
        record_webhook_event(db, self.provider, payload, category, user.id, raw_payload)
        return user.id
