"""FastAPI app for Mingzi.

Routes:
    POST /api/chinese-names/generate     name generation (anonymous or signed in)
    GET  /api/chinese-names/batches      signed-in batch history
    POST /api/creem/create-checkout      hosted checkout session
    POST /api/creem/webhook              payment events (credit grants)

Caller identity comes from the X-User-Id / X-User-Email headers set by the
authentication proxy in front of this app. No headers means anonymous.
"""

import asyncio
import json
import logging
import threading
from typing import Any

from fastapi import Body, Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..billing import (
    CheckoutClient,
    CheckoutRequest,
    resolve_checkout,
    resolve_client_ip,
    verify_webhook_signature,
)
from ..config import MingziConfig, get_config, get_secret
from ..core.models import BatchSummary, Caller, GenerationRequest
from ..errors import MingziError, QuotaExceeded
from ..service import NamingService, create_naming_service
from ..storage import NamingDB, open_naming_db

logger = logging.getLogger(__name__)

GENERATE_FAILURE_MESSAGE = "Failed to generate names. Please try again."
SIGNATURE_HEADER = "creem-signature"
DISCONNECT_POLL_SECONDS = 0.5


def _error_response(exc: MingziError) -> JSONResponse:
    body: dict[str, Any] = {"error": exc.message}
    if isinstance(exc, QuotaExceeded):
        body["rateLimited"] = True
    return JSONResponse(body, status_code=exc.status_code)


def get_caller(
    request: Request,
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Caller:
    return Caller(
        user_id=(x_user_id or "").strip() or None,
        email=(x_user_email or "").strip() or None,
        client_ip=resolve_client_ip(request.headers),
    )


async def watch_disconnect(request: Request, cancel_event: threading.Event) -> None:
    """Set `cancel_event` once the client has gone away."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling generation")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


def create_app(
    config: MingziConfig | None = None,
    service: NamingService | None = None,
    checkout: CheckoutClient | None = None,
    db: NamingDB | None = None,
) -> FastAPI:
    """Build the app.

    Collaborators not passed in are built from config on first use, so
    importing this module never opens the database or needs API keys.
    The database is opened on its own, without a generation provider, so
    payment webhooks work even when no LLM key is configured.
    """
    app = FastAPI(
        title="Mingzi API",
        description="Personalized Chinese name generation",
        version=__version__,
    )
    app.state.config = config
    app.state.service = service
    app.state.checkout = checkout
    app.state.db = db if db is not None else (service.db if service is not None else None)

    def _config() -> MingziConfig:
        if app.state.config is None:
            app.state.config = get_config()
        return app.state.config

    def get_db() -> NamingDB:
        if app.state.db is None:
            app.state.db = open_naming_db(_config().db_path_resolved)
        return app.state.db

    def get_service() -> NamingService:
        if app.state.service is None:
            app.state.service = create_naming_service(_config(), db=get_db())
        return app.state.service

    def get_checkout() -> CheckoutClient:
        if app.state.checkout is None:
            app.state.checkout = CheckoutClient(_config().payments)
        return app.state.checkout

    @app.exception_handler(MingziError)
    async def _mingzi_error(request: Request, exc: MingziError) -> JSONResponse:
        return _error_response(exc)

    # =========================================================================
    # Names
    # =========================================================================

    @app.post("/api/chinese-names/generate")
    async def generate_names(
        http_request: Request,
        payload: dict[str, Any] | None = Body(default=None),
        caller: Caller = Depends(get_caller),
        service: NamingService = Depends(get_service),
    ):
        """Generate a batch of names.

        Generation runs in a worker thread; a client disconnect stops it
        before the next name is started.
        """
        request = GenerationRequest.from_payload(payload or {})
        cancel_event = threading.Event()
        watcher = asyncio.create_task(watch_disconnect(http_request, cancel_event))
        try:
            response = await run_in_threadpool(
                service.generate, request, caller, cancel_event
            )
        except MingziError:
            raise
        except Exception:
            logger.exception("Chinese name generation failed")
            return JSONResponse({"error": GENERATE_FAILURE_MESSAGE}, status_code=500)
        finally:
            watcher.cancel()
        return response.model_dump(by_alias=True)

    @app.get("/api/chinese-names/batches")
    def list_batches(
        limit: int = 20,
        caller: Caller = Depends(get_caller),
        db: NamingDB = Depends(get_db),
    ):
        """Batches owned by the caller, newest first, with their names."""
        if not caller.authenticated:
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        batches = []
        for batch in db.list_batches(caller.user_id, limit=limit):
            summary = BatchSummary.from_batch(batch).model_dump(by_alias=True)
            summary["names"] = [
                row.model_dump() for row in db.get_batch_names(batch.id)
            ]
            batches.append(summary)
        return {"batches": batches, "total": len(batches)}

    # =========================================================================
    # Payments
    # =========================================================================

    @app.post("/api/creem/create-checkout")
    def create_checkout(
        body: CheckoutRequest | None = Body(default=None),
        caller: Caller = Depends(get_caller),
        checkout_client: CheckoutClient = Depends(get_checkout),
    ):
        """Open a hosted checkout session for the caller."""
        if not caller.authenticated:
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        selection = resolve_checkout(body or CheckoutRequest())
        url = checkout_client.create_session(selection, caller.email, caller.user_id)
        return {"checkoutUrl": url}

    @app.post("/api/creem/webhook")
    async def payment_webhook(request: Request):
        """Verify a payment event and grant purchased credits."""
        raw = await request.body()
        secret = get_secret(_config().payments.webhook_secret_env)
        if not verify_webhook_signature(raw, request.headers.get(SIGNATURE_HEADER), secret):
            logger.warning("Rejected webhook with invalid signature")
            return JSONResponse({"error": "Invalid signature"}, status_code=401)

        try:
            event = json.loads(raw)
        except json.JSONDecodeError:
            return JSONResponse({"error": "Invalid JSON payload"}, status_code=400)
        if not isinstance(event, dict):
            return JSONResponse({"error": "Invalid JSON payload"}, status_code=400)

        granted = _apply_payment_event(event, get_db())
        return {"received": True, "creditsGranted": granted}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app


def payment_event_key(event: dict[str, Any]) -> str | None:
    """Key identifying one purchase across webhook redeliveries."""
    obj = event.get("object") or {}
    if isinstance(obj, dict) and obj.get("id"):
        return f"checkout:{obj['id']}"
    if event.get("id"):
        return f"event:{event['id']}"
    return None


def _apply_payment_event(event: dict[str, Any], db: NamingDB) -> int:
    """Grant credits for a completed credits checkout. Returns credits granted.

    Redelivered events grant nothing.
    """
    event_type = event.get("eventType") or event.get("type")
    if event_type != "checkout.completed":
        logger.info("Ignoring payment event %s", event_type)
        return 0

    obj = event.get("object") or {}
    metadata = obj.get("metadata") or {}
    if metadata.get("product_type") != "credits":
        return 0

    user_id = metadata.get("user_id")
    try:
        credits = int(metadata.get("credits") or 0)
    except (TypeError, ValueError):
        credits = 0
    if not user_id or credits <= 0:
        logger.warning("Completed checkout without usable credit metadata: %s", metadata)
        return 0

    customer = obj.get("customer") or {}
    event_key = payment_event_key(event)
    if event_key is None:
        logger.warning("Completed checkout without an id, cannot deduplicate")
    balance = db.grant_credits(
        user_id,
        credits,
        description="credits_purchase",
        metadata={"checkout_id": obj.get("id"), "event_id": event.get("id")},
        email=customer.get("email") if isinstance(customer, dict) else None,
        event_key=event_key,
    )
    if balance is None:
        logger.info("Payment event %s already processed", event_key)
        return 0
    logger.info("Granted %d credits to %s (balance %d)", credits, user_id, balance)
    return credits


app = create_app()
