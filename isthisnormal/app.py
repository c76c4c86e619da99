# --- imports (top of isthisnormal/app.py) ---
import json
import logging
import random
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from isthisnormal.config import Settings, load_settings
from isthisnormal.middleware.cors import CORSHeadersMiddleware
from isthisnormal.middleware.tracing import TRACE_ID_CTX_VAR, TracingMiddleware
from isthisnormal.routes import symptoms_routes
from isthisnormal.services.gateway import GatewayClient
from isthisnormal.services.rate_limit import RateLimiter, RateLimitStore, build_store
from isthisnormal.utils.exceptions import (
    ServiceError,
    handle_http_exception,
    handle_service_error,
    handle_unhandled_exception,
)


# --- logging setup ---
class JsonFormatter(logging.Formatter):
    def format(self, record):  # type: ignore[override]
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "function": record.funcName,
            "message": record.msg if isinstance(record.msg, dict) else record.getMessage(),
        }
        trace_id = TRACE_ID_CTX_VAR.get()
        if trace_id:
            payload["trace_id"] = trace_id
        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> logging.Logger:
    logger = logging.getLogger("isthisnormal")
    logger.setLevel(logging.INFO)
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    return logger


logger = configure_logging()


# --- app factory ---
def create_app(
    settings: Optional[Settings] = None,
    rate_limit_store: Optional[RateLimitStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """Build the analysis service.

    The rate-limit store lives on `app.state` for the lifetime of this app
    object; pass one in to share or replace it.
    """
    settings = settings or load_settings()
    if not settings.provider_configured:
        logger.error("AI gateway API key is not configured; /analyze-symptom will return 500")

    app = FastAPI(title="Is This Normal? analysis service", version="0.1.0")

    store = rate_limit_store or build_store(
        settings.rate_limit_storage_uri, evict_threshold=settings.rate_limit_evict_threshold
    )
    app.state.settings = settings
    app.state.rate_limiter = RateLimiter(
        store, max_requests=settings.rate_limit_max, window_s=settings.rate_limit_window_s
    )
    app.state.gateway = GatewayClient(settings, transport=transport)
    app.state.rng = rng

    # added last = outermost; CORS answers preflights before tracing/limiting
    app.add_middleware(TracingMiddleware)
    app.add_middleware(CORSHeadersMiddleware)

    app.add_exception_handler(ServiceError, handle_service_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unhandled_exception)

    app.include_router(symptoms_routes.router)
    return app


app = create_app()
