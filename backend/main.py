from dotenv import load_dotenv
load_dotenv()

import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import RelaySettings, load_settings
from cors import origin_guard_middleware
from ratelimit import FixedWindowRateLimiter, client_ip, rate_limit_middleware, sweep_forever
from routes import events, token

logger = logging.getLogger("relay")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    # Also applies under `uvicorn main:app`, where run() is never called
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())


def create_app(settings: Optional[RelaySettings] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    limiter = FixedWindowRateLimiter(
        window_ms=settings.rate_limit_window_ms,
        max_requests=settings.rate_limit_max_requests,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = asyncio.create_task(sweep_forever(limiter))
        app.state.rate_limit_sweeper = sweeper
        logger.info("Webhook relay ready on port %s", settings.port)
        logger.info("Allowed origins: %s", ", ".join(settings.allowed_origins))
        try:
            yield
        finally:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(title="Card Interaction Relay", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = limiter

    # Last added runs first: access log -> origin guard -> CORS headers -> rate limit
    app.middleware("http")(rate_limit_middleware(limiter))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.middleware("http")(origin_guard_middleware(settings.allowed_origins))

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            '%s "%s %s" %d %.1fms',
            client_ip(request),
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        # Unparseable or mistyped bodies get the same answer as missing fields
        logger.info("Rejected request body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": "Missing required parameters"})

    app.include_router(token.router)
    app.include_router(events.router)

    @app.get("/health")
    def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()


def run() -> None:
    settings = app.state.settings
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
