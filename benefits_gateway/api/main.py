"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from benefits_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware
from benefits_gateway.api.v1 import billing, companies, plans, subscriptions, wallets
from benefits_gateway.config import settings
from benefits_gateway.infrastructure.observability.logging import setup_logging

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Benefits Gateway",
        description="Employer healthcare subscriptions, onboarding and wallet billing",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added runs first
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(plans.router, prefix="/v1", tags=["plans"])
    app.include_router(subscriptions.router, prefix="/v1", tags=["subscriptions"])
    app.include_router(billing.router, prefix="/v1", tags=["billing"])
    app.include_router(companies.router, prefix="/v1", tags=["companies"])
    app.include_router(wallets.router, prefix="/v1", tags=["wallets"])

    return app


app = create_app()
