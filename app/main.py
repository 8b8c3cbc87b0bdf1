from fastapi import FastAPI

from app.invtrack.api import api_router
from app.invtrack.core.config import settings
from app.invtrack.core.errors import setup_exception_handlers
from app.invtrack.core.logging import configure_logging
from app.invtrack.middleware.observability import ObservabilityMiddleware
from app.invtrack.middleware.tenant import TenantContextMiddleware
from app.invtrack.middleware.trace import TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(TenantContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
