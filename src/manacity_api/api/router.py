"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from manacity_api.api.middleware import SecurityHeadersMiddleware, TraceIdMiddleware, setup_cors
from manacity_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included."""
    from manacity_api.api.v1.addresses import addresses_router
    from manacity_api.api.v1.auth import router as auth_router
    from manacity_api.api.v1.users import users_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(auth_router)
    root_router.include_router(users_router)
    root_router.include_router(addresses_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    Starlette runs the last-added middleware first, so the trace id is
    bound before any other middleware logs.
    """
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(TraceIdMiddleware, header_name=settings.trace_id_header)
