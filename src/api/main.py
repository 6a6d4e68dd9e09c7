"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI
from sqlalchemy import text

from infrastructure.database.dependencies import close_database_connections
from infrastructure.logging import configure_logging
from infrastructure.version import __version__
from shared_kernel.middleware import TenantContextMiddleware
from shared_kernel.routing_policy import OperationKind
from tenancy.dependencies import close_tenancy_runtime, get_routing_data_source
from tenancy.infrastructure.routing_data_source import RoutingDataSource


@asynccontextmanager
async def tenancy_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Tenant pools and identity provider client (created lazily, closed on
      shutdown)
    - Control-plane engine disposal
    """
    configure_logging()

    yield

    await close_tenancy_runtime()
    await close_database_connections()


app = FastAPI(
    title="Tenancy Core API",
    description="Tenant provisioning and per-tenant database routing",
    version=__version__,
    lifespan=tenancy_lifespan,
)

# Binds the authenticated tenant claim for the duration of each request
app.add_middleware(TenantContextMiddleware)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/health/db")
async def health_db(
    routing: Annotated[RoutingDataSource, Depends(get_routing_data_source)],
) -> dict:
    """Check control-plane database connection health.

    Health checks always route to the control plane, whatever tenant is
    bound to the request.
    """
    try:
        async with routing.connect(OperationKind.HEALTH_CHECK) as connection:
            result = await connection.execute(text("SELECT 1"))
            is_healthy = result.scalar() == 1

        return {
            "status": "ok" if is_healthy else "unhealthy",
            "connected": is_healthy,
        }
    except Exception as e:
        return {
            "status": "error",
            "connected": False,
            "error": str(e),
        }
