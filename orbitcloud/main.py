import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.middleware.sessions import SessionMiddleware

from orbitcloud.api import auth, orders, products
from orbitcloud.api.responses import error_response
from orbitcloud.core.config import Settings, settings as default_settings
from orbitcloud.core.errors import InvalidInput, OrbitError
from orbitcloud.core.log import setup_logging
from orbitcloud.db.store import JsonStore
from orbitcloud.repositories.product_repo import Catalog, load_catalog
from orbitcloud.services.orders import OrderService
from orbitcloud.services.pakasir import PakasirClient
from orbitcloud.services.pterodactyl import PterodactylClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    store: JsonStore | None = None,
    catalog: Catalog | None = None,
    gateway: PakasirClient | None = None,
    panel: PterodactylClient | None = None,
    clock=None,
) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    store = store or JsonStore(settings.DB_PATH)
    catalog = catalog or load_catalog(settings.CATALOG_PATH)
    gateway = gateway or PakasirClient(
        settings.PAKASIR_BASE_URL,
        settings.PAKASIR_PROJECT_SLUG,
        settings.PAKASIR_API_KEY,
        timeout=settings.PAKASIR_TIMEOUT,
    )
    panel = panel or PterodactylClient(
        settings.PTERODACTYL_URL,
        settings.PTERODACTYL_API_KEY,
        settings.PTERODACTYL_NODE_ID,
        settings.PTERODACTYL_EGGS,
        timeout=settings.PTERODACTYL_TIMEOUT,
    )
    service_kwargs = {"clock": clock} if clock else {}
    order_service = OrderService(
        store,
        catalog,
        gateway,
        panel,
        sandbox=settings.PAKASIR_SANDBOX,
        settled_statuses=settings.settled_statuses,
        order_ttl=settings.ORDER_TTL_SECONDS,
        cancel_min_wait=settings.CANCEL_MIN_WAIT_SECONDS,
        **service_kwargs,
    )

    # --- Lifespan ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("OrbitCloud backend starting (env=%s, sandbox=%s, db=%s)",
                    settings.APP_ENV, settings.PAKASIR_SANDBOX, settings.DB_PATH)
        yield
        await gateway.aclose()
        await panel.aclose()

    # --- App ---
    app = FastAPI(title="OrbitCloud Hosting Store API", lifespan=lifespan)
    app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)

    app.state.settings = settings
    app.state.store = store
    app.state.catalog = catalog
    app.state.orders = order_service

    @app.exception_handler(OrbitError)
    async def orbit_error_handler(request: Request, exc: OrbitError):
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) for err in exc.errors())
        return error_response(InvalidInput(f"Invalid request: {fields or 'body'}"))

    @app.get("/")
    async def root():
        return {"status": "ok"}

    app.include_router(auth.router)
    app.include_router(products.router)
    app.include_router(orders.router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("orbitcloud.main:app", host="0.0.0.0", port=default_settings.PORT)
