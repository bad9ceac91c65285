"""
FastAPI Application Entry Point

Table Orders Service - tables, a product catalog with stock counts, and
orders bundling product line-items per table.

Endpoints:
    - POST   /api/orders: Create order
    - GET    /api/orders[?date=YYYY-MM-DD]: List orders (optionally one business day)
    - GET    /api/orders/by-date?date=YYYY-MM-DD: Orders of one business day
    - GET    /api/orders/{id}: Order aggregate
    - PUT    /api/orders/{id}: Replace table, date and items
    - PUT    /api/orders/{id}/close: Close order
    - DELETE /api/orders/{id}: Delete order and restore stock
    - GET    /api/kitchen-orders: Open orders, oldest first
    - PUT    /api/orders/{id}/kitchen-status: Set kitchen status
    - /api/products, /api/tables, /api/tables/available: Catalog
    - GET    /health: System health check

Run with:
    uvicorn table_orders.main:app --port 8080
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from table_orders.core.config import Settings, get_settings, setup_logging
from table_orders.core.exceptions import OrderEngineError
from table_orders.database import Database, get_db
from table_orders.schemas import (
    ErrorResponse,
    HealthResponse,
    KitchenStatusUpdate,
    MessageResponse,
    OrderCreate,
    OrderResponse,
    ProductCreate,
    ProductResponse,
    TableCreate,
    TableResponse,
    TableUpdate,
)
from table_orders.services import (
    CatalogService,
    KitchenStatusTracker,
    OrderLifecycleManager,
    TableOccupancyResolver,
)
from table_orders.services.dates import parse_business_date

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_order_manager(db: AsyncSession = Depends(get_db)) -> OrderLifecycleManager:
    return OrderLifecycleManager(db)


def get_kitchen_tracker(db: AsyncSession = Depends(get_db)) -> KitchenStatusTracker:
    return KitchenStatusTracker(db)


def get_catalog(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_occupancy(db: AsyncSession = Depends(get_db)) -> TableOccupancyResolver:
    return TableOccupancyResolver(db)


router = APIRouter()


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@router.get("/", tags=["Root"])
async def root(request: Request) -> dict[str, str]:
    """API root with navigation links."""
    settings: Settings = request.app.state.settings
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """Verify the database is reachable."""
    settings: Settings = request.app.state.settings

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {e.__class__.__name__}"
        logger.error(f"Database health check failed: {e}")

    return HealthResponse(
        status="operational" if db_status == "healthy" else "degraded",
        database=db_status,
        environment=settings.env_mode.value,
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@router.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Create Order",
)
async def create_order(
    order_data: OrderCreate,
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> OrderResponse:
    """
    Open a new order on a table.

    Fails with 409 when the table is single-tab and already has an open
    order, and with 400 for an unknown table/product or insufficient stock.
    """
    logger.info(f"Creating order for table {order_data.table_id}")
    order = await manager.create(order_data.table_id, order_data.date, order_data.item_lines())
    return OrderResponse.model_validate(order)


@router.get(
    "/api/orders",
    response_model=List[OrderResponse],
    responses={400: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    date: Optional[str] = Query(None, description="Business day, YYYY-MM-DD"),
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> List[OrderResponse]:
    """All orders, or only those of one business day when ``date`` is given."""
    if date is None:
        orders = await manager.list_all()
    else:
        orders = await manager.list_by_date(parse_business_date(date))
    return [OrderResponse.model_validate(order) for order in orders]


@router.get(
    "/api/orders/by-date",
    response_model=List[OrderResponse],
    responses={400: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="List Orders of One Day",
)
async def list_orders_by_date(
    date: Optional[str] = Query(None, description="Business day, YYYY-MM-DD"),
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> List[OrderResponse]:
    """Orders whose business date is the given calendar day."""
    day = parse_business_date(date or "")
    orders = await manager.list_by_date(day)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> OrderResponse:
    """Get a specific order by ID."""
    return OrderResponse.model_validate(await manager.get(order_id))


@router.put(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Replace Order",
)
async def update_order(
    order_id: int,
    order_data: OrderCreate,
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> OrderResponse:
    """
    Replace table, date and items of an open order.

    Old items are given back to stock before the new ones are checked and
    taken; any failure leaves the order exactly as it was.
    """
    order = await manager.update(
        order_id,
        order_data.table_id,
        order_data.date,
        order_data.item_lines(),
    )
    return OrderResponse.model_validate(order)


@router.put(
    "/api/orders/{order_id}/close",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def close_order(
    order_id: int,
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> MessageResponse:
    """Close an open order, freeing its table."""
    order = await manager.close(order_id)
    return MessageResponse(message=f"Order for table {order.table.name} closed successfully")


@router.delete(
    "/api/orders/{order_id}",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def delete_order(
    order_id: int,
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> MessageResponse:
    """Delete an order and give its items back to stock."""
    await manager.delete(order_id)
    return MessageResponse(message="Order deleted successfully and stock restored")


# =============================================================================
# KITCHEN ENDPOINTS
# =============================================================================

@router.get(
    "/api/kitchen-orders",
    response_model=List[OrderResponse],
    tags=["Kitchen"],
)
async def kitchen_orders(
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> List[OrderResponse]:
    """Open orders, oldest first."""
    orders = await manager.list_open_by_age()
    return [OrderResponse.model_validate(order) for order in orders]


@router.put(
    "/api/orders/{order_id}/kitchen-status",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
)
async def update_kitchen_status(
    order_id: int,
    payload: KitchenStatusUpdate,
    tracker: KitchenStatusTracker = Depends(get_kitchen_tracker),
) -> OrderResponse:
    """Set the kitchen status (Waiting, Preparing or Ready) of an open order."""
    order = await tracker.advance(order_id, payload.status)
    return OrderResponse.model_validate(order)


# =============================================================================
# PRODUCT ENDPOINTS
# =============================================================================

@router.get("/api/products", response_model=List[ProductResponse], tags=["Products"])
async def list_products(catalog: CatalogService = Depends(get_catalog)) -> List[ProductResponse]:
    return [ProductResponse.model_validate(p) for p in await catalog.list_products()]


@router.post(
    "/api/products",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    tags=["Products"],
)
async def create_product(
    payload: ProductCreate,
    catalog: CatalogService = Depends(get_catalog),
) -> ProductResponse:
    product = await catalog.create_product(payload.name, payload.price, payload.stock)
    return ProductResponse.model_validate(product)


@router.get(
    "/api/products/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Products"],
)
async def get_product(
    product_id: int,
    catalog: CatalogService = Depends(get_catalog),
) -> ProductResponse:
    return ProductResponse.model_validate(await catalog.get_product(product_id))


@router.put(
    "/api/products/{product_id}",
    response_model=ProductResponse,
    responses=ERROR_RESPONSES,
    tags=["Products"],
)
async def update_product(
    product_id: int,
    payload: ProductCreate,
    catalog: CatalogService = Depends(get_catalog),
) -> ProductResponse:
    product = await catalog.update_product(product_id, payload.name, payload.price, payload.stock)
    return ProductResponse.model_validate(product)


@router.delete(
    "/api/products/{product_id}",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    tags=["Products"],
)
async def delete_product(
    product_id: int,
    catalog: CatalogService = Depends(get_catalog),
) -> MessageResponse:
    await catalog.delete_product(product_id)
    return MessageResponse(message="Product deleted successfully")


# =============================================================================
# TABLE ENDPOINTS
# =============================================================================

@router.get("/api/tables", response_model=List[TableResponse], tags=["Tables"])
async def list_tables(catalog: CatalogService = Depends(get_catalog)) -> List[TableResponse]:
    return [TableResponse.model_validate(t) for t in await catalog.list_tables()]


@router.get("/api/tables/available", response_model=List[TableResponse], tags=["Tables"])
async def list_available_tables(
    occupancy: TableOccupancyResolver = Depends(get_occupancy),
) -> List[TableResponse]:
    """Tables that can take a new order right now (a snapshot, not a reservation)."""
    return [TableResponse.model_validate(t) for t in await occupancy.list_available()]


@router.post(
    "/api/tables",
    response_model=TableResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    tags=["Tables"],
)
async def create_table(
    payload: TableCreate,
    catalog: CatalogService = Depends(get_catalog),
) -> TableResponse:
    table = await catalog.create_table(payload.name, payload.capacity, payload.single_tab)
    return TableResponse.model_validate(table)


@router.get(
    "/api/tables/{table_id}",
    response_model=TableResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Tables"],
)
async def get_table(
    table_id: int,
    catalog: CatalogService = Depends(get_catalog),
) -> TableResponse:
    return TableResponse.model_validate(await catalog.get_table(table_id))


@router.put(
    "/api/tables/{table_id}",
    response_model=TableResponse,
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def update_table(
    table_id: int,
    payload: TableUpdate,
    catalog: CatalogService = Depends(get_catalog),
) -> TableResponse:
    table = await catalog.update_table(
        table_id, payload.name, payload.capacity, payload.single_tab
    )
    return TableResponse.model_validate(table)


@router.delete(
    "/api/tables/{table_id}",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    tags=["Tables"],
)
async def delete_table(
    table_id: int,
    catalog: CatalogService = Depends(get_catalog),
) -> MessageResponse:
    await catalog.delete_table(table_id)
    return MessageResponse(message="Table deleted successfully")


# =============================================================================
# ERROR HANDLERS
# =============================================================================

async def order_engine_error_handler(request: Request, exc: OrderEngineError) -> JSONResponse:
    """Translate engine failures into the standard error body."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.error}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters are InvalidInput (400)."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "InvalidInput",
            "detail": "; ".join(messages),
        },
    )


def _global_exception_handler(settings: Settings):
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all exception handler."""
        logger.exception(f"Unhandled exception: {exc}")

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "InternalFailure",
                "detail": str(exc) if settings.debug else "An unexpected error occurred",
            },
        )

    return global_exception_handler


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application around one Database handle.

    Args:
        settings: Settings to use (defaults to get_settings())
    """
    settings = settings or get_settings()
    setup_logging(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Debug: {settings.debug}")
        logger.info("=" * 60)

        database = Database(settings)
        await database.init_models()
        app.state.database = database
        logger.info("✅ Database initialized")

        problems = settings.validate_production_config()
        if problems:
            logger.warning(f"⚠️ Configuration problems: {problems}")

        logger.info("✅ Application ready!")

        yield  # Application runs

        # Shutdown
        logger.info("Shutting down...")
        await database.dispose()
        logger.info("✅ Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Restaurant order workflow: tables, products with stock counts, and "
            "orders whose stock and table occupancy stay consistent under "
            "concurrent requests."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(OrderEngineError, order_engine_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, _global_exception_handler(settings))

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(app, host=_settings.api_host, port=_settings.api_port)
