"""
FastAPI Application Entry Point

Food Truck Ordering Service - Hybrid Architecture
Supports both Mock services (development) and Real APIs (production).

Endpoints:
    - GET  /api/me, POST /api/me/signup: profile resolution and first login
    - /api/account, /api/account/users: business account and its members
    - /api/products, /api/customers, /api/locations: account records
    - /api/orders: order lifecycle (create, status, payment)
    - GET  /api/dashboard: today / last 7 days / all-time summaries
    - GET  /api/trucks, GET /api/menu, POST /api/public/orders: customer side
    - POST /api/reports/orders-export: background Excel export
    - GET  /health: System health check
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import redis

from foodtruck.core.config import Settings, get_settings, setup_logging
from foodtruck.core.exceptions import FoodTruckError, ValidationError
from foodtruck.celery_worker import celery_app, configure_celery
from foodtruck.database import create_engine, create_session_maker, get_db, init_db
from foodtruck.dependencies import (
    get_account_context,
    get_app_settings,
    get_current_identity,
    get_geo_service,
    get_manager_context,
    get_notification_service,
    get_optional_identity,
    get_payment_service,
)
from foodtruck.models import (
    BusinessAccount,
    Customer,
    Order,
    OrderChannel,
    OrderStatus,
    new_id,
)
from foodtruck.schemas import (
    AccountResponse,
    AccountUpdate,
    AccountUserInvite,
    AccountUserResponse,
    CustomerCreate,
    CustomerResponse,
    DashboardResponse,
    ErrorResponse,
    ExportResponse,
    HealthResponse,
    InventoryEventCreate,
    InventoryEventRecorded,
    InventoryEventResponse,
    LocationCreate,
    LocationPingCreate,
    LocationPingResponse,
    LocationResponse,
    MeResponse,
    MenuResponse,
    MessageResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    PaymentRequest,
    ProductCreate,
    ProductResponse,
    ProductSalesResponse,
    ProductUpdate,
    ProfileResponse,
    PublicOrderCreate,
    SignupRequest,
    StatusUpdate,
    SupplierTransactionCreate,
    SupplierTransactionResponse,
    TruckListingResponse,
)
from foodtruck.services import catalog
from foodtruck.services.analytics import build_dashboard
from foodtruck.services.excel_manager import ExcelManager
from foodtruck.services.geo import BaseGeoService, create_geo_service
from foodtruck.services.identity import Identity, create_identity_service
from foodtruck.services.notifications import BaseNotificationService, create_notification_service
from foodtruck.services.orders import (
    EMPTY_ORDER_MESSAGE,
    advance_order_status,
    create_order_with_line_items,
    filter_requested_quantities,
    get_order,
    list_orders,
    price_line_items_from_menu,
    record_payment,
)
from foodtruck.services.payment import BasePaymentService, create_payment_service
from foodtruck.services.profiles import AccountContext, complete_signup, load_account_context, resolve_profile
from foodtruck.services.trucks import browse_trucks
from foodtruck.tasks import export_account_orders

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}

router = APIRouter()


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    settings: Settings = app.state.settings

    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info(f"   Business time zone: {settings.business_timezone}")
    logger.info("=" * 60)

    await init_db(app.state.engine)
    logger.info("Database initialized")

    logger.info(f"Payment Service: {app.state.payment_service.provider_name}")
    logger.info(f"Geo Service: {app.state.geo_service.provider_name}")
    logger.info(f"Notification Service: {app.state.notification_service.provider_name}")
    logger.info(f"Identity Service: {app.state.identity_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield

    logger.info("Shutting down...")
    await app.state.engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@router.get("/", tags=["Root"])
async def root(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    """API root with navigation links."""
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
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except redis.RedisError as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    services = {
        "payment_service": request.app.state.payment_service,
        "geo_service": request.app.state.geo_service,
        "notification_service": request.app.state.notification_service,
        "identity_service": request.app.state.identity_service,
    }
    service_status = {
        name: "healthy" if await service.health_check() else "unhealthy"
        for name, service in services.items()
    }

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, *service_status.values()]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        timestamp=datetime.now(timezone.utc),
        **service_status,
    )


# =============================================================================
# PROFILE ENDPOINTS
# =============================================================================

async def _me_response(db: AsyncSession, identity: Identity, profile) -> MeResponse:
    account = None
    if profile is not None and profile.primary_account_id:
        account = await db.get(BusinessAccount, profile.primary_account_id)
    return MeResponse(
        subject_id=identity.subject_id,
        email=identity.email,
        display_name=identity.display_name,
        needs_signup=profile is None,
        profile=ProfileResponse.model_validate(profile) if profile else None,
        account=AccountResponse.model_validate(account) if account else None,
    )


@router.get("/api/me", response_model=MeResponse, responses=ERROR_RESPONSES, tags=["Profile"])
async def get_me(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> MeResponse:
    """Resolve the caller's profile. ``needs_signup`` is set on first login."""
    profile = await resolve_profile(db, identity)
    return await _me_response(db, identity, profile)


@router.post("/api/me/signup", response_model=MeResponse, responses=ERROR_RESPONSES, tags=["Profile"])
async def signup(
    data: SignupRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> MeResponse:
    """Complete first login as a customer, business owner or staff member."""
    profile = await complete_signup(
        db,
        identity,
        kind=data.kind,
        business_name=data.business_name,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
    )
    return await _me_response(db, identity, profile)


# =============================================================================
# ACCOUNT ENDPOINTS
# =============================================================================

@router.get("/api/account", response_model=AccountResponse, responses=ERROR_RESPONSES, tags=["Account"])
async def get_account(context: AccountContext = Depends(get_account_context)) -> AccountResponse:
    return AccountResponse.model_validate(context.account)


@router.patch("/api/account", response_model=AccountResponse, responses=ERROR_RESPONSES, tags=["Account"])
async def update_account(
    data: AccountUpdate,
    context: AccountContext = Depends(get_manager_context),
    db: AsyncSession = Depends(get_db),
) -> AccountResponse:
    account = await catalog.update_account(db, context.account_id, data.model_dump(exclude_unset=True))
    return AccountResponse.model_validate(account)


@router.get(
    "/api/account/users",
    response_model=list[AccountUserResponse],
    responses=ERROR_RESPONSES,
    tags=["Account"],
)
async def list_account_users(
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> list[AccountUserResponse]:
    users = await catalog.list_account_users(db, context.account_id)
    return [AccountUserResponse.model_validate(u) for u in users]


@router.post(
    "/api/account/users",
    response_model=AccountUserResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Account"],
)
async def invite_account_user(
    data: AccountUserInvite,
    context: AccountContext = Depends(get_manager_context),
    db: AsyncSession = Depends(get_db),
) -> AccountUserResponse:
    """Invite a staff member. They join by signing up as staff with this email."""
    user = await catalog.invite_account_user(db, context.account_id, **data.model_dump())
    return AccountUserResponse.model_validate(user)


# =============================================================================
# PRODUCT ENDPOINTS
# =============================================================================

@router.post(
    "/api/products",
    response_model=ProductResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def create_product(
    data: ProductCreate,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await catalog.create_product(db, context.account_id, **data.model_dump())
    return ProductResponse.model_validate(product)


@router.get("/api/products", response_model=list[ProductResponse], responses=ERROR_RESPONSES, tags=["Menu"])
async def list_products(
    active_only: bool = Query(False),
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> list[ProductResponse]:
    products = await catalog.list_products(db, context.account_id, active_only=active_only)
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/api/products/{product_id}", response_model=ProductResponse, responses=ERROR_RESPONSES, tags=["Menu"])
async def get_product(
    product_id: str,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await catalog.get_product(db, context.account_id, product_id)
    return ProductResponse.model_validate(product)


@router.patch("/api/products/{product_id}", response_model=ProductResponse, responses=ERROR_RESPONSES, tags=["Menu"])
async def update_product(
    product_id: str,
    data: ProductUpdate,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await catalog.update_product(
        db, context.account_id, product_id, data.model_dump(exclude_unset=True)
    )
    return ProductResponse.model_validate(product)


# =============================================================================
# INVENTORY & SUPPLIER ENDPOINTS
# =============================================================================

@router.post(
    "/api/products/{product_id}/inventory-events",
    response_model=InventoryEventRecorded,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Inventory"],
)
async def record_inventory_event(
    product_id: str,
    data: InventoryEventCreate,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> InventoryEventRecorded:
    """Record a stock movement; the product's current stock moves with it."""
    event, product = await catalog.record_inventory_event(
        db, context.account_id, product_id, **data.model_dump()
    )
    return InventoryEventRecorded(
        event=InventoryEventResponse.model_validate(event),
        current_stock=product.current_stock,
    )


@router.get(
    "/api/inventory-events",
    response_model=list[InventoryEventResponse],
    responses=ERROR_RESPONSES,
    tags=["Inventory"],
)
async def list_inventory_events(
    product_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> list[InventoryEventResponse]:
    events = await catalog.list_inventory_events(db, context.account_id, product_id=product_id, limit=limit)
    return [InventoryEventResponse.model_validate(e) for e in events]


@router.post(
    "/api/supplier-transactions",
    response_model=SupplierTransactionResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Inventory"],
)
async def create_supplier_transaction(
    data: SupplierTransactionCreate,
    context: AccountContext = Depends(get_manager_context),
    db: AsyncSession = Depends(get_db),
) -> SupplierTransactionResponse:
    """Record a supplier purchase. Owners and managers only."""
    transaction = await catalog.create_supplier_transaction(db, context.account_id, **data.model_dump())
    return SupplierTransactionResponse.model_validate(transaction)


@router.get(
    "/api/supplier-transactions",
    response_model=list[SupplierTransactionResponse],
    responses=ERROR_RESPONSES,
    tags=["Inventory"],
)
async def list_supplier_transactions(
    context: AccountContext = Depends(get_manager_context),
    db: AsyncSession = Depends(get_db),
) -> list[SupplierTransactionResponse]:
    transactions = await catalog.list_supplier_transactions(db, context.account_id)
    return [SupplierTransactionResponse.model_validate(t) for t in transactions]


# =============================================================================
# CUSTOMER ENDPOINTS
# =============================================================================

@router.post(
    "/api/customers",
    response_model=CustomerResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Customers"],
)
async def create_customer(
    data: CustomerCreate,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    customer = await catalog.create_customer(db, context.account_id, **data.model_dump())
    return CustomerResponse.model_validate(customer)


@router.get("/api/customers", response_model=list[CustomerResponse], responses=ERROR_RESPONSES, tags=["Customers"])
async def list_customers(
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> list[CustomerResponse]:
    customers = await catalog.list_customers(db, context.account_id)
    return [CustomerResponse.model_validate(c) for c in customers]


@router.get(
    "/api/customers/{customer_id}",
    response_model=CustomerResponse,
    responses=ERROR_RESPONSES,
    tags=["Customers"],
)
async def get_customer(
    customer_id: str,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    customer = await catalog.get_customer(db, context.account_id, customer_id)
    return CustomerResponse.model_validate(customer)


# =============================================================================
# LOCATION ENDPOINTS
# =============================================================================

@router.post(
    "/api/locations",
    response_model=LocationResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Locations"],
)
async def create_location(
    data: LocationCreate,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
    geo_service: BaseGeoService = Depends(get_geo_service),
) -> LocationResponse:
    """Save a truck location. Coordinates are geocoded from the address when omitted."""
    location = await catalog.create_location(
        db, context.account_id, geo_service=geo_service, **data.model_dump()
    )
    return LocationResponse.model_validate(location)


@router.get("/api/locations", response_model=list[LocationResponse], responses=ERROR_RESPONSES, tags=["Locations"])
async def list_locations(
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> list[LocationResponse]:
    locations = await catalog.list_locations(db, context.account_id)
    return [LocationResponse.model_validate(loc) for loc in locations]


@router.post(
    "/api/locations/pings",
    response_model=LocationPingResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Locations"],
)
async def record_location_ping(
    data: LocationPingCreate,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> LocationPingResponse:
    ping = await catalog.record_location_ping(db, context.account_id, **data.model_dump())
    return LocationPingResponse.model_validate(ping)


@router.get(
    "/api/locations/pings",
    response_model=list[LocationPingResponse],
    responses=ERROR_RESPONSES,
    tags=["Locations"],
)
async def list_location_pings(
    limit: int = Query(20, ge=1, le=200),
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> list[LocationPingResponse]:
    pings = await catalog.list_location_pings(db, context.account_id, limit=limit)
    return [LocationPingResponse.model_validate(p) for p in pings]


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@router.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Create Order",
)
async def create_order(
    data: OrderCreate,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> OrderCreateResponse:
    """
    Create an order entered by the business.

    Lines without a ``unit_price`` are charged at the current menu price.
    """
    account_id = context.account_id
    if not data.items:
        raise ValidationError(EMPTY_ORDER_MESSAGE, error="empty_order")
    if data.customer_id:
        await catalog.get_customer(db, account_id, data.customer_id)
    if data.location_id:
        await catalog.get_location(db, account_id, data.location_id)

    items = await price_line_items_from_menu(
        db, account_id, [(line.product_id, line.quantity) for line in data.items]
    )
    for item, line in zip(items, data.items):
        if line.unit_price is not None:
            item.unit_price = line.unit_price
        item.special_instructions = line.special_instructions

    order = await create_order_with_line_items(
        db,
        account_id,
        items,
        customer_id=data.customer_id,
        channel=data.channel or OrderChannel(settings.default_order_channel),
        location_id=data.location_id,
        notes=data.notes,
        currency=settings.default_currency,
        prep_time_estimate_seconds=data.prep_time_estimate_seconds,
    )
    return OrderCreateResponse(
        message="Order created",
        order=OrderResponse.model_validate(order),
    )


@router.get(
    "/api/orders",
    response_model=OrderListResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="List Orders",
)
async def list_account_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Orders of the caller's account, newest first."""
    count_query = select(func.count(Order.id)).where(Order.account_id == context.account_id)
    if status is not None:
        count_query = count_query.where(Order.status == status)
    total = (await db.execute(count_query)).scalar() or 0

    orders = await list_orders(db, context.account_id, status=status, limit=limit, offset=skip)
    return OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(order) for order in orders],
    )


@router.get("/api/orders/{order_id}", response_model=OrderResponse, responses=ERROR_RESPONSES, tags=["Orders"])
async def get_account_order(
    order_id: str,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Get one order with its line items."""
    order = await get_order(db, context.account_id, order_id)
    return OrderResponse.model_validate(order)


@router.get(
    "/api/orders/{order_id}/messages",
    response_model=list[MessageResponse],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def list_order_messages(
    order_id: str,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> list[MessageResponse]:
    """Notifications sent about one order, newest first."""
    await get_order(db, context.account_id, order_id)
    messages = await catalog.list_messages(db, context.account_id, order_id=order_id)
    return [MessageResponse.model_validate(m) for m in messages]


@router.get("/api/messages", response_model=list[MessageResponse], responses=ERROR_RESPONSES, tags=["Customers"])
async def list_messages(
    customer_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
) -> list[MessageResponse]:
    """Message log of the account, optionally for one customer."""
    messages = await catalog.list_messages(db, context.account_id, customer_id=customer_id, limit=limit)
    return [MessageResponse.model_validate(m) for m in messages]



@router.post(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={**ERROR_RESPONSES, 402: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def update_order_status(
    order_id: str,
    data: StatusUpdate,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
    notification_service: BaseNotificationService = Depends(get_notification_service),
) -> OrderResponse:
    """Advance an order. Without ``status`` the next stage is used."""
    order = await advance_order_status(
        db,
        context.account_id,
        order_id,
        target=data.status,
        payment_service=payment_service,
        notification_service=notification_service,
    )
    return OrderResponse.model_validate(order)


@router.post(
    "/api/orders/{order_id}/payment",
    response_model=OrderResponse,
    responses={**ERROR_RESPONSES, 402: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def pay_order(
    order_id: str,
    data: PaymentRequest,
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> OrderResponse:
    order = await record_payment(db, context.account_id, order_id, data.method, payment_service)
    return OrderResponse.model_validate(order)


# =============================================================================
# DASHBOARD ENDPOINTS
# =============================================================================

@router.get("/api/dashboard", response_model=DashboardResponse, responses=ERROR_RESPONSES, tags=["Dashboard"])
async def dashboard(
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> DashboardResponse:
    """Today / last 7 days / all-time summaries, top products and recent orders."""
    data = await build_dashboard(
        db,
        context.account_id,
        tz=settings.tzinfo,
        top_products_limit=settings.top_products_limit,
        recent_orders_limit=settings.recent_orders_limit,
    )
    return DashboardResponse(
        account_id=data["account_id"],
        generated_at=data["generated_at"],
        summaries=data["summaries"].to_dict(),
        top_products=[ProductSalesResponse.model_validate(p) for p in data["top_products"]],
        recent_orders=[OrderResponse.model_validate(o) for o in data["recent_orders"]],
    )


# =============================================================================
# CUSTOMER-FACING ENDPOINTS
# =============================================================================

@router.get("/api/trucks", response_model=list[TruckListingResponse], responses=ERROR_RESPONSES, tags=["Trucks"])
async def list_trucks(
    city: Optional[str] = Query(None),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_miles: Optional[float] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[TruckListingResponse]:
    """Browse trucks by city, or near a point (nearest first)."""
    listings = await browse_trucks(db, city=city, lat=lat, lng=lng, radius_miles=radius_miles)
    return [TruckListingResponse.model_validate(listing) for listing in listings]


@router.get("/api/menu", response_model=MenuResponse, responses=ERROR_RESPONSES, tags=["Trucks"])
async def public_menu(
    account: Optional[str] = Query(None),
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> MenuResponse:
    """
    Active products of a truck.

    Without ``account`` a signed-in owner or staff member previews their
    own menu.
    """
    preview = False
    if account:
        business = await catalog.get_account(db, account)
    elif identity is not None:
        business = (await load_account_context(db, identity)).account
        preview = True
    else:
        raise ValidationError("Choose a truck to see its menu", error="account_required")

    products = await catalog.list_products(db, business.id, active_only=True)
    return MenuResponse(
        account_id=business.id,
        account_name=business.name,
        preview=preview,
        products=[ProductResponse.model_validate(p) for p in products],
    )


@router.post(
    "/api/public/orders",
    response_model=OrderCreateResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Trucks"],
)
async def place_public_order(
    data: PublicOrderCreate,
    account: str = Query(...),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> OrderCreateResponse:
    """
    Place an order from a truck's public menu.

    Blank and zero quantities are ignored; if nothing is left the order is
    rejected and nothing is saved.
    """
    business = await catalog.get_account(db, account)
    quantities = filter_requested_quantities(data.quantities.items())
    if not quantities:
        raise ValidationError(EMPTY_ORDER_MESSAGE, error="empty_order")
    if data.location_id:
        await catalog.get_location(db, business.id, data.location_id)

    items = await price_line_items_from_menu(db, business.id, quantities, data.special_instructions)

    customer_id = None
    if data.customer_name or data.customer_phone or data.customer_email:
        # Written in the same commit as the order
        customer = Customer(
            id=new_id(),
            account_id=business.id,
            name=data.customer_name,
            phone=data.customer_phone,
            email=data.customer_email,
        )
        db.add(customer)
        customer_id = customer.id

    order = await create_order_with_line_items(
        db,
        business.id,
        items,
        customer_id=customer_id,
        channel=OrderChannel(settings.default_order_channel),
        location_id=data.location_id,
        notes=data.notes,
        currency=settings.default_currency,
    )
    return OrderCreateResponse(
        message=f"Order placed with {business.name}",
        order=OrderResponse.model_validate(order),
    )


# =============================================================================
# REPORT ENDPOINTS
# =============================================================================

@router.post(
    "/api/reports/orders-export",
    response_model=ExportResponse,
    status_code=202,
    responses=ERROR_RESPONSES,
    tags=["Reports"],
)
async def export_orders(
    context: AccountContext = Depends(get_account_context),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ExportResponse:
    """Queue an Excel export of every order of the account."""
    orders = await list_orders(db, context.account_id)
    order_rows, line_item_rows = ExcelManager.serialize_orders(orders)

    task = export_account_orders.delay(
        context.account_id,
        order_rows,
        line_item_rows,
        settings.data_directory,
        settings.excel_lock_timeout,
    )
    logger.info(f"Queued export of {len(order_rows)} orders for account {context.account_id}: {task.id}")

    return ExportResponse(
        task_id=task.id,
        account_id=context.account_id,
        message=f"Export of {len(order_rows)} orders queued",
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

async def domain_exception_handler(request: Request, exc: FoodTruckError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.error} on {request.method} {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{exc.error} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    debug = request.app.state.settings.debug

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around an explicit settings object."""
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Menu, order and dashboard backend for food trucks. "
            "Supports both mock services for development and real APIs for production."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.engine = create_engine(settings)
    app.state.session_maker = create_session_maker(app.state.engine)
    app.state.payment_service = create_payment_service(settings)
    app.state.geo_service = create_geo_service(settings)
    app.state.notification_service = create_notification_service(settings)
    app.state.identity_service = create_identity_service(settings)
    configure_celery(celery_app, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(FoodTruckError, domain_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "foodtruck.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        reload=_settings.is_development,
    )
