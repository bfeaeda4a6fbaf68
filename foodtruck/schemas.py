"""
Pydantic Schemas for Request/Response Validation

Request bodies are validated here for shape only; business rules (empty
orders, allowed status transitions, membership) live in the services and
surface as domain errors.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Any, Dict
from datetime import datetime

from foodtruck.models import (
    InventoryEventType,
    LineItemStatus,
    LocationPingSource,
    MenuType,
    MessageChannel,
    MessageStatus,
    OrderChannel,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PreferredChannel,
    ProfileKind,
    StockUnit,
    SubscriptionStatus,
    SubscriptionTier,
    SupplierTransactionType,
    UserRole,
    UserStatus,
)
from foodtruck.services.orders import MAX_LINE_QUANTITY


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    geo_service: str
    notification_service: str
    identity_service: str
    timestamp: datetime


# =============================================================================
# PROFILES & ACCOUNTS
# =============================================================================

class ProfileResponse(ORMModel):
    id: str
    kind: ProfileKind
    primary_account_id: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None


class AccountResponse(ORMModel):
    id: str
    name: str
    legal_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    county: Optional[str] = None
    country: Optional[str] = None
    subscription_tier: SubscriptionTier
    subscription_status: SubscriptionStatus
    created_at: datetime


class AccountUpdate(BaseModel):
    """Editable contact and address fields. Omitted fields are left alone."""
    name: Optional[str] = Field(None, max_length=120)
    legal_name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    address1: Optional[str] = Field(None, max_length=255)
    address2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=50)
    postal_code: Optional[str] = Field(None, max_length=20)
    county: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=50)


class MeResponse(BaseModel):
    """Who the caller is and whether they still need to sign up."""
    subject_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    needs_signup: bool
    profile: Optional[ProfileResponse] = None
    account: Optional[AccountResponse] = None


class SignupRequest(BaseModel):
    kind: ProfileKind
    business_name: Optional[str] = Field(None, max_length=120, examples=["Taco Loco"])
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)


class AccountUserResponse(ORMModel):
    id: str
    account_id: str
    email: str
    first_name: str
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    status: UserStatus
    created_at: datetime


class AccountUserInvite(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, examples=["cook@example.com"])
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    role: UserRole = UserRole.STAFF

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Invalid email format")
        return v.strip()


# =============================================================================
# MENU
# =============================================================================

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, examples=["Carnitas Taco"])
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=60, examples=["Tacos"])
    menu_type: MenuType = MenuType.FOOD
    sku: Optional[str] = Field(None, max_length=60)
    is_active: bool = True
    price: float = Field(..., ge=0, examples=[4.5])
    cost: Optional[float] = Field(None, ge=0)
    current_stock: Optional[float] = None
    stock_unit: StockUnit = StockUnit.EACH
    prep_time_seconds: Optional[int] = Field(None, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=60)
    menu_type: Optional[MenuType] = None
    sku: Optional[str] = Field(None, max_length=60)
    is_active: Optional[bool] = None
    price: Optional[float] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    current_stock: Optional[float] = None
    stock_unit: Optional[StockUnit] = None
    prep_time_seconds: Optional[int] = Field(None, ge=0)


class ProductResponse(ORMModel):
    id: str
    account_id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    menu_type: MenuType
    sku: Optional[str] = None
    is_active: bool
    price: float
    cost: Optional[float] = None
    current_stock: Optional[float] = None
    stock_unit: StockUnit
    prep_time_seconds: Optional[int] = None


class MenuResponse(BaseModel):
    """Public menu of one truck. ``preview`` is set when an owner views their own menu."""
    account_id: str
    account_name: str
    preview: bool = False
    products: List[ProductResponse]


# =============================================================================
# INVENTORY & SUPPLIERS
# =============================================================================

class InventoryEventCreate(BaseModel):
    """Stock movement: positive ``quantity_delta`` for stock in, negative for stock out."""
    type: InventoryEventType = Field(..., examples=["purchase"])
    quantity_delta: float = Field(..., examples=[24])
    unit_cost: Optional[float] = Field(None, ge=0)
    supplier_transaction_id: Optional[str] = None
    reason: Optional[str] = None
    occurred_at: Optional[datetime] = None


class InventoryEventResponse(ORMModel):
    id: str
    account_id: str
    product_id: str
    type: InventoryEventType
    quantity_delta: float
    unit_cost: Optional[float] = None
    supplier_transaction_id: Optional[str] = None
    reason: Optional[str] = None
    occurred_at: datetime


class InventoryEventRecorded(BaseModel):
    event: InventoryEventResponse
    current_stock: Optional[float] = None


class SupplierTransactionCreate(BaseModel):
    supplier_name: str = Field(..., min_length=1, max_length=120, examples=["Restaurant Depot"])
    transaction_date: Optional[datetime] = None
    total_amount: float = Field(..., ge=0, examples=[182.4])
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    transaction_type: SupplierTransactionType = SupplierTransactionType.INVENTORY
    receipt_image_url: Optional[str] = Field(None, max_length=500)
    ocr_text: Optional[str] = None
    notes: Optional[str] = None


class SupplierTransactionResponse(ORMModel):
    id: str
    account_id: str
    supplier_name: str
    transaction_date: datetime
    total_amount: float
    currency: Optional[str] = None
    transaction_type: SupplierTransactionType
    receipt_image_url: Optional[str] = None
    ocr_text: Optional[str] = None
    notes: Optional[str] = None


# =============================================================================
# CUSTOMERS
# =============================================================================

class CustomerCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    preferred_channel: Optional[PreferredChannel] = PreferredChannel.SMS
    marketing_opt_in: bool = False


class CustomerResponse(ORMModel):
    id: str
    account_id: str
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    preferred_channel: Optional[PreferredChannel] = None
    marketing_opt_in: bool
    created_at: datetime


# =============================================================================
# LOCATIONS
# =============================================================================

class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, examples=["Union Square"])
    description: Optional[str] = None
    address1: Optional[str] = Field(None, max_length=255)
    address2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=50)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=50)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_truck_location: bool = True


class LocationResponse(ORMModel):
    id: str
    account_id: str
    name: str
    description: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_truck_location: bool


class LocationPingCreate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    location_id: Optional[str] = None
    source: LocationPingSource = LocationPingSource.GPS
    recorded_at: Optional[datetime] = None


class LocationPingResponse(ORMModel):
    id: str
    account_id: str
    location_id: Optional[str] = None
    latitude: float
    longitude: float
    source: LocationPingSource
    recorded_at: datetime


class TruckListingResponse(ORMModel):
    account_id: str
    account_name: str
    location_id: str
    location_name: str
    address1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_miles: Optional[float] = None


# =============================================================================
# ORDERS
# =============================================================================

class LineItemCreate(BaseModel):
    """One requested line. The menu price is used when ``unit_price`` is omitted."""
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=MAX_LINE_QUANTITY, examples=[2])
    unit_price: Optional[float] = Field(None, ge=0, examples=[4.5])
    special_instructions: Optional[str] = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Order entered by the business (counter, phone, in person)."""
    items: List[LineItemCreate] = Field(default_factory=list)
    customer_id: Optional[str] = None
    channel: Optional[OrderChannel] = None
    location_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)
    prep_time_estimate_seconds: Optional[int] = Field(None, ge=0)


class PublicOrderCreate(BaseModel):
    """
    Order placed from the public menu form.

    ``quantities`` maps product id to whatever the form field held; blank
    and zero entries are ignored.
    """
    quantities: Dict[str, Any] = Field(default_factory=dict, examples=[{"p1": "2", "p2": ""}])
    special_instructions: Dict[str, str] = Field(default_factory=dict)
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)
    customer_email: Optional[str] = Field(None, max_length=255)
    location_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)


class LineItemResponse(ORMModel):
    id: str
    product_id: str
    position: int
    quantity: int
    unit_price: float
    line_subtotal: float
    status: LineItemStatus
    special_instructions: Optional[str] = None


class OrderResponse(ORMModel):
    """Response schema for a single order."""
    id: str
    account_id: str
    customer_id: Optional[str] = None
    location_id: Optional[str] = None
    channel: OrderChannel
    status: OrderStatus
    placed_at: datetime
    accepted_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    prep_time_estimate_seconds: Optional[int] = None
    prep_time_actual_seconds: Optional[int] = None
    subtotal_amount: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    currency: Optional[str] = None
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    payment_intent_id: Optional[str] = None
    refund_id: Optional[str] = None
    notes: Optional[str] = None
    version: int
    line_items: List[LineItemResponse] = Field(default_factory=list)


class OrderCreateResponse(BaseModel):
    """Response after successfully creating an order."""
    success: bool = True
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


class StatusUpdate(BaseModel):
    """Target status. Omit it to move the order to its next stage."""
    status: Optional[OrderStatus] = None


class PaymentRequest(BaseModel):
    method: PaymentMethod = PaymentMethod.CASH


# =============================================================================
# DASHBOARD
# =============================================================================

class SummaryResponse(BaseModel):
    count: int
    revenue: float


class SummariesResponse(BaseModel):
    today: SummaryResponse
    last_7_days: SummaryResponse
    all_time: SummaryResponse


class ProductSalesResponse(ORMModel):
    product_id: str
    name: Optional[str] = None
    quantity: int
    revenue: float


class DashboardResponse(BaseModel):
    account_id: str
    generated_at: datetime
    summaries: SummariesResponse
    top_products: List[ProductSalesResponse]
    recent_orders: List[OrderResponse]


# =============================================================================
# REPORTS
# =============================================================================

class ExportResponse(BaseModel):
    success: bool = True
    task_id: str
    account_id: str
    message: str


# =============================================================================
# MESSAGES
# =============================================================================

class MessageResponse(ORMModel):
    id: str
    account_id: str
    customer_id: Optional[str] = None
    order_id: Optional[str] = None
    direction: str
    channel: MessageChannel
    purpose: str
    body: str
    status: MessageStatus
    provider_message_id: Optional[str] = None
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    created_at: datetime
