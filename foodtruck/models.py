"""
SQLAlchemy Database Models

Every record keeps the document shape of the hosted store the app was
built on: a generated string id, the owning account id and
created/updated timestamps. Account-scoped collections (users, products,
customers, orders, line items, locations, pings, messages, inventory
events, supplier transactions) all carry
``account_id``; user profiles are keyed by identity subject id.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from foodtruck.database import Base


def new_id() -> str:
    """Generate a document identifier."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls: type[enum.Enum]) -> Enum:
    """Store enum values (not names) as plain strings."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


# =============================================================================
# ENUMS
# =============================================================================

class SubscriptionTier(str, enum.Enum):
    MVP = "mvp"
    GROWTH = "growth"
    PRO = "pro"
    CUSTOM = "custom"


class SubscriptionStatus(str, enum.Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class UserRole(str, enum.Enum):
    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    INVITED = "invited"
    ACTIVE = "active"
    DISABLED = "disabled"


class AuthProvider(str, enum.Enum):
    PASSWORD = "password"
    MAGIC_LINK = "magic_link"
    OAUTH = "oauth"
    SSO = "sso"


class ProfileKind(str, enum.Enum):
    """Classification of a signed-in identity."""
    CUSTOMER = "customer"
    BUSINESS_OWNER = "business_owner"
    STAFF = "staff"


class MenuType(str, enum.Enum):
    FOOD = "food"
    DRINK = "drink"
    MERCH = "merch"
    SERVICE = "service"


class StockUnit(str, enum.Enum):
    EACH = "each"
    LB = "lb"
    OZ = "oz"
    LITER = "liter"
    PACK = "pack"


class PreferredChannel(str, enum.Enum):
    SMS = "sms"
    WHATSAPP = "whatsapp"
    INSTAGRAM_DM = "instagram_dm"
    NONE = "none"


class OrderChannel(str, enum.Enum):
    """Where an order came from."""
    SMS = "sms"
    WEB_FORM = "web_form"
    QR_CODE = "qr_code"
    IN_PERSON = "in_person"
    PHONE = "phone"
    OTHER = "other"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELED = "canceled"
    REFUNDED = "refunded"


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUND_PENDING = "refund_pending"
    REFUNDED = "refunded"
    PARTIAL = "partial"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    ZELLE = "zelle"
    CASHAPP = "cashapp"
    VENMO = "venmo"
    OTHER = "other"


class LineItemStatus(str, enum.Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    CANCELED = "canceled"


class LocationPingSource(str, enum.Enum):
    GPS = "gps"
    MANUAL = "manual"
    IMPORT = "import"


class MessageChannel(str, enum.Enum):
    SMS = "sms"
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    OTHER = "other"


class MessageStatus(str, enum.Enum):
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"


class InventoryEventType(str, enum.Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    WASTE = "waste"
    ADJUSTMENT = "adjustment"


class SupplierTransactionType(str, enum.Enum):
    INVENTORY = "inventory"
    EQUIPMENT = "equipment"
    FEES = "fees"
    OTHER = "other"


# =============================================================================
# ACCOUNTS & PEOPLE
# =============================================================================

class BusinessAccount(Base):
    """A business (tenant). Menu, orders, customers and staff live under one."""
    __tablename__ = "accounts"

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False)
    legal_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)

    address1 = Column(String(255), nullable=True)
    address2 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    postal_code = Column(String(20), nullable=True)
    county = Column(String(100), nullable=True)
    country = Column(String(50), nullable=True)

    subscription_tier = Column(_enum(SubscriptionTier), default=SubscriptionTier.MVP, nullable=False)
    subscription_status = Column(_enum(SubscriptionStatus), default=SubscriptionStatus.TRIAL, nullable=False)
    subscription_start_at = Column(DateTime(timezone=True), nullable=True)
    subscription_end_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<BusinessAccount {self.id} - {self.name}>"


class AccountUser(Base):
    """Owner or staff member of a business account."""
    __tablename__ = "account_users"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)

    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)

    role = Column(_enum(UserRole), default=UserRole.OWNER, nullable=False)
    status = Column(_enum(UserStatus), default=UserStatus.ACTIVE, nullable=False)
    is_employee = Column(Boolean, default=True, nullable=False)

    auth_provider = Column(_enum(AuthProvider), nullable=True)
    auth_subject_id = Column(String(128), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<AccountUser {self.id} - {self.role.value} of {self.account_id}>"


class UserProfile(Base):
    """Maps an authenticated identity to a profile kind and its primary account."""
    __tablename__ = "user_profiles"

    id = Column(String(128), primary_key=True)  # identity subject id
    kind = Column(_enum(ProfileKind), nullable=False)
    primary_account_id = Column(String(64), ForeignKey("accounts.id"), nullable=True)
    email = Column(String(255), nullable=True)
    display_name = Column(String(200), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<UserProfile {self.id} - {self.kind.value}>"


class Customer(Base):
    """Optional contact captured at order time. Not authenticated."""
    __tablename__ = "customers"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)

    name = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    preferred_channel = Column(_enum(PreferredChannel), default=PreferredChannel.SMS, nullable=True)
    marketing_opt_in = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


# =============================================================================
# MENU
# =============================================================================

class Product(Base):
    """Menu item."""
    __tablename__ = "products"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)

    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(60), nullable=True)
    menu_type = Column(_enum(MenuType), default=MenuType.FOOD, nullable=False)
    sku = Column(String(60), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    price = Column(Float, nullable=False)
    cost = Column(Float, nullable=True)

    current_stock = Column(Float, nullable=True)
    stock_unit = Column(_enum(StockUnit), default=StockUnit.EACH, nullable=False)
    prep_time_seconds = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Product {self.id} - {self.name} ${self.price:.2f}>"


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    Customer order.

    Tracks the lifecycle from placement to completion (or cancellation /
    refund). ``version`` guards status updates against concurrent writers.
    """
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)
    customer_id = Column(String(64), ForeignKey("customers.id"), nullable=True)
    location_id = Column(String(64), ForeignKey("locations.id"), nullable=True)

    channel = Column(_enum(OrderChannel), default=OrderChannel.WEB_FORM, nullable=False)
    status = Column(_enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)

    # =========================================================================
    # MILESTONES
    # =========================================================================
    placed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    ready_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    canceled_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    prep_time_estimate_seconds = Column(Integer, nullable=True)
    prep_time_actual_seconds = Column(Integer, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal_amount = Column(Float, nullable=False)
    tax_amount = Column(Float, nullable=False, default=0.0)
    discount_amount = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=True, default="usd")

    # =========================================================================
    # PAYMENT
    # =========================================================================
    payment_status = Column(_enum(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False)
    payment_method = Column(_enum(PaymentMethod), nullable=True)
    payment_intent_id = Column(String(100), nullable=True)
    refund_id = Column(String(100), nullable=True)

    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    line_items = relationship(
        "OrderLineItem",
        back_populates="order",
        lazy="selectin",
        order_by="OrderLineItem.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Order {self.id} - {self.channel.value} - {self.status.value}>"


class OrderLineItem(Base):
    """One product-quantity-price entry of an order."""
    __tablename__ = "order_line_items"

    id = Column(String(64), primary_key=True, default=new_id)
    order_id = Column(String(64), ForeignKey("orders.id"), nullable=False, index=True)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)
    product_id = Column(String(64), ForeignKey("products.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    line_subtotal = Column(Float, nullable=False)

    status = Column(_enum(LineItemStatus), default=LineItemStatus.PENDING, nullable=False)
    special_instructions = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    order = relationship("Order", back_populates="line_items")


# =============================================================================
# LOCATIONS
# =============================================================================

class Location(Base):
    """Where a truck parks (or any named place of the business)."""
    __tablename__ = "locations"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)

    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)

    address1 = Column(String(255), nullable=True)
    address2 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(50), nullable=True)

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    is_truck_location = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class LocationPing(Base):
    """GPS / manual position report of a truck."""
    __tablename__ = "location_pings"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)
    location_id = Column(String(64), ForeignKey("locations.id"), nullable=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    source = Column(_enum(LocationPingSource), default=LocationPingSource.GPS, nullable=False)
    recorded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


# =============================================================================
# MESSAGES
# =============================================================================

class Message(Base):
    """Outbound notification sent to a customer."""
    __tablename__ = "messages"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)
    customer_id = Column(String(64), ForeignKey("customers.id"), nullable=True)
    order_id = Column(String(64), ForeignKey("orders.id"), nullable=True)

    direction = Column(String(10), default="outbound", nullable=False)
    channel = Column(_enum(MessageChannel), nullable=False)
    purpose = Column(String(30), default="order_update", nullable=False)
    body = Column(Text, nullable=False)

    status = Column(_enum(MessageStatus), default=MessageStatus.QUEUED, nullable=False)
    provider_message_id = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


# =============================================================================
# INVENTORY & SUPPLIERS
# =============================================================================

class SupplierTransaction(Base):
    """A purchase from a supplier, usually backed by a receipt."""
    __tablename__ = "supplier_transactions"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)

    supplier_name = Column(String(120), nullable=False)
    transaction_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    total_amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=True)
    transaction_type = Column(
        _enum(SupplierTransactionType), default=SupplierTransactionType.INVENTORY, nullable=False
    )

    receipt_image_url = Column(String(500), nullable=True)
    ocr_text = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<SupplierTransaction {self.id} - {self.supplier_name} ${self.total_amount:.2f}>"


class InventoryEvent(Base):
    """
    Stock movement of a product.

    ``quantity_delta`` is positive for stock coming in and negative for
    stock going out; the product's ``current_stock`` moves by the same amount.
    """
    __tablename__ = "inventory_events"

    id = Column(String(64), primary_key=True, default=new_id)
    account_id = Column(String(64), ForeignKey("accounts.id"), nullable=False, index=True)
    product_id = Column(String(64), ForeignKey("products.id"), nullable=False, index=True)
    supplier_transaction_id = Column(String(64), ForeignKey("supplier_transactions.id"), nullable=True)

    type = Column(_enum(InventoryEventType), nullable=False)
    quantity_delta = Column(Float, nullable=False)
    unit_cost = Column(Float, nullable=True)
    reason = Column(Text, nullable=True)
    occurred_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<InventoryEvent {self.id} - {self.type.value} {self.quantity_delta:+g}>"
