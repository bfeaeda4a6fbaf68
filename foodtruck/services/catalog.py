"""
Account-scoped records: business account details, account users, menu
products, inventory events, supplier transactions, customers, locations,
location pings and the customer message log.

Every query is filtered by ``account_id``; a record of another account is
reported as not found.
"""

import logging
from typing import Any, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from foodtruck.database import Base
from foodtruck.core.exceptions import ConflictError, NotFoundError, ValidationError
from foodtruck.models import (
    AccountUser,
    BusinessAccount,
    Customer,
    InventoryEvent,
    Location,
    LocationPing,
    Message,
    Product,
    SupplierTransaction,
    UserRole,
    UserStatus,
)
from foodtruck.services.geo.base import BaseGeoService

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


async def _get_scoped(db: AsyncSession, model: type[ModelT], account_id: str, record_id: str) -> ModelT:
    record = await db.get(model, record_id)
    if record is None or record.account_id != account_id:
        raise NotFoundError(f"{model.__name__} {record_id} not found")
    return record


def _apply_changes(record: Base, changes: dict[str, Any]) -> None:
    columns = record.__table__.columns
    for field, value in changes.items():
        if value is None and field in columns and not columns[field].nullable:
            raise ValidationError(f"{field} cannot be empty")
    for field, value in changes.items():
        setattr(record, field, value)


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise


# =============================================================================
# ACCOUNT
# =============================================================================

async def get_account(db: AsyncSession, account_id: str) -> BusinessAccount:
    account = await db.get(BusinessAccount, account_id)
    if account is None:
        raise NotFoundError(f"Account {account_id} not found")
    return account


async def update_account(db: AsyncSession, account_id: str, changes: dict[str, Any]) -> BusinessAccount:
    """Update contact and address fields of an account."""
    account = await get_account(db, account_id)
    if "name" in changes and not (changes["name"] or "").strip():
        raise ValidationError("Business name cannot be empty")
    _apply_changes(account, changes)
    await _commit(db)
    logger.info(f"Account {account_id} updated: {sorted(changes)}")
    return account


# =============================================================================
# ACCOUNT USERS
# =============================================================================

async def list_account_users(db: AsyncSession, account_id: str) -> list[AccountUser]:
    result = await db.execute(
        select(AccountUser)
        .where(AccountUser.account_id == account_id)
        .order_by(AccountUser.created_at)
    )
    return list(result.scalars().all())


async def invite_account_user(
    db: AsyncSession,
    account_id: str,
    email: str,
    first_name: str,
    last_name: Optional[str] = None,
    phone: Optional[str] = None,
    role: UserRole = UserRole.STAFF,
) -> AccountUser:
    """
    Add a pending member to an account.

    The invitation is claimed when someone signs up as staff with the same
    email address.
    """
    email = email.strip()
    result = await db.execute(
        select(AccountUser.id).where(
            AccountUser.account_id == account_id,
            func.lower(AccountUser.email) == email.lower(),
        )
    )
    if result.first() is not None:
        raise ConflictError(f"{email} is already a member of this account")

    user = AccountUser(
        account_id=account_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        role=role,
        status=UserStatus.INVITED,
    )
    db.add(user)
    await _commit(db)
    logger.info(f"Invited {email} to account {account_id} as {role.value}")
    return user


# =============================================================================
# PRODUCTS
# =============================================================================

async def create_product(db: AsyncSession, account_id: str, **fields: Any) -> Product:
    if fields.get("price") is None or fields["price"] < 0:
        raise ValidationError("Price must be zero or more")
    product = Product(account_id=account_id, **fields)
    db.add(product)
    await _commit(db)
    logger.info(f"Product {product.id} ({product.name}) added to account {account_id}")
    return product


async def list_products(db: AsyncSession, account_id: str, active_only: bool = False) -> list[Product]:
    query = select(Product).where(Product.account_id == account_id)
    if active_only:
        query = query.where(Product.is_active.is_(True))
    result = await db.execute(query.order_by(Product.category, Product.name))
    return list(result.scalars().all())


async def get_product(db: AsyncSession, account_id: str, product_id: str) -> Product:
    return await _get_scoped(db, Product, account_id, product_id)


async def update_product(
    db: AsyncSession,
    account_id: str,
    product_id: str,
    changes: dict[str, Any],
) -> Product:
    product = await get_product(db, account_id, product_id)
    if "price" in changes and (changes["price"] is None or changes["price"] < 0):
        raise ValidationError("Price must be zero or more")
    _apply_changes(product, changes)
    await _commit(db)
    return product


# =============================================================================
# INVENTORY & SUPPLIERS
# =============================================================================

async def create_supplier_transaction(db: AsyncSession, account_id: str, **fields: Any) -> SupplierTransaction:
    if not (fields.get("supplier_name") or "").strip():
        raise ValidationError("Supplier name cannot be empty")
    if fields.get("total_amount") is None or fields["total_amount"] < 0:
        raise ValidationError("Total amount must be zero or more")
    transaction = SupplierTransaction(
        account_id=account_id, **{k: v for k, v in fields.items() if v is not None}
    )
    db.add(transaction)
    await _commit(db)
    logger.info(
        f"Supplier transaction {transaction.id} ({transaction.supplier_name}, "
        f"${transaction.total_amount:.2f}) added to account {account_id}"
    )
    return transaction


async def list_supplier_transactions(db: AsyncSession, account_id: str) -> list[SupplierTransaction]:
    """Most recent purchases first."""
    result = await db.execute(
        select(SupplierTransaction)
        .where(SupplierTransaction.account_id == account_id)
        .order_by(SupplierTransaction.transaction_date.desc(), SupplierTransaction.id)
    )
    return list(result.scalars().all())


async def get_supplier_transaction(db: AsyncSession, account_id: str, transaction_id: str) -> SupplierTransaction:
    return await _get_scoped(db, SupplierTransaction, account_id, transaction_id)


async def record_inventory_event(
    db: AsyncSession,
    account_id: str,
    product_id: str,
    **fields: Any,
) -> tuple[InventoryEvent, Product]:
    """
    Record a stock movement and apply it to the product's current stock.

    The stock is incremented in SQL. A product without a stock count starts
    at zero.

    Raises:
        NotFoundError: unknown product or supplier transaction
        ValidationError: zero quantity change
    """
    product = await get_product(db, account_id, product_id)
    delta = fields.get("quantity_delta")
    if not delta:
        raise ValidationError("Quantity change cannot be zero")
    if fields.get("supplier_transaction_id"):
        await get_supplier_transaction(db, account_id, fields["supplier_transaction_id"])

    event = InventoryEvent(
        account_id=account_id,
        product_id=product_id,
        **{k: v for k, v in fields.items() if v is not None},
    )
    db.add(event)
    product.current_stock = func.coalesce(Product.current_stock, 0) + delta
    await _commit(db)
    await db.refresh(product)

    logger.info(
        f"Inventory {event.type.value} of {delta:+g} on product {product_id} "
        f"(stock now {product.current_stock:g})"
    )
    return event, product


async def list_inventory_events(
    db: AsyncSession,
    account_id: str,
    product_id: Optional[str] = None,
    limit: int = 100,
) -> list[InventoryEvent]:
    """Most recent movements first, optionally for one product."""
    query = select(InventoryEvent).where(InventoryEvent.account_id == account_id)
    if product_id is not None:
        query = query.where(InventoryEvent.product_id == product_id)
    result = await db.execute(
        query.order_by(InventoryEvent.occurred_at.desc(), InventoryEvent.id).limit(limit)
    )
    return list(result.scalars().all())


# =============================================================================
# CUSTOMERS
# =============================================================================

async def create_customer(db: AsyncSession, account_id: str, **fields: Any) -> Customer:
    customer = Customer(account_id=account_id, **fields)
    db.add(customer)
    await _commit(db)
    return customer


async def list_customers(db: AsyncSession, account_id: str) -> list[Customer]:
    result = await db.execute(
        select(Customer)
        .where(Customer.account_id == account_id)
        .order_by(Customer.created_at.desc())
    )
    return list(result.scalars().all())


async def get_customer(db: AsyncSession, account_id: str, customer_id: str) -> Customer:
    return await _get_scoped(db, Customer, account_id, customer_id)


# =============================================================================
# LOCATIONS
# =============================================================================

async def create_location(
    db: AsyncSession,
    account_id: str,
    geo_service: Optional[BaseGeoService] = None,
    **fields: Any,
) -> Location:
    """
    Save a location. Missing coordinates are filled in by geocoding the
    address when one is given.
    """
    location = Location(account_id=account_id, **fields)

    needs_coordinates = location.latitude is None or location.longitude is None
    if needs_coordinates and location.address1 and geo_service is not None:
        geocoded = await geo_service.geocode_address(
            location.address1,
            city=location.city,
            state=location.state,
            postal_code=location.postal_code,
            country=location.country,
        )
        if geocoded.success:
            location.latitude = geocoded.latitude
            location.longitude = geocoded.longitude
            location.city = location.city or geocoded.city
            location.postal_code = location.postal_code or geocoded.postal_code
        else:
            logger.warning(f"Could not geocode '{location.address1}': {geocoded.error_message}")

    db.add(location)
    await _commit(db)
    logger.info(f"Location {location.id} ({location.name}) added to account {account_id}")
    return location


async def list_locations(db: AsyncSession, account_id: str) -> list[Location]:
    result = await db.execute(
        select(Location).where(Location.account_id == account_id).order_by(Location.name)
    )
    return list(result.scalars().all())


async def get_location(db: AsyncSession, account_id: str, location_id: str) -> Location:
    return await _get_scoped(db, Location, account_id, location_id)


async def record_location_ping(db: AsyncSession, account_id: str, **fields: Any) -> LocationPing:
    if fields.get("location_id"):
        await get_location(db, account_id, fields["location_id"])
    ping = LocationPing(account_id=account_id, **{k: v for k, v in fields.items() if v is not None})
    db.add(ping)
    await _commit(db)
    return ping


async def list_location_pings(db: AsyncSession, account_id: str, limit: int = 20) -> list[LocationPing]:
    """Most recent position reports first."""
    result = await db.execute(
        select(LocationPing)
        .where(LocationPing.account_id == account_id)
        .order_by(LocationPing.recorded_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# =============================================================================
# MESSAGES
# =============================================================================

async def list_messages(
    db: AsyncSession,
    account_id: str,
    order_id: Optional[str] = None,
    customer_id: Optional[str] = None,
    limit: int = 100,
) -> list[Message]:
    """Messages sent to customers, newest first."""
    query = select(Message).where(Message.account_id == account_id)
    if order_id is not None:
        query = query.where(Message.order_id == order_id)
    if customer_id is not None:
        query = query.where(Message.customer_id == customer_id)
    result = await db.execute(query.order_by(Message.created_at.desc(), Message.id).limit(limit))
    return list(result.scalars().all())
