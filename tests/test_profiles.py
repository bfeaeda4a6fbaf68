"""Profile resolution, signup provisioning and account context."""

import pytest
from sqlalchemy import func, select

from foodtruck.core.exceptions import PermissionDeniedError, ValidationError
from foodtruck.models import AccountUser, BusinessAccount, ProfileKind, UserProfile, UserRole, UserStatus
from foodtruck.services.catalog import invite_account_user
from foodtruck.services.identity import Identity
from foodtruck.services.profiles import (
    complete_signup,
    load_account_context,
    require_manager,
    resolve_profile,
)

OWNER = Identity(subject_id="sub-owner", email="olga@example.com", display_name="Olga Owner")
CUSTOMER = Identity(subject_id="sub-customer", email="cam@example.com", display_name="Cam")
COOK = Identity(subject_id="sub-cook", email="Cook@Example.com", display_name="Carl Cook")


async def count_rows(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def test_unknown_identity_needs_signup(db, database):
    assert await resolve_profile(db, OWNER) is None


async def test_customer_signup_creates_only_a_profile(db, database):
    profile = await complete_signup(db, CUSTOMER, ProfileKind.CUSTOMER)

    assert profile.id == CUSTOMER.subject_id
    assert profile.kind == ProfileKind.CUSTOMER
    assert profile.primary_account_id is None
    assert await count_rows(db, BusinessAccount) == 0
    assert await count_rows(db, AccountUser) == 0


async def test_owner_signup_provisions_account_owner_and_profile(db, database):
    profile = await complete_signup(db, OWNER, ProfileKind.BUSINESS_OWNER, business_name="  Taco Loco ")

    assert profile.kind == ProfileKind.BUSINESS_OWNER
    account = await db.get(BusinessAccount, profile.primary_account_id)
    assert account.name == "Taco Loco"
    assert account.id != OWNER.subject_id

    owner = await db.get(AccountUser, OWNER.subject_id)
    assert owner.account_id == account.id
    assert owner.role == UserRole.OWNER
    assert owner.status == UserStatus.ACTIVE
    assert owner.auth_subject_id == OWNER.subject_id
    assert (owner.first_name, owner.last_name) == ("Olga", "Owner")


async def test_owner_signup_requires_business_name(db, database):
    with pytest.raises(ValidationError):
        await complete_signup(db, OWNER, ProfileKind.BUSINESS_OWNER, business_name=" ")

    assert await count_rows(db, BusinessAccount) == 0
    assert await count_rows(db, UserProfile) == 0


async def test_signup_is_idempotent(db, database):
    first = await complete_signup(db, OWNER, ProfileKind.BUSINESS_OWNER, business_name="Taco Loco")
    again = await complete_signup(db, OWNER, ProfileKind.CUSTOMER)

    assert again.id == first.id
    assert again.kind == ProfileKind.BUSINESS_OWNER
    assert await count_rows(db, BusinessAccount) == 1


async def test_legacy_account_keyed_by_subject_is_migrated(db, database):
    db.add(BusinessAccount(id=OWNER.subject_id, name="Old Truck"))
    await db.commit()

    profile = await resolve_profile(db, OWNER)

    assert profile.kind == ProfileKind.BUSINESS_OWNER
    assert profile.primary_account_id == OWNER.subject_id
    owner = await db.get(AccountUser, OWNER.subject_id)
    assert owner.role == UserRole.OWNER
    assert await db.get(UserProfile, OWNER.subject_id) is not None

    context = await load_account_context(db, OWNER)
    assert context.account.name == "Old Truck"


async def test_staff_signup_claims_invitation(db, database):
    owner_profile = await complete_signup(db, OWNER, ProfileKind.BUSINESS_OWNER, business_name="Taco Loco")
    account_id = owner_profile.primary_account_id
    invitation = await invite_account_user(db, account_id, email="cook@example.com", first_name="Carl")

    profile = await complete_signup(db, COOK, ProfileKind.STAFF)

    assert profile.kind == ProfileKind.STAFF
    assert profile.primary_account_id == account_id
    claimed = await db.get(AccountUser, invitation.id)
    assert claimed.status == UserStatus.ACTIVE
    assert claimed.auth_subject_id == COOK.subject_id

    context = await load_account_context(db, COOK)
    assert context.account_id == account_id
    assert context.role == UserRole.STAFF
    with pytest.raises(PermissionDeniedError):
        require_manager(context)


async def test_staff_signup_without_invitation_is_rejected(db, database):
    with pytest.raises(ValidationError) as excinfo:
        await complete_signup(db, COOK, ProfileKind.STAFF)
    assert excinfo.value.error == "no_invitation"
    assert await count_rows(db, UserProfile) == 0


async def test_customers_have_no_account_context(db, database):
    await complete_signup(db, CUSTOMER, ProfileKind.CUSTOMER)

    with pytest.raises(PermissionDeniedError):
        await load_account_context(db, CUSTOMER)


async def test_disabled_member_loses_access(db, database):
    await complete_signup(db, OWNER, ProfileKind.BUSINESS_OWNER, business_name="Taco Loco")
    owner = await db.get(AccountUser, OWNER.subject_id)
    owner.status = UserStatus.DISABLED
    await db.commit()

    with pytest.raises(PermissionDeniedError):
        await load_account_context(db, OWNER)
