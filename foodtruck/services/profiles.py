"""
Profile / Account Resolver

Decides what a signed-in identity is (customer, business owner or staff)
and which business account it works on.

The stored ``UserProfile.kind`` is the only source of truth. Accounts
created by older releases were keyed by the owner's identity subject id
and had no profile; those are migrated the first time the owner signs in.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from foodtruck.core.exceptions import PermissionDeniedError, ValidationError
from foodtruck.models import (
    AccountUser,
    AuthProvider,
    BusinessAccount,
    ProfileKind,
    UserProfile,
    UserRole,
    UserStatus,
    new_id,
)
from foodtruck.services.identity.base import Identity

logger = logging.getLogger(__name__)

BUSINESS_KINDS = frozenset({ProfileKind.BUSINESS_OWNER, ProfileKind.STAFF})
MANAGER_ROLES = frozenset({UserRole.OWNER, UserRole.MANAGER, UserRole.ADMIN})


@dataclass
class AccountContext:
    """The account a business user is acting on, and their membership in it."""
    profile: UserProfile
    account: BusinessAccount
    member: AccountUser

    @property
    def account_id(self) -> str:
        return self.account.id

    @property
    def role(self) -> UserRole:
        return self.member.role


def _auth_provider(identity: Identity) -> AuthProvider:
    if identity.provider in (None, "password"):
        return AuthProvider.PASSWORD
    if identity.provider == "emailLink":
        return AuthProvider.MAGIC_LINK
    return AuthProvider.OAUTH


def _split_name(identity: Identity) -> tuple[str, Optional[str]]:
    """Best-effort first/last name from the identity display name."""
    if identity.display_name:
        first, _, last = identity.display_name.strip().partition(" ")
        return first, (last or None)
    if identity.email:
        return identity.email.split("@")[0], None
    return "Owner", None


# =============================================================================
# RESOLVE
# =============================================================================

async def resolve_profile(db: AsyncSession, identity: Identity) -> Optional[UserProfile]:
    """
    Find the profile of a signed-in identity.

    Returns None when the identity has never completed signup.
    """
    profile = await db.get(UserProfile, identity.subject_id)
    if profile is not None:
        return profile

    legacy_account = await db.get(BusinessAccount, identity.subject_id)
    if legacy_account is None:
        return None

    return await _migrate_legacy_owner(db, identity, legacy_account)


async def _migrate_legacy_owner(
    db: AsyncSession,
    identity: Identity,
    account: BusinessAccount,
) -> UserProfile:
    """Give an account keyed by its owner's subject id a proper owner profile."""
    owner = await _find_member(db, account.id, identity.subject_id)
    if owner is None:
        first_name, last_name = _split_name(identity)
        owner = AccountUser(
            id=identity.subject_id,
            account_id=account.id,
            email=identity.email or account.email or "",
            first_name=first_name,
            last_name=last_name,
            role=UserRole.OWNER,
            status=UserStatus.ACTIVE,
            auth_provider=_auth_provider(identity),
            auth_subject_id=identity.subject_id,
        )
        db.add(owner)

    profile = UserProfile(
        id=identity.subject_id,
        kind=ProfileKind.BUSINESS_OWNER,
        primary_account_id=account.id,
        email=identity.email,
        display_name=identity.display_name,
    )
    db.add(profile)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Migrated legacy account {account.id} to an owner profile")
    return profile


# =============================================================================
# SIGNUP
# =============================================================================

async def complete_signup(
    db: AsyncSession,
    identity: Identity,
    kind: ProfileKind,
    business_name: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    phone: Optional[str] = None,
) -> UserProfile:
    """
    Provision a first-time identity as ``kind``.

    A profile that already exists is returned unchanged.

    Raises:
        ValidationError: business owner without a business name, or staff
            without a pending invitation for their email
    """
    existing = await resolve_profile(db, identity)
    if existing is not None:
        return existing

    if kind == ProfileKind.CUSTOMER:
        profile = UserProfile(
            id=identity.subject_id,
            kind=ProfileKind.CUSTOMER,
            email=identity.email,
            display_name=identity.display_name,
        )
        db.add(profile)
    elif kind == ProfileKind.BUSINESS_OWNER:
        profile = _provision_owner(db, identity, business_name, first_name, last_name, phone)
    elif kind == ProfileKind.STAFF:
        profile = await _claim_invitation(db, identity)
    else:
        raise ValidationError(f"Unknown profile kind: {kind}")

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Signup completed for {identity.subject_id} as {profile.kind.value}")
    return profile


def _provision_owner(
    db: AsyncSession,
    identity: Identity,
    business_name: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
    phone: Optional[str],
) -> UserProfile:
    if not business_name or not business_name.strip():
        raise ValidationError("Business name is required")

    default_first, default_last = _split_name(identity)
    account = BusinessAccount(
        id=new_id(),
        name=business_name.strip(),
        email=identity.email,
        phone=phone,
    )
    db.add(account)
    db.add(
        AccountUser(
            id=identity.subject_id,
            account_id=account.id,
            email=identity.email or "",
            first_name=first_name or default_first,
            last_name=last_name or default_last,
            phone=phone,
            role=UserRole.OWNER,
            status=UserStatus.ACTIVE,
            auth_provider=_auth_provider(identity),
            auth_subject_id=identity.subject_id,
        )
    )
    profile = UserProfile(
        id=identity.subject_id,
        kind=ProfileKind.BUSINESS_OWNER,
        primary_account_id=account.id,
        email=identity.email,
        display_name=identity.display_name,
    )
    db.add(profile)
    return profile


async def _claim_invitation(db: AsyncSession, identity: Identity) -> UserProfile:
    if not identity.email:
        raise ValidationError("An email address is required to join as staff")

    result = await db.execute(
        select(AccountUser)
        .where(
            func.lower(AccountUser.email) == identity.email.lower(),
            AccountUser.status == UserStatus.INVITED,
        )
        .order_by(AccountUser.created_at)
        .limit(1)
    )
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise ValidationError(
            f"No pending staff invitation for {identity.email}",
            error="no_invitation",
        )

    invitation.status = UserStatus.ACTIVE
    invitation.auth_subject_id = identity.subject_id
    invitation.auth_provider = _auth_provider(identity)

    profile = UserProfile(
        id=identity.subject_id,
        kind=ProfileKind.STAFF,
        primary_account_id=invitation.account_id,
        email=identity.email,
        display_name=identity.display_name,
    )
    db.add(profile)
    return profile


# =============================================================================
# ACCOUNT CONTEXT
# =============================================================================

async def _find_member(db: AsyncSession, account_id: str, subject_id: str) -> Optional[AccountUser]:
    result = await db.execute(
        select(AccountUser)
        .where(
            AccountUser.account_id == account_id,
            or_(AccountUser.auth_subject_id == subject_id, AccountUser.id == subject_id),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def load_account_context(db: AsyncSession, identity: Identity) -> AccountContext:
    """
    Resolve the account a business user acts on.

    Raises:
        PermissionDeniedError: no business profile, no primary account, or
            no active membership in it
    """
    profile = await resolve_profile(db, identity)
    if profile is None or profile.kind not in BUSINESS_KINDS:
        raise PermissionDeniedError("A business profile is required")
    if not profile.primary_account_id:
        raise PermissionDeniedError("Profile is not linked to a business account")

    account = await db.get(BusinessAccount, profile.primary_account_id)
    if account is None:
        raise PermissionDeniedError("Business account no longer exists")

    member = await _find_member(db, account.id, identity.subject_id)
    if member is None or member.status != UserStatus.ACTIVE:
        raise PermissionDeniedError("You are not an active member of this account")

    return AccountContext(profile=profile, account=account, member=member)


def require_manager(context: AccountContext) -> None:
    """Only owners, managers and admins may manage the account's users."""
    if context.role not in MANAGER_ROLES:
        raise PermissionDeniedError(f"Role '{context.role.value}' cannot manage account users")
