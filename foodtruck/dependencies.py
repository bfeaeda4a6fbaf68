"""
FastAPI dependencies: settings, caller identity and account context.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from foodtruck.core.config import Settings
from foodtruck.core.exceptions import AuthenticationError
from foodtruck.database import get_db
from foodtruck.services.geo import BaseGeoService
from foodtruck.services.identity import BaseIdentityService, Identity
from foodtruck.services.notifications import BaseNotificationService
from foodtruck.services.payment import BasePaymentService
from foodtruck.services.profiles import AccountContext, load_account_context, require_manager

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


# Adapters are built once by create_app from its settings
def get_identity_service(request: Request) -> BaseIdentityService:
    return request.app.state.identity_service


def get_payment_service(request: Request) -> BasePaymentService:
    return request.app.state.payment_service


def get_geo_service(request: Request) -> BaseGeoService:
    return request.app.state.geo_service


def get_notification_service(request: Request) -> BaseNotificationService:
    return request.app.state.notification_service


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_optional_identity(
    authorization: Optional[str] = Header(None),
    identity_service: BaseIdentityService = Depends(get_identity_service),
) -> Optional[Identity]:
    """Signed-in identity, or None for anonymous callers and bad tokens."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    return await identity_service.verify_token(token)


async def get_current_identity(
    authorization: Optional[str] = Header(None),
    identity_service: BaseIdentityService = Depends(get_identity_service),
) -> Identity:
    token = _bearer_token(authorization)
    if token is None:
        raise AuthenticationError("Missing bearer token")

    identity = await identity_service.verify_token(token)
    if identity is None:
        logger.info("Rejected invalid bearer token")
        raise AuthenticationError("Invalid or expired token")
    return identity


async def get_account_context(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> AccountContext:
    return await load_account_context(db, identity)


async def get_manager_context(
    context: AccountContext = Depends(get_account_context),
) -> AccountContext:
    require_manager(context)
    return context
