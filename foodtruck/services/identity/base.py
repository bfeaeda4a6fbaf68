"""
Identity Service Abstract Base Class

Turns a bearer token issued by the identity provider into the few facts
the application reads: subject id, email and display name.

Both MockIdentityService and IdentityToolkitService implement this
interface, so the API layer never knows which one is active.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Identity:
    """
    A verified signed-in identity.

    Attributes:
        subject_id: Stable user id issued by the provider
        email: Email address, if the provider knows one
        display_name: Human-readable name, if any
        provider: Sign-in method reported by the provider (password, google.com, ...)
    """
    subject_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    provider: Optional[str] = None


class BaseIdentityService(ABC):
    """Abstract base class for identity providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g. "mock", "identity_toolkit")."""
        pass

    @abstractmethod
    async def verify_token(self, token: str) -> Optional[Identity]:
        """
        Verify a bearer token.

        Returns:
            Identity if the token is valid, None if it is not.

        Raises:
            ExternalServiceError: if the provider could not be reached.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
