"""Identity-provider sign-in, reduced to a request that returns a result.

The provider is anything with ``async authenticate() -> Identity`` and
``async sign_out()``. Provider failures are raised as ProviderError with the
provider's error code.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Union

from cashtrack.domain import Identity

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Access denied. Unauthorized account."

_CANCEL_CODES = {"popup-closed-by-user", "cancelled-popup-request"}

_ERROR_MESSAGES = {
    "popup-blocked": "Popup blocked. Allow popups and try again.",
    "unauthorized-domain": "Domain not authorized. Check provider console.",
    "operation-not-allowed": "Sign-in provider is not enabled.",
}


class ProviderError(Exception):
    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


class IdentityProvider(Protocol):
    async def authenticate(self) -> Identity: ...

    async def sign_out(self) -> None: ...


@dataclass(frozen=True)
class Authenticated:
    identity: Identity


@dataclass(frozen=True)
class Denied:
    reason: str


@dataclass(frozen=True)
class Cancelled:
    pass


SignInResult = Union[Authenticated, Denied, Cancelled]


def is_allowed(identity: Optional[Identity], allowed: Iterable[str]) -> bool:
    """Exact, case-sensitive match of the identity's email against the list."""
    if identity is None or not identity.email:
        return False
    return identity.email in set(allowed)


async def sign_in(provider: IdentityProvider, allowed: Iterable[str]) -> SignInResult:
    allowed = list(allowed)
    try:
        identity = await provider.authenticate()
    except ProviderError as e:
        if e.code in _CANCEL_CODES:
            return Cancelled()
        logger.warning("Sign-in failed: %s", e.code)
        return Denied(_ERROR_MESSAGES.get(e.code, "Access denied"))

    if not is_allowed(identity, allowed):
        logger.warning("Rejected sign-in for %s", identity.email)
        await provider.sign_out()
        return Denied(UNAUTHORIZED_MESSAGE)

    logger.info("Signed in: %s", identity.email)
    return Authenticated(identity)
