"""FastAPI dependencies for request context and authorization.

This module provides reusable FastAPI dependencies for:
- Application state access (settings, UnitOfWork factory, orchestrator)
- Caller identification and permission checks

Credentials are verified upstream. The auth proxy in front of the API
forwards the verified principal as X-Wallet-Address and X-Permissions
(comma separated: attendee, organizer, admin).
"""

from dataclasses import dataclass, field
from typing import Annotated, Callable

from fastapi import Depends, Header, HTTPException, Request, status
from xrpl.core.addresscodec import is_valid_classic_address

from attendify.core.config import Settings
from attendify.services.attendify import Attendify
from attendify.uow import UnitOfWorkFactory

PERMISSIONS = ("attendee", "organizer", "admin")


@dataclass(frozen=True)
class Caller:
    """Verified principal of the current request."""

    wallet_address: str
    permissions: frozenset[str] = field(default_factory=frozenset)

    def has(self, permission: str) -> bool:
        """Admins hold every permission."""
        return permission in self.permissions or "admin" in self.permissions


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance loaded from environment variables.
    """
    return Settings()  # type: ignore[call-arg]  # Pydantic loads from env vars


def get_uow_factory(request: Request) -> UnitOfWorkFactory:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.get("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.users.get_by_wallet(wallet)
    """
    return request.app.state.uow_factory


def get_attendify(request: Request) -> Attendify:
    """Get the event lifecycle orchestrator from app state."""
    return request.app.state.attendify


async def get_caller(
    x_wallet_address: Annotated[str | None, Header()] = None,
    x_permissions: Annotated[str | None, Header()] = None,
) -> Caller:
    """Identify the caller from the headers set by the auth proxy.

    Raises:
        HTTPException: 401 Unauthorized if the wallet header is missing or malformed
    """
    if not x_wallet_address:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Wallet-Address header"
        )
    if not is_valid_classic_address(x_wallet_address):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid X-Wallet-Address header"
        )

    permissions = frozenset(
        p.strip().lower() for p in (x_permissions or "").split(",") if p.strip()
    )
    return Caller(
        wallet_address=x_wallet_address,
        permissions=permissions & frozenset(PERMISSIONS),
    )


def require_permission(permission: str) -> Callable:
    """Build a dependency that admits callers holding a permission.

    Example:
        >>> @router.get("/stats")
        >>> async def stats(caller: Caller = Depends(require_permission("admin"))):
        ...     ...
    """

    async def _check(caller: Caller = Depends(get_caller)) -> Caller:
        if not caller.has(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission}",
            )
        return caller

    return _check


def validate_classic_address(value: str) -> str:
    """Shared pydantic validator body for XRPL classic addresses."""
    value = value.strip()
    if not is_valid_classic_address(value):
        raise ValueError("Invalid XRPL classic address")
    return value
