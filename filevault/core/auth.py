"""
@file: auth.py
@description:
This module implements authentication and authorization for the FileVault API
using opaque bearer API keys. It provides:
- AccessGuard: resolves an Authorization header to an Identity and enforces a minimum Role
- require_role: a FastAPI dependency factory wrapping the guard for protected routes

@dependencies:
- fastapi: For dependency injection and the Authorization header
- filevault.schemas.files: Role and Identity
- filevault.core.logger: For component-specific logging

@notes:
- Keys are matched exactly against the catalog identity table; a key is valid
  only while its row exists.
- Both a bad key and an insufficient role answer 401, with different messages.
- The guard only reads the catalog and keeps no state between requests.
"""

from typing import Callable, Optional

from fastapi import Header, Request

from filevault.core.exceptions import Unauthenticated, Unauthorized
from filevault.core.logger import setup_logger
from filevault.schemas.files import Identity, Role

# Create a component-specific logger
logger = setup_logger("filevault.core.auth")

BEARER_PREFIX = "Bearer "


def extract_token(authorization: Optional[str]) -> str:
    """
    Strip the bearer prefix from a raw Authorization header value.

    Args:
        authorization: The header value, possibly missing

    Returns:
        str: The token (empty if the header was missing)
    """
    if not authorization:
        return ""
    if authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):]
    return authorization


class AccessGuard:
    """
    Resolves API keys to identities and checks roles.

    Args:
        catalog: Catalog providing find_identity_by_token
    """

    def __init__(self, catalog):
        self.catalog = catalog

    def resolve(self, authorization: Optional[str], required: Role) -> Identity:
        """
        Authenticate a caller and check their role.

        Args:
            authorization: Raw Authorization header value
            required: Minimum role for the operation

        Returns:
            Identity: The caller's username and role

        Raises:
            Unauthenticated: If the key does not match any identity
            Unauthorized: If the identity's role is below the requirement
            StorageUnavailable: If the identity table cannot be read
        """
        token = extract_token(authorization)
        identity = self.catalog.find_identity_by_token(token) if token else None

        if identity is None:
            logger.warning("Rejected request with an invalid API key")
            raise Unauthenticated()

        if not identity.role.satisfies(required):
            logger.warning(
                f"User {identity.username} ({identity.role.name}) lacks required role {required.name}"
            )
            raise Unauthorized()

        return identity


def get_access_guard(request: Request) -> AccessGuard:
    return request.app.state.access_guard


def require_role(required: Role) -> Callable[..., Identity]:
    """
    Build a dependency that authenticates the caller with at least the given role.

    The resolved identity is also stored on request.state.identity.

    Example:
        @router.get("/list")
        def list_files(identity: Identity = Depends(require_role(Role.READ_WRITE_SELF))): ...
    """

    def dependency(
        request: Request,
        authorization: Optional[str] = Header(default=None),
    ) -> Identity:
        identity = get_access_guard(request).resolve(authorization, required)
        request.state.identity = identity
        return identity

    return dependency
