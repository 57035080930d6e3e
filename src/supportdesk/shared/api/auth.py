"""
Caller Identity
===============

Authentication happens upstream; requests reach the service with the
verified user in the ``X-User-Id`` and ``X-User-Role`` headers.
"""

from typing import Callable, Iterable, Optional

from fastapi import Depends, Header

from supportdesk.config import UserRole
from supportdesk.core import AuthenticationException, AuthorizationException
from supportdesk.tickets.domain import Caller


async def get_current_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Caller:
    """
    Raises:
        AuthenticationException: headers missing or malformed
    """
    if not x_user_id or not x_user_role:
        raise AuthenticationException("Authentication required")

    try:
        user_id = int(x_user_id)
    except ValueError:
        raise AuthenticationException("Invalid user id", {"x_user_id": x_user_id})

    try:
        role = UserRole(x_user_role.strip().lower())
    except ValueError:
        raise AuthenticationException("Invalid user role", {"x_user_role": x_user_role})

    return Caller(user_id=user_id, role=role)


def require_roles(*roles: UserRole | Iterable[UserRole]) -> Callable:
    """
    Dependency factory restricting an endpoint to the given roles.

    Usage:
        caller: Caller = Depends(require_roles(UserRole.VENDOR))
    """
    allowed = set()
    for role in roles:
        if isinstance(role, UserRole):
            allowed.add(role)
        else:
            allowed.update(role)

    async def dependency(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in allowed:
            raise AuthorizationException(
                "Access denied",
                {"role": caller.role.value, "allowed": sorted(r.value for r in allowed)}
            )
        return caller

    return dependency
