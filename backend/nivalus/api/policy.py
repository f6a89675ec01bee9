"""
Access policies for routes.

A policy is a predicate over the calling identity and the id of the user who
owns the resource. Routes declare their policy once through ``requires``;
handlers that must validate input before authorizing call ``authorize``.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status

from nivalus.api.dependencies import Identity, get_current_identity


@dataclass(frozen=True)
class Policy:
    name: str
    allows: Callable[[Identity, Optional[int]], bool]


ADMIN_ONLY = Policy("admin", lambda identity, owner_id: identity.is_admin)
SELF_OR_ADMIN = Policy(
    "self_or_admin",
    lambda identity, owner_id: identity.is_admin or (owner_id is not None and identity.id == owner_id),
)


def authorize(policy: Policy, identity: Identity, owner_id: Optional[int], message: str) -> None:
    """Raise 403 with ``message`` unless the policy allows the identity"""
    if not policy.allows(identity, owner_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


def _path_owner(request: Request, owner_param: Optional[str]) -> Optional[int]:
    if owner_param is None:
        return None
    try:
        return int(request.path_params[owner_param])
    except (KeyError, TypeError, ValueError):
        return None


def requires(policy: Policy, message: str, owner_param: Optional[str] = None):
    """
    Build a dependency enforcing ``policy`` for a route.

    ``owner_param`` names the path parameter holding the owning user's id.
    The dependency returns the identity so handlers can use it directly.
    """
    async def dependency(
        request: Request,
        identity: Identity = Depends(get_current_identity),
    ) -> Identity:
        authorize(policy, identity, _path_owner(request, owner_param), message)
        return identity

    return dependency


ADMIN_REQUIRED = "Admin access required"
