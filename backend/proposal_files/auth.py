"""Actor resolution.

Authentication happens upstream: the gateway verifies the caller's token and
forwards the identity in `X-User-Uid`, `X-User-Role` and `X-User-Name`.
Requests without a uid or with a role outside the known set are rejected.
"""
from typing import Optional
from fastapi import Header, HTTPException

from proposal_files.services.actors import Actor, Role


async def get_current_actor(
    x_user_uid: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> Actor:
    """FastAPI dependency returning the authenticated actor."""
    uid = (x_user_uid or "").strip()
    if not uid:
        raise HTTPException(status_code=401, detail="Authentication required.")
    role = Role.parse(x_user_role)
    if role is None:
        raise HTTPException(status_code=401, detail=f"Unknown role '{x_user_role}'.")
    return Actor(uid=uid, role=role, name=(x_user_name or "").strip())
