from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status

from formportal.db.document_store import DualStore
from formportal.db.session import get_stores

EMPLOYEES_COLLECTION = "employees"


@dataclass(frozen=True)
class Principal:
    user_id: str
    email: str | None = None
    office_name: str | None = None
    is_admin: bool = False


async def get_current_user(
    x_user_id: str | None = Header(default=None),
    stores: DualStore = Depends(get_stores),
) -> Principal:
    """
    DEV AUTH: pass X-User-Id header to simulate logged-in user.
    Example: X-User-Id: admin-1
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header (dev auth)",
        )

    doc = await stores.primary.get(EMPLOYEES_COLLECTION, x_user_id)
    if not doc or not doc.get("is_active", True):
        raise HTTPException(status_code=401, detail="Invalid or inactive user")

    return Principal(
        user_id=x_user_id,
        email=doc.get("email"),
        office_name=(doc.get("office_name") or "").strip() or None,
        is_admin=bool(doc.get("is_admin", False)),
    )


async def require_admin(current_user: Principal = Depends(get_current_user)) -> Principal:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user
