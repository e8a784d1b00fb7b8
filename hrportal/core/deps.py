"""
Dependencies and guards for FastAPI endpoints
"""
from dataclasses import dataclass
from typing import Generator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hrportal.core.security import decode_token
from hrportal.db.session import SessionLocal
from hrportal.models.workflow import Role

security = HTTPBearer()

KNOWN_ROLES = {role.value for role in Role} | {"employee"}


@dataclass(frozen=True)
class ActorContext:
    """Who is acting: a role claim and a display name, nothing more"""
    role: str
    display_name: str
    subject_id: Optional[str] = None

    @property
    def approver_role(self) -> Optional[Role]:
        try:
            return Role(self.role)
        except ValueError:
            return None


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_actor(credentials: HTTPAuthorizationCredentials = Depends(security)) -> ActorContext:
    """
    Resolve the acting role from the bearer token
    """
    invalid = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(credentials.credentials)
    except ValueError:
        raise invalid

    display_name = payload.get("sub")
    role = str(payload.get("role") or "").lower()
    if not display_name or role not in KNOWN_ROLES:
        raise invalid

    return ActorContext(role=role, display_name=display_name, subject_id=payload.get("employee_id"))


def require_approver(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    """Only approver roles (hod, dean, vc, president, hr) may read approval queues"""
    if actor.approver_role is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. Required roles: {sorted(r.value for r in Role)}",
        )
    return actor
