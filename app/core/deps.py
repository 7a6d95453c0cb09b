"""
FastAPI dependencies for authentication and authorization.

These dependencies are used to protect endpoints and extract user and
organization context. Every tenant-scoped query filters by the org_id
returned from get_current_org_id.
"""

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.core.database import get_db
from app.core.security import decode_token
from app.models.user import User
from app.models.organization import OrgMembership, MembershipRole

# HTTP Bearer token scheme (Authorization: Bearer <token>)
security = HTTPBearer()


def _user_from_token(token: str, db: Session) -> Optional[User]:
    try:
        payload = decode_token(token)
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != "access":
        return None

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        return None

    return db.query(User).filter(User.id == user_uuid).first()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Extract and validate the current user from JWT token.

    This dependency:
    1. Extracts the Bearer token from Authorization header
    2. Decodes and validates the JWT (must be an access token)
    3. Fetches the user from the database
    4. Ensures the user is active

    Raises:
        HTTPException 401: If token is invalid or user not found
        HTTPException 403: If the account is inactive
    """
    user = _user_from_token(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(HTTPBearer(auto_error=False)),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Return the user when a valid bearer token is sent, otherwise None.

    Used by public endpoints (technician signup) that behave differently for
    signed-in users.
    """
    if not credentials:
        return None

    user = _user_from_token(credentials.credentials, db)
    return user if user and user.is_active else None


def get_current_membership(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    x_organization_id: Optional[str] = Header(default=None),
) -> OrgMembership:
    """
    Resolve the organization the request acts on.

    Users belonging to several organizations pick one with the
    X-Organization-Id header; otherwise their oldest membership is used.

    Raises:
        HTTPException 403: User has no membership (in the requested org)
    """
    query = db.query(OrgMembership).filter(OrgMembership.user_id == user.id)

    if x_organization_id:
        try:
            requested = UUID(x_organization_id)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid X-Organization-Id header"
            )
        query = query.filter(OrgMembership.org_id == requested)

    membership = query.order_by(OrgMembership.created_at.asc()).first()
    if membership is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this organization"
        )

    return membership


def get_current_org_id(membership: OrgMembership = Depends(get_current_membership)) -> UUID:
    """
    Extract org_id from the current membership.

    This is the core multi-tenancy dependency. All queries must filter by org_id
    to prevent cross-tenant data access.

    Usage:
        @router.get("/jobs")
        def list_jobs(org_id: UUID = Depends(get_current_org_id), db: Session = Depends(get_db)):
            jobs = db.query(Job).filter(Job.org_id == org_id).all()
    """
    return membership.org_id


def require_org_admin(membership: OrgMembership = Depends(get_current_membership)) -> OrgMembership:
    """
    Require owner or admin role in the current organization.

    Raises:
        HTTPException 403: Member role only
    """
    if membership.role not in (MembershipRole.OWNER, MembershipRole.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organization admin role required"
        )
    return membership


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """
    Require a platform admin (outreach subsystem).

    Raises:
        HTTPException 403: If the user is not an admin
    """
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user
