"""
Authentication endpoints for user registration, login, and token refresh.

Implements JWT-based stateless authentication:
- POST /register: Create user account and its organization
- POST /login: Authenticate and receive JWT tokens
- POST /refresh: Get new access token using refresh token
- GET /me: Get current user profile with memberships
"""

import logging
import uuid
from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException, Depends, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import verify_password, get_password_hash, create_access_token, create_refresh_token, decode_token
from app.core.deps import get_current_user
from app.core.api_rate_limiter import check_ip_rate_limit, check_signup_rate_limit, get_client_ip
from app.models.user import User
from app.models.organization import Organization, OrgMembership, MembershipRole
from app.schemas.user import (
    UserRegisterRequest,
    UserLoginRequest,
    TokenResponse,
    TokenRefreshRequest,
    UserResponse,
    UserProfileResponse,
    MembershipResponse,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


def _issue_tokens(user: User) -> TokenResponse:
    access_token = create_access_token(data={"sub": str(user.id), "is_admin": user.is_admin})
    refresh_token = create_refresh_token(data={"sub": str(user.id)})
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        user=UserResponse.model_validate(user)
    )


@router.post("/register", status_code=201, response_model=TokenResponse)
def register(
    request: UserRegisterRequest,
    http_request: Request,
    db: Session = Depends(get_db)
):
    """
    Register a new user account.

    Creates:
    1. User record with hashed password
    2. Organization (named after organization_name, or the user)
    3. Owner membership linking the two

    Returns JWT tokens for immediate login.
    """
    check_signup_rate_limit(get_client_ip(http_request))

    email = request.email.lower()

    # Check if email already exists
    existing_user = db.query(User).filter(func.lower(User.email) == email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        id=uuid.uuid4(),
        email=email,
        hashed_password=get_password_hash(request.password),
        full_name=request.full_name,
        is_active=True,
    )
    db.add(new_user)
    db.flush()  # Flush to get user.id for the membership FK

    organization = Organization(
        name=request.organization_name or f"{request.full_name or email}'s Organization"
    )
    db.add(organization)
    db.flush()

    db.add(OrgMembership(user_id=new_user.id, org_id=organization.id, role=MembershipRole.OWNER))
    db.commit()
    db.refresh(new_user)

    logger.info(f"New user registered: {new_user.email} (org_id: {organization.id})")

    return _issue_tokens(new_user)


@router.post("/login", response_model=TokenResponse)
def login(
    request: UserLoginRequest,
    http_request: Request,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return JWT tokens.

    Validates email/password and returns access + refresh tokens.
    Updates last_login_at timestamp.
    """
    check_ip_rate_limit(get_client_ip(http_request), endpoint="login")

    user =db.query(User).filter(func.lower(User.email) == request.username.lower()).first()
    if not user or not verify_password(request.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive. Please contact support."
        )

    # Update last login timestamp
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()

    logger.info(f"User logged in: {user.email}")

    return _issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(
    request: TokenRefreshRequest,
    db: Session = Depends(get_db)
):
    """
    Refresh access token using refresh token.

    Validates the refresh token and issues a new token pair.
    """
    try:
        payload = decode_token(request.refresh_token)
        user_id: str = payload.get("sub")
        token_type: str = payload.get("type")

        if user_id is None or token_type != "refresh":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid refresh token"
            )

        # Verify user still exists and is active
        user = db.query(User).filter(User.id == uuid.UUID(user_id)).first()
        if not user or not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found or inactive"
            )

        return _issue_tokens(user)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Token refresh error: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token"
        )


@router.get("/me", response_model=UserProfileResponse)
def get_current_user_profile(
    current_user: User = Depends(get_current_user)
):
    """
    Get current authenticated user's profile and organizations.

    Requires valid JWT token in Authorization header.
    """
    memberships = [
        MembershipResponse(
            org_id=membership.org_id,
            organization_name=membership.organization.name,
            role=membership.role.value,
        )
        for membership in current_user.memberships
    ]
    return UserProfileResponse(
        **UserResponse.model_validate(current_user).model_dump(),
        memberships=memberships,
    )
