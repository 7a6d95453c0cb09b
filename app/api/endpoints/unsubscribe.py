import logging
from fastapi import APIRouter, Depends, Query, Request
from pydantic import EmailStr
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.api_rate_limiter import check_public_response_rate_limit, get_client_ip
from app.schemas.outreach import UnsubscribeRequest, UnsubscribeResponse
from app.services.technician_service import unsubscribe

router = APIRouter(prefix="/unsubscribe", tags=["Outreach"])
logger = logging.getLogger(__name__)

MESSAGES = {
    "warm": "You will no longer receive work order emails.",
    "cold": "You have been removed from our outreach list.",
}


def _unsubscribe(db: Session, email: str, unsubscribe_type: str) -> UnsubscribeResponse:
    result = unsubscribe(db, email, unsubscribe_type)
    return UnsubscribeResponse(email=result["email"], message=MESSAGES[unsubscribe_type])


@router.post("/", response_model=UnsubscribeResponse)
def unsubscribe_post(
    request: UnsubscribeRequest,
    http_request: Request,
    db: Session = Depends(get_db)
):
    """
    Stop all outreach to an email address (public).

    type "warm" covers technicians receiving work order emails, "cold"
    covers campaign leads.
    """
    check_public_response_rate_limit(get_client_ip(http_request))
    return _unsubscribe(db, request.email, request.type)


@router.get("/", response_model=UnsubscribeResponse)
def unsubscribe_link(
    http_request: Request,
    email: EmailStr,
    type: str = Query("cold", pattern="^(warm|cold)$"),
    db: Session = Depends(get_db)
):
    """One-click unsubscribe link target used in outreach emails."""
    check_public_response_rate_limit(get_client_ip(http_request))
    return _unsubscribe(db, email, type)
