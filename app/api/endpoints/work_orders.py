import logging
from uuid import UUID
from fastapi import APIRouter, HTTPException, Depends

from app.core.deps import get_current_org_id
from app.core.api_rate_limiter import check_openai_rate_limit
from app.schemas.job import WorkOrderParseRequest, WorkOrderParseResponse
from app.services.work_order_parser import parse_work_order

router = APIRouter(prefix="/work-orders", tags=["Work Orders"])
logger = logging.getLogger(__name__)


@router.post("/parse", response_model=WorkOrderParseResponse)
async def parse(
    request: WorkOrderParseRequest,
    org_id: UUID = Depends(get_current_org_id)
):
    """
    Extract job fields from a pasted work order (email, PDF text, ...).

    Uses OpenAI when configured and falls back to pattern matching. The
    result pre-fills POST /jobs; nothing is saved.
    """
    check_openai_rate_limit(str(org_id))

    try:
        parsed = await parse_work_order(request.text)
    except Exception as e:
        logger.error(f"Work order parsing failed for org {org_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to parse work order")

    return WorkOrderParseResponse(**parsed)
