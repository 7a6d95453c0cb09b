"""
Selection of staged license records for a job.

Candidates are pre-filtered (city present, trade match or "General", same
state, license not expired/inactive/revoked), then ranked by OpenAI when an
API key is configured. Any AI failure falls back to the heuristic score.
"""

import json
import logging
from typing import Dict, List, Optional

from openai import OpenAI

from app.core.config import settings
from app.core.rounding import round_half_up
from app.services.geo import haversine_miles

logger = logging.getLogger(__name__)

GENERAL_TRADE = "General"
INACTIVE_LICENSE_STATUSES = {"expired", "inactive", "revoked"}
MAX_AI_CANDIDATES = 50


class LeadSelectionError(Exception):
    """AI ranking produced no usable result"""
    pass


def pre_filter_candidates(records: List, trade_needed: str, job_state: Optional[str]) -> List:
    filtered = []
    for record in records:
        if not record.city:
            continue
        if record.trade_type != trade_needed and record.trade_type != GENERAL_TRADE:
            continue
        if record.state != job_state:
            continue
        status = (record.license_status or "").lower()
        if status in INACTIVE_LICENSE_STATUSES:
            continue
        filtered.append(record)
    return filtered


def heuristic_score(record, trade_needed: str, job_city: Optional[str], job_lat: Optional[float] = None, job_lng: Optional[float] = None) -> int:
    """
    Base 50; +30 exact trade (or +10 General); +20 same city; +10 active
    license; +5 phone on file; minus up to 20 for distance (1 point per
    2.5 miles). Clamped to 0-100.
    """
    score = 50.0

    if record.trade_type == trade_needed:
        score += 30
    elif record.trade_type == GENERAL_TRADE:
        score += 10

    if job_city and record.city and record.city.lower() == job_city.lower():
        score += 20

    if (record.license_status or "").lower() == "active":
        score += 10

    if record.phone:
        score += 5

    if job_lat and job_lng and record.lat and record.lng:
        distance = haversine_miles(job_lat, job_lng, record.lat, record.lng)
        score -= min(20, distance / 2.5)

    return max(0, min(100, round_half_up(score)))


def score_heuristic(records: List, trade_needed: str, job_city: Optional[str], limit: int,
                    job_lat: Optional[float] = None, job_lng: Optional[float] = None) -> List[Dict]:
    scored = [
        {
            "record": record,
            "score": heuristic_score(record, trade_needed, job_city, job_lat, job_lng),
            "reason": f"Trade: {record.trade_type}, City: {record.city}, Status: {record.license_status or 'unknown'}",
        }
        for record in records
    ]
    scored.sort(key=lambda entry: entry["score"], reverse=True)
    return scored[:limit]


def score_with_ai(records: List, trade_needed: str, job_city: Optional[str], job_state: Optional[str],
                  limit: int, client: Optional[OpenAI] = None) -> List[Dict]:
    """
    Rank candidates with OpenAI (JSON mode).

    Raises:
        LeadSelectionError: On any API, parsing or shape error
    """
    candidates = records[:MAX_AI_CANDIDATES]
    summaries = [
        {
            "idx": idx,
            "name": record.full_name or record.business_name or "Unknown",
            "trade": record.trade_type or "Unknown",
            "city": record.city or "Unknown",
            "state": record.state or "Unknown",
            "license_status": record.license_status or "unknown",
            "classification": record.license_classification or "Unknown",
        }
        for idx, record in enumerate(candidates)
    ]

    system_prompt = f"""You are a contractor selection assistant. Rank contractors by suitability for a job.

RANKING CRITERIA (in order of importance):
1. Geographic proximity - same city is best, nearby cities are good
2. Trade match - exact trade match is best
3. License status - active licenses preferred over unknown
4. Classification - more specific classifications indicate specialization

Return ONLY JSON of the form:
{{"selected": [{{"idx": 0, "score": 95, "reason": "Same city, exact trade match, active license"}}]}}

Select up to {limit} contractors. Score from 0-100. Higher is better."""

    user_prompt = f"""Select the best contractors for this job:

JOB DETAILS:
- Location: {job_city}, {job_state}
- Trade Needed: {trade_needed}

AVAILABLE CONTRACTORS:
{json.dumps(summaries, indent=2)}"""

    client = client or OpenAI(api_key=settings.OPENAI_API_KEY, max_retries=2)

    try:
        response = client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=settings.OPENAI_TEMPERATURE,
        )
        content = response.choices[0].message.content
        parsed = json.loads(content or "")
    except Exception as e:
        raise LeadSelectionError(f"OpenAI ranking failed: {e}")

    items = parsed.get("selected") if isinstance(parsed, dict) else None
    if not isinstance(items, list):
        raise LeadSelectionError("Invalid AI response format")

    selected = []
    for item in items:
        idx = item.get("idx") if isinstance(item, dict) else None
        if isinstance(idx, int) and 0 <= idx < len(candidates):
            selected.append({
                "record": candidates[idx],
                "score": item.get("score") or 50,
                "reason": item.get("reason") or "AI selected",
            })

    return selected[:limit]


def select_contractors(
    records: List,
    trade_needed: str,
    job_city: Optional[str],
    job_state: Optional[str],
    limit: int = 20,
    job_lat: Optional[float] = None,
    job_lng: Optional[float] = None,
    client: Optional[OpenAI] = None,
) -> Dict:
    """
    Pick the best staged records for a job.

    Returns:
        {"success", "selected": [{"record", "score", "reason"}], "total_candidates", "method", "error"?}
    """
    if not records:
        return {"success": False, "selected": [], "total_candidates": 0, "error": "No contractors provided"}

    filtered = pre_filter_candidates(records, trade_needed, job_state)
    logger.info(f"Lead selection for {trade_needed} in {job_city}, {job_state}: {len(filtered)}/{len(records)} after pre-filter")

    if not filtered:
        return {
            "success": False,
            "selected": [],
            "total_candidates": len(records),
            "error": "No contractors match the trade and location criteria",
        }

    method = "heuristic"
    selected = None
    if settings.OPENAI_API_KEY or client is not None:
        try:
            selected = score_with_ai(filtered, trade_needed, job_city, job_state, limit, client=client)
            method = "ai"
        except LeadSelectionError as e:
            logger.warning(f"{e}; using heuristic fallback")

    if selected is None:
        selected = score_heuristic(filtered, trade_needed, job_city, limit, job_lat, job_lng)

    return {"success": True, "selected": selected, "total_candidates": len(records), "method": method}
