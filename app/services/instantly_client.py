"""
Instantly.ai API client (v1) for cold-lead campaigns.

Every call is a POST carrying the api key in the JSON body. Failures are
logged and reported as falsy results rather than raised.
"""

import logging
from typing import Any, Dict, List, Optional
import httpx
from app.core.config import settings

logger = logging.getLogger(__name__)

INSTANTLY_API_BASE = "https://api.instantly.ai/api/v1"
DEFAULT_CAMPAIGN_TRADE = "HVAC"


def get_campaign_id_for_trade(trade: Optional[str], campaign_ids: Optional[Dict[str, str]] = None) -> Optional[str]:
    """
    Campaign id configured for a trade, matched case-insensitively.

    Trades without their own campaign use the HVAC campaign.
    """
    campaign_ids = campaign_ids if campaign_ids is not None else settings.INSTANTLY_CAMPAIGN_IDS
    by_trade = {name.lower(): campaign for name, campaign in campaign_ids.items() if campaign}

    if trade and trade.lower() in by_trade:
        return by_trade[trade.lower()]
    return by_trade.get(DEFAULT_CAMPAIGN_TRADE.lower())


def build_cold_lead_payload(lead, job=None, recipient_id: Optional[str] = None) -> Dict[str, Any]:
    """An Instantly lead entry for a cold lead, with job variables when dispatching a job."""
    full_name = lead.full_name or ""
    first_name = lead.first_name or full_name.split(" ")[0] or "there"
    last_name = lead.last_name or " ".join(full_name.split(" ")[1:])

    payload = {
        "email": lead.email,
        "first_name": first_name,
        "last_name": last_name,
        "company_name": lead.company_name or "",
    }
    if lead.phone:
        payload["phone_number"] = lead.phone

    if job is not None:
        app_url = settings.APP_URL.rstrip("/")
        payload["custom_variables"] = {
            "job_type": job.trade_needed,
            "job_title": job.job_title or "New Job",
            "job_description": job.description or "",
            "location": job.address_text or "",
            "urgency": job.urgency.value if job.urgency else "standard",
            "job_scheduled": job.scheduled_at.strftime("%m/%d/%Y") if job.scheduled_at else "TBD",
            "work_order_id": str(job.id),
            "accept_url": f"{app_url}/jobs/{job.id}/respond?recipient={recipient_id}" if recipient_id else f"{app_url}/jobs/{job.id}",
        }

    return payload


class InstantlyClient:
    """
    Client for the Instantly.ai campaign API.

    Pass a transport to route requests elsewhere (tests use httpx.MockTransport).
    """

    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key if api_key is not None else settings.INSTANTLY_API_KEY
        if not self.api_key:
            logger.warning("Instantly API key not configured")
        self.client = httpx.Client(
            base_url=INSTANTLY_API_BASE,
            transport=transport or httpx.HTTPTransport(retries=2),
            timeout=20.0,
        )

    def _post(self, path: str, body: Dict[str, Any]) -> Optional[Any]:
        try:
            response = self.client.post(path, json={"api_key": self.api_key, **body})
        except httpx.HTTPError as e:
            logger.error(f"Instantly {path} request failed: {e}")
            return None

        if response.status_code >= 400:
            logger.error(f"Instantly {path} failed: {response.status_code} {response.text}")
            return None

        return response.json()

    def get_campaign(self, campaign_id: str) -> Optional[Dict[str, Any]]:
        """Campaign details, or None if it does not exist or the call failed."""
        return self._post("/campaign/get", {"campaign_id": campaign_id})

    def add_leads(self, campaign_id: str, leads: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Add leads to a campaign.

        Returns:
            {"success": bool, "added": int, "errors": list}
        """
        if not leads:
            return {"success": True, "added": 0, "errors": []}

        data = self._post("/lead/add", {"campaign_id": campaign_id, "leads": leads})
        if data is None:
            return {"success": False, "added": 0, "errors": ["request failed"]}

        errors = data.get("errors", []) if isinstance(data, dict) else []
        logger.info(f"Added {len(leads)} leads to Instantly campaign {campaign_id}")
        return {"success": True, "added": len(leads), "errors": errors}

    def get_campaign_analytics(self, campaign_id: str) -> Optional[Dict[str, Any]]:
        return self._post("/analytics/campaign", {"campaign_id": campaign_id})

    def list_campaigns(self) -> List[Dict[str, Any]]:
        data = self._post("/campaign/list", {})
        return data if isinstance(data, list) else []
