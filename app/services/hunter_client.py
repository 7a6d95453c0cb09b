"""
Hunter.io client (v2) for finding and verifying contractor emails.
"""

import logging
import re
from typing import Any, Dict, Optional
import httpx
from app.core.config import settings

logger = logging.getLogger(__name__)

HUNTER_API_BASE = "https://api.hunter.io/v2"


def guess_domain(company: str) -> str:
    """Guess a company domain from its name (alphanumerics only, .com)."""
    return re.sub(r"[^a-z0-9]", "", company.lower())[:30] + ".com"


class HunterClient:
    """
    Hunter.io email finder, verifier, domain search and account info.

    Every method returns a dict with "success" and, on failure, "error".
    """

    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key if api_key is not None else settings.HUNTER_API_KEY
        self.client = httpx.Client(
            base_url=HUNTER_API_BASE,
            transport=transport or httpx.HTTPTransport(retries=2),
            timeout=15.0,
        )

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            return {"success": False, "error": "Hunter.io API key not configured"}

        try:
            response = self.client.get(path, params={"api_key": self.api_key, **params})
        except httpx.HTTPError as e:
            logger.error(f"Hunter.io {path} request failed: {e}")
            return {"success": False, "error": str(e)}

        if response.status_code == 401:
            return {"success": False, "error": "Invalid Hunter.io API key"}
        if response.status_code == 429:
            return {"success": False, "error": "Hunter.io rate limit exceeded"}
        if response.status_code >= 400:
            try:
                details = response.json().get("errors", [{}])[0].get("details")
            except ValueError:
                details = None
            return {"success": False, "error": details or f"API error: {response.status_code}"}

        return {"success": True, "data": response.json().get("data") or {}}

    def find_email(
        self,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        full_name: Optional[str] = None,
        company: Optional[str] = None,
        domain: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Find a person's email from their name and company (or domain).

        Returns:
            {"success", "email", "confidence" (0-100), "sources", "error"?}
        """
        if not first_name and full_name:
            parts = full_name.strip().split(" ")
            first_name = parts[0]
            last_name = last_name or (" ".join(parts[1:]) or None)

        if not first_name:
            return {"success": False, "email": None, "confidence": 0, "sources": [], "error": "First name is required"}

        if not domain and company:
            domain = guess_domain(company)
        if not domain:
            return {"success": False, "email": None, "confidence": 0, "sources": [], "error": "Either domain or company is required"}

        params = {"domain": domain, "first_name": first_name}
        if last_name:
            params["last_name"] = last_name

        result = self._get("/email-finder", params)
        if not result["success"]:
            return {"success": False, "email": None, "confidence": 0, "sources": [], "error": result["error"]}

        data = result["data"]
        if not data.get("email"):
            return {"success": False, "email": None, "confidence": 0, "sources": [], "error": "No email found"}

        logger.info(f"Hunter.io found {data['email']} (confidence {data.get('score')})")
        return {
            "success": True,
            "email": data["email"],
            "confidence": data.get("score") or 0,
            "sources": [source.get("domain") for source in data.get("sources") or []],
            "position": data.get("position"),
        }

    def verify_email(self, email: str) -> Dict[str, Any]:
        """Deliverability check: status in valid/invalid/accept_all/webmail/disposable/unknown."""
        result = self._get("/email-verifier", {"email": email})
        if not result["success"]:
            return {"success": False, "email": email, "status": "unknown", "score": 0, "error": result["error"]}

        data = result["data"]
        return {
            "success": True,
            "email": email,
            "status": data.get("status") or "unknown",
            "score": data.get("score") or 0,
        }

    def search_domain(self, domain: str, limit: int = 10) -> Dict[str, Any]:
        result = self._get("/domain-search", {"domain": domain, "limit": limit})
        if not result["success"]:
            return {"success": False, "domain": domain, "emails": [], "error": result["error"]}

        emails = [
            {
                "email": entry.get("value"),
                "confidence": entry.get("confidence") or 0,
                "first_name": entry.get("first_name") or "",
                "last_name": entry.get("last_name") or "",
                "position": entry.get("position") or "",
            }
            for entry in result["data"].get("emails") or []
        ]
        return {"success": True, "domain": domain, "emails": emails}

    def get_account_info(self) -> Dict[str, Any]:
        """
        Remaining search and verification credits.

        Returns:
            {"success", "searches": {"used", "available", "remaining"}, "verifications": {...}}
        """
        result = self._get("/account", {})
        if not result["success"]:
            return {"success": False, "error": result["error"]}

        requests_info = result["data"].get("requests") or {}

        def credits(kind: str) -> Dict[str, int]:
            entry = requests_info.get(kind) or {}
            used = entry.get("used") or 0
            available = entry.get("available") or 0
            return {"used": used, "available": available, "remaining": max(0, available - used)}

        return {"success": True, "searches": credits("searches"), "verifications": credits("verifications")}
