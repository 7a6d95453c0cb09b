import json
import logging
import re
import asyncio
from datetime import datetime, timedelta
from typing import Dict, Optional
from openai import AsyncOpenAI
from app.core.config import settings
from app.core.timeutils import utcnow

logger = logging.getLogger(__name__)

TRADES = ["HVAC", "Plumbing", "Electrical", "Handyman", "Facilities Tech", "Other"]
URGENCIES = ["emergency", "same_day", "next_day", "within_week", "flexible"]

PARSED_FIELDS = [
    "job_title", "description", "trade_needed", "address_text", "city", "state",
    "urgency", "scheduled_at", "duration", "budget_min", "budget_max", "pay_rate",
    "contact_name", "contact_phone", "contact_email", "required_certifications",
]


class WorkOrderParseError(Exception):
    """Custom exception for work order parsing errors"""
    pass


def _to_number(value) -> Optional[float]:
    """Numbers from AI output may arrive as "$1,200" strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    digits = re.sub(r"[^0-9.]", "", str(value))
    try:
        return float(digits) if digits else None
    except ValueError:
        return None


def normalize_parsed(data: Dict) -> Dict:
    """
    Coerce an extracted dict into WorkOrderParseResponse fields.

    Unknown trades become "Other", unknown urgencies are dropped, budgets are
    numbers and empty strings become None.
    """
    result = {field: data.get(field) for field in PARSED_FIELDS}

    if not result["scheduled_at"] and data.get("scheduled_start_ts"):
        result["scheduled_at"] = data["scheduled_start_ts"]

    for field in ("job_title", "description", "address_text", "city", "state", "duration",
                  "pay_rate", "contact_name", "contact_phone", "contact_email", "scheduled_at"):
        value = result[field]
        result[field] = str(value).strip() or None if value is not None else None

    trade = result["trade_needed"]
    if trade:
        by_lower = {name.lower(): name for name in TRADES}
        result["trade_needed"] = by_lower.get(str(trade).strip().lower(), "Other")

    urgency = str(result["urgency"] or "").strip().lower().replace(" ", "_")
    result["urgency"] = urgency if urgency in URGENCIES else None

    result["budget_min"] = _to_number(result["budget_min"])
    result["budget_max"] = _to_number(result["budget_max"])
    if result["budget_min"] is not None and result["budget_max"] is not None and result["budget_min"] > result["budget_max"]:
        result["budget_min"], result["budget_max"] = result["budget_max"], result["budget_min"]

    if result["scheduled_at"]:
        try:
            datetime.fromisoformat(result["scheduled_at"].replace("Z", "+00:00"))
        except ValueError:
            result["scheduled_at"] = None

    if result["state"]:
        result["state"] = result["state"].upper()[:2]

    certifications = result["required_certifications"] or []
    result["required_certifications"] = [str(cert) for cert in certifications if cert] if isinstance(certifications, list) else []

    return result


def _parse_time(text: str):
    match = re.search(r"\b(\d{1,2}):(\d{2})\s*(am|pm)?", text, re.IGNORECASE) or re.search(r"\b(\d{1,2})()\s*(am|pm)\b", text, re.IGNORECASE)
    if not match:
        return 9, 0
    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    meridiem = (match.group(3) or "").lower()
    if meridiem == "pm" and hour < 12:
        hour += 12
    if meridiem == "am" and hour == 12:
        hour = 0
    return hour, minute


def heuristic_parse(text: str, now: Optional[datetime] = None) -> Dict:
    """
    Regex extraction used when OpenAI is not configured or fails.

    Dates in M/D/Y, ISO or "Month D, YYYY" form are recognised; without one
    the job is scheduled for tomorrow at 9:00.
    """
    now = now or utcnow()
    clean = re.sub(r"[\u2013\u2014]", "-", text)

    email_match = re.search(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", clean, re.IGNORECASE)

    phone = None
    phone_match = re.search(r"(\+?1?\s*)?\(?(\d{3})\)?[\s.-]?(\d{3})[\s.-]?(\d{4})", clean)
    if phone_match:
        phone = f"({phone_match.group(2)}) {phone_match.group(3)}-{phone_match.group(4)}"

    trade = "HVAC"
    if re.search(r"electr", clean, re.IGNORECASE):
        trade = "Electrical"
    elif re.search(r"plumb", clean, re.IGNORECASE):
        trade = "Plumbing"
    elif re.search(r"handyman", clean, re.IGNORECASE):
        trade = "Handyman"
    elif re.search(r"facilit", clean, re.IGNORECASE):
        trade = "Facilities Tech"

    address_match = re.search(r"\d+\s+[^,\n]+,\s*([^,\n]+),\s*([A-Z]{2})\s*(\d{5})?", clean)

    hour, minute = _parse_time(clean)
    scheduled = None
    mdy = re.search(r"(\d{1,2})/(\d{1,2})/(\d{2,4})", clean)
    iso = re.search(r"(\d{4})-(\d{1,2})-(\d{1,2})", clean)
    named = re.search(r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+(\d{1,2}),?\s+(\d{4})", clean, re.IGNORECASE)
    try:
        if mdy:
            year = int(mdy.group(3))
            year = 2000 + year if year < 100 else year
            scheduled = datetime(year, int(mdy.group(1)), int(mdy.group(2)), hour, minute)
        elif iso:
            scheduled = datetime(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)), hour, minute)
        elif named:
            month = datetime.strptime(named.group(1)[:3].title(), "%b").month
            scheduled = datetime(int(named.group(3)), month, int(named.group(2)), hour, minute)
    except ValueError:
        scheduled = None
    if scheduled is None:
        tomorrow = now + timedelta(days=1)
        scheduled = datetime(tomorrow.year, tomorrow.month, tomorrow.day, 9, 0)

    urgency = "within_week"
    if re.search(r"emergency|critical|asap|immediately", clean, re.IGNORECASE):
        urgency = "emergency"
    elif re.search(r"today|same\s*day", clean, re.IGNORECASE):
        urgency = "same_day"
    elif re.search(r"tomorrow|next\s*day", clean, re.IGNORECASE):
        urgency = "next_day"

    duration = None
    duration_range = re.search(r"(\d+)\s*-\s*(\d+)\s*(hours|hrs|h)\b", clean, re.IGNORECASE)
    duration_single = re.search(r"\b(\d+)\s*(hours|hrs|h)\b", clean, re.IGNORECASE)
    if duration_range:
        duration = f"{duration_range.group(1)}-{duration_range.group(2)} hours"
    elif duration_single:
        duration = f"{duration_single.group(1)} hours"

    amounts = [float(value.replace(",", "")) for value in re.findall(r"\$\s*([0-9][0-9,]*(?:\.\d{2})?)", clean)]
    pay_rate_match = re.search(r"\$\s*[0-9][0-9,]*\s*/?\s*(hr|hour|flat)", clean, re.IGNORECASE)
    contact_match = re.search(r"(?:Contact|Attn|Attention)[:\s]+([A-Za-z ]{3,40}?)(?:\s*[,\n(]|\s+\d|$)", clean, re.IGNORECASE)

    return normalize_parsed({
        "job_title": re.sub(r"\s+", " ", clean[:100]).strip() or "Work Order",
        "description": text,
        "trade_needed": trade,
        "address_text": address_match.group(0) if address_match else None,
        "city": address_match.group(1) if address_match else None,
        "state": address_match.group(2) if address_match else None,
        "urgency": urgency,
        "scheduled_at": scheduled.isoformat(),
        "duration": duration,
        "budget_min": min(amounts) if amounts else None,
        "budget_max": max(amounts) if amounts else None,
        "pay_rate": pay_rate_match.group(0) if pay_rate_match else None,
        "contact_name": contact_match.group(1).strip() if contact_match else None,
        "contact_phone": phone,
        "contact_email": email_match.group(0) if email_match else None,
    })


async def parse_work_order_with_ai(text: str, max_retries: int = 3, client: Optional[AsyncOpenAI] = None) -> Dict:
    """
    Extract job fields from raw work-order text with OpenAI (JSON mode).
    Implements retry logic with exponential backoff.

    Raises:
        WorkOrderParseError: If extraction fails after all retries
    """
    today = utcnow().date().isoformat()

    system_prompt = f"""You are a work order parsing assistant with field-service expertise.
Output only valid JSON. Today is {today}. All dates must be today or in the future:
a date without a year means its next occurrence. If no date is mentioned, use tomorrow at 09:00."""

    user_prompt = f"""Extract the job fields from this work order. Use null for anything not stated.

Return ONLY JSON with the fields:
job_title, description, trade_needed ({"|".join(TRADES)}), address_text, city, state (2-letter),
urgency ({"|".join(URGENCIES)}), scheduled_at (ISO 8601), duration, budget_min (number),
budget_max (number), pay_rate, contact_name, contact_phone, contact_email,
required_certifications (list of strings)

WORK ORDER:
{text}"""

    client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

    for attempt in range(max_retries):
        try:
            response = await client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ],
                response_format={"type": "json_object"},
                temperature=0
            )

            content = response.choices[0].message.content
            if not content:
                raise WorkOrderParseError("Empty response from OpenAI")

            parsed = json.loads(content)
            if not isinstance(parsed, dict):
                raise WorkOrderParseError("Response is not a JSON object")

            logger.info("Parsed work order with OpenAI")
            return normalize_parsed(parsed)

        except json.JSONDecodeError as e:
            logger.warning(f"Attempt {attempt + 1}/{max_retries}: Failed to parse JSON: {e}")
            if attempt == max_retries - 1:
                raise WorkOrderParseError(f"Invalid JSON after {max_retries} attempts: {e}")

        except Exception as e:
            logger.warning(f"Attempt {attempt + 1}/{max_retries}: Parsing error: {e}")
            if attempt == max_retries - 1:
                raise WorkOrderParseError(f"Failed after {max_retries} attempts: {e}")

        # Exponential backoff: wait 1s, 2s between retries
        if attempt < max_retries - 1:
            wait_time = 2 ** attempt
            logger.info(f"Retrying in {wait_time} seconds...")
            await asyncio.sleep(wait_time)

    raise WorkOrderParseError(f"Failed to parse work order after {max_retries} attempts")


async def parse_work_order(text: str, client: Optional[AsyncOpenAI] = None) -> Dict:
    """
    OpenAI extraction when configured, regex heuristics otherwise or on failure.

    Returns the parsed fields plus "source" ("openai" or "heuristic").
    """
    if settings.OPENAI_API_KEY or client is not None:
        try:
            return {**await parse_work_order_with_ai(text, client=client), "source": "openai"}
        except WorkOrderParseError as e:
            logger.warning(f"{e}; falling back to heuristic parsing")

    return {**heuristic_parse(text), "source": "heuristic"}
