"""Offer template field detection."""

import asyncio
import base64
import json
import os
import re
import time
from datetime import datetime, timezone
from typing import Optional

import httpx
from pydantic import ValidationError

from src.models.offer_template import (
    TERMINAL_ANALYSIS_STATUSES,
    AnalysisStatus,
    DetectedField,
    OfferTemplate,
    TemplateFileType,
)
from src.services.llm import build_messages, complete, get_llm_model
from src.services.supabase_client import delete_where, fetch_by_id, insert_rows, update_by_id
from src.utils.errors import NotFoundError, SupabaseError, TemplateAnalysisError
from src.utils.logging import get_structured_logger, log_timing
from src.utils.retry import with_rate_limit_retry

logger = get_structured_logger(__name__)

SYSTEM_PROMPT = "You extract fillable fields from real estate offer templates. Respond with JSON only."

FIELD_PROMPT = """Analyze this real estate offer template document and identify all fillable fields or blanks that need to be completed when creating an offer.

For each field you identify, provide:
- field_name: A snake_case identifier (e.g., buyer_full_name, purchase_price, closing_date)
- field_label: Human-readable label (e.g., "Buyer's Full Legal Name", "Purchase Price", "Closing Date")
- field_type: One of: text, number, date, or boolean
- data_source: Where this data typically comes from:
  - "buyer" - buyer information (name, email, phone, address, pre-approval info)
  - "property" - property details (address, price, bedrooms, etc.)
  - "agent" - agent information (name, license, brokerage)
  - "manual" - requires manual entry for each offer (offer amount, contingencies, dates)
- is_required: true if the field is essential for a valid offer, false if optional
- source_field: If data_source is buyer/property/agent, suggest which database field maps to it (e.g., "name", "email", "address", "price")

Focus on identifying:
1. Buyer information fields
2. Property address and details
3. Purchase price and financial terms
4. Dates (closing date, inspection period, etc.)
5. Contingencies and conditions
6. Agent/broker information
7. Signature lines

Return ONLY a valid JSON array of field objects, no additional text or explanation. Example format:
[
  {"field_name": "buyer_full_name", "field_label": "Buyer's Full Legal Name", "field_type": "text", "data_source": "buyer", "is_required": true, "source_field": "name"},
  {"field_name": "purchase_price", "field_label": "Purchase Price", "field_type": "number", "data_source": "manual", "is_required": true}
]"""

JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def parse_detected_fields(content: str) -> list[DetectedField]:
    match = JSON_ARRAY.search(content or "")
    if not match:
        raise TemplateAnalysisError("No JSON array found in response")
    try:
        raw = json.loads(match.group(0))
        return [DetectedField.model_validate(field) for field in raw]
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        raise TemplateAnalysisError(f"Failed to parse AI response: {e}") from e


async def download_template(file_url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> bytes:
    timeout = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "60"))
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(file_url)
    except httpx.HTTPError as e:
        raise TemplateAnalysisError(f"Failed to fetch file: {e}") from e
    if response.status_code != 200:
        raise TemplateAnalysisError(f"Failed to fetch file: {response.status_code}")
    return response.content


@with_rate_limit_retry(max_attempts=3, initial_delay=2.0)
async def detect_fields(document: bytes, file_type: TemplateFileType, model=None) -> list[DetectedField]:
    """Ask the model for the template's fillable fields. Retried on 429."""
    content = [
        {
            "type": "document",
            "source": {
                "type": "base64",
                "media_type": file_type.media_type,
                "data": base64.b64encode(document).decode("ascii"),
            },
        },
        {"type": "text", "text": FIELD_PROMPT},
    ]
    model = model or get_llm_model(max_tokens=4096)
    response = await complete(build_messages(SYSTEM_PROMPT, content), model=model)
    return parse_detected_fields(response)


async def _set_status(template_id: str, status: AnalysisStatus, error: Optional[str] = None) -> None:
    await update_by_id("offer_templates", template_id, {
        "analysis_status": status.value,
        "analysis_error": error,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    })


async def analyze_offer_template(
    template_id: str,
    file_url: str,
    file_type: TemplateFileType,
    model=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[DetectedField]:
    """
    Detect and store the template's fields.

    Status moves analyzing -> completed, or -> failed with the error
    recorded so the agent can retry.
    """
    file_type = TemplateFileType(file_type)
    await get_template(template_id)
    try:
        await _set_status(template_id, AnalysisStatus.ANALYZING)
        with log_timing("analyze_offer_template", logger=logger, template_id=template_id):
            document = await download_template(file_url, transport=transport)
            fields = await detect_fields(document, file_type, model=model)
            await delete_where("offer_template_fields", {"template_id": template_id})
            await insert_rows("offer_template_fields", [f.to_row(template_id) for f in fields])
        await _set_status(template_id, AnalysisStatus.COMPLETED)
    except Exception as e:
        logger.error("Template analysis failed", template_id=template_id, error=str(e))
        await _record_failure(template_id, str(e))
        if isinstance(e, TemplateAnalysisError):
            raise
        raise TemplateAnalysisError(str(e)) from e

    logger.info("Template analysis completed", template_id=template_id, fields_count=len(fields))
    return fields


async def _record_failure(template_id: str, error: str) -> None:
    try:
        await _set_status(template_id, AnalysisStatus.FAILED, error=error)
    except SupabaseError as e:
        logger.error("Failed to mark template analysis failed", template_id=template_id, error=str(e))


async def get_template(template_id: str) -> OfferTemplate:
    row = await fetch_by_id("offer_templates", template_id)
    if row is None:
        raise NotFoundError(f"Offer template {template_id} not found")
    return OfferTemplate.model_validate(row)


async def retry_template_analysis(template_id: str, model=None) -> list[DetectedField]:
    """Re-run analysis using the stored file."""
    template = await get_template(template_id)
    if not template.file_url or not template.file_type:
        raise TemplateAnalysisError(f"Template {template_id} has no stored file")
    return await analyze_offer_template(template_id, template.file_url, template.file_type, model=model)


async def wait_for_template_analysis(
    template_id: str,
    poll_interval: Optional[float] = None,
    timeout_seconds: Optional[float] = None,
) -> OfferTemplate:
    """Poll analysis_status until it reaches completed or failed."""
    poll_interval = poll_interval if poll_interval is not None else float(
        os.environ.get("TEMPLATE_POLL_INTERVAL_SECONDS", "3")
    )
    timeout_seconds = timeout_seconds if timeout_seconds is not None else float(
        os.environ.get("TEMPLATE_ANALYSIS_TIMEOUT_SECONDS", "180")
    )
    deadline = time.monotonic() + timeout_seconds
    while True:
        template = await get_template(template_id)
        if template.analysis_status in TERMINAL_ANALYSIS_STATUSES:
            return template
        if time.monotonic() >= deadline:
            raise TemplateAnalysisError(f"Timed out waiting for template {template_id} analysis")
        await asyncio.sleep(poll_interval)
