"""Property link scraping via Firecrawl."""

import json
import os
import re
from typing import Any, Optional

import httpx

from src.models.property import ListingAgent, ScrapedProperty
from src.utils.errors import ScrapeError, ScrapeNotConfiguredError
from src.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)

FIRECRAWL_URL = "https://api.firecrawl.dev/v1/scrape"
MAX_PHOTOS = 20

SOURCES = (
    ("zillow.com", "zillow"),
    ("realtor.com", "realtor"),
    ("redfin.com", "redfin"),
    ("trulia.com", "trulia"),
    ("homes.com", "homes"),
    ("century21.com", "century21"),
    ("coldwellbanker.com", "coldwellbanker"),
    ("kw.com", "kellerwilliams"),
    ("kellerwilliams.com", "kellerwilliams"),
)

LISTING_TYPES = {"SingleFamilyResidence", "RealEstateListing", "Product", "House", "Apartment", "Residence"}
IMAGE_HINTS = ("photo", "image", "property", "listing", "home", "zillowstatic", "rdcpix", "redfin")
IMAGE_SKIP = ("logo", "icon", "avatar", "placeholder")

PRICE_RE = re.compile(r"\$\s*(\d{1,3}(?:,\d{3})*(?:\.\d{2})?)")
BEDS_RE = re.compile(r"(\d+)\s*(?:bed|bd|bedroom)", re.IGNORECASE)
BATHS_RE = re.compile(r"(\d+\.?\d*)\s*(?:bath|ba|bathroom)", re.IGNORECASE)
SQFT_RE = re.compile(r"(\d+,?\d*)\s*(?:sq\.?\s*ft|sqft|square feet)", re.IGNORECASE)
YEAR_RE = re.compile(r"built\s*(?:in\s*)?(\d{4})", re.IGNORECASE)
LOT_RE = re.compile(r"([\d,.]+\s*(?:acres?|sq\.?\s*ft\.?\s*lot))", re.IGNORECASE)
JSON_LD_RE = re.compile(r"<script[^>]*type=[\"']application/ld\+json[\"'][^>]*>([\s\S]*?)</script>", re.IGNORECASE)
IMG_RE = re.compile(r"<img[^>]*src=[\"']([^\"']+)[\"'][^>]*>", re.IGNORECASE)
STATE_ZIP_RE = re.compile(r"([A-Z]{2})\s*(\d{5}(?:-\d{4})?)?", re.IGNORECASE)
CITY_STATE_ZIP_RE = re.compile(r"([A-Za-z\s]+),?\s*([A-Z]{2})\s*(\d{5}(?:-\d{4})?)?", re.IGNORECASE)


def normalize_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ScrapeError("URL is required")
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


def detect_source(url: str) -> str:
    for domain, name in SOURCES:
        if domain in url:
            return name
    return "unknown"


def extract_meta_content(html: str, prop: str) -> Optional[str]:
    """Meta tag content, with property/name before or after content."""
    escaped = re.escape(prop)
    patterns = (
        rf"<meta[^>]*(?:property|name)=[\"']{escaped}[\"'][^>]*content=[\"']([^\"']*)[\"']",
        rf"<meta[^>]*content=[\"']([^\"']*)[\"'][^>]*(?:property|name)=[\"']{escaped}[\"']",
    )
    for pattern in patterns:
        match = re.search(pattern, html, re.IGNORECASE)
        if match:
            return match.group(1)
    return None


def _type_names(node: dict) -> list[str]:
    value = node.get("@type")
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)] if value else []


def _is_listing(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    return any("RealEstate" in t or t in LISTING_TYPES or t == "Place" for t in _type_names(node))


def extract_structured_data(html: str) -> Optional[dict]:
    """First real-estate JSON-LD node, searching @graph too."""
    for match in JSON_LD_RE.finditer(html):
        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError:
            continue
        candidates = data if isinstance(data, list) else [data]
        for node in candidates:
            if _is_listing(node):
                return node
            if isinstance(node, dict):
                for item in node.get("@graph", []):
                    if _is_listing(item):
                        return item
    return None


def parse_price(value: Any) -> Optional[float]:
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if not value:
        return None
    cleaned = re.sub(r"[^0-9.]", "", str(value))
    try:
        return float(cleaned)
    except ValueError:
        return None


def extract_number(text: str, pattern: re.Pattern) -> Optional[float]:
    match = pattern.search(text or "")
    if not match:
        return None
    try:
        return float(match.group(1).replace(",", ""))
    except ValueError:
        return None


def extract_images(html: str) -> list[str]:
    images = []
    for match in IMG_RE.finditer(html):
        src = match.group(1)
        lowered = src.lower()
        if any(skip in lowered for skip in IMAGE_SKIP):
            continue
        if any(hint in lowered for hint in IMAGE_HINTS):
            images.append(src)
    return images[:MAX_PHOTOS]


def parse_address_string(address: str) -> dict[str, Optional[str]]:
    """Split "123 Main St, Austin, TX 78701" style strings."""
    result = {"street": None, "city": None, "state": None, "zip_code": None}
    parts = [p.strip() for p in address.split(",")]
    if len(parts) >= 3:
        result["street"] = parts[0]
        result["city"] = parts[1]
        match = STATE_ZIP_RE.search(parts[-1])
        if match:
            result["state"] = match.group(1).upper()
            result["zip_code"] = match.group(2)
    elif len(parts) == 2:
        result["street"] = parts[0]
        match = CITY_STATE_ZIP_RE.search(parts[1])
        if match:
            result["city"] = match.group(1).strip()
            result["state"] = match.group(2).upper()
            result["zip_code"] = match.group(3)
    return result


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(i for i in items if i))


def parse_property_data(html: str, markdown: str, metadata: dict, source_url: str) -> ScrapedProperty:
    """Meta tags first, then JSON-LD, then visible text, then address splitting."""
    html = html or ""
    markdown = markdown or ""
    metadata = metadata or {}

    address = extract_meta_content(html, "og:title") or extract_meta_content(html, "og:street-address") or metadata.get("title")
    description = extract_meta_content(html, "og:description") or metadata.get("description")
    photos = []
    og_image = extract_meta_content(html, "og:image")
    if og_image:
        photos.append(og_image)
    price = parse_price(extract_meta_content(html, "og:price:amount") or extract_meta_content(html, "product:price:amount"))
    city = state = zip_code = None
    bedrooms = bathrooms = sqft = None
    year_built = None
    property_type = None
    lot_size = None
    listing_agent = None

    data = extract_structured_data(html)
    if data:
        property_type = _type_names(data)[0] if _type_names(data) else None
        addr = data.get("address")
        if isinstance(addr, dict):
            address = address or addr.get("streetAddress")
            city = addr.get("addressLocality")
            state = addr.get("addressRegion")
            zip_code = addr.get("postalCode")
        offers = data.get("offers")
        if isinstance(offers, dict) and offers.get("price"):
            price = price or parse_price(offers["price"])
        if data.get("numberOfRooms"):
            bedrooms = parse_price(data["numberOfRooms"])
        if data.get("numberOfBathroomsTotal"):
            bathrooms = parse_price(data["numberOfBathroomsTotal"])
        floor = data.get("floorSize")
        if isinstance(floor, dict) and floor.get("value"):
            sqft = parse_price(floor["value"])
        if data.get("yearBuilt"):
            year = parse_price(data["yearBuilt"])
            year_built = int(year) if year else None
        lot = data.get("lotSize")
        if isinstance(lot, dict) and lot.get("value"):
            lot_size = f"{lot['value']} {lot.get('unitText', '')}".strip()
        elif isinstance(lot, (str, int, float)):
            lot_size = str(lot)
        images = data.get("image")
        if images:
            photos.extend(images if isinstance(images, list) else [images])
        agent = data.get("agent") or data.get("broker")
        if isinstance(agent, dict):
            listing_agent = ListingAgent(name=agent.get("name"), phone=agent.get("telephone"))

    if not price:
        match = PRICE_RE.search(markdown)
        price = parse_price(match.group(1)) if match else None
    bedrooms = bedrooms or extract_number(markdown, BEDS_RE)
    bathrooms = bathrooms or extract_number(markdown, BATHS_RE)
    sqft = sqft or extract_number(markdown, SQFT_RE)
    if not year_built:
        year = extract_number(markdown, YEAR_RE)
        year_built = int(year) if year else None
    if not lot_size:
        match = LOT_RE.search(markdown)
        lot_size = match.group(1).strip() if match else None

    photos = _dedupe([p for p in photos if isinstance(p, str)] + extract_images(html))[:MAX_PHOTOS]

    if address and (not city or not state):
        parts = parse_address_string(address)
        city = city or parts["city"]
        state = state or parts["state"]
        zip_code = zip_code or parts["zip_code"]
        address = parts["street"] or address

    return ScrapedProperty(
        address=address,
        city=city,
        state=state,
        zip_code=zip_code,
        price=price,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        sqft=sqft,
        year_built=year_built,
        description=description,
        photos=photos,
        property_type=property_type,
        listing_agent=listing_agent,
        lot_size=lot_size,
        source_url=source_url,
    )


async def scrape_property_link(url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> dict:
    """Scrape a listing page and return {data, source}."""
    api_key = os.environ.get("FIRECRAWL_API_KEY")
    if not api_key:
        raise ScrapeNotConfiguredError("FIRECRAWL_API_KEY not configured")
    target = normalize_url(url)
    timeout = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "60"))

    with log_timing("scrape_property_link", logger=logger, source=detect_source(target)):
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
                response = await client.post(
                    FIRECRAWL_URL,
                    headers={"Authorization": f"Bearer {api_key}"},
                    json={
                        "url": target,
                        "formats": ["markdown", "html", "links"],
                        "onlyMainContent": False,
                        "waitFor": 3000,
                    },
                )
        except httpx.HTTPError as e:
            raise ScrapeError(f"Scraping request failed: {e}") from e

    try:
        body = response.json()
    except ValueError:
        body = {}
    if response.status_code >= 400:
        raise ScrapeError(body.get("error") or f"Scraping failed with status {response.status_code}")

    scraped = body.get("data") or body
    prop = parse_property_data(
        scraped.get("html", ""),
        scraped.get("markdown", ""),
        scraped.get("metadata", {}),
        target,
    )
    logger.info("Property scraped", source=detect_source(target), has_price=prop.price is not None)
    return {"data": prop.to_response(), "source": detect_source(target)}
