"""Property reads shared by the analysis services."""

from src.models.property import BuyerProperty, Property
from src.services.supabase_client import fetch_by_id, fetch_where
from src.utils.errors import InputValidationError, NotFoundError


async def get_property(property_id: str) -> Property:
    row = await fetch_by_id("properties", property_id)
    if row is None:
        raise NotFoundError(f"Property {property_id} not found")
    return Property.model_validate(row)


async def get_priced_property(property_id: str) -> Property:
    """Offer math needs an asking price."""
    prop = await get_property(property_id)
    if not prop.price:
        raise InputValidationError(f"Property {property_id} has no listed price")
    return prop


async def get_buyer_property(buyer_id: str, property_id: str) -> BuyerProperty:
    rows = await fetch_where("buyer_properties", {"buyer_id": buyer_id, "property_id": property_id}, limit=1)
    if not rows:
        raise NotFoundError(f"Property {property_id} is not linked to buyer {buyer_id}")
    return BuyerProperty.model_validate(rows[0])
