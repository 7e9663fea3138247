"""Property models."""

from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field


class ListingAgent(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


class ScrapedProperty(BaseModel):
    """Best-effort listing data parsed from a property page."""
    model_config = ConfigDict(populate_by_name=True)

    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = Field(None, alias="zipCode")
    price: Optional[float] = None
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    sqft: Optional[float] = None
    year_built: Optional[int] = Field(None, alias="yearBuilt")
    description: Optional[str] = None
    photos: list[str] = Field(default_factory=list)
    property_type: Optional[str] = Field(None, alias="propertyType")
    listing_agent: Optional[ListingAgent] = Field(None, alias="listingAgent")
    lot_size: Optional[str] = Field(None, alias="lotSize")
    source_url: str = Field(..., alias="sourceUrl")

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class BuyerProperty(BaseModel):
    """Buyer/property association with portal flags."""
    id: Optional[str] = None
    buyer_id: str
    property_id: str
    viewed: bool = False
    favorited: bool = False
    archived: bool = False
    ai_analysis: Optional[str] = Field(None, description="Agent-only generated analysis")
    ai_analysis_generated_at: Optional[str] = None
    created_at: Optional[str] = None


class PortalPropertyFlags(BaseModel):
    """Flags a buyer may set from the portal."""
    model_config = ConfigDict(extra="forbid")

    viewed: Optional[bool] = None
    favorited: Optional[bool] = None


class Property(BaseModel):
    """Listing row from the properties table."""
    id: Optional[str] = None
    address: str = Field(..., min_length=1)
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    sqft: Optional[float] = None
    price_per_sqft: Optional[float] = None
    days_on_market: Optional[int] = None
    year_built: Optional[int] = None
    lot_size: Optional[str] = None
    property_type: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None

    @property
    def location(self) -> str:
        parts = [self.address, self.city, " ".join(p for p in (self.state, self.zip_code) if p)]
        return ", ".join(p for p in parts if p)

    @property
    def dollars_per_sqft(self) -> Optional[int]:
        if self.price_per_sqft:
            return round(self.price_per_sqft)
        if self.price and self.sqft:
            return round(self.price / self.sqft)
        return None


class Comparable(BaseModel):
    """Recently sold property used as a pricing reference."""
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    price: Optional[float] = None
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    sqft: Optional[float] = None
    price_per_sqft: Optional[int] = None
    date_sold: Optional[str] = None
    status: str = "Sold"
