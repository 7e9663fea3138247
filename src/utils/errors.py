"""Error handling utilities."""

from typing import Optional


class BuyerDeskError(Exception):
    """Base exception for BuyerDesk backend."""
    pass


class SupabaseError(BuyerDeskError):
    """Supabase operation error."""
    pass


class NotFoundError(BuyerDeskError):
    """Requested row does not exist."""
    pass


class InputValidationError(BuyerDeskError):
    """Request payload failed validation."""
    pass


class InvalidTransition(BuyerDeskError):
    """State transition not allowed from the current state."""

    def __init__(self, message: str, current: Optional[str] = None, target: Optional[str] = None):
        super().__init__(message)
        self.current = current
        self.target = target


class StageOutOfRangeError(BuyerDeskError):
    """Stage index is not in the stage catalog."""
    pass


class ImmutableItemError(BuyerDeskError):
    """Attempted edit of an immutable conversation item."""
    pass


class PermissionDeniedError(BuyerDeskError):
    """Session role cannot perform this operation."""
    pass


class DraftingError(BuyerDeskError):
    """AI drafting request failed."""
    pass


class RateLimitedError(DraftingError):
    """Upstream completion service returned HTTP 429."""
    pass


class TemplateAnalysisError(BuyerDeskError):
    """Offer template field detection failed."""
    pass


class ScrapeError(BuyerDeskError):
    """Property page scraping failed."""
    pass


class ScrapeNotConfiguredError(ScrapeError):
    """Scraping provider credentials are missing."""
    pass
