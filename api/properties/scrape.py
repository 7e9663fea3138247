"""Property link scraping endpoint."""

from api._http import JSONHandler
from src.services.property_scraper import scrape_property_link
from src.utils.errors import ScrapeError, ScrapeNotConfiguredError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class handler(JSONHandler):
    """POST {url} -> {success, data, source} or {success: false, error}."""

    async def _scrape(self) -> None:
        body = self._read_json()
        url = body.get("url")
        if not url or not isinstance(url, str):
            self._send_json(400, {"success": False, "error": "URL is required"})
            return
        try:
            result = await scrape_property_link(url)
        except ScrapeNotConfiguredError as e:
            logger.error("Scraping is not configured", error=str(e))
            self._send_json(500, {"success": False, "error": str(e)})
            return
        except ScrapeError as e:
            logger.warning("Scrape failed", error=str(e))
            self._send_json(400, {"success": False, "error": str(e)})
            return
        self._send_json(200, {"success": True, **result})

    def do_POST(self):
        self._dispatch(self._scrape)
