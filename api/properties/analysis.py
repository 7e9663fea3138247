"""Property analysis endpoint: stored JSON result or a live event stream."""

from api._http import JSONHandler
from src.models.offer_strategy import PropertyAnalysisRequest
from src.services.property_analysis import generate_property_analysis, stream_property_analysis


class handler(JSONHandler):
    """POST {propertyId, buyerId, stream?} -> {success, analysis} or text/event-stream."""

    async def _analyze(self) -> None:
        session = self._session()
        request = PropertyAnalysisRequest.model_validate(self._read_json())
        if request.stream:
            await self._send_event_stream(
                stream_property_analysis(request.property_id, request.buyer_id, session)
            )
            return
        link = await generate_property_analysis(request.property_id, request.buyer_id, session)
        self._send_json(200, {
            "success": True,
            "analysis": link.ai_analysis,
            "generated_at": link.ai_analysis_generated_at,
        })

    def do_POST(self):
        self._dispatch(self._analyze)
