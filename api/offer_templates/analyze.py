"""Offer template field detection endpoint."""

from api._http import JSONHandler
from src.models.offer_template import AnalysisStatus, AnalyzeTemplateRequest
from src.services.template_analysis import analyze_offer_template, get_template
from src.utils.errors import BuyerDeskError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class handler(JSONHandler):
    """
    POST {template_id, file_url, file_type, async}.

    With async the caller gets 202 straight away and polls the template's
    analysis_status; the analysis keeps running in this invocation.
    """

    async def _analyze(self) -> None:
        request = AnalyzeTemplateRequest.model_validate(self._read_json())
        self._session().require_agent("analyze templates")

        if request.run_async:
            await get_template(request.template_id)
            self._send_json(202, {
                "template_id": request.template_id,
                "analysis_status": AnalysisStatus.ANALYZING.value,
            })
            self.wfile.flush()
            # The response is already sent; failures end up on the template row
            try:
                await analyze_offer_template(request.template_id, request.file_url, request.file_type)
            except BuyerDeskError as e:
                logger.warning("Async template analysis failed", template_id=request.template_id, error=str(e))
            return

        fields = await analyze_offer_template(request.template_id, request.file_url, request.file_type)
        self._send_json(200, {
            "success": True,
            "fields_count": len(fields),
            "fields": [f.model_dump() for f in fields],
        })

    def do_POST(self):
        self._dispatch(self._analyze)
