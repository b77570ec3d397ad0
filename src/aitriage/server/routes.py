"""API routes for the aitriage server."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from aitriage import __version__
from aitriage.config.schema import TriageConfig
from aitriage.engine import TriageEngine
from aitriage.memory.schema import MemoryRecord
from aitriage.privacy.models import PIISummary
from aitriage.risk.categories import infer_site_category
from aitriage.risk.models import Processing, RiskContext, SiteCategory
from aitriage.traffic.models import ClassifiedServiceRecord, NetworkEvent, url_hostname


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    storage: str
    paraphraser: bool


class ClassifyResponse(BaseModel):
    """Response body for the classify endpoint."""

    classified: bool
    record: ClassifiedServiceRecord | None = None


class SanitizeRequest(BaseModel):
    """Request body for the sanitize endpoint."""

    value: Any
    category: SiteCategory | None = None
    processing: Processing = Processing.UNKNOWN
    trackers_present: bool = False
    origin: str = ""
    url: str = ""
    title: str = ""
    context_id: int | None = None
    session_id: str | None = None


class RedactionOut(BaseModel):
    """A redaction without the original value."""

    type: str
    start: int
    end: int
    confidence: float


class SanitizeResponse(BaseModel):
    """Response body for the sanitize endpoint."""

    sanitized_value: Any
    category: SiteCategory
    risk_level: str
    score: int
    redactions: list[RedactionOut]
    counts: dict[str, int]
    decision: str | None = None
    reason: str | None = None


class InspectRequest(BaseModel):
    """Request body for the inspect endpoint."""

    body: str
    content_type: str
    category: SiteCategory | None = None
    processing: Processing = Processing.UNKNOWN
    trackers_present: bool = False
    origin: str = ""
    url: str = ""
    title: str = ""
    context_id: int | None = None
    session_id: str | None = None


class InspectResponse(BaseModel):
    """Response body for the inspect endpoint."""

    scannable: bool
    category: SiteCategory
    malicious: bool = False
    scanned: bool = False
    sanitized: str | None = None
    risk_level: str | None = None
    score: int | None = None
    decision: str | None = None
    reason: str | None = None


class WipeResponse(BaseModel):
    """Response body for wiping memory records."""

    removed: int


class RiskRequest(BaseModel):
    """Request body for the risk endpoints."""

    origin: str = ""
    processing: Processing = Processing.UNKNOWN
    trackers_present: bool = False
    site_category: SiteCategory = SiteCategory.GENERAL
    pii_counts: dict[str, int] = Field(default_factory=dict)

    def to_context(self) -> RiskContext:
        return RiskContext(
            origin=self.origin,
            processing=self.processing,
            trackers_present=self.trackers_present,
            site_category=self.site_category,
            pii_summary=PIISummary(counts={k: v for k, v in self.pii_counts.items() if v > 0}),
        )


class RiskResponse(BaseModel):
    """Risk assessment."""

    level: str
    score: int
    red_flags: list[str]
    factors: dict[str, float]
    ai_detected: bool


class ExplainResponse(BaseModel):
    """Risk assessment with a plain-English explanation."""

    assessment: RiskResponse
    explanation: str


def create_router(config: TriageConfig, engine: TriageEngine) -> APIRouter:
    """Create API router over a triage engine.

    Args:
        config: aitriage configuration
        engine: Engine serving the requests

    Returns:
        Configured API router
    """
    router = APIRouter()

    @router.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            storage=config.storage.backend,
            paraphraser=engine.paraphraser is not None,
        )

    @router.post("/classify", response_model=ClassifyResponse)
    async def classify(event: NetworkEvent) -> ClassifyResponse:
        """Classify one network event."""
        record = await engine.classify(event)
        return ClassifyResponse(classified=record is not None, record=record)

    @router.get("/services", response_model=list[ClassifiedServiceRecord])
    async def services(origin: str = Query(..., min_length=1)) -> list[ClassifiedServiceRecord]:
        """Classified services for a page origin, most recent first."""
        return engine.get_services_for_origin(origin)

    @router.post("/sanitize", response_model=SanitizeResponse)
    async def sanitize(request: SanitizeRequest) -> SanitizeResponse:
        """Sanitize an outbound text or JSON payload."""
        category = request.category or infer_site_category(
            url_hostname(request.origin or request.url), request.url, request.title
        )
        outcome = engine.sanitize(
            request.value,
            category=category,
            processing=request.processing,
            trackers_present=request.trackers_present,
            origin=request.origin,
            context_id=request.context_id,
            session_id=request.session_id,
        )
        data = outcome.to_dict()
        return SanitizeResponse(category=category, **data)

    @router.post("/inspect", response_model=InspectResponse)
    async def inspect(request: InspectRequest) -> InspectResponse:
        """Inspect a response body returned by an AI service."""
        category = request.category or infer_site_category(
            url_hostname(request.origin or request.url), request.url, request.title
        )
        outcome = engine.inspect_response(
            request.body,
            request.content_type,
            category=category,
            processing=request.processing,
            trackers_present=request.trackers_present,
            origin=request.origin,
            context_id=request.context_id,
            session_id=request.session_id,
        )
        if outcome is None:
            return InspectResponse(scannable=False, category=category)
        return InspectResponse(scannable=True, category=category, **outcome.to_dict())

    @router.get("/memory", response_model=list[MemoryRecord])
    async def list_memory() -> list[MemoryRecord]:
        """Remembered prompts and responses, oldest first."""
        return engine.memory.list_all() if engine.memory is not None else []

    @router.delete("/memory/{record_id}", status_code=204)
    async def delete_memory(record_id: str) -> None:
        """Forget one memory record."""
        if engine.memory is None or not engine.memory.delete(record_id):
            raise HTTPException(status_code=404, detail=f"Record not found: {record_id}")

    @router.delete("/memory", response_model=WipeResponse)
    async def wipe_memory() -> WipeResponse:
        """Forget every memory record."""
        return WipeResponse(removed=engine.memory.wipe() if engine.memory is not None else 0)

    @router.post("/risk", response_model=RiskResponse)
    async def risk(request: RiskRequest) -> RiskResponse:
        """Assess risk for a context."""
        assessment = engine.assess_risk(request.to_context())
        return RiskResponse(**assessment.to_dict())

    @router.post("/risk/explain", response_model=ExplainResponse)
    async def explain(request: RiskRequest) -> ExplainResponse:
        """Assess risk and explain it in plain English."""
        context = request.to_context()
        assessment = engine.assess_risk(context)
        explanation = await engine.explain_risk(assessment, context)
        return ExplainResponse(
            assessment=RiskResponse(**assessment.to_dict()), explanation=explanation
        )

    return router
