"""Triage engine facade.

Wires the storage, provider directory, signal aggregator, explanation
cache, traffic classifier, sanitizer pipeline, risk engine and memory log
into the operations exposed to the presentation layer.

Example:
    >>> engine = create_engine(load_config())
    >>> await engine.start()
    >>> outcome = engine.sanitize("card 4242 4242 4242 4242", category="banking")
    >>> outcome.risk_level
    <RiskLevel.HIGH: 'high'>
"""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from aitriage.config.schema import TriageConfig
from aitriage.llm.factory import create_paraphraser
from aitriage.llm.paraphraser import Paraphraser
from aitriage.memory.records import MemoryLog
from aitriage.privacy.decisions import (
    SessionDecision,
    decide_inbound,
    decide_outbound,
    has_critical_secrets,
)
from aitriage.privacy.inbound import InboundInspection, inspect_response_body
from aitriage.privacy.models import PIISummary, Redaction
from aitriage.privacy.pipeline import SanitizerPipeline
from aitriage.privacy.validators import fnv1a_hex
from aitriage.risk.engine import assess_risk, explain_risk
from aitriage.risk.models import RiskAssessment, RiskContext, RiskLevel
from aitriage.storage.base import KeyValueStore, MemoryStore
from aitriage.storage.sqlite import SqliteStore
from aitriage.traffic.aggregator import SignalAggregator, SignalBucket
from aitriage.traffic.classifier import TrafficClassifier
from aitriage.traffic.explanations import ExplanationCache
from aitriage.traffic.models import ClassifiedServiceRecord, NetworkEvent, Notifier
from aitriage.traffic.providers import ProviderDirectory

logger = logging.getLogger(__name__)


@dataclass
class SanitizeOutcome:
    """Result of sanitizing one outbound payload."""

    sanitized_value: Any
    risk_level: RiskLevel
    score: int
    redactions: list[Redaction] = field(default_factory=list)
    summary: PIISummary = field(default_factory=PIISummary)
    decision: SessionDecision | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sanitized_value": self.sanitized_value,
            "risk_level": str(self.risk_level),
            "score": self.score,
            "redactions": [
                {"type": r.type, "start": r.start, "end": r.end, "confidence": r.confidence}
                for r in self.redactions
            ],
            "counts": dict(self.summary.counts),
            "decision": str(self.decision.action) if self.decision else None,
            "reason": self.decision.reason if self.decision else None,
        }


@dataclass
class InboundOutcome:
    """Result of inspecting one response body."""

    inspection: InboundInspection
    risk_level: RiskLevel
    score: int
    decision: SessionDecision

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.inspection.to_dict(),
            "risk_level": str(self.risk_level),
            "score": self.score,
            "decision": str(self.decision.action),
            "reason": self.decision.reason,
        }


class TriageEngine:
    """Facade over the triage components.

    One engine instance owns its aggregator state; run it on a single
    event loop.
    """

    def __init__(
        self,
        config: TriageConfig | None = None,
        store: KeyValueStore | None = None,
        paraphraser: Paraphraser | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the engine.

        Args:
            config: aitriage configuration (defaults if None)
            store: Key-value store (in-memory if None)
            paraphraser: Optional paraphrase capability
            notifier: Receives escalation notices from the classifier
            clock: Time source (epoch seconds)
        """
        self.config = config or TriageConfig()
        self.store = store or MemoryStore()
        self.paraphraser = paraphraser
        self.clock = clock

        agg = self.config.aggregator
        self.providers = ProviderDirectory(self.store, self.config.classifier.extra_providers)
        self.aggregator = SignalAggregator(
            self.store,
            clock=clock,
            window=agg.window_seconds,
            pii_window=agg.pii_window_seconds,
            pii_dedupe=agg.pii_dedupe_seconds,
            debounce=agg.debounce_seconds,
        )
        self.explanations = ExplanationCache(
            self.store,
            paraphraser=paraphraser,
            capacity=self.config.explanations.capacity,
            timeout=self.config.paraphraser.timeout,
            clock=clock,
        )
        self.classifier = TrafficClassifier(
            self.store,
            self.providers,
            self.aggregator,
            self.explanations,
            config=self.config.classifier,
            clock=clock,
            notifier=notifier,
            debounce=agg.debounce_seconds,
        )
        sanitizer = self.config.sanitizer
        self.pipeline = SanitizerPipeline(
            granularity=sanitizer.granularity.model_dump(),
            max_input_chars=sanitizer.max_input_chars,
            chunk_chars=sanitizer.chunk_chars,
            strip_html=sanitizer.strip_html,
        )
        memory = self.config.memory
        self.memory: MemoryLog | None = None
        if memory.enabled:
            self.memory = MemoryLog(
                self.store,
                clock=clock,
                capacity=memory.capacity,
                retention_days=memory.retention_days,
                debounce=agg.debounce_seconds,
            )
        self._started = False

    async def start(self) -> None:
        """Seed providers, restore persisted state and start background flushing."""
        if self._started:
            return
        await self.providers.ensure_seeded()
        await self.explanations.load()
        await self.classifier.load()
        await self.aggregator.restore()
        interval = self.config.aggregator.flush_interval_seconds
        await self.aggregator.start(interval)
        await self.classifier.start(interval)
        if self.memory is not None:
            await self.memory.load()
            await self.memory.start(interval, self.config.memory.cleanup_interval_seconds)
        self._started = True
        logger.info("Triage engine started")

    async def stop(self) -> None:
        """Stop background flushing and persist anything pending."""
        await self.aggregator.stop()
        await self.classifier.stop()
        if self.memory is not None:
            await self.memory.stop()
        self._started = False
        logger.info("Triage engine stopped")

    async def classify(
        self, event: NetworkEvent | dict[str, Any]
    ) -> ClassifiedServiceRecord | None:
        return await self.classifier.classify(event)

    def get_services_for_origin(self, origin: str) -> list[ClassifiedServiceRecord]:
        return self.classifier.get_services_for_origin(origin)

    def sanitize(
        self,
        value: Any,
        category: str = "general",
        processing: str = "unknown",
        trackers_present: bool = False,
        origin: str = "",
        context_id: int | None = None,
        session_id: str | None = None,
    ) -> SanitizeOutcome:
        """Sanitize an outbound text or JSON payload and score the destination.

        Args:
            value: Text or JSON-shaped payload
            category: Site category of the destination page
            processing: Where the AI processing happens
            trackers_present: Whether trackers were seen on the page
            origin: Page origin
            context_id: Browsing context id; with ``origin`` it feeds PII correlation
            session_id: Caller session id stored with the memory record

        Returns:
            SanitizeOutcome with the sanitized payload, risk and decision
        """
        result = self.pipeline.sanitize_value(value, str(category))
        context = RiskContext(
            origin=origin,
            processing=processing,
            trackers_present=trackers_present,
            site_category=category,
            pii_summary=result.summary,
        )
        assessment = assess_risk(context)
        decision = decide_outbound(
            assessment,
            has_critical_secrets(result.summary),
            strict=self.config.sanitizer.strict_mode,
        )
        if result.summary and origin:
            self.mark_pii(context_id, origin, result.summary, value)
        if self.memory is not None:
            self.memory.record(
                origin,
                "prompt",
                _payload_label(result.value),
                context_id=context_id,
                session_id=session_id,
                risk=_risk_summary(assessment),
                pii=dict(result.summary.counts),
            )

        return SanitizeOutcome(
            sanitized_value=result.value,
            risk_level=assessment.level,
            score=assessment.score,
            redactions=result.redactions,
            summary=result.summary,
            decision=decision,
        )

    def inspect_response(
        self,
        body: str,
        content_type: str,
        category: str = "general",
        processing: str = "unknown",
        trackers_present: bool = False,
        origin: str = "",
        context_id: int | None = None,
        session_id: str | None = None,
    ) -> InboundOutcome | None:
        """Scan a response from an AI service and decide how to pass it on.

        Args:
            body: Response body text
            content_type: Response Content-Type header value
            category: Site category of the page
            processing: Where the AI processing happens
            trackers_present: Whether trackers were seen on the page
            origin: Page origin
            context_id: Browsing context id
            session_id: Caller session id stored with the memory record

        Returns:
            InboundOutcome, or None when the body is empty or not text-like
        """
        inspection = inspect_response_body(body, content_type)
        if inspection is None:
            return None
        assessment = assess_risk(
            RiskContext(
                origin=origin,
                processing=processing,
                trackers_present=trackers_present,
                site_category=category,
            )
        )
        decision = decide_inbound(
            inspection.malicious, assessment, strict=self.config.sanitizer.strict_mode
        )
        if inspection.malicious:
            logger.info("Active content in response for %s: %s", origin or "?", decision.action)
        if self.memory is not None and inspection.scanned:
            self.memory.record(
                origin,
                "response",
                inspection.sanitized or "",
                context_id=context_id,
                session_id=session_id,
                risk=_risk_summary(assessment),
            )
        return InboundOutcome(
            inspection=inspection,
            risk_level=assessment.level,
            score=assessment.score,
            decision=decision,
        )

    def assess_risk(self, context: RiskContext) -> RiskAssessment:
        return assess_risk(context)

    async def explain_risk(self, assessment: RiskAssessment, context: RiskContext) -> str:
        return await explain_risk(
            assessment,
            context,
            paraphraser=self.paraphraser,
            timeout=self.config.paraphraser.timeout,
        )

    def mark_pii(
        self, context_id: int | None, origin: str, summary: PIISummary, text: Any
    ) -> SignalBucket | None:
        """Record outbound PII for later traffic correlation.

        Only the detected kinds and a short label of the payload are kept.
        """
        label = fnv1a_hex(_payload_label(text))
        return self.aggregator.mark_pii(context_id, origin, summary.kinds, label)


def _payload_label(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        # Mixed key types cannot be sorted; circular values cannot be encoded
        return repr(value)


def _risk_summary(assessment: RiskAssessment) -> dict[str, Any]:
    return {"level": str(assessment.level), "score": assessment.score}


def create_engine(
    config: TriageConfig | None = None, notifier: Notifier | None = None
) -> TriageEngine:
    """Build an engine with the store and paraphraser described by ``config``.

    Args:
        config: aitriage configuration (defaults if None)
        notifier: Receives escalation notices from the classifier

    Returns:
        A TriageEngine (not yet started)
    """
    config = config or TriageConfig()
    store: KeyValueStore
    if config.storage.backend == "sqlite":
        store = SqliteStore(config.storage.path)
    else:
        store = MemoryStore()
    return TriageEngine(
        config=config,
        store=store,
        paraphraser=create_paraphraser(config),
        notifier=notifier,
    )
