"""Network traffic classifier.

Decides for one network event whether an AI-backed service is involved,
how risky it is and why. Steps run in order and short-circuit:

1. Analytics/CDN noise is ignored outright.
2. Exact hostname match against the provider directory.
3. AI-looking path plus user-like payload or structured response.
4. User-like payload plus structured response.
5. Conjunctive heuristic for unseen hosts (auth header, large JSON body
   or streaming transfer).
6. Correlation with a recent PII mark on the same context and origin.

The latest record per bucket key is kept; no history is retained.
"""

import inspect
import logging
import re
import time
from collections.abc import Callable
from typing import Any, ClassVar
from urllib.parse import urlsplit

from pydantic import ValidationError

from aitriage.config.schema import ClassifierConfig
from aitriage.storage.base import CLASSIFIED_SERVICES_KEY, SEEN_HOSTS_KEY, KeyValueStore
from aitriage.storage.debounce import DebouncedWriter

from .aggregator import SignalAggregator, SignalBucket, should_escalate_with_pii
from .explanations import ExplanationCache
from .models import (
    Classification,
    ClassifiedServiceRecord,
    EscalationNotice,
    NetworkEvent,
    Notifier,
    ServiceRisk,
    bucket_key,
    url_hostname,
    url_origin,
)
from .providers import ProviderDirectory

logger = logging.getLogger(__name__)

MEDIA_TYPES: frozenset[str] = frozenset({"image", "audio", "video"})
UPLOAD_TYPES: frozenset[str] = MEDIA_TYPES | {"binary"}
STRUCTURED_TYPES: frozenset[str] = UPLOAD_TYPES | {"json"}
SKIPPED_RESOURCE_TYPES: frozenset[str] = frozenset({"image", "media", "font", "stylesheet"})

PII_CORRELATION_REASON = "correlated with recent PII entry"


def _content_data_types(content_type: str) -> set[str]:
    ct = (content_type or "").lower()
    types: set[str] = set()
    if "json" in ct:
        types.add("json")
    if ct.startswith("text/"):
        types.add("text")
    if "multipart/form-data" in ct or ct.startswith("image/"):
        types.add("image")
    if ct.startswith("audio/"):
        types.add("audio")
    if ct.startswith("video/"):
        types.add("video")
    if "octet-stream" in ct:
        types.add("binary")
    return types


def _accept_data_types(accept: str) -> set[str]:
    accept = (accept or "").lower()
    types: set[str] = set()
    if "application/json" in accept:
        types.add("json")
    for media in ("image", "audio", "video"):
        if f"{media}/" in accept:
            types.add(media)
    return types


def request_data_types(event: NetworkEvent) -> set[str]:
    """Data types implied by the request content-type and accept headers."""
    headers = event.request_headers
    return _content_data_types(headers.get("content-type", "")) | _accept_data_types(
        headers.get("accept", "")
    )


def response_data_types(event: NetworkEvent) -> set[str]:
    """Data types implied by the response content-type header."""
    return _content_data_types(event.response_headers.get("content-type", ""))


class TrafficClassifier:
    """Classifies network events as AI-related or not."""

    SUSPICIOUS_PATH: ClassVar[re.Pattern[str]] = re.compile(
        r"(generate|chat|prompt|predict|infer|inference|complet(ion|e)|embedd(ing|ings)"
        r"|vision|speech|tts|stt|asr|ocr|translate|moderation|rerank|reason|think"
        r"|model|models|v1|v2|stream|sse|ws|vertex|gemini|ai|ml|l(la)?m)",
        re.IGNORECASE,
    )

    # Matched against "hostname/path"
    IGNORED_HOSTS: ClassVar[list[str]] = [
        r"google-analytics\.com",
        r"googletagmanager\.com",
        r"doubleclick\.net",
        r"facebook\.com/(tr|plugins)",
        r"connect\.facebook\.net",
        r"linkedin\.com/(analytics|li|px)",
        r"twitter\.com/i/pixel",
        r"cdnjs\.cloudflare\.com",
        r"unpkg\.com",
        r"jsdelivr\.net",
        r"static\.hotjar\.com",
        r"cdn\.segment\.com",
        r"cdn\.amplitude\.com",
        r"cdn\.mixpanel\.com",
    ]

    MODEL_FILE_PATTERNS: ClassVar[list[re.Pattern[str]]] = [
        re.compile(r"\.(onnx|tflite|safetensors|bin|gguf|pt|pth)(\?.*)?$", re.IGNORECASE),
        re.compile(r"model[-_]?weights|checkpoint|\.ggml(\?.*)?$", re.IGNORECASE),
    ]

    AUTH_HEADER: ClassVar[re.Pattern[str]] = re.compile(
        r"^(authorization|proxy-authorization|x-goog-api-key|.*api[-_]?key.*)$"
    )

    def __init__(
        self,
        store: KeyValueStore,
        providers: ProviderDirectory,
        aggregator: SignalAggregator,
        explanations: ExplanationCache,
        config: ClassifierConfig | None = None,
        clock: Callable[[], float] = time.time,
        notifier: Notifier | None = None,
        debounce: float = 0.5,
    ):
        """Initialize the classifier.

        Args:
            store: Backing key-value store
            providers: Known AI provider directory
            aggregator: Signal bucket aggregator
            explanations: Explanation cache
            config: Heuristic thresholds
            clock: Time source (epoch seconds)
            notifier: Receives escalation notices for AI traffic
            debounce: Write coalescing interval for records and seen hosts
        """
        self.store = store
        self.providers = providers
        self.aggregator = aggregator
        self.explanations = explanations
        self.config = config or ClassifierConfig()
        self.clock = clock
        self.notifier = notifier

        self._ignored = [
            re.compile(p, re.IGNORECASE)
            for p in [*self.IGNORED_HOSTS, *self.config.extra_ignored_hosts]
        ]
        self._records: dict[str, ClassifiedServiceRecord] = {}
        self._seen_hosts: dict[str, float] = {}
        self._record_writer = DebouncedWriter(
            store, CLASSIFIED_SERVICES_KEY, debounce=debounce, clock=clock
        )
        self._seen_writer = DebouncedWriter(store, SEEN_HOSTS_KEY, debounce=debounce, clock=clock)

    async def load(self) -> None:
        """Load persisted records and seen hosts."""
        try:
            current = await self.store.get([CLASSIFIED_SERVICES_KEY, SEEN_HOSTS_KEY])
        except Exception as e:
            logger.warning("Could not load classifier state: %s", e)
            return

        now = self.clock()
        for host, ts in (current.get(SEEN_HOSTS_KEY) or {}).items():
            if isinstance(ts, int | float) and now - ts <= self.config.seen_host_ttl_seconds:
                self._seen_hosts[host] = float(ts)
        for key, raw in (current.get(CLASSIFIED_SERVICES_KEY) or {}).items():
            try:
                self._records[key] = ClassifiedServiceRecord.model_validate(raw)
            except ValidationError:
                logger.debug("Dropping malformed service record %s", key)

    def is_ignored(self, url: str) -> bool:
        """Whether a URL belongs to analytics/CDN noise that is never classified."""
        try:
            parts = urlsplit(url or "")
        except ValueError:
            return False
        target = f"{(parts.hostname or '').lower()}{parts.path}"
        return any(pattern.search(target) for pattern in self._ignored)

    def is_model_download(self, url: str) -> bool:
        path = urlsplit(url).path
        return any(pattern.search(path) for pattern in self.MODEL_FILE_PATTERNS)

    def payload_looks_like_user_content(self, event: NetworkEvent, req_types: set[str]) -> bool:
        if not event.is_mutating:
            return False
        size = event.body_size or 0
        return size > self.config.user_content_bytes or bool(req_types & UPLOAD_TYPES)

    @staticmethod
    def response_looks_structured(resp_types: set[str]) -> bool:
        return bool(resp_types & STRUCTURED_TYPES)

    def host_is_unseen(self, hostname: str, now: float) -> bool:
        last = self._seen_hosts.get(hostname)
        return last is None or now - last > self.config.seen_host_ttl_seconds

    def _looks_like_unknown_ai(self, event: NetworkEvent, hostname: str, now: float) -> bool:
        if event.resource_type in SKIPPED_RESOURCE_TYPES:
            return False
        size = event.body_size
        if size is not None and size <= self.config.small_payload_bytes:
            return False
        if not self.host_is_unseen(hostname, now):
            return False

        has_auth = any(self.AUTH_HEADER.match(name) for name in event.request_headers)
        content_type = event.request_headers.get("content-type", "").lower()
        large_json = (
            event.is_mutating
            and ("json" in content_type or "ndjson" in content_type)
            and (size or 0) >= self.config.large_json_bytes
        )
        streaming = (
            event.resource_type == "websocket"
            or event.request_headers.get("upgrade", "").lower() == "websocket"
            or "text/event-stream" in event.request_headers.get("accept", "").lower()
            or "text/event-stream" in event.response_headers.get("content-type", "").lower()
        )
        return has_auth or large_json or streaming

    async def classify(
        self, event: NetworkEvent | dict[str, Any]
    ) -> ClassifiedServiceRecord | None:
        """Classify one network event.

        Args:
            event: Validated event, or a raw mapping validated here

        Returns:
            The stored record, or None for ignored, malformed or non-HTTP events
        """
        try:
            if not isinstance(event, NetworkEvent):
                event = NetworkEvent.model_validate(event)
            return await self._classify(event)
        except ValidationError as e:
            logger.debug("Rejected malformed network event: %s", e)
            return None
        except Exception:
            logger.exception("Traffic classification failed")
            return None

    async def _classify(self, event: NetworkEvent) -> ClassifiedServiceRecord | None:
        if self.is_ignored(event.url):
            logger.debug("Ignoring analytics/CDN request to %s", url_hostname(event.url))
            return None

        request_origin = url_origin(event.url)
        if request_origin is None:
            return None
        page_origin = (
            url_origin(event.initiator or "")
            or url_origin(event.document_url or "")
            or request_origin
        )

        now = self.clock()
        hostname = url_hostname(event.url)
        path = urlsplit(event.url).path
        req_types = request_data_types(event)
        resp_types = response_data_types(event)
        data_types = sorted(req_types | resp_types)

        known = self.providers.lookup(hostname)
        suspicious = bool(self.SUSPICIOUS_PATH.search(path))
        user_content = self.payload_looks_like_user_content(event, req_types)
        structured = self.response_looks_structured(resp_types)

        is_ai = False
        classification = Classification.UNKNOWN
        reasons: list[str] = []
        if known:
            is_ai, classification = True, Classification.KNOWN
            reasons.append(f"Known AI provider: {known}")
        elif suspicious and (user_content or structured):
            is_ai, classification = True, Classification.HEURISTIC
            reasons.append("Heuristics: path + payload/response")
        elif user_content and structured:
            is_ai, classification = True, Classification.HEURISTIC
            reasons.append("Heuristics: user-like input and structured output")
        elif self._looks_like_unknown_ai(event, hostname, now):
            is_ai, classification = True, Classification.HEURISTIC
            reasons.append("Unknown AI-like traffic")

        bucket = self.aggregator.get_active_bucket(event.context_id, page_origin)
        if should_escalate_with_pii(bucket, now, self.aggregator.pii_window):
            is_ai = True
            if classification == Classification.UNKNOWN:
                classification = Classification.HEURISTIC
            reasons.append(PII_CORRELATION_REASON)

        if not is_ai:
            risk = ServiceRisk.LOW
        elif MEDIA_TYPES.intersection(data_types):
            risk = ServiceRisk.HIGH
        else:
            risk = ServiceRisk.MEDIUM

        repeat = self.aggregator.has_recent_activity(page_origin)
        self._record_signals(event, page_origin, is_ai, suspicious or bool(known))

        explanation = await self.explanations.get_or_create(risk, known, data_types)
        record = ClassifiedServiceRecord(
            origin=page_origin,
            url=event.url,
            known_provider=known,
            is_ai=is_ai,
            reason="; ".join(reasons) or "No AI indicators",
            classification=classification,
            risk=risk,
            data_types=data_types,
            explanation=explanation,
            last_seen=now,
        )
        key = bucket_key(event.url)
        self._records[key] = record
        self._record_writer.schedule(key, record.model_dump(mode="json"))
        self._seen_hosts[hostname] = now
        self._seen_writer.schedule(hostname, now)

        logger.debug(
            "Classified %s as %s (ai=%s, risk=%s)", key, classification, is_ai, risk
        )
        if is_ai:
            await self._notify(EscalationNotice(origin=page_origin, risk_level=risk, repeat=repeat))
        return record

    def _record_signals(
        self, event: NetworkEvent, page_origin: str, is_ai: bool, passive_hint: bool
    ) -> SignalBucket | None:
        ai_post = is_ai and event.is_mutating
        sse = "text/event-stream" in (
            event.response_headers.get("content-type", "") + event.request_headers.get("accept", "")
        ).lower()
        model_download = self.is_model_download(event.url)
        passive = passive_hint and not event.is_mutating
        if not (ai_post or sse or model_download or passive):
            return None

        def bump(bucket: SignalBucket) -> None:
            bucket.counts.ai_post += int(ai_post)
            bucket.counts.sse += int(sse)
            bucket.counts.model_download += int(model_download)
            bucket.counts.passive += int(passive)

        return self.aggregator.with_bucket(event.context_id, page_origin, bump)

    async def _notify(self, notice: EscalationNotice) -> None:
        if self.notifier is None:
            return
        try:
            result = self.notifier(notice)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning("Escalation notifier failed: %s", e)

    def get_services_for_origin(self, origin: str) -> list[ClassifiedServiceRecord]:
        """Records for a page origin, most recently seen first."""
        records = [r for r in self._records.values() if r.origin == origin]
        return sorted(records, key=lambda r: r.last_seen, reverse=True)

    async def flush(self, force: bool = False) -> int:
        written = await self._record_writer.flush(force=force)
        return written + await self._seen_writer.flush(force=force)

    async def start(self, interval: float | None = None) -> None:
        await self._record_writer.start(interval)
        await self._seen_writer.start(interval)

    async def stop(self) -> None:
        await self._record_writer.stop()
        await self._seen_writer.stop()
