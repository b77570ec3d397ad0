"""Tests for the traffic classifier."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from aitriage.config.schema import ClassifierConfig
from aitriage.storage.base import CLASSIFIED_SERVICES_KEY, SEEN_HOSTS_KEY
from aitriage.traffic.aggregator import SignalAggregator
from aitriage.traffic.classifier import PII_CORRELATION_REASON, TrafficClassifier
from aitriage.traffic.explanations import ExplanationCache
from aitriage.traffic.models import (
    Classification,
    EscalationNotice,
    NetworkEvent,
    ServiceRisk,
)
from aitriage.traffic.providers import ProviderDirectory

PAGE = "https://app.example.com"


def make_classifier(store, clock, notifier=None, config=None) -> TrafficClassifier:
    return TrafficClassifier(
        store,
        ProviderDirectory(store),
        SignalAggregator(store, clock=clock),
        ExplanationCache(store, clock=clock),
        config=config,
        clock=clock,
        notifier=notifier,
    )


def event(url: str, method: str = "GET", **kwargs) -> NetworkEvent:
    kwargs.setdefault("context_id", 1)
    kwargs.setdefault("initiator", PAGE)
    return NetworkEvent(method=method, url=url, **kwargs)


@pytest.fixture
def classifier(store, clock):
    return make_classifier(store, clock)


def openai_chat(**kwargs) -> NetworkEvent:
    return event(
        "https://api.openai.com/v1/chat/completions",
        method="POST",
        request_headers={"Content-Type": "application/json"},
        **kwargs,
    )


class TestKnownProviders:
    @pytest.mark.asyncio
    async def test_openai(self, classifier, clock):
        record = await classifier.classify(openai_chat())

        assert record.is_ai
        assert record.classification == Classification.KNOWN
        assert record.known_provider == "OpenAI"
        assert record.reason == "Known AI provider: OpenAI"
        assert record.risk == ServiceRisk.MEDIUM
        assert record.data_types == ["json"]
        assert record.origin == PAGE
        assert record.last_seen == clock.now
        assert record.explanation == (
            "This site may be sending your data to an AI service. "
            "Service: OpenAI. Data types: json."
        )

    @pytest.mark.asyncio
    async def test_media_is_high_risk(self, classifier):
        record = await classifier.classify(
            event(
                "https://api.openai.com/v1/images/generations",
                method="POST",
                request_headers={"accept": "image/png"},
            )
        )
        assert record.risk == ServiceRisk.HIGH
        assert record.data_types == ["image"]

    @pytest.mark.asyncio
    async def test_origin_falls_back_to_document_then_request(self, classifier):
        record = await classifier.classify(
            event(
                "https://api.anthropic.com/v1/messages",
                method="POST",
                initiator=None,
                document_url="https://docs.example.com/page",
            )
        )
        assert record.origin == "https://docs.example.com"

        record = await classifier.classify(
            event("https://api.anthropic.com/v1/messages", method="POST", initiator=None)
        )
        assert record.origin == "https://api.anthropic.com"


class TestIgnoredAndMalformed:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.google-analytics.com/g/collect?v=2",
            "https://www.googletagmanager.com/gtm.js?id=GTM-1",
            "https://www.facebook.com/tr?id=1&ev=PageView",
            "https://cdn.jsdelivr.net/npm/chat-widget/model.js",
        ],
    )
    async def test_ignored_hosts(self, classifier, store, url):
        assert await classifier.classify(event(url, method="POST")) is None
        await classifier.flush(force=True)
        assert store.snapshot() == {}

    @pytest.mark.asyncio
    async def test_extra_ignored_hosts(self, store, clock):
        config = ClassifierConfig(extra_ignored_hosts=[r"telemetry\.example\.net"])
        classifier = make_classifier(store, clock, config=config)
        assert await classifier.classify(event("https://telemetry.example.net/v1/chat")) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url", ["chrome-extension://abcdef/popup.html", "ftp://files.example.com/v1", "nonsense"]
    )
    async def test_non_http(self, classifier, url):
        assert await classifier.classify(event(url, method="POST")) is None

    @pytest.mark.asyncio
    async def test_malformed_dict(self, classifier):
        assert await classifier.classify({"method": "POST"}) is None
        assert await classifier.classify({"url": "https://e.com/", "request_body_size": -5}) is None

    @pytest.mark.asyncio
    async def test_dict_event(self, classifier):
        record = await classifier.classify(
            {
                "method": "post",
                "url": "https://api.openai.com/v1/responses",
                "context_id": 4,
                "initiator": PAGE,
                "request_headers": [{"name": "Content-Type", "value": "application/json"}],
            }
        )
        assert record.known_provider == "OpenAI"
        assert record.data_types == ["json"]

    @pytest.mark.asyncio
    async def test_internal_failure_returns_none(self, classifier):
        classifier.explanations.get_or_create = AsyncMock(side_effect=RuntimeError("boom"))
        assert await classifier.classify(openai_chat()) is None


class TestHeuristics:
    @pytest.mark.asyncio
    async def test_suspicious_path_with_structured_response(self, classifier):
        record = await classifier.classify(
            event(
                "https://api.example.net/v1/generate",
                method="POST",
                response_headers={"content-type": "application/json; charset=utf-8"},
            )
        )
        assert record.is_ai
        assert record.classification == Classification.HEURISTIC
        assert record.reason == "Heuristics: path + payload/response"
        assert record.known_provider is None

    @pytest.mark.asyncio
    async def test_suspicious_path_with_large_body(self, classifier):
        record = await classifier.classify(
            event("https://api.example.net/predict", method="PUT", request_body_size=5000)
        )
        assert record.reason == "Heuristics: path + payload/response"

    @pytest.mark.asyncio
    async def test_suspicious_path_alone_is_not_ai(self, classifier):
        record = await classifier.classify(
            event("https://api.example.net/v1/generate", request_body_size=100)
        )
        assert not record.is_ai
        assert record.reason == "No AI indicators"
        assert record.risk == ServiceRisk.LOW

    @pytest.mark.asyncio
    async def test_user_content_and_structured_output(self, classifier):
        record = await classifier.classify(
            event(
                "https://files.example.net/upload",
                method="POST",
                request_headers={"content-type": "multipart/form-data; boundary=x"},
                response_headers={"content-type": "application/json"},
            )
        )
        assert record.is_ai
        assert record.reason == "Heuristics: user-like input and structured output"
        assert record.risk == ServiceRisk.HIGH
        assert record.data_types == ["image", "json"]

    @pytest.mark.asyncio
    async def test_get_is_never_user_content(self, classifier):
        record = await classifier.classify(
            event(
                "https://files.example.net/upload",
                request_headers={"content-length": "90000"},
                response_headers={"content-type": "application/json"},
            )
        )
        assert not record.is_ai


class TestUnknownAI:
    @staticmethod
    def auth_event(**kwargs) -> NetworkEvent:
        kwargs.setdefault("request_body_size", 3000)
        return event(
            "https://edge.example.org/x",
            method="POST",
            request_headers={"Authorization": "Bearer secret"},
            **kwargs,
        )

    @pytest.mark.asyncio
    async def test_auth_header_on_unseen_host(self, classifier):
        record = await classifier.classify(self.auth_event())
        assert record.is_ai
        assert record.classification == Classification.HEURISTIC
        assert record.reason == "Unknown AI-like traffic"
        assert record.risk == ServiceRisk.MEDIUM

    @pytest.mark.asyncio
    async def test_seen_host_is_skipped_until_ttl(self, classifier, clock):
        await classifier.classify(self.auth_event())

        clock.advance(60)
        assert not (await classifier.classify(self.auth_event())).is_ai

        clock.advance(6 * 60 * 60 + 1)
        assert (await classifier.classify(self.auth_event())).is_ai

    @pytest.mark.asyncio
    async def test_small_body_is_skipped(self, classifier):
        record = await classifier.classify(self.auth_event(request_body_size=2000))
        assert not record.is_ai

    @pytest.mark.asyncio
    async def test_unknown_size_is_not_small(self, classifier):
        record = await classifier.classify(self.auth_event(request_body_size=None))
        assert record.is_ai

    @pytest.mark.asyncio
    @pytest.mark.parametrize("resource_type", ["image", "media", "font", "stylesheet"])
    async def test_skipped_resource_types(self, classifier, resource_type):
        record = await classifier.classify(self.auth_event(resource_type=resource_type))
        assert not record.is_ai

    @pytest.mark.asyncio
    async def test_api_key_header(self, classifier):
        record = await classifier.classify(
            event(
                "https://edge.example.org/x",
                method="POST",
                request_headers={"X-Api-Key": "k"},
                request_body_size=2500,
            )
        )
        assert record.is_ai

    @pytest.mark.asyncio
    async def test_large_json_body(self, classifier):
        record = await classifier.classify(
            event(
                "https://edge.example.org/x",
                method="POST",
                request_headers={"content-type": "application/x-ndjson"},
                request_body_size=50_000,
            )
        )
        assert record.is_ai
        assert record.reason == "Unknown AI-like traffic"

    @pytest.mark.asyncio
    async def test_websocket(self, classifier):
        record = await classifier.classify(
            event("https://rt.example.org/socket", resource_type="websocket")
        )
        assert record.is_ai
        assert record.reason == "Unknown AI-like traffic"

    @pytest.mark.asyncio
    async def test_event_stream(self, classifier):
        record = await classifier.classify(
            event("https://rt.example.org/feed", request_headers={"accept": "text/event-stream"})
        )
        assert record.is_ai

    @pytest.mark.asyncio
    async def test_plain_request_is_not_ai(self, classifier):
        record = await classifier.classify(event("https://rt.example.org/feed"))
        assert not record.is_ai


class TestPIICorrelation:
    @pytest.mark.asyncio
    async def test_recent_pii_escalates(self, classifier):
        classifier.aggregator.mark_pii(1, PAGE, {"email"}, "abcd1234")

        record = await classifier.classify(event("https://cdn.example.net/lib.js"))

        assert record.is_ai
        assert record.classification == Classification.HEURISTIC
        assert record.reason == PII_CORRELATION_REASON
        assert "email" not in record.reason

    @pytest.mark.asyncio
    async def test_reason_is_appended(self, classifier):
        classifier.aggregator.mark_pii(1, PAGE, {"ssn"})

        record = await classifier.classify(openai_chat())

        assert record.classification == Classification.KNOWN
        assert record.reason == f"Known AI provider: OpenAI; {PII_CORRELATION_REASON}"

    @pytest.mark.asyncio
    async def test_old_pii_is_ignored(self, classifier, clock):
        classifier.aggregator.mark_pii(1, PAGE, {"email"})
        clock.advance(16)

        record = await classifier.classify(event("https://cdn.example.net/lib.js"))

        assert not record.is_ai

    @pytest.mark.asyncio
    async def test_other_context_is_ignored(self, classifier):
        classifier.aggregator.mark_pii(2, PAGE, {"email"})
        record = await classifier.classify(event("https://cdn.example.net/lib.js"))
        assert not record.is_ai


class TestSignals:
    @pytest.mark.asyncio
    async def test_ai_post_and_sse(self, classifier):
        await classifier.classify(
            openai_chat(response_headers={"content-type": "text/event-stream"})
        )

        counts = classifier.aggregator.get_active_bucket(1, PAGE).counts
        assert counts.ai_post == 1
        assert counts.sse == 1
        assert counts.passive == 0

    @pytest.mark.asyncio
    async def test_model_download_and_passive(self, classifier):
        record = await classifier.classify(event("https://cdn.example.net/models/tiny.onnx"))

        assert not record.is_ai
        counts = classifier.aggregator.get_active_bucket(1, PAGE).counts
        assert counts.model_download == 1
        assert counts.passive == 1

    @pytest.mark.asyncio
    async def test_no_signal_no_bucket(self, classifier):
        await classifier.classify(event("https://cdn.example.net/lib.js"))
        assert classifier.aggregator.get_active_bucket(1, PAGE) is None

    @pytest.mark.asyncio
    async def test_no_context_no_bucket(self, classifier):
        record = await classifier.classify(openai_chat(context_id=None))
        assert record.is_ai
        assert len(classifier.aggregator) == 0


class TestNotifier:
    @pytest.mark.asyncio
    async def test_notified_with_repeat_flag(self, store, clock):
        notifier = MagicMock(return_value=None)
        classifier = make_classifier(store, clock, notifier=notifier)

        await classifier.classify(openai_chat())
        await classifier.classify(openai_chat())

        assert [c.args[0] for c in notifier.call_args_list] == [
            EscalationNotice(origin=PAGE, risk_level=ServiceRisk.MEDIUM, repeat=False),
            EscalationNotice(origin=PAGE, risk_level=ServiceRisk.MEDIUM, repeat=True),
        ]

    @pytest.mark.asyncio
    async def test_async_notifier_awaited(self, store, clock):
        notifier = AsyncMock()
        classifier = make_classifier(store, clock, notifier=notifier)

        await classifier.classify(openai_chat())

        notifier.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_notified_for_non_ai(self, store, clock):
        notifier = MagicMock(return_value=None)
        classifier = make_classifier(store, clock, notifier=notifier)

        await classifier.classify(event("https://cdn.example.net/lib.js"))

        notifier.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_notifier_is_swallowed(self, store, clock):
        notifier = MagicMock(side_effect=RuntimeError("ui closed"))
        classifier = make_classifier(store, clock, notifier=notifier)

        record = await classifier.classify(openai_chat())

        assert record is not None
        assert record.is_ai


class TestRecords:
    @pytest.mark.asyncio
    async def test_latest_record_per_bucket_key(self, classifier, clock):
        await classifier.classify(openai_chat())
        clock.advance(5)
        await classifier.classify(
            event("https://api.openai.com/v1/embeddings", method="POST")
        )

        records = classifier.get_services_for_origin(PAGE)
        assert len(records) == 1
        assert records[0].url == "https://api.openai.com/v1/embeddings"
        assert records[0].last_seen == clock.now

    @pytest.mark.asyncio
    async def test_sorted_by_last_seen(self, classifier, clock):
        await classifier.classify(openai_chat())
        clock.advance(5)
        await classifier.classify(event("https://api.anthropic.com/v1/messages", method="POST"))

        records = classifier.get_services_for_origin(PAGE)
        assert [r.known_provider for r in records] == ["Anthropic", "OpenAI"]
        assert classifier.get_services_for_origin("https://nobody.example") == []

    @pytest.mark.asyncio
    async def test_persisted_and_loaded(self, store, clock):
        classifier = make_classifier(store, clock)
        await classifier.classify(openai_chat())
        await classifier.flush(force=True)

        snapshot = store.snapshot()
        record = snapshot[CLASSIFIED_SERVICES_KEY]["https://api.openai.com/v1"]
        assert record["is_ai"] is True
        assert record["classification"] == "known"
        assert snapshot[SEEN_HOSTS_KEY] == {"api.openai.com": clock.now}

        reloaded = make_classifier(store, clock)
        await reloaded.load()
        assert [r.known_provider for r in reloaded.get_services_for_origin(PAGE)] == ["OpenAI"]
        assert not reloaded.host_is_unseen("api.openai.com", clock.now)

    @pytest.mark.asyncio
    async def test_load_drops_expired_seen_hosts(self, store, clock):
        classifier = make_classifier(store, clock)
        await classifier.classify(event("https://edge.example.org/x"))
        await classifier.flush(force=True)
        clock.advance(6 * 60 * 60 + 1)

        reloaded = make_classifier(store, clock)
        await reloaded.load()

        assert reloaded.host_is_unseen("edge.example.org", clock.now)

    @pytest.mark.asyncio
    async def test_start_stop_flushes(self, store, clock):
        classifier = make_classifier(store, clock)
        await classifier.start(interval=60)
        await classifier.classify(openai_chat())

        await classifier.stop()

        assert CLASSIFIED_SERVICES_KEY in store.snapshot()
