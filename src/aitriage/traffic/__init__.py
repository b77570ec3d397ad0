"""Network traffic triage: provider directory, signal aggregation and classification."""

from aitriage.traffic.aggregator import (
    SignalAggregator,
    SignalBucket,
    SignalCounts,
    should_escalate_with_pii,
)
from aitriage.traffic.classifier import TrafficClassifier
from aitriage.traffic.explanations import ExplanationCache
from aitriage.traffic.models import (
    Classification,
    ClassifiedServiceRecord,
    EscalationNotice,
    NetworkEvent,
    ServiceRisk,
    bucket_key,
)
from aitriage.traffic.providers import DEFAULT_PROVIDERS, ProviderDirectory

__all__ = [
    "DEFAULT_PROVIDERS",
    "Classification",
    "ClassifiedServiceRecord",
    "EscalationNotice",
    "ExplanationCache",
    "NetworkEvent",
    "ProviderDirectory",
    "ServiceRisk",
    "SignalAggregator",
    "SignalBucket",
    "SignalCounts",
    "TrafficClassifier",
    "bucket_key",
    "should_escalate_with_pii",
]
