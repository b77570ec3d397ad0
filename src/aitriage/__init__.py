"""aitriage - Local, real-time privacy triage for in-browser AI usage.

aitriage observes metadata about browser activity (outbound network requests,
page signals) and decides, per browsing context, whether an AI-backed service
is in use, how risky that usage is, and whether free-text payloads contain
personal data that should be masked before leaving the device.

Key modules:

- :mod:`aitriage.privacy` - PII detection and masking, HTML stripping, response inspection
- :mod:`aitriage.risk` - Risk scoring engine and site category inference
- :mod:`aitriage.traffic` - Signal aggregation and network traffic classification
- :mod:`aitriage.storage` - Key-value persistence and debounced writes
- :mod:`aitriage.memory` - Capped, short-lived record of sanitized prompts and responses
- :mod:`aitriage.llm` - Optional on-device paraphraser for explanations
- :mod:`aitriage.engine` - Facade wiring everything together
"""

__version__ = "0.1.0"
