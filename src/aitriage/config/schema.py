"""Pydantic models for aitriage.yaml configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class AggregatorConfig(BaseModel):
    """Signal bucket aggregation windows."""

    window_seconds: float = Field(
        default=30.0, description="Active window for signal counters", gt=0
    )
    pii_window_seconds: float = Field(
        default=15.0, description="Window for PII marks and PII correlation", gt=0
    )
    pii_dedupe_seconds: float = Field(
        default=2.0, description="Identical PII hashes within this span count once", ge=0
    )
    debounce_seconds: float = Field(
        default=0.5, description="Per-key write coalescing interval", ge=0
    )
    flush_interval_seconds: float = Field(
        default=0.5, description="How often the background writer flushes", gt=0
    )


class ClassifierConfig(BaseModel):
    """Traffic classification heuristics."""

    user_content_bytes: int = Field(
        default=4000, description="Request bodies above this look like user content", ge=0
    )
    small_payload_bytes: int = Field(
        default=2000, description="Bodies at or below this never trigger the unknown-AI check", ge=0
    )
    large_json_bytes: int = Field(
        default=50_000, description="JSON/NDJSON bodies at or above this look like AI prompts", ge=0
    )
    seen_host_ttl_seconds: float = Field(
        default=6 * 60 * 60, description="Hosts seen within this span are not 'unseen'", gt=0
    )
    extra_providers: dict[str, str] = Field(
        default_factory=dict,
        description="Additional known AI hostnames mapped to display names",
    )
    extra_ignored_hosts: list[str] = Field(
        default_factory=list,
        description="Additional regex patterns for hosts that are never classified",
    )


class GranularityConfig(BaseModel):
    """How much of each masked value remains visible."""

    email: Literal["domain_only", "full_mask"] = "domain_only"
    phone: Literal["last_4", "full_mask"] = "last_4"
    card: Literal["last_4", "full_mask"] = "last_4"
    dob: Literal["age_range", "full_mask"] = "age_range"
    address: Literal["city_only", "full_mask"] = "city_only"


class SanitizerConfig(BaseModel):
    """Outbound text sanitization."""

    max_input_chars: int = Field(
        default=512 * 1024, description="Inputs above this are processed in chunks", ge=1
    )
    chunk_chars: int = Field(default=4000, description="Chunk size for large inputs", ge=1)
    strict_mode: bool = Field(
        default=False, description="Block (rather than rewrite) high-risk outbound text"
    )
    strip_html: bool = Field(
        default=True, description="Strip scripts, handlers and non-formatting tags first"
    )
    granularity: GranularityConfig = Field(default_factory=GranularityConfig)


class ExplanationConfig(BaseModel):
    """Explanation cache settings."""

    capacity: int = Field(default=256, description="Maximum cached explanations (LRU)", ge=1)


class MemoryConfig(BaseModel):
    """Short-lived memory of sanitized prompts and inspected responses."""

    enabled: bool = Field(default=True, description="Record prompts and responses")
    capacity: int = Field(default=500, description="Maximum records kept", ge=1)
    retention_days: float = Field(
        default=14, description="Records older than this are pruned", gt=0
    )
    cleanup_interval_seconds: float = Field(
        default=3600, description="How often expired records are pruned", gt=0
    )


class ParaphraserConfig(BaseModel):
    """Optional on-device paraphraser for explanations."""

    enabled: bool = Field(default=False, description="Enable LLM paraphrasing of explanations")
    backend: Literal["ollama"] = Field(default="ollama", description="Paraphraser backend")
    host: str = Field(default="http://localhost:11434", description="Ollama server URL")
    model: str = Field(default="qwen2.5:1.5b", description="Model used for paraphrasing")
    timeout: float = Field(
        default=2.0, description="Upper bound on each paraphrase call in seconds", gt=0
    )


class StorageConfig(BaseModel):
    """Persistence backend."""

    backend: Literal["memory", "sqlite"] = Field(default="sqlite", description="Store backend")
    path: str = Field(default="~/.aitriage/state.db", description="SQLite database path")


class ServerConfig(BaseModel):
    """API server configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8700, description="Server port", ge=1, le=65535)


class TriageConfig(BaseModel):
    """Root configuration model for aitriage."""

    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    sanitizer: SanitizerConfig = Field(default_factory=SanitizerConfig)
    explanations: ExplanationConfig = Field(default_factory=ExplanationConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    paraphraser: ParaphraserConfig = Field(default_factory=ParaphraserConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
