from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Dict, Any
from pathlib import Path
import os
import json

from .errors import InputValidationError
from .version import __version__, CONFIG_SCHEMA_VERSION

DEFAULT_BASE_URL = "https://www.amazon.com"
DEFAULT_RENDERER = "offer_crawler.engines.browser_engine:PlaywrightRenderer"
DEFAULT_SINK = "offer_crawler.export.jsonl_exporter:JSONLinesSink"


@dataclass
class CrawlConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) to stay upgrade-friendly.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    keyword: str = ""
    base_url: str = DEFAULT_BASE_URL
    # Total work items handled per run (successes and failures both count).
    max_requests_per_crawl: int = 10
    # Retries per work item before the failure recorder takes over.
    max_request_retries: int = 3
    # Seconds before the first retry; doubles per attempt, capped at 10s.
    retry_backoff: float = 1.0
    max_concurrency: int = 4
    navigation_timeout: float = 30.0
    headless: bool = True
    user_agent: str = f"offer_crawler/{__version__}"
    # Dotted paths for renderer/sink to allow runtime swapping without code changes.
    renderer: str = DEFAULT_RENDERER
    sink: str = DEFAULT_SINK
    # State label -> dotted extractor class, overriding the built-in strategy.
    extra_extractors: Dict[str, str] = field(default_factory=dict)
    output_path: str = "output/offers.jsonl"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """
        Build config from environment variables (all optional).
        """
        def _get(name: str, default: str) -> str:
            return os.getenv(name, default)

        extractors: Dict[str, str] = {}
        for pair in _get("CRAWLER_EXTRA_EXTRACTORS", "").split(","):
            if "=" in pair:
                label, dotted = pair.split("=", 1)
                extractors[label.strip()] = dotted.strip()

        return cls(
            keyword=_get("CRAWLER_KEYWORD", ""),
            base_url=_get("CRAWLER_BASE_URL", DEFAULT_BASE_URL),
            max_requests_per_crawl=int(_get("CRAWLER_MAX_REQUESTS_PER_CRAWL", "10")),
            max_request_retries=int(_get("CRAWLER_MAX_REQUEST_RETRIES", "3")),
            retry_backoff=float(_get("CRAWLER_RETRY_BACKOFF", "1.0")),
            max_concurrency=int(_get("CRAWLER_MAX_CONCURRENCY", "4")),
            navigation_timeout=float(_get("CRAWLER_NAVIGATION_TIMEOUT", "30.0")),
            headless=_get("CRAWLER_HEADLESS", "1").lower() not in ("0", "false", "no"),
            user_agent=_get("CRAWLER_USER_AGENT", f"offer_crawler/{__version__}"),
            renderer=_get("CRAWLER_RENDERER", DEFAULT_RENDERER),
            sink=_get("CRAWLER_SINK", DEFAULT_SINK),
            extra_extractors=extractors,
            output_path=_get("CRAWLER_OUTPUT_PATH", "output/offers.jsonl"),
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "CrawlConfig":
        """
        Load configuration from a JSON file. Supports schema migration for older versions.
        """
        data = _read_json(path, "Config file")
        if not isinstance(data, dict):
            raise InputValidationError(f"Config file {path} must contain a JSON object.")
        data = migrate_config(data)
        try:
            return cls(**data)
        except TypeError as exc:
            raise InputValidationError(f"Unknown config field in {path}: {exc}") from exc

    def apply_input(self, path: str | os.PathLike[str]) -> None:
        """
        Read the process input document (``{"keyword": "..."}``) into this config.
        """
        data = _read_json(path, "Input")
        if not isinstance(data, dict):
            raise InputValidationError(_MALFORMED_INPUT)
        self.keyword = data.get("keyword")  # type: ignore[assignment]

    # ---------- Validation ----------

    def validate(self) -> None:
        if not isinstance(self.keyword, str) or not self.keyword.strip():
            raise InputValidationError(_MALFORMED_INPUT)
        if self.max_requests_per_crawl <= 0:
            raise InputValidationError("max_requests_per_crawl must be > 0")
        if self.max_request_retries < 0:
            raise InputValidationError("max_request_retries must be >= 0")
        if self.retry_backoff < 0:
            raise InputValidationError("retry_backoff must be >= 0")
        if self.max_concurrency <= 0:
            raise InputValidationError("max_concurrency must be > 0")
        if not self.base_url.startswith(("http://", "https://")):
            raise InputValidationError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        parent = Path(self.output_path).parent
        parent.mkdir(parents=True, exist_ok=True)


_MALFORMED_INPUT = 'Scraper input malformed. Well formed input looks like: { "keyword": "string" }'


def _read_json(path: str | os.PathLike[str], what: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as exc:
        raise InputValidationError(f"{what} {path} could not be read: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InputValidationError(f"{what} {path} is not valid JSON: {exc}") from exc


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    schema = raw.get("schema_version", 1)

    if schema < 2:
        # v1 used crawler-wide names; v2 counts work items and retries separately.
        if "retries" in raw:
            raw.setdefault("max_request_retries", raw.pop("retries"))
        if "max_requests" in raw:
            raw.setdefault("max_requests_per_crawl", raw.pop("max_requests"))
        raw["schema_version"] = 2

    raw.setdefault("schema_version", CONFIG_SCHEMA_VERSION)
    return raw
