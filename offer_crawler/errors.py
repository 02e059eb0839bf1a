"""Exception types shared by the pipeline, extractors and crawl driver.

Retryable failures derive from ``StageError``; the driver re-queues those until
the retry budget runs out. Anything deriving from ``UnroutableError`` goes to
the failure recorder on the first attempt.
"""
from __future__ import annotations


class CrawlerError(Exception):
    """Base class for every error raised by offer_crawler."""


class InputValidationError(CrawlerError, ValueError):
    """Process input or configuration is malformed. Fatal for the whole run."""


class StageError(CrawlerError):
    """A single work item failed inside a stage. Retryable."""


class ExtractionError(StageError):
    """Required DOM structure is missing or has an unexpected shape."""

    def __init__(self, message: str, *, url: str | None = None, selector: str | None = None) -> None:
        self.url = url
        self.selector = selector
        super().__init__(message)


class BlockedPageError(ExtractionError):
    """The site served a bot wall (captcha) instead of the requested page."""


class RenderError(StageError):
    """Navigation failed or the server answered with an error status."""

    def __init__(self, message: str, *, url: str, status: int | None = None) -> None:
        self.url = url
        self.status = status
        super().__init__(message)


class PayloadError(StageError):
    """A payload lacks keys its state requires, or a merge would overwrite a key."""


class UnroutableError(CrawlerError):
    """A work item cannot be dispatched to any stage. Never retried."""


class UnknownStateError(UnroutableError, ValueError):
    """A state label does not name any pipeline state."""


class UnroutableWorkItemError(UnroutableError):
    """The controller has no handler for the work item's state."""
