"""Scan pipeline exceptions."""


class PipelineError(Exception):
    """Base class for stage failures that abort a scan."""


class SourceUnavailableError(PipelineError):
    """The repository could not be resolved or its root could not be read."""


class SummarizationError(PipelineError):
    """The summary response could not be parsed into the expected shape."""


class AnalysisResponseError(Exception):
    """A per-file analysis response was malformed.

    Only ever raised inside the aggregator's unit boundary, where it is
    recorded as a unit failure instead of aborting the scan.
    """


class RateLimitError(Exception):
    """The source asked for a pause before the next call.

    Raised instead of sleeping so callers can wait outside any per-call
    timeout and then retry.
    """

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after}s")


def describe_error(exc: BaseException) -> str:
    """Human-readable message for *exc*, falling back to its class name."""
    return str(exc) or type(exc).__name__
