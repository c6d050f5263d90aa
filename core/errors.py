"""
Error taxonomy for the disruption pipeline.

None of these should escape a scheduler cycle; the cycle is the error boundary.
"""


class RelayError(Exception):
    """Base class for pipeline errors."""


class FetchError(RelayError):
    """Network, status or decode failure while reading the disruptions feed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PublishError(RelayError):
    """The push backend rejected or timed out a single topic publish."""

    def __init__(self, topic: str, message: str):
        super().__init__(f"publish to {topic} failed: {message}")
        self.topic = topic
