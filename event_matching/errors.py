"""Error taxonomy for the matching engine.

Best-effort failures (history writes, behavior tracking, background profile
updates) are not exceptions at the API surface; they are reported through
event_matching.outcome.Outcome and a log line.
"""


class MatchingError(Exception):
    """Base class for errors surfaced by the matching engine."""


class NotFoundError(MatchingError):
    """Unknown user or event. Fatal to the calling operation."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ValidationError(MatchingError):
    """Malformed request, rejected before any state change."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Validation failed: " + "; ".join(problems))
