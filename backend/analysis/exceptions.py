"""Errors raised by the analysis worker pool and evaluation handler."""


class AnalysisError(Exception):
    """Base class for analysis errors."""


class BadRequestError(AnalysisError):
    """The evaluation request is missing input or carries invalid input.

    Raised before any worker is borrowed.
    """


class EngineError(AnalysisError):
    """A worker exchange failed (process crash, protocol error, no move returned)."""


class WorkerStartupError(EngineError):
    """A worker could not reach the ready state during pool startup."""

    def __init__(self, worker_id: str, reason: str) -> None:
        self.worker_id = worker_id
        self.reason = reason
        super().__init__(f"worker {worker_id} failed to start: {reason}")


class PoolNotRunningError(AnalysisError):
    """acquire() was called before start() finished or after shutdown()."""
