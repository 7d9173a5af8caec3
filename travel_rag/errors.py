"""
Retrieval error taxonomy

Only ExhaustedFallbackError is allowed to escape the retrieval orchestrator;
everything else is recovered from (stale cache, fallback source) inside it.
"""

from typing import Optional


class RetrievalError(Exception):
    """Base class for retrieval-layer failures"""


class OperationTimeoutError(RetrievalError, TimeoutError):
    """An awaited operation exceeded its deadline"""

    def __init__(self, label: str, timeout_ms: float):
        self.label = label
        self.timeout_ms = timeout_ms
        super().__init__(f"{label} timeout after {timeout_ms:g}ms")


class DependencyError(RetrievalError):
    """A collaborator (embedding, vector index, external API) failed hard"""

    def __init__(self, dependency: str, message: str):
        self.dependency = dependency
        super().__init__(f"{dependency}: {message}")


class CircuitOpenError(DependencyError):
    """The call was skipped because the dependency's circuit is open"""

    def __init__(self, dependency: str, retry_in_ms: Optional[float] = None):
        self.retry_in_ms = retry_in_ms
        detail = "circuit open"
        if retry_in_ms is not None:
            detail += f", retry in {retry_in_ms:.0f}ms"
        super().__init__(dependency, detail)


class CacheUnavailableError(RetrievalError):
    """The durable cache tier could not be reached"""


class ExhaustedFallbackError(RetrievalError):
    """No cache tier or data source could produce a result"""

    def __init__(self, query: str, cause: Optional[BaseException] = None):
        self.query = query
        reason = f": {cause}" if cause else ""
        super().__init__(f"No data source available for '{query}'{reason}")
