# ==========================================
# EXECUTION HOSTS: CONTRACT & WIRE TYPES
# ==========================================
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Status(str, Enum):
    """How an evaluation ended."""
    SUCCESS = "success"
    ERROR = "error"          # a Sumi-level error (throw, unbound var, bad provide...)
    EXCEPTION = "exception"  # any other fault escaping user code


class EvaluationResult(BaseModel):
    """Outcome of one ``evaluate`` or ``load`` call."""
    status: Status
    value: str = ""
    stacktrace: Optional[str] = None

    @property
    def ok(self):
        return self.status == Status.SUCCESS


class HostRequest(BaseModel):
    """A request sent to an out-of-process worker."""
    op: str  # "evaluate" | "load" | "ping" | "quit"
    filename: str = "<sumi repl>"
    line: int = 1
    source: str = ""
    provides: List[str] = Field(default_factory=list)
    url: Optional[str] = None


class ExecutionHost(ABC):
    """A swappable backend that runs emitted Python source.

    ``setup`` is called once before anything is evaluated and ``tear_down``
    once at the end of the session. ``evaluate`` reports program errors as a
    status; only hard faults of the backend itself (a dead worker, a refused
    connection) raise, as ``HostError``.
    """

    @abstractmethod
    def setup(self):
        pass

    @abstractmethod
    def evaluate(self, filename: str, line: int, source: str) -> EvaluationResult:
        pass

    @abstractmethod
    def load(self, provides: List[str], url: str) -> None:
        """Make the module at ``url`` available; a no-op when ``provides`` is already loaded."""
        pass

    @abstractmethod
    def tear_down(self):
        pass
