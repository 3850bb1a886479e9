# Sumi Execution Hosts
"""
Backends that run emitted code for a REPL session.

All hosts implement ``ExecutionHost``; ``get_host`` picks one by name.
"""

from .base import EvaluationResult, ExecutionHost, HostRequest, Status
from .inprocess import InProcessHost
from .process import ProcessHost
from .remote import RemoteHost

HOSTS = ("inprocess", "process", "remote")


def get_host(kind="inprocess", **kwargs):
    """Factory function to get the execution host called ``kind``."""
    if kind == "process":
        return ProcessHost(python=kwargs.get("python"))
    if kind == "remote":
        return RemoteHost(url=kwargs.get("url") or "http://127.0.0.1:9630", timeout=kwargs.get("timeout"))
    if kind == "inprocess":
        return InProcessHost()
    raise ValueError(f"Unknown host: {kind}. Choose one of: {', '.join(HOSTS)}")
