"""
The evaluation engine shared by every host.

An ``Engine`` owns one globals dict with the runtime preamble installed and
the set of namespaces loaded into it. ``InProcessHost`` drives one directly;
the worker process drives one on behalf of ``ProcessHost`` and
``RemoteHost``.
"""
import traceback

from sumilang.hosts.base import EvaluationResult, Status
from sumilang.log import debug_log
from sumilang.runtime import CORE_NS, get_preamble


class Engine:
    def __init__(self):
        self.env = None
        self.loaded = set()

    def setup(self):
        self.env = {"__name__": "sumi.host"}
        exec(compile(get_preamble(), "<sumi runtime>", "exec"), self.env)
        self.loaded = {CORE_NS}
        return self

    def _classify(self, e):
        """ERROR for Sumi-level errors, EXCEPTION for anything else."""
        stacktrace = traceback.format_exc()
        if isinstance(e, self.env["SumiError"]):
            return EvaluationResult(status=Status.ERROR, value=f"Error: {e}", stacktrace=stacktrace)
        return EvaluationResult(
            status=Status.EXCEPTION,
            value=f"{type(e).__name__}: {e}",
            stacktrace=stacktrace,
        )

    def evaluate(self, filename, line, source):
        """Evaluate one emitted expression; never raises for program errors."""
        # Padding puts the code on its source line for tracebacks
        padded = "\n" * max((line or 1) - 1, 0) + source
        try:
            code = compile(padded, filename, "eval")
        except SyntaxError as e:
            return EvaluationResult(
                status=Status.ERROR,
                value=f"Error: generated code does not compile: {e.msg}",
                stacktrace=source,
            )
        try:
            value = eval(code, self.env)
        except Exception as e:
            return self._classify(e)
        if not isinstance(value, str):
            value = self.env["pr_str"](value)
        return EvaluationResult(status=Status.SUCCESS, value=value)

    def load(self, provides, source, filename="<sumi module>"):
        """Run a compiled namespace module unless everything it provides is loaded."""
        if set(provides) <= self.loaded:
            debug_log(f"Already loaded: {', '.join(provides)}")
            return EvaluationResult(status=Status.SUCCESS, value="nil")
        try:
            exec(compile(source, filename, "exec"), self.env)
        except Exception as e:
            return self._classify(e)
        self.loaded.update(provides)
        return EvaluationResult(status=Status.SUCCESS, value="nil")
