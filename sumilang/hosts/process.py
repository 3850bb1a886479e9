import os
import subprocess
import sys

from pydantic import ValidationError

from sumilang.deps import read_url
from sumilang.errors import HostError
from sumilang.hosts.base import EvaluationResult, ExecutionHost, HostRequest
from sumilang.log import debug_log

# Directory holding the sumilang package, so the worker can import it
_PACKAGE_PARENT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class ProcessHost(ExecutionHost):
    """Evaluates in a child Python process speaking JSON lines over pipes."""

    def __init__(self, python=None):
        self.python = python or sys.executable
        self.proc = None
        self.loaded = set()

    def setup(self):
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(p for p in [_PACKAGE_PARENT, env.get("PYTHONPATH")] if p)
        debug_log(f"Starting worker: {self.python} -m sumilang.hosts.worker")
        self.proc = subprocess.Popen(
            [self.python, "-m", "sumilang.hosts.worker"],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            env=env,
            text=True,
            bufsize=1,
        )
        self.loaded = set()
        return self

    def _send(self, request):
        if self.proc is None or self.proc.poll() is not None:
            raise HostError("Worker process is not running")
        try:
            self.proc.stdin.write(request.model_dump_json() + "\n")
            self.proc.stdin.flush()
            line = self.proc.stdout.readline()
        except (BrokenPipeError, OSError) as e:
            raise HostError(f"Lost connection to worker: {e}") from e
        if not line:
            raise HostError(f"Worker exited with code {self.proc.poll()}")
        try:
            return EvaluationResult.model_validate_json(line)
        except ValidationError as e:
            raise HostError(f"Malformed reply from worker: {line.strip()}") from e

    def evaluate(self, filename, line, source):
        return self._send(HostRequest(op="evaluate", filename=filename, line=line or 1, source=source))

    def load(self, provides, url):
        if set(provides) <= self.loaded:
            return
        result = self._send(HostRequest(op="load", provides=list(provides), url=url, source=read_url(url)))
        if not result.ok:
            raise HostError(f"Failed to load {', '.join(provides)}: {result.value}")
        self.loaded.update(provides)

    def tear_down(self):
        if self.proc is None:
            return
        try:
            if self.proc.poll() is None:
                self.proc.stdin.write(HostRequest(op="quit").model_dump_json() + "\n")
                self.proc.stdin.flush()
                self.proc.wait(timeout=5)
        except (OSError, subprocess.TimeoutExpired):
            self.proc.kill()
            self.proc.wait()
        finally:
            for stream in (self.proc.stdin, self.proc.stdout):
                if stream:
                    stream.close()
            self.proc = None
