from sumilang.deps import read_url
from sumilang.errors import HostError
from sumilang.hosts.base import ExecutionHost
from sumilang.hosts.engine import Engine


class InProcessHost(ExecutionHost):
    """Evaluates in the REPL's own interpreter, in an isolated globals dict."""

    def __init__(self):
        self.engine = None

    def setup(self):
        self.engine = Engine().setup()
        return self

    def evaluate(self, filename, line, source):
        if self.engine is None:
            raise HostError("Host has not been set up")
        return self.engine.evaluate(filename, line, source)

    def load(self, provides, url):
        if self.engine is None:
            raise HostError("Host has not been set up")
        if set(provides) <= self.engine.loaded:
            return
        result = self.engine.load(provides, read_url(url), filename=url)
        if not result.ok:
            raise HostError(f"Failed to load {', '.join(provides)}: {result.value}")

    def tear_down(self):
        self.engine = None
