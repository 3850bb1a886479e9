import requests
from pydantic import ValidationError

from sumilang.deps import read_url
from sumilang.errors import HostError
from sumilang.hosts.base import EvaluationResult, ExecutionHost, HostRequest


class RemoteHost(ExecutionHost):
    """Evaluates on a worker started with ``sumi serve``, over HTTP."""

    def __init__(self, url="http://127.0.0.1:9630", timeout=None):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.session = None
        self.loaded = set()

    def _call(self, method, path, **kwargs):
        try:
            resp = self.session.request(method, f"{self.url}{path}", timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.Timeout as e:
            raise HostError(f"Worker at {self.url} timed out") from e
        except requests.exceptions.ConnectionError as e:
            raise HostError(f"Failed to connect to worker at {self.url}. Is `sumi serve` running?") from e
        except requests.exceptions.HTTPError as e:
            raise HostError(f"Worker error ({resp.status_code}): {resp.text}") from e
        except ValueError as e:
            raise HostError(f"Malformed reply from worker at {self.url}") from e

    def setup(self):
        self.session = requests.Session()
        self.loaded = set()
        self._call("GET", "/ping")
        return self

    def _result(self, data):
        try:
            return EvaluationResult.model_validate(data)
        except ValidationError as e:
            raise HostError(f"Malformed reply from worker at {self.url}") from e

    def evaluate(self, filename, line, source):
        request = HostRequest(op="evaluate", filename=filename, line=line or 1, source=source)
        return self._result(self._call("POST", "/evaluate", json=request.model_dump(mode="json")))

    def load(self, provides, url):
        if set(provides) <= self.loaded:
            return
        request = HostRequest(op="load", provides=list(provides), url=url, source=read_url(url))
        result = self._result(self._call("POST", "/load", json=request.model_dump(mode="json")))
        if not result.ok:
            raise HostError(f"Failed to load {', '.join(provides)}: {result.value}")
        self.loaded.update(provides)

    def tear_down(self):
        if self.session is not None:
            self.session.close()
            self.session = None
