"""
Out-of-process evaluation worker.

Run as ``python -m sumilang.hosts.worker`` it serves JSON-lines requests on
stdin/stdout for ``ProcessHost``; with ``--port`` (or ``sumi serve``) it serves
the same requests over HTTP for ``RemoteHost``. Output printed by user code
goes to stderr so stdout stays a clean protocol channel.
"""
import argparse
import asyncio
import sys

from aiohttp import web
from pydantic import ValidationError

from sumilang.hosts.base import EvaluationResult, HostRequest, Status
from sumilang.hosts.engine import Engine
from sumilang.log import log


def handle_request(engine, request):
    """Run one request against ``engine`` and return its result."""
    if request.op == "evaluate":
        return engine.evaluate(request.filename, request.line, request.source)
    if request.op == "load":
        return engine.load(request.provides, request.source, filename=request.url or request.filename)
    if request.op == "ping":
        return EvaluationResult(status=Status.SUCCESS, value="pong")
    return EvaluationResult(status=Status.EXCEPTION, value=f"Unknown request: {request.op}")


def serve_stdio(engine, stdin=None, stdout=None):
    """Answer one JSON request per line until EOF or a ``quit`` request."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    saved = sys.stdout
    sys.stdout = sys.stderr
    try:
        for line in stdin:
            if not line.strip():
                continue
            try:
                request = HostRequest.model_validate_json(line)
            except ValidationError as e:
                result = EvaluationResult(status=Status.EXCEPTION, value=f"Malformed request: {e}")
            else:
                if request.op == "quit":
                    break
                result = handle_request(engine, request)
            stdout.write(result.model_dump_json() + "\n")
            stdout.flush()
    finally:
        sys.stdout = saved


def make_app(engine):
    """The ``aiohttp`` application serving ``/ping``, ``/evaluate`` and ``/load``."""

    async def handle_ping(request):
        return web.json_response({"status": "ok"})

    def handler_for(op):
        async def handle(request):
            try:
                body = await request.json()
                host_request = HostRequest.model_validate({**body, "op": op})
            except (ValueError, TypeError, ValidationError) as e:
                return web.json_response({"error": f"Malformed request: {e}"}, status=400)
            saved = sys.stdout
            sys.stdout = sys.stderr
            try:
                result = handle_request(engine, host_request)
            finally:
                sys.stdout = saved
            return web.json_response(text=result.model_dump_json())
        return handle

    app = web.Application()
    app.router.add_get("/ping", handle_ping)
    app.router.add_post("/evaluate", handler_for("evaluate"))
    app.router.add_post("/load", handler_for("load"))
    return app


async def start_http(engine, host="127.0.0.1", port=9630):
    """Start serving ``engine`` and return the ``AppRunner`` (``cleanup()`` stops it)."""
    runner = web.AppRunner(make_app(engine))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    return runner


async def _serve_forever(engine, host, port):
    runner = await start_http(engine, host, port)
    bound_host, bound_port = runner.addresses[0][:2]
    log(f"Sumi worker listening on http://{bound_host}:{bound_port}")
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


def serve_http(engine, host="127.0.0.1", port=9630):
    """Serve ``/evaluate``, ``/load`` and ``/ping`` until interrupted."""
    try:
        asyncio.run(_serve_forever(engine, host, port))
    except KeyboardInterrupt:
        pass


def main(argv=None):
    parser = argparse.ArgumentParser(description="Sumi evaluation worker")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind in HTTP mode")
    parser.add_argument("--port", type=int, help="Serve HTTP on this port instead of stdin/stdout")
    args = parser.parse_args(argv)

    engine = Engine().setup()
    if args.port is not None:
        serve_http(engine, args.host, args.port)
    else:
        serve_stdio(engine)


if __name__ == "__main__":
    main()
