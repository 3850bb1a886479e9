import argparse
import os
import subprocess
import sys

from sumilang.compiler import compile_source
from sumilang.config import load_config
from sumilang.errors import SumiConfigError
from sumilang.hosts import HOSTS, get_host
from sumilang.log import log, set_verbose
from sumilang.repl import repl

BUILD_DIR = "__sumi_build__"


def options_from_args(args):
    try:
        return load_config(
            getattr(args, "config", None),
            verbose=args.verbose or None,
            host=getattr(args, "host", None),
            host_url=getattr(args, "url", None),
            analyze_path=getattr(args, "analyze_path", None),
            warn_on_undeclared=getattr(args, "warn_on_undeclared", None) or None,
        )
    except SumiConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def build(filepath, options, run_main=False):
    set_verbose(options.verbose)

    if not os.path.exists(filepath):
        print(f"Error: File '{filepath}' not found.", file=sys.stderr)
        sys.exit(1)

    try:
        python_code = compile_source(filepath, options, run_main=run_main)
    except Exception as e:
        print(f"Error: Compilation Failed:\n{e}", file=sys.stderr)
        sys.exit(1)

    if not os.path.exists(BUILD_DIR):
        os.makedirs(BUILD_DIR)

    target_file = os.path.join(BUILD_DIR, "main.py")
    with open(target_file, 'w') as f:
        f.write(python_code)

    return target_file


def cmd_repl(args):
    options = options_from_args(args)
    host = get_host(options.host, python=options.python, url=options.host_url, timeout=options.timeout)
    repl(host, options)


def cmd_run(args):
    options = options_from_args(args)
    target_file = build(args.filename, options, run_main=True)
    sys.exit(subprocess.call([sys.executable, target_file] + args.args))


def cmd_compile(args):
    options = options_from_args(args)
    target_file = build(args.filename, options)
    if args.output:
        os.replace(target_file, args.output)
        target_file = args.output
    log(f"Compiled {args.filename} -> {target_file}")


def cmd_serve(args):
    from sumilang.hosts.worker import serve_http
    from sumilang.hosts.engine import Engine

    set_verbose(args.verbose)
    serve_http(Engine().setup(), args.bind, args.port)


def cmd_init(args):
    log("Initializing project...")
    os.makedirs(os.path.join("src", "hello"), exist_ok=True)
    with open(os.path.join("src", "hello", "core.sumi"), "w") as f:
        f.write('(ns hello.core\n  (:require [sumi.seq :as seq]))\n\n'
                '(defn -main [& args]\n  (println "Hello Sumi, sum:" (seq/sum [1 2 3])))\n')
    with open("sumi.json", "w") as f:
        f.write('{\n  "source_paths": ["src", "."],\n  "output_dir": ".repl"\n}\n')
    log("Created src/hello/core.sumi and sumi.json")


def main():
    parser = argparse.ArgumentParser(description="Sumi CLI")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    parser.add_argument("--config", help="Config file (default: sumi.json, then ~/.sumi/sumi.json)")
    subparsers = parser.add_subparsers(dest="command")

    repl_cmd = subparsers.add_parser("repl", help="Start an interactive session")
    repl_cmd.add_argument("--host", choices=HOSTS, help="Execution host (default: inprocess)")
    repl_cmd.add_argument("--url", help="Worker URL for the remote host")
    repl_cmd.add_argument("--analyze-path", help="Analyze the .sumi files under this directory first")
    repl_cmd.add_argument("--warn-on-undeclared", action="store_true", help="Warn about undeclared vars")

    run = subparsers.add_parser("run", help="Run file")
    run.add_argument("filename")
    run.add_argument("args", nargs=argparse.REMAINDER, help="Arguments passed to -main")

    compile_cmd = subparsers.add_parser("compile", help="Compile file to a standalone Python script")
    compile_cmd.add_argument("filename")
    compile_cmd.add_argument("-o", "--output", help=f"Output file (default: {BUILD_DIR}/main.py)")

    serve = subparsers.add_parser("serve", help="Serve an evaluation worker over HTTP")
    serve.add_argument("--bind", default="127.0.0.1", help="Interface to listen on")
    serve.add_argument("--port", type=int, default=9630, help="Port to listen on")

    subparsers.add_parser("init", help="Init project")

    args = parser.parse_args()

    if args.command == "repl": cmd_repl(args)
    elif args.command == "run": cmd_run(args)
    elif args.command == "compile": cmd_compile(args)
    elif args.command == "serve": cmd_serve(args)
    elif args.command == "init": cmd_init(args)
    else: parser.print_help()

if __name__ == "__main__":
    main()
