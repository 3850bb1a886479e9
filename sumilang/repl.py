"""
Sumi REPL: the interactive session engine.

Reads one form at a time, routes meta-commands (``in-ns``, ``load-file``,
``load-namespace``) around normal evaluation, and sends everything else
through analyze -> emit -> host. No failing form ends the session: read
errors, program errors and faults of the pipeline itself are reported and
the prompt comes back.
"""
import sys
import traceback
from collections import deque

from sumilang.analyzer import DEFAULT_NS, Analyzer, NamespaceRecord, WarningFlags
from sumilang.compiler import analyze_source
from sumilang.config import ReplOptions
from sumilang.deps import add_dependencies, find_resource, seed_descriptor
from sumilang.emitter import emit_str
from sumilang.errors import ResourceNotFound, SumiCompileError, SumiReadError
from sumilang.forms import EOF, Keyword, ListForm, Symbol, VectorForm, form_line, is_ns_form, pr_form, unquote
from sumilang.hosts.base import Status
from sumilang.log import set_verbose
from sumilang.reader import FormReader, read_string
from sumilang.result import Err, Ok
from sumilang.runtime import CORE_NS

LANGUAGE_TAG = "Sumi"
QUIT = Keyword("sumi", "quit")
REPL_FILENAME = "<sumi repl>"
HISTORY_SYMBOLS = (Symbol("*1"), Symbol("*2"), Symbol("*3"))


class SessionContext:
    """Everything one REPL session mutates: current namespace, history and the host."""

    def __init__(self, host, options=None, analyzer=None):
        self.host = host
        self.options = options or ReplOptions()
        self.analyzer = analyzer or Analyzer(WarningFlags(undeclared=self.options.warn_on_undeclared))
        self.current_ns = DEFAULT_NS
        self.verbose = self.options.verbose
        self.history = deque(maxlen=3)  # newest first

    @property
    def warnings(self):
        return self.analyzer.warnings

    def env(self):
        return self.analyzer.empty_env(self.current_ns)

    def prompt(self):
        return f"{LANGUAGE_TAG}:{self.current_ns}> "


def _ns_name(ns):
    ns = unquote(ns)
    if isinstance(ns, Symbol):
        return str(ns)
    if isinstance(ns, str):
        return ns
    raise SumiCompileError(f"Expected a namespace name, got {pr_form(ns)}")


# ==========================================
# DEPENDENCY LOADING
# ==========================================

def load_namespace(host, session, ns):
    """Load a namespace and all of its dependencies into the host.

    The host is responsible for running each namespace only once; every call
    asks it to load the whole closure again.
    """
    name = _ns_name(ns)
    deps = add_dependencies(session.analyzer, session.options, seed_descriptor([name]))
    for desc in deps:
        if desc.provides == [CORE_NS] or desc.type == "seed":
            continue
        host.load(desc.provides, desc.url)


def load_dependencies(host, session, namespaces):
    for ns in namespaces:
        load_namespace(host, session, ns)


# ==========================================
# EVALUATION
# ==========================================

def display_error(ret, before=None):
    """Show a failed evaluation on stderr, after ``before`` when given."""
    if before is not None:
        before()
    print(ret.value, file=sys.stderr)
    if ret.stacktrace:
        print(ret.stacktrace, file=sys.stderr)


def _identity(form):
    return form


def evaluate_form(host, session, filename, form, wrap=_identity):
    """
    Evaluate a Sumi form in the host.

    Returns the printed return value as a string (which may or may not be
    readable), or None when evaluation failed. Never raises for a failing
    form: every fault is reported here.
    """
    try:
        env = session.env()
        ast = session.analyzer.analyze(env, form)
        js = emit_str(ast)
        with session.warnings.suppressed():
            wrap_js = emit_str(session.analyzer.analyze(env, wrap(form)))

        if ast["op"] == "ns":
            session.current_ns = ast["name"]
            requires = []
            for ns in list(ast["requires"].values()) + list(ast["uses"].values()):
                if ns not in requires:
                    requires.append(ns)
            load_dependencies(host, session, requires)

        if session.verbose:
            print(js)

        ret = host.evaluate(filename, form_line(form, 1), wrap_js)
        if ret.status == Status.SUCCESS:
            return ret.value
        if ret.status == Status.ERROR:
            # ERROR from a namespace declaration is not shown
            if not is_ns_form(form):
                display_error(ret)
        else:
            display_error(ret,
                          lambda: print("Error evaluating:", pr_form(form), ":as", js, file=sys.stderr))
        return None
    except Exception:
        traceback.print_exc()
        return None


def wrap_fn(form):
    """The wrapper that records a result in ``*1 *2 *3`` and prints it.

    Namespace declarations are left alone, and reading a history slot only
    prints it, so neither moves the history.
    """
    pr_str = Symbol(CORE_NS, "pr-str")
    if is_ns_form(form):
        return _identity
    if any(form == s for s in HISTORY_SYMBOLS):
        return lambda x: ListForm([pr_str, x])

    ret = Symbol("ret__repl")
    star1, star2, star3 = (Symbol(CORE_NS, s.name) for s in HISTORY_SYMBOLS)

    def wrap(x):
        return ListForm([pr_str, ListForm([
            Symbol("let"), VectorForm([ret, x]),
            ListForm([
                Symbol("do"),
                ListForm([Symbol("set!"), star3, star2]),
                ListForm([Symbol("set!"), star2, star1]),
                ListForm([Symbol("set!"), star1, ret]),
                ret,
            ]),
        ])])
    return wrap


def _is_history_exempt(form):
    return is_ns_form(form) or any(form == s for s in HISTORY_SYMBOLS)


def eval_and_print(host, session, form):
    ret = evaluate_form(host, session, REPL_FILENAME, form, wrap_fn(form))
    if ret is not None and not _is_history_exempt(form):
        session.history.appendleft(ret)
    if ret is None:
        print("nil")
        return
    try:
        print(pr_form(read_string(ret)))
    except SumiReadError:
        print(ret)


def read_next_form(reader):
    """Read the next form: ``Ok(form)`` (``EOF`` at end of input) or ``Err(message)``."""
    try:
        return Ok(reader.read())
    except SumiReadError as e:
        return Err(str(e))


# ==========================================
# LOADING FILES
# ==========================================

def load_stream(host, session, filename, stream):
    """Evaluate every form of ``stream`` in order."""
    reader = FormReader(stream)
    while True:
        form = reader.read()
        if form is EOF:
            break
        evaluate_form(host, session, filename, form)


def load_file(host, session, f):
    """Evaluate a source file, starting in ``sumi.user``.

    Raises:
        ResourceNotFound: If ``f`` is neither an existing path nor a file on the source paths
    """
    if not isinstance(f, str):
        raise ResourceNotFound(f"load-file expects a path string, got {pr_form(f)}")
    path = find_resource(f, session.options.source_paths)
    saved = session.current_ns
    session.current_ns = DEFAULT_NS
    try:
        with open(path, 'r') as stream:
            load_stream(host, session, f, stream)
    finally:
        session.current_ns = saved


# ==========================================
# SPECIAL FORMS
# ==========================================

def _in_ns(host, session, quoted_ns):
    if not isinstance(unquote(quoted_ns), Symbol):
        raise SumiCompileError(f"in-ns expects a quoted symbol, got {pr_form(quoted_ns)}")
    name = _ns_name(quoted_ns)
    if session.analyzer.get_namespace(name) is None:
        session.analyzer.set_namespace(name, NamespaceRecord(name=name))
    session.current_ns = name


def _load_file(host, session, f):
    load_file(host, session, f)


def _load_namespace(host, session, ns):
    load_namespace(host, session, ns)


def default_special_fns():
    return {
        Symbol("in-ns"): _in_ns,
        Symbol("load-file"): _load_file,
        Symbol(CORE_NS, "load-file"): _load_file,
        Symbol("load-namespace"): _load_namespace,
    }


def merge_special_fns(overrides=None):
    """Defaults with ``overrides`` layered on top; string keys are read as symbols."""
    merged = default_special_fns()
    for key, fn in (overrides or {}).items():
        merged[Symbol(key) if isinstance(key, str) else key] = fn
    return merged


def is_special_form(form, special_fns):
    return (isinstance(form, ListForm) and len(form) > 0
            and isinstance(form[0], Symbol) and form[0] in special_fns)


# ==========================================
# THE LOOP
# ==========================================

def repl(host, options=None, input_stream=None, analyzer=None):
    """
    Run an interactive session against ``host`` until ``:sumi/quit`` or end of input.

    Args:
        host: The ExecutionHost to evaluate in
        options: ReplOptions (analyze_path, verbose, warn_on_undeclared, special_fns...)
        input_stream: Where forms are read from (stdin by default)
        analyzer: Analyzer to share with the caller (a fresh one by default)

    Returns:
        The SessionContext of the finished session
    """
    options = options or ReplOptions()
    set_verbose(options.verbose)
    print(f"Type: {pr_form(QUIT)} to quit")
    session = SessionContext(host, options=options, analyzer=analyzer)
    special_fns = merge_special_fns(options.special_fns)
    reader = FormReader(input_stream or sys.stdin)

    try:
        host.setup()
        analyze_source(session.analyzer, options.analyze_path)
        while True:
            print(session.prompt(), end="", flush=True)
            try:
                result = read_next_form(reader)
                if result.is_err():
                    print(result.error)
                    continue
                form = result.unwrap()
                if form is EOF or form == QUIT:
                    break
                if is_special_form(form, special_fns):
                    try:
                        special_fns[form[0]](host, session, *form[1:])
                    except Exception as e:
                        print(e, file=sys.stderr)
                    print()
                    continue
                eval_and_print(host, session, form)
            except KeyboardInterrupt:
                reader.reset()
                print("\nInterrupted")
    finally:
        host.tear_down()
    return session
