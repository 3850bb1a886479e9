"""
Unit tests for sumilang/repl.py - the interactive session engine.
"""
import io
import os
import sys
from collections import deque

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sumilang.config import ReplOptions
from sumilang.errors import HostError
from sumilang.forms import Symbol
from sumilang.hosts import InProcessHost, ProcessHost
from sumilang.hosts.base import EvaluationResult, ExecutionHost, Status
from sumilang.reader import read_string
from sumilang.repl import (
    QUIT,
    SessionContext,
    eval_and_print,
    evaluate_form,
    is_special_form,
    load_namespace,
    merge_special_fns,
    read_next_form,
    repl,
    wrap_fn,
)


class RecordingHost(ExecutionHost):
    """Host double that records every call and replays canned results."""

    def __init__(self, results=None, fail_with=None):
        self.results = list(results or [])
        self.fail_with = fail_with
        self.evaluated = []
        self.loads = []
        self.setups = 0
        self.teardowns = 0

    def setup(self):
        self.setups += 1
        return self

    def evaluate(self, filename, line, source):
        self.evaluated.append((filename, line, source))
        if self.fail_with is not None:
            raise self.fail_with
        if self.results:
            return self.results.pop(0)
        return EvaluationResult(status=Status.SUCCESS, value="nil")

    def load(self, provides, url):
        self.loads.append((list(provides), url))

    def tear_down(self):
        self.teardowns += 1


@pytest.fixture
def project(tmp_path):
    """A source tree where my.app requires my.util."""
    src = tmp_path / "src"
    (src / "my").mkdir(parents=True)
    (src / "my" / "util.sumi").write_text("(ns my.util)\n(defn double [x] (* 2 x))\n")
    (src / "my" / "app.sumi").write_text("(ns my.app (:require [my.util :as u]))\n(def answer (u/double 21))\n")
    return tmp_path


@pytest.fixture
def options(project):
    return ReplOptions(source_paths=[str(project / "src")], output_dir=str(project / "out"))


@pytest.fixture
def host():
    h = InProcessHost()
    h.setup()
    yield h
    h.tear_down()


def run_repl(host, text, options=None):
    return repl(host, options or ReplOptions(), input_stream=io.StringIO(text))


class TestEvaluateForm:
    """Tests for the evaluation pipeline."""

    @pytest.mark.parametrize("status", [Status.SUCCESS, Status.ERROR, Status.EXCEPTION])
    def test_never_raises_for_any_status(self, status, capsys):
        """Whatever the host reports, evaluate_form returns a string or None."""
        host = RecordingHost([EvaluationResult(status=status, value="v", stacktrace="trace")])
        session = SessionContext(host)
        ret = evaluate_form(host, session, "<test>", read_string("(+ 1 2)"))
        assert ret == ("v" if status == Status.SUCCESS else None)

    def test_host_fault_is_caught(self, capsys):
        """A hard host fault is printed with its traceback and yields None."""
        host = RecordingHost(fail_with=HostError("worker died"))
        session = SessionContext(host)
        assert evaluate_form(host, session, "<test>", read_string("(+ 1 2)")) is None
        err = capsys.readouterr().err
        assert "Traceback" in err
        assert "worker died" in err

    def test_analysis_fault_is_caught(self, capsys):
        """A malformed form never reaches the host."""
        host = RecordingHost()
        session = SessionContext(host)
        assert evaluate_form(host, session, "<test>", read_string("(if)")) is None
        assert host.evaluated == []
        assert "Too few arguments to if" in capsys.readouterr().err

    def test_sends_wrapped_source_with_line(self):
        """The host receives the wrapped code and the form's line."""
        host = RecordingHost()
        session = SessionContext(host)
        form = read_string("\n\n(+ 1 2)")
        evaluate_form(host, session, "<test>", form, wrap_fn(form))
        filename, line, source = host.evaluated[0]
        assert (filename, line) == ("<test>", 3)
        assert source.startswith("(sumi_ns('sumi.core').pr_str)(")
        assert "sumi_set('sumi.core', '*1'" in source

    def test_error_is_displayed(self, capsys):
        """ERROR results show their value and stacktrace."""
        host = RecordingHost([EvaluationResult(status=Status.ERROR, value="Error: bad", stacktrace="st")])
        evaluate_form(host, SessionContext(host), "<test>", read_string("(f)"))
        err = capsys.readouterr().err
        assert "Error: bad" in err
        assert "st" in err
        assert "Error evaluating" not in err

    def test_exception_names_the_form(self, capsys):
        """EXCEPTION results name the offending form and its code."""
        host = RecordingHost([EvaluationResult(status=Status.EXCEPTION, value="ZeroDivisionError: x")])
        evaluate_form(host, SessionContext(host), "<test>", read_string("(boom 1)"))
        err = capsys.readouterr().err
        assert "Error evaluating: (boom 1) :as" in err
        assert "ZeroDivisionError: x" in err

    def test_ns_error_is_suppressed(self, capsys):
        """ERROR for a namespace declaration shows nothing."""
        host = RecordingHost([EvaluationResult(status=Status.ERROR, value="Error: already declared")])
        assert evaluate_form(host, SessionContext(host), "<test>", read_string("(ns my.ns)")) is None
        captured = capsys.readouterr()
        assert captured.err == ""
        assert captured.out == ""

    def test_ns_exception_is_shown(self, capsys):
        """EXCEPTION for a namespace declaration is still displayed with the marker."""
        host = RecordingHost([EvaluationResult(status=Status.EXCEPTION, value="TypeError: boom")])
        assert evaluate_form(host, SessionContext(host), "<test>", read_string("(ns my.ns)")) is None
        err = capsys.readouterr().err
        assert "Error evaluating: (ns my.ns)" in err
        assert "TypeError: boom" in err

    def test_ns_switches_and_loads_dependencies(self, options):
        """An ns form switches namespace and loads what it requires first."""
        host = RecordingHost()
        session = SessionContext(host, options=options)
        evaluate_form(host, session, "<test>", read_string("(ns my.main (:require [my.app :as a]))"))
        assert session.current_ns == "my.main"
        assert [p for p, _ in host.loads] == [["my.util"], ["my.app"]]

    def test_verbose_prints_code(self, capsys):
        """Verbose sessions print the emitted code."""
        host = RecordingHost()
        session = SessionContext(host, options=ReplOptions(verbose=True))
        evaluate_form(host, session, "<test>", read_string("(+ 1 2)"))
        assert "(sumi_ns('sumi.core')._PLUS_)(1, 2)" in capsys.readouterr().out


class TestLoadNamespace:
    """Tests for dependency loading."""

    def test_loads_closure_in_order(self, options):
        """Dependencies load before dependents; core and the seed are skipped."""
        host = RecordingHost()
        load_namespace(host, SessionContext(host, options=options), Symbol("my.app"))
        assert [p for p, _ in host.loads] == [["my.util"], ["my.app"]]
        assert all(url.startswith("file://") for _, url in host.loads)

    def test_accepts_quoted_symbol(self, options):
        """(quote ns) is unwrapped."""
        host = RecordingHost()
        load_namespace(host, SessionContext(host, options=options), read_string("'my.util"))
        assert [p for p, _ in host.loads] == [["my.util"]]

    def test_twice_loads_twice(self, options):
        """Repeated requests reach the host again; deduplication is the host's job."""
        host = RecordingHost()
        session = SessionContext(host, options=options)
        load_namespace(host, session, Symbol("my.app"))
        load_namespace(host, session, Symbol("my.app"))
        assert [p for p, _ in host.loads] == [["my.util"], ["my.app"], ["my.util"], ["my.app"]]


class TestHistory:
    """Tests for *1 *2 *3."""

    def test_rotation_law(self, host, capsys):
        """Each evaluation pushes its value; the oldest falls off after three."""
        session = SessionContext(host)
        eval_and_print(host, session, read_string(":v1"))
        assert session.history == deque([":v1"])
        eval_and_print(host, session, read_string(":v2"))
        assert session.history == deque([":v2", ":v1"])
        eval_and_print(host, session, read_string(":v3"))
        assert session.history == deque([":v3", ":v2", ":v1"])
        eval_and_print(host, session, read_string(":v4"))
        assert session.history == deque([":v4", ":v3", ":v2"])

    def test_backend_slots_follow(self, host, capsys):
        """The runtime vars *1 *2 *3 hold the same values."""
        session = SessionContext(host)
        for v in ("1", "2", "3"):
            eval_and_print(host, session, read_string(v))
        for sym, expected in (("*1", "3"), ("*2", "2"), ("*3", "1")):
            form = read_string(sym)
            assert evaluate_form(host, session, "<test>", form, wrap_fn(form)) == expected

    def test_reading_history_does_not_rotate(self, host, capsys):
        """Evaluating *1 leaves the history alone."""
        session = SessionContext(host)
        eval_and_print(host, session, read_string("7"))
        eval_and_print(host, session, read_string("*1"))
        eval_and_print(host, session, read_string("*2"))
        assert session.history == deque(["7"])
        form = read_string("*1")
        assert evaluate_form(host, session, "<test>", form, wrap_fn(form)) == "7"

    def test_ns_forms_do_not_rotate(self, host, capsys):
        """Namespace declarations are not recorded."""
        session = SessionContext(host)
        eval_and_print(host, session, read_string("1"))
        eval_and_print(host, session, read_string("(ns hist.test)"))
        assert session.history == deque(["1"])

    def test_failures_do_not_rotate(self, host, capsys):
        """A failed evaluation records nothing."""
        session = SessionContext(host)
        eval_and_print(host, session, read_string("1"))
        eval_and_print(host, session, read_string('(throw "no")'))
        assert session.history == deque(["1"])

    def test_ns_wrap_is_identity(self):
        """ns forms are not wrapped at all."""
        form = read_string("(ns a.b)")
        assert wrap_fn(form)(form) is form


class TestEvalAndPrint:
    """Tests for result display."""

    def test_prints_readable_value(self, capsys):
        """Readable results are printed as literals."""
        host = RecordingHost([EvaluationResult(status=Status.SUCCESS, value='{:a "x"}')])
        eval_and_print(host, SessionContext(host), read_string("m"))
        assert capsys.readouterr().out == '{:a "x"}\n'

    def test_prints_raw_unreadable_value(self, capsys):
        """Unreadable results are printed as they came."""
        host = RecordingHost([EvaluationResult(status=Status.SUCCESS, value="#<fn inc>")])
        eval_and_print(host, SessionContext(host), read_string("inc"))
        assert capsys.readouterr().out == "#<fn inc>\n"

    def test_prints_nil_without_value(self, capsys):
        """A failed evaluation prints nil."""
        host = RecordingHost([EvaluationResult(status=Status.ERROR, value="Error: x")])
        eval_and_print(host, SessionContext(host), read_string("(f)"))
        assert capsys.readouterr().out == "nil\n"

    def test_namespace_redeclared_shows_no_error(self, host, capsys):
        """Declaring the same namespace twice prints no error text."""
        session = SessionContext(host)
        eval_and_print(host, session, read_string("(ns my.ns)"))
        eval_and_print(host, session, read_string("(ns my.ns)"))
        captured = capsys.readouterr()
        assert "already declared" not in captured.err
        assert "already declared" not in captured.out
        assert session.current_ns == "my.ns"


class TestSpecialForms:
    """Tests for meta-commands."""

    def test_defaults(self):
        """The default table has in-ns, both load-file names and load-namespace."""
        fns = merge_special_fns()
        assert set(fns) == {Symbol("in-ns"), Symbol("load-file"), Symbol("sumi.core", "load-file"),
                            Symbol("load-namespace")}

    def test_overrides_are_merged(self):
        """Caller handlers are added; string keys become symbols."""
        handler = lambda host, session, *args: None
        fns = merge_special_fns({"hello": handler})
        assert fns[Symbol("hello")] is handler
        assert Symbol("in-ns") in fns

    def test_is_special_form(self):
        """Only lists headed by a table symbol are special."""
        fns = merge_special_fns()
        assert is_special_form(read_string("(in-ns 'x)"), fns)
        assert not is_special_form(read_string("(inc 1)"), fns)
        assert not is_special_form(read_string("in-ns"), fns)

    def test_in_ns_creates_namespace(self, capsys):
        """in-ns on an unknown namespace creates it and changes the prompt, evaluating nothing."""
        host = RecordingHost()
        session = run_repl(host, "(in-ns 'foo.bar)\n")
        assert session.analyzer.get_namespace("foo.bar") is not None
        assert session.current_ns == "foo.bar"
        assert "Sumi:foo.bar> " in capsys.readouterr().out
        assert host.evaluated == []
        assert host.loads == []

    def test_load_file(self, host, tmp_path, capsys):
        """load-file evaluates a file in sumi.user and restores the namespace."""
        path = tmp_path / "script.sumi"
        path.write_text("(def x 10)\n(def y (+ x 1))\n(ns elsewhere)\n(def z 3)\n")
        session = run_repl(host, f'(in-ns \'scratch)\n(load-file "{path}")\nsumi.user/y\nelsewhere/z\n')
        out = capsys.readouterr().out
        assert session.current_ns == "scratch"
        assert "Sumi:scratch> 11\n" in out
        assert "Sumi:scratch> 3\n" in out

    def test_load_file_alias(self, host, tmp_path, capsys):
        """sumi.core/load-file is the same command."""
        path = tmp_path / "script.sumi"
        path.write_text("(def w 5)\n")
        run_repl(host, f'(sumi.core/load-file "{path}")\nw\n')
        assert "> 5\n" in capsys.readouterr().out

    def test_load_file_missing(self, capsys):
        """A missing file aborts only that command."""
        host = RecordingHost([EvaluationResult(status=Status.SUCCESS, value="3")])
        run_repl(host, '(load-file "no/such/file.sumi")\n(+ 1 2)\n')
        captured = capsys.readouterr()
        assert "Can't find no/such/file.sumi" in captured.err
        assert "> 3\n" in captured.out
        assert host.teardowns == 1

    def test_load_namespace(self, options, capsys):
        """load-namespace loads the closure without evaluating."""
        host = RecordingHost()
        run_repl(host, "(load-namespace 'my.app)\n", options=options)
        assert [p for p, _ in host.loads] == [["my.util"], ["my.app"]]
        assert host.evaluated == []

    def test_custom_special_fn(self, capsys):
        """Caller-supplied commands get the host, the session and the raw arguments."""
        seen = []
        options = ReplOptions(special_fns={"note": lambda host, session, *args: seen.append(args)})
        run_repl(RecordingHost(), "(note a 1)\n", options=options)
        assert seen == [(Symbol("a"), 1)]


class TestSessionLoop:
    """Tests for the loop itself."""

    def test_end_to_end(self, capsys):
        """(+ 1 2) prints 3, and *1 prints 3 without rotating history."""
        session = run_repl(InProcessHost(), "(+ 1 2)\n*1\n")
        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "Type: :sumi/quit to quit",
            "Sumi:sumi.user> 3",
            "Sumi:sumi.user> 3",
            "Sumi:sumi.user> ",
        ]
        assert session.history == deque(["3"])

    def test_quit_tears_down_once(self, capsys):
        """The quit sentinel ends the loop; later input is never read."""
        host = RecordingHost()
        run_repl(host, "(in-ns 'half.way)\n:sumi/quit\n(+ 1 2)\n")
        assert host.setups == 1
        assert host.teardowns == 1
        assert host.evaluated == []

    def test_end_of_input_quits(self, capsys):
        """Running out of input ends the session like the sentinel."""
        host = RecordingHost()
        run_repl(host, "")
        assert host.teardowns == 1

    def test_tear_down_on_fault(self):
        """tear_down runs even when the session dies."""
        class BrokenHost(RecordingHost):
            def setup(self):
                raise HostError("cannot start")

        host = BrokenHost()
        with pytest.raises(HostError):
            run_repl(host, "(+ 1 2)\n")
        assert host.teardowns == 1

    def test_read_fault_continues(self, host, capsys):
        """A read error is printed and the next form still runs."""
        run_repl(host, ")\n(+ 1 2)\n")
        out = capsys.readouterr().out
        assert "Unmatched delimiter: )" in out
        assert "> 3\n" in out

    def test_failing_form_does_not_end_session(self, host, capsys):
        """Errors in one form leave the session usable."""
        run_repl(host, "(/ 1 0)\nundefined-thing\n(inc 41)\n")
        captured = capsys.readouterr()
        assert "ZeroDivisionError" in captured.err
        assert "Unable to resolve var: undefined_thing" in captured.err
        assert "> 42\n" in captured.out

    def test_required_namespace_usable(self, host, tmp_path, capsys):
        """Bundled namespaces load on require and their vars work."""
        options = ReplOptions(source_paths=[], output_dir=str(tmp_path / "out"))
        run_repl(host, "(ns my.calc (:require [sumi.seq :as s]))\n(s/sum [1 2 3])\n", options=options)
        out = capsys.readouterr().out
        assert "Sumi:my.calc> 6\n" in out

    def test_analyze_path(self, project, capsys):
        """analyze_path pre-populates the namespace table."""
        options = ReplOptions(analyze_path=str(project / "src"), output_dir=str(project / "out"))
        session = run_repl(RecordingHost(), "", options=options)
        assert "double" in session.analyzer.get_namespace("my.util").defs

    def test_read_next_form(self):
        """Reads are tagged Ok or Err."""
        from sumilang.reader import FormReader
        reader = FormReader(io.StringIO(":sumi/quit\n)\n"))
        assert read_next_form(reader).unwrap() == QUIT
        assert read_next_form(reader).is_err()


class TrackedProcessHost(ProcessHost):
    """ProcessHost that keeps a handle on its worker after tear_down."""

    def setup(self):
        super().setup()
        self.started = self.proc
        return self


class TestWorkerProcessSession:
    """A whole session against a spawned worker."""

    def test_session_result_and_tear_down(self, capsys):
        """Results come back from the worker, and quitting stops it."""
        host = TrackedProcessHost()
        session = run_repl(host, "(+ 1 2)\n*1\n")
        out = capsys.readouterr().out
        assert "Sumi:sumi.user> 3\n" in out
        assert out.count("> 3\n") == 2
        assert session.history == deque(["3"])
        assert host.proc is None
        assert host.started.poll() is not None
