"""
Sumi compiler driver.

Ties the reader, analyzer and emitter together for whole files: a compiled
namespace is a Python module holding one expression statement per top-level
form, and a standalone script is the runtime preamble followed by every
required namespace and the program itself.
"""
import os

from sumilang.analyzer import DEFAULT_NS, Analyzer
from sumilang.emitter import emit_str
from sumilang.forms import is_ns_form
from sumilang.log import debug_log
from sumilang.reader import read_all
from sumilang.runtime import get_preamble
from sumilang.runtime.munge import munge


def compile_forms(analyzer, forms, source_name=None, ns=DEFAULT_NS):
    """Compile a sequence of top-level forms, following ``ns`` switches."""
    env = analyzer.empty_env(ns)
    lines = [f"# Compiled by sumi from {source_name}"] if source_name else []
    for form in forms:
        ast = analyzer.analyze(env, form)
        if ast["op"] == "ns":
            env = analyzer.empty_env(ast["name"])
        lines.append(emit_str(ast))
    return "\n".join(lines) + "\n"


def compile_file(analyzer, path):
    """Compile one ``.sumi`` file into Python module text."""
    with open(path, 'r') as f:
        forms = read_all(f.read())
    return compile_forms(analyzer, forms, source_name=path)


def compile_source(file_path, options=None, analyzer=None, run_main=False):
    """
    Compile a Sumi program into a standalone Python script.

    The script carries the runtime preamble, then each namespace the program
    requires (in dependency order), then the program itself.

    Args:
        file_path: Path to the .sumi program
        options: ReplOptions supplying source_paths and output_dir
        analyzer: Analyzer to compile with (a fresh one by default)
        run_main: Append a call to the program namespace's ``-main`` when it defines one

    Returns:
        Python source text
    """
    from sumilang import deps
    from sumilang.config import ReplOptions

    options = options or ReplOptions()
    analyzer = analyzer or Analyzer()

    debug_log(f"Compiling source: {file_path}")
    with open(file_path, 'r') as f:
        forms = read_all(f.read())

    # Declared requirements are loaded before the program runs
    requires = []
    main_ns = DEFAULT_NS
    for form in forms:
        if is_ns_form(form):
            ast = analyzer.analyze(analyzer.empty_env(), form)
            main_ns = ast["name"]
            for ns in analyzer.get_namespace(main_ns).dependencies():
                if ns not in requires:
                    requires.append(ns)

    parts = [get_preamble()]
    for desc in deps.add_dependencies(analyzer, options, deps.seed_descriptor(requires)):
        if desc.type == "source":
            parts.append(deps.read_url(desc.url))
    parts.append(compile_forms(analyzer, forms, source_name=file_path))

    if run_main and "-main" in analyzer.get_namespace(main_ns).defs:
        parts.append(f"sumi_ns({main_ns!r}).{munge('-main')}(*sys.argv[1:])\n")
    return "\n\n".join(parts)


def analyze_source(analyzer, src_dir):
    """
    Analyze every ``.sumi`` file under ``src_dir`` into the analyzer's
    namespace table, so their vars resolve during a session.
    """
    if not src_dir:
        return
    for root, _, files in os.walk(src_dir):
        for name in sorted(files):
            if name.endswith(".sumi"):
                path = os.path.join(root, name)
                debug_log(f"Analyzing {path}")
                analyzer.analyze_file(path)
