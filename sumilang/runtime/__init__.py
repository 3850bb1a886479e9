# Sumi Runtime Components
"""
Runtime modules that get installed into every execution host.

These are real Python files that provide IDE support and testability,
but are concatenated into a single preamble string at setup time. The
preamble defines the ``sumi.core`` namespace, which is always present in a
host and therefore never loaded as a dependency.
"""

import functools
import os

CORE_NS = "sumi.core"


def get_preamble():
    """
    Read and concatenate all runtime modules into a single preamble string.

    Hosts exec this once in a fresh globals dict before evaluating anything,
    and compiled standalone scripts carry it at the top.
    """
    runtime_dir = os.path.dirname(__file__)

    # Order matters - dependencies must come first
    modules = [
        'preamble_header.py',  # Imports and constants
        'munge.py',            # munge (shared with the emitter)
        'datatypes.py',        # SumiError, Keyword, Symbol, PList, Var, Atom, Namespace
        'namespaces.py',       # sumi_ns, sumi_def, sumi_provide and emitted helpers
        'printer.py',          # pr_str, print_str
        'core.py',             # sumi.core function library
    ]

    parts = []
    for module in modules:
        path = os.path.join(runtime_dir, module)
        with open(path, 'r') as f:
            parts.append(f.read())

    return '\n\n'.join(parts)


@functools.lru_cache(maxsize=None)
def core_var_names():
    """Names (unmunged) of every var the preamble defines in sumi.core."""
    env = {}
    exec(get_preamble(), env)
    return tuple(env['sumi_ns'](CORE_NS).__ns_vars__)
