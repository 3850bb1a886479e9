# Sumi Language - Compiler and REPL Components
"""
Core modules for the Sumi language:
- errors: Error types and source-context helpers
- grammar / reader: Lark grammar and the reader that turns text into forms
- analyzer: Forms to AST, with the namespace table
- emitter: AST to Python expression source
- deps: Namespace dependency graph and per-namespace compilation
- compiler: Whole-file and standalone-script compilation
- hosts: Execution hosts (in-process, worker process, remote worker)
- repl: The interactive session engine
"""

from .errors import SumiCompileError, SumiReadError, ResourceNotFound, HostError
from .reader import read_string, read_all
from .analyzer import Analyzer
from .emitter import emit_str
from .repl import repl, evaluate_form, load_namespace

__all__ = [
    'SumiCompileError',
    'SumiReadError',
    'ResourceNotFound',
    'HostError',
    'read_string',
    'read_all',
    'Analyzer',
    'emit_str',
    'repl',
    'evaluate_form',
    'load_namespace',
]
