"""
Unit tests for the runtime printer (pr-str and str rendering).
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from sumilang.runtime import get_preamble


@pytest.fixture
def runtime_env():
    env = {}
    exec(get_preamble(), env)
    return env


class TestPrStr:
    """Tests for readable printing."""

    def test_scalars(self, runtime_env):
        pr_str = runtime_env['pr_str']
        assert pr_str(None) == "nil"
        assert pr_str(True) == "true"
        assert pr_str(False) == "false"
        assert pr_str(3) == "3"
        assert pr_str(1.5) == "1.5"

    def test_special_floats(self, runtime_env):
        pr_str = runtime_env['pr_str']
        assert pr_str(float('nan')) == "##NaN"
        assert pr_str(float('inf')) == "##Inf"
        assert pr_str(float('-inf')) == "##-Inf"

    def test_strings_are_escaped(self, runtime_env):
        assert runtime_env['pr_str']('say "hi"\n') == '"say \\"hi\\"\\n"'

    def test_collections(self, runtime_env):
        """Vectors, lists and maps print with their reader syntax."""
        pr_str = runtime_env['pr_str']
        kw = runtime_env['sumi_keyword']
        assert pr_str([1, "a", kw(None, 'k'), None]) == '[1 "a" :k nil]'
        assert pr_str(runtime_env['sumi_list'](1, [2])) == "(1 [2])"
        assert pr_str({kw(None, 'a'): 1}) == "{:a 1}"
        assert pr_str({kw(None, 'a'): 1, kw('x', 'b'): 2}) == "{:a 1, :x/b 2}"

    def test_symbols_and_vars(self, runtime_env):
        pr_str = runtime_env['pr_str']
        assert pr_str(runtime_env['sumi_symbol']('my.ns', 'f')) == "my.ns/f"
        assert pr_str(runtime_env['sumi_def']('my.ns', 'f', 1)) == "#'my.ns/f"

    def test_fns(self, runtime_env):
        """Functions print with their Sumi name when they have one."""
        pr_str = runtime_env['pr_str']
        runtime_env['sumi_def']('my.ns', 'g', lambda: 1)
        assert pr_str(runtime_env['sumi_ns']('my.ns').g) == "#<fn my.ns/g>"

    def test_several_values(self, runtime_env):
        assert runtime_env['pr_str'](1, "b") == '1 "b"'


class TestPrintStr:
    """Tests for the human-readable rendering used by println and str."""

    def test_strings_unquoted(self, runtime_env):
        assert runtime_env['print_str']("a", ["b"]) == "a [b]"

    def test_atom(self, runtime_env):
        atom = runtime_env['Atom']("x")
        assert runtime_env['pr_str'](atom) == '#<Atom "x">'
