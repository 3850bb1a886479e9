"""
Sumi AST Emitter - Converts analyzed forms to Python source.

Every AST node becomes one Python expression, so a top-level form can be
handed to ``eval`` by a host and a compiled file is simply one expression
per line. Names in the emitted code refer to the ``sumi_*`` helpers of the
runtime preamble.
"""

from sumilang.forms import Keyword, ListForm, MapForm, Symbol, VectorForm
from sumilang.runtime.munge import munge


def emit_str(ast):
    """Emit ``ast`` as Python source text."""
    return Emitter().emit(ast)


class Emitter:
    """Turns analyzer ASTs into Python expression strings."""

    def emit(self, ast):
        return getattr(self, "emit_" + ast["op"].replace("!", "_bang"))(ast)

    def emit_block(self, body):
        """A sequence of expressions evaluated in order, yielding the last."""
        if not body:
            return "None"
        if len(body) == 1:
            return self.emit(body[0])
        return "(" + ", ".join(self.emit(b) for b in body) + ")[-1]"

    # --- Leaves ---

    def emit_const(self, ast):
        return emit_constant(ast["form"])

    def emit_var(self, ast):
        return f"sumi_ns({ast['ns']!r}).{munge(ast['name'])}"

    def emit_local(self, ast):
        return ast["name"]

    # --- Special forms ---

    def emit_def(self, ast):
        init = self.emit(ast["init"]) if ast["init"] is not None else "None"
        return f"sumi_def({ast['ns']!r}, {ast['name']!r}, {init})"

    def emit_fn(self, ast):
        params = list(ast["params"])
        if ast["rest"]:
            params.append("*" + ast["rest"])
        body = self.emit_block(ast["body"])
        lam = f"(lambda {', '.join(params)}: {body})" if params else f"(lambda: {body})"
        if ast["name"]:
            return f"sumi_named_fn({ast['name']!r}, lambda {ast['local']}: {lam})"
        return lam

    def emit_if(self, ast):
        return (f"({self.emit(ast['then'])} if sumi_truthy({self.emit(ast['test'])}) "
                f"else {self.emit(ast['else'])})")

    def emit_do(self, ast):
        return self.emit_block(ast["body"])

    def emit_let(self, ast):
        code = self.emit_block(ast["body"])
        # Innermost binding first, so each init sees the locals bound before it
        for local, init in reversed(ast["bindings"]):
            code = f"(lambda {local}: {code})({self.emit(init)})"
        return code

    def emit_set_bang(self, ast):
        target = ast["target"]
        return f"sumi_set({target['ns']!r}, {target['name']!r}, {self.emit(ast['val'])})"

    def emit_throw(self, ast):
        return f"sumi_throw({self.emit(ast['expr'])})"

    def emit_ns(self, ast):
        requires = []
        for ns in list(ast["requires"].values()) + list(ast["uses"].values()):
            if ns not in requires:
                requires.append(ns)
        return f"sumi_provide({ast['name']!r}, {requires!r})"

    # --- Calls and collections ---

    def emit_invoke(self, ast):
        args = ", ".join(self.emit(a) for a in ast["args"])
        return f"({self.emit(ast['f'])})({args})"

    def emit_vector(self, ast):
        return "[" + ", ".join(self.emit(i) for i in ast["items"]) + "]"

    def emit_map(self, ast):
        entries = ", ".join(f"{self.emit(k)}: {self.emit(v)}" for k, v in zip(ast["keys"], ast["vals"]))
        return "{" + entries + "}"


def emit_constant(form):
    """Python source that rebuilds a quoted form as a runtime value."""
    if form is None or isinstance(form, (bool, int, str)):
        return repr(form)
    if isinstance(form, float):
        if form != form or form in (float("inf"), float("-inf")):
            return f"float({repr(form)!r})"
        return repr(form)
    if isinstance(form, Keyword):
        return f"sumi_keyword({form.ns!r}, {form.name!r})"
    if isinstance(form, Symbol):
        return f"sumi_symbol({form.ns!r}, {form.name!r})"
    if isinstance(form, ListForm):
        return "sumi_list(" + ", ".join(emit_constant(f) for f in form) + ")"
    if isinstance(form, VectorForm):
        return "[" + ", ".join(emit_constant(f) for f in form) + "]"
    if isinstance(form, MapForm):
        return "{" + ", ".join(f"{emit_constant(k)}: {emit_constant(v)}" for k, v in form.pairs()) + "}"
    raise TypeError(f"Can't emit constant of type {type(form).__name__}")
