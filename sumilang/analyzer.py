"""
Sumi analyzer: forms -> AST.

The AST is a tree of plain dicts keyed by ``op`` (``const``, ``var``,
``local``, ``def``, ``fn``, ``if``, ``do``, ``let``, ``set!``, ``throw``,
``invoke``, ``vector``, ``map``, ``ns``). The analyzer also owns the
namespace table used to resolve symbols across forms and files.
"""
from contextlib import contextmanager
from typing import Any, Dict

from pydantic import BaseModel, Field

from sumilang.errors import SumiCompileError
from sumilang.forms import Keyword, ListForm, MapForm, Symbol, VectorForm, form_line
from sumilang.log import warn
from sumilang.reader import read_all
from sumilang.runtime import CORE_NS, core_var_names
from sumilang.runtime.munge import munge

DEFAULT_NS = "sumi.user"


class NamespaceRecord(BaseModel):
    """What the analyzer knows about one namespace."""
    name: str
    requires: Dict[str, str] = Field(default_factory=dict)  # alias -> namespace
    uses: Dict[str, str] = Field(default_factory=dict)      # referred name -> namespace
    defs: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def dependencies(self):
        """Distinct required and used namespaces, in declaration order."""
        seen = []
        for ns in list(self.requires.values()) + list(self.uses.values()):
            if ns not in seen:
                seen.append(ns)
        return seen


class WarningFlags(BaseModel):
    """Which analyzer warnings are enabled."""
    undeclared: bool = False
    redef: bool = True
    fn_arity: bool = True

    @contextmanager
    def suppressed(self):
        """Silence every warning for the duration of the block."""
        saved = self.model_dump()
        self.undeclared = self.redef = self.fn_arity = False
        try:
            yield self
        finally:
            for key, value in saved.items():
                setattr(self, key, value)


def munge_local(name):
    """Python name for a local binding; never collides with the runtime's sumi_* helpers."""
    s = munge(name)
    return s + "_" if s.startswith("sumi_") else s


class Analyzer:
    """Analyzes forms against a namespace table."""

    SPECIALS = {"def", "defn", "fn", "if", "do", "let", "quote", "set!", "throw", "ns"}

    def __init__(self, warnings=None):
        self.warnings = warnings or WarningFlags()
        self.namespaces = {}
        core = NamespaceRecord(name=CORE_NS)
        for name in core_var_names():
            core.defs[name] = {"name": f"{CORE_NS}/{name}"}
        self.namespaces[CORE_NS] = core

    # --- Namespace table ---

    def get_namespace(self, name):
        return self.namespaces.get(name)

    def set_namespace(self, name, record):
        self.namespaces[name] = record

    def empty_env(self, ns=DEFAULT_NS):
        """Analysis environment for a top-level form in namespace ``ns``."""
        if ns not in self.namespaces:
            self.namespaces[ns] = NamespaceRecord(name=ns)
        return {"ns": self.namespaces[ns], "locals": {}, "context": "expr", "line": None}

    # --- Entry points ---

    def analyze(self, env, form):
        """Analyze ``form`` in ``env`` and return its AST."""
        line = form_line(form, env.get("line"))
        if line != env.get("line"):
            env = {**env, "line": line}
        if isinstance(form, Symbol):
            return self.analyze_symbol(env, form)
        if isinstance(form, ListForm):
            return self.analyze_seq(env, form)
        if isinstance(form, VectorForm):
            return {"op": "vector", "line": line, "items": [self.analyze(env, f) for f in form]}
        if isinstance(form, MapForm):
            pairs = form.pairs()
            return {
                "op": "map",
                "line": line,
                "keys": [self.analyze(env, k) for k, _ in pairs],
                "vals": [self.analyze(env, v) for _, v in pairs],
            }
        return {"op": "const", "line": line, "form": form}

    def analyze_file(self, path):
        """Analyze every form in a source file, following ``ns`` declarations.

        Returns:
            List of ASTs, in file order
        """
        with open(path, 'r') as f:
            source = f.read()
        env = self.empty_env(DEFAULT_NS)
        asts = []
        for form in read_all(source):
            ast = self.analyze(env, form)
            if ast["op"] == "ns":
                env = self.empty_env(ast["name"])
            asts.append(ast)
        return asts

    # --- Symbols ---

    def analyze_symbol(self, env, sym):
        if sym.ns is None and sym.name in env["locals"]:
            return {"op": "local", "line": env["line"], "name": env["locals"][sym.name]}
        ns, name = self.resolve_var(env, sym)
        return {"op": "var", "line": env["line"], "ns": ns, "name": name}

    def resolve_var(self, env, sym):
        """Resolve a non-local symbol to ``(namespace, name)``."""
        current = env["ns"]
        if sym.ns is not None:
            full = current.requires.get(sym.ns, sym.ns)
            record = self.namespaces.get(full)
            if record is None or sym.name not in record.defs:
                self._warn_undeclared(env, full, sym.name)
            return full, sym.name
        if sym.name in current.uses:
            return current.uses[sym.name], sym.name
        if sym.name in current.defs:
            return current.name, sym.name
        if sym.name in self.namespaces[CORE_NS].defs:
            return CORE_NS, sym.name
        self._warn_undeclared(env, current.name, sym.name)
        return current.name, sym.name

    def _warn_undeclared(self, env, ns, name):
        if self.warnings.undeclared:
            warn(f"Use of undeclared Var {ns}/{name}{_at_line(env)}")

    # --- Sequences ---

    def analyze_seq(self, env, form):
        if not form:
            return {"op": "const", "line": env["line"], "form": form}
        head = form[0]
        if isinstance(head, Symbol) and head.ns is None and head.name in self.SPECIALS \
                and head.name not in env["locals"]:
            parser = getattr(self, "parse_" + head.name.replace("!", "_bang"))
            return parser(env, form)
        return self.parse_invoke(env, form)

    def parse_invoke(self, env, form):
        f = self.analyze(env, form[0])
        args = [self.analyze(env, a) for a in form[1:]]
        if f["op"] == "var" and self.warnings.fn_arity:
            record = self.namespaces.get(f["ns"])
            info = record.defs.get(f["name"]) if record else None
            arity = info.get("arity") if info else None
            if arity and not _arity_matches(arity, len(args)):
                warn(f"Wrong number of args ({len(args)}) passed to {f['ns']}/{f['name']}{_at_line(env)}")
        return {"op": "invoke", "line": env["line"], "f": f, "args": args}

    def parse_def(self, env, form):
        if len(form) < 2 or len(form) > 3:
            raise SumiCompileError(f"Wrong number of args to def: {len(form) - 1}", line_number=env["line"])
        sym = form[1]
        if not isinstance(sym, Symbol):
            raise SumiCompileError("First argument to def must be a symbol", line_number=env["line"])
        current = env["ns"]
        if sym.ns is not None and sym.ns != current.name:
            raise SumiCompileError(f"Can't def {sym} from namespace {current.name}", line_number=env["line"])
        name = sym.name
        if self.warnings.redef and current.name != CORE_NS:
            other = current.uses.get(name)
            if other is None and name in self.namespaces[CORE_NS].defs and name not in current.defs:
                other = CORE_NS
            if other is not None:
                warn(f"{name} already refers to: {other}/{name} being replaced by: {current.name}/{name}{_at_line(env)}")
        info = current.defs.setdefault(name, {})
        info.update({"name": f"{current.name}/{name}", "line": env["line"]})
        current.uses.pop(name, None)
        init = None
        if len(form) == 3:
            init = self.analyze(env, form[2])
            if init["op"] == "fn":
                info["arity"] = {"fixed": len(init["params"]), "variadic": init["rest"] is not None}
            else:
                info.pop("arity", None)
        return {"op": "def", "line": env["line"], "ns": current.name, "name": name, "init": init}

    def parse_defn(self, env, form):
        if len(form) < 3 or not isinstance(form[1], Symbol):
            raise SumiCompileError("defn requires a name and a parameter vector", line_number=env["line"])
        rest = list(form[2:])
        if rest and isinstance(rest[0], str):
            rest = rest[1:]  # docstring
        fn_form = ListForm([Symbol("fn"), form[1]] + rest, line=form.line)
        return self.parse_def(env, ListForm([Symbol("def"), form[1], fn_form], line=form.line))

    def parse_fn(self, env, form):
        rest = list(form[1:])
        name = None
        if rest and isinstance(rest[0], Symbol):
            name = rest.pop(0).name
        if not rest or not isinstance(rest[0], VectorForm):
            if rest and isinstance(rest[0], ListForm):
                raise SumiCompileError("Multi-arity fn is not supported", line_number=env["line"])
            raise SumiCompileError("fn requires a parameter vector", line_number=env["line"])
        params_form, body = rest[0], rest[1:]
        params, variadic = [], None
        items = list(params_form)
        while items:
            p = items.pop(0)
            if not isinstance(p, Symbol) or p.ns is not None:
                raise SumiCompileError(f"Invalid fn parameter: {p!r}", line_number=env["line"])
            if p.name == "&":
                if len(items) != 1 or not isinstance(items[0], Symbol):
                    raise SumiCompileError("& must be followed by exactly one parameter", line_number=env["line"])
                variadic = items.pop(0).name
                break
            params.append(p.name)
        fn_locals = dict(env["locals"])
        if name is not None:
            fn_locals[name] = munge_local(name)
        for p in params + ([variadic] if variadic else []):
            fn_locals[p] = munge_local(p)
        body_env = {**env, "locals": fn_locals}
        return {
            "op": "fn",
            "line": env["line"],
            "name": name,
            "local": fn_locals[name] if name else None,
            "params": [fn_locals[p] for p in params],
            "rest": fn_locals[variadic] if variadic else None,
            "body": [self.analyze(body_env, f) for f in body],
        }

    def parse_if(self, env, form):
        if len(form) < 3:
            raise SumiCompileError("Too few arguments to if", line_number=env["line"])
        if len(form) > 4:
            raise SumiCompileError("Too many arguments to if", line_number=env["line"])
        return {
            "op": "if",
            "line": env["line"],
            "test": self.analyze(env, form[1]),
            "then": self.analyze(env, form[2]),
            "else": self.analyze(env, form[3] if len(form) == 4 else None),
        }

    def parse_do(self, env, form):
        return {"op": "do", "line": env["line"], "body": [self.analyze(env, f) for f in form[1:]]}

    def parse_let(self, env, form):
        if len(form) < 2 or not isinstance(form[1], VectorForm):
            raise SumiCompileError("let requires a binding vector", line_number=env["line"])
        bindings_form = form[1]
        if len(bindings_form) % 2:
            raise SumiCompileError("let requires an even number of forms in binding vector", line_number=env["line"])
        bindings = []
        let_env = env
        for sym, init_form in zip(bindings_form[::2], bindings_form[1::2]):
            if not isinstance(sym, Symbol) or sym.ns is not None:
                raise SumiCompileError(f"Invalid let binding name: {sym!r}", line_number=env["line"])
            init = self.analyze(let_env, init_form)
            local = munge_local(sym.name)
            let_env = {**let_env, "locals": {**let_env["locals"], sym.name: local}}
            bindings.append((local, init))
        return {
            "op": "let",
            "line": env["line"],
            "bindings": bindings,
            "body": [self.analyze(let_env, f) for f in form[2:]],
        }

    def parse_quote(self, env, form):
        if len(form) != 2:
            raise SumiCompileError("Wrong number of args to quote", line_number=env["line"])
        return {"op": "const", "line": env["line"], "form": form[1]}

    def parse_set_bang(self, env, form):
        if len(form) != 3 or not isinstance(form[1], Symbol):
            raise SumiCompileError("set! requires a var name and a value", line_number=env["line"])
        target = self.analyze_symbol(env, form[1])
        if target["op"] == "local":
            raise SumiCompileError(f"Can't set! local binding {form[1]}", line_number=env["line"])
        return {"op": "set!", "line": env["line"], "target": target, "val": self.analyze(env, form[2])}

    def parse_throw(self, env, form):
        if len(form) != 2:
            raise SumiCompileError("throw requires exactly one argument", line_number=env["line"])
        return {"op": "throw", "line": env["line"], "expr": self.analyze(env, form[1])}

    def parse_ns(self, env, form):
        if len(form) < 2 or not isinstance(form[1], Symbol) or form[1].ns is not None:
            raise SumiCompileError("ns requires a namespace name", line_number=env["line"])
        name = form[1].name
        requires, uses = {}, {}
        for clause in form[2:]:
            if isinstance(clause, str):
                continue  # docstring
            if not isinstance(clause, ListForm) or not clause or not isinstance(clause[0], Keyword):
                raise SumiCompileError(f"Invalid ns clause: {clause!r}", line_number=env["line"])
            kind = clause[0].name
            if kind == "require":
                for libspec in clause[1:]:
                    requires.update(self._parse_require_libspec(env, libspec))
            elif kind == "use":
                for libspec in clause[1:]:
                    uses.update(self._parse_use_libspec(env, libspec))
            else:
                raise SumiCompileError(
                    f"Unsupported ns clause :{kind}",
                    line_number=env["line"],
                    suggestion="Only :require and :use are supported",
                )
        record = self.namespaces.get(name) or NamespaceRecord(name=name)
        record.requires = requires
        record.uses = uses
        self.namespaces[name] = record
        return {"op": "ns", "line": env["line"], "name": name, "requires": requires, "uses": uses}

    def _parse_require_libspec(self, env, libspec):
        if isinstance(libspec, Symbol):
            return {libspec.name: libspec.name}
        if isinstance(libspec, VectorForm) and libspec and isinstance(libspec[0], Symbol):
            lib = libspec[0].name
            out = {lib: lib}
            opts = list(libspec[1:])
            if opts:
                if len(opts) != 2 or opts[0] != Keyword("as") or not isinstance(opts[1], Symbol):
                    raise SumiCompileError(f"Only [lib.ns :as alias] form of :require is supported: {libspec!r}",
                                           line_number=env["line"])
                out[opts[1].name] = lib
            return out
        raise SumiCompileError(f"Invalid :require libspec: {libspec!r}", line_number=env["line"])

    def _parse_use_libspec(self, env, libspec):
        if (isinstance(libspec, VectorForm) and len(libspec) == 3 and isinstance(libspec[0], Symbol)
                and libspec[1] == Keyword("only") and isinstance(libspec[2], VectorForm)):
            lib = libspec[0].name
            return {s.name: lib for s in libspec[2] if isinstance(s, Symbol)}
        raise SumiCompileError(f"Only [lib.ns :only [names]] form of :use is supported: {libspec!r}",
                               line_number=env["line"])


def _arity_matches(arity, argc):
    if arity["variadic"]:
        return argc >= arity["fixed"]
    return argc == arity["fixed"]


def _at_line(env):
    return f" at line {env['line']}" if env.get("line") else ""
