# ==========================================
# PRINTER
# ==========================================

_STRING_ESCAPES = {'"': '\\"', '\\': '\\\\', '\n': '\\n', '\t': '\\t', '\r': '\\r'}


def _pr_string(s):
    return '"' + "".join(_STRING_ESCAPES.get(c, c) for c in s) + '"'


def _pr_float(x):
    if math.isnan(x):
        return "##NaN"
    if math.isinf(x):
        return "##Inf" if x > 0 else "##-Inf"
    return repr(x)


def pr_str1(x, readably=True):
    """Render one value the way ``pr-str`` (readably) or ``str`` shows it."""
    if x is None:
        return "nil"
    if x is True:
        return "true"
    if x is False:
        return "false"
    if isinstance(x, int):
        return str(x)
    if isinstance(x, float):
        return _pr_float(x)
    if isinstance(x, str):
        return _pr_string(x) if readably else x
    if isinstance(x, (Keyword, Symbol, Var)):
        return repr(x)
    if isinstance(x, tuple):
        return "(" + " ".join(pr_str1(i, readably) for i in x) + ")"
    if isinstance(x, list):
        return "[" + " ".join(pr_str1(i, readably) for i in x) + "]"
    if isinstance(x, dict):
        return "{" + ", ".join(f"{pr_str1(k, readably)} {pr_str1(v, readably)}" for k, v in x.items()) + "}"
    if isinstance(x, (set, frozenset)):
        return "#{" + " ".join(pr_str1(i, readably) for i in x) + "}"
    if isinstance(x, (Atom, Namespace)):
        return repr(x)
    if callable(x):
        name = getattr(x, "__sumi_name__", None) or getattr(x, "__name__", "fn")
        return f"#<fn {name}>"
    return f"#<{type(x).__name__} {x}>"


def pr_str(*xs):
    return " ".join(pr_str1(x) for x in xs)


def print_str(*xs):
    return " ".join(pr_str1(x, readably=False) for x in xs)
