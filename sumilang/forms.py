"""
Reader data: the forms handed from the reader to the analyzer.

Scalars are plain Python values (``None``, ``bool``, ``int``, ``float``,
``str``); symbols and keywords get their own classes, and collections are
tuple subclasses so forms stay immutable once read. Collection forms carry
the source line they started on.
"""


class Symbol:
    __slots__ = ("ns", "name")

    def __init__(self, text, name=None):
        if name is not None:
            self.ns, self.name = text, name
        elif "/" in text and text != "/":
            self.ns, _, self.name = text.partition("/")
        else:
            self.ns, self.name = None, text

    def __eq__(self, other):
        return isinstance(other, Symbol) and self.ns == other.ns and self.name == other.name

    def __hash__(self):
        return hash(("sym", self.ns, self.name))

    def __str__(self):
        return f"{self.ns}/{self.name}" if self.ns else self.name

    def __repr__(self):
        return f"Symbol({str(self)!r})"


class Keyword:
    __slots__ = ("ns", "name")

    def __init__(self, text, name=None):
        if name is not None:
            self.ns, self.name = text, name
        elif "/" in text:
            self.ns, _, self.name = text.partition("/")
        else:
            self.ns, self.name = None, text

    def __eq__(self, other):
        return isinstance(other, Keyword) and self.ns == other.ns and self.name == other.name

    def __hash__(self):
        return hash(("kw", self.ns, self.name))

    def __str__(self):
        return ":" + (f"{self.ns}/{self.name}" if self.ns else self.name)

    def __repr__(self):
        return f"Keyword({str(self)!r})"


class _CollectionForm(tuple):
    def __new__(cls, items=(), line=None):
        form = super().__new__(cls, items)
        form.line = line
        return form

    def __repr__(self):
        return f"{type(self).__name__}({list(self)!r})"


class ListForm(_CollectionForm):
    """``(a b c)``"""


class VectorForm(_CollectionForm):
    """``[a b c]``"""


class MapForm(_CollectionForm):
    """``{k v ...}``; stored as a flat key/value sequence."""

    def pairs(self):
        return list(zip(self[::2], self[1::2]))


EOF = object()


def form_line(form, default=None):
    return getattr(form, "line", None) or default


def is_ns_form(form):
    """True when ``form`` is a namespace declaration ``(ns ...)``."""
    return isinstance(form, ListForm) and len(form) > 0 and form[0] == Symbol("ns")


def unquote(form):
    """``(quote x)`` -> ``x``; anything else is returned unchanged."""
    if isinstance(form, ListForm) and len(form) == 2 and form[0] == Symbol("quote"):
        return form[1]
    return form


_STRING_ESCAPES = {'"': '\\"', '\\': '\\\\', '\n': '\\n', '\t': '\\t', '\r': '\\r'}


def pr_form(form):
    """Print a form back as Sumi source text."""
    if form is None:
        return "nil"
    if form is True:
        return "true"
    if form is False:
        return "false"
    if isinstance(form, str):
        return '"' + "".join(_STRING_ESCAPES.get(c, c) for c in form) + '"'
    if isinstance(form, (int, float, Symbol, Keyword)):
        return str(form)
    if isinstance(form, ListForm):
        return "(" + " ".join(pr_form(f) for f in form) + ")"
    if isinstance(form, VectorForm):
        return "[" + " ".join(pr_form(f) for f in form) + "]"
    if isinstance(form, MapForm):
        return "{" + ", ".join(f"{pr_form(k)} {pr_form(v)}" for k, v in form.pairs()) + "}"
    return repr(form)
