# ==========================================
# DATA TYPES
# ==========================================

class SumiError(Exception):
    """Error raised by Sumi code (``throw``) or by the runtime itself.

    Hosts report these with the ``error`` status; any other exception
    escaping user code is reported as ``exception``.
    """

    def __init__(self, value):
        self.value = value
        super().__init__(value if isinstance(value, str) else pr_str(value))


class UnboundVarError(SumiError, AttributeError):
    """Raised when code reads a var that was never defined."""


class Keyword:
    """Interned-by-value keyword such as ``:a`` or ``:ns/a``. Callable as a lookup."""
    __slots__ = ("ns", "name")

    def __init__(self, ns, name):
        self.ns = ns
        self.name = name

    def fqn(self):
        return f"{self.ns}/{self.name}" if self.ns else self.name

    def __eq__(self, other):
        return isinstance(other, Keyword) and self.ns == other.ns and self.name == other.name

    def __hash__(self):
        return hash((":", self.ns, self.name))

    def __call__(self, coll, default=None):
        if isinstance(coll, dict):
            return coll.get(self, default)
        return default

    def __repr__(self):
        return ":" + self.fqn()


class Symbol:
    """Symbol value produced by quoting, e.g. ``'foo`` or ``'my.ns/foo``."""
    __slots__ = ("ns", "name")

    def __init__(self, ns, name):
        self.ns = ns
        self.name = name

    def fqn(self):
        return f"{self.ns}/{self.name}" if self.ns else self.name

    def __eq__(self, other):
        return isinstance(other, Symbol) and self.ns == other.ns and self.name == other.name

    def __hash__(self):
        return hash(("'", self.ns, self.name))

    def __repr__(self):
        return self.fqn()


class PList(tuple):
    """Sumi list: an immutable sequence printed with parentheses."""

    def __repr__(self):
        return pr_str(self)


class Var:
    """The value returned by ``def``; prints as ``#'ns/name``."""

    def __init__(self, ns, name):
        self.ns = ns
        self.name = name

    def deref(self):
        return getattr(sumi_ns(self.ns), munge(self.name))

    def __repr__(self):
        return f"#'{self.ns}/{self.name}"


class Atom:
    """Mutable reference cell (``atom``, ``deref``, ``reset!``, ``swap!``)."""

    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return f"#<Atom {pr_str(self.value)}>"


class Namespace:
    """A Sumi namespace: vars live as attributes under their munged names."""

    def __init__(self, name):
        object.__setattr__(self, "__ns_name__", name)
        object.__setattr__(self, "__ns_vars__", {})

    def __getattr__(self, attr):
        # Only reached when the attribute is missing
        if attr.startswith("__"):
            raise AttributeError(attr)
        raise UnboundVarError(f"Unable to resolve var: {attr} in namespace {self.__ns_name__}")

    def __repr__(self):
        return f"#<Namespace {self.__ns_name__}>"
