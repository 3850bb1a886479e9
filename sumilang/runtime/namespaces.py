# ==========================================
# NAMESPACES & EMITTED-CODE HELPERS
# ==========================================

_NAMESPACES = {}
_PROVIDED = set()
_GENSYM_COUNTER = itertools.count(1)


def sumi_ns(name):
    """Return the namespace object called ``name``, creating it on first use."""
    ns = _NAMESPACES.get(name)
    if ns is None:
        ns = Namespace(name)
        _NAMESPACES[name] = ns
    return ns


def sumi_def(ns_name, name, value):
    """Bind ``ns_name/name`` to ``value`` and return its Var."""
    ns = sumi_ns(ns_name)
    object.__setattr__(ns, munge(name), value)
    ns.__ns_vars__[name] = True
    if callable(value) and not isinstance(value, (Keyword, type)):
        try:
            if not hasattr(value, "__sumi_name__"):
                value.__sumi_name__ = f"{ns_name}/{name}"
        except (AttributeError, TypeError):
            pass
    return Var(ns_name, name)


def sumi_set(ns_name, name, value):
    """``set!`` on a var: rebind it and return the new value."""
    ns = sumi_ns(ns_name)
    object.__setattr__(ns, munge(name), value)
    ns.__ns_vars__[name] = True
    return value


def sumi_provide(name, requires=()):
    """Declare namespace ``name``; every required namespace must already be loaded.

    Declaring the same namespace twice is an error, the same way a module
    system refuses a second provide of one name.
    """
    if name in _PROVIDED:
        raise SumiError(f"Namespace \"{name}\" already declared.")
    missing = [r for r in requires if r not in _PROVIDED]
    if missing:
        raise SumiError(f"Namespace \"{name}\" requires {', '.join(missing)}, which has not been loaded.")
    _PROVIDED.add(name)
    sumi_ns(name)
    return None


def sumi_provided():
    return sorted(_PROVIDED)


def sumi_truthy(x):
    return x is not None and x is not False


def sumi_throw(x):
    if isinstance(x, BaseException):
        raise x
    raise SumiError(x)


def sumi_named_fn(name, make):
    """Build a self-referencing fn: ``make`` receives the fn and returns its body lambda."""
    def fn(*args):
        return impl(*args)
    impl = make(fn)
    fn.__name__ = munge(name)
    fn.__sumi_name__ = name
    return fn


def sumi_keyword(ns, name):
    return Keyword(ns, name)


def sumi_symbol(ns, name):
    return Symbol(ns, name)


def sumi_list(*items):
    return PList(items)
