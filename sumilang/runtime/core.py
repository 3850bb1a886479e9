# ==========================================
# SUMI.CORE LIBRARY
# ==========================================

def core_fn(name):
    """Register the decorated function as ``sumi.core/<name>``."""
    def register(f):
        sumi_def(CORE_NS_NAME, name, f)
        return f
    return register


def _items(coll):
    """Iterable view of any Sumi collection (nil is empty, maps yield [k v] entries)."""
    if coll is None:
        return ()
    if isinstance(coll, dict):
        return [[k, v] for k, v in coll.items()]
    return coll


def _equals(a, b):
    if isinstance(a, bool) or isinstance(b, bool):
        return a is b
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(_equals(x, y) for x, y in zip(a, b))
    return a == b


def _is_number(x):
    return isinstance(x, (int, float)) and not isinstance(x, bool)


# --- Arithmetic ---

@core_fn("+")
def core_add(*xs):
    return functools.reduce(lambda a, b: a + b, xs, 0)


@core_fn("-")
def core_sub(x, *xs):
    if not xs:
        return -x
    return functools.reduce(lambda a, b: a - b, xs, x)


@core_fn("*")
def core_mul(*xs):
    return functools.reduce(lambda a, b: a * b, xs, 1)


def _divide(a, b):
    if isinstance(a, int) and isinstance(b, int) and b != 0 and a % b == 0:
        return a // b
    return a / b


@core_fn("/")
def core_div(x, *xs):
    if not xs:
        return _divide(1, x)
    return functools.reduce(_divide, xs, x)


@core_fn("quot")
def core_quot(a, b):
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


@core_fn("rem")
def core_rem(a, b):
    return a - b * core_quot(a, b)


@core_fn("mod")
def core_mod(a, b):
    return a % b


@core_fn("inc")
def core_inc(x):
    return x + 1


@core_fn("dec")
def core_dec(x):
    return x - 1


@core_fn("max")
def core_max(x, *xs):
    return max((x,) + xs)


@core_fn("min")
def core_min(x, *xs):
    return min((x,) + xs)


@core_fn("abs")
def core_abs(x):
    return abs(x)


# --- Comparison & predicates ---

@core_fn("=")
def core_eq(x, *xs):
    return all(_equals(x, y) for y in xs)


@core_fn("not=")
def core_not_eq(x, *xs):
    return not core_eq(x, *xs)


def _chain(op, xs):
    return all(op(a, b) for a, b in zip(xs, xs[1:]))


@core_fn("<")
def core_lt(*xs):
    return _chain(lambda a, b: a < b, xs)


@core_fn(">")
def core_gt(*xs):
    return _chain(lambda a, b: a > b, xs)


@core_fn("<=")
def core_le(*xs):
    return _chain(lambda a, b: a <= b, xs)


@core_fn(">=")
def core_ge(*xs):
    return _chain(lambda a, b: a >= b, xs)


@core_fn("not")
def core_not(x):
    return not sumi_truthy(x)


@core_fn("identity")
def core_identity(x):
    return x


@core_fn("nil?")
def core_nil_p(x):
    return x is None


@core_fn("some?")
def core_some_p(x):
    return x is not None


@core_fn("true?")
def core_true_p(x):
    return x is True


@core_fn("false?")
def core_false_p(x):
    return x is False


@core_fn("zero?")
def core_zero_p(x):
    return x == 0


@core_fn("pos?")
def core_pos_p(x):
    return x > 0


@core_fn("neg?")
def core_neg_p(x):
    return x < 0


@core_fn("even?")
def core_even_p(x):
    return x % 2 == 0


@core_fn("odd?")
def core_odd_p(x):
    return x % 2 == 1


@core_fn("number?")
def core_number_p(x):
    return _is_number(x)


@core_fn("integer?")
def core_integer_p(x):
    return isinstance(x, int) and not isinstance(x, bool)


@core_fn("string?")
def core_string_p(x):
    return isinstance(x, str)


@core_fn("keyword?")
def core_keyword_p(x):
    return isinstance(x, Keyword)


@core_fn("symbol?")
def core_symbol_p(x):
    return isinstance(x, Symbol)


@core_fn("fn?")
def core_fn_p(x):
    return callable(x) and not isinstance(x, (Keyword, type))


@core_fn("list?")
def core_list_p(x):
    return isinstance(x, tuple)


@core_fn("vector?")
def core_vector_p(x):
    return isinstance(x, list)


@core_fn("map?")
def core_map_p(x):
    return isinstance(x, dict)


@core_fn("coll?")
def core_coll_p(x):
    return isinstance(x, (tuple, list, dict, set, frozenset))


# --- Collections ---

@core_fn("list")
def core_list(*xs):
    return PList(xs)


@core_fn("vector")
def core_vector(*xs):
    return list(xs)


@core_fn("hash-map")
def core_hash_map(*kvs):
    if len(kvs) % 2:
        raise SumiError("hash-map requires an even number of arguments")
    return dict(zip(kvs[::2], kvs[1::2]))


@core_fn("count")
def core_count(coll):
    if coll is None:
        return 0
    return len(coll)


@core_fn("seq")
def core_seq(coll):
    items = PList(_items(coll))
    return items if items else None


@core_fn("empty?")
def core_empty_p(coll):
    return core_seq(coll) is None


@core_fn("first")
def core_first(coll):
    items = core_seq(coll)
    return items[0] if items else None


@core_fn("second")
def core_second(coll):
    items = core_seq(coll)
    return items[1] if items and len(items) > 1 else None


@core_fn("last")
def core_last(coll):
    items = core_seq(coll)
    return items[-1] if items else None


@core_fn("rest")
def core_rest(coll):
    return PList(tuple(_items(coll))[1:])


@core_fn("next")
def core_next(coll):
    return core_seq(core_rest(coll))


@core_fn("cons")
def core_cons(x, coll):
    return PList((x,) + tuple(_items(coll)))


@core_fn("conj")
def core_conj(coll, *xs):
    if coll is None:
        coll = PList()
    for x in xs:
        if isinstance(coll, dict):
            coll = dict(coll)
            if isinstance(x, dict):
                coll.update(x)
            else:
                coll[x[0]] = x[1]
        elif isinstance(coll, list):
            coll = coll + [x]
        elif isinstance(coll, (set, frozenset)):
            coll = coll | {x}
        else:
            coll = PList((x,) + tuple(coll))
    return coll


@core_fn("get")
def core_get(coll, key, default=None):
    if isinstance(coll, dict):
        return coll.get(key, default)
    if isinstance(coll, (list, tuple, str)) and isinstance(key, int) and not isinstance(key, bool):
        return coll[key] if 0 <= key < len(coll) else default
    if isinstance(coll, (set, frozenset)):
        return key if key in coll else default
    return default


@core_fn("get-in")
def core_get_in(coll, keys, default=None):
    for k in _items(keys):
        if coll is None:
            return default
        coll = core_get(coll, k)
    return default if coll is None else coll


@core_fn("nth")
def core_nth(coll, index, *default):
    items = tuple(_items(coll))
    if 0 <= index < len(items):
        return items[index]
    if default:
        return default[0]
    raise SumiError(f"Index {index} out of bounds for collection of size {len(items)}")


@core_fn("assoc")
def core_assoc(coll, key, value, *kvs):
    pairs = [(key, value)] + list(zip(kvs[::2], kvs[1::2]))
    if isinstance(coll, list):
        out = list(coll)
        for k, v in pairs:
            if k == len(out):
                out.append(v)
            else:
                out[k] = v
        return out
    out = dict(coll or {})
    out.update(pairs)
    return out


@core_fn("dissoc")
def core_dissoc(coll, *keys):
    if coll is None:
        return None
    return {k: v for k, v in coll.items() if k not in keys}


@core_fn("keys")
def core_keys(m):
    return PList(m.keys()) if m else None


@core_fn("vals")
def core_vals(m):
    return PList(m.values()) if m else None


@core_fn("contains?")
def core_contains_p(coll, key):
    if isinstance(coll, (dict, set, frozenset)):
        return key in coll
    if isinstance(coll, (list, tuple, str)):
        return isinstance(key, int) and 0 <= key < len(coll)
    return False


@core_fn("merge")
def core_merge(*maps):
    if not any(m is not None for m in maps):
        return None
    out = {}
    for m in maps:
        out.update(m or {})
    return out


@core_fn("zipmap")
def core_zipmap(ks, vs):
    return dict(zip(_items(ks), _items(vs)))


@core_fn("concat")
def core_concat(*colls):
    return PList(itertools.chain.from_iterable(_items(c) for c in colls))


@core_fn("into")
def core_into(to, frm):
    return core_conj(to, *_items(frm))


@core_fn("reverse")
def core_reverse(coll):
    return PList(reversed(tuple(_items(coll))))


@core_fn("sort")
def core_sort(coll):
    return PList(sorted(_items(coll)))


@core_fn("sort-by")
def core_sort_by(keyfn, coll):
    return PList(sorted(_items(coll), key=keyfn))


@core_fn("take")
def core_take(n, coll):
    return PList(tuple(_items(coll))[:n])


@core_fn("drop")
def core_drop(n, coll):
    return PList(tuple(_items(coll))[n:])


@core_fn("range")
def core_range(*args):
    if not args:
        raise SumiError("Infinite range is not supported")
    return PList(range(*args))


@core_fn("repeat")
def core_repeat(n, x):
    return PList([x] * n)


# --- Higher-order functions ---

@core_fn("map")
def core_map(f, *colls):
    return PList(map(f, *[_items(c) for c in colls]))


@core_fn("filter")
def core_filter(pred, coll):
    return PList(x for x in _items(coll) if sumi_truthy(pred(x)))


@core_fn("remove")
def core_remove(pred, coll):
    return PList(x for x in _items(coll) if not sumi_truthy(pred(x)))


@core_fn("reduce")
def core_reduce(f, *args):
    if len(args) == 1:
        items = tuple(_items(args[0]))
        if not items:
            return f()
        return functools.reduce(f, items)
    init, coll = args
    return functools.reduce(f, _items(coll), init)


@core_fn("apply")
def core_apply(f, *args):
    if not args:
        return f()
    return f(*args[:-1], *_items(args[-1]))


@core_fn("some")
def core_some(pred, coll):
    for x in _items(coll):
        ret = pred(x)
        if sumi_truthy(ret):
            return ret
    return None


@core_fn("every?")
def core_every_p(pred, coll):
    return all(sumi_truthy(pred(x)) for x in _items(coll))


@core_fn("comp")
def core_comp(*fs):
    if not fs:
        return core_identity

    def composed(*args):
        ret = fs[-1](*args)
        for f in reversed(fs[:-1]):
            ret = f(ret)
        return ret
    return composed


@core_fn("partial")
def core_partial(f, *args):
    return functools.partial(f, *args)


@core_fn("constantly")
def core_constantly(x):
    return lambda *args: x


# --- Strings, symbols & keywords ---

@core_fn("str")
def core_str(*xs):
    return "".join("" if x is None else pr_str1(x, readably=False) for x in xs)


@core_fn("subs")
def core_subs(s, start, end=None):
    return s[start:end]


@core_fn("name")
def core_name(x):
    if isinstance(x, (Keyword, Symbol)):
        return x.name
    return str(x)


@core_fn("namespace")
def core_namespace(x):
    return x.ns


def _split_name(args):
    if len(args) == 2:
        return args[0], args[1]
    text = args[0]
    if "/" in text and text != "/":
        ns, _, name = text.partition("/")
        return ns, name
    return None, text


@core_fn("keyword")
def core_keyword(*args):
    if len(args) == 1 and isinstance(args[0], Keyword):
        return args[0]
    return Keyword(*_split_name(args))


@core_fn("symbol")
def core_symbol(*args):
    if len(args) == 1 and isinstance(args[0], Symbol):
        return args[0]
    return Symbol(*_split_name(args))


@core_fn("gensym")
def core_gensym(prefix="G__"):
    return Symbol(None, f"{prefix}{next(_GENSYM_COUNTER)}")


# --- Printing ---

@core_fn("pr-str")
def core_pr_str(*xs):
    return pr_str(*xs)


@core_fn("prn")
def core_prn(*xs):
    print(pr_str(*xs))
    return None


@core_fn("print")
def core_print(*xs):
    print(print_str(*xs), end="")
    return None


@core_fn("println")
def core_println(*xs):
    print(print_str(*xs))
    return None


# --- Atoms ---

@core_fn("atom")
def core_atom(x):
    return Atom(x)


@core_fn("deref")
def core_deref(ref):
    if isinstance(ref, Var):
        return ref.deref()
    return ref.value


@core_fn("reset!")
def core_reset_bang(atom, value):
    atom.value = value
    return value


@core_fn("swap!")
def core_swap_bang(atom, f, *args):
    atom.value = f(atom.value, *args)
    return atom.value


@core_fn("ex-message")
def core_ex_message(e):
    return str(e)


# --- REPL result history ---

sumi_def(CORE_NS_NAME, "*1", None)
sumi_def(CORE_NS_NAME, "*2", None)
sumi_def(CORE_NS_NAME, "*3", None)

_PROVIDED.add(CORE_NS_NAME)
