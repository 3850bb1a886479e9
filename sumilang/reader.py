"""
The Sumi reader: source text -> forms.

Parsing is done by Lark with the grammar in ``sumilang.grammar``; the
``FormBuilder`` transformer turns the parse tree into the form types of
``sumilang.forms``. ``FormReader`` feeds an interactive, line-oriented
stream through the same parser one complete form at a time.
"""
import functools
import json

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken, VisitError

from sumilang.errors import SumiReadError, get_line_context
from sumilang.forms import EOF, Keyword, ListForm, MapForm, Symbol, VectorForm
from sumilang.grammar import sumi_grammar

_LITERALS = {"nil": None, "true": True, "false": False}


class FormBuilder(Transformer):
    """Transforms the Lark parse tree into Sumi forms."""

    def start(self, items):
        return list(items)

    @v_args(meta=True)
    def list(self, meta, items):
        return ListForm(items, line=getattr(meta, "line", None))

    @v_args(meta=True)
    def vector(self, meta, items):
        return VectorForm(items, line=getattr(meta, "line", None))

    @v_args(meta=True)
    def map(self, meta, items):
        if len(items) % 2:
            raise ValueError("Map literal must contain an even number of forms")
        return MapForm(items, line=getattr(meta, "line", None))

    @v_args(meta=True)
    def quote(self, meta, items):
        return ListForm([Symbol("quote"), items[0]], line=getattr(meta, "line", None))

    @v_args(meta=True)
    def deref(self, meta, items):
        return ListForm([Symbol("deref"), items[0]], line=getattr(meta, "line", None))

    def STRING(self, t):
        # Sumi string escapes are the JSON ones; raw newlines are allowed
        return json.loads(str(t), strict=False)

    def NUMBER(self, t):
        text = str(t)
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)

    def KEYWORD(self, t):
        return Keyword(str(t)[1:])

    def SYMBOL(self, t):
        text = str(t)
        if text in _LITERALS:
            return _LITERALS[text]
        return Symbol(text)


@functools.lru_cache(maxsize=None)
def _parser():
    return Lark(sumi_grammar, parser='lalr', propagate_positions=True)


def _describe(error):
    if isinstance(error, UnexpectedEOF):
        return "EOF while reading"
    if isinstance(error, UnexpectedToken):
        if error.token.type == '$END':
            return "EOF while reading"
        return f"Unexpected {str(error.token)!r}"
    if isinstance(error, UnexpectedCharacters):
        return f"Unexpected character {error.char!r}"
    return str(error)


def read_all(source, first_line=1):
    """Read every form in ``source``.

    Args:
        source: Sumi source text
        first_line: Line number of the first line of ``source`` (for metadata)

    Returns:
        List of forms, in source order

    Raises:
        SumiReadError: If the text is not well-formed
    """
    padded = "\n" * (first_line - 1) + source
    try:
        tree = _parser().parse(padded)
    except UnexpectedInput as e:
        line = e.line if isinstance(e.line, int) and e.line > 0 else None
        column = e.column if isinstance(e.column, int) and e.column > 0 else None
        raise SumiReadError(
            _describe(e),
            line_number=line,
            column=column,
            context=get_line_context(padded, line),
        ) from e
    try:
        return FormBuilder().transform(tree)
    except VisitError as e:
        raise SumiReadError(str(e.orig_exc)) from e


def read_string(source):
    """Read the first form of ``source``."""
    forms = read_all(source)
    if not forms:
        raise SumiReadError("EOF while reading")
    return forms[0]


_DELIMITERS = set('()[]{}";@\',')


def _complete_prefix(text):
    """Length of the longest prefix of ``text`` made only of complete top-level forms.

    An unmatched closing delimiter ends the prefix there; it raises
    SumiReadError only when no complete form comes before it.
    """
    depth = 0
    end = 0
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == '"':
            j = i + 1
            while j < n and text[j] != '"':
                j += 2 if text[j] == '\\' else 1
            if j >= n:
                return end
            i = j + 1
            if depth == 0:
                end = i
            continue
        if c == ';':
            while i < n and text[i] != '\n':
                i += 1
            continue
        if c in '([{':
            depth += 1
        elif c in ')]}':
            depth -= 1
            if depth < 0:
                if end:
                    return end
                raise SumiReadError(f"Unmatched delimiter: {c}")
            if depth == 0:
                end = i + 1
        elif c in "'@" or c.isspace() or c == ',':
            pass
        else:
            while i < n and not text[i].isspace() and text[i] not in _DELIMITERS:
                i += 1
            if depth == 0:
                end = i
            continue
        i += 1
    return end


def _is_blank(text):
    """True when ``text`` holds nothing but whitespace, commas and comments."""
    for line in text.split("\n"):
        stripped = line.split(";", 1)[0].replace(",", " ").strip()
        if stripped:
            return False
    return True


class FormReader:
    """Reads forms one at a time from a line-oriented text stream.

    Lines are buffered until they hold at least one complete form; any
    incomplete tail stays buffered for the next call. Forms carry the
    absolute line number of the stream they came from.
    """

    def __init__(self, stream):
        self.stream = stream
        self.buffer = ""
        self.pending = []
        self._buffer_line = 1   # line number of the buffer's first character
        self._lines_read = 0

    def reset(self):
        """Drop everything buffered (used after a read fault)."""
        self._buffer_line = self._lines_read + 1
        self.buffer = ""
        self.pending = []

    def _take(self, end):
        text = self.buffer[:end]
        start = self._buffer_line
        self.buffer = self.buffer[end:]
        self._buffer_line = start + text.count("\n")
        return text, start

    def read(self):
        """Return the next form, or ``EOF`` when the stream is exhausted."""
        while not self.pending:
            try:
                end = _complete_prefix(self.buffer)
                if end:
                    text, start = self._take(end)
                    self.pending.extend(read_all(text, first_line=start))
                    continue
            except SumiReadError:
                self.reset()
                raise

            line = self.stream.readline()
            if not line:
                if not _is_blank(self.buffer):
                    self.reset()
                    raise SumiReadError("EOF while reading")
                return EOF
            self._lines_read += 1
            if _is_blank(self.buffer):
                self._buffer_line = self._lines_read
                self.buffer = line
            else:
                self.buffer += line
        return self.pending.pop(0)
