# ==========================================
# NAME MUNGING
# ==========================================
import keyword

CHAR_MAP = {
    "-": "_",
    ".": "_DOT_",
    ":": "_COLON_",
    "+": "_PLUS_",
    ">": "_GT_",
    "<": "_LT_",
    "=": "_EQ_",
    "~": "_TILDE_",
    "!": "_BANG_",
    "@": "_CIRCA_",
    "#": "_SHARP_",
    "'": "_SINGLEQUOTE_",
    "%": "_PERCENT_",
    "^": "_CARET_",
    "&": "_AMPERSAND_",
    "*": "_STAR_",
    "|": "_BAR_",
    "\\": "_BSLASH_",
    "/": "_SLASH_",
    "?": "_QMARK_",
}


def munge(name: str) -> str:
    """Turn a Sumi name into a valid Python identifier (``a-b?`` -> ``a_b_QMARK_``)."""
    out = []
    for c in name:
        if c in CHAR_MAP:
            out.append(CHAR_MAP[c])
        elif c.isalnum() or c == "_":
            out.append(c)
        else:
            out.append(f"_U{ord(c):04X}_")
    s = "".join(out)
    if s[:1].isdigit():
        s = "_" + s
    if keyword.iskeyword(s):
        s += "_"
    return s
