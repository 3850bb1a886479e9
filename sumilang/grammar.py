"""
Sumi Grammar Definition.

This module contains the Lark grammar for Sumi source text.
"""

sumi_grammar = r"""
    start: form*

    ?form: list
         | vector
         | map
         | quote
         | deref
         | atom

    list: "(" form* ")"
    vector: "[" form* "]"
    map: "{" form* "}"
    quote: "'" form
    deref: "@" form

    ?atom: STRING
         | NUMBER
         | KEYWORD
         | SYMBOL

    // --- Terminals ---
    STRING: /"(?:[^"\\]|\\.)*"/
    NUMBER.2: /[+-]?\d+(\.\d+)?([eE][+-]?\d+)?(?![^\s()\[\]{}"';,@])/
    KEYWORD: /:[^\s()\[\]{}"';,@:][^\s()\[\]{}"';,@]*/
    SYMBOL: /[^\s\d()\[\]{}"';,@:#~`^\\][^\s()\[\]{}"';,@]*/

    COMMENT: /;[^\n]*/
    WHITESPACE: /[\s,]+/

    %ignore WHITESPACE
    %ignore COMMENT
"""
