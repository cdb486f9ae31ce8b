"""
  PHP Lexical Scanner

- Streaming, lazy tokenization of a buffer that usually ends mid-statement
- Never raises: unterminated strings, comments and heredocs run to the end of
  the buffer and are flagged with ``terminated=False``
- Emits Token objects:

    - identifiers -> "identifier" (namespaced names such as A\\B\\C are one token)
    - $name -> "variable"
    - reserved words used by the analyzers -> "keyword"
    - '..', "..", `..`, heredoc/nowdoc -> "string"
    - ( [ { -> "bracket_open", ) ] } -> "bracket_close"
    - everything else -> "operator" (::, ->, ?->, =>, ',', ';', ...)
    - whitespace, comments, <?php / ?> and inline HTML -> trivia, elided by default
"""

from __future__ import annotations

import re
from typing import Iterator, Optional

from phpctx.types.token import Token


KEYWORDS = frozenset({
    "class", "function", "fn", "namespace", "use", "new", "extends",
    "implements", "as", "interface", "trait", "enum",
})

# After these operators a reserved word is a member name (Foo::class, $q->use()).
MEMBER_OPERATORS = frozenset({"->", "?->", "::"})

_NAME = r"[^\W\d]\w*"

TOKEN_RE = re.compile(
    r"(?P<whitespace>\s+)"
    r"|(?P<comment>(?://|#(?!\[))(?:[^\r\n?]|\?(?!>))*|/\*.*?(?:\*/|\Z))"  # '#[' opens an attribute
    r"|(?P<open_tag><\?(?:(?i:php)\b|=)?|\?>)"
    r"|(?P<heredoc><<<[ \t]*(?P<hd_quote>[\"']?)(?P<hd_label>" + _NAME + r")(?P=hd_quote))"
    r"|(?P<string>'(?:[^'\\]|\\.?)*'?|\"(?:[^\"\\]|\\.?)*\"?|`(?:[^`\\]|\\.?)*`?)"
    r"|(?P<variable>\$" + _NAME + r")"
    r"|(?P<number>0[xX][0-9a-fA-F_]+|0[bB][01_]+|\d[\d_]*(?:\.[\d_]*)?(?:[eE][+-]?\d+)?|\.\d[\d_]*)"
    r"|(?P<identifier>\\?" + _NAME + r"(?:\\" + _NAME + r")*\\?)"
    r"|(?P<operator>\?->|->|::|=>|\.\.\.|<=>|\*\*=?|===|!==|==|!=|<>|<=|>=|&&|\|\||\?\?=?"
    r"|\+\+|--|<<=?|>>=?|[-+*/%.&|^]=|[-+*/%.&|^!~<>?:@=;,#$\\])"
    r"|(?P<bracket_open>[(\[{])"
    r"|(?P<bracket_close>[)\]}])"
    r"|(?P<other>.)",  # fallback: any stray character
    re.DOTALL,
)

KIND_GROUPS = (
    "whitespace", "comment", "open_tag", "heredoc", "string", "variable",
    "number", "identifier", "operator", "bracket_open", "bracket_close", "other",
)

INLINE_HTML_END_RE = re.compile(r"<\?(?:(?i:php)\b|=)?")


def _heredoc_end(source: str, body_start: int, label: str) -> Optional[int]:
    closing = re.compile(r"^[ \t]*" + re.escape(label) + r"\b", re.MULTILINE)
    m = closing.search(source, body_start)
    return m.end() if m else None


def scan(source: str, *, trivia: bool = False) -> Iterator[Token]:
    """Token generator over a (possibly truncated) PHP buffer.

    Calling it again restarts the scan; the buffer itself is never modified.
    """
    pos = 0
    n = len(source)
    prev: Optional[Token] = None

    while pos < n:
        m = TOKEN_RE.match(source, pos)
        kind = next(nm for nm in KIND_GROUPS if m.group(nm) is not None)
        end = m.end()
        terminated = True

        if kind == "heredoc":
            # Body starts on the line after the opener
            newline = source.find("\n", end)
            closing = _heredoc_end(source, newline + 1, m.group("hd_label")) if newline != -1 else None
            if closing is None:
                end, terminated = n, False
            else:
                end = closing
            kind = "string"
        elif kind == "string":
            text = m.group(kind)
            terminated = _string_terminated(text)
        elif kind == "comment":
            text = m.group(kind)
            if text.startswith("/*"):
                terminated = len(text) >= 4 and text.endswith("*/")
            else:
                # a line comment is still open when nothing follows it
                terminated = end < n
        elif kind == "other":
            kind = "operator"

        text = source[pos:end]
        if kind == "identifier" and "\\" not in text and text.lower() in KEYWORDS:
            if prev is None or not prev.is_op(*MEMBER_OPERATORS):
                kind = "keyword"

        token = Token(kind, text, pos, terminated)
        pos = end

        if kind == "open_tag" and text == "?>":
            if trivia:
                yield token
            # Everything up to the next opening tag is inline HTML
            html_end = INLINE_HTML_END_RE.search(source, pos)
            stop = html_end.start() if html_end else n
            if stop > pos:
                if trivia:
                    yield Token("inline_html", source[pos:stop], pos)
                pos = stop
            continue

        if token.is_trivia:
            if trivia:
                yield token
            continue

        prev = token
        yield token


def _string_terminated(text: str) -> bool:
    quote = text[0]
    if len(text) < 2 or not text.endswith(quote):
        return False
    # The closing quote must not be escaped: count the backslashes before it
    backslashes = len(text[1:-1]) - len(text[1:-1].rstrip("\\"))
    return backslashes % 2 == 0
