"""
Context Resolver

parse(buffer) answers "what is the user invoking at the cursor?" for a PHP
buffer that ends exactly at the cursor. It composes the scanner, the bracket
tracker, the symbol table and the argument analyzer, each run once:

    buffer -> tokens -> (symbol table, bracket frames) -> arguments -> context

The result is a CompletionContext, or None when the cursor is not inside the
argument list of a recognisable call. Nothing here raises for malformed input;
parts that cannot be resolved are left as None.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from phpctx import Offset, TokenIndex
from phpctx.analysis.arguments import analyze_arguments
from phpctx.analysis.symbols import SymbolTable, build_symbol_table
from phpctx.errors import CursorOutOfRange
from phpctx.reader.brackets import BracketTracker, track
from phpctx.reader.scanner import scan
from phpctx.types.context import CompletionContext
from phpctx.types.definitions import TypeRef
from phpctx.types.token import Token

logger = logging.getLogger(__name__)

MEMBER_OPERATORS = ("->", "?->", "::")


class _Receivers:
    """Resolves the type of the expression ending at a token index."""

    def __init__(self, tokens: Sequence[Token], tracker: BracketTracker, symbols: SymbolTable):
        self.tokens = tokens
        self.tracker = tracker
        self.symbols = symbols

    def resolve(self, index: TokenIndex, operator: str) -> Optional[TypeRef]:
        tokens = self.tokens
        # Walk back through `->name(...)` / `::name(...)` links to the chain's base
        while index >= 0 and tokens[index].kind == "bracket_close" and tokens[index].text == ")":
            frame = self.tracker.frame_closed_at(index)
            if frame is None:
                return None
            if frame.role == "group":
                # (new Foo)->bar(
                return self._parenthesized(frame.open_index, index)
            if not frame.is_call:
                return None
            head = frame.head_index
            if head < 1 or tokens[head].kind not in ("identifier", "keyword"):
                return None
            before = tokens[head - 1]
            if before.is_keyword("new"):
                return self.symbols.resolve(tokens[head].text)
            if not before.is_op(*MEMBER_OPERATORS):
                logger.debug("chain base %s() is a plain call, leaving fqn unresolved", tokens[head].text)
                return None
            operator = before.text
            index = head - 2

        if index < 0:
            return None
        return self._base(index, operator)

    def _parenthesized(self, start: TokenIndex, end: TokenIndex) -> Optional[TypeRef]:
        tokens = self.tokens
        if start + 2 < end and tokens[start + 1].is_keyword("new") and tokens[start + 2].kind == "identifier":
            return self.symbols.resolve(tokens[start + 2].text)
        return None

    def _base(self, index: TokenIndex, operator: str) -> Optional[TypeRef]:
        tok = self.tokens[index]
        if tok.kind == "variable":
            if tok.text == "$this":
                cls = self.symbols.class_definition
                return TypeRef(written=cls.name, fqn=cls.fqn) if cls else None
            return self.symbols.variable_type(tok.text)
        if tok.kind == "identifier":
            if operator == "::":
                return self.symbols.resolve(tok.text)
            # $this->prop->method(
            if index >= 2 and self.tokens[index - 1].is_op("->", "?->") and self.tokens[index - 2].text == "$this":
                return self.symbols.property_type(tok.text)
        return None


def _call_head(tokens: Sequence[Token], head: Optional[TokenIndex]) -> Tuple[Optional[str], Optional[TokenIndex], str]:
    """(function name, receiver end index, operator) for a call whose name sits at `head`."""
    if head is None or head < 0 or tokens[head].kind not in ("identifier", "keyword"):
        return None, None, ""
    name = tokens[head].text.lstrip("\\")
    if head >= 1:
        before = tokens[head - 1]
        if before.is_op(*MEMBER_OPERATORS):
            return name, head - 2, before.text
        if before.is_keyword("new"):
            return "__construct", head, "new"
    return name, None, ""


def _logical_tokens(buffer: str) -> Tuple[List[Token], bool]:
    """Tokens without trivia, and whether the buffer ends in an open comment."""
    tokens: List[Token] = []
    last: Optional[Token] = None
    for tok in scan(buffer, trivia=True):
        last = tok
        if not tok.is_trivia:
            tokens.append(tok)
    in_comment = last is not None and last.kind == "comment" and not last.terminated
    if in_comment:
        logger.debug("cursor is inside a comment")
    return tokens, in_comment


def parse(buffer: str) -> Optional[CompletionContext]:
    """Completion context at the end of `buffer`, or None if nothing is completable."""
    tokens, in_comment = _logical_tokens(buffer)
    tracker = track(tokens, in_comment=in_comment)
    symbols = build_symbol_table(tokens, tracker)

    frame = tracker.nearest_call()
    if frame is None:
        logger.debug("no call frame open at the cursor")
        return None

    function, receiver_end, operator = _call_head(tokens, frame.head_index)
    if function is None:
        logger.debug("call at offset %d has no static name", frame.offset)
        return None

    ref: Optional[TypeRef] = None
    if operator == "new":
        ref = symbols.resolve(tokens[receiver_end].text)
    elif receiver_end is not None and receiver_end >= 0:
        ref = _Receivers(tokens, tracker, symbols).resolve(receiver_end, operator)

    parameters, param = analyze_arguments(tokens, tracker, frame)
    cls = symbols.class_definition

    return CompletionContext(
        function=function,
        class_name=ref.written if ref else None,
        fqn=ref.fqn if ref else None,
        class_definition=cls.fqn if cls else None,
        class_extends=cls.extends if cls else None,
        class_implements=list(cls.implements) if cls else [],
        function_definition=symbols.function_definition,
        param=param,
        parameters=parameters,
    )


def parse_at(text: str, offset: Offset) -> Optional[CompletionContext]:
    """Parse a whole document as if the cursor were at `offset`."""
    if offset < 0 or offset > len(text):
        raise CursorOutOfRange(f"offset {offset} outside document of length {len(text)}")
    return parse(text[:offset])
