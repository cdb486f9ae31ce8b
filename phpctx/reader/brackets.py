"""
Bracket/Delimiter Tracker

One forward pass over the logical token list with an explicit stack. Every
opener becomes a BracketFrame linked to its parent, so the stack of open frames
at any token index is the innermost frame plus its ancestors. Closers that do
not match anything are ignored; openers that are never closed stay open through
the end of the buffer, which is the normal state at the cursor.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from phpctx import TokenIndex
from phpctx.types.frame import BracketFrame
from phpctx.types.token import Token


PAIRS = {")": "(", "]": "[", "}": "{"}

# Identifiers followed by '(' that open a control structure, not a call.
NON_CALL_NAMES = frozenset({
    "if", "elseif", "else", "while", "for", "foreach", "switch", "match",
    "catch", "declare", "return", "echo", "print", "and", "or", "xor",
    "throw", "yield", "case", "clone", "include", "include_once", "require",
    "require_once", "instanceof", "insteadof",
})


def classify_paren(tokens: Sequence[Token], index: TokenIndex) -> str:
    """Role of the '(' at tokens[index], judged from the tokens before it."""
    if index == 0:
        return "group"
    prev = tokens[index - 1]
    if prev.kind == "keyword":
        if prev.is_keyword("function", "fn", "use"):
            return "params"
        return "group"
    if prev.kind == "identifier":
        name = prev.text.lower()
        if name == "array":
            return "array"
        if name in NON_CALL_NAMES:
            return "group"
        if index >= 2 and tokens[index - 2].is_keyword("function", "fn"):
            return "params"
        return "call"
    if prev.kind == "variable":
        return "call"
    if prev.kind == "bracket_close" and prev.text in ")]":
        return "call"
    return "group"


class BracketTracker:
    def __init__(self, tokens: Sequence[Token], in_comment: bool = False):
        self.tokens = tokens
        # the buffer ends inside a comment that is still open
        self.in_comment = in_comment
        self.frames: List[BracketFrame] = []
        self._enclosing: List[Optional[BracketFrame]] = []
        self._opened: Dict[TokenIndex, BracketFrame] = {}
        self._closed: Dict[TokenIndex, BracketFrame] = {}
        self._trailing_string: Optional[BracketFrame] = None
        self._run()

    def _run(self) -> None:
        stack: List[BracketFrame] = []
        tokens = self.tokens
        for i, tok in enumerate(tokens):
            top = stack[-1] if stack else None
            if tok.kind == "bracket_open":
                if tok.text == "(":
                    role = classify_paren(tokens, i)
                else:
                    role = "array" if tok.text == "[" else "block"
                frame = BracketFrame(
                    kind=tok.text,
                    open_index=i,
                    offset=tok.start,
                    role=role,
                    head_index=i - 1 if role == "call" else None,
                    parent=top,
                )
                self.frames.append(frame)
                self._opened[i] = frame
                self._enclosing.append(top)
                stack.append(frame)
            elif tok.kind == "bracket_close":
                opener = PAIRS[tok.text]
                depth = len(stack) - 1
                while depth >= 0 and stack[depth].kind != opener:
                    depth -= 1
                if depth >= 0:
                    # Anything opened above the match is closed along with it
                    for frame in stack[depth:]:
                        frame.close_index = i
                    self._closed[i] = stack[depth]
                    del stack[depth:]
                self._enclosing.append(stack[-1] if stack else None)
            else:
                self._enclosing.append(top)

        if tokens and tokens[-1].kind == "string" and not tokens[-1].terminated:
            last = len(tokens) - 1
            self._trailing_string = BracketFrame(
                kind=tokens[-1].text[0],
                open_index=last,
                offset=tokens[-1].start,
                role="string",
                parent=self._enclosing[last],
            )

    # --- queries ---

    def enclosing(self, index: TokenIndex) -> Optional[BracketFrame]:
        """Innermost frame open at tokens[index]; brackets belong to their parent."""
        return self._enclosing[index]

    def frame_opened_at(self, index: TokenIndex) -> Optional[BracketFrame]:
        return self._opened.get(index)

    def frame_closed_at(self, index: TokenIndex) -> Optional[BracketFrame]:
        return self._closed.get(index)

    def open_at_end(self) -> Optional[BracketFrame]:
        """Innermost frame still open at the cursor (the end of the buffer)."""
        if self._trailing_string is not None:
            return self._trailing_string
        if not self.tokens:
            return None
        last = len(self.tokens) - 1
        frame = self._opened.get(last) or self._enclosing[last]
        return frame if frame is None or frame.is_open else None

    def stack_at(self, index: Optional[TokenIndex] = None) -> List[BracketFrame]:
        """Open frames at a token index (default: the cursor), innermost first."""
        if index is None:
            frame = self.open_at_end()
        else:
            frame = self._enclosing[index]
        if frame is None:
            return []
        return [frame, *frame.ancestors()]

    def nearest_call(self) -> Optional[BracketFrame]:
        """Innermost call frame whose argument list contains the cursor.

        The search stops at a '{' block or a parameter list: the cursor is then
        in statement or declaration context, not in an argument. Nothing is
        returned while the cursor sits in an open comment.
        """
        if self.in_comment:
            return None
        for frame in self.stack_at():
            if frame.is_call:
                return frame
            if frame.role in ("block", "params"):
                return None
        return None


def track(tokens: Sequence[Token], *, in_comment: bool = False) -> BracketTracker:
    return BracketTracker(tokens, in_comment)
