from __future__ import annotations

from dataclasses import dataclass

from phpctx import Offset

# Token kinds that carry no syntax for the analyzers.
TRIVIA_KINDS = frozenset({"whitespace", "comment", "open_tag", "inline_html"})

# Kinds that need a separating space when two of them are adjacent.
WORD_KINDS = frozenset({"identifier", "keyword", "variable", "number"})


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    start: Offset
    terminated: bool = True

    @property
    def end(self) -> Offset:
        return self.start + len(self.text)

    @property
    def is_trivia(self) -> bool:
        return self.kind in TRIVIA_KINDS

    def is_op(self, *ops: str) -> bool:
        return self.kind == "operator" and self.text in ops

    def is_keyword(self, *words: str) -> bool:
        return self.kind == "keyword" and self.text.lower() in words

    def string_value(self) -> str:
        """Literal contents of a quoted string token, without its quotes."""
        text = self.text
        if not text or text[0] not in "'\"`":
            return text
        body = text[1:]
        if self.terminated and body.endswith(text[0]):
            body = body[:-1]
        return body
