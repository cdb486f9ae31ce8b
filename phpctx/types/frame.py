from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from phpctx import Offset, TokenIndex


@dataclass(eq=False)
class BracketFrame:
    """An opened delimiter.

    role is one of:
    - "call": ``(`` of a function/method invocation; head_index points at the
      token right before it
    - "params": parameter list of a declaration, closure or ``use (...)``
    - "group": grouping or control-structure parenthesis
    - "array": ``[`` or ``array(``
    - "block": ``{``
    - "string": an unterminated trailing string literal
    """

    kind: str
    open_index: TokenIndex
    offset: Offset
    role: str
    head_index: Optional[TokenIndex] = None
    parent: Optional[BracketFrame] = field(default=None, repr=False)
    close_index: Optional[TokenIndex] = None

    @property
    def is_open(self) -> bool:
        return self.close_index is None

    @property
    def is_call(self) -> bool:
        return self.role == "call"

    def ancestors(self):
        frame = self.parent
        while frame is not None:
            yield frame
            frame = frame.parent
