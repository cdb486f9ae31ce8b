from __future__ import annotations

from bisect import bisect_left
from typing import Dict, List, Optional, Sequence, Tuple

from phpctx import TokenIndex
from phpctx.reader.brackets import BracketTracker
from phpctx.types.context import ParamContext
from phpctx.types.frame import BracketFrame
from phpctx.types.token import Token, WORD_KINDS

Segment = Tuple[TokenIndex, TokenIndex]

# frame -> indexes of the ',' and '=>' tokens that belong to it directly
Separators = Dict[Optional[BracketFrame], List[TokenIndex]]


def index_separators(
    tokens: Sequence[Token],
    tracker: BracketTracker,
    start: TokenIndex,
    end: TokenIndex,
) -> Separators:
    """Group the ',' and '=>' tokens in [start, end) by their enclosing frame.

    One pass serves every nesting level, so each frame only reads its own
    separators.
    """
    found: Separators = {}
    for k in range(start, end):
        if tokens[k].is_op(",", "=>"):
            found.setdefault(tracker.enclosing(k), []).append(k)
    return found


def _segments(start: TokenIndex, end: TokenIndex, commas: Sequence[TokenIndex]) -> List[Segment]:
    segments: List[Segment] = []
    for k in commas:
        segments.append((start, k))
        start = k + 1
    segments.append((start, end))
    return segments


def _only(tokens: Sequence[Token], indexes: Sequence[TokenIndex], op: str) -> List[TokenIndex]:
    return [k for k in indexes if tokens[k].is_op(op)]


def split_top_level(
    tokens: Sequence[Token],
    tracker: BracketTracker,
    frame: BracketFrame,
    end: Optional[TokenIndex] = None,
) -> List[Segment]:
    """Split a frame's contents on commas that belong to the frame itself.

    Commas nested in brackets, closures or arrays passed inside the frame
    do not split. The last segment runs to `end` (default: the cursor).
    """
    if end is None:
        end = frame.close_index if frame.close_index is not None else len(tokens)
    separators = index_separators(tokens, tracker, frame.open_index + 1, end)
    return _segments(frame.open_index + 1, end, _only(tokens, separators.get(frame, []), ","))


def collapse(tokens: Sequence[Token]) -> str:
    """Render tokens as one line, keeping a space only between two words."""
    parts: List[str] = []
    prev: Optional[Token] = None
    for tok in tokens:
        if prev is not None and prev.kind in WORD_KINDS and tok.kind in WORD_KINDS:
            parts.append(" ")
        parts.append(tok.text)
        prev = tok
    return "".join(parts)


def render_argument(tokens: Sequence[Token]) -> str:
    # a lone string literal is reported by its contents
    if len(tokens) == 1 and tokens[0].kind == "string":
        return tokens[0].string_value()
    return collapse(tokens)


def _string_literal(tokens: Sequence[Token], start: TokenIndex, end: TokenIndex) -> Optional[str]:
    if end - start == 1 and tokens[start].kind == "string":
        return tokens[start].string_value()
    return None


def _open_array_at(
    tokens: Sequence[Token],
    tracker: BracketTracker,
    start: TokenIndex,
    end: TokenIndex,
) -> Optional[BracketFrame]:
    """The still-open array literal (`[` or `array(`) starting a segment."""
    if start >= end:
        return None
    if tokens[start].kind == "identifier" and tokens[start].text.lower() == "array":
        start += 1
    frame = tracker.frame_opened_at(start)
    if frame is not None and frame.role == "array" and frame.is_open:
        return frame
    return None


def _first_between(indexes: Sequence[TokenIndex], start: TokenIndex, end: TokenIndex) -> Optional[TokenIndex]:
    pos = bisect_left(indexes, start)
    if pos < len(indexes) and indexes[pos] < end:
        return indexes[pos]
    return None


def _array_position(
    tokens: Sequence[Token],
    tracker: BracketTracker,
    array: BracketFrame,
    param: ParamContext,
    separators: Separators,
) -> None:
    end = len(tokens)
    while True:
        own = separators.get(array, [])
        arrows = _only(tokens, own, "=>")
        entries = _segments(array.open_index + 1, end, _only(tokens, own, ","))
        keys: List[str] = []
        for start, stop in entries[:-1]:
            arrow = _first_between(arrows, start, stop)
            key = _string_literal(tokens, start, arrow if arrow is not None else stop)
            if key is not None:
                keys.append(key)

        start, stop = entries[-1]
        arrow = _first_between(arrows, start, stop)
        if arrow is None:
            param.keys = keys
            param.key = None
            param.is_key = stop == start or _string_literal(tokens, start, stop) is not None
            return

        nested = _open_array_at(tokens, tracker, arrow + 1, stop)
        if nested is not None:
            # 'key' => [ ... : the nested array starts over with its own keys
            array = nested
            continue

        param.keys = keys
        param.key = _string_literal(tokens, start, arrow)
        param.is_key = False
        return


def analyze_arguments(
    tokens: Sequence[Token],
    tracker: BracketTracker,
    frame: BracketFrame,
) -> Tuple[List[str], ParamContext]:
    """Already-typed arguments of an open call and the cursor's argument slot."""
    end = len(tokens)
    separators = index_separators(tokens, tracker, frame.open_index + 1, end)
    segments = _segments(frame.open_index + 1, end, _only(tokens, separators.get(frame, []), ","))
    parameters = [render_argument(tokens[start:stop]) for start, stop in segments[:-1]]
    param = ParamContext(index=len(parameters))

    start, stop = segments[-1]
    array = _open_array_at(tokens, tracker, start, stop)
    if array is not None:
        param.is_array = True
        _array_position(tokens, tracker, array, param, separators)
    return parameters, param
