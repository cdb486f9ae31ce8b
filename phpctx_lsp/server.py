from __future__ import annotations

"""
A minimal pygls-based Language Server exposing the phpctx resolver.

Features:
- Text synchronization and document store
- Signature Help: the call around the cursor with its active argument
- Command `phpctx.completionContext`: the raw completion context at a position,
  for completion providers living in the editor extension

Note: the server owns no completion registries. Providers map the returned
context (function / fqn / param) against their own data.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Dict, Optional

from pygls.server import LanguageServer
from lsprotocol.types import (
    TextDocumentSyncKind,
    DidOpenTextDocumentParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    SignatureHelp,
    SignatureHelpOptions,
    SignatureHelpParams,
    SignatureInformation,
    ParameterInformation,
)

from phpctx import Offset, __version__
from phpctx.config import get_log_level, get_trigger_characters
from phpctx.errors import CursorOutOfRange, PhpCtxError
from phpctx.resolver import parse_at
from phpctx.types.context import CompletionContext

logger = logging.getLogger(__name__)

CMD_COMPLETION_CONTEXT = "phpctx.completionContext"


@dataclass
class DocumentState:
    text: str


class PhpCtxLanguageServer(LanguageServer):
    CMD_NAME = "phpctx-ls"

    def __init__(self):
        super().__init__(self.CMD_NAME, __version__, text_document_sync_kind=TextDocumentSyncKind.Full)
        self.documents: Dict[str, DocumentState] = {}


ls = PhpCtxLanguageServer()


# --- Text sync ---
@ls.feature("textDocument/didOpen")
def did_open(params: DidOpenTextDocumentParams):
    uri = params.text_document.uri
    ls.documents[uri] = DocumentState(text=params.text_document.text or "")


@ls.feature("textDocument/didChange")
def did_change(params: DidChangeTextDocumentParams):
    uri = params.text_document.uri
    if params.content_changes:
        text = params.content_changes[-1].text
    else:
        text = ls.documents.get(uri, DocumentState("")).text
    ls.documents[uri] = DocumentState(text=text)


@ls.feature("textDocument/didClose")
def did_close(params: DidCloseTextDocumentParams):
    ls.documents.pop(params.text_document.uri, None)


# --- Helpers ---

def utf16_code_units(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


def codepoint_index_from_utf16_units(text: str, utf16_units: int) -> int:
    remaining = utf16_units
    idx = 0
    while idx < len(text):
        units = 1 if ord(text[idx]) <= 0xFFFF else 2
        if remaining < units:
            break
        remaining -= units
        idx += 1
    return idx


def offset_at(text: str, line: int, character: int) -> Offset:
    """Character offset of a 0-based LSP position (character in UTF-16 units)."""
    lines = text.split("\n")
    if line < 0 or line >= len(lines):
        raise CursorOutOfRange(f"line {line} outside document of {len(lines)} lines")
    line_text = lines[line]
    if character < 0 or character > utf16_code_units(line_text):
        raise CursorOutOfRange(f"character {character} outside line {line}")
    return sum(len(ln) + 1 for ln in lines[:line]) + codepoint_index_from_utf16_units(line_text, character)


def context_at(text: str, line: int, character: int) -> Optional[CompletionContext]:
    return parse_at(text, offset_at(text, line, character))


def _context_for(uri: str, line: int, character: int) -> Optional[CompletionContext]:
    state = ls.documents.get(uri)
    if not state:
        return None
    try:
        return context_at(state.text, line, character)
    except PhpCtxError as ex:
        logger.debug("no context for %s at %d:%d: %s", uri, line, character, ex)
        return None


def signature_for(context: CompletionContext) -> SignatureHelp:
    prefix = f"{context.class_name}::" if context.class_name else ""
    slots = list(context.parameters) + ["…"]
    label = f"{prefix}{context.function}({', '.join(slots)})"
    parameters = [ParameterInformation(label=p) for p in slots]
    return SignatureHelp(
        signatures=[SignatureInformation(label=label, parameters=parameters)],
        active_signature=0,
        active_parameter=context.param.index,
    )


# --- Signature Help ---
@ls.feature("textDocument/signatureHelp", SignatureHelpOptions(trigger_characters=get_trigger_characters()))
def on_signature_help(params: SignatureHelpParams) -> Optional[SignatureHelp]:
    pos = params.position
    context = _context_for(params.text_document.uri, pos.line, pos.character)
    if context is None:
        return None
    return signature_for(context)


# --- Commands ---
@ls.command(CMD_COMPLETION_CONTEXT)
def completion_context_command(server: PhpCtxLanguageServer, *args):
    # pygls hands over the command arguments as one list
    arguments = args[0] if len(args) == 1 and isinstance(args[0], (list, tuple)) else args
    if len(arguments) != 3:
        return None
    uri, line, character = arguments
    context = _context_for(uri, int(line), int(character))
    return context.to_dict() if context else None


def main():
    logging.basicConfig(
        level=get_log_level(),
        stream=sys.stderr,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    # Run the language server over stdio
    ls.start_io()


if __name__ == "__main__":
    main()
