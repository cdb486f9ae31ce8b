import pytest
from lsprotocol.types import (
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    SignatureHelpParams,
    TextDocumentContentChangeEvent_Type2,
    TextDocumentIdentifier,
    TextDocumentItem,
    VersionedTextDocumentIdentifier,
)

from phpctx.errors import CursorOutOfRange
from phpctx_lsp import server
from phpctx_lsp.server import (
    completion_context_command,
    context_at,
    did_change,
    did_close,
    did_open,
    ls,
    offset_at,
    on_signature_help,
    signature_for,
)

URI = "file:///app/routes/web.php"
TEXT = "<?php\nuse App\\Models\\User as UserModel;\nUserModel::where('name', '"


@pytest.fixture
def opened():
    did_open(DidOpenTextDocumentParams(
        text_document=TextDocumentItem(uri=URI, language_id="php", version=1, text=TEXT)
    ))
    yield URI
    ls.documents.clear()


def test_offset_at():
    text = "ab\ncde\n"
    assert offset_at(text, 0, 0) == 0
    assert offset_at(text, 1, 2) == 5
    assert offset_at(text, 2, 0) == 7


def test_offset_at_counts_utf16_units():
    text = "$a = \U0001F600; foo('"
    # the emoji takes two UTF-16 units but one code point
    assert offset_at(text, 0, 7) == 6
    assert offset_at(text, 0, len(text) + 1) == len(text)
    assert context_at(text, 0, len(text) + 1).function == "foo"
    with pytest.raises(CursorOutOfRange):
        offset_at(text, 0, len(text) + 2)


@pytest.mark.parametrize("line,character", [(-1, 0), (3, 0), (0, 3), (1, -1)])
def test_offset_at_out_of_range(line, character):
    with pytest.raises(CursorOutOfRange):
        offset_at("ab\ncde\n", line, character)


def test_context_at_position():
    context = context_at(TEXT, 2, len("UserModel::where('name', '"))
    assert context.function == "where"
    assert context.fqn == "App\\Models\\User"
    assert context.parameters == ["name"]


def test_signature_for():
    context = context_at(TEXT, 2, len("UserModel::where('name', '"))
    help_ = signature_for(context)
    assert help_.signatures[0].label == "UserModel::where(name, …)"
    assert help_.active_parameter == 1


def test_signature_help_request(opened):
    params = SignatureHelpParams(
        text_document=TextDocumentIdentifier(uri=opened),
        position=Position(line=2, character=len("UserModel::where(")),
    )
    help_ = on_signature_help(params)
    assert help_.signatures[0].label == "UserModel::where(…)"
    assert help_.active_parameter == 0


def test_signature_help_outside_call(opened):
    params = SignatureHelpParams(
        text_document=TextDocumentIdentifier(uri=opened),
        position=Position(line=1, character=0),
    )
    assert on_signature_help(params) is None


def test_completion_context_command(opened):
    character = len("UserModel::where('name', '")
    result = completion_context_command(ls, [opened, 2, character])
    assert result["function"] == "where"
    assert result["class"] == "UserModel"
    assert result["param"]["index"] == 1
    assert result["parameters"] == ["name"]


@pytest.mark.parametrize(
    "arguments",
    [
        ["file:///unknown.php", 0, 0],
        [URI, 99, 0],
        [URI],
    ]
)
def test_completion_context_command_without_context(opened, arguments):
    assert completion_context_command(ls, arguments) is None


def test_document_lifecycle(opened):
    did_change(DidChangeTextDocumentParams(
        text_document=VersionedTextDocumentIdentifier(uri=opened, version=2),
        content_changes=[TextDocumentContentChangeEvent_Type2(text="<?php\nconfig('")],
    ))
    assert server.ls.documents[opened].text == "<?php\nconfig('"
    assert completion_context_command(ls, [opened, 1, 8])["function"] == "config"

    did_close(DidCloseTextDocumentParams(text_document=TextDocumentIdentifier(uri=opened)))
    assert opened not in ls.documents
