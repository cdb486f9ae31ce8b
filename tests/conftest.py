import pytest

from phpctx.analysis.symbols import build_symbol_table
from phpctx.reader.brackets import track
from phpctx.reader.scanner import scan
from phpctx.resolver import parse

# Most resolver tests feed a snippet as it would appear in an editor buffer.
# The fixtures below prepend the PHP open tag so test bodies stay short.


@pytest.fixture
def parse_php():
    def _parse(code: str):
        return parse("<?php\n" + code)
    return _parse


@pytest.fixture
def symbols_of():
    def _build(code: str):
        tokens = list(scan("<?php\n" + code))
        return build_symbol_table(tokens, track(tokens))
    return _build
