# Core type aliases for phpctx's data model.
# Offsets are character offsets into the truncated buffer; token indexes are
# positions in the logical (trivia-free) token list produced by the scanner.
#
# Naming guidance:
# - Offset: a character position in the source buffer.
# - TokenIndex: a position in the token list shared by tracker and analyzers.
# - Fqn: a fully-qualified PHP class name without the leading backslash.

__version__ = "0.1.0"

Offset = int
TokenIndex = int
Fqn = str
