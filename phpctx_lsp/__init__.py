"""phpctx Language Server package.

This package provides:
- A pygls-based Language Server that answers signature help and a
  `phpctx.completionContext` command from the static resolver.

Note: The server never evaluates PHP; every answer comes from scanning the
document text up to the cursor.
"""

__all__ = [
    "server",
]
