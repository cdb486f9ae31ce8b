
class PhpCtxError(Exception):
    """ Base class for all phpctx errors"""
    pass

class CursorOutOfRange(PhpCtxError):
    """ Raised when a cursor offset or position lies outside the document"""
