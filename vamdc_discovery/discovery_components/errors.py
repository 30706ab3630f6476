"""
Errors raised while building the node directory
"""

from typing import Optional


class ResolutionError(Exception):
    """The node directory could not be resolved.

    ``cause`` is ``"transport"`` when the registry or static source could not
    be reached or answered with a non-success status, and ``"format"`` when a
    static node list is not a list of records.
    """

    def __init__(self, message: str, cause: str = "transport", status_code: Optional[int] = None):
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code
