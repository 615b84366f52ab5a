"""
Exceptions raised by the OWTA diagnostics and output writers.

Errors raised while fetching an operand (a user callable, a field's compute
step, or a nested diagnostic) are never wrapped; they reach the host loop as-is.
"""

__all__ = ["InvalidConfiguration", "PrematureQuery"]


class InvalidConfiguration(ValueError):
    """Non-positive window/interval/stride, overlapping windows, or a misconfigured writer."""


class PrematureQuery(ZeroDivisionError):
    """
    A windowed time average was queried mid-window before any sample
    contributed to it, so there is no elapsed time to normalise by.
    """
