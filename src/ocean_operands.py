"""
Operands: the value sources a windowed time average integrates.

Three variants share one capability, `fetch()`, which returns the value "now"
after performing whatever preparatory computation the source needs:

CallableOperand   : zero-argument callable, e.g. ``lambda: model.tracers.T.mean()``
FieldOperand      : field whose `compute()` must run before its buffer is read
DiagnosticOperand : diagnostic whose `run()` must run before its `result` is read

The variant is chosen once, by `as_operand`, when the averager is built.
"""
from abc          import ABC, abstractmethod
from ocean_errors import InvalidConfiguration
from ocean_fields import Field

__all__ = ["Operand", "CallableOperand", "FieldOperand", "DiagnosticOperand", "as_operand"]

class Operand(ABC):

    @abstractmethod
    def fetch(self):
        """Return the operand's current value (scalar, numpy array or DataArray)."""

    @property
    def dims(self):
        return None

class CallableOperand(Operand):

    def __init__(self, func):
        self.func = func

    def fetch(self):
        return self.func()

    def __repr__(self):
        return f"CallableOperand({getattr(self.func, '__name__', self.func)!r})"

class FieldOperand(Operand):

    def __init__(self, field):
        self.field = field

    def fetch(self):
        self.field.compute()
        return self.field.data

    @property
    def dims(self):
        return self.field.dims

    def __repr__(self):
        return f"FieldOperand({self.field!r})"

class DiagnosticOperand(Operand):

    def __init__(self, diagnostic):
        self.diagnostic = diagnostic

    def fetch(self):
        self.diagnostic.run(None)
        return self.diagnostic.result

    @property
    def dims(self):
        return getattr(self.diagnostic, "dims", None)

    def __repr__(self):
        return f"DiagnosticOperand({self.diagnostic!r})"

def as_operand(obj):
    """
    Wrap `obj` in the matching `Operand` variant.

    Already-wrapped operands pass through; `Field` instances become `FieldOperand`;
    objects exposing both ``run`` and ``result`` (diagnostics) become `DiagnosticOperand`;
    any other callable becomes `CallableOperand`.
    """
    if isinstance(obj, Operand):
        return obj
    if isinstance(obj, Field):
        return FieldOperand(obj)
    if hasattr(obj, "run") and hasattr(obj, "result"):
        return DiagnosticOperand(obj)
    if callable(obj):
        return CallableOperand(obj)
    raise InvalidConfiguration(f"cannot average {type(obj).__name__!r}: expected a callable, a Field, or a diagnostic")
