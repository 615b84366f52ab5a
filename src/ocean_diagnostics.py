import numpy as np
from ocean_utils import validate_interval, time_to_run

__all__ = ["HorizontalAverage"]

class HorizontalAverage:
    """
    Average of a field over one or more horizontal axes, e.g. a temperature profile T(z).

    Parameters
    ----------
    field : Field
        Field to average; `field.compute()` is called before every reduction.
    dims : tuple[str], optional
        Axes (``"x"``, ``"y"``, ``"z"``) to average over; default ``("x", "y")``.
        They are mapped to the field's own dimension names (``xC``/``xF``, ...).
    frequency, interval : int, float, optional
        Schedule used when the diagnostic is attached to a `Simulation`. Not
        required when it is only used as the operand of a windowed time average.
    return_type : callable or None, optional
        Conversion applied by `__call__` (default `numpy.asarray`).
    """
    def __init__(self, field, dims=("x", "y"), frequency=None, interval=None, return_type=np.asarray):
        if frequency is not None or interval is not None:
            validate_interval(interval, frequency)
        self.field       = field
        self.axes        = tuple(dims)
        self.reduce_dims = tuple(d for d in field.dims if d[0] in self.axes)
        self.frequency   = frequency
        self.interval    = interval
        self.previous    = 0.0
        self.return_type = return_type
        self.result      = None
        self.run(None)

    @property
    def dims(self):
        return tuple(d for d in self.field.dims if d not in self.reduce_dims)

    def should_run(self, clock):
        if self.frequency is None and self.interval is None:
            return False
        return time_to_run(clock, self)

    def run(self, clock):
        # `clock` is unused: the average depends only on the field's current state
        self.field.compute()
        self.result = self.field.data.mean(dim=list(self.reduce_dims))
        return None

    def __call__(self):
        return self.result if self.return_type is None else self.return_type(self.result)

    def __repr__(self):
        return f"HorizontalAverage over {self.reduce_dims} of {self.field!r}"
