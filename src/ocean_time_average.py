import logging
import numpy  as np
import xarray as xr
from ocean_errors   import InvalidConfiguration, PrematureQuery
from ocean_operands import as_operand

__all__ = ["WindowedTimeAverager"]

def zeros_like(value):
    """Fresh zeros shaped like `value`; DataArrays keep their dims and coords."""
    if isinstance(value, xr.DataArray):
        return xr.zeros_like(value)
    return np.zeros_like(value)

class WindowedTimeAverager:
    """
    Windowed (moving) time average of an `operand` over `time_window`, collected
    once every `time_interval`.

    The host loop asks `should_run(clock)` every step and calls `run(clock)` when it
    returns True. While collecting, every `stride`-th iteration adds a left Riemann
    sum contribution ``value * (t - t_previous)`` to `result`. Once the window is
    exceeded the integral is divided by the elapsed time and the averager goes idle
    until the next window's lead-in, ``previous_interval_stop_time + time_interval - time_window``.
    Windows therefore close on (or just after) multiples of `time_interval`.

    Parameters
    ----------
    operand : callable | Field | diagnostic | Operand
        Value source; see `ocean_operands.as_operand`.
    time_window : float
        Length of each averaging window (model time units, > 0).
    time_interval : float
        Period between windows (> 0 and >= `time_window`).
    stride : int, optional
        Sample every `stride`-th iteration during collection (default 1).
    return_type : callable or None, optional
        Converts `result` when queried (default `numpy.asarray`); None returns the
        accumulated object as-is (e.g. to keep an `xarray.DataArray`).
    float_type : type, optional
        Precision of the scalar timing parameters (default `numpy.float64`).
    logger : logging.Logger, optional
        Defaults to this module's logger.

    Raises
    ------
    InvalidConfiguration
        Non-positive window, interval or stride, or ``time_interval < time_window``.
    """
    def __init__(self, operand,
                 time_window,
                 time_interval,
                 stride        = 1,
                 return_type   = np.asarray,
                 float_type    = np.float64,
                 logger        = None):
        if not time_window > 0:
            raise InvalidConfiguration(f"time_window must be positive, got {time_window}")
        if not time_interval > 0:
            raise InvalidConfiguration(f"time_interval must be positive, got {time_interval}")
        if int(stride) != stride or stride <= 0:
            raise InvalidConfiguration(f"stride must be a positive integer, got {stride}")
        if time_interval < time_window:
            raise InvalidConfiguration(f"time_interval ({time_interval}) is shorter than time_window ({time_window}); "
                                       "overlapping averaging windows are not supported")
        self.logger                      = logger if logger is not None else logging.getLogger(__name__)
        self.operand                     = as_operand(operand)
        self.result                      = zeros_like(self.operand.fetch())
        self.time_window                 = float_type(time_window)
        self.time_interval               = float_type(time_interval)
        self.stride                      = int(stride)
        self.return_type                 = return_type
        self.window_start_time           = float_type(0)
        self.window_start_iteration      = 0
        self.previous_collection_time    = float_type(0)
        self.previous_interval_stop_time = float_type(0)
        self.collecting                  = False

    @property
    def dims(self):
        return self.operand.dims

    def should_run(self, clock):
        return bool(self.collecting or
                    clock.time >= self.previous_interval_stop_time + self.time_interval - self.time_window)

    def _accumulate(self, clock):
        # left Riemann sum: the sampled value is held over the preceding sub-interval
        dt          = clock.time - self.previous_collection_time
        self.result = self.result + self.operand.fetch() * dt

    def run(self, clock):
        if not self.collecting:
            self.collecting               = True
            self.result                   = zeros_like(self.result)
            self.window_start_time        = clock.time
            self.window_start_iteration   = clock.iteration
            self.previous_collection_time = clock.time
            self.logger.debug(f"opened averaging window at t={clock.time:g} (iteration {clock.iteration})")
        elif clock.time - self.window_start_time >= self.time_window:
            self._accumulate(clock)
            self.collecting                  = False
            self.result                      = self.result / (clock.time - self.window_start_time)
            # floor onto the interval grid so window overshoot does not accumulate
            self.previous_interval_stop_time = clock.time - np.fmod(clock.time, self.time_interval)
            self.logger.debug(f"closed averaging window [{self.window_start_time:g}, {clock.time:g}]; "
                              f"next window opens at t={self.previous_interval_stop_time + self.time_interval - self.time_window:g}")
        elif (clock.iteration - self.window_start_iteration) % self.stride == 0:
            self._accumulate(clock)
            self.previous_collection_time = clock.time
        return None

    def _convert_result(self):
        return self.result if self.return_type is None else self.return_type(self.result)

    def value(self):
        """
        Return the time average, converted to `return_type`.

        Mid-window this is the intermediate average over the samples collected so far
        (a warning is logged); before any sample has been collected it raises
        `PrematureQuery`.
        """
        if not self.collecting:
            return self._convert_result()
        elapsed = self.previous_collection_time - self.window_start_time
        if elapsed == 0:
            raise PrematureQuery(f"windowed time average queried at the start of its window "
                                 f"(t={self.window_start_time:g}) before any sample was collected")
        self.logger.warning("The windowed time average is currently being collected. "
                            "Converting intermediate result to a time average.")
        return self._convert_result() / elapsed

    __call__ = value

    def __repr__(self):
        state = "collecting" if self.collecting else "idle"
        return (f"WindowedTimeAverager(window={self.time_window:g}, interval={self.time_interval:g}, "
                f"stride={self.stride}, {state}) of {self.operand!r}")
