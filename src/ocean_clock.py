from ocean_errors import InvalidConfiguration

__all__ = ["Clock"]

class Clock:
    """
    Simulation clock shared by the host loop, diagnostics and output writers.

    Parameters
    ----------
    time : float
        Current model time (default 0.0).
    iteration : int
        Number of completed time steps (default 0).

    Notes
    -----
    Only the host loop advances the clock (via `tick`); diagnostics read it.
    """
    def __init__(self, time=0.0, iteration=0):
        self.time      = float(time)
        self.iteration = int(iteration)

    def tick(self, dt):
        if dt < 0:
            raise InvalidConfiguration(f"time step must be non-negative, got dt={dt}")
        self.time      += dt
        self.iteration += 1

    def __repr__(self):
        return f"Clock(time={self.time:g}, iteration={self.iteration})"
