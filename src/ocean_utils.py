import numpy as np
from ocean_errors import InvalidConfiguration

__all__ = ["validate_interval", "time_to_run", "prettytime", "pretty_filesize"]

def validate_interval(interval, frequency):
    """
    Check the schedule of writers and periodic diagnostics.

    At least one of `interval` (model time units) or `frequency` (iterations)
    must be given, and whichever is given must be positive.
    """
    if interval is None and frequency is None:
        raise InvalidConfiguration("must specify a time `interval` or an iteration `frequency`")
    if interval is not None and not interval > 0:
        raise InvalidConfiguration(f"interval must be positive, got {interval}")
    if frequency is not None and (int(frequency) != frequency or frequency <= 0):
        raise InvalidConfiguration(f"frequency must be a positive integer, got {frequency}")
    return None

def time_to_run(clock, obj):
    """
    Decide whether a scheduled object (one carrying `frequency`, `interval`
    and `previous` attributes) is due at the current clock.

    When triggered by `interval`, `obj.previous` is floored onto the interval
    grid so that step overshoot does not drift the schedule.
    """
    if obj.frequency is not None and clock.iteration % obj.frequency == 0:
        if obj.interval is not None:
            obj.previous = clock.time - np.fmod(clock.time, obj.interval)
        return True
    if obj.interval is not None and clock.time >= obj.previous + obj.interval:
        obj.previous = clock.time - np.fmod(clock.time, obj.interval)
        return True
    return False

def prettytime(t):
    """Format a duration in seconds with a sensible unit."""
    if t < 1e-6:
        value, units = t * 1e9, "ns"
    elif t < 1e-3:
        value, units = t * 1e6, "μs"
    elif t < 1:
        value, units = t * 1e3, "ms"
    elif t < 60:
        value, units = t, "s"
    elif t < 3600:
        value, units = t / 60, "min"
    elif t < 86400:
        value, units = t / 3600, "hr"
    else:
        value, units = t / 86400, "days"
    return f"{value:.3f} {units}"

def pretty_filesize(nbytes):
    """Format a (possibly negative) byte count, e.g. ``12.0 KiB``."""
    sign  = "-" if nbytes < 0 else ""
    size  = float(abs(nbytes))
    for units in ("B", "KiB", "MiB", "GiB", "TiB"):
        if size < 1024 or units == "TiB":
            break
        size /= 1024
    return f"{sign}{size:.1f} {units}"
