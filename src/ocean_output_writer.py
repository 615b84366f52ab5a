import os, time, logging, platform
import numpy   as np
import xarray  as xr
import netCDF4
from datetime     import datetime
from types        import MappingProxyType
from ocean_errors import InvalidConfiguration
from ocean_fields import Field
from ocean_utils  import validate_interval, time_to_run, prettytime, pretty_filesize

__all__ = ["NetCDFOutputWriter", "DEFAULT_OUTPUT_ATTRIBUTES"]

# read-only; writers merge this with caller-supplied attributes rather than mutating it
DEFAULT_OUTPUT_ATTRIBUTES = MappingProxyType({
    "u" : MappingProxyType({"longname": "Velocity in the x-direction", "units": "m/s"}),
    "v" : MappingProxyType({"longname": "Velocity in the y-direction", "units": "m/s"}),
    "w" : MappingProxyType({"longname": "Velocity in the z-direction", "units": "m/s"}),
    "b" : MappingProxyType({"longname": "Buoyancy",                    "units": "m/s²"}),
    "T" : MappingProxyType({"longname": "Conservative temperature",    "units": "°C"}),
    "S" : MappingProxyType({"longname": "Absolute salinity",           "units": "g/kg"}),
})

def dimension_attributes(units="m"):
    where = {"C": "cell centers", "F": "cell faces"}
    return {f"{ax}{loc}": {"longname": f"Locations of the {where[loc]} in the {ax}-direction.", "units": units}
            for ax in ("x", "y", "z") for loc in ("C", "F")}

def get_slice(index):
    """Integers select a single index but keep the dimension (``3`` -> ``slice(3, 4)``)."""
    if isinstance(index, (int, np.integer)):
        index = int(index)
        return slice(index, index + 1 if index != -1 else None)
    if isinstance(index, slice):
        return index
    raise InvalidConfiguration(f"dimension slices must be integers or slices, got {index!r}")

class NetCDFOutputWriter:
    """
    Write `(label, output)` pairs to a NetCDF file along an unlimited ``time`` dimension.

    Parameters
    ----------
    simulation : Simulation
        Supplies the grid (coordinates are written at construction) and, at write time,
        the clock and the argument for function outputs.
    outputs : dict
        Maps labels to a `Field`, a diagnostic exposing `dims` and a zero-argument call
        (`WindowedTimeAverager`, `HorizontalAverage`), or a function ``f(simulation)``.
        Function outputs need their spatial dimensions listed in `dimensions`.
    filename : str | Path
        File to write.
    interval : float, optional
        Write every `interval` units of model time.
    frequency : int, optional
        Write every `frequency` iterations.
    global_attributes : dict, optional
        File-level attributes; the creation date and software versions are added.
    output_attributes : dict, optional
        Per-label attribute dicts; these override `default_output_attributes`.
    default_output_attributes : Mapping, optional
        Fallback per-label attributes (default `DEFAULT_OUTPUT_ATTRIBUTES`). Labels found
        in neither mapping are written without attributes.
    dimensions : dict, optional
        Per-label tuples of dimension names for function outputs.
    clobber : bool, optional
        Overwrite an existing `filename` (default True); otherwise refuse.
    compression : int, optional
        zlib compression level 0-9 (default 0, uncompressed).
    units : str, optional
        Units of the coordinate variables (default ``"m"``).
    verbose : bool, optional
        Log timings and file size growth for every write.
    logger : logging.Logger, optional
        Defaults to this module's logger.
    **slices
        ``dimname=int|slice`` restricts output along a grid dimension, e.g. ``zC=-1``
        writes only the top cell of every output with a ``zC`` dimension.
    """
    def __init__(self, simulation, outputs, filename,
                 interval                  = None,
                 frequency                 = None,
                 global_attributes         = None,
                 output_attributes         = None,
                 default_output_attributes = DEFAULT_OUTPUT_ATTRIBUTES,
                 dimensions                = None,
                 clobber                   = True,
                 compression               = 0,
                 units                     = "m",
                 verbose                   = False,
                 logger                    = None,
                 **slices):
        validate_interval(interval, frequency)
        if int(compression) != compression or not 0 <= compression <= 9:
            raise InvalidConfiguration(f"compression must be an integer in 0-9, got {compression}")
        self.logger      = logger if logger is not None else logging.getLogger(__name__)
        self.filename    = str(filename)
        self.outputs     = dict(outputs)
        self.interval    = interval
        self.frequency   = frequency
        self.clobber     = clobber
        self.compression = int(compression)
        self.verbose     = verbose
        self.previous    = 0.0
        coords           = simulation.grid.coordinates()
        unknown          = set(slices) - set(coords)
        if unknown:
            raise InvalidConfiguration(f"cannot slice unknown dimension(s) {sorted(unknown)}; valid: {sorted(coords)}")
        self.slices      = {dim: get_slice(index) for dim, index in slices.items()}
        coords           = {dim: arr[self.slices.get(dim, slice(None))] for dim, arr in coords.items()}
        dimensions       = dimensions if dimensions is not None else {}
        self.dims        = {name: self._output_dimensions(name, output, dimensions, coords)
                            for name, output in self.outputs.items()}
        self.fetchers    = {name: self._fetcher(output) for name, output in self.outputs.items()}
        output_attributes = output_attributes if output_attributes is not None else {}
        attributes       = {name: {**default_output_attributes.get(name, {}), **output_attributes.get(name, {})}
                            for name in self.outputs}
        for name in self.outputs:
            if not attributes[name]:
                self.logger.debug(f"no attributes given for output '{name}'; writing it without any")
        if not clobber and os.path.exists(self.filename):
            raise FileExistsError(f"{self.filename} exists and clobber=False")
        self.dataset     = netCDF4.Dataset(self.filename, "w", format="NETCDF4")
        self.write_grid_and_attributes(coords, global_attributes, units)
        self.dataset.createDimension("time", None)
        self.dataset.createVariable("time", "f8", ("time",))
        comp_kwargs      = {"zlib": True, "complevel": self.compression} if self.compression > 0 else {}
        for name in self.outputs:
            var = self.dataset.createVariable(name, "f8", ("time", *self.dims[name]), **comp_kwargs)
            var.setncatts(attributes[name])
        self.dataset.sync()
        self.logger.info(f"NetCDF output initialised: {self.filename} with outputs {list(self.outputs)}")

    @staticmethod
    def _output_dimensions(name, output, dimensions, coords):
        if name in dimensions:
            dims = tuple(dimensions[name])
        elif getattr(output, "dims", None) is not None:
            dims = tuple(output.dims)
        else:
            raise InvalidConfiguration(f"output '{name}' is not a field or diagnostic; specify its dimensions "
                                       f"via dimensions={{'{name}': (...)}} (use () for scalars)")
        unknown = [d for d in dims if d not in coords]
        if unknown:
            raise InvalidConfiguration(f"output '{name}' has unknown dimension(s) {unknown}; valid: {sorted(coords)}")
        return dims

    @staticmethod
    def _fetcher(output):
        if isinstance(output, Field):
            def fetch(simulation):
                output.compute()
                return output.data.values
        elif hasattr(output, "dims"):
            def fetch(simulation):
                return output()
        else:
            def fetch(simulation):
                return output(simulation)
        return fetch

    def write_grid_and_attributes(self, coords, global_attributes=None, units="m"):
        """
        Define coordinate variables for every (sliced) grid dimension and write global attributes.
        """
        ds         = self.dataset
        attributes = dict(global_attributes) if global_attributes is not None else {}
        attributes["date"]     = f"This file was generated on {datetime.now().isoformat()}."
        attributes["software"] = (f"This file was generated using Python {platform.python_version()}, "
                                  f"numpy {np.__version__}, xarray {xr.__version__}, netCDF4 {netCDF4.__version__}")
        ds.setncatts(attributes)
        dim_attribs = dimension_attributes(units)
        comp_kwargs = {"zlib": True, "complevel": self.compression} if self.compression > 0 else {}
        for dim, arr in coords.items():
            ds.createDimension(dim, len(arr))
            var = ds.createVariable(dim, "f8", (dim,), **comp_kwargs)
            var.setncatts(dim_attribs[dim])
            var[:] = arr

    def time_to_write(self, clock):
        return time_to_run(clock, self)

    def write_output(self, simulation):
        """
        Append the current time and every output at the next index of the ``time`` dimension.
        """
        ds, clock  = self.dataset, simulation.clock
        time_index = len(ds["time"])
        if self.verbose:
            self.logger.info(f"Writing to NetCDF: {self.filename} (time index {time_index}, t={clock.time:g})")
            t0, sz0 = time.perf_counter(), os.path.getsize(self.filename)
        # fetch everything first so a failing output leaves no partial time record
        records = {}
        for name, fetch in self.fetchers.items():
            t0_   = time.perf_counter()
            data  = np.asarray(fetch(simulation))
            index = tuple(self.slices.get(d, slice(None)) for d in self.dims[name])
            records[name] = data[index]
            if self.verbose:
                self.logger.info(f"\tcomputing {name} done: time={prettytime(time.perf_counter() - t0_)}")
        ds["time"][time_index] = clock.time
        for name, data in records.items():
            ds[name][(time_index,) + tuple(slice(None) for _ in self.dims[name])] = data
        ds.sync()
        if self.verbose:
            sz1 = os.path.getsize(self.filename)
            self.logger.info(f"Writing done: time={prettytime(time.perf_counter() - t0)}, "
                             f"size={pretty_filesize(sz1)}, Δsize={pretty_filesize(sz1 - sz0)}")
        return None

    def close(self):
        if self.dataset.isopen():
            self.dataset.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __repr__(self):
        if self.frequency is not None and self.interval is not None:
            schedule = f"(frequency={self.frequency}, interval={self.interval})"
        elif self.frequency is not None:
            schedule = f"(frequency={self.frequency})"
        else:
            schedule = f"(interval={self.interval})"
        if self.dataset.isopen():
            dims = ", ".join(f"{name}({len(dim)})" for name, dim in self.dataset.dimensions.items())
        else:
            dims = "<closed>"
        return (f"NetCDFOutputWriter {schedule}: {self.filename}\n"
                f"├── dimensions: {dims}\n"
                f"└── {len(self.outputs)} outputs: {list(self.outputs)}")
