import numpy  as np
import xarray as xr
from ocean_errors import InvalidConfiguration

__all__ = ["Field", "ComputedField"]

class Field:
    """
    Grid-located data held as an `xarray.DataArray`.

    Parameters
    ----------
    grid : RegularGrid
        Grid supplying coordinates for the three axes.
    location : tuple[str, str, str]
        ``"Cell"`` or ``"Face"`` for each of x, y, z; determines the dimension names
        (e.g. ``("Face","Cell","Cell")`` -> ``("xF","yC","zC")``).
    data : array-like, optional
        Initial values; zeros if omitted.
    name : str, optional
        Name carried onto the underlying DataArray.

    Notes
    -----
    `compute()` is a no-op here; `ComputedField` overrides it. Anything that reads a
    field's buffer (operands, writers) calls `compute()` first.
    """
    def __init__(self, grid, location=("Cell", "Cell", "Cell"), data=None, name=None):
        self.grid     = grid
        self.location = tuple(location)
        self.name     = name
        dims          = tuple(grid.dimension_name(loc, ax) for loc, ax in zip(self.location, grid.axes))
        coords        = {d: grid.nodes(loc, ax) for d, loc, ax in zip(dims, self.location, grid.axes)}
        shape         = tuple(len(coords[d]) for d in dims)
        values        = np.zeros(shape) if data is None else self._conform(np.asarray(data, dtype=float), shape)
        self.data     = xr.DataArray(values, dims=dims, coords=coords, name=name)

    @staticmethod
    def _conform(values, shape):
        if values.shape != shape:
            raise InvalidConfiguration(f"field data has shape {values.shape}; expected {shape}")
        return values

    @property
    def dims(self):
        return self.data.dims

    @property
    def shape(self):
        return self.data.shape

    def compute(self):
        return None

    def set(self, values):
        """
        Assign the field's values from an array, a scalar, or a function ``f(x, y, z)``
        evaluated on the field's (broadcast) coordinates.
        """
        if callable(values):
            x, y, z = (self.data[d] for d in self.dims)
            values  = values(x, y, z)
            if isinstance(values, xr.DataArray):
                values = values.broadcast_like(self.data).transpose(*self.dims)
        self.data.data[...] = np.broadcast_to(np.asarray(values, dtype=float), self.shape)

    def __repr__(self):
        label = self.name if self.name is not None else "Field"
        return f"{label} at {self.location} with dims {self.dims} and shape {self.shape}"

####################################################################################################################

class ComputedField(Field):
    """
    Field whose values are recomputed from `function(grid)` on every `compute()`.

    Useful for derived quantities (kinetic energy, buoyancy flux, ...) whose buffer
    must be refreshed before it is read.
    """
    def __init__(self, grid, function, location=("Cell", "Cell", "Cell"), name=None):
        super().__init__(grid, location=location, name=name)
        self.function = function

    def compute(self):
        values = np.asarray(self.function(self.grid), dtype=float)
        if values.ndim == 0:
            values = np.broadcast_to(values, self.shape)
        self.data.data[...] = self._conform(values, self.shape)
