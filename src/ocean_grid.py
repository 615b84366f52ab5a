import numpy as np
from ocean_errors import InvalidConfiguration

__all__ = ["RegularGrid"]

class RegularGrid:
    """
    Rectilinear grid with uniform spacing in x, y and z.

    Supplies cell-centre (``C``) and cell-face (``F``) coordinates for fields and
    the NetCDF output writer. Dimension names follow the ``xC, xF, yC, yF, zC, zF``
    convention used throughout OWTA.

    Parameters
    ----------
    size : tuple[int, int, int]
        Number of cells ``(Nx, Ny, Nz)``.
    extent : tuple[float, float, float]
        Domain lengths ``(Lx, Ly, Lz)``. The domain spans ``[0, Lx] x [0, Ly] x [-Lz, 0]``
        so that z is height and the free surface sits at z = 0.
    topology : tuple[str, str, str]
        ``"Periodic"`` or ``"Bounded"`` per axis. Periodic axes have N faces (the last face
        coincides with the first), bounded axes have N+1.
    """
    axes       = ("x", "y", "z")
    locations  = ("Cell", "Face")

    def __init__(self, size, extent, topology=("Periodic", "Periodic", "Bounded")):
        if len(size) != 3 or len(extent) != 3 or len(topology) != 3:
            raise InvalidConfiguration("size, extent and topology must each have three entries")
        if any(int(n) != n or n <= 0 for n in size) or any(L <= 0 for L in extent):
            raise InvalidConfiguration(f"grid size must be positive integers and extent positive, got size={size}, extent={extent}")
        for topo in topology:
            if topo not in ("Periodic", "Bounded"):
                raise InvalidConfiguration(f"unknown topology '{topo}'; use 'Periodic' or 'Bounded'")
        self.size     = tuple(int(n) for n in size)
        self.extent   = tuple(float(L) for L in extent)
        self.topology = tuple(topology)
        self.origin   = (0.0, 0.0, -self.extent[2])
        self.spacing  = tuple(L / N for L, N in zip(self.extent, self.size))

    def _axis_index(self, axis):
        if axis not in self.axes:
            raise InvalidConfiguration(f"unknown axis '{axis}'")
        return self.axes.index(axis)

    def nodes(self, location, axis):
        """Coordinates of cell centres (`location='Cell'`) or faces (`'Face'`) along `axis`."""
        i     = self._axis_index(axis)
        N, dx = self.size[i], self.spacing[i]
        x0    = self.origin[i]
        if location == "Cell":
            return x0 + dx * (np.arange(N) + 0.5)
        if location == "Face":
            faces = x0 + dx * np.arange(N + 1)
            return faces if self.topology[i] == "Bounded" else faces[:-1]
        raise InvalidConfiguration(f"unknown location '{location}'; use 'Cell' or 'Face'")

    def dimension_name(self, location, axis):
        self._axis_index(axis)
        if location not in self.locations:
            raise InvalidConfiguration(f"unknown location '{location}'; use 'Cell' or 'Face'")
        return f"{axis}{location[0]}"

    def coordinates(self):
        """Mapping of every dimension name to its coordinate array."""
        return {self.dimension_name(loc, ax): self.nodes(loc, ax)
                for ax in self.axes for loc in self.locations}

    def __repr__(self):
        Nx, Ny, Nz = self.size
        Lx, Ly, Lz = self.extent
        return (f"RegularGrid(size=({Nx}, {Ny}, {Nz}), extent=({Lx:g}, {Ly:g}, {Lz:g}), "
                f"topology={self.topology})")
