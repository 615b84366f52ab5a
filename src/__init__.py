"""
OWTA (Ocean Windowed Time Averages)

Streaming diagnostics and NetCDF output for ocean/fluid simulations driven by
an external time-stepping loop.

Submodules
----------
ocean_time_average  : WindowedTimeAverager, moving time-averages over recurring windows.
ocean_operands      : value sources (callables, fields, diagnostics) the averager integrates.
ocean_diagnostics   : HorizontalAverage diagnostic.
ocean_output_writer : NetCDFOutputWriter for fields, averages and function outputs.
ocean_simulation    : Simulation host loop with JSON configuration and logging.
ocean_grid, ocean_fields, ocean_clock : grid coordinates, xarray-backed fields and the model clock.
"""
__version__ = '0.1.0'
