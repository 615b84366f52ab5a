import argparse, json
import numpy as np
from pathlib              import Path
from ocean_grid           import RegularGrid
from ocean_fields         import Field
from ocean_diagnostics    import HorizontalAverage
from ocean_time_average   import WindowedTimeAverager
from ocean_output_writer  import NetCDFOutputWriter
from ocean_simulation     import Simulation

def warming_mixed_layer(simulation, dt, heating_rate=1e-3, period=50.0):
    """Toy model: the upper ocean warms and cools periodically, decaying with depth."""
    T     = simulation.fields["T"]
    t     = simulation.clock.time + dt
    depth = simulation.grid.extent[2] / 4
    T.set(lambda x, y, z: 10.0 + heating_rate * period * np.sin(2 * np.pi * t / period) * np.exp(z / depth))

def run(json_path       = None,
        stop_time       = None,
        time_window     = None,
        time_interval   = None,
        stride          = None,
        output_filename = None,
        seed            = 0):
    config   = {}
    if json_path is not None:
        with open(json_path, 'r') as f:
            config = json.load(f)
    stop_time  = stop_time if stop_time is not None else config.get("stop_time", 120.0)
    avg_dict   = config.get("time_average", {})
    out_dict   = config.get("output_dict", {})
    grid_dict  = config.get("grid_dict", {})
    grid       = RegularGrid(size     = grid_dict.get("size"    , [8, 8, 16]),
                             extent   = grid_dict.get("extent"  , [1000.0, 1000.0, 200.0]),
                             topology = grid_dict.get("topology", ["Periodic", "Periodic", "Bounded"]))
    T          = Field(grid, name="T")
    T.set(10.0)
    rng        = np.random.default_rng(seed)
    dt0        = config.get("dt", 1.0)
    jitter     = config.get("dt_jitter", 0.0)
    # variable time stepping: each step is dt0 scaled by a random factor in [1 - jitter, 1 + jitter]
    variable_dt = lambda clock: dt0 * (1 + jitter * rng.uniform(-1, 1))
    sim        = Simulation(grid,
                            fields    = {"T": T},
                            step      = warming_mixed_layer,
                            dt        = variable_dt,
                            stop_time = stop_time,
                            P_json    = json_path)
    window     = time_window   if time_window   is not None else avg_dict.get("time_window", 10.0)
    interval   = time_interval if time_interval is not None else avg_dict.get("time_interval", 20.0)
    stride     = stride        if stride        is not None else avg_dict.get("stride", 1)
    profile    = HorizontalAverage(T, dims=("x", "y"))
    sim.diagnostics["T_avg"]         = WindowedTimeAverager(T      , time_window=window, time_interval=interval, stride=stride)
    sim.diagnostics["T_profile_avg"] = WindowedTimeAverager(profile, time_window=window, time_interval=interval, stride=stride)
    D_out      = Path(sim.D_dict.get("output", "."))
    D_out.mkdir(parents=True, exist_ok=True)
    filename   = output_filename if output_filename is not None else Path(D_out, out_dict.get("filename", "owta_example.nc"))
    outputs    = {"T"             : T,
                  "T_avg"         : sim.diagnostics["T_avg"],
                  "T_profile_avg" : sim.diagnostics["T_profile_avg"],
                  "SST"           : lambda s: float(s.fields["T"].data.isel(zC=-1).mean())}
    sim.output_writers["netcdf"] = NetCDFOutputWriter(sim, outputs, filename,
                                                      interval          = out_dict.get("interval", interval),
                                                      compression       = out_dict.get("compression", 0),
                                                      dimensions        = {"SST": ()},
                                                      output_attributes = sim.output_attributes,
                                                      global_attributes = {"experiment": sim.sim_name,
                                                                           "time_window": float(window),
                                                                           "time_interval": float(interval)})
    sim.run()
    return filename

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a toy ocean simulation with windowed time-averaged NetCDF output.")
    parser.add_argument("--json_config", help="Path to JSON config file (default: none; built-in defaults are used)")
    parser.add_argument("--stop_time", type=float, default=None, help="model time at which to stop (default: from JSON config)")
    parser.add_argument("--time_window", type=float, default=None, help="length of each averaging window (default: from JSON config, else 10)")
    parser.add_argument("--time_interval", type=float, default=None, help="period between averaging windows (default: from JSON config, else 20)")
    parser.add_argument("--stride", type=int, default=None, help="sample every N-th iteration within a window (default: from JSON config, else 1)")
    parser.add_argument("--output", default=None, help="NetCDF file to write (default: <D_dict.output>/<output_dict.filename>)")
    parser.add_argument("--seed", type=int, default=0, help="seed for the variable time-step generator (default: 0)")
    args = parser.parse_args()
    run(json_path       = args.json_config,
        stop_time       = args.stop_time,
        time_window     = args.time_window,
        time_interval   = args.time_interval,
        stride          = args.stride,
        output_filename = args.output,
        seed            = args.seed)
