import os, json, logging, time
from pathlib      import Path
from tqdm         import tqdm
from ocean_clock  import Clock
from ocean_errors import InvalidConfiguration
from ocean_utils  import prettytime

__all__ = ["Simulation"]

class Simulation:
    """
    Host loop that advances a clock, steps the user's model, and drives diagnostics
    and output writers.

    Each iteration is: compute ``dt``, call ``step(simulation, dt)``, tick the clock,
    then run every diagnostic whose `should_run(clock)` is True (in insertion order)
    followed by every output writer whose `time_to_write(clock)` is True. The same
    callbacks also run once at iteration 0 before the first step, so averages and
    outputs can start from the initial condition.

    Parameters
    ----------
    grid : RegularGrid
        Model grid; read by output writers for coordinates.
    fields : dict, optional
        Named model fields (``{"T": Field(...), ...}``) available to `step` and to
        function outputs as ``simulation.fields``.
    step : callable, optional
        ``step(simulation, dt)`` advances the model state by ``dt``; it must not touch
        the clock. Defaults to a no-op (useful for purely time-dependent operands).
    dt : float or callable, optional
        Fixed time step, or ``dt(clock)`` returning the next (possibly variable) step.
    stop_time, stop_iteration : float, int, optional
        At least one is required (either here or in the JSON config).
    diagnostics, output_writers : dict, optional
        Named diagnostics and writers; more can be added to the dicts before `run()`.
    P_json : str | Path, optional
        JSON configuration; explicit arguments take precedence over its entries.
    sim_name : str, optional
        Names the logger and the default log file.
    P_log : str | Path, optional
        Log file; defaults to ``<D_dict.logs>/Simulation_<sim_name>.log`` when the config
        names a log directory, otherwise logging goes to the console only.
    log_level : int or str, optional
        Logging level for this simulation's logger (default INFO).
    progress : bool, optional
        Show a tqdm progress bar while running.
    """
    def __init__(self, grid,
                 fields         = None,
                 step           = None,
                 dt             = None,
                 stop_time      = None,
                 stop_iteration = None,
                 diagnostics    = None,
                 output_writers = None,
                 P_json         = None,
                 sim_name       = None,
                 P_log          = None,
                 log_level      = None,
                 progress       = None):
        self.config = {}
        if P_json is not None:
            with open(P_json, 'r') as f:
                self.config = json.load(f)
        self.D_dict         = self.config.get('D_dict', {})
        self.sim_name       = sim_name       if sim_name       is not None else self.config.get('sim_name', 'owta')
        self.stop_time      = stop_time      if stop_time      is not None else self.config.get('stop_time')
        self.stop_iteration = stop_iteration if stop_iteration is not None else self.config.get('stop_iteration')
        self.dt             = dt             if dt             is not None else self.config.get('dt', 1.0)
        self.progress       = progress       if progress       is not None else self.config.get('progress', False)
        log_level           = log_level      if log_level      is not None else self.config.get('log_level', logging.INFO)
        if P_log is None and 'logs' in self.D_dict:
            P_log = Path(self.D_dict['logs'], f'Simulation_{self.sim_name}.log')
        self.setup_logging(logfile=P_log, log_level=log_level)
        if self.stop_time is None and self.stop_iteration is None:
            raise InvalidConfiguration("must specify stop_time and/or stop_iteration")
        if not callable(self.dt) and not self.dt > 0:
            raise InvalidConfiguration(f"time step must be positive, got dt={self.dt}")
        self.grid              = grid
        self.fields            = dict(fields) if fields is not None else {}
        self.step              = step if step is not None else (lambda simulation, dt: None)
        self.clock             = Clock()
        self.diagnostics       = dict(diagnostics)    if diagnostics    is not None else {}
        self.output_writers    = dict(output_writers) if output_writers is not None else {}
        self.output_attributes = self.config.get('output_attributes', {})

    def setup_logging(self, logfile=None, log_level=logging.INFO):
        self.logger = logging.getLogger(self.sim_name)
        self.logger.setLevel(log_level)
        if not self.logger.handlers:
            formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
            ch = logging.StreamHandler()
            ch.setFormatter(formatter)
            self.logger.addHandler(ch)
            if logfile:
                os.makedirs(os.path.dirname(os.path.abspath(logfile)), exist_ok=True)
                if os.path.exists(logfile):
                    os.remove(logfile)
                fh = logging.FileHandler(logfile)
                fh.setFormatter(formatter)
                self.logger.addHandler(fh)
        elif logfile:
            attached = [getattr(h, 'baseFilename', None) for h in self.logger.handlers]
            if os.path.abspath(logfile) not in attached:
                self.logger.debug(f"logger '{self.sim_name}' already has handlers {attached}; "
                                  f"log file {logfile} not attached")

    def summary(self):
        """Log a summary of the simulation setup."""
        self.logger.info("--- Simulation Summary ---")
        self.logger.info(f"Simulation Name : {self.sim_name}")
        self.logger.info(f"Grid            : {self.grid}")
        self.logger.info(f"Fields          : {list(self.fields)}")
        self.logger.info(f"Time Step       : {'variable' if callable(self.dt) else self.dt}")
        self.logger.info(f"Stop Time       : {self.stop_time}")
        self.logger.info(f"Stop Iteration  : {self.stop_iteration}")
        self.logger.info(f"Diagnostics     : {list(self.diagnostics)}")
        self.logger.info(f"Output Writers  : {list(self.output_writers)}")
        self.logger.info("--------------------------")

    def next_time_step(self):
        dt = self.dt(self.clock) if callable(self.dt) else self.dt
        if self.stop_time is not None:
            # land exactly on stop_time rather than overshooting it
            dt = min(dt, self.stop_time - self.clock.time)
        return dt

    def stop(self):
        if self.stop_iteration is not None and self.clock.iteration >= self.stop_iteration:
            return True
        if self.stop_time is not None and self.clock.time >= self.stop_time:
            return True
        return False

    def run_callbacks(self):
        for diagnostic in self.diagnostics.values():
            if diagnostic.should_run(self.clock):
                diagnostic.run(self.clock)
        for writer in self.output_writers.values():
            if writer.time_to_write(self.clock):
                writer.write_output(self)

    def run(self):
        """Run until `stop_time` or `stop_iteration`, then close the output writers."""
        self.summary()
        t0 = time.perf_counter()
        if self.stop_iteration is not None:
            bar = tqdm(total=self.stop_iteration - self.clock.iteration, unit="it", disable=not self.progress)
        else:
            bar = tqdm(total=self.stop_time - self.clock.time, unit="model time", disable=not self.progress)
        try:
            if self.clock.iteration == 0:
                self.run_callbacks()
            while not self.stop():
                dt = self.next_time_step()
                if not dt > 0:
                    raise InvalidConfiguration(f"time step must be positive, got dt={dt} at {self.clock}")
                self.step(self, dt)
                self.clock.tick(dt)
                self.run_callbacks()
                bar.update(1 if self.stop_iteration is not None else dt)
        finally:
            bar.close()
            for writer in self.output_writers.values():
                writer.close()
        self.logger.info(f"Simulation finished at {self.clock} after {prettytime(time.perf_counter() - t0)} wall time")
        return None
