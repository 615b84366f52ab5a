"""Tests for the windowed time-average state machine."""

import logging

import numpy as np
import pytest
import xarray as xr

from ocean_clock        import Clock
from ocean_errors       import InvalidConfiguration, PrematureQuery
from ocean_time_average import WindowedTimeAverager


def drive(averager, clock, dts):
    """Advance `clock` through `dts`, running the averager whenever it asks to run."""
    for dt in dts:
        clock.tick(dt)
        if averager.should_run(clock):
            averager.run(clock)


def run_if_due(averager, clock):
    if averager.should_run(clock):
        averager.run(clock)


class CountingOperand:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


@pytest.mark.parametrize("kwargs", [
    dict(time_window=0,  time_interval=10),
    dict(time_window=-1, time_interval=10),
    dict(time_window=5,  time_interval=0),
    dict(time_window=5,  time_interval=10, stride=0),
    dict(time_window=5,  time_interval=10, stride=-2),
    dict(time_window=5,  time_interval=10, stride=1.5),
    dict(time_window=10, time_interval=5),
])
def test_invalid_configuration(kwargs):
    with pytest.raises(InvalidConfiguration):
        WindowedTimeAverager(lambda: 1.0, **kwargs)


def test_construction_fetches_operand_once_and_zeroes_result():
    operand  = CountingOperand(np.full((2, 3), 7.0))
    averager = WindowedTimeAverager(operand, time_window=10, time_interval=20)
    assert operand.calls == 1
    assert not averager.collecting
    np.testing.assert_array_equal(averager.value(), np.zeros((2, 3)))
    assert not np.shares_memory(averager.result, operand.value)
    assert averager.previous_interval_stop_time == 0
    assert averager.window_start_iteration == 0


def test_scenario_windows_close_on_interval_boundaries():
    clock    = Clock()
    averager = WindowedTimeAverager(lambda: 5, time_window=10, time_interval=20)
    started, closed = [], []
    for t in range(0, 41):
        if t > 0:
            clock.tick(1.0)
        was_collecting = averager.collecting
        if averager.should_run(clock):
            averager.run(clock)
            if not was_collecting:
                started.append(clock.time)
            elif not averager.collecting:
                closed.append(clock.time)
                assert averager.value() == pytest.approx(5.0)
    assert started == [10.0, 30.0]
    assert closed  == [20.0, 40.0]


def test_should_run_false_between_windows_then_retriggers_with_reset():
    clock    = Clock()
    averager = WindowedTimeAverager(lambda: 5.0, time_window=10, time_interval=20)
    drive(averager, clock, [1.0] * 20)
    assert clock.time == 20 and not averager.collecting
    assert averager.previous_interval_stop_time == 20
    for _ in range(9):
        clock.tick(1.0)
        assert not averager.should_run(clock)
    clock.tick(1.0)
    assert averager.should_run(clock)
    averager.run(clock)
    assert averager.collecting
    assert averager.result == 0
    assert averager.window_start_time == 30


def test_idle_query_is_idempotent():
    clock    = Clock()
    averager = WindowedTimeAverager(lambda: np.arange(4.0), time_window=4, time_interval=4)
    run_if_due(averager, clock)
    drive(averager, clock, [1.0] * 4)
    assert not averager.collecting
    first = averager.value()
    np.testing.assert_array_equal(first, averager.value())
    np.testing.assert_array_equal(first, averager())
    np.testing.assert_allclose(first, np.arange(4.0))


def test_constant_operand_irregular_steps_and_stride():
    rng      = np.random.default_rng(42)
    clock    = Clock()
    averager = WindowedTimeAverager(lambda: np.array([3.0, -2.0]), time_window=25, time_interval=25, stride=3)
    run_if_due(averager, clock)
    while averager.collecting:
        drive(averager, clock, [rng.uniform(0.05, 1.5)])
    assert clock.time >= 25
    np.testing.assert_allclose(averager.value(), [3.0, -2.0], rtol=1e-12)


@pytest.mark.parametrize("dt", [1.0, 0.5, 0.25, 0.125, 1 / 64])
def test_linear_operand_first_order_bias(dt):
    a, b, W  = 2.0, 0.3, 10.0
    clock    = Clock()
    averager = WindowedTimeAverager(lambda: a + b * clock.time, time_window=W, time_interval=W)
    run_if_due(averager, clock)
    assert averager.window_start_time == 0
    while averager.collecting:
        drive(averager, clock, [dt])
    assert clock.time == W
    exact = a + b * W / 2
    # each sample is held over the sub-interval that ends at it, biasing the average by b*dt/2
    assert averager.value() == pytest.approx(exact + b * dt / 2, rel=1e-12)


def test_linear_operand_converges_as_dt_shrinks():
    a, b, W = 1.0, -0.7, 8.0
    errors  = []
    for dt in [1.0, 0.5, 0.25, 0.125]:
        clock    = Clock()
        averager = WindowedTimeAverager(lambda: a + b * clock.time, time_window=W, time_interval=W)
        run_if_due(averager, clock)
        while averager.collecting:
            drive(averager, clock, [dt])
        errors.append(abs(float(averager.value()) - (a + b * W / 2)))
    np.testing.assert_allclose(np.array(errors[:-1]) / np.array(errors[1:]), 2.0)


def test_stride_gating_leaves_state_untouched_between_samples():
    clock    = Clock()
    operand  = CountingOperand(1.0)
    averager = WindowedTimeAverager(operand, time_window=10, time_interval=10, stride=3)
    run_if_due(averager, clock)
    assert averager.collecting and operand.calls == 1
    history = []
    for _ in range(9):
        drive(averager, clock, [1.0])
        history.append((clock.iteration, float(averager.result), averager.previous_collection_time, operand.calls))
    assert history == [(1, 0.0, 0.0, 1), (2, 0.0, 0.0, 1), (3, 3.0, 3.0, 2),
                       (4, 3.0, 3.0, 2), (5, 3.0, 3.0, 2), (6, 6.0, 6.0, 3),
                       (7, 6.0, 6.0, 3), (8, 6.0, 6.0, 3), (9, 9.0, 9.0, 4)]
    drive(averager, clock, [1.0])
    # the closing step always samples, regardless of stride
    assert operand.calls == 5
    assert not averager.collecting
    assert averager.value() == pytest.approx(1.0)


def test_mid_window_query_returns_intermediate_average_with_warning(caplog):
    clock    = Clock()
    values   = {0: 0.0}
    averager = WindowedTimeAverager(lambda: values[0], time_window=10, time_interval=10)
    run_if_due(averager, clock)
    for v in [2.0, 4.0, 6.0]:
        values[0] = v
        drive(averager, clock, [1.0])
    with caplog.at_level(logging.WARNING, logger="ocean_time_average"):
        intermediate = averager.value()
    assert intermediate == pytest.approx((2.0 + 4.0 + 6.0) / 3)
    assert averager.collecting
    assert any("intermediate" in rec.getMessage() for rec in caplog.records)


def test_query_before_any_sample_raises_premature_query():
    clock    = Clock()
    averager = WindowedTimeAverager(lambda: 1.0, time_window=10, time_interval=10)
    run_if_due(averager, clock)
    assert averager.collecting
    with pytest.raises(PrematureQuery):
        averager.value()
    with pytest.raises(ZeroDivisionError):
        averager()


def test_window_overshoot_does_not_drift_schedule():
    clock    = Clock()
    averager = WindowedTimeAverager(lambda: 1.0, time_window=3, time_interval=10)
    starts   = []
    while clock.time < 60:
        clock.tick(0.7)
        if averager.should_run(clock):
            was_collecting = averager.collecting
            averager.run(clock)
            if not was_collecting:
                starts.append(clock.time)
    # every window opens within one step of 7, 17, 27, ...
    for k, t in enumerate(starts):
        assert 7 + 10 * k <= t < 7 + 10 * k + 0.7 + 1e-9


def test_operand_failure_propagates_unchanged():
    state = {"fail": False}

    def operand():
        if state["fail"]:
            raise RuntimeError("solver blew up")
        return 1.0

    clock    = Clock()
    averager = WindowedTimeAverager(operand, time_window=5, time_interval=5)
    run_if_due(averager, clock)
    state["fail"] = True
    clock.tick(1.0)
    with pytest.raises(RuntimeError, match="solver blew up"):
        averager.run(clock)


def test_return_type_none_and_custom():
    clock    = Clock()
    da       = xr.DataArray([1.0, 2.0], dims=("zC",))
    averager = WindowedTimeAverager(lambda: da, time_window=2, time_interval=2, return_type=None)
    assert isinstance(averager.value(), xr.DataArray)
    assert averager.value().dims == ("zC",)
    as_list  = WindowedTimeAverager(lambda: np.array([1.0, 2.0]), time_window=2, time_interval=2,
                                    return_type=lambda r: r.tolist())
    run_if_due(as_list, clock)
    drive(as_list, clock, [1.0, 1.0])
    assert as_list.value() == [1.0, 2.0]


def test_float_type_sets_parameter_precision():
    averager = WindowedTimeAverager(lambda: 1.0, time_window=1, time_interval=2, float_type=np.float32)
    assert isinstance(averager.time_window, np.float32)
    assert isinstance(averager.time_interval, np.float32)


def test_window_reset_discards_non_finite_history():
    clock    = Clock()
    values   = {"v": np.inf}
    averager = WindowedTimeAverager(lambda: values["v"], time_window=2, time_interval=2)
    run_if_due(averager, clock)
    drive(averager, clock, [1.0, 1.0])
    assert not averager.collecting
    assert np.isinf(averager.value())
    values["v"] = 1.0
    drive(averager, clock, [1.0])
    assert averager.collecting and averager.window_start_time == 3
    assert averager.result == 0
    drive(averager, clock, [1.0, 1.0])
    assert not averager.collecting
    assert averager.value() == pytest.approx(1.0)


def test_non_finite_value_at_construction_does_not_leak_into_first_window():
    samples  = iter([np.full(3, np.nan)] + [np.ones(3)] * 10)
    clock    = Clock()
    averager = WindowedTimeAverager(lambda: next(samples), time_window=2, time_interval=2)
    np.testing.assert_array_equal(averager.result, np.zeros(3))
    run_if_due(averager, clock)
    drive(averager, clock, [1.0, 1.0])
    np.testing.assert_allclose(averager.value(), np.ones(3))


def test_consecutive_windows_are_independent():
    clock    = Clock()
    values   = {"v": 3.0}
    averager = WindowedTimeAverager(lambda: values["v"], time_window=5, time_interval=10)
    averages = []
    while len(averages) < 2:
        was_collecting = averager.collecting
        drive(averager, clock, [1.0])
        if was_collecting and not averager.collecting:
            averages.append(float(averager.value()))
            values["v"] = 7.0
    assert averages == [pytest.approx(3.0), pytest.approx(7.0)]


def test_window_reset_keeps_dataarray_coordinates():
    da       = xr.DataArray([np.nan, 2.0], dims=("zC",), coords={"zC": [-1.5, -0.5]})
    averager = WindowedTimeAverager(lambda: da, time_window=2, time_interval=2, return_type=None)
    assert isinstance(averager.result, xr.DataArray)
    np.testing.assert_array_equal(averager.result.values, [0.0, 0.0])
    np.testing.assert_array_equal(averager.result["zC"].values, [-1.5, -0.5])
