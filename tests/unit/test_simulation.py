"""Unit tests for SimulationConfig and SimulationClock."""

import dataclasses

import numpy as np
import pytest
from loguru import logger

from badapple.core import (
    AgentState,
    ConfigurationError,
    RegionBounds,
    SimulationClock,
    SimulationConfig,
    UNIT_SQUARE,
)
from badapple.core.statistics import HistoryPoint, SimulationStats


FRAME_MS = 16.0


def place(clock, positions):
    """Pin agents at fixed positions (destination = position, so they stay put)."""
    positions = np.asarray(positions, dtype=np.float64)
    clock.pool.positions[:] = positions
    clock.pool.destinations[:] = positions


class TestSimulationConfig:
    """Tests for configuration validation."""

    def test_defaults(self):
        cfg = SimulationConfig()
        assert cfg.population_size == 200
        assert cfg.infection_radius == 0.003
        assert cfg.speed_range == (0.002, 0.004)
        assert cfg.step_cap == 0.01
        assert cfg.connection_ttl_ms == 2000.0
        assert cfg.color_phase_ms == 10000.0
        assert cfg.proximity_index == "auto"

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_population_rejected(self, size):
        with pytest.raises(ConfigurationError):
            SimulationConfig(population_size=size)

    @pytest.mark.parametrize("size", [1.5, True, "200"])
    def test_non_integer_population_rejected(self, size):
        with pytest.raises(ConfigurationError):
            SimulationConfig(population_size=size)

    @pytest.mark.parametrize("radius", [0.0, -0.1, float("nan"), float("inf")])
    def test_bad_radius_rejected(self, radius):
        with pytest.raises(ConfigurationError):
            SimulationConfig(infection_radius=radius)

    @pytest.mark.parametrize("speed_range", [(0.0, 0.004), (0.004, 0.002), (-1.0, 1.0)])
    def test_bad_speed_range_rejected(self, speed_range):
        with pytest.raises(ConfigurationError):
            SimulationConfig(speed_range=speed_range)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("step_cap", 0.0),
            ("step_cap", 1.5),
            ("connection_ttl_ms", 0.0),
            ("color_phase_ms", -1.0),
            ("proximity_index", "octree"),
            ("kdtree_threshold", 0),
        ],
    )
    def test_bad_field_rejected(self, field, value):
        with pytest.raises(ConfigurationError):
            SimulationConfig(**{field: value})

    def test_bounds_type_checked(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(bounds=(0, 1, 0, 1))

    def test_zero_area_bounds_rejected(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(bounds=RegionBounds(0.0, 1.0, 0.5, 0.5))


class TestReset:
    """Reset correctness."""

    def test_initial_state(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        snap = clock.snapshot()

        assert sum(a.is_infected for a in snap.agents) == 1
        assert snap.agents[0].state is AgentState.INFECTED
        assert snap.stats == SimulationStats(total=200, infected=1, rate=0.5)
        assert clock.history == (HistoryPoint(0.0, 1),)
        assert snap.latest_history == HistoryPoint(0.0, 1)
        assert snap.connections == ()

    def test_starts_paused(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        assert not clock.running

    def test_reset_after_run(self):
        cfg = SimulationConfig(population_size=100, bounds=UNIT_SQUARE, infection_radius=0.3, seed=3)
        clock = SimulationClock(cfg, now=0.0)
        clock.run(50, dt_ms=FRAME_MS)
        assert clock.stats.infected > 1

        snap = clock.reset(now=10_000.0)

        assert sum(a.is_infected for a in snap.agents) == 1
        assert snap.stats == SimulationStats(total=100, infected=1, rate=1.0)
        assert clock.history == (HistoryPoint(0.0, 1),)
        assert len(clock.ledger) == 0
        assert clock.started_at == 10_000.0
        assert clock.tick_count == 0

    def test_reset_keeps_running_state(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        clock.start(0.0)
        clock.reset(now=100.0)
        assert clock.running

        clock.pause()
        clock.reset(now=200.0)
        assert not clock.running

    def test_reset_population_override(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        snap = clock.reset(now=0.0, population_size=50)
        assert len(snap.agents) == 50
        assert snap.stats.rate == pytest.approx(2.0)

    def test_reset_bounds_override(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        bounds = RegionBounds(10.0, 20.0, -5.0, 5.0)
        clock.reset(now=0.0, bounds=bounds)
        assert bounds.contains_all(clock.pool.positions)

    def test_reset_rejects_bad_population(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        with pytest.raises(ConfigurationError):
            clock.reset(now=0.0, population_size=0)
        # The previous run is untouched
        assert len(clock.pool) == 200

    def test_patient_zero_infection_time(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        clock.reset(now=777.0)
        assert clock.snapshot().agents[0].infected_at == 777.0

    def test_time_source_used_when_now_omitted(self, unit_config):
        clock = SimulationClock(unit_config, time_source=lambda: 5000.0)
        assert clock.started_at == 5000.0
        assert clock.pool.infected_at[0] == 5000.0


class TestControl:
    """Start / pause / toggle / radius."""

    def test_paused_tick_is_noop(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        positions = clock.pool.positions.copy()

        snap = clock.tick(1000.0)

        assert np.array_equal(clock.pool.positions, positions)
        assert len(clock.history) == 1
        assert clock.tick_count == 0
        assert not snap.running

    def test_ticks_after_pause_do_not_grow_history(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        clock.start(0.0)
        clock.tick(16.0)
        clock.pause()
        for t in range(10):
            clock.tick(1000.0 + t)
        assert len(clock.history) == 2

    def test_resume_rebases_last_tick(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        clock.start(0.0)
        clock.tick(16.0)
        clock.pause()
        clock.start(60_000.0)
        assert clock.last_tick_at == 60_000.0

    def test_no_catch_up_jump_after_pause(self, unit_config):
        """The first tick after a long pause moves agents like a normal frame."""
        a = SimulationClock(unit_config, now=0.0)
        b = SimulationClock(unit_config, now=0.0)

        a.start(0.0)
        a.tick(FRAME_MS)

        b.start(0.0)
        b.pause()
        b.start(3_600_000.0)
        b.tick(3_600_000.0 + FRAME_MS)

        assert np.allclose(a.pool.positions, b.pool.positions)

    def test_toggle(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        assert clock.toggle(0.0) is True
        assert clock.toggle() is False

    def test_start_twice_keeps_last_tick(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        clock.start(10.0)
        clock.start(500.0)
        assert clock.last_tick_at == 10.0

    def test_set_infection_radius(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        clock.set_infection_radius(0.05)
        assert clock.infection_radius == 0.05

    def test_radius_change_stays_on_its_clock(self, unit_config):
        a = SimulationClock(unit_config, now=0.0)
        b = SimulationClock(unit_config, now=0.0)

        a.set_infection_radius(0.5)

        assert a.infection_radius == 0.5
        assert b.infection_radius == 0.003
        assert unit_config.infection_radius == 0.003

    def test_paused_tick_reports_no_fresh_infections(self, small_config):
        clock = SimulationClock(small_config, now=0.0)
        place(clock, [[0.5, 0.5], [0.55, 0.5], [0.9, 0.9], [0.1, 0.9], [0.9, 0.1]])
        clock.start(0.0)
        assert clock.tick(FRAME_MS).new_infections == (1,)

        clock.pause()
        snap = clock.tick(2 * FRAME_MS)

        assert snap.new_infections == ()
        assert snap.infected_ids == (0, 1)

    @pytest.mark.parametrize("radius", [0.0, -0.01, float("nan")])
    def test_set_infection_radius_rejects(self, unit_config, radius):
        clock = SimulationClock(unit_config, now=0.0)
        with pytest.raises(ConfigurationError):
            clock.set_infection_radius(radius)
        assert clock.infection_radius == 0.003


class TestTick:
    """Stepping semantics."""

    def test_infection_within_radius(self, small_config):
        clock = SimulationClock(small_config, now=0.0)
        place(clock, [[0.5, 0.5], [0.55, 0.5], [0.9, 0.9], [0.1, 0.9], [0.9, 0.1]])
        clock.start(0.0)

        snap = clock.tick(FRAME_MS)

        assert snap.agents[1].state is AgentState.INFECTED
        assert snap.agents[1].infected_at == FRAME_MS
        assert snap.new_infections == (1,)
        assert snap.stats.infected == 2
        assert [e.id for e in snap.connections] == ["0-1"]

    def test_one_hop_per_tick(self, small_config):
        clock = SimulationClock(small_config, now=0.0)
        place(clock, [[0.2, 0.5], [0.28, 0.5], [0.36, 0.5], [0.9, 0.9], [0.9, 0.1]])
        clock.start(0.0)

        snap = clock.tick(FRAME_MS)
        assert snap.infected_ids == (0, 1)

        snap = clock.tick(2 * FRAME_MS)
        assert snap.infected_ids == (0, 1, 2)
        assert [e.id for e in snap.connections] == ["0-1", "1-2"]

    def test_edge_endpoints_frozen(self, small_config):
        clock = SimulationClock(small_config, now=0.0)
        place(clock, [[0.5, 0.5], [0.55, 0.5], [0.9, 0.9], [0.1, 0.9], [0.9, 0.1]])
        clock.start(0.0)
        clock.tick(FRAME_MS)

        clock.pool.destinations[:2] = [[0.0, 0.0], [1.0, 1.0]]
        for i in range(2, 20):
            snap = clock.tick(i * FRAME_MS)

        edge = snap.connections[0]
        assert edge.source_pos == (0.5, 0.5)
        assert edge.target_pos == (0.55, 0.5)
        assert snap.agents[0].position != (0.5, 0.5)

    def test_edges_evicted_after_ttl(self, small_config):
        clock = SimulationClock(small_config, now=0.0)
        place(clock, [[0.5, 0.5], [0.55, 0.5], [0.9, 0.9], [0.1, 0.9], [0.9, 0.1]])
        clock.start(0.0)
        clock.tick(100.0)

        assert len(clock.tick(2099.0).connections) == 1
        assert clock.tick(2100.0).connections == ()

    def test_history_point_per_tick(self, unit_config):
        clock = SimulationClock(unit_config, now=1000.0)
        clock.start(1000.0)
        clock.tick(1500.0)
        clock.tick(3000.0)
        assert [p.elapsed_seconds for p in clock.history] == [0.0, 0.5, 2.0]

    def test_backwards_time_does_not_move(self, unit_config):
        clock = SimulationClock(unit_config, now=1000.0)
        clock.start(1000.0)
        positions = clock.pool.positions.copy()
        clock.tick(500.0)
        assert np.array_equal(clock.pool.positions, positions)
        assert clock.last_tick_at == 1000.0

    def test_backwards_time_keeps_edges_and_history_ordered(self, small_config):
        """Late timestamps are stamped at the previous tick, so TTL still evicts."""
        clock = SimulationClock(small_config, now=0.0)
        place(clock, [[0.2, 0.5], [0.28, 0.5], [0.36, 0.5], [0.9, 0.9], [0.9, 0.1]])
        clock.start(0.0)

        clock.tick(5000.0)
        snap = clock.tick(100.0)
        clock.tick(3000.0)

        assert snap.infected_ids == (0, 1, 2)
        assert [e.created_at for e in snap.connections] == [5000.0, 5000.0]
        assert clock.last_tick_at == 5000.0

        assert len(clock.tick(6999.0).connections) == 2
        assert clock.tick(7000.0).connections == ()

        elapsed = [p.elapsed_seconds for p in clock.history]
        assert elapsed == sorted(elapsed)
        assert min(elapsed) >= 0.0

    def test_single_agent_run(self):
        cfg = SimulationConfig(population_size=1, bounds=UNIT_SQUARE, seed=0)
        clock = SimulationClock(cfg, now=0.0)
        summary = clock.run(10)
        assert summary["infected"] == 1
        assert summary["rate"] == pytest.approx(100.0)

    def test_snapshot_is_immutable(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        snap = clock.snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.stats = None
        assert isinstance(snap.agents, tuple)
        assert isinstance(snap.connections, tuple)

    def test_run_summary(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        summary = clock.run(60, dt_ms=FRAME_MS)
        assert summary["n_ticks"] == 60
        assert summary["elapsed_seconds"] == pytest.approx(60 * FRAME_MS / 1000.0)
        assert len(clock.history) == 61
        assert clock.running


class TestProperties:
    """Run-level invariants."""

    def test_monotonic_and_contained(self):
        cfg = SimulationConfig(population_size=200, bounds=UNIT_SQUARE, infection_radius=0.05, seed=11)
        clock = SimulationClock(cfg, now=0.0)
        clock.start(0.0)

        previous = clock.stats
        for i in range(1, 400):
            snap = clock.tick(i * FRAME_MS)
            assert snap.stats.infected >= previous.infected
            assert snap.stats.rate >= previous.rate
            assert UNIT_SQUARE.contains_all(clock.pool.positions)
            previous = snap.stats

    def test_no_agent_is_source_and_target_in_one_tick(self):
        cfg = SimulationConfig(population_size=300, bounds=UNIT_SQUARE, infection_radius=0.08, seed=5)
        clock = SimulationClock(cfg, now=0.0)
        clock.start(0.0)
        for i in range(1, 60):
            snap = clock.tick(i * FRAME_MS)
            fresh = [e for e in snap.connections if e.created_at == snap.now]
            sources = {e.source_id for e in fresh}
            targets = {e.target_id for e in fresh}
            assert sources.isdisjoint(targets)

    def test_infected_at_iff_infected(self):
        cfg = SimulationConfig(population_size=150, bounds=UNIT_SQUARE, infection_radius=0.1, seed=9)
        clock = SimulationClock(cfg, now=0.0)
        clock.run(100)
        for agent in clock.snapshot().agents:
            assert (agent.infected_at is not None) == agent.is_infected

    def test_spread_happens(self):
        cfg = SimulationConfig(population_size=200, bounds=UNIT_SQUARE, infection_radius=0.2, seed=2)
        clock = SimulationClock(cfg, now=0.0)
        clock.run(30)
        assert clock.stats.infected > 1

    def test_deterministic_with_seed(self, unit_config):
        a = SimulationClock(unit_config, now=0.0)
        b = SimulationClock(unit_config, now=0.0)
        a.run(100)
        b.run(100)
        assert a.snapshot() == b.snapshot()

    def test_strategies_agree_on_full_run(self):
        base = SimulationConfig(population_size=300, bounds=UNIT_SQUARE, infection_radius=0.04, seed=4)
        brute = SimulationClock(dataclasses.replace(base, proximity_index="brute"), now=0.0)
        tree = SimulationClock(dataclasses.replace(base, proximity_index="kdtree"), now=0.0)
        brute.run(200)
        tree.run(200)
        assert brute.history == tree.history
        assert brute.snapshot().agents == tree.snapshot().agents


class TestConcreteScenario:
    """200 agents in the unit square, radius 0.003, patient zero at the center."""

    def test_after_reset(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        clock.pool.positions[0] = (0.5, 0.5)
        assert clock.stats == SimulationStats(total=200, infected=1, rate=0.5)

    def test_long_run_bounded_and_non_decreasing(self, unit_config):
        clock = SimulationClock(unit_config, now=0.0)
        clock.pool.positions[0] = (0.5, 0.5)
        clock.run(2000, dt_ms=FRAME_MS)

        counts = [p.infected_count for p in clock.history]
        assert all(b >= a for a, b in zip(counts, counts[1:]))
        assert counts[-1] <= 200


class TestLogging:
    """Lifecycle logging through loguru."""

    @pytest.fixture
    def messages(self):
        captured = []
        logger.enable("badapple")
        sink_id = logger.add(captured.append, level="DEBUG", format="{message}")
        yield captured
        logger.remove(sink_id)
        logger.disable("badapple")

    def test_saturation_logged_once(self, messages):
        cfg = SimulationConfig(population_size=3, bounds=UNIT_SQUARE, infection_radius=0.5, seed=0)
        clock = SimulationClock(cfg, now=0.0)
        place(clock, [[0.5, 0.5], [0.51, 0.5], [0.5, 0.51]])
        clock.run(5)

        saturated = [m for m in messages if "All 3 agents infected" in m]
        assert len(saturated) == 1

    def test_reset_logged(self, messages, unit_config):
        SimulationClock(unit_config, now=0.0)
        assert any("Reset: 200 agents" in m for m in messages)
