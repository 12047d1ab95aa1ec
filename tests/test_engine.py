"""Tests for circlevo.evolution.engine.core: the EvolutionEngine run loop."""

import asyncio
import math

import numpy as np
import pytest

from circlevo.evolution.engine import EngineConfig, EvolutionEngine, GenerationResult
from circlevo.evolution.mutation.base import MutationOperator
from circlevo.exceptions import (
    AlreadyRunningError,
    InvalidConfigError,
    ShapeMismatchError,
)
from circlevo.raster.buffer import RasterBuffer
from circlevo.utils.trackers import CallbackSink, MemorySink

from conftest import solid


class FailingMutator(MutationOperator):
    def mutate(self, buffer, rng):
        raise RuntimeError("boom")


class FailingSink(MemorySink):
    def emit(self, record):
        super().emit(record)
        raise RuntimeError("sink down")


def make_engine(sinks=(), **kwargs):
    target = solid(16, 16)
    candidate = RasterBuffer.blank(16, 16)
    config = EngineConfig(loop_interval=0, seed=5, snapshot_frequency=2)
    return EvolutionEngine(target, candidate, config=config, sinks=sinks, **kwargs)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_runs_until_max_generations(self):
        sink = MemorySink()
        engine = make_engine(sinks=[sink])

        metrics = await engine.run(
            {"max_generations": 6, "snapshot_frequency": 2, "loop_interval": 0, "seed": 1}
        )

        assert not engine.is_running()
        assert engine.generation == 6
        assert metrics.total_generations == 6
        assert metrics.trials_evaluated == 6 * engine.config.population_size
        assert sink.generations == [2, 4, 6]
        fitnesses = [r.fitness for r in sink.records]
        assert fitnesses == sorted(fitnesses, reverse=True)
        assert engine.best_fitness == fitnesses[-1]

    @pytest.mark.asyncio
    async def test_snapshots_are_frozen_copies(self):
        sink = MemorySink()
        engine = make_engine(sinks=[sink])
        await engine.run({"max_generations": 2, "snapshot_frequency": 1, "loop_interval": 0})

        first = sink.records[0].snapshot
        assert first.is_read_only
        assert sink.records[-1].snapshot == engine.candidate
        engine.candidate.clear_rect(0, 0, 16, 16)
        assert sink.records[-1].snapshot != engine.candidate

    @pytest.mark.asyncio
    async def test_start_then_immediate_stop(self):
        engine = make_engine()
        before = engine.candidate.clone()

        task = engine.start()
        engine.stop()
        await engine.wait()

        assert task.cancelled()
        assert not engine.is_running()
        assert engine.generation == 0
        assert engine.candidate == before

    @pytest.mark.asyncio
    async def test_start_while_running_is_rejected(self):
        engine = make_engine()
        config = EngineConfig(loop_interval=0, population_size=3)
        task = engine.start(config)

        with pytest.raises(AlreadyRunningError):
            engine.start(EngineConfig(population_size=50))

        assert engine.is_running()
        assert engine.task is task
        assert engine.config is config
        await engine.shutdown()

    def test_start_outside_event_loop_leaves_state(self):
        engine = make_engine()
        engine.step()
        config, candidate = engine.config, engine.candidate
        other = RasterBuffer.blank(16, 16)

        with pytest.raises(RuntimeError, match="running event loop"):
            engine.start(EngineConfig(population_size=42), candidate=other)

        assert engine.config is config
        assert engine.candidate is candidate
        assert engine.generation == 1
        assert engine.metrics.total_generations == 1
        assert engine.task is None
        assert not engine.is_running()

    @pytest.mark.asyncio
    async def test_restart_resets_sinks(self):
        sink = MemorySink()
        engine = make_engine(sinks=[sink])
        await engine.run(EngineConfig(loop_interval=0, snapshot_frequency=1, max_generations=3))
        assert sink.generations == [1, 2, 3]

        await engine.run(EngineConfig(loop_interval=0, snapshot_frequency=1, max_generations=2))
        assert sink.generations == [1, 2]

    def test_stop_when_idle_is_noop(self):
        engine = make_engine()
        engine.stop()
        engine.stop()
        assert not engine.is_running()
        assert engine.generation == 0

    @pytest.mark.asyncio
    async def test_stop_resets_counter_and_restart_works(self):
        engine = make_engine()
        engine.start(EngineConfig(loop_interval=0))
        while engine.generation < 3:
            await asyncio.sleep(0)
        await engine.shutdown()
        assert engine.generation == 0

        await engine.run(EngineConfig(loop_interval=0, max_generations=2))
        assert engine.generation == 2

    @pytest.mark.asyncio
    async def test_yields_between_generations(self):
        engine = make_engine()
        engine.start(EngineConfig(loop_interval=0, max_generations=8))

        seen = set()
        while engine.is_running():
            seen.add(engine.generation)
            await asyncio.sleep(0)

        assert len(seen) >= 3
        assert engine.generation == 8


class TestStopFromSink:
    @pytest.mark.asyncio
    async def test_no_generation_after_stop(self):
        records = []
        engine = make_engine()

        def on_snapshot(record):
            records.append(record)
            engine.stop()

        engine.sinks = [CallbackSink(on_snapshot), MemorySink()]
        await engine.run(EngineConfig(loop_interval=0, snapshot_frequency=3))

        assert [r.generation for r in records] == [3]
        # later sinks in the same emission are skipped once the run is stopped
        assert engine.sinks[1].records == []
        assert engine.metrics.total_generations == 3
        assert engine.generation == 0
        assert not engine.is_running()


class TestConfiguration:
    def test_best_fitness_starts_infinite(self):
        assert math.isinf(make_engine().best_fitness)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"population_size": 0, "metric": "alpha", "snapshot_frequency": 1},
            {"population_size": 1, "metric": "alpha", "snapshot_frequency": 0},
            {"population_size": 1, "metric": "bogus", "snapshot_frequency": 1},
        ],
    )
    def test_configure_rejects_invalid_values(self, kwargs):
        with pytest.raises(InvalidConfigError):
            make_engine().configure(**kwargs)

    def test_configure_keeps_other_options(self):
        engine = make_engine()
        config = engine.configure(7, "alpha", 11)
        assert config.population_size == 7
        assert config.metric.value == "alpha"
        assert config.snapshot_frequency == 11
        assert config.loop_interval == 0
        assert engine.config is config

    @pytest.mark.asyncio
    async def test_configure_while_running_is_rejected(self):
        engine = make_engine()
        engine.start()
        with pytest.raises(AlreadyRunningError):
            engine.configure(2, "alpha", 2)
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_start_rejects_invalid_config_mapping(self):
        engine = make_engine()
        with pytest.raises(InvalidConfigError):
            engine.start({"population_size": -1})
        assert not engine.is_running()

    @pytest.mark.asyncio
    async def test_start_rejects_mismatched_buffers(self):
        engine = make_engine()
        with pytest.raises(ShapeMismatchError):
            engine.start(candidate=RasterBuffer.blank(8, 8))
        assert not engine.is_running()
        assert engine.candidate.shape == (16, 16)


class TestErrorHandling:
    @pytest.mark.asyncio
    async def test_sink_errors_do_not_stop_run(self):
        sink = FailingSink()
        engine = make_engine(sinks=[sink])
        await engine.run(EngineConfig(loop_interval=0, snapshot_frequency=1, max_generations=4))

        assert engine.generation == 4
        assert sink.generations == [1, 2, 3, 4]
        assert engine.metrics.sink_errors == 4

    @pytest.mark.asyncio
    async def test_stops_after_consecutive_errors(self):
        engine = make_engine(mutation_operator=FailingMutator())
        await engine.run(EngineConfig(loop_interval=0, max_consecutive_errors=3))

        assert not engine.is_running()
        assert engine.metrics.errors_encountered == 3
        assert engine.generation == 0


class TestManualStep:
    def test_step_without_event_loop(self):
        engine = make_engine(rng=np.random.default_rng(3))
        result = engine.step()
        assert isinstance(result, GenerationResult)
        assert engine.generation == 1
        assert engine.best_fitness == result.fitness

    def test_seeded_engines_agree(self):
        a = make_engine()
        b = make_engine()
        for _ in range(5):
            a.step()
            b.step()
        assert a.candidate == b.candidate
        assert a.best_fitness == b.best_fitness

    @pytest.mark.asyncio
    async def test_step_rejected_while_running(self):
        engine = make_engine()
        engine.start(EngineConfig(loop_interval=0))
        while engine.generation < 2:
            await asyncio.sleep(0)

        generation = engine.generation
        with pytest.raises(AlreadyRunningError):
            engine.step()
        assert engine.generation == generation

        await engine.shutdown()
        engine.step()
        assert engine.generation == 1

    @pytest.mark.asyncio
    async def test_status(self):
        engine = make_engine()
        engine.step()
        status = await engine.get_status()
        assert status["running"] is False
        assert status["generation"] == 1
        assert status["total_generations"] == 1
