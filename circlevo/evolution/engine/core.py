from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import numpy as np
from loguru import logger

from circlevo.evolution.engine.config import EngineConfig
from circlevo.evolution.engine.metrics import EngineMetrics
from circlevo.evolution.engine.models import GenerationRecord
from circlevo.evolution.engine.optimizer import GenerationResult, run_generation
from circlevo.evolution.fitness import FitnessFunction, resolve_metric
from circlevo.evolution.mutation.base import MutationOperator
from circlevo.evolution.mutation.erase_and_draw import EraseAndDrawMutationOperator
from circlevo.exceptions import AlreadyRunningError
from circlevo.raster.buffer import RasterBuffer, check_same_shape

if TYPE_CHECKING:
    from circlevo.utils.trackers.base import SnapshotSink

__all__ = ["EvolutionEngine"]


class EvolutionEngine:
    """
    Drives repeated (1+lambda) generations of ``candidate`` towards ``target``:
    - One asyncio task per run; the task yields after every generation.
    - ``stop()`` is observed at the yield point, never inside a generation.
    - Every ``snapshot_frequency`` generations a read-only snapshot goes to the sinks.
    """

    def __init__(
        self,
        target: RasterBuffer,
        candidate: RasterBuffer,
        *,
        config: EngineConfig | None = None,
        mutation_operator: MutationOperator | None = None,
        sinks: Iterable[SnapshotSink] = (),
        rng: np.random.Generator | None = None,
    ):
        check_same_shape(target, candidate)
        self.target = target
        self.candidate = candidate
        self.config = config or EngineConfig()
        self.mutation_operator = mutation_operator or EraseAndDrawMutationOperator()
        self.sinks: list[SnapshotSink] = list(sinks)

        self._rng = rng
        self._run_rng: np.random.Generator | None = None
        self._score: FitnessFunction | None = None
        self._generation = 0
        self._epoch = 0
        self._running = False
        self._consecutive_errors = 0
        self._task: asyncio.Task | None = None

        self.metrics = EngineMetrics()

        logger.info(
            "[EvolutionEngine] Init | size={}x{}, mutation={}, sinks={}",
            target.width,
            target.height,
            type(self.mutation_operator).__name__,
            len(self.sinks),
        )

    # ---------------- Control ----------------

    def configure(
        self,
        population_size: int,
        metric: str,
        snapshot_frequency: int,
        **options: Any,
    ) -> EngineConfig:
        """Replace the run configuration; only allowed while idle."""
        if self._running:
            raise AlreadyRunningError("Cannot reconfigure a running engine; stop() first")
        self.config = EngineConfig.create(
            **{
                **self.config.model_dump(),
                **options,
                "population_size": population_size,
                "metric": metric,
                "snapshot_frequency": snapshot_frequency,
            }
        )
        logger.debug("[EvolutionEngine] Configured | {}", self.config)
        return self.config

    def start(
        self,
        config: EngineConfig | Mapping[str, Any] | None = None,
        *,
        target: RasterBuffer | None = None,
        candidate: RasterBuffer | None = None,
    ) -> asyncio.Task:
        """Begin a new run in the current event loop and return its task.

        Every failure leaves the engine exactly as it was.

        Raises:
            AlreadyRunningError: A run is in progress
            InvalidConfigError: ``config`` is invalid
            ShapeMismatchError: ``target`` and ``candidate`` differ in size
            RuntimeError: Called outside a running event loop
        """
        if self._running:
            raise AlreadyRunningError("Evolution engine is already running")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError(
                "EvolutionEngine.start() needs a running event loop; "
                "use step() for synchronous generations"
            ) from None

        if config is not None and not isinstance(config, EngineConfig):
            config = EngineConfig.create(**config)
        target = target if target is not None else self.target
        candidate = candidate if candidate is not None else self.candidate
        check_same_shape(target, candidate)

        self.config = config or self.config
        self.target, self.candidate = target, candidate
        self._reset_run_state()
        self._reset_sinks()

        self._task = loop.create_task(self._run(), name="evolution-engine")
        self._running = True
        return self._task

    def stop(self) -> None:
        """Cancel the pending resumption and reset the generation counter. No-op when idle."""
        if not self._running:
            return
        self._running = False
        self._epoch += 1
        self._generation = 0

        task = self._task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        logger.info("[EvolutionEngine] Stop requested")

    def is_running(self) -> bool:
        return self._running

    async def wait(self) -> None:
        """Wait for the current run's task to finish (or be cancelled)."""
        task = self._task
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def shutdown(self) -> None:
        """Stop and wait for the run task to unwind."""
        self.stop()
        await self.wait()

    async def run(
        self, config: EngineConfig | Mapping[str, Any] | None = None
    ) -> EngineMetrics:
        """Start a run and wait for it; returns the run's metrics."""
        self.start(config)
        await self.wait()
        return self.metrics

    def close(self) -> None:
        for sink in self.sinks:
            try:
                sink.close()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning(
                    "[EvolutionEngine] Sink {} close() raised: {}",
                    type(sink).__name__,
                    exc,
                )

    # ---------------- Generations ----------------

    def step(self) -> GenerationResult:
        """Run exactly one generation synchronously.

        If ``stop()`` is called while the generation is in flight, the generation
        still completes but is neither counted nor reported.

        Raises:
            AlreadyRunningError: Called from outside the run task while running
        """
        if self._running and _current_task() is not self._task:
            raise AlreadyRunningError(
                "step() is driven by the run task while the engine is running"
            )
        if self._score is None:
            self._reset_run_state()
        epoch = self._epoch

        result = run_generation(
            self.target,
            self.candidate,
            self.config.population_size,
            self._score,
            self._run_rng,
            self.mutation_operator,
        )
        if epoch != self._epoch:
            return result

        self._generation += 1
        self.metrics.record_generation(
            result.fitness, result.improved, result.trials, datetime.now(timezone.utc)
        )
        if result.improved:
            logger.debug(
                "[EvolutionEngine] Generation {} improved | {:.4f} -> {:.4f}",
                self._generation,
                result.parent_fitness,
                result.fitness,
            )

        if self._every(self._generation, self.config.log_interval):
            self._log_metrics()
        if self._every(self._generation, self.config.snapshot_frequency):
            record = GenerationRecord(
                generation=self._generation,
                fitness=result.fitness,
                snapshot=self.candidate.to_snapshot(),
            )
            self._emit(record, epoch)
        return result

    async def _run(self) -> None:
        me = _current_task()
        logger.info(
            "[EvolutionEngine] Start | population_size={}, metric={}, snapshot_frequency={}",
            self.config.population_size,
            self.config.metric.value,
            self.config.snapshot_frequency,
        )
        try:
            while self._running and self._task is me:
                if self._reached_generation_cap():
                    logger.info(
                        "[EvolutionEngine] Stop: max_generations={}",
                        self.config.max_generations,
                    )
                    break

                try:
                    self.step()
                    self._consecutive_errors = 0
                except Exception as exc:  # pylint: disable=broad-except
                    self._on_error(exc)
                    if self._consecutive_errors >= self.config.max_consecutive_errors:
                        logger.critical(
                            "[EvolutionEngine] Stop: {} consecutive errors",
                            self._consecutive_errors,
                        )
                        break

                await asyncio.sleep(self.config.loop_interval)
        finally:
            if self._task is me:
                self._running = False
            logger.info(
                "[EvolutionEngine] Stopped | generations={}, best_fitness={:.4f}",
                self.metrics.total_generations,
                self.metrics.best_fitness,
            )

    def _emit(self, record: GenerationRecord, epoch: int) -> None:
        self.metrics.snapshots_emitted += 1
        for sink in self.sinks:
            if epoch != self._epoch:
                return
            try:
                sink.emit(record)
            except Exception as exc:  # pylint: disable=broad-except
                self.metrics.sink_errors += 1
                logger.error(
                    "[EvolutionEngine] Sink {} failed at generation {}: {}",
                    type(sink).__name__,
                    record.generation,
                    exc,
                )

    def _reset_sinks(self) -> None:
        for sink in self.sinks:
            try:
                sink.reset()
            except Exception as exc:  # pylint: disable=broad-except
                self.metrics.sink_errors += 1
                logger.error(
                    "[EvolutionEngine] Sink {} reset() failed: {}",
                    type(sink).__name__,
                    exc,
                )

    # ---------------- Internals ----------------

    def _reset_run_state(self) -> None:
        self._score = resolve_metric(self.config.metric)
        self._run_rng = (
            self._rng if self._rng is not None else np.random.default_rng(self.config.seed)
        )
        self._generation = 0
        self._consecutive_errors = 0
        self.metrics = EngineMetrics()

    def _reached_generation_cap(self) -> bool:
        cap = self.config.max_generations
        return cap is not None and self._generation >= cap

    @staticmethod
    def _every(i: int, n: int) -> bool:
        return n > 0 and i % n == 0

    def _on_error(self, exc: Exception) -> None:
        self._consecutive_errors += 1
        self.metrics.errors_encountered += 1
        logger.error(
            "[EvolutionEngine] Error #{}: {}", self._consecutive_errors, exc
        )

    def _log_metrics(self) -> None:
        m = self.metrics.to_dict()
        metrics_str = " | ".join(
            f"{k}={v:.4f}" if isinstance(v, float) else f"{k}={v}" for k, v in m.items()
        )
        logger.info(f"[EvolutionEngine] | {metrics_str}")

    # ---------------- Status ----------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def best_fitness(self) -> float:
        return self.metrics.best_fitness

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    async def get_status(self) -> dict[str, object]:
        """Light, non-blocking status for UIs/health checks."""
        return {
            "running": self._running,
            "generation": self._generation,
            "consecutive_errors": self._consecutive_errors,
            **self.metrics.to_dict(),
        }


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
