import asyncio
from datetime import datetime, timezone
from pathlib import Path
import time

import hydra
from hydra.core.hydra_config import HydraConfig
from loguru import logger
from omegaconf import DictConfig, OmegaConf

from circlevo.evolution.engine import EngineConfig, EvolutionEngine
from circlevo.problems.targets import (
    blank_candidate,
    load_image_target,
    render_text_target,
)
from circlevo.raster.buffer import RasterBuffer
from circlevo.utils.logger_setup import setup_logger
from circlevo.utils.serve import serve_until_signal
from circlevo.utils.trackers import (
    LoguruSink,
    PNGHistorySink,
    SnapshotSink,
    TensorBoardSink,
)


def build_target(cfg: DictConfig) -> RasterBuffer:
    if cfg.image:
        size = (cfg.width, cfg.height) if cfg.resize else None
        return load_image_target(cfg.image, size=size)
    return render_text_target(
        cfg.text,
        cfg.width,
        cfg.height,
        font_size=cfg.font_size,
        fill=cfg.fill,
        font_path=cfg.font_path,
    )


def build_sinks(cfg: DictConfig, output_dir: str | Path) -> list[SnapshotSink]:
    """Relative sink directories are placed under the run's output directory."""
    output_dir = Path(output_dir)
    sinks: list[SnapshotSink] = [LoguruSink()]
    if cfg.png_dir:
        thumbnail = tuple(cfg.thumbnail) if cfg.thumbnail else None
        sinks.append(PNGHistorySink(output_dir / cfg.png_dir, thumbnail=thumbnail))
    if cfg.tensorboard_dir:
        sinks.append(TensorBoardSink(output_dir / cfg.tensorboard_dir))
    return sinks


async def run_experiment(cfg: DictConfig, output_dir: str) -> None:
    start_time = time.time()

    logger.info("=" * 80)
    logger.info("Circlevo Evolution Run")
    logger.info("=" * 80)
    logger.info(f"Start time: {datetime.now(timezone.utc).isoformat()}")

    engine: EvolutionEngine | None = None
    try:
        logger.info("Step 1/3: Building target and candidate...")
        target = build_target(cfg.target)
        candidate = blank_candidate(target)
        logger.info(f"  Target size: {target.width}x{target.height}")

        logger.info("Step 2/3: Initializing engine...")
        engine_config = EngineConfig.create(**OmegaConf.to_container(cfg.engine))
        engine = EvolutionEngine(
            target,
            candidate,
            config=engine_config,
            sinks=build_sinks(cfg.sinks, output_dir),
        )
        max_gens = engine_config.max_generations
        logger.info(f"  Population size: {engine_config.population_size}")
        logger.info(f"  Metric: {engine_config.metric.value}")
        logger.info(f"  Max generations: {max_gens if max_gens else 'unlimited'}")

        logger.info("Step 3/3: Running until completion or signal...")
        engine.start()
        await serve_until_signal(stop_coros=(engine.shutdown(),), on_stop=(engine.task,))

    except KeyboardInterrupt:
        logger.info("Evolution run interrupted by user")
    except Exception as e:  # pylint: disable=broad-except
        logger.error(f"Evolution run failed: {e}")
        raise
    finally:
        if engine is not None:
            engine.close()
            logger.info(
                "Generations: {}, best fitness: {:.4f}",
                engine.metrics.total_generations,
                engine.metrics.best_fitness,
            )
        duration = time.time() - start_time
        logger.info(f"Total run duration: {duration:.2f} seconds")
        logger.info("=" * 80)


@hydra.main(version_base=None, config_path="config", config_name="config")
def main(cfg: DictConfig) -> None:
    """Main entrypoint with Hydra configuration management."""
    log_file_path = setup_logger(
        log_dir=cfg.logging.log_dir,
        level=cfg.logging.level,
        rotation=cfg.logging.rotation,
        retention=cfg.logging.retention,
    )
    output_dir = HydraConfig.get().runtime.output_dir
    logger.info("Run working directory: {}.", output_dir)
    logger.info(f"Log file: {log_file_path}")
    asyncio.run(run_experiment(cfg, output_dir))


if __name__ == "__main__":
    main()
