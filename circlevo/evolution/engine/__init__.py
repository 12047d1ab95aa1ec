from __future__ import annotations

from circlevo.evolution.engine.config import EngineConfig
from circlevo.evolution.engine.core import EvolutionEngine
from circlevo.evolution.engine.metrics import EngineMetrics
from circlevo.evolution.engine.models import GenerationRecord
from circlevo.evolution.engine.optimizer import GenerationResult, run_generation
