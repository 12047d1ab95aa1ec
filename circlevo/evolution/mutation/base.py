from abc import ABC, abstractmethod

import numpy as np

from circlevo.raster.buffer import RasterBuffer


class MutationOperator(ABC):
    """Abstract mutation operator that perturbs a candidate buffer in place."""

    @abstractmethod
    def mutate(self, buffer: RasterBuffer, rng: np.random.Generator) -> RasterBuffer:
        """Apply one mutation to ``buffer``.

        Args:
            buffer: Writable buffer, modified in place
            rng: Source of all randomness used by the mutation

        Returns:
            The same ``buffer`` object
        """
