class CirclevoError(Exception):
    """Base for all circlevo exceptions."""

    pass


# High-level families
class ValidationError(CirclevoError):
    """Invalid inputs or configuration."""

    pass


class EvolutionError(CirclevoError):
    """Evolution process failures."""

    pass


# Validation subtypes
class ShapeMismatchError(ValidationError):
    """Two raster buffers with different dimensions were combined."""

    pass


class InvalidConfigError(ValidationError):
    """Population size, snapshot frequency or metric selector is invalid."""

    pass


# Evolution subtypes
class AlreadyRunningError(EvolutionError):
    """start() was called on an engine that is already running."""

    pass


class MutationError(EvolutionError):
    """Mutation failures."""

    pass
