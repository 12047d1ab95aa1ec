from circlevo.evolution.mutation.base import MutationOperator
from circlevo.evolution.mutation.erase_and_draw import EraseAndDrawMutationOperator

__all__ = ["MutationOperator", "EraseAndDrawMutationOperator"]
