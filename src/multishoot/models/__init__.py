"""Vector-field parameterisations used as shooting parameters."""

from .linear import LinearVectorField
from .mlp import MLPVectorField, module_vector_field

__all__ = [
    "LinearVectorField",
    "MLPVectorField",
    "module_vector_field",
]
