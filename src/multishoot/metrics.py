"""Data-fit comparisons between a group's predicted and observed states.

Each takes ``(pred, target)`` of shape ``(M, D)`` and returns a scalar.
"""

from __future__ import annotations

from typing import Callable, TypeAlias

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Float

from .errors import InvalidConfiguration

FloatArray: TypeAlias = Float[jnp.ndarray, "..."]
DataFit = Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]


@eqx.filter_jit
def sse(pred: FloatArray, target: FloatArray) -> jnp.ndarray:
    """Sum of squared residuals over every sample and state component."""

    return jnp.sum(jnp.square(pred - target))


@eqx.filter_jit
def mse(pred: FloatArray, target: FloatArray) -> jnp.ndarray:
    return sse(pred, target) / target.size


@eqx.filter_jit
def mae(pred: FloatArray, target: FloatArray) -> jnp.ndarray:
    return jnp.sum(jnp.abs(pred - target)) / target.size


@eqx.filter_jit
def norm_mse(pred: FloatArray, target: FloatArray, eps: float = 1e-8) -> jnp.ndarray:
    """``mse`` with each state component divided by its observed standard deviation."""

    scale = jnp.std(target, axis=0) + eps
    return mse(pred / scale, target / scale)


DATA_FITS: dict[str, DataFit] = {
    "sse": sse,
    "mse": mse,
    "mae": mae,
    "norm_mse": norm_mse,
}


def resolve_data_fit(data_fit: str | DataFit) -> DataFit:
    if callable(data_fit):
        return data_fit
    try:
        return DATA_FITS[data_fit]
    except KeyError:
        raise InvalidConfiguration(
            f"Unknown data_fit '{data_fit}'. Expected one of {sorted(DATA_FITS)} or a callable."
        ) from None
