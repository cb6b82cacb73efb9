from __future__ import annotations

from typing import Any, Callable

import equinox as eqx
import jax
import jax.nn as jnn
import jax.numpy as jnp


class MLPVectorField(eqx.Module):
    """Neural vector field: an MLP over the state, optionally with time appended."""

    mlp: eqx.nn.MLP
    include_time: bool = eqx.field(static=True)

    def __init__(
        self,
        state_size: int,
        width_size: int,
        depth: int,
        include_time: bool = False,
        *,
        key: jax.Array,
        activation: Callable = jnn.tanh,
    ):
        if state_size <= 0:
            raise ValueError("state_size must be positive.")
        self.include_time = include_time
        self.mlp = eqx.nn.MLP(
            in_size=state_size + (1 if include_time else 0),
            out_size=state_size,
            width_size=width_size,
            depth=depth,
            activation=activation,
            key=key,
        )

    def __call__(self, t: jax.Array, y: jax.Array) -> jax.Array:
        if self.include_time:
            t_feat = jnp.atleast_1d(jnp.asarray(t, dtype=y.dtype))
            return self.mlp(jnp.concatenate([y, t_feat], axis=-1))
        return self.mlp(y)


def module_vector_field(t: Any, y: jax.Array, model: Any) -> jax.Array:
    """Vector field whose parameters are the callable module ``model``."""

    return model(t, y).astype(y.dtype)
