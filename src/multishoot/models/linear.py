from __future__ import annotations

import equinox as eqx
import jax
import jax.numpy as jnp
import jax.random as jr


class LinearVectorField(eqx.Module):
    """Autonomous linear dynamics ``dy/dt = W y``."""

    weight: jax.Array

    def __init__(
        self,
        weight: jax.Array,
        perturbation: float = 0.01,
        key: jax.Array | None = None,
    ):
        base = jnp.asarray(weight, dtype=jnp.float32)
        if base.ndim != 2 or base.shape[0] != base.shape[1]:
            raise ValueError("weight must be a square matrix.")
        if key is not None:
            base = base + perturbation * jr.normal(key, base.shape, dtype=jnp.float32)
        self.weight = base

    def __call__(self, t: jax.Array, y: jax.Array) -> jax.Array:
        del t
        return self.weight @ y
