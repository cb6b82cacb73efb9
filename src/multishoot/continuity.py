from __future__ import annotations

from typing import Sequence

import jax.numpy as jnp


def continuity_residuals(
    states: Sequence[jnp.ndarray], ok: jnp.ndarray | None = None
) -> jnp.ndarray:
    """Element-wise ``|last(i) - first(i + 1)|`` for every adjacent pair of groups.

    Returns an array of shape ``(K - 1, D)``. When ``ok`` flags are given, pairs
    touching a failed group are zeroed.
    """

    state_dim = states[0].shape[-1]
    if len(states) < 2:
        return jnp.zeros((0, state_dim), dtype=states[0].dtype)
    last = jnp.stack([prediction[-1] for prediction in states[:-1]])
    first = jnp.stack([prediction[0] for prediction in states[1:]])
    residuals = jnp.abs(last - first)
    if ok is None:
        return residuals
    ok = jnp.asarray(ok, dtype=bool)
    pair_ok = jnp.logical_and(ok[:-1], ok[1:])
    return jnp.where(pair_ok[:, None], residuals, jnp.zeros_like(residuals))


def penalty_from_residuals(
    residuals: jnp.ndarray, continuity_term: float
) -> jnp.ndarray:
    return continuity_term * jnp.sum(residuals)


def continuity_penalty(
    states: Sequence[jnp.ndarray],
    continuity_term: float,
    ok: jnp.ndarray | None = None,
) -> jnp.ndarray:
    """Weighted sum of all overlap mismatches; zero for a single group."""

    return penalty_from_residuals(continuity_residuals(states, ok), continuity_term)
