"""Per-group trajectory simulation.

Each group restarts from the *observed* state at its first sample, so no
group depends on another group's prediction. Groups sharing a length are
integrated together under ``eqx.filter_vmap``; with the shrink tail policy
there are at most two such buckets.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Sequence

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np

from ._integrator import IntegrationResult, Integrator, VectorField
from .data import TrajectoryDataset
from .errors import DimensionMismatch, IntegrationFailure
from .partition import Group


def check_vector_field(
    vector_field: VectorField, parameters: Any, dataset: TrajectoryDataset
) -> None:
    """Raise :class:`DimensionMismatch` unless ``vector_field`` maps states to same-shaped derivatives."""

    derivative = eqx.filter_eval_shape(
        vector_field, dataset.ts[0], dataset.states[0], parameters
    )
    expected = (dataset.state_dim,)
    shape = getattr(derivative, "shape", None)
    if shape != expected:
        raise DimensionMismatch(
            f"Vector field returned shape {shape}; expected {expected}."
        )


def frozen_parameters(parameters: Any) -> Any:
    """``parameters`` with ``stop_gradient`` applied to every inexact array leaf."""

    dynamic, static = eqx.partition(parameters, eqx.is_inexact_array)
    return eqx.combine(jax.tree_util.tree_map(jax.lax.stop_gradient, dynamic), static)


def _gate_parameters(parameters: Any, open_: jax.Array) -> Any:
    dynamic, static = eqx.partition(parameters, eqx.is_inexact_array)
    gated = jax.tree_util.tree_map(
        lambda leaf: jnp.where(open_, leaf, jax.lax.stop_gradient(leaf)), dynamic
    )
    return eqx.combine(gated, static)


def solve_group(
    vector_field: VectorField,
    parameters: Any,
    dataset: TrajectoryDataset,
    group: Group,
    integrator: Integrator,
) -> IntegrationResult:
    ts, states = dataset.group_slice(group)
    return integrator(vector_field, states[0], ts, parameters)


def solve_groups(
    vector_field: VectorField,
    parameters: Any,
    dataset: TrajectoryDataset,
    groups: Sequence[Group],
    integrator: Integrator,
    gate: jax.Array | None = None,
) -> tuple[IntegrationResult, ...]:
    """Integrate every group independently and return results in group order.

    ``gate`` is an optional boolean flag per group. Where it is false the group
    sees ``stop_gradient(parameters)``, so no cotangent from that solve reaches
    the parameters. Forward values are unchanged.
    """

    buckets: dict[int, list[int]] = defaultdict(list)
    for position, group in enumerate(groups):
        buckets[group.size].append(position)
    if gate is None:
        gate = jnp.ones((len(groups),), dtype=bool)
    gate = jnp.asarray(gate, dtype=bool)

    def _solve(
        ts: jnp.ndarray, initial_state: jnp.ndarray, open_: jax.Array
    ) -> IntegrationResult:
        return integrator(
            vector_field, initial_state, ts, _gate_parameters(parameters, open_)
        )

    batched_solve = eqx.filter_vmap(_solve)
    results: list[IntegrationResult | None] = [None] * len(groups)
    for size, members in buckets.items():
        positions = np.asarray(members, dtype=np.int32)
        starts = np.asarray([groups[p].start for p in members], dtype=np.int32)
        window = starts[:, None] + np.arange(size, dtype=np.int32)[None, :]
        batch = batched_solve(
            dataset.ts[window], dataset.states[starts], gate[positions]
        )
        for row, position in enumerate(members):
            results[position] = IntegrationResult(
                states=batch.states[row], ok=batch.ok[row]
            )
    return tuple(results)


def simulate_trajectory(
    vector_field: VectorField,
    parameters: Any,
    dataset: TrajectoryDataset,
    integrator: Integrator | None = None,
) -> jnp.ndarray:
    """Single-shooting solve over the whole dataset from its first observed state."""

    integrator = integrator or Integrator()
    check_vector_field(vector_field, parameters, dataset)
    result = integrator(vector_field, dataset.states[0], dataset.ts, parameters)
    if not bool(result.ok):
        raise IntegrationFailure(0, "Integration over the full trajectory failed.")
    return result.states
