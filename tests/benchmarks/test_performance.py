from __future__ import annotations

import jax
import jax.numpy as jnp
import jax.random as jr
import pytest

from multishoot.data import TrajectoryDataset
from multishoot.loss import ShootingConfig, build_shooting_objective
from multishoot.models import MLPVectorField, module_vector_field


def _spiral_dataset(num_samples: int) -> TrajectoryDataset:
    ts = jnp.linspace(0.0, 6.0, num_samples, dtype=jnp.float32)
    states = jnp.stack([jnp.exp(-0.1 * ts) * jnp.cos(ts), jnp.exp(-0.1 * ts) * jnp.sin(ts)], axis=1)
    return TrajectoryDataset(ts=ts, states=states)


@pytest.mark.benchmark(group="evaluate")
@pytest.mark.parametrize("group_size", [3, 11, 101])
def test_evaluate_benchmark(benchmark, group_size):
    dataset = _spiral_dataset(101)
    model = MLPVectorField(2, 16, 2, key=jr.PRNGKey(0))
    objective = build_shooting_objective(
        dataset, module_vector_field, ShootingConfig(group_size=group_size)
    )

    def run():
        loss, _ = objective.evaluate(model)
        return jax.block_until_ready(loss)

    benchmark(run)


@pytest.mark.benchmark(group="gradient")
def test_value_and_grad_benchmark(benchmark):
    dataset = _spiral_dataset(61)
    model = MLPVectorField(2, 16, 2, key=jr.PRNGKey(1))
    objective = build_shooting_objective(
        dataset, module_vector_field, ShootingConfig(group_size=7)
    )

    def run():
        (loss, _), grads = objective.value_and_grad(model)
        return jax.block_until_ready((loss, grads))

    benchmark(run)
