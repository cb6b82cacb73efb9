#!/usr/bin/env python3
"""Fit a neural vector field to a damped spiral, single vs multiple shooting."""

# %%
import logging
from pathlib import Path

import jax.numpy as jnp
import jax.random as jr
import optax

from multishoot import (
    LinearVectorField,
    MLPVectorField,
    ShootingConfig,
    TrainingPhase,
    TrajectoryDataset,
    build_shooting_objective,
    fit,
    module_vector_field,
    save_prediction_bundle,
    simulate_trajectory,
    single_shooting_loss,
)

OUT_DIR = Path(__file__).resolve().parents[1] / "out" / "fit_spiral_multiple_shooting"
NUM_SAMPLES = 61
TRUE_DYNAMICS = jnp.array([[-0.1, 2.0], [-2.0, -0.1]], dtype=jnp.float32)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("fit_spiral")


# %%
def build_dataset() -> TrajectoryDataset:
    ts = jnp.linspace(0.0, 6.0, NUM_SAMPLES, dtype=jnp.float32)
    initial = jnp.zeros((NUM_SAMPLES, 2)).at[0].set(jnp.array([2.0, 0.0]))
    seed = TrajectoryDataset(ts=ts, states=initial)
    states = simulate_trajectory(module_vector_field, LinearVectorField(TRUE_DYNAMICS), seed)
    return TrajectoryDataset(ts=ts, states=states)


def train(dataset: TrajectoryDataset, group_size: int, key) -> tuple[object, list[float]]:
    objective = build_shooting_objective(
        dataset,
        module_vector_field,
        ShootingConfig(group_size=group_size, continuity_term=100.0),
    )
    model = MLPVectorField(2, 32, 2, key=key)
    result = fit(
        objective,
        model,
        [
            TrainingPhase(optax.adam(1e-2), steps=300, name="adam"),
            TrainingPhase(optax.adam(1e-3), steps=200, name="adam-finetune"),
        ],
    )
    _, prediction = objective.evaluate(result.parameters)
    save_prediction_bundle(OUT_DIR / f"prediction_g{group_size}.npz", prediction, dataset)
    return result.parameters, result.history


# %%
if __name__ == "__main__":
    dataset = build_dataset()
    key = jr.PRNGKey(0)
    for group_size in (NUM_SAMPLES, 7):
        model, history = train(dataset, group_size, key)
        reference = single_shooting_loss(dataset, module_vector_field, model)
        logger.info(
            "group_size=%d: final training loss %.4g, single-shooting loss %.4g",
            group_size,
            history[-1],
            float(reference),
        )
