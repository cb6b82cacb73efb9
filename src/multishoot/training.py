"""Reference optimisation loop around a :class:`ShootingObjective`.

The loop owns the parameters and the optimizer state. A step whose forward
pass reported a failed group, or whose loss or gradients are non-finite, is
rejected: parameters and optimizer state are kept as they were and the
next step is tried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence, TypeVar

import equinox as eqx
import jax
import jax.numpy as jnp
import optax
from jax import tree_util
from tqdm import tqdm

from .errors import InvalidConfiguration
from .loss import ShootingObjective, ShootingPrediction

logger = logging.getLogger(__name__)

ParamsT = TypeVar("ParamsT")
StepCallback = Callable[[int, float, ShootingPrediction], None]


@dataclass(frozen=True)
class TrainingPhase:
    optimizer: optax.GradientTransformation
    steps: int
    name: str = "phase"

    def __post_init__(self):
        if self.steps <= 0:
            raise InvalidConfiguration("steps must be positive")


@dataclass
class FitResult:
    parameters: Any
    history: list[float] = field(default_factory=list)
    rejected_steps: int = 0


def _select(accept: jax.Array, new: Any, old: Any) -> Any:
    new_dynamic, static = eqx.partition(new, eqx.is_array)
    old_dynamic, _ = eqx.partition(old, eqx.is_array)
    chosen = tree_util.tree_map(
        lambda a, b: jnp.where(accept, a, b), new_dynamic, old_dynamic
    )
    return eqx.combine(chosen, static)


def _all_finite(tree: Any) -> jax.Array:
    leaves = tree_util.tree_leaves(eqx.filter(tree, eqx.is_inexact_array))
    if not leaves:
        return jnp.array(True)
    return jnp.all(jnp.stack([jnp.all(jnp.isfinite(leaf)) for leaf in leaves]))


def _make_step(objective: ShootingObjective, optimizer: optax.GradientTransformation):
    @eqx.filter_jit
    def step(
        parameters: ParamsT, opt_state: optax.OptState
    ) -> tuple[ParamsT, optax.OptState, jnp.ndarray, ShootingPrediction, jax.Array]:
        (loss, prediction), grads = objective.value_and_grad(parameters)
        accept = jnp.all(prediction.ok) & jnp.isfinite(loss) & _all_finite(grads)
        params = eqx.filter(parameters, eqx.is_inexact_array)
        updates, new_opt_state = optimizer.update(grads, opt_state, params)
        new_parameters = eqx.apply_updates(parameters, updates)
        return (
            _select(accept, new_parameters, parameters),
            _select(accept, new_opt_state, opt_state),
            loss,
            prediction,
            accept,
        )

    return step


def fit(
    objective: ShootingObjective,
    parameters: ParamsT,
    phases: Sequence[TrainingPhase] | TrainingPhase,
    *,
    callback: StepCallback | None = None,
    progress: bool = True,
) -> FitResult:
    """Run each phase in order, each with a fresh optimizer state."""

    if isinstance(phases, TrainingPhase):
        phases = (phases,)
    if not phases:
        raise InvalidConfiguration("fit requires at least one TrainingPhase.")

    result = FitResult(parameters=parameters)
    global_step = 0
    for phase in phases:
        opt_state = phase.optimizer.init(eqx.filter(parameters, eqx.is_inexact_array))
        step = _make_step(objective, phase.optimizer)
        iterator = tqdm(
            range(phase.steps), desc=f"multishoot {phase.name}", disable=not progress
        )
        rejected_before = result.rejected_steps
        for _ in iterator:
            parameters, opt_state, loss, prediction, accept = step(parameters, opt_state)
            loss_value = float(loss)
            result.history.append(loss_value)
            if not bool(accept):
                result.rejected_steps += 1
                logger.debug(
                    "Rejected step %d (loss=%g, failed groups=%s).",
                    global_step,
                    loss_value,
                    prediction.failed_groups(),
                )
            if callback is not None:
                callback(global_step, loss_value, prediction)
            global_step += 1
        logger.info(
            "Finished %s: %d steps, final loss %g, %d rejected.",
            phase.name,
            phase.steps,
            result.history[-1],
            result.rejected_steps - rejected_before,
        )
    result.parameters = parameters
    return result
