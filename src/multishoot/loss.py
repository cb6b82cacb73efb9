from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from typing import Any, Callable, Sequence

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np

from ._integrator import IntegrationResult, Integrator, VectorField
from .continuity import continuity_residuals, penalty_from_residuals
from .data import TrajectoryDataset
from .errors import DimensionMismatch, InvalidConfiguration
from .metrics import DataFit, resolve_data_fit
from .partition import Group, partition_groups
from .solver import check_vector_field, frozen_parameters, solve_groups

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShootingConfig:
    """Hyperparameters captured once when a shooting objective is built."""

    group_size: int
    continuity_term: float = 100.0
    data_fit: str | DataFit = "sse"
    failure_loss: float = 1e10
    log_failures: bool = True

    def __post_init__(self: "ShootingConfig") -> None:
        if isinstance(self.group_size, bool) or not isinstance(
            self.group_size, numbers.Integral
        ):
            raise InvalidConfiguration("group_size must be an integer.")
        if self.group_size < 2:
            raise InvalidConfiguration("group_size must be at least 2.")
        if not self.continuity_term > 0.0:
            raise InvalidConfiguration("continuity_term must be positive.")
        if not 0.0 < self.failure_loss <= np.finfo(np.float32).max:
            raise InvalidConfiguration(
                "failure_loss must be positive and representable in float32."
            )
        resolve_data_fit(self.data_fit)


class ShootingPrediction(eqx.Module):
    """Per-group predictions and loss breakdown from one forward pass.

    ``ts`` and ``states`` are ordered by group index. States of a failed group
    are returned as the integrator produced them and may be non-finite or too
    large to compare against the data; check ``ok`` before using them.
    """

    ts: tuple[jax.Array, ...]
    states: tuple[jax.Array, ...]
    ok: jax.Array
    group_losses: jax.Array
    residuals: jax.Array
    data_loss: jax.Array
    continuity_loss: jax.Array

    @property
    def num_groups(self) -> int:
        return len(self.states)

    def failed_groups(self) -> list[int]:
        return [int(index) for index in np.flatnonzero(~np.asarray(self.ok, dtype=bool))]

    def stitched(self) -> jnp.ndarray:
        """Reassemble one ``(N, D)`` trajectory; overlap points come from the earlier group."""

        pieces = [self.states[0]] + [states[1:] for states in self.states[1:]]
        return jnp.concatenate(pieces, axis=0)

    def stitched_ts(self) -> jnp.ndarray:
        pieces = [self.ts[0]] + [ts[1:] for ts in self.ts[1:]]
        return jnp.concatenate(pieces, axis=0)


def aggregate_loss(
    dataset: TrajectoryDataset,
    groups: Sequence[Group],
    results: Sequence[IntegrationResult],
    data_fit: DataFit,
    continuity_term: float,
    failure_loss: float,
) -> tuple[jnp.ndarray, ShootingPrediction]:
    """Sum per-group data loss and the continuity penalty into one scalar.

    A group fails when its solve failed or its data fit is not finite (states
    that are finite but large enough to overflow the comparison). A failed
    group contributes ``failure_loss`` in place of its data loss, and the
    continuity pairs it touches contribute nothing. A pair of healthy groups
    whose residual overflows contributes ``failure_loss``. Each loss term
    saturates at the largest float32 instead of becoming infinite.
    """

    if len(groups) != len(results):
        raise DimensionMismatch(
            f"Expected {len(groups)} group results but received {len(results)}."
        )

    sentinel = jnp.float32(failure_loss)
    ceiling = jnp.finfo(jnp.float32).max
    ts_groups: list[jnp.ndarray] = []
    safe_states: list[jnp.ndarray] = []
    group_losses: list[jnp.ndarray] = []
    group_ok: list[jnp.ndarray] = []
    for group, result in zip(groups, results):
        ts, target = dataset.group_slice(group)
        if result.states.shape != target.shape:
            raise DimensionMismatch(
                f"Group {group.index}: predicted shape {tuple(result.states.shape)} "
                f"does not match observed shape {tuple(target.shape)}."
            )
        safe = jnp.where(result.ok, result.states, target)
        fit = jnp.asarray(data_fit(safe, target), dtype=jnp.float32)
        ok = jnp.logical_and(result.ok, jnp.isfinite(fit))
        group_losses.append(jnp.where(ok, fit, sentinel))
        group_ok.append(ok)
        ts_groups.append(ts)
        safe_states.append(jnp.where(ok, safe, target))

    ok = jnp.stack(group_ok)
    losses = jnp.stack(group_losses)
    residuals = continuity_residuals(safe_states, ok)
    pair_finite = jnp.all(jnp.isfinite(residuals), axis=-1)
    residuals = jnp.where(pair_finite[:, None], residuals, jnp.zeros_like(residuals))
    data_loss = jnp.minimum(jnp.sum(losses), ceiling)
    continuity_loss = jnp.minimum(
        penalty_from_residuals(residuals, continuity_term)
        + sentinel * jnp.sum(~pair_finite),
        ceiling,
    )
    prediction = ShootingPrediction(
        ts=tuple(ts_groups),
        states=tuple(result.states for result in results),
        ok=ok,
        group_losses=losses,
        residuals=residuals,
        data_loss=data_loss,
        continuity_loss=continuity_loss,
    )
    return jnp.minimum(data_loss + continuity_loss, ceiling), prediction


def _log_failed_groups(ok: np.ndarray) -> None:
    failed = np.flatnonzero(~np.asarray(ok, dtype=bool))
    if failed.size:
        logger.warning(
            "Shooting failed for group(s) %s; substituting the failure loss.",
            failed.tolist(),
        )


@dataclass(frozen=True)
class ShootingObjective:
    """Pure ``parameters -> (loss, prediction)`` map for multiple shooting."""

    dataset: TrajectoryDataset
    config: ShootingConfig
    groups: tuple[Group, ...]
    evaluate_fn: Callable[[Any], tuple[jnp.ndarray, ShootingPrediction]]
    value_and_grad_fn: Callable[
        [Any], tuple[tuple[jnp.ndarray, ShootingPrediction], Any]
    ]

    @property
    def num_groups(self) -> int:
        return len(self.groups)

    def evaluate(self, parameters: Any) -> tuple[jnp.ndarray, ShootingPrediction]:
        return self.evaluate_fn(parameters)

    def __call__(self, parameters: Any) -> jnp.ndarray:
        loss, _ = self.evaluate_fn(parameters)
        return loss

    def value_and_grad(
        self, parameters: Any
    ) -> tuple[tuple[jnp.ndarray, ShootingPrediction], Any]:
        return self.value_and_grad_fn(parameters)


def build_shooting_objective(
    dataset: TrajectoryDataset,
    vector_field: VectorField,
    config: ShootingConfig,
    integrator: Integrator | None = None,
) -> ShootingObjective:
    """Partition ``dataset`` once and close over everything except the parameters.

    ``value_and_grad`` runs a forward-only pass first to find the failed
    groups, then differentiates with those groups cut off from the parameters.
    A failed group therefore contributes zero gradient and the gradient of the
    healthy groups stays finite, whatever optimizer consumes it.
    """

    integrator = integrator or Integrator()
    groups = partition_groups(dataset.num_samples, config.group_size)
    data_fit = resolve_data_fit(config.data_fit)

    def _aggregate(results):
        return aggregate_loss(
            dataset,
            groups,
            results,
            data_fit,
            config.continuity_term,
            config.failure_loss,
        )

    def _finish(loss, prediction):
        if config.log_failures:
            jax.debug.callback(_log_failed_groups, prediction.ok)
        return loss, prediction

    def evaluate(parameters: Any) -> tuple[jnp.ndarray, ShootingPrediction]:
        check_vector_field(vector_field, parameters, dataset)
        results = solve_groups(vector_field, parameters, dataset, groups, integrator)
        return _finish(*_aggregate(results))

    def evaluate_gated(parameters: Any) -> tuple[jnp.ndarray, ShootingPrediction]:
        check_vector_field(vector_field, parameters, dataset)
        trial = solve_groups(
            vector_field, frozen_parameters(parameters), dataset, groups, integrator
        )
        _, trial_prediction = _aggregate(trial)
        results = solve_groups(
            vector_field,
            parameters,
            dataset,
            groups,
            integrator,
            gate=trial_prediction.ok,
        )
        return _finish(*_aggregate(results))

    logger.debug(
        "Built shooting objective: %d samples, %d groups of size %d.",
        dataset.num_samples,
        len(groups),
        config.group_size,
    )
    return ShootingObjective(
        dataset=dataset,
        config=config,
        groups=groups,
        evaluate_fn=eqx.filter_jit(evaluate),
        value_and_grad_fn=eqx.filter_jit(
            eqx.filter_value_and_grad(evaluate_gated, has_aux=True)
        ),
    )


def single_shooting_loss(
    dataset: TrajectoryDataset,
    vector_field: VectorField,
    parameters: Any,
    data_fit: str | DataFit = "sse",
    integrator: Integrator | None = None,
) -> jnp.ndarray:
    """Data loss of one solve over the whole trajectory from its first observed state."""

    integrator = integrator or Integrator()
    check_vector_field(vector_field, parameters, dataset)
    result = integrator(vector_field, dataset.states[0], dataset.ts, parameters)
    if result.states.shape != dataset.states.shape:
        raise DimensionMismatch(
            f"Predicted shape {tuple(result.states.shape)} does not match "
            f"observed shape {tuple(dataset.states.shape)}."
        )
    return jnp.asarray(
        resolve_data_fit(data_fit)(result.states, dataset.states), dtype=jnp.float32
    )
