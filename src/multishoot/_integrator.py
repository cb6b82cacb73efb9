from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, TypeAlias

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np
from diffrax import (
    RESULTS,
    AbstractSolver,
    AbstractStepSizeController,
    ODETerm,
    PIDController,
    SaveAt,
    Tsit5,
    diffeqsolve,
)

from .errors import InvalidConfiguration

ScalarLike: TypeAlias = bool | int | float | jax.Array | np.ndarray
VectorField = Callable[[ScalarLike, jnp.ndarray, Any], jnp.ndarray]


class IntegrationResult(eqx.Module):
    """States saved at the requested time points plus a success flag."""

    states: jax.Array
    ok: jax.Array


@dataclass(frozen=True)
class Integrator:
    """diffrax-backed integrator capability with a per-solve step cap.

    ``dt0`` defaults to the first spacing of the requested time grid. Solves
    run with ``throw=False``: a step-size collapse, an exhausted step budget or
    a non-finite state turns ``ok`` false instead of raising.
    """

    solver: AbstractSolver = field(default_factory=Tsit5)
    stepsize_controller: AbstractStepSizeController | None = None
    rtol: float = 1e-5
    atol: float = 1e-5
    dt0: float | None = None
    max_steps: int = 4096

    def __post_init__(self: "Integrator") -> None:
        if self.max_steps <= 0:
            raise InvalidConfiguration("max_steps must be positive.")
        if self.dt0 is not None and self.dt0 <= 0.0:
            raise InvalidConfiguration("dt0 must be positive when provided.")
        if self.rtol <= 0.0 or self.atol <= 0.0:
            raise InvalidConfiguration("rtol and atol must be positive.")

    def _controller(self: "Integrator") -> AbstractStepSizeController:
        return self.stepsize_controller or PIDController(rtol=self.rtol, atol=self.atol)

    def __call__(
        self: "Integrator",
        vector_field: VectorField,
        initial_state: jnp.ndarray,
        ts: jnp.ndarray,
        parameters: Any,
    ) -> IntegrationResult:
        ts = jnp.asarray(ts, dtype=jnp.float32)
        dt0 = self.dt0 if self.dt0 is not None else ts[1] - ts[0]
        sol = diffeqsolve(
            ODETerm(vector_field),
            self.solver,
            t0=ts[0],
            t1=ts[-1],
            dt0=dt0,
            y0=initial_state,
            args=parameters,
            saveat=SaveAt(ts=ts),
            stepsize_controller=self._controller(),
            max_steps=self.max_steps,
            throw=False,
        )
        if sol.ys is None:
            raise RuntimeError("Solver returned no trajectory.")
        ok = jnp.logical_and(
            sol.result == RESULTS.successful, jnp.all(jnp.isfinite(sol.ys))
        )
        return IntegrationResult(states=sol.ys, ok=ok)
