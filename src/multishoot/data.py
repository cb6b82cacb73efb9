from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import jax.numpy as jnp
import numpy as np

from .errors import DimensionMismatch, InvalidConfiguration
from .partition import Group


@dataclass(frozen=True)
class TrajectoryDataset:
    """Observed trajectory: ``ts`` of shape ``(N,)`` and ``states`` of shape ``(N, D)``."""

    ts: jnp.ndarray
    states: jnp.ndarray

    def __post_init__(self: "TrajectoryDataset") -> None:
        ts = jnp.asarray(self.ts, dtype=jnp.float32)
        states = jnp.asarray(self.states, dtype=jnp.float32)
        if ts.ndim != 1:
            raise InvalidConfiguration("ts must be a 1D array.")
        if ts.shape[0] < 2:
            raise InvalidConfiguration("A trajectory needs at least two samples.")
        if states.ndim != 2:
            raise DimensionMismatch(
                f"states must have shape (N, D); got {tuple(states.shape)}."
            )
        if states.shape[0] != ts.shape[0]:
            raise DimensionMismatch(
                f"ts has {ts.shape[0]} samples but states has {states.shape[0]}."
            )
        if not bool(np.all(np.diff(np.asarray(ts)) > 0.0)):
            raise InvalidConfiguration("ts must be strictly increasing.")
        object.__setattr__(self, "ts", ts)
        object.__setattr__(self, "states", states)

    def __iter__(self: "TrajectoryDataset") -> Iterator[jnp.ndarray]:
        """Allow unpacking as (ts, states)."""

        return iter((self.ts, self.states))

    @property
    def num_samples(self: "TrajectoryDataset") -> int:
        return int(self.ts.shape[0])

    @property
    def state_dim(self: "TrajectoryDataset") -> int:
        return int(self.states.shape[1])

    def group_slice(
        self: "TrajectoryDataset", group: Group
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        window = group.indices()
        return self.ts[window], self.states[window]
