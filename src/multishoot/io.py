from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from .data import TrajectoryDataset
from .loss import ShootingPrediction


def save_npz_bundle(path: str | Path, **arrays: Any) -> Path:
    """Persist named arrays (NumPy/JAX) to a .npz archive, skipping ``None`` entries."""

    if "ts" not in arrays or "states" not in arrays:
        raise ValueError("save_npz_bundle requires at least 'ts' and 'states' entries.")

    payload = {name: np.asarray(value) for name, value in arrays.items() if value is not None}
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    np.savez(output, **payload)
    return output


def save_prediction_bundle(
    path: str | Path,
    prediction: ShootingPrediction,
    dataset: TrajectoryDataset | None = None,
) -> Path:
    """Write a shooting prediction to disk.

    ``ts``/``states`` hold the stitched trajectory; ``group_<k>_ts`` and
    ``group_<k>_states`` hold each group's own prediction. When ``dataset`` is
    given the observed states are stored as ``observed``.
    """

    per_group: dict[str, Any] = {}
    for index, (ts, states) in enumerate(zip(prediction.ts, prediction.states)):
        per_group[f"group_{index}_ts"] = ts
        per_group[f"group_{index}_states"] = states
    return save_npz_bundle(
        path,
        ts=prediction.stitched_ts(),
        states=prediction.stitched(),
        ok=prediction.ok,
        group_losses=prediction.group_losses,
        residuals=prediction.residuals,
        data_loss=prediction.data_loss,
        continuity_loss=prediction.continuity_loss,
        observed=None if dataset is None else dataset.states,
        **per_group,
    )
