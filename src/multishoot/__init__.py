"""Multiple-shooting training for parameterised dynamical systems."""

__version__ = "0.1.0"

from ._integrator import IntegrationResult, Integrator, VectorField
from .continuity import continuity_penalty, continuity_residuals
from .data import TrajectoryDataset
from .errors import (
    DimensionMismatch,
    IntegrationFailure,
    InvalidConfiguration,
    MultishootError,
)
from .io import save_npz_bundle, save_prediction_bundle
from .loss import (
    ShootingConfig,
    ShootingObjective,
    ShootingPrediction,
    aggregate_loss,
    build_shooting_objective,
    single_shooting_loss,
)
from .metrics import mae, mse, norm_mse, resolve_data_fit, sse
from .models import LinearVectorField, MLPVectorField, module_vector_field
from .partition import Group, num_groups, partition_groups
from .solver import frozen_parameters, simulate_trajectory, solve_group, solve_groups
from .training import FitResult, TrainingPhase, fit

__all__ = [
    "__version__",
    "DimensionMismatch",
    "IntegrationFailure",
    "InvalidConfiguration",
    "MultishootError",
    "IntegrationResult",
    "Integrator",
    "VectorField",
    "TrajectoryDataset",
    "Group",
    "num_groups",
    "partition_groups",
    "solve_group",
    "solve_groups",
    "frozen_parameters",
    "simulate_trajectory",
    "continuity_penalty",
    "continuity_residuals",
    "ShootingConfig",
    "ShootingObjective",
    "ShootingPrediction",
    "aggregate_loss",
    "build_shooting_objective",
    "single_shooting_loss",
    "sse",
    "mse",
    "mae",
    "norm_mse",
    "resolve_data_fit",
    "LinearVectorField",
    "MLPVectorField",
    "module_vector_field",
    "FitResult",
    "TrainingPhase",
    "fit",
    "save_npz_bundle",
    "save_prediction_bundle",
]
