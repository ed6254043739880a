"""
Coupling Configuration Module.

This module provides the validated parameter set of the partitioned coupling
scheme (``CouplingConfig``) and a YAML-based configuration system for complete
coupled runs (``SimulationConfig``).

Example YAML configuration:
    time:
      start_time: 0.0
      end_time: 1.0
      time_step: 0.01

    coupling:
      method: "IQN-ILS"
      abs_tol: 1.0e-10
      rel_tol: 1.0e-6
      omega_init: 0.1
      reused_time_steps: 2
      partitioned_iter_max: 50

    model:
      name: "mass_spring"
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class CouplingMethod(str, Enum):
    """Acceleration method of the partitioned fixed-point iteration."""

    AITKEN = "Aitken"
    IQN_ILS = "IQN-ILS"

    @classmethod
    def parse(cls, value: Union[str, "CouplingMethod"]) -> "CouplingMethod":
        """Match a method name case-insensitively."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        valid = [m.value for m in cls]
        raise ConfigurationError(f"Invalid coupling method: '{value}'. Must be one of {valid}.")


class MeshMotionType(str, Enum):
    """Grid motion strategy of the fluid (ALE) mesh."""

    POISSON = "Poisson"
    ELASTICITY = "Elasticity"

    @classmethod
    def parse(cls, value: Union[str, "MeshMotionType"]) -> "MeshMotionType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        valid = [m.value for m in cls]
        raise ConfigurationError(f"Invalid mesh motion type: '{value}'. Must be one of {valid}.")


# =============================================================================
# Partitioned coupling parameters
# =============================================================================


@dataclass(frozen=True)
class CouplingConfig:
    """
    Parameters of the partitioned fixed-point iteration.

    The object is validated at construction and immutable afterwards.

    Parameters
    ----------
    method : str or CouplingMethod
        ``"Aitken"`` or ``"IQN-ILS"`` (case-insensitive).
    abs_tol : float
        Absolute tolerance on the interface residual norm.
    rel_tol : float
        Tolerance on the residual norm relative to the displacement norm.
    omega_init : float
        Initial relaxation factor, in (0, 1].
    reused_time_steps : int
        Number of past time steps whose secant history is reused (IQN-ILS).
    partitioned_iter_max : int
        Maximum partitioned iteration index per time step.
    geometric_tolerance : float
        Matching tolerance of the interface mapping.
    qr_drop_tolerance : float
        Relative threshold below which a history column is dropped in the QR
        factorization.

    Raises
    ------
    ConfigurationError
        If any parameter has an invalid value.
    """

    method: Union[str, CouplingMethod] = CouplingMethod.AITKEN
    abs_tol: float = 1.0e-12
    rel_tol: float = 1.0e-3
    omega_init: float = 0.1
    reused_time_steps: int = 0
    partitioned_iter_max: int = 100
    geometric_tolerance: float = 1.0e-10
    qr_drop_tolerance: float = 1.0e-2

    def __post_init__(self):
        """Validate all configuration parameters."""
        object.__setattr__(self, "method", CouplingMethod.parse(self.method))
        self._validate_tolerances()
        self._validate_counts()

    def _validate_tolerances(self):
        positive_params = [
            ("abs_tol", self.abs_tol),
            ("rel_tol", self.rel_tol),
            ("geometric_tolerance", self.geometric_tolerance),
            ("qr_drop_tolerance", self.qr_drop_tolerance),
        ]
        for name, value in positive_params:
            if not _is_real(value) or not value > 0:
                raise ConfigurationError(f"{name} must be positive, got {value!r}")

        if not _is_real(self.omega_init) or not 0.0 < self.omega_init <= 1.0:
            raise ConfigurationError(f"omega_init must be in (0, 1], got {self.omega_init!r}")

        if self.qr_drop_tolerance >= 1.0:
            raise ConfigurationError(
                f"qr_drop_tolerance must be smaller than 1, got {self.qr_drop_tolerance!r}"
            )

    def _validate_counts(self):
        if not _is_integer(self.reused_time_steps) or self.reused_time_steps < 0:
            raise ConfigurationError(
                f"reused_time_steps must be a non-negative integer, got {self.reused_time_steps!r}"
            )
        if not _is_integer(self.partitioned_iter_max) or self.partitioned_iter_max <= 0:
            raise ConfigurationError(
                f"partitioned_iter_max must be a positive integer, got {self.partitioned_iter_max!r}"
            )
        if self.method is CouplingMethod.AITKEN and self.reused_time_steps > 0:
            logger.info("reused_time_steps=%d has no effect with Aitken relaxation",
                        self.reused_time_steps)

    @property
    def uses_quasi_newton(self) -> bool:
        return self.method is CouplingMethod.IQN_ILS

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CouplingConfig":
        """
        Create a configuration from a dictionary.

        Raises
        ------
        ConfigurationError
            On unknown keys or invalid values.
        """
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown coupling parameters: {unknown}")
        # PyYAML reads exponent literals without a dot (1e-10) as strings
        _coerce_floats(data, ("abs_tol", "rel_tol", "omega_init", "geometric_tolerance",
                              "qr_drop_tolerance"))
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (YAML friendly)."""
        result = asdict(self)
        result["method"] = self.method.value
        return result


def _is_real(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_floats(data: Dict[str, Any], names) -> None:
    for name in names:
        value = data.get(name)
        if isinstance(value, str):
            try:
                data[name] = float(value)
            except ValueError as e:
                raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


# =============================================================================
# Simulation configuration (YAML)
# =============================================================================


@dataclass
class TimeConfig:
    """Time interval and step size of the coupled run."""

    end_time: float
    time_step: float
    start_time: float = 0.0

    def __post_init__(self):
        if self.time_step <= 0:
            raise ConfigurationError(f"time_step must be positive: {self.time_step}")
        if self.end_time <= self.start_time:
            raise ConfigurationError(
                f"end_time ({self.end_time}) must be greater than start_time ({self.start_time})"
            )

    @property
    def n_steps(self) -> int:
        """Number of time steps needed to reach ``end_time``."""
        return int(round((self.end_time - self.start_time) / self.time_step))


@dataclass
class ModelConfig:
    """Synthetic coupling model selection."""

    name: str
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        from ..models import MODEL_REGISTRY

        if self.name not in MODEL_REGISTRY:
            raise ConfigurationError(
                f"Invalid model: '{self.name}'. Valid: {sorted(MODEL_REGISTRY)}"
            )


@dataclass
class PredictorConfig:
    """Extrapolation order of the iteration-0 displacement guess."""

    order: int = 1

    def __post_init__(self):
        if self.order not in (0, 1, 2):
            raise ConfigurationError(f"predictor order must be 0, 1 or 2, got {self.order}")


@dataclass
class MeshMotionConfig:
    """Mesh motion strategy of the fluid grid."""

    type: Union[str, MeshMotionType] = MeshMotionType.POISSON

    def __post_init__(self):
        self.type = MeshMotionType.parse(self.type)


@dataclass
class OutputConfig:
    """Output files of the coupled run."""

    folder: str = "results"
    iteration_log: Optional[str] = "coupling_iterations.csv"
    separator: str = ","


@dataclass
class SimulationConfig:
    """Complete coupled simulation configuration."""

    time: TimeConfig
    coupling: CouplingConfig
    model: ModelConfig
    predictor: PredictorConfig = field(default_factory=PredictorConfig)
    mesh_motion: Optional[MeshMotionConfig] = None
    output: Optional[OutputConfig] = None

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "SimulationConfig":
        """Load configuration from YAML file.

        Parameters
        ----------
        yaml_path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        SimulationConfig
            Validated configuration object.

        Raises
        ------
        FileNotFoundError
            If the YAML file does not exist.
        ConfigurationError
            If the configuration is invalid.
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        """Create configuration from dictionary.

        Parameters
        ----------
        data : dict
            Configuration dictionary.

        Returns
        -------
        SimulationConfig
            Validated configuration object.
        """
        time_data = data.get("time")
        if not time_data:
            raise ConfigurationError("Missing 'time' section")
        time_data = dict(time_data)
        _coerce_floats(time_data, ("start_time", "end_time", "time_step"))
        try:
            time_config = TimeConfig(**time_data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid 'time' section: {e}") from e

        coupling_config = CouplingConfig.from_dict(data.get("coupling", {}))

        model_data = data.get("model")
        if not model_data or "name" not in model_data:
            raise ConfigurationError("Missing 'model.name'")
        model_config = ModelConfig(
            name=model_data["name"],
            params=model_data.get("params", {}) or {},
        )

        predictor_data = data.get("predictor", {}) or {}
        predictor_config = PredictorConfig(order=predictor_data.get("order", 1))

        mesh_motion_config = None
        mesh_motion_data = data.get("mesh_motion")
        if mesh_motion_data:
            mesh_motion_config = MeshMotionConfig(type=mesh_motion_data.get("type", "Poisson"))

        output_config = None
        output_data = data.get("output")
        if output_data:
            output_config = OutputConfig(
                folder=output_data.get("folder", "results"),
                iteration_log=output_data.get("iteration_log", "coupling_iterations.csv"),
                separator=output_data.get("separator", ","),
            )

        return cls(
            time=time_config,
            coupling=coupling_config,
            model=model_config,
            predictor=predictor_config,
            mesh_motion=mesh_motion_config,
            output=output_config,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        result = {
            "time": {
                "start_time": self.time.start_time,
                "end_time": self.time.end_time,
                "time_step": self.time.time_step,
            },
            "coupling": self.coupling.to_dict(),
            "model": {
                "name": self.model.name,
                "params": dict(self.model.params),
            },
            "predictor": {"order": self.predictor.order},
        }

        if self.mesh_motion:
            result["mesh_motion"] = {"type": self.mesh_motion.type.value}

        if self.output:
            result["output"] = {
                "folder": self.output.folder,
                "iteration_log": self.output.iteration_log,
                "separator": self.output.separator,
            }

        return result

    def save_yaml(self, yaml_path: Union[str, Path]) -> None:
        """Save configuration to YAML file.

        Parameters
        ----------
        yaml_path : str or Path
            Path to the output YAML file.
        """
        with open(yaml_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """Validate the complete configuration.

        Returns
        -------
        list of str
            List of validation warnings (empty if all OK).
        """
        warnings = []

        if self.coupling.method is CouplingMethod.AITKEN and self.coupling.reused_time_steps:
            warnings.append("reused_time_steps is ignored by Aitken relaxation")

        if self.coupling.abs_tol >= self.coupling.rel_tol:
            warnings.append(
                f"abs_tol ({self.coupling.abs_tol}) is not smaller than rel_tol "
                f"({self.coupling.rel_tol})"
            )

        if not abs(self.time.n_steps * self.time.time_step
                   - (self.time.end_time - self.time.start_time)) < 1e-9 * self.time.time_step:
            warnings.append("time interval is not an integer multiple of time_step")

        if self.output is None:
            warnings.append("no output section: iteration log disabled")

        return warnings

    def __str__(self) -> str:
        """Human-readable string representation."""
        lines = [
            "Coupled Simulation Configuration",
            "=" * 40,
            f"Time: {self.time.start_time} → {self.time.end_time}s (dt={self.time.time_step}s)",
            f"Model: {self.model.name}",
            f"Coupling: {self.coupling.method.value}",
            f"  abs_tol={self.coupling.abs_tol}, rel_tol={self.coupling.rel_tol}",
            f"  omega_init={self.coupling.omega_init}, "
            f"reused_time_steps={self.coupling.reused_time_steps}",
            f"  partitioned_iter_max={self.coupling.partitioned_iter_max}",
            f"Predictor order: {self.predictor.order}",
        ]
        if self.mesh_motion:
            lines.append(f"Mesh motion: {self.mesh_motion.type.value}")
        if self.output:
            lines.append(f"Output: {self.output.folder}/{self.output.iteration_log}")

        return "\n".join(lines)
