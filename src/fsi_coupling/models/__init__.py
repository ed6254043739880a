"""
Synthetic coupling models.

Each model provides a ``fluid`` and a ``structure`` sub-solver, an
``initial_displacement()`` and, where it exists, the exact converged
displacement ``analytic_displacement(time)``.
"""

from .linear_map import DivergentCouplingMap, LinearCouplingMap
from .mass_spring import MassSpringModel

MODEL_REGISTRY = {
    "mass_spring": MassSpringModel,
    "linear_map": LinearCouplingMap,
    "divergent_map": DivergentCouplingMap,
}


def create_model(name: str, time_step: float, **params):
    """
    Build a registered model.

    Parameters
    ----------
    name : str
        Key of ``MODEL_REGISTRY``.
    time_step : float
        Time step size of the coupled run.
    **params
        Model specific parameters.
    """
    try:
        model_class = MODEL_REGISTRY[name]
    except KeyError:
        raise ValueError(f"Unknown model: '{name}'. Valid: {sorted(MODEL_REGISTRY)}") from None
    return model_class(time_step=time_step, **params)


__all__ = [
    "DivergentCouplingMap",
    "LinearCouplingMap",
    "MassSpringModel",
    "MODEL_REGISTRY",
    "create_model",
]
