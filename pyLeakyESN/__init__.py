from .ESN_class import EchoStateNetwork, esn_params_guide
from .exceptions import ESNError, NotTrainedError, NumericalInstabilityError, ShapeMismatchError
from .metrics import forecast_metrics
from .weights import generate_weights, spectral_radius_of

__all__ = [
    "EchoStateNetwork",
    "esn_params_guide",
    "ESNError",
    "NotTrainedError",
    "NumericalInstabilityError",
    "ShapeMismatchError",
    "forecast_metrics",
    "generate_weights",
    "spectral_radius_of",
]
