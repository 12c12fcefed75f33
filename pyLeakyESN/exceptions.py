"""
Exceptions raised by the echo state network. The shape and training errors subclass ValueError so that code written
against plain ValueErrors keeps working.
"""


class ESNError(Exception):
    """Base class for every error raised by pyLeakyESN."""


class ShapeMismatchError(ESNError, ValueError):
    """Raised when the rows or columns of a signal disagree with the network dimensions, or with each other."""


class NotTrainedError(ESNError, ValueError):
    """Raised when a forecast is requested before the readout weights have been computed."""


class NumericalInstabilityError(ESNError, ArithmeticError):
    """
    Raised when a computation cannot produce finite weights, e.g. a reservoir whose spectral radius is zero after
    sparsification, or a readout that came out as NaN/Inf.
    """
