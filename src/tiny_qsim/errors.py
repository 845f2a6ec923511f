"""
Error taxonomy for tiny-qsim.

All failures raised by the simulation engine derive from ``QuantumError``.
Each subclass also inherits from the matching builtin (``ValueError``,
``RuntimeError``, ``NotImplementedError``) so callers that only know the
builtins still catch them.

Every payload names the offending parameter or resource:

    >>> from tiny_qsim.errors import InvalidQubitIndex
    >>> err = InvalidQubitIndex(5, 3)
    >>> err.parameter, err.qubit, err.n_qubits
    ('qubit', 5, 3)
"""

from __future__ import annotations


class QuantumError(Exception):
    """Base class for every engine failure."""

    category = "Other"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# Malformed input
# ---------------------------------------------------------------------------

class ValidationError(QuantumError, ValueError):
    """A parameter failed validation."""

    category = "Validation"

    def __init__(self, parameter: str, message: str) -> None:
        super().__init__(f"Invalid '{parameter}': {message}")
        self.parameter = parameter
        self.reason = message


class InvalidQubitIndex(ValidationError):
    """A gate or operation referenced a qubit outside the register."""

    def __init__(self, qubit: int, n_qubits: int, parameter: str = "qubit") -> None:
        super().__init__(
            parameter,
            f"qubit index {qubit} out of range for {n_qubits}-qubit register",
        )
        self.qubit = qubit
        self.n_qubits = n_qubits


class DimensionMismatch(QuantumError, ValueError):
    """Declared qubit count disagrees with the state it is applied to."""

    category = "Validation"

    def __init__(self, expected: int, actual: int, context: str) -> None:
        super().__init__(
            f"{context}: expected {expected} qubits, state has {actual}"
        )
        self.expected = expected
        self.actual = actual
        self.context = context


# ---------------------------------------------------------------------------
# Runtime failures
# ---------------------------------------------------------------------------

class DegenerateMeasurement(QuantumError):
    """Collapse requested onto an outcome of (numerically) zero probability."""

    category = "Operation"

    def __init__(self, qubit: int, outcome: int, probability: float) -> None:
        super().__init__(
            f"Cannot collapse qubit {qubit} onto |{outcome}⟩: "
            f"outcome probability {probability:.3e} is indistinguishable from zero"
        )
        self.qubit = qubit
        self.outcome = outcome
        self.probability = probability


class OperationError(QuantumError, RuntimeError):
    """An operation is unsupported in the current context."""

    category = "Operation"

    def __init__(self, context: str, message: str) -> None:
        super().__init__(f"{context}: {message}")
        self.context = context
        self.reason = message


class BackendError(QuantumError, RuntimeError):
    """Failure attributed to a named execution backend."""

    category = "Backend"

    def __init__(self, backend: str, message: str) -> None:
        super().__init__(f"Backend '{backend}': {message}")
        self.backend = backend
        self.reason = message


class CapacityExceeded(BackendError):
    """Circuit needs more qubits than the target backend provides."""

    def __init__(self, required: int, available: int, backend: str) -> None:
        super().__init__(
            backend,
            f"circuit requires {required} qubits but only {available} are available",
        )
        self.required = required
        self.available = available


class NotImplementedFeature(QuantumError, NotImplementedError):
    """An intentionally unsupported path."""

    category = "NotImplemented"

    def __init__(self, feature: str, message: str) -> None:
        super().__init__(f"'{feature}' is not implemented: {message}")
        self.feature = feature
        self.reason = message
