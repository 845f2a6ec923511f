"""Execution backends for tiny-qsim."""

from tiny_qsim.backends.base import (
    Backend,
    BackendCapabilities,
    BraidOperation,
    FMoveOperation,
    GateOperation,
    MeasureOperation,
    Operation,
    SequenceOperation,
    StateType,
    apply_sequence_async,
    validate_capacity,
)
from tiny_qsim.backends.local import DEFAULT_MAX_QUBITS, LocalBackend, SimulationResult

__all__ = [
    "Backend",
    "BackendCapabilities",
    "BraidOperation",
    "FMoveOperation",
    "GateOperation",
    "MeasureOperation",
    "Operation",
    "SequenceOperation",
    "StateType",
    "apply_sequence_async",
    "validate_capacity",
    "DEFAULT_MAX_QUBITS",
    "LocalBackend",
    "SimulationResult",
]
