"""
Backend abstraction shared by every execution target.

Algorithm code talks to a ``Backend`` and exchanges ``Operation`` values
with it; it never needs to know whether execution is local or remote.

Operations form a closed set:

- ``GateOperation``     a single ``Gate``
- ``MeasureOperation``  projective measurement of one qubit
- ``SequenceOperation`` ordered list of operations
- ``BraidOperation`` / ``FMoveOperation``  topological-model operations,
  foreign to gate-based engines, which must reject them.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Optional, Sequence, Union

from tiny_qsim.errors import CapacityExceeded, NotImplementedFeature
from tiny_qsim.gates import Gate


class StateType(Enum):
    """Physical model a backend's native state belongs to."""
    GATE_BASED = "gate_based"
    TOPOLOGICAL = "topological"


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GateOperation:
    gate: Gate


@dataclass(frozen=True)
class MeasureOperation:
    qubit: int


@dataclass(frozen=True)
class SequenceOperation:
    operations: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "operations", tuple(self.operations))


@dataclass(frozen=True)
class BraidOperation:
    """Exchange of two neighbouring anyons (topological model)."""
    anyon_index: int


@dataclass(frozen=True)
class FMoveOperation:
    """F-move basis change in a fusion tree (topological model)."""
    direction: str
    depth: int


Operation = Union[
    GateOperation, MeasureOperation, SequenceOperation, BraidOperation, FMoveOperation
]


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BackendCapabilities:
    """Static description of what a backend can do."""
    native_state_type: StateType
    max_qubits: Optional[int] = None
    supported_gates: Optional[FrozenSet[str]] = None
    supports_braiding: bool = False
    supports_mid_circuit_measurement: bool = False
    is_simulator: bool = True
    noise_level: Optional[float] = 0.0


def validate_capacity(required: int, available: Optional[int], backend: str) -> None:
    """
    Fail fast when a circuit does not fit the target.

    Raises
    ------
    CapacityExceeded
        Naming the required count, the available count and the backend.
    """
    if available is not None and required > available:
        raise CapacityExceeded(required, available, backend)


class Backend(ABC):
    """
    Execution target for quantum operations.

    Subclasses provide the state model, operation support and the
    asynchronous application contract. Remote adapters may suspend inside
    ``apply_operation_async``; local engines resolve immediately.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier of the execution target."""

    @property
    @abstractmethod
    def native_state_type(self) -> StateType:
        ...

    @property
    def max_qubits(self) -> Optional[int]:
        """Qubit capacity; None means unbounded."""
        return None

    @abstractmethod
    def initialize_state(self, n_qubits: int) -> Any:
        """Fresh |0...0⟩ state in the backend's native representation."""

    @abstractmethod
    def supports_operation(self, operation: Operation) -> bool:
        ...

    @abstractmethod
    async def apply_operation_async(
        self,
        operation: Operation,
        state: Any,
        cancel: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Apply one operation and return the successor state.

        Parameters
        ----------
        operation : Operation
            Operation to apply.
        state : Any
            Current native state (left untouched).
        cancel : asyncio.Event, optional
            External cancellation signal. When set, implementations raise
            ``asyncio.CancelledError`` instead of applying the operation.
        """

    def capabilities(self) -> BackendCapabilities:
        return BackendCapabilities(
            native_state_type=self.native_state_type,
            max_qubits=self.max_qubits,
            supports_braiding=self.supports_operation(BraidOperation(0)),
        )

    def validate_capacity(self, required: int) -> None:
        validate_capacity(required, self.max_qubits, self.name)

    def run(self, circuit: Any, shots: int = 0) -> Any:
        """
        Execute a whole circuit.

        Backends that only implement the operation-level contract do not
        override this.
        """
        raise NotImplementedFeature(
            f"{self.name}.run", "this backend only applies individual operations"
        )


async def apply_sequence_async(
    backend: Backend,
    operations: Sequence[Operation],
    state: Any,
    cancel: Optional[asyncio.Event] = None,
) -> Any:
    """Apply operations in order, stopping at the first failure."""
    for operation in operations:
        state = await backend.apply_operation_async(operation, state, cancel)
    return state
