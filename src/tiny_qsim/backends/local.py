"""
Local statevector backend.

Implements the ``Backend`` contract on top of the dense amplitude-vector
engine. The asynchronous surface exists for parity with remote adapters;
every call completes synchronously with no suspension points.

Memory: ~16 bytes * 2^n (complex128) per state.
    20 qubits = 16 MB, 24 qubits = 256 MB (default capacity).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy import ndarray

from tiny_qsim.backends.base import (
    Backend,
    BackendCapabilities,
    GateOperation,
    MeasureOperation,
    Operation,
    SequenceOperation,
    StateType,
)
from tiny_qsim.circuit import Circuit
from tiny_qsim.errors import InvalidQubitIndex, OperationError, ValidationError
from tiny_qsim.gates import GATE_REGISTRY
from tiny_qsim.histogram import Histogram, counts_to_histogram
from tiny_qsim.measurement import measure_and_collapse, sample_counts
from tiny_qsim.simulator import apply, apply_circuit, execute_circuit
from tiny_qsim.statevector import from_amplitudes, init, num_qubits

logger = logging.getLogger(__name__)

DEFAULT_MAX_QUBITS = 24


@dataclass
class SimulationResult:
    """
    Result of a circuit execution.

    Attributes
    ----------
    statevector : ndarray
        Final state vector (complex128, length 2^n). For circuits with
        measurements this is the collapsed state of the last shot.
    counts : dict[int, int] | None
        Outcome counts keyed by integer (bit i = qubit or clbit i).
    n_bits : int
        Width of the outcomes in ``counts``.
    shots : int
        Number of shots (0 if no sampling was requested).
    """

    statevector: ndarray
    counts: dict[int, int] | None
    n_bits: int
    shots: int = 0

    def probabilities(self) -> dict[int, float]:
        """Basis-state probabilities above 1e-10 from the statevector."""
        probs = np.abs(self.statevector) ** 2
        return {i: float(p) for i, p in enumerate(probs) if p > 1e-10}

    def histogram(self) -> Histogram:
        """Counts in the bitstring exchange format (e.g. {'00': 503, '11': 497})."""
        if self.counts is None:
            return {}
        return counts_to_histogram(self.counts, self.n_bits)


class LocalBackend(Backend):
    """
    In-process statevector engine.

    Parameters
    ----------
    seed : int | None
        Seed for the backend's own ``numpy.random.Generator``; all
        measurement sampling draws from it.
    max_qubits : int | None
        Capacity; ``None`` means unbounded.
    name : str
        Identifier reported in errors and capabilities.

    Example
    -------
    >>> backend = LocalBackend(seed=42)
    >>> qc = Circuit(2).h(0).cx(0, 1)
    >>> backend.run(qc, shots=1000).histogram()
    {'00': 503, '11': 497}
    """

    def __init__(
        self,
        seed: int | None = None,
        max_qubits: int | None = DEFAULT_MAX_QUBITS,
        name: str = "local-statevector",
    ) -> None:
        self._rng = np.random.default_rng(seed)
        self._max_qubits = max_qubits
        self._name = name

    # -- Backend contract ---------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def native_state_type(self) -> StateType:
        return StateType.GATE_BASED

    @property
    def max_qubits(self) -> Optional[int]:
        return self._max_qubits

    def capabilities(self) -> BackendCapabilities:
        return BackendCapabilities(
            native_state_type=StateType.GATE_BASED,
            max_qubits=self._max_qubits,
            supported_gates=frozenset(GATE_REGISTRY),
            supports_braiding=False,
            supports_mid_circuit_measurement=True,
        )

    def initialize_state(self, n_qubits: int) -> ndarray:
        if n_qubits < 1:
            raise ValidationError("n_qubits", f"need at least 1 qubit, got {n_qubits}")
        self.validate_capacity(n_qubits)
        return init(n_qubits)

    def supports_operation(self, operation: Operation) -> bool:
        if isinstance(operation, (GateOperation, MeasureOperation)):
            return True
        if isinstance(operation, SequenceOperation):
            return all(self.supports_operation(op) for op in operation.operations)
        return False

    def apply_operation(self, operation: Operation, state: ndarray) -> ndarray:
        """Synchronous core of ``apply_operation_async``."""
        if isinstance(operation, GateOperation):
            return apply(operation.gate, state)
        if isinstance(operation, MeasureOperation):
            n = num_qubits(state)
            if not 0 <= operation.qubit < n:
                raise InvalidQubitIndex(operation.qubit, n)
            _, collapsed = measure_and_collapse(self._rng, operation.qubit, state)
            return collapsed
        if isinstance(operation, SequenceOperation):
            for op in operation.operations:
                state = self.apply_operation(op, state)
            return state
        raise OperationError(
            self._name,
            f"{type(operation).__name__} is not supported by a gate-based backend",
        )

    async def apply_operation_async(
        self,
        operation: Operation,
        state: ndarray,
        cancel: Optional[asyncio.Event] = None,
    ) -> ndarray:
        if cancel is not None and cancel.is_set():
            raise asyncio.CancelledError(f"{self._name}: cancelled before {operation!r}")
        logger.debug("%s applying %r", self._name, operation)
        return self.apply_operation(operation, state)

    # -- Circuit execution --------------------------------------------------

    def execute_to_state(self, circuit: Circuit, initial_state: ndarray | None = None) -> ndarray:
        """Apply a measurement-free circuit and return the final state."""
        self.validate_capacity(circuit.n_qubits)
        return apply_circuit(circuit, initial_state)

    def run(
        self,
        circuit: Circuit,
        shots: int = 0,
        initial_state: ndarray | None = None,
    ) -> SimulationResult:
        """
        Simulate a circuit, optionally sampling ``shots`` outcomes.

        Parameters
        ----------
        circuit : Circuit
            Circuit to simulate.
        shots : int
            Number of measurement shots. 0 = no sampling (statevector only).
        initial_state : ndarray, optional
            Initial state vector. Defaults to |0...0⟩.

        Returns
        -------
        SimulationResult
            Final statevector plus optional counts. Circuits without
            measurements are sampled over all qubits; circuits with
            measurements are re-executed per shot and report the
            classical register.
        """
        self.validate_capacity(circuit.n_qubits)
        if shots < 0:
            raise ValidationError("shots", f"must be non-negative, got {shots}")
        if initial_state is not None:
            initial_state = from_amplitudes(initial_state)

        if not circuit.has_measurements:
            state = apply_circuit(circuit, initial_state)
            counts = sample_counts(self._rng, state, shots) if shots > 0 else None
            return SimulationResult(state, counts, circuit.n_qubits, shots)

        if shots == 0:
            state, _ = execute_circuit(circuit, self._rng, initial_state)
            return SimulationResult(state, None, circuit.n_clbits, 0)

        counts: dict[int, int] = {}
        state = None
        for _ in range(shots):
            state, bits = execute_circuit(circuit, self._rng, initial_state)
            key = _bits_to_int(bits)
            counts[key] = counts.get(key, 0) + 1
        return SimulationResult(state, counts, circuit.n_clbits, shots)

    def histogram(self, circuit: Circuit, shots: int) -> Histogram:
        """Shortcut for ``run(circuit, shots).histogram()``."""
        if shots <= 0:
            raise ValidationError("shots", f"must be positive, got {shots}")
        return self.run(circuit, shots).histogram()


def _bits_to_int(bits: list[int]) -> int:
    """Classical register to integer, clbit i = bit i."""
    value = 0
    for i, bit in enumerate(bits):
        value |= bit << i
    return value
