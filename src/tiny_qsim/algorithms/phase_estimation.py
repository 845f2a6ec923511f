"""
Quantum Phase Estimation
========================
Estimates φ in U|u⟩ = e^{2πiφ}|u⟩ to ``precision`` bits.

Layout: counting qubits 0..m-1 (least significant first), target
register m..m+n_target-1. The counting register is put in uniform
superposition, counting qubit j controls U^(2^j), and an inverse QFT
turns the accumulated phases into the binary expansion of φ.

Usage:
    from tiny_qsim.algorithms import estimate_phase, phase_gate_oracle

    controlled_t, prepare_one = phase_gate_oracle(np.pi / 4)
    result = estimate_phase(8, 1, controlled_t, prepare_one, seed=7)
    print(result.phase)   # 0.125
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..backends.local import LocalBackend
from ..circuit import Circuit
from ..errors import ValidationError
from ..histogram import Histogram, counts_to_histogram
from ..qft import inverse_qft

ControlledPower = Callable[[Circuit, int, Sequence[int], int], None]
"""(circuit, control, target_qubits, power) appends controlled-U^power."""

Preparation = Callable[[Circuit, Sequence[int]], None]
"""(circuit, target_qubits) appends the eigenstate preparation."""


@dataclass
class PhaseEstimationResult:
    """Result of a phase estimation run."""
    phase: float
    measured: int
    precision: int
    shots: int
    counts: Histogram

    @property
    def confidence(self) -> float:
        """Fraction of shots that produced the reported estimate."""
        key = format(self.measured, f"0{self.precision}b")
        return self.counts.get(key, 0) / self.shots

    def __str__(self) -> str:
        return (f"QPE: phase = {self.phase:.6f} "
                f"(x={self.measured}/{2 ** self.precision}, "
                f"confidence={self.confidence:.1%})")


def phase_gate_oracle(theta: float) -> Tuple[ControlledPower, Preparation]:
    """
    Oracle for the single-qubit phase gate P(θ) = diag(1, e^{iθ}).

    Its |1⟩ eigenphase is θ / 2π; the T gate is ``theta=π/4`` (φ = 1/8).
    """
    def controlled_power(circuit: Circuit, control: int,
                         targets: Sequence[int], power: int) -> None:
        circuit.cp(theta * power, control, targets[0])

    def prepare(circuit: Circuit, targets: Sequence[int]) -> None:
        circuit.x(targets[0])

    return controlled_power, prepare


def phase_estimation_circuit(precision: int, n_target: int,
                             controlled_power: ControlledPower,
                             prepare: Optional[Preparation] = None) -> Circuit:
    """
    Build the QPE circuit (no measurement instructions).

    Args:
        precision: Number of counting qubits m
        n_target: Width of the eigenstate register
        controlled_power: Appends controlled-U^power
        prepare: Appends the eigenstate preparation on the target register

    Returns:
        Circuit over precision + n_target qubits
    """
    if precision < 1:
        raise ValidationError("precision", f"need at least 1 counting qubit, got {precision}")
    if n_target < 1:
        raise ValidationError("n_target", f"need at least 1 target qubit, got {n_target}")

    counting = list(range(precision))
    targets = list(range(precision, precision + n_target))
    qc = Circuit(precision + n_target, name="qpe")

    if prepare is not None:
        prepare(qc, targets)
    for q in counting:
        qc.h(q)
    for j in counting:
        controlled_power(qc, j, targets, 2 ** j)
    inverse_qft(qc, counting)
    return qc


def counting_register_counts(counts: Dict[int, int], precision: int) -> Dict[int, int]:
    """Marginalize full-register counts onto the counting qubits."""
    mask = (1 << precision) - 1
    marginal: Dict[int, int] = {}
    for idx, c in counts.items():
        marginal[idx & mask] = marginal.get(idx & mask, 0) + c
    return marginal


def estimate_phase(precision: int, n_target: int,
                   controlled_power: ControlledPower,
                   prepare: Optional[Preparation] = None,
                   shots: int = 1024,
                   backend: Optional[LocalBackend] = None,
                   seed: Optional[int] = None) -> PhaseEstimationResult:
    """
    Run QPE and return the most frequent phase estimate.

    Args:
        precision: Counting qubits; the estimate is x / 2^precision
        n_target: Width of the eigenstate register
        controlled_power: Appends controlled-U^power
        prepare: Eigenstate preparation
        shots: Number of samples
        backend: Execution backend (default: a fresh LocalBackend)
        seed: Seed for the default backend; a supplied backend keeps
            its own generator, so passing both is an error

    Returns:
        PhaseEstimationResult

    Raises:
        ValidationError: non-positive shots, or both backend and seed given
    """
    if shots <= 0:
        raise ValidationError("shots", f"must be positive, got {shots}")
    if backend is None:
        backend = LocalBackend(seed=seed)
    elif seed is not None:
        raise ValidationError(
            "seed", "seed only applies to the default backend; seed the backend instead"
        )
    qc = phase_estimation_circuit(precision, n_target, controlled_power, prepare)
    result = backend.run(qc, shots=shots)

    marginal = counting_register_counts(result.counts, precision)
    # ties resolve to the smaller integer
    measured = max(sorted(marginal), key=lambda x: marginal[x])
    return PhaseEstimationResult(
        phase=measured / 2 ** precision,
        measured=measured,
        precision=precision,
        shots=shots,
        counts=counts_to_histogram(marginal, precision),
    )


def phase_distribution(precision: int, n_target: int,
                       controlled_power: ControlledPower,
                       prepare: Optional[Preparation] = None) -> List[float]:
    """Exact probability of each counting-register outcome x (index = x)."""
    qc = phase_estimation_circuit(precision, n_target, controlled_power, prepare)
    state = LocalBackend(max_qubits=None).execute_to_state(qc)
    probs = np.abs(state) ** 2
    marginal = np.zeros(2 ** precision)
    np.add.at(marginal, np.arange(len(probs)) & ((1 << precision) - 1), probs)
    return marginal.tolist()
