"""Algorithms built on the statevector engine."""

from .phase_estimation import (
    PhaseEstimationResult,
    counting_register_counts,
    estimate_phase,
    phase_distribution,
    phase_estimation_circuit,
    phase_gate_oracle,
)

__all__ = [
    "PhaseEstimationResult",
    "counting_register_counts",
    "estimate_phase",
    "phase_distribution",
    "phase_estimation_circuit",
    "phase_gate_oracle",
]
