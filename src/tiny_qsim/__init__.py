"""
tiny-qsim: a small statevector simulation engine.

Features:
- Immutable amplitude vectors (numpy complex128, little-endian qubits)
- Fluent circuits: Circuit(2).h(0).cx(0, 1)
- Seeded measurement sampling and collapse
- Trotterized evolution under Pauli-term Hamiltonians
- Reversible constant arithmetic (Draper adders, modular multiply)
- Backend abstraction with an async operation contract
- Bitstring histograms and readout-error correction

Quick Start:
    >>> from tiny_qsim import Circuit, LocalBackend
    >>> qc = Circuit(2).h(0).cx(0, 1)
    >>> LocalBackend(seed=1).histogram(qc, shots=1000)
    {'00': ~500, '11': ~500}

Time evolution:
    >>> from tiny_qsim import EvolutionConfig, init, simulate, transverse_field_ising
    >>> H = transverse_field_ising(3, J=1.0, h=0.5)
    >>> psi = simulate(H, init(3), EvolutionConfig(time=1.0, steps=40, order=2))
"""
__version__ = "0.1.0"
__author__ = "SK Biswas"

# Core
from .errors import (
    BackendError,
    CapacityExceeded,
    DegenerateMeasurement,
    DimensionMismatch,
    InvalidQubitIndex,
    NotImplementedFeature,
    OperationError,
    QuantumError,
    ValidationError,
)
from .statevector import (
    basis_state,
    fidelity,
    from_amplitudes,
    get_amplitude,
    init,
    is_normalized,
    norm,
    num_qubits,
)
from .gates import Gate
from .circuit import Circuit, Measurement
from .simulator import apply, apply_circuit, apply_gates, execute_circuit
from .measurement import (
    collapse_after_measurement,
    measure_and_collapse,
    measure_computational_basis,
    measure_single_qubit,
    probability_distribution,
    qubit_probabilities,
    sample_counts,
    sample_measurements,
)

# Evolution and arithmetic
from .hamiltonian import Hamiltonian, PauliTerm, heisenberg_xyz, transverse_field_ising
from .evolution import (
    EvolutionConfig,
    estimate_trotter_steps,
    exact_evolution,
    simulate,
    trotter_circuit,
)
from .qft import inverse_qft, qft
from .arithmetic import (
    add_constant,
    add_constant_mod_n,
    controlled_add_constant,
    controlled_add_constant_mod_n,
    controlled_multiply_constant_mod_n,
    controlled_multiply_constant_mod_n_in_place,
    controlled_subtract_constant,
    doubly_controlled_add_constant,
    doubly_controlled_subtract_constant,
    multiply_constant_mod_n,
    subtract_constant,
)

# Boundary
from .backends import Backend, LocalBackend, SimulationResult
from .histogram import Histogram, histogram_to_amplitudes, histogram_to_probabilities
from .mitigation import CorrectedHistogram, MeasurementMitigator

from . import gates

__all__ = [
    # Errors
    "QuantumError",
    "ValidationError",
    "InvalidQubitIndex",
    "DimensionMismatch",
    "DegenerateMeasurement",
    "OperationError",
    "BackendError",
    "CapacityExceeded",
    "NotImplementedFeature",
    # Amplitude vector
    "init",
    "basis_state",
    "get_amplitude",
    "norm",
    "is_normalized",
    "from_amplitudes",
    "fidelity",
    "num_qubits",
    # Gates and circuits
    "Gate",
    "gates",
    "Circuit",
    "Measurement",
    "apply",
    "apply_gates",
    "apply_circuit",
    "execute_circuit",
    # Measurement
    "probability_distribution",
    "qubit_probabilities",
    "measure_single_qubit",
    "collapse_after_measurement",
    "measure_and_collapse",
    "measure_computational_basis",
    "sample_measurements",
    "sample_counts",
    # Evolution
    "PauliTerm",
    "Hamiltonian",
    "transverse_field_ising",
    "heisenberg_xyz",
    "EvolutionConfig",
    "simulate",
    "trotter_circuit",
    "exact_evolution",
    "estimate_trotter_steps",
    # Arithmetic
    "qft",
    "inverse_qft",
    "add_constant",
    "subtract_constant",
    "add_constant_mod_n",
    "controlled_add_constant",
    "controlled_add_constant_mod_n",
    "controlled_subtract_constant",
    "doubly_controlled_add_constant",
    "doubly_controlled_subtract_constant",
    "multiply_constant_mod_n",
    "controlled_multiply_constant_mod_n",
    "controlled_multiply_constant_mod_n_in_place",
    # Boundary
    "Backend",
    "LocalBackend",
    "SimulationResult",
    "Histogram",
    "histogram_to_amplitudes",
    "histogram_to_probabilities",
    "CorrectedHistogram",
    "MeasurementMitigator",
]
