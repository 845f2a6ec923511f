"""
Amplitude vector for n qubits.

A state is a flat complex128 numpy array of length 2^n, indexed by the
integer encoding of a basis state: bit i of the index is the state of
qubit i (little-endian).

States are values. Every function here returns a fresh array marked
read-only, so one caller's state can never be mutated through another
reference.

Memory usage: 2^n * 16 bytes (complex128)
    - 10 qubits: 16 KB
    - 20 qubits: 16 MB
    - 25 qubits: 512 MB
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy import ndarray

from tiny_qsim.errors import ValidationError

NORM_TOLERANCE = 1e-6
"""Allowed deviation of the norm from 1 for caller-supplied amplitudes."""


def freeze(array: ndarray) -> ndarray:
    """Mark an array read-only and return it."""
    array.flags.writeable = False
    return array


def init(n_qubits: int) -> ndarray:
    """Return |00...0⟩ on ``n_qubits`` qubits."""
    if n_qubits < 1:
        raise ValidationError("n_qubits", f"need at least 1 qubit, got {n_qubits}")
    state = np.zeros(2 ** n_qubits, dtype=np.complex128)
    state[0] = 1.0
    return freeze(state)


def basis_state(n_qubits: int, index: int) -> ndarray:
    """Return the computational basis state |index⟩."""
    if n_qubits < 1:
        raise ValidationError("n_qubits", f"need at least 1 qubit, got {n_qubits}")
    dim = 2 ** n_qubits
    if not 0 <= index < dim:
        raise ValidationError("index", f"{index} outside [0, {dim})")
    state = np.zeros(dim, dtype=np.complex128)
    state[index] = 1.0
    return freeze(state)


def dimension(state: ndarray) -> int:
    """Number of amplitudes (2^n)."""
    return int(np.shape(state)[0])


def num_qubits(state: ndarray) -> int:
    """Number of qubits encoded by the state."""
    shape = np.shape(state)
    if len(shape) != 1:
        raise ValidationError("state", f"expected a 1-D amplitude array, got shape {shape}")
    dim = shape[0]
    if dim < 2 or dim & (dim - 1):
        raise ValidationError("state", f"length {dim} is not a power of two >= 2")
    return dim.bit_length() - 1


def get_amplitude(index: int, state: ndarray) -> complex:
    """Amplitude of basis state ``index``."""
    dim = dimension(state)
    if not 0 <= index < dim:
        raise ValidationError("index", f"{index} outside [0, {dim})")
    return complex(state[index])


def norm(state: ndarray) -> float:
    """Euclidean norm sqrt(Σ|a|²); 1.0 for any valid state."""
    return float(np.sqrt(np.sum(np.abs(state) ** 2)))


def is_normalized(state: ndarray, tol: float = NORM_TOLERANCE) -> bool:
    return abs(norm(state) - 1.0) <= tol


def from_amplitudes(
    amplitudes: Sequence[complex] | ndarray, normalize: bool = False
) -> ndarray:
    """
    Build a state from explicit amplitudes.

    Parameters
    ----------
    amplitudes : array-like
        2^n complex amplitudes, little-endian indexing.
    normalize : bool
        Rescale to unit norm instead of rejecting unnormalized input.

    Returns
    -------
    ndarray
        Fresh read-only complex128 state.

    Raises
    ------
    ValidationError
        Wrong length, zero vector, or norm off by more than NORM_TOLERANCE.
    """
    state = np.array(amplitudes, dtype=np.complex128).ravel()
    num_qubits(state)
    n = norm(state)
    if normalize:
        if n < 1e-15:
            raise ValidationError("amplitudes", "cannot normalize the zero vector")
        state /= n
    elif abs(n - 1.0) > NORM_TOLERANCE:
        raise ValidationError("amplitudes", f"norm is {n:.8f}, expected 1.0")
    return freeze(state)


def fidelity(state1: ndarray, state2: ndarray) -> float:
    """State fidelity |⟨ψ₁|ψ₂⟩|², insensitive to global phase."""
    if dimension(state1) != dimension(state2):
        raise ValidationError(
            "state2",
            f"dimension {dimension(state2)} differs from {dimension(state1)}",
        )
    return float(np.abs(np.vdot(state1, state2)) ** 2)
