"""
Quantum Fourier transform circuits.

Registers are sequences of qubit indices, least-significant bit first.

Two flavours are provided:

- ``fourier_transform`` / ``inverse_fourier_transform`` build the
  swap-free phase encoding used by constant adders. After the forward
  transform, register qubit j holds

      (|0⟩ + e^{2πi x / 2^{j+1}} |1⟩) / √2

  so adding a constant a reduces to a phase rotation by
  2π a / 2^{j+1} on qubit j.

- ``qft`` / ``inverse_qft`` are the textbook transform
  |x⟩ → 2^{-m/2} Σ_y e^{2πi xy / 2^m} |y⟩ (encoding plus bit-reversal
  swaps), used by phase estimation.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from tiny_qsim.circuit import Circuit


def fourier_transform(circuit: Circuit, register: Sequence[int]) -> Circuit:
    """Append the swap-free phase encoding of ``register``."""
    n = len(register)
    for j in range(n - 1, -1, -1):
        circuit.h(register[j])
        for k in range(j):
            circuit.cp(np.pi / 2 ** (j - k), register[k], register[j])
    return circuit


def inverse_fourier_transform(circuit: Circuit, register: Sequence[int]) -> Circuit:
    """Exact adjoint of ``fourier_transform``."""
    n = len(register)
    for j in range(n):
        for k in range(j - 1, -1, -1):
            circuit.cp(-np.pi / 2 ** (j - k), register[k], register[j])
        circuit.h(register[j])
    return circuit


def _reverse(circuit: Circuit, qubits: Sequence[int]) -> None:
    m = len(qubits)
    for i in range(m // 2):
        circuit.swap(qubits[i], qubits[m - 1 - i])


def qft(circuit: Circuit, qubits: Sequence[int]) -> Circuit:
    """Append the standard QFT on ``qubits``."""
    fourier_transform(circuit, qubits)
    _reverse(circuit, qubits)
    return circuit


def inverse_qft(circuit: Circuit, qubits: Sequence[int]) -> Circuit:
    """Append the inverse of ``qft``."""
    _reverse(circuit, qubits)
    inverse_fourier_transform(circuit, qubits)
    return circuit
