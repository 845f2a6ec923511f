"""
Gate application on amplitude vectors.

For a gate on target qubit q the 2^n basis indices are partitioned into
pairs (i, i | 2^q) with bit q of i clear; the gate's 2×2 matrix mixes
each pair. Controlled gates restrict the pairs to indices whose control
bits are all set, so the untouched half of the vector is copied through
bit-exactly. This is O(2^n) per gate with no 2^n × 2^n operator ever
built.

Dispatch is a table keyed by gate name, one kernel per variant.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

import numpy as np
from numpy import ndarray

from tiny_qsim import gates as g
from tiny_qsim.circuit import Circuit, Measurement
from tiny_qsim.errors import DimensionMismatch, InvalidQubitIndex, OperationError
from tiny_qsim.gates import Gate
from tiny_qsim.measurement import measure_and_collapse
from tiny_qsim.statevector import freeze, init, num_qubits

logger = logging.getLogger(__name__)

Kernel = Callable[[ndarray, Gate], ndarray]


# ---------------------------------------------------------------------------
# Index helpers
# ---------------------------------------------------------------------------

def _bit(indices: ndarray, qubit: int) -> ndarray:
    return (indices >> qubit) & 1


def _pair_indices(
    n_qubits: int, target: int, controls: tuple[int, ...] = ()
) -> tuple[ndarray, ndarray]:
    """Index pairs differing only in ``target``, restricted to controls = 1."""
    idx = np.arange(2 ** n_qubits)
    mask = _bit(idx, target) == 0
    for c in controls:
        mask &= _bit(idx, c) == 1
    i0 = idx[mask]
    return i0, i0 | (1 << target)


def _apply_pairs(
    state: ndarray, matrix: ndarray, target: int, controls: tuple[int, ...] = ()
) -> ndarray:
    i0, i1 = _pair_indices(num_qubits(state), target, controls)
    a0 = state[i0]
    a1 = state[i1]
    out = state.copy()
    out[i0] = matrix[0, 0] * a0 + matrix[0, 1] * a1
    out[i1] = matrix[1, 0] * a0 + matrix[1, 1] * a1
    return out


# ---------------------------------------------------------------------------
# Kernels
# ---------------------------------------------------------------------------

def _single_qubit(state: ndarray, gate: Gate) -> ndarray:
    return _apply_pairs(state, gate.matrix(), gate.qubits[0])


def _cx(state: ndarray, gate: Gate) -> ndarray:
    control, target = gate.qubits
    return _apply_pairs(state, g.X, target, (control,))


def _cz(state: ndarray, gate: Gate) -> ndarray:
    q0, q1 = gate.qubits
    return _apply_pairs(state, g.Z, q1, (q0,))


def _cp(state: ndarray, gate: Gate) -> ndarray:
    control, target = gate.qubits
    return _apply_pairs(state, g.P(gate.params[0]), target, (control,))


_ROTATIONS = {"crx": g.Rx, "cry": g.Ry, "crz": g.Rz}


def _controlled_rotation(state: ndarray, gate: Gate) -> ndarray:
    control, target = gate.qubits
    return _apply_pairs(state, _ROTATIONS[gate.name](gate.params[0]), target, (control,))


def _ccx(state: ndarray, gate: Gate) -> ndarray:
    c0, c1, target = gate.qubits
    return _apply_pairs(state, g.X, target, (c0, c1))


def _mcz(state: ndarray, gate: Gate) -> ndarray:
    *controls, target = gate.qubits
    return _apply_pairs(state, g.Z, target, tuple(controls))


def _swap(state: ndarray, gate: Gate) -> ndarray:
    a, b = gate.qubits
    idx = np.arange(state.shape[0])
    src = idx[(_bit(idx, a) == 1) & (_bit(idx, b) == 0)]
    dst = src ^ ((1 << a) | (1 << b))
    out = state.copy()
    out[src] = state[dst]
    out[dst] = state[src]
    return out


_KERNELS: dict[str, Kernel] = {
    **{name: _single_qubit for name in ("x", "y", "z", "h", "s", "sdg", "t", "tdg",
                                       "p", "rx", "ry", "rz", "u3")},
    "cx": _cx,
    "cz": _cz,
    "cp": _cp,
    "crx": _controlled_rotation,
    "cry": _controlled_rotation,
    "crz": _controlled_rotation,
    "swap": _swap,
    "ccx": _ccx,
    "mcz": _mcz,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def apply(gate: Gate, state: ndarray) -> ndarray:
    """
    Apply one gate, returning a fresh state.

    Parameters
    ----------
    gate : Gate
        Gate to apply.
    state : ndarray
        Input amplitude vector (left untouched).

    Returns
    -------
    ndarray
        New read-only amplitude vector.

    Raises
    ------
    InvalidQubitIndex
        If the gate references a qubit >= n.
    """
    n = num_qubits(state)
    for q in gate.qubits:
        if q >= n:
            raise InvalidQubitIndex(q, n)
    state = np.asarray(state, dtype=np.complex128)
    return freeze(_KERNELS[gate.name](state, gate))


def apply_gates(gates: Iterable[Gate], state: ndarray) -> ndarray:
    """Apply gates left to right. The result never aliases ``state``."""
    state = freeze(np.array(state, dtype=np.complex128))
    for gate in gates:
        state = apply(gate, state)
    return state


def _initial_state(circuit: Circuit, state: ndarray | None) -> ndarray:
    if state is None:
        return init(circuit.n_qubits)
    n = num_qubits(state)
    if n != circuit.n_qubits:
        raise DimensionMismatch(circuit.n_qubits, n, f"circuit '{circuit.name}'")
    return state


def apply_circuit(
    circuit: Circuit,
    state: ndarray | None = None,
    rng: np.random.Generator | None = None,
) -> ndarray:
    """
    Apply every instruction of a circuit and return the final state.

    Starts from |0...0⟩ when ``state`` is omitted. Circuits with
    measurements need ``rng``; the returned state is the collapsed one
    (use ``execute_circuit`` to also get the classical bits).
    """
    if circuit.has_measurements:
        if rng is None:
            raise OperationError(
                "apply_circuit",
                "circuit contains measurements; pass a numpy Generator as rng",
            )
        final, _ = execute_circuit(circuit, rng, state)
        return final
    logger.debug("Applying %d gates on %d qubits", circuit.num_gates, circuit.n_qubits)
    return apply_gates(circuit.gates, _initial_state(circuit, state))


def execute_circuit(
    circuit: Circuit,
    rng: np.random.Generator,
    state: ndarray | None = None,
) -> tuple[ndarray, list[int]]:
    """
    Run a circuit including mid-circuit measurements.

    Returns
    -------
    tuple
        (final collapsed state, classical register as a list of bits).
    """
    state = _initial_state(circuit, state)
    classical = [0] * circuit.n_clbits
    for inst in circuit.instructions:
        if isinstance(inst, Measurement):
            outcome, state = measure_and_collapse(rng, inst.qubit, state)
            classical[inst.clbit] = outcome
        else:
            state = apply(inst, state)
    return state, classical
