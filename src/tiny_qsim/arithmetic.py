"""
Reversible constant arithmetic on qubit registers.

All primitives append gates to a ``Circuit``; nothing is executed here.
A register is a sequence of qubit indices holding an unsigned integer,
least-significant bit first, and all additions wrap modulo 2^width.

Adders use the Fourier-basis (Draper) construction: the register is
phase-encoded with ``qft.fourier_transform``, the constant is added as a
set of single-qubit phase rotations, and the encoding is undone. This
needs no ancilla. Doubly-controlled variants compute the AND of the two
controls into an ancilla with ``and_ancilla``, the single place where
the compute/use/uncompute pattern lives.

Modular addition follows Beauregard: add k, subtract N, copy the sign
(the register MSB) into an overflow qubit, add N back if it was set,
then subtract and re-add k to return the overflow qubit to |0⟩. The
register keeps its MSB free as the sign bit, so N <= 2^(width-1).

Usage:
    >>> qc = Circuit(5)
    >>> controlled_add_constant(qc, 0, [1, 2, 3, 4], 5)
    >>> doubly_controlled_add_constant(qc, 0, 1, [2, 3, 4], 3, ancilla=...)
    >>> add_constant_mod_n(qc, [0, 1, 2, 3], 3, 5, overflow=4)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from math import gcd
from typing import Iterator, Sequence

import numpy as np

from tiny_qsim.circuit import Circuit
from tiny_qsim.errors import ValidationError
from tiny_qsim.qft import fourier_transform, inverse_fourier_transform

logger = logging.getLogger(__name__)


# ─── Validation ──────────────────────────────────────────────────────

def _require_distinct(**roles: int | Sequence[int]) -> None:
    """Every qubit may play exactly one role."""
    seen: dict[int, str] = {}
    for role, qubits in roles.items():
        for q in [qubits] if isinstance(qubits, int) else qubits:
            if q in seen:
                raise ValidationError(
                    role, f"qubit {q} is already used as '{seen[q]}'"
                )
            seen[q] = role


def _require_register(register: Sequence[int]) -> None:
    if len(register) == 0:
        raise ValidationError("register", "register must contain at least one qubit")


# ─── Fourier-basis adders ────────────────────────────────────────────

def _phase_add(
    circuit: Circuit,
    register: Sequence[int],
    k: int,
    control: int | None,
    sign: int,
) -> Circuit:
    width = len(register)
    k %= 2 ** width
    fourier_transform(circuit, register)
    for j, qubit in enumerate(register):
        modulus = 2 ** (j + 1)
        residue = k % modulus
        if residue == 0:
            continue
        angle = sign * 2 * np.pi * residue / modulus
        if control is None:
            circuit.p(angle, qubit)
        else:
            circuit.cp(angle, control, qubit)
    inverse_fourier_transform(circuit, register)
    return circuit


def add_constant(circuit: Circuit, register: Sequence[int], k: int) -> Circuit:
    """register ← register + k mod 2^width."""
    _require_register(register)
    _require_distinct(register=register)
    return _phase_add(circuit, register, k, None, +1)


def subtract_constant(circuit: Circuit, register: Sequence[int], k: int) -> Circuit:
    """register ← register - k mod 2^width; undoes ``add_constant``."""
    _require_register(register)
    _require_distinct(register=register)
    return _phase_add(circuit, register, k, None, -1)


def controlled_add_constant(
    circuit: Circuit, control: int, register: Sequence[int], k: int
) -> Circuit:
    """
    register ← register + k mod 2^width, if control is |1⟩.

    Built from controlled-phase rotations only; no ancilla.
    """
    _require_register(register)
    _require_distinct(control=control, register=register)
    return _phase_add(circuit, register, k, control, +1)


def controlled_subtract_constant(
    circuit: Circuit, control: int, register: Sequence[int], k: int
) -> Circuit:
    """
    register ← register - k mod 2^width, if control is |1⟩.

    Exact inverse of ``controlled_add_constant`` with the same arguments.
    """
    _require_register(register)
    _require_distinct(control=control, register=register)
    return _phase_add(circuit, register, k, control, -1)


# ─── Ancilla management ──────────────────────────────────────────────

@contextmanager
def and_ancilla(circuit: Circuit, c1: int, c2: int, ancilla: int) -> Iterator[int]:
    """
    Hold ``ancilla`` = c1 AND c2 for the duration of the block.

    Appends a Toffoli on entry and the identical Toffoli on exit. As long
    as the block leaves c1 and c2 untouched, the ancilla returns to |0⟩
    exactly.

        >>> with and_ancilla(qc, c1, c2, anc) as both:
        ...     controlled_add_constant(qc, both, register, k)
    """
    _require_distinct(c1=c1, c2=c2, ancilla=ancilla)
    circuit.ccx(c1, c2, ancilla)
    yield ancilla
    circuit.ccx(c1, c2, ancilla)


def doubly_controlled_add_constant(
    circuit: Circuit,
    c1: int,
    c2: int,
    register: Sequence[int],
    k: int,
    ancilla: int,
) -> Circuit:
    """
    register ← register + k mod 2^width, if both c1 and c2 are |1⟩.

    With exactly one control set the ancilla stays |0⟩, so every phase
    rotation is conditioned on a zero and the register is unchanged.
    """
    _require_register(register)
    _require_distinct(c1=c1, c2=c2, register=register, ancilla=ancilla)
    with and_ancilla(circuit, c1, c2, ancilla) as both:
        _phase_add(circuit, register, k, both, +1)
    return circuit


def doubly_controlled_subtract_constant(
    circuit: Circuit,
    c1: int,
    c2: int,
    register: Sequence[int],
    k: int,
    ancilla: int,
) -> Circuit:
    """register ← register - k mod 2^width, if both c1 and c2 are |1⟩."""
    _require_register(register)
    _require_distinct(c1=c1, c2=c2, register=register, ancilla=ancilla)
    with and_ancilla(circuit, c1, c2, ancilla) as both:
        _phase_add(circuit, register, k, both, -1)
    return circuit


# ─── Modular addition ────────────────────────────────────────────────

def _require_modular(register: Sequence[int], k: int, modulus: int) -> None:
    if modulus < 2:
        raise ValidationError("modulus", f"must be >= 2, got {modulus}")
    if not 0 <= k < modulus:
        raise ValidationError("constant", f"constant {k} must be in range [0, {modulus})")
    _require_register(register)
    if modulus > 2 ** (len(register) - 1):
        raise ValidationError(
            "register",
            f"{len(register)} qubits leave no sign bit for values modulo {modulus}; "
            f"need modulus <= {2 ** (len(register) - 1)}",
        )


def _mod_add(
    circuit: Circuit,
    register: Sequence[int],
    k: int,
    modulus: int,
    overflow: int,
    control: int | None,
) -> Circuit:
    sign = register[-1]
    _phase_add(circuit, register, k, control, +1)
    _phase_add(circuit, register, modulus, None, -1)
    circuit.cx(sign, overflow)
    _phase_add(circuit, register, modulus, overflow, +1)

    # overflow was set iff the sum stayed below N; after subtracting k that
    # is exactly when the sign bit is clear
    _phase_add(circuit, register, k, control, -1)
    circuit.x(sign)
    circuit.cx(sign, overflow)
    circuit.x(sign)
    _phase_add(circuit, register, k, control, +1)
    return circuit


def add_constant_mod_n(
    circuit: Circuit,
    register: Sequence[int],
    k: int,
    modulus: int,
    overflow: int,
) -> Circuit:
    """
    register ← register + k mod N, for register values below N.

    Parameters
    ----------
    circuit : Circuit
        Circuit to append to.
    register : sequence of int
        LSB first. The top qubit is the sign bit and must start |0⟩, so
        the register needs N <= 2^(width-1).
    k : int
        Constant, 0 <= k < N.
    modulus : int
        N >= 2.
    overflow : int
        Scratch qubit, |0⟩ on entry and on exit.

    Raises
    ------
    ValidationError
        Out-of-range constant or modulus, a register without room for the
        sign bit, or overlapping qubit roles.
    """
    _require_modular(register, k, modulus)
    _require_distinct(register=register, overflow=overflow)
    return _mod_add(circuit, register, k, modulus, overflow, None)


def controlled_add_constant_mod_n(
    circuit: Circuit,
    control: int,
    register: Sequence[int],
    k: int,
    modulus: int,
    overflow: int,
) -> Circuit:
    """register ← register + k mod N, if control is |1⟩."""
    _require_modular(register, k, modulus)
    _require_distinct(control=control, register=register, overflow=overflow)
    return _mod_add(circuit, register, k, modulus, overflow, control)


# ─── Modular multiplication ──────────────────────────────────────────

def modular_inverse(k: int, modulus: int) -> int:
    """k⁻¹ mod modulus; requires gcd(k, modulus) = 1."""
    if gcd(k, modulus) != 1:
        raise ValidationError(
            "constant", f"{k} has no inverse modulo {modulus} (not coprime)"
        )
    return pow(k, -1, modulus)


def _require_multiplier(k: int, modulus: int) -> None:
    if modulus < 2:
        raise ValidationError("modulus", f"must be >= 2, got {modulus}")
    if gcd(k, modulus) != 1:
        raise ValidationError(
            "constant", f"constant {k} and modulus {modulus} must be coprime"
        )
    if not 0 <= k < modulus:
        raise ValidationError("constant", f"constant {k} must be in range [0, {modulus})")


def multiply_constant_mod_n(
    circuit: Circuit,
    input_register: Sequence[int],
    output_register: Sequence[int],
    k: int,
    modulus: int,
    overflow: int,
) -> Circuit:
    """
    |x⟩|b⟩ → |x⟩|b + k·x mod N⟩; with b = 0 the output holds k·x mod N.

    Double-and-add: input bit i controls a modular add of k·2^i mod N
    into the output. ``input_register`` may hold any value; the output
    must hold a value below N and needs N <= 2^(width-1). ``overflow``
    is borrowed and returned to |0⟩.
    """
    _require_multiplier(k, modulus)
    _require_modular(output_register, 0, modulus)
    _require_register(input_register)
    _require_distinct(input=input_register, output=output_register, overflow=overflow)
    logger.debug(
        "Out-of-place multiply by %d mod %d: %d input bits into %d output qubits",
        k, modulus, len(input_register), len(output_register),
    )

    power = k
    for bit in input_register:
        _mod_add(circuit, output_register, power, modulus, overflow, bit)
        power = (power * 2) % modulus
    return circuit


def controlled_multiply_constant_mod_n(
    circuit: Circuit,
    control: int,
    input_register: Sequence[int],
    output_register: Sequence[int],
    k: int,
    modulus: int,
    overflow: int,
    ancilla: int,
) -> Circuit:
    """
    ``multiply_constant_mod_n`` conditioned on ``control``.

    Each step is conditioned on control AND input bit, computed into
    ``ancilla`` with ``and_ancilla``. With control = |0⟩ the output is
    left unchanged. Both ``overflow`` and ``ancilla`` start and end in |0⟩.
    """
    _require_multiplier(k, modulus)
    _require_modular(output_register, 0, modulus)
    _require_register(input_register)
    _require_distinct(
        control=control, input=input_register, output=output_register,
        overflow=overflow, ancilla=ancilla,
    )

    power = k
    for bit in input_register:
        with and_ancilla(circuit, control, bit, ancilla) as both:
            _mod_add(circuit, output_register, power, modulus, overflow, both)
        power = (power * 2) % modulus
    return circuit


def controlled_multiply_constant_mod_n_in_place(
    circuit: Circuit,
    control: int,
    register: Sequence[int],
    k: int,
    modulus: int,
    temp: Sequence[int],
    ancilla: int,
) -> Circuit:
    """
    register ← register · k mod N, if control is |1⟩.

    Three stages:

    1. Forward: for each register bit i, doubly-controlled add of
       k·2^i mod N into ``temp`` (controls: ``control``, register[i]).
    2. Controlled swap of every (register[i], temp[i]) pair, as
       CNOT(temp, reg) · CCX(control, reg, temp) · CNOT(temp, reg).
    3. Uncompute: for each bit i of the (new) register, doubly-controlled
       subtract of k⁻¹·2^i mod N from ``temp``.

    Known limitation: stage 3 is conditioned on the bits of the output
    value while stage 1 was conditioned on the bits of the input value,
    and the partial sums only wrap modulo 2^width, so ``temp`` is not
    guaranteed to return to |0⟩. Order-finding never measures ``temp``,
    which is why this is tolerated. With control = |0⟩ every gate is
    conditioned off and both registers are left exactly unchanged.

    Parameters
    ----------
    circuit : Circuit
        Circuit to append to.
    control : int
        Overall control qubit.
    register : sequence of int
        Register multiplied in place, LSB first.
    k : int
        Multiplier, 0 <= k < N and coprime to N.
    modulus : int
        N.
    temp : sequence of int
        Scratch register, same width as ``register``, initially |0⟩.
    ancilla : int
        Scratch qubit for the AND of two controls, initially |0⟩.

    Raises
    ------
    ValidationError
        Non-coprime or out-of-range constant, width mismatch, a modulus
        that does not fit the register, or overlapping qubit roles.
    """
    _require_multiplier(k, modulus)
    if len(register) != len(temp):
        raise ValidationError("temp", "register and temp qubits must have same length")
    _require_register(register)
    if modulus > 2 ** len(register):
        raise ValidationError(
            "register",
            f"{len(register)} qubits cannot hold values modulo {modulus}",
        )
    _require_distinct(control=control, register=register, temp=temp, ancilla=ancilla)

    k_inv = modular_inverse(k, modulus)
    logger.debug(
        "Modular multiply by %d mod %d on %d-qubit register (inverse %d)",
        k, modulus, len(register), k_inv,
    )

    power = k
    for bit in register:
        doubly_controlled_add_constant(circuit, control, bit, temp, power % modulus, ancilla)
        power = (power * 2) % modulus

    for reg_qubit, temp_qubit in zip(register, temp):
        circuit.cx(temp_qubit, reg_qubit)
        circuit.ccx(control, reg_qubit, temp_qubit)
        circuit.cx(temp_qubit, reg_qubit)

    power = k_inv
    for bit in register:
        doubly_controlled_subtract_constant(
            circuit, control, bit, temp, power % modulus, ancilla
        )
        power = (power * 2) % modulus

    return circuit
