"""Tests for reversible constant arithmetic."""

import numpy as np
import pytest

from tiny_qsim import Circuit, ValidationError
from tiny_qsim.arithmetic import (
    add_constant,
    add_constant_mod_n,
    and_ancilla,
    controlled_add_constant,
    controlled_add_constant_mod_n,
    controlled_multiply_constant_mod_n,
    controlled_multiply_constant_mod_n_in_place,
    controlled_subtract_constant,
    doubly_controlled_add_constant,
    doubly_controlled_subtract_constant,
    modular_inverse,
    multiply_constant_mod_n,
    subtract_constant,
)
from tiny_qsim.measurement import qubit_probabilities
from tiny_qsim.simulator import apply_circuit
from tiny_qsim.statevector import basis_state


def encode(n_qubits, assignments):
    """Basis state with integer values placed on registers (LSB first)."""
    index = 0
    for register, value in assignments:
        for i, q in enumerate(register):
            index |= ((value >> i) & 1) << q
    return basis_state(n_qubits, index)


def decode(state, register):
    """Register value of a computational-basis state."""
    index = int(np.argmax(np.abs(state)))
    assert abs(state[index]) == pytest.approx(1.0, abs=1e-9)
    return sum(((index >> q) & 1) << i for i, q in enumerate(register))


# ---------------------------------------------------------------------------
# Adders
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("x", range(8))
@pytest.mark.parametrize("k", [0, 1, 3, 6, 13])
def test_add_constant_wraps(x, k):
    reg = [0, 1, 2]
    qc = add_constant(Circuit(3), reg, k)
    out = apply_circuit(qc, encode(3, [(reg, x)]))
    assert decode(out, reg) == (x + k) % 8


@pytest.mark.parametrize("control", [0, 1])
@pytest.mark.parametrize("x", [0, 5, 15])
def test_controlled_add(control, x):
    reg = [1, 2, 3, 4]
    qc = controlled_add_constant(Circuit(5), 0, reg, 9)
    out = apply_circuit(qc, encode(5, [([0], control), (reg, x)]))
    assert decode(out, reg) == ((x + 9) % 16 if control else x)
    assert decode(out, [0]) == control


@pytest.mark.parametrize("x", [0, 2, 7])
def test_subtract_inverts_add(x):
    reg = [1, 2, 3]
    qc = Circuit(4)
    controlled_add_constant(qc, 0, reg, 5)
    controlled_subtract_constant(qc, 0, reg, 5)
    psi = encode(4, [([0], 1), (reg, x)])
    np.testing.assert_allclose(apply_circuit(qc, psi), psi, atol=1e-9)


def test_controlled_subtract_wraps():
    reg = [1, 2, 3]
    qc = controlled_subtract_constant(Circuit(4), 0, reg, 3)
    out = apply_circuit(qc, encode(4, [([0], 1), (reg, 1)]))
    assert decode(out, reg) == 6


def test_adder_on_superposition_keeps_amplitudes():
    reg = [0, 1, 2]
    qc = Circuit(3).h(0).h(1)
    add_constant(qc, reg, 2)
    out = apply_circuit(qc)
    probs = np.abs(out) ** 2
    np.testing.assert_allclose(probs[[2, 3, 4, 5]], [0.25] * 4, atol=1e-9)


@pytest.mark.parametrize("x", [0, 3, 7])
def test_subtract_constant_wraps(x):
    reg = [0, 1, 2]
    out = apply_circuit(subtract_constant(Circuit(3), reg, 5), encode(3, [(reg, x)]))
    assert decode(out, reg) == (x - 5) % 8


def test_subtract_undoes_add():
    reg = [0, 1, 2, 3]
    qc = Circuit(4).h(0).ry(0.7, 2)
    psi = apply_circuit(qc)
    undo = Circuit(4)
    add_constant(undo, reg, 11)
    subtract_constant(undo, reg, 11)
    np.testing.assert_allclose(apply_circuit(undo, psi), psi, atol=1e-9)


# ---------------------------------------------------------------------------
# Doubly-controlled adders and the AND ancilla
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("c1,c2", [(0, 0), (0, 1), (1, 0), (1, 1)])
def test_doubly_controlled_add(c1, c2):
    reg, anc = [2, 3, 4], 5
    qc = doubly_controlled_add_constant(Circuit(6), 0, 1, reg, 3, anc)
    out = apply_circuit(qc, encode(6, [([0], c1), ([1], c2), (reg, 6)]))
    assert decode(out, reg) == ((6 + 3) % 8 if c1 and c2 else 6)
    assert qubit_probabilities(anc, out)[0] > 0.999


@pytest.mark.parametrize("x", [1, 4])
def test_doubly_controlled_subtract_inverts_add(x):
    reg, anc = [2, 3, 4], 5
    qc = Circuit(6)
    doubly_controlled_add_constant(qc, 0, 1, reg, 7, anc)
    doubly_controlled_subtract_constant(qc, 0, 1, reg, 7, anc)
    psi = encode(6, [([0], 1), ([1], 1), (reg, x)])
    np.testing.assert_allclose(apply_circuit(qc, psi), psi, atol=1e-9)


def test_and_ancilla_brackets_block():
    qc = Circuit(4)
    with and_ancilla(qc, 0, 1, 3) as both:
        assert both == 3
        qc.cx(both, 2)
    assert [gate.name for gate in qc.gates] == ["ccx", "cx", "ccx"]


def test_ancilla_clean_for_superposed_controls():
    reg, anc = [2, 3], 4
    qc = Circuit(5).h(0).h(1)
    doubly_controlled_add_constant(qc, 0, 1, reg, 1, anc)
    assert qubit_probabilities(anc, apply_circuit(qc))[0] > 0.999


# ---------------------------------------------------------------------------
# Modular addition
# ---------------------------------------------------------------------------

MOD_REG, OVERFLOW = [0, 1, 2, 3], 4


@pytest.mark.parametrize("x", range(5))
@pytest.mark.parametrize("k", range(5))
def test_add_constant_mod_n(x, k):
    qc = add_constant_mod_n(Circuit(5), MOD_REG, k, 5, OVERFLOW)
    out = apply_circuit(qc, encode(5, [(MOD_REG, x)]))
    assert decode(out, MOD_REG) == (x + k) % 5
    assert decode(out, [OVERFLOW]) == 0


@pytest.mark.parametrize("x", [0, 3, 7])
def test_add_mod_n_at_largest_modulus(x):
    """N = 2^(width-1) still leaves the sign bit free."""
    qc = add_constant_mod_n(Circuit(5), MOD_REG, 5, 8, OVERFLOW)
    out = apply_circuit(qc, encode(5, [(MOD_REG, x)]))
    assert decode(out, MOD_REG) == (x + 5) % 8
    assert decode(out, [OVERFLOW]) == 0


def test_add_mod_n_superposition_keeps_overflow_clean():
    qc = Circuit(5).h(0).h(1)
    add_constant_mod_n(qc, MOD_REG, 3, 5, OVERFLOW)
    out = apply_circuit(qc)
    probs = np.abs(out) ** 2
    np.testing.assert_allclose(probs[[3, 4, 0, 1]], [0.25] * 4, atol=1e-9)
    assert qubit_probabilities(OVERFLOW, out)[0] > 0.999


@pytest.mark.parametrize("control", [0, 1])
@pytest.mark.parametrize("x", [0, 2, 4])
def test_controlled_add_constant_mod_n(control, x):
    reg, overflow = [1, 2, 3, 4], 5
    qc = controlled_add_constant_mod_n(Circuit(6), 0, reg, 4, 5, overflow)
    out = apply_circuit(qc, encode(6, [([0], control), (reg, x)]))
    assert decode(out, reg) == ((x + 4) % 5 if control else x)
    assert decode(out, [overflow]) == 0
    assert decode(out, [0]) == control


@pytest.mark.parametrize("k,modulus,register,overflow", [
    (5, 5, MOD_REG, OVERFLOW),          # constant out of range
    (-1, 5, MOD_REG, OVERFLOW),
    (1, 1, MOD_REG, OVERFLOW),          # modulus too small
    (1, 9, MOD_REG, OVERFLOW),          # no room for the sign bit
    (1, 5, MOD_REG, 3),                 # overflow inside the register
    (0, 2, [], OVERFLOW),
])
def test_add_mod_n_validation(k, modulus, register, overflow):
    with pytest.raises(ValidationError):
        add_constant_mod_n(Circuit(5), register, k, modulus, overflow)


def test_controlled_add_mod_n_rejects_control_in_register():
    with pytest.raises(ValidationError):
        controlled_add_constant_mod_n(Circuit(6), 1, [1, 2, 3, 4], 1, 5, 5)


# ---------------------------------------------------------------------------
# Modular multiplication
# ---------------------------------------------------------------------------

CONTROL, REGISTER, TEMP, ANCILLA = 0, [1, 2, 3, 4], [5, 6, 7, 8], 9


def multiply(k, modulus, prep):
    qc = Circuit(10)
    controlled_multiply_constant_mod_n_in_place(
        qc, CONTROL, REGISTER, k, modulus, TEMP, ANCILLA
    )
    return apply_circuit(qc, prep)


def test_modular_inverse():
    assert modular_inverse(7, 15) == 13
    with pytest.raises(ValidationError):
        modular_inverse(6, 15)


def test_multiply_clean_case():
    out = multiply(2, 15, encode(10, [([CONTROL], 1), (REGISTER, 7)]))
    assert decode(out, REGISTER) == 14
    assert decode(out, TEMP) == 0
    assert decode(out, [ANCILLA]) == 0


def test_multiply_leaves_dirty_temp():
    """7 · 2 mod 15 = 14 in the register, but the uncompute leaves 2 in temp."""
    out = multiply(7, 15, encode(10, [([CONTROL], 1), (REGISTER, 2)]))
    assert decode(out, REGISTER) == 14
    assert decode(out, TEMP) == 2
    assert decode(out, [ANCILLA]) == 0


@pytest.mark.parametrize("y", [1, 2, 7, 11])
def test_multiply_control_off_is_identity(y):
    psi = encode(10, [([CONTROL], 0), (REGISTER, y)])
    out = multiply(7, 15, psi)
    np.testing.assert_allclose(out, psi, atol=1e-9)


def test_multiply_superposition_temp_not_restored():
    qc = Circuit(10).x(CONTROL)
    for q in REGISTER:
        qc.h(q)
    controlled_multiply_constant_mod_n_in_place(qc, CONTROL, REGISTER, 7, 15, TEMP, ANCILLA)
    out = apply_circuit(qc)
    temp_p0 = [qubit_probabilities(q, out)[0] for q in TEMP]
    # uniform input over 16 values: each temp bit is left near a coin flip
    assert min(temp_p0) < 0.6
    assert temp_p0 == pytest.approx([12 / 16, 6 / 16, 8 / 16, 7 / 16], abs=1e-9)
    assert qubit_probabilities(ANCILLA, out)[0] > 0.999


@pytest.mark.parametrize("kwargs", [
    {"k": 5, "modulus": 15},                      # not coprime
    {"k": 16, "modulus": 15},                     # out of range
    {"k": 2, "modulus": 1},                       # modulus too small
    {"k": 2, "modulus": 21},                      # does not fit 4 qubits
    {"k": 2, "modulus": 15, "temp": [5, 6, 7]},   # width mismatch
    {"k": 2, "modulus": 15, "ancilla": 1},        # overlapping roles
    {"k": 2, "modulus": 15, "temp": [5, 6, 7, 4]},
])
def test_multiply_validation(kwargs):
    args = {"temp": TEMP, "ancilla": ANCILLA, **kwargs}
    with pytest.raises(ValidationError):
        controlled_multiply_constant_mod_n_in_place(
            Circuit(10), CONTROL, REGISTER, args["k"], args["modulus"],
            args["temp"], args["ancilla"],
        )


def test_adder_rejects_empty_register():
    with pytest.raises(ValidationError):
        add_constant(Circuit(2), [], 1)


def test_adder_rejects_control_in_register():
    with pytest.raises(ValidationError):
        controlled_add_constant(Circuit(3), 1, [0, 1, 2], 1)


# ---------------------------------------------------------------------------
# Out-of-place modular multiplication
# ---------------------------------------------------------------------------

INPUT, OUTPUT = [0, 1, 2], [3, 4, 5, 6]


@pytest.mark.parametrize("x", range(8))
def test_multiply_constant_mod_n(x):
    qc = multiply_constant_mod_n(Circuit(8), INPUT, OUTPUT, 3, 7, overflow=7)
    out = apply_circuit(qc, encode(8, [(INPUT, x)]))
    assert decode(out, INPUT) == x
    assert decode(out, OUTPUT) == (3 * x) % 7
    assert decode(out, [7]) == 0


def test_multiply_accumulates_into_output():
    qc = multiply_constant_mod_n(Circuit(8), INPUT, OUTPUT, 3, 7, overflow=7)
    out = apply_circuit(qc, encode(8, [(INPUT, 5), (OUTPUT, 2)]))
    assert decode(out, OUTPUT) == (2 + 3 * 5) % 7


C_CONTROL, C_INPUT, C_OUTPUT, C_OVERFLOW, C_AND = 0, [1, 2, 3], [4, 5, 6, 7], 8, 9


def controlled_multiply(prep):
    qc = Circuit(10)
    controlled_multiply_constant_mod_n(
        qc, C_CONTROL, C_INPUT, C_OUTPUT, 3, 7, C_OVERFLOW, C_AND
    )
    return apply_circuit(qc, prep)


@pytest.mark.parametrize("control", [0, 1])
@pytest.mark.parametrize("x", [0, 3, 6, 7])
def test_controlled_multiply_constant_mod_n(control, x):
    out = controlled_multiply(encode(10, [([C_CONTROL], control), (C_INPUT, x)]))
    assert decode(out, C_INPUT) == x
    assert decode(out, C_OUTPUT) == ((3 * x) % 7 if control else 0)
    assert decode(out, [C_OVERFLOW, C_AND]) == 0


def test_controlled_multiply_superposition_scratch_clean():
    qc = Circuit(10).x(C_CONTROL)
    for q in C_INPUT:
        qc.h(q)
    controlled_multiply_constant_mod_n(qc, C_CONTROL, C_INPUT, C_OUTPUT, 3, 7, C_OVERFLOW, C_AND)
    out = apply_circuit(qc)
    assert qubit_probabilities(C_OVERFLOW, out)[0] > 0.999
    assert qubit_probabilities(C_AND, out)[0] > 0.999
    probs = np.abs(out) ** 2
    for x in range(8):
        index = int(np.argmax(np.abs(encode(10, [([C_CONTROL], 1), (C_INPUT, x),
                                                 (C_OUTPUT, (3 * x) % 7)]))))
        assert probs[index] == pytest.approx(1 / 8, abs=1e-9)


@pytest.mark.parametrize("k,modulus,output", [
    (7, 14, OUTPUT),           # not coprime
    (8, 7, OUTPUT),            # out of range
    (3, 11, OUTPUT),           # output has no sign bit for N = 11
    (3, 7, [3, 4, 5]),
])
def test_out_of_place_multiply_validation(k, modulus, output):
    with pytest.raises(ValidationError):
        multiply_constant_mod_n(Circuit(8), INPUT, output, k, modulus, overflow=7)


def test_controlled_multiply_rejects_shared_scratch():
    with pytest.raises(ValidationError):
        controlled_multiply_constant_mod_n(
            Circuit(10), C_CONTROL, C_INPUT, C_OUTPUT, 3, 7, C_OVERFLOW, C_OVERFLOW
        )
