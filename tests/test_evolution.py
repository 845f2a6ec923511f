"""Tests for Trotterized time evolution."""

import numpy as np
import pytest

from tiny_qsim import DimensionMismatch, ValidationError
from tiny_qsim.evolution import (
    EvolutionConfig,
    estimate_trotter_steps,
    exact_evolution,
    pauli_evolution_gates,
    simulate,
    trotter_circuit,
    trotter_gates,
)
from tiny_qsim.hamiltonian import (
    Hamiltonian,
    PauliTerm,
    heisenberg_xyz,
    transverse_field_ising,
)
from tiny_qsim.simulator import apply_gates
from tiny_qsim.statevector import basis_state, fidelity, from_amplitudes, init, norm


def random_state(n, seed=0):
    rng = np.random.default_rng(seed)
    return from_amplitudes(rng.normal(size=2 ** n) + 1j * rng.normal(size=2 ** n), normalize=True)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("kwargs,param", [
    ({"time": 1.0, "steps": 0}, "steps"),
    ({"time": 1.0, "order": 3}, "order"),
    ({"time": float("nan")}, "time"),
])
def test_config_validation(kwargs, param):
    with pytest.raises(ValidationError) as exc:
        EvolutionConfig(**kwargs)
    assert exc.value.parameter == param


def test_config_dt():
    assert EvolutionConfig(time=2.0, steps=8).dt == pytest.approx(0.25)


# ---------------------------------------------------------------------------
# Single terms are exact
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("paulis", [("X",), ("Y",), ("Z",), ("X", "Y"), ("Z", "Z"), ("Y", "X", "Z")])
def test_single_term_gadget_is_exact(paulis):
    n = 3
    qubits = tuple(range(len(paulis)))
    term = PauliTerm(0.63, qubits, paulis)
    H = Hamiltonian(n, [term])
    psi = random_state(n, seed=len(paulis))
    out = apply_gates(pauli_evolution_gates(term, 0.8), psi)
    expected = exact_evolution(H, psi, 0.8)
    np.testing.assert_allclose(out, expected, atol=1e-9)


def test_empty_term_has_no_gates():
    assert pauli_evolution_gates(PauliTerm(1.0, (), ()), 0.5) == []


def test_rz_angle_is_twice_coefficient_dt():
    gates = pauli_evolution_gates(PauliTerm(0.5, (0,), ("Z",)), 0.3)
    assert len(gates) == 1
    assert gates[0].name == "rz"
    assert gates[0].params[0] == pytest.approx(0.3)


# ---------------------------------------------------------------------------
# Full evolution
# ---------------------------------------------------------------------------

def test_empty_hamiltonian_leaves_state_unchanged():
    psi = random_state(2, seed=9)
    out = simulate(Hamiltonian(2), psi, EvolutionConfig(time=3.0, steps=5))
    np.testing.assert_allclose(out, psi, atol=1e-12)
    assert out is not psi


def test_norm_preserved():
    H = heisenberg_xyz(4, 1.0, 0.7, 0.3)
    out = simulate(H, random_state(4, seed=2), EvolutionConfig(time=2.0, steps=30, order=2))
    assert norm(out) == pytest.approx(1.0, abs=1e-6)


def test_commuting_terms_exact_in_one_step():
    H = Hamiltonian.from_pauli_strings({"ZI": 0.4, "IZ": -0.9, "ZZ": 0.25})
    psi = random_state(2, seed=5)
    out = simulate(H, psi, EvolutionConfig(time=1.7, steps=1))
    np.testing.assert_allclose(out, exact_evolution(H, psi, 1.7), atol=1e-9)


@pytest.mark.parametrize("order", [1, 2])
def test_converges_to_exact(order):
    H = transverse_field_ising(3, J=1.0, h=0.8)
    psi = init(3)
    t = 1.0
    exact = exact_evolution(H, psi, t)
    coarse = simulate(H, psi, EvolutionConfig(time=t, steps=4, order=order))
    fine = simulate(H, psi, EvolutionConfig(time=t, steps=64, order=order))
    assert 1 - fidelity(fine, exact) < 1 - fidelity(coarse, exact)
    assert fidelity(fine, exact) > 0.99


def test_second_order_more_accurate():
    H = heisenberg_xyz(3, 1.0, 0.5, 0.2) + transverse_field_ising(3, J=0.0, h=0.6)
    psi = basis_state(3, 1)
    exact = exact_evolution(H, psi, 1.0)
    first = simulate(H, psi, EvolutionConfig(time=1.0, steps=10, order=1))
    second = simulate(H, psi, EvolutionConfig(time=1.0, steps=10, order=2))
    assert fidelity(second, exact) >= fidelity(first, exact)


def test_dimension_mismatch():
    with pytest.raises(DimensionMismatch):
        simulate(transverse_field_ising(3), init(2), EvolutionConfig(time=1.0))


def test_trotter_circuit_gate_count():
    H = transverse_field_ising(2)
    config = EvolutionConfig(time=1.0, steps=3, order=2)
    qc = trotter_circuit(H, config)
    assert qc.num_gates == len(trotter_gates(H, config))
    assert qc.n_qubits == 2


# ---------------------------------------------------------------------------
# Step estimation
# ---------------------------------------------------------------------------

def test_estimate_first_order():
    assert estimate_trotter_steps(2.0, 1.0, 0.125) == 16


def test_estimate_second_order():
    # sqrt(8 / 1.5) ≈ 2.31
    assert estimate_trotter_steps(2.0, 1.0, 0.125, order=2) == 3


def test_estimate_at_least_one_step():
    assert estimate_trotter_steps(0.0, 5.0, 1e-3) == 1
    assert estimate_trotter_steps(1.0, 0.01, 1.0) == 1


def test_estimate_uses_magnitude_of_time():
    assert estimate_trotter_steps(2.0, -1.0, 0.125) == estimate_trotter_steps(2.0, 1.0, 0.125)


def test_estimated_steps_meet_tolerance():
    H = transverse_field_ising(3, J=1.0, h=0.5)
    t, tol = 0.4, 0.05
    steps = estimate_trotter_steps(H.coefficient_norm, t, tol)
    assert steps == 20
    psi = random_state(3, seed=8)
    out = simulate(H, psi, EvolutionConfig(time=t, steps=steps))
    assert np.linalg.norm(out - exact_evolution(H, psi, t)) <= tol


@pytest.mark.parametrize("kwargs,param", [
    ({"hamiltonian_norm": -1.0, "time": 1.0, "tolerance": 0.1}, "hamiltonian_norm"),
    ({"hamiltonian_norm": 1.0, "time": 1.0, "tolerance": 0.0}, "tolerance"),
    ({"hamiltonian_norm": 1.0, "time": 1.0, "tolerance": 0.1, "order": 3}, "order"),
])
def test_estimate_validation(kwargs, param):
    with pytest.raises(ValidationError) as exc:
        estimate_trotter_steps(**kwargs)
    assert exc.value.parameter == param
