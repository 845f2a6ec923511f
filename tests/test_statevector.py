"""Tests for the amplitude vector."""

import numpy as np
import pytest

from tiny_qsim import ValidationError
from tiny_qsim.statevector import (
    basis_state,
    dimension,
    fidelity,
    from_amplitudes,
    get_amplitude,
    init,
    is_normalized,
    norm,
    num_qubits,
)


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("n", [1, 2, 5, 10])
def test_init_is_all_zeros_state(n):
    state = init(n)
    assert state.shape == (2 ** n,)
    assert state.dtype == np.complex128
    assert state[0] == 1.0
    assert np.count_nonzero(state) == 1


def test_init_rejects_zero_qubits():
    with pytest.raises(ValidationError) as exc:
        init(0)
    assert exc.value.parameter == "n_qubits"


def test_basis_state_little_endian():
    """|index=5⟩ on 3 qubits has qubits 0 and 2 set."""
    state = basis_state(3, 5)
    assert get_amplitude(5, state) == 1.0
    assert norm(state) == pytest.approx(1.0)


def test_basis_state_out_of_range():
    with pytest.raises(ValidationError):
        basis_state(2, 4)


# ---------------------------------------------------------------------------
# Immutability
# ---------------------------------------------------------------------------

def test_states_are_read_only():
    state = init(2)
    with pytest.raises(ValueError):
        state[0] = 0.0


def test_from_amplitudes_copies_input():
    raw = np.array([1, 0, 0, 0], dtype=complex)
    state = from_amplitudes(raw)
    raw[0] = 0.0
    assert state[0] == 1.0


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------

def test_dimension_and_num_qubits():
    state = init(4)
    assert dimension(state) == 16
    assert num_qubits(state) == 4


@pytest.mark.parametrize("length", [1, 3, 6, 12])
def test_num_qubits_rejects_non_power_of_two(length):
    with pytest.raises(ValidationError):
        num_qubits(np.zeros(length, dtype=complex))


@pytest.mark.parametrize("index", [-1, 4, 100])
def test_get_amplitude_out_of_range(index):
    with pytest.raises(ValidationError) as exc:
        get_amplitude(index, init(2))
    assert exc.value.parameter == "index"


def test_norm_of_superposition():
    state = from_amplitudes([0.6, 0.8j])
    assert norm(state) == pytest.approx(1.0)
    assert is_normalized(state)


# ---------------------------------------------------------------------------
# Construction from amplitudes
# ---------------------------------------------------------------------------

def test_from_amplitudes_rejects_unnormalized():
    with pytest.raises(ValidationError, match="norm"):
        from_amplitudes([1, 1])


def test_from_amplitudes_normalizes_on_request():
    state = from_amplitudes([1, 1], normalize=True)
    np.testing.assert_allclose(state, [1 / np.sqrt(2)] * 2, atol=1e-12)


def test_from_amplitudes_rejects_zero_vector():
    with pytest.raises(ValidationError):
        from_amplitudes([0, 0, 0, 0], normalize=True)


def test_fidelity_ignores_global_phase():
    a = from_amplitudes([1, 1j], normalize=True)
    b = from_amplitudes(np.exp(0.7j) * np.array([1, 1j]), normalize=True)
    assert fidelity(a, b) == pytest.approx(1.0)
    assert fidelity(init(1), basis_state(1, 1)) == pytest.approx(0.0)


def test_fidelity_dimension_mismatch():
    with pytest.raises(ValidationError):
        fidelity(init(1), init(2))
