"""Tests for the backend abstraction and the local statevector backend."""

import asyncio

import numpy as np
import pytest

from tiny_qsim import (
    CapacityExceeded,
    Circuit,
    InvalidQubitIndex,
    NotImplementedFeature,
    OperationError,
    ValidationError,
)
from tiny_qsim.backends import (
    Backend,
    BraidOperation,
    FMoveOperation,
    GateOperation,
    LocalBackend,
    MeasureOperation,
    SequenceOperation,
    StateType,
    apply_sequence_async,
    validate_capacity,
)
from tiny_qsim.gates import Gate
from tiny_qsim.statevector import basis_state, init


@pytest.fixture
def backend():
    return LocalBackend(seed=42)


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

def test_is_backend(backend):
    assert isinstance(backend, Backend)
    assert backend.native_state_type is StateType.GATE_BASED
    assert backend.name == "local-statevector"


def test_initialize_state(backend):
    np.testing.assert_allclose(backend.initialize_state(3), init(3))


def test_initialize_state_capacity():
    with pytest.raises(CapacityExceeded) as exc:
        LocalBackend(max_qubits=4).initialize_state(5)
    assert exc.value.required == 5
    assert exc.value.available == 4
    assert exc.value.backend == "local-statevector"


def test_validate_capacity_unbounded():
    validate_capacity(40, None, "anything")


def test_capabilities(backend):
    caps = backend.capabilities()
    assert caps.max_qubits == 24
    assert not caps.supports_braiding
    assert "cx" in caps.supported_gates


@pytest.mark.parametrize("operation,supported", [
    (GateOperation(Gate("h", (0,))), True),
    (MeasureOperation(0), True),
    (SequenceOperation([GateOperation(Gate("x", (0,))), MeasureOperation(0)]), True),
    (BraidOperation(0), False),
    (FMoveOperation("left", 1), False),
    (SequenceOperation([GateOperation(Gate("x", (0,))), BraidOperation(1)]), False),
])
def test_supports_operation(backend, operation, supported):
    assert backend.supports_operation(operation) is supported


# ---------------------------------------------------------------------------
# Async application
# ---------------------------------------------------------------------------

def test_apply_gate_async(backend):
    state = asyncio.run(backend.apply_operation_async(GateOperation(Gate("x", (1,))), init(2)))
    np.testing.assert_allclose(state, basis_state(2, 2), atol=1e-12)


def test_apply_sequence_async(backend):
    ops = [GateOperation(Gate("h", (0,))), GateOperation(Gate("cx", (0, 1))), MeasureOperation(0)]
    state = asyncio.run(apply_sequence_async(backend, ops, init(2)))
    assert np.argmax(np.abs(state)) in (0, 3)
    assert np.max(np.abs(state)) == pytest.approx(1.0)


def test_braid_rejected(backend):
    with pytest.raises(OperationError, match="BraidOperation"):
        asyncio.run(backend.apply_operation_async(BraidOperation(0), init(1)))


def test_measure_out_of_range(backend):
    with pytest.raises(InvalidQubitIndex):
        asyncio.run(backend.apply_operation_async(MeasureOperation(3), init(2)))


def test_cancellation(backend):
    async def run():
        cancel = asyncio.Event()
        cancel.set()
        return await backend.apply_operation_async(
            GateOperation(Gate("x", (0,))), init(1), cancel
        )

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(run())


# ---------------------------------------------------------------------------
# Circuit execution
# ---------------------------------------------------------------------------

def test_run_statevector_only(backend):
    result = backend.run(Circuit(2).h(0).cx(0, 1))
    assert result.counts is None
    assert result.probabilities() == pytest.approx({0: 0.5, 3: 0.5})


def test_run_samples_without_measurements(backend):
    result = backend.run(Circuit(2).h(0).cx(0, 1), shots=1000)
    hist = result.histogram()
    assert set(hist) <= {"00", "11"}
    assert sum(hist.values()) == 1000


def test_run_with_measurements_uses_classical_register(backend):
    qc = Circuit(3).x(2).measure(2, 0).measure(0, 1)
    result = backend.run(qc, shots=50)
    assert result.n_bits == 2
    assert result.histogram() == {"01": 50}


def test_run_with_measurements_no_shots(backend):
    qc = Circuit(1).x(0).measure(0)
    result = backend.run(qc)
    assert result.counts is None
    np.testing.assert_allclose(result.statevector, [0, 1], atol=1e-12)


def test_seeded_backends_reproduce():
    qc = Circuit(3).h(0).h(1).h(2)
    a = LocalBackend(seed=5).histogram(qc, 200)
    b = LocalBackend(seed=5).histogram(qc, 200)
    assert a == b


def test_run_capacity():
    with pytest.raises(CapacityExceeded):
        LocalBackend(max_qubits=2).run(Circuit(3))


def test_negative_shots(backend):
    with pytest.raises(ValidationError):
        backend.run(Circuit(1), shots=-1)


def test_execute_to_state_with_initial_state(backend):
    state = backend.execute_to_state(Circuit(1).x(0), basis_state(1, 1))
    np.testing.assert_allclose(state, init(1), atol=1e-12)


# ---------------------------------------------------------------------------
# Foreign state models
# ---------------------------------------------------------------------------

class AnyonChain(Backend):
    """Minimal topological backend: the state is the list of applied operations."""

    @property
    def name(self):
        return "anyon-chain"

    @property
    def native_state_type(self):
        return StateType.TOPOLOGICAL

    def initialize_state(self, n_qubits):
        return []

    def supports_operation(self, operation):
        return isinstance(operation, (BraidOperation, FMoveOperation))

    async def apply_operation_async(self, operation, state, cancel=None):
        if not self.supports_operation(operation):
            raise OperationError(self.name, f"{type(operation).__name__} is not supported")
        return state + [operation]


def test_topological_backend_capabilities():
    caps = AnyonChain().capabilities()
    assert caps.native_state_type is StateType.TOPOLOGICAL
    assert caps.supports_braiding
    assert caps.max_qubits is None


def test_topological_backend_rejects_gates():
    chain = AnyonChain()
    assert not chain.supports_operation(GateOperation(Gate("h", (0,))))
    state = asyncio.run(apply_sequence_async(chain, [BraidOperation(0), BraidOperation(1)], []))
    assert state == [BraidOperation(0), BraidOperation(1)]


def test_operation_only_backend_cannot_run_circuits():
    with pytest.raises(NotImplementedFeature) as exc:
        AnyonChain().run(Circuit(1))
    assert exc.value.feature == "anyon-chain.run"
