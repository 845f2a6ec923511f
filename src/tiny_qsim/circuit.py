"""
Quantum circuit representation.

A circuit is an ordered sequence of gates (plus optional measurements)
over a fixed number of qubits. The builder methods validate qubit
indices eagerly and return ``self`` for chaining.

Example
-------
>>> from tiny_qsim import Circuit
>>> qc = Circuit(2)
>>> qc.h(0).cx(0, 1)
>>> qc.measure_all()
"""

from __future__ import annotations

import copy
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Union

from tiny_qsim.errors import InvalidQubitIndex, ValidationError
from tiny_qsim.gates import Gate


# ---------------------------------------------------------------------------
# Measurement: the only non-unitary instruction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Measurement:
    """Projective Z-basis measurement of one qubit into a classical bit."""
    qubit: int
    clbit: int

    def __post_init__(self) -> None:
        if self.qubit < 0:
            raise ValidationError("qubit", f"negative qubit index {self.qubit}")
        if self.clbit < 0:
            raise ValidationError("clbit", f"negative classical bit index {self.clbit}")

    @property
    def qubits(self) -> tuple[int, ...]:
        return (self.qubit,)


Instruction = Union[Gate, Measurement]


# ---------------------------------------------------------------------------
# Circuit
# ---------------------------------------------------------------------------

class Circuit:
    """
    Quantum circuit with n_qubits quantum bits and optional classical bits.

    Parameters
    ----------
    n_qubits : int
        Number of quantum bits.
    n_clbits : int, optional
        Number of classical bits. Defaults to 0 (auto-allocated on measure).
    name : str, optional
        Circuit name for display.
    """

    def __init__(
        self, n_qubits: int, n_clbits: int = 0, name: str = "circuit"
    ) -> None:
        if n_qubits < 1:
            raise ValidationError("n_qubits", f"need at least 1 qubit, got {n_qubits}")
        if n_clbits < 0:
            raise ValidationError("n_clbits", f"must be >= 0, got {n_clbits}")
        self.n_qubits = n_qubits
        self.n_clbits = n_clbits
        self.name = name
        self._instructions: list[Instruction] = []

    # -- Properties ---------------------------------------------------------

    @property
    def instructions(self) -> list[Instruction]:
        """List of instructions in the circuit."""
        return list(self._instructions)

    @property
    def gates(self) -> list[Gate]:
        """Unitary instructions only, in order."""
        return [inst for inst in self._instructions if isinstance(inst, Gate)]

    @property
    def depth(self) -> int:
        """Circuit depth (longest path through any qubit)."""
        qubit_depth = [0] * self.n_qubits
        for inst in self._instructions:
            if isinstance(inst, Measurement):
                continue
            max_d = max(qubit_depth[q] for q in inst.qubits)
            for q in inst.qubits:
                qubit_depth[q] = max_d + 1
        return max(qubit_depth)

    @property
    def num_gates(self) -> int:
        """Total number of gates (excluding measurements)."""
        return sum(1 for inst in self._instructions if isinstance(inst, Gate))

    @property
    def has_measurements(self) -> bool:
        return any(isinstance(inst, Measurement) for inst in self._instructions)

    def count_ops(self) -> dict[str, int]:
        """Histogram of instruction names."""
        names = (
            "measure" if isinstance(inst, Measurement) else inst.name
            for inst in self._instructions
        )
        return dict(Counter(names))

    def __len__(self) -> int:
        return len(self._instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self._instructions)

    # -- Internal helpers ---------------------------------------------------

    def _validate_qubits(self, qubits: Sequence[int]) -> None:
        for q in qubits:
            if not 0 <= q < self.n_qubits:
                raise InvalidQubitIndex(q, self.n_qubits)
        if len(set(qubits)) != len(qubits):
            raise ValidationError("qubits", f"duplicate qubits in {tuple(qubits)}")

    def _add(self, name: str, qubits: tuple[int, ...], params: tuple = ()) -> Circuit:
        """Add a gate and return self for chaining."""
        self._validate_qubits(qubits)
        self._instructions.append(Gate(name, qubits, params))
        return self

    def append(self, gate: Gate) -> Circuit:
        """Append an existing ``Gate`` value."""
        self._validate_qubits(gate.qubits)
        self._instructions.append(gate)
        return self

    def extend(self, gates: Iterable[Gate]) -> Circuit:
        for gate in gates:
            self.append(gate)
        return self

    # -- Single-qubit gates -------------------------------------------------

    def x(self, qubit: int) -> Circuit:
        """Pauli-X gate."""
        return self._add("x", (qubit,))

    def y(self, qubit: int) -> Circuit:
        """Pauli-Y gate."""
        return self._add("y", (qubit,))

    def z(self, qubit: int) -> Circuit:
        """Pauli-Z gate."""
        return self._add("z", (qubit,))

    def h(self, qubit: int) -> Circuit:
        """Hadamard gate."""
        return self._add("h", (qubit,))

    def s(self, qubit: int) -> Circuit:
        return self._add("s", (qubit,))

    def sdg(self, qubit: int) -> Circuit:
        return self._add("sdg", (qubit,))

    def t(self, qubit: int) -> Circuit:
        return self._add("t", (qubit,))

    def tdg(self, qubit: int) -> Circuit:
        return self._add("tdg", (qubit,))

    # -- Parameterized single-qubit gates -----------------------------------

    def rx(self, theta: float, qubit: int) -> Circuit:
        """Rotation around X-axis."""
        return self._add("rx", (qubit,), (theta,))

    def ry(self, theta: float, qubit: int) -> Circuit:
        """Rotation around Y-axis."""
        return self._add("ry", (qubit,), (theta,))

    def rz(self, phi: float, qubit: int) -> Circuit:
        """Rotation around Z-axis."""
        return self._add("rz", (qubit,), (phi,))

    def p(self, lam: float, qubit: int) -> Circuit:
        """Phase gate."""
        return self._add("p", (qubit,), (lam,))

    def u3(self, theta: float, phi: float, lam: float, qubit: int) -> Circuit:
        """Universal single-qubit gate (U3)."""
        return self._add("u3", (qubit,), (theta, phi, lam))

    # -- Multi-qubit gates --------------------------------------------------

    def cx(self, control: int, target: int) -> Circuit:
        """Controlled-NOT (CNOT) gate."""
        return self._add("cx", (control, target))

    def cnot(self, control: int, target: int) -> Circuit:
        """Alias for cx."""
        return self.cx(control, target)

    def cz(self, q0: int, q1: int) -> Circuit:
        """Controlled-Z gate."""
        return self._add("cz", (q0, q1))

    def cp(self, lam: float, control: int, target: int) -> Circuit:
        """Controlled-Phase gate."""
        return self._add("cp", (control, target), (lam,))

    def crx(self, theta: float, control: int, target: int) -> Circuit:
        """Controlled rotation around X."""
        return self._add("crx", (control, target), (theta,))

    def cry(self, theta: float, control: int, target: int) -> Circuit:
        return self._add("cry", (control, target), (theta,))

    def crz(self, phi: float, control: int, target: int) -> Circuit:
        return self._add("crz", (control, target), (phi,))

    def swap(self, q0: int, q1: int) -> Circuit:
        """SWAP gate."""
        return self._add("swap", (q0, q1))

    def ccx(self, c0: int, c1: int, target: int) -> Circuit:
        """Toffoli (CCX) gate."""
        return self._add("ccx", (c0, c1, target))

    def toffoli(self, c0: int, c1: int, target: int) -> Circuit:
        """Alias for ccx."""
        return self.ccx(c0, c1, target)

    def mcz(self, *qubits: int) -> Circuit:
        """Multi-controlled Z; the phase flips only on |1...1⟩."""
        return self._add("mcz", tuple(qubits))

    # -- Measurement --------------------------------------------------------

    def measure(self, qubit: int, clbit: int | None = None) -> Circuit:
        """
        Add a measurement on a qubit.

        Parameters
        ----------
        qubit : int
            Qubit to measure.
        clbit : int, optional
            Classical bit to store the result. Auto-allocated if not given.

        Raises
        ------
        ValidationError
            If ``clbit`` is negative.
        """
        self._validate_qubits((qubit,))
        if clbit is None:
            clbit = self.n_clbits
        measurement = Measurement(qubit, clbit)
        self.n_clbits = max(self.n_clbits, clbit + 1)
        self._instructions.append(measurement)
        return self

    def measure_all(self) -> Circuit:
        """Measure qubit i into a fresh classical bit, for every qubit."""
        start = self.n_clbits
        for i in range(self.n_qubits):
            self.measure(i, start + i)
        return self

    # -- Composition --------------------------------------------------------

    def compose(self, other: Circuit, qubit_map: dict[int, int] | None = None) -> Circuit:
        """
        Append another circuit to this one.

        Parameters
        ----------
        other : Circuit
            Circuit to append.
        qubit_map : dict, optional
            Mapping from other's qubits to this circuit's qubits.
        """
        if qubit_map is None:
            if other.n_qubits > self.n_qubits:
                raise ValidationError(
                    "other",
                    f"cannot compose {other.n_qubits}-qubit circuit onto "
                    f"{self.n_qubits}-qubit circuit without qubit_map",
                )
            qubit_map = {i: i for i in range(other.n_qubits)}

        for inst in other._instructions:
            if isinstance(inst, Measurement):
                self.measure(qubit_map[inst.qubit], inst.clbit)
            else:
                mapped = tuple(qubit_map[q] for q in inst.qubits)
                self._add(inst.name, mapped, inst.params)
        return self

    def inverse(self) -> Circuit:
        """Return the inverse (adjoint) circuit. Measurements cannot be inverted."""
        if self.has_measurements:
            raise ValidationError("circuit", "cannot invert a circuit containing measurements")
        inv = Circuit(self.n_qubits, name=f"{self.name}_inv")
        inv._instructions = [gate.inverse() for gate in reversed(self._instructions)]
        return inv

    def copy(self) -> Circuit:
        """Return a deep copy of this circuit."""
        return copy.deepcopy(self)

    # -- Display ------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"Circuit(n_qubits={self.n_qubits}, n_clbits={self.n_clbits}, "
            f"depth={self.depth}, gates={self.num_gates})"
        )

    def __str__(self) -> str:
        lines = [f"{self.name}: {self.n_qubits} qubits"]
        for inst in self._instructions:
            if isinstance(inst, Measurement):
                lines.append(f"  measure q{inst.qubit} -> c{inst.clbit}")
            else:
                lines.append(f"  {inst}")
        return "\n".join(lines)
