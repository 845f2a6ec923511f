"""
Quantum gate definitions.

Gates form a closed set: every ``Gate`` value names one entry of
``GATE_REGISTRY`` and carries its target qubits and real parameters.
Matrices are complex128 numpy arrays; parameterized gates have factory
functions that return matrices.

Gate set:
    - Single-qubit: X, Y, Z, H, S, Sdg, T, Tdg
    - Rotations: Rx, Ry, Rz, P (phase), U3 (universal)
    - Two-qubit: CX/CNOT, CZ, CP, CRX, CRY, CRZ, SWAP
    - Three-qubit: CCX (Toffoli)
    - Variadic: MCZ (multi-controlled Z, last qubit is the target)

Matrix convention: for multi-qubit matrices the first listed qubit is
the most significant bit of the row/column index, i.e. ``CNOT`` below is
written for ``Gate("cx", (control, target))``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy import ndarray

from tiny_qsim.errors import ValidationError

Matrix = ndarray

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_SQRT2_INV = 1.0 / np.sqrt(2.0)

# ---------------------------------------------------------------------------
# Single-qubit fixed gates
# ---------------------------------------------------------------------------

I = np.eye(2, dtype=np.complex128)
"""Identity."""

X = np.array([[0, 1], [1, 0]], dtype=np.complex128)
"""Pauli-X (NOT) gate."""

Y = np.array([[0, -1j], [1j, 0]], dtype=np.complex128)
"""Pauli-Y gate."""

Z = np.array([[1, 0], [0, -1]], dtype=np.complex128)
"""Pauli-Z gate."""

H = np.array([[1, 1], [1, -1]], dtype=np.complex128) * _SQRT2_INV
"""Hadamard gate."""

S = np.array([[1, 0], [0, 1j]], dtype=np.complex128)
"""S (phase) gate: sqrt(Z)."""

Sdg = np.array([[1, 0], [0, -1j]], dtype=np.complex128)
"""S-dagger gate."""

T = np.array([[1, 0], [0, np.exp(1j * np.pi / 4)]], dtype=np.complex128)
"""T gate: sqrt(S)."""

Tdg = np.array([[1, 0], [0, np.exp(-1j * np.pi / 4)]], dtype=np.complex128)
"""T-dagger gate."""

for _m in (I, X, Y, Z, H, S, Sdg, T, Tdg):
    _m.flags.writeable = False

# ---------------------------------------------------------------------------
# Single-qubit parameterized gates
# ---------------------------------------------------------------------------

def Rx(theta: float) -> Matrix:
    """Rotation around X-axis: exp(-i θ X / 2)."""
    c = np.cos(theta / 2)
    s = np.sin(theta / 2)
    return np.array([[c, -1j * s], [-1j * s, c]], dtype=np.complex128)


def Ry(theta: float) -> Matrix:
    """Rotation around Y-axis: exp(-i θ Y / 2)."""
    c = np.cos(theta / 2)
    s = np.sin(theta / 2)
    return np.array([[c, -s], [s, c]], dtype=np.complex128)


def Rz(phi: float) -> Matrix:
    """Rotation around Z-axis: exp(-i φ Z / 2)."""
    return np.array(
        [[np.exp(-1j * phi / 2), 0], [0, np.exp(1j * phi / 2)]],
        dtype=np.complex128,
    )


def P(lam: float) -> Matrix:
    """Phase gate: diagonal with entries [1, exp(i*lam)]."""
    return np.array([[1, 0], [0, np.exp(1j * lam)]], dtype=np.complex128)


def U3(theta: float, phi: float, lam: float) -> Matrix:
    """
    Universal single-qubit gate.

    U3(θ, φ, λ) = [[cos(θ/2), -e^(iλ) sin(θ/2)],
                    [e^(iφ) sin(θ/2), e^(i(φ+λ)) cos(θ/2)]]

    Equal to Rz(φ) · Ry(θ) · Rz(λ) up to the global phase e^(i(φ+λ)/2),
    so the sequence applied to a state is Rz(λ), then Ry(θ), then Rz(φ).
    """
    c = np.cos(theta / 2)
    s = np.sin(theta / 2)
    return np.array(
        [
            [c, -np.exp(1j * lam) * s],
            [np.exp(1j * phi) * s, np.exp(1j * (phi + lam)) * c],
        ],
        dtype=np.complex128,
    )


# ---------------------------------------------------------------------------
# Multi-qubit gates
# ---------------------------------------------------------------------------

CNOT = np.array(
    [[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 0, 1], [0, 0, 1, 0]],
    dtype=np.complex128,
)
"""Controlled-NOT (CX) gate."""

CZ = np.diag([1, 1, 1, -1]).astype(np.complex128)
"""Controlled-Z gate."""

SWAP = np.array(
    [[1, 0, 0, 0], [0, 0, 1, 0], [0, 1, 0, 0], [0, 0, 0, 1]],
    dtype=np.complex128,
)
"""SWAP gate."""

CCX = np.eye(8, dtype=np.complex128)
CCX[6, 6] = 0
CCX[7, 7] = 0
CCX[6, 7] = 1
CCX[7, 6] = 1
"""Toffoli (CCX) gate."""

for _m in (CNOT, CZ, SWAP, CCX):
    _m.flags.writeable = False


def CP(lam: float) -> Matrix:
    """Controlled-Phase gate: e^(iλ) on |11⟩."""
    return np.diag([1, 1, 1, np.exp(1j * lam)]).astype(np.complex128)


def _controlled(u: Matrix) -> Matrix:
    m = np.eye(4, dtype=np.complex128)
    m[2:, 2:] = u
    return m


def CRX(theta: float) -> Matrix:
    """Controlled-RX: Rx(θ) on the target when the control is |1⟩."""
    return _controlled(Rx(theta))


def CRY(theta: float) -> Matrix:
    """Controlled-RY."""
    return _controlled(Ry(theta))


def CRZ(phi: float) -> Matrix:
    """Controlled-RZ. Unlike CP, the control picks up a relative phase."""
    return _controlled(Rz(phi))


def MCZ(n_qubits: int) -> Matrix:
    """Multi-controlled Z on ``n_qubits`` qubits: -1 on |1...1⟩."""
    diag = np.ones(2 ** n_qubits, dtype=np.complex128)
    diag[-1] = -1
    return np.diag(diag)


# ---------------------------------------------------------------------------
# Gate metadata registry
# ---------------------------------------------------------------------------

GATE_REGISTRY: dict[str, dict] = {
    # Fixed single-qubit
    "x": {"matrix": X, "n_qubits": 1, "n_params": 0},
    "y": {"matrix": Y, "n_qubits": 1, "n_params": 0},
    "z": {"matrix": Z, "n_qubits": 1, "n_params": 0},
    "h": {"matrix": H, "n_qubits": 1, "n_params": 0},
    "s": {"matrix": S, "n_qubits": 1, "n_params": 0},
    "sdg": {"matrix": Sdg, "n_qubits": 1, "n_params": 0},
    "t": {"matrix": T, "n_qubits": 1, "n_params": 0},
    "tdg": {"matrix": Tdg, "n_qubits": 1, "n_params": 0},
    # Parameterized single-qubit
    "p": {"factory": P, "n_qubits": 1, "n_params": 1},
    "rx": {"factory": Rx, "n_qubits": 1, "n_params": 1},
    "ry": {"factory": Ry, "n_qubits": 1, "n_params": 1},
    "rz": {"factory": Rz, "n_qubits": 1, "n_params": 1},
    "u3": {"factory": U3, "n_qubits": 1, "n_params": 3},
    # Two-qubit
    "cx": {"matrix": CNOT, "n_qubits": 2, "n_params": 0},
    "cz": {"matrix": CZ, "n_qubits": 2, "n_params": 0},
    "cp": {"factory": CP, "n_qubits": 2, "n_params": 1},
    "crx": {"factory": CRX, "n_qubits": 2, "n_params": 1},
    "cry": {"factory": CRY, "n_qubits": 2, "n_params": 1},
    "crz": {"factory": CRZ, "n_qubits": 2, "n_params": 1},
    "swap": {"matrix": SWAP, "n_qubits": 2, "n_params": 0},
    # Three-qubit
    "ccx": {"matrix": CCX, "n_qubits": 3, "n_params": 0},
    # Variadic: n_qubits=None, at least one qubit
    "mcz": {"factory": None, "n_qubits": None, "n_params": 0},
}

ALIASES: dict[str, str] = {"cnot": "cx", "toffoli": "ccx"}

# Gates equal to their own inverse
_SELF_INVERSE = frozenset({"x", "y", "z", "h", "cx", "cz", "swap", "ccx", "mcz"})
_ADJOINT_PAIRS = {"s": "sdg", "sdg": "s", "t": "tdg", "tdg": "t"}


def canonical_name(name: str) -> str:
    """Normalize case and aliases, raising for unknown gates."""
    key = name.lower()
    key = ALIASES.get(key, key)
    if key not in GATE_REGISTRY:
        raise ValidationError(
            "name",
            f"unknown gate '{name}'. Available: {sorted(GATE_REGISTRY)}",
        )
    return key


def get_matrix(name: str, params: tuple[float, ...] = (), n_qubits: int | None = None) -> Matrix:
    """
    Look up a gate matrix by name, with optional parameters.

    Parameters
    ----------
    name : str
        Gate name (case-insensitive, aliases accepted).
    params : tuple of float
        Parameters for parameterized gates.
    n_qubits : int, optional
        Arity for variadic gates (``mcz``).

    Returns
    -------
    numpy.ndarray
        Unitary matrix for the gate.

    Raises
    ------
    ValidationError
        If the gate name is unknown or the parameter count is wrong.
    """
    key = canonical_name(name)
    info = GATE_REGISTRY[key]
    n_params = info["n_params"]
    if len(params) != n_params:
        raise ValidationError(
            "params",
            f"gate '{name}' requires {n_params} parameter(s), got {len(params)}",
        )
    if key == "mcz":
        if n_qubits is None or n_qubits < 1:
            raise ValidationError("n_qubits", "mcz needs an explicit arity >= 1")
        return MCZ(n_qubits)
    if n_params == 0:
        return info["matrix"]
    return info["factory"](*params)


# ---------------------------------------------------------------------------
# Gate value
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Gate:
    """
    A single gate applied to specific qubits.

    Parameters
    ----------
    name : str
        Registry name (aliases such as ``"cnot"`` are normalized).
    qubits : tuple of int
        Target qubits. For controlled gates the controls come first.
    params : tuple of float
        Real-valued angles, in the order the matrix factory expects.

    Raises
    ------
    ValidationError
        Unknown name, wrong arity, wrong parameter count, negative or
        duplicate qubit indices.
    """

    name: str
    qubits: tuple[int, ...]
    params: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        key = canonical_name(self.name)
        qubits = tuple(int(q) for q in self.qubits)
        params = tuple(float(p) for p in self.params)
        object.__setattr__(self, "name", key)
        object.__setattr__(self, "qubits", qubits)
        object.__setattr__(self, "params", params)

        info = GATE_REGISTRY[key]
        arity = info["n_qubits"]
        if arity is None:
            if not qubits:
                raise ValidationError("qubits", f"gate '{key}' needs at least one qubit")
        elif len(qubits) != arity:
            raise ValidationError(
                "qubits",
                f"gate '{key}' acts on {arity} qubit(s), got {len(qubits)}",
            )
        if len(params) != info["n_params"]:
            raise ValidationError(
                "params",
                f"gate '{key}' requires {info['n_params']} parameter(s), got {len(params)}",
            )
        if any(q < 0 for q in qubits):
            raise ValidationError("qubits", f"negative qubit index in {qubits}")
        if len(set(qubits)) != len(qubits):
            raise ValidationError("qubits", f"duplicate qubits in {qubits}")

    @property
    def n_qubits(self) -> int:
        return len(self.qubits)

    @property
    def max_qubit(self) -> int:
        """Highest qubit index touched by this gate."""
        return max(self.qubits)

    def matrix(self) -> Matrix:
        """Unitary matrix, first qubit as most significant bit."""
        return get_matrix(self.name, self.params, n_qubits=len(self.qubits))

    def inverse(self) -> Gate:
        """Return the adjoint gate."""
        if self.name in _SELF_INVERSE:
            return self
        if self.name in _ADJOINT_PAIRS:
            return Gate(_ADJOINT_PAIRS[self.name], self.qubits)
        if self.name == "u3":
            theta, phi, lam = self.params
            return Gate("u3", self.qubits, (-theta, -lam, -phi))
        # p, rx, ry, rz, cp, crx, cry, crz
        return Gate(self.name, self.qubits, tuple(-p for p in self.params))

    def __str__(self) -> str:
        args = ", ".join(f"{p:.4g}" for p in self.params)
        label = f"{self.name}({args})" if self.params else self.name
        return f"{label} {','.join(f'q{q}' for q in self.qubits)}"


def is_unitary(m: Matrix, tol: float = 1e-9) -> bool:
    """Check U U† = I within tolerance."""
    product = m @ m.conj().T
    return bool(np.allclose(product, np.eye(len(m)), atol=tol))

