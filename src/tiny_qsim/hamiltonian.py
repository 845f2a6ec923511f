"""
Hamiltonian representation as a weighted sum of Pauli terms.

    H = c₁ P₁ + c₂ P₂ + ... + cₘ Pₘ

Each term Pᵢ is a product of single-qubit Pauli operators on explicit
qubits, stored as parallel tuples of qubit indices and operator tags.
Term order is preserved: the sum is unordered mathematically, but
first-order Trotter evolution applies terms in array order.

Example:
    Two-spin transverse-field Ising model:
    >>> H = Hamiltonian(2, [
    ...     PauliTerm(-1.0, (0, 1), ("Z", "Z")),
    ...     PauliTerm(-0.5, (0,), ("X",)),
    ...     PauliTerm(-0.5, (1,), ("X",)),
    ... ])
    >>> energy = H.expectation(state)

Serialized form (JSON):
    {"num_qubits": 2,
     "terms": [{"coefficient": -1.0, "qubits": [0, 1], "operators": ["Z", "Z"]}, ...]}
"""

from __future__ import annotations

import itertools
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
from scipy.linalg import expm

from tiny_qsim.errors import DimensionMismatch, InvalidQubitIndex, ValidationError
from tiny_qsim.statevector import num_qubits

# Pauli matrices (2x2)
_I = np.eye(2, dtype=complex)
_X = np.array([[0, 1], [1, 0]], dtype=complex)
_Y = np.array([[0, -1j], [1j, 0]], dtype=complex)
_Z = np.array([[1, 0], [0, -1]], dtype=complex)

PAULI_MAP = {"I": _I, "X": _X, "Y": _Y, "Z": _Z}


@dataclass(frozen=True)
class PauliTerm:
    """
    One weighted Pauli product: coefficient · ⊗ₖ P_k acting on qubit q_k.

    Parameters
    ----------
    coefficient : float
        Real weight.
    qubits : tuple of int
        Qubits acted on, parallel to ``paulis``.
    paulis : tuple of str
        Operator tags from {"X", "Y", "Z"}.
    """

    coefficient: float
    qubits: Tuple[int, ...]
    paulis: Tuple[str, ...]

    def __post_init__(self) -> None:
        qubits = tuple(int(q) for q in self.qubits)
        paulis = tuple(str(p).upper() for p in self.paulis)
        object.__setattr__(self, "coefficient", float(self.coefficient))
        object.__setattr__(self, "qubits", qubits)
        object.__setattr__(self, "paulis", paulis)

        if len(qubits) != len(paulis):
            raise ValidationError(
                "paulis",
                f"{len(paulis)} operators for {len(qubits)} qubits",
            )
        for p in paulis:
            if p not in ("X", "Y", "Z"):
                raise ValidationError("paulis", f"unknown Pauli operator '{p}'")
        if any(q < 0 for q in qubits):
            raise ValidationError("qubits", f"negative qubit index in {qubits}")
        if len(set(qubits)) != len(qubits):
            raise ValidationError("qubits", f"duplicate qubits in {qubits}")

    @property
    def weight(self) -> int:
        """Number of non-identity factors."""
        return len(self.qubits)

    def label(self, n_qubits: int) -> str:
        """Dense Pauli string, character i = qubit i (e.g. 'ZIX')."""
        chars = ["I"] * n_qubits
        for q, p in zip(self.qubits, self.paulis):
            chars[q] = p
        return "".join(chars)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coefficient": self.coefficient,
            "qubits": list(self.qubits),
            "operators": list(self.paulis),
        }


class Hamiltonian:
    """
    Pauli-term Hamiltonian on a fixed number of qubits.

    Parameters
    ----------
    n_qubits : int
        Number of qubits the Hamiltonian acts on.
    terms : sequence of PauliTerm
        Terms in application order. May be empty (zero Hamiltonian).

    Raises
    ------
    ValidationError
        If ``n_qubits`` < 1.
    InvalidQubitIndex
        If a term touches a qubit >= n_qubits.
    """

    def __init__(self, n_qubits: int, terms: Sequence[PauliTerm] = ()):
        if n_qubits < 1:
            raise ValidationError("n_qubits", f"need at least 1 qubit, got {n_qubits}")
        for term in terms:
            for q in term.qubits:
                if q >= n_qubits:
                    raise InvalidQubitIndex(q, n_qubits, parameter="terms")
        self._n_qubits = n_qubits
        self._terms: Tuple[PauliTerm, ...] = tuple(terms)

    @classmethod
    def from_pauli_strings(cls, terms: Dict[str, float]) -> "Hamiltonian":
        """
        Build from dense Pauli strings, character i acting on qubit i.

        >>> Hamiltonian.from_pauli_strings({"ZZ": -1.0, "XI": 0.5})
        """
        if not terms:
            raise ValidationError("terms", "need at least one Pauli string")
        lengths = {len(s) for s in terms}
        if len(lengths) > 1:
            raise ValidationError(
                "terms",
                f"all Pauli strings must have the same length, got lengths {lengths}",
            )
        pauli_terms = []
        for pauli_str, coeff in terms.items():
            pauli_str = pauli_str.upper()
            if not all(c in "IXYZ" for c in pauli_str):
                raise ValidationError(
                    "terms", f"invalid Pauli string '{pauli_str}': only I, X, Y, Z allowed"
                )
            qubits = tuple(i for i, c in enumerate(pauli_str) if c != "I")
            paulis = tuple(pauli_str[i] for i in qubits)
            pauli_terms.append(PauliTerm(coeff, qubits, paulis))
        return cls(lengths.pop(), pauli_terms)

    @classmethod
    def from_matrix(cls, matrix: np.ndarray, tol: float = 1e-10) -> "Hamiltonian":
        """
        Decompose a Hermitian 2^n × 2^n matrix into Pauli terms.

        Each coefficient is c_P = Tr(P·M) / 2^n over all 4^n Pauli strings
        (including the identity); terms with |c_P| <= tol are dropped.
        Exponential in n, so intended for a handful of qubits.

        Raises
        ------
        ValidationError
            Non-square, non-power-of-two or non-Hermitian matrix.
        """
        m = np.asarray(matrix, dtype=complex)
        if m.ndim != 2 or m.shape[0] != m.shape[1]:
            raise ValidationError("matrix", f"must be square, got shape {m.shape}")
        dim = m.shape[0]
        if dim < 2 or dim & (dim - 1):
            raise ValidationError("matrix", f"dimension must be a power of 2, got {dim}")
        if not np.allclose(m, m.conj().T, atol=tol):
            raise ValidationError("matrix", "must be Hermitian")

        n_qubits = dim.bit_length() - 1
        terms = []
        for label in itertools.product("IXYZ", repeat=n_qubits):
            qubits = tuple(i for i, c in enumerate(label) if c != "I")
            term = PauliTerm(1.0, qubits, tuple(label[q] for q in qubits))
            coeff = float(np.real(np.trace(_pauli_term_matrix(term, n_qubits) @ m))) / dim
            if abs(coeff) > tol:
                terms.append(PauliTerm(coeff, term.qubits, term.paulis))
        return cls(n_qubits, terms)

    # ─── Properties ──────────────────────────────────────────────────

    @property
    def n_qubits(self) -> int:
        """Number of qubits this Hamiltonian acts on."""
        return self._n_qubits

    @property
    def terms(self) -> Tuple[PauliTerm, ...]:
        return self._terms

    @property
    def n_terms(self) -> int:
        return len(self._terms)

    @property
    def coefficient_norm(self) -> float:
        """Σ|cᵢ|, an upper bound on the operator norm ‖H‖."""
        return float(sum(abs(t.coefficient) for t in self._terms))

    # ─── Linear algebra ──────────────────────────────────────────────

    def expectation(self, statevector: np.ndarray) -> float:
        """
        Compute ⟨ψ|H|ψ⟩ without building the full matrix.

        For each term, applies the Pauli product to ψ by index
        permutation and phase, then accumulates c · Re⟨ψ|P|ψ⟩.

        Raises
        ------
        DimensionMismatch
            If the state does not have ``n_qubits`` qubits.
        """
        sv = np.asarray(statevector, dtype=complex).ravel()
        n = num_qubits(sv)
        if n != self._n_qubits:
            raise DimensionMismatch(self._n_qubits, n, "Hamiltonian.expectation")

        total = 0.0
        for term in self._terms:
            psi = _apply_pauli_term(sv, term)
            total += term.coefficient * np.real(np.vdot(sv, psi))
        return float(total)

    def matrix(self) -> np.ndarray:
        """
        Build the full 2^n × 2^n matrix (little-endian qubit order).

        Useful for small systems (≤ 10 qubits) and validation.
        """
        dim = 2 ** self._n_qubits
        H = np.zeros((dim, dim), dtype=complex)
        for term in self._terms:
            H += term.coefficient * _pauli_term_matrix(term, self._n_qubits)
        return H

    def ground_state_energy(self) -> float:
        """Minimum eigenvalue of H via exact diagonalization."""
        eigenvalues = np.linalg.eigvalsh(self.matrix())
        return float(eigenvalues[0])

    def ground_state(self) -> Tuple[float, np.ndarray]:
        """(ground state energy, ground state vector)."""
        eigenvalues, eigenvectors = np.linalg.eigh(self.matrix())
        return float(eigenvalues[0]), eigenvectors[:, 0]

    def evolution_operator(self, time: float) -> np.ndarray:
        """Exact propagator exp(-i H t), via scipy's Padé expm."""
        return expm(-1j * time * self.matrix())

    # ─── Algebra ─────────────────────────────────────────────────────

    def __add__(self, other: "Hamiltonian") -> "Hamiltonian":
        """Concatenate term lists (qubit counts must agree)."""
        if not isinstance(other, Hamiltonian):
            return NotImplemented
        if self._n_qubits != other._n_qubits:
            raise DimensionMismatch(self._n_qubits, other._n_qubits, "Hamiltonian.__add__")
        return Hamiltonian(self._n_qubits, self._terms + other._terms)

    def __mul__(self, scalar: float) -> "Hamiltonian":
        """Multiply every coefficient by a scalar."""
        return Hamiltonian(
            self._n_qubits,
            [PauliTerm(t.coefficient * scalar, t.qubits, t.paulis) for t in self._terms],
        )

    def __rmul__(self, scalar: float) -> "Hamiltonian":
        return self.__mul__(scalar)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Hamiltonian):
            return NotImplemented
        return self._n_qubits == other._n_qubits and self._terms == other._terms

    def __repr__(self) -> str:
        terms_str = " + ".join(
            f"{t.coefficient:+.4f} {t.label(self._n_qubits)}" for t in self._terms
        )
        return f"Hamiltonian({self._n_qubits}q, {self.n_terms} terms): {terms_str}"

    def __str__(self) -> str:
        lines = [f"Hamiltonian on {self._n_qubits} qubits ({self.n_terms} terms):"]
        for term in self._terms:
            lines.append(f"  {term.coefficient:+10.6f}  {term.label(self._n_qubits)}")
        return "\n".join(lines)

    # ─── Serialization ───────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_qubits": self._n_qubits,
            "terms": [t.to_dict() for t in self._terms],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Hamiltonian":
        """Inverse of ``to_dict``; raises ValidationError on missing keys."""
        try:
            n_qubits = int(data["num_qubits"])
            raw_terms: List[Dict[str, Any]] = data["terms"]
            terms = [
                PauliTerm(t["coefficient"], tuple(t["qubits"]), tuple(t["operators"]))
                for t in raw_terms
            ]
        except KeyError as exc:
            raise ValidationError("data", f"missing key {exc}") from exc
        return cls(n_qubits, terms)

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_json(cls, text: str) -> "Hamiltonian":
        return cls.from_dict(json.loads(text))


# ─── Standard Hamiltonians ───────────────────────────────────────────

def transverse_field_ising(n_qubits: int, J: float = 1.0,
                           h: float = 1.0) -> Hamiltonian:
    """
    Transverse-field Ising model: H = -J Σ ZᵢZᵢ₊₁ - h Σ Xᵢ

    Parameters
    ----------
    n_qubits : int
        Number of spins (open boundary conditions).
    J : float
        Coupling strength.
    h : float
        Transverse field strength.
    """
    terms = [PauliTerm(-J, (i, i + 1), ("Z", "Z")) for i in range(n_qubits - 1)]
    terms += [PauliTerm(-h, (i,), ("X",)) for i in range(n_qubits)]
    return Hamiltonian(n_qubits, terms)


def heisenberg_xyz(n_qubits: int, Jx: float = 1.0, Jy: float = 1.0,
                   Jz: float = 1.0) -> Hamiltonian:
    """
    Heisenberg XYZ model: H = Σ (Jx XᵢXᵢ₊₁ + Jy YᵢYᵢ₊₁ + Jz ZᵢZᵢ₊₁)
    """
    terms = []
    for i in range(n_qubits - 1):
        for pauli, J in (("X", Jx), ("Y", Jy), ("Z", Jz)):
            terms.append(PauliTerm(J, (i, i + 1), (pauli, pauli)))
    return Hamiltonian(n_qubits, terms)


# ─── Internal utilities ──────────────────────────────────────────────

def _apply_pauli_term(sv: np.ndarray, term: PauliTerm) -> np.ndarray:
    """
    Apply the Pauli product (without coefficient) to a statevector.

    X and Y permute amplitudes (flip bit q); Y and Z add phases that
    depend on bit q of the source index.
    """
    idx = np.arange(sv.shape[0])
    result = sv.copy()
    for q, pauli in zip(term.qubits, term.paulis):
        bit = (idx >> q) & 1
        if pauli == "Z":
            result = result * (1 - 2 * bit)
        elif pauli == "X":
            result = result[idx ^ (1 << q)]
        else:
            # Y|0⟩ = i|1⟩, Y|1⟩ = -i|0⟩
            phase = np.where(bit == 0, 1j, -1j)
            result = (phase * result)[idx ^ (1 << q)]
    return result


def _pauli_term_matrix(term: PauliTerm, n_qubits: int) -> np.ndarray:
    """Full tensor-product matrix; qubit n-1 is the leftmost kron factor."""
    label = term.label(n_qubits)
    result = PAULI_MAP[label[-1]]
    for char in reversed(label[:-1]):
        result = np.kron(result, PAULI_MAP[char])
    return result
