"""
Measurement on amplitude vectors.

Every sampling function takes an explicit ``numpy.random.Generator``;
nothing here reads the global numpy RNG, so a fixed seed reproduces the
exact same outcomes.

    >>> rng = np.random.default_rng(42)
    >>> outcome = measure_single_qubit(rng, 0, state)
    >>> state = collapse_after_measurement(0, outcome, state)
"""

from __future__ import annotations

import numpy as np
from numpy import ndarray

from tiny_qsim.errors import DegenerateMeasurement, InvalidQubitIndex, ValidationError
from tiny_qsim.statevector import dimension, freeze, num_qubits

DEGENERATE_THRESHOLD = 1e-12
"""Outcome probabilities at or below this cannot be collapsed onto."""


def _check_qubit(qubit: int, state: ndarray) -> int:
    n = num_qubits(state)
    if not 0 <= qubit < n:
        raise InvalidQubitIndex(qubit, n)
    return n


def _one_mask(qubit: int, state: ndarray) -> ndarray:
    idx = np.arange(dimension(state))
    return ((idx >> qubit) & 1).astype(bool)


# ---------------------------------------------------------------------------
# Probabilities
# ---------------------------------------------------------------------------

def probability_distribution(state: ndarray) -> ndarray:
    """|a_i|² for every basis state."""
    return np.abs(np.asarray(state)) ** 2


def basis_state_probability(index: int, state: ndarray) -> float:
    dim = dimension(state)
    if not 0 <= index < dim:
        raise ValidationError("index", f"{index} outside [0, {dim})")
    return float(abs(state[index]) ** 2)


def qubit_probabilities(qubit: int, state: ndarray) -> tuple[float, float]:
    """
    Marginal probabilities (P(0), P(1)) of one qubit.

    Both halves are summed separately and divided by the total, so a
    state whose norm drifted slightly from 1 still yields an exact zero
    for an impossible outcome.
    """
    _check_qubit(qubit, state)
    probs = probability_distribution(state)
    ones = _one_mask(qubit, state)
    p0 = float(np.sum(probs[~ones]))
    p1 = float(np.sum(probs[ones]))
    total = p0 + p1
    if total <= 0.0:
        raise ValidationError("state", "zero vector has no measurement distribution")
    return p0 / total, p1 / total


# ---------------------------------------------------------------------------
# Single-qubit measurement
# ---------------------------------------------------------------------------

def measure_single_qubit(rng: np.random.Generator, qubit: int, state: ndarray) -> int:
    """Sample one qubit in the Z basis without collapsing."""
    p0, p1 = qubit_probabilities(qubit, state)
    if p0 == 0.0:
        return 1
    if p1 == 0.0:
        return 0
    return 1 if rng.random() < p1 else 0


def collapse_after_measurement(qubit: int, outcome: int, state: ndarray) -> ndarray:
    """
    Project onto ``outcome`` for ``qubit`` and renormalize.

    Parameters
    ----------
    qubit : int
        Measured qubit.
    outcome : int
        Observed bit (0 or 1).
    state : ndarray
        Pre-measurement state (left untouched).

    Returns
    -------
    ndarray
        Collapsed, renormalized state.

    Raises
    ------
    DegenerateMeasurement
        If the outcome has probability <= DEGENERATE_THRESHOLD.
    """
    _check_qubit(qubit, state)
    if outcome not in (0, 1):
        raise ValidationError("outcome", f"must be 0 or 1, got {outcome}")

    keep = _one_mask(qubit, state) == bool(outcome)
    probability = float(np.sum(probability_distribution(state)[keep]))
    if probability <= DEGENERATE_THRESHOLD:
        raise DegenerateMeasurement(qubit, outcome, probability)

    collapsed = np.zeros(dimension(state), dtype=np.complex128)
    collapsed[keep] = np.asarray(state)[keep] / np.sqrt(probability)
    return freeze(collapsed)


def measure_and_collapse(
    rng: np.random.Generator, qubit: int, state: ndarray
) -> tuple[int, ndarray]:
    """Measure one qubit and return (outcome, collapsed state)."""
    outcome = measure_single_qubit(rng, qubit, state)
    return outcome, collapse_after_measurement(qubit, outcome, state)


# ---------------------------------------------------------------------------
# Full-register measurement
# ---------------------------------------------------------------------------

def _cumulative(state: ndarray) -> ndarray:
    cumulative = np.cumsum(probability_distribution(state))
    # absorb rounding so the final bucket always catches the draw
    return cumulative / cumulative[-1]


def measure_computational_basis(rng: np.random.Generator, state: ndarray) -> int:
    """Sample a basis index with one uniform draw against the cumulative table."""
    cumulative = _cumulative(state)
    r = rng.random()
    index = int(np.searchsorted(cumulative, r, side="right"))
    return min(index, len(cumulative) - 1)


def sample_measurements(
    rng: np.random.Generator, state: ndarray, shots: int
) -> ndarray:
    """Draw ``shots`` independent full-register outcomes."""
    if shots <= 0:
        raise ValidationError("shots", f"must be positive, got {shots}")
    cumulative = _cumulative(state)
    draws = rng.random(shots)
    indices = np.searchsorted(cumulative, draws, side="right")
    return np.minimum(indices, len(cumulative) - 1)


def sample_counts(
    rng: np.random.Generator, state: ndarray, shots: int
) -> dict[int, int]:
    """Sampled outcomes aggregated as {basis index: count}."""
    outcomes = sample_measurements(rng, state, shots)
    unique, counts = np.unique(outcomes, return_counts=True)
    return dict(zip(unique.tolist(), counts.tolist()))
