"""
Histogram exchange format.

A histogram maps fixed-length bitstrings to non-negative shot counts,
e.g. ``{"00": 503, "11": 497}``. Bitstrings are written most significant
qubit first, so character position p holds qubit ``n - 1 - p`` and
``int(bits, 2)`` recovers the basis index.

This is the format repeated executions produce and statistical
post-processing (``tiny_qsim.mitigation``) consumes.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence

import numpy as np

from tiny_qsim.errors import InvalidQubitIndex, ValidationError
from tiny_qsim.statevector import from_amplitudes

Histogram = Dict[str, int]


def bitstring(index: int, n_bits: int) -> str:
    """Basis index to bitstring, most significant qubit first."""
    return format(index, f"0{n_bits}b")


def counts_to_histogram(counts: Mapping[int, int], n_bits: int) -> Histogram:
    """Integer-keyed counts to a bitstring histogram, sorted by index."""
    return {bitstring(k, n_bits): int(v) for k, v in sorted(counts.items())}


def validate_histogram(histogram: Mapping[str, int]) -> int:
    """
    Check a histogram and return its bit width.

    Raises
    ------
    ValidationError
        Empty histogram, mixed key lengths, non-binary characters,
        negative or non-integer counts, or zero total shots.
    """
    if not histogram:
        raise ValidationError("histogram", "histogram is empty")
    lengths = {len(k) for k in histogram}
    if len(lengths) != 1:
        raise ValidationError("histogram", f"bitstrings have mixed lengths {sorted(lengths)}")
    n_bits = lengths.pop()
    if n_bits == 0:
        raise ValidationError("histogram", "bitstrings must be non-empty")
    for key, count in histogram.items():
        if set(key) - {"0", "1"}:
            raise ValidationError("histogram", f"'{key}' is not a bitstring")
        if isinstance(count, bool) or not isinstance(count, (int, np.integer)):
            raise ValidationError("histogram", f"count for '{key}' is not an integer: {count!r}")
        if count < 0:
            raise ValidationError("histogram", f"count for '{key}' is negative: {count}")
    if total_shots(histogram) == 0:
        raise ValidationError("histogram", "total shot count is zero")
    return n_bits


def total_shots(histogram: Mapping[str, int]) -> int:
    return int(sum(histogram.values()))


def histogram_to_probabilities(histogram: Mapping[str, int]) -> np.ndarray:
    """Dense probability vector of length 2^n (missing keys are zero)."""
    n_bits = validate_histogram(histogram)
    probs = np.zeros(2 ** n_bits)
    total = total_shots(histogram)
    for key, count in histogram.items():
        probs[int(key, 2)] = count / total
    return probs


def histogram_to_amplitudes(histogram: Mapping[str, int]) -> np.ndarray:
    """
    Amplitude vector with a_i = sqrt(count_i / total).

    Phases are not recoverable from counts; all amplitudes are real and
    non-negative.

    >>> amps = histogram_to_amplitudes({"00": 500, "11": 500})
    >>> amps.round(4)
    array([0.7071+0.j, 0.    +0.j, 0.    +0.j, 0.7071+0.j])
    """
    return from_amplitudes(np.sqrt(histogram_to_probabilities(histogram)), normalize=True)


def most_frequent(histogram: Mapping[str, int]) -> str:
    """Bitstring with the highest count (ties: lowest bitstring)."""
    validate_histogram(histogram)
    return max(sorted(histogram), key=lambda k: histogram[k])


def marginal_histogram(histogram: Mapping[str, int], qubits: Sequence[int]) -> Histogram:
    """
    Counts restricted to ``qubits``.

    The marginal bitstring places the first listed qubit rightmost, the
    same way qubit 0 is rightmost in a full bitstring, e.g.
    ``qubits=[0, 1]`` produces "q1 q0" strings.
    """
    n_bits = validate_histogram(histogram)
    for q in qubits:
        if not 0 <= q < n_bits:
            raise InvalidQubitIndex(q, n_bits, parameter="qubits")
    result: Histogram = {}
    for key, count in histogram.items():
        bits = "".join(key[n_bits - 1 - q] for q in reversed(qubits))
        result[bits] = result.get(bits, 0) + count
    return dict(sorted(result.items()))


def plot_histogram(
    histogram: Mapping[str, int],
    ax=None,
    title: Optional[str] = None,
    color: str = "#2196F3",
):
    """
    Bar chart of a histogram as probabilities.

    Requires matplotlib (``pip install tiny-qsim[plot]``). Returns the
    matplotlib Axes.
    """
    import matplotlib.pyplot as plt

    validate_histogram(histogram)
    total = total_shots(histogram)
    keys = sorted(histogram)
    if ax is None:
        _, ax = plt.subplots(figsize=(max(4, 0.6 * len(keys)), 3.5))
    ax.bar(keys, [histogram[k] / total for k in keys], color=color)
    ax.set_xlabel("Outcome")
    ax.set_ylabel("Probability")
    ax.set_ylim(0, 1)
    if title:
        ax.set_title(title)
    ax.tick_params(axis="x", rotation=90 if len(keys) > 8 else 0)
    return ax
