"""
Readout error mitigation for measured histograms.

Corrects systematic measurement errors with a calibration (confusion)
matrix M where M[i, j] = P(measure i | prepared j):

1. **Calibration**: prepare every basis state, measure, and fill column j
   of M from the observed frequencies (or build M from per-qubit flip
   rates with ``calibrate_from_noise``).

2. **Mitigation**: given a noisy distribution p_noisy, solve
   M · p_ideal = p_noisy.

Methods:
- **inverse**: p_ideal = M⁻¹ · p_noisy (fast, may go negative)
- **least_squares**: minimize ||M·p - p_noisy||² on the probability
  simplex (always physical)

``correct`` additionally reports corrected counts with binomial
confidence intervals propagated through M⁻¹.

Usage:
    >>> mit = MeasurementMitigator.from_matrix([[0.98, 0.02], [0.02, 0.98]])
    >>> result = mit.correct({"0": 980, "1": 20})
    >>> round(result.counts["0"])
    1000
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np
from scipy.stats import norm as normal_dist

from tiny_qsim.errors import OperationError, ValidationError
from tiny_qsim.histogram import Histogram, bitstring, histogram_to_probabilities, total_shots

logger = logging.getLogger(__name__)

SINGULAR_DETERMINANT = 1e-10
"""|det M| below this is treated as singular."""

ILL_CONDITIONED = 1000.0
"""Condition numbers above this trigger a warning."""


@dataclass
class CorrectedHistogram:
    """
    Output of ``MeasurementMitigator.correct``.

    Attributes
    ----------
    counts : dict[str, float]
        Corrected (non-integer) counts, scaled to the measured total and
        filtered below ``min_probability``.
    confidence_intervals : dict[str, tuple[float, float]]
        (lower, upper) bounds per bitstring in ``counts``; lower >= 0.
    goodness_of_fit : float
        1 - |Σ counts - shots| / shots (1.0 when nothing was filtered).
    total_shots : int
        Shots in the measured histogram.
    """

    counts: Dict[str, float]
    confidence_intervals: Dict[str, Tuple[float, float]]
    goodness_of_fit: float
    total_shots: int

    def probabilities(self) -> Dict[str, float]:
        return {k: v / self.total_shots for k, v in self.counts.items()}


class MeasurementMitigator:
    """
    Measurement error mitigation via calibration matrix.

    Parameters
    ----------
    n_qubits : int
        Number of measured bits.
    method : str
        Correction method for ``apply``: 'inverse' or 'least_squares'.
        Default: 'least_squares'.
    """

    def __init__(self, n_qubits: int, method: str = "least_squares"):
        if n_qubits < 1 or n_qubits > 12:
            raise ValidationError("n_qubits", f"must be 1-12, got {n_qubits}")
        if method not in ("inverse", "least_squares"):
            raise ValidationError("method", f"unknown method '{method}'. Use: inverse, least_squares")

        self._n_qubits = n_qubits
        self._method = method
        self._dim = 2 ** n_qubits
        self._cal_matrix: Optional[np.ndarray] = None
        self._cal_matrix_inv: Optional[np.ndarray] = None

    @classmethod
    def from_matrix(
        cls, matrix: Union[np.ndarray, List[List[float]]], method: str = "least_squares"
    ) -> "MeasurementMitigator":
        """Wrap an already-measured calibration matrix."""
        cal = np.asarray(matrix, dtype=float)
        dim = cal.shape[0]
        if cal.ndim != 2 or cal.shape[1] != dim or dim < 2 or dim & (dim - 1):
            raise ValidationError(
                "matrix", f"expected a square 2^n × 2^n matrix, got shape {cal.shape}"
            )
        if np.any(cal < 0):
            raise ValidationError("matrix", "calibration probabilities must be non-negative")
        mit = cls(dim.bit_length() - 1, method)
        mit._cal_matrix = cal.copy()
        return mit

    @property
    def n_qubits(self) -> int:
        return self._n_qubits

    @property
    def calibration_matrix(self) -> Optional[np.ndarray]:
        """Return the calibration (confusion) matrix, or None if not calibrated."""
        return self._cal_matrix.copy() if self._cal_matrix is not None else None

    @property
    def is_calibrated(self) -> bool:
        return self._cal_matrix is not None

    # ─── Calibration ─────────────────────────────────────────────────

    def calibrate(
        self,
        executor: Callable[[str, int], Histogram],
        shots: int = 8192,
    ) -> np.ndarray:
        """
        Run calibration circuits to build the confusion matrix.

        Parameters
        ----------
        executor : callable
            Function(state_label: str, shots: int) → histogram. Prepares
            the given basis state (e.g. '010') and measures it.
        shots : int
            Number of measurement shots per calibration circuit.

        Returns
        -------
        np.ndarray
            The calibration matrix M of shape (2^n, 2^n).
        """
        if shots <= 0:
            raise ValidationError("shots", f"must be positive, got {shots}")
        n = self._n_qubits
        cal = np.zeros((self._dim, self._dim), dtype=float)
        for j in range(self._dim):
            counts = executor(bitstring(j, n), shots)
            total = sum(counts.values())
            for key, count in counts.items():
                cal[int(key, 2), j] = count / total

        self._cal_matrix = cal
        self._cal_matrix_inv = None
        return cal

    def calibrate_from_noise(
        self, readout_error: Union[float, List[float]] = 0.01
    ) -> np.ndarray:
        """
        Build the calibration matrix from independent per-qubit flip rates.

        Parameters
        ----------
        readout_error : float or list of float
            Bit-flip probability on readout; a list gives per-qubit rates
            (qubit 0 first).
        """
        n = self._n_qubits
        if isinstance(readout_error, (int, float)):
            errors = [float(readout_error)] * n
        else:
            errors = [float(e) for e in readout_error]
            if len(errors) != n:
                raise ValidationError("readout_error", f"expected {n} error rates, got {len(errors)}")

        # qubit n-1 is the most significant index bit, so it is the leftmost factor
        cal = np.array([[1.0]])
        for p in reversed(errors):
            cal = np.kron(cal, np.array([[1 - p, p], [p, 1 - p]]))

        self._cal_matrix = cal
        self._cal_matrix_inv = None
        return cal

    def _require_calibrated(self) -> np.ndarray:
        if self._cal_matrix is None:
            raise OperationError("mitigation", "not calibrated; call calibrate() first")
        return self._cal_matrix

    def _inverse(self) -> np.ndarray:
        """M⁻¹, refusing (near-)singular matrices."""
        if self._cal_matrix_inv is None:
            cal = self._require_calibrated()
            det = np.linalg.det(cal)
            if abs(det) < SINGULAR_DETERMINANT:
                raise ValidationError(
                    "calibration_matrix",
                    f"matrix is nearly singular (det = {det:.2e}); cannot invert reliably",
                )
            cond = np.linalg.cond(cal)
            if cond > ILL_CONDITIONED:
                logger.warning(
                    "High condition number (%.1f): inversion may amplify errors", cond
                )
            self._cal_matrix_inv = np.linalg.inv(cal)
        return self._cal_matrix_inv

    def _noisy_vector(self, counts: Histogram) -> np.ndarray:
        p_noisy = histogram_to_probabilities(counts)
        if p_noisy.shape[0] != self._dim:
            raise ValidationError(
                "counts",
                f"histogram has {p_noisy.shape[0].bit_length() - 1} bits, "
                f"mitigator expects {self._n_qubits}",
            )
        return p_noisy

    # ─── Correction ──────────────────────────────────────────────────

    def apply(self, counts: Histogram, method: Optional[str] = None) -> Dict[str, float]:
        """
        Apply measurement error mitigation to noisy counts.

        Returns
        -------
        dict
            Corrected probability distribution {bitstring: probability}.
        """
        self._require_calibrated()
        m = method or self._method
        p_noisy = self._noisy_vector(counts)

        if m == "inverse":
            p_corrected = self._inverse() @ p_noisy
        elif m == "least_squares":
            p_corrected = self._apply_least_squares(p_noisy)
        else:
            raise ValidationError("method", f"unknown method '{m}'")

        return {
            bitstring(i, self._n_qubits): float(p)
            for i, p in enumerate(p_corrected)
            if abs(p) > 1e-10
        }

    def _apply_least_squares(self, p_noisy: np.ndarray) -> np.ndarray:
        """
        Constrained least-squares: min ||M·p - p_noisy||²
        subject to p ≥ 0 and Σp = 1, by projected gradient descent.
        """
        M = self._require_calibrated()
        p = _project_simplex(self._inverse() @ p_noisy)
        lr = 0.5
        for _ in range(200):
            grad = 2 * M.T @ (M @ p - p_noisy)
            p_new = _project_simplex(p - lr * grad)
            if np.linalg.norm(p_new - p) < 1e-10:
                return p_new
            p = p_new
        return p

    def correct(
        self,
        counts: Histogram,
        min_probability: float = 0.01,
        confidence_level: float = 0.95,
        clip_negative: bool = True,
    ) -> CorrectedHistogram:
        """
        Invert readout errors on a histogram, with confidence intervals.

        The measured distribution p is corrected as M⁻¹·p, negative
        entries are clipped, the result is renormalized and scaled back
        to the measured shot total. Entries below ``min_probability`` of
        the total are dropped. For each remaining entry i the binomial
        variance of p propagates as

            Var_i = Σ_j (M⁻¹[i, j])² · p_j (1 - p_j) / shots

        and the interval is count_i ± z · sqrt(Var_i) · shots, with z the
        two-sided normal quantile for ``confidence_level``.

        Raises
        ------
        ValidationError
            Singular calibration matrix, malformed histogram, or a
            confidence level outside (0, 1).
        """
        if not 0.0 < confidence_level < 1.0:
            raise ValidationError("confidence_level", f"must be in (0, 1), got {confidence_level}")
        inverse = self._inverse()
        p_noisy = self._noisy_vector(counts)
        shots = total_shots(counts)

        corrected = inverse @ p_noisy
        if clip_negative:
            corrected = np.maximum(corrected, 0.0)
        total = corrected.sum()
        if total > 0:
            corrected = corrected / total
        corrected_counts = corrected * shots

        z = float(normal_dist.ppf(0.5 + confidence_level / 2))
        binomial_var = p_noisy * (1.0 - p_noisy) / shots
        std = np.sqrt((inverse ** 2) @ binomial_var)

        hist: Dict[str, float] = {}
        intervals: Dict[str, Tuple[float, float]] = {}
        for i, value in enumerate(corrected_counts):
            if value < min_probability * shots:
                continue
            key = bitstring(i, self._n_qubits)
            margin = z * std[i] * shots
            hist[key] = float(value)
            intervals[key] = (max(0.0, float(value - margin)), float(value + margin))

        fit = 1.0 - abs(sum(hist.values()) - shots) / shots
        logger.debug(
            "Readout correction: %d shots, %d outcomes kept, fit %.4f",
            shots, len(hist), fit,
        )
        return CorrectedHistogram(hist, intervals, fit, shots)

    # ─── Diagnostics ─────────────────────────────────────────────────

    def assignment_fidelity(self) -> float:
        """
        Average assignment fidelity F_avg = (1/2^n) Σ_i M[i,i].

        A perfect readout has F_avg = 1.0.
        """
        return float(np.trace(self._require_calibrated()) / self._dim)

    def worst_fidelity(self) -> float:
        """Return the minimum diagonal element of the calibration matrix."""
        return float(np.min(np.diag(self._require_calibrated())))

    def __repr__(self) -> str:
        status = "calibrated" if self.is_calibrated else "not calibrated"
        return f"MeasurementMitigator({self._n_qubits}q, {self._method}, {status})"


def _project_simplex(v: np.ndarray) -> np.ndarray:
    """
    Euclidean projection onto the probability simplex {p ≥ 0, Σp = 1}.

    Sort-based algorithm of Duchi et al. (2008).
    """
    u = np.sort(v)[::-1]
    cssv = np.cumsum(u) - 1.0
    rho = np.nonzero(u * np.arange(1, len(v) + 1) > cssv)[0][-1]
    theta = cssv[rho] / (rho + 1.0)
    return np.maximum(v - theta, 0.0)
