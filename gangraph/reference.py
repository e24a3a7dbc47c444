"""Reference numerics in JAX for parity checks of evaluated graphs.

Each function mirrors the formula of the corresponding graph builder on
concrete arrays, so evaluated graph outputs can be compared with
``compare_arrays``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import jax.numpy as jnp
import numpy as np


@dataclass(frozen=True)
class Tolerance:
    rtol: float = 1e-5
    atol: float = 1e-6


def compare_arrays(
    actual: np.ndarray,
    expected: np.ndarray,
    name: str,
    tolerance: Tolerance = Tolerance()
) -> tuple[bool, str]:
    try:
        np.testing.assert_allclose(
            np.asarray(actual),
            np.asarray(expected),
            rtol=tolerance.rtol,
            atol=tolerance.atol,
        )
        return True, name
    except AssertionError as e:
        return False, f"{name}: {str(e)}"


def moments(
    x: jnp.ndarray, axes: Sequence[int], keep_dims: bool = False
) -> tuple[jnp.ndarray, jnp.ndarray]:
    axes = tuple(axes)
    mean = jnp.mean(x, axis=axes, keepdims=True)
    variance = jnp.mean(jnp.square(x - mean), axis=axes, keepdims=True)
    if keep_dims:
        return mean, variance
    return jnp.squeeze(mean, axis=axes), jnp.squeeze(variance, axis=axes)


def batch_normalization(
    x: jnp.ndarray,
    mean: jnp.ndarray,
    variance: jnp.ndarray,
    offset: jnp.ndarray,
    scale: jnp.ndarray,
    variance_epsilon: float
) -> jnp.ndarray:
    inv = jnp.reciprocal(jnp.sqrt(variance + variance_epsilon)) * scale
    return x * inv + (offset - mean * inv)


def moving_average(
    moving: jnp.ndarray, batch: jnp.ndarray, momentum: float
) -> jnp.ndarray:
    """Running statistic after one update: ``moving - (moving - batch) * (1 - momentum)``."""
    return moving - (moving - batch) * (1.0 - momentum)


def leaky_relu(x: jnp.ndarray, alpha: float = 0.3) -> jnp.ndarray:
    return jnp.where(x > 0, x, alpha * x)


def dropout(x: jnp.ndarray, uniform: jnp.ndarray, rate: float) -> jnp.ndarray:
    """Inverted dropout given the uniform draw used for the mask."""
    keep_prob = 1.0 - rate
    mask = jnp.floor(uniform + keep_prob)
    return (x / keep_prob) * mask


def sigmoid_cross_entropy_with_logits(
    labels: jnp.ndarray, logits: jnp.ndarray
) -> jnp.ndarray:
    return (
        jnp.maximum(logits, 0.0)
        - logits * labels
        + jnp.log1p(jnp.exp(-jnp.abs(logits)))
    )
