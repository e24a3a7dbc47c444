"""Tests for gangraph.layers.initializers."""

from __future__ import annotations

import math

import numpy as np
import pytest

from gangraph.errors import UnsupportedShapeError
from gangraph.graph import GraphContext
from gangraph.layers import glorot_limit, glorot_uniform, ones, scaled_normal, zeros


def test_glorot_limit_2d() -> None:
    # fan_in=10, fan_out=20 -> scale = 1/15
    assert glorot_limit([10, 20]) == pytest.approx(math.sqrt(3.0 / 15.0))


def test_glorot_limit_4d_uses_receptive_field() -> None:
    # receptive=25, fan_in=75, fan_out=200 -> scale = 1/137.5
    assert glorot_limit([5, 5, 3, 8]) == pytest.approx(math.sqrt(3.0 / 137.5))


def test_glorot_limit_small_fans_clamped() -> None:
    # (fan_in + fan_out) / 2 < 1 -> scale = 1
    assert glorot_limit([1, 0]) == pytest.approx(math.sqrt(3.0))


@pytest.mark.parametrize("shape", [[5], [3, 4, 5], [1, 2, 3, 4, 5]])
def test_glorot_unsupported_rank(ctx: GraphContext, shape: list[int]) -> None:
    num_ops = len(ctx.graph.get_operations())

    with pytest.raises(UnsupportedShapeError, match="rank 2 or 4"):
        glorot_uniform(ctx, shape)

    # nothing emitted, context still usable
    assert len(ctx.graph.get_operations()) == num_ops
    assert ctx.ok


def test_unsupported_shape_is_value_error() -> None:
    with pytest.raises(ValueError):
        glorot_limit([3, 3, 3])


@pytest.mark.parametrize("shape", [[64, 32], [5, 5, 16, 8]])
def test_glorot_uniform_within_limit(ctx: GraphContext, shape: list[int]) -> None:
    limit = glorot_limit(shape)

    with ctx.session() as sess:
        out = sess.run(glorot_uniform(ctx, shape))

    assert out.shape == tuple(shape)
    assert np.all(out >= -limit - 1e-6)
    assert np.all(out <= limit + 1e-6)
    # spread over the interval, not collapsed
    assert out.min() < -0.5 * limit
    assert out.max() > 0.5 * limit


def test_glorot_uniform_is_reproducible_with_seed() -> None:
    outputs = []
    for _ in range(2):
        ctx = GraphContext(seed=7)
        value = glorot_uniform(ctx, [8, 4])
        with ctx.session() as sess:
            outputs.append(sess.run(value))

    np.testing.assert_array_equal(outputs[0], outputs[1])


def test_scaled_normal_stddev(ctx: GraphContext) -> None:
    with ctx.session() as sess:
        out = sess.run(scaled_normal(ctx, [100, 50]))

    assert out.shape == (100, 50)
    assert abs(out.mean()) < 1e-3
    assert 0.009 < out.std() < 0.011


def test_scaled_normal_custom_stddev(ctx: GraphContext) -> None:
    with ctx.session() as sess:
        out = sess.run(scaled_normal(ctx, [100, 50], stddev=1.0))

    assert 0.9 < out.std() < 1.1


def test_constant_initializers(ctx: GraphContext) -> None:
    with ctx.session() as sess:
        z, o = sess.run([zeros(ctx, [3, 2]), ones(ctx, [4])])

    np.testing.assert_array_equal(z, np.zeros((3, 2), dtype=np.float32))
    np.testing.assert_array_equal(o, np.ones((4,), dtype=np.float32))
