"""Tests for gangraph.layers.ops."""

from __future__ import annotations

import numpy as np
import pytest
import tensorflow as tf

from gangraph import reference
from gangraph.errors import ShapeMismatchError
from gangraph.graph import GraphContext
from gangraph.layers import (
    bias_add,
    conv2d,
    conv2d_transpose,
    dense,
    dropout,
    leaky_relu,
    reshape,
)


def _data(shape: tuple[int, ...], seed: int = 0) -> np.ndarray:
    return np.random.default_rng(seed).normal(size=shape).astype(np.float32)


def test_dense(ctx: GraphContext) -> None:
    x, w = _data((4, 3)), _data((3, 2), seed=1)

    with ctx.session() as sess:
        out = sess.run(dense(ctx, ctx.constant(x), ctx.constant(w)))

    np.testing.assert_allclose(out, x @ w, rtol=1e-5, atol=1e-6)


def test_dense_mismatch_fails_before_emitting(ctx: GraphContext) -> None:
    x, w = ctx.constant(_data((4, 3))), ctx.constant(_data((5, 2)))
    num_ops = len(ctx.graph.get_operations())

    with pytest.raises(ShapeMismatchError, match="Dense input features"):
        dense(ctx, x, w)

    assert len(ctx.graph.get_operations()) == num_ops
    assert ctx.ok


def test_dense_rank(ctx: GraphContext) -> None:
    with pytest.raises(ShapeMismatchError, match="rank 2"):
        dense(ctx, ctx.constant(_data((4, 3, 1))), ctx.constant(_data((3, 2))))


def test_bias_add(ctx: GraphContext) -> None:
    x, b = _data((2, 3, 3, 4)), _data((4,), seed=1)

    with ctx.session() as sess:
        out = sess.run(bias_add(ctx, ctx.constant(x), ctx.constant(b)))

    np.testing.assert_allclose(out, x + b, rtol=1e-6)

    with pytest.raises(ShapeMismatchError, match="Bias size"):
        bias_add(ctx, ctx.constant(x), ctx.constant(_data((3,))))


def test_conv2d_strided_shape(ctx: GraphContext) -> None:
    x = ctx.constant(_data((2, 28, 28, 1)))
    f = ctx.constant(_data((5, 5, 1, 64)))

    y = conv2d(ctx, x, f, [1, 2, 2, 1])

    assert y.shape.as_list() == [2, 14, 14, 64]


def test_conv2d_channel_mismatch(ctx: GraphContext) -> None:
    x = ctx.constant(_data((2, 8, 8, 3)))
    f = ctx.constant(_data((5, 5, 1, 4)))

    with pytest.raises(ShapeMismatchError, match="input channels"):
        conv2d(ctx, x, f, [1, 1, 1, 1])


def test_conv2d_transpose_upsamples(ctx: GraphContext) -> None:
    x = ctx.constant(_data((2, 7, 7, 128)))
    f = ctx.constant(_data((5, 5, 64, 128)))

    y = conv2d_transpose(ctx, [2, 14, 14, 64], f, x, [1, 2, 2, 1])

    assert y.op.type == "Conv2DBackpropInput"
    with ctx.session() as sess:
        assert sess.run(y).shape == (2, 14, 14, 64)


def test_conv2d_transpose_is_convolution_input_gradient(ctx: GraphContext) -> None:
    x = ctx.constant(_data((1, 8, 8, 3)))
    f = ctx.constant(_data((5, 5, 3, 4), seed=1))
    upstream = ctx.constant(_data((1, 4, 4, 4), seed=2))

    forward = conv2d(ctx, x, f, [1, 2, 2, 1])
    transposed = conv2d_transpose(ctx, [1, 8, 8, 3], f, upstream, [1, 2, 2, 1])
    with ctx.graph.as_default():
        grad = tf.compat.v1.gradients(forward, x, grad_ys=upstream)[0]

    with ctx.session() as sess:
        out, expected = sess.run([transposed, grad])

    np.testing.assert_allclose(out, expected, rtol=1e-5, atol=1e-5)


@pytest.mark.parametrize(
    "output_shape, x_shape, match",
    [
        ([2, 14, 14, 32], (2, 7, 7, 128), "output channels"),
        ([2, 14, 14, 64], (2, 7, 7, 32), "input channels"),
        ([3, 14, 14, 64], (2, 7, 7, 128), "batch size"),
        ([2, 28, 28, 64], (2, 7, 7, 128), "spatial"),
    ],
)
def test_conv2d_transpose_mismatch(
    ctx: GraphContext, output_shape: list[int], x_shape: tuple[int, ...], match: str
) -> None:
    f = ctx.constant(_data((5, 5, 64, 128)))

    with pytest.raises(ShapeMismatchError, match=match):
        conv2d_transpose(ctx, output_shape, f, ctx.constant(_data(x_shape)), [1, 2, 2, 1])


def test_leaky_relu(ctx: GraphContext) -> None:
    x = np.array([-2.0, -0.5, 0.0, 1.5], dtype=np.float32)

    with ctx.session() as sess:
        out = sess.run(leaky_relu(ctx, ctx.constant(x), 0.3))

    np.testing.assert_allclose(out, reference.leaky_relu(x, 0.3), rtol=1e-6)


def test_reshape(ctx: GraphContext) -> None:
    x = ctx.constant(_data((2, 7 * 7 * 4)))

    y = reshape(ctx, x, [2, 7, 7, 4])
    assert y.shape.as_list() == [2, 7, 7, 4]

    with pytest.raises(ShapeMismatchError, match="Cannot reshape"):
        reshape(ctx, x, [2, 7, 7, 5])


def test_dropout_rate_zero_is_identity(ctx: GraphContext) -> None:
    x = _data((4, 6, 6, 3))

    with ctx.session() as sess:
        out = sess.run(dropout(ctx, ctx.constant(x), 0.0))

    np.testing.assert_array_equal(out, x)


def test_dropout_keeps_expected_fraction(ctx: GraphContext) -> None:
    x = np.ones((100, 100), dtype=np.float32)

    with ctx.session() as sess:
        out = sess.run(dropout(ctx, ctx.constant(x), 0.3))

    kept = out != 0
    # kept values are scaled by 1 / keep_prob
    np.testing.assert_allclose(out[kept], 1.0 / 0.7, rtol=1e-6)
    assert 0.65 < kept.mean() < 0.75


@pytest.mark.parametrize("rate", [-0.1, 1.0, 1.5])
def test_dropout_invalid_rate(ctx: GraphContext, rate: float) -> None:
    with pytest.raises(ValueError, match="Dropout rate"):
        dropout(ctx, ctx.constant(_data((2, 2))), rate)
