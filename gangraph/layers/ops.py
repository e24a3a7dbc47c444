"""Stateless layer ops.

Each function validates the statically known ranks and dimensions of its
arguments and raises ShapeMismatchError before anything is emitted.
"""

from __future__ import annotations

import math
from typing import Sequence

import tensorflow as tf

from gangraph.errors import ShapeMismatchError
from gangraph.graph.context import GraphContext


def _dims(x: tf.Tensor, rank: int, what: str) -> list[int | None]:
    """Static dims of ``x`` (None for unknown), requiring ``rank`` if known."""
    shape = x.shape
    if shape.rank is None:
        return [None] * rank
    if shape.rank != rank:
        raise ShapeMismatchError(
            f"{what} must have rank {rank}, got shape {shape}"
        )
    return shape.as_list()


def _check_dim(actual: int | None, expected: int | None, message: str):
    if actual is not None and expected is not None and actual != expected:
        raise ShapeMismatchError(f"{message}: {actual} != {expected}")


def dense(ctx: GraphContext, x: tf.Tensor, weight: tf.Tensor) -> tf.Tensor:
    """``x @ weight`` for ``x`` [batch, in] and ``weight`` [in, out]."""
    x_dims = _dims(x, 2, "Dense input")
    w_dims = _dims(weight, 2, "Dense weight")
    _check_dim(x_dims[1], w_dims[0], "Dense input features do not match weight")
    return ctx.add_op("MatMul", {'a': x, 'b': weight})


def bias_add(ctx: GraphContext, x: tf.Tensor, bias: tf.Tensor) -> tf.Tensor:
    bias_dims = _dims(bias, 1, "Bias")
    if x.shape.rank is not None:
        if x.shape.rank < 2:
            raise ShapeMismatchError(
                f"BiasAdd input must have rank >= 2, got shape {x.shape}"
            )
        _check_dim(x.shape[-1], bias_dims[0], "Bias size does not match channels")
    return ctx.add_op("BiasAdd", {'value': x, 'bias': bias})


def conv2d(
    ctx: GraphContext,
    x: tf.Tensor,
    filter: tf.Tensor,
    strides: Sequence[int],
    padding: str = "SAME"
) -> tf.Tensor:
    """NHWC convolution with a ``[kh, kw, in, out]`` filter."""
    x_dims = _dims(x, 4, "Conv2D input")
    f_dims = _dims(filter, 4, "Conv2D filter")
    _check_dim(x_dims[3], f_dims[2], "Conv2D input channels do not match filter")
    return ctx.add_op(
        "Conv2D",
        {'input': x, 'filter': filter},
        {'strides': list(strides), 'padding': padding},
    )


def conv2d_transpose(
    ctx: GraphContext,
    output_shape: Sequence[int],
    filter: tf.Tensor,
    x: tf.Tensor,
    strides: Sequence[int],
    padding: str = "SAME",
    name: str | None = None
) -> tf.Tensor:
    """Transposed convolution, built as the input gradient of a convolution.

    ``x`` plays the role of the output gradient of a forward convolution
    whose input has ``output_shape``; ``filter`` is ``[kh, kw, out, in]``
    with ``in`` the channels of ``x``.
    """
    output_shape = [int(d) for d in output_shape]
    if len(output_shape) != 4:
        raise ShapeMismatchError(
            f"Conv2DTranspose output shape must have rank 4, got {output_shape}"
        )
    x_dims = _dims(x, 4, "Conv2DTranspose input")
    f_dims = _dims(filter, 4, "Conv2DTranspose filter")
    _check_dim(x_dims[3], f_dims[3], "Conv2DTranspose input channels do not match filter")
    _check_dim(output_shape[3], f_dims[2], "Conv2DTranspose output channels do not match filter")
    _check_dim(x_dims[0], output_shape[0], "Conv2DTranspose batch size mismatch")
    if padding == "SAME":
        for axis in (1, 2):
            _check_dim(
                x_dims[axis],
                math.ceil(output_shape[axis] / strides[axis]),
                f"Conv2DTranspose spatial dim {axis} does not match output shape",
            )

    return ctx.add_op(
        "Conv2DBackpropInput",
        {
            'input_sizes': ctx.constant(output_shape, dtype=tf.int32),
            'filter': filter,
            'out_backprop': x,
        },
        {'strides': list(strides), 'padding': padding},
        name=name,
    )


def leaky_relu(ctx: GraphContext, x: tf.Tensor, alpha: float = 0.3) -> tf.Tensor:
    return ctx.add_op("LeakyRelu", {'features': x}, {'alpha': alpha})


def reshape(ctx: GraphContext, x: tf.Tensor, shape: Sequence[int]) -> tf.Tensor:
    shape = [int(d) for d in shape]
    if x.shape.is_fully_defined() and -1 not in shape:
        if x.shape.num_elements() != math.prod(shape):
            raise ShapeMismatchError(
                f"Cannot reshape {x.shape} ({x.shape.num_elements()} elements) "
                f"to {shape} ({math.prod(shape)} elements)"
            )
    return ctx.add_op(
        "Reshape", {'tensor': x, 'shape': ctx.constant(shape, dtype=tf.int32)}
    )


def dropout(ctx: GraphContext, x: tf.Tensor, rate: float) -> tf.Tensor:
    """Inverted dropout.

    ``Floor(uniform + keep_prob)`` is 1 with probability ``keep_prob``; kept
    values are scaled by ``1 / keep_prob``.
    """
    if not 0.0 <= rate < 1.0:
        raise ValueError(f"Dropout rate must be in [0.0, 1.0), got {rate}")
    keep_prob = 1.0 - rate

    seed, seed2 = ctx.random_seeds()
    shape = ctx.add_op("Shape", {'input': x}, {'out_type': tf.int32})
    random_value = ctx.add_op(
        "RandomUniform",
        {'shape': shape},
        {'dtype': tf.float32, 'seed': seed, 'seed2': seed2},
    )
    random_tensor = ctx.add_op(
        "AddV2", {'x': random_value, 'y': ctx.constant(keep_prob)}
    )
    binary_tensor = ctx.add_op("Floor", {'x': random_tensor})

    scaled = ctx.add_op("RealDiv", {'x': x, 'y': ctx.constant(keep_prob)})
    return ctx.add_op("Mul", {'x': scaled, 'y': binary_tensor})
