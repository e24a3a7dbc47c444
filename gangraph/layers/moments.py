"""Mean and variance of a tensor along a set of axes."""

from __future__ import annotations

from typing import NamedTuple, Sequence

import tensorflow as tf

from gangraph.errors import ShapeMismatchError
from gangraph.graph.context import GraphContext


class Moments(NamedTuple):
    mean: tf.Tensor
    variance: tf.Tensor


def moments(
    ctx: GraphContext,
    x: tf.Tensor,
    axes: Sequence[int],
    keep_dims: bool = False
) -> Moments:
    """Two-pass mean and variance of ``x`` over ``axes``.

    The variance is taken around ``StopGradient(mean)`` so that the mean is
    not differentiated a second time through the variance term. Reductions
    always keep dims; with ``keep_dims=False`` both results are squeezed
    afterwards.

    Args:
        ctx: Graph context
        x: Input tensor
        axes: Axes to reduce over
        keep_dims: Keep the reduced axes with length 1

    Returns:
        Moments(mean, variance)
    """
    axes = [int(a) for a in axes]
    if not axes:
        raise ShapeMismatchError("moments needs at least one reduction axis")

    rank = x.shape.rank
    if rank is not None:
        for axis in axes:
            if not -rank <= axis < rank:
                raise ShapeMismatchError(
                    f"Reduction axis {axis} is out of range for input of "
                    f"rank {rank}"
                )

    axis = ctx.constant(axes, dtype=tf.int32)
    mean = ctx.add_op("Mean", {'input': x, 'axis': axis}, {'keep_dims': True})

    sg = ctx.add_op("StopGradient", {'input': mean})
    sd = ctx.add_op("SquaredDifference", {'x': x, 'y': sg})
    variance = ctx.add_op("Mean", {'input': sd, 'axis': axis}, {'keep_dims': True})

    if keep_dims:
        return Moments(mean, variance)

    return Moments(
        ctx.add_op("Squeeze", {'input': mean}, {'axis': axes}),
        ctx.add_op("Squeeze", {'input': variance}, {'axis': axes}),
    )
