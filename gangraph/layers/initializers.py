"""Initial values for new variables.

Every initializer has the signature ``initializer(ctx, shape) -> tf.Tensor``
and emits nothing but a random draw (or a fill) and the ops that rescale it.
"""

from __future__ import annotations

import math
from typing import Sequence

import tensorflow as tf

from gangraph.errors import UnsupportedShapeError
from gangraph.graph.context import GraphContext


def glorot_limit(shape: Sequence[int]) -> float:
    """Half-width of the Glorot uniform interval for ``shape``.

    Only 2D ``[fan_in, fan_out]`` and 4D ``[kh, kw, in, out]`` shapes are
    supported.
    """
    shape = [int(d) for d in shape]
    if len(shape) not in (2, 4):
        raise UnsupportedShapeError(
            f"Glorot initialization supports rank 2 or 4 shapes, got rank "
            f"{len(shape)} ({shape})"
        )

    fan_in = float(shape[0])
    fan_out = float(shape[1])
    if len(shape) == 4:
        receptive_field_size = float(shape[0] * shape[1])
        fan_in = receptive_field_size * shape[2]
        fan_out = receptive_field_size * shape[3]

    scale = 1.0 / max(1.0, (fan_in + fan_out) / 2.0)
    return math.sqrt(3.0 * scale)


def glorot_uniform(ctx: GraphContext, shape: Sequence[int]) -> tf.Tensor:
    limit = glorot_limit(shape)
    maxval = limit
    minval = -limit

    seed, seed2 = ctx.random_seeds()
    random_value = ctx.add_op(
        "RandomUniform",
        {'shape': ctx.constant(list(shape), dtype=tf.int32)},
        {'dtype': tf.float32, 'seed': seed, 'seed2': seed2},
    )
    # value = rnd * (maxval - minval) + minval
    scaled = ctx.add_op(
        "Mul", {'x': random_value, 'y': ctx.constant(maxval - minval)}
    )
    return ctx.add_op("AddV2", {'x': scaled, 'y': ctx.constant(minval)})


def scaled_normal(
    ctx: GraphContext, shape: Sequence[int], stddev: float = 0.01
) -> tf.Tensor:
    """Standard-normal draw multiplied by ``stddev``."""
    seed, seed2 = ctx.random_seeds()
    random_value = ctx.add_op(
        "RandomStandardNormal",
        {'shape': ctx.constant(list(shape), dtype=tf.int32)},
        {'dtype': tf.float32, 'seed': seed, 'seed2': seed2},
    )
    return ctx.add_op("Mul", {'x': random_value, 'y': ctx.constant(stddev)})


def _fill(ctx: GraphContext, shape: Sequence[int], value: float) -> tf.Tensor:
    return ctx.add_op(
        "Fill",
        {
            'dims': ctx.constant(list(shape), dtype=tf.int32),
            'value': ctx.constant(value),
        },
    )


def zeros(ctx: GraphContext, shape: Sequence[int]) -> tf.Tensor:
    return _fill(ctx, shape, 0.0)


def ones(ctx: GraphContext, shape: Sequence[int]) -> tf.Tensor:
    return _fill(ctx, shape, 1.0)
