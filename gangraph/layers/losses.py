"""Adversarial losses on discriminator logits."""

from __future__ import annotations

import tensorflow as tf

from gangraph.errors import ShapeMismatchError
from gangraph.graph.context import GraphContext


def sigmoid_cross_entropy_with_logits(
    ctx: GraphContext, labels: tf.Tensor, logits: tf.Tensor
) -> tf.Tensor:
    """Element-wise logistic loss, stable for large ``|logits|``.

    ``max(x, 0) - x * z + log(1 + exp(-|x|))`` where the max and the abs are
    selects on ``x >= 0`` so that the gradient at zero is defined.
    """
    if not labels.shape.is_compatible_with(logits.shape):
        raise ShapeMismatchError(
            f"Labels of shape {labels.shape} do not match logits of shape "
            f"{logits.shape}"
        )

    zeros = ctx.add_op("ZerosLike", {'x': logits})
    cond = ctx.add_op("GreaterEqual", {'x': logits, 'y': zeros})
    relu_logits = ctx.add_op("SelectV2", {'condition': cond, 't': logits, 'e': zeros})
    neg_abs_logits = ctx.add_op(
        "SelectV2",
        {'condition': cond, 't': ctx.add_op("Neg", {'x': logits}), 'e': logits},
    )

    return ctx.add_op(
        "AddV2",
        {
            'x': ctx.add_op(
                "Sub",
                {'x': relu_logits, 'y': ctx.add_op("Mul", {'x': logits, 'y': labels})},
            ),
            'y': ctx.add_op("Log1p", {'x': ctx.add_op("Exp", {'x': neg_abs_logits})}),
        },
    )


def _reduce_mean(ctx: GraphContext, x: tf.Tensor) -> tf.Tensor:
    rank = x.shape.rank
    if rank is None:
        raise ShapeMismatchError("Cannot average a loss of unknown rank")
    axis = ctx.constant(list(range(rank)), dtype=tf.int32)
    return ctx.add_op("Mean", {'input': x, 'axis': axis}, {'keep_dims': False})


def discriminator_loss(
    ctx: GraphContext, real_logits: tf.Tensor, fake_logits: tf.Tensor
) -> tf.Tensor:
    """Mean loss of labelling real logits 1 and fake logits 0."""
    real_loss = sigmoid_cross_entropy_with_logits(
        ctx, ctx.add_op("OnesLike", {'x': real_logits}), real_logits
    )
    fake_loss = sigmoid_cross_entropy_with_logits(
        ctx, ctx.add_op("ZerosLike", {'x': fake_logits}), fake_logits
    )
    return ctx.add_op(
        "AddV2",
        {'x': _reduce_mean(ctx, real_loss), 'y': _reduce_mean(ctx, fake_loss)},
        name="discriminator_loss",
    )


def generator_loss(ctx: GraphContext, fake_logits: tf.Tensor) -> tf.Tensor:
    """Mean loss of the discriminator labelling fake logits 1."""
    fake_loss = sigmoid_cross_entropy_with_logits(
        ctx, ctx.add_op("OnesLike", {'x': fake_logits}), fake_logits
    )
    return ctx.add_op(
        "Identity", {'input': _reduce_mean(ctx, fake_loss)}, name="generator_loss"
    )
