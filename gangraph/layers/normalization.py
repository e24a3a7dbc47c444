"""Batch normalization layers with running statistics.

Two variants share the same owned state:
- BatchNormalization: moments + explicit affine normalization
- FusedBatchNorm: the engine's single fused primitive (NHWC)

In training mode both emit ``AssignSub`` updates of the running statistics
and register them with the context; the external training step must run
them (see ``GraphContext.update_group``). In inference mode the running
statistics are read unchanged and nothing is registered.
"""

from __future__ import annotations

from typing import Sequence

import tensorflow as tf

from gangraph.errors import ShapeMismatchError
from gangraph.graph.context import GraphContext
from gangraph.graph.variable import StatefulVariable, assign_sub
from gangraph.layers.initializers import ones, zeros
from gangraph.layers.moments import moments


def batch_normalization(
    ctx: GraphContext,
    x: tf.Tensor,
    mean: tf.Tensor,
    variance: tf.Tensor,
    offset: tf.Tensor,
    scale: tf.Tensor,
    variance_epsilon: float
) -> tf.Tensor:
    """``x * inv + (offset - mean * inv)`` with ``inv = rsqrt(var + eps) * scale``.

    The op order is kept exactly; graph rewrites that fold batch norms into
    preceding layers match on it.
    """
    inv = ctx.add_op(
        "Mul",
        {
            'x': ctx.add_op(
                "Rsqrt",
                {'x': ctx.add_op(
                    "AddV2", {'x': variance, 'y': ctx.constant(variance_epsilon)}
                )},
            ),
            'y': scale,
        },
    )
    scaled = ctx.add_op("Mul", {'x': x, 'y': inv})
    shifted = ctx.add_op(
        "Sub", {'x': offset, 'y': ctx.add_op("Mul", {'x': mean, 'y': inv})}
    )
    return ctx.add_op("AddV2", {'x': scaled, 'y': shifted})


class _MovingStatistics:
    """Running mean/variance plus the learnable scale (gamma) and shift (beta)."""

    def __init__(
        self,
        ctx: GraphContext,
        shape: Sequence[int],
        momentum: float,
        prefix: str
    ):
        if not 0.0 <= momentum <= 1.0:
            raise ValueError(f"momentum must be between 0.0 and 1.0, got {momentum}")
        self.shape = tuple(int(d) for d in shape)
        self.momentum = momentum
        self.prefix = prefix

        self.moving_mean = StatefulVariable(ctx, "moving_mean", self.shape, zeros)
        self.moving_variance = StatefulVariable(
            ctx, "moving_variance", self.shape, zeros
        )
        self.gamma = StatefulVariable(
            ctx, f"{prefix}gamma", self.shape, ones, trainable=True
        )
        self.beta = StatefulVariable(
            ctx, f"{prefix}beta", self.shape, zeros, trainable=True
        )

    @property
    def variables(self) -> tuple[StatefulVariable, ...]:
        return (self.moving_mean, self.moving_variance, self.gamma, self.beta)

    def _update_moving_statistics(
        self, ctx: GraphContext, mean: tf.Tensor, variance: tf.Tensor
    ) -> tuple[tf.Operation, tf.Operation]:
        # moving -= (moving - batch) * (1 - momentum)
        decay = ctx.constant(1.0 - self.momentum)
        updates = []
        for variable, batch_value in (
            (self.moving_mean, mean),
            (self.moving_variance, variance),
        ):
            delta = ctx.add_op(
                "Mul",
                {
                    'x': ctx.add_op(
                        "Sub", {'x': variable.read(ctx), 'y': batch_value}
                    ),
                    'y': decay,
                },
            )
            update = assign_sub(
                ctx, variable, delta, name=f"{self.prefix}update_{variable.name}"
            )
            ctx.register_update_op(update)
            updates.append(update)
        return updates[0], updates[1]

    def _check_features(self, x: tf.Tensor, axes: Sequence[int]):
        if x.shape.rank is None:
            return
        kept = [
            d for i, d in enumerate(x.shape.as_list())
            if i not in {a % x.shape.rank for a in axes}
        ]
        if len(kept) != len(self.shape) or any(
            d is not None and d != s for d, s in zip(kept, self.shape)
        ):
            raise ShapeMismatchError(
                f"Input of shape {x.shape} reduced over {list(axes)} does not "
                f"match normalization shape {self.shape}"
            )


class BatchNormalization(_MovingStatistics):
    """Batch normalization built from moments and explicit affine ops.

    Args:
        ctx: Context the state is created in
        shape: Feature shape (the input shape without the reduced axes)
        momentum: Decay of the running statistics

    Example:
        >>> bn = BatchNormalization(ctx.with_name("bn"), [256])
        >>> y = bn.build(ctx, dense_out, axes=[0], variance_epsilon=1e-3, training=True)
    """

    def __init__(
        self, ctx: GraphContext, shape: Sequence[int], momentum: float = 0.8
    ):
        super().__init__(ctx, shape, momentum, prefix="")

    def build(
        self,
        ctx: GraphContext,
        x: tf.Tensor,
        axes: Sequence[int],
        variance_epsilon: float,
        training: bool
    ) -> tf.Tensor:
        """Normalize ``x`` over ``axes``.

        Args:
            ctx: Context the forward nodes are emitted in
            x: Input tensor
            axes: Axes the batch statistics are computed over
            variance_epsilon: Added to the variance before ``rsqrt``
            training: Use batch statistics and update the running ones

        Returns:
            output: Normalized tensor with the shape of ``x``
        """
        self._check_features(x, axes)

        if training:
            mean, variance = moments(ctx, x, axes, keep_dims=False)
            self._update_moving_statistics(ctx, mean, variance)
        else:
            mean = self.moving_mean.read(ctx)
            variance = self.moving_variance.read(ctx)

        return batch_normalization(
            ctx,
            x,
            mean,
            variance,
            self.beta.read(ctx),
            self.gamma.read(ctx),
            variance_epsilon,
        )


class FusedBatchNorm(_MovingStatistics):
    """Batch normalization over the channels of an NHWC tensor, fused.

    Args:
        ctx: Context the state is created in
        shape: ``[channels]``
        momentum: Decay of the running statistics
    """

    def __init__(
        self, ctx: GraphContext, shape: Sequence[int], momentum: float = 0.8
    ):
        super().__init__(ctx, shape, momentum, prefix="fused_")

    def build(
        self,
        ctx: GraphContext,
        x: tf.Tensor,
        variance_epsilon: float,
        training: bool
    ) -> tf.Tensor:
        if x.shape.rank is not None and x.shape.rank != 4:
            raise ShapeMismatchError(
                f"FusedBatchNorm input must have rank 4 (NHWC), got shape {x.shape}"
            )
        self._check_features(x, [0, 1, 2])

        if training:
            # Empty statistics: the primitive computes them from the batch
            fused = ctx.add_op(
                "FusedBatchNorm",
                {
                    'x': x,
                    'scale': self.gamma.read(ctx),
                    'offset': self.beta.read(ctx),
                    'mean': ctx.constant([]),
                    'variance': ctx.constant([]),
                },
                {'epsilon': variance_epsilon, 'is_training': True},
            )
            self._update_moving_statistics(
                ctx, fused.batch_mean, fused.batch_variance
            )
            return fused.y

        fused = ctx.add_op(
            "FusedBatchNorm",
            {
                'x': x,
                'scale': self.gamma.read(ctx),
                'offset': self.beta.read(ctx),
                'mean': self.moving_mean.read(ctx),
                'variance': self.moving_variance.read(ctx),
            },
            {'epsilon': variance_epsilon, 'is_training': False},
        )
        return fused.y
