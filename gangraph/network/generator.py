"""DCGAN generator: noise -> dense -> three transposed convolutions."""

from __future__ import annotations

from functools import partial

import tensorflow as tf

from gangraph.config import GANConfig
from gangraph.graph.context import GraphContext
from gangraph.graph.variable import StatefulVariable
from gangraph.layers.initializers import glorot_uniform, scaled_normal
from gangraph.layers.normalization import BatchNormalization, FusedBatchNorm
from gangraph.layers.ops import conv2d_transpose, dense, leaky_relu, reshape


class Generator:
    """Upsamples a noise batch to images of ``[image_size, image_size, channels]``.

    All variables are created once, under the ``generator/`` scope, when the
    generator is constructed. ``build`` may be called any number of times
    (e.g. once for training and once for inference); each call emits a new
    forward graph reading the same variables.

    Args:
        ctx: Context the variables are created in
        config: Network hyperparameters

    Example:
        >>> ctx = GraphContext(seed=42)
        >>> generator = Generator(ctx)
        >>> fake_images = generator.build(ctx, batch_size=16, training=True)
    """

    def __init__(self, ctx: GraphContext, config: GANConfig = GANConfig()):
        self.config = config
        scope = ctx.with_name("generator")

        self.w1 = StatefulVariable(
            scope,
            "weight",
            [config.noise_dim, config.units],
            partial(scaled_normal, stddev=config.init_stddev),
            trainable=True,
        )

        # filters, aka kernels: [kh, kw, out_channels, in_channels]
        self.filter = StatefulVariable(
            scope, "filter", [5, 5, 128, 256], glorot_uniform, trainable=True
        )
        self.filter2 = StatefulVariable(
            scope, "filter2", [5, 5, 64, 128], glorot_uniform, trainable=True
        )
        self.filter3 = StatefulVariable(
            scope,
            "filter3",
            [5, 5, config.num_channels, 64],
            glorot_uniform,
            trainable=True,
        )

        self.batchnorm = BatchNormalization(
            scope.with_name("batchnorm"), [config.units], config.momentum
        )
        self.batchnorm1 = FusedBatchNorm(
            scope.with_name("batchnorm1"), [128], config.momentum
        )
        self.batchnorm2 = FusedBatchNorm(
            scope.with_name("batchnorm2"), [64], config.momentum
        )

    @property
    def variables(self) -> tuple[StatefulVariable, ...]:
        return (
            self.w1,
            self.filter,
            self.filter2,
            self.filter3,
            *self.batchnorm.variables,
            *self.batchnorm1.variables,
            *self.batchnorm2.variables,
        )

    def build(self, ctx: GraphContext, batch_size: int, training: bool) -> tf.Tensor:
        """Emit one forward pass.

        Args:
            ctx: Context the forward nodes are emitted in
            batch_size: Number of images to generate
            training: Normalize with batch statistics and emit updates of
                the running statistics

        Returns:
            images: ``[batch_size, image_size, image_size, num_channels]``
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        config = self.config
        scope = ctx.with_name("generator")
        s = config.base_size

        # random noise input
        seed, seed2 = scope.random_seeds()
        noise = scope.add_op(
            "RandomStandardNormal",
            {'shape': scope.constant([batch_size, config.noise_dim], dtype=tf.int32)},
            {'dtype': tf.float32, 'seed': seed, 'seed2': seed2},
            name="noise",
        )

        # dense 1
        x = dense(scope, noise, self.w1.read(scope))
        x = self.batchnorm.build(scope, x, [0], config.epsilon, training)
        x = leaky_relu(scope, x, config.leaky_alpha)
        x = reshape(scope, x, [batch_size, s, s, 256])

        # transposed convolution 1, out_backprop is the reshaped dense output
        x = conv2d_transpose(
            scope, [batch_size, s, s, 128], self.filter.read(scope), x, [1, 1, 1, 1]
        )
        x = self.batchnorm1.build(scope, x, config.epsilon, training)
        x = leaky_relu(scope, x, config.leaky_alpha)

        # transposed convolution 2
        x = conv2d_transpose(
            scope,
            [batch_size, 2 * s, 2 * s, 64],
            self.filter2.read(scope),
            x,
            [1, 2, 2, 1],
        )
        x = self.batchnorm2.build(scope, x, config.epsilon, training)
        x = leaky_relu(scope, x, config.leaky_alpha)

        # transposed convolution 3
        return conv2d_transpose(
            scope,
            [batch_size, 4 * s, 4 * s, config.num_channels],
            self.filter3.read(scope),
            x,
            [1, 2, 2, 1],
            name="generator",
        )

    def __repr__(self) -> str:
        return f"Generator(noise_dim={self.config.noise_dim}, units={self.config.units})"
