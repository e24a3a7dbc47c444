"""DCGAN discriminator: two strided convolutions and a dense logit."""

from __future__ import annotations

import tensorflow as tf

from gangraph.config import GANConfig
from gangraph.errors import ShapeMismatchError
from gangraph.graph.context import GraphContext
from gangraph.graph.variable import StatefulVariable
from gangraph.layers.initializers import glorot_uniform, zeros
from gangraph.layers.ops import bias_add, conv2d, dense, dropout, leaky_relu, reshape


class Discriminator:
    """Maps ``[batch, image_size, image_size, channels]`` images to ``[batch, 1]`` logits.

    The logits have no activation; pair them with
    ``sigmoid_cross_entropy_with_logits``.

    Args:
        ctx: Context the variables are created in
        config: Network hyperparameters
    """

    def __init__(self, ctx: GraphContext, config: GANConfig = GANConfig()):
        self.config = config
        scope = ctx.with_name("discriminator")
        channels = config.num_channels

        self.conv1_weights = StatefulVariable(
            scope, "conv1_weights", [5, 5, channels, 64], glorot_uniform, trainable=True
        )
        self.conv1_biases = StatefulVariable(
            scope, "conv1_biases", [64], zeros, trainable=True
        )

        self.conv2_weights = StatefulVariable(
            scope, "conv2_weights", [5, 5, 64, 128], glorot_uniform, trainable=True
        )
        self.conv2_biases = StatefulVariable(
            scope, "conv2_biases", [128], zeros, trainable=True
        )

        self.fc1_weights = StatefulVariable(
            scope,
            "fc1_weights",
            [config.flattened_size, 1],
            glorot_uniform,
            trainable=True,
        )
        self.fc1_biases = StatefulVariable(
            scope, "fc1_biases", [1], zeros, trainable=True
        )

    @property
    def variables(self) -> tuple[StatefulVariable, ...]:
        return (
            self.conv1_weights,
            self.conv1_biases,
            self.conv2_weights,
            self.conv2_biases,
            self.fc1_weights,
            self.fc1_biases,
        )

    def _check_inputs(self, inputs: tf.Tensor, batch_size: int):
        config = self.config
        expected = [batch_size, config.image_size, config.image_size, config.num_channels]
        if inputs.shape.rank is None:
            return
        actual = inputs.shape.as_list()
        if len(actual) != 4 or any(
            a is not None and a != e for a, e in zip(actual, expected)
        ):
            raise ShapeMismatchError(
                f"Discriminator expects inputs of shape {expected}, got {actual}"
            )

    def build(
        self,
        ctx: GraphContext,
        inputs: tf.Tensor,
        batch_size: int,
        training: bool = True
    ) -> tf.Tensor:
        """Emit one forward pass.

        Args:
            ctx: Context the forward nodes are emitted in
            inputs: Real or generated images
            batch_size: Number of images in ``inputs``
            training: Apply dropout after each convolution block

        Returns:
            logits: ``[batch_size, 1]``
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self._check_inputs(inputs, batch_size)

        config = self.config
        scope = ctx.with_name("discriminator")

        x = conv2d(scope, inputs, self.conv1_weights.read(scope), [1, 2, 2, 1])
        x = bias_add(scope, x, self.conv1_biases.read(scope))
        x = leaky_relu(scope, x, config.leaky_alpha)
        if training:
            x = dropout(scope, x, config.dropout_rate)

        x = conv2d(scope, x, self.conv2_weights.read(scope), [1, 2, 2, 1])
        x = bias_add(scope, x, self.conv2_biases.read(scope))
        x = leaky_relu(scope, x, config.leaky_alpha)
        if training:
            x = dropout(scope, x, config.dropout_rate)

        x = reshape(scope, x, [batch_size, config.flattened_size])

        logits = dense(scope, x, self.fc1_weights.read(scope))
        return bias_add(scope, logits, self.fc1_biases.read(scope))

    def __repr__(self) -> str:
        return (
            f"Discriminator(image_size={self.config.image_size}, "
            f"flattened_size={self.config.flattened_size})"
        )
