"""Layer builders: initializers, moments, normalization, stateless ops, losses."""

from gangraph.layers.initializers import (
    glorot_limit,
    glorot_uniform,
    scaled_normal,
    zeros,
    ones,
)
from gangraph.layers.moments import Moments, moments
from gangraph.layers.normalization import (
    BatchNormalization,
    FusedBatchNorm,
    batch_normalization,
)
from gangraph.layers.ops import (
    bias_add,
    conv2d,
    conv2d_transpose,
    dense,
    dropout,
    leaky_relu,
    reshape,
)
from gangraph.layers.losses import (
    discriminator_loss,
    generator_loss,
    sigmoid_cross_entropy_with_logits,
)

__all__ = [
    "glorot_limit",
    "glorot_uniform",
    "scaled_normal",
    "zeros",
    "ones",
    "Moments",
    "moments",
    "BatchNormalization",
    "FusedBatchNorm",
    "batch_normalization",
    "bias_add",
    "conv2d",
    "conv2d_transpose",
    "dense",
    "dropout",
    "leaky_relu",
    "reshape",
    "discriminator_loss",
    "generator_loss",
    "sigmoid_cross_entropy_with_logits",
]
