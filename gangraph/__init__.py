"""gangraph: symbolic layer builders for TensorFlow graphs.

Public API exports for the graph context, stateful variables, layer
builders, and the generator / discriminator networks.
"""

# Graph primitives
from gangraph.graph import (
    GraphContext,
    Status,
    StatefulVariable,
    assign,
    assign_sub,
)

# Errors
from gangraph.errors import (
    GraphError,
    GraphConstructionError,
    ShapeMismatchError,
    UnsupportedShapeError,
)

# Configuration
from gangraph.config import GANConfig

# Layers
from gangraph.layers import (
    BatchNormalization,
    FusedBatchNorm,
    Moments,
    batch_normalization,
    bias_add,
    conv2d,
    conv2d_transpose,
    dense,
    discriminator_loss,
    dropout,
    generator_loss,
    glorot_limit,
    glorot_uniform,
    leaky_relu,
    moments,
    ones,
    reshape,
    scaled_normal,
    sigmoid_cross_entropy_with_logits,
    zeros,
)

# Networks
from gangraph.network import Discriminator, Generator

__version__ = "0.1.0"

__all__ = [
    # Graph
    "GraphContext",
    "Status",
    "StatefulVariable",
    "assign",
    "assign_sub",

    # Errors
    "GraphError",
    "GraphConstructionError",
    "ShapeMismatchError",
    "UnsupportedShapeError",

    # Config
    "GANConfig",

    # Layers
    "BatchNormalization",
    "FusedBatchNorm",
    "Moments",
    "batch_normalization",
    "bias_add",
    "conv2d",
    "conv2d_transpose",
    "dense",
    "discriminator_loss",
    "dropout",
    "generator_loss",
    "glorot_limit",
    "glorot_uniform",
    "leaky_relu",
    "moments",
    "ones",
    "reshape",
    "scaled_normal",
    "sigmoid_cross_entropy_with_logits",
    "zeros",

    # Networks
    "Generator",
    "Discriminator",
]
