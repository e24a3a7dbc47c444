"""Immutable network configuration."""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class GANConfig:
    """Hyperparameters shared by the generator and discriminator.

    Args:
        noise_dim: Length of the generator's noise vector
        num_channels: Channels of the generated / discriminated images
        image_size: Height and width of the images (multiple of 4)
        momentum: Decay of the running statistics in batch normalization
        epsilon: Variance epsilon used by every normalization layer
        leaky_alpha: Negative slope of the leaky ReLU activations
        dropout_rate: Fraction of discriminator activations dropped
        init_stddev: Scale of the generator's dense weight initializer
        seed: Graph-level random seed (None = non-deterministic)
    """
    noise_dim: int = 100
    num_channels: int = 1
    image_size: int = 28
    momentum: float = 0.8
    epsilon: float = 1e-3
    leaky_alpha: float = 0.3
    dropout_rate: float = 0.3
    init_stddev: float = 0.01
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.noise_dim < 1:
            raise ValueError(f"noise_dim must be at least 1, got {self.noise_dim}")
        if self.num_channels < 1:
            raise ValueError(
                f"num_channels must be at least 1, got {self.num_channels}"
            )
        if self.image_size < 4 or self.image_size % 4 != 0:
            raise ValueError(
                f"image_size must be a positive multiple of 4, got {self.image_size}"
            )
        if not 0.0 <= self.momentum <= 1.0:
            raise ValueError(
                f"momentum must be between 0.0 and 1.0, got {self.momentum}"
            )
        if self.epsilon <= 0.0:
            raise ValueError(f"epsilon must be positive, got {self.epsilon}")
        if not 0.0 <= self.dropout_rate < 1.0:
            raise ValueError(
                f"dropout_rate must be in [0.0, 1.0), got {self.dropout_rate}"
            )

    @property
    def base_size(self) -> int:
        """Spatial size of the generator's first feature map."""
        return self.image_size // 4

    @property
    def units(self) -> int:
        """Width of the generator's dense layer."""
        return self.base_size * self.base_size * 256

    @property
    def flattened_size(self) -> int:
        """Width of the discriminator's flattened feature vector."""
        return self.base_size * self.base_size * 128

    def hash(self) -> str:
        """Deterministic 8-character hex digest of every field."""
        payload = json.dumps(asdict(self), sort_keys=True)
        return hashlib.sha256(payload.encode()).hexdigest()[:8]
