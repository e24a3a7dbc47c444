"""Generator and discriminator networks."""

from gangraph.network.generator import Generator
from gangraph.network.discriminator import Discriminator

__all__ = [
    "Generator",
    "Discriminator",
]
