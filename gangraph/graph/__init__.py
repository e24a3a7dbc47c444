"""Graph primitives: the building context and stateful variables.

Core primitives:
- GraphContext: Where nodes are added, plus status and op registries
- StatefulVariable: Resource variable owned by a layer or network
- assign / assign_sub: Explicit mutations of a variable
"""

from .context import GraphContext, Status
from .variable import StatefulVariable, Initializer, assign, assign_sub

__all__ = [
    'GraphContext',
    'Status',
    'StatefulVariable',
    'Initializer',
    'assign',
    'assign_sub',
]
