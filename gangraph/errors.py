"""Error taxonomy for graph construction.

All errors are raised at graph-construction time. A context that raised is
left with an error status and its graph should be discarded and rebuilt.
"""

from __future__ import annotations


class GraphError(Exception):
    """Base class for every error raised while building a graph."""


class UnsupportedShapeError(GraphError, ValueError):
    """An initializer was given a shape whose rank it cannot handle."""


class ShapeMismatchError(GraphError, ValueError):
    """Input and weight ranks or dimensions are incompatible."""


class GraphConstructionError(GraphError):
    """The graph engine failed to add a node.

    The engine's own exception is chained as ``__cause__``.
    """
