"""GraphContext: the handle through which every graph node is created.

A context wraps a ``tf.Graph`` together with:
- A name scope applied to every node it emits
- A status channel that records the first construction failure
- Registries for trainable variables, initial assigns and update ops

Contexts derived with ``with_name`` share the graph and all registries with
their parent; only the name scope differs.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Sequence

import tensorflow as tf

from gangraph.errors import GraphConstructionError


@dataclass(frozen=True)
class Status:
    """Outcome of the most recent failing node, or OK."""
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        return "OK" if self.ok else f"Error: {self.error}"


@dataclass
class _Registry:
    status: Status = field(default_factory=Status)
    trainable_variables: list[Any] = field(default_factory=list)
    assign_ops: list[Any] = field(default_factory=list)
    update_ops: list[Any] = field(default_factory=list)
    random_ops: int = 0
    variables: int = 0


def _node_name(node: Any) -> str:
    if isinstance(node, (tuple, list)):
        node = node[0]
    if isinstance(node, tf.Tensor):
        return node.op.name
    return getattr(node, "name", type(node).__name__)


class GraphContext:
    """Where new nodes are added.

    Args:
        graph: Graph to add nodes to (a fresh ``tf.Graph`` if None)
        seed: Graph-level seed; with a seed every random op gets a
            reproducible ``(seed, seed2)`` pair
        verbose: Print the building status of every emitted node

    Example:
        >>> ctx = GraphContext(seed=42)
        >>> x = ctx.constant([[1.0, 2.0]])
        >>> y = ctx.add_op("LeakyRelu", {"features": x}, {"alpha": 0.3})
        >>> with ctx.session() as sess:
        ...     sess.run(y)
    """

    def __init__(
        self,
        graph: tf.Graph | None = None,
        *,
        seed: int | None = None,
        verbose: bool = False
    ):
        self.graph = graph if graph is not None else tf.Graph()
        if seed is not None:
            self.graph.seed = seed
        self.verbose = verbose
        self._scope = ""
        self._registry = _Registry()

    @property
    def scope(self) -> str:
        """Name prefix of emitted nodes ('' at the root, else ends in '/')."""
        return self._scope

    def with_name(self, name: str) -> "GraphContext":
        """Return a context whose nodes are emitted under ``name/``."""
        if not name:
            raise ValueError("Scope name must be a non-empty string")
        scoped = copy.copy(self)
        scoped._scope = f"{self._scope}{name.strip('/')}/"
        return scoped

    # ------------------------------------------------------------------
    # Status channel
    # ------------------------------------------------------------------

    def status(self) -> Status:
        return self._registry.status

    @property
    def ok(self) -> bool:
        return self._registry.status.ok

    def log(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    # ------------------------------------------------------------------
    # Node creation
    # ------------------------------------------------------------------

    def add_op(
        self,
        kind: str,
        inputs: dict[str, Any],
        attrs: dict[str, Any] | None = None,
        name: str | None = None
    ) -> Any:
        """Emit one ``tf.raw_ops`` node.

        Args:
            kind: Op name as exposed by ``tf.raw_ops`` (e.g. "MatMul")
            inputs: Input arguments of the op, by argument name
            attrs: Attribute arguments of the op, by argument name
            name: Optional node name (uniquified within the scope)

        Returns:
            node: Output tensor, output tuple or ``tf.Operation``

        Raises:
            GraphConstructionError: If the op is unknown, the engine rejects
                it, or the context already failed
        """
        fn = getattr(tf.raw_ops, kind, None)
        if fn is None:
            self._check_status(kind)
            error = ValueError(f"Unknown op kind '{kind}'")
            self._registry.status = Status(error)
            raise GraphConstructionError(str(error))

        kwargs = dict(inputs)
        kwargs.update(attrs or {})
        if name is not None:
            kwargs['name'] = name
        return self._emit(kind, fn, kwargs)

    def constant(
        self,
        value: Any,
        dtype: tf.DType = tf.float32,
        name: str | None = None
    ) -> tf.Tensor:
        """Emit a ``Const`` node holding ``value``."""
        kwargs = {'value': value, 'dtype': dtype}
        if name is not None:
            kwargs['name'] = name
        return self._emit("Const", tf.constant, kwargs)

    def group(self, ops: Sequence[Any], name: str) -> tf.Operation:
        """Emit a ``NoOp`` that runs all ``ops`` before completing."""
        self._check_status("NoOp")
        with self.graph.control_dependencies(list(ops)):
            return self.add_op("NoOp", {}, name=name)

    def _emit(self, kind: str, fn: Any, kwargs: dict[str, Any]) -> Any:
        self._check_status(kind)

        with self.graph.as_default(), self.graph.name_scope(self._scope or None):
            try:
                node = fn(**kwargs)
            except (ValueError, TypeError, tf.errors.OpError) as e:
                self._registry.status = Status(e)
                self.log(f"Node building status: {self._registry.status}")
                raise GraphConstructionError(
                    f"Failed to add '{kind}' node in scope "
                    f"'{self._scope or '/'}': {e}"
                ) from e

        self.log(f"Node building status: OK ({_node_name(node)})")
        return node

    def _check_status(self, kind: str):
        if not self._registry.status.ok:
            raise GraphConstructionError(
                f"Cannot add '{kind}' node: graph context already failed "
                f"({self._registry.status.error})"
            )

    # ------------------------------------------------------------------
    # Random source
    # ------------------------------------------------------------------

    def random_seeds(self) -> tuple[int, int]:
        """Seed pair for the next random op.

        Returns (0, 0), i.e. non-deterministic, when the graph has no seed.
        """
        if self.graph.seed is None:
            return 0, 0
        self._registry.random_ops += 1
        return self.graph.seed, self._registry.random_ops

    # ------------------------------------------------------------------
    # Registries
    # ------------------------------------------------------------------

    def resource_name(self, name: str) -> str:
        """Graph-unique shared name for a new variable resource."""
        self._registry.variables += 1
        return f"{self._scope}{name}_{self._registry.variables}"

    def register_trainable(self, variable: Any, shape: Sequence[int]):
        if tuple(variable.shape) != tuple(shape):
            raise ValueError(
                f"Trainable '{variable.name}' registered with shape "
                f"{tuple(shape)} but has shape {tuple(variable.shape)}"
            )
        self._registry.trainable_variables.append(variable)

    def register_assign_op(self, op: tf.Operation):
        self._registry.assign_ops.append(op)

    def register_update_op(self, op: tf.Operation):
        self._registry.update_ops.append(op)

    @property
    def trainable_variables(self) -> tuple[Any, ...]:
        return tuple(self._registry.trainable_variables)

    @property
    def assign_ops(self) -> tuple[tf.Operation, ...]:
        return tuple(self._registry.assign_ops)

    @property
    def update_ops(self) -> tuple[tf.Operation, ...]:
        return tuple(self._registry.update_ops)

    def initializer(self) -> tf.Operation:
        """Op that runs every registered initial assignment."""
        return self.group(self._registry.assign_ops, name="init")

    def update_group(self) -> tf.Operation:
        """Op that runs every registered running-statistics update."""
        return self.group(self._registry.update_ops, name="update_ops")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def session(self) -> tf.compat.v1.Session:
        return tf.compat.v1.Session(graph=self.graph)

    def __repr__(self) -> str:
        return (
            f"GraphContext(scope='{self._scope or '/'}', "
            f"status={self._registry.status}, "
            f"trainable={len(self._registry.trainable_variables)}, "
            f"assigns={len(self._registry.assign_ops)}, "
            f"updates={len(self._registry.update_ops)})"
        )
