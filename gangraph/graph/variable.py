"""StatefulVariable: a mutable tensor slot owned by a layer or network."""

from __future__ import annotations

from typing import Callable, Sequence

import tensorflow as tf

from gangraph.errors import ShapeMismatchError
from gangraph.graph.context import GraphContext


Initializer = Callable[[GraphContext, Sequence[int]], tf.Tensor]


class StatefulVariable:
    """A resource variable created once and mutated only through assign ops.

    Args:
        ctx: Context the variable (and its initial assign) is created in
        name: Node name of the variable
        shape: Static shape of the variable
        initializer: Function producing the initial value, assigned at
            construction time (None = no initial assign)
        trainable: Register the variable with the context's trainable set

    Example:
        >>> gamma = StatefulVariable(ctx, "gamma", [64], ones, trainable=True)
        >>> scaled = ctx.add_op("Mul", {"x": x, "y": gamma.read(ctx)})
    """

    def __init__(
        self,
        ctx: GraphContext,
        name: str,
        shape: Sequence[int],
        initializer: Initializer | None = None,
        *,
        trainable: bool = False
    ):
        self.name = name
        self.shape = tuple(int(d) for d in shape)
        if any(d < 0 for d in self.shape):
            raise ShapeMismatchError(
                f"Variable '{name}' has negative dimension in shape {self.shape}"
            )
        self.dtype = tf.float32
        self.trainable = trainable

        # The initial value is built and checked before the handle exists so a
        # failing initializer leaves nothing registered.
        initial_value = None
        if initializer is not None:
            initial_value = initializer(ctx, self.shape)
            _check_value_shape(self, initial_value)

        self.handle = ctx.add_op(
            "VarHandleOp",
            {},
            {
                'dtype': self.dtype,
                'shape': list(self.shape),
                'shared_name': ctx.resource_name(name),
            },
            name=name,
        )

        self.initial_assign = None
        if initial_value is not None:
            self.initial_assign = assign(
                ctx, self, initial_value, name=f"{name}_assign"
            )
        if trainable:
            ctx.register_trainable(self, self.shape)

    def read(self, ctx: GraphContext) -> tf.Tensor:
        """Emit a read of the current value."""
        value = ctx.add_op(
            "ReadVariableOp",
            {'resource': self.handle},
            {'dtype': self.dtype},
            name=f"{self.name}_read",
        )
        value.set_shape(self.shape)
        return value

    def __repr__(self) -> str:
        trainable_str = "trainable" if self.trainable else "frozen"
        return f"StatefulVariable('{self.name}', shape={self.shape}, {trainable_str})"


def _check_value_shape(variable: StatefulVariable, value: tf.Tensor):
    value_shape = value.shape
    if not value_shape.is_compatible_with(variable.shape):
        raise ShapeMismatchError(
            f"Cannot assign value of shape {value_shape} to variable "
            f"'{variable.name}' of shape {variable.shape}"
        )


def assign(
    ctx: GraphContext,
    variable: StatefulVariable,
    value: tf.Tensor,
    name: str | None = None
) -> tf.Operation:
    """Emit an assignment of ``value`` and register it as an initial assign."""
    _check_value_shape(variable, value)
    op = ctx.add_op(
        "AssignVariableOp",
        {'resource': variable.handle, 'value': value},
        name=name,
    )
    ctx.register_assign_op(op)
    return op


def assign_sub(
    ctx: GraphContext,
    variable: StatefulVariable,
    delta: tf.Tensor,
    name: str | None = None
) -> tf.Operation:
    """Emit ``variable -= delta``. The caller decides how to register it."""
    _check_value_shape(variable, delta)
    return ctx.add_op(
        "AssignSubVariableOp",
        {'resource': variable.handle, 'value': delta},
        name=name,
    )
