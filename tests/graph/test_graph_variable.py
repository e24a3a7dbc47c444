"""Tests for gangraph.graph.variable."""

import numpy as np
import pytest

from gangraph.errors import ShapeMismatchError, UnsupportedShapeError
from gangraph.graph import GraphContext, StatefulVariable, assign, assign_sub
from gangraph.layers import glorot_uniform, ones, zeros


def test_trainable_registration(ctx: GraphContext) -> None:
    w = StatefulVariable(ctx, "w", [2, 3], zeros, trainable=True)
    m = StatefulVariable(ctx, "m", [3], zeros)

    assert ctx.trainable_variables == (w,)
    assert w.trainable
    assert not m.trainable
    assert w.shape == (2, 3)


def test_initial_assign_is_registered(ctx: GraphContext, evaluate) -> None:
    w = StatefulVariable(ctx, "w", [2, 3], ones, trainable=True)
    no_init = StatefulVariable(ctx, "raw", [2])

    assert w.initial_assign is not None
    assert no_init.initial_assign is None
    assert ctx.assign_ops == (w.initial_assign,)

    out = evaluate(ctx, w.read(ctx))
    np.testing.assert_array_equal(out, np.ones((2, 3), dtype=np.float32))


def test_read_has_static_shape(ctx: GraphContext) -> None:
    w = StatefulVariable(ctx.with_name("generator"), "filter", [5, 5, 4, 8], zeros)
    value = w.read(ctx)

    assert value.shape.as_list() == [5, 5, 4, 8]
    assert w.handle.op.name == "generator/filter"


def test_assign_rejects_wrong_shape(ctx: GraphContext) -> None:
    w = StatefulVariable(ctx, "w", [2, 3])

    with pytest.raises(ShapeMismatchError, match="Cannot assign"):
        assign(ctx, w, ctx.constant(np.zeros((3, 2), dtype=np.float32)))


def _wrong_size(context, shape):
    return context.constant(np.zeros((1,), dtype=np.float32))


def test_initializer_with_wrong_shape_fails_fast(ctx: GraphContext) -> None:
    with pytest.raises(ShapeMismatchError):
        StatefulVariable(ctx, "w", [4], _wrong_size)


@pytest.mark.parametrize(
    "shape, initializer, error",
    [
        ([3, 3, 3], glorot_uniform, UnsupportedShapeError),
        ([4], _wrong_size, ShapeMismatchError),
    ],
)
def test_failed_initializer_leaves_no_variable(
    ctx: GraphContext, shape: list, initializer, error: type
) -> None:
    with pytest.raises(error):
        StatefulVariable(ctx, "w", shape, initializer, trainable=True)

    assert ctx.ok
    assert ctx.trainable_variables == ()
    assert ctx.assign_ops == ()
    assert not any(op.type == "VarHandleOp" for op in ctx.graph.get_operations())


def test_negative_dimension_rejected(ctx: GraphContext) -> None:
    with pytest.raises(ShapeMismatchError, match="negative"):
        StatefulVariable(ctx, "w", [2, -1])


def test_assign_sub_mutates_across_runs(ctx: GraphContext) -> None:
    v = StatefulVariable(ctx, "v", [3], zeros)
    update = assign_sub(ctx, v, ctx.constant([1.0, 2.0, 3.0]))
    value = v.read(ctx)

    init = ctx.initializer()
    with ctx.session() as sess:
        sess.run(init)
        sess.run(update)
        sess.run(update)
        out = sess.run(value)

    np.testing.assert_allclose(out, [-2.0, -4.0, -6.0])
    # assign_sub is never registered on its own
    assert ctx.update_ops == ()


def test_repr() -> None:
    ctx = GraphContext()
    w = StatefulVariable(ctx, "gamma", [4], ones, trainable=True)
    assert repr(w) == "StatefulVariable('gamma', shape=(4,), trainable)"
