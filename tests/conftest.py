from __future__ import annotations

from typing import Any, Callable

import pytest

from gangraph.graph import GraphContext


@pytest.fixture
def ctx() -> GraphContext:
    return GraphContext(seed=42)


@pytest.fixture
def evaluate() -> Callable[..., Any]:
    """Run a context's initial assigns, then fetch ``fetches`` in one session."""

    def _evaluate(context: GraphContext, fetches: Any) -> Any:
        init = context.initializer()
        with context.session() as sess:
            sess.run(init)
            return sess.run(fetches)

    return _evaluate
