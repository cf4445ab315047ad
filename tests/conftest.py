import itertools

import pytest

from mosaicflow.graph import GraphModel
from mosaicflow.settings import EngineSettings


def _counter_ids():
    counter = itertools.count(1)
    return lambda: f"n{next(counter)}"


@pytest.fixture
def graph():
    """An empty canvas graph with predictable ids (n1, n2, ...)."""
    return GraphModel(id_factory=_counter_ids())


@pytest.fixture
def cascade_graph():
    return GraphModel(
        settings=EngineSettings(group_delete_policy="cascade"),
        id_factory=_counter_ids(),
    )
