from mosaicflow.geometry import Rect
from mosaicflow.spatial_index import SpatialIndex


def grid_items():
    return [
        (f"{i}-{j}", Rect(i * 100, j * 100, 10, 10))
        for i in range(5)
        for j in range(5)
    ]


def test_query_returns_touching_items():
    index = SpatialIndex()
    for item_id, rect in grid_items():
        index.insert(item_id, rect)

    hits = index.query(Rect(0, 0, 150, 150))

    assert sorted(hits) == ["0-0", "0-1", "1-0", "1-1"]


def test_index_splits_when_full():
    index = SpatialIndex()
    for item_id, rect in grid_items():
        index.insert(item_id, rect)

    stats = index.stats()
    assert stats["total_items"] == 25
    assert stats["quad_count"] > 1
    assert stats["max_depth"] >= 1


def test_rebuild_replaces_contents():
    index = SpatialIndex()
    index.insert("old", Rect(0, 0, 10, 10))

    index.rebuild([("far", Rect(50000, 50000, 10, 10))])

    assert index.query(Rect(0, 0, 10, 10)) == []
    assert index.query(Rect(50000, 50000, 1, 1)) == ["far"]
