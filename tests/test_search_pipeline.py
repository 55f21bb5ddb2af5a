"""Tests for the search pipeline bridging the compiler and the catalog."""

import pytest

from config.settings import QuerySettings
from core.catalog import PictureCatalog
from core.hashing import Hash
from core.query import TagQuerySyntaxError, TagQueryTooLargeError
from core.search import SearchCancelledError, SearchPipeline


@pytest.fixture
def pipeline(catalog):
    car = catalog.insert_tag("car")
    truck = catalog.insert_tag("truck")
    catalog.insert_tag("vehicle", definition="car OR truck")
    first = catalog.insert_picture("/pics/a.png", Hash(0))
    second = catalog.insert_picture("/pics/b.png", Hash(1))
    catalog.insert_picture("/pics/c.png")
    catalog.attach_tags(first.id, [car.id])
    catalog.attach_tags(second.id, [truck.id])
    pipeline = SearchPipeline(catalog)
    yield pipeline
    pipeline.shutdown()


def test_search(pipeline):
    assert [p.path.name for p in pipeline.search("vehicle")] == ["a.png", "b.png"]


def test_compile_sees_new_definitions(pipeline):
    pipeline.catalog.insert_tag("only_cars", definition="car -truck")
    assert [p.path.name for p in pipeline.search("only_cars")] == ["a.png"]


def test_settings_are_applied(catalog):
    catalog.insert_tag("wide", definition="a b c d e")
    pipeline = SearchPipeline(catalog, settings=QuerySettings(max_nodes=3))
    try:
        with pytest.raises(TagQueryTooLargeError):
            pipeline.compile("wide")
    finally:
        pipeline.shutdown()


def test_submit_runs_on_worker(pipeline):
    handle = pipeline.submit("-vehicle")
    assert [p.path.name for p in handle.result(timeout=5)] == ["c.png"]


def test_submit_raises_compile_errors_immediately(pipeline):
    with pytest.raises(TagQuerySyntaxError):
        pipeline.submit("vehicle (")


def test_cancelled_search(pipeline):
    # Hold the catalog lock so the worker cannot start before cancellation.
    with pipeline.catalog._lock:
        handle = pipeline.submit("-boat")
        handle.cancel_event.set()
    with pytest.raises(SearchCancelledError):
        handle.result(timeout=5)


def test_similar_to(pipeline):
    reference = pipeline.catalog.get_picture_by_path("/pics/a.png")
    assert [s.picture.path.name for s in pipeline.similar_to(reference)] == ["b.png"]


def test_similar_to_without_hash(pipeline):
    assert pipeline.similar_to(pipeline.catalog.get_picture_by_path("/pics/c.png")) == []


def test_concurrent_searches_share_catalog(tmp_path):
    with PictureCatalog(tmp_path / "catalog.sqlite3") as catalog:
        tag = catalog.insert_tag("x")
        for i in range(20):
            picture = catalog.insert_picture(f"/pics/{i}.png")
            if i % 2:
                catalog.attach_tags(picture.id, [tag.id])
        pipeline = SearchPipeline(catalog, max_workers=4)
        try:
            handles = [pipeline.submit("x") for _ in range(8)]
            assert all(len(handle.result(timeout=10)) == 10 for handle in handles)
        finally:
            pipeline.shutdown()
