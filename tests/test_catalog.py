"""Tests for the SQLite picture catalog and the compiled queries it runs."""

import sqlite3
import threading

import pytest

from core.catalog import CatalogError, PictureCatalog, QueryCancelledError, register_functions
from core.catalog.sql_functions import regex, rinstr, similar_hashes, similarity_confidence
from core.hashing import Hash
from core.query import TagQuerySyntaxError, compile_query


@pytest.fixture
def tagged(catalog):
    """Catalog with a few pictures, tags, a tag type and a compound tag."""

    person = catalog.insert_tag_type("person", "@")
    tags = {
        "car": catalog.insert_tag("car"),
        "truck": catalog.insert_tag("truck"),
        "alice": catalog.insert_tag("alice", type_id=person.id),
        "bob": catalog.insert_tag("bob"),
        "vehicle": catalog.insert_tag("vehicle", definition="car OR truck"),
    }
    pictures = {
        "red_car": catalog.insert_picture("/pics/red_car.PNG", Hash(0)),
        "truck": catalog.insert_picture("/pics/truck.jpg", Hash(0b111)),
        "alice": catalog.insert_picture("/pics/people/alice.jpeg", Hash((1 << 64) - 1)),
        "untagged": catalog.insert_picture("/pics/untagged.gif"),
    }
    catalog.attach_tags(pictures["red_car"].id, [tags["car"].id])
    catalog.attach_tags(pictures["truck"].id, [tags["truck"].id, tags["bob"].id])
    catalog.attach_tags(pictures["alice"].id, [tags["alice"].id, tags["car"].id])
    return catalog


def _names(catalog, text, **kwargs):
    snapshot = catalog.snapshot()
    compiled = compile_query(text, snapshot.definitions, snapshot, **kwargs)
    return [picture.path.name for picture in catalog.query_pictures(compiled)]


# -- tag queries --

def test_plain_tag(tagged):
    assert _names(tagged, "car") == ["red_car.PNG", "alice.jpeg"]


def test_compound_tag(tagged):
    assert _names(tagged, "vehicle") == ["red_car.PNG", "truck.jpg", "alice.jpeg"]


def test_negation_and_conjunction(tagged):
    assert _names(tagged, "vehicle -bob") == ["red_car.PNG", "alice.jpeg"]
    assert _names(tagged, "NOT vehicle") == ["untagged.gif"]


def test_typed_tag(tagged):
    assert _names(tagged, "@alice") == ["alice.jpeg"]
    assert _names(tagged, "alice") == ["alice.jpeg"]


def test_unknown_tag_matches_nothing(tagged):
    assert _names(tagged, "boat") == []
    assert len(_names(tagged, "-boat")) == 4


def test_pruned_query_returns_empty(tagged):
    assert _names(tagged, "car -car") == []


def test_tautology_returns_everything(tagged):
    assert len(_names(tagged, "car OR -car")) == 4


# -- pseudo-tags --

def test_no_tags(tagged):
    assert _names(tagged, "#no_tags") == ["untagged.gif"]
    assert _names(tagged, "vehicle AND NOT #no_tags") == ["red_car.PNG", "truck.jpg", "alice.jpeg"]


def test_extension_case_insensitive_by_default(tagged):
    assert _names(tagged, "#ext:^png$") == ["red_car.PNG"]
    assert _names(tagged, '#ext:"^png$"s') == []
    assert _names(tagged, "#ext:^jpe?g$") == ["truck.jpg", "alice.jpeg"]


def test_name_and_path(tagged):
    assert _names(tagged, "#name:^a") == ["alice.jpeg"]
    assert _names(tagged, "#path:/people/") == ["alice.jpeg"]
    assert _names(tagged, "#name:people") == []


def test_regex_escapes_in_quoted_pattern(tagged):
    assert _names(tagged, r'#name:"^\w+\.jpg$"') == ["truck.jpg"]


def test_no_file(catalog, tmp_path):
    present = tmp_path / "here.png"
    present.write_bytes(b"")
    catalog.insert_picture(present)
    catalog.insert_picture(tmp_path / "gone.png")
    assert _names(catalog, "#no_file") == ["gone.png"]


def test_similar_to(tagged):
    assert _names(tagged, '#similar_to:"/pics/red_car.PNG"') == ["red_car.PNG", "truck.jpg"]
    assert _names(tagged, '#similar_to:"/pics/untagged.gif"') == []
    assert _names(tagged, '#similar_to:"/not/registered.png"') == []


# -- invariants --

def test_compound_tag_cannot_be_attached(tagged):
    vehicle = tagged.lookup_tag_by_label("vehicle")
    with pytest.raises(CatalogError):
        tagged.attach_tags(1, [vehicle])


def test_used_tag_cannot_become_compound(tagged):
    car = tagged.lookup_tag_by_label("car")
    with pytest.raises(CatalogError):
        tagged.set_tag_definition(car, "truck")


def test_unused_tag_can_become_compound(tagged):
    tag = tagged.insert_tag("motor")
    tagged.set_tag_definition(tag.id, "car OR truck")
    assert tagged.definition_of("motor") == "car OR truck"
    assert _names(tagged, "motor") == ["red_car.PNG", "truck.jpg", "alice.jpeg"]


def test_definitions_are_validated(catalog):
    with pytest.raises(TagQuerySyntaxError):
        catalog.insert_tag("broken", definition="a (")
    with pytest.raises(TagQuerySyntaxError):
        catalog.insert_tag("bad_pattern", definition='#name:"("')


def test_invalid_labels_and_symbols(catalog):
    with pytest.raises(CatalogError):
        catalog.insert_tag("two words")
    with pytest.raises(CatalogError):
        catalog.insert_tag_type("bad", "ab")


def test_missing_tag_cannot_be_attached(tagged):
    with pytest.raises(CatalogError):
        tagged.attach_tags(1, [999])


def test_detach_tags(tagged):
    picture = tagged.get_picture_by_path("/pics/truck.jpg")
    tagged.detach_tags(picture.id, [tagged.lookup_tag_by_label("bob")])
    assert {tag.label for tag in tagged.get_picture_tags(picture.id)} == {"truck"}


def test_snapshot_is_detached_copy(tagged):
    snapshot = tagged.snapshot()
    tagged.insert_tag("later", definition="car")
    assert snapshot.definition_of("later") is None
    assert snapshot.definition_of("vehicle") == "car OR truck"
    assert snapshot.tag_type_symbols() == frozenset({"@"})
    assert tagged.tag_definitions()["later"] == "car"


def test_snapshot_mappings_are_read_only(tagged):
    snapshot = tagged.snapshot()
    with pytest.raises(TypeError):
        snapshot.definitions["x"] = "y"
    with pytest.raises(TypeError):
        snapshot.tag_ids["x"] = 1


# -- pictures and hashes --

def test_high_bit_hash_round_trip(catalog):
    picture = catalog.insert_picture("/a.png", Hash(1 << 63 | 5))
    assert catalog.get_picture(picture.id).hash == Hash(1 << 63 | 5)


def test_iter_pictures_missing_hash(tagged):
    assert [p.path.name for p in tagged.iter_pictures(missing_hash_only=True)] == ["untagged.gif"]
    tagged.update_picture_hash(tagged.get_picture_by_path("/pics/untagged.gif").id, Hash(9))
    assert list(tagged.iter_pictures(missing_hash_only=True)) == []


def test_is_file_registered(tagged):
    assert tagged.is_file_registered("/pics/truck.jpg")
    assert not tagged.is_file_registered("/pics/other.jpg")


def test_get_similar_pictures(tagged):
    reference = tagged.get_picture_by_path("/pics/red_car.PNG")
    similar = tagged.get_similar_pictures(reference.hash, exclude=reference)
    assert [s.picture.path.name for s in similar] == ["truck.jpg"]
    assert similar[0].distance == 3
    assert similar[0].confidence == pytest.approx(7.9 / 11)


def test_similar_pictures_ordered_by_confidence(catalog):
    catalog.insert_picture("/far.png", Hash(0b11111))
    catalog.insert_picture("/near.png", Hash(0b1))
    catalog.insert_picture("/same.png", Hash(0))
    assert [s.picture.path.name for s in catalog.get_similar_pictures(Hash(0))] == ["same.png", "near.png", "far.png"]


# -- cancellation --

def test_cancelled_query(tagged):
    snapshot = tagged.snapshot()
    compiled = compile_query("-boat", snapshot.definitions, snapshot)
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(QueryCancelledError):
        tagged.query_pictures(compiled, cancel=cancel)


# -- SQL functions --

def test_regex_function():
    assert regex("Photo.PNG", "png", "i") == 1
    assert regex("Photo.PNG", "png", "s") == 0
    assert regex("abc", "b", "i") == 1
    assert regex(None, "b", "i") == 0


def test_rinstr_function():
    assert rinstr("a.b.c", ".") == 4
    assert rinstr("abc", ".") == 0


def test_hash_functions_use_signed_values():
    assert similar_hashes(-1, Hash((1 << 64) - 2).to_signed()) == 1
    assert similar_hashes(0, -1) == 0
    assert similarity_confidence(0, 0) == pytest.approx(10.9 / 11)
    assert similar_hashes(None, 0) == 0


def test_functions_registered_on_plain_connection():
    conn = sqlite3.connect(":memory:")
    register_functions(conn)
    assert conn.execute("SELECT REGEX('hello', '^h', 's'), RINSTR('a/b/c', '/')").fetchone() == (1, 4)
    conn.close()


def test_catalog_file_persists(tmp_path):
    path = tmp_path / "db" / "catalog.sqlite3"
    with PictureCatalog(path) as catalog:
        catalog.insert_tag("cat")
    with PictureCatalog(path) as catalog:
        assert catalog.lookup_tag_by_label("cat") == 1
