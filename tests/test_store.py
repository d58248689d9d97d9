"""Tests for the in-memory photo store."""

import pytest
from conftest import make_photo

from photo_culling.collection.store import PhotoStore
from photo_culling.errors import ValidationError
from photo_culling.models import ColorLabel, ScoreType


def test_append_keeps_upload_order():
    store = PhotoStore([make_photo("b"), make_photo("a")])
    store.append([make_photo("c")])
    assert [p.id for p in store.photos()] == ["b", "a", "c"]


def test_ids_are_never_reused():
    store = PhotoStore([make_photo("a")])
    with pytest.raises(ValidationError):
        store.append([make_photo("a")])
    store.remove("a")
    with pytest.raises(ValidationError):
        store.append([make_photo("a")])


def test_upsert_replaces_in_place():
    store = PhotoStore([make_photo("a"), make_photo("b")])
    store.upsert(make_photo("a", ai_score=9.0))
    assert [p.id for p in store.photos()] == ["a", "b"]
    assert store.get("a").ai_score == 9.0


def test_edits_replace_records():
    store = PhotoStore([make_photo("a")])
    before = store.get("a")
    store.toggle_selection("a")
    assert store.get("a").selected is True
    assert before.selected is False


def test_update_unknown_id_is_ignored():
    store = PhotoStore([make_photo("a")])
    assert store.cull("missing") is None
    assert len(store) == 1


def test_update_score_marks_manual():
    store = PhotoStore([make_photo("a", ai_score=4.0)])
    photo = store.update_score("a", 8)
    assert photo.ai_score == 8.0
    assert photo.score_type == ScoreType.MANUAL


def test_cull_adds_tag_once():
    store = PhotoStore([make_photo("a")])
    store.cull("a")
    store.cull("a")
    assert store.get("a").tags.to_list() == ["culled"]


def test_select_and_deselect_all():
    store = PhotoStore([make_photo("a"), make_photo("b")])
    store.select_all()
    assert len(store.selected()) == 2
    store.deselect_all()
    assert store.selected() == []


def test_keep_and_reject_labels():
    store = PhotoStore([make_photo("a"), make_photo("b")])
    store.mark_keep("a")
    store.mark_reject("b")
    assert store.get("a").color_label == ColorLabel.GREEN
    assert store.get("b").color_label == ColorLabel.RED
    store.set_color_label("a", None)
    assert store.get("a").color_label is None


def test_remove_filenames_returns_removed():
    store = PhotoStore([make_photo("a"), make_photo("b"), make_photo("c")])
    removed = store.remove_filenames(["a.jpg", "c.jpg", "zzz.jpg"])
    assert sorted(p.id for p in removed) == ["a", "c"]
    assert [p.id for p in store.photos()] == ["b"]


def test_replace_all():
    store = PhotoStore([make_photo("a"), make_photo("b")])
    store.replace_all([make_photo("b", ai_score=3.0)])
    assert [p.id for p in store.photos()] == ["b"]
    assert "a" not in store


def test_unassign_album_only_touches_that_album():
    store = PhotoStore([make_photo("a"), make_photo("b")])
    store.assign_album(["a"], "wedding")
    store.assign_album(["b"], "party")
    store.unassign_album(["a", "b"], "wedding")
    assert store.get("a").album_id is None
    assert store.get("b").album_id == "party"
