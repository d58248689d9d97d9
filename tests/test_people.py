"""Tests for person grouping."""

from conftest import make_face, make_photo

from photo_culling.review.people import group_people, has_faces


def test_two_faces_one_group():
    low = make_face("p1", quality=0.4)
    high = make_face("p1", quality=0.9)
    photos = [make_photo("a", faces=[low]), make_photo("b", faces=[high])]

    groups = group_people(photos)

    assert len(groups) == 1
    group = groups[0]
    assert group.group_id == "p1"
    assert group.photo_count == 2
    assert [p.id for p in group.photos] == ["a", "b"]
    assert group.faces == [low, high]
    assert group.representative_face is high


def test_photo_counted_once_per_group():
    photo = make_photo("a", faces=[make_face("p1"), make_face("p1"), make_face("p2")])
    groups = {g.group_id: g for g in group_people([photo])}
    assert groups["p1"].photo_count == 1
    assert len(groups["p1"].photos) == 1
    assert len(groups["p1"].faces) == 2
    assert groups["p2"].photo_count == 1


def test_groups_in_first_seen_order():
    photos = [
        make_photo("a", faces=[make_face("p2")]),
        make_photo("b", faces=[make_face("p1"), make_face("p2")]),
    ]
    assert [g.group_id for g in group_people(photos)] == ["p2", "p1"]


def test_representative_requires_strictly_higher_quality():
    first = make_face("p1", quality=0.8)
    tie = make_face("p1", quality=0.8)
    unknown = make_face("p1")
    groups = group_people([make_photo("a", faces=[first, tie, unknown])])
    assert groups[0].representative_face is first


def test_quality_replaces_unknown_representative():
    unknown = make_face("p1")
    scored = make_face("p1", quality=0.1)
    groups = group_people([make_photo("a", faces=[unknown]), make_photo("b", faces=[scored])])
    assert groups[0].representative_face is scored


def test_faces_without_group_are_ignored():
    photos = [make_photo("a", faces=[make_face(None, quality=0.9)])]
    assert group_people(photos) == []
    assert has_faces(photos)
    assert not has_faces([make_photo("b")])
