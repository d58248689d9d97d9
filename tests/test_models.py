"""Tests for data models."""

import numpy as np
from conftest import make_photo

from photo_culling.models import (
    AnalysisProgress,
    CategoryFilter,
    ColorLabel,
    DuplicateCluster,
    Face,
    FaceSummary,
    ScoreType,
    TagSet,
)


def test_tagset_keeps_first_insertion_order():
    tags = TagSet(["blurry", "raw", "blurry"])
    tags.add("duplicate")
    tags.add("raw")
    assert tags.to_list() == ["blurry", "raw", "duplicate"]
    assert len(tags) == 3


def test_tagset_remove_missing_is_noop():
    tags = TagSet(["raw"])
    tags.remove("culled")
    tags.remove("raw")
    assert tags == set()


def test_tagset_copy_is_independent():
    tags = TagSet(["raw"])
    other = tags.copy()
    other.add("culled")
    assert "culled" not in tags
    assert other == {"raw", "culled"}


def test_face_from_dict_bbox_list():
    face = Face.from_dict({"bbox": [1, 2, 30, 40], "face_quality": 0.8, "same_person_group": 3})
    assert face.bbox == (1.0, 2.0, 30.0, 40.0)
    assert face.face_quality == 0.8
    assert face.same_person_group == "3"


def test_face_from_dict_box_fields():
    face = Face.from_dict({"x": 5, "y": 6, "width": 20, "height": 25, "emotion": ""})
    assert face.bbox == (5.0, 6.0, 20.0, 25.0)
    assert face.emotion is None
    assert face.same_person_group is None


def test_face_summary_closed_eyes():
    summary = FaceSummary.from_dict(
        {"total_faces": 3, "issues": {"closed_eyes": 2}, "quality_stats": {"average_quality": 0.7}}
    )
    assert summary.closed_eyes == 2
    assert summary.average_quality == 0.7
    assert FaceSummary().closed_eyes == 0


def test_photo_stars_and_analyzed():
    assert make_photo("a", ai_score=7.0).stars == 3.5
    assert not make_photo("b").is_analyzed
    assert make_photo("c", ai_score=1.0).is_analyzed


def test_with_analysis_maps_service_fields():
    photo = make_photo("a", tags=["raw"])
    result = {
        "ai_score": 8.2,
        "tags": ["blurry", "raw"],
        "color_label": "green",
        "caption": "Bride and groom",
        "blip_highlights": ["first kiss"],
        "blip_flags": ["motion blur"],
        "clip_vector": [0.1, 0.2, 0.3],
        "phash": "ff00",
        "approved": True,
        "faces": [{"bbox": [0, 0, 5, 5], "same_person_group": "p1"}],
        "face_summary": {"total_faces": 1, "issues": {}},
    }
    updated = photo.with_analysis(result, ScoreType.BASIC)

    assert updated.ai_score == 8.2
    assert updated.score_type == ScoreType.BASIC
    assert updated.tags.to_list() == ["raw", "blurry"]
    assert updated.color_label == ColorLabel.GREEN
    assert updated.highlights == ["first kiss"]
    assert updated.flags == ["motion blur"]
    assert np.allclose(updated.embedding, [0.1, 0.2, 0.3])
    assert updated.phash == "ff00"
    assert updated.approved is True
    assert updated.faces[0].same_person_group == "p1"
    assert updated.face_summary.total_faces == 1
    # the input record is untouched
    assert photo.ai_score == 0.0
    assert photo.tags.to_list() == ["raw"]


def test_with_analysis_tolerates_missing_and_unknown_values():
    photo = make_photo("a", color_label=ColorLabel.YELLOW)
    updated = photo.with_analysis(
        {"score_type": "mystery", "color_label": "orange"}, ScoreType.AI
    )
    assert updated.ai_score == 0.0
    assert updated.score_type == ScoreType.AI
    assert updated.color_label == ColorLabel.YELLOW


def test_duplicate_cluster_members_dedup_in_order():
    cluster = DuplicateCluster.from_dict(
        {"filename": "x.jpg", "clip_duplicates": ["y.jpg", "z.jpg"], "phash_duplicates": ["z.jpg", "x.jpg"]}
    )
    assert cluster.members() == ["x.jpg", "y.jpg", "z.jpg"]
    assert cluster.contains("z.jpg")
    assert not cluster.contains("w.jpg")


def test_progress_never_goes_backwards():
    progress = AnalysisProgress()
    progress.start(4)
    progress.advance(3, "c.jpg")
    progress.advance(2, "b.jpg")
    assert progress.processed == 3
    assert progress.current_photo == "b.jpg"
    progress.finish()
    assert progress.fraction == 1.0


def test_category_filter_parse_unknown_is_all():
    assert CategoryFilter.parse("high-score") == CategoryFilter.HIGH_SCORE
    assert CategoryFilter.parse("sepia") == CategoryFilter.ALL
    assert CategoryFilter.parse(None) == CategoryFilter.ALL
