"""Data models for photos, faces and the derived review views."""

import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

import numpy as np


class WorkflowStage(StrEnum):
    UPLOAD = "upload"
    CONFIGURE = "configure"
    ANALYZING = "analyzing"
    REVIEW = "review"
    FACE_RETOUCH = "face-retouch"
    AI_EDIT = "ai-edit"


class CullingMode(StrEnum):
    FAST = "fast"
    DEEP = "deep"
    MANUAL = "manual"


class EventType(StrEnum):
    WEDDING = "wedding"
    BAPTISM = "baptism"
    PORTRAIT = "portrait"
    EVENT = "event"
    LANDSCAPE = "landscape"
    FAMILY = "family"
    CORPORATE = "corporate"


class ColorLabel(StrEnum):
    """Color overlay: high score, reject, needs review, client-marked, duplicate."""

    GREEN = "green"
    RED = "red"
    YELLOW = "yellow"
    BLUE = "blue"
    PURPLE = "purple"


class ScoreType(StrEnum):
    BASE = "base"
    BASIC = "basic"
    AI = "ai"
    MANUAL = "manual"
    PERSONALIZED = "personalized"


class CategoryFilter(StrEnum):
    ALL = "all"
    SELECTED = "selected"
    HIGH_SCORE = "high-score"
    APPROVED = "approved"
    NOT_APPROVED = "not-approved"
    HIGHLIGHTS = "highlights"
    FLAGGED = "flagged"
    BLURRY = "blurry"
    EYES_CLOSED = "eyes-closed"
    DUPLICATES = "duplicates"
    WARNINGS = "warnings"
    PEOPLE = "people"
    EMOTIONS = "emotions"
    QUALITY_ISSUES = "quality-issues"
    GREEN = "green"
    RED = "red"
    YELLOW = "yellow"
    BLUE = "blue"
    PURPLE = "purple"

    @classmethod
    def parse(cls, value: "str | CategoryFilter | None") -> "CategoryFilter":
        """Parse a filter value; anything unrecognized means ALL."""
        try:
            return cls(value)
        except ValueError:
            return cls.ALL


class TagSet:
    """Ordered set of string tags."""

    __slots__ = ("_tags",)

    def __init__(self, tags: Iterable[str] = ()) -> None:
        self._tags: dict[str, None] = dict.fromkeys(tags)

    def add(self, tag: str) -> None:
        self._tags[tag] = None

    def remove(self, tag: str) -> None:
        """Remove a tag if present."""
        self._tags.pop(tag, None)

    def has(self, tag: str) -> bool:
        return tag in self._tags

    def has_any(self, tags: Iterable[str]) -> bool:
        return any(tag in self._tags for tag in tags)

    def copy(self) -> "TagSet":
        return TagSet(self._tags)

    def to_list(self) -> list[str]:
        return list(self._tags)

    def __contains__(self, tag: object) -> bool:
        return tag in self._tags

    def __iter__(self) -> Iterator[str]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TagSet):
            return self._tags.keys() == other._tags.keys()
        if isinstance(other, (set, frozenset)):
            return self._tags.keys() == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"TagSet({self.to_list()!r})"


@dataclass
class Face:
    """A single detected face within a photo."""

    bbox: tuple[float, float, float, float]
    confidence: float = 0.0
    face_quality: float | None = None
    age: int | None = None
    gender: str | None = None
    emotion: str | None = None
    glasses: bool = False
    mask: bool = False
    eyes_closed: bool = False
    same_person_group: str | None = None
    crop_base64: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Face":
        """Build a Face from an analysis service record."""
        if "bbox" in data:
            x1, y1, x2, y2 = data["bbox"]
            bbox = (float(x1), float(y1), float(x2), float(y2))
        else:
            bbox = (
                float(data.get("x", 0)),
                float(data.get("y", 0)),
                float(data.get("width", 0)),
                float(data.get("height", 0)),
            )
        group = data.get("same_person_group")
        return cls(
            bbox=bbox,
            confidence=float(data.get("confidence", data.get("det_score", 0.0))),
            face_quality=data.get("face_quality"),
            age=data.get("age"),
            gender=data.get("gender"),
            emotion=data.get("emotion") or None,
            glasses=bool(data.get("glasses", False)),
            mask=bool(data.get("mask", False)),
            eyes_closed=bool(data.get("eyes_closed", False)),
            same_person_group=str(group) if group is not None else None,
            crop_base64=data.get("face_crop"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "bbox": list(self.bbox),
            "confidence": self.confidence,
            "face_quality": self.face_quality,
            "age": self.age,
            "gender": self.gender,
            "emotion": self.emotion,
            "glasses": self.glasses,
            "mask": self.mask,
            "eyes_closed": self.eyes_closed,
            "same_person_group": self.same_person_group,
        }


@dataclass
class FaceSummary:
    """Aggregate face statistics for one photo."""

    total_faces: int = 0
    issues: dict[str, int] = field(default_factory=dict)
    average_quality: float | None = None

    @property
    def closed_eyes(self) -> int:
        return self.issues.get("closed_eyes", 0)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FaceSummary":
        quality_stats = data.get("quality_stats") or {}
        return cls(
            total_faces=int(data.get("total_faces", 0)),
            issues={k: int(v) for k, v in (data.get("issues") or {}).items()},
            average_quality=quality_stats.get("average_quality"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_faces": self.total_faces,
            "issues": dict(self.issues),
            "quality_stats": {"average_quality": self.average_quality},
        }


def new_photo_id() -> str:
    return uuid.uuid4().hex


def _parse_enum(enum_cls, value, default):
    """Parse a service-supplied enum value, keeping ``default`` when unknown."""
    try:
        return enum_cls(value) if value else default
    except ValueError:
        return default


@dataclass
class Photo:
    """One uploaded photo and everything the analysis service said about it.

    ``ai_score`` of 0 means the photo has not been analyzed yet.
    """

    id: str
    filename: str
    source_path: Path
    preview_url: str
    ai_score: float = 0.0
    score_type: ScoreType = ScoreType.BASE
    basic_score: float | None = None
    blur_score: float | None = None
    tags: TagSet = field(default_factory=TagSet)
    color_label: ColorLabel | None = None
    faces: list[Face] = field(default_factory=list)
    face_summary: FaceSummary | None = None
    caption: str | None = None
    highlights: list[str] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)
    embedding: np.ndarray | None = field(default=None, compare=False, repr=False)
    phash: str | None = None
    approved: bool | None = None
    selected: bool = False
    album_id: str | None = None
    event_type: str | None = None
    is_duplicate: bool = False
    duplicate_group: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC), compare=False)

    @property
    def is_analyzed(self) -> bool:
        return self.ai_score != 0

    @property
    def stars(self) -> float:
        """Score on the 0-5 star scale."""
        return self.ai_score / 2

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None and self.embedding.size > 0

    def read_bytes(self) -> bytes:
        return self.source_path.read_bytes()

    def with_tag(self, tag: str) -> "Photo":
        tags = self.tags.copy()
        tags.add(tag)
        return replace(self, tags=tags)

    def with_analysis(self, result: dict[str, Any], default_score_type: ScoreType) -> "Photo":
        """Return a copy of this photo updated with an analysis service result."""
        tags = self.tags.copy()
        for tag in result.get("tags") or []:
            tags.add(tag)

        clip_vector = result.get("clip_vector")
        embedding = (
            np.asarray(clip_vector, dtype=np.float32) if clip_vector else self.embedding
        )
        summary = result.get("face_summary")

        return replace(
            self,
            ai_score=float(result.get("ai_score") or 0),
            score_type=_parse_enum(ScoreType, result.get("score_type"), default_score_type),
            basic_score=result.get("basic_score"),
            blur_score=result.get("blur_score"),
            tags=tags,
            color_label=_parse_enum(ColorLabel, result.get("color_label"), self.color_label),
            faces=[Face.from_dict(f) for f in result.get("faces") or []],
            face_summary=FaceSummary.from_dict(summary) if summary else None,
            caption=result.get("caption") or self.caption,
            highlights=list(result.get("blip_highlights") or []),
            flags=list(result.get("blip_flags") or []),
            embedding=embedding,
            phash=result.get("phash") or self.phash,
            approved=result.get("approved", self.approved),
            event_type=result.get("event_type") or self.event_type,
        )

    def to_metadata(self) -> dict[str, Any]:
        """Per-photo record sent with an album save."""
        return {
            "filename": self.filename,
            "ai_score": self.ai_score,
            "score_type": str(self.score_type),
            "basic_score": self.basic_score,
            "blur_score": self.blur_score,
            "tags": self.tags.to_list(),
            "color_label": str(self.color_label) if self.color_label else None,
            "faces": [face.to_dict() for face in self.faces],
            "face_summary": self.face_summary.to_dict() if self.face_summary else None,
            "caption": self.caption,
            "blip_highlights": list(self.highlights),
            "blip_flags": list(self.flags),
            "approved": self.approved,
            "phash": self.phash,
        }


@dataclass(frozen=True)
class DuplicateCluster:
    """Duplicates of an anchor photo found by two independent signals."""

    filename: str
    embedding_duplicates: tuple[str, ...] = ()
    hash_duplicates: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DuplicateCluster":
        return cls(
            filename=data["filename"],
            embedding_duplicates=tuple(data.get("clip_duplicates") or ()),
            hash_duplicates=tuple(data.get("phash_duplicates") or ()),
        )

    def contains(self, filename: str) -> bool:
        return (
            filename == self.filename
            or filename in self.embedding_duplicates
            or filename in self.hash_duplicates
        )

    def members(self) -> list[str]:
        """Anchor plus both duplicate lists, deduplicated in first-seen order."""
        return list(
            dict.fromkeys((self.filename, *self.embedding_duplicates, *self.hash_duplicates))
        )


@dataclass
class PersonGroup:
    """Photos and faces sharing one externally assigned person group id."""

    group_id: str
    photos: list[Photo] = field(default_factory=list)
    faces: list[Face] = field(default_factory=list)
    photo_count: int = 0
    representative_face: Face | None = None


@dataclass
class AnalysisProgress:
    processed: int = 0
    total: int = 0
    current_photo: str = ""

    def start(self, total: int) -> None:
        self.processed = 0
        self.total = total
        self.current_photo = ""

    def advance(self, processed: int, current_photo: str) -> None:
        """Record a completed photo. ``processed`` never goes backwards."""
        self.processed = max(self.processed, processed)
        self.current_photo = current_photo

    def finish(self) -> None:
        self.processed = self.total

    def reset(self) -> None:
        self.start(0)

    @property
    def fraction(self) -> float:
        return self.processed / self.total if self.total else 0.0


@dataclass
class FilterState:
    """Active gallery filters."""

    category: CategoryFilter = CategoryFilter.ALL
    caption: str = ""
    min_stars: float | None = None
    max_stars: float | None = None
    person_group: str | None = None
    album_id: str | None = None

    @property
    def has_rating_range(self) -> bool:
        return self.min_stars is not None or self.max_stars is not None


@dataclass
class Album:
    id: str
    name: str
    description: str | None = None
    cover_photo_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class BatchResult:
    """One image returned by batch post-processing."""

    filename: str
    image_base64: str
