"""Group photos by the person group ids the analysis service assigned to faces."""

from collections.abc import Iterable

from photo_culling.models import Face, Photo, PersonGroup


def _better_representative(candidate: Face, current: Face) -> bool:
    if candidate.face_quality is None:
        return False
    if current.face_quality is None:
        return True
    return candidate.face_quality > current.face_quality


def group_people(photos: Iterable[Photo]) -> list[PersonGroup]:
    """Build one PersonGroup per ``same_person_group`` id, in first-seen order.

    Faces without a group id are ignored. The representative face is the
    first face seen unless a later face has a strictly higher quality.
    """
    groups: dict[str, PersonGroup] = {}
    member_ids: dict[str, set[str]] = {}

    for photo in photos:
        for face in photo.faces:
            group_id = face.same_person_group
            if not group_id:
                continue

            group = groups.get(group_id)
            if group is None:
                group = groups[group_id] = PersonGroup(group_id=group_id, representative_face=face)
                member_ids[group_id] = set()
            elif _better_representative(face, group.representative_face):
                group.representative_face = face

            group.faces.append(face)
            if photo.id not in member_ids[group_id]:
                member_ids[group_id].add(photo.id)
                group.photos.append(photo)
                group.photo_count += 1

    return list(groups.values())


def has_faces(photos: Iterable[Photo]) -> bool:
    return any(photo.faces for photo in photos)
