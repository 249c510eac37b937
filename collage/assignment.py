"""
Photo assignment for the collage render service
Maps an ordered member list onto an ordered slot list
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from .errors import NotEnoughPhotosError, ValidationError


@dataclass
class Member:
    """A group member contributing one photo"""
    id: str
    photo: Optional[str] = None
    display_order: int = 0
    name: Optional[str] = None

    @property
    def has_photo(self) -> bool:
        return bool(self.photo and self.photo.strip())

    @classmethod
    def from_dict(cls, data: Dict[str, Any], position: int = 0) -> 'Member':
        """Build a member from caller JSON, defaulting id and order to the list position"""
        if not isinstance(data, dict):
            raise ValidationError(f"Member #{position} must be an object")
        member_id = data.get('id') or data.get('memberRollNumber') or f"member-{position}"
        display_order = data.get('display_order', data.get('displayOrder', position))
        try:
            display_order = int(display_order)
        except (TypeError, ValueError):
            raise ValidationError(f"Member {member_id} has a non-integer display order",
                                  details={'member_id': member_id, 'display_order': display_order})
        photo = data.get('photo')
        if photo is not None and not isinstance(photo, str):
            raise ValidationError(f"Member {member_id} photo must be a string",
                                  details={'member_id': member_id})
        return cls(id=str(member_id), photo=photo, display_order=display_order, name=data.get('name'))


@dataclass
class CenterVariant:
    """One candidate arrangement: a chosen center member plus everyone else on the border"""
    id: str
    template: str
    center_member: Member
    border_members: List[Member] = field(default_factory=list)

    @property
    def members(self) -> List[Member]:
        return [self.center_member] + self.border_members


@dataclass
class SlotAssignment:
    """Photo chosen for one slot position"""
    position: int
    source: str
    member_id: Optional[str] = None
    is_placeholder: bool = False


def order_members(members: Sequence[Member]) -> List[Member]:
    """Members in display order (stable for equal orders)"""
    return sorted(members, key=lambda m: m.display_order)


def border_members_for(members: Sequence[Member], center_member_id: Optional[str]) -> List[Member]:
    """Everyone except the center member, in display order"""
    return [m for m in order_members(members) if m.id != center_member_id]


def placeholder_for(position: int, placeholders: Tuple[str, str]) -> str:
    """Alternate between the two placeholders by slot parity"""
    even, odd = placeholders
    return even if position % 2 == 0 else odd


def assign(slot_count: int, members: Sequence[Member], center_member_id: Optional[str],
           placeholders: Tuple[str, str]) -> Dict[int, SlotAssignment]:
    """
    Map every slot position to a photo source.

    Position 0 is the center and gets the center member's photo; position
    i > 0 gets the (i-1)th border member in display order. Any slot without
    a photo gets a placeholder chosen by ``i % 2``, so no slot is left
    unfilled.
    """
    if slot_count < 1:
        raise ValidationError("Template has no slots", details={'slot_count': slot_count})

    by_id = {m.id: m for m in members}
    center = by_id.get(center_member_id) if center_member_id is not None else None
    if center_member_id is not None and center is None:
        logger.warning(f"Center member {center_member_id} is not part of the group")

    border = border_members_for(members, center_member_id)
    if len(border) > slot_count - 1:
        logger.warning(f"{len(border)} border members for {slot_count - 1} border slots, "
                       f"{len(border) - (slot_count - 1)} will not be placed")

    photo_map: Dict[int, SlotAssignment] = {}
    for position in range(slot_count):
        member = center if position == 0 else (border[position - 1] if position - 1 < len(border) else None)

        if member is not None and member.has_photo:
            photo_map[position] = SlotAssignment(position=position, source=member.photo, member_id=member.id)
        else:
            photo_map[position] = SlotAssignment(
                position=position,
                source=placeholder_for(position, placeholders),
                member_id=member.id if member is not None else None,
                is_placeholder=True
            )

    placeholders_used = sum(1 for a in photo_map.values() if a.is_placeholder)
    logger.debug(f"Assigned {slot_count} slots ({placeholders_used} placeholders)")
    return photo_map


def generate_variants(members: Sequence[Member], template: str, min_photos: int = 2) -> List[CenterVariant]:
    """
    One variant per member with a photo, each with that member in the center.

    Raises ValidationError for an empty group and NotEnoughPhotosError when
    fewer than ``min_photos`` members have photos.
    """
    if not members:
        raise ValidationError("Group has no members")

    with_photos = [m for m in order_members(members) if m.has_photo]
    if len(with_photos) < min_photos:
        raise NotEnoughPhotosError(len(with_photos), min_photos)

    variants = []
    for center in with_photos:
        variants.append(build_variant(members, center.id, template))

    logger.info(f"Generated {len(variants)} {template} variants for {len(members)} members")
    return variants


def build_variant(members: Sequence[Member], center_member_id: str, template: str) -> CenterVariant:
    """Variant with an explicit center member"""
    center = next((m for m in members if m.id == center_member_id), None)
    if center is None:
        raise ValidationError(f"Center member {center_member_id} is not part of the group",
                              details={'center_member_id': center_member_id})

    return CenterVariant(
        id=f"{template}-variant-{center.id}",
        template=template,
        center_member=center,
        border_members=border_members_for(members, center.id)
    )
