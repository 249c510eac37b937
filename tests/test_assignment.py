"""
Tests for member-to-slot photo assignment and variant generation.
"""

import pytest

from collage.assignment import (
    Member, assign, build_variant, border_members_for, generate_variants, placeholder_for
)
from collage.errors import NotEnoughPhotosError, ValidationError


PLACEHOLDERS = ('even.jpg', 'odd.jpg')


def make_members(count, without_photo=()):
    return [
        Member(id=f"m{i}", photo=None if i in without_photo else f"photo-{i}.jpg", display_order=i)
        for i in range(count)
    ]


class TestMember:
    """Caller JSON conversion."""

    def test_from_dict(self):
        member = Member.from_dict({'id': 'a1', 'photo': 'x.jpg', 'display_order': 3})

        assert member == Member(id='a1', photo='x.jpg', display_order=3)

    def test_from_dict_defaults(self):
        member = Member.from_dict({'photo': 'x.jpg'}, position=4)

        assert member.id == 'member-4'
        assert member.display_order == 4

    def test_from_dict_accepts_camel_case(self):
        member = Member.from_dict({'memberRollNumber': 'R12', 'displayOrder': '2'})

        assert member.id == 'R12'
        assert member.display_order == 2

    def test_from_dict_rejects_bad_order(self):
        with pytest.raises(ValidationError):
            Member.from_dict({'id': 'a', 'display_order': 'first'})

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ValidationError):
            Member.from_dict(['a'])

    def test_blank_photo_is_no_photo(self):
        assert not Member(id='a', photo='   ').has_photo


class TestPlaceholders:
    """Placeholder choice by slot parity."""

    def test_parity(self):
        assert placeholder_for(0, PLACEHOLDERS) == 'even.jpg'
        assert placeholder_for(1, PLACEHOLDERS) == 'odd.jpg'
        assert placeholder_for(18, PLACEHOLDERS) == 'even.jpg'


class TestAssign:
    """Slot position to photo mapping."""

    def test_center_and_border_in_display_order(self):
        members = list(reversed(make_members(4)))

        photo_map = assign(4, members, 'm2', PLACEHOLDERS)

        assert photo_map[0].source == 'photo-2.jpg'
        assert [photo_map[i].member_id for i in (1, 2, 3)] == ['m0', 'm1', 'm3']
        assert not any(a.is_placeholder for a in photo_map.values())

    def test_every_slot_is_filled(self):
        photo_map = assign(7, make_members(3), 'm0', PLACEHOLDERS)

        assert sorted(photo_map) == list(range(7))
        assert [photo_map[i].source for i in range(3, 7)] == ['odd.jpg', 'even.jpg', 'odd.jpg', 'even.jpg']
        assert all(photo_map[i].member_id is None for i in range(3, 7))

    def test_member_without_photo_gets_placeholder(self):
        photo_map = assign(4, make_members(4, without_photo={2}), 'm0', PLACEHOLDERS)

        assert photo_map[2].is_placeholder
        assert photo_map[2].member_id == 'm2'
        assert photo_map[2].source == 'even.jpg'

    def test_unknown_center_gets_placeholder(self):
        photo_map = assign(3, make_members(2), 'nobody', PLACEHOLDERS)

        assert photo_map[0].is_placeholder
        assert photo_map[0].source == 'even.jpg'
        assert [photo_map[1].member_id, photo_map[2].member_id] == ['m0', 'm1']

    def test_no_center_member(self):
        photo_map = assign(3, make_members(2), None, PLACEHOLDERS)

        assert photo_map[0].source == 'even.jpg'

    def test_extra_members_are_dropped(self):
        photo_map = assign(3, make_members(6), 'm0', PLACEHOLDERS)

        assert len(photo_map) == 3
        assert photo_map[2].member_id == 'm2'

    def test_empty_template(self):
        with pytest.raises(ValidationError):
            assign(0, make_members(2), 'm0', PLACEHOLDERS)

    def test_center_never_repeats_on_border(self):
        members = make_members(5)
        border = border_members_for(members, 'm3')

        assert 'm3' not in [m.id for m in border]
        assert len(border) == 4


class TestVariants:
    """Center variant generation."""

    def test_one_variant_per_member_with_photo(self):
        variants = generate_variants(make_members(5, without_photo={1}), 'square')

        assert [v.id for v in variants] == [
            'square-variant-m0', 'square-variant-m2', 'square-variant-m3', 'square-variant-m4'
        ]
        assert all(len(v.members) == 5 for v in variants)

    def test_border_excludes_center(self):
        variant = generate_variants(make_members(3), 'hexagonal')[1]

        assert variant.center_member.id == 'm1'
        assert [m.id for m in variant.border_members] == ['m0', 'm2']
        assert variant.template == 'hexagonal'

    def test_requires_two_photos(self):
        with pytest.raises(NotEnoughPhotosError) as exc_info:
            generate_variants(make_members(3, without_photo={0, 1}), 'square')
        assert exc_info.value.details['found'] == 1

    def test_empty_group(self):
        with pytest.raises(ValidationError):
            generate_variants([], 'square')

    def test_build_variant_unknown_center(self):
        with pytest.raises(ValidationError):
            build_variant(make_members(3), 'zz', 'square')

    def test_build_variant_allows_center_without_photo(self):
        variant = build_variant(make_members(3, without_photo={1}), 'm1', 'square')

        assert variant.id == 'square-variant-m1'
