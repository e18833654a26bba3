"""
Tests for Name Matching

Tests for storyreel/utils/matching.py
"""

import pytest

from storyreel.project.models import Background, Frame
from storyreel.utils.matching import (
    background_matches_location,
    has_explicit_group_count,
    name_matches_in_text,
    references_for_frame,
    references_for_shot,
    select_shot_backgrounds,
    select_shot_characters,
    shots_for_background,
    shots_for_character,
    shots_for_item,
)


class TestNameMatching:

    @pytest.mark.parametrize("name,text,expected", [
        ("Buzz the Fly", "buzz lands on the sill", True),
        ("Buzz the Fly", "A FLY circles", True),
        ("Fly One", "Fly One darts through the window", True),
        ("Buzz the Fly", "a generic insect appears", False),
        ("Zip", "zip darts away", True),
        ("Mr Al", "Alice waves", False),
        ("Zip", "nobody here", False),
        ("", "anything at all", False),
        (None, "anything", False),
    ])
    def test_name_matches_in_text(self, name, text, expected):
        assert name_matches_in_text(name, text) is expected

    def test_background_matches_location(self):
        assert background_matches_location("Kitchen Window", "Farmhouse Kitchen")
        assert background_matches_location("Barn", "The Barn")
        assert not background_matches_location("Garden Path", "Farmhouse Kitchen")

    def test_group_count(self):
        assert has_explicit_group_count("All three race away")
        assert has_explicit_group_count("the three flies hover")
        assert has_explicit_group_count("the two flies circle the lamp")
        assert not has_explicit_group_count("They race away")


class TestShotSelection:

    def test_named_characters(self, sample_project_data):
        shot = sample_project_data.shots[1]

        chars = select_shot_characters(shot, sample_project_data.characters, "")

        assert [c.id for c in chars] == ["4.1", "4.2"]

    def test_group_expansion_uses_scene_context(self, sample_project_data):
        shot = sample_project_data.shots[2]
        context = "Buzz, Zip and Rex flee the swatter"

        chars = select_shot_characters(shot, sample_project_data.characters, context)

        assert [c.id for c in chars] == ["4.1", "4.2", "4.3"]

    def test_no_group_no_names(self, sample_project_data):
        shot = sample_project_data.shots[2]
        shot.description = "The path is empty."

        assert select_shot_characters(shot, sample_project_data.characters, "Buzz") == []

    def test_at_most_two_backgrounds_in_list_order(self):
        backgrounds = [
            Background(id="5.1", name="Kitchen Table"),
            Background(id="5.2", name="Kitchen Window"),
            Background(id="5.3", name="Kitchen Door"),
        ]

        chosen = select_shot_backgrounds("Farmhouse Kitchen", backgrounds)

        assert [b.id for b in chosen] == ["5.1", "5.2"]


class TestReferences:

    def test_references_for_shot(self, sample_project_data):
        refs = references_for_shot(sample_project_data, sample_project_data.shots[1])

        assert [c.id for c in refs.characters] == ["4.1", "4.2"]
        assert [b.id for b in refs.backgrounds] == ["5.1"]
        assert [i.id for i in refs.items] == ["6.1"]

    def test_frame_with_recorded_ids(self, sample_project_data):
        frame = Frame(id="7.1.1", scene=1, shot_number=1, character_ids=["4.2"],
                      background_ids=["5.2"], item_ids=[])

        refs = references_for_frame(sample_project_data, frame)

        assert [c.id for c in refs.characters] == ["4.2"]
        assert [b.id for b in refs.backgrounds] == ["5.2"]
        assert refs.items == []

    def test_frame_without_ids_falls_back_to_text(self, sample_project_data):
        frame = Frame(id="7.1.1", scene=1, shot_number=1, first_frame="Rex watches")

        refs = references_for_frame(sample_project_data, frame)

        assert [c.id for c in refs.characters] == ["4.1", "4.3"]
        assert [b.id for b in refs.backgrounds] == ["5.1"]

    def test_reverse_links(self, sample_project_data):
        links = shots_for_character(sample_project_data, "Zip [SECONDARY]")

        assert [(link.scene, link.shot) for link in links] == [(1, 2)]
        assert links[0].to_dict() == {"scene": 1, "shot": 2, "hasStage7": False, "hasStage8": False}
        assert [(link.scene, link.shot) for link in shots_for_item(sample_project_data, "Golden Pear")] == [(1, 2)]
        assert [(link.scene, link.shot) for link in shots_for_background(sample_project_data, "Garden Path")] == [(2, 1)]
