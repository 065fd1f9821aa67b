"""Tests for plan text parsing."""

import json

from taskplan_mcp.core.plan_parser import parse_plan_text


class TestNumberedSections:
    def test_sections_become_entries(self):
        text = (
            "1. Design schema\n"
            "Draw the ERD and agree on table names.\n"
            "\n"
            "2. Write migrations\n"
            "One migration per table.\n"
            "Keep them reversible.\n"
        )

        assert parse_plan_text(text) == [
            {"title": "Design schema", "description": "Draw the ERD and agree on table names."},
            {
                "title": "Write migrations",
                "description": "One migration per table.\nKeep them reversible.",
            },
        ]

    def test_preamble_is_ignored(self):
        text = "Here is the plan:\n\n1. Only step\nDo it."
        assert parse_plan_text(text) == [{"title": "Only step", "description": "Do it."}]

    def test_title_only_section_uses_title_as_description(self):
        assert parse_plan_text("1. Ship it") == [{"title": "Ship it", "description": "Ship it"}]

    def test_blank_lines_inside_a_section_do_not_split(self):
        text = "1. Step\nfirst paragraph\n\nsecond paragraph\n\n2. Next\nmore"
        entries = parse_plan_text(text)
        assert [e["title"] for e in entries] == ["Step", "Next"]
        assert entries[0]["description"] == "first paragraph\n\nsecond paragraph"

    def test_unnumbered_text_yields_nothing(self):
        assert parse_plan_text("Just some thoughts\nwithout steps") == []


class TestJson:
    def test_array_passed_through(self):
        entries = [
            {"title": "A", "description": "a", "subtasks": [{"title": "B", "description": "b"}]},
        ]
        assert parse_plan_text(json.dumps(entries)) == entries

    def test_non_dict_items_dropped(self):
        assert parse_plan_text('[{"title": "A", "description": "a"}, 3, "x"]') == [
            {"title": "A", "description": "a"}
        ]

    def test_non_array_json_yields_nothing(self):
        assert parse_plan_text('{"title": "A"}') == []
        assert parse_plan_text("42") == []


def test_empty_input():
    assert parse_plan_text("") == []
    assert parse_plan_text("   \n  ") == []
