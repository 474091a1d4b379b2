"""
Unit tests for participant CSV import and the roster
"""
import pytest
from core.exceptions import InvalidArgumentError
from services.participant_import import ParticipantRoster, parse_participants_csv


class TestParseParticipantsCsv:
    def test_basic_import(self):
        text = "id,name,username\n7,Ann,ann1\n9,Bo,bo2\n"

        participants = parse_participants_csv(text)

        assert [(p.id, p.name, p.username) for p in participants] == [
            ("7", "Ann", "ann1"),
            ("9", "Bo", "bo2"),
        ]

    def test_headers_are_case_insensitive_and_trimmed(self):
        participants = parse_participants_csv(" Name , USERNAME \nAnn,ann1\n")
        assert participants[0].name == "Ann"
        assert participants[0].username == "ann1"

    def test_missing_id_falls_back_to_row_position(self):
        text = "name,username\nAnn,ann1\n,nobody\nBo,bo2\n"

        participants = parse_participants_csv(text)

        assert [p.id for p in participants] == ["1", "3"]

    def test_rows_without_name_or_username_skipped(self):
        text = "name,username,id\nAnn,,1\n,bo2,2\nCy,cy3,3\n"
        participants = parse_participants_csv(text)
        assert [p.id for p in participants] == ["3"]

    def test_blank_lines_skipped(self):
        participants = parse_participants_csv("name,username\n\nAnn,ann1\n   ,  \n")
        assert len(participants) == 1

    def test_profile_pic_column(self):
        text = "name,username,Profile Pic\nAnn,ann1,https://img.example.com/a.png\nBo,bo2,\n"

        participants = parse_participants_csv(text)

        assert participants[0].profile_pic == "https://img.example.com/a.png"
        assert participants[1].profile_pic is None

    def test_quoted_fields(self):
        participants = parse_participants_csv('name,username\n"Smith, Ann",ann1\n')
        assert participants[0].name == "Smith, Ann"

    def test_byte_order_mark_ignored(self):
        participants = parse_participants_csv("\ufeffname,username\nAnn,ann1\n")
        assert participants[0].name == "Ann"

    def test_missing_required_column(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            parse_participants_csv("name,id\nAnn,1\n")
        assert "username" in exc_info.value.details["reason"]

    def test_empty_file(self):
        with pytest.raises(InvalidArgumentError):
            parse_participants_csv("")

    def test_duplicate_ids_rejected(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            parse_participants_csv("id,name,username\n1,Ann,ann1\n1,Bo,bo2\n")
        assert exc_info.value.details["field"] == "id"

    def test_header_only_gives_empty_batch(self):
        assert parse_participants_csv("name,username\n") == []


class TestParticipantRoster:
    @pytest.fixture
    def roster(self, participants):
        roster = ParticipantRoster()
        roster.replace(participants)
        return roster

    def test_replace_is_wholesale(self, roster, participants):
        assert len(roster) == 2
        roster.replace(participants[:1])
        assert roster.participants == (participants[0],)

    def test_search_matches_name_username_and_id(self, roster):
        assert [p.id for p in roster.search("ann")] == ["1"]
        assert [p.id for p in roster.search("BO2")] == ["2"]
        assert [p.id for p in roster.search("2")] == ["2"]

    def test_blank_search_returns_everything(self, roster):
        assert len(roster.search("  ")) == 2
