"""
Tests for the YAML group store.
"""

from textwrap import dedent

import pendulum
import pytest

from groupslot.adapters.yaml_store import YamlGroupStore
from groupslot.domain.exceptions import DataFileError
from groupslot.domain.models import AvailabilityBlock, BlockKind

GROUP_YAML = dedent("""\
    group_id: crew
    members:
      - user_id: ana
        display_name: Ana
        role: host
      - user_id: ben
    blocked_windows:
      - start: "00:00"
        end: "08:00"
      - start: "22:00"
        end: "02:00"
        day_of_week: 5
    blocks:
      - user_id: ana
        kind: WORK
        date: 2024-01-15
        start: "09:00"
        end: "17:00"
      - user_id: ben
        kind: PREFERRED
        date: 2024-01-16
        start: 18:00
        end: 24:00
        source: OCR
""")


@pytest.fixture
def group_file(tmp_path):
    path = tmp_path / "group.yaml"
    path.write_text(GROUP_YAML, encoding="utf-8")
    return path


class TestYamlGroupStore:
    """Tests for reading group files."""

    def test_members(self, group_file):
        store = YamlGroupStore(group_file)

        members = store.get_members("crew")

        assert store.group_id == "crew"
        assert [m.user_id for m in members] == ["ana", "ben"]
        assert members[0].role == "host"
        assert members[0].label() == "Ana"
        assert members[1].role == "member"
        assert members[1].label() == "ben"

    def test_blocks(self, group_file):
        store = YamlGroupStore(group_file)

        blocks = store.get_blocks("crew")

        assert len(blocks) == 2
        assert blocks[0].date == pendulum.date(2024, 1, 15)
        assert (blocks[0].start_min, blocks[0].end_min) == (540, 1020)
        assert blocks[0].kind is BlockKind.WORK
        assert blocks[0].source == "MANUAL"
        assert blocks[1].source == "OCR"

    def test_unquoted_times_are_minutes(self, group_file):
        """YAML reads 18:00 as the base-60 integer 1080."""
        store = YamlGroupStore(group_file)

        ben = store.get_blocks("crew")[1]

        assert (ben.start_min, ben.end_min) == (1080, 1440)

    def test_blocked_windows(self, group_file):
        store = YamlGroupStore(group_file)

        windows = store.get_blocked_windows("crew")

        assert [(w.start_min, w.end_min) for w in windows] == [(0, 480), (1320, 120)]
        assert windows[0].day_of_week is None
        assert windows[1].day_of_week == 5
        assert windows[1].crosses_midnight
        assert all(w.group_id == "crew" for w in windows)

    def test_other_group_is_empty(self, group_file):
        store = YamlGroupStore(group_file)

        assert store.get_members("other") == []
        assert store.get_blocks("other") == []
        assert store.get_blocked_windows("other") == []


class TestYamlGroupStoreErrors:
    """Tests for unusable group files."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataFileError, match="not found"):
            YamlGroupStore(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "group.yaml"
        path.write_text("group_id: [crew\n", encoding="utf-8")

        with pytest.raises(DataFileError, match="Invalid YAML"):
            YamlGroupStore(path)

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "group.yaml"
        path.write_text("- crew\n", encoding="utf-8")

        with pytest.raises(DataFileError, match="mapping"):
            YamlGroupStore(path)

    @pytest.mark.parametrize("replacement", [
        ("role: host", "role: owner"),
        ('start: "09:00"', 'start: "25:00"'),
        ("kind: WORK", "kind: HOLIDAY"),
        ("day_of_week: 5", "day_of_week: 7"),
    ])
    def test_invalid_records(self, tmp_path, replacement):
        path = tmp_path / "group.yaml"
        path.write_text(GROUP_YAML.replace(*replacement), encoding="utf-8")

        with pytest.raises(DataFileError, match="Invalid group data"):
            YamlGroupStore(path)


class TestYamlGroupStoreSave:
    """Tests for writing group files."""

    def test_added_blocks_survive_reload(self, group_file):
        store = YamlGroupStore(group_file)
        new_block = AvailabilityBlock(
            date="2024-01-17", start_min=1320, end_min=360,
            group_id="crew", user_id="ben", kind=BlockKind.WORK, source="OCR"
        )

        assert store.add_blocks([new_block]) == 1
        store.save()

        reloaded = YamlGroupStore(group_file)
        blocks = reloaded.get_blocks("crew")

        assert len(blocks) == 3
        assert blocks[-1] == new_block
        assert [(w.start_min, w.end_min) for w in reloaded.get_blocked_windows("crew")] == [(0, 480), (1320, 120)]
        assert [m.user_id for m in reloaded.get_members("crew")] == ["ana", "ben"]

    def test_times_are_written_as_clock_strings(self, group_file):
        store = YamlGroupStore(group_file)

        store.save()

        text = group_file.read_text(encoding="utf-8")
        assert "24:00" in text
        assert "1440" not in text
