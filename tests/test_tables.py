"""Tests for acpid/tables.py."""
import logging

import pytest

from acpid.errors import ConfigError
from acpid.tables import (
  DEFAULT_ACTIONS,
  DEFAULT_EVENTS,
  ActionMapping,
  EventMapping,
  RuleTables,
  _tokenize_line,
  load_rule_tables,
  parse_action_file,
  parse_map_file,
)


class TestTokenizeLine:
  """Test rule file line tokenization."""

  def test_blank_and_comment_lines(self):
    assert _tokenize_line("", 2) == []
    assert _tokenize_line("   \t\n", 2) == []
    assert _tokenize_line("# only a comment\n", 2) == []

  def test_collapses_separators(self):
    assert _tokenize_line("PWRF \t  PWRF/00000080\n", 2) == ["PWRF", "PWRF/00000080"]

  def test_trailing_comment_removed(self):
    assert _tokenize_line("LID0 LID/00000080   # lid\n", 2) == ["LID0", "LID/00000080"]

  def test_last_field_is_greedy(self):
    tokens = _tokenize_line("EV_KEY 0x01 KEY_POWER 116 1 button/power PWRF 00000080\n", 6)
    assert tokens == ["EV_KEY", "0x01", "KEY_POWER", "116", "1", "button/power PWRF 00000080"]

  def test_short_line_returns_fewer_tokens(self):
    assert _tokenize_line("PWRF\n", 2) == ["PWRF"]


class TestParseActionFile:
  """Test action file loading."""

  def test_load_in_order(self, sample_action_file):
    actions = parse_action_file(str(sample_action_file))
    assert actions == (
      ActionMapping("PWRF", "PWRF/00000080"),
      ActionMapping("LID0", "LID/00000080"),
      ActionMapping("SLPB", "SLPB/00000080"),
    )

  def test_missing_file_installs_defaults(self, temp_dir):
    actions = parse_action_file(str(temp_dir / "missing.conf"))
    assert actions is DEFAULT_ACTIONS
    assert len(actions) == 2
    assert actions[0] == ActionMapping("PWRF", "PWRF/00000080")
    assert actions[1] == ActionMapping("LID0", "LID/00000080")

  def test_empty_file_gives_empty_table(self, temp_dir):
    action_file = temp_dir / "acpid.conf"
    action_file.write_text("# nothing configured\n")
    assert parse_action_file(str(action_file)) == ()

  def test_short_line_skipped_and_logged(self, temp_dir, caplog):
    action_file = temp_dir / "acpid.conf"
    action_file.write_text("PWRF\nLID0 LID/00000080\n")
    with caplog.at_level(logging.ERROR):
      actions = parse_action_file(str(action_file))
    assert actions == (ActionMapping("LID0", "LID/00000080"),)
    assert "bad line 1" in caplog.text


class TestParseMapFile:
  """Test event map file loading."""

  def test_load_in_order(self, sample_map_file):
    events = parse_map_file(str(sample_map_file))
    assert len(events) == 4
    assert events[0] == EventMapping("EV_KEY", 1, "KEY_POWER", 116, 1, "button/power PWRF 00000080")
    assert events[1].type == 1
    assert events[1].code == 142
    assert events[2].type == 5
    assert events[3].value == 0
    assert events[3].description == "button/lid LID0 00000081"

  def test_hex_type_without_prefix(self, temp_dir):
    map_file = temp_dir / "acpi.map"
    map_file.write_text("EV_FOO 1f KEY_FOO 10 1 foo/bar\n")
    events = parse_map_file(str(map_file))
    assert events[0].type == 0x1F

  def test_missing_file_installs_defaults(self, temp_dir):
    events = parse_map_file(str(temp_dir / "missing.map"))
    assert events is DEFAULT_EVENTS
    assert len(events) == 2
    assert events[0].description == "button/power PWRF 00000080"
    assert events[1].description == "button/power PWRB 00000080"

  @pytest.mark.parametrize(
    "line",
    [
      "EV_KEY 0xZZ KEY_POWER 116 1 button/power PWRF 00000080",
      "EV_KEY 0x01 KEY_POWER 11x 1 button/power PWRF 00000080",
      "EV_KEY 0x01 KEY_POWER 116 -1 button/power PWRF 00000080",
      "EV_KEY 0x01 KEY_POWER 70000 1 button/power PWRF 00000080",
      "EV_KEY 0x10000 KEY_POWER 116 1 button/power PWRF 00000080",
    ],
  )
  def test_malformed_number_is_fatal(self, temp_dir, line):
    map_file = temp_dir / "acpi.map"
    map_file.write_text("EV_KEY 0x01 KEY_POWER 116 1 button/power PWRF 00000080\n" + line + "\n")
    with pytest.raises(ConfigError) as excinfo:
      parse_map_file(str(map_file))
    assert excinfo.value.lineno == 2
    assert excinfo.value.path == str(map_file)

  def test_type_name_mismatch_warns(self, temp_dir, caplog):
    map_file = temp_dir / "acpi.map"
    map_file.write_text("EV_SW 0x01 KEY_POWER 116 1 button/power PWRF 00000080\n")
    with caplog.at_level(logging.WARNING):
      events = parse_map_file(str(map_file))
    assert events[0].type == 1
    assert "EV_SW is type 0x05" in caplog.text

  def test_matching_type_name_is_quiet(self, sample_map_file, caplog):
    with caplog.at_level(logging.WARNING):
      parse_map_file(str(sample_map_file))
    assert "is type" not in caplog.text


class TestLoadRuleTables:
  """Test combined table loading."""

  def test_both_files(self, sample_action_file, sample_map_file):
    tables = load_rule_tables(str(sample_action_file), str(sample_map_file))
    assert len(tables.events) == 4
    assert len(tables.actions) == 3
    assert isinstance(tables.events, tuple)
    assert isinstance(tables.actions, tuple)

  def test_both_missing_gives_defaults(self, temp_dir):
    tables = load_rule_tables(str(temp_dir / "a"), str(temp_dir / "m"))
    assert tables == RuleTables()
    assert len(tables.events) == 2
    assert len(tables.actions) == 2
