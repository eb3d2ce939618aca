import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from acpid.errors import ConfigError
from acpid.events import EV_NAME_TO_TYPE

ACTION_FIELDS = 2
MAP_FIELDS = 6

_HEX_RE = re.compile(r"(0[xX])?[0-9a-fA-F]+\Z")
_DEC_RE = re.compile(r"[0-9]+\Z")


@dataclass(frozen=True)
class EventMapping:
  type_name: str
  type: int
  code_name: str
  code: int
  value: int
  description: str

  def matches(self, ev_type: int, code: int, value: int) -> bool:
    return self.type == ev_type and self.code == code and self.value == value


@dataclass(frozen=True)
class ActionMapping:
  key: str
  action: str


DEFAULT_EVENTS: Tuple[EventMapping, ...] = (
  EventMapping("EV_KEY", 0x01, "KEY_POWER", 116, 1, "button/power PWRF 00000080"),
  EventMapping("EV_KEY", 0x01, "KEY_POWER", 116, 1, "button/power PWRB 00000080"),
)

DEFAULT_ACTIONS: Tuple[ActionMapping, ...] = (
  ActionMapping("PWRF", "PWRF/00000080"),
  ActionMapping("LID0", "LID/00000080"),
)


@dataclass(frozen=True)
class RuleTables:
  events: Tuple[EventMapping, ...] = DEFAULT_EVENTS
  actions: Tuple[ActionMapping, ...] = DEFAULT_ACTIONS


def _tokenize_line(line: str, fields: int) -> List[str]:
  # '#' comments run to end of line; the last field swallows the remainder.
  body = line.split("#", 1)[0].strip(" \t\r\n")
  if not body:
    return []
  return re.split(r"[ \t]+", body, maxsplit=fields - 1)


def _read_records(path: str, fields: int) -> Iterator[Tuple[int, List[str]]]:
  """Yield (lineno, tokens) for every complete record in an open rule file.

  Raises OSError when the file cannot be opened so callers can fall back.
  """
  with open(path, "r", encoding="utf-8", errors="replace") as f:
    for lineno, line in enumerate(f, start=1):
      tokens = _tokenize_line(line, fields)
      if not tokens:
        continue
      if len(tokens) < fields:
        logging.error("%s: bad line %d: %d tokens found, %d needed", path, lineno, len(tokens), fields)
        continue
      yield lineno, tokens


def _parse_int(token: str, base: int, limit: int, path: str, lineno: int, what: str) -> int:
  pattern = _HEX_RE if base == 16 else _DEC_RE
  if not pattern.match(token):
    raise ConfigError(path, lineno, f"invalid number '{token}' for {what}")
  value = int(token, base)
  if value > limit:
    raise ConfigError(path, lineno, f"number '{token}' out of range for {what}")
  return value


def parse_action_file(path: str) -> Tuple[ActionMapping, ...]:
  try:
    actions = [ActionMapping(key=tokens[0], action=tokens[1]) for _, tokens in _read_records(path, ACTION_FIELDS)]
  except OSError as exc:
    logging.info("action file %s unavailable (%s), using built-in defaults", path, exc.strerror or exc)
    return DEFAULT_ACTIONS
  return tuple(actions)


def parse_map_file(path: str) -> Tuple[EventMapping, ...]:
  events: List[EventMapping] = []
  try:
    for lineno, tokens in _read_records(path, MAP_FIELDS):
      ev_type = _parse_int(tokens[1], 16, 0xFFFF, path, lineno, "event type")
      known = EV_NAME_TO_TYPE.get(tokens[0])
      if known is not None and known != ev_type:
        # Names are informational; matching always uses the numeric type.
        logging.warning("%s:%d: %s is type 0x%02x, map says 0x%02x", path, lineno, tokens[0], known, ev_type)
      events.append(
        EventMapping(
          type_name=tokens[0],
          type=ev_type,
          code_name=tokens[2],
          code=_parse_int(tokens[3], 10, 0xFFFF, path, lineno, "event code"),
          value=_parse_int(tokens[4], 10, 0x7FFFFFFF, path, lineno, "event value"),
          description=tokens[5],
        )
      )
  except OSError as exc:
    logging.info("map file %s unavailable (%s), using built-in defaults", path, exc.strerror or exc)
    return DEFAULT_EVENTS
  return tuple(events)


def load_rule_tables(action_file: str, map_file: str) -> RuleTables:
  tables = RuleTables(events=parse_map_file(map_file), actions=parse_action_file(action_file))
  logging.info("loaded %d event mappings and %d action mappings", len(tables.events), len(tables.actions))
  return tables
