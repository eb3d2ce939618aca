#!/usr/bin/env python3
"""Decode a captured /dev/input/eventN dump and show what each record resolves to.

  cat /dev/input/event3 > power.bin   # press the button, then ^C
  decode_events.py power.bin /etc/acpi.map /etc/acpid.conf
"""
import sys
from pathlib import Path

from acpid.events import EVENT_SIZE, decode_event, format_event
from acpid.matcher import EventMatcher
from acpid.tables import DEFAULT_ACTIONS, DEFAULT_EVENTS, RuleTables, parse_action_file, parse_map_file


def decode(path: Path, matcher: EventMatcher, out):
  with path.open("rb") as f:
    while True:
      data = f.read(EVENT_SIZE)
      if len(data) < EVENT_SIZE:
        break
      ev = decode_event(data)
      action = matcher.match_event(ev.type, ev.code, ev.value)
      out.write(f"{format_event(ev)} -> {action or '-'}\n")


def main():
  if len(sys.argv) < 2:
    print(f"usage: {sys.argv[0]} <event dump> [map-file] [action-file]", file=sys.stderr)
    sys.exit(1)
  events = parse_map_file(sys.argv[2]) if len(sys.argv) > 2 else DEFAULT_EVENTS
  actions = parse_action_file(sys.argv[3]) if len(sys.argv) > 3 else DEFAULT_ACTIONS
  decode(Path(sys.argv[1]), EventMatcher(RuleTables(events=events, actions=actions)), sys.stdout)


if __name__ == "__main__":
  main()
