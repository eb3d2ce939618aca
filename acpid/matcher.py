from typing import Optional

from acpid.tables import RuleTables

# Key release / key press; autorepeat (2) and anything else never reaches the tables.
ACCEPTED_VALUES = (0, 1)


class EventMatcher:
  """Resolves raw events to handler actions against read-only rule tables."""

  def __init__(self, tables: RuleTables):
    self.tables = tables

  def describe_event(self, ev_type: int, code: int, value: int) -> Optional[str]:
    for mapping in self.tables.events:
      if mapping.matches(ev_type, code, value):
        return mapping.description
    return None

  def describe_text(self, buf: str) -> Optional[str]:
    for mapping in self.tables.events:
      if mapping.description.startswith(buf):
        return mapping.description
    return None

  def resolve_description(self, description: str) -> str:
    for mapping in self.tables.actions:
      if mapping.key in description:
        return mapping.action
    return description

  def match_event(self, ev_type: int, code: int, value: int) -> Optional[str]:
    if value not in ACCEPTED_VALUES:
      return None
    description = self.describe_event(ev_type, code, value)
    if description is None:
      return None
    return self.resolve_description(description)

  def match_text(self, buf: str) -> Optional[str]:
    """Resolve a textual event whose trailing sequence field is already stripped."""
    description = self.describe_text(buf)
    if description is None:
      return None
    return self.resolve_description(description)
