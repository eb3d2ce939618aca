import logging
import os
from typing import Iterator, List, Optional

from acpid.errors import SourceError
from acpid.events import EVENT_SIZE, InputEvent, decode_event

# Width of the trailing sequence field on /proc/acpi/event lines (" 00000000").
SEQUENCE_FIELD_WIDTH = 9
READ_CHUNK = 4096


def strip_sequence(line: str) -> str:
  """Drop the trailing sequence field; lines shorter than the field are kept as-is."""
  if len(line) >= SEQUENCE_FIELD_WIDTH:
    return line[:len(line) - SEQUENCE_FIELD_WIDTH]
  return line


class EventSource:
  def __init__(self, path: str, fd: int, textual: bool = False):
    self.path = path
    self.fd = fd
    self.textual = textual
    self.exhausted = False
    self._pending = b""

  def fileno(self) -> int:
    return self.fd

  def read_event(self) -> Optional[InputEvent]:
    """Read exactly one input_event record; anything short of that is no event."""
    data = b""
    while len(data) < EVENT_SIZE:
      try:
        chunk = os.read(self.fd, EVENT_SIZE - len(data))
      except BlockingIOError:
        break
      except OSError as exc:
        logging.debug("%s: read failed: %s", self.path, exc)
        break
      if not chunk:
        self.exhausted = True
        break
      data += chunk
    if len(data) != EVENT_SIZE:
      if data:
        logging.debug("%s: short read of %d bytes", self.path, len(data))
      return None
    return decode_event(data)

  def read_line(self) -> Optional[str]:
    while b"\n" not in self._pending and not self.exhausted:
      try:
        chunk = os.read(self.fd, READ_CHUNK)
      except BlockingIOError:
        return None
      except OSError as exc:
        logging.debug("%s: read failed: %s", self.path, exc)
        return None
      if not chunk:
        self.exhausted = True
        break
      self._pending += chunk

    if b"\n" in self._pending:
      raw, _, self._pending = self._pending.partition(b"\n")
    elif self._pending:
      raw, self._pending = self._pending, b""
    else:
      return None
    return raw.decode(errors="replace")

  def read_lines(self) -> Iterator[str]:
    while True:
      line = self.read_line()
      if line is None:
        return
      yield line

  def close(self):
    if self.fd >= 0:
      os.close(self.fd)
      self.fd = -1


def _open_nonblocking(path: str) -> int:
  return os.open(path, os.O_RDONLY | os.O_NONBLOCK)


def open_device_sources(prefix: str) -> List[EventSource]:
  """Open prefix0, prefix1, ... until the first failure; at least one must open."""
  sources: List[EventSource] = []
  index = 0
  while True:
    path = f"{prefix}{index}"
    try:
      fd = _open_nonblocking(path)
    except OSError as exc:
      if index == 0:
        raise SourceError(f"{path}: {exc.strerror or exc}") from exc
      break
    sources.append(EventSource(path, fd))
    index += 1
  logging.info("listening on %d input device(s) %s0..%s%d", len(sources), prefix, prefix, len(sources) - 1)
  return sources


def open_text_source(path: str) -> List[EventSource]:
  try:
    fd = _open_nonblocking(path)
  except OSError as exc:
    raise SourceError(f"{path}: {exc.strerror or exc}") from exc
  logging.info("listening on event file %s", path)
  return [EventSource(path, fd, textual=True)]
