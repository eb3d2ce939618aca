import logging
import os
import select
import signal
import sys
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Dict, List, Optional, Sequence

from acpid.config import AppConfig, SourceConfig, load_config
from acpid.dispatcher import Dispatcher
from acpid.errors import AcpidError
from acpid.events import format_event
from acpid.matcher import EventMatcher
from acpid.sources import EventSource, open_device_sources, open_text_source, strip_sequence
from acpid.tables import load_rule_tables

_RETIRE_MASK = select.POLLERR | select.POLLNVAL


class Listener:
  """Multiplexes all event sources with a single blocking poll() and dispatches resolved actions."""

  def __init__(self, sources: Sequence[EventSource], matcher: EventMatcher, dispatcher: Dispatcher):
    self.sources = tuple(sources)
    self.matcher = matcher
    self.dispatcher = dispatcher
    self.events_read = 0
    self.events_resolved = 0
    self.events_dropped = 0
    self._stop = False
    self._poller = select.poll()
    self._by_fd: Dict[int, EventSource] = {}
    for source in self.sources:
      self._poller.register(source.fileno(), select.POLLIN)
      self._by_fd[source.fileno()] = source
    self._active = len(self._by_fd)
    # Self-pipe so stop() from a signal handler wakes the infinite poll().
    self._wake_r, self._wake_w = os.pipe()
    os.set_blocking(self._wake_r, False)
    os.set_blocking(self._wake_w, False)
    self._poller.register(self._wake_r, select.POLLIN)

  def _process(self, action: Optional[str], raw: str):
    if action is None:
      self.events_dropped += 1
      return
    self.events_resolved += 1
    self.dispatcher.dispatch(action, raw)

  def handle_source(self, source: EventSource):
    if source.textual:
      for line in source.read_lines():
        self.events_read += 1
        self._process(self.matcher.match_text(strip_sequence(line)), line)
      return
    ev = source.read_event()
    if ev is None:
      return
    self.events_read += 1
    self._process(self.matcher.match_event(ev.type, ev.code, ev.value), format_event(ev))

  def _retire(self, source: EventSource):
    # The descriptor stays open until close(); it just stops being polled.
    self._poller.unregister(source.fileno())
    self._by_fd.pop(source.fileno(), None)
    self._active -= 1
    logging.info("%s: end of stream", source.path)

  def _drain_wake(self):
    try:
      while os.read(self._wake_r, 64):
        pass
    except BlockingIOError:
      pass

  def run(self):
    try:
      while not self._stop and self._active > 0:
        try:
          ready = self._poller.poll()
        except OSError as exc:
          logging.error("poll failed: %s", exc)
          break
        for fd, revents in ready:
          if fd == self._wake_r:
            self._drain_wake()
            continue
          source = self._by_fd.get(fd)
          if source is None:
            continue
          if revents & select.POLLIN:
            self.handle_source(source)
          hangup = revents & select.POLLHUP and not revents & select.POLLIN
          if source.exhausted or hangup or revents & _RETIRE_MASK:
            self._retire(source)
    finally:
      self.close()

  def stop(self):
    self._stop = True
    if self._wake_w < 0:
      return
    try:
      os.write(self._wake_w, b"\0")
    except OSError:
      # Pipe full (already woken) or closed by a concurrent close().
      pass

  def close(self):
    for source in self.sources:
      source.close()
    wake_fds = (self._wake_r, self._wake_w)
    self._wake_r = self._wake_w = -1
    for fd in wake_fds:
      if fd >= 0:
        os.close(fd)


class HealthHandler(BaseHTTPRequestHandler):
  def do_GET(self):  # noqa: N802
    if self.path.startswith("/metrics"):
      self.send_response(200)
      self.send_header("Content-Type", "text/plain; version=0.0.4")
      self.end_headers()
      listener = getattr(self.server, "_listener", None)
      counters = [
        ("acpid_events_read_total", "counter", "Raw events read from all sources"),
        ("acpid_events_resolved_total", "counter", "Events resolved to a handler action"),
        ("acpid_events_dropped_total", "counter", "Events that matched no event mapping"),
        ("acpid_handlers_spawned_total", "counter", "Handler processes spawned"),
        ("acpid_handlers_missing_total", "counter", "Resolved actions with no handler path"),
      ]
      values = [0, 0, 0, 0, 0]
      if listener is not None:
        values = [
          listener.events_read,
          listener.events_resolved,
          listener.events_dropped,
          listener.dispatcher.spawned,
          listener.dispatcher.missing,
        ]
      lines: List[str] = []
      for (name, kind, help_text), value in zip(counters, values):
        lines.extend([
          f"# HELP {name} {help_text}",
          f"# TYPE {name} {kind}",
          f"{name} {value}",
          "",
        ])
      self.wfile.write("\n".join(lines).encode("utf-8"))
      return
    self.send_response(200)
    self.end_headers()
    self.wfile.write(b"ok")

  def log_message(self, format, *args):  # noqa: A003
    return


def start_health_server(port: int, listener: Optional[Listener] = None) -> HTTPServer:
  server = HTTPServer(("127.0.0.1", port), HealthHandler)
  server._listener = listener
  thread = threading.Thread(target=server.serve_forever, daemon=True)
  thread.start()
  return server


def open_sources(cfg: SourceConfig) -> List[EventSource]:
  if cfg.mode == "proc":
    return open_text_source(cfg.proc_file)
  return open_device_sources(cfg.device_prefix)


def write_pidfile(path: str):
  if not path:
    return
  try:
    with open(path, "w", encoding="utf-8") as f:
      f.write(f"{os.getpid()}\n")
  except OSError as exc:
    logging.warning("cannot write pidfile %s: %s", path, exc.strerror or exc)


def remove_pidfile(path: str):
  if not path:
    return
  try:
    os.unlink(path)
  except FileNotFoundError:
    pass


def configure_logging(level: str):
  lvl = getattr(logging, level.upper(), logging.INFO)
  logging.basicConfig(level=lvl, format="%(asctime)s %(levelname)s %(message)s")


def build_listener(cfg: AppConfig) -> Listener:
  """Load rule tables and open sources; raises AcpidError on fatal startup conditions."""
  tables = load_rule_tables(cfg.action_file, cfg.map_file)
  if not os.path.isdir(cfg.conf_dir):
    raise AcpidError(f"{cfg.conf_dir}: handler directory does not exist")
  sources = open_sources(cfg.source)
  dispatcher = Dispatcher(cfg.conf_dir, run_parts=cfg.run_parts, debug=cfg.debug)
  return Listener(sources, EventMatcher(tables), dispatcher)


def main() -> int:
  try:
    cfg = load_config()
    configure_logging(cfg.log_level)
    # Handlers are never waited on; let the kernel reap them.
    signal.signal(signal.SIGCHLD, signal.SIG_IGN)
    listener = build_listener(cfg)
  except AcpidError as exc:
    logging.error("%s", exc)
    return 1

  health_server = None
  if cfg.health_port:
    try:
      health_server = start_health_server(cfg.health_port, listener=listener)
    except OSError as exc:
      logging.error("cannot start health server on port %d: %s", cfg.health_port, exc.strerror or exc)
      listener.close()
      return 1
  write_pidfile(cfg.pid_file)

  def handle_signal(signum, frame):  # noqa: ANN001
    logging.info("received signal %s", signum)
    listener.stop()

  signal.signal(signal.SIGTERM, handle_signal)
  signal.signal(signal.SIGINT, handle_signal)

  try:
    listener.run()
  finally:
    if health_server:
      health_server.shutdown()
    remove_pidfile(cfg.pid_file)
  return 0


if __name__ == "__main__":
  sys.exit(main())
