import logging
import os
import stat
import subprocess
from typing import List, Optional


class Dispatcher:
  """Spawns the handler for a resolved action without waiting for it.

  Handlers live under conf_dir: a directory is handed to the batch runner
  (run-parts), anything else is executed directly. Children are never
  waited on; the process must ignore SIGCHLD so the kernel reaps them.
  """

  def __init__(self, conf_dir: str, run_parts: str = "run-parts", debug: bool = False):
    self.conf_dir = conf_dir
    self.run_parts = run_parts
    self.debug = debug
    self.spawned = 0
    self.missing = 0

  def handler_argv(self, action: str) -> Optional[List[str]]:
    """Return the command for an action, or None when its handler path does not exist."""
    handler = f"./{action}"
    try:
      st = os.stat(os.path.join(self.conf_dir, handler))
    except OSError as exc:
      logging.warning("%s: %s", action, exc.strerror or exc)
      return None
    if stat.S_ISDIR(st.st_mode):
      return [self.run_parts, handler]
    return [handler]

  def dispatch(self, action: str, raw: str = "") -> bool:
    if self.debug:
      logging.info("event %s -> %s", raw or "-", action)
    argv = self.handler_argv(action)
    if argv is None:
      self.missing += 1
      return False
    try:
      subprocess.Popen(argv, cwd=self.conf_dir)
    except OSError as exc:
      logging.error("%s: cannot spawn %s: %s", action, argv[0], exc.strerror or exc)
      return False
    self.spawned += 1
    logging.debug("spawned %s", " ".join(argv))
    return True
