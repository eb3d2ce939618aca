class AcpidError(Exception):
  """Base class for fatal listener errors."""


class ConfigError(AcpidError):
  """A rule file was opened but contains a malformed record."""

  def __init__(self, path: str, lineno: int, message: str):
    super().__init__(f"{path}:{lineno}: {message}")
    self.path = path
    self.lineno = lineno


class SourceError(AcpidError):
  """No usable event source could be opened."""
