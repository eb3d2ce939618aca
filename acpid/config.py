import os
import yaml
from dataclasses import dataclass, field
from typing import Optional

from acpid.errors import AcpidError

DEFAULT_CONFIG_PATH = "/etc/acpid/acpid.yaml"


@dataclass
class SourceConfig:
  mode: str = "evdev"  # evdev|proc
  device_prefix: str = "/dev/input/event"
  proc_file: str = "/proc/acpi/event"


@dataclass
class AppConfig:
  log_level: str = "info"
  debug: bool = False
  conf_dir: str = "/etc/acpi"
  action_file: str = "/etc/acpid.conf"
  map_file: str = "/etc/acpi.map"
  pid_file: str = "/var/run/acpid.pid"
  run_parts: str = "run-parts"
  health_port: int = 0  # 0 disables the health/metrics endpoint
  source: SourceConfig = field(default_factory=SourceConfig)


def _port(raw, path: str) -> int:
  try:
    port = int(raw)
  except (TypeError, ValueError) as exc:
    raise AcpidError(f"{path}: invalid health port '{raw}'") from exc
  if not 0 <= port <= 65535:
    raise AcpidError(f"{path}: health port {port} out of range")
  return port


def load_config(path: Optional[str] = None) -> AppConfig:
  path = path or os.environ.get("ACPID_CONFIG", DEFAULT_CONFIG_PATH)
  if not os.path.exists(path):
    return AppConfig()
  try:
    with open(path, "r", encoding="utf-8") as f:
      data = yaml.safe_load(f) or {}
  except (OSError, yaml.YAMLError) as exc:
    raise AcpidError(f"{path}: cannot load config: {exc}") from exc
  if not isinstance(data, dict):
    raise AcpidError(f"{path}: config must be a mapping")

  source_cfg = data.get("source") or {}
  health_cfg = data.get("health") or {}
  if not isinstance(source_cfg, dict) or not isinstance(health_cfg, dict):
    raise AcpidError(f"{path}: source and health must be mappings")

  mode = str(source_cfg.get("mode", "evdev"))
  if mode not in ("evdev", "proc"):
    raise AcpidError(f"{path}: unsupported source mode '{mode}' (expected evdev or proc)")

  source = SourceConfig(
    mode=mode,
    device_prefix=str(source_cfg.get("devicePrefix", "/dev/input/event")),
    proc_file=str(source_cfg.get("procFile", "/proc/acpi/event")),
  )

  return AppConfig(
    log_level=str(data.get("logLevel", "info")),
    debug=bool(data.get("debug", False)),
    conf_dir=str(data.get("confDir", "/etc/acpi")),
    action_file=str(data.get("actionFile", "/etc/acpid.conf")),
    map_file=str(data.get("mapFile", "/etc/acpi.map")),
    pid_file=str(data.get("pidFile", "/var/run/acpid.pid") or ""),
    run_parts=str(data.get("runParts", "run-parts")),
    health_port=_port(health_cfg.get("port", 0), path),
    source=source,
  )
