"""Shared pytest fixtures."""
import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def temp_dir():
  """Create a temporary directory for test files."""
  with tempfile.TemporaryDirectory() as tmpdir:
    yield Path(tmpdir)


@pytest.fixture
def sample_action_file(temp_dir):
  """Create a sample acpid.conf action file."""
  action_file = temp_dir / "acpid.conf"
  action_file.write_text("""# key   action
PWRF    PWRF/00000080
LID0    LID/00000080   # lid switch
SLPB\tSLPB/00000080

""")
  return action_file


@pytest.fixture
def sample_map_file(temp_dir):
  """Create a sample acpi.map event map file."""
  map_file = temp_dir / "acpi.map"
  map_file.write_text("""# type  hex  code         dec  val  description
EV_KEY  0x01 KEY_POWER    116  1    button/power PWRF 00000080
EV_KEY  01   KEY_SLEEP    142  1    button/sleep SLPB 00000080
EV_SW   0x05 SW_LID       0    1    button/lid LID0 00000080
EV_SW   0x05 SW_LID       0    0    button/lid LID0 00000081
""")
  return map_file


@pytest.fixture
def sample_config_yaml(temp_dir):
  """Create a sample acpid.yaml daemon config."""
  config_file = temp_dir / "acpid.yaml"
  config_file.write_text("""logLevel: debug
debug: true
confDir: /etc/acpi
actionFile: /etc/acpid.conf
mapFile: /etc/acpi.map
pidFile: /run/acpid.pid
runParts: /bin/run-parts
source:
  mode: proc
  devicePrefix: /dev/input/event
  procFile: /proc/acpi/event
health:
  port: 9103
""")
  return config_file
