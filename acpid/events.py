"""Binary input event layout and evdev type registry shared by listener components."""

import ctypes
from typing import Dict


class InputEvent(ctypes.Structure):
  # struct input_event from <linux/input.h>; time_t/suseconds_t are both 'long'.
  _fields_ = [
    ("sec", ctypes.c_long),
    ("usec", ctypes.c_long),
    ("type", ctypes.c_uint16),
    ("code", ctypes.c_uint16),
    ("value", ctypes.c_int32),
  ]


EVENT_SIZE = ctypes.sizeof(InputEvent)

# Event types from <linux/input-event-codes.h>.
EV_TYPE_TO_NAME: Dict[int, str] = {
  0x00: "EV_SYN",
  0x01: "EV_KEY",
  0x02: "EV_REL",
  0x03: "EV_ABS",
  0x04: "EV_MSC",
  0x05: "EV_SW",
  0x11: "EV_LED",
  0x12: "EV_SND",
  0x14: "EV_REP",
  0x15: "EV_FF",
  0x16: "EV_PWR",
  0x17: "EV_FF_STATUS",
}

EV_NAME_TO_TYPE: Dict[str, int] = {v: k for k, v in EV_TYPE_TO_NAME.items()}


def decode_event(data: bytes) -> InputEvent:
  """Decode one raw record; data must be exactly EVENT_SIZE bytes."""
  if len(data) != EVENT_SIZE:
    raise ValueError(f"expected {EVENT_SIZE} bytes, got {len(data)}")
  return InputEvent.from_buffer_copy(data)


def encode_event(ev_type: int, code: int, value: int, sec: int = 0, usec: int = 0) -> bytes:
  return bytes(InputEvent(sec=sec, usec=usec, type=ev_type, code=code, value=value))


def format_event(ev: InputEvent) -> str:
  type_name = EV_TYPE_TO_NAME.get(ev.type, f"0x{ev.type:02x}")
  return f"{type_name} {ev.code} {ev.value}"
