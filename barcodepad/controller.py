"""A virtual gamepad driven through the Linux uinput interface."""

from __future__ import annotations

import logging
import os
import struct
from typing import BinaryIO

from .protocol import Side

log = logging.getLogger(__name__)

MAX_ABS = 32767
MIN_ABS = -32768

EV_SYN = 0x00
EV_KEY = 0x01
EV_ABS = 0x03
SYN_REPORT = 0

BTN_A = 0x130
BTN_B = 0x131
BTN_X = 0x133
BTN_Y = 0x134
BTN_TL = 0x136
BTN_TR = 0x137
BTN_TL2 = 0x138
BTN_TR2 = 0x139
BTN_SELECT = 0x13A
BTN_START = 0x13B
BTN_THUMBL = 0x13D
BTN_THUMBR = 0x13E
BTN_DPAD_UP = 0x220
BTN_DPAD_DOWN = 0x221
BTN_DPAD_LEFT = 0x222
BTN_DPAD_RIGHT = 0x223

ABS_X = 0x00
ABS_Y = 0x01
ABS_RX = 0x03
ABS_RY = 0x04

BUS_USB = 0x03

BUTTONS = (
    BTN_A, BTN_B, BTN_X, BTN_Y,
    BTN_TL, BTN_TR, BTN_TL2, BTN_TR2,
    BTN_START, BTN_SELECT,
    BTN_THUMBL, BTN_THUMBR,
    BTN_DPAD_UP, BTN_DPAD_DOWN, BTN_DPAD_LEFT, BTN_DPAD_RIGHT,
)
AXES = (ABS_X, ABS_Y, ABS_RX, ABS_RY)

DEVICE_NAME = b"Barcode controller"
DEFAULT_DEVICE = "/dev/uinput"

#: struct input_event: timeval (two native longs), type, code, value.
EVENT_STRUCT = struct.Struct("@llHHi")
_SETUP_STRUCT = struct.Struct("=HHHH80sI")
_ABS_SETUP_STRUCT = struct.Struct("=H2x6i")


def _iow(nr: int, size: int) -> int:
    return (1 << 30) | (size << 16) | (ord("U") << 8) | nr


def _io(nr: int) -> int:
    return (ord("U") << 8) | nr


UI_DEV_CREATE = _io(1)
UI_DEV_DESTROY = _io(2)
UI_DEV_SETUP = _iow(3, _SETUP_STRUCT.size)
UI_ABS_SETUP = _iow(4, _ABS_SETUP_STRUCT.size)
UI_SET_EVBIT = _iow(100, 4)
UI_SET_KEYBIT = _iow(101, 4)
UI_SET_ABSBIT = _iow(103, 4)

_STICK_AXES = {
    Side.LEFT: (ABS_X, ABS_Y),
    Side.RIGHT: (ABS_RX, ABS_RY),
}


class ControllerError(Exception):
    """The virtual controller could not be created."""


def _ioctl(fd: int, request: int, arg: int | bytes = 0) -> None:
    import fcntl

    fcntl.ioctl(fd, request, arg)


def map_controller_range(v: float) -> int:
    """Map a stick position in [-1, 1] onto the signed 16-bit axis range."""
    slope = (MAX_ABS - MIN_ABS) / 2.0
    output = MIN_ABS + slope * (v + 1)
    return max(MIN_ABS, min(MAX_ABS, int(output)))


class Controller:
    """Writes input events to an opened uinput device (or any binary stream)."""

    def __init__(self, device: BinaryIO) -> None:
        self._device = device
        self._registered = False

    def send_event(self, type_: int, code: int, value: int) -> None:
        """Write one input event; a failed write is logged, not raised."""
        data = EVENT_STRUCT.pack(0, 0, type_, code, value)
        try:
            written = self._device.write(data)
        except OSError as exc:
            log.error("Failed to send event to controller: %s", exc)
            return
        if written != len(data):
            log.error("Failed to send event to controller")

    def sync(self) -> None:
        self.send_event(EV_SYN, SYN_REPORT, 0)

    def set_joystick(self, side: Side, coords: tuple[float, float]) -> None:
        """Move the stick on ``side`` to ``coords`` (x, y), each in [-1, 1]."""
        axis_x, axis_y = _STICK_AXES[Side(side)]
        x, y = coords
        self.send_event(EV_ABS, axis_x, map_controller_range(x))
        self.send_event(EV_ABS, axis_y, map_controller_range(y))

    def press_button(self, button: int) -> None:
        self.send_event(EV_KEY, button, 1)

    def release_button(self, button: int) -> None:
        self.send_event(EV_KEY, button, 0)

    def close(self) -> None:
        """Unregister the device if it was created, then close it."""
        if self._registered:
            self._registered = False
            try:
                _ioctl(self._device.fileno(), UI_DEV_DESTROY)
            except OSError:
                log.error("Failed to destroy device")
        self._device.close()

    def __enter__(self) -> Controller:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def _setup_abs(fd: int, code: int) -> None:
    try:
        _ioctl(fd, UI_SET_ABSBIT, code)
    except OSError:
        log.error("Failed to set abs bit")
        return
    setup = _ABS_SETUP_STRUCT.pack(code, 0, MIN_ABS, MAX_ABS, 0, 0, 0)
    try:
        _ioctl(fd, UI_ABS_SETUP, setup)
    except OSError:
        log.error("Failed to do uinput abs setup")


def create_controller(path: str = DEFAULT_DEVICE) -> Controller:
    """Register a new virtual gamepad through the uinput device at ``path``."""
    try:
        fd = os.open(path, os.O_WRONLY | os.O_NONBLOCK)
    except OSError as exc:
        raise ControllerError(f"Failed to open {path}: {exc}") from exc

    try:
        for request, arg in [(UI_SET_EVBIT, EV_KEY)] + [
            (UI_SET_KEYBIT, button) for button in BUTTONS
        ] + [(UI_SET_EVBIT, EV_ABS)]:
            try:
                _ioctl(fd, request, arg)
            except OSError:
                pass

        for axis in AXES:
            _setup_abs(fd, axis)

        setup = _SETUP_STRUCT.pack(BUS_USB, 0x3, 0x3, 2, DEVICE_NAME, 0)
        try:
            _ioctl(fd, UI_DEV_SETUP, setup)
        except OSError as exc:
            raise ControllerError(f"Failed to setup device: {exc}") from exc
        try:
            _ioctl(fd, UI_DEV_CREATE)
        except OSError as exc:
            raise ControllerError(f"Failed to create device: {exc}") from exc
    except ControllerError:
        os.close(fd)
        raise

    controller = Controller(os.fdopen(fd, "wb", buffering=0))
    controller._registered = True
    return controller