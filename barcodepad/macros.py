"""Input sequences the server plays on a client's virtual gamepad."""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable, Iterable, Tuple

from .controller import BTN_X, Controller
from .protocol import Macro, Side

UP = -1.0
DOWN = 1.0
LEFT = 1.0
RIGHT = -1.0
NEUTRAL = (0.0, 0.0)

_FORWARD: dict[Side, float] = {Side.LEFT: 1.0, Side.RIGHT: -1.0}


class _Op(Enum):
    STICK = "stick"
    SYNC = "sync"
    WAIT = "wait"
    PRESS = "press"
    RELEASE = "release"


_Step = Tuple


def _play(
    controller: Controller,
    steps: Iterable[_Step],
    pause: Callable[[float], None],
) -> int:
    """Apply ``steps`` to ``controller`` in order; return how many ran."""
    count = 0
    for op, *args in steps:
        if op is _Op.STICK:
            controller.set_joystick(*args)
        elif op is _Op.SYNC:
            controller.sync()
        elif op is _Op.WAIT:
            pause(*args)
        elif op is _Op.PRESS:
            controller.press_button(*args)
        elif op is _Op.RELEASE:
            controller.release_button(*args)
        else:
            raise ValueError(f"unknown macro step {op!r}")
        count += 1
    return count


def _run_and_attack_steps(side: Side) -> list[_Step]:
    return [
        (_Op.STICK, Side.LEFT, (_FORWARD[side], 0.0)),
        (_Op.STICK, Side.RIGHT, (0.0, UP)),
        (_Op.SYNC,),
        (_Op.WAIT, 0.5),
        (_Op.STICK, Side.LEFT, NEUTRAL),
        (_Op.STICK, Side.RIGHT, NEUTRAL),
        (_Op.SYNC,),
        (_Op.WAIT, 0.1),
        (_Op.PRESS, BTN_X),
        (_Op.SYNC,),
        (_Op.WAIT, 0.1),
        (_Op.RELEASE, BTN_X),
        (_Op.SYNC,),
    ]


# Reserved and fallback macros play no input.
_JUMP_STEPS: tuple[_Step, ...] = ()
_INVALID_STEPS: tuple[_Step, ...] = ()


def run_and_attack(
    controller: Controller,
    side: Side,
    sleep: Callable[[float], None] | None = None,
) -> None:
    """Run forward while aiming up, return to neutral, then tap X."""
    pause = time.sleep if sleep is None else sleep
    _play(controller, _run_and_attack_steps(side), pause)


def jump(controller: Controller, side: Side) -> None:
    """Reserved macro; sends nothing."""
    _play(controller, _JUMP_STEPS, time.sleep)


def invalid(controller: Controller, side: Side) -> None:
    """Played for unrecognised barcodes; sends nothing."""
    _play(controller, _INVALID_STEPS, time.sleep)


_ACTIONS: dict[Macro, Callable[[Controller, Side], None]] = {
    Macro.RUN_AND_ATTACK: run_and_attack,
    Macro.JUMP: jump,
    Macro.INVALID: invalid,
}


def perform(macro: int, controller: Controller, side: Side) -> None:
    """Play ``macro`` on ``controller``; unknown codes do nothing."""
    action = _ACTIONS.get(macro)
    if action is not None:
        action(controller, side)