"""Checked-idempotent caption timer on top of the asyncio loop."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Optional


class TimerState(str, Enum):
	IDLE = "idle"
	ARMED = "armed"
	FIRED = "fired"
	CANCELLED = "cancelled"


class CaptionTimer:
	"""One-shot timer that runs its callback at most once.

	Once cancelled the callback never runs, even if the underlying loop handle
	was already due. Cancelling a fired or cancelled timer is a no-op.
	"""

	def __init__(self, delay: float) -> None:
		if delay < 0:
			raise ValueError("Timer delay must be non-negative.")
		self.delay = delay
		self._state = TimerState.IDLE
		self._handle: Optional[asyncio.TimerHandle] = None

	@property
	def state(self) -> TimerState:
		return self._state

	@property
	def active(self) -> bool:
		return self._state is TimerState.ARMED

	def start(self, callback: Callable[[], None], loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
		"""Arm the timer. A timer cancelled before it was started stays cancelled."""
		if self._state is TimerState.CANCELLED:
			return
		if self._state is not TimerState.IDLE:
			raise RuntimeError(f"Timer already {self._state.value}.")
		loop = loop or asyncio.get_running_loop()
		self._state = TimerState.ARMED
		self._handle = loop.call_later(self.delay, self._fire, callback)

	def cancel(self) -> bool:
		"""Disarm the timer; return True only if this call prevented a fire."""
		if self._state in (TimerState.FIRED, TimerState.CANCELLED):
			return False
		self._state = TimerState.CANCELLED
		if self._handle is not None:
			self._handle.cancel()
			self._handle = None
		return True

	def _fire(self, callback: Callable[[], None]) -> None:
		if self._state is not TimerState.ARMED:
			return
		self._state = TimerState.FIRED
		self._handle = None
		callback()
