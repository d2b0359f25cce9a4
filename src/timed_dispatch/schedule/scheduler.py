# src/timed_dispatch/schedule/scheduler.py

from __future__ import annotations

"""
Message scheduler.

One timer per plan entry, armed relative to the moment schedule() is called.
When a timer fires, every address gets its own send task:
- sends for the same message run concurrently and finish in any order,
- a failed send is logged and affects nothing else,
- there is no retry and no throttling.

The scheduler only holds references to timers and in-flight tasks so they are not
garbage-collected; nobody waits on them during normal operation.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from ..core.ports import MessageSender
from .inputs import MAX_DELAY_SECONDS, DispatchPlan, ScheduledMessage, load_plan

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class MessageScheduler:
    def __init__(self, sender: MessageSender, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._sender = sender
        self._loop = loop
        self._timers: list[asyncio.TimerHandle] = []
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def timers(self) -> list[asyncio.TimerHandle]:
        return list(self._timers)

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def schedule(self, plan: DispatchPlan) -> int:
        """Arm one timer per plan entry and return how many were armed. Call from the loop thread."""
        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop

        armed = 0
        for item in plan.messages:
            if item.delay_seconds > MAX_DELAY_SECONDS:
                logger.warning("Not scheduling message %d: delay is too long for the event loop", item.index)
                continue
            # Negative delays fire right away, like an expired timer.
            delay = max(0, item.delay_seconds)
            handle = loop.call_later(delay, self._fire, item, plan.addresses)
            self._timers.append(handle)
            armed += 1
            logger.info(
                'Scheduled: "%s" after %ds -> %d target(s)',
                item.text,
                item.delay_seconds,
                len(plan.addresses),
            )

        if plan.skipped:
            logger.info("Skipped %d message(s) with an unusable delay: %s", len(plan.skipped), list(plan.skipped))

        return armed

    def _fire(self, item: ScheduledMessage, addresses: tuple[str, ...]) -> None:
        loop = self._loop or asyncio.get_running_loop()
        for address in addresses:
            task = loop.create_task(self._send_one(address, item.text))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def _send_one(self, address: str, text: str) -> None:
        try:
            await self._sender.send(address, text)
        except Exception as e:
            logger.error("Error sending to %s: %s", address, str(e) or type(e).__name__)
            logger.debug("Send failure details for %s", address, exc_info=True)
            return
        logger.info("Sent to %s: %s", address, text)

    async def drain(self) -> None:
        """Wait for the sends that are currently in flight."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def shutdown(self) -> None:
        """Drop pending timers and in-flight sends. Only for process exit."""
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
        for task in list(self._inflight):
            task.cancel()


def schedule_from_files(sender: MessageSender, settings: Settings) -> MessageScheduler | None:
    """Read the three input files once and arm the timers. None when validation fails."""
    plan = load_plan(
        settings.workdir,
        messages_file=settings.messages_file,
        delays_file=settings.delays_file,
        targets_file=settings.targets_file,
        suffix=settings.address_suffix,
    )
    if plan is None:
        return None

    scheduler = MessageScheduler(sender)
    scheduler.schedule(plan)
    return scheduler
