# src/timed_dispatch/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- ensures local (gitignored) directories exist,
- loads stored credentials and builds the session for the configured transport,
- wires session events into SessionState, the credential store and the scheduler,
- runs the session until asked to stop.

Both entry points (plain CLI and HTTP server) go through here.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from dataclasses import dataclass
from typing import Any

from ..config import Settings, get_settings
from ..connectors.registry import resolve_session_factory
from ..core.credentials import JsonCredentialStore
from ..core.events import SessionEvent
from ..core.ports import CredentialStore, Session
from ..core.state import SessionState
from ..qr import print_terminal
from ..schedule.scheduler import MessageScheduler, schedule_from_files

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    settings: Settings
    state: SessionState
    credentials: CredentialStore
    session: Session
    scheduler: MessageScheduler | None = None
    scheduled: bool = False


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.credentials_path.parent.mkdir(parents=True, exist_ok=True)


def create_runtime(*, settings: Settings | None = None, session: Session | None = None) -> Runtime:
    """
    Build the Runtime for the given settings.

    `session` can be injected (tests); otherwise the configured transport builds one
    from the stored credentials.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = JsonCredentialStore(settings.credentials_path)
    if session is None:
        factory = resolve_session_factory(settings.transport)
        session = factory(settings, store.load())

    runtime = Runtime(settings=settings, state=SessionState(), credentials=store, session=session)
    wire_session(runtime)
    return runtime


def _save_credentials(runtime: Runtime, credentials: Any) -> None:
    if not isinstance(credentials, dict):
        logger.warning("Ignoring credentials update with unexpected payload type %s", type(credentials).__name__)
        return
    try:
        runtime.credentials.save(credentials)
    except Exception:
        logger.exception("Failed to save credentials.")


def _show_scan_code(runtime: Runtime, code: Any) -> None:
    logger.info("Pairing code available: scan it with the messaging app (linked devices).")
    if not runtime.settings.print_qr:
        return
    try:
        print_terminal(str(code), out=sys.stdout)
    except Exception:
        logger.warning("Failed to draw the pairing code in the terminal.", exc_info=True)


def _on_opened(runtime: Runtime) -> None:
    logger.info("Connected.")
    # Inputs are read once per run; a reconnect does not schedule again.
    if runtime.scheduled:
        logger.info("Messages already scheduled for this run; ignoring reconnect.")
        return
    runtime.scheduled = True
    runtime.scheduler = schedule_from_files(runtime.session, runtime.settings)


def _on_closed(runtime: Runtime, error: Any) -> None:
    if error:
        logger.warning("Connection closed: %s", error)
    else:
        logger.info("Connection closed.")


def wire_session(runtime: Runtime) -> None:
    """Subscribe the app to the session events. Order matters: state first, side effects after."""
    session = runtime.session
    state = runtime.state

    session.on(SessionEvent.SCAN_CODE_AVAILABLE, state.on_scan_code)
    session.on(SessionEvent.CONNECTION_OPENED, state.on_opened)
    session.on(SessionEvent.CONNECTION_CLOSED, state.on_closed)
    session.on(SessionEvent.CREDENTIALS_UPDATED, state.on_credentials)

    session.on(SessionEvent.CREDENTIALS_UPDATED, lambda creds: _save_credentials(runtime, creds))
    session.on(SessionEvent.SCAN_CODE_AVAILABLE, lambda code: _show_scan_code(runtime, code))
    session.on(SessionEvent.CONNECTION_OPENED, lambda _: _on_opened(runtime))
    session.on(SessionEvent.CONNECTION_CLOSED, lambda err: _on_closed(runtime, err))


async def run_session(runtime: Runtime, stop_event: asyncio.Event) -> bool:
    """
    Connect and keep running until stop_event is set.

    Returns False if the connection could not be started (the error is logged and kept
    in state.last_error), True after a normal stop.
    """
    runtime.state.on_connecting()
    logger.info("Connecting (transport=%s)...", runtime.settings.transport)

    try:
        await runtime.session.connect()
    except Exception as e:
        logger.exception("Start error")
        runtime.state.record_error(e)
        # Release whatever connect() set up before it failed.
        with contextlib.suppress(Exception):
            await runtime.session.close()
        runtime.state.on_closed(None)
        return False

    try:
        await stop_event.wait()
    finally:
        if runtime.scheduler is not None:
            runtime.scheduler.shutdown()
        with contextlib.suppress(Exception):
            await runtime.session.close()
    return True
