# src/timed_dispatch/schedule/inputs.py

"""
Input files -> DispatchPlan.

Three newline-delimited files, aligned by index:
- messages: one text per line
- delays:   one integer (seconds) per line
- targets:  one recipient per line (raw number or ready-made address)

Blank lines and lines starting with '#' are ignored everywhere.
Validation never raises: a bad shape logs a warning and yields no plan.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS_SUFFIX = "s.whatsapp.net"

# ASCII only: other Unicode digits are not numbers here.
_INT_PREFIX = re.compile(r"([+-]?)(?:0[xX]([0-9a-fA-F]*)|([0-9]+))")
_NON_DIGITS = re.compile(r"[^0-9]")

# Longest delay the event loop can arm.
MAX_DELAY_SECONDS = int(threading.TIMEOUT_MAX)


@dataclass(slots=True, frozen=True)
class ScheduledMessage:
    index: int
    text: str
    delay_seconds: int


@dataclass(slots=True, frozen=True)
class DispatchPlan:
    messages: tuple[ScheduledMessage, ...]
    addresses: tuple[str, ...]
    # Indexes whose delay line did not parse; those messages are not sent.
    skipped: tuple[int, ...] = ()

    @property
    def total_sends(self) -> int:
        return len(self.messages) * len(self.addresses)


def read_lines(path: str | Path) -> list[str]:
    """Read meaningful lines; a missing or unreadable file counts as empty."""
    path = Path(path)
    if not path.exists():
        return []
    try:
        raw = path.read_text("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read %s, treating it as empty: %r", path, e)
        return []

    out: list[str] = []
    for line in raw.split("\n"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        out.append(line)
    return out


def parse_delay(raw: str) -> int | None:
    """
    Parse the leading integer of a delay line.

    "10" -> 10, "10s" -> 10, "3.7" -> 3, "0x1A" -> 26, "abc" -> None, "0x" -> None.
    """
    m = _INT_PREFIX.match(raw.strip())
    if not m:
        return None
    sign, hex_digits, dec_digits = m.groups()
    try:
        if dec_digits is None:
            if not hex_digits:
                return None
            value = int(hex_digits, 16)
        else:
            value = int(dec_digits)
    except ValueError:
        # More digits than int() accepts.
        return None
    return -value if sign == "-" else value


def normalize_address(raw: str, suffix: str = DEFAULT_ADDRESS_SUFFIX) -> str:
    """Pass ready-made addresses through; turn anything else into '<digits>@<suffix>'."""
    if "@" in raw:
        return raw
    return f"{_NON_DIGITS.sub('', raw)}@{suffix}"


def build_plan(
    messages: list[str],
    delay_lines: list[str],
    targets: list[str],
    *,
    suffix: str = DEFAULT_ADDRESS_SUFFIX,
) -> DispatchPlan | None:
    if not messages or not delay_lines:
        logger.warning("Nothing to schedule: messages or delays are empty.")
        return None
    if len(messages) != len(delay_lines):
        logger.warning(
            "Messages and delays must have the same number of lines (messages=%d, delays=%d).",
            len(messages),
            len(delay_lines),
        )
        return None
    if not targets:
        logger.warning("Nothing to schedule: targets are empty.")
        return None

    addresses = tuple(normalize_address(t, suffix) for t in targets)

    scheduled: list[ScheduledMessage] = []
    skipped: list[int] = []
    for i, (text, raw_delay) in enumerate(zip(messages, delay_lines)):
        delay = parse_delay(raw_delay)
        if delay is None:
            logger.debug("Skipping message %d: delay %r is not a number", i, raw_delay)
            skipped.append(i)
            continue
        if delay > MAX_DELAY_SECONDS:
            logger.warning("Skipping message %d: delay %.20r is too long to schedule", i, raw_delay)
            skipped.append(i)
            continue
        scheduled.append(ScheduledMessage(index=i, text=text, delay_seconds=delay))

    return DispatchPlan(messages=tuple(scheduled), addresses=addresses, skipped=tuple(skipped))


def load_plan(
    workdir: str | Path,
    *,
    messages_file: str = "messages.txt",
    delays_file: str = "time.txt",
    targets_file: str = "targets.txt",
    suffix: str = DEFAULT_ADDRESS_SUFFIX,
) -> DispatchPlan | None:
    base = Path(workdir)
    return build_plan(
        read_lines(base / messages_file),
        read_lines(base / delays_file),
        read_lines(base / targets_file),
        suffix=suffix,
    )
