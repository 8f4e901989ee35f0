"""
Beacon - Logger Module
======================

Tree-style console and file logging with New York timestamps.

DESIGN:
    Every level takes an optional list of (key, value) details rendered
    as a tree under the message, so a handler failure or a giveaway end
    reads as one block:

        [02:30:45 PM EST] 🎉 Giveaway Started
          ├─ ID: 700-1718000000000
          ├─ Prize: Nitro
          └─ Winners: 2

    Files live under logs/YYYY-MM-DD/ (override with BEACON_LOGS_DIR).
    Errors are also appended to a separate error file. Dated folders
    older than the retention window are removed when the logger starts.

    When an error webhook is set, error() calls that carry details are
    mirrored to it as an embed. Webhook delivery never raises. Given a
    concurrency gate, each post waits for a slot like any other outbound
    call.
"""

import asyncio
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Tuple

import aiohttp
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from beacon.concurrency.gate import ConcurrencyGate


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("BEACON_LOGS_DIR", "logs"))
LOG_RETENTION_DAYS = 7
WEBHOOK_TIMEOUT = 10

NY_TZ = ZoneInfo("America/New_York")
"""All user-visible and logged timestamps use Eastern time."""

Details = Optional[List[Tuple[str, str]]]


def _append(path: Path, text: str) -> None:
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)


# =============================================================================
# Tree Logger Class
# =============================================================================

class TreeLogger:
    """
    Process-wide logger.

    Attributes:
        run_id: Short id written in the session header and webhook footer.
        log_file: Today's main log file.
        error_file: Today's error-only log file.
    """

    def __init__(self, logs_dir: Path = LOGS_DIR) -> None:
        self.run_id: str = uuid.uuid4().hex[:8]
        self._logs_dir = logs_dir
        self._webhook_url: Optional[str] = None
        self._webhook_gate: Optional["ConcurrencyGate"] = None
        self._webhook_tasks: Set[asyncio.Task] = set()

        today = datetime.now(NY_TZ).strftime("%Y-%m-%d")
        self.log_dir = logs_dir / today
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / f"Beacon-{today}.log"
        self.error_file = self.log_dir / f"Beacon-Errors-{today}.log"

        self._prune_old_dirs()
        _append(self.log_file, (
            f"\n{'=' * 60}\n"
            f"SESSION {self.run_id} [{datetime.now(NY_TZ).strftime('%Y-%m-%d %I:%M:%S %p %Z')}]\n"
            f"{'=' * 60}\n"
        ))

    def set_webhook(self, url: Optional[str], gate: Optional["ConcurrencyGate"] = None) -> None:
        """Mirror detailed errors to a Discord webhook, or stop with None."""
        self._webhook_url = url
        self._webhook_gate = gate

    def _prune_old_dirs(self) -> None:
        today = datetime.now(NY_TZ).replace(tzinfo=None)
        removed = 0
        for item in self._logs_dir.iterdir():
            if not item.is_dir():
                continue
            try:
                age = today - datetime.strptime(item.name, "%Y-%m-%d")
            except ValueError:
                continue
            if age.days > LOG_RETENTION_DAYS:
                for f in item.iterdir():
                    f.unlink()
                item.rmdir()
                removed += 1

        if removed:
            print(f"[LOG CLEANUP] Removed {removed} old log directories")

    # =========================================================================
    # Output
    # =========================================================================

    def _emit(self, line: str, is_error: bool = False) -> None:
        print(line)
        _append(self.log_file, f"{line}\n")
        if is_error:
            _append(self.error_file, f"{line}\n")

    def _emit_block(self, title: str, emoji: str, details: Details, is_error: bool = False) -> None:
        stamp = datetime.now(NY_TZ).strftime("[%I:%M:%S %p %Z]")
        self._emit(f"{stamp} {emoji} {title}" if emoji else f"{stamp} {title}", is_error)
        for i, (key, value) in enumerate(details or []):
            branch = "└─" if i == len(details) - 1 else "├─"
            self._emit(f"  {branch} {key}: {value}", is_error)

    def tree(self, title: str, items: List[Tuple[str, str]], emoji: str = "📦") -> None:
        """Log a titled block of (key, value) items, set off by blank lines in the file."""
        _append(self.log_file, "\n")
        self._emit_block(title, emoji, items)
        _append(self.log_file, "\n")

    # =========================================================================
    # Log Levels
    # =========================================================================

    def debug(self, msg: str, details: Details = None) -> None:
        """Only written when the DEBUG env var is set."""
        if os.getenv("DEBUG"):
            self._emit_block(msg, "🔍", details)

    def info(self, msg: str, details: Details = None) -> None:
        self._emit_block(msg, "ℹ️", details)

    def success(self, msg: str, details: Details = None) -> None:
        self._emit_block(msg, "✅", details)

    def warning(self, msg: str, details: Details = None) -> None:
        self._emit_block(msg, "⚠️", details)

    def error(self, msg: str, details: Details = None) -> None:
        """Written to both files; mirrored to the webhook when details are given."""
        self._emit_block(msg, "❌", details, is_error=True)
        if details and self._webhook_url:
            self._schedule_webhook(msg, details)

    def critical(self, msg: str, details: Details = None) -> None:
        self._emit_block(msg, "🚨", details, is_error=True)

    # =========================================================================
    # Webhook
    # =========================================================================

    def _schedule_webhook(self, title: str, details: List[Tuple[str, str]]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._post_webhook(title, details))
        self._webhook_tasks.add(task)
        task.add_done_callback(self._webhook_tasks.discard)

    async def _post_webhook(self, title: str, details: List[Tuple[str, str]]) -> None:
        url = self._webhook_url
        if not url:
            return

        payload = {
            "embeds": [{
                "title": f"❌ {title}",
                "description": "\n".join(f"**{k}:** {v}" for k, v in details)[:4000],
                "color": 0xE74C3C,
                "timestamp": datetime.now(NY_TZ).isoformat(),
                "footer": {"text": f"Beacon run {self.run_id}"},
            }]
        }

        gate = self._webhook_gate
        if gate is None:
            await self._send_webhook(url, payload)
        else:
            await gate.run(lambda: self._send_webhook(url, payload))

    async def _send_webhook(self, url: str, payload: Dict[str, Any]) -> None:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=WEBHOOK_TIMEOUT),
                ) as resp:
                    if resp.status >= 300:
                        print(f"[WEBHOOK] Error webhook returned {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"[WEBHOOK] Delivery failed: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "logger",
    "TreeLogger",
    "NY_TZ",
]
