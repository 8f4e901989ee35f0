"""
Tests for beacon/core/logger

Covers tree rendering to the log files and error webhook delivery
through the shared concurrency gate.
"""

import asyncio

import pytest

from beacon.concurrency import ConcurrencyGate
from beacon.core.logger import TreeLogger


@pytest.fixture
def tree_logger(tmp_path):
    return TreeLogger(logs_dir=tmp_path)


# =============================================================================
# Output Tests
# =============================================================================

class TestTreeOutput:
    """Tests for file output."""

    def test_error_written_to_both_files(self, tree_logger):
        tree_logger.error("Handler Failed", [("Event", "/joke"), ("Error", "boom")])

        main = tree_logger.log_file.read_text(encoding="utf-8")
        errors = tree_logger.error_file.read_text(encoding="utf-8")
        assert "❌ Handler Failed" in main
        assert "├─ Event: /joke" in errors
        assert "└─ Error: boom" in errors

    def test_info_stays_out_of_error_file(self, tree_logger):
        tree_logger.info("Ready")
        assert not tree_logger.error_file.exists()


# =============================================================================
# Webhook Tests
# =============================================================================

class TestErrorWebhook:
    """Tests for error webhook delivery."""

    @pytest.mark.asyncio
    async def test_post_waits_for_gate_slot(self, tree_logger, monkeypatch):
        """A webhook post queues behind outbound calls holding the gate."""
        gate = ConcurrencyGate(limit=1, name="test")
        release = asyncio.Event()
        sent = []

        async def fake_send(url, payload):
            sent.append((url, gate.running, payload["embeds"][0]["title"]))

        monkeypatch.setattr(tree_logger, "_send_webhook", fake_send)
        tree_logger.set_webhook("https://hooks.example/err", gate)

        busy = asyncio.create_task(gate.run(release.wait))
        await asyncio.sleep(0)

        tree_logger.error("Handler Failed", [("Event", "/meme")])
        await asyncio.sleep(0.01)
        assert sent == []
        assert gate.queued == 1

        release.set()
        await busy
        await asyncio.gather(*tree_logger._webhook_tasks)

        assert sent == [("https://hooks.example/err", 1, "❌ Handler Failed")]
        assert gate.completed == 2

    @pytest.mark.asyncio
    async def test_errors_without_details_are_not_posted(self, tree_logger, monkeypatch):
        sent = []

        async def fake_send(url, payload):
            sent.append(url)

        monkeypatch.setattr(tree_logger, "_send_webhook", fake_send)
        tree_logger.set_webhook("https://hooks.example/err")

        tree_logger.error("Plain error")
        await asyncio.sleep(0)
        assert sent == []
        assert not tree_logger._webhook_tasks
