"""
Tests for the reply dispatcher.
"""

import asyncio
import time

import pytest
from conftest import RecordingSink

from replybot.auto_reply.dispatch import DispatchConfig, DispatchScheduler
from replybot.auto_reply.policy import Reply, ReplyKind


def make_reply(content="hi"):
    return Reply(kind=ReplyKind.KEYWORD, content=content)


class TestDispatchScheduler:
    """Tests for sending replies."""

    @pytest.mark.asyncio
    async def test_success_marks_sent(self):
        sink = RecordingSink()
        scheduler = DispatchScheduler(sink)

        reply = await scheduler.dispatch(make_reply(), "c1", quoted_message_id="m1")

        assert reply.sent is True
        assert reply.sent_at is not None
        assert reply.send_error is None
        conversation_id, text, options = sink.sent[0]
        assert (conversation_id, text) == ("c1", "hi")
        assert options.quoted_message_id == "m1"
        assert options.link_preview is False

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self):
        sink = RecordingSink(fail_for={"c1"})
        scheduler = DispatchScheduler(sink)

        reply = await scheduler.dispatch(make_reply(), "c1")

        assert reply.sent is False
        assert reply.send_error
        assert "unreachable" in reply.send_error
        assert scheduler.get_stats()["failed_count"] == 1

    @pytest.mark.asyncio
    async def test_sink_called_exactly_once_on_failure(self):
        calls = []

        class FlakySink:
            async def send(self, conversation_id, text, options):
                calls.append(conversation_id)
                raise RuntimeError("down")

        reply = await DispatchScheduler(FlakySink()).dispatch(make_reply(), "c1")

        assert calls == ["c1"]
        assert reply.sent is False

    @pytest.mark.asyncio
    async def test_negative_delay_is_zero(self):
        scheduler = DispatchScheduler(RecordingSink(), DispatchConfig(delay_seconds=-5))
        assert scheduler.delay_seconds == 0

        start = time.monotonic()
        await scheduler.dispatch(make_reply(), "c1")
        assert time.monotonic() - start < 1

    @pytest.mark.asyncio
    async def test_delay_does_not_block_other_conversations(self):
        sink = RecordingSink(fail_for={"bad"})
        scheduler = DispatchScheduler(sink, DispatchConfig(delay_seconds=0.1))

        start = time.monotonic()
        failed, ok = await asyncio.gather(
            scheduler.dispatch(make_reply("to bad"), "bad"),
            scheduler.dispatch(make_reply("to good"), "good"),
        )
        elapsed = time.monotonic() - start

        assert failed.sent is False and failed.send_error
        assert ok.sent is True
        assert [s[0] for s in sink.sent] == ["good"]
        # Both delays overlapped instead of running back to back
        assert elapsed < 0.19

    @pytest.mark.asyncio
    async def test_send_timeout_is_failure(self):
        sink = RecordingSink(delay=1)
        scheduler = DispatchScheduler(sink, DispatchConfig(send_timeout_seconds=0.05))

        reply = await scheduler.dispatch(make_reply(), "c1")

        assert reply.sent is False
        assert "timed out" in reply.send_error

    @pytest.mark.asyncio
    async def test_submit_tracks_pending(self):
        scheduler = DispatchScheduler(RecordingSink(), DispatchConfig(delay_seconds=0.05))

        task = scheduler.submit(make_reply(), "c1")
        assert scheduler.pending_count == 1

        await scheduler.wait_pending()

        assert task.result().sent is True
        assert scheduler.pending_count == 0
