from __future__ import annotations

import asyncio
import unittest

from welcome.workflow import (
    EXPIRED_MESSAGE,
    PUBLISHING_MESSAGE,
    STATE_AWAITING_MANUAL_DRAFT,
    STATE_APPROVED,
    STATE_DRAFTED,
    STATE_EDITED,
    STATE_SKIPPED,
    ApprovalWorkflow,
)


class _Publisher:
    def __init__(self, *, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple[object, str]] = []

    async def __call__(self, origin, text: str):
        self.calls.append((origin, text))
        if self.error is not None:
            raise self.error


def _create(workflow: ApprovalWorkflow, origin_id: str = "m1", suggestion: str | None = "Hi!"):
    return workflow.create(
        origin_id,
        origin=f"origin-{origin_id}",
        author="Dana",
        intro_content="Hello all, I build dev tools.",
        source_link="https://discord.com/channels/1/2/3",
        suggestion=suggestion,
        channel_name="intros",
    )


class ApprovalWorkflowTests(unittest.IsolatedAsyncioTestCase):
    async def test_edit_then_approve_publishes_edited_text(self) -> None:
        publisher = _Publisher()
        workflow = ApprovalWorkflow(publish_func=publisher)
        record = _create(workflow)
        self.assertEqual(record.state, STATE_DRAFTED)

        edited = await workflow.edit("m1", "Hello there!")
        self.assertTrue(edited.ok)
        self.assertEqual(record.state, STATE_EDITED)

        outcome = await workflow.approve("m1")
        self.assertTrue(outcome.ok)
        self.assertEqual(publisher.calls, [("origin-m1", "Hello there!")])
        self.assertNotIn("m1", workflow)
        self.assertIsNone(workflow.get("m1"))
        self.assertEqual(outcome.record.state, STATE_APPROVED)

    async def test_decisions_on_unknown_id_are_expired_no_ops(self) -> None:
        publisher = _Publisher()
        workflow = ApprovalWorkflow(publish_func=publisher)
        for outcome in (
            await workflow.approve("missing"),
            await workflow.edit("missing", "text"),
            await workflow.skip("missing"),
        ):
            self.assertFalse(outcome.ok)
            self.assertTrue(outcome.expired)
            self.assertEqual(outcome.message, EXPIRED_MESSAGE)
        self.assertEqual(publisher.calls, [])
        self.assertEqual(len(workflow), 0)

    async def test_second_approve_after_success_is_expired(self) -> None:
        publisher = _Publisher()
        workflow = ApprovalWorkflow(publish_func=publisher)
        _create(workflow)
        self.assertTrue((await workflow.approve("m1")).ok)
        self.assertTrue((await workflow.approve("m1")).expired)
        self.assertEqual(len(publisher.calls), 1)

    async def test_skip_removes_without_publishing(self) -> None:
        publisher = _Publisher()
        workflow = ApprovalWorkflow(publish_func=publisher)
        _create(workflow)
        outcome = await workflow.skip("m1")
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.record.state, STATE_SKIPPED)
        self.assertEqual(publisher.calls, [])
        self.assertNotIn("m1", workflow)

    async def test_create_overwrites_existing_record(self) -> None:
        workflow = ApprovalWorkflow(publish_func=_Publisher())
        _create(workflow, suggestion="first")
        _create(workflow, suggestion="second")
        self.assertEqual(len(workflow), 1)
        self.assertEqual(workflow.get("m1").suggested_response, "second")

    async def test_manual_draft_requires_text_before_approve(self) -> None:
        publisher = _Publisher()
        workflow = ApprovalWorkflow(publish_func=publisher)
        record = _create(workflow, suggestion=None)
        self.assertEqual(record.state, STATE_AWAITING_MANUAL_DRAFT)
        self.assertFalse(record.has_response)

        refused = await workflow.approve("m1")
        self.assertFalse(refused.ok)
        self.assertFalse(refused.expired)
        self.assertIn("m1", workflow)

        await workflow.edit("m1", "Welcome aboard!")
        self.assertTrue((await workflow.approve("m1")).ok)
        self.assertEqual(publisher.calls[0][1], "Welcome aboard!")

    async def test_blank_edit_is_refused(self) -> None:
        workflow = ApprovalWorkflow(publish_func=_Publisher())
        record = _create(workflow)
        outcome = await workflow.edit("m1", "   ")
        self.assertFalse(outcome.ok)
        self.assertFalse(outcome.expired)
        self.assertEqual(record.suggested_response, "Hi!")
        self.assertEqual(record.state, STATE_DRAFTED)

    async def test_publish_failure_keeps_record_for_retry(self) -> None:
        publisher = _Publisher(error=RuntimeError("missing permissions"))
        workflow = ApprovalWorkflow(publish_func=publisher)
        _create(workflow)
        outcome = await workflow.approve("m1")
        self.assertFalse(outcome.ok)
        self.assertIn("missing permissions", outcome.message)
        self.assertIn("m1", workflow)

        publisher.error = None
        self.assertTrue((await workflow.approve("m1")).ok)
        self.assertNotIn("m1", workflow)

    async def test_concurrent_approve_publishes_once(self) -> None:
        gate = asyncio.Event()
        calls: list[str] = []

        async def slow_publish(origin, text):
            calls.append(text)
            await gate.wait()

        workflow = ApprovalWorkflow(publish_func=slow_publish)
        _create(workflow)
        first = asyncio.create_task(workflow.approve("m1"))
        await asyncio.sleep(0)
        second = await workflow.approve("m1")
        self.assertFalse(second.ok)
        gate.set()
        self.assertTrue((await first).ok)
        self.assertEqual(calls, ["Hi!"])

    async def test_skip_and_edit_refused_while_publishing(self) -> None:
        gate = asyncio.Event()
        calls: list[str] = []

        async def slow_publish(origin, text):
            calls.append(text)
            await gate.wait()

        workflow = ApprovalWorkflow(publish_func=slow_publish)
        _create(workflow)
        approving = asyncio.create_task(workflow.approve("m1"))
        await asyncio.sleep(0)

        skipped = await workflow.skip("m1")
        self.assertFalse(skipped.ok)
        self.assertEqual(skipped.message, PUBLISHING_MESSAGE)
        self.assertIn("m1", workflow)
        edited = await workflow.edit("m1", "Too late")
        self.assertFalse(edited.ok)
        self.assertEqual(edited.message, PUBLISHING_MESSAGE)

        gate.set()
        approved = await approving
        self.assertTrue(approved.ok)
        self.assertEqual(approved.record.state, STATE_APPROVED)
        self.assertEqual(calls, ["Hi!"])
        self.assertNotIn("m1", workflow)
        self.assertTrue((await workflow.skip("m1")).expired)

    async def test_save_edit_does_not_refresh_notification(self) -> None:
        refreshed: list[str] = []

        async def update(record):
            refreshed.append(record.suggested_response)

        workflow = ApprovalWorkflow(publish_func=_Publisher(), update_notification_func=update)
        _create(workflow)
        workflow.attach_notification("m1", channel="C1", ts="1.0")
        outcome = workflow.save_edit("m1", "Saved only")
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.record.state, STATE_EDITED)
        self.assertEqual(refreshed, [])
        await workflow.refresh_notification(outcome.record)
        self.assertEqual(refreshed, ["Saved only"])

    async def test_edit_refreshes_attached_notification(self) -> None:
        refreshed: list[str] = []

        async def update(record):
            refreshed.append(record.suggested_response)

        workflow = ApprovalWorkflow(publish_func=_Publisher(), update_notification_func=update)
        _create(workflow)
        await workflow.edit("m1", "no notification yet")
        self.assertEqual(refreshed, [])

        self.assertTrue(workflow.attach_notification("m1", channel="C1", ts="1.0"))
        await workflow.edit("m1", "Updated")
        self.assertEqual(refreshed, ["Updated"])
        self.assertFalse(workflow.attach_notification("missing", channel="C1", ts="1.0"))


if __name__ == "__main__":
    unittest.main()
