import unittest

from apps.orchestrator.run_state import RunContext, RunScope, RunState, RunStatus


class RunContextTests(unittest.TestCase):
    def test_stop_clears_pause_and_blocks_new_pauses(self) -> None:
        ctx = RunContext(scope=RunScope.TOPIC, topic_id="t1")
        self.assertTrue(ctx.request_pause())
        self.assertTrue(ctx.request_stop())

        self.assertTrue(ctx.stop_requested)
        self.assertFalse(ctx.pause_requested)
        self.assertFalse(ctx.request_pause())
        self.assertFalse(ctx.request_resume())

    def test_each_run_gets_its_own_flags(self) -> None:
        first = RunContext(scope=RunScope.TOPIC)
        second = RunContext(scope=RunScope.TOPIC)
        first.request_stop()
        self.assertNotEqual(first.run_id, second.run_id)
        self.assertFalse(second.stop_requested)


class RunStateTests(unittest.TestCase):
    def test_status_is_derived_from_active_contexts(self) -> None:
        state = RunState()
        self.assertIs(state.status, RunStatus.IDLE)

        topic_ctx = state.begin(RunScope.TOPIC, "t1")
        self.assertIs(state.status, RunStatus.RUNNING_SINGLE_TOPIC)
        self.assertTrue(state.is_topic_running("t1"))

        all_ctx = state.begin(RunScope.ALL)
        state.mark_topic_running(all_ctx, "t2")
        self.assertIs(state.status, RunStatus.RUNNING_ALL)
        self.assertEqual(state.running_topic_ids, frozenset({"t1", "t2"}))
        self.assertEqual(state.contexts_for("t2"), [all_ctx])

        topic_ctx.request_pause()
        self.assertIs(state.status, RunStatus.RUNNING_ALL)
        all_ctx.request_pause()
        self.assertIs(state.status, RunStatus.PAUSED)

        all_ctx.request_stop()
        self.assertIs(state.status, RunStatus.STOPPING)

        state.mark_topic_finished(all_ctx, "t2")
        state.end(all_ctx)
        state.end(topic_ctx)
        self.assertIs(state.status, RunStatus.IDLE)
        self.assertEqual(state.running_topic_ids, frozenset())

    def test_reset_returns_to_idle(self) -> None:
        state = RunState()
        state.begin(RunScope.TOPIC, "t1")
        state.reset()
        self.assertIs(state.status, RunStatus.IDLE)
        self.assertFalse(state.is_running_all)


if __name__ == "__main__":
    unittest.main()
