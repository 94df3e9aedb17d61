import asyncio
import json
import unittest

from address_agent.core.confidence import ConfidenceGate, accept
from address_agent.core.errors import RunCancelled, TransportError
from address_agent.core.events import AgentEventType, EventLog
from address_agent.core.failover import FailoverPolicy
from address_agent.core.protocol import (
    AgentDecision,
    ModelResponse,
    Recommendation,
    Role,
    RunStatus,
    StopReason,
    TextBlock,
    ToolResultBlock,
    Usage,
)

from helpers import (
    ScriptedProvider,
    decision_call,
    make_orchestrator,
    search_call,
    text_response,
    tool_response,
)


class TestConfidenceGate(unittest.TestCase):
    def _decision(self, confidence):
        return AgentDecision(recommendation="HOME", confidence=confidence, reasoning="Owner of record.")

    def test_threshold_is_inclusive(self):
        self.assertTrue(accept(self._decision(75), 75))
        self.assertFalse(accept(self._decision(74.9), 75))

    def test_evaluate(self):
        gate = ConfidenceGate(75)
        self.assertTrue(gate.evaluate(self._decision(75)).accepted)

        verdict = gate.evaluate(self._decision(74.9))
        self.assertFalse(verdict.accepted)
        self.assertIn("below the 75% threshold", verdict.reason)


class TestDecisionGating(unittest.IsolatedAsyncioTestCase):
    async def test_rejected_then_accepted_decision(self):
        script = [
            tool_response(search_call("t1")),
            tool_response(search_call("t2")),
            tool_response(decision_call("d1", 60)),
            tool_response(search_call("t3")),
            tool_response(decision_call("d2", 82)),
        ]
        orchestrator, provider, _ = make_orchestrator(script, max_iterations=10, min_confidence=75)
        log = EventLog()

        result = await orchestrator.run("Jane Doe, Acme Corp", on_event=log)

        self.assertEqual(result.status, RunStatus.DECIDED)
        self.assertEqual(result.iterations, 5)
        self.assertEqual(result.decision.confidence, 82)
        self.assertEqual(result.decision.recommendation, Recommendation.HOME)

        rejected = log.of_type(AgentEventType.DECISION_REJECTED)
        self.assertEqual(len(rejected), 1)
        self.assertEqual(rejected[0].iteration, 3)
        self.assertEqual(rejected[0].data["confidence"], 60)
        self.assertEqual(rejected[0].data["threshold"], 75)

        accepted = log.of_type(AgentEventType.DECISION_ACCEPTED)
        self.assertEqual(len(accepted), 1)
        self.assertEqual(accepted[0].iteration, 5)

        # The rejection is fed back to the model as the decision call's result
        after_rejection = provider.calls[3][-1]
        self.assertEqual(after_rejection.role, Role.USER)
        block = after_rejection.content[0]
        self.assertIsInstance(block, ToolResultBlock)
        self.assertEqual(block.tool_use_id, "d1")
        payload = json.loads(block.content)
        self.assertTrue(payload["rejected"])
        self.assertEqual(payload["confidence"], 60)
        self.assertEqual(payload["threshold"], 75)
        self.assertIn("Gather more evidence", payload["reason"])

    async def test_rejected_decision_result_is_unsuccessful(self):
        script = [
            tool_response(decision_call("d1", 40)),
            tool_response(decision_call("d2", 90)),
        ]
        orchestrator, _, _ = make_orchestrator(script)
        log = EventLog()

        await orchestrator.run("Jane Doe", on_event=log)

        first_result = log.of_type(AgentEventType.TOOL_CALL_RESULT)[0]
        self.assertFalse(first_result.data["success"])
        self.assertEqual(first_result.data["summary"], "Decision rejected: 40% < 75%")

    async def test_accepted_decision_event_order(self):
        orchestrator, _, _ = make_orchestrator([tool_response(decision_call("d1", 90))])
        log = EventLog()

        await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(log.types(), [
            "agent_start",
            "iteration_start",
            "tool_call_start",
            "decision_accepted",
            "tool_call_result",
            "complete",
        ])

    async def test_second_decision_in_same_turn_is_not_regated(self):
        script = [tool_response(decision_call("d1", 80), decision_call("d2", 50, "OFFICE"))]
        orchestrator, _, _ = make_orchestrator(script)
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(result.decision.confidence, 80)
        self.assertEqual(len(log.of_type(AgentEventType.DECISION_ACCEPTED)), 1)
        self.assertEqual(log.of_type(AgentEventType.DECISION_REJECTED), [])
        self.assertEqual(len(log.of_type(AgentEventType.TOOL_CALL_RESULT)), 2)

    async def test_confidence_equal_to_threshold_is_accepted(self):
        orchestrator, _, _ = make_orchestrator([tool_response(decision_call("d1", 75))], min_confidence=75)
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(result.status, RunStatus.DECIDED)
        self.assertEqual(result.decision.confidence, 75)
        self.assertEqual(len(log.of_type(AgentEventType.DECISION_ACCEPTED)), 1)
        self.assertEqual(log.of_type(AgentEventType.DECISION_REJECTED), [])

    async def test_confidence_just_below_threshold_is_rejected(self):
        orchestrator, _, _ = make_orchestrator([tool_response(decision_call("d1", 74.9))], max_iterations=1)
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(result.status, RunStatus.INCOMPLETE)
        self.assertIsNone(result.decision)
        rejected = log.of_type(AgentEventType.DECISION_REJECTED)[0]
        self.assertEqual((rejected.data["confidence"], rejected.data["threshold"]), (74.9, 75))

    async def test_decision_equals_submitted_object(self):
        orchestrator, _, _ = make_orchestrator([tool_response(decision_call("d1", 77))])

        result = await orchestrator.run("Jane Doe")

        decision = result.decision
        self.assertEqual(decision.reasoning, "Ownership confirmed and the person works remotely.")
        self.assertEqual(decision.home_address.address, "12 Elm St, Nashville, TN 37205")
        self.assertIsNone(decision.office_address)


class TestTermination(unittest.IsolatedAsyncioTestCase):
    async def test_iteration_budget_exhausted(self):
        script = [tool_response(search_call(f"t{i}")) for i in range(3)]
        orchestrator, provider, _ = make_orchestrator(script, max_iterations=3)
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertIsNone(result.decision)
        self.assertEqual(result.iterations, 3)
        self.assertEqual(result.status, RunStatus.INCOMPLETE)
        self.assertEqual(log.of_type(AgentEventType.ERROR), [])
        self.assertEqual(len(provider.calls), 3)
        self.assertEqual(log.last().type, AgentEventType.COMPLETE)

    async def test_transport_error_aborts_run(self):
        script = [tool_response(search_call("t1")), TransportError("connection reset")]
        orchestrator, _, _ = make_orchestrator(script)
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        errors = log.of_type(AgentEventType.ERROR)
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].data["message"], "connection reset")
        self.assertEqual(result.iterations, 2)
        self.assertIsNone(result.decision)
        self.assertEqual(result.status, RunStatus.FAILED)
        self.assertEqual(result.error, "connection reset")

    async def test_max_tokens_aborts_run(self):
        truncated = ModelResponse(content=[TextBlock(text="partial")], stop_reason=StopReason.MAX_TOKENS)
        orchestrator, _, _ = make_orchestrator([truncated])
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(result.status, RunStatus.FAILED)
        self.assertEqual(result.iterations, 1)
        self.assertEqual(log.of_type(AgentEventType.ERROR)[0].data["message"], "Hit max_tokens limit.")
        self.assertEqual(log.types()[-2:], ["error", "complete"])

    async def test_unexpected_exception_is_reported_as_failure(self):
        orchestrator, _, _ = make_orchestrator([RuntimeError("boom")])
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(result.status, RunStatus.FAILED)
        self.assertEqual(len(log.of_type(AgentEventType.ERROR)), 1)


class TestCancellation(unittest.IsolatedAsyncioTestCase):
    async def test_cancel_flag_checked_before_each_iteration(self):
        script = [tool_response(search_call(f"t{i}")) for i in range(5)]
        orchestrator, provider, _ = make_orchestrator(script)
        log = EventLog()

        result = await orchestrator.run(
            "Jane Doe",
            on_event=log,
            cancel_check=lambda: len(provider.calls) >= 4,
        )

        self.assertEqual(len(provider.calls), 4)
        self.assertEqual(result.iterations, 4)
        self.assertEqual(result.status, RunStatus.CANCELLED)
        self.assertNotEqual(result.status, RunStatus.FAILED)
        self.assertEqual(len(log.of_type(AgentEventType.CANCELLED)), 1)
        self.assertEqual(log.of_type(AgentEventType.ERROR), [])
        self.assertEqual(log.types()[-2:], ["cancelled", "complete"])

    async def test_async_cancel_check(self):
        orchestrator, provider, _ = make_orchestrator([tool_response(search_call())])

        async def cancelled():
            return True

        result = await orchestrator.run("Jane Doe", cancel_check=cancelled)

        self.assertEqual(result.status, RunStatus.CANCELLED)
        self.assertEqual(result.iterations, 0)
        self.assertEqual(provider.calls, [])

    async def test_sink_can_cancel_the_run(self):
        script = [tool_response(search_call(f"t{i}")) for i in range(3)]
        orchestrator, provider, _ = make_orchestrator(script)
        log = EventLog()

        def sink(event):
            log(event)
            if event.type == AgentEventType.ITERATION_START and event.iteration == 2:
                raise RunCancelled("Job stopped")

        result = await orchestrator.run("Jane Doe", on_event=sink)

        self.assertEqual(result.status, RunStatus.CANCELLED)
        self.assertEqual(result.error, "Job stopped")
        self.assertEqual(len(provider.calls), 1)
        self.assertEqual(log.of_type(AgentEventType.CANCELLED)[0].data["reason"], "Job stopped")

    async def test_task_cancellation_is_reraised(self):
        orchestrator, _, _ = make_orchestrator([asyncio.CancelledError()])
        log = EventLog()

        with self.assertRaises(asyncio.CancelledError):
            await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(log.types()[-2:], ["cancelled", "complete"])

    async def test_cancelling_sink_during_error_still_returns_result(self):
        orchestrator, _, _ = make_orchestrator([TransportError("boom")])
        log = EventLog()

        def sink(event):
            log(event)
            if event.type in (AgentEventType.ERROR, AgentEventType.COMPLETE):
                raise RunCancelled("Job stopped")

        result = await orchestrator.run("Jane Doe", on_event=sink)

        self.assertEqual(result.status, RunStatus.FAILED)
        self.assertEqual(result.error, "boom")
        self.assertEqual(log.types(), ["agent_start", "iteration_start", "error", "complete"])

    async def test_cancel_flag_wins_over_exhausted_budget(self):
        orchestrator, provider, _ = make_orchestrator([tool_response(search_call())], max_iterations=1)

        result = await orchestrator.run("Jane Doe", cancel_check=lambda: len(provider.calls) >= 1)

        self.assertEqual(result.iterations, 1)
        self.assertEqual(result.status, RunStatus.CANCELLED)


class TestLoopMechanics(unittest.IsolatedAsyncioTestCase):
    async def test_silent_turn_is_nudged(self):
        script = [text_response("I think I know."), tool_response(decision_call("d1", 90))]
        orchestrator, provider, _ = make_orchestrator(script)
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(result.iterations, 2)
        nudge = provider.calls[1][-1]
        self.assertEqual(nudge.role, Role.USER)
        self.assertEqual(nudge.content, orchestrator.profile.nudge_message)
        self.assertEqual(log.of_type(AgentEventType.THINKING)[0].data["text"], "I think I know.")

    async def test_silence_burns_budget_without_error(self):
        orchestrator, _, _ = make_orchestrator([text_response() for _ in range(2)], max_iterations=2)
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(result.status, RunStatus.INCOMPLETE)
        self.assertEqual(result.iterations, 2)
        self.assertEqual(log.of_type(AgentEventType.ERROR), [])

    async def test_tool_calls_dispatched_in_order(self):
        script = [
            tool_response(search_call("t1", "first"), ("t2", "bogus_tool", {}), search_call("t3", "third")),
            tool_response(decision_call("d1", 90)),
        ]
        orchestrator, provider, services = make_orchestrator(script)
        log = EventLog()

        await orchestrator.run("Jane Doe", on_event=log)

        tool_events = [
            (e.type.value, e.data["tool_use_id"])
            for e in log
            if e.type in (AgentEventType.TOOL_CALL_START, AgentEventType.TOOL_CALL_RESULT)
        ][:6]
        self.assertEqual(tool_events, [
            ("tool_call_start", "t1"), ("tool_call_result", "t1"),
            ("tool_call_start", "t2"), ("tool_call_result", "t2"),
            ("tool_call_start", "t3"), ("tool_call_result", "t3"),
        ])
        self.assertEqual(services.queries, ["first", "third"])

        unknown = log.of_type(AgentEventType.TOOL_CALL_RESULT)[1]
        self.assertFalse(unknown.data["success"])
        self.assertEqual(unknown.data["summary"], "Unknown tool: bogus_tool")

        # Every call is answered before the next model call
        answered = [b.tool_use_id for b in provider.calls[1][-1].content]
        self.assertEqual(answered, ["t1", "t2", "t3"])

    async def test_initial_message_renders_template(self):
        orchestrator, provider, _ = make_orchestrator([tool_response(decision_call("d1", 90))])

        await orchestrator.run("https://www.linkedin.com/in/jane-doe")

        first = provider.calls[0][0]
        self.assertEqual(first.role, Role.USER)
        self.assertEqual(first.content, "Find the address.\n\nTarget: https://www.linkedin.com/in/jane-doe")

    async def test_usage_is_accumulated(self):
        script = [
            tool_response(search_call(), usage=Usage(input_tokens=100, output_tokens=20)),
            tool_response(decision_call("d1", 90), usage=Usage(input_tokens=150, output_tokens=30)),
        ]
        orchestrator, _, _ = make_orchestrator(script)

        result = await orchestrator.run("Jane Doe")

        self.assertEqual(result.usage.input_tokens, 250)
        self.assertEqual(result.usage.output_tokens, 50)

    async def test_runs_do_not_share_state(self):
        script = [tool_response(decision_call("d1", 90)), tool_response(decision_call("d2", 85))]
        orchestrator, provider, _ = make_orchestrator(script)

        first = await orchestrator.run("Jane Doe")
        second = await orchestrator.run("John Roe")

        self.assertEqual(first.iterations, 1)
        self.assertEqual(second.iterations, 1)
        self.assertEqual(second.decision.confidence, 85)
        self.assertEqual(len(provider.calls[1]), 1)
        self.assertIn("John Roe", provider.calls[1][0].content)

    async def test_agent_start_describes_run(self):
        orchestrator, _, _ = make_orchestrator([tool_response(decision_call("d1", 90))], max_iterations=7)
        log = EventLog()

        await orchestrator.run("Jane Doe", on_event=log)

        start = log.events[0]
        self.assertEqual(start.type, AgentEventType.AGENT_START)
        self.assertEqual(start.data["provider"], "fake")
        self.assertEqual(start.data["max_iterations"], 7)
        self.assertEqual(start.data["min_confidence"], 75)
        self.assertEqual(start.data["toolset"], "base")

    async def test_iterations_never_exceed_budget(self):
        script = [text_response() for _ in range(5)]
        orchestrator, provider, _ = make_orchestrator(script, max_iterations=4)
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(result.iterations, 4)
        self.assertEqual(len(log.of_type(AgentEventType.ITERATION_START)), 4)
        self.assertEqual(len(provider.script), 1)


class TestFailoverInLoop(unittest.IsolatedAsyncioTestCase):
    async def test_rate_limit_switches_provider(self):
        secondary = ScriptedProvider([tool_response(decision_call("d1", 90))], model_id="gpt-4o")
        orchestrator, primary, _ = make_orchestrator(
            [TransportError("ThrottlingException: Too many tokens, please wait")],
            failover=FailoverPolicy(lambda: secondary),
        )
        log = EventLog()

        result = await orchestrator.run("Jane Doe", on_event=log)

        self.assertEqual(result.status, RunStatus.DECIDED)
        self.assertEqual(len(primary.calls), 1)
        self.assertEqual(len(secondary.calls), 1)
        failover = log.of_type(AgentEventType.PROVIDER_FAILOVER)
        self.assertEqual(len(failover), 1)
        self.assertEqual(failover[0].data["to_model"], "gpt-4o")
        self.assertEqual(log.of_type(AgentEventType.ERROR), [])

    async def test_rate_limit_without_failover_fails(self):
        orchestrator, _, _ = make_orchestrator([TransportError("429 Too Many Requests")])

        result = await orchestrator.run("Jane Doe")

        self.assertEqual(result.status, RunStatus.FAILED)


if __name__ == "__main__":
    unittest.main()
