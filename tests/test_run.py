import io
import os
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

import run
from address_agent.core.events import AgentEvent, AgentEventType


class TestCLI(unittest.TestCase):
    def test_parser(self):
        args = run.build_parser().parse_args(
            ["--no-logs", "run", "Jane Doe", "--variant", "standard", "--events", "out.jsonl"]
        )
        self.assertEqual(args.command, "run")
        self.assertEqual(args.input, "Jane Doe")
        self.assertEqual(args.variant, "standard")
        self.assertEqual(args.events, "out.jsonl")
        self.assertTrue(args.no_logs)

    def test_unknown_variant_rejected_by_parser(self):
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            run.build_parser().parse_args(["run", "Jane Doe", "--variant", "turbo"])

    def test_missing_credentials_exit_code(self):
        stderr = io.StringIO()
        with patch.dict(os.environ, {}, clear=True), patch.object(run, "load_dotenv"), redirect_stderr(stderr):
            code = run.main(["--no-logs", "run", "Jane Doe"])

        self.assertEqual(code, 2)
        self.assertIn("Missing AWS credentials", stderr.getvalue())

    def test_print_event(self):
        out = io.StringIO()
        event = AgentEvent(
            type=AgentEventType.TOOL_CALL_RESULT,
            iteration=3,
            data={"success": False, "summary": "EXA_AI_KEY not configured"},
        )
        with redirect_stdout(out):
            run.print_event(event)
        self.assertEqual(out.getvalue().strip(), "[3]    FAIL: EXA_AI_KEY not configured")


if __name__ == "__main__":
    unittest.main()
