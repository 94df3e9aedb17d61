#!/usr/bin/env python3
"""
Address Verification Agent - Entry Point

Usage:
    python run.py run "https://www.linkedin.com/in/jane-doe"
    python run.py run "Jane Doe, Acme Corp, Nashville TN" --variant experimental
    python run.py serve --port 8080
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from address_agent.core.errors import ConfigurationError
from address_agent.core.events import AgentEvent, AgentEventType, EventLog, tee
from address_agent.variants import VARIANTS
from config.settings import AppConfig, load_config


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def print_event(event: AgentEvent):
    """One console line per event"""
    data = event.data
    prefix = f"[{event.iteration}] " if event.iteration else ""

    if event.type == AgentEventType.AGENT_START:
        print(f"Starting {data.get('variant')} run on {data.get('provider')}::{data.get('model')}")
    elif event.type == AgentEventType.ITERATION_START:
        print(f"\n--- Iteration {event.iteration}/{data.get('max_iterations')} ---")
    elif event.type == AgentEventType.THINKING:
        print(f"{prefix}{data.get('text', '')[:300]}")
    elif event.type == AgentEventType.TOOL_CALL_START:
        print(f"{prefix}-> {data.get('tool_name')} {data.get('tool_input')}")
    elif event.type == AgentEventType.TOOL_CALL_RESULT:
        status = "OK" if data.get("success") else "FAIL"
        print(f"{prefix}   {status}: {data.get('summary')}")
    elif event.type == AgentEventType.DECISION_REJECTED:
        print(f"{prefix}REJECTED: {data.get('confidence')}% < {data.get('threshold')}%")
    elif event.type == AgentEventType.PROVIDER_FAILOVER:
        print(f"{prefix}Failover: {data.get('from_model')} -> {data.get('to_model')}")
    elif event.type == AgentEventType.ERROR:
        print(f"{prefix}ERROR: {data.get('message')}")
    elif event.type == AgentEventType.CANCELLED:
        print(f"{prefix}CANCELLED: {data.get('reason')}")


def print_result(result: dict):
    print("\n" + "=" * 60)
    print(f"  Status:     {result['status']}")
    print(f"  Iterations: {result['iterations']}")
    decision = result.get("decision")
    if decision:
        print(f"  Decision:   {decision['recommendation']} ({decision['confidence']}%)")
        for key in ("home_address", "office_address"):
            if decision.get(key):
                print(f"  {key}: {decision[key]['address']}")
        print(f"\n{decision['reasoning']}")
    elif result.get("error"):
        print(f"  Error:      {result['error']}")
    print("=" * 60)


async def run_once(args, config: AppConfig) -> int:
    from address_agent.agent import run_agent

    log = EventLog()
    result = await run_agent(
        args.input,
        on_event=tee(log, print_event),
        variant=args.variant,
        config=config,
        model=args.model,
    )
    if args.events:
        log.dump(Path(args.events))
        print(f"Wrote {len(log)} events to {args.events}")

    print_result(result.model_dump(mode="json"))
    return 0 if result.decision is not None else 1


def serve(args, config: AppConfig):
    import uvicorn

    uvicorn.run(
        "api.server:app",
        host=args.host or config.api.host,
        port=args.port or config.api.port,
        reload=False,
        log_level="warning" if args.no_logs else "info",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Address Verification Agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run.py run "https://www.linkedin.com/in/jane-doe"
    python run.py run "Jane Doe, Acme Corp" --events run.jsonl
    python run.py run "Jane Doe" --model openai::gpt-4o
    python run.py serve --port 8080
        """,
    )
    parser.add_argument("--config", type=str, default=None, help="Path to a JSON config file")
    parser.add_argument("--no-logs", action="store_true", help="Only log warnings and errors")

    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Research one subject")
    run_p.add_argument("input", help="LinkedIn URL or free-text description of the person")
    run_p.add_argument("--variant", choices=sorted(VARIANTS), default=None, help="Agent variant")
    run_p.add_argument("--model", default=None, help='Model as "<provider>::<model_id>"')
    run_p.add_argument("--events", default=None, help="Write the event stream to this JSONL file")

    serve_p = sub.add_parser("serve", help="Start the HTTP API")
    serve_p.add_argument("--host", type=str, default=None, help="Host to bind to")
    serve_p.add_argument("--port", type=int, default=None, help="Port to listen on")

    return parser


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.no_logs else logging.INFO,
        format=LOG_FORMAT,
    )
    config = load_config(Path(args.config) if args.config else None)

    if args.command == "serve":
        serve(args, config)
        return 0

    try:
        return asyncio.run(run_once(args, config))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
