"""
FastAPI Server
Runs the address verification agent over HTTP.

DESIGN DECISIONS:
- Minimal API surface: health, variants, blocking run, streamed run
- One orchestrator per request, so concurrent runs share no state
- Streamed runs are NDJSON, one AgentEvent per line, in emission order
- A client disconnect on a streamed run cancels it at the next iteration
"""

import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from address_agent import __version__
from address_agent.agent import create_orchestrator
from address_agent.core.errors import ConfigurationError
from address_agent.core.events import AgentEvent, EventLog
from address_agent.core.orchestrator import Orchestrator
from address_agent.core.protocol import AgentResult
from address_agent.variants import list_variants
from config.settings import APIConfig, AppConfig, load_config


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

AgentFactory = Callable[[Optional[str], Optional[str]], Orchestrator]


def configure_logging(api_config: APIConfig):
    """Log to stderr and <log_dir>/api.log"""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if api_config.enable_logging:
        log_dir = Path(api_config.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / "api.log"))

    logging.basicConfig(
        level=logging.INFO if api_config.enable_logging else logging.WARNING,
        format=LOG_FORMAT,
        handlers=handlers,
    )


# Request/Response Models
class RunRequest(BaseModel):
    """Run request body"""
    input: str = Field(min_length=1)
    variant: Optional[str] = None
    # "<provider>::<model_id>", defaults to the configured model
    model: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "input": "https://www.linkedin.com/in/jane-doe",
                "variant": "streaming",
            }
        }
    }


class RunResponse(BaseModel):
    """Run response body"""
    result: AgentResult
    events: list[AgentEvent]


class VariantsResponse(BaseModel):
    default: str
    variants: list[dict[str, Any]]


_config: Optional[AppConfig] = None


def get_app_config() -> AppConfig:
    global _config
    if _config is None:
        path = os.getenv("AGENT_CONFIG")
        _config = load_config(Path(path) if path else None)
    return _config


def get_agent_factory(config: AppConfig = Depends(get_app_config)) -> AgentFactory:
    def factory(variant: Optional[str], model: Optional[str]) -> Orchestrator:
        return create_orchestrator(
            variant,
            config,
            model=model,
            enable_logging=config.api.enable_logging,
        )
    return factory


def _build(factory: AgentFactory, request: RunRequest) -> Orchestrator:
    try:
        return factory(request.variant, request.model)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    config = get_app_config()
    configure_logging(config.api)
    logger.info(f"Starting Address Agent API (default variant: {config.default_variant})...")
    yield
    logger.info("Address Agent API shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Address Verification Agent",
    description="Researches a person and recommends a verified delivery address",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/variants", response_model=VariantsResponse)
async def get_variants(config: AppConfig = Depends(get_app_config)):
    """Built-in variants with configured overrides applied"""
    try:
        variants = list_variants(config.variant_overrides)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=f"Invalid variant overrides: {e}")
    return VariantsResponse(default=config.default_variant, variants=variants)


@app.post("/runs", response_model=RunResponse)
async def create_run(request: RunRequest, factory: AgentFactory = Depends(get_agent_factory)):
    """
    Run the agent to completion.

    Returns the terminal result plus every event emitted during the run.
    """
    orchestrator = _build(factory, request)
    log = EventLog()

    logger.info(f"Run request [{orchestrator.profile.name}]: {request.input[:100]}")
    async with orchestrator.dispatcher.services:
        result = await orchestrator.run(request.input, on_event=log)

    logger.info(f"Run finished: status={result.status.value}, iterations={result.iterations}")
    return RunResponse(result=result, events=log.events)


@app.post("/runs/stream")
async def stream_run(
    body: RunRequest,
    request: Request,
    factory: AgentFactory = Depends(get_agent_factory),
):
    """Run the agent and stream its events as NDJSON"""
    orchestrator = _build(factory, body)
    logger.info(f"Streamed run request [{orchestrator.profile.name}]: {body.input[:100]}")

    async def event_stream():
        queue: asyncio.Queue = asyncio.Queue()

        async def _run():
            try:
                async with orchestrator.dispatcher.services:
                    await orchestrator.run(
                        body.input,
                        on_event=queue.put_nowait,
                        cancel_check=request.is_disconnected,
                    )
            finally:
                queue.put_nowait(None)

        task = asyncio.create_task(_run())
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event.model_dump_json() + "\n"
            await task
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    return StreamingResponse(event_stream(), media_type="application/x-ndjson")


# Entry point for running directly
def main():
    """Run the server"""
    import uvicorn

    config = get_app_config()
    uvicorn.run(
        "api.server:app",
        host=config.api.host,
        port=config.api.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
