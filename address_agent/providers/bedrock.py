"""
Bedrock provider adapter (Anthropic models via AWS Bedrock).

The canonical message model is already Anthropic-shaped, so translation is
mostly a straight dump of the block arrays. The stop reason is normalized
through STOP_REASON_MAP.
"""

import asyncio
import json
import logging
from typing import Any, Optional, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.errors import ConfigurationError, TransportError
from ..core.llm_interface import NO_RESPONSE_TEXT, ModelProvider
from ..core.protocol import (
    ChatMessage,
    Message,
    ModelOptions,
    ModelResponse,
    StopReason,
    TextBlock,
    ToolDefinition,
    ToolUseBlock,
    Usage,
)

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"

STOP_REASON_MAP = {
    "end_turn": StopReason.END_TURN,
    "stop_sequence": StopReason.END_TURN,
    "pause_turn": StopReason.END_TURN,
    "refusal": StopReason.END_TURN,
    "tool_use": StopReason.TOOL_USE,
    "max_tokens": StopReason.MAX_TOKENS,
}


def to_bedrock_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Serialize canonical messages as Anthropic block-array messages"""
    out = []
    for msg in messages:
        if isinstance(msg.content, str):
            content: Any = msg.content
        else:
            content = [block.model_dump(mode="json") for block in msg.content]
        out.append({"role": msg.role.value, "content": content})
    return out


def to_bedrock_tools(tools: Sequence[ToolDefinition]) -> list[dict[str, Any]]:
    return [t.model_dump(mode="json") for t in tools]


def build_request_body(
    messages: Sequence[Message],
    tools: Sequence[ToolDefinition],
    options: ModelOptions,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "anthropic_version": ANTHROPIC_VERSION,
        "max_tokens": options.max_tokens,
        "temperature": options.temperature,
        "messages": to_bedrock_messages(messages),
    }
    if tools:
        body["tools"] = to_bedrock_tools(tools)
    return body


def build_chat_body(
    system_prompt: str,
    messages: Sequence[ChatMessage],
    max_tokens: int,
) -> dict[str, Any]:
    return {
        "anthropic_version": ANTHROPIC_VERSION,
        "max_tokens": max_tokens,
        "system": system_prompt,
        "messages": [
            {"role": m.role.value, "content": [{"type": "text", "text": m.content}]}
            for m in messages
        ],
    }


def parse_response(payload: dict[str, Any]) -> ModelResponse:
    """Translate an Anthropic messages payload into a ModelResponse"""
    content = []
    for block in payload.get("content") or []:
        kind = block.get("type")
        if kind == "text":
            content.append(TextBlock(text=block.get("text", "")))
        elif kind == "tool_use":
            content.append(
                ToolUseBlock(id=block["id"], name=block["name"], input=block.get("input") or {})
            )
        # thinking and other vendor-only blocks are not represented canonically

    stop_reason = STOP_REASON_MAP.get(payload.get("stop_reason") or "", StopReason.END_TURN)

    usage = None
    raw_usage = payload.get("usage")
    if raw_usage:
        usage = Usage(
            input_tokens=raw_usage.get("input_tokens", 0) or 0,
            output_tokens=raw_usage.get("output_tokens", 0) or 0,
        )

    return ModelResponse(content=content, stop_reason=stop_reason, usage=usage)


class BedrockProvider(ModelProvider):
    """Anthropic Claude on AWS Bedrock via boto3 invoke_model"""

    provider_name = "bedrock"

    def __init__(
        self,
        model_id: str,
        region: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        client: Any = None,
    ):
        super().__init__(model_id)
        if client is None:
            if not (region and access_key_id and secret_access_key):
                raise ConfigurationError(
                    "Missing AWS credentials. Set AWS_REGION, AWS_ACCESS_KEY_ID, "
                    "and AWS_SECRET_ACCESS_KEY"
                )
            client = boto3.client(
                "bedrock-runtime",
                region_name=region,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
            )
        self._client = client

    async def _invoke(self, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await asyncio.to_thread(
                self._client.invoke_model,
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(body),
            )
            return json.loads(response["body"].read())
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"Bedrock invoke_model failed: {e}") from e
        except (KeyError, ValueError) as e:
            raise TransportError(f"Malformed Bedrock response: {e}") from e

    async def call_model(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition],
        options: Optional[ModelOptions] = None,
    ) -> ModelResponse:
        body = build_request_body(messages, tools, options or ModelOptions())
        payload = await self._invoke(body)
        try:
            return parse_response(payload)
        except (KeyError, ValueError) as e:
            raise TransportError(f"Malformed Bedrock response: {e}") from e

    async def chat(
        self,
        system_prompt: str,
        messages: Sequence[ChatMessage],
        options: Optional[ModelOptions] = None,
    ) -> str:
        max_tokens = options.max_tokens if options else 4096
        payload = await self._invoke(build_chat_body(system_prompt, messages, max_tokens))
        for block in payload.get("content") or []:
            if block.get("type") == "text" and block.get("text"):
                return block["text"]
        return NO_RESPONSE_TEXT
