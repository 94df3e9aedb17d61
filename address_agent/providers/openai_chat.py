"""
OpenAI provider adapter (Chat Completions API).

OpenAI has no inline tool-result blocks, so canonical transcripts are
flattened: assistant tool uses become `tool_calls`, and each tool result
becomes its own `tool` role message keyed by `tool_call_id`.
"""

import json
import logging
from typing import Any, Optional, Sequence

import openai

from ..core.errors import ConfigurationError, TransportError
from ..core.llm_interface import NO_RESPONSE_TEXT, ModelProvider
from ..core.protocol import (
    ChatMessage,
    Message,
    ModelOptions,
    ModelResponse,
    Role,
    StopReason,
    TextBlock,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
    Usage,
)

logger = logging.getLogger(__name__)

FINISH_REASON_MAP = {
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "length": StopReason.MAX_TOKENS,
    "stop": StopReason.END_TURN,
    "content_filter": StopReason.END_TURN,
}

# Reasoning models reject a custom temperature
_FIXED_TEMPERATURE_PREFIXES = ("o1", "o3", "o4", "gpt-5")


def translate_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Flatten canonical messages into OpenAI chat messages"""
    result: list[dict[str, Any]] = []

    for msg in messages:
        if isinstance(msg.content, str):
            result.append({"role": msg.role.value, "content": msg.content})
            continue

        blocks = msg.content
        tool_results = [b for b in blocks if isinstance(b, ToolResultBlock)]
        tool_uses = [b for b in blocks if isinstance(b, ToolUseBlock)]
        text = "\n".join(b.text for b in blocks if isinstance(b, TextBlock))

        if tool_results and msg.role == Role.USER:
            for tr in tool_results:
                result.append({"role": "tool", "tool_call_id": tr.tool_use_id, "content": tr.content})
            if text:
                result.append({"role": "user", "content": text})
            continue

        if tool_uses and msg.role == Role.ASSISTANT:
            result.append({
                "role": "assistant",
                "content": text or None,
                "tool_calls": [
                    {
                        "id": tu.id,
                        "type": "function",
                        "function": {"name": tu.name, "arguments": json.dumps(tu.input)},
                    }
                    for tu in tool_uses
                ],
            })
            continue

        result.append({"role": msg.role.value, "content": text})

    return result


def translate_tools(tools: Sequence[ToolDefinition]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.input_schema,
            },
        }
        for t in tools
    ]


def translate_response(payload: dict[str, Any]) -> ModelResponse:
    """Translate a chat.completion payload (as a dict) into a ModelResponse"""
    choices = payload.get("choices") or []
    if not choices:
        raise TransportError("OpenAI response contained no choices")
    choice = choices[0]
    message = choice.get("message") or {}

    content: list = []
    if message.get("content"):
        content.append(TextBlock(text=message["content"]))

    for tc in message.get("tool_calls") or []:
        if tc.get("type", "function") != "function":
            continue
        fn = tc.get("function") or {}
        raw_args = fn.get("arguments") or "{}"
        try:
            args = json.loads(raw_args)
        except json.JSONDecodeError as e:
            raise TransportError(f"Invalid JSON in arguments for tool {fn.get('name')}: {e}") from e
        if not isinstance(args, dict):
            raise TransportError(f"Arguments for tool {fn.get('name')} are not an object")
        content.append(ToolUseBlock(id=tc["id"], name=fn["name"], input=args))

    stop_reason = FINISH_REASON_MAP.get(choice.get("finish_reason") or "", StopReason.END_TURN)

    usage = None
    raw_usage = payload.get("usage")
    if raw_usage:
        usage = Usage(
            input_tokens=raw_usage.get("prompt_tokens", 0) or 0,
            output_tokens=raw_usage.get("completion_tokens", 0) or 0,
        )

    return ModelResponse(content=content, stop_reason=stop_reason, usage=usage)


def supports_temperature(model_id: str) -> bool:
    return not model_id.startswith(_FIXED_TEMPERATURE_PREFIXES)


class OpenAIProvider(ModelProvider):
    """OpenAI Chat Completions with function tools"""

    provider_name = "openai"

    def __init__(self, model_id: str, api_key: Optional[str] = None, client: Any = None):
        super().__init__(model_id)
        if client is None:
            if not api_key:
                raise ConfigurationError("Missing OPENAI_API_KEY environment variable")
            client = openai.AsyncOpenAI(api_key=api_key)
        self._client = client

    async def _complete(self, **kwargs) -> dict[str, Any]:
        try:
            completion = await self._client.chat.completions.create(model=self.model_id, **kwargs)
        except openai.OpenAIError as e:
            raise TransportError(f"OpenAI request failed: {e}") from e
        return completion.model_dump()

    async def call_model(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition],
        options: Optional[ModelOptions] = None,
    ) -> ModelResponse:
        options = options or ModelOptions()
        kwargs: dict[str, Any] = {
            "messages": translate_messages(messages),
            "max_completion_tokens": options.max_tokens,
        }
        if tools:
            kwargs["tools"] = translate_tools(tools)
        if supports_temperature(self.model_id):
            kwargs["temperature"] = options.temperature

        return translate_response(await self._complete(**kwargs))

    async def chat(
        self,
        system_prompt: str,
        messages: Sequence[ChatMessage],
        options: Optional[ModelOptions] = None,
    ) -> str:
        max_tokens = options.max_tokens if options else 4096
        chat_messages = [{"role": "system", "content": system_prompt}]
        chat_messages.extend({"role": m.role.value, "content": m.content} for m in messages)

        payload = await self._complete(messages=chat_messages, max_completion_tokens=max_tokens)
        choices = payload.get("choices") or []
        text = choices[0].get("message", {}).get("content") if choices else None
        return text or NO_RESPONSE_TEXT
