"""
LangChain Adapter

Encapsulates all LangChain logic for the generation capability.
Exposes simple Python types only - NO LangChain objects leak out.

DESIGN RULES (LOCK THIS IN):
- LangChain stays INSIDE this module
- No LangChain imports in: API, Orchestrator, Intent Router, Memory
- Returns str only; failures are GenerationError

BOUNDARY:
    API ❌
    Orchestrator ❌
    Intent Router ❌
    Memory ❌
    Generation ✅  ← ONLY HERE
"""

import asyncio
import json
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI

from agents.intent_router import Capability
from llm.base import GenerationClient, GenerationError
from memory.types import ChatMessage
from toolkit.base import ToolResult
from toolkit.registry import ToolRegistry


logger = logging.getLogger(__name__)


def _to_messages(system_prompt: str, history: List[ChatMessage], user_text: str) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))
    for item in history:
        if not item.text:
            continue
        if item.role == "assistant":
            messages.append(AIMessage(content=item.text))
        else:
            messages.append(HumanMessage(content=item.text))
    messages.append(HumanMessage(content=user_text))
    return messages


def _text_of(response) -> str:
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    return str(content or "").strip()


class LangChainGenerator(GenerationClient):
    """
    OpenAI chat models via LangChain.

    Chat and agent paths use separate temperatures, as the two prompts do.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        chat_temperature: float = 0.7,
        agent_temperature: float = 0.3,
        max_tokens: int = 1000,
        registry: Optional[ToolRegistry] = None,
        llm_factory: Optional[Callable[[float], BaseChatModel]] = None,
    ):
        """
        Args:
            api_key: OpenAI API key
            model: Chat model name
            chat_temperature: Temperature for plain chat
            agent_temperature: Temperature for the tool loop
            max_tokens: Completion cap
            registry: Tools by capability (defaults to the global registry)
            llm_factory: Builds a chat model for a temperature (tests inject fakes)
        """
        self._api_key = api_key
        self._model = model
        self._chat_temperature = chat_temperature
        self._agent_temperature = agent_temperature
        self._max_tokens = max_tokens
        self._registry = registry or ToolRegistry.get_instance()
        self._llm_factory = llm_factory or self._build_llm
        self._llms: Dict[float, BaseChatModel] = {}

    def _build_llm(self, temperature: float) -> BaseChatModel:
        return ChatOpenAI(
            model=self._model,
            api_key=self._api_key,
            temperature=temperature,
            max_tokens=self._max_tokens,
        )

    def _get_llm(self, temperature: float) -> BaseChatModel:
        if temperature not in self._llms:
            self._llms[temperature] = self._llm_factory(temperature)
        return self._llms[temperature]

    async def _invoke(self, runnable, messages: List[BaseMessage]):
        try:
            return await runnable.ainvoke(messages)
        except Exception as e:
            raise GenerationError(f"Model call failed: {e}") from e

    async def generate(
        self,
        system_prompt: str,
        history: List[ChatMessage],
        user_text: str,
    ) -> str:
        start_time = time.time()
        llm = self._get_llm(self._chat_temperature)

        response = await self._invoke(llm, _to_messages(system_prompt, history, user_text))
        output = _text_of(response)
        if not output:
            raise GenerationError("Model returned an empty response")

        logger.debug(f"Chat generation took {int((time.time() - start_time) * 1000)}ms")
        return output

    async def generate_with_tools(
        self,
        system_prompt: str,
        history: List[ChatMessage],
        user_text: str,
        capabilities: Iterable[Capability],
        max_iterations: int,
    ) -> str:
        tools = self._registry.list_for_capabilities(capabilities)
        if not tools:
            raise GenerationError(f"No tools registered for {sorted(c.value for c in capabilities)}")

        start_time = time.time()
        tool_map = {tool.name: tool for tool in tools}
        llm_with_tools = self._get_llm(self._agent_temperature).bind_tools(
            [tool.to_openai_function() for tool in tools]
        )
        messages = _to_messages(system_prompt, history, user_text)

        for iteration in range(1, max_iterations + 1):
            response = await self._invoke(llm_with_tools, messages)
            tool_calls = getattr(response, "tool_calls", None) or []

            if not tool_calls:
                output = _text_of(response)
                if not output:
                    raise GenerationError("Model returned an empty response")
                logger.info(
                    f"Tool generation finished after {iteration} round(s) "
                    f"in {int((time.time() - start_time) * 1000)}ms"
                )
                return output

            messages.append(response)
            for call in tool_calls:
                result = await self._run_tool(tool_map, call["name"], call.get("args") or {})
                messages.append(ToolMessage(
                    content=json.dumps(result.model_dump(), ensure_ascii=False),
                    tool_call_id=call["id"],
                ))

        raise GenerationError(f"Agent stopped after {max_iterations} iterations without an answer")

    async def _run_tool(self, tool_map, name: str, args: dict) -> ToolResult:
        tool = tool_map.get(name)
        if tool is None:
            return ToolResult.fail(f"Unknown tool: {name}")
        try:
            # Tools are synchronous; keep them off the event loop
            result = await asyncio.to_thread(tool.run, args)
        except Exception as e:
            logger.warning(f"Tool {name} raised: {e}")
            return ToolResult.fail(f"Tool {name} failed: {e}")
        logger.info(f"Tool {name} success={result.success}")
        return result
