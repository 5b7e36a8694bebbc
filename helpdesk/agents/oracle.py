"""
Oracle boundary

Two collaborators sit behind narrow interfaces so the routing engine can be
tested with fakes:
- IntentClassifier: turn history → ClassificationResult
- DomainResponder: (domain, turn history, tool context) → ResponderResult

The OpenAI implementations use AsyncOpenAI chat completions; the responder
runs a bounded tool-calling loop over the ToolRegistry.
"""
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI
from pydantic import BaseModel, Field, ValidationError

from helpdesk.agents.prompts import CLASSIFIER_INSTRUCTIONS, DOMAIN_PROFILES, DomainProfile
from helpdesk.agents.tools import ToolContext, ToolRegistry
from helpdesk.config import get_settings
from helpdesk.models.schemas import ClassificationResult, ResponderDomain
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


class ClassificationError(Exception):
    """The classifier returned nothing usable"""


class ResponderResult(BaseModel):
    """Output of one responder run"""
    output_text: str = ""
    actions: List[str] = Field(default_factory=list)
    ticket_folio: Optional[str] = None


class IntentClassifier(ABC):
    @abstractmethod
    async def classify(self, messages: List[Dict[str, Any]]) -> ClassificationResult:
        """Classify the latest user turn given the conversation so far"""


class DomainResponder(ABC):
    @property
    @abstractmethod
    def domains(self) -> List[ResponderDomain]:
        """Domains this responder can answer"""

    @abstractmethod
    async def respond(
        self,
        domain: ResponderDomain,
        messages: List[Dict[str, Any]],
        context: ToolContext,
    ) -> ResponderResult:
        """Produce the reply for a turn dispatched to ``domain``"""


class OpenAIIntentClassifier(IntentClassifier):
    """JSON-mode chat completion classifier"""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = model or settings.classifier_model

    async def classify(self, messages: List[Dict[str, Any]]) -> ClassificationResult:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": CLASSIFIER_INSTRUCTIONS}, *messages],
                response_format={"type": "json_object"},
                temperature=0.3,
                max_tokens=256,
            )
        except Exception as e:
            logger.error(f"Classifier call failed: {e}")
            raise ClassificationError(f"Classification failed: {e}") from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ClassificationError("Classification failed - no output")

        try:
            result = ClassificationResult.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Unusable classifier output: {content[:200]}")
            raise ClassificationError(f"Classification failed - invalid output: {e}") from e

        logger.info(
            f"Classified as {result.classification.value}"
            + (f" ({result.sub_classification.value})" if result.sub_classification else "")
        )
        return result


class OpenAIDomainResponder(DomainResponder):
    """Chat completion responder with a bounded tool-calling loop"""

    def __init__(
        self,
        tool_registry: ToolRegistry,
        client: Optional[AsyncOpenAI] = None,
        profiles: Optional[Dict[ResponderDomain, DomainProfile]] = None,
        max_tool_rounds: Optional[int] = None,
    ):
        self.tool_registry = tool_registry
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.profiles = profiles or DOMAIN_PROFILES
        self.max_tool_rounds = max_tool_rounds or settings.responder_max_tool_rounds

    @property
    def domains(self) -> List[ResponderDomain]:
        return list(self.profiles)

    async def respond(
        self,
        domain: ResponderDomain,
        messages: List[Dict[str, Any]],
        context: ToolContext,
    ) -> ResponderResult:
        profile = self.profiles[domain]
        logger.info(f"Routing to: {profile.name}")

        conversation: List[Dict[str, Any]] = [
            {"role": "system", "content": profile.instructions},
            *messages,
        ]
        if context.account_id:
            conversation.insert(1, {
                "role": "system",
                "content": f"Numero de contrato conocido: {context.account_id}",
            })

        tools = self.tool_registry.schemas(profile.tools)
        actions: List[str] = []
        output_text = ""

        for round_number in range(1, self.max_tool_rounds + 1):
            request: Dict[str, Any] = {
                "model": profile.model,
                "messages": conversation,
                "temperature": profile.temperature,
                "max_tokens": profile.max_tokens,
            }
            if tools:
                request["tools"] = tools

            completion = await self.client.chat.completions.create(**request)
            message = completion.choices[0].message
            output_text = message.content or output_text

            if not message.tool_calls:
                break

            conversation.append({
                "role": "assistant",
                "content": message.content,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.function.name, "arguments": call.function.arguments},
                    }
                    for call in message.tool_calls
                ],
            })
            for call in message.tool_calls:
                actions.append(call.function.name)
                result = await self.tool_registry.execute(call.function.name, call.function.arguments, context)
                conversation.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps(result, ensure_ascii=False, default=str),
                })
        else:
            logger.warning(f"{profile.name} reached {self.max_tool_rounds} tool rounds without a final answer")

        return ResponderResult(
            output_text=output_text,
            actions=actions,
            ticket_folio=context.last_folio,
        )
