"""AnalysisService: the model-facing operations behind the API routes.

Each operation builds its prompt, makes exactly one completion call (no
retries) and validates what comes back:

- analyze: conversation -> AnalysisResult
- generate_coaching_script: conversation (+ optional prior analysis) -> CoachingScript
- answer_question: question + grounding context + prior turns -> ChatAnswer
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from src.saleslens.analysis.prompts import (
    build_analysis_messages,
    build_chat_messages,
    build_coaching_messages,
)
from src.saleslens.analysis.tasks import split_answer
from src.saleslens.analysis.validation import (
    ShapeError,
    summarize_for_coaching,
    validate_analysis,
    validate_coaching_script,
)
from src.saleslens.core.errors import UpstreamShapeError
from src.saleslens.schemas.analysis import AnalysisResult, CoachingScript, SourceKind
from src.saleslens.schemas.chat import ChatAnswer, ChatTurn

logger = structlog.get_logger(__name__)

ANALYSIS_TEMPERATURE = 0.3
COACHING_TEMPERATURE = 0.5
CHAT_TEMPERATURE = 0.4

MAX_CONTEXT_LENGTH = 30_000
MAX_PRIOR_TURNS = 20
MAX_TURN_LENGTH = 5_000

EMPTY_ANSWER = "I'm sorry, I couldn't generate a response."


class CompletionClient(Protocol):
    async def completion(
        self,
        messages: list[dict],
        model: str = "fast",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        metadata: dict | None = None,
    ) -> dict: ...


@dataclass(frozen=True)
class AnalyzeInput:
    text: str
    company_name: str
    deal_stage: str
    deal_amount: str | None = None
    source_kind: SourceKind = SourceKind.CALL_TRANSCRIPT


def _raise_shape_error(outcome: ShapeError) -> None:
    raise UpstreamShapeError(outcome.message, fields=outcome.fields, reason=outcome.reason)


def cap_prior_turns(turns: list[ChatTurn]) -> list[ChatTurn]:
    """Keep the last MAX_PRIOR_TURNS turns, each truncated to MAX_TURN_LENGTH."""
    return [
        ChatTurn(role=turn.role, content=turn.content[:MAX_TURN_LENGTH])
        for turn in turns[-MAX_PRIOR_TURNS:]
    ]


class AnalysisService:
    """Prompting + validation on top of an LLM completion client."""

    def __init__(self, llm: CompletionClient) -> None:
        self._llm = llm

    async def analyze(self, request: AnalyzeInput) -> AnalysisResult:
        """Analyse one conversation.

        Raises:
            UpstreamConfigurationError: No LLM credentials.
            UpstreamServiceError: The provider call failed.
            UpstreamShapeError: The answer was not valid analysis JSON.
        """
        messages = build_analysis_messages(
            text=request.text,
            company_name=request.company_name,
            deal_stage=request.deal_stage,
            deal_amount=request.deal_amount,
            source_kind=request.source_kind,
        )
        response = await self._llm.completion(
            messages=messages,
            temperature=ANALYSIS_TEMPERATURE,
            metadata={"operation": "analyze", "source_kind": request.source_kind.value},
        )

        outcome = validate_analysis(response["content"])
        if isinstance(outcome, ShapeError):
            _raise_shape_error(outcome)

        result = outcome.value
        logger.info(
            "analysis.completed",
            company=request.company_name,
            source_kind=request.source_kind.value,
            lead_score=result.lead_score,
            deal_risk=result.deal_risk,
        )
        return result

    async def generate_coaching_script(
        self,
        text: str,
        company_name: str,
        deal_stage: str | None = None,
        source_kind: SourceKind = SourceKind.CALL_TRANSCRIPT,
        analysis_result: Any = None,
    ) -> CoachingScript:
        """Produce a spoken coaching debrief.

        ``analysis_result`` is the loosely-typed analysis the client holds;
        when usable it is clamped and cited as context, otherwise ignored.
        """
        messages = build_coaching_messages(
            text=text,
            company_name=company_name,
            deal_stage=deal_stage,
            source_kind=source_kind,
            context=summarize_for_coaching(analysis_result),
        )
        response = await self._llm.completion(
            messages=messages,
            temperature=COACHING_TEMPERATURE,
            metadata={"operation": "coaching_script", "source_kind": source_kind.value},
        )

        outcome = validate_coaching_script(response["content"])
        if isinstance(outcome, ShapeError):
            _raise_shape_error(outcome)

        logger.info("coaching.script_generated", company=company_name, length=len(outcome.value.script))
        return outcome.value

    async def answer_question(
        self,
        question: str,
        context: str = "",
        prior_turns: list[ChatTurn] | None = None,
    ) -> ChatAnswer:
        """Answer a chat question grounded in ``context``.

        Context beyond MAX_CONTEXT_LENGTH characters is cut; prior turns are
        capped with ``cap_prior_turns``.
        """
        messages = build_chat_messages(
            question=question,
            context=(context or "")[:MAX_CONTEXT_LENGTH],
            prior_turns=cap_prior_turns(prior_turns or []),
        )
        response = await self._llm.completion(
            messages=messages,
            temperature=CHAT_TEMPERATURE,
            metadata={"operation": "chat"},
        )

        raw_answer = response["content"] or EMPTY_ANSWER
        answer, tasks = split_answer(raw_answer)
        logger.info("chat.answered", question_length=len(question), tasks=len(tasks))
        return ChatAnswer(answer=answer, tasks=tasks or None)
