"""Prompt builders for conversation analysis, coaching and chat.

The analysis prompt varies by source kind: vocabulary ("call" vs "email
exchange" vs "conversation"), what counts as evidence (a verbatim quote vs
a summary of the rep's notes) and which signals to look for. Every
variant demands the same strict JSON response shape, validated by
``src.saleslens.analysis.validation``.

Exports:
    ANALYSIS_TEMPLATES: Per-source-kind prompt configuration.
    ANALYSIS_RESPONSE_SCHEMA: JSON shape the model must answer with.
    CHAT_SYSTEM_PROMPT: Sales assistant instructions, incl. the TASK line format.
    build_analysis_messages: Messages list for an analysis call.
    build_coaching_messages: Messages list for a coaching-script call.
    build_chat_messages: Messages list for a chat-assistant call.
    coaching_source_label: Human label for a source kind in coaching prompts.
"""

from __future__ import annotations

from src.saleslens.schemas.analysis import CoachingContext, SourceKind
from src.saleslens.schemas.chat import ChatTurn

# ── Analysis templates ──────────────────────────────────────────────────────

ANALYSIS_TEMPLATES: dict[str, dict[str, str]] = {
    "call": {
        "preamble": (
            "You are an experienced B2B sales analyst. Assess the sales meeting "
            "transcript below and give a complete, evidence-based evaluation."
        ),
        "input_label": "TRANSCRIPT:",
        "interaction_word": "call",
        "evidence_guideline": (
            "- buyingSignals: urgency, budget talk, timeline mentions, additional "
            "stakeholders joining, positive sentiment.\n"
            "- objections: pricing pushback, competitor comparisons, delays, "
            "missing authority."
        ),
        "evidence_instruction": "exact quote or line from the transcript",
    },
    "email": {
        "preamble": (
            "You are an experienced B2B sales analyst. The input is an email "
            "thread between a rep and a prospect, not a live meeting. Judge it "
            "as asynchronous communication:\n"
            "- Weigh reply speed, message length, tone changes and engagement "
            "across the thread.\n"
            "- Buying signals include pricing questions, demo requests, "
            "colleagues being copied in and detailed follow-up questions.\n"
            "- Risk signals include slow or terse replies, competitor mentions, "
            "timeline pushback and silence.\n"
            "- The follow-up email must read as the natural next reply in the thread.\n"
            "- Coaching covers subject lines, personalization, clarity, calls "
            "to action and follow-up timing."
        ),
        "input_label": "EMAIL THREAD:",
        "interaction_word": "email exchange",
        "evidence_guideline": (
            "- buyingSignals: pricing or feature questions, fast replies, "
            "decision makers added, requests for next steps, stated urgency.\n"
            "- objections: delayed answers, dismissive replies, competitors, "
            "budget pushback, \"we'll get back to you\", signs of ghosting.\n"
            "- evidence: quote the relevant line from the email thread."
        ),
        "evidence_instruction": "exact quote or line from the email thread",
    },
    "event": {
        "preamble": (
            "You are an experienced B2B sales analyst. The input is a rep's "
            "structured notes from a short event or conference conversation, "
            "not a verbatim transcript:\n"
            "- Evidence must reference the notes; there are no exact quotes.\n"
            "- Data is thin, so scores carry more uncertainty; say so in the "
            "reasoning.\n"
            "- Focus on the budget, authority, need and timeline indicators "
            "that were captured.\n"
            "- Next steps and the follow-up email should suit post-event outreach."
        ),
        "input_label": "EVENT NOTES:",
        "interaction_word": "conversation",
        "evidence_guideline": (
            "- buyingSignals: confirmed budget, access to the decision maker, "
            "timeline urgency, stated pain, interest level.\n"
            "- objections: budget doubts, unclear authority, long timelines, "
            "competitor preference, low interest.\n"
            "- evidence: summarize the relevant note; never invent quotes."
        ),
        "evidence_instruction": "summary of the relevant note",
    },
}

_TEMPLATE_BY_SOURCE: dict[SourceKind, str] = {
    SourceKind.CALL_TRANSCRIPT: "call",
    SourceKind.BATCH_ITEM: "call",
    SourceKind.EMAIL_THREAD: "email",
    SourceKind.EVENT_NOTES: "event",
}

ANALYSIS_SYSTEM_PROMPT = (
    "You are a sales intelligence AI. Always respond with valid JSON only, "
    "no markdown or code fences."
)

FINANCIAL_ANALYSIS_SCHEMA = """\
  "financialAnalysis": {
    "dealEconomics": {
      "extractedMonthlySpend": <number or null>,
      "extractedAnnualSpend": <number or null>,
      "contractTermMonths": <number or null>,
      "totalContractValue": <number or null>,
      "weightedPipelineValue": <number or null>,
      "reasoning": "<how the figures were derived>"
    },
    "revenueRisk": {
      "overallScore": <integer 0-100, higher is riskier>,
      "budgetConstraintSeverity": "<None | Mild | Moderate | Severe>",
      "paymentDelayLikelihood": "<Low | Medium | High>",
      "cancellationRisk": "<Low | Medium | High>",
      "risks": [{ "risk": "<risk>", "severity": "<Low | Medium | High>", "evidence": "<evidence>" }],
      "reasoning": "<explanation>"
    },
    "competitivePricing": {
      "competitorsDetected": [
        { "competitor": "<name>", "mentionedPrice": "<price or null>", "discountPressure": <true or false>, "context": "<context>" }
      ],
      "discountPressureLevel": "<None | Low | Medium | High>",
      "priceSensitivitySignal": "<summary>",
      "reasoning": "<explanation>"
    },
    "roiPayback": {
      "prospectCurrentCost": "<string or null>",
      "prospectExpectedSavings": "<string or null>",
      "impliedROIPercent": <number or null>,
      "paybackPeriodMonths": <number or null>,
      "dataConfidence": "<High | Medium | Low | Insufficient>",
      "reasoning": "<explanation>"
    },
    "budgetHealth": {
      "status": "<Confirmed | Exploring | Constrained | No Budget>",
      "approvalProcess": "<string or null>",
      "fiscalYearTiming": "<string or null>",
      "budgetOwner": "<string or null>",
      "reasoning": "<explanation>"
    }
  }"""

ANALYSIS_RESPONSE_SCHEMA = """\
{{
  "leadScore": <integer 0-100>,
  "leadScoreReasoning": "<1-2 sentences>",
  "worthChasing": <true or false>,
  "worthChasingReasoning": "<1-2 sentences>",
  "dealRisk": "<Low | Medium | High>",
  "dealRiskReasoning": "<1-2 sentences>",
  "closeForecast": <integer 0-100>,
  "closeForecastReasoning": "<1-2 sentences>",
  "buyingSignals": [{{ "signal": "<buying signal>", "evidence": "<{evidence}>" }}],
  "objections": [{{ "objection": "<objection>", "evidence": "<{evidence}>" }}],
  "nextSteps": ["<actionable next step>"],
  "followUpEmail": "<professional follow-up email draft>",
  "coachingSummary": "<3-5 sentence coaching summary for the rep>",
  "suggestedQuestions": [{{ "question": "<question to ask>", "reason": "<why it matters>" }}],
{financial}
}}"""


def template_for(source_kind: SourceKind) -> dict[str, str]:
    return ANALYSIS_TEMPLATES[_TEMPLATE_BY_SOURCE.get(source_kind, "call")]


def build_analysis_messages(
    text: str,
    company_name: str,
    deal_stage: str,
    deal_amount: str | None = None,
    source_kind: SourceKind = SourceKind.CALL_TRANSCRIPT,
) -> list[dict[str, str]]:
    """Build a messages list for a conversation analysis call.

    Args:
        text: Transcript, email thread, or event briefing notes.
        company_name: Prospect company.
        deal_stage: Pipeline stage as entered by the rep.
        deal_amount: Optional deal size; rendered with a leading ``$``.
        source_kind: Selects the prompt template.

    Returns:
        ``[system, user]`` message dicts for the chat completion API.
    """
    template = template_for(source_kind)
    schema = ANALYSIS_RESPONSE_SCHEMA.format(
        evidence=template["evidence_instruction"],
        financial=FINANCIAL_ANALYSIS_SCHEMA,
    )
    amount_line = f"Deal Amount: ${deal_amount}" if deal_amount else "Deal Amount: Not specified"

    user_prompt = (
        f"{template['preamble']}\n\n"
        f"Company: {company_name}\n"
        f"Deal Stage: {deal_stage}\n"
        f"{amount_line}\n\n"
        f"{template['input_label']}\n"
        f'"""\n{text}\n"""\n\n'
        "Respond ONLY with valid JSON in exactly this format "
        "(no markdown, no code fences):\n"
        f"{schema}\n\n"
        "Guidelines:\n"
        "- leadScore: 0 is a dead lead, 100 a certain close. Consider "
        "engagement, budget authority, timeline and fit.\n"
        "- dealRisk: driven by objections, competitors, vague commitments "
        "and absent decision makers.\n"
        "- closeForecast: probability of closing given every available signal.\n"
        f"{template['evidence_guideline']}\n"
        "- nextSteps: 3-5 specific actions, with owners where possible.\n"
        "- followUpEmail: reference specific discussion points and end with "
        "a clear call to action.\n"
        "- coachingSummary: constructive feedback on the rep's performance "
        f"in this {template['interaction_word']}.\n"
        "- suggestedQuestions: 3-5 discovery questions covering budget, "
        "authority, need, timeline or competition; each reason is specific "
        "to THIS deal.\n"
        "- financialAnalysis: include only when the conversation mentions "
        "money, pricing, budget or competitors; use null for unknown "
        "numbers and never invent figures."
    )

    return [
        {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


# ── Coaching ────────────────────────────────────────────────────────────────

COACHING_SYSTEM_PROMPT = (
    "You are a veteran B2B sales coach. Always respond with valid JSON only, "
    "no markdown or code fences."
)

_COACHING_LABELS: dict[SourceKind, tuple[str, str]] = {
    SourceKind.EMAIL_THREAD: ("email exchange", "EMAIL THREAD"),
    SourceKind.EVENT_NOTES: ("event conversation", "EVENT NOTES"),
}


def coaching_source_label(source_kind: SourceKind) -> str:
    return _COACHING_LABELS.get(source_kind, ("sales call", "TRANSCRIPT"))[0]


def _coaching_context_block(context: CoachingContext | None) -> str:
    if context is None:
        return ""
    return (
        "\n\nANALYSIS RESULTS (for context):\n"
        f"- Lead Score: {context.lead_score:g}/100\n"
        f"- Worth Chasing: {'Yes' if context.worth_chasing else 'No'}\n"
        f"- Deal Risk: {context.deal_risk}\n"
        f"- Close Forecast: {context.close_forecast:g}%\n"
        f"- Coaching Summary: {context.coaching_summary}"
    )


def build_coaching_messages(
    text: str,
    company_name: str,
    deal_stage: str | None = None,
    source_kind: SourceKind = SourceKind.CALL_TRANSCRIPT,
    context: CoachingContext | None = None,
) -> list[dict[str, str]]:
    """Build a messages list for a spoken coaching debrief."""
    label, input_label = _COACHING_LABELS.get(source_kind, ("sales call", "TRANSCRIPT"))
    stage = f" ({deal_stage} stage)" if deal_stage else ""

    user_prompt = (
        "You are a B2B sales manager with decades of experience. You just "
        f"reviewed a rep's {label} with {company_name}{stage}. Give them a "
        "coaching debrief.\n\n"
        f"{input_label}:\n"
        f'"""\n{text}\n"""'
        f"{_coaching_context_block(context)}\n\n"
        "Respond ONLY with valid JSON in exactly this format "
        "(no markdown, no code fences):\n"
        "{\n"
        '  "script": "<300-500 word coaching monologue to be spoken aloud, no '
        "bullet points, warm and direct, opening along the lines of 'Hey, nice "
        f"work on that {label} with {company_name}...'>\",\n"
        '  "sections": {\n'
        '    "greeting": "<1-2 sentence opener>",\n'
        '    "strengths": ["<specific strength with evidence>"],\n'
        '    "improvements": ["<specific area to improve>"],\n'
        '    "missedQuestions": [{ "question": "<question they should have asked>", '
        '"why": "<why it matters for this deal>" }],\n'
        '    "nextCallQuestions": [{ "question": "<question for the next touchpoint>", '
        '"why": "<how it advances the deal>" }],\n'
        '    "closing": "<1-2 sentence encouraging close>"\n'
        "  }\n"
        "}\n\n"
        "Guidelines:\n"
        "- strengths and improvements: 2-3 each, tied to what actually happened.\n"
        "- missedQuestions: 3-5, the most important section; cover budget, "
        "authority, need, timeline, competition or decision process.\n"
        "- nextCallQuestions: 3-5 forward-looking questions.\n"
        "- script: 300-500 words, conversational, spoken as audio coaching."
    )

    return [
        {"role": "system", "content": COACHING_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


# ── Chat assistant ──────────────────────────────────────────────────────────

CHAT_SYSTEM_PROMPT = """\
You are an AI sales assistant with access to the team's customer interaction history. \
Answer questions about companies, prospects and deals, summarize interactions, spot \
patterns and pull out action items.

When you list tasks or action items, put each on its own line in exactly this format:
TASK: description | OWNER: Sales Rep | DEADLINE: date or TBD | SOURCE: company name

Use the rep's real name as OWNER when the history has it, otherwise "Sales Rep". Use a \
concrete DEADLINE when the data mentions one, otherwise "TBD".

Rules:
- Be concise, direct and specific.
- Never use placeholder brackets such as [Your Name] or [Date]; use real values or leave them out.
- Do not write template emails or template content unless asked.
- Refer to real company names and specific details.
- If the history does not contain enough information, say so.
- Prefer short bullet points over long paragraphs.
- Do not put separators like --- between sections; use headings and bullets.
- Format money with $ and sensible notation."""

CONTEXT_PREAMBLE = "Here is the relevant customer interaction history for context:\n\n"
CONTEXT_ACK = "I've reviewed the customer interaction history. How can I help you?"


def build_chat_messages(
    question: str,
    context: str,
    prior_turns: list[ChatTurn],
) -> list[dict[str, str]]:
    """Build a messages list for a chat-assistant call.

    A non-empty ``context`` is injected as a user/assistant exchange ahead
    of the prior turns, so the model treats it as already-read material.
    """
    messages = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
    if context:
        messages.append({"role": "user", "content": f"{CONTEXT_PREAMBLE}{context}"})
        messages.append({"role": "assistant", "content": CONTEXT_ACK})
    messages.extend({"role": turn.role, "content": turn.content} for turn in prior_turns)
    messages.append({"role": "user", "content": question})
    return messages
