"""
Assistant Domain Entities
=========================

Domain entities for the AI assistant module.

Contains the value objects produced by the models (responses, resolution
assessments, priority analyses) and the prompt builders that request them.
"""

from dataclasses import dataclass, field
from typing import List, Literal

from autocrm.config import ResolutionStatus, TicketPriority
from autocrm.knowledge.domain import ArticleSuggestion, KnowledgeArticle, format_articles_for_prompt


@dataclass(frozen=True)
class ResolutionAssessment:
    """
    The model's view of where a conversation stands.

    ``confidence`` is always within [0, 1].
    """
    status: ResolutionStatus
    confidence: float
    reason: str = ""

    def __post_init__(self):
        """Validate resolution assessment."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("Confidence must be between 0 and 1")

    @classmethod
    def from_dict(cls, data: dict) -> "ResolutionAssessment":
        """
        Build from model output or a stored JSON column.

        Raises:
            ValueError: On unknown status or out-of-range confidence
        """
        if not isinstance(data, dict):
            raise ValueError("resolution must be an object")
        status = ResolutionStatus(str(data.get("status", "")).strip().lower())
        confidence = float(data.get("confidence"))
        return cls(status=status, confidence=confidence, reason=str(data.get("reason") or ""))

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "confidence": self.confidence,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class AIResponse:
    """Customer-facing reply plus the model's resolution assessment."""
    message: str
    resolution: ResolutionAssessment


@dataclass(frozen=True)
class PriorityAnalysis:
    """Priority assigned to a new ticket."""
    priority: TicketPriority
    reason: str


@dataclass(frozen=True)
class ConversationTurn:
    """One message of a ticket conversation as the model sees it."""
    role: Literal["user", "assistant"]
    content: str


@dataclass(frozen=True)
class TicketPattern:
    """A recurring theme across tickets with a relative frequency (1-10)."""
    text: str
    value: int


@dataclass
class TicketDigest:
    """Ticket text submitted for pattern analysis."""
    title: str
    description: str
    messages: List[str] = field(default_factory=list)


@dataclass
class ChatAnswer:
    """Result of a knowledge base chat question."""
    response: str
    used_articles: List[ArticleSuggestion]
    needs_live_agent: bool


# ========== Prompt builders ==========

_RESPONSE_FORMAT = """Respond ONLY in this exact JSON format (no backticks, no other text):
{
    "message": "Your response to the customer",
    "resolution": {
        "status": "continue | potential_resolution | escalate",
        "confidence": 0.0,
        "reason": "Brief explanation of your assessment"
    }
}"""


class ResponsePromptBuilder:
    """
    Builds prompts for ticket replies.

    Following DRY principle - all prompt logic in one place.
    """

    INITIAL_SYSTEM_PROMPT = f"""You are a helpful customer support AI assistant. Help customers with their tickets using the knowledge base articles provided, and judge whether the issue can be resolved right away.

Instructions:
1. Use the information from the provided articles to help the customer
2. If you can fully resolve the issue with the information available:
   - Provide a clear solution
   - Use status "potential_resolution"
   - Ask the customer to confirm the issue is resolved
3. If you need more information:
   - Acknowledge what you understand
   - Ask specific questions
   - Use status "continue"
4. If the issue is beyond your capabilities (refunds, outages, policy exceptions):
   - Explain why
   - Use status "escalate" to hand over to a support agent
5. Keep responses concise, professional and friendly
6. If several articles are relevant, combine their information

confidence is how sure you are of the status, from 0.0 to 1.0.

{_RESPONSE_FORMAT}"""

    FOLLOW_UP_SYSTEM_PROMPT = f"""You are a helpful customer support AI assistant continuing the conversation about a support ticket. Decide whether the issue now appears resolved, needs more back and forth, or needs a human agent.

Instructions:
1. Maintain context from the previous conversation
2. Use knowledge base articles when relevant
3. If the customer confirms the issue is solved, thank them, ask if they need anything else and use status "potential_resolution"
4. If escalation is needed (refunds, complex issues, policy exceptions), explain that a human agent will take over and use status "escalate"
5. If you need more information, ask specific questions and use status "continue"
6. Keep responses professional but friendly, concise but thorough

confidence is how sure you are of the status, from 0.0 to 1.0.

{_RESPONSE_FORMAT}"""

    @classmethod
    def build_initial_prompt(
        cls,
        title: str,
        description: str,
        similar_articles: List[KnowledgeArticle]
    ) -> str:
        context = format_articles_for_prompt(similar_articles) or "No relevant articles found."
        return f"""Ticket Title: {title}

Description:
{description}

Available Knowledge Base Articles:
{context}"""

    @classmethod
    def build_follow_up_prompt(
        cls,
        ticket_id: str,
        title: str,
        ticket_status: str,
        user_message: str,
        conversation_history: List[ConversationTurn],
        context: str
    ) -> str:
        history = "\n\n".join(
            f"{'User' if turn.role == 'user' else 'Assistant'}: {turn.content}"
            for turn in conversation_history
        ) or "(no previous messages)"
        return f"""Ticket Information:
Title: {title}
Status: {ticket_status}
ID: {ticket_id}

Knowledge Base Context:
{context or "No relevant articles found."}

Previous Conversation:
{history}

Latest User Message:
{user_message}"""


class PriorityPromptBuilder:
    """Builds prompts for ticket priority analysis."""

    SYSTEM_PROMPT = """You analyze customer support tickets to assign a priority.

Priority Levels:
- Low: Not time sensitive, can be solved without a live support worker. Feature requests, minor UI issues, documentation questions.
- Medium: Affects the user experience but does not completely block functionality.
- High: Critical. Affects core functionality, payment processing or security, and must be handled immediately.

Consider time sensitivity, business impact, the number of affected users and whether a human must step in.

Respond ONLY in JSON format:
{
    "priority": "High | Medium | Low",
    "reason": "brief explanation"
}"""

    @classmethod
    def build_prompt(cls, title: str, description: str) -> str:
        return f"""Title: {title}

Description:
{description}

Assign a priority (respond with JSON only):"""


class ChatPromptBuilder:
    """Builds prompts for knowledge base chat."""

    SYSTEM_PROMPT = """You are a helpful customer support AI that answers STRICTLY from the provided knowledge base articles.

If you cannot answer the question completely using ONLY the information in the articles:
1. Do not make up or infer information
2. Do not use your general knowledge
3. Politely explain that you will refer them to a live agent

When answering:
1. Be concise but thorough
2. Use bullet points for steps or lists
3. Format the response using markdown
4. Cite the article you are using when relevant"""

    @classmethod
    def build_prompt(cls, question: str, articles: List[KnowledgeArticle]) -> str:
        return f"""Knowledge Base Articles:

{format_articles_for_prompt(articles)}

User Question: {question}"""


class TicketPatternPromptBuilder:
    """Builds prompts for recurring-issue analysis."""

    SYSTEM_PROMPT = """You analyze batches of support tickets to find common patterns and recurring issues.

For each pattern:
1. Describe the issue concisely
2. Assign a relative frequency value from 1 to 10

Limit the answer to the 20 most significant patterns.

Respond ONLY with a JSON array:
[
    {"text": "pattern description", "value": 7}
]"""

    @classmethod
    def build_prompt(cls, tickets_json: str) -> str:
        return f"""Tickets:
{tickets_json}

Identify the patterns (respond with JSON only):"""
