# finance_tracker/chatbot.py
# Financial assistant chat built on the LLM client

import logging
from typing import Dict, Iterable, List

from .llm import LLMClient
from .sanitize import sanitize_chatbot_response

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Please try again in a moment."
)

SYSTEM_PROMPT = """You are a professional AI Financial Assistant for a personal finance tracking application called PHPinancia. Your role is to provide helpful, accurate, and actionable financial advice to users.

Your expertise includes:
- Personal budgeting and expense management
- Savings strategies and tips
- Debt management and reduction
- Financial goal setting and planning
- Investment basics (general education only)
- Money-saving tips and tricks
- Understanding financial reports and metrics
- Philippine Peso (₱) currency and local financial context

Guidelines:
1. Be friendly, professional, and encouraging
2. Provide specific, actionable advice
3. Use Philippine Peso (₱) for currency examples
4. Keep responses concise but informative (2-4 paragraphs max)
5. Ask clarifying questions when needed
6. Never provide specific investment recommendations or tax advice
7. Always remind users to consult professionals for major financial decisions
8. Focus on practical tips users can implement immediately
9. Use simple language, avoid jargon
10. Be supportive and non-judgmental about financial situations

Remember: You're helping users manage their personal finances better through the PHPinancia app."""


def build_chat_messages(history: Iterable) -> List[Dict[str, str]]:
    """System prompt followed by the user/assistant turns, in order."""
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    for msg in history:
        role = msg["role"] if isinstance(msg, dict) else msg.role
        content = msg["content"] if isinstance(msg, dict) else msg.content
        messages.append({"role": role, "content": content})
    return messages


def generate_chat_reply(history: Iterable, client: LLMClient) -> str:
    """Sanitized assistant reply. Raises LLMError when the model call fails."""
    reply = client.complete(build_chat_messages(history), temperature=0.7, max_tokens=500)
    return sanitize_chatbot_response(reply)
