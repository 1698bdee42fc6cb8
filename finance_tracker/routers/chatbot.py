# finance_tracker/routers/chatbot.py
# Financial assistant chat endpoint

from fastapi import APIRouter, Depends, HTTPException, status
import logging

from .. import models, schemas
from ..chatbot import APOLOGY_MESSAGE, generate_chat_reply
from ..dependencies import get_current_user, get_chat_client, rate_limit
from ..llm import LLMClient, LLMError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=schemas.ChatbotReply, dependencies=[Depends(rate_limit("default"))])
async def chat(
    request: schemas.ChatbotRequest,
    current_user: models.User = Depends(get_current_user),
    client: LLMClient = Depends(get_chat_client)
):
    """
    Reply to the conversation so far.

    Model failures still answer 200 with an apology so the chat window can show it.
    """
    if not client.is_configured:
        logger.error("Chatbot requested but MISTRAL_API_KEY is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chatbot service not configured"
        )

    try:
        message = generate_chat_reply(request.messages, client)
    except LLMError as e:
        logger.error("Error in chatbot for user %s: %s", current_user.id, e)
        message = APOLOGY_MESSAGE

    return {"message": message}
