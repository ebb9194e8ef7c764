"""Chat endpoints."""

from fastapi import APIRouter, Depends

from chatbilling.chat.service import ChatService
from chatbilling.dependencies import get_chat_service, get_current_user_id
from chatbilling.schemas.chat import ChatMessageCreate, ChatMessageOut

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/message", response_model=dict)
async def send_message(
    body: ChatMessageCreate,
    user_id: str = Depends(get_current_user_id),
    chat: ChatService = Depends(get_chat_service),
):
    """Answer a question, consuming one unit of quota."""
    message = await chat.send_message(user_id, body.question)
    return {
        "message": "Response generated successfully",
        "data": ChatMessageOut.model_validate(message),
    }


@router.get("/history", response_model=dict)
async def chat_history(
    user_id: str = Depends(get_current_user_id),
    chat: ChatService = Depends(get_chat_service),
):
    messages = await chat.get_history(user_id)
    return {
        "message": "Chat history retrieved successfully",
        "data": [ChatMessageOut.model_validate(m) for m in messages],
    }
