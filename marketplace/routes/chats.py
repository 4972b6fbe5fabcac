# marketplace/routes/chats.py
import hashlib
import json
import logging
from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from marketplace.core.config import Settings, get_settings
from marketplace.dependencies import (
    get_chat_service,
    get_checkout_notifier,
    get_current_user,
    require_admin,
)
from marketplace.models.user import User
from marketplace.schemas.chat import (
    ChatMessageRead,
    ClearCacheResponse,
    CreateThreadRequest,
    CreateThreadResponse,
    MarkReadRequest,
    MarkReadResponse,
    SendMessageRequest,
    ThreadDetailResponse,
    ThreadRef,
    ThreadSummaryRead,
    UnreadCountResponse,
)
from marketplace.schemas.checkout import CheckoutRequest, CheckoutResponse
from marketplace.services.chat_service import ChatService
from marketplace.services.checkout_notifier import CheckoutNotifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chats", tags=["chats"])


def _etag_for(payload: dict) -> str:
    body = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()
    return f'"{hashlib.md5(body).hexdigest()}"'


@router.post("/checkout", response_model=CheckoutResponse, response_model_exclude_none=True)
async def checkout_chat(
    payload: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    notifier: CheckoutNotifier = Depends(get_checkout_notifier),
):
    """Reserve the selected cart lines and message each seller"""
    logger.info(f"Checkout requested by {current_user.id} for buyer {payload.buyer_id}")
    outcome = await notifier.checkout(payload.buyer_id, payload.cart_items, payload.attempt_id)
    return CheckoutResponse.from_outcome(outcome)


@router.get("/optimized")
async def list_threads_optimized(
    request: Request,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
    settings: Settings = Depends(get_settings),
):
    """
    Conversation list with last message, unread counts and counterpart names.

    The client may cache the response briefly and revalidate with
    If-None-Match.
    """
    result = await chat_service.list_threads_for_user(current_user.id)
    payload = result.model_dump(by_alias=True, mode="json")

    etag = _etag_for(payload)
    headers = {
        "Cache-Control": f"private, max-age={settings.CHAT_LIST_MAX_AGE_SECONDS}",
        "ETag": etag,
    }
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)

    return JSONResponse(content=payload, headers=headers)


@router.get("", response_model=List[ThreadRef])
async def list_threads(
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    return await chat_service.list_thread_refs(current_user.id)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    total = await chat_service.unread_count(current_user.id)
    return UnreadCountResponse(unread_count=total)


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_read(
    payload: MarkReadRequest,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    updated = await chat_service.mark_read(payload.thread_id, payload.message_ids, current_user.id)
    return MarkReadResponse(success=True, updated=updated)


@router.post("/clear-cache", response_model=ClearCacheResponse)
async def clear_cache(
    admin: User = Depends(require_admin),
    chat_service: ChatService = Depends(get_chat_service),
):
    cleared = chat_service.clear_name_cache()
    logger.info(f"Admin {admin.id} cleared the name cache")
    return ClearCacheResponse(success=True, cleared=cleared)


@router.post("/create", response_model=CreateThreadResponse)
async def create_thread(
    payload: CreateThreadRequest,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    return await chat_service.open_thread(current_user.id, payload.other_user_id)


@router.get("/thread/{thread_id}/summary", response_model=ThreadSummaryRead)
async def get_thread_summary(
    thread_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    return await chat_service.get_thread_summary(thread_id, current_user.id)


@router.get("/thread/{thread_id}", response_model=ThreadDetailResponse)
async def get_thread_detail(
    thread_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    return await chat_service.get_thread_detail(thread_id, current_user.id)


@router.get("/{thread_id}", response_model=List[ChatMessageRead])
async def get_thread_messages(
    thread_id: str,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    return await chat_service.get_thread_messages(thread_id, current_user.id)


@router.post("/{thread_id}/messages", response_model=ChatMessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    thread_id: str,
    payload: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
):
    return await chat_service.send_message(thread_id, current_user.id, payload.content)
