import json
from functools import partial
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from consultant.config import Settings
from consultant.dependencies import Responder, get_avito_client, get_responder, get_settings
from consultant.logging_config import get_logger
from consultant.schemas.avito import ItemContext
from consultant.schemas.webhook import AvitoMessage, WebhookResponse
from consultant.services.avito_service import AvitoClient
from consultant.services.errors import ConsultantError

logger = get_logger("webhook")

router = APIRouter()

MAX_BODY_BYTES = 1024 * 1024


def _is_json_content_type(value: Optional[str]) -> bool:
    media_type = (value or "").split(";", 1)[0].strip().lower()
    return media_type == "application/json"


async def _parse_avito_message(request: Request) -> AvitoMessage:
    if not _is_json_content_type(request.headers.get("content-type")):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Content-Type must be application/json",
        )

    raw = await request.body()
    if len(raw) > MAX_BODY_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Request body too large")

    try:
        payload = json.loads(raw)
    except ValueError as exc:
        logger.warning(
            "Webhook payload is not valid JSON",
            extra={"context": {"error": str(exc), "body_preview": raw[:200].decode("utf-8", "ignore")}},
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad request")

    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad request")

    try:
        message = AvitoMessage.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Webhook payload validation failed", extra={"context": {"error": str(exc)}})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad request")

    if not message.chat_id or not message.author_id:
        logger.info(
            "Invalid message received, skipping processing",
            extra={"context": {"chat_id": message.chat_id, "author_id": message.author_id}},
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid message data")

    return message


async def _load_item_context(avito: AvitoClient, message: AvitoMessage) -> Optional[ItemContext]:
    try:
        return await avito.get_item_context(message.user_id, message.chat_id)
    except ConsultantError as exc:
        logger.error(
            "Failed to get item info",
            extra={"context": {"chat_id": message.chat_id, "error": str(exc)}},
        )
        return None


async def _deliver_reply(avito: AvitoClient, message: AvitoMessage, reply: str) -> None:
    try:
        await avito.send_message(message.user_id, message.chat_id, reply)
        await avito.read_chat(message.user_id, message.chat_id)
    except ConsultantError as exc:
        logger.error(
            "Failed to deliver reply to Avito",
            extra={"context": {"chat_id": message.chat_id, "error": str(exc)}},
        )


@router.post("/webhook", response_model=WebhookResponse)
async def handle_avito_webhook(
    request: Request,
    responder: Responder = Depends(get_responder),
    avito: AvitoClient = Depends(get_avito_client),
    settings: Settings = Depends(get_settings),
):
    """Answer an inbound Avito message with the assistant's reply."""
    message = await _parse_avito_message(request)

    if settings.avito_send_replies and message.is_own_message:
        # our own reply echoed back by Avito
        return WebhookResponse(response=None)

    logger.info(
        "Processing message",
        extra={"context": {"chat_id": message.chat_id, "author_id": message.author_id, "message_id": message.id}},
    )

    try:
        reply = await responder.get_response(message, partial(_load_item_context, avito, message))
    except ConsultantError as exc:
        logger.error(
            "Failed to handle avito message",
            extra={"context": {"chat_id": message.chat_id, "error": str(exc), "error_type": type(exc).__name__}},
        )
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal Server Error")
    except Exception:
        logger.exception("Unexpected error while handling avito message", extra={"context": {"chat_id": message.chat_id}})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal Server Error")

    if settings.avito_send_replies:
        await _deliver_reply(avito, message, reply)

    return WebhookResponse(response=reply)
