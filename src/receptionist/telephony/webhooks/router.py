"""
FastAPI router for provider webhook endpoints.

Key constraints:
- Every request is signature-checked before anything else (403, zero writes)
- After auth the provider always gets its success response, so it never
  retries a callback because of our own failures
- Handlers are built per request from overridable dependencies
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from receptionist.config import Settings, get_settings
from receptionist.consent.ledger import ConsentLedger
from receptionist.messaging.factory import get_messaging_provider
from receptionist.messaging.interface import MessagingProvider
from receptionist.outreach.config import OutreachConfig, get_outreach_config
from receptionist.outreach.dispatcher import OutreachDispatcher
from receptionist.outreach.repository import OutreachEventRepository
from receptionist.outreach.senders import SmsSender, WhatsAppSender
from receptionist.shared.database import get_db_session
from receptionist.shared.logging import get_logger
from receptionist.telephony.config import TelephonyConfig, get_telephony_config
from receptionist.telephony.signature import (
    INTERNAL_SECRET_HEADER,
    ORIGINAL_URL_HEADER,
    SIGNATURE_HEADER,
    verify_internal_secret,
    verify_signature,
)
from receptionist.telephony.webhooks.handler import (
    CallStatusHandler,
    SmsReplyHandler,
    SmsStatusHandler,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks/telephony", tags=["webhooks"])

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'


def signed_url(request: Request, config: TelephonyConfig) -> str:
    """URL the provider signed for this request.

    A trusted internal forwarder may name it explicitly; otherwise it is the
    configured public base URL plus path and query, or the request URL.
    """
    original = request.headers.get(ORIGINAL_URL_HEADER)
    if original and verify_internal_secret(
        request.headers.get(INTERNAL_SECRET_HEADER),
        config.internal_webhook_secret,
    ):
        return original

    public = config.get_webhook_url(request.url.path, request.url.query)
    return public or str(request.url)


async def verify_provider_request(
    request: Request,
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, str]:
    """Authenticate a webhook and return its form parameters.

    Raises:
        HTTPException: 403 when the signature is missing or invalid.
    """
    form = await request.form()
    params = {key: str(value) for key, value in form.items()}

    if config.allow_insecure_webhooks and not settings.is_production:
        logger.warning(
            "Webhook signature check bypassed (insecure mode)",
            extra={"path": request.url.path},
        )
        return params

    url = signed_url(request, config)
    if not verify_signature(
        url,
        params,
        request.headers.get(SIGNATURE_HEADER),
        config.twilio_auth_token,
    ):
        logger.warning(
            "Rejected webhook with invalid signature",
            extra={"path": request.url.path, "signed_url": url},
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")

    return params


ProviderParams = Annotated[dict[str, str], Depends(verify_provider_request)]


def get_outreach_dispatcher(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    provider: Annotated[MessagingProvider, Depends(get_messaging_provider)],
    config: Annotated[OutreachConfig, Depends(get_outreach_config)],
) -> OutreachDispatcher:
    repository = OutreachEventRepository(session)
    return OutreachDispatcher(
        whatsapp=WhatsAppSender(provider, repository, config),
        sms=SmsSender(provider, repository, config),
        repository=repository,
        config=config,
        ledger=ConsentLedger(session),
    )


def get_call_status_handler(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    dispatcher: Annotated[OutreachDispatcher, Depends(get_outreach_dispatcher)],
) -> CallStatusHandler:
    return CallStatusHandler(session, dispatcher)


def get_sms_status_handler(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SmsStatusHandler:
    return SmsStatusHandler(session)


def get_sms_reply_handler(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SmsReplyHandler:
    return SmsReplyHandler(session)


@router.post("/call-status", response_class=PlainTextResponse)
async def call_status(
    params: ProviderParams,
    handler: Annotated[CallStatusHandler, Depends(get_call_status_handler)],
) -> PlainTextResponse:
    try:
        await handler.handle(params)
    except Exception:
        logger.exception("Failed to process call status (ACKing 200 to provider)")
    return PlainTextResponse("ok")


@router.post("/sms-status")
async def sms_status(
    params: ProviderParams,
    handler: Annotated[SmsStatusHandler, Depends(get_sms_status_handler)],
) -> JSONResponse:
    try:
        await handler.handle(params)
    except Exception:
        logger.exception("Failed to process message status (ACKing 200 to provider)")
    return JSONResponse({"success": True})


@router.post("/sms-reply")
async def sms_reply(
    params: ProviderParams,
    handler: Annotated[SmsReplyHandler, Depends(get_sms_reply_handler)],
) -> Response:
    try:
        await handler.handle(params)
    except Exception:
        logger.exception("Failed to process inbound message (returning empty TwiML)")
    return Response(content=EMPTY_TWIML, media_type="text/xml")
