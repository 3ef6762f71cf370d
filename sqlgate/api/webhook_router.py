"""
API router for inbound change-source notifications.

A merged pull request is reconciled immediately instead of waiting for the
next manual sync. The same skip rules apply.
"""

import json
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request

from sqlgate.core.dependencies import ChangeSourceDep, ReconcilerDep
from sqlgate.core.logger import LoggerManager
from sqlgate.schemas.sync import ChangeRequest, WebhookResponse

logger = LoggerManager.get_instance().sync

router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"],
)


@router.post("/github", response_model=WebhookResponse)
async def github_webhook(
    request: Request,
    reconciler: ReconcilerDep,
    source: ChangeSourceDep,
    x_hub_signature_256: Optional[str] = Header(None),
):
    """
    Handle a GitHub pull request event.

    Returns:
        WebhookResponse with the approvers and per-file outcomes, or an
        "ignored" message for events other than a merged close
    """
    payload = await request.body()
    if not source.verify_incoming_signature(payload, x_hub_signature_256):
        logger.warning("Rejected webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        event = json.loads(payload or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    pull_request = event.get("pull_request")
    if not isinstance(pull_request, dict):
        pull_request = {}
    if event.get("action") != "closed" or not pull_request.get("merged"):
        return WebhookResponse(message="Event ignored")

    number = pull_request.get("number")
    if not isinstance(number, int):
        logger.warning("Rejected merged pull request event without a number")
        raise HTTPException(status_code=400, detail="Pull request number missing")

    change_request = ChangeRequest(
        id=number,
        url=pull_request.get("html_url", ""),
        merged_at=pull_request.get("merged_at"),
    )
    logger.info(f"Webhook: processing merged change request #{change_request.id}")

    try:
        result = await reconciler.sync_change_request(change_request)
    except Exception as e:
        logger.error(f"Webhook processing failed for #{change_request.id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process webhook")

    if result.skipped_reason:
        message = f"Change request skipped: {result.skipped_reason}"
    else:
        message = "Change request processed"
    return WebhookResponse(
        message=message,
        change_request_id=change_request.id,
        approvers=result.approvers,
        processed_files=result.processed_files,
    )
