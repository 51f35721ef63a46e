from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from app.dependencies.services import DispatcherDep, ObjectStoreDep
from app.metrics import metrics_registry
from app.metrics.definitions import UPLOAD_FAILURES
from app.notifications.messages import sample_message
from app.notifications.sender import NotificationError
from app.storage.uploads import ObjectStoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["integrations"])


class UploadResponse(BaseModel):
    url: str
    name: str


class SendTestEmailRequest(BaseModel):
    to: str = Field(..., min_length=3)


@router.post("/upload", response_model=UploadResponse, summary="Store a file and return its public URL")
async def upload_file(store: ObjectStoreDep, file: UploadFile | None = File(default=None)) -> UploadResponse:
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    filename = file.filename or "upload"
    data = await file.read()
    try:
        stored = await store.store(data, filename=filename, content_type=file.content_type)
    except ObjectStoreError as exc:
        metrics_registry.counter(UPLOAD_FAILURES).inc()
        logger.exception("Upload of %s failed", filename)
        raise HTTPException(status_code=500, detail="File upload failed") from exc
    return UploadResponse(url=stored.url, name=stored.name)


@router.post("/send-test-email", response_class=PlainTextResponse)
async def send_test_email(payload: SendTestEmailRequest, dispatcher: DispatcherDep) -> str:
    message = sample_message()
    try:
        await dispatcher.sender.send(payload.to, message.subject, message.html)
    except NotificationError as exc:
        logger.exception("Test email to %s failed", payload.to)
        raise HTTPException(status_code=500, detail="Failed to send test email") from exc
    return f"Test email sent to {payload.to}."
