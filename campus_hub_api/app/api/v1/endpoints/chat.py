"""
Chat assistant endpoint for API v1.

The completion is relayed as a plain-text stream.  Errors raised
before streaming starts are returned as JSON with the upstream's
status code (500 when the assistant is not configured, 502 when it is
unreachable).
"""

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from campus_hub_api.app.schemas.chat import ChatRequest
from campus_hub_api.app.services.chat_service import ChatError, iter_deltas, open_stream

router = APIRouter()


@router.post("/")
async def chat(request: ChatRequest) -> StreamingResponse:
    messages = [message.model_dump() for message in request.messages]
    try:
        upstream = await run_in_threadpool(open_stream, messages)
    except ChatError as e:
        detail = {"message": e.message}
        if e.details:
            detail["details"] = e.details
        raise HTTPException(status_code=e.status_code, detail=detail) from e
    return StreamingResponse(iter_deltas(upstream), media_type="text/plain; charset=utf-8")
