"""Chat API routes."""

import asyncio
import json

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from coderelay.api import session_store
from coderelay.api.schemas import ChatRequest, SuccessResponse
from coderelay.api.session_store import get_session
from coderelay.engine.session import ChatSession
from coderelay.utils.logging import logger

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("")
async def send_message(request: ChatRequest):
    """
    Send a message and stream the turn back as server-sent events.
    Each event is one notification; the stream ends with [DONE].
    """
    logger.info(f"Received message: {request.message[:50]}...")

    try:
        session = get_session()
        queue = session_store.sink.subscribe()
    except Exception as e:
        import traceback
        error_detail = f"{type(e).__name__}: {str(e)}"
        logger.error(f"Chat error: {error_detail}")
        logger.error(traceback.format_exc())
        raise HTTPException(status_code=500, detail=error_detail)

    return StreamingResponse(
        _stream_response(session, queue, request.message, request.model),
        media_type="text/event-stream",
    )


async def _stream_response(
    session: ChatSession, queue: asyncio.Queue, message: str, model: str | None
):
    """Run the turn in the background and relay its notifications as SSE."""
    task = asyncio.create_task(session.send_message(message, model))
    try:
        while True:
            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter in done:
                yield f"data: {json.dumps(getter.result().to_dict())}\n\n"
                continue
            getter.cancel()
            break

        while not queue.empty():
            yield f"data: {json.dumps(queue.get_nowait().to_dict())}\n\n"

        request_id = task.result()
        yield f"data: {json.dumps({'type': 'done', 'request_id': request_id})}\n\n"
        yield "data: [DONE]\n\n"
    finally:
        session_store.sink.unsubscribe(queue)
        if not task.done():
            task.cancel()


@router.post("/clear", response_model=SuccessResponse)
async def clear_chat() -> SuccessResponse:
    """Clear conversation history and every pending recommendation."""
    get_session().clear_chat()
    return SuccessResponse(success=True, message="Chat cleared")


@router.get("/history")
async def get_history():
    """Conversation transcript (for debugging/transparency)."""
    return {"history": get_session().history}
