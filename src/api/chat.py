"""Streaming chat endpoint.

Answers are delivered as Server-Sent Events. The pipeline runs as its own
task writing into an EventSink; the response body drains the sink.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from src.api.dependencies import AppServices, get_services
from src.models.schemas import ChatRequest
from src.streaming import EventSink, encode_sse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


async def _event_stream(
    services: AppServices,
    request: ChatRequest,
) -> AsyncGenerator[str]:
    """Run the pipeline and yield its events as SSE frames.

    Closing the generator (client disconnect) cancels the pipeline task.
    """
    sink = EventSink()
    task = asyncio.create_task(
        services.rag.ask(
            request.question,
            sink,
            document_ids=request.document_ids,
            limit=request.limit,
        )
    )
    try:
        async for event in sink:
            yield encode_sse(event)
    finally:
        if not task.done():
            logger.info("Client disconnected, cancelling answer generation")
            task.cancel()


@router.post("/stream")
async def chat_stream(
    request: ChatRequest,
    services: AppServices = Depends(get_services),
) -> StreamingResponse:
    """Stream an answer to a question.

    Args:
        request: Question, selected document ids and retrieval limit.

    Returns:
        ``text/event-stream`` of ``data: {json}`` frames ending with a
        ``done`` or ``error`` event.
    """
    logger.info(
        f"Chat request: {len(request.question)} chars, {len(request.document_ids)} document(s)"
    )
    return StreamingResponse(
        _event_stream(services, request),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
