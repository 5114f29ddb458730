"""WebSocket endpoint for live image generation progress.

Protocol:
1. Client connects to ``/ws/images`` (API key in ``x-key`` header or ``key`` query param)
2. Client sends one JSON generate payload (same shape as POST /api/images/generate)
3. Server relays ``{"type": "progress", ...}`` messages as the job advances
4. Server sends ``{"type": "artifact", ...}`` (or ``{"type": "error", ...}``) and closes
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from dreamdeck.api.images import GenerateImageRequest, get_http_client, run_generation
from dreamdeck.services.cancellation import CancelToken
from dreamdeck.services.errors import ConfigurationError, GenerationCancelledError
from dreamdeck.services.progress import QueueSink

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/images")
async def ws_generate_image(ws: WebSocket, client: httpx.AsyncClient = Depends(get_http_client)):
    await ws.accept()
    api_key = ws.headers.get("x-key") or ws.query_params.get("key")

    try:
        payload = await ws.receive_json()
        req = GenerateImageRequest.model_validate(payload)
    except WebSocketDisconnect:
        return
    except (ValidationError, ValueError) as exc:
        await ws.send_json({"type": "error", "detail": str(exc)})
        await ws.close(code=1003)
        return

    sink = QueueSink()
    cancel_token = CancelToken()

    async def _run():
        try:
            return await run_generation(
                req, api_key, http_client=client, progress=sink, cancel_token=cancel_token,
            )
        finally:
            sink.queue.put_nowait(None)

    async def _watch_disconnect():
        while (await ws.receive())["type"] != "websocket.disconnect":
            pass
        logger.info("WS image client disconnected; cancelling generation")
        cancel_token.cancel()

    task = asyncio.create_task(_run())
    watcher = asyncio.create_task(_watch_disconnect())
    try:
        while (event := await sink.queue.get()) is not None:
            await ws.send_json({"type": "progress", **event.model_dump()})

        try:
            result = await task
        except GenerationCancelledError:
            return
        except ConfigurationError as exc:
            await ws.send_json({"type": "error", "detail": str(exc)})
        else:
            await ws.send_json({"type": "artifact", **result.model_dump()})
        await ws.close()
    except WebSocketDisconnect:
        logger.info("WS image client disconnected; cancelling generation")
        cancel_token.cancel()
    except Exception as exc:
        logger.warning("WS image generation error: %s", exc)
        cancel_token.cancel()
        task.cancel()
    finally:
        watcher.cancel()
        for pending in (task, watcher):
            try:
                await pending
            except (asyncio.CancelledError, GenerationCancelledError, ConfigurationError):
                pass
            except Exception as exc:
                logger.debug("WS image task ended with %s", exc)
