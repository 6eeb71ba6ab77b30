"""Gateway HTTP API.

- run a chat turn synchronously and return the replies
- queue a message for the background orchestrator
- read a session's message log
- websocket for live viewers (one persona slot, or the "god" event stream)
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.status import HTTP_401_UNAUTHORIZED, WS_1008_POLICY_VIOLATION

from huddle.agent.orchestrator import Orchestrator
from huddle.bus import ChatMode, InboundMessage, MessageBus
from huddle.notify import GENERIC_FAILURE, ConnectionHub
from huddle.storage import HuddleStore
from huddle.utils.helpers import normalize_session_id

TURN_TIMEOUT_SECONDS = 600.0


def _require_token(token: str):
    def _dep(request: Request) -> None:
        if not token:
            return
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        provided = auth_header[len("Bearer ") :].strip()
        if not provided or provided != token:
            raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    return _dep


def _parse_inbound(body: dict[str, Any], default_persona: str) -> InboundMessage:
    message = str(body.get("message", "")).strip()
    if not message:
        raise HTTPException(status_code=400, detail="message is required")
    sender = str(body.get("senderId", body.get("createdBy", ""))).strip()
    if not sender:
        raise HTTPException(status_code=400, detail="senderId is required")
    raw_mode = str(body.get("chatMode", ChatMode.RECURSIVE.value)).strip().lower()
    try:
        mode = ChatMode(raw_mode)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown chatMode: {raw_mode}") from None
    return InboundMessage(
        session_id=normalize_session_id(body.get("sessionId")),
        sender_id=sender,
        persona_id=str(body.get("characterId") or default_persona),
        body=message,
        chat_mode=mode,
        sender_wallet=body.get("sendersWalletAddress") or None,
    )


def create_gateway_app(
    orchestrator: Orchestrator,
    store: HuddleStore,
    hub: ConnectionHub,
    token: str,
    bus: MessageBus | None = None,
) -> FastAPI:
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    require = _require_token(token)
    default_persona = orchestrator.personas.default.name

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({"ok": True, "personas": orchestrator.personas.names})

    @app.post("/chat/turn", dependencies=[Depends(require)])
    async def chat_turn(body: dict[str, Any]) -> JSONResponse:
        """Run one inbound message (and its hand-offs) and return every reply."""
        inbound = _parse_inbound(body, default_persona)
        try:
            replies = await asyncio.wait_for(orchestrator.handle(inbound), timeout=TURN_TIMEOUT_SECONDS)
        except asyncio.TimeoutError as exc:
            raise HTTPException(status_code=504, detail="Chat turn timed out") from exc
        except Exception as exc:
            logger.error(f"Chat turn failed for {inbound.session_id}: {exc}")
            raise HTTPException(status_code=500, detail=GENERIC_FAILURE) from exc

        return JSONResponse(
            {
                "ok": True,
                "sessionId": inbound.session_id,
                "replies": [
                    {"characterId": r.persona, "message": r.body, "depth": r.depth}
                    for r in replies
                ],
            }
        )

    @app.post("/chat/send", dependencies=[Depends(require)])
    async def chat_send(body: dict[str, Any]) -> JSONResponse:
        """Queue a message; replies arrive over the websocket."""
        if bus is None:
            raise HTTPException(status_code=503, detail="No message bus configured")
        inbound = _parse_inbound(body, default_persona)
        await bus.publish_inbound(inbound)
        return JSONResponse({"ok": True, "sessionId": inbound.session_id, "queued": True}, status_code=202)

    @app.get("/sessions/{session_id}/messages", dependencies=[Depends(require)])
    async def session_messages(session_id: str, limit: int = 50) -> JSONResponse:
        session_id = normalize_session_id(session_id)
        messages = await store.history(session_id, limit=max(1, min(limit, 500)))
        return JSONResponse(
            {
                "sessionId": session_id,
                "messages": [
                    {
                        "author": m.author,
                        "message": m.body,
                        "createdAt": m.created_at,
                        "characterId": m.character_id,
                    }
                    for m in messages
                ],
            }
        )

    @app.websocket("/ws")
    async def viewer(websocket: WebSocket) -> None:
        if token and websocket.query_params.get("token") != token:
            await websocket.close(code=WS_1008_POLICY_VIOLATION)
            return
        session_id = normalize_session_id(websocket.query_params.get("sessionId"))
        persona = websocket.query_params.get("characterId") or default_persona

        await websocket.accept()
        conn_id = await hub.register(session_id, persona, websocket.send_text)
        try:
            while True:
                # Viewers only listen; anything they send is ignored.
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            await hub.unregister(session_id, persona, conn_id)

    return app
