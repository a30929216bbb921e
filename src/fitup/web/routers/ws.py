"""WebSocket endpoint for realtime messaging."""

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from ...exceptions import FitUpError, UnauthenticatedError
from ...realtime.events import PONG, conversation_id_from_channel, parse_client_frame

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

POLICY_VIOLATION = 1008


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = Query("")):
    app = websocket.app
    try:
        user = app.state.tokens.authenticate(token)
    except UnauthenticatedError as e:
        await websocket.close(code=POLICY_VIOLATION, reason=e.message)
        return

    services = app.state.services
    read_timeout = app.state.settings.ws_read_timeout
    await websocket.accept()
    connection = await services.hub.connect(user.user_id, websocket)

    try:
        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_json(), read_timeout)
            except asyncio.TimeoutError:
                logger.info("Closing idle socket for user %s", user.user_id)
                break
            except ValueError:
                await services.realtime.send_error(user.user_id, None, "malformed frame")
                continue

            frame = parse_client_frame(data)
            if frame.kind == "ping":
                connection.enqueue(PONG)
            elif frame.kind in ("subscribe", "unsubscribe"):
                conversation_id = conversation_id_from_channel(frame.channel)
                if conversation_id is None:
                    await services.realtime.send_error(user.user_id, None, f"unknown channel {frame.channel}")
                    continue
                try:
                    if frame.kind == "subscribe":
                        await services.realtime.subscribe(user.user_id, conversation_id)
                    else:
                        await services.realtime.unsubscribe(user.user_id, conversation_id)
                except FitUpError as e:
                    await services.realtime.send_error(user.user_id, conversation_id, e.message)
            else:
                await services.realtime.send_error(user.user_id, None, "unsupported frame")
    except WebSocketDisconnect:
        pass
    finally:
        await services.hub.disconnect(user.user_id, connection)
