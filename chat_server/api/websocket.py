# chat_server/api/websocket.py
import anyio
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from chat_server.api.dependencies import authenticate_token, identity_of
from chat_server.gateways.token_gateway import TokenGateway
from chat_server.gateways.user_gateway import UserGateway
from chat_server.infrastructure.uow import UnitOfWork
from chat_server.realtime.connection import WebSocketConnection
from chat_server.realtime.dispatcher import ConnectionDispatcher

router = APIRouter()


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket, token: str | None = Query(None)):
    """One live session. Frames are ``{"event": name, "data": payload}`` both ways."""
    state = websocket.app.state
    user = None
    if token:
        async with state.database.session() as session:
            uow = UnitOfWork(session)
            user = await authenticate_token(
                token,
                state.security_service,
                UserGateway(session, uow),
                TokenGateway(session, uow),
            )
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    dispatcher = ConnectionDispatcher(
        WebSocketConnection(websocket, identity_of(user)), state.realtime
    )
    state.logger.info(f"Socket opened for {user.username}")
    try:
        await dispatcher.start()
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                await dispatcher.push("error", "Frames must be JSON objects")
                continue
            if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
                await dispatcher.push("error", "Frames must carry an event name")
                continue
            await dispatcher.handle(frame["event"], frame.get("data"))
    except WebSocketDisconnect:
        state.logger.info(f"Socket closed for {user.username}")
    finally:
        # the offline write and broadcast must finish even if this task is cancelled
        with anyio.CancelScope(shield=True):
            await dispatcher.disconnect()
