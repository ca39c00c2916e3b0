# messaging/api/live.py
import asyncio
import logging
from functools import partial

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel

from messaging.api.dependencies import (
    get_config,
    get_database,
    get_event_dispatcher,
    get_live_query_interactor,
    get_logger,
    get_presence_tracker,
)
from messaging.config import AppConfig
from messaging.domain.exceptions import NotFoundError, UnauthorizedError
from messaging.gateways.conversation_gateway import ConversationGateway
from messaging.gateways.typing_gateway import TypingGateway
from messaging.infrastructure.database import Database
from messaging.infrastructure.event_dispatcher import EventDispatcher
from messaging.infrastructure.presence import PresenceTracker
from messaging.infrastructure.uow import UnitOfWork
from messaging.interactors.conversation_interactor import ConversationInteractor
from messaging.interactors.live_query_interactor import LiveQueryInteractor
from messaging.interactors.typing_interactor import TypingInteractor

router = APIRouter()


def snapshot_sender(websocket: WebSocket):
    async def send(items: list[BaseModel]):
        await websocket.send_json([item.model_dump(mode="json") for item in items])

    return send


async def drain(websocket: WebSocket) -> None:
    # feeds are push only, incoming frames are read to notice the disconnect
    while True:
        await websocket.receive_text()


@router.websocket("/conversations")
async def conversation_feed(
    websocket: WebSocket,
    user_id: str = Query(..., min_length=1),
    live: LiveQueryInteractor = Depends(get_live_query_interactor),
    database: Database = Depends(get_database),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
    presence: PresenceTracker = Depends(get_presence_tracker),
):
    """The user's conversation list; the user is online while any such feed is open."""
    await websocket.accept()
    write_presence = partial(set_presence, database, event_dispatcher, user_id)
    presence.connect(user_id, websocket)
    unsubscribe = None
    try:
        await presence.sync(user_id, write_presence)
        unsubscribe = await live.subscribe_to_conversations(user_id, snapshot_sender(websocket))
        await drain(websocket)
    except WebSocketDisconnect:
        pass
    finally:
        presence.disconnect(user_id, websocket)
        if unsubscribe:
            await unsubscribe()
        await presence.sync(user_id, write_presence)


@router.websocket("/conversations/{conversation_id}/messages")
async def message_feed(
    websocket: WebSocket,
    conversation_id: str,
    live: LiveQueryInteractor = Depends(get_live_query_interactor),
):
    await websocket.accept()
    unsubscribe = await live.subscribe_to_messages(conversation_id, snapshot_sender(websocket))
    try:
        await drain(websocket)
    except WebSocketDisconnect:
        pass
    finally:
        await unsubscribe()


@router.websocket("/conversations/{conversation_id}/typing")
async def typing_feed(
    websocket: WebSocket,
    conversation_id: str,
    user_id: str = Query(..., min_length=1),
    user_name: str = Query(..., min_length=1),
    live: LiveQueryInteractor = Depends(get_live_query_interactor),
    database: Database = Depends(get_database),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
    config: AppConfig = Depends(get_config),
    logger: logging.Logger = Depends(get_logger),
):
    """Typing indicators of the other participants, plus this user's input.

    Any text frame counts as a keystroke. The indicator is cleared after
    ``TYPING_INACTIVITY_SECONDS`` without input and when the socket closes.
    """
    await websocket.accept()
    unsubscribe = await live.subscribe_to_typing(
        conversation_id, user_id, snapshot_sender(websocket)
    )
    typing = False
    try:
        while True:
            try:
                frame = await asyncio.wait_for(
                    websocket.receive_text(), timeout=config.TYPING_INACTIVITY_SECONDS
                )
            except asyncio.TimeoutError:
                if typing:
                    typing = False
                    await set_typing(
                        database, event_dispatcher, conversation_id, user_id, user_name, False
                    )
                continue
            is_typing = frame.strip().lower() != "stop"
            if is_typing or typing:
                await set_typing(
                    database, event_dispatcher, conversation_id, user_id, user_name, is_typing
                )
                typing = is_typing
    except WebSocketDisconnect:
        logger.debug(f"Typing feed closed for {user_id} in {conversation_id}")
    except (NotFoundError, UnauthorizedError) as e:
        logger.warning(f"Typing feed refused for {user_id} in {conversation_id}: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
    finally:
        await unsubscribe()
        if typing:
            await set_typing(
                database, event_dispatcher, conversation_id, user_id, user_name, False
            )


async def set_typing(
    database: Database,
    event_dispatcher: EventDispatcher,
    conversation_id: str,
    user_id: str,
    user_name: str,
    is_typing: bool,
) -> None:
    async with database.session() as session:
        uow = UnitOfWork(session)
        interactor = TypingInteractor(uow, TypingGateway(session, uow), event_dispatcher)
        await interactor.set_typing(conversation_id, user_id, user_name, is_typing)


async def set_presence(
    database: Database, event_dispatcher: EventDispatcher, user_id: str, is_online: bool
) -> None:
    async with database.session() as session:
        uow = UnitOfWork(session)
        interactor = ConversationInteractor(
            uow, ConversationGateway(session, uow), event_dispatcher
        )
        await interactor.set_presence(user_id, is_online)
