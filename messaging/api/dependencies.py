# messaging/api/dependencies.py
import logging
from typing import AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from messaging.config import AppConfig
from messaging.gateways.conversation_gateway import ConversationGateway
from messaging.gateways.message_gateway import MessageGateway
from messaging.gateways.notification_gateway import NotificationGateway
from messaging.gateways.typing_gateway import TypingGateway
from messaging.infrastructure.blob_storage import S3BlobStorage
from messaging.infrastructure.database import Database
from messaging.infrastructure.event_dispatcher import EventDispatcher
from messaging.infrastructure.presence import PresenceTracker
from messaging.infrastructure.subscriptions import SubscriptionRegistry
from messaging.infrastructure.uow import UnitOfWork
from messaging.interactors.attachment_interactor import AttachmentInteractor
from messaging.interactors.conversation_interactor import ConversationInteractor
from messaging.interactors.fanout_interactor import FanoutInteractor
from messaging.interactors.live_query_interactor import LiveQueryInteractor
from messaging.interactors.message_interactor import MessageInteractor
from messaging.interactors.notification_interactor import NotificationInteractor
from messaging.interactors.typing_interactor import TypingInteractor


def get_config(connection: HTTPConnection) -> AppConfig:
    return connection.app.state.config


def get_logger(connection: HTTPConnection) -> logging.Logger:
    return connection.app.state.logger


def get_database(connection: HTTPConnection) -> Database:
    return connection.app.state.database


def get_event_dispatcher(connection: HTTPConnection) -> EventDispatcher:
    return connection.app.state.event_dispatcher


def get_subscription_registry(connection: HTTPConnection) -> SubscriptionRegistry:
    return connection.app.state.subscription_registry


def get_blob_storage(connection: HTTPConnection) -> S3BlobStorage:
    return connection.app.state.blob_storage


def get_presence_tracker(connection: HTTPConnection) -> PresenceTracker:
    return connection.app.state.presence_tracker


async def get_session(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_uow(session: AsyncSession = Depends(get_session)) -> UnitOfWork:
    return UnitOfWork(session)


async def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    # identity is established upstream, the header carries the opaque user id
    if not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user id"
        )
    return x_user_id


async def get_conversation_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return ConversationGateway(session, uow)


async def get_message_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return MessageGateway(session, uow)


async def get_notification_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return NotificationGateway(session, uow)


async def get_typing_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return TypingGateway(session, uow)


async def get_conversation_interactor(
    uow: UnitOfWork = Depends(get_uow),
    conversation_gateway: ConversationGateway = Depends(get_conversation_gateway),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    return ConversationInteractor(uow, conversation_gateway, event_dispatcher)


async def get_message_interactor(
    uow: UnitOfWork = Depends(get_uow),
    message_gateway: MessageGateway = Depends(get_message_gateway),
    conversation_gateway: ConversationGateway = Depends(get_conversation_gateway),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
    config: AppConfig = Depends(get_config),
):
    return MessageInteractor(
        uow, message_gateway, conversation_gateway, event_dispatcher, config
    )


async def get_notification_interactor(
    uow: UnitOfWork = Depends(get_uow),
    notification_gateway: NotificationGateway = Depends(get_notification_gateway),
    config: AppConfig = Depends(get_config),
):
    return NotificationInteractor(uow, notification_gateway, config.NOTIFICATION_BODY_LENGTH)


async def get_fanout_interactor(
    uow: UnitOfWork = Depends(get_uow),
    conversation_gateway: ConversationGateway = Depends(get_conversation_gateway),
    message_gateway: MessageGateway = Depends(get_message_gateway),
    notification_interactor: NotificationInteractor = Depends(get_notification_interactor),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
    config: AppConfig = Depends(get_config),
    logger: logging.Logger = Depends(get_logger),
):
    return FanoutInteractor(
        uow,
        conversation_gateway,
        message_gateway,
        notification_interactor,
        event_dispatcher,
        config,
        logger,
    )


async def get_typing_interactor(
    uow: UnitOfWork = Depends(get_uow),
    typing_gateway: TypingGateway = Depends(get_typing_gateway),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    return TypingInteractor(uow, typing_gateway, event_dispatcher)


async def get_attachment_interactor(
    blob_storage: S3BlobStorage = Depends(get_blob_storage),
    conversation_gateway: ConversationGateway = Depends(get_conversation_gateway),
    config: AppConfig = Depends(get_config),
):
    return AttachmentInteractor(blob_storage, conversation_gateway, config)


async def get_live_query_interactor(
    database: Database = Depends(get_database),
    registry: SubscriptionRegistry = Depends(get_subscription_registry),
):
    return LiveQueryInteractor(database, registry)
