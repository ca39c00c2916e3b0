# messaging/main.py
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import create_async_engine

from messaging.api import conversations, live, messages
from messaging.config import AppConfig
from messaging.domain.exceptions import MessagingError
from messaging.infrastructure.blob_storage import S3BlobStorage
from messaging.infrastructure.database import create_database
from messaging.infrastructure.event_dispatcher import EventDispatcher
from messaging.infrastructure.event_handlers import EventHandlers
from messaging.infrastructure.presence import PresenceTracker
from messaging.infrastructure.redis_client import RedisClient
from messaging.infrastructure.subscriptions import SubscriptionRegistry


class Application:
    def __init__(self, config: AppConfig):
        self.config = config
        self.logger = self.setup_logger()
        engine = create_async_engine(config.DATABASE_URL, echo=False)
        self.database = create_database(engine)
        self.redis_client = RedisClient(
            config.REDIS_HOST, config.REDIS_PORT, self.logger, db=config.REDIS_DB
        )
        self.subscription_registry = SubscriptionRegistry(self.redis_client, self.logger)
        self.blob_storage = S3BlobStorage(config, self.logger)
        self.presence_tracker = PresenceTracker()
        self.event_dispatcher = EventDispatcher(self.logger)
        self.event_handlers = EventHandlers(self.redis_client)

        self.event_handlers.register_with(self.event_dispatcher)

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        await self.database.connect()
        await self.redis_client.connect()
        yield
        await self.subscription_registry.close()
        await self.database.disconnect()
        await self.redis_client.disconnect()

    def setup_logger(self):
        logger = logging.getLogger("MessagingAPI")
        logger.setLevel(self.config.LOG_LEVEL)

        if not logger.handlers:
            c_handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
            c_handler.setFormatter(formatter)
            logger.addHandler(c_handler)

        return logger

    def create_app(self) -> FastAPI:
        app = FastAPI(
            title=self.config.PROJECT_NAME,
            version=self.config.PROJECT_VERSION,
            description=self.config.PROJECT_DESCRIPTION,
            openapi_url=f"{self.config.API_V1_STR}/openapi.json",
            lifespan=self.lifespan,
        )

        app.state.config = self.config
        app.state.event_dispatcher = self.event_dispatcher
        app.state.database = self.database
        app.state.logger = self.logger
        app.state.subscription_registry = self.subscription_registry
        app.state.blob_storage = self.blob_storage
        app.state.presence_tracker = self.presence_tracker

        app.include_router(
            conversations.router,
            prefix=f"{self.config.API_V1_STR}/conversations",
            tags=["conversations"],
        )
        app.include_router(
            messages.router,
            prefix=f"{self.config.API_V1_STR}/messages",
            tags=["messages"],
        )
        app.include_router(live.router, prefix="/ws", tags=["live"])

        @app.exception_handler(MessagingError)
        async def messaging_exception_handler(request: Request, exc: MessagingError):
            if exc.status_code >= 500:
                self.logger.error(f"{exc.__class__.__name__}: {exc.message} {exc.context}")
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

        @app.exception_handler(Exception)
        async def global_exception_handler(request: Request, exc: Exception):
            self.logger.exception("Unhandled error")
            return JSONResponse(
                status_code=500,
                content={"message": f"An unexpected error occurred: {str(exc)}"},
            )

        return app


def create():
    config = AppConfig()
    application = Application(config)
    app = application.create_app()
    application.logger.info("Application created and configured")

    return app


app = create()


@app.get("/")
async def root():
    return {"message": "Welcome to the Messaging API"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
