# messaging/interactors/attachment_interactor.py
from messaging.config import AppConfig
from messaging.domain.entities import AttachmentKind
from messaging.domain.exceptions import NotFoundError, UnauthorizedError, ValidationFailedError
from messaging.gateways.conversation_gateway import ConversationGateway
from messaging.infrastructure import schemas
from messaging.infrastructure.blob_storage import S3BlobStorage
from messaging.infrastructure.models import utcnow

DEFAULT_MIME_TYPE = "application/octet-stream"


class AttachmentInteractor:
    def __init__(
        self,
        blob_storage: S3BlobStorage,
        conversation_gateway: ConversationGateway,
        config: AppConfig,
    ):
        self.blob_storage = blob_storage
        self.conversation_gateway = conversation_gateway
        self.config = config

    async def upload_attachment(
        self,
        conversation_id: str,
        user_id: str,
        filename: str,
        data: bytes,
        mime_type: str | None,
    ) -> schemas.Attachment:
        if not data:
            raise ValidationFailedError("Attachment is empty", name=filename)
        if len(data) > self.config.MAX_ATTACHMENT_SIZE_BYTES:
            raise ValidationFailedError(
                "Attachment is too large",
                size=len(data),
                max_size=self.config.MAX_ATTACHMENT_SIZE_BYTES,
            )

        conversation = await self.conversation_gateway.get_conversation(conversation_id)
        if not conversation:
            raise NotFoundError("Conversation not found", conversation_id=conversation_id)
        if user_id not in conversation.participant_ids:
            raise UnauthorizedError(
                "Only participants may upload attachments",
                conversation_id=conversation_id,
                user_id=user_id,
            )

        mime_type = mime_type or DEFAULT_MIME_TYPE
        stored = await self.blob_storage.upload(
            conversation_id, filename, data, mime_type, user_id
        )
        return schemas.Attachment(
            id=stored.key.rsplit("/", 1)[-1],
            name=filename,
            type=AttachmentKind.from_mime_type(mime_type),
            size=stored.size,
            url=stored.url,
            mime_type=mime_type,
            uploaded_at=utcnow(),
            uploaded_by=user_id,
        )
