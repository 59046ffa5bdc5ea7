import datetime
import json
import logging
import uuid

from ..api import response
from ..errors import ValidationError
from ..records import Message
from ..store import KeyCondition

logger = logging.getLogger(__name__)

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"


def _format(moment: datetime.datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def post_message(request, store, settings):
    claims = request.claims()
    username = claims.require_display_name()
    payload = request.json("Invalid request body format")
    content = payload.get("content")
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("content is required")

    # createdAt is the sort key; the reply must sort after the question.
    asked_at = datetime.datetime.now(datetime.UTC)
    question = Message(
        message_id=str(uuid.uuid4()),
        user_id=claims.subject_id,
        username=username,
        role=USER_ROLE,
        content=content,
        created_at=_format(asked_at),
    )
    reply = Message(
        message_id=str(uuid.uuid4()),
        user_id=claims.subject_id,
        username=settings.assistant_name,
        role=ASSISTANT_ROLE,
        content=settings.assistant_reply,
        created_at=_format(asked_at + datetime.timedelta(milliseconds=1)),
    )

    for message in (question, reply):
        store.put(settings.messages_table, message.to_item())

    logger.info(
        json.dumps(
            {
                "event": "MessageStored",
                "userId": claims.subject_id,
                "messageId": question.message_id,
                "replyId": reply.message_id,
            }
        )
    )
    return response(201, [question.to_json(), reply.to_json()])


def list_messages(request, store, settings):
    claims = request.claims()
    items = store.query(
        settings.messages_table,
        KeyCondition("userId", claims.subject_id),
        descending=False,
    )
    messages = [Message.from_item(item) for item in items]
    logger.info(
        json.dumps({"event": "MessagesFetched", "userId": claims.subject_id, "count": len(messages)})
    )
    return response(200, [message.to_json() for message in messages])
