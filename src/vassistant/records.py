"""Domain records and their store field mappings.

Each record keeps an explicit table of logical field name -> store attribute
name. ``from_item``/``to_item`` are the only places that know how a record is
laid out in DynamoDB; handlers and the enrichment engine work on the
dataclasses. Views attached by enrichment are never written back.
"""

from dataclasses import dataclass, field
from decimal import Decimal, DecimalException, InvalidOperation
from typing import Any, Dict, List, Optional

from boto3.dynamodb.types import DYNAMODB_CONTEXT

from .enrichment import ChildReferences, ReferenceField, ReferenceLayout
from .errors import ValidationError

USER_FIELDS = {
    "user_id": "userId",
    "username": "username",
    "display_name": "showableName",
    "role": "role",
}

PARTICIPANT_FIELDS = {
    "user_id": "userId",
    "share": "share",
}

EXPENSE_FIELDS = {
    "expense_id": "expenseId",
    "group_id": "groupId",
    "title": "title",
    "category": "category",
    "amount": "amount",
    "date_time": "dateTime",
    "paid_by": "paidBy",
    "image_url": "imageUrl",
    "split_type": "splitType",
    "created_by": "createdBy",
    "created_at": "createdAt",
}

GROUP_MEMBER_FIELDS = {
    "user_id": "userId",
    "group_id": "groupId",
    "group_name": "groupName",
}

MESSAGE_FIELDS = {
    "message_id": "id",
    "user_id": "userId",
    "username": "username",
    "role": "role",
    "content": "content",
    "created_at": "createdAt",
}


def _decode(item: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    return {name: item[attr] for name, attr in mapping.items() if item.get(attr) is not None}


def _encode(record, mapping: Dict[str, str]) -> Dict[str, Any]:
    encoded = {}
    for name, attr in mapping.items():
        value = getattr(record, name)
        if value is None or value == "":
            continue
        encoded[attr] = value
    return encoded


def parse_number(value: Any, label: str) -> Optional[Decimal]:
    """Parse a JSON number or numeric string into a ``Decimal``.

    ``None`` and empty strings are treated as absent. Values DynamoDB
    cannot store (more than 38 significant digits, exponent out of range)
    are rejected.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError(f"{label} must be a number")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{label} must be a number") from None
    if not number.is_finite():
        raise ValidationError(f"{label} must be a number")
    try:
        DYNAMODB_CONTEXT.create_decimal(number)
    except DecimalException:
        raise ValidationError(f"{label} must be a number") from None
    return number


@dataclass
class UserView:
    user_id: str = ""
    username: str = ""
    display_name: str = ""
    role: str = ""

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "UserView":
        return cls(**{name: str(value) for name, value in _decode(item, USER_FIELDS).items()})

    def is_empty(self) -> bool:
        return self == UserView()

    def to_json(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "username": self.username,
            "showableName": self.display_name,
            "role": self.role,
        }


@dataclass
class Participant:
    user_id: str = ""
    share: Optional[Decimal] = None
    user: UserView = field(default_factory=UserView)

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Participant":
        return cls(**_decode(item, PARTICIPANT_FIELDS))

    @classmethod
    def from_payload(cls, payload: Any, position: int) -> "Participant":
        if not isinstance(payload, dict):
            raise ValidationError(f"participants[{position}] must be an object")
        user_id = payload.get("userId") or payload.get("user")
        if not user_id or not isinstance(user_id, str):
            raise ValidationError(f"participants[{position}].userId is required")
        share = parse_number(payload.get("share"), f"participants[{position}].share")
        return cls(user_id=user_id, share=share)

    def to_item(self) -> Dict[str, Any]:
        return _encode(self, PARTICIPANT_FIELDS)

    def to_json(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "share": self.share, "user": self.user.to_json()}


@dataclass
class Expense:
    expense_id: str = ""
    group_id: str = ""
    title: str = ""
    category: str = ""
    amount: Optional[Decimal] = None
    date_time: str = ""
    paid_by: str = ""
    image_url: str = ""
    split_type: str = ""
    participants: List[Participant] = field(default_factory=list)
    created_by: str = ""
    created_at: str = ""
    paid_by_user: UserView = field(default_factory=UserView)
    created_by_user: UserView = field(default_factory=UserView)

    references = ReferenceLayout(
        fields=(
            ReferenceField("paid_by", "paid_by_user"),
            ReferenceField("created_by", "created_by_user"),
        ),
        children=(ChildReferences("participants", (ReferenceField("user_id", "user"),)),),
        empty=UserView,
    )

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Expense":
        participants = [Participant.from_item(entry) for entry in item.get("participants") or []]
        return cls(participants=participants, **_decode(item, EXPENSE_FIELDS))

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Expense":
        """Build an unsaved expense from a request body.

        Identity and audit fields are not read from the body; the caller
        assigns them.
        """
        text_fields = {
            "title": "title",
            "category": "category",
            "date_time": "dateTime",
            "paid_by": "paidBy",
            "image_url": "imageUrl",
            "split_type": "splitType",
        }
        values = {}
        for name, key in text_fields.items():
            value = payload.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValidationError(f"{key} must be a string")
            values[name] = value.strip()
        if not values.get("paid_by"):
            raise ValidationError("paidBy is required")

        raw_participants = payload.get("participants") or []
        if not isinstance(raw_participants, list):
            raise ValidationError("participants must be a list")
        participants = [
            Participant.from_payload(entry, position)
            for position, entry in enumerate(raw_participants)
        ]
        amount = parse_number(payload.get("amount"), "amount")
        return cls(amount=amount, participants=participants, **values)

    def to_item(self) -> Dict[str, Any]:
        item = _encode(self, EXPENSE_FIELDS)
        item["participants"] = [participant.to_item() for participant in self.participants]
        return item

    def to_json(self) -> Dict[str, Any]:
        return {
            "expenseId": self.expense_id,
            "groupId": self.group_id,
            "title": self.title,
            "category": self.category,
            "amount": self.amount,
            "dateTime": self.date_time,
            "paidBy": self.paid_by,
            "paidByUser": self.paid_by_user.to_json(),
            "imageUrl": self.image_url,
            "splitType": self.split_type,
            "participants": [participant.to_json() for participant in self.participants],
            "createdBy": self.created_by,
            "createdByUser": self.created_by_user.to_json(),
            "createdAt": self.created_at,
        }


@dataclass
class GroupMember:
    user_id: str = ""
    group_id: str = ""
    group_name: str = ""
    user: UserView = field(default_factory=UserView)

    references = ReferenceLayout(fields=(ReferenceField("user_id", "user"),), empty=UserView)

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "GroupMember":
        return cls(**_decode(item, GROUP_MEMBER_FIELDS))

    def to_json(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "groupId": self.group_id, "groupName": self.group_name}


@dataclass
class Message:
    message_id: str = ""
    user_id: str = ""
    username: str = ""
    role: str = ""
    content: str = ""
    created_at: str = ""

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Message":
        return cls(**_decode(item, MESSAGE_FIELDS))

    def to_item(self) -> Dict[str, Any]:
        return _encode(self, MESSAGE_FIELDS)

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.message_id,
            "userId": self.user_id,
            "username": self.username,
            "role": self.role,
            "content": self.content,
            "createdAt": self.created_at,
        }

