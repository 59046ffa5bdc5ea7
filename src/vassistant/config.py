import os
from dataclasses import dataclass

DEFAULT_ASSISTANT_REPLY = "This is a mock response from the assistant."


@dataclass(frozen=True)
class Settings:
    expenses_table: str = "splitter-expenses"
    expenses_group_index: str = "groupId-dateTime-index"
    group_members_table: str = "splitter-group-members"
    group_members_group_index: str = "groupId-index"
    users_table: str = "vassistant-users"
    messages_table: str = "chat"
    api_prefix: str = ""
    log_level: str = "INFO"
    version: str = "0.0.0"
    env: str = "qa"
    region: str = "unknown"
    assistant_name: str = "ai-assistant"
    assistant_reply: str = DEFAULT_ASSISTANT_REPLY

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            expenses_table=os.getenv("EXPENSES_TABLE", cls.expenses_table),
            expenses_group_index=os.getenv("EXPENSES_GROUP_INDEX", cls.expenses_group_index),
            group_members_table=os.getenv("GROUP_MEMBERS_TABLE", cls.group_members_table),
            group_members_group_index=os.getenv(
                "GROUP_MEMBERS_GROUP_INDEX", cls.group_members_group_index
            ),
            users_table=os.getenv("USERS_TABLE", cls.users_table),
            messages_table=os.getenv("MESSAGES_TABLE", cls.messages_table),
            api_prefix=os.getenv("API_PREFIX", cls.api_prefix).rstrip("/"),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            version=os.getenv("APP_VERSION", cls.version),
            env=os.getenv("APP_ENV", cls.env),
            region=os.getenv("AWS_REGION", cls.region),
            assistant_name=os.getenv("ASSISTANT_NAME", cls.assistant_name),
            assistant_reply=os.getenv("ASSISTANT_REPLY", cls.assistant_reply),
        )
