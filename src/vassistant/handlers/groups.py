import json
import logging

from ..api import response
from ..enrichment import enrich
from ..errors import NotFoundError
from ..records import GroupMember
from ..store import KeyCondition, user_fetcher

logger = logging.getLogger(__name__)


def list_groups(request, store, settings):
    claims = request.claims()
    items = store.query(
        settings.group_members_table,
        KeyCondition("userId", claims.subject_id),
        projection=("userId", "groupId", "groupName"),
    )
    groups = [GroupMember.from_item(item) for item in items]
    logger.info(
        json.dumps({"event": "GroupsFetched", "userId": claims.subject_id, "count": len(groups)})
    )
    return response(200, [group.to_json() for group in groups])


def get_group(request, store, settings):
    claims = request.claims()
    group_id = request.require("groupId", "Group ID is missing")

    item = store.get(settings.group_members_table, {"userId": claims.subject_id, "groupId": group_id})
    if not item:
        raise NotFoundError("Group not found")
    return response(200, GroupMember.from_item(item).to_json())


def list_group_users(request, store, settings):
    """Users of a group, in membership order.

    Members whose user record cannot be resolved are left out of the list.
    """
    group_id = request.require("groupId", "Group ID is missing")
    items = store.query(
        settings.group_members_table,
        KeyCondition("groupId", group_id),
        index_name=settings.group_members_group_index,
        projection=("userId", "groupId"),
    )
    members = [GroupMember.from_item(item) for item in items]
    enrich(members, user_fetcher(store, settings.users_table))

    users = []
    seen = set()
    for member in members:
        if member.user.is_empty() or member.user_id in seen:
            continue
        seen.add(member.user_id)
        users.append(member.user.to_json())

    logger.info(
        json.dumps(
            {
                "event": "GroupUsersFetched",
                "groupId": group_id,
                "members": len(members),
                "users": len(users),
            }
        )
    )
    return response(200, users)
