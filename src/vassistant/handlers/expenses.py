import datetime
import json
import logging
import uuid

from ..api import response
from ..enrichment import enrich
from ..errors import NotFoundError
from ..records import Expense
from ..store import KeyCondition, user_fetcher

logger = logging.getLogger(__name__)

EXPENSE_CATEGORIES = ["FOOD"]
SPLIT_TYPES = ["PERCENTAGE"]


def _timestamp() -> str:
    now = datetime.datetime.now(datetime.UTC).replace(microsecond=0)
    return now.isoformat().replace("+00:00", "Z")


def list_group_expenses(request, store, settings):
    group_id = request.require("groupId", "Group ID is missing")

    # The index is ordered by dateTime; the store's descending order is
    # returned as-is.
    items = store.query(
        settings.expenses_table,
        KeyCondition("groupId", group_id),
        index_name=settings.expenses_group_index,
        descending=True,
    )
    expenses = [Expense.from_item(item) for item in items]
    enrich(expenses, user_fetcher(store, settings.users_table))

    logger.info(
        json.dumps({"event": "ExpensesFetched", "groupId": group_id, "count": len(expenses)})
    )
    return response(200, [expense.to_json() for expense in expenses])


def get_expense(request, store, settings):
    group_id = request.require("groupId", "Group ID is missing")
    expense_id = request.require("expenseId", "Expense ID is missing")

    item = store.get(settings.expenses_table, {"groupId": group_id, "expenseId": expense_id})
    if not item:
        raise NotFoundError("Expense not found")

    expense = Expense.from_item(item)
    enrich([expense], user_fetcher(store, settings.users_table))
    return response(200, expense.to_json())


def create_expense(request, store, settings):
    claims = request.claims()
    group_id = request.require("groupId", "Group ID is missing")
    expense = Expense.from_payload(request.json())

    expense.expense_id = str(uuid.uuid4())
    expense.group_id = group_id
    expense.created_by = claims.subject_id
    expense.created_at = _timestamp()

    store.put(settings.expenses_table, expense.to_item())

    logger.info(
        json.dumps(
            {
                "event": "ExpenseCreated",
                "expenseId": expense.expense_id,
                "groupId": group_id,
                "createdBy": expense.created_by,
                "participants": len(expense.participants),
            }
        )
    )
    return response(201, expense.to_json())


def list_categories(request, store, settings):
    return response(200, list(EXPENSE_CATEGORIES))


def list_split_types(request, store, settings):
    return response(200, list(SPLIT_TYPES))
