import json
import logging
from functools import partial

from .api import Request, error_response
from .config import Settings
from .errors import ApiError, RoutingMiss
from .handlers import expenses, groups, health, messages
from .router import Router
from .store import DynamoStore

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def build_router(store, settings: Settings) -> Router:
    router = Router(prefix=settings.api_prefix)

    def bind(handler):
        return partial(handler, store=store, settings=settings)

    router.get("/health", partial(health.handler, settings=settings))

    router.get("/messages", bind(messages.list_messages))
    router.post("/messages", bind(messages.post_message))

    router.get("/financial/groups", bind(groups.list_groups))
    router.get("/financial/groups/{groupId}", bind(groups.get_group))
    router.get("/financial/groups/{groupId}/users", bind(groups.list_group_users))
    router.get("/financial/groups/{groupId}/expenses", bind(expenses.list_group_expenses))
    router.post("/financial/groups/{groupId}/expenses", bind(expenses.create_expense))
    router.get("/financial/groups/{groupId}/expenses/{expenseId}", bind(expenses.get_expense))
    router.get("/financial/expense-categories", bind(expenses.list_categories))
    router.get("/financial/expense-split-types", bind(expenses.list_split_types))
    return router


class App:
    """Routes API Gateway proxy events to handlers over one injected store."""

    def __init__(self, store, settings: Settings = None):
        self.settings = settings or Settings()
        self.store = store
        self.router = build_router(store, self.settings)

    def __call__(self, event, context=None):
        request = Request.from_event(event or {}, context)
        logger.info(
            json.dumps(
                {
                    "event": "RequestReceived",
                    "path": request.path,
                    "method": request.method,
                    "requestId": request.request_id,
                }
            )
        )
        try:
            return self.router.dispatch(request)
        except RoutingMiss:
            logger.info(
                json.dumps(
                    {
                        "event": "RequestNotFound",
                        "path": request.path,
                        "method": request.method,
                        "requestId": request.request_id,
                    }
                )
            )
            return error_response(404, "Not Found")
        except ApiError as exc:
            logger.warning(
                json.dumps(
                    {
                        "event": "RequestFailed",
                        "path": request.path,
                        "method": request.method,
                        "requestId": request.request_id,
                        "status": exc.status_code,
                        "error": exc.message,
                    }
                )
            )
            return error_response(exc.status_code, exc.message)
        except Exception:
            logger.exception("Unhandled error for %s %s", request.method, request.path)
            return error_response(500, "Internal server error")


_app = None


def create_app(settings: Settings = None, store=None) -> App:
    settings = settings or Settings.from_env()
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        logger.warning(json.dumps({"event": "UnknownLogLevel", "level": settings.log_level}))
        level = logging.INFO
    logging.getLogger().setLevel(level)
    return App(store if store is not None else DynamoStore(), settings)


def handler(event, context):
    global _app
    if _app is None:
        _app = create_app()
    return _app(event, context)
