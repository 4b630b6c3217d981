"""
Granules HTTP Triggers and Blueprint.

Endpoints (prefix-scoped under /api/granules):
    GET    /granules                 List, filtered by status, collectionId,
                                     published; paged with limit and page
    GET    /granules/{granuleId}     Fetch one
    PUT    /granules/{granuleId}     Run an action: reingest, applyWorkflow,
                                     removeFromCmr, move
    DELETE /granules/{granuleId}     Delete an unpublished granule
    POST   /granules/bulk            Queue a bulk workflow run

Register in function_app.py:
    bp = create_granules_blueprint(lifecycle, bulk_service, config)
    app.register_functions(bp)

Exports:
    ListGranulesTrigger, GranuleTrigger, BulkGranulesTrigger
    create_granules_blueprint
"""

from typing import Any, Dict, List

import azure.functions as func

from config import AppConfig
from config.defaults import AppDefaults
from core.models import GranuleStatus
from exceptions import ValidationError
from services import BulkOperationService, GranuleLifecycle
from util_logger import LoggerFactory, ComponentType

from .http_base import BaseHttpTrigger

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "GranulesBlueprint")


def _parse_int(name: str, raw: str, minimum: int) -> int:
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(f"{name} must be an integer") from e
    if value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return value


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    raise ValidationError(f"{name} must be true or false")


class ListGranulesTrigger(BaseHttpTrigger):
    """GET /granules"""

    def __init__(self, lifecycle: GranuleLifecycle, stack_name: str, debug_mode: bool = False):
        super().__init__("granules_list", debug_mode)
        self.lifecycle = lifecycle
        self.stack_name = stack_name

    def get_allowed_methods(self) -> List[str]:
        return ["GET"]

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        params = self.extract_query_params(
            req, ["status", "collectionId", "published", "limit", "page"]
        )

        status = None
        if "status" in params:
            try:
                status = GranuleStatus(params["status"])
            except ValueError as e:
                raise ValidationError(
                    f"status must be one of: {', '.join(s.value for s in GranuleStatus)}"
                ) from e

        published = _parse_bool("published", params["published"]) if "published" in params else None
        limit = _parse_int("limit", params["limit"], 1) if "limit" in params else AppDefaults.DEFAULT_PAGE_LIMIT
        limit = min(limit, AppDefaults.MAX_PAGE_LIMIT)
        page = _parse_int("page", params["page"], 1) if "page" in params else 1

        records, total = self.lifecycle.list_granules(
            status=status,
            collection_id=params.get("collectionId"),
            published=published,
            limit=limit,
            page=page
        )
        return {
            "meta": {
                "stack": self.stack_name,
                "table": "granule",
                "count": total,
                "page": page,
                "limit": limit,
            },
            "results": [record.to_api_dict() for record in records],
        }


class GranuleTrigger(BaseHttpTrigger):
    """GET, PUT and DELETE /granules/{granuleId}"""

    def __init__(self, lifecycle: GranuleLifecycle, debug_mode: bool = False):
        super().__init__("granule", debug_mode)
        self.lifecycle = lifecycle

    def get_allowed_methods(self) -> List[str]:
        return ["GET", "PUT", "DELETE"]

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        granule_id = self.extract_path_params(req, ["granuleId"])["granuleId"]

        if req.method == "GET":
            return self.lifecycle.get_granule(granule_id).to_api_dict()
        if req.method == "DELETE":
            return self.lifecycle.delete_granule(granule_id)

        body = self.extract_json_body(req)
        return self.lifecycle.apply_action(granule_id, body).to_api_dict()


class BulkGranulesTrigger(BaseHttpTrigger):
    """POST /granules/bulk"""

    def __init__(self, bulk_service: BulkOperationService, debug_mode: bool = False):
        super().__init__("granules_bulk", debug_mode)
        self.bulk_service = bulk_service

    def get_allowed_methods(self) -> List[str]:
        return ["POST"]

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        body = self.extract_json_body(req)
        return self.bulk_service.submit(body).to_api_dict()


def create_granules_blueprint(
    lifecycle: GranuleLifecycle,
    bulk_service: BulkOperationService,
    config: AppConfig
) -> func.Blueprint:
    """
    Build the granules Blueprint bound to the given services.
    """
    bp = func.Blueprint()

    list_trigger = ListGranulesTrigger(lifecycle, config.stack_name, config.debug_mode)
    granule_trigger = GranuleTrigger(lifecycle, config.debug_mode)
    bulk_trigger = BulkGranulesTrigger(bulk_service, config.debug_mode)

    @bp.route(route="granules", methods=["GET"])
    def granules_list(req: func.HttpRequest) -> func.HttpResponse:
        return list_trigger.handle_request(req)

    @bp.route(route="granules/bulk", methods=["POST"])
    def granules_bulk(req: func.HttpRequest) -> func.HttpResponse:
        return bulk_trigger.handle_request(req)

    @bp.route(route="granules/{granuleId}", methods=["GET", "PUT", "DELETE"])
    def granule_item(req: func.HttpRequest) -> func.HttpResponse:
        return granule_trigger.handle_request(req)

    logger.info("Granules blueprint created: list, item, bulk")
    return bp
