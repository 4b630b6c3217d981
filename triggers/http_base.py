"""
HTTP Trigger Base Class.

Abstract base class for all Azure Functions HTTP triggers providing consistent
infrastructure patterns for request/response handling.

Error mapping:
    BusinessLogicError subclasses are mapped through core.errors to an
    ErrorCode and HTTP status (400/404/409/500/502/503). Anything else is
    an internal server error (500), with debug detail when debug_mode is on.

Every response carries an X-Request-ID header for log correlation.

Exports:
    BaseHttpTrigger: Base class for HTTP triggers
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
import json
import traceback
import uuid
from datetime import datetime, timezone

import azure.functions as func

from core.errors import ErrorCode, create_error_response, error_code_for_exception
from exceptions import BusinessLogicError, GranuleConflictError, MoveError, ValidationError
from util_logger import LoggerFactory, ComponentType


class BaseHttpTrigger(ABC):
    """
    Abstract base class for Azure Functions HTTP triggers.

    Provides consistent infrastructure for HTTP request/response handling,
    parameter extraction, error handling, and logging patterns.
    """

    def __init__(self, trigger_name: str, debug_mode: bool = False):
        """
        Initialize HTTP trigger with name for logging context.

        Args:
            trigger_name: Name of the trigger for logging (e.g., "granule", "granules_bulk")
            debug_mode: Include exception type and traceback in 500 responses
        """
        self.trigger_name = trigger_name
        self.debug_mode = debug_mode
        self.logger = LoggerFactory.create_logger(ComponentType.TRIGGER, f"HttpTrigger.{trigger_name}")

    # ========================================================================
    # ABSTRACT METHODS - Must be implemented by concrete triggers
    # ========================================================================

    @abstractmethod
    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        """
        Process the HTTP request and return response data.

        Raise BusinessLogicError subclasses for expected failures; the base
        class turns them into the matching status code.

        Args:
            req: Azure Functions HTTP request object

        Returns:
            Dictionary to be serialized as JSON response
        """
        pass

    @abstractmethod
    def get_allowed_methods(self) -> List[str]:
        """
        Return list of allowed HTTP methods for this trigger.

        Returns:
            List of HTTP methods (e.g., ["GET"], ["PUT", "DELETE"])
        """
        pass

    # ========================================================================
    # CONCRETE INFRASTRUCTURE METHODS
    # ========================================================================

    def handle_request(self, req: func.HttpRequest) -> func.HttpResponse:
        """
        Main entry point for HTTP request handling.

        Args:
            req: Azure Functions HTTP request object

        Returns:
            Azure Functions HTTP response with JSON content
        """
        request_id = self._generate_request_id()
        self.logger.info(f"[{self.trigger_name}] Request {request_id} started: {req.method} {req.url}")

        if req.method not in self.get_allowed_methods():
            return self._json_response(
                {
                    "error": "Method not allowed",
                    "message": f"Method {req.method} not allowed. Allowed: {', '.join(self.get_allowed_methods())}",
                },
                405,
                request_id
            )

        try:
            response_data = self.process_request(req)

        except BusinessLogicError as e:
            return self._business_error_response(e, request_id)

        except Exception as e:
            self.logger.error(f"[{self.trigger_name}] Internal error: {type(e).__name__}: {e}")
            self.logger.debug(f"Full traceback: {traceback.format_exc()}")
            body = create_error_response(
                ErrorCode.UNEXPECTED_ERROR,
                str(e),
                error_type=type(e).__name__
            )
            if self.debug_mode:
                body["debug"] = {
                    "trigger_name": self.trigger_name,
                    "traceback": traceback.format_exc(),
                }
            return self._json_response(body, 500, request_id)

        self.logger.info(f"[{self.trigger_name}] Request {request_id} completed successfully")
        return self._json_response(response_data, 200, request_id)

    # ========================================================================
    # UTILITY METHODS FOR SUBCLASSES
    # ========================================================================

    def extract_path_params(self, req: func.HttpRequest, required_params: List[str]) -> Dict[str, str]:
        """
        Extract and validate path parameters.

        Raises:
            ValidationError: If required parameters are missing
        """
        params = {}
        missing_params = []

        for param_name in required_params:
            value = req.route_params.get(param_name)
            if not value:
                missing_params.append(param_name)
            else:
                params[param_name] = value

        if missing_params:
            raise ValidationError(f"Missing required path parameters: {', '.join(missing_params)}")

        return params

    def extract_query_params(self, req: func.HttpRequest, optional_params: List[str]) -> Dict[str, str]:
        """Present, non-empty query parameters among optional_params."""
        return {
            name: req.params[name]
            for name in optional_params
            if req.params.get(name)
        }

    def extract_json_body(self, req: func.HttpRequest) -> Optional[Dict[str, Any]]:
        """
        Parse the JSON body; an empty body is None.

        Raises:
            ValidationError: Body present but not valid JSON
        """
        if not req.get_body():
            return None
        try:
            return req.get_json()
        except ValueError as e:
            raise ValidationError(f"Invalid JSON in request body: {e}") from e

    # ========================================================================
    # PRIVATE INFRASTRUCTURE METHODS
    # ========================================================================

    def _generate_request_id(self) -> str:
        """Generate unique request ID for tracing."""
        return str(uuid.uuid4())[:8]

    def _business_error_response(self, error: BusinessLogicError, request_id: str) -> func.HttpResponse:
        error_code = error_code_for_exception(error)
        extra: Dict[str, Any] = {}
        if isinstance(error, GranuleConflictError):
            extra["file_names"] = error.file_names
        elif isinstance(error, MoveError):
            extra.update(stage=error.stage, moved=error.moved, failed=error.failed)

        body = create_error_response(
            error_code,
            str(error),
            error_type=type(error).__name__,
            **extra
        )
        status_code = body["http_status"]

        if status_code >= 500:
            self.logger.error(f"[{self.trigger_name}] {error_code.value}: {error}")
        else:
            self.logger.warning(f"[{self.trigger_name}] {error_code.value}: {error}")
        return self._json_response(body, status_code, request_id)

    def _json_response(self, data: Dict[str, Any], status_code: int, request_id: str) -> func.HttpResponse:
        if status_code >= 400:
            data = {**data, "timestamp": datetime.now(timezone.utc).isoformat()}
        return func.HttpResponse(
            json.dumps(data, default=str),
            status_code=status_code,
            mimetype="application/json",
            headers={"X-Request-ID": request_id}
        )
