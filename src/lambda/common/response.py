"""CORS and JSON response helpers for API handlers."""

import json
import logging

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

ERROR_MESSAGES = {
    "NOT_FOUND": "Resource not found",
    "UNAUTHORIZED": "Unauthorized access",
    "FORBIDDEN": "Forbidden access",
    "SERVER_ERROR": "Internal server error",
    "VALIDATION_ERROR": "Validation error",
    "DATABASE_ERROR": "Database error",
}

STATUS_CODES = {
    "OK": 200,
    "CREATED": 201,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "SERVER_ERROR": 500,
}


def jsonResponse(body, statusCode=200):
    """Return a response dict with JSON body and CORS headers for API Gateway."""
    return {
        "statusCode": statusCode,
        "headers": {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": "*",
        },
        "body": json.dumps(body, default=str) if not isinstance(body, str) else body,
    }


def successResponse(data, statusCode=200):
    """Wrap data in the {"data": ...} envelope."""
    return jsonResponse({"data": data}, statusCode)


def errorResponse(error, message, statusCode=500):
    """Log the underlying error and return {"error": message}. The cause stays server-side."""
    if error is not None:
        logger.error("API Error: %s: %s", message, error)
    return jsonResponse({"error": message}, statusCode)
