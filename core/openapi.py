from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from api.schemas import ProblemDetail

PROBLEM_REF = {"$ref": "#/components/schemas/ProblemDetail"}

# Error statuses documented on every operation
ERROR_RESPONSES = {
    "400": "Invalid input or job state",
    "401": "Missing or invalid shop session",
    "404": "Resource not found",
    "422": "Request validation failed",
    "500": "Internal server error",
}


def custom_openapi(app: FastAPI):
    """Generate the OpenAPI schema with RFC 7807 Problem Details errors.

    FastAPI's default ``HTTPValidationError`` body is replaced by
    ``ProblemDetail`` since every error goes through the shared handlers.
    """
    if app.openapi_schema:
        return app.openapi_schema

    servers = [{"url": app.root_path}] if app.root_path else None

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        servers=servers,
    )

    schemas = openapi_schema.setdefault("components", {}).setdefault("schemas", {})
    schemas.pop("HTTPValidationError", None)
    schemas.pop("ValidationError", None)
    schemas["ProblemDetail"] = ProblemDetail.model_json_schema(
        ref_template="#/components/schemas/{model}"
    )

    for path_item in openapi_schema.get("paths", {}).values():
        for operation in path_item.values():
            responses = operation.setdefault("responses", {})
            for code, description in ERROR_RESPONSES.items():
                responses[code] = {
                    "description": description,
                    "content": {"application/problem+json": {"schema": PROBLEM_REF}},
                }

    app.openapi_schema = openapi_schema
    return app.openapi_schema
