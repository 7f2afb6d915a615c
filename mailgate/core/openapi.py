"""OpenAPI customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- A shared ``RateLimited`` response documented as 429 on every operation
  the global limiter covers

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Contact",
        "description": "Contact form intake for the support inbox.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]

_RATE_LIMITED_RESPONSE = {
    "description": "Too many requests from this client for this path.",
    "content": {
        "application/json": {
            "schema": {
                "type": "object",
                "properties": {"error": {"type": "string", "enum": ["rate_limited"]}},
                "required": ["error"],
            }
        }
    },
    "headers": {
        "Retry-After": {
            "description": "Seconds until another request would be admitted.",
            "schema": {"type": "integer"},
        }
    },
}


def apply_openapi_customizations(app: FastAPI, exempt_paths: Iterable[str] = ()) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 responses.

    Args:
        app: Application whose ``openapi`` method is wrapped.
        exempt_paths: Paths the global limiter skips; they get no 429 entry.
    """

    original_openapi = app.openapi
    exempt = set(exempt_paths)

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("responses", {}).setdefault(
            "RateLimited", _RATE_LIMITED_RESPONSE
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path in exempt:
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault(
                        "429", {"$ref": "#/components/responses/RateLimited"}
                    )

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
