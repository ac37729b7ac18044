# postman.py — OpenAPI 3 → Postman Collection v2.1 converter
"""
``convert(openapi_doc)`` is a pure function: it reads the OpenAPI document
FastAPI generates for the app and returns a Postman collection dict. Items
are grouped into folders by each operation's first tag.
"""
import json
import re
from typing import Any, Dict, List, Optional

POSTMAN_SCHEMA = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"
DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TAG = "Default"
HTTP_METHODS = ("get", "post", "put", "patch", "delete", "head", "options")

_BEARER = {
    "type": "bearer",
    "bearer": [{"key": "token", "value": "{{access_token}}", "type": "string"}],
}
_PATH_PARAM = re.compile(r"\{([^}]+)\}")


# ============================================================
# EXAMPLE SYNTHESIS
# ============================================================

def _resolve_ref(schema: dict, doc: dict) -> dict:
    ref = schema.get("$ref")
    if not ref or not ref.startswith("#/components/schemas/"):
        return schema
    name = ref[len("#/components/schemas/"):]
    return doc.get("components", {}).get("schemas", {}).get(name, {})


def example_from_schema(schema: Optional[dict], doc: dict, _depth: int = 0) -> Any:
    """Build a sample value for ``schema``, resolving ``$ref`` against the document."""
    if not schema or _depth > 8:
        return None
    if "$ref" in schema:
        return example_from_schema(_resolve_ref(schema, doc), doc, _depth + 1)
    if "example" in schema:
        return schema["example"]
    if schema.get("default") is not None:
        return schema["default"]

    # Optional[X] renders as anyOf [X, null]
    for key in ("anyOf", "oneOf", "allOf"):
        if key in schema:
            options = [s for s in schema[key] if s.get("type") != "null"]
            return example_from_schema(options[0], doc, _depth + 1) if options else None

    if "enum" in schema and schema["enum"]:
        return schema["enum"][0]

    schema_type = schema.get("type")
    if schema_type == "object" or "properties" in schema:
        return {
            key: example_from_schema(prop, doc, _depth + 1)
            for key, prop in schema.get("properties", {}).items()
        }
    if schema_type == "string":
        return "example@example.com" if schema.get("format") == "email" else "string"
    if schema_type == "integer":
        return 1
    if schema_type == "number":
        return 1.0
    if schema_type == "boolean":
        return True
    if schema_type == "array":
        return []
    return None


# ============================================================
# REQUEST PARTS
# ============================================================

def _url(path: str, parameters: List[dict]) -> dict:
    postman_path = _PATH_PARAM.sub(r":\1", path)
    url = {
        "raw": "{{base_url}}" + postman_path,
        "host": ["{{base_url}}"],
        "path": [segment for segment in postman_path.strip("/").split("/") if segment],
    }

    variables, query = [], []
    for param in parameters:
        entry = {
            "key": param.get("name", ""),
            "value": _param_value(param),
            "description": param.get("description", ""),
        }
        if param.get("in") == "path":
            variables.append(entry)
        elif param.get("in") == "query":
            entry["disabled"] = not param.get("required", False)
            query.append(entry)
    if variables:
        url["variable"] = variables
    if query:
        url["query"] = query
        url["raw"] += "?" + "&".join(f"{q['key']}={q['value']}" for q in query if not q["disabled"])
        url["raw"] = url["raw"].rstrip("?")
    return url


def _param_value(param: dict) -> str:
    schema = param.get("schema", {})
    value = param.get("example", schema.get("example", ""))
    return "" if value is None else str(value)


def _body(request_body: Optional[dict], doc: dict) -> Optional[dict]:
    if not request_body:
        return None
    content = request_body.get("content", {})

    if "application/json" in content:
        media = content["application/json"]
        if "example" in media:
            example = media["example"]
        else:
            example = example_from_schema(media.get("schema"), doc)
        if example is None:
            return None
        return {
            "mode": "raw",
            "raw": json.dumps(example, indent=4),
            "options": {"raw": {"language": "json"}},
        }

    if "multipart/form-data" in content:
        schema = _resolve_ref(content["multipart/form-data"].get("schema", {}), doc)
        fields = []
        for key, prop in schema.get("properties", {}).items():
            if prop.get("format") == "binary" or prop.get("contentMediaType"):
                fields.append({"key": key, "type": "file", "src": ""})
            else:
                fields.append({"key": key, "type": "text", "value": str(example_from_schema(prop, doc) or "")})
        return {"mode": "formdata", "formdata": fields}

    return None


def _item(path: str, method: str, operation: dict, doc: dict, path_parameters: List[dict]) -> dict:
    parameters = path_parameters + operation.get("parameters", [])
    request = {
        "method": method.upper(),
        "header": [
            {"key": "Accept", "value": "application/json", "type": "text"},
        ],
        "url": _url(path, parameters),
        "auth": _BEARER if operation.get("security") else {"type": "noauth"},
    }
    body = _body(operation.get("requestBody"), doc)
    if body is not None:
        request["body"] = body
        if body["mode"] == "raw":
            request["header"].append({"key": "Content-Type", "value": "application/json", "type": "text"})
    if operation.get("description"):
        request["description"] = operation["description"]

    return {
        "name": operation.get("summary") or f"{method.upper()} {path}",
        "request": request,
        "response": [],
    }


# ============================================================
# COLLECTION
# ============================================================

def convert(openapi_doc: Dict[str, Any], base_url: Optional[str] = None) -> Dict[str, Any]:
    """Convert an OpenAPI 3 document into a Postman v2.1 collection."""
    info = openapi_doc.get("info", {})
    servers = openapi_doc.get("servers") or [{}]
    base = base_url or servers[0].get("url") or DEFAULT_BASE_URL

    folders: Dict[str, List[dict]] = {}
    for path, path_item in openapi_doc.get("paths", {}).items():
        path_parameters = path_item.get("parameters", [])
        for method, operation in path_item.items():
            if method not in HTTP_METHODS:
                continue
            tag = (operation.get("tags") or [DEFAULT_TAG])[0]
            folders.setdefault(tag, []).append(
                _item(path, method, operation, openapi_doc, path_parameters)
            )

    return {
        "info": {
            "name": info.get("title", "API"),
            "description": info.get("description", ""),
            "version": info.get("version", ""),
            "schema": POSTMAN_SCHEMA,
        },
        "item": [{"name": tag, "item": items} for tag, items in folders.items()],
        "variable": [
            {"key": "base_url", "value": base.rstrip("/"), "type": "string"},
            {"key": "access_token", "value": "", "type": "string"},
        ],
        "auth": _BEARER,
    }
