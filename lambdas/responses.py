import base64
import json

from .errors import LeaderboardError, StorageError, ValidationError

MISSING_TOKEN = (
    "Missing access token. Please provide it in the Authorization header as "
    "'Bearer <token>' or as 'accessToken' query parameter."
)


def success(payload=None, code=200):
    return {
        "statusCode": code,
        "headers": {"content-type": "application/json"},
        "body": json.dumps(payload),
    }


def failure(message, code=500):
    return {
        "statusCode": code,
        "headers": {"content-type": "application/json"},
        "body": json.dumps({"message": message}),
    }


def error_response(exc: LeaderboardError):
    if isinstance(exc, StorageError):
        print(f"[ERROR] Store failure: {exc.message}")
        return failure(exc.public_message, exc.status_code)
    if exc.status_code >= 500:
        print(f"[ERROR] {type(exc).__name__}: {exc.message}")
    else:
        print(f"[WARN] {type(exc).__name__}: {exc.message}")
    return failure(exc.message, exc.status_code)


def route_of(event):
    """(METHOD, path) for HTTP API (v2) and REST API (v1) proxy events."""
    http = (event.get("requestContext") or {}).get("http") or {}
    method = http.get("method") or event.get("httpMethod") or ""
    path = event.get("rawPath") or http.get("path") or event.get("path") or ""
    return method.upper(), path.rstrip("/") or "/"


def parse_body(event) -> dict:
    raw = event.get("body")
    if not raw:
        return {}
    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("Request body is not valid base64")
    try:
        body = json.loads(raw)
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def query_params(event) -> dict:
    return event.get("queryStringParameters") or {}


def _header(event, name):
    name = name.lower()
    for k, v in (event.get("headers") or {}).items():
        if k.lower() == name:
            return v
    return None


def extract_access_token(event) -> str:
    """Bearer token from the Authorization header, ?accessToken=, or the body."""
    token = None
    auth = _header(event, "authorization")
    if auth:
        token = auth[len("Bearer "):] if auth.startswith("Bearer ") else auth
    elif query_params(event).get("accessToken"):
        token = query_params(event)["accessToken"]
    elif event.get("body"):
        try:
            token = parse_body(event).get("accessToken")
        except ValidationError:
            token = None
    if not isinstance(token, str) or not token.strip():
        raise ValidationError(MISSING_TOKEN)
    return token.strip()
