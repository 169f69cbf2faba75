import functools

from .config import Settings
from .errors import LeaderboardError
from .identity import CognitoService, IdentityResolver
from .ledger import DynamoScoreStore, ScoreLedger
from .models import FetchScoresQuery, SubmitScoreRequest, parse_request
from .responses import (
    error_response,
    extract_access_token,
    failure,
    parse_body,
    query_params,
    route_of,
    success,
)


@functools.lru_cache(maxsize=None)
def _services():
    # built once per container, reused across warm invocations
    settings = Settings.from_env()
    ledger = ScoreLedger(DynamoScoreStore.from_settings(settings))
    resolver = IdentityResolver(CognitoService.from_settings(settings))
    return settings, ledger, resolver


def _dump(record):
    return record.model_dump() if record is not None else None


def submit_score(event, ledger, resolver):
    token = extract_access_token(event)
    body = parse_body(event)
    who = resolver.resolve(token)
    req = parse_request(SubmitScoreRequest, body)
    record = ledger.submit(who.user_id, who.display_name, req.score)
    return success(_dump(record), 201)


def fetch_scores(event, ledger, default_limit=10):
    extract_access_token(event)
    q = parse_request(FetchScoresQuery, {"limit": query_params(event).get("limit") or None})
    limit = default_limit if q.limit is None else q.limit
    scores = ledger.top(limit)
    # the dashboard only shows the single best score
    return success(_dump(scores[0]) if scores else None)


def fetch_my_best(event, ledger, resolver):
    who = resolver.resolve(extract_access_token(event))
    return success(_dump(ledger.user_top(who.user_id)))


def dispatch(event, ledger, resolver, default_limit=10):
    method, path = route_of(event)
    try:
        if method == "POST" and path.endswith("/scores"):
            return submit_score(event, ledger, resolver)
        if method == "GET" and path.endswith("/scores/me"):
            return fetch_my_best(event, ledger, resolver)
        if method == "GET" and path.endswith("/scores"):
            return fetch_scores(event, ledger, default_limit)
    except LeaderboardError as e:
        return error_response(e)
    except Exception as e:
        print(f"[ERROR] Unhandled exception on {method} {path}: {e!r}")
        return failure("Internal server error", 500)
    return failure("Not found", 404)


def handler(event, ctx):
    settings, ledger, resolver = _services()
    return dispatch(event, ledger, resolver, settings.default_limit)
