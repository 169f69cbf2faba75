import json

import pytest
from botocore.exceptions import ClientError

from lambdas.ledger import ScoreLedger, ScoreStore


class MemoryStore(ScoreStore):
    """Dict-backed score table. Scan order is deliberately reversed insert order."""

    def __init__(self):
        self.items = []
        self.fail = None

    def put(self, item):
        if self.fail:
            raise self.fail
        self.items.append(dict(item))

    def scan_all(self):
        if self.fail:
            raise self.fail
        return [dict(it) for it in reversed(self.items)]


class FakeProvider:
    """Stands in for CognitoService.get_user: token -> GetUser response."""

    def __init__(self, users=None):
        self.users = users or {}
        self.calls = []

    def get_user(self, token):
        self.calls.append(token)
        if token not in self.users:
            raise ClientError(
                {"Error": {"Code": "NotAuthorizedException", "Message": "Invalid Access Token"}},
                "GetUser",
            )
        return self.users[token]


def cognito_user(username, **attrs):
    return {
        "Username": username,
        "UserAttributes": [{"Name": k, "Value": v} for k, v in attrs.items()],
    }


class Clock:
    def __init__(self, start=1000, step=1000):
        self.now = start
        self.step = step

    def __call__(self):
        t = self.now
        self.now += self.step
        return t


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def ledger(store, clock):
    return ScoreLedger(store, clock=clock)


@pytest.fixture
def provider():
    return FakeProvider({
        "alice-token": cognito_user("alice@example.com", sub="u1", preferred_username="Alice"),
        "bob-token": cognito_user("bob@example.com", sub="u2", name="Bob Builder"),
    })


def api_event(method, path, body=None, token=None, query=None, op=None, headers=None):
    """API Gateway HTTP API (payload v2) proxy event."""
    h = dict(headers or {})
    if token:
        h["authorization"] = f"Bearer {token}"
    event = {
        "rawPath": path,
        "requestContext": {"http": {"method": method, "path": path}},
        "headers": h,
        "queryStringParameters": query,
        "body": json.dumps(body) if isinstance(body, (dict, list)) else body,
    }
    if op:
        event["pathParameters"] = {"op": op}
    return event


def body_of(resp):
    return json.loads(resp["body"])
