import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

DEFAULT_TABLE = "leaderboard"
DEFAULT_LIMIT = 10


def _require(environ: Mapping[str, str], name: str) -> str:
    v = environ.get(name)
    if not v:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return v


def parse_table_reference(value: Optional[str]) -> Tuple[str, Optional[str]]:
    """Split LEADERBOARD_TABLE into (table name, region).

    Accepts a bare table name or an ARN such as
    arn:aws:dynamodb:eu-west-1:123456789012:table/leaderboard. The region is
    only returned for ARNs; otherwise boto3's default chain picks it.
    """
    if not value:
        return DEFAULT_TABLE, None
    region = None
    if value.startswith("arn:"):
        parts = value.split(":")
        region = parts[3] if len(parts) > 3 and parts[3] else None
    name = value.split("/")[-1]
    return name or DEFAULT_TABLE, region


@dataclass(frozen=True)
class Settings:
    cognito_client_id: str
    region: str
    cognito_client_secret: Optional[str] = None
    table_name: str = DEFAULT_TABLE
    table_region: Optional[str] = None
    default_limit: int = DEFAULT_LIMIT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "Settings":
        table_name, table_region = parse_table_reference(environ.get("LEADERBOARD_TABLE"))
        raw_limit = environ.get("DEFAULT_SCORE_LIMIT") or str(DEFAULT_LIMIT)
        try:
            default_limit = int(raw_limit)
        except ValueError:
            raise RuntimeError("DEFAULT_SCORE_LIMIT must be an integer")
        return cls(
            cognito_client_id=_require(environ, "COGNITO_CLIENT_ID"),
            region=_require(environ, "AWS_REGION"),
            cognito_client_secret=environ.get("COGNITO_CLIENT_SECRET") or None,
            table_name=table_name,
            table_region=table_region,
            default_limit=default_limit,
        )
