"""Cognito user pool adapter and the token -> identity resolver.

CognitoService is a thin wrapper over the cognito-idp client. Every method
returns the raw boto3 response and lets ClientError propagate; handlers map
it with errors.from_provider_error.
"""

import base64
import hashlib
import hmac
from dataclasses import dataclass

import boto3
from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError

from .errors import IdentityError, ProviderError, error_code, from_provider_error


class CognitoService:
    def __init__(self, client_id, client_secret=None, client=None, region=None):
        if not client_id:
            raise RuntimeError("COGNITO_CLIENT_ID environment variable not set")
        self.client_id = client_id
        self.client_secret = client_secret
        self.client = client or boto3.client("cognito-idp", region_name=region)

    @classmethod
    def from_settings(cls, settings):
        return cls(settings.cognito_client_id, settings.cognito_client_secret, region=settings.region)

    def secret_hash(self, username):
        if not self.client_secret:
            return None
        digest = hmac.new(
            self.client_secret.encode("utf-8"),
            (username + self.client_id).encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    def _params(self, username, **params):
        params["ClientId"] = self.client_id
        params["Username"] = username
        h = self.secret_hash(username)
        if h:
            params["SecretHash"] = h
        return params

    def sign_up(self, name, username, email, password, attributes=None):
        attrs = [
            {"Name": "name", "Value": name},
            # the pool signs in by email, so the chosen handle lives in preferred_username
            {"Name": "preferred_username", "Value": username},
            {"Name": "email", "Value": email},
        ]
        attrs += [{"Name": k, "Value": v} for k, v in (attributes or {}).items()]
        return self.client.sign_up(**self._params(email, Password=password, UserAttributes=attrs))

    def resend_confirmation_code(self, username):
        return self.client.resend_confirmation_code(**self._params(username))

    def confirm_sign_up(self, username, code):
        return self.client.confirm_sign_up(**self._params(username, ConfirmationCode=code))

    def login(self, username, password):
        auth = {"USERNAME": username, "PASSWORD": password}
        h = self.secret_hash(username)
        if h:
            auth["SECRET_HASH"] = h
        return self.client.initiate_auth(
            AuthFlow="USER_PASSWORD_AUTH", ClientId=self.client_id, AuthParameters=auth
        )

    def refresh_tokens(self, refresh_token, username=None):
        auth = {"REFRESH_TOKEN": refresh_token}
        # hash is keyed on the sign-in username, but USERNAME itself is not sent
        if username:
            h = self.secret_hash(username)
            if h:
                auth["SECRET_HASH"] = h
        return self.client.initiate_auth(
            AuthFlow="REFRESH_TOKEN_AUTH", ClientId=self.client_id, AuthParameters=auth
        )

    def send_forgot_password(self, username):
        return self.client.forgot_password(**self._params(username))

    def confirm_forgot_password(self, username, code, new_password):
        return self.client.confirm_forgot_password(
            **self._params(username, ConfirmationCode=code, Password=new_password)
        )

    def change_password(self, access_token, previous_password, proposed_password):
        return self.client.change_password(
            AccessToken=access_token,
            PreviousPassword=previous_password,
            ProposedPassword=proposed_password,
        )

    def get_user(self, access_token):
        return self.client.get_user(AccessToken=access_token)

    def update_user_attributes(self, access_token, attributes):
        return self.client.update_user_attributes(
            AccessToken=access_token,
            UserAttributes=[{"Name": k, "Value": v} for k, v in attributes.items()],
        )

    def delete_user(self, access_token):
        return self.client.delete_user(AccessToken=access_token)


def user_attributes(response) -> dict:
    return {
        a["Name"]: a["Value"]
        for a in response.get("UserAttributes") or []
        if a.get("Name") and a.get("Value")
    }


@dataclass(frozen=True)
class Identity:
    user_id: str
    display_name: str


class IdentityResolver:
    """Maps an access token to the identity a score is attributed to."""

    def __init__(self, provider):
        self.provider = provider

    def resolve(self, token) -> Identity:
        if not isinstance(token, str) or not token.strip():
            raise IdentityError("Missing access token")
        try:
            user = self.provider.get_user(token.strip())
        except ParamValidationError:
            raise IdentityError("Malformed access token")
        except ClientError as e:
            err = from_provider_error(e)
            if isinstance(err, ProviderError):
                print(f"[ERROR] Identity lookup failed: {error_code(e)}")
                raise err
            # an unusable token is an authentication problem, whatever the code
            raise IdentityError(err.message)
        except BotoCoreError as e:
            print(f"[ERROR] Identity lookup failed: {e}")
            raise ProviderError("Identity provider is unavailable")

        attrs = user_attributes(user)
        username = user.get("Username")
        user_id = attrs.get("sub") or username
        display_name = (
            attrs.get("preferred_username")
            or attrs.get("name")
            or attrs.get("email")
            or username
        )
        if not user_id or not display_name:
            raise IdentityError("Unable to determine user identity from token")
        return Identity(user_id=user_id, display_name=display_name)
