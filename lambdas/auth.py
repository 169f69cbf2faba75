import functools

from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import IdentityError, LeaderboardError, ProviderError, ValidationError, from_provider_error
from .identity import CognitoService, user_attributes
from .models import (
    ChangePasswordRequest,
    ConfirmRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    ResendCodeRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdateProfileRequest,
    parse_request,
)
from .responses import error_response, extract_access_token, failure, parse_body, route_of, success


@functools.lru_cache(maxsize=None)
def _cognito():
    return CognitoService.from_settings(Settings.from_env())


def _tokens(result, refresh=True):
    r = result.get("AuthenticationResult") or {}
    out = {
        "idToken": r.get("IdToken"),
        "accessToken": r.get("AccessToken"),
    }
    if refresh:
        out["refreshToken"] = r.get("RefreshToken")
    out["expiresIn"] = r.get("ExpiresIn")
    out["tokenType"] = r.get("TokenType")
    return out


def signup(event, cognito):
    req = parse_request(SignupRequest, parse_body(event))
    result = cognito.sign_up(req.name, req.username, req.email, req.password)
    print(f"[INFO] Signed up {req.email}")
    return success({
        "message": "Sign-up successful. Please check your e-mail for the confirmation code.",
        "userSub": result.get("UserSub"),
    }, 201)


def confirm(event, cognito):
    req = parse_request(ConfirmRequest, parse_body(event))
    cognito.confirm_sign_up(req.email, req.confirmationCode)
    return success({"message": "User confirmed successfully"})


def resend(event, cognito):
    req = parse_request(ResendCodeRequest, parse_body(event))
    cognito.resend_confirmation_code(req.username)
    return success({"message": "Confirmation code resent successfully"})


def login(event, cognito):
    req = parse_request(LoginRequest, parse_body(event))
    return success(_tokens(cognito.login(req.email, req.password)))


def refresh(event, cognito):
    req = parse_request(RefreshRequest, parse_body(event))
    return success(_tokens(cognito.refresh_tokens(req.refreshToken, req.email), refresh=False))


def forgot_password(event, cognito):
    req = parse_request(ForgotPasswordRequest, parse_body(event))
    cognito.send_forgot_password(req.email)
    return success({"message": "Password reset code sent successfully"})


def reset_password(event, cognito):
    req = parse_request(ResetPasswordRequest, parse_body(event))
    cognito.confirm_forgot_password(req.email, req.code, req.newPassword)
    return success({"message": "Password reset successfully"})


def change_password(event, cognito):
    token = extract_access_token(event)
    req = parse_request(ChangePasswordRequest, parse_body(event))
    cognito.change_password(token, req.oldPassword, req.newPassword)
    return success({"message": "Password changed successfully"})


def get_user(event, cognito):
    user = cognito.get_user(extract_access_token(event))
    return success({"username": user.get("Username"), "attributes": user_attributes(user)})


def update_profile(event, cognito):
    token = extract_access_token(event)
    req = parse_request(UpdateProfileRequest, parse_body(event))
    cognito.update_user_attributes(token, {
        "preferred_username": req.preferred_username,
        "name": req.name,
    })
    return success({"message": "Profile updated successfully"})


def delete_user(event, cognito):
    # score records are kept; they still carry the old user_id and name
    cognito.delete_user(extract_access_token(event))
    return success({"message": "User deleted successfully"})


# op -> (allowed methods, handler)
OPS = {
    "signup": ({"POST"}, signup),
    "confirm": ({"POST"}, confirm),
    "resend": ({"POST"}, resend),
    "login": ({"POST"}, login),
    "refresh": ({"POST"}, refresh),
    "forgot-password": ({"POST"}, forgot_password),
    "reset-password": ({"POST"}, reset_password),
    "change-password": ({"POST"}, change_password),
    "me": ({"GET"}, get_user),
    "profile": ({"POST", "PUT", "PATCH"}, update_profile),
    "delete": ({"POST", "DELETE"}, delete_user),
}

# a rejected request on these ops means "log in again"; outages keep their 502
_SESSION_OPS = {"login", "refresh", "me"}


def dispatch(event, cognito):
    method, path = route_of(event)
    op = (event.get("pathParameters") or {}).get("op") or path.rsplit("/", 1)[-1]
    if op not in OPS:
        return failure("unknown op", 400)
    methods, fn = OPS[op]
    if method not in methods:
        return failure(f"Method {method or '(none)'} not allowed for {op}", 405)
    try:
        return fn(event, cognito)
    except ClientError as e:
        err = from_provider_error(e)
        if op in _SESSION_OPS and isinstance(err, ValidationError):
            err = IdentityError(err.message)
        return error_response(err)
    except BotoCoreError as e:
        print(f"[ERROR] Identity provider call failed on {op}: {e}")
        return error_response(ProviderError("Identity provider is unavailable"))
    except LeaderboardError as e:
        return error_response(e)
    except Exception as e:
        print(f"[ERROR] Unhandled exception on {op}: {e!r}")
        return failure("Internal server error", 500)


def handler(event, ctx):
    return dispatch(event, _cognito())
