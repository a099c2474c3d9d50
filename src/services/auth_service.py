"""Auth service - Supabase Auth sign-in flows and marketplace user profiles."""

from typing import Any, Callable, Optional

from supabase import Client

from src.models.user import AuthenticatedUser, OAuthStart
from src.services.supabase_client import (
    create_auth_client,
    create_user_profile,
    get_user_profile,
)
from src.utils.errors import AuthenticationError, SupabaseError
from src.utils.logging import get_structured_logger, mask_email, mask_user_id
from src.utils.settings import Settings

logger = get_structured_logger(__name__)

SIGN_IN_PATH = "/sign-in"
GOOGLE_PROVIDER = "google"

# Key under which supabase auth stores the PKCE verifier in the client storage
CODE_VERIFIER_KEY = "supabase.auth.token-code-verifier"


def _session_user(response: Any) -> AuthenticatedUser:
    user = getattr(response, "user", None)
    session = getattr(response, "session", None)
    if user is None:
        raise AuthenticationError("No user returned by the identity provider")
    token = getattr(session, "access_token", None) if session else None
    return AuthenticatedUser.from_auth_user(user, access_token=token)


async def ensure_user_profile(user: AuthenticatedUser) -> dict:
    """Create the users row on first sign-in; an existing row is left untouched."""
    existing = await get_user_profile(user.user_id)
    if existing:
        return existing

    profile = await create_user_profile(user.to_profile().model_dump(exclude={"timestamp"}))
    logger.info(
        "Created user profile",
        user_id=mask_user_id(user.user_id),
        email=mask_email(user.email)
    )
    return profile


async def sign_up(email: str, password: str, name: str, client: Optional[Client] = None) -> AuthenticatedUser:
    """Register with email/password and create the profile row."""
    client = client or create_auth_client()
    try:
        response = client.auth.sign_up({
            "email": email,
            "password": password,
            "options": {"data": {"name": name}},
        })
    except Exception as e:
        logger.warning("Sign up failed", email=mask_email(email), error_type=type(e).__name__)
        raise AuthenticationError(f"Could not sign up: {e}") from e

    user = _session_user(response)
    if not user.name:
        user.name = name
    await ensure_user_profile(user)
    return user


async def sign_in_with_password(email: str, password: str, client: Optional[Client] = None) -> AuthenticatedUser:
    """Email/password sign-in."""
    client = client or create_auth_client()
    try:
        response = client.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        logger.warning("Password sign in failed", email=mask_email(email), error_type=type(e).__name__)
        raise AuthenticationError("Bad user credentials") from e

    user = _session_user(response)
    logger.info("User signed in", user_id=mask_user_id(user.user_id), provider="email")
    return user


def _stored_code_verifier(client: Client) -> Optional[str]:
    storage = getattr(getattr(client, "options", None), "storage", None)
    if storage is None:
        return None
    return storage.get_item(CODE_VERIFIER_KEY)


def get_google_sign_in_url(
    redirect_to: Optional[str] = None,
    client: Optional[Client] = None
) -> OAuthStart:
    """
    Start the Google OAuth flow.

    The auth client runs the PKCE flow and keeps the code verifier in its
    session storage, which dies with the request; it is returned so the
    caller can hand it to the callback.
    """
    client = client or create_auth_client()
    try:
        response = client.auth.sign_in_with_oauth({
            "provider": GOOGLE_PROVIDER,
            "options": {"redirect_to": redirect_to or Settings.OAUTH_REDIRECT_URL},
        })
    except Exception as e:
        raise AuthenticationError(f"Could not authorize with Google: {e}") from e

    code_verifier = _stored_code_verifier(client)
    if not code_verifier:
        raise AuthenticationError("Could not authorize with Google: no PKCE verifier issued")
    return OAuthStart(url=response.url, code_verifier=code_verifier)


async def complete_oauth_sign_in(
    auth_code: str,
    code_verifier: Optional[str] = None,
    client: Optional[Client] = None
) -> AuthenticatedUser:
    """Exchange the OAuth callback code for a session and make sure the profile exists."""
    if not auth_code:
        raise AuthenticationError("Missing OAuth code")

    client = client or create_auth_client()
    params = {"auth_code": auth_code, "redirect_to": Settings.OAUTH_REDIRECT_URL}
    if code_verifier:
        params["code_verifier"] = code_verifier
    try:
        response = client.auth.exchange_code_for_session(params)
    except Exception as e:
        logger.warning("OAuth code exchange failed", error_type=type(e).__name__)
        raise AuthenticationError("Could not authorize with Google") from e

    user = _session_user(response)
    try:
        await ensure_user_profile(user)
    except SupabaseError as e:
        raise AuthenticationError("Could not authorize with Google") from e

    logger.info("User signed in", user_id=mask_user_id(user.user_id), provider=GOOGLE_PROVIDER)
    return user


async def get_current_user(access_token: Optional[str], client: Optional[Client] = None) -> AuthenticatedUser:
    """Resolve the session behind a bearer token; no token or a stale one is an error."""
    if not access_token:
        raise AuthenticationError("Not signed in")

    client = client or create_auth_client()
    try:
        response = client.auth.get_user(access_token)
    except Exception as e:
        raise AuthenticationError(f"Invalid session: {type(e).__name__}") from e

    if response is None or getattr(response, "user", None) is None:
        raise AuthenticationError("Invalid session")
    return AuthenticatedUser.from_auth_user(response.user, access_token=access_token)


def on_session_change(
    callback: Callable[[Optional[AuthenticatedUser]], None],
    client: Client
) -> Callable[[], None]:
    """
    Subscribe to session changes on a client.

    The callback receives the signed-in user, or None after sign-out.
    Returns a function that cancels the subscription.
    """
    def _listener(event: Any, session: Any) -> None:
        user = getattr(session, "user", None) if session else None
        logger.debug("Auth state changed", auth_event=str(event), signed_in=user is not None)
        callback(
            AuthenticatedUser.from_auth_user(user, access_token=session.access_token)
            if user is not None else None
        )

    subscription = client.auth.on_auth_state_change(_listener)
    return subscription.unsubscribe


def sign_out(client: Client) -> None:
    try:
        client.auth.sign_out()
    except Exception as e:
        raise AuthenticationError(f"Sign out failed: {e}") from e
