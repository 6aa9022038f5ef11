import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx
from pydantic import BaseModel, ConfigDict
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    stop_never,
    wait_fixed,
)

from commerce_adaptor.core.config import get_settings
from commerce_adaptor.core.exceptions import (
    AuthenticationError,
    MissingConfigFieldsError,
    RateLimitError,
    TransportError,
)
from commerce_adaptor.core.logging import get_logger
from commerce_adaptor.infrastructure.error import ErrorHandler

logger = get_logger(__name__)

# Configuration fields shared by every client-credentials adaptor
CLIENT_CREDENTIAL_FIELDS = frozenset({"auth_url", "api_url", "client_id", "client_secret"})

HeaderBuilder = Callable[[Dict[str, Any]], Dict[str, str]]
Sleeper = Callable[[float], Awaitable[None]]


class AuthState(str, Enum):
    """Lifecycle of an OAuthRestClient's session."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


class OAuthClientConfig(BaseModel):
    """Endpoints an OAuthRestClient talks to."""
    auth_url: str
    api_url: str


class AuthSession(BaseModel):
    """
    An issued token, the request headers built from it and the API client.

    Sessions are immutable; a refresh produces a new one. Every session of a
    client shares that client's single API connection pool.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    token: str
    token_type: str
    expires_at_ms: int
    headers: Dict[str, str]
    client: httpx.AsyncClient

    def is_expired(self, now_ms: Optional[int] = None) -> bool:
        """Check if the token is expired."""
        now_ms = int(time.time() * 1000) if now_ms is None else now_ms
        return now_ms >= self.expires_at_ms


def default_headers(token_data: Dict[str, Any]) -> Dict[str, str]:
    """Authorization header in the ``<token_type> <access_token>`` form."""
    return {"Authorization": f"{token_data['token_type']} {token_data['access_token']}"}


def _is_rate_limited(response: httpx.Response) -> bool:
    return response.status_code == 429


class OAuthRestClient:
    """
    Client-credentials OAuth client for a vendor REST API.

    One session is kept per client. Authentication is single-flight: the
    first caller publishes a pending future before it yields and every
    concurrent caller awaits that same future. The token is refreshed in
    the background shortly before it expires, through the same guard.

    ``get`` retries rate limited (429) requests after a fixed backoff and
    returns None for 404 instead of raising. Every other failure raises
    TransportError after being logged once.
    """

    def __init__(
        self,
        config: OAuthClientConfig,
        payload: Mapping[str, Any],
        get_headers: Optional[HeaderBuilder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        refresh_ratio: Optional[float] = None,
        backoff_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        json_payload: bool = False,
        error_handler: Optional[ErrorHandler] = None,
        sleep: Optional[Sleeper] = None
    ):
        """
        Initialize the OAuth rest client.

        Args:
            config: Token endpoint and API base URL
            payload: Credential payload forwarded as-is to the token endpoint
            get_headers: Builds request headers from the token response
            transport: Optional httpx transport shared by all requests
            timeout: Request timeout in seconds
            refresh_ratio: Fraction of the token lifetime after which it is refreshed
            backoff_seconds: Wait before retrying a rate limited request
            max_retries: Cap on rate limit retries, None for no cap
            json_payload: Send the payload as JSON instead of form data
            error_handler: Handler used to log failures
            sleep: Coroutine used to wait out a rate limit backoff
        """
        settings = get_settings()

        self.config = config
        self.payload = dict(payload)
        self.get_headers = get_headers or default_headers
        self.timeout = settings.DEFAULT_TIMEOUT if timeout is None else timeout
        self.refresh_ratio = settings.OAUTH_REFRESH_RATIO if refresh_ratio is None else refresh_ratio
        self.backoff_seconds = (
            settings.RATE_LIMIT_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )
        self.max_retries = settings.RATE_LIMIT_MAX_RETRIES if max_retries is None else max_retries
        self.default_lifetime = settings.DEFAULT_TOKEN_LIFETIME
        self.json_payload = json_payload
        self.error_handler = error_handler or ErrorHandler(logger)
        self.sleep = sleep or asyncio.sleep

        if not 0 < self.refresh_ratio < 1:
            raise ValueError("refresh_ratio must be between 0 and 1 (exclusive)")

        self._transport = transport or httpx.AsyncHTTPTransport()
        self._auth_client = httpx.AsyncClient(transport=self._transport, timeout=self.timeout)
        # Token headers travel per request, so one API client outlives every session
        self._api_client = httpx.AsyncClient(
            base_url=self.config.api_url,
            transport=self._transport,
            timeout=self.timeout
        )

        self._state = AuthState.UNAUTHENTICATED
        self._session: Optional[AuthSession] = None
        self._pending: Optional["asyncio.Future[AuthSession]"] = None
        self._refresh_handle: Optional[asyncio.TimerHandle] = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs: Any) -> "OAuthRestClient":
        """
        Build a client from the common client-credential configuration fields.

        Args:
            config: Adaptor configuration with auth_url, api_url, client_id,
                client_secret and optionally scope
            **kwargs: Passed through to the constructor

        Raises:
            MissingConfigFieldsError: If a client-credential field is absent
        """
        missing = CLIENT_CREDENTIAL_FIELDS - set(config)
        if missing:
            raise MissingConfigFieldsError(missing, vendor=config.get("vendor"))

        payload = {
            "grant_type": "client_credentials",
            "client_id": config["client_id"],
            "client_secret": config["client_secret"],
        }
        if config.get("scope"):
            payload["scope"] = config["scope"]

        return cls(
            OAuthClientConfig(auth_url=config["auth_url"], api_url=config["api_url"]),
            payload,
            **kwargs
        )

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    async def authenticate(self) -> AuthSession:
        """
        Return the live session, authenticating first if there is none.

        Concurrent callers share one in-flight authentication.

        Raises:
            AuthenticationError: If the token request fails
        """
        if self._pending is None:
            if self._session is not None:
                return self._session
            self._start_authentication(AuthState.AUTHENTICATING)
        return await asyncio.shield(self._pending)

    async def get(self, url: str, **kwargs: Any) -> Any:
        """
        Issue an authenticated GET and return the decoded JSON body.

        Rate limited responses are retried after ``backoff_seconds``; a 404
        returns None rather than raising.

        Args:
            url: URL, absolute or relative to the API base URL
            **kwargs: Passed through to ``httpx.AsyncClient.get``

        Raises:
            TransportError: For any other failed request
            RateLimitError: If a retry cap is set and exhausted
        """
        retrying = AsyncRetrying(
            retry=retry_if_result(_is_rate_limited),
            wait=wait_fixed(self.backoff_seconds),
            stop=stop_never if self.max_retries is None else stop_after_attempt(self.max_retries + 1),
            before_sleep=lambda state: logger.warning(
                f"Rate limited on [ {url} ] (attempt {state.attempt_number}), "
                f"retrying in {self.backoff_seconds}s"
            ),
            sleep=self.sleep,
        )
        try:
            response = await retrying(self._send_get, url, **kwargs)
        except RetryError as e:
            raise self._failure(
                RateLimitError(url=url, attempts=e.last_attempt.attempt_number)
            ) from e

        if response.status_code == 404:
            # Not found is a normal answer, not an error
            logger.debug(f"GET [ {url} ] returned 404, returning empty result")
            return None

        if response.is_error:
            raise self._failure(
                TransportError(
                    f"Error while getting URL [ {url} ]: "
                    f"{response.status_code} {response.reason_phrase}",
                    status=response.status_code,
                    url=url
                )
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise self._failure(
                TransportError(
                    f"Invalid JSON from URL [ {url} ]",
                    status=response.status_code,
                    url=url,
                    original_exception=e
                )
            ) from e

    async def _send_get(self, url: str, **kwargs: Any) -> httpx.Response:
        # One attempt; re-authenticates if a refresh replaced the session meanwhile
        session = await self.authenticate()
        headers = {**session.headers, **(kwargs.pop("headers", None) or {})}
        try:
            return await session.client.get(url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise self._failure(
                TransportError(
                    f"Error while getting URL [ {url} ]: {e.__class__.__name__} {str(e)}",
                    url=url,
                    original_exception=e
                )
            ) from e

    async def aclose(self) -> None:
        """Cancel the refresh timer and any pending authentication, then close connections."""
        self._cancel_refresh_timer()
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        self._session = None
        self._state = AuthState.UNAUTHENTICATED
        await self._api_client.aclose()
        await self._auth_client.aclose()

    async def __aenter__(self) -> "OAuthRestClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _start_authentication(self, state: AuthState) -> "asyncio.Future[AuthSession]":
        # Published before the caller yields, so later callers find it
        self._state = state
        self._pending = asyncio.ensure_future(self._authenticate())
        return self._pending

    async def _authenticate(self) -> AuthSession:
        try:
            session, expires_in = await self._request_token()
        except Exception:
            self._pending = None
            self._session = None
            self._state = AuthState.UNAUTHENTICATED
            raise
        except asyncio.CancelledError:
            self._pending = None
            self._state = AuthState.UNAUTHENTICATED
            raise

        self._pending = None
        self._session = session
        self._state = AuthState.AUTHENTICATED
        self._schedule_refresh(expires_in)
        return session

    async def _request_token(self):
        logger.info(f"OAuth authenticate: {self.config.auth_url}")
        auth_url = self.config.auth_url
        try:
            if self.json_payload:
                response = await self._auth_client.post(auth_url, json=self.payload)
            else:
                response = await self._auth_client.post(
                    auth_url,
                    data=self.payload,
                    headers={"Content-Type": "application/x-www-form-urlencoded"}
                )
            response.raise_for_status()
            token_data = response.json()
        except httpx.HTTPStatusError as e:
            raise self._failure(
                AuthenticationError(
                    f"Failed to get OAuth token: {e.response.status_code} {e.response.reason_phrase}",
                    status=e.response.status_code,
                    url=auth_url,
                    original_exception=e
                )
            ) from e
        except httpx.RequestError as e:
            raise self._failure(
                AuthenticationError(
                    f"Failed to connect to token endpoint: {str(e)}",
                    url=auth_url,
                    original_exception=e
                )
            ) from e
        except ValueError as e:
            raise self._failure(
                AuthenticationError(
                    "Token endpoint returned an invalid JSON body",
                    status=response.status_code,
                    url=auth_url,
                    original_exception=e
                )
            ) from e

        if not isinstance(token_data, dict) or not token_data.get("access_token"):
            raise self._failure(
                AuthenticationError("Token response did not contain an access_token", url=auth_url)
            )

        token_data.setdefault("token_type", "Bearer")
        expires_in = float(token_data.get("expires_in") or self.default_lifetime)

        session = AuthSession(
            token=token_data["access_token"],
            token_type=token_data["token_type"],
            expires_at_ms=int((time.time() + expires_in) * 1000),
            headers=self.get_headers(token_data),
            client=self._api_client
        )
        logger.info(f"Successfully obtained OAuth token from {auth_url}, expires in {expires_in:.0f}s")
        return session, expires_in

    def _schedule_refresh(self, expires_in: float) -> None:
        self._cancel_refresh_timer()
        delay = expires_in * self.refresh_ratio
        loop = asyncio.get_running_loop()
        self._refresh_handle = loop.call_later(delay, self._refresh)
        logger.debug(f"Token refresh scheduled in {delay:.1f}s")

    def _cancel_refresh_timer(self) -> None:
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None

    def _refresh(self) -> None:
        self._refresh_handle = None
        if self._pending is not None:
            # A caller-driven authentication is already in flight
            return
        logger.info(f"Refreshing OAuth token: {self.config.auth_url}")
        pending = self._start_authentication(AuthState.REFRESHING)
        pending.add_done_callback(self._on_refresh_done)

    def _on_refresh_done(self, future: "asyncio.Future[AuthSession]") -> None:
        if future.cancelled():
            return
        if future.exception() is not None:
            logger.warning("Token refresh failed; the next request will re-authenticate")

    def _failure(self, error: TransportError) -> TransportError:
        self.error_handler.handle_error(error, source="oauth_rest_client")
        return error
