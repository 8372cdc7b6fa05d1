"""Session lifecycle orchestrator - sequences sign-in, sign-out, session query
and token revocation across the redirect, popup and iframe navigators while
keeping the stored user consistent with the last completed protocol exchange.

Concurrency policy: every public operation is one sequential chain of awaits.
Overlapping flows that share the storage key are not serialized; the last
write to the store wins and callers must avoid starting conflicting flows
concurrently. The revocation client cache is populated without a lock, so two
revocations racing on first use may both run discovery and one of the two
clients is kept.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Union

from ..adapters.memory_state_store import InMemoryStateStore
from ..adapters.token_revocation_client import TokenRevocationClient
from ..config.settings import UserManagerSettings
from ..core.exceptions import (
    ConfigurationError,
    NavigationTimeoutError,
    OidcSessionError,
    UnsupportedOperationError,
)
from ..entities.navigation import (
    NavigationResponse,
    NavigatorParams,
    SessionStatus,
    SignoutResponse,
)
from ..entities.protocols import (
    BackgroundServiceProtocol,
    NavigatorHandleProtocol,
    NavigatorProtocol,
    ProtocolClientProtocol,
    RevocationClientFactory,
    RevocationClientProtocol,
    StateStoreProtocol,
)
from ..entities.user import User
from .session_monitor import SessionMonitor
from .silent_renew_service import SilentRenewService
from .user_manager_events import UserManagerEvents

logger = logging.getLogger(__name__)

Args = Optional[Dict[str, Any]]


class UserManager:
    """Orchestrates the user session lifecycle of one relying-party client."""

    def __init__(
        self,
        settings: Union[UserManagerSettings, Dict[str, Any]],
        protocol_client: ProtocolClientProtocol,
        user_store: Optional[StateStoreProtocol] = None,
        redirect_navigator: Optional[NavigatorProtocol] = None,
        popup_navigator: Optional[NavigatorProtocol] = None,
        iframe_navigator: Optional[NavigatorProtocol] = None,
        revocation_client_factory: Optional[RevocationClientFactory] = None,
        silent_renew_service_factory: Callable[["UserManager"], BackgroundServiceProtocol] = SilentRenewService,
        session_monitor_factory: Callable[["UserManager"], BackgroundServiceProtocol] = SessionMonitor,
    ):
        """Initialize user manager with its collaborators."""
        if not isinstance(settings, UserManagerSettings):
            settings = UserManagerSettings(**settings)

        self.settings = settings
        self.protocol_client = protocol_client
        self.user_store = user_store if user_store is not None else InMemoryStateStore()
        self.redirect_navigator = redirect_navigator
        self.popup_navigator = popup_navigator
        self.iframe_navigator = iframe_navigator
        self._revocation_client_factory = revocation_client_factory or self._create_revocation_client
        self._token_revocation_client: Optional[RevocationClientProtocol] = None

        self._events = UserManagerEvents(
            access_token_expiring_notification_time=settings.access_token_expiring_notification_time
        )

        # Both services subscribe to the events object, so it must exist first
        self._silent_renew_service: Optional[BackgroundServiceProtocol] = None
        self._session_monitor: Optional[BackgroundServiceProtocol] = None

        if settings.automatic_silent_renew:
            logger.info("automatic_silent_renew is configured, setting up silent renew")
            self._silent_renew_service = silent_renew_service_factory(self)

        if settings.monitor_session:
            logger.info("monitor_session is configured, setting up session monitor")
            self._session_monitor = session_monitor_factory(self)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start_services()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        self.stop_services()

    @property
    def events(self) -> UserManagerEvents:
        return self._events

    @property
    def silent_renew_service(self) -> Optional[BackgroundServiceProtocol]:
        return self._silent_renew_service

    @property
    def session_monitor(self) -> Optional[BackgroundServiceProtocol]:
        return self._session_monitor

    async def start_services(self) -> None:
        """Start the configured background services."""
        for service in (self._silent_renew_service, self._session_monitor):
            if service is not None:
                await service.start()

    def stop_services(self) -> None:
        """Stop background services and pending token timers."""
        for service in (self._silent_renew_service, self._session_monitor):
            if service is not None:
                service.stop()
        self._events.cancel_timers()

    # User persistence

    async def get_user(self) -> Optional[User]:
        """Load the stored user, notifying ``load`` when one is found."""
        logger.info("UserManager.get_user")

        user = await self._load_user()
        if user:
            logger.info("user loaded")
            await self._events.load(user, from_storage=True)
            return user

        logger.info("user not found in storage")
        return None

    async def remove_user(self) -> None:
        """Remove the stored user and notify ``unload``."""
        logger.info("UserManager.remove_user")

        await self._store_user(None)
        logger.info("user removed from storage")
        await self._events.unload()

    @property
    def user_store_key(self) -> str:
        return f"user:{self.settings.authority}:{self.settings.client_id}"

    async def _load_user(self) -> Optional[User]:
        logger.info("_load_user")

        storage_string = await self.user_store.get(self.user_store_key)
        if storage_string:
            logger.info("user storage string loaded")
            return User.from_storage_string(storage_string)

        logger.info("no user storage string")
        return None

    async def _store_user(self, user: Optional[User]) -> None:
        if user:
            logger.info("_store_user storing user")
            await self.user_store.set(self.user_store_key, user.to_storage_string())
        else:
            logger.info("_store_user removing user storage")
            await self.user_store.remove(self.user_store_key)

    # Sign-in

    async def signin_redirect(self, args: Args = None) -> NavigationResponse:
        """Start a full-page redirect sign-in.

        Only the request half runs here; the page receiving the redirect must
        call ``signin_redirect_callback``. Redirect URI resolution for this flow
        is left to the protocol client.
        """
        logger.info("UserManager.signin_redirect")

        navigator = self._require_navigator(self.redirect_navigator, "redirect")
        return await self._signin_start(dict(args or {}), navigator)

    async def signin_redirect_callback(self, url: Optional[str] = None) -> User:
        """Complete a redirect sign-in from the callback URL."""
        logger.info("UserManager.signin_redirect_callback")

        return await self._signin_end(url or self._redirect_url())

    async def signin_popup(self, args: Args = None) -> User:
        """Sign in through a popup window and return the stored user."""
        logger.info("UserManager.signin_popup")

        args = dict(args or {})
        url = args.get("redirect_uri") or self.settings.popup_redirect_uri or self.settings.redirect_uri
        if not url:
            logger.error("No popup_redirect_uri or redirect_uri configured")
            raise ConfigurationError("No popup_redirect_uri or redirect_uri configured")

        navigator = self._require_navigator(self.popup_navigator, "popup")
        navigator_params = self._popup_params(url, args)

        args["redirect_uri"] = url
        args["display"] = "popup"

        return await self._signin(args, navigator, navigator_params)

    async def signin_popup_callback(self, url: str) -> NavigationResponse:
        """Notify the opener from the page the popup was redirected to."""
        logger.info("UserManager.signin_popup_callback")

        navigator = self._require_navigator(self.popup_navigator, "popup")
        return await navigator.callback(url)

    async def signin_silent(self, args: Args = None) -> User:
        """Sign in through a hidden frame with ``prompt=none``."""
        logger.info("UserManager.signin_silent")

        args = dict(args or {})
        url = args.get("redirect_uri") or self.settings.silent_redirect_uri
        if not url:
            logger.error("No silent_redirect_uri configured")
            raise ConfigurationError("No silent_redirect_uri configured")

        navigator = self._require_navigator(self.iframe_navigator, "iframe")
        navigator_params = self._silent_params(url, args)

        args["redirect_uri"] = url
        args["prompt"] = "none"

        return await self._signin(args, navigator, navigator_params)

    async def signin_silent_callback(self, url: str) -> NavigationResponse:
        """Notify the parent from the page the hidden frame was redirected to."""
        logger.info("UserManager.signin_silent_callback")

        navigator = self._require_navigator(self.iframe_navigator, "iframe")
        return await navigator.callback(url)

    async def query_session_status(self, args: Args = None) -> Optional[SessionStatus]:
        """Ask the authorization server whether a session is active.

        Independent of the stored user. Returns None when there is no active
        remote session.
        """
        logger.info("UserManager.query_session_status")

        args = dict(args or {})
        url = args.get("redirect_uri") or self.settings.silent_redirect_uri
        if not url:
            logger.error("No silent_redirect_uri configured")
            raise ConfigurationError("No silent_redirect_uri configured")

        navigator = self._require_navigator(self.iframe_navigator, "iframe")
        navigator_params = self._silent_params(url, args)

        args["redirect_uri"] = url
        args["prompt"] = "none"
        args["response_type"] = "id_token"
        args["scope"] = "openid"

        navigation_response = await self._signin_start(args, navigator, navigator_params)
        signin_response = await self.protocol_client.process_signin_response(navigation_response.url)
        logger.info("got signin response")

        sub = (signin_response.profile or {}).get("sub")
        if signin_response.session_state and sub:
            return SessionStatus(session_state=signin_response.session_state, sub=sub)

        logger.info("no active session at the authorization server")
        return None

    async def _signin(
        self,
        args: Dict[str, Any],
        navigator: NavigatorProtocol,
        navigator_params: Optional[NavigatorParams] = None,
    ) -> User:
        logger.info("_signin")

        navigation_response = await self._signin_start(args, navigator, navigator_params)
        return await self._signin_end(navigation_response.url)

    async def _signin_start(
        self,
        args: Dict[str, Any],
        navigator: NavigatorProtocol,
        navigator_params: Optional[NavigatorParams] = None,
    ) -> NavigationResponse:
        logger.info("_signin_start")

        navigator_params = navigator_params or NavigatorParams()
        handle = await navigator.prepare(navigator_params)
        logger.info("got navigator window handle")

        signin_request = await self.protocol_client.create_signin_request(args)
        logger.info("got signin request")

        navigator_params.url = signin_request.url
        return await self._navigate(handle, navigator_params)

    async def _signin_end(self, url: str) -> User:
        logger.info("_signin_end")

        signin_response = await self.protocol_client.process_signin_response(url)
        logger.info("got signin response")

        user = User.from_signin_response(signin_response)

        await self._store_user(user)
        logger.info("user stored")

        await self._events.load(user)
        return user

    # Sign-out

    async def signout_redirect(self, args: Args = None) -> NavigationResponse:
        """Start a full-page redirect sign-out.

        The local user is removed before the request is sent; the page
        receiving the redirect calls ``signout_redirect_callback``.
        """
        logger.info("UserManager.signout_redirect")

        navigator = self._require_navigator(self.redirect_navigator, "redirect")
        return await self._signout_start(dict(args or {}), navigator)

    async def signout_redirect_callback(self, url: Optional[str] = None) -> SignoutResponse:
        """Complete a redirect sign-out from the callback URL."""
        logger.info("UserManager.signout_redirect_callback")

        return await self._signout_end(url or self._redirect_url())

    async def signout_popup(self, args: Args = None) -> SignoutResponse:
        """Sign out through a popup window and return the parsed response."""
        logger.info("UserManager.signout_popup")

        args = dict(args or {})
        url = args.get("redirect_uri") or self.settings.popup_redirect_uri or self.settings.redirect_uri
        if not url:
            logger.error("No popup_redirect_uri or redirect_uri configured")
            raise ConfigurationError("No popup_redirect_uri or redirect_uri configured")

        navigator = self._require_navigator(self.popup_navigator, "popup")
        navigator_params = self._popup_params(url, args)

        args.pop("redirect_uri", None)
        args.setdefault("post_logout_redirect_uri", url)

        return await self._signout(args, navigator, navigator_params)

    async def signout_popup_callback(self, url: str) -> NavigationResponse:
        """Notify the opener from the page the sign-out popup was redirected to."""
        logger.info("UserManager.signout_popup_callback")

        navigator = self._require_navigator(self.popup_navigator, "popup")
        return await navigator.callback(url)

    async def _signout(
        self,
        args: Dict[str, Any],
        navigator: NavigatorProtocol,
        navigator_params: Optional[NavigatorParams] = None,
    ) -> SignoutResponse:
        logger.info("_signout")

        navigation_response = await self._signout_start(args, navigator, navigator_params)
        return await self._signout_end(navigation_response.url)

    async def _signout_start(
        self,
        args: Dict[str, Any],
        navigator: NavigatorProtocol,
        navigator_params: Optional[NavigatorParams] = None,
    ) -> NavigationResponse:
        logger.info("_signout_start")

        navigator_params = navigator_params or NavigatorParams()
        handle = await navigator.prepare(navigator_params)
        logger.info("got navigator window handle")

        user = await self.get_user()
        logger.info("loaded current user from storage")

        # Revocation is best effort here; it must never keep the local user alive
        try:
            await self._revoke_internal(user)
        except OidcSessionError as e:
            logger.warning(f"Access token revocation failed during signout: {e}")

        id_token = args.get("id_token_hint") or (user.id_token if user else None)
        if id_token:
            logger.info("Setting id_token into signout request")
            args["id_token_hint"] = id_token

        # Local sign-out is authoritative: it happens before the request is sent
        await self.remove_user()
        logger.info("user removed, creating signout request")

        signout_request = await self.protocol_client.create_signout_request(args)
        logger.info("got signout request")

        navigator_params.url = signout_request.url
        return await self._navigate(handle, navigator_params)

    async def _signout_end(self, url: str) -> SignoutResponse:
        logger.info("_signout_end")

        signout_response = await self.protocol_client.process_signout_response(url)
        logger.info("got signout response")

        return signout_response

    # Revocation

    async def revoke_access_token(self) -> None:
        """Revoke the stored user's access token and keep the identity."""
        logger.info("UserManager.revoke_access_token")

        user = await self.get_user()
        if not user:
            logger.info("no user loaded")
            return

        await self._revoke_internal(user)

        logger.info("removing token properties from user and re-storing")
        user.clear_access_token()

        await self._store_user(user)
        logger.info("user stored")

        await self._events.load(user)

    async def _revoke_internal(self, user: Optional[User]) -> None:
        logger.info("checking if token revocation necessary")

        access_token = user.access_token if user else None
        # JWTs are self-contained and simply expire; only reference tokens are revoked
        if not access_token or "." in access_token:
            logger.info("no need to revoke due to no token or JWT")
            return

        client = await self._get_revocation_client()
        logger.info("calling token revocation endpoint")
        await client.revoke(access_token)

    async def _get_revocation_client(self) -> RevocationClientProtocol:
        if self._token_revocation_client is not None:
            logger.debug("revocation client found in cache")
            return self._token_revocation_client

        logger.debug("revocation client not found in cache")

        url = await self.protocol_client.get_revocation_endpoint()
        if not url:
            logger.error("Revocation not supported")
            raise UnsupportedOperationError("Revocation not supported")

        self._token_revocation_client = self._revocation_client_factory(
            url=url, client_id=self.settings.client_id
        )
        logger.info("token revocation client created and cached")
        return self._token_revocation_client

    def _create_revocation_client(self, url: str, client_id: str) -> RevocationClientProtocol:
        return TokenRevocationClient(
            url=url,
            client_id=client_id,
            client_secret=self.settings.client_secret_value,
            timeout=self.settings.revocation_timeout,
        )

    # Navigation helpers

    async def _navigate(
        self,
        handle: NavigatorHandleProtocol,
        navigator_params: NavigatorParams,
    ) -> NavigationResponse:
        timeout = navigator_params.timeout
        if timeout is None:
            return await handle.navigate(navigator_params)

        # A TimeoutError raised by the navigator itself propagates unchanged
        task = asyncio.ensure_future(handle.navigate(navigator_params))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task not in done:
            task.cancel()
            logger.error(f"Navigation timed out after {timeout}s")
            raise NavigationTimeoutError(
                f"Navigation timed out after {timeout}s",
                details={"timeout": timeout},
            )

        return task.result()

    def _popup_params(self, url: str, args: Dict[str, Any]) -> NavigatorParams:
        return NavigatorParams(
            start_url=url,
            popup_window_features=args.pop("popup_window_features", None) or self.settings.popup_window_features,
            popup_window_target=args.pop("popup_window_target", None) or self.settings.popup_window_target,
            timeout=args.pop("popup_request_timeout", None) or self.settings.popup_request_timeout,
        )

    def _silent_params(self, url: str, args: Dict[str, Any]) -> NavigatorParams:
        return NavigatorParams(
            start_url=url,
            timeout=args.pop("silent_request_timeout", None) or self.settings.silent_request_timeout,
        )

    def _redirect_url(self) -> str:
        navigator = self._require_navigator(self.redirect_navigator, "redirect")
        if not navigator.url:
            logger.error("No callback url available from redirect navigator")
            raise ConfigurationError("No callback url available from redirect navigator")
        return navigator.url

    @staticmethod
    def _require_navigator(navigator: Optional[NavigatorProtocol], kind: str) -> NavigatorProtocol:
        if navigator is None:
            logger.error(f"No {kind} navigator configured")
            raise ConfigurationError(f"No {kind} navigator configured")
        return navigator
