"""Keycloak-backed OpenID Connect protocol client."""

import json
import logging
import textwrap
import time
import uuid
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit

from jose import jwt
from jose.exceptions import JWTError
from keycloak import KeycloakOpenID
from keycloak.exceptions import KeycloakError

from ..config.settings import UserManagerSettings
from ..core.exceptions import (
    ConfigurationError,
    ProtocolError,
    UnsupportedOperationError,
)
from ..entities.navigation import (
    SigninRequest,
    SigninResponse,
    SignoutRequest,
    SignoutResponse,
)
from ..entities.protocols import StateStoreProtocol

logger = logging.getLogger(__name__)

REALMS_MARKER = "/realms/"

# Authorization request parameters passed through from caller args
OPTIONAL_SIGNIN_PARAMS = (
    "prompt",
    "display",
    "max_age",
    "ui_locales",
    "id_token_hint",
    "login_hint",
    "acr_values",
)

# Keycloak realm keys are RSA; HMAC algorithms are never accepted
SIGNING_ALGORITHMS = ["RS256"]

# Claims describing the token rather than the user
PROTOCOL_CLAIMS = ("nonce", "at_hash", "iat", "nbf", "exp", "aud", "iss", "c_hash")


def split_authority(authority: str) -> Tuple[str, str]:
    """Split ``{server_url}/realms/{realm}`` into server URL and realm name."""
    authority = authority.rstrip("/")
    index = authority.find(REALMS_MARKER)
    if index <= 0:
        raise ConfigurationError(
            f"Authority is not a Keycloak realm URL: {authority}",
            details={"authority": authority},
        )

    server_url = authority[:index]
    realm_name = authority[index + len(REALMS_MARKER):]
    if not realm_name or "/" in realm_name:
        raise ConfigurationError(
            f"Authority is not a Keycloak realm URL: {authority}",
            details={"authority": authority},
        )

    return server_url, realm_name


def parse_callback_url(url: str) -> Dict[str, str]:
    """Read response parameters from a callback URL's fragment or query."""
    parts = urlsplit(url)
    raw = parts.fragment or parts.query
    return {key: values[0] for key, values in parse_qs(raw).items() if values}


class KeycloakProtocolClient:
    """Builds authorization/end-session requests and parses their callbacks.

    Request state (state id, nonce, redirect URI, caller data) is kept in a
    state store under ``oidc.{state}`` between the request and its callback,
    so a callback can be processed by a different process than the one that
    sent the request.
    """

    def __init__(
        self,
        settings: UserManagerSettings,
        state_store: StateStoreProtocol,
        verify: bool = True,
    ):
        """Initialize Keycloak protocol client."""
        self.settings = settings
        self.state_store = state_store
        self.verify = verify
        self.server_url, self.realm_name = split_authority(settings.authority)

        self._openid_client: Optional[KeycloakOpenID] = None
        self._metadata: Optional[Dict[str, Any]] = None
        self._public_key: Optional[str] = None

    async def __aenter__(self):
        """Async context manager entry."""
        self._ensure_connected()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        # KeycloakOpenID doesn't need explicit closing
        pass

    def _ensure_connected(self) -> KeycloakOpenID:
        """Ensure OpenID client is initialized."""
        if self._openid_client is None:
            self._openid_client = KeycloakOpenID(
                server_url=self.server_url,
                realm_name=self.realm_name,
                client_id=self.settings.client_id,
                client_secret_key=self.settings.client_secret_value,
                verify=self.verify,
            )
            logger.info(f"Initialized OpenID client for realm: {self.realm_name}")

        return self._openid_client

    async def get_metadata(self) -> Dict[str, Any]:
        """Get the realm's discovery document, cached after the first call."""
        if self._metadata is not None:
            return self._metadata

        openid_client = self._ensure_connected()

        try:
            self._metadata = await openid_client.a_well_known()
            logger.debug(f"Retrieved well-known config for realm: {self.realm_name}")

        except KeycloakError as e:
            logger.error(f"Failed to get well-known configuration: {e}")
            raise ProtocolError(f"Well-known config retrieval failed: {e}") from e

        return self._metadata

    async def get_revocation_endpoint(self) -> Optional[str]:
        metadata = await self.get_metadata()
        return metadata.get("revocation_endpoint")

    async def get_public_key(self) -> str:
        """Get the realm's token signing key in PEM format, cached after the first call."""
        if self._public_key is not None:
            return self._public_key

        openid_client = self._ensure_connected()

        try:
            public_key = await openid_client.a_public_key()

        except KeycloakError as e:
            logger.error(f"Failed to get realm public key: {e}")
            raise ProtocolError(f"Realm public key retrieval failed: {e}") from e

        if not isinstance(public_key, str) or not public_key.strip():
            logger.error("Invalid public key response from Keycloak")
            raise ProtocolError("Invalid public key response from Keycloak")

        # Keycloak returns the bare base64 body
        if not public_key.startswith("-----BEGIN"):
            body = "\n".join(textwrap.wrap(public_key.strip(), 64))
            public_key = f"-----BEGIN PUBLIC KEY-----\n{body}\n-----END PUBLIC KEY-----"

        self._public_key = public_key
        logger.debug(f"Retrieved public key for realm: {self.realm_name}")
        return self._public_key

    # Sign-in

    async def create_signin_request(self, args: Dict[str, Any]) -> SigninRequest:
        """Build an authorization request URL and persist its state."""
        redirect_uri = args.get("redirect_uri") or self.settings.redirect_uri
        if not redirect_uri:
            logger.error("No redirect_uri configured")
            raise ConfigurationError("No redirect_uri configured")

        response_type = args.get("response_type") or self.settings.response_type
        scope = args.get("scope") or self.settings.scope

        endpoint = await self._get_endpoint("authorization_endpoint")

        state_id = uuid.uuid4().hex
        nonce = uuid.uuid4().hex if "id_token" in response_type.split() else None

        params = {
            "client_id": self.settings.client_id,
            "redirect_uri": redirect_uri,
            "response_type": response_type,
            "scope": scope,
            "state": state_id,
        }
        if nonce:
            params["nonce"] = nonce

        for key in OPTIONAL_SIGNIN_PARAMS:
            if args.get(key) is not None:
                params[key] = args[key]

        params.update(args.get("extra_query_params") or {})

        await self._store_state(state_id, {
            "id": state_id,
            "nonce": nonce,
            "redirect_uri": redirect_uri,
            "created": int(time.time()),
            "data": args.get("data"),
        })

        logger.debug(f"Created signin request with state {state_id}")
        return SigninRequest(url=f"{endpoint}?{urlencode(params)}", state=state_id)

    async def process_signin_response(self, url: str) -> SigninResponse:
        """Parse an authorization callback, exchanging a code when present."""
        params = parse_callback_url(url)
        state = await self._take_state(params.get("state"))

        if "error" in params:
            logger.warning(f"Authorization server returned error: {params['error']}")
            raise ProtocolError(
                params.get("error_description") or params["error"],
                error_code=params["error"],
                details={"state": state.get("data")},
            )

        tokens: Dict[str, Any] = {
            key: params[key]
            for key in ("access_token", "id_token", "token_type", "expires_in", "refresh_token", "scope")
            if key in params
        }

        code = params.get("code")
        if code:
            tokens.update(await self._exchange_code(code, state.get("redirect_uri")))

        profile: Dict[str, Any] = {}
        id_token = tokens.get("id_token")
        if id_token:
            claims = await self._verify_id_token(id_token, tokens.get("access_token"))
            if state.get("nonce") and claims.get("nonce") != state["nonce"]:
                logger.error("Invalid nonce in id_token")
                raise ProtocolError("Invalid nonce in id_token")
            profile = {key: value for key, value in claims.items() if key not in PROTOCOL_CLAIMS}

        expires_at = None
        if tokens.get("expires_in") is not None:
            try:
                expires_at = int(time.time()) + int(tokens["expires_in"])
            except (TypeError, ValueError) as e:
                raise ProtocolError(f"Invalid expires_in: {tokens['expires_in']}") from e

        return SigninResponse(
            profile=profile,
            access_token=tokens.get("access_token"),
            id_token=id_token,
            token_type=tokens.get("token_type"),
            expires_at=expires_at,
            session_state=params.get("session_state"),
            refresh_token=tokens.get("refresh_token"),
            scope=tokens.get("scope"),
            state=state.get("data"),
        )

    async def _exchange_code(self, code: str, redirect_uri: Optional[str]) -> Dict[str, Any]:
        openid_client = self._ensure_connected()

        try:
            token_response = await openid_client.a_token(
                grant_type="authorization_code",
                code=code,
                redirect_uri=redirect_uri or "",
            )
            logger.info("Exchanged authorization code for tokens")
            return token_response

        except KeycloakError as e:
            logger.error(f"Authorization code exchange failed: {e}")
            raise ProtocolError(f"Authorization code exchange failed: {e}") from e

    async def _verify_id_token(self, id_token: str, access_token: Optional[str] = None) -> Dict[str, Any]:
        """Validate the id_token signature, issuer, audience and expiry and return its claims."""
        public_key = await self.get_public_key()
        metadata = await self.get_metadata()

        try:
            return jwt.decode(
                id_token,
                public_key,
                algorithms=SIGNING_ALGORITHMS,
                audience=self.settings.client_id,
                issuer=metadata.get("issuer"),
                access_token=access_token,
                options={"verify_at_hash": access_token is not None},
            )
        except JWTError as e:
            logger.error(f"Invalid id_token: {e}")
            raise ProtocolError(f"Invalid id_token: {e}") from e

    # Sign-out

    async def create_signout_request(self, args: Dict[str, Any]) -> SignoutRequest:
        """Build an end-session request URL."""
        endpoint = await self._get_endpoint("end_session_endpoint")

        params: Dict[str, Any] = {}
        if args.get("id_token_hint"):
            params["id_token_hint"] = args["id_token_hint"]

        state_id = None
        post_logout_redirect_uri = args.get("post_logout_redirect_uri") or self.settings.post_logout_redirect_uri
        if post_logout_redirect_uri:
            state_id = uuid.uuid4().hex
            params["post_logout_redirect_uri"] = post_logout_redirect_uri
            params["client_id"] = self.settings.client_id
            params["state"] = state_id
            await self._store_state(state_id, {
                "id": state_id,
                "created": int(time.time()),
                "data": args.get("data"),
            })

        params.update(args.get("extra_query_params") or {})

        url = f"{endpoint}?{urlencode(params)}" if params else endpoint
        return SignoutRequest(url=url, state=state_id)

    async def process_signout_response(self, url: str) -> SignoutResponse:
        """Parse an end-session callback."""
        params = parse_callback_url(url)

        data = None
        if params.get("state"):
            state = await self._take_state(params["state"])
            data = state.get("data")

        if "error" in params:
            logger.warning(f"Authorization server returned error: {params['error']}")
            raise ProtocolError(
                params.get("error_description") or params["error"],
                error_code=params["error"],
                details={"state": data},
            )

        return SignoutResponse(state=data)

    # State handling

    @staticmethod
    def _state_key(state_id: str) -> str:
        return f"oidc.{state_id}"

    async def _store_state(self, state_id: str, state: Dict[str, Any]) -> None:
        await self.state_store.set(self._state_key(state_id), json.dumps(state))

    async def _take_state(self, state_id: Optional[str]) -> Dict[str, Any]:
        if not state_id:
            logger.error("No state in response")
            raise ProtocolError("No state in response")

        key = self._state_key(state_id)
        stored = await self.state_store.get(key)
        if not stored:
            logger.error("No matching state found in storage")
            raise ProtocolError("No matching state found in storage", details={"state": state_id})

        await self.state_store.remove(key)

        try:
            return json.loads(stored)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Stored state is corrupted: {e}") from e

    async def _get_endpoint(self, name: str) -> str:
        metadata = await self.get_metadata()
        endpoint = metadata.get(name)
        if not endpoint:
            logger.error(f"No {name} in metadata")
            raise UnsupportedOperationError(f"No {name} in metadata")
        return endpoint
