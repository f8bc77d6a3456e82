"""
OCC Admin API Client — Handles authentication and REST calls to Commerce Cloud.

Authentication flow (client_credentials grant):
    POST /ccadmin/v1/login
    Headers: Authorization: Bearer <application key>
    Body: grant_type=client_credentials
    Response: {"access_token": "eyJhbGciOi...", "expires_in": 300}

    The access token is attached as a Bearer header to all subsequent requests
    and refreshed lazily once it is within TOKEN_EXPIRY_BUFFER_SECONDS of expiry.

Endpoint reference:
- GET    /ccadmin/v1/profiles?q=&offset=&limit=&fields=
- GET    /ccadmin/v1/products?q=&offset=&limit=&fields=
- DELETE /ccadmin/v1/products/{id}
- GET    /ccadmin/v1/orders/{id}?fields=
- GET    /ccadmin/v1/orders?q=&queryFormat=&sortBy=&sortOrder=&limit=&offset=
"""

import threading
import time
import requests
from typing import Dict, Any, Optional, List

from .errors import AuthenticationError, ConfigurationError, RemoteRequestError
from .settings import (
    DEFAULT_TOKEN_LIFETIME_SECONDS,
    ENDPOINTS,
    ORDER_QUERY_FORMAT,
    TOKEN_EXPIRY_BUFFER_SECONDS,
)


def build_query_param(query_field: str, query_value: str) -> str:
    """Render a field/value search as an upstream "contains" predicate."""
    return f'{query_field} co "{query_value}"'


def build_fields_param(fields) -> str:
    """Render requested output fields as "items.a,items.b".

    Accepts a comma-separated string or a list. Returns "" when nothing is requested.
    """
    if not fields:
        return ""
    if isinstance(fields, str):
        fields = fields.split(",")
    names = [f.strip() for f in fields if f and f.strip()]
    return ",".join(f"items.{name}" for name in names)


class OCCAuthClient:
    """Acquires and caches admin access tokens for one environment.

    The client is the sole owner of the token and its expiry instant; nothing
    else caches credentials.
    """

    def __init__(
        self,
        base_url: str,
        app_key: str,
        environment: str = "",
        debug: bool = False,
    ):
        self.base_url = base_url.rstrip("/")
        self.app_key = app_key
        self.environment = environment
        self.debug = debug
        self._token = None
        self._expires_at = 0.0
        self.expires_in = None
        # Bulk workers share one client; only one of them logs in at a time
        self._refresh_lock = threading.Lock()

    def is_token_expired(self) -> bool:
        if not self._token:
            return True
        return time.time() >= self._expires_at - TOKEN_EXPIRY_BUFFER_SECONDS

    def authenticate(self) -> str:
        """Exchange the application key for a fresh access token."""
        url = f"{self.base_url}{ENDPOINTS['login']}"
        headers = {
            "Authorization": f"Bearer {self.app_key}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

        if self.debug:
            print(f"  Authenticating in {self.environment or 'default'} environment")

        try:
            response = requests.post(
                url, data="grant_type=client_credentials", headers=headers, timeout=30
            )
            response.raise_for_status()
            data = response.json()
            token = data["access_token"]
            expires_in = int(data.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SECONDS)
        except requests.HTTPError as e:
            detail = e.response.text if e.response is not None else str(e)
            raise AuthenticationError(f"Authentication failed: {detail}") from e
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
            raise AuthenticationError(f"Authentication failed: {e}") from e

        self.expires_in = expires_in
        self._token = token
        self._expires_at = time.time() + self.expires_in

        if self.debug:
            print(f"  Token acquired, expires in {self.expires_in}s")

        return self._token

    def get_token(self) -> str:
        """Return the cached token, refreshing it when missing or about to expire."""
        with self._refresh_lock:
            if self.is_token_expired():
                if self._token and self.debug:
                    print("  Token expired or about to expire, refreshing")
                self.authenticate()
            return self._token

    @property
    def token(self) -> Optional[str]:
        return self._token


class OCCAdminClient:
    """Client for the Commerce Cloud admin REST API.

    Every call goes through _request(), which refreshes the bearer token when
    needed and maps requests exceptions to RemoteRequestError.
    """

    def __init__(
        self,
        base_url: str,
        auth_client: OCCAuthClient,
        debug: bool = False,
    ):
        if not base_url:
            raise ConfigurationError("Base URL is required")
        self.base_url = base_url.rstrip("/")
        self._auth = auth_client
        self.debug = debug
        self._session = requests.Session()

    @classmethod
    def for_environment(cls, environment: str, env_config: Dict[str, str], debug: bool = False):
        """Build a client from a {"base_url", "bearer_token"} environment entry."""
        base_url = env_config.get("base_url", "")
        bearer_token = env_config.get("bearer_token", "")
        if not base_url or not bearer_token:
            prefix = environment.upper()
            raise ConfigurationError(
                f"Missing configuration for environment '{environment}'. "
                f"Set {prefix}_BASE_URL and {prefix}_BEARER_TOKEN."
            )
        auth = OCCAuthClient(base_url, bearer_token, environment, debug)
        return cls(base_url, auth, debug)

    @property
    def auth(self) -> OCCAuthClient:
        return self._auth

    def authenticate(self) -> str:
        return self._auth.authenticate()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        token = self._auth.get_token()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })
        url = f"{self.base_url}{path}"

        if self.debug:
            print(f"  {method} {url} {kwargs.get('params') or ''}")

        try:
            response = self._session.request(method, url, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            body = e.response.text if e.response is not None else ""
            raise RemoteRequestError(
                f"{method} {path} failed with status {status}: {body}".strip(), status
            ) from e
        except requests.RequestException as e:
            raise RemoteRequestError(f"{method} {path} failed: {e}") from e
        return response

    def _get_json(self, path: str, **kwargs) -> Dict[str, Any]:
        response = self._request("GET", path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteRequestError(
                f"GET {path} returned a body that is not JSON: {e}", response.status_code
            ) from e

    def _search(self, endpoint: str, query: str, offset: int, limit: int, fields="") -> Dict[str, Any]:
        params = {"q": query, "offset": offset, "limit": limit}
        fields_param = build_fields_param(fields)
        if fields_param:
            params["fields"] = fields_param
        return self._get_json(ENDPOINTS[endpoint], params=params)

    def search_profiles(self, query: str, offset: int, limit: int, fields="") -> Dict[str, Any]:
        """GET /profiles. Returns {"total", "items", ...}."""
        return self._search("profiles", query, offset, limit, fields)

    def search_products(self, query: str, offset: int, limit: int, fields="") -> Dict[str, Any]:
        """GET /products. Returns {"total", "items", ...}."""
        return self._search("products", query, offset, limit, fields)

    def delete_product(self, product_id: str) -> None:
        """DELETE /products/{id}. Raises RemoteRequestError (404 included) on failure."""
        self._request("DELETE", f"{ENDPOINTS['products']}/{product_id}")

    def get_order(self, order_id: str, fields: Optional[List[str]] = None) -> Dict[str, Any]:
        """GET /orders/{id}, optionally limited to the given fields."""
        params = {}
        if fields:
            params["fields"] = ",".join(fields)
        return self._get_json(f"{ENDPOINTS['orders']}/{order_id}", params=params)

    def search_orders(
        self,
        query: str = "",
        offset: int = 0,
        limit: int = 250,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        timeout: Optional[float] = None,
        fields="",
    ) -> Dict[str, Any]:
        """GET /orders with an optional SCIM query and sort.

        Returns the raw page: {"total", "totalResults", "items", ...}.
        """
        params = {"offset": offset, "limit": limit}
        if query:
            params["q"] = query
            params["queryFormat"] = ORDER_QUERY_FORMAT
        fields_param = build_fields_param(fields)
        if fields_param:
            params["fields"] = fields_param
        if sort_by:
            params["sortBy"] = sort_by
            params["sortOrder"] = sort_order or "asc"
        kwargs = {"params": params}
        if timeout:
            kwargs["timeout"] = timeout
        data = self._get_json(ENDPOINTS["orders"], **kwargs)
        if "total" not in data and "totalResults" in data:
            data["total"] = data["totalResults"]
        return data
