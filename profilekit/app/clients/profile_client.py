import json
import logging
import requests

logger = logging.getLogger(__name__)

# Marks requests without a body, since None is a valid JSON payload (null).
NO_BODY = object()


class ProfileApiError(Exception):
    """The profile API answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int = None, errors=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors


class ProfileApiClient:
    def __init__(self, base_url: str, user_id: str, timeout: float = 15.0, session: requests.Session = None):
        """
        Initializes the ProfileApiClient.
        Args:
            base_url (str): Root of the API, e.g. "http://localhost:5500/api".
            user_id (str): Identity sent in the X-User-Id header.
            timeout (float): Per-request timeout in seconds.
            session (requests.Session, optional): Session to reuse, mainly for tests.
        """
        if not base_url:
            raise ValueError("A base URL must be provided for the profile API.")
        if not user_id:
            raise ValueError("A user id must be provided for the profile API.")
        self.base_url = base_url.rstrip("/")
        self.user_id = str(user_id)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"X-User-Id": self.user_id, "Accept": "application/json"})
        logger.info(f"ProfileApiClient initialized for {self.base_url}")

    @classmethod
    def from_config(cls, config, user_id: str, session: requests.Session = None):
        """Build a client from a Config class or a Flask config mapping."""
        get = config.get if hasattr(config, "get") else lambda key, default=None: getattr(config, key, default)
        return cls(
            base_url=get("PROFILE_API_BASE_URL"),
            user_id=user_id,
            timeout=get("REQUEST_TIMEOUT_SECONDS", 15.0),
            session=session,
        )

    def _request(self, method: str, path: str, payload=NO_BODY) -> dict:
        url = f"{self.base_url}{path}"
        logger.debug(f"ProfileApiClient {method} {url}")
        try:
            if payload is NO_BODY:
                response = self.session.request(method, url, timeout=self.timeout)
            else:
                response = self.session.request(
                    method,
                    url,
                    data=json.dumps(payload),
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout,
                )
        except requests.exceptions.RequestException as e:
            logger.error(f"ProfileApiClient: request {method} {url} failed: {e}")
            raise ConnectionError(f"Error communicating with profile API: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            message = body.get("message") or body.get("error") or f"HTTP {response.status_code}"
            logger.warning(f"ProfileApiClient: {method} {url} returned {response.status_code}: {message}")
            raise ProfileApiError(message, status_code=response.status_code, errors=body.get("errors"))

        return body.get("data") or {}

    def get_profile(self):
        """Returns the profile dict, or None when the user has no profile yet."""
        return self._request("GET", "/profile").get("profile")

    def create_profile(self, data: dict = None) -> dict:
        return self._request("POST", "/profile", data or {}).get("profile")

    def update_profile(self, data: dict) -> dict:
        return self._request("PUT", "/profile", data).get("profile")

    def update_section(self, section: str, value) -> dict:
        return self._request("PUT", f"/profile/section/{section}", value).get("profile")

    def delete_profile(self) -> None:
        self._request("DELETE", "/profile")

    def get_completion(self) -> dict:
        return self._request("GET", "/profile/completion")
