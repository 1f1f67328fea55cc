"""
Purpose: VRChat API client for authentication and world search.
Constraints: API helpers only; HTTP failures come back as result objects, never raised.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests
from requests.auth import HTTPBasicAuth

from vrc_world_opener.core.config_models import ApiSettings
from vrc_world_opener.core.models import AuthStatus, LoginResult, SearchResult
from vrc_world_opener.core.storage.settings_store import SettingsStore
from vrc_world_opener.core.utils.http import request_with_retry
from vrc_world_opener.detection.links import safe_quote

logger = logging.getLogger(__name__)

TOTP_VERIFY = "/auth/twofactorauth/totp/verify"
EMAIL_OTP_VERIFY = "/auth/twofactorauth/emailotp/verify"


def _error_message(resp: requests.Response, default: str) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return default
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return default


def pick_world(worlds: Sequence[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
    """Prefer a case-insensitive exact name match, else the first result."""
    if not worlds:
        return None
    wanted = name.lower()
    for world in worlds:
        if (world.get("name") or "").lower() == wanted:
            return world
    return worlds[0]


class VRChatClient:
    """Thin wrapper over requests.Session with a persisted cookie jar."""

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        session: Optional[requests.Session] = None,
        store: Optional[SettingsStore] = None,
    ):
        self.settings = settings or ApiSettings()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.settings.user_agent})
        self.store = store
        self.cookie_path = Path(self.settings.cookie_file) if self.settings.cookie_file else None
        self._load_cookies()

    # -- transport -------------------------------------------------------

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        url = endpoint if endpoint.startswith("http") else f"{self.settings.api_base}{endpoint}"
        kwargs.setdefault("timeout", self.settings.timeout)
        resp = request_with_retry(self.session, method, url, **kwargs)
        self._save_cookies()
        return resp

    def _load_cookies(self) -> None:
        if not self.cookie_path or not self.cookie_path.exists():
            return
        try:
            cookies = json.loads(self.cookie_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable cookie file %s: %s", self.cookie_path, exc)
            return
        if isinstance(cookies, dict):
            self.session.cookies.update(requests.utils.cookiejar_from_dict(cookies))

    def _save_cookies(self) -> None:
        if not self.cookie_path:
            return
        self.cookie_path.parent.mkdir(parents=True, exist_ok=True)
        cookies = requests.utils.dict_from_cookiejar(self.session.cookies)
        self.cookie_path.write_text(json.dumps(cookies), encoding="utf-8")

    # -- authentication --------------------------------------------------

    def check_authentication(self) -> AuthStatus:
        try:
            resp = self._request("GET", "/auth")
        except requests.RequestException as exc:
            logger.warning("Auth check failed: %s", exc)
            return AuthStatus(authenticated=False, error=str(exc))
        if not resp.ok:
            return AuthStatus(authenticated=False)
        try:
            user = resp.json()
        except ValueError:
            user = None
        return AuthStatus(authenticated=True, user=user if isinstance(user, dict) else None)

    def login(self, username: str, password: str) -> LoginResult:
        if not username or not username.strip():
            return LoginResult(success=False, error="Username is required")
        if not password:
            return LoginResult(success=False, error="Password is required")

        auth = HTTPBasicAuth(safe_quote(username), safe_quote(password))
        try:
            resp = self._request("GET", "/auth/user", auth=auth)
        except requests.RequestException as exc:
            return LoginResult(success=False, error=f"Network error: {exc}")

        if not resp.ok:
            return LoginResult(success=False, error=_error_message(resp, "Login failed"))

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        methods = data.get("requiresTwoFactorAuth")
        if methods:
            return LoginResult(success=False, requires_2fa=True, two_factor_types=list(methods))

        if self.store:
            self.store.set_display_name(data.get("displayName"))
        logger.info("Logged in to VRChat as %s", data.get("displayName"))
        return LoginResult(success=True, user=data)

    def verify_2fa(self, code: str, auth_types: Iterable[str]) -> LoginResult:
        types: List[str] = list(auth_types or [])
        if not code or not code.strip():
            return LoginResult(success=False, error="Verification code is required")
        if not types:
            return LoginResult(success=False, error="Unknown two-factor method")

        endpoint = TOTP_VERIFY if "totp" in types else EMAIL_OTP_VERIFY
        try:
            resp = self._request("POST", endpoint, json={"code": code.strip()})
        except requests.RequestException as exc:
            return LoginResult(success=False, error=f"Network error: {exc}")
        if not resp.ok:
            return LoginResult(success=False, error=_error_message(resp, "Two-factor verification failed"))

        status = self.check_authentication()
        if status.authenticated and status.user and self.store:
            self.store.set_display_name(status.user.get("displayName"))
        return LoginResult(success=True, user=status.user)

    def logout(self) -> LoginResult:
        try:
            self._request("PUT", "/logout")
        except requests.RequestException as exc:
            return LoginResult(success=False, error=f"Logout error: {exc}")
        finally:
            self.session.cookies.clear()
            self._save_cookies()
            if self.store:
                self.store.set_display_name(None)
        return LoginResult(success=True)

    # -- search ----------------------------------------------------------

    def search_world(self, name: str) -> SearchResult:
        if not name or not isinstance(name, str) or not name.strip():
            return SearchResult(success=False, error="World name is required")
        wanted = name.strip()

        if not self.check_authentication().authenticated:
            return SearchResult(success=False, needs_auth=True)

        params = {"search": wanted, "n": self.settings.search_count, "sort": "relevance"}
        try:
            resp = self._request("GET", "/worlds", params=params)
        except requests.RequestException as exc:
            logger.warning("World search for %r failed: %s", wanted, exc)
            return SearchResult(success=False, error=f"Search error: {exc}")
        if not resp.ok:
            return SearchResult(success=False, error=f"API request failed ({resp.status_code})")

        try:
            worlds = resp.json()
        except ValueError:
            return SearchResult(success=False, error="API returned invalid JSON")
        world = pick_world(worlds if isinstance(worlds, list) else [], wanted)
        if not world:
            return SearchResult(success=False, not_found=True)
        return SearchResult(success=True, world_id=world.get("id"), world_name=world.get("name"))
