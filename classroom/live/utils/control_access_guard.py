import hmac
from typing import Optional

from classroom.helpers.config_helper import ConfigHelper
from classroom.helpers.logging_helper import log_module_import

log_module_import(__name__)


class ControlAccessGuard:
    """Gates owner-only web controls (start/end, media, grants) behind a shared token."""

    def __init__(self, *, token: Optional[str] = None):
        self._token = (token or "").strip()

    @classmethod
    def from_config(cls) -> "ControlAccessGuard":
        token = str(ConfigHelper.get("LiveServer", "control_token", fallback="") or "")
        return cls(token=token)

    @property
    def token(self) -> str:
        return self._token

    @property
    def open(self) -> bool:
        return not self._token

    def is_request_authorized(self, provided_token: Optional[str]) -> bool:
        if not self._token:
            # no token configured: every caller may use the controls
            return True
        if provided_token is None:
            return False
        try:
            return hmac.compare_digest(self._token, str(provided_token))
        except TypeError:
            # non-ASCII text can not be compared in constant time
            return False
