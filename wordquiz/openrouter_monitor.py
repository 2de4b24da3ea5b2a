import logging
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class QuotaMonitor:
    def __init__(self, warning_threshold: float = 0.1, critical_threshold: float = 0.05):
        self.warning_threshold = warning_threshold  # Warn when 10% quota remains
        self.critical_threshold = critical_threshold  # Critical when 5% quota remains
        self.quota_info: Dict[str, Dict] = {}

    def update_quota(self, provider: str, headers: Mapping[str, str]) -> None:
        """
        Update quota information for a provider from response headers.

        Args:
            provider: Provider name
            headers: Response headers (x-ratelimit-limit/-remaining/-reset)
        """
        info = self.quota_info.setdefault(provider, {"limit": None, "remaining": None, "reset_time": None, "last_check": None})
        try:
            limit = headers.get('x-ratelimit-limit')
            remaining = headers.get('x-ratelimit-remaining')
            reset_time = headers.get('x-ratelimit-reset')
            if limit is not None:
                info["limit"] = int(limit)
            if remaining is not None:
                info["remaining"] = int(remaining)
            if reset_time is not None:
                # OpenRouter reports milliseconds since epoch
                ts = int(reset_time)
                if ts > 10**11:
                    ts //= 1000
                info["reset_time"] = datetime.fromtimestamp(ts, timezone.utc)
        except (TypeError, ValueError) as e:
            logger.debug(f"Ignoring malformed rate-limit headers from {provider}: {e}")
        info["last_check"] = datetime.now(timezone.utc)
        warning = self.get_quota_warning(provider)
        if warning:
            logger.warning(f"[{provider}] {warning['message']}")

    def get_quota_warning(self, provider: str) -> Optional[Dict[str, str]]:
        """
        Get a quota warning for a provider if a threshold is crossed.

        Returns:
            Warning dict with level and message, or None if no warning
        """
        info = self.quota_info.get(provider) or {}
        remaining, limit = info.get("remaining"), info.get("limit")
        if remaining is None or not limit:
            return None
        share = remaining / limit
        if info.get("reset_time"):
            minutes = int((info["reset_time"] - datetime.now(timezone.utc)).total_seconds() / 60)
        else:
            minutes = "unknown"
        if share <= self.critical_threshold:
            return {
                "level": "error",
                "message": f"Critical: only {remaining}/{limit} requests remaining; quota resets in {minutes} minutes.",
            }
        if share <= self.warning_threshold:
            return {
                "level": "warning",
                "message": f"Warning: {remaining}/{limit} requests remaining; quota resets in {minutes} minutes.",
            }
        return None

    def get_quota_status(self, provider: str) -> Dict:
        info = dict(self.quota_info.get(provider) or {})
        info["warning"] = self.get_quota_warning(provider)
        return info
