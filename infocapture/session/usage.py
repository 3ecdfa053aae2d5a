"""Free users get a limited number of listening sessions."""

from __future__ import annotations

from infocapture.config.settings import UsageConfig
from infocapture.telemetry.errors import InfoCaptureError


class UsageLimitExceededError(InfoCaptureError):
    """Raised when a free user starts listening past the free limit."""


class UsagePolicy:
    """Tracks listening starts for one principal.

    Only starting to listen counts as a use; stopping never does, and pro
    users are never counted or limited.
    """

    def __init__(
        self,
        config: UsageConfig | None = None,
        usage_count: int = 0,
        is_pro: bool = False,
    ) -> None:
        self._config = config or UsageConfig()
        self._usage_count = usage_count
        self._is_pro = is_pro

    @property
    def usage_count(self) -> int:
        return self._usage_count

    @property
    def is_pro(self) -> bool:
        return self._is_pro

    @property
    def limit(self) -> int:
        return self._config.free_session_limit

    @property
    def remaining(self) -> int | None:
        """Remaining free starts, or None for unlimited."""
        if self._is_pro:
            return None
        return max(self.limit - self._usage_count, 0)

    def check_can_start(self) -> None:
        if not self._is_pro and self._usage_count >= self.limit:
            raise UsageLimitExceededError(
                "You've reached your free usage limit. Upgrade to InfoCapture Pro "
                f"(${self._config.pro_price_usd}) for unlimited uses!"
            )

    def record_start(self) -> None:
        if not self._is_pro:
            self._usage_count += 1

    def upgrade(self) -> None:
        self._is_pro = True

    def badge(self) -> str:
        if self._is_pro:
            return "Pro User"
        return f"Free: {self._usage_count}/{self.limit} uses"
