import logging
from decimal import Decimal
from typing import Any, ClassVar, FrozenSet

from pydantic_settings import BaseSettings, SettingsConfigDict

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Application
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Environment
    # Suggested values: dev|staging|prod.
    ENV: str = "dev"

    # Observability
    METRICS_ENABLED: bool = True

    # Loop detection
    # Maximum number of edges traversed from a start node before a branch is abandoned.
    LOOP_MAX_DEPTH: int = 4
    # Upper bound on loops surfaced per detection run.
    LOOP_MAX_RESULTS: int = 10
    # Total values closer than this are ranked by efficiency instead.
    LOOP_TIE_TOLERANCE: Decimal = Decimal("0.01")
    # Skip start nodes already covered by a loop found earlier in the same run.
    LOOP_SKIP_VISITED_STARTS: bool = True
    # Drop ranked loops that share a participant with a higher-ranked loop.
    LOOP_ENFORCE_DISJOINT: bool = True
    # Wall-clock budget for the cycle search (0 = unlimited).
    LOOP_TIME_BUDGET_MS: int = 0
    LOOP_PROPOSAL_TTL_HOURS: int = 24

    # What to do with positions that fail validation: skip|fail.
    MALFORMED_POSITION_POLICY: str = "skip"

    # Fee schedule (utility token units)
    FEE_BASE: int = 10
    FEE_PER_PARTICIPANT: int = 5
    FEE_VALUE_DIVISOR: int = 1000
    FEE_VALUE_CAP: int = 10

    # Token balance assigned to companies created without an explicit balance.
    DEFAULT_TOKEN_BALANCE: int = 2500

    # --- Guardrails ---
    _MALFORMED_POLICIES: ClassVar[FrozenSet[str]] = frozenset({"skip", "fail"})

    def model_post_init(self, __context: Any) -> None:
        # Runs on every Settings() instantiation (including module-level `settings = Settings()`).
        self._guardrail_loop_search()
        self._guardrail_fee_schedule()

    def _guardrail_loop_search(self) -> None:
        problems: list[str] = []
        policy = (self.MALFORMED_POSITION_POLICY or "").strip().lower()
        if policy not in self._MALFORMED_POLICIES:
            problems.append(f"MALFORMED_POSITION_POLICY={self.MALFORMED_POSITION_POLICY!r}")
        if self.LOOP_MAX_DEPTH < 1:
            problems.append(f"LOOP_MAX_DEPTH={self.LOOP_MAX_DEPTH}")
        if self.LOOP_TIE_TOLERANCE < 0:
            problems.append(f"LOOP_TIE_TOLERANCE={self.LOOP_TIE_TOLERANCE}")
        if self.LOOP_TIME_BUDGET_MS < 0:
            problems.append(f"LOOP_TIME_BUDGET_MS={self.LOOP_TIME_BUDGET_MS}")
        if self.LOOP_PROPOSAL_TTL_HOURS < 1:
            problems.append(f"LOOP_PROPOSAL_TTL_HOURS={self.LOOP_PROPOSAL_TTL_HOURS}")

        if problems:
            raise RuntimeError(
                "Refusing to start with invalid loop detection settings: "
                f"{', '.join(problems)}."
            )

        if self.LOOP_MAX_DEPTH > 8:
            _logger.warning(
                "event=settings.loop_max_depth_high value=%s (search cost grows exponentially)",
                self.LOOP_MAX_DEPTH,
            )

    def _guardrail_fee_schedule(self) -> None:
        problems: list[str] = []
        if self.FEE_VALUE_DIVISOR <= 0:
            problems.append("FEE_VALUE_DIVISOR")
        for name in ("FEE_BASE", "FEE_PER_PARTICIPANT", "FEE_VALUE_CAP"):
            if getattr(self, name) < 0:
                problems.append(name)

        if problems:
            fields = ", ".join(problems)
            raise RuntimeError(
                f"Refusing to start with an invalid fee schedule: {fields}. "
                "Fee components must be non-negative and the value divisor positive."
            )


settings = Settings()


def get_settings() -> Settings:
    """Return the global settings instance.

    Provided as a callable for host wiring and test mocking convenience.
    """
    return settings
