from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional


DEFAULT_BASE_URL = "https://cekbpom.pom.go.id/index.php"


def _env_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _env_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    user_agent: Optional[str] = None
    retries: int = 5
    timeout: Optional[float] = None
    delay: float = 0.0
    strict_count: bool = False
    trace_content: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            base_url=(env.get("CEK_BPOM_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
            retries=int(env.get("CEK_BPOM_RETRIES") or 5),
            timeout=_env_float(env.get("CEK_BPOM_TIMEOUT")),
            delay=_env_float(env.get("CEK_BPOM_DELAY")) or 0.0,
            trace_content=_env_bool(env.get("CEK_BPOM_TRACE")),
        )

    def override(self, **changes) -> "Settings":
        """Return a copy with the non-None ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
