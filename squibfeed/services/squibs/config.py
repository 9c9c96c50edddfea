"""Squibs API config. Base URL and request tuning from env (SQUIBS_*) or SquibsClient args."""
import os
from pathlib import Path

from dotenv import load_dotenv

_ENV_PATH = Path(__file__).resolve().parent.parent.parent.parent / ".env"
load_dotenv(_ENV_PATH)

DEFAULT_BASE_URL = "https://ji58k1qfwl.execute-api.us-east-1.amazonaws.com/dev"
DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_RETRY_ATTEMPTS = 2
DEFAULT_RETRY_DELAY_SECONDS = 1.0


def _env(key: str, default: str = "") -> str:
    return (os.getenv(key) or default).strip()


def _env_float(key: str, default: float) -> float:
    try:
        return float(_env(key, str(default)))
    except ValueError:
        return default


class SquibsConfig:
    """Base URL, timeout and retry policy for the Squibs backend."""

    __slots__ = ("base_url", "timeout", "retry_attempts", "retry_delay")

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        self.base_url = (base_url or _env("SQUIBS_API_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.timeout = timeout if timeout is not None else _env_float("SQUIBS_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
        if retry_attempts is None:
            retry_attempts = int(_env_float("SQUIBS_RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS))
        self.retry_attempts = max(1, retry_attempts)
        self.retry_delay = (
            retry_delay if retry_delay is not None else _env_float("SQUIBS_RETRY_DELAY_SECONDS", DEFAULT_RETRY_DELAY_SECONDS)
        )

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
