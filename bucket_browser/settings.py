from __future__ import annotations
"""Application settings persistence helpers."""

from dataclasses import asdict, dataclass
import json
from pathlib import Path

from .fallback import MAX_KEYS


@dataclass
class AppSettings:
    """Simple container for persistent app settings."""

    fetch_limit: int = 100
    request_timeout: int = 10
    remember_last_prefix: bool = False
    last_prefix: str = ""


def _positive_int(value: object, default: int, *, upper: int | None = None) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if number <= 0:
        return default
    if upper is not None:
        number = min(number, upper)
    return number


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".bucket_browser_settings.json"
        self._path = Path(storage_path)

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()
        remember = data.get("remember_last_prefix", AppSettings.remember_last_prefix)
        last_prefix = data.get("last_prefix", AppSettings.last_prefix)
        return AppSettings(
            fetch_limit=_positive_int(data.get("fetch_limit"), AppSettings.fetch_limit, upper=MAX_KEYS),
            request_timeout=_positive_int(data.get("request_timeout"), AppSettings.request_timeout),
            remember_last_prefix=remember if isinstance(remember, bool) else AppSettings.remember_last_prefix,
            last_prefix=last_prefix if isinstance(last_prefix, str) else AppSettings.last_prefix,
        )

    def save(self, settings: AppSettings) -> None:
        payload = asdict(settings)
        payload["fetch_limit"] = min(max(int(settings.fetch_limit), 1), MAX_KEYS)
        payload["request_timeout"] = max(int(settings.request_timeout), 1)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return
