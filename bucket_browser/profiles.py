from __future__ import annotations
"""Bucket connection profile and its persistence."""
from dataclasses import dataclass, replace
import json
import os
from pathlib import Path
from typing import Mapping
from urllib.parse import urlparse

import keyring
from keyring.errors import KeyringError

DEFAULT_ENDPOINT_URL = "https://ap-south-1.linodeobjects.com"
DEFAULT_REGION = "ap-south-1"
DEFAULT_BUCKET = "www"

ENVIRONMENT_KEYS = {
    "endpoint_url": "S3_ENDPOINT",
    "region": "S3_REGION",
    "bucket": "S3_BUCKET",
    "access_key": "S3_ACCESS_KEY",
    "secret_key": "S3_SECRET_KEY",
}


@dataclass
class BucketProfile:
    """Where the browsed bucket lives and how to authenticate against it."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    region: str = DEFAULT_REGION
    bucket: str = DEFAULT_BUCKET
    access_key: str = ""
    secret_key: str = ""

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_key and self.secret_key)

    @property
    def endpoint_host(self) -> str:
        return urlparse(self.endpoint_url).netloc or self.endpoint_url

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> "BucketProfile":
        return cls().with_overrides(environ)

    def with_overrides(self, environ: Mapping[str, str] | None = None) -> "BucketProfile":
        """Return a copy with non-empty ``S3_*`` variables applied on top."""
        source = os.environ if environ is None else environ
        overrides = {
            field_name: source[variable].strip()
            for field_name, variable in ENVIRONMENT_KEYS.items()
            if source.get(variable, "").strip()
        }
        return replace(self, **overrides)


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = "bucket-browser"):
        self._service_name = service_name

    def get_secret(self, account: str) -> str:
        if not account:
            return ""
        try:
            return keyring.get_password(self._service_name, account) or ""
        except KeyringError:
            return ""

    def set_secret(self, account: str, secret_key: str) -> None:
        if not account:
            return
        if not secret_key:
            self.delete_secret(account)
            return
        try:
            keyring.set_password(self._service_name, account, secret_key)
        except KeyringError:
            return

    def delete_secret(self, account: str) -> None:
        if not account:
            return
        try:
            keyring.delete_password(self._service_name, account)
        except KeyringError:
            return


def _keychain_account(profile: BucketProfile) -> str:
    if not profile.access_key:
        return ""
    return f"{profile.access_key}@{profile.endpoint_host}"


class ProfileStorage:
    """JSON-backed store for the bucket profile; the secret key lives in the keychain."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".bucket_browser_profile.json"
        self._path = Path(storage_path)
        self._keychain = KeychainStore()

    def load(self) -> BucketProfile:
        if not self._path.exists():
            return BucketProfile()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return BucketProfile()
        if not isinstance(data, dict):
            return BucketProfile()

        defaults = BucketProfile()
        values = {}
        for name in ("endpoint_url", "region", "bucket", "access_key"):
            value = data.get(name)
            values[name] = value if isinstance(value, str) and value else getattr(defaults, name)
        profile = BucketProfile(**values)

        secret_key = data.get("secret_key")
        if isinstance(secret_key, str) and secret_key:
            self._keychain.set_secret(_keychain_account(profile), secret_key)
            self._write_data(self._serialize(profile))
        else:
            secret_key = self._keychain.get_secret(_keychain_account(profile))
        return replace(profile, secret_key=secret_key)

    def save(self, profile: BucketProfile) -> None:
        previous = self.load() if self._path.exists() else None
        account = _keychain_account(profile)
        if previous is not None:
            previous_account = _keychain_account(previous)
            if previous_account and previous_account != account:
                self._keychain.delete_secret(previous_account)
        self._keychain.set_secret(account, profile.secret_key)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._write_data(self._serialize(profile))

    @staticmethod
    def _serialize(profile: BucketProfile) -> dict[str, str]:
        return {
            "endpoint_url": profile.endpoint_url,
            "region": profile.region,
            "bucket": profile.bucket,
            "access_key": profile.access_key,
        }

    def _write_data(self, data: dict[str, str]) -> None:
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
