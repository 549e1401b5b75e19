from __future__ import annotations
"""Listing logic for the browsed bucket, independent of any UI technology."""
from datetime import datetime, timezone
import logging
from typing import Callable

import boto3
from botocore.client import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)
from botocore.parsers import ResponseParserError

from .fallback import (
    DEFAULT_MAX_KEYS,
    FALLBACK_TABLE,
    MAX_KEYS,
    MIN_KEYS,
    FallbackObject,
    fallback_listing,
)
from .models import Entry, ListingResult
from .profiles import BucketProfile
from .ui_utils import url_for

LOGGER = logging.getLogger(__name__)

DELIMITER = "/"
SIGNING_ERROR_CODES = {
    "AuthorizationHeaderMalformed",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
}


class BucketBrowserError(RuntimeError):
    """Base class for listing failures."""


class ValidationError(BucketBrowserError, ValueError):
    """Raised when a listing request carries invalid parameters."""


class TransportError(BucketBrowserError):
    """Raised when the bucket endpoint cannot be reached or answers with an error."""


class ParseError(BucketBrowserError):
    """Raised when a listing response cannot be interpreted."""


class SigningError(BucketBrowserError):
    """Raised when a request cannot be signed or its signature is rejected."""


def validate_max_keys(max_keys: int) -> int:
    if isinstance(max_keys, bool) or not isinstance(max_keys, int):
        raise ValidationError(f"max_keys must be an integer, got {max_keys!r}")
    if not MIN_KEYS <= max_keys <= MAX_KEYS:
        raise ValidationError(f"max_keys must be between {MIN_KEYS} and {MAX_KEYS}, got {max_keys}")
    return max_keys


def translate_error(exc: Exception) -> BucketBrowserError:
    """Map a botocore failure onto the listing error taxonomy."""
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return SigningError(str(exc))
    if isinstance(exc, ResponseParserError):
        return ParseError(str(exc))
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        if code in SIGNING_ERROR_CODES:
            return SigningError(str(exc))
    return TransportError(str(exc))


def _format_timestamp(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime("%Y-%m-%dT%H:%M:%SZ")
    return str(value)


class BucketListingService:
    """Lists one bucket, serving canned data whenever the live bucket is unusable."""

    def __init__(
        self,
        profile: BucketProfile | None = None,
        *,
        client_factory: Callable[..., object] | None = None,
        request_timeout: int = 10,
        fallback_table: dict[str, tuple[FallbackObject, ...]] | None = None,
    ):
        self._profile = profile or BucketProfile.from_environment()
        self._client_factory = client_factory or boto3.client
        self._request_timeout = request_timeout
        self._fallback_table = FALLBACK_TABLE if fallback_table is None else fallback_table

    @property
    def profile(self) -> BucketProfile:
        return self._profile

    @property
    def is_live(self) -> bool:
        return self._profile.has_credentials

    def list_entries(
        self,
        prefix: str = "",
        max_keys: int = DEFAULT_MAX_KEYS,
        continuation_token: str | None = None,
    ) -> ListingResult:
        """Return the entries directly below ``prefix``.

        Only :class:`ValidationError` escapes, and only when a live bucket is
        configured. Transport, parse and signing failures are logged and
        answered with fallback data.
        """
        prefix = prefix or ""
        if not self.is_live:
            LOGGER.debug("No credentials configured, serving fallback data for prefix '%s'", prefix)
            return self._fallback(prefix, max_keys)

        validate_max_keys(max_keys)
        try:
            listing = self._list_live(prefix, max_keys, continuation_token)
        except (TransportError, ParseError, SigningError) as exc:
            LOGGER.warning(
                "Listing prefix '%s' of bucket '%s' failed, serving fallback data: %s",
                prefix,
                self._profile.bucket,
                exc,
            )
            return self._fallback(prefix, max_keys)
        LOGGER.debug(
            "Listed %d entr(y/ies) under '%s' (has_more=%s)",
            listing.total_count,
            prefix,
            listing.has_more,
        )
        return listing

    def url_for(self, key: str) -> str:
        return url_for(self._profile.endpoint_url, self._profile.bucket, key)

    def signed_url_for(self, key: str, expires_in: int = 3600) -> str:
        """Return a presigned GET URL for ``key``, or its public URL without credentials."""
        if expires_in <= 0:
            raise ValueError("expires_in must be greater than zero")
        if not self.is_live:
            return self.url_for(key)
        client = self._create_client()
        try:
            return client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._profile.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise SigningError(str(exc)) from exc

    def _fallback(self, prefix: str, max_keys: int) -> ListingResult:
        return fallback_listing(
            prefix,
            max_keys,
            endpoint_url=self._profile.endpoint_url,
            bucket=self._profile.bucket,
            table=self._fallback_table,
        )

    def _create_client(self):
        config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "virtual"},
            connect_timeout=self._request_timeout,
            read_timeout=self._request_timeout,
            retries={"total_max_attempts": 1},
        )
        try:
            return self._client_factory(
                "s3",
                endpoint_url=self._profile.endpoint_url,
                region_name=self._profile.region,
                aws_access_key_id=self._profile.access_key,
                aws_secret_access_key=self._profile.secret_key,
                config=config,
            )
        except (BotoCoreError, ValueError) as exc:
            raise TransportError(f"Unable to create client for {self._profile.endpoint_url}: {exc}") from exc

    def _list_live(self, prefix: str, max_keys: int, continuation_token: str | None) -> ListingResult:
        client = self._create_client()
        list_params = {
            "Bucket": self._profile.bucket,
            "MaxKeys": max_keys,
            "Delimiter": DELIMITER,
        }
        if prefix:
            list_params["Prefix"] = prefix
        if continuation_token:
            list_params["ContinuationToken"] = continuation_token

        try:
            response = client.list_objects_v2(**list_params)
        except (ClientError, BotoCoreError, ResponseParserError) as exc:
            raise translate_error(exc) from exc
        if not isinstance(response, dict):
            raise ParseError(f"Unexpected listing response of type {type(response).__name__}")
        return self._build_listing(response, prefix, max_keys)

    def _build_listing(self, response: dict, prefix: str, max_keys: int) -> ListingResult:
        entries: list[Entry] = []
        seen: set[str] = set()

        def add(entry: Entry) -> None:
            if entry.key == prefix or entry.key in seen:
                return
            seen.add(entry.key)
            entries.append(entry)

        try:
            for common in response.get("CommonPrefixes") or []:
                key = common["Prefix"]
                add(Entry(key=key, url=self.url_for(key)))
            for obj in response.get("Contents") or []:
                key = obj["Key"]
                is_folder = key.endswith(DELIMITER)
                add(
                    Entry(
                        key=key,
                        last_modified=_format_timestamp(obj.get("LastModified")),
                        size=0 if is_folder else max(int(obj.get("Size", 0)), 0),
                        etag="" if is_folder else str(obj.get("ETag") or "").strip('"'),
                        storage_class=obj.get("StorageClass") or "STANDARD",
                        url=self.url_for(key),
                    )
                )
        except (KeyError, TypeError, ValueError) as exc:
            raise ParseError(f"Malformed listing response: {exc!r}") from exc

        has_more = bool(response.get("IsTruncated", False))
        if len(entries) > max_keys:
            entries = entries[:max_keys]
            has_more = True
        next_token = response.get("NextContinuationToken") if has_more else None
        return ListingResult(entries=entries, has_more=has_more, next_token=next_token or None)
