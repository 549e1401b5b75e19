from __future__ import annotations
"""UI-agnostic helpers for formatting listings and navigating prefixes."""
from dataclasses import dataclass
from datetime import datetime
from importlib.metadata import PackageNotFoundError, metadata, version
from urllib.parse import quote

from .models import Breadcrumb

DIST_NAME = "bucket-browser"
SIZE_UNITS = ("B", "KB", "MB", "GB")

FOLDER_ICON = "\U0001F4C1"
DOCUMENT_ICON = "\U0001F4C4"
STYLE_ICON = "\U0001F3A8"
SCRIPT_ICON = "\u26A1"
IMAGE_ICON = "\U0001F5BC\uFE0F"
PDF_ICON = "\U0001F4CB"
TEXT_ICON = "\U0001F4DD"

ICONS_BY_EXTENSION = {
    "html": DOCUMENT_ICON,
    "htm": DOCUMENT_ICON,
    "css": STYLE_ICON,
    "js": SCRIPT_ICON,
    "ts": SCRIPT_ICON,
    "png": IMAGE_ICON,
    "jpg": IMAGE_ICON,
    "jpeg": IMAGE_ICON,
    "gif": IMAGE_ICON,
    "svg": IMAGE_ICON,
    "webp": IMAGE_ICON,
    "ico": IMAGE_ICON,
    "pdf": PDF_ICON,
    "txt": TEXT_ICON,
    "md": TEXT_ICON,
}


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    summary: str
    homepage: str | None


def load_package_info(dist_name: str = DIST_NAME) -> PackageInfo:
    try:
        distribution_metadata = metadata(dist_name)
        package_version = version(dist_name)
    except PackageNotFoundError:
        return PackageInfo(
            name="Bucket Browser",
            version="",
            summary="Browse the objects stored in an S3-compatible bucket.",
            homepage=None,
        )
    homepage = distribution_metadata.get("Home-page")
    for entry in distribution_metadata.get_all("Project-URL") or []:
        label, _, link = entry.partition(",")
        if label.strip().lower() == "homepage" and not homepage:
            homepage = link.strip()
    return PackageInfo(
        name=distribution_metadata.get("Name"),
        version=package_version,
        summary=distribution_metadata.get("Summary") or "",
        homepage=homepage or None,
    )


def url_for(endpoint_url: str, bucket: str, key: str) -> str:
    """Return the public path-style URL of ``key``."""
    base = endpoint_url.rstrip("/")
    return f"{base}/{bucket}/{quote(key, safe='/~')}"


def format_size(size: int | None) -> str:
    if size is None:
        return "-"
    value = float(max(size, 0))
    if value == 0:
        return "0 B"
    for unit in SIZE_UNITS:
        if value < 1024 or unit == SIZE_UNITS[-1]:
            text = f"{value:.2f}".rstrip("0").rstrip(".")
            return f"{text} {unit}"
        value /= 1024
    return f"{size} B"


def format_date(value: str | None) -> str:
    """Render an ISO 8601 timestamp as local ``YYYY/MM/DD HH:MM``.

    Input that cannot be parsed is returned unchanged.
    """
    if not value:
        return "-"
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return value
    try:
        local = parsed.astimezone() if parsed.tzinfo else parsed
    except (OverflowError, OSError):
        local = parsed
    return local.strftime("%Y/%m/%d %H:%M")


def icon_for(name: str) -> str:
    if name.endswith("/"):
        return FOLDER_ICON
    filename = name.rsplit("/", 1)[-1]
    if "." not in filename:
        return DOCUMENT_ICON
    extension = filename.rsplit(".", 1)[-1].lower()
    return ICONS_BY_EXTENSION.get(extension, DOCUMENT_ICON)


def split_breadcrumbs(prefix: str) -> list[Breadcrumb]:
    crumbs: list[Breadcrumb] = []
    path = ""
    for part in prefix.split("/"):
        if not part:
            continue
        path += part + "/"
        crumbs.append(Breadcrumb(name=part, path=path))
    return crumbs


def parent_prefix(prefix: str) -> str:
    parts = [part for part in prefix.split("/") if part]
    if not parts:
        return ""
    parts.pop()
    return "/".join(parts) + "/" if parts else ""
