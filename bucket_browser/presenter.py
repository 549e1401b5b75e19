from __future__ import annotations
"""View-agnostic presenter that runs store loads off the UI thread."""
from dataclasses import replace
import logging
import threading
import webbrowser
from typing import Callable

from .controller import BucketBrowserStore, LoadTicket
from .fallback import clamp_max_keys
from .models import Entry
from .profiles import BucketProfile, ProfileStorage
from .services import BucketListingService
from .settings import AppSettings, SettingsStorage
from .ui_utils import PackageInfo, load_package_info


DispatchFn = Callable[[Callable[[], None]], None]
ErrorFn = Callable[[str], None]
DoneFn = Callable[[], None]
OpenUrlFn = Callable[[str], object]

LOGGER = logging.getLogger(__name__)


class BucketBrowserPresenter:
    """Runs listing calls in the background and applies results via ``dispatch``.

    ``dispatch`` must run the given callable on the thread that owns the
    store (for Tkinter, ``root.after(0, func)``). Every store mutation happens
    inside a dispatched callable.
    """

    def __init__(
        self,
        *,
        store: BucketBrowserStore | None = None,
        settings_storage: SettingsStorage | None = None,
        profile_storage: ProfileStorage | None = None,
        dispatch: DispatchFn | None = None,
        open_url: OpenUrlFn | None = None,
        run_in_background: Callable[[Callable[[], None]], None] | None = None,
    ) -> None:
        self._settings_storage = settings_storage or SettingsStorage()
        self._settings = self._settings_storage.load()
        self._profile_storage = profile_storage or ProfileStorage()
        if store is None:
            profile = self._profile_storage.load().with_overrides()
            store = BucketBrowserStore(
                self._build_service(profile), max_keys=clamp_max_keys(self._settings.fetch_limit)
            )
        self._store = store
        self._dispatch = dispatch or (lambda func: func())
        self._open_url = open_url or webbrowser.open
        self._run_in_background = run_in_background or _start_daemon_thread
        self._package_info = load_package_info()

    @property
    def store(self) -> BucketBrowserStore:
        return self._store

    @property
    def settings(self) -> AppSettings:
        return replace(self._settings)

    @property
    def profile(self) -> BucketProfile:
        return self._store.service.profile

    @property
    def package_info(self) -> PackageInfo:
        return self._package_info

    def stored_profile(self) -> BucketProfile:
        """Profile as persisted, before ``S3_*`` environment overrides."""
        return self._profile_storage.load()

    def save_settings(self, settings: AppSettings) -> None:
        settings = replace(
            settings,
            fetch_limit=clamp_max_keys(settings.fetch_limit),
            request_timeout=max(int(settings.request_timeout), 1),
        )
        timeout_changed = settings.request_timeout != self._settings.request_timeout
        self._settings = settings
        self._settings_storage.save(settings)
        self._store.max_keys = settings.fetch_limit
        if timeout_changed:
            self._store.service = self._build_service(self.profile)

    def update_fetch_limit(self, value: int) -> None:
        normalized = clamp_max_keys(value)
        self._settings = replace(self._settings, fetch_limit=normalized)
        self._settings_storage.save(self._settings)
        self._store.max_keys = normalized

    def save_profile(self, profile: BucketProfile) -> None:
        """Persist ``profile`` and point the store at it right away."""
        self._profile_storage.save(profile)
        self._store.service = self._build_service(profile.with_overrides())
        LOGGER.debug("Switched to bucket '%s' at %s", self.profile.bucket, self.profile.endpoint_url)

    def _build_service(self, profile: BucketProfile) -> BucketListingService:
        return BucketListingService(profile, request_timeout=self._settings.request_timeout)

    def initial_prefix(self) -> str:
        if not self._settings.remember_last_prefix:
            return ""
        return self._settings.last_prefix

    def load(
        self,
        prefix: str = "",
        *,
        on_changed: DoneFn,
        on_error: ErrorFn | None = None,
    ) -> None:
        LOGGER.debug("Loading prefix '%s'", prefix)
        ticket = self._store.begin_load(prefix)
        self._start(ticket, on_changed=on_changed, on_error=on_error)

    def refresh(self, *, on_changed: DoneFn, on_error: ErrorFn | None = None) -> None:
        ticket = self._store.begin_refresh()
        self._start(ticket, on_changed=on_changed, on_error=on_error)

    def load_more(self, *, on_changed: DoneFn, on_error: ErrorFn | None = None) -> bool:
        ticket = self._store.begin_load_more()
        if ticket is None:
            return False
        self._start(ticket, on_changed=on_changed, on_error=on_error)
        return True

    def open_folder(self, key: str, *, on_changed: DoneFn, on_error: ErrorFn | None = None) -> None:
        self.load(key, on_changed=on_changed, on_error=on_error)

    def open_parent(self, *, on_changed: DoneFn, on_error: ErrorFn | None = None) -> None:
        ticket = self._store.begin_parent_load()
        if ticket is None:
            return
        self._start(ticket, on_changed=on_changed, on_error=on_error)

    def open_root(self, *, on_changed: DoneFn, on_error: ErrorFn | None = None) -> None:
        self.load("", on_changed=on_changed, on_error=on_error)

    def set_search_query(self, query: str, *, on_changed: DoneFn) -> None:
        self._store.set_search_query(query)
        on_changed()

    def open_entry(
        self,
        entry: Entry,
        *,
        on_changed: DoneFn,
        on_error: ErrorFn | None = None,
    ) -> None:
        """Navigate into folders; open files in the system browser."""
        if entry.is_folder:
            self.open_folder(entry.key, on_changed=on_changed, on_error=on_error)
            return
        try:
            url = self._store.service.signed_url_for(entry.key)
        except Exception as exc:
            LOGGER.exception("Unable to build URL for '%s'", entry.key)
            if on_error:
                on_error(str(exc))
            return
        LOGGER.debug("Opening '%s'", entry.key)
        self._open_url(url)

    def copy_url(self, entry: Entry) -> str:
        """Return the public URL of ``entry`` for the view to place on the clipboard."""
        return entry.url or self._store.service.url_for(entry.key)

    def _start(
        self,
        ticket: LoadTicket,
        *,
        on_changed: DoneFn,
        on_error: ErrorFn | None,
    ) -> None:
        on_changed()

        def task() -> None:
            try:
                result = self._store.fetch(ticket)
            except Exception as exc:
                LOGGER.exception("Unexpected error loading prefix '%s'", ticket.prefix)
                error = exc

                def apply_error() -> None:
                    if self._store.fail_load(ticket, error):
                        on_changed()
                        if on_error:
                            on_error(self._store.error or str(error))

                self._dispatch(apply_error)
            else:
                def apply_result() -> None:
                    if self._store.complete_load(ticket, result):
                        self._remember_prefix(ticket.prefix)
                        on_changed()

                self._dispatch(apply_result)

        self._run_in_background(task)

    def _remember_prefix(self, prefix: str) -> None:
        if not self._settings.remember_last_prefix or self._settings.last_prefix == prefix:
            return
        self._settings = replace(self._settings, last_prefix=prefix)
        self._settings_storage.save(self._settings)


def _start_daemon_thread(task: Callable[[], None]) -> None:
    threading.Thread(target=task, daemon=True).start()
