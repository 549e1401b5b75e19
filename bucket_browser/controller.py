from __future__ import annotations
"""Session state for the bucket browser and the operations that mutate it."""

from dataclasses import dataclass, field
import logging

from .models import Breadcrumb, Entry, ListingResult
from .fallback import DEFAULT_MAX_KEYS, MAX_KEYS, MIN_KEYS
from .services import BucketListingService
from .ui_utils import format_size, parent_prefix, split_breadcrumbs

LOGGER = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Failed to load bucket entries"


@dataclass
class BrowserState:
    entries: list[Entry] = field(default_factory=list)
    loading: bool = False
    error: str | None = None
    search_query: str = ""
    current_prefix: str = ""
    has_more: bool = False
    next_token: str | None = None


@dataclass(frozen=True)
class LoadTicket:
    """Identifies one started load; only the newest ticket may update the state."""

    generation: int
    prefix: str
    append: bool = False
    continuation_token: str | None = None


def _error_message(exc: BaseException) -> str:
    return str(exc) or DEFAULT_ERROR_MESSAGE


class BucketBrowserStore:
    """Owns the :class:`BrowserState` of one browsing session.

    Loads can be run in one step with :meth:`load`, or split into
    :meth:`begin_load` / :meth:`complete_load` / :meth:`fail_load` when the
    listing call happens elsewhere (e.g. a worker thread). Overlapping loads
    resolve to the most recently started one; results of older tickets are
    dropped.
    """

    def __init__(
        self,
        service: BucketListingService | None = None,
        *,
        max_keys: int = DEFAULT_MAX_KEYS,
    ):
        self._service = service or BucketListingService()
        self._state = BrowserState()
        self._generation = 0
        self._last_prefix = ""
        self.max_keys = max_keys

    @property
    def service(self) -> BucketListingService:
        return self._service

    @service.setter
    def service(self, value: BucketListingService) -> None:
        self._service = value
        self._generation += 1
        self._state.loading = False
        self._state.next_token = None
        self._state.has_more = False

    @property
    def max_keys(self) -> int:
        return self._max_keys

    @max_keys.setter
    def max_keys(self, value: int) -> None:
        number = int(value)
        if not MIN_KEYS <= number <= MAX_KEYS:
            raise ValueError(f"max_keys must be between {MIN_KEYS} and {MAX_KEYS}, got {number}")
        self._max_keys = number

    @property
    def entries(self) -> list[Entry]:
        return list(self._state.entries)

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def search_query(self) -> str:
        return self._state.search_query

    @property
    def current_prefix(self) -> str:
        return self._state.current_prefix

    @property
    def has_more(self) -> bool:
        return self._state.has_more

    @property
    def can_load_more(self) -> bool:
        return bool(self._state.next_token) and not self._state.loading

    @property
    def filtered_entries(self) -> list[Entry]:
        query = self._state.search_query.lower()
        if not query:
            return list(self._state.entries)
        return [entry for entry in self._state.entries if query in entry.key.lower()]

    @property
    def total_count(self) -> int:
        return len(self._state.entries)

    @property
    def total_size(self) -> int:
        return sum(entry.size for entry in self._state.entries)

    @property
    def formatted_total_size(self) -> str:
        return format_size(self.total_size)

    @property
    def breadcrumbs(self) -> list[Breadcrumb]:
        return split_breadcrumbs(self._state.current_prefix)

    def set_search_query(self, query: str) -> None:
        self._state.search_query = query or ""

    def clear_error(self) -> None:
        self._state.error = None

    def load(self, prefix: str = "") -> None:
        ticket = self.begin_load(prefix)
        self._run(ticket)

    def refresh(self) -> None:
        self._run(self.begin_refresh())

    def load_more(self) -> None:
        ticket = self.begin_load_more()
        if ticket is not None:
            self._run(ticket)

    def to_folder(self, key: str) -> None:
        self.load(key)

    def to_parent(self) -> None:
        ticket = self.begin_parent_load()
        if ticket is not None:
            self._run(ticket)

    def to_root(self) -> None:
        self.load("")

    def begin_load(self, prefix: str = "") -> LoadTicket:
        prefix = prefix or ""
        self._last_prefix = prefix
        return self._start(LoadTicket(generation=self._generation + 1, prefix=prefix))

    def begin_refresh(self) -> LoadTicket:
        return self.begin_load(self._last_prefix)

    def begin_parent_load(self) -> LoadTicket | None:
        if not self._state.current_prefix:
            return None
        return self.begin_load(parent_prefix(self._state.current_prefix))

    def begin_load_more(self) -> LoadTicket | None:
        if self._state.loading or not self._state.next_token:
            return None
        return self._start(
            LoadTicket(
                generation=self._generation + 1,
                prefix=self._state.current_prefix,
                append=True,
                continuation_token=self._state.next_token,
            )
        )

    def fetch(self, ticket: LoadTicket) -> ListingResult:
        """Perform the listing call for ``ticket``; safe to run off the UI thread."""
        return self._service.list_entries(
            ticket.prefix,
            self._max_keys,
            continuation_token=ticket.continuation_token,
        )

    def is_current(self, ticket: LoadTicket) -> bool:
        return ticket.generation == self._generation

    def complete_load(self, ticket: LoadTicket, result: ListingResult) -> bool:
        if not self.is_current(ticket):
            LOGGER.debug("Discarding stale listing for prefix '%s'", ticket.prefix)
            return False
        if ticket.append:
            known = {entry.key for entry in self._state.entries}
            self._state.entries = self._state.entries + [
                entry for entry in result.entries if entry.key not in known
            ]
        else:
            self._state.entries = list(result.entries)
        self._state.current_prefix = ticket.prefix
        self._state.has_more = result.has_more
        self._state.next_token = result.next_token
        self._state.loading = False
        LOGGER.debug("Loaded %d entr(y/ies) for prefix '%s'", len(self._state.entries), ticket.prefix)
        return True

    def fail_load(self, ticket: LoadTicket, exc: BaseException) -> bool:
        if not self.is_current(ticket):
            LOGGER.debug("Discarding stale failure for prefix '%s': %s", ticket.prefix, exc)
            return False
        self._state.error = _error_message(exc)
        self._state.loading = False
        return True

    def _start(self, ticket: LoadTicket) -> LoadTicket:
        self._generation = ticket.generation
        self._state.loading = True
        self._state.error = None
        return ticket

    def _run(self, ticket: LoadTicket) -> None:
        try:
            result = self.fetch(ticket)
        except Exception as exc:
            LOGGER.exception("Loading prefix '%s' failed", ticket.prefix)
            self.fail_load(ticket, exc)
        else:
            self.complete_load(ticket, result)
