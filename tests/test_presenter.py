import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from bucket_browser.controller import BucketBrowserStore
from bucket_browser.models import Entry, ListingResult
from bucket_browser.presenter import BucketBrowserPresenter
from bucket_browser.profiles import BucketProfile, ProfileStorage
from bucket_browser.services import BucketListingService, SigningError
from bucket_browser.settings import AppSettings, SettingsStorage


class FakeService:
    def __init__(self):
        self.profile = BucketProfile()
        self.is_live = False
        self.calls = []
        self.error = None
        self.signed_error = None

    def list_entries(self, prefix="", max_keys=100, continuation_token=None):
        self.calls.append(prefix)
        if self.error is not None:
            raise self.error
        return ListingResult(entries=[Entry(key=f"{prefix}file.txt", size=10, etag="e")])

    def url_for(self, key):
        return f"https://example.com/www/{key}"

    def signed_url_for(self, key, expires_in=3600):
        if self.signed_error is not None:
            raise self.signed_error
        return f"https://signed.example.com/www/{key}"


class FakeS3Client:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def list_objects_v2(self, **kwargs):
        self.calls.append(kwargs)
        return self.response


class DeferredRunner:
    def __init__(self):
        self.tasks = []

    def __call__(self, task):
        self.tasks.append(task)

    def run(self, index):
        self.tasks[index]()


class FakeKeychain:
    def __init__(self):
        self.secrets = {}

    def get_secret(self, account):
        return self.secrets.get(account, "")

    def set_secret(self, account, secret_key):
        self.secrets[account] = secret_key

    def delete_secret(self, account):
        self.secrets.pop(account, None)


class BucketBrowserPresenterTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        tmp = Path(self._tmp.name)
        self.settings_storage = SettingsStorage(tmp / "settings.json")
        self.profile_storage = ProfileStorage(tmp / "profile.json")
        self.profile_storage._keychain = FakeKeychain()
        self.service = FakeService()
        self.store = BucketBrowserStore(self.service)
        self.opened_urls = []
        self.changes = 0
        self.errors = []

    def make_presenter(self, runner=None):
        return BucketBrowserPresenter(
            store=self.store,
            settings_storage=self.settings_storage,
            profile_storage=self.profile_storage,
            open_url=self.opened_urls.append,
            run_in_background=runner or (lambda task: task()),
        )

    def on_changed(self):
        self.changes += 1

    def test_load_updates_store_and_notifies_twice(self):
        presenter = self.make_presenter()

        presenter.load("docs/", on_changed=self.on_changed, on_error=self.errors.append)

        self.assertEqual("docs/", self.store.current_prefix)
        self.assertFalse(self.store.loading)
        self.assertEqual(2, self.changes)
        self.assertEqual([], self.errors)

    def test_load_error_is_reported_and_stored(self):
        presenter = self.make_presenter()
        self.service.error = RuntimeError("network down")

        presenter.load("", on_changed=self.on_changed, on_error=self.errors.append)

        self.assertEqual(["network down"], self.errors)
        self.assertEqual("network down", self.store.error)
        self.assertFalse(self.store.loading)

    def test_results_are_applied_through_dispatch(self):
        dispatched = []
        presenter = BucketBrowserPresenter(
            store=self.store,
            settings_storage=self.settings_storage,
            profile_storage=self.profile_storage,
            dispatch=dispatched.append,
            run_in_background=lambda task: task(),
        )

        presenter.load("", on_changed=self.on_changed)

        self.assertTrue(self.store.loading)
        self.assertEqual(1, len(dispatched))
        dispatched[0]()
        self.assertFalse(self.store.loading)

    def test_last_started_load_wins(self):
        runner = DeferredRunner()
        presenter = self.make_presenter(runner)

        presenter.load("old/", on_changed=self.on_changed)
        presenter.load("new/", on_changed=self.on_changed)
        runner.run(1)
        runner.run(0)

        self.assertEqual("new/", self.store.current_prefix)
        self.assertEqual(["new/file.txt"], [entry.key for entry in self.store.entries])

    def test_open_entry_navigates_into_folders(self):
        presenter = self.make_presenter()

        presenter.open_entry(Entry(key="pic/"), on_changed=self.on_changed)

        self.assertEqual("pic/", self.store.current_prefix)
        self.assertEqual([], self.opened_urls)

    def test_open_entry_opens_files_in_browser(self):
        presenter = self.make_presenter()

        presenter.open_entry(Entry(key="a.txt", size=1, etag="e"), on_changed=self.on_changed)

        self.assertEqual(["https://signed.example.com/www/a.txt"], self.opened_urls)

    def test_open_entry_reports_signing_failures(self):
        presenter = self.make_presenter()
        self.service.signed_error = SigningError("bad credentials")

        presenter.open_entry(
            Entry(key="a.txt", size=1, etag="e"),
            on_changed=self.on_changed,
            on_error=self.errors.append,
        )

        self.assertEqual(["bad credentials"], self.errors)
        self.assertEqual([], self.opened_urls)

    def test_copy_url_prefers_entry_url(self):
        presenter = self.make_presenter()

        self.assertEqual("https://x/www/a.txt", presenter.copy_url(Entry(key="a.txt", url="https://x/www/a.txt")))
        self.assertEqual("https://example.com/www/b.txt", presenter.copy_url(Entry(key="b.txt")))

    def test_open_parent_and_root(self):
        presenter = self.make_presenter()
        presenter.load("a/b/", on_changed=self.on_changed)

        presenter.open_parent(on_changed=self.on_changed)
        self.assertEqual("a/", self.store.current_prefix)

        presenter.open_root(on_changed=self.on_changed)
        self.assertEqual("", self.store.current_prefix)

    def test_refresh_and_search(self):
        presenter = self.make_presenter()
        presenter.load("docs/", on_changed=self.on_changed)

        presenter.refresh(on_changed=self.on_changed)
        presenter.set_search_query("FILE", on_changed=self.on_changed)

        self.assertEqual(["docs/", "docs/"], self.service.calls)
        self.assertEqual(["docs/file.txt"], [entry.key for entry in self.store.filtered_entries])

    def test_load_more_without_more_pages_is_noop(self):
        presenter = self.make_presenter()
        presenter.load("", on_changed=self.on_changed)

        self.assertFalse(presenter.load_more(on_changed=self.on_changed))

    def test_update_fetch_limit_persists_and_applies(self):
        presenter = self.make_presenter()

        presenter.update_fetch_limit(0)

        self.assertEqual(1, presenter.settings.fetch_limit)
        self.assertEqual(1, self.store.max_keys)
        self.assertEqual(1, self.settings_storage.load().fetch_limit)

    def test_fetch_limit_above_service_limit_still_loads_live_bucket(self):
        client = FakeS3Client({"Contents": [{"Key": "index.html", "Size": 10, "ETag": '"abc"'}], "IsTruncated": False})
        profile = BucketProfile(access_key="access", secret_key="secret")
        self.store = BucketBrowserStore(BucketListingService(profile, client_factory=lambda *args, **kwargs: client))
        presenter = self.make_presenter()

        presenter.update_fetch_limit(5000)
        presenter.load("", on_changed=self.on_changed, on_error=self.errors.append)

        self.assertEqual(1000, self.store.max_keys)
        self.assertEqual(1000, presenter.settings.fetch_limit)
        self.assertEqual(1000, client.calls[0]["MaxKeys"])
        self.assertEqual(["index.html"], [entry.key for entry in self.store.entries])
        self.assertIsNone(self.store.error)
        self.assertEqual([], self.errors)

    def test_save_settings_clamps_values(self):
        presenter = self.make_presenter()

        presenter.save_settings(AppSettings(fetch_limit=5000, request_timeout=0, remember_last_prefix=True))

        self.assertEqual(1000, self.store.max_keys)
        stored = self.settings_storage.load()
        self.assertEqual(1000, stored.fetch_limit)
        self.assertEqual(1, stored.request_timeout)
        self.assertTrue(stored.remember_last_prefix)

    def test_save_settings_keeps_service_when_timeout_is_unchanged(self):
        presenter = self.make_presenter()

        presenter.save_settings(AppSettings(fetch_limit=20))

        self.assertIs(self.service, self.store.service)
        self.assertEqual(20, self.store.max_keys)

    def test_save_settings_rebuilds_service_for_new_timeout(self):
        presenter = self.make_presenter()

        presenter.save_settings(AppSettings(request_timeout=3))

        self.assertIsInstance(self.store.service, BucketListingService)
        self.assertEqual(self.service.profile, self.store.service.profile)

    def test_save_profile_persists_and_takes_effect(self):
        presenter = self.make_presenter()
        profile = BucketProfile(bucket="media", access_key="ak", secret_key="sk")

        with mock.patch.dict(os.environ, {}, clear=True):
            presenter.save_profile(profile)

        self.assertEqual(profile, self.profile_storage.load())
        self.assertEqual({"ak@ap-south-1.linodeobjects.com": "sk"}, self.profile_storage._keychain.secrets)
        self.assertEqual(profile, presenter.stored_profile())
        self.assertEqual("media", presenter.profile.bucket)
        self.assertTrue(self.store.service.is_live)

    def test_saved_profile_without_keys_lists_offline_data(self):
        presenter = self.make_presenter()

        with mock.patch.dict(os.environ, {}, clear=True):
            presenter.save_profile(BucketProfile(bucket="media"))
        presenter.load("", on_changed=self.on_changed, on_error=self.errors.append)

        self.assertEqual([], self.service.calls)
        self.assertFalse(self.store.service.is_live)
        self.assertIn("index.html", [entry.key for entry in self.store.entries])
        index = next(entry for entry in self.store.entries if entry.key == "index.html")
        self.assertEqual("https://ap-south-1.linodeobjects.com/media/index.html", index.url)

    def test_remembers_last_prefix_when_enabled(self):
        self.settings_storage.save(AppSettings(remember_last_prefix=True))
        presenter = self.make_presenter()

        presenter.load("pic/", on_changed=self.on_changed)

        self.assertEqual("pic/", self.settings_storage.load().last_prefix)
        self.assertEqual("pic/", self.make_presenter().initial_prefix())

    def test_initial_prefix_is_root_by_default(self):
        presenter = self.make_presenter()

        presenter.load("pic/", on_changed=self.on_changed)

        self.assertEqual("", presenter.initial_prefix())

    def test_builds_store_from_stored_profile(self):
        self.profile_storage.save(BucketProfile(bucket="media"))
        self.settings_storage.save(AppSettings(fetch_limit=42, request_timeout=3))

        with mock.patch.dict(os.environ, {}, clear=True):
            presenter = BucketBrowserPresenter(
                settings_storage=self.settings_storage,
                profile_storage=self.profile_storage,
            )

        self.assertIsInstance(presenter.store.service, BucketListingService)
        self.assertEqual(42, presenter.store.max_keys)
        self.assertEqual("media", presenter.profile.bucket)


if __name__ == "__main__":
    unittest.main()
