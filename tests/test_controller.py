import tempfile
import unittest
from pathlib import Path

from s3_download.controller import (
    ENV_ACCESS_KEY,
    ENV_ENDPOINT,
    ENV_SECRET_KEY,
    S3DownloadController,
)
from s3_download.models import TransferConfig, TransferSummary
from s3_download.profiles import ConnectionProfile
from s3_download.services import ConfigurationError
from s3_download.settings import DownloadSettings, SettingsStorage


class FakeProfileStorage:
    def __init__(self, profiles=None):
        self.profiles = list(profiles or [])
        self.saved = []

    def load(self):
        return list(self.profiles)

    def get(self, name):
        for profile in self.profiles:
            if profile.name == name:
                return profile
        return None

    def save(self, profiles):
        self.profiles = list(profiles)
        self.saved.append(list(profiles))


class FakeService:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.run_calls = []
        FakeService.instances.append(self)

    def run(self, config):
        self.run_calls.append(config)
        return TransferSummary(downloaded=1)


class S3DownloadControllerTests(unittest.TestCase):
    def setUp(self):
        FakeService.instances = []
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.settings_storage = SettingsStorage(Path(self._tmp.name) / "settings.json")
        self.profile = ConnectionProfile(
            name="build",
            endpoint_url="https://profile.example.com",
            access_key="profile-access",
            secret_key="profile-secret",
        )
        self.storage = FakeProfileStorage([self.profile])

    def make_controller(self, environ=None):
        return S3DownloadController(
            service_factory=FakeService,
            storage=self.storage,
            settings_storage=self.settings_storage,
            environ=environ or {},
        )

    def test_build_config_uses_explicit_values(self):
        controller = self.make_controller()

        config = controller.build_config(
            bucket_name="bucket-one",
            destination="out/",
            source="a/b/",
            relative=True,
            exclude=".mdl",
            endpoint="https://s3.example.com",
            access_key="access",
            secret_key="secret",
        )

        self.assertEqual(
            TransferConfig(
                bucket_name="bucket-one",
                destination="out/",
                access_key="access",
                secret_key="secret",
                source="a/b/",
                relative=True,
                exclude=".mdl",
                endpoint="https://s3.example.com",
            ),
            config,
        )

    def test_build_config_normalizes_missing_source_and_exclude(self):
        controller = self.make_controller()

        config = controller.build_config(
            bucket_name="bucket-one",
            destination="out/",
            source=None,
            exclude="",
            access_key="access",
            secret_key="secret",
        )

        self.assertEqual("", config.source)
        self.assertIsNone(config.exclude)
        self.assertIsNone(config.endpoint)

    def test_explicit_values_win_over_environment_and_profile(self):
        environ = {ENV_ACCESS_KEY: "env-access", ENV_SECRET_KEY: "env-secret", ENV_ENDPOINT: "https://env"}
        controller = self.make_controller(environ)

        config = controller.build_config(
            bucket_name="bucket-one",
            destination="out/",
            access_key="cli-access",
            profile_name="build",
        )

        self.assertEqual("cli-access", config.access_key)
        self.assertEqual("env-secret", config.secret_key)
        self.assertEqual("https://env", config.endpoint)

    def test_profile_fills_missing_values(self):
        controller = self.make_controller()

        config = controller.build_config(bucket_name="bucket-one", destination="out/", profile_name="build")

        self.assertEqual("profile-access", config.access_key)
        self.assertEqual("profile-secret", config.secret_key)
        self.assertEqual("https://profile.example.com", config.endpoint)

    def test_unknown_profile_is_configuration_error(self):
        controller = self.make_controller()

        with self.assertRaises(ConfigurationError):
            controller.build_config(bucket_name="bucket-one", destination="out/", profile_name="missing")

    def test_required_parameters_are_validated(self):
        controller = self.make_controller()

        with self.assertRaises(ConfigurationError):
            controller.build_config(bucket_name="", destination="out/", access_key="a", secret_key="s")
        with self.assertRaises(ConfigurationError):
            controller.build_config(bucket_name="bucket-one", destination=None, access_key="a", secret_key="s")
        with self.assertRaises(ConfigurationError):
            controller.build_config(bucket_name="bucket-one", destination="out/", access_key="a")

    def test_default_credentials_can_be_allowed(self):
        controller = self.make_controller()

        config = controller.build_config(
            bucket_name="bucket-one",
            destination="out/",
            allow_default_credentials=True,
        )

        self.assertIsNone(config.access_key)
        self.assertIsNone(config.secret_key)
        self.assertFalse(config.has_static_credentials)

    def test_download_builds_service_from_settings(self):
        self.settings_storage.save(DownloadSettings(page_size=250, chunk_size=4096))
        controller = self.make_controller()
        config = TransferConfig(bucket_name="bucket-one", destination="out/")

        summary = controller.download(config)

        self.assertEqual(1, summary.downloaded)
        service = FakeService.instances[0]
        self.assertEqual({"page_size": 250, "chunk_size": 4096}, service.kwargs)
        self.assertEqual([config], service.run_calls)

    def test_save_profile_replaces_existing_entry(self):
        controller = self.make_controller()
        updated = ConnectionProfile(name="build", endpoint_url="", access_key="new", secret_key="s")

        controller.save_profile(updated)
        controller.save_profile(ConnectionProfile(name="other", endpoint_url="", access_key="o"))

        self.assertEqual(["build", "other"], [p.name for p in controller.list_profiles()])
        self.assertEqual("new", controller.get_profile("build").access_key)

    def test_save_profile_requires_name(self):
        controller = self.make_controller()

        with self.assertRaises(ConfigurationError):
            controller.save_profile(ConnectionProfile(name="", endpoint_url="", access_key="a"))

    def test_delete_profile(self):
        controller = self.make_controller()

        controller.delete_profile("build")

        self.assertEqual([], controller.list_profiles())
        with self.assertRaises(ConfigurationError):
            controller.delete_profile("build")


if __name__ == "__main__":
    unittest.main()
