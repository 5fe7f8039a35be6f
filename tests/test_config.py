import json
import tempfile
import unittest
from datetime import timedelta
from pathlib import Path

from snyk_auto_org.config import (
    CONFIG_FILE_NAME,
    HOME_ENV_VAR,
    AppConfig,
    default_config_dir,
    format_duration,
    load_config,
    parse_duration,
    save_config,
)
from snyk_auto_org.errors import ConfigError


class TestDurations(unittest.TestCase):
    def test_parse_go_durations(self) -> None:
        cases = {
            "24h": timedelta(hours=24),
            "1h30m": timedelta(hours=1, minutes=30),
            "90s": timedelta(seconds=90),
            "1.5h": timedelta(minutes=90),
            "24h0m0s": timedelta(hours=24),
            "500ms": timedelta(milliseconds=500),
            "0": timedelta(0),
            " 2h ": timedelta(hours=2),
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(expected, parse_duration(raw))

    def test_invalid_durations_raise_config_error(self) -> None:
        for raw in ["", "abc", "10", "1d", "h", "1h 30m"]:
            with self.subTest(raw=raw):
                with self.assertRaises(ConfigError):
                    parse_duration(raw)

    def test_format_duration(self) -> None:
        self.assertEqual("24h", format_duration(timedelta(hours=24)))
        self.assertEqual("1h30m", format_duration(timedelta(hours=1, minutes=30)))
        self.assertEqual("45s", format_duration(timedelta(seconds=45)))
        self.assertEqual("0s", format_duration(timedelta(0)))

    def test_format_then_parse_keeps_value(self) -> None:
        for td in [timedelta(hours=24), timedelta(minutes=95), timedelta(seconds=1.5)]:
            with self.subTest(td=td):
                self.assertEqual(td, parse_duration(format_duration(td)))


class TestConfigFile(unittest.TestCase):
    def test_missing_file_is_created_with_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "snyk-auto-org" / CONFIG_FILE_NAME

            cfg = load_config(path)

            self.assertTrue(path.exists())
            self.assertEqual(
                {"cache_ttl": "24h", "default_org": "", "verbose": False},
                json.loads(path.read_text(encoding="utf-8")),
            )
            self.assertEqual(timedelta(hours=24), cfg.cache_ttl)
            self.assertEqual("", cfg.default_org)
            self.assertFalse(cfg.verbose)
            self.assertEqual(path.parent / "cache.db", cfg.cache_path)

    def test_existing_file_is_read_and_missing_keys_defaulted(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / CONFIG_FILE_NAME
            path.write_text(json.dumps({"default_org": "acme", "cache_ttl": "2h"}), encoding="utf-8")

            cfg = load_config(path)

            self.assertEqual("acme", cfg.default_org)
            self.assertEqual(timedelta(hours=2), cfg.cache_ttl)
            self.assertFalse(cfg.verbose)

    def test_malformed_json_raises_config_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / CONFIG_FILE_NAME
            path.write_text("{not json", encoding="utf-8")

            with self.assertRaises(ConfigError):
                load_config(path)

    def test_bad_ttl_in_file_raises_config_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / CONFIG_FILE_NAME
            path.write_text(json.dumps({"cache_ttl": "forever"}), encoding="utf-8")

            with self.assertRaises(ConfigError):
                load_config(path)

    def test_unknown_keys_survive_save(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / CONFIG_FILE_NAME
            path.write_text(json.dumps({"cache_ttl": "1h", "team": "appsec"}), encoding="utf-8")

            save_config(load_config(path))

            data = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual("appsec", data["team"])
            self.assertEqual("1h", data["cache_ttl"])

    def test_overrides_are_applied_in_memory_only(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / CONFIG_FILE_NAME
            cfg = load_config(path)

            over = cfg.with_overrides(verbose=True, cache_ttl="5m")

            self.assertTrue(over.verbose)
            self.assertEqual(timedelta(minutes=5), over.cache_ttl)
            self.assertEqual(cfg, load_config(path))

    def test_invalid_override_ttl_raises_config_error(self) -> None:
        with self.assertRaises(ConfigError):
            AppConfig().with_overrides(cache_ttl="soon")


def test_config_dir_honours_home_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path / "custom"))

    assert default_config_dir() == tmp_path / "custom"
    assert load_config().path == tmp_path / "custom" / CONFIG_FILE_NAME


if __name__ == "__main__":
    unittest.main()
