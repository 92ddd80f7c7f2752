"""Tests for pping.config — YAML configuration loading and validation."""

import dataclasses
import textwrap

import pytest

from pping.config import (
    ConfigError,
    PingConfig,
    build_config,
    load_config,
    parse_duration,
    split_destinations,
    validate_config,
)


class TestPingConfigDefaults:
    """PingConfig should provide sensible defaults for every field."""

    def test_probe_defaults(self) -> None:
        cfg = PingConfig()
        assert cfg.destinations == ()
        assert cfg.ping_count == 5
        assert cfg.interval == 60.0
        assert cfg.oneshot is False
        assert cfg.ipv6 is False
        assert cfg.origin is None

    def test_sink_defaults(self) -> None:
        cfg = PingConfig()
        assert cfg.sink == "console"
        assert cfg.profile == "auto"
        assert cfg.metrics_port == 9110
        assert cfg.carbon_port == 2003
        assert cfg.carbon_host is None
        assert cfg.influxdb_url is None

    def test_frozen(self) -> None:
        cfg = PingConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.ping_count = 3  # type: ignore[misc]


class TestLoadConfigExplicitPath:
    """load_config(path=...) with an explicit file path."""

    def test_full_config(self, tmp_path: pytest.TempPathFactory) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            textwrap.dedent("""\
                destinations:
                  - example.com
                  - 192.0.2.1
                ping_count: 3
                interval: 1m30s
                oneshot: true
                ipv6: true
                origin: probe-7
                sink: carbon
                profile: busybox
                carbon_host: graphite.example.com
                carbon_port: 2004
                queue_size: 8
            """),
            encoding="utf-8",
        )

        cfg = load_config(cfg_file)

        assert cfg.destinations == ("example.com", "192.0.2.1")
        assert cfg.ping_count == 3
        assert cfg.interval == 90.0
        assert cfg.oneshot is True
        assert cfg.ipv6 is True
        assert cfg.origin == "probe-7"
        assert cfg.sink == "carbon"
        assert cfg.profile == "busybox"
        assert cfg.carbon_host == "graphite.example.com"
        assert cfg.carbon_port == 2004
        assert cfg.queue_size == 8

    def test_partial_config_uses_defaults(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("destinations: example.com,example.org\n", encoding="utf-8")

        cfg = load_config(cfg_file)

        assert cfg.destinations == ("example.com", "example.org")
        assert cfg.ping_count == 5
        assert cfg.sink == "console"

    def test_empty_file_returns_defaults(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("", encoding="utf-8")

        assert load_config(cfg_file) == PingConfig()

    def test_unknown_keys_are_ignored(self, tmp_path: pytest.TempPathFactory) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            textwrap.dedent("""\
                ping_count: 2
                some_future_key: true
            """),
            encoding="utf-8",
        )

        cfg = load_config(cfg_file)

        assert cfg.ping_count == 2

    def test_non_integer_count_raises(self, tmp_path: pytest.TempPathFactory) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("ping_count: lots\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="ping_count must be an integer"):
            load_config(cfg_file)


class TestLoadConfigMissingFile:
    """Behavior when the config file doesn't exist."""

    def test_explicit_path_not_found_raises(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(tmp_path / "nonexistent.yaml")

    def test_no_default_file_returns_defaults(
        self, tmp_path: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import pping.config as config_mod

        monkeypatch.setattr(
            config_mod, "DEFAULT_CONFIG_PATH", tmp_path / "nope" / "config.yaml"
        )

        assert load_config() == PingConfig()


class TestLoadConfigInvalidYaml:
    """load_config should raise ConfigError on malformed YAML."""

    def test_invalid_yaml_raises_config_error(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        cfg_file = tmp_path / "bad.yaml"
        cfg_file.write_text(":\n  - :\n    bad: [", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(cfg_file)

    def test_non_mapping_top_level_raises(
        self, tmp_path: pytest.TempPathFactory
    ) -> None:
        cfg_file = tmp_path / "list.yaml"
        cfg_file.write_text("- one\n- two\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_config(cfg_file)


class TestParseDuration:
    """parse_duration() accepts seconds and Go-style duration strings."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (60, 60.0),
            (0.5, 0.5),
            ("45", 45.0),
            ("60s", 60.0),
            ("2m", 120.0),
            ("1m30s", 90.0),
            ("500ms", 0.5),
            ("1h", 3600.0),
        ],
    )
    def test_valid(self, value: object, expected: float) -> None:
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "soon", "10x", "1m 30s", "-5", True, None])
    def test_invalid(self, value: object) -> None:
        with pytest.raises(ConfigError):
            parse_duration(value)


class TestSplitDestinations:
    def test_comma_string(self) -> None:
        assert split_destinations("a.com, b.com,,c.com") == ("a.com", "b.com", "c.com")

    def test_list_with_embedded_commas(self) -> None:
        assert split_destinations(["a.com,b.com", "c.com"]) == ("a.com", "b.com", "c.com")

    def test_none(self) -> None:
        assert split_destinations(None) == ()

    def test_bad_type(self) -> None:
        with pytest.raises(ConfigError, match="destinations must be"):
            split_destinations(42)


class TestValidateConfig:
    """validate_config() rejects configurations that cannot run."""

    def test_valid(self) -> None:
        validate_config(PingConfig(destinations=("example.com",)))

    def test_no_destinations(self) -> None:
        with pytest.raises(ConfigError, match="No destinations"):
            validate_config(PingConfig())

    def test_zero_ping_count(self) -> None:
        with pytest.raises(ConfigError, match="ping_count"):
            validate_config(PingConfig(destinations=("a",), ping_count=0))

    def test_zero_queue_size(self) -> None:
        with pytest.raises(ConfigError, match="queue_size"):
            validate_config(PingConfig(destinations=("a",), queue_size=0))

    def test_unknown_sink(self) -> None:
        with pytest.raises(ConfigError, match="Unknown sink 'statsd'"):
            validate_config(PingConfig(destinations=("a",), sink="statsd"))

    def test_unknown_profile(self) -> None:
        with pytest.raises(ConfigError, match="Unknown profile 'windows'"):
            validate_config(PingConfig(destinations=("a",), profile="windows"))

    def test_unknown_format(self) -> None:
        with pytest.raises(ConfigError, match="Unknown output format"):
            validate_config(PingConfig(destinations=("a",), output_format="xml"))

    @pytest.mark.parametrize("port_field", ["metrics_port", "carbon_port"])
    @pytest.mark.parametrize("port", [0, -1, 65536, 99999])
    def test_port_out_of_range(self, port_field: str, port: int) -> None:
        config = PingConfig(destinations=("a",), **{port_field: port})
        with pytest.raises(ConfigError, match=f"{port_field} must be between 1 and 65535"):
            validate_config(config)

    def test_highest_port_accepted(self) -> None:
        validate_config(PingConfig(destinations=("a",), metrics_port=65535, carbon_port=1))

    def test_interval_beyond_wait_limit(self) -> None:
        with pytest.raises(ConfigError, match="interval must be at most"):
            validate_config(PingConfig(destinations=("a",), interval=1e10))


class TestBuildConfig:
    def test_interval_number(self) -> None:
        assert build_config({"interval": 5}).interval == 5.0

    def test_bad_interval(self) -> None:
        with pytest.raises(ConfigError, match="Invalid duration"):
            build_config({"interval": "whenever"})

    @pytest.mark.parametrize("field", ["oneshot", "ipv6", "carbon_noop"])
    def test_quoted_bool_rejected(self, field: str) -> None:
        with pytest.raises(ConfigError, match=f"{field} must be true or false"):
            build_config({field: "false"})

    def test_real_bool_accepted(self) -> None:
        cfg = build_config({"oneshot": False, "ipv6": True, "carbon_noop": False})
        assert cfg.oneshot is False
        assert cfg.ipv6 is True

    def test_fractional_count_rejected(self) -> None:
        with pytest.raises(ConfigError, match="ping_count must be an integer"):
            build_config({"ping_count": 2.5})

    def test_whole_float_count_accepted(self) -> None:
        assert build_config({"ping_count": 3.0}).ping_count == 3

    def test_quoted_bool_in_file(self, tmp_path: pytest.TempPathFactory) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text('destinations: example.com\noneshot: "false"\n', encoding="utf-8")

        with pytest.raises(ConfigError, match="oneshot must be true or false"):
            load_config(cfg_file)
