"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from jobalerts.config import (
    AppConfig,
    ConfigurationError,
    load_config,
    parse_app_config,
    validate_config_file,
)
from jobalerts.config.duration import DurationParseError, parse_duration, validate_duration_range
from jobalerts.config.environment import DEFAULT_DATABASE_URL, load_environment_config
from jobalerts.config.validators import check_for_warnings

VALID_CONFIG = """
schedule:
  timezone: Europe/Berlin
  daily:
    hour: 8
    minute: 30
  weekly:
    day_of_week: Friday
  monthly:
    enabled: false
notifications:
  frontend_url: https://jobs.example.com/
  dispatch_delay_seconds: 0.5
  test_window: 14d
email:
  max_retries: 2
logging:
  level: DEBUG
  format: json
"""


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    for name in ("SMTP_USER", "SMTP_PASS", "SMTP_SENDER_NAME", "FROM_EMAIL", "LOG_LEVEL",
                 "DATABASE_URL", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SMTP_HOST", "smtp.test.com")
    monkeypatch.setenv("SMTP_PORT", "587")


def write_config(tmp_path: Path, content: str) -> Path:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(content)
    return config_file


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_load_valid_config(self, tmp_path, mock_env_vars):
        app_config, env_config = load_config(write_config(tmp_path, VALID_CONFIG))

        assert app_config.schedule.timezone == "Europe/Berlin"
        assert app_config.schedule.daily.hour == 8
        assert app_config.schedule.daily.minute == 30
        assert app_config.schedule.weekly.day_of_week == "fri"
        assert list(app_config.schedule.enabled_tiers()) == ["daily", "weekly"]

        assert app_config.notifications.frontend_url == "https://jobs.example.com"
        assert app_config.notifications.test_window_seconds == 14 * 86400
        assert app_config.email.max_retries == 2
        assert app_config.logging.level == "DEBUG"
        assert app_config.logging.format == "json"

        assert env_config.smtp_host == "smtp.test.com"
        assert env_config.smtp_port == 587

    def test_empty_file_yields_defaults(self, tmp_path, mock_env_vars):
        app_config, _ = load_config(write_config(tmp_path, ""))

        assert app_config == AppConfig()
        assert app_config.notifications.dispatch_delay_seconds == 0.1
        assert app_config.notifications.test_window_seconds == 30 * 86400
        assert app_config.email.timeout_seconds == 30
        assert app_config.logging.format == "key-value"

    def test_fallback_to_config_dir(self, tmp_path, monkeypatch, mock_env_vars):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text("email:\n  max_retries: 1\n")
        monkeypatch.chdir(tmp_path)

        app_config, _ = load_config()

        assert app_config.email.max_retries == 1

    def test_no_config_file_found(self, tmp_path, monkeypatch, mock_env_vars):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigurationError) as exc_info:
            load_config()

        assert "Tried: config.yaml" in str(exc_info.value)

    def test_config_file_not_found(self, mock_env_vars):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(Path("nonexistent.yaml"))

        assert "not found" in str(exc_info.value)

    def test_invalid_yaml_syntax(self, tmp_path, mock_env_vars):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(write_config(tmp_path, "schedule: [unclosed\n"))

        assert "Failed to parse YAML" in str(exc_info.value)

    def test_top_level_list_rejected(self, tmp_path, mock_env_vars):
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(write_config(tmp_path, "- one\n- two\n"))

    def test_warnings_are_emitted(self, tmp_path, mock_env_vars):
        content = "notifications:\n  frontend_url: http://localhost:3000\n"

        with pytest.warns(UserWarning, match="localhost"):
            load_config(write_config(tmp_path, content))


class TestConfigurationValidation:
    """Test schema validation of configuration values."""

    @pytest.mark.parametrize(
        "config_dict",
        [
            {"schedule": {"timezone": "Mars/Olympus"}},
            {"schedule": {"daily": {"hour": 24}}},
            {"schedule": {"weekly": {"day_of_week": "someday"}}},
            {"schedule": {"monthly": {"day": 31}}},
            {"notifications": {"frontend_url": "jobs.example.com"}},
            {"notifications": {"test_window": "5m"}},
            {"notifications": {"immediate_workers": 0}},
            {"email": {"max_retries": 11}},
            {"logging": {"level": "VERBOSE"}},
        ],
    )
    def test_invalid_values_rejected(self, config_dict):
        with pytest.raises(ConfigurationError):
            parse_app_config(config_dict)

    def test_error_lists_every_problem(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_app_config({"email": {"max_retries": "many", "timeout_seconds": 0}})

        error = exc_info.value
        assert len(error.errors) == 2
        assert "1. " in str(error)
        assert "2. " in str(error)
        assert "Suggestions:" in str(error)

    def test_type_error_message(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_app_config({"email": {"timeout_seconds": "slow"}})

        assert "email -> timeout_seconds" in exc_info.value.errors[0]


class TestConfigurationWarnings:
    def test_all_tiers_disabled(self):
        schedule = {tier: {"enabled": False} for tier in ("daily", "weekly", "monthly")}

        warnings = check_for_warnings({"schedule": schedule})

        assert any("only immediate notifications" in w for w in warnings)

    def test_some_tiers_disabled(self):
        warnings = check_for_warnings({"schedule": {"weekly": {"enabled": False}}})

        assert warnings == ["Disabled tiers will not send digests: weekly"]

    def test_zero_retries_and_long_delay(self):
        warnings = check_for_warnings(
            {"email": {"max_retries": 0}, "notifications": {"dispatch_delay_seconds": 5}}
        )

        assert len(warnings) == 2

    def test_clean_config_has_no_warnings(self):
        assert check_for_warnings({}) == []


class TestDurationParsing:
    """Test duration string parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("30s", 30),
            ("15m", 900),
            ("12h", 43200),
            ("30d", 2592000),
            ("2w", 1209600),
            ("1d12h", 129600),
            ("PT15M", 900),
            ("PT1H30M", 5400),
            ("P30D", 2592000),
            ("P2W", 1209600),
        ],
    )
    def test_parse(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "15", "15x", "1d and more", "P", "PT", "0m"])
    def test_parse_invalid(self, value):
        with pytest.raises(DurationParseError):
            parse_duration(value)

    def test_validate_duration_range(self):
        validate_duration_range(7200, 3600, 86400)

        with pytest.raises(DurationParseError, match="too short"):
            validate_duration_range(60, 3600, 86400, label="Test window")
        with pytest.raises(DurationParseError, match="too long"):
            validate_duration_range(90000, 3600, 86400)


class TestEnvironmentVariables:
    """Test environment variable loading."""

    def test_load_valid_environment_config(self, mock_env_vars):
        env_config = load_environment_config()

        assert env_config.smtp_host == "smtp.test.com"
        assert env_config.smtp_port == 587
        assert not env_config.auth_enabled
        assert env_config.database_url == DEFAULT_DATABASE_URL
        assert env_config.environment == "local"

    def test_missing_required_env_vars(self, monkeypatch, mock_env_vars):
        monkeypatch.delenv("SMTP_HOST")
        monkeypatch.delenv("SMTP_PORT")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "SMTP_HOST" in str(exc_info.value)
        assert "SMTP_PORT" in str(exc_info.value)

    @pytest.mark.parametrize("port", ["invalid", "0", "70000"])
    def test_invalid_smtp_port(self, monkeypatch, mock_env_vars, port):
        monkeypatch.setenv("SMTP_PORT", port)

        with pytest.raises(ConfigurationError, match="Invalid SMTP_PORT"):
            load_environment_config()

    def test_user_without_password(self, monkeypatch, mock_env_vars):
        monkeypatch.setenv("SMTP_USER", "mailer")

        with pytest.raises(ConfigurationError, match="SMTP_PASS is not"):
            load_environment_config()

    def test_credentials_enable_auth(self, monkeypatch, mock_env_vars):
        monkeypatch.setenv("SMTP_USER", "mailer")
        monkeypatch.setenv("SMTP_PASS", "secret")

        assert load_environment_config().auth_enabled

    def test_from_email_display_name(self, monkeypatch, mock_env_vars):
        monkeypatch.setenv("FROM_EMAIL", '"Job Board" <alerts@nextstep.io>')

        env_config = load_environment_config()

        assert env_config.from_email == "alerts@nextstep.io"
        assert env_config.smtp_sender_name == "Job Board"

    def test_sender_name_wins_over_from_email_display_name(self, monkeypatch, mock_env_vars):
        monkeypatch.setenv("FROM_EMAIL", '"Job Board" <alerts@nextstep.io>')
        monkeypatch.setenv("SMTP_SENDER_NAME", "Careers")

        assert load_environment_config().smtp_sender_name == "Careers"

    def test_invalid_from_email(self, monkeypatch, mock_env_vars):
        monkeypatch.setenv("FROM_EMAIL", "not-an-email")

        with pytest.raises(ConfigurationError, match="FROM_EMAIL"):
            load_environment_config()

    def test_invalid_log_level(self, monkeypatch, mock_env_vars):
        monkeypatch.setenv("LOG_LEVEL", "CHATTY")

        with pytest.raises(ConfigurationError, match="LOG_LEVEL"):
            load_environment_config()

    def test_optional_env_vars(self, monkeypatch, mock_env_vars):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
        monkeypatch.setenv("ENVIRONMENT", "production")

        env_config = load_environment_config()

        assert env_config.log_level == "debug"
        assert env_config.database_url == "sqlite:///:memory:"
        assert env_config.environment == "production"


class TestValidateConfigFile:
    def test_valid_file(self, tmp_path, capsys):
        assert validate_config_file(write_config(tmp_path, VALID_CONFIG))
        assert "is valid" in capsys.readouterr().out

    def test_invalid_file(self, tmp_path, capsys):
        assert not validate_config_file(write_config(tmp_path, "email:\n  max_retries: -1\n"))
        assert "validation failed" in capsys.readouterr().out

    def test_example_config_is_valid(self):
        example = Path(__file__).parent.parent / "config.example.yaml"

        assert validate_config_file(example)


class TestVerifyConfigScript:
    def test_unknown_section_reported(self, tmp_path, capsys):
        from verify_config import verify_config

        config_file = write_config(tmp_path, "sources: []\nemail: {}\n")

        assert not verify_config(config_file)
        assert "Unknown section: sources" in capsys.readouterr().out

    def test_mistyped_section_reported(self, tmp_path):
        from verify_config import check_sections

        config_file = write_config(tmp_path, "logging: verbose\n")

        assert check_sections(config_file) == ["'logging' must be of type dict"]

    def test_missing_file(self, tmp_path):
        from verify_config import verify_config

        assert not verify_config(tmp_path / "absent.yaml")

    def test_valid_file(self, tmp_path):
        from verify_config import verify_config

        assert verify_config(write_config(tmp_path, VALID_CONFIG))
