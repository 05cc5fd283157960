"""Tests for configuration loading."""

import json

import pytest

from instance_pool.config.manager import ConfigurationManager
from instance_pool.config.schemas import LoggingConfig, PollingConfig
from instance_pool.domain.base.exceptions import ConfigurationError
from instance_pool.providers.aws.configuration.config import AWSProviderConfig


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "LOG_LEVEL",
        "INSTANCE_POOL_LOG_FILE",
        "INSTANCE_POOL_POLL_INTERVAL",
        "INSTANCE_POOL_NETWORK_TIMEOUT",
        "INSTANCE_POOL_DATABASE_TIMEOUT",
        "INSTANCE_POOL_FLOATING_IP_ATTEMPTS",
        "AWS_REGION",
        "AWS_PROFILE",
        "AWS_ENDPOINT_URL",
        "AWS_RDS_ENDPOINT_URL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dict():
    return {
        "polling": {"interval_seconds": 2, "network_ready_timeout_seconds": 90},
        "logging": {"level": "debug"},
        "aws": {"region": "eu-west-1"},
        "templates": {
            "worker": {
                "imageId": "ami-12345678",
                "type": "t3.micro",
                "securityGroupNames": "default,ssh",
                "volumeNumber": 1,
                "volumeSize": 20,
            },
            "broken": {"type": "t3.micro"},
        },
        "databaseTemplates": {
            "orders": {"type": "MySQL", "flavorId": "db.t3.micro", "volumeSize": 50},
            "no-class": {"type": "mysql"},
        },
    }


@pytest.fixture
def config_file(tmp_path, config_dict):
    path = tmp_path / "pool.json"
    path.write_text(json.dumps(config_dict))
    return path


@pytest.mark.unit
class TestConfigurationManager:
    """Test ConfigurationManager."""

    def test_defaults_without_file(self):
        config = ConfigurationManager().get_pool_config()
        assert config.polling.network_ready_timeout_seconds == 180
        assert config.polling.volume_delete_timeout_seconds == 600
        assert config.polling.floating_ip_association_attempts == 10
        assert config.polling.database_ready_timeout_seconds == 600
        assert config.aws.default_floating_ip_pool == "amazon"

    def test_loads_file(self, config_file):
        manager = ConfigurationManager(config_file)

        assert manager.get_typed(PollingConfig).interval_seconds == 2
        assert manager.get_typed(LoggingConfig).level == "DEBUG"
        assert manager.get_typed(AWSProviderConfig).region == "eu-west-1"

    def test_environment_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("INSTANCE_POOL_POLL_INTERVAL", "7")
        monkeypatch.setenv("AWS_REGION", "us-west-2")

        config = ConfigurationManager(config_file).get_pool_config()

        assert config.polling.interval_seconds == 7
        assert config.polling.network_ready_timeout_seconds == 90
        assert config.aws.region == "us-west-2"

    def test_invalid_values_raise(self, monkeypatch):
        monkeypatch.setenv("INSTANCE_POOL_FLOATING_IP_ATTEMPTS", "0")
        with pytest.raises(ConfigurationError):
            ConfigurationManager().get_pool_config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigurationManager(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            ConfigurationManager(path)

    def test_non_object_json(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigurationError):
            ConfigurationManager(path)

    def test_get_template(self, config_file):
        manager = ConfigurationManager(config_file)
        template = manager.get_template("worker")

        assert template.name == "worker"
        assert template.security_group_names == ["default", "ssh"]
        assert template.wants_volumes
        assert manager.list_template_names() == ["broken", "worker"]

    def test_unknown_and_invalid_templates(self, config_file):
        manager = ConfigurationManager(config_file)
        with pytest.raises(ConfigurationError):
            manager.get_template("nope")
        with pytest.raises(ConfigurationError):
            manager.get_template("broken")

    def test_unknown_section_type(self):
        with pytest.raises(ConfigurationError):
            ConfigurationManager().get_typed(ConfigurationManager)

    def test_load_from_dict(self):
        manager = ConfigurationManager()
        manager.load_from_dict({"polling": {"volume_status_timeout_seconds": 30}})
        assert manager.get_typed(PollingConfig).volume_status_timeout_seconds == 30
        assert manager.get("polling") == {"volume_status_timeout_seconds": 30}

    def test_get_database_template(self, config_file, monkeypatch):
        monkeypatch.setenv("INSTANCE_POOL_DATABASE_TIMEOUT", "900")
        monkeypatch.setenv("AWS_RDS_ENDPOINT_URL", "http://localhost:5000")
        manager = ConfigurationManager(config_file)

        template = manager.get_database_template("orders")

        assert template.name == "orders"
        assert template.engine == "mysql"
        assert template.storage_gib == 50
        assert template.password() is None
        assert manager.get_pool_config().polling.database_ready_timeout_seconds == 900
        assert manager.get_typed(AWSProviderConfig).rds_endpoint_url == "http://localhost:5000"
        with pytest.raises(ConfigurationError):
            manager.get_database_template("no-class")
        with pytest.raises(ConfigurationError):
            manager.get_database_template("worker")
