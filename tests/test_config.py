"""Configuration loading and validation tests."""

import pytest
import yaml

from crawl_engine.utils.config import (
    Config, ConfigManager, CrawlerConfig, load_config, validate_config
)


def write_yaml(tmp_path, data) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


def test_defaults_without_file():
    config = load_config()
    assert config.crawler.max_connections == 200
    assert config.crawler.max_host_connections == 6
    assert config.crawler.max_total == 100
    assert config.crawler.max_requests == 500
    assert config.crawler.max_link_per_page == 5
    assert config.crawler.follow_relative_links is False
    assert config.crawler.user_agent == "Crawler Project"
    assert config.output.file == "datafile.txt"


def test_partial_file_keeps_other_defaults(tmp_path):
    path = write_yaml(tmp_path, {
        "crawler": {"max_total": 25, "follow_relative_links": True},
        "output": {"file": "results.txt"},
    })
    config = load_config(path)
    assert config.crawler.max_total == 25
    assert config.crawler.follow_relative_links is True
    assert config.crawler.max_requests == 500
    assert config.output.file == "results.txt"
    assert config.logging.level == "INFO"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(str(path)).crawler.max_total == 100


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(str(tmp_path / "nope.yaml")).load_config()


def test_unknown_key_rejected(tmp_path):
    path = write_yaml(tmp_path, {"crawler": {"max_totl": 5}})
    with pytest.raises(ValueError, match="max_totl"):
        load_config(path)


def test_non_mapping_root_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(str(path))


@pytest.mark.parametrize("overrides", [
    {"max_connections": 0},
    {"max_host_connections": 0},
    {"max_total": 0},
    {"max_requests": -1},
    {"max_link_per_page": -1},
    {"poll_interval": 0},
    {"request_timeout": 0},
    {"max_redirects": -1},
])
def test_invalid_crawler_values_rejected(overrides):
    config = Config(crawler=CrawlerConfig(**overrides))
    with pytest.raises(ValueError):
        validate_config(config)


def test_invalid_log_level_rejected():
    config = Config()
    config.logging.level = "LOUD"
    with pytest.raises(ValueError):
        validate_config(config)


def test_config_property_requires_load():
    with pytest.raises(ValueError):
        ConfigManager().config
