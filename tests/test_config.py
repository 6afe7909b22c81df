import json

import pytest

from rangedl.core.config import ConfigRepository, TransferConfig, coerce_value, env_overrides, load_config
from rangedl.core.errors import ConfigurationError


def test_defaults():
    config = TransferConfig()
    assert config.host == "127.0.0.1"
    assert config.port == 8080
    assert config.chunk_size == 64 * 1024
    assert config.concurrency == 4
    assert config.max_chunk_retries == 2
    assert config.max_batch_retries == 3
    assert config.base_delay == pytest.approx(0.05)
    assert config.expected_checksum is None


def test_from_args_ignores_none():
    config = TransferConfig.from_args({"host": "10.0.0.5", "port": None, "concurrency": "8", "other": 1})
    assert config.host == "10.0.0.5"
    assert config.port == 8080
    assert config.concurrency == 8


def test_from_env_coerces_types():
    environ = {
        "RANGEDL_PORT": "9000",
        "RANGEDL_READ_TIMEOUT": "1.5",
        "RANGEDL_EXPECTED_CHECKSUM": "abc",
        "RANGEDL_HOST": "",
        "UNRELATED": "x",
    }
    config = TransferConfig.from_env(environ)
    assert config.port == 9000
    assert config.read_timeout == 1.5
    assert config.expected_checksum == "abc"
    assert config.host == "127.0.0.1"


def test_env_overrides_only_known_fields():
    assert env_overrides({"RANGEDL_CONCURRENCY": "3", "RANGEDL_BOGUS": "1"}) == {"concurrency": "3"}


def test_coerce_rejects_bad_values():
    with pytest.raises(ConfigurationError):
        coerce_value("port", "eighty")
    with pytest.raises(ConfigurationError):
        coerce_value("no_such_field", "1")


def test_merged_returns_copy():
    base = TransferConfig()
    changed = base.merged(concurrency=2, host=None)
    assert changed.concurrency == 2
    assert changed.host == base.host
    assert base.concurrency == 4


@pytest.mark.parametrize("overrides", [
    {"port": 0},
    {"port": 70000},
    {"chunk_size": 0},
    {"concurrency": -1},
    {"max_chunk_retries": -1},
    {"read_timeout": 0},
    {"base_delay": -0.1},
    {"host": ""},
])
def test_validate_rejects(overrides):
    with pytest.raises(ConfigurationError):
        TransferConfig().merged(**overrides).validate()


def test_repository_persists(tmp_path):
    repo = ConfigRepository(tmp_path)
    repo.set("port", "9100")
    repo.set("host", "files.local")

    reloaded = ConfigRepository(tmp_path)
    assert reloaded.get("port") == 9100
    assert reloaded.all() == {"port": 9100, "host": "files.local"}
    assert json.loads((tmp_path / "config.json").read_text())["port"] == 9100

    reloaded.unset("port")
    assert ConfigRepository(tmp_path).get("port") is None


def test_repository_ignores_corrupt_file(tmp_path):
    (tmp_path / "config.json").write_text("{not json")
    repo = ConfigRepository(tmp_path)
    assert repo.all() == {}


def test_repository_ignores_non_object_file(tmp_path):
    (tmp_path / "config.json").write_text("[1, 2]")
    repo = ConfigRepository(tmp_path)
    assert repo.all() == {}
    assert repo.get("port") is None
    assert load_config(repo, environ={}).port == 8080


def test_load_config_precedence(tmp_path):
    repo = ConfigRepository(tmp_path)
    repo.set("host", "saved-host")
    repo.set("port", "1111")
    repo.set("concurrency", "3")

    config = load_config(repo, environ={"RANGEDL_PORT": "2222"}, concurrency=6)
    assert config.host == "saved-host"
    assert config.port == 2222
    assert config.concurrency == 6


def test_load_config_validates(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(None, environ={"RANGEDL_CHUNK_SIZE": "0"})
