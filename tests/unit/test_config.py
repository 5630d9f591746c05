"""
Unit tests for config loader.
"""

import pytest

from linstor_volume.exceptions import InvalidOptions
from linstor_volume.lib.config import LinstorConfig, load_config, load_section


@pytest.mark.unit
def test_load_config_missing_file(clean_env):
    cfg = load_config()
    assert cfg == LinstorConfig()
    assert load_section() == {}


@pytest.mark.unit
def test_load_config_reads_values(clean_env, temp_dir):
    path = temp_dir / "docker-volume.conf"
    path.write_text(
        "\n".join(
            [
                "[global]",
                "Controllers = linstor+ssl://ctrl-1,linstor+ssl://ctrl-2",
                "username = admin",
                "password = s3cr%t",
                "certfile = /etc/linstor/client.crt",
                "keyfile = /etc/linstor/client.key",
                "CAFile = /etc/linstor/ca.crt",
                "replicas = 3",
                "storage-pool = thin",
                "",
            ]
        ),
        encoding="utf-8",
    )

    cfg = load_config(path)
    assert cfg.controllers == "linstor+ssl://ctrl-1,linstor+ssl://ctrl-2"
    assert cfg.username == "admin"
    assert cfg.password == "s3cr%t"
    assert cfg.cert_file == "/etc/linstor/client.crt"
    assert cfg.key_file == "/etc/linstor/client.key"
    assert cfg.ca_file == "/etc/linstor/ca.crt"

    section = load_section(path)
    assert section["replicas"] == "3"
    assert section["storage-pool"] == "thin"


@pytest.mark.unit
def test_environment_overrides_connection_fields(clean_env, monkeypatch, temp_dir):
    path = temp_dir / "docker-volume.conf"
    path.write_text("[global]\ncontrollers = linstor://file-ctrl\nusername = file-user\n", encoding="utf-8")
    monkeypatch.setenv("LS_CONTROLLERS", "linstor://env-ctrl")
    monkeypatch.setenv("LS_CA_FILE", "/tmp/ca.pem")

    cfg = load_config(path)
    assert cfg.controllers == "linstor://env-ctrl"
    assert cfg.username == "file-user"
    assert cfg.ca_file == "/tmp/ca.pem"


@pytest.mark.unit
def test_config_path_from_environment(clean_env, monkeypatch, temp_dir):
    path = temp_dir / "other.conf"
    path.write_text("[global]\nfs = xfs\n", encoding="utf-8")
    monkeypatch.setenv("LINSTOR_DOCKER_VOLUME_CONFIG", str(path))

    assert load_section() == {"fs": "xfs"}


@pytest.mark.unit
def test_malformed_config_file(clean_env, temp_dir):
    path = temp_dir / "broken.conf"
    path.write_text("replicas = 3\n", encoding="utf-8")

    with pytest.raises(InvalidOptions, match="Could not parse config file"):
        load_section(path)
