from pathlib import Path

import pytest

from users_api.config import DEFAULT_MAX_BODY_BYTES, Settings, load_settings, parse_size


def test_defaults_without_environment() -> None:
    settings = load_settings({})
    assert settings.port == 3001
    assert settings.cors_origin == "*"
    assert settings.trust_proxy is True
    assert settings.max_body_bytes == DEFAULT_MAX_BODY_BYTES
    assert settings.environment == "development"
    assert settings.store_backend == "supabase"
    assert not settings.is_production


def test_environment_overrides() -> None:
    settings = load_settings(
        {
            "PORT": "8080",
            "FRONTEND_URL": "https://app.example.com",
            "TRUST_PROXY": "off",
            "MAX_BODY_BYTES": "512kb",
            "NODE_ENV": "production",
            "SUPABASE_URL": "https://demo.supabase.co",
            "SUPABASE_ANON_KEY": "anon",
        }
    )
    assert settings.port == 8080
    assert settings.cors_origin == "https://app.example.com"
    assert settings.trust_proxy is False
    assert settings.max_body_bytes == 512 * 1024
    assert settings.is_production
    settings.validate_store()


def test_invalid_port_names_variable() -> None:
    with pytest.raises(ValueError, match="PORT"):
        load_settings({"PORT": "eighty"})


def test_yaml_file_is_overlaid_before_environment(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.yaml"
    config_path.write_text(
        "port: 4000\nstore_backend: sqlite\ndatabase_path: users.db\nmax_body_bytes: 1mb\n",
        encoding="utf-8",
    )

    settings = load_settings({"PORT": "5000"}, config_path=config_path)

    assert settings.port == 5000
    assert settings.store_backend == "sqlite"
    assert settings.max_body_bytes == 1024 * 1024
    assert settings.database_path.name == "users.db"
    settings.validate_store()


def test_yaml_file_rejects_unknown_keys(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.yaml"
    config_path.write_text("listen_port: 4000\n", encoding="utf-8")
    with pytest.raises(ValueError, match="listen_port"):
        load_settings({"USERS_API_CONFIG": str(config_path)})


def test_supabase_backend_requires_credentials() -> None:
    with pytest.raises(ValueError, match="SUPABASE_URL"):
        Settings().validate_store()


def test_unknown_backend_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown store backend"):
        load_settings({"STORE_BACKEND": "mongo"}).validate_store()


@pytest.mark.parametrize(
    "raw, expected",
    [("1048576", 1048576), ("10mb", 10 * 1024 * 1024), ("2 KB", 2048), (64, 64)],
)
def test_parse_size(raw, expected) -> None:
    assert parse_size("max_body_bytes", raw) == expected


def test_trusted_proxies_come_from_environment() -> None:
    assert load_settings({}).trusted_proxies == "*"
    settings = load_settings({"TRUSTED_PROXIES": "10.0.0.1, 10.0.0.2"})
    assert settings.trusted_proxies == "10.0.0.1, 10.0.0.2"
