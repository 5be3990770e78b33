import os

from statement_reconciler.core import settings


def test_read_config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "# reconciler settings\n"
        "LEDGER_URL: http://ledger.local:8080  # local dev\n"
        "BANK_TAG: 'RBC # Royal'\n"
        "EMPTY:\n"
        "no separator here\n",
        encoding="utf-8",
    )

    values = settings.read_config_file(str(path))

    assert values == {"LEDGER_URL": "http://ledger.local:8080", "BANK_TAG": "RBC # Royal"}


def test_missing_config_file_is_empty(tmp_path):
    assert settings.read_config_file(str(tmp_path / "absent.yaml")) == {}
    assert settings.read_config_file(None) == {}


def test_get_env_int_falls_back_on_bad_values(monkeypatch):
    monkeypatch.setenv("UPLOAD_BATCH_SIZE", "abc")
    assert settings.get_env_int("UPLOAD_BATCH_SIZE", 1000, min_value=1) == 1000

    monkeypatch.setenv("UPLOAD_BATCH_SIZE", "0")
    assert settings.get_env_int("UPLOAD_BATCH_SIZE", 1000, min_value=1) == 1000

    monkeypatch.setenv("UPLOAD_BATCH_SIZE", "250")
    assert settings.get_env_int("UPLOAD_BATCH_SIZE", 1000, min_value=1) == 250


def test_mappings_path(monkeypatch, tmp_path):
    monkeypatch.delenv("MAPPINGS_FILE", raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    assert settings.mappings_path() == os.path.join(str(tmp_path), "account-mappings.txt")

    monkeypatch.setenv("MAPPINGS_FILE", "/srv/mappings.txt")
    assert settings.mappings_path() == "/srv/mappings.txt"


def test_secrets_are_masked():
    assert settings.mask_env_value("LEDGER_TOKEN", "abcdef123456") == "ab...56"
    assert settings.mask_env_value("LEDGER_URL", "http://ledger") == "http://ledger"
    assert settings.mask_env_value("LEDGER_TOKEN", "abc") == "****"
