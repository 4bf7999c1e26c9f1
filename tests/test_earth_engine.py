import json
from types import SimpleNamespace

import pytest

from s2triad import earth_engine


class FakeEE:
    def __init__(self, failures=()):
        self.failures = list(failures)
        self.calls = []

    def ServiceAccountCredentials(self, email, key_file):
        self.calls.append(("credentials", key_file))
        return SimpleNamespace(key_file=key_file)

    def Initialize(self, credentials=None, project=None):
        self.calls.append(("initialize", credentials, project))
        if self.failures:
            raise self.failures.pop(0)

    def Authenticate(self):
        self.calls.append(("authenticate",))


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    for name in ("GEE_SERVICE_ACCOUNT_KEY", "GEE_PROJECT", "GOOGLE_CLOUD_PROJECT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(earth_engine, "PROJECT_ROOT", str(tmp_path))
    return tmp_path / "settings.json"


def write_key(tmp_path, project="key-project"):
    key = tmp_path / "key.json"
    key.write_text(json.dumps({"type": "service_account", "project_id": project}))
    return str(key)


def test_no_key_found(isolated):
    assert earth_engine.find_service_account_key(None, isolated) is None


def test_explicit_key_and_project_from_key_file(isolated, tmp_path):
    key = write_key(tmp_path)
    assert earth_engine.find_service_account_key(key, isolated) == key
    assert earth_engine.resolve_project_id(None, key, isolated) == "key-project"
    assert earth_engine.resolve_project_id("explicit", key, isolated) == "explicit"


def test_project_from_environment(isolated, monkeypatch):
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "env-project")
    assert earth_engine.resolve_project_id(None, None, isolated) == "env-project"


def test_service_account_initialization(isolated, tmp_path, monkeypatch):
    fake = FakeEE()
    monkeypatch.setattr(earth_engine, "ee", fake)
    key = write_key(tmp_path)
    earth_engine.initialize_earth_engine(key, None, isolated)
    assert fake.calls[0] == ("credentials", key)
    assert fake.calls[1][0] == "initialize"
    assert fake.calls[1][2] == "key-project"
    assert len(fake.calls) == 2


def test_falls_back_to_user_credentials(isolated, tmp_path, monkeypatch):
    fake = FakeEE(failures=[RuntimeError("bad key")])
    monkeypatch.setattr(earth_engine, "ee", fake)
    earth_engine.initialize_earth_engine(write_key(tmp_path), "proj", isolated)
    assert fake.calls[-1] == ("initialize", None, "proj")


def test_authenticates_once_on_auth_error(isolated, monkeypatch):
    fake = FakeEE(failures=[Exception("Please authorize access: ee.Authenticate()")])
    monkeypatch.setattr(earth_engine, "ee", fake)
    earth_engine.initialize_earth_engine(None, "proj", isolated)
    assert [c[0] for c in fake.calls] == ["initialize", "authenticate", "initialize"]


def test_other_errors_propagate(isolated, monkeypatch):
    fake = FakeEE(failures=[RuntimeError("service unavailable")])
    monkeypatch.setattr(earth_engine, "ee", fake)
    with pytest.raises(RuntimeError, match="service unavailable"):
        earth_engine.initialize_earth_engine(None, "proj", isolated)
    assert ("authenticate",) not in fake.calls
