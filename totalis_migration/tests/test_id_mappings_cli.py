from __future__ import annotations

import json

import pytest

import totalis_migration.scripts.id_mappings as cli
from totalis_migration.core.identifiers import derive
from totalis_migration.utils.errors import SupabaseNotConfiguredError


def test_derive_prints_ids_in_input_order(capsys) -> None:
    assert cli.main(["derive", "coach", "18", "1"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        f"coach\t18\t{derive('coach', 18)}",
        f"coach\t1\t{derive('coach', 1)}",
    ]


def test_derive_uses_configured_salt(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setenv("ID_SALT", "staging")
    assert cli.main(["derive", "category", "3"]) == 0
    assert derive("category", 3, salt="staging") in capsys.readouterr().out


def test_export_json_is_sorted(capsys) -> None:
    assert cli.main(["export", "category", "9", "2", "9", "--json"]) == 0
    rows = json.loads(capsys.readouterr().out)
    assert [r["original_id"] for r in rows] == [2, 9]
    assert rows[0] == {
        "entity_type": "category",
        "original_id": 2,
        "uuid_id": derive("category", 2),
    }


def test_invalid_id_reports_error_payload(capsys) -> None:
    assert cli.main(["derive", "coach", "0"]) == 2
    payload = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert payload["code"] == "E4002"
    assert "positive" in payload["message"]


def test_unknown_kind_rejected_by_argparse() -> None:
    with pytest.raises(SystemExit):
        cli.main(["derive", "widget", "5"])


def test_push_without_supabase_config_fails_cleanly(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    def _missing():
        raise SupabaseNotConfiguredError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

    monkeypatch.setattr(cli, "get_supabase_client", _missing)
    assert cli.main(["push", "coach", "1"]) == 2
    assert json.loads(capsys.readouterr().err.strip().splitlines()[-1])["code"] == "E5030"


def test_push_loads_then_stores(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    calls = []

    class FakeStore:
        def __init__(self, client):
            assert client == "client"

        def load_into(self, registry, kind):
            registry.register(kind, 1, derive(kind, 1))
            calls.append("load")
            return 1

        def store(self, registry, kind):
            calls.append("store")
            return registry.count(kind)

    monkeypatch.setattr(cli, "get_supabase_client", lambda: "client")
    monkeypatch.setattr(cli, "MappingStore", FakeStore)

    assert cli.main(["push", "coach", "1", "2", "3"]) == 0
    assert calls == ["load", "store"]
    assert "loaded=1 new=2 written=3" in capsys.readouterr().out


def test_verify_exit_code_follows_validation(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    from totalis_migration.storage.mapping_store import MappingValidation

    outcome = {"result": MappingValidation(rows_checked=2)}

    class FakeStore:
        def __init__(self, client):
            pass

        def stats(self):
            return {"coach": 1, "category": 1}

        def validate(self, *, salt):
            assert salt == "totalis"
            return outcome["result"]

    monkeypatch.setattr(cli, "get_supabase_client", lambda: object())
    monkeypatch.setattr(cli, "MappingStore", FakeStore)

    assert cli.main(["verify"]) == 0
    assert "2 rows consistent" in capsys.readouterr().out

    outcome["result"] = MappingValidation(rows_checked=2, duplicate_uuids=[derive("coach", 1)])
    assert cli.main(["verify"]) == 1
    assert "duplicate UUIDs" in capsys.readouterr().out


def test_probe_photo_prints_first_reachable(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
    seen = {}

    def fake_first_reachable(urls, *, timeout_seconds):
        seen["urls"] = list(urls)
        seen["timeout"] = timeout_seconds
        return seen["urls"][1]

    monkeypatch.setattr(cli, "first_reachable", fake_first_reachable)
    assert cli.main(["probe-photo", "18"]) == 0
    out = capsys.readouterr().out.strip()
    assert out.endswith("/coach-images/60/image_18_60.jpe")
    assert seen["timeout"] == 5.0
    assert len(seen["urls"]) == 4


def test_probe_photo_requires_supabase_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.setattr(cli.get_settings(), "supabase_url", None, raising=False)
    assert cli.main(["probe-photo", "18"]) == 2


def test_probe_icon_uses_category_bucket(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
    monkeypatch.setenv("CATEGORY_ICONS_BUCKET", "icons")
    seen = {}

    def fake_first_reachable(urls, *, timeout_seconds):
        seen["urls"] = list(urls)
        return None

    monkeypatch.setattr(cli, "first_reachable", fake_first_reachable)
    assert cli.main(["probe-icon", "100", "0", "101"]) == 1
    assert len(seen["urls"]) == 6
    assert seen["urls"][0] == (
        "https://proj.supabase.co/storage/v1/object/public/icons/main/image_100_main.png"
    )
    assert "no accessible image among 6 candidates" in capsys.readouterr().out
