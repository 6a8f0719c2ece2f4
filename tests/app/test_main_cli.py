from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from furnitrack import main as main_module
from furnitrack.app import sync_remote
from furnitrack.config import RemoteConfig, ResilienceConfig
from tests.support.remote import FakeRemoteStore

if TYPE_CHECKING:
    from pathlib import Path

    from furnitrack.domain.reconciliation import SyncReport
    from furnitrack.domain.tracker import Tracker


@pytest.fixture
def database_args(tmp_path: Path) -> list[str]:
    return ["--database-uri", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"]


@pytest.fixture
def bundle_file(tmp_path: Path) -> Path:
    path = tmp_path / "bundle.json"
    bundle = {
        "version": 2,
        "rooms": [{"id": "Den", "name": "Den", "sort": 0}],
        "items": [{"id": "i_sofa", "name": "Sofa", "room": "Den", "price": 899}],
    }
    path.write_text(json.dumps(bundle), encoding="utf-8")
    return path


def test_import_then_export_to_file(
    database_args: list[str],
    bundle_file: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    main_module.main([*database_args, "import", str(bundle_file)])
    summary = json.loads(capsys.readouterr().out)

    output = tmp_path / "backup.json"
    main_module.main([*database_args, "export", "--output", str(output)])

    assert summary["inserted"] == {"room": 1, "item": 1}
    exported = json.loads(output.read_text(encoding="utf-8"))
    assert [item["id"] for item in exported["items"]] == ["i_sofa"]
    assert capsys.readouterr().out == ""


def test_status_reports_pending_changes(
    database_args: list[str],
    bundle_file: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    main_module.main([*database_args, "import", str(bundle_file)])
    capsys.readouterr()

    main_module.main([*database_args, "status"])
    status = json.loads(capsys.readouterr().out)

    assert status["home"] == "My Home"
    assert status["pending"]["item"] == 1
    assert status["lastSyncAt"] is None


def test_reset_then_export_prints_empty_bundle(
    database_args: list[str],
    bundle_file: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    main_module.main([*database_args, "import", str(bundle_file), "--mode", "replace"])
    main_module.main([*database_args, "reset"])
    capsys.readouterr()

    main_module.main([*database_args, "export"])
    exported = json.loads(capsys.readouterr().out)

    assert exported["items"] == []


def test_sync_command_prints_summary(
    monkeypatch: pytest.MonkeyPatch,
    database_args: list[str],
    bundle_file: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    remote = FakeRemoteStore()
    config = RemoteConfig(
        token="pat-secret",
        base_id="appBase",
        table_id="tblItems",
        view=None,
        sync_source="cli",
        resilience=ResilienceConfig(name="airtable"),
    )

    async def fake_sync(tracker: Tracker, *, view: str | None = None) -> SyncReport:
        return await sync_remote(tracker, remote=remote, config=config, view=view)

    monkeypatch.setattr(main_module, "sync_remote", fake_sync)
    main_module.main([*database_args, "import", str(bundle_file)])
    capsys.readouterr()

    main_module.main([*database_args, "sync", "--view", "Everything"])
    summary = json.loads(capsys.readouterr().out)

    assert summary["push"]["create"] == len(remote.records)
    assert summary["pull"]["item"] == 1
    assert remote.list_views[0] == "Everything"


def test_failed_command_exits_with_error(database_args: list[str], tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main([*database_args, "import", str(tmp_path / "missing.json")])

    assert excinfo.value.code == 1


def test_command_is_required() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main([])

    assert excinfo.value.code == 2


def test_verbose_flag_is_parsed_before_the_command() -> None:
    assert main_module._parse_args(["-v", "status"]).verbose  # noqa: SLF001
    assert not main_module._parse_args(["status"]).verbose  # noqa: SLF001
