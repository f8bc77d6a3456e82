"""Tests for occ_admin.orchestrator.AdminOrchestrator and the run.py entry point."""

import json
import os
from unittest.mock import patch, MagicMock

import pytest

from occ_admin.errors import InputNotFound, RemoteRequestError
from occ_admin.orchestrator import AdminOrchestrator


_BASE_ENV = {
    "DEV_BASE_URL": "https://dev.example.com",
    "DEV_BEARER_TOKEN": "dev-app-key",
    "TST_BASE_URL": "",
    "TST_BEARER_TOKEN": "",
    "PROFILES_LIMIT": "2",
    "REQUEST_DELAY": "0",
    "DEBUG": "false",
}


@pytest.fixture()
def make_orchestrator(tmp_path):
    def _make(environment="dev", env_overrides=None):
        env = dict(_BASE_ENV)
        env.update({
            "RESPONSES_DIR": str(tmp_path / "responses"),
            "RESULT_DIR": str(tmp_path / "result"),
            "ARCHIVE_DIR": str(tmp_path / "archive"),
            "INPUT_DIR": str(tmp_path / "input"),
        })
        if env_overrides:
            env.update(env_overrides)
        with patch.dict(os.environ, env, clear=True):
            orchestrator = AdminOrchestrator(env_file="/nonexistent/.env", environment=environment)
        return orchestrator
    return _make


def _write_ids(tmp_path, name, lines):
    input_dir = tmp_path / "input"
    input_dir.mkdir(exist_ok=True)
    path = input_dir / name
    path.write_text("\n".join(lines) + "\n")
    return path


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def test_validate_config_valid(make_orchestrator):
    assert make_orchestrator().validate_config("searchProfiles") is True


def test_validate_config_missing_credentials(make_orchestrator, capsys):
    orch = make_orchestrator(environment="tst")
    assert orch.validate_config("auth") is False
    output = capsys.readouterr().out
    assert "TST_BASE_URL is required" in output
    assert "TST_BEARER_TOKEN is required" in output


def test_validate_config_mining_needs_no_credentials(make_orchestrator):
    assert make_orchestrator(environment="tst").validate_config("mineResult") is True


def test_validate_config_bad_page_size(make_orchestrator):
    assert make_orchestrator(env_overrides={"PROFILES_LIMIT": "0"}).validate_config("auth") is False


def test_settings_loaded_from_environment(make_orchestrator):
    orch = make_orchestrator()
    assert orch.page_size == 2
    assert orch.delay == 0.0
    assert orch.debug is False
    assert orch.base_url == "https://dev.example.com"


# ---------------------------------------------------------------------------
# Command boundary
# ---------------------------------------------------------------------------

def test_unknown_command_fails(make_orchestrator):
    results = make_orchestrator().execute("dropDatabase")
    assert results["success"] is False
    assert "Unknown command" in results["error"]


def test_remote_error_is_captured(make_orchestrator):
    orch = make_orchestrator()
    orch._client = MagicMock()
    orch._client.search_orders.side_effect = RemoteRequestError("boom", status_code=500)

    results = orch.execute("countOrders", query="")

    assert results["success"] is False
    assert "boom" in results["error"]
    assert "completed_at" in results


def test_missing_config_surfaces_as_failure(make_orchestrator):
    results = make_orchestrator(environment="tst").execute("auth")
    assert results["success"] is False
    assert "TST_BASE_URL" in results["error"]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def test_auth_reports_expiry(make_orchestrator):
    orch = make_orchestrator()
    orch._client = MagicMock()
    orch._client.auth.expires_in = 300

    results = orch.execute("auth")

    assert results["success"] is True
    assert results["expires_in"] == 300
    orch._client.authenticate.assert_called_once()


def test_search_profiles_with_consolidation(make_orchestrator):
    orch = make_orchestrator()
    orch._client = MagicMock()
    pages = {
        0: {"total": 3, "items": [{"id": "p1"}, {"id": "p2"}]},
        2: {"total": 3, "items": [{"id": "p3"}]},
    }
    orch._client.search_profiles.side_effect = lambda query, offset, limit, fields: pages[offset]

    results = orch.execute("searchProfiles", query_field="email", query_value="@acme.com",
                           fields="id,email", consolidate=True)

    assert results["success"] is True
    assert results["fetched"] == 3
    assert orch._client.search_profiles.call_args_list[0][0][0] == 'email co "@acme.com"'
    with open(results["consolidated_path"], encoding="utf-8") as f:
        data = json.load(f)
    assert data["env"] == "dev"
    assert [item["id"] for item in data["items"]] == ["p1", "p2", "p3"]
    assert os.listdir(orch.output_manager.responses_dir) == []


def test_search_requires_query_field(make_orchestrator):
    orch = make_orchestrator()
    orch._client = MagicMock()
    results = orch.execute("searchProfiles", query_field="", query_value="x")
    assert results["success"] is False
    orch._client.search_profiles.assert_not_called()


def test_count_and_oldest_orders(make_orchestrator):
    orch = make_orchestrator()
    orch._client = MagicMock()
    orch._client.search_orders.return_value = {
        "total": 42,
        "items": [{"id": "o1", "submittedDate": "2019-01-02T10:00:00Z"}],
    }

    assert orch.execute("countOrders", query="")["total"] == 42
    oldest = orch.execute("oldestOrder", query="")
    assert oldest["order"] == {"id": "o1", "submittedDate": "2019-01-02T10:00:00Z"}
    kwargs = orch._client.search_orders.call_args[1]
    assert kwargs["sort_by"] == "submittedDate"
    assert kwargs["sort_order"] == "asc"
    assert kwargs["limit"] == 1


def test_list_orders_writes_csv(make_orchestrator):
    orch = make_orchestrator()
    orch._client = MagicMock()
    orch._client.search_orders.side_effect = [
        {"total": 3, "items": [{"id": "o1", "state": "SUBMITTED"}, {"id": "o2", "state": "NEW"}]},
        {"total": 3, "items": [{"id": "o3", "state": "SUBMITTED"}]},
    ]

    results = orch.execute("listOrders", query="", fields="id,state")

    assert results["success"] is True
    with open(results["csv_path"], encoding="utf-8") as f:
        assert f.read() == "id,state\no1,SUBMITTED\no2,NEW\no3,SUBMITTED\n"
    assert not os.path.exists(os.path.join(orch.output_manager.result_dir, "dev_orders_checkpoint.json"))


def test_delete_products_end_to_end(make_orchestrator, tmp_path):
    orch = make_orchestrator()
    orch._client = MagicMock()

    def delete(product_id):
        if product_id == "PA404":
            raise RemoteRequestError("Not Found", status_code=404)

    orch._client.delete_product.side_effect = delete
    ids_file = _write_ids(tmp_path, "ids.txt", ["PA1", "XB2", "PA404"])

    results = orch.execute("deleteProducts", input_file="ids.txt", concurrency=2)

    assert results["success"] is True
    assert results["deleted"] == 1
    assert results["failed"] == 1
    assert results["skipped"] == 1
    deleted = sorted(c[0][0] for c in orch._client.delete_product.call_args_list)
    assert deleted == ["PA1", "PA404"]
    assert not ids_file.exists()
    assert len(os.listdir(orch.output_manager.archive_dir)) == 1

    with open(results["report_path"], encoding="utf-8") as f:
        report = json.load(f)
    assert report["deleted"] == 1
    assert report["notFound"] == 1
    assert report["skippedIds"] == ["XB2"]


def test_missing_id_file_is_input_not_found(make_orchestrator):
    orch = make_orchestrator()
    orch._client = MagicMock()

    with pytest.raises(InputNotFound):
        orch._load_ids("absent.txt")

    results = orch.execute("fetchOrders", input_file="absent.txt", concurrency=2)
    assert results["success"] is False
    assert "absent.txt" in results["error"]
    orch._client.get_order.assert_not_called()


def test_delete_products_invalid_concurrency(make_orchestrator, tmp_path):
    orch = make_orchestrator()
    orch._client = MagicMock()
    ids_file = _write_ids(tmp_path, "ids.txt", ["PA1"])

    results = orch.execute("deleteProducts", input_file="ids.txt", concurrency=11)

    assert results["success"] is False
    orch._client.delete_product.assert_not_called()
    assert ids_file.exists()


def test_fetch_orders_saves_record_set(make_orchestrator, tmp_path):
    orch = make_orchestrator()
    orch._client = MagicMock()
    orch._client.get_order.side_effect = lambda order_id, fields: {"id": order_id, "state": "SUBMITTED"}
    _write_ids(tmp_path, "orders.csv", ["id", "o1", "o2"])

    results = orch.execute("fetchOrders", input_file="orders.csv", concurrency=2, fields="id,state")

    assert results["fetched"] == 2
    assert orch._client.get_order.call_args[0][1] == ["id", "state"]
    with open(results["json_path"], encoding="utf-8") as f:
        data = json.load(f)
    assert [item["id"] for item in data["items"]] == ["o1", "o2"]


def test_mine_result_without_credentials(make_orchestrator, tmp_path):
    orch = make_orchestrator(environment="tst")
    result_dir = tmp_path / "result"
    result_dir.mkdir()
    (result_dir / "profiles.json").write_text(json.dumps(
        {"total": 3, "env": "tst", "items": [{"a": "5"}, {"a": "15"}, {"a": "25"}]}
    ))

    results = orch.execute("mineResult", input_file="profiles.json", field_name="a", condition=">10")

    assert results["success"] is True
    assert results["field_type"] == "number"
    assert results["filtered_count"] == 2


def test_mine_result_missing_file(make_orchestrator):
    results = make_orchestrator().execute("mineResult", input_file="nope.json", field_name="a", condition="1")
    assert results["success"] is False


# ---------------------------------------------------------------------------
# run.py
# ---------------------------------------------------------------------------

def test_command_kwargs_for_search():
    from run import build_parser, command_kwargs
    args = build_parser().parse_args(
        ["searchProducts", "--env", "tst", "--q", "displayName", "shirt", "--c", "--idprefix", "PA"]
    )
    assert args.env == "tst"
    assert command_kwargs(args) == {
        "query_field": "displayName",
        "query_value": "shirt",
        "fields": "",
        "consolidate": True,
        "id_prefix": "PA",
    }


def test_command_kwargs_for_mining():
    from run import build_parser, command_kwargs
    args = build_parser().parse_args(["mineResult", "data.json", "--f", "amount", ">20"])
    assert command_kwargs(args) == {"input_file": "data.json", "field_name": "amount", "condition": ">20"}


def test_main_exits_non_zero_on_failure(tmp_path):
    from run import main
    env = {"RESULT_DIR": str(tmp_path / "result"), "RESPONSES_DIR": str(tmp_path / "responses")}
    with patch.dict(os.environ, env, clear=True):
        with pytest.raises(SystemExit) as excinfo:
            main(["mineResult", "missing.json", "--f", "a", "1", "--env-file", "/nonexistent/.env"])
    assert excinfo.value.code == 1
