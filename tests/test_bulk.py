"""Tests for occ_admin.bulk — ID lists, batching and outcome accounting."""

import threading
import time

import pytest
import requests

from occ_admin.bulk import BulkMutator, print_report, read_id_list, validate_concurrency
from occ_admin.errors import AuthenticationError, RemoteRequestError, ValidationError


# ---------------------------------------------------------------------------
# ID list input
# ---------------------------------------------------------------------------


class TestReadIdList:
    def test_plain_text(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("PA1\n\n  PA2  \nPA3\n")
        assert read_id_list(str(path)) == ["PA1", "PA2", "PA3"]

    def test_csv_with_header_and_bom(self, tmp_path):
        path = tmp_path / "ids.csv"
        path.write_bytes("﻿id,name\no1,first\no2,second\n".encode("utf-8"))
        assert read_id_list(str(path)) == ["o1", "o2"]


class TestValidateConcurrency:
    @pytest.mark.parametrize("value", [1, 5, 10, "3"])
    def test_valid(self, value):
        assert validate_concurrency(value) == int(value)

    @pytest.mark.parametrize("value", [0, 11, -1, "many", None])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            validate_concurrency(value)


# ---------------------------------------------------------------------------
# BulkMutator
# ---------------------------------------------------------------------------


class TestBulkMutator:
    def test_prefix_skip_is_never_sent(self):
        sent = []
        mutator = BulkMutator(concurrency=2, required_prefix="PA")

        report = mutator.run(["PA1", "XB9", "PA2"], sent.append)

        assert sorted(sent) == ["PA1", "PA2"]
        assert report.total == 3
        assert report.succeeded == 2
        assert report.skipped == 1
        assert report.skipped_ids == ["XB9"]
        assert report.failed == 0

    def test_not_found_counts_as_failed(self):
        def operation(record_id):
            if record_id == "PA2":
                raise RemoteRequestError("Not Found", status_code=404)
            if record_id == "PA3":
                raise RemoteRequestError("Server Error", status_code=500)

        report = BulkMutator(concurrency=3, required_prefix="PA").run(["PA1", "PA2", "PA3"], operation)

        assert report.succeeded == 1
        assert report.failed == 2
        assert report.not_found == 1
        assert [e["id"] for e in report.errors] == ["PA2", "PA3"]
        assert [e["statusCode"] for e in report.errors] == [404, 500]

    def test_counts_add_up(self):
        def operation(record_id):
            if record_id.endswith("7"):
                raise RemoteRequestError("boom", status_code=400)

        ids = [f"PA{i}" for i in range(12)] + ["ZZ1"]
        report = BulkMutator(concurrency=4, required_prefix="PA").run(ids, operation)

        assert report.succeeded + report.failed + report.skipped == report.total == 13

    def test_batches_never_exceed_concurrency(self):
        lock = threading.Lock()
        state = {"active": 0, "peak": 0}

        def operation(record_id):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            time.sleep(0.01)
            with lock:
                state["active"] -= 1

        report = BulkMutator(concurrency=3).run([str(i) for i in range(10)], operation)

        assert report.succeeded == 10
        assert state["peak"] <= 3

    def test_results_kept_in_submission_order(self):
        def operation(record_id):
            time.sleep(0.01 * (5 - int(record_id)))
            return {"id": record_id}

        mutator = BulkMutator(concurrency=5, success_label="fetched", keep_results=True)
        report = mutator.run(["1", "2", "3", "4"], operation)

        assert [r["id"] for r in report.results] == ["1", "2", "3", "4"]
        assert report.to_dict()["fetched"] == 4

    def test_undecodable_body_is_recorded_and_run_continues(self):
        def operation(record_id):
            if record_id == "o2":
                raise requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)
            return {"id": record_id}

        report = BulkMutator(concurrency=2, keep_results=True).run(["o1", "o2", "o3"], operation)

        assert report.succeeded == 2
        assert report.failed == 1
        assert report.not_found == 0
        assert [e["id"] for e in report.errors] == ["o2"]
        assert "JSONDecodeError" in report.errors[0]["error"]
        assert [r["id"] for r in report.results] == ["o1", "o3"]

    def test_connection_error_is_recorded_without_status(self):
        def operation(record_id):
            if record_id == "PA2":
                raise requests.ConnectionError("reset by peer")

        report = BulkMutator(concurrency=2, required_prefix="PA").run(["PA1", "PA2"], operation)

        assert report.succeeded == 1
        assert report.errors == [{"id": "PA2", "error": "ConnectionError: reset by peer", "statusCode": None}]

    def test_authentication_failure_aborts_the_run(self):
        def operation(record_id):
            raise AuthenticationError("Authentication failed: invalid key")

        with pytest.raises(AuthenticationError):
            BulkMutator(concurrency=2).run(["o1", "o2"], operation)

    def test_report_dict_keys(self):
        report = BulkMutator(concurrency=1, required_prefix="PA", success_label="deleted").run(
            ["PA1"], lambda record_id: None
        )
        data = report.to_dict()
        assert data["deleted"] == 1
        for key in ("total", "failed", "notFound", "skipped", "errors", "startTime", "endTime"):
            assert key in data

    def test_print_report(self, capsys):
        report = BulkMutator(concurrency=1).run(["a"], lambda record_id: None)
        print_report(report, "Bulk Fetch Summary")
        output = capsys.readouterr().out
        assert "Bulk Fetch Summary" in output
        assert "Total IDs: 1" in output
