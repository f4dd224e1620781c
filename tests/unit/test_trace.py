"""Trace id format tests."""

import re

from triggerx.trace import generate_trace_id, sanitize_route


def test_sanitize_route_strips_prefix_addresses_and_separators():
    assert sanitize_route("/api/jobs/user/0xAbC123/7") == "jobsuser7"
    assert sanitize_route("/api/tasks/job_by-id") == "tasksjobbyid"


def test_sanitize_route_truncates():
    assert len(sanitize_route("/api/" + "x" * 40)) == 20


def test_trace_id_shape():
    trace = generate_trace_id("POST", "/api/jobs", "0x1111111111111111111111111111111111ABCDEF")
    assert re.fullmatch(r"post-jobs-abcdef-[0-9a-f]{8}", trace)


def test_trace_id_without_user():
    assert generate_trace_id("get", "/api/fees").startswith("get-fees-000000-")


def test_trace_ids_are_unique():
    assert generate_trace_id("get", "/api/fees") != generate_trace_id("get", "/api/fees")
