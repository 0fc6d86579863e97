from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from yardops.domain_errors import DomainError, InsufficientCapacity, PersistenceFailure, RackNotFound
from yardops.problem_details import build_problem_details_response, domain_error_handler


def test_problem_details_payload_contains_stable_code_and_rfc7807_fields() -> None:
    response = build_problem_details_response(
        DomainError(
            code="DOCK_CLOSED",
            http_status=409,
            message="dock door 3 closed",
            details={"door": 3},
        )
    )

    assert response.status_code == 409
    assert response.media_type == "application/problem+json"

    body = response.body.decode("utf-8")
    assert '"type":"https://yardops.local/problems/dock-closed"' in body
    assert '"title":"Conflict"' in body
    assert '"status":409' in body
    assert '"detail":"dock door 3 closed"' in body
    assert '"code":"DOCK_CLOSED"' in body
    assert '"details":{"door":3}' in body


def test_problem_details_omits_details_when_none() -> None:
    response = build_problem_details_response(
        DomainError(
            code="NO_DETAILS",
            http_status=422,
            message="validation failed",
            details=None,
        )
    )

    body = response.body.decode("utf-8")
    assert response.status_code == 422
    assert '"code":"NO_DETAILS"' in body
    assert '"details"' not in body


def test_insufficient_capacity_carries_shortfall() -> None:
    response = build_problem_details_response(InsufficientCapacity(required=20, available=9))

    body = response.body.decode("utf-8")
    assert response.status_code == 409
    assert '"code":"INSUFFICIENT_CAPACITY"' in body
    assert '"shortfall":11' in body


def test_fastapi_exception_handler_maps_domain_error_to_problem_details() -> None:
    app = FastAPI()
    app.add_exception_handler(DomainError, domain_error_handler)

    @app.get("/boom")
    def _boom():
        raise PersistenceFailure(step="manifest_settled")

    client = TestClient(app)
    response = client.get("/boom")

    assert response.status_code == 503
    assert response.headers["content-type"].startswith("application/problem+json")
    payload = response.json()
    assert payload["code"] == "PERSISTENCE_FAILURE"
    assert payload["details"] == {"step": "manifest_settled"}


def test_titles_follow_domain_codes() -> None:
    body = build_problem_details_response(InsufficientCapacity(required=5, available=1)).body.decode("utf-8")
    assert '"title":"Insufficient rack capacity"' in body
    assert '"type":"https://yardops.local/problems/insufficient-capacity"' in body

    body = build_problem_details_response(RackNotFound("B-N-4")).body.decode("utf-8")
    assert '"title":"Rack not found"' in body
