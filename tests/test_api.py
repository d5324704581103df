from cleanbook.auth import ROLE_PROVIDER
from cleanbook.models import BookingStatus
from tests.conftest import BASE_TIME, PROVIDER_ID, REQUESTER_ID, SERVICE_ID, auth_headers

CREATE_PAYLOAD = {
    "serviceId": SERVICE_ID,
    "scheduledAt": "2025-06-01T10:00:00Z",
    "address": "Calle 1",
    "serviceKind": "limpieza general",
    "requesterPresent": True,
}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


# ============================================================================
# AUTHENTICATION
# ============================================================================


def test_missing_token_is_401(client):
    response = client.post("/proposals", json=CREATE_PAYLOAD)
    assert response.status_code == 401


def test_garbage_token_is_401(client):
    response = client.get("/proposals", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_unknown_role_is_403(client):
    response = client.get("/proposals", headers=auth_headers(REQUESTER_ID, "admin"))
    assert response.status_code == 403


def test_provider_cannot_create(client, provider_headers):
    response = client.post("/proposals", json=CREATE_PAYLOAD, headers=provider_headers)
    assert response.status_code == 403


def test_provider_id_claim_overrides_caller_id(client, make_booking):
    booking = make_booking(status=BookingStatus.PENDING)
    headers = auth_headers(999, ROLE_PROVIDER, provider_id=PROVIDER_ID)

    response = client.post(f"/proposals/{booking.id}/accept", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "accepted"


# ============================================================================
# CREATE & CONFLICTS
# ============================================================================


def test_create_and_conflict(client, requester_headers):
    response = client.post("/proposals", json=CREATE_PAYLOAD, headers=requester_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["requesterId"] == REQUESTER_ID
    assert body["evidenceBefore"] == []
    assert body["scheduledAt"].startswith("2025-06-01T10:00:00")

    clash = dict(CREATE_PAYLOAD, scheduledAt="2025-06-01T11:30:00Z")
    response = client.post("/proposals", json=clash, headers=requester_headers)
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "ConflictError"
    assert [c["id"] for c in detail["details"]["conflicts"]] == [body["id"]]


def test_create_without_scheduled_at_is_400(client, requester_headers):
    payload = {k: v for k, v in CREATE_PAYLOAD.items() if k != "scheduledAt"}
    response = client.post("/proposals", json=payload, headers=requester_headers)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "ValidationError"


def test_create_for_other_requester_is_403(client, requester_headers):
    payload = dict(CREATE_PAYLOAD, requesterId=REQUESTER_ID + 1)
    response = client.post("/proposals", json=payload, headers=requester_headers)
    assert response.status_code == 403


def test_create_unknown_service_is_404(client, requester_headers):
    payload = dict(CREATE_PAYLOAD, serviceId=404)
    response = client.post("/proposals", json=payload, headers=requester_headers)
    assert response.status_code == 404


def test_malformed_body_is_422(client, requester_headers):
    payload = dict(CREATE_PAYLOAD, squareMeters=-3)
    response = client.post("/proposals", json=payload, headers=requester_headers)
    assert response.status_code == 422


def test_conflict_probe(client, requester_headers, make_booking):
    make_booking()
    params = {"serviceId": SERVICE_ID, "scheduledAt": "2025-06-01T12:00:00Z"}

    body = client.get("/proposals/conflicts", params=params, headers=requester_headers).json()
    assert body["conflict"] is True
    assert body["requesterId"] == REQUESTER_ID
    assert body["windowStart"].startswith("2025-06-01T10:00:00")

    params["scheduledAt"] = "2025-06-01T12:01:00Z"
    body = client.get("/proposals/conflicts", params=params, headers=requester_headers).json()
    assert body["conflict"] is False


# ============================================================================
# LIFECYCLE
# ============================================================================


def test_lifecycle_over_http(client, make_booking, requester_headers, provider_headers):
    booking_id = make_booking().id

    assert client.post(f"/proposals/{booking_id}/confirm", headers=requester_headers).status_code == 409
    assert client.post(f"/proposals/{booking_id}/accept", headers=provider_headers).status_code == 200
    assert client.post(f"/proposals/{booking_id}/accept", headers=requester_headers).status_code == 403

    response = client.post(f"/proposals/{booking_id}/confirm", headers=requester_headers)
    assert response.json()["status"] == "in_progress"

    response = client.put(
        f"/proposals/{booking_id}/evidence/before", json={"refs": ["a.jpg"]}, headers=provider_headers
    )
    assert response.json()["evidenceBefore"] == ["a.jpg"]

    response = client.put(f"/proposals/{booking_id}/evidence/after", json={"refs": []}, headers=provider_headers)
    assert response.status_code == 400

    assert client.post(f"/proposals/{booking_id}/finish", headers=provider_headers).status_code == 409

    response = client.patch(f"/proposals/{booking_id}/progress", json={"finished": True}, headers=provider_headers)
    assert response.json()["cleanerFinished"] is True
    assert response.json()["status"] == "in_progress"

    response = client.post(f"/proposals/{booking_id}/finish", headers=provider_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "finished"


def test_state_error_reports_transition(client, make_booking, requester_headers):
    booking_id = make_booking(status=BookingStatus.FINISHED).id

    response = client.post(f"/proposals/{booking_id}/confirm", headers=requester_headers)
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "StateError"
    assert detail["details"]["from"] == "finished"


def test_get_and_list(client, make_booking, requester_headers, other_requester_headers, provider_headers):
    booking_id = make_booking().id

    assert client.get(f"/proposals/{booking_id}", headers=requester_headers).status_code == 200
    assert client.get(f"/proposals/{booking_id}", headers=other_requester_headers).status_code == 403
    assert client.get("/proposals/999", headers=requester_headers).status_code == 404
    assert [b["id"] for b in client.get("/proposals", headers=provider_headers).json()] == [booking_id]


# ============================================================================
# NOTIFICATIONS
# ============================================================================


def test_notifications_over_http(client, make_booking, requester_headers, provider_headers):
    make_booking(status=BookingStatus.PENDING)
    accepted_id = make_booking(status=BookingStatus.ACCEPTED, scheduled_at=BASE_TIME.replace(day=9)).id

    response = client.get("/users/notifications", headers=requester_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["totalCount"] == 1
    assert body["items"][0]["proposalId"] == accepted_id
    assert body["items"][0]["message"] == "propuesta limpieza general ha sido 'accepted'"

    assert client.get("/users/notifications", params={"page": 0}, headers=requester_headers).status_code == 400
    assert client.get("/users/notifications", headers=provider_headers).status_code == 403

    response = client.delete(f"/users/notifications/{accepted_id}", headers=requester_headers)
    assert response.status_code == 200
    assert response.json()["proposalId"] == accepted_id


def test_conflict_probe_access(client, requester_headers, provider_headers, other_provider_headers):
    params = {"serviceId": SERVICE_ID, "scheduledAt": "2025-06-01T12:00:00Z", "requesterId": REQUESTER_ID}

    assert client.get("/proposals/conflicts", params=params, headers=provider_headers).status_code == 200
    assert client.get("/proposals/conflicts", params=params, headers=other_provider_headers).status_code == 403

    other = dict(params, requesterId=REQUESTER_ID + 1)
    assert client.get("/proposals/conflicts", params=other, headers=requester_headers).status_code == 403
