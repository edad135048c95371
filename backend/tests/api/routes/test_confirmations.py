from collections.abc import Callable

from fastapi.testclient import TestClient

from tests.utils.api import API, actor, marriage_payload, residence_payload, submit
from tests.utils.forms import OWNER_ID, SPOUSE_ID


def pending_request_id(client: TestClient, user_id: str) -> int:
    pending = client.get(f"{API}/confirmations/pending", headers=actor(user_id)).json()
    assert pending["count"] == 1
    return pending["data"][0]["id"]


def test_spouse_confirms_marriage(
    client: TestClient, make_user: Callable[..., str], staff: dict[str, str]
) -> None:
    make_user("spouse-user", national_id=SPOUSE_ID)
    application = submit(client, "citizen-1", "marriage_registration", marriage_payload())
    request_id = pending_request_id(client, "spouse-user")

    inbox = client.get(f"{API}/official/inbox", headers=actor(staff["official"])).json()
    assert inbox["count"] == 0

    response = client.post(
        f"{API}/confirmations/{request_id}/confirm", headers=actor("spouse-user")
    )

    assert response.status_code == 200
    assert response.json()["status"] == "Confirmed"
    current = client.get(
        f"{API}/applications/{application['id']}", headers=actor("citizen-1")
    ).json()
    assert current["status"] == "submitted"
    inbox = client.get(f"{API}/official/inbox", headers=actor(staff["official"])).json()
    assert inbox["count"] == 1


def test_applicant_cannot_confirm_own_request(
    client: TestClient, make_user: Callable[..., str]
) -> None:
    make_user("spouse-user", national_id=SPOUSE_ID)
    submit(client, "citizen-1", "marriage_registration", marriage_payload())
    request_id = pending_request_id(client, "spouse-user")

    response = client.post(
        f"{API}/confirmations/{request_id}/confirm", headers=actor("citizen-1")
    )
    assert response.status_code == 403


def test_owner_rejects_residence(
    client: TestClient, make_user: Callable[..., str]
) -> None:
    make_user("owner-user", national_id=OWNER_ID)
    application = submit(client, "citizen-1", "temporary_residence", residence_payload())
    assert application["status"] == "awaiting_confirmation"
    request_id = pending_request_id(client, "owner-user")

    response = client.post(
        f"{API}/confirmations/{request_id}/reject",
        headers=actor("owner-user"),
        json={"reason": "I do not own that room"},
    )

    assert response.status_code == 200
    assert response.json()["reject_reason"] == "I do not own that room"
    current = client.get(
        f"{API}/applications/{application['id']}", headers=actor("citizen-1")
    ).json()
    assert current["status"] == "rejected"
    assert current["reject_reason"] == (
        "The property owner declined to confirm: I do not own that room"
    )

    again = client.post(
        f"{API}/confirmations/{request_id}/confirm", headers=actor("owner-user")
    )
    assert again.status_code == 409


def test_unknown_request_is_not_found(client: TestClient) -> None:
    response = client.post(
        f"{API}/confirmations/999/confirm", headers=actor("spouse-user")
    )
    assert response.status_code == 404
