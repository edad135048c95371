"""Live smoke test: birth registration from submission to completion.

Needs a running server with the local staff accounts seeded
(``python -m citizen_portal.initial_data``).
"""

import uuid

import httpx

base = "http://localhost:8000/api/v1"

citizen = {"X-Actor-Id": f"smoke-citizen-{uuid.uuid4().hex[:6]}"}
official = {"X-Actor-Id": "official-1"}
chairman = {"X-Actor-Id": "chairman-1"}

app_resp = httpx.post(
    f"{base}/applications/birth_registration",
    headers=citizen,
    json={
        "ChildFullName": "Nguyen Van An",
        "DateOfBirth": "2026-01-15",
        "PlaceOfBirth": "Ha Noi",
        "Gender": "Nam",
        "FatherName": "Nguyen Van Binh",
        "MotherName": "Tran Thi Chi",
    },
    timeout=30,
)
app_resp.raise_for_status()
app_id = app_resp.json()["id"]
print(f"Submitted application {app_id}: {app_resp.json()['status']}")

for next_status in ("in_review", "pending_approval"):
    httpx.post(
        f"{base}/official/applications/{app_id}/process",
        headers=official,
        json={"next_status": next_status, "note": "Smoke test"},
        timeout=30,
    ).raise_for_status()
    print(f"  -> {next_status}")

signed = httpx.post(
    f"{base}/chairman/applications/{app_id}/sign",
    headers=chairman,
    json={"note": "Smoke test signature"},
    timeout=30,
).json()
print(f"Signed: derivation={signed['derivation_status']} record={signed['derived_record_number']}")
if signed["derivation_error"]:
    print(f"  Derivation error: {signed['derivation_error']}")

httpx.post(
    f"{base}/chairman/applications/{app_id}/complete",
    headers=chairman,
    timeout=30,
).raise_for_status()

history = httpx.get(
    f"{base}/applications/{app_id}/history", headers=citizen, timeout=30
).json()
print("\n=== HISTORY ===")
for entry in history["entries"]:
    print(f"  {entry['created_at']}  {entry['status']:<20} {entry['note']}")

print("SMOKE TEST COMPLETE")
