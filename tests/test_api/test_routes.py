"""
End-to-end checks through FastAPI: global security dependency, transparent
list scoping, resource guards and the breakdown endpoint.
"""
from __future__ import annotations

from sqlalchemy import select

from geoscope.geo_authz import AuthorizedAreaSet
from geoscope.models.security import AuditLog, UserRole


def test_health_is_public(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_token_is_401(client, seeded):
    assert client.get("/venues").status_code == 401


def test_malformed_header_is_400(client, seeded):
    assert client.get("/venues", headers={"Authorization": "Token abc"}).status_code == 400


def test_invalid_token_is_401(client, seeded):
    assert client.get("/venues", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_me_reports_resolved_area_set(client, seeded, auth_header):
    resp = client.get("/me", headers=auth_header(seeded["editor"], UserRole.EDITOR))

    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["role"] == "EDITOR"
    assert body["area_set"]["has_restrictions"] is True
    assert set(body["area_set"]["full_area_ids"]) == {seeded["vancouver"], seeded["kitsilano"]}
    assert set(body["area_set"]["read_only_area_ids"]) == {seeded["canada"], seeded["bc"]}


def test_area_set_claim_in_token_is_used_as_is(client, seeded, auth_header):
    snapshot = AuthorizedAreaSet(full_area_ids=frozenset({seeded["toronto"]}), has_restrictions=True)
    resp = client.get("/me", headers=auth_header(seeded["editor"], UserRole.EDITOR, snapshot))
    assert resp.json()["area_set"]["full_area_ids"] == [seeded["toronto"]]


def test_venue_list_is_scoped_for_restricted_editor(client, seeded, auth_header):
    resp = client.get("/venues", headers=auth_header(seeded["editor"], UserRole.EDITOR))
    assert [v["id"] for v in resp.json()] == [seeded["kits_hall"]]


def test_area_list_includes_read_only_ancestors(client, seeded, auth_header):
    resp = client.get("/geographic-areas", headers=auth_header(seeded["editor"], UserRole.EDITOR))
    ids = {a["id"] for a in resp.json()}
    assert ids == {seeded["canada"], seeded["bc"], seeded["vancouver"], seeded["kitsilano"]}


def test_participant_list_scoped_by_decorator(client, seeded, auth_header):
    resp = client.get("/participants", headers=auth_header(seeded["editor"], UserRole.EDITOR))
    assert [p["id"] for p in resp.json()] == [seeded["ana"]]


def test_unrestricted_viewer_sees_everything(client, seeded, auth_header):
    resp = client.get("/venues", headers=auth_header(seeded["viewer"], UserRole.READ_ONLY))
    assert len(resp.json()) == 4


def test_denied_detail_is_403_and_audited(client, db_session, seeded, auth_header):
    resp = client.get(f"/activities/{seeded['tor_circle']}", headers=auth_header(seeded["editor"], UserRole.EDITOR))

    assert resp.status_code == 403
    body = resp.json()
    assert body["code"] == "GEOGRAPHIC_AUTHORIZATION_DENIED"
    assert body["details"]["entityType"] == "ACTIVITY"
    assert body["details"]["entityId"] == seeded["tor_circle"]

    entry = db_session.scalars(select(AuditLog).where(AuditLog.user_id == seeded["editor"])).one()
    assert entry.entity_id == seeded["tor_circle"]


def test_read_only_area_detail_is_readable(client, seeded, auth_header):
    resp = client.get(f"/geographic-areas/{seeded['bc']}", headers=auth_header(seeded["editor"], UserRole.EDITOR))
    assert resp.status_code == 200
    assert resp.json()["name"] == "British Columbia"


def test_admin_reads_anything(client, seeded, auth_header):
    headers = auth_header(seeded["admin"], UserRole.ADMINISTRATOR)
    assert client.get(f"/participants/{seeded['cy']}", headers=headers).status_code == 200
    assert client.get(f"/venues/{seeded['dt_library']}", headers=headers).status_code == 200


def test_activity_list_with_explicit_area_filter(client, db_session, seeded, auth_header):
    headers = auth_header(seeded["editor"], UserRole.EDITOR)

    resp = client.get("/activities", params={"geographicAreaId": seeded["vancouver"]}, headers=headers)
    assert [a["id"] for a in resp.json()] == [seeded["kits_circle"]]

    resp = client.get("/activities", params={"geographicAreaId": seeded["toronto"]}, headers=headers)
    assert resp.status_code == 403
    entry = db_session.scalars(select(AuditLog).where(AuditLog.user_id == seeded["editor"])).one()
    assert (entry.entity_type, entry.entity_id) == ("GEOGRAPHIC_AREA", seeded["toronto"])

    resp = client.get("/activities", params={"geographicAreaId": "atlantis"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_AREA_REFERENCE"


def test_breakdown_endpoint(client, seeded, auth_header):
    resp = client.get(
        "/analytics/geographic-breakdown",
        params={"parentGeographicAreaId": seeded["canada"]},
        headers=auth_header(seeded["viewer"], UserRole.READ_ONLY),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"]["total"] == 2
    assert {row["geographic_area_name"] for row in body["data"]} == {"British Columbia", "Ontario"}


def test_breakdown_parent_outside_scope_is_403_and_audited(client, db_session, seeded, auth_header):
    resp = client.get(
        "/analytics/geographic-breakdown",
        params={"parentGeographicAreaId": seeded["ontario"]},
        headers=auth_header(seeded["editor"], UserRole.EDITOR),
    )

    assert resp.status_code == 403
    entry = db_session.scalars(select(AuditLog).where(AuditLog.user_id == seeded["editor"])).one()
    assert (entry.entity_type, entry.entity_id) == ("GEOGRAPHIC_AREA", seeded["ontario"])
    assert entry.details == {"action": "READ", "reason": "GEOGRAPHIC_AUTHORIZATION_DENIED"}


def test_breakdown_rejects_bad_input(client, seeded, auth_header):
    headers = auth_header(seeded["viewer"], UserRole.READ_ONLY)

    resp = client.get("/analytics/geographic-breakdown", params={"pageSize": 5000}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"

    resp = client.get(
        "/analytics/geographic-breakdown",
        params={"startDate": "2025-05-01", "endDate": "2025-01-01"},
        headers=headers,
    )
    assert resp.status_code == 400


def test_admin_routes_require_administrator(client, seeded, auth_header):
    path = f"/admin/users/{seeded['editor']}/authorized-areas"

    assert client.get(path, headers=auth_header(seeded["editor"], UserRole.EDITOR)).status_code == 403

    resp = client.get(path, headers=auth_header(seeded["admin"], UserRole.ADMINISTRATOR))
    assert resp.status_code == 200
    levels = {row["geographic_area_name"]: row["access_level"] for row in resp.json()}
    assert levels == {
        "Canada": "READ_ONLY",
        "British Columbia": "READ_ONLY",
        "Vancouver": "FULL",
        "Kitsilano": "FULL",
        "Downtown": "NONE",
    }
