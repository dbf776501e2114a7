"""End-to-end tests through the Flask test client."""

from __future__ import annotations

import io

import openpyxl
import pytest

from conftest import ADMIN_HEADERS, commit, make_row
from models import AuditLog, Competitor, Tournament


def csv_upload(text, filename="results.csv", **form):
    data = {"file": (io.BytesIO(text.encode("utf-8")), filename)}
    data.update(form)
    return data


def xlsx_bytes(rows):
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer


def commit_payload(**overrides):
    payload = {
        "tournament_name": "Spring Open",
        "tournament_date": "2024-03-15",
        "active_events": ["speed"],
        "total_points": {"speed": 100},
        "competitors": [make_row("Ann", speed=80), make_row("Ben", speed=50)],
    }
    payload.update(overrides)
    return payload


class TestPublicReads:
    def test_healthz(self, client):
        assert client.get("/healthz").get_json() == {"status": "ok"}

    def test_rankings_are_public(self, client, session):
        commit(session, "Open", "2024-03-15", [make_row("Ann", speed=60)], events=["speed"])
        for url in ("/api/rankings", "/api/rankings/public"):
            response = client.get(url)
            assert response.status_code == 200
            body = response.get_json()
            assert body[0]["name"] == "Ann"
            assert body[0]["speed"] == 50
            assert body[0]["rank"] == 1

    def test_rankings_export(self, client, session):
        commit(session, "Open", "2024-03-15", [make_row("Ann", speed=60)], events=["speed"])
        response = client.get("/api/rankings/export")

        assert response.status_code == 200
        sheet = openpyxl.load_workbook(io.BytesIO(response.data))["Rankings"]
        rows = list(sheet.iter_rows(values_only=True))
        assert rows[0] == ("Rank", "Name", "Knockdowns", "Distance", "Speed", "Woods", "Total")
        assert rows[1][:2] == (1, "Ann")
        assert rows[1][4] == 50
        assert rows[1][6] == 12.5

    def test_unknown_route_is_json(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.get_json()["code"] == "NOT_FOUND"


class TestCompetitorEndpoints:
    def test_writes_need_token(self, client, session):
        response = client.post("/api/competitors", json={"name": "Ann"})
        assert response.status_code == 403
        assert response.get_json()["code"] == "AUTHORIZATION_FAILED"
        assert session.query(Competitor).count() == 0

    def test_wrong_token(self, client):
        response = client.post("/api/competitors", json={"name": "Ann"}, headers={"X-Admin-Token": "nope"})
        assert response.status_code == 403

    def test_crud(self, client):
        created = client.post("/api/competitors", json={"name": "Ann", "email": "Ann@X.com"},
                              headers=ADMIN_HEADERS)
        assert created.status_code == 201
        competitor_id = created.get_json()["id"]
        assert created.get_json()["email"] == "ann@x.com"

        listing = client.get("/api/competitors").get_json()
        assert [c["name"] for c in listing] == ["Ann"]

        updated = client.put(f"/api/competitors/{competitor_id}", json={"name": "Ann Smith"},
                             headers=ADMIN_HEADERS)
        assert updated.get_json()["name"] == "Ann Smith"

        deleted = client.delete(f"/api/competitors/{competitor_id}", headers=ADMIN_HEADERS)
        assert deleted.get_json() == {"success": True}
        assert client.get(f"/api/competitors/{competitor_id}").status_code == 404

    def test_detail_includes_scores_and_history(self, client, session):
        commit(session, "Open", "2024-03-15", [make_row("Ann", speed=60)], events=["speed"])
        ann_id = session.query(Competitor).one().id

        body = client.get(f"/api/competitors/{ann_id}").get_json()
        assert body["scores"]["speed"] == 50
        assert body["scores"]["total"] == 12.5
        assert body["history"][0]["tournament_name"] == "Open"

    def test_duplicate_is_409(self, client):
        client.post("/api/competitors", json={"name": "Ann"}, headers=ADMIN_HEADERS)
        response = client.post("/api/competitors", json={"name": "ann"}, headers=ADMIN_HEADERS)
        assert response.status_code == 409
        assert response.get_json()["entity_type"] == "competitor"

    def test_body_must_be_json_object(self, client):
        response = client.post("/api/competitors", data="Ann", headers=ADMIN_HEADERS)
        assert response.status_code == 400
        assert response.get_json()["code"] == "VALIDATION_FAILED"


class TestTournamentAndResultEndpoints:
    def test_create_list_delete(self, client):
        created = client.post("/api/tournaments", headers=ADMIN_HEADERS, json={
            "name": "Open", "date": "2024-03-15", "active_events": ["speed"], "total_points": {"speed": 90},
        })
        assert created.status_code == 201
        tournament = created.get_json()
        assert tournament["has_speed"] is True
        assert tournament["has_woods"] is False
        assert tournament["total_points_speed"] == 90

        assert len(client.get("/api/tournaments").get_json()) == 1
        assert client.delete(f"/api/tournaments/{tournament['id']}", headers=ADMIN_HEADERS).status_code == 200
        assert client.get("/api/tournaments").get_json() == []

    def test_invalid_tournament(self, client):
        response = client.post("/api/tournaments", headers=ADMIN_HEADERS,
                               json={"name": "Open", "date": "March", "active_events": []})
        assert response.status_code == 400
        codes = {d["code"] for d in response.get_json()["details"]}
        assert codes == {"DATE_INVALID", "NO_EVENTS"}

    def test_upsert_result(self, client, session):
        competitor = client.post("/api/competitors", json={"name": "Ann"}, headers=ADMIN_HEADERS).get_json()
        tournament = client.post("/api/tournaments", headers=ADMIN_HEADERS, json={
            "name": "Open", "date": "2024-03-15", "active_events": ["speed"],
        }).get_json()

        response = client.post("/api/results", headers=ADMIN_HEADERS, json={
            "competitor_id": competitor["id"], "tournament_id": tournament["id"], "speed_earned": 60,
        })
        assert response.status_code == 200
        assert response.get_json()["result"]["speed_earned"] == 60
        assert client.get("/api/rankings").get_json()[0]["speed"] == 50

    def test_result_ids_required(self, client):
        response = client.post("/api/results", headers=ADMIN_HEADERS, json={"speed_earned": 60})
        assert response.status_code == 400


class TestUploadPreview:
    def test_csv_preview(self, client, session):
        commit(session, "Old", "2023-01-01", [make_row("Ben", speed=10)], events=["speed"])
        data = csv_upload("Name,Speed,Woods\nAnn,80,\nBen,50,20\n",
                          has_speed="true", has_woods="on", total_points_speed="100")

        response = client.post("/api/upload/preview", data=data, headers=ADMIN_HEADERS,
                               content_type="multipart/form-data")

        assert response.status_code == 200
        body = response.get_json()
        assert body["active_events"] == ["speed", "woods"]
        assert body["total_points"]["speed"] == 100
        assert body["total_points"]["woods"] == 120
        ann, ben = body["competitors"]
        assert ann["is_new"] is True
        assert ann["woods_earned"] == 0
        assert ann["knockdowns_earned"] is None
        assert ben["is_new"] is False
        assert ben["existing_competitor_id"] is not None
        assert len(body["warnings"]) == 1
        assert session.query(Tournament).count() == 1
        assert session.query(Competitor).count() == 1
        assert session.query(AuditLog).filter_by(action="results_previewed").count() == 1

    def test_xlsx_preview(self, client):
        workbook = xlsx_bytes([["Tournament results"], ["Athlete", "KD", "Distance"], ["Ann", 100, 75.5]])
        data = {"file": (workbook, "results.xlsx"), "has_knockdowns": "1", "has_distance": "1"}

        response = client.post("/api/upload/preview", data=data, headers=ADMIN_HEADERS,
                               content_type="multipart/form-data")

        assert response.status_code == 200
        body = response.get_json()
        assert body["competitors"][0]["knockdowns_earned"] == 100
        assert body["competitors"][0]["distance_earned"] == 75.5
        assert any("row 2" in w for w in body["warnings"])

    def test_needs_token(self, client):
        data = csv_upload("Name,Speed\nAnn,1\n", has_speed="true")
        response = client.post("/api/upload/preview", data=data, content_type="multipart/form-data")
        assert response.status_code == 403

    def test_fatal_sheet_is_422(self, client):
        data = csv_upload("Person,Speed\nAnn,1\n", has_speed="true")
        response = client.post("/api/upload/preview", data=data, headers=ADMIN_HEADERS,
                               content_type="multipart/form-data")
        assert response.status_code == 422
        assert response.get_json()["competitors"] == []
        assert response.get_json()["errors"]

    def test_no_events_selected(self, client):
        data = csv_upload("Name,Speed\nAnn,1\n")
        response = client.post("/api/upload/preview", data=data, headers=ADMIN_HEADERS,
                               content_type="multipart/form-data")
        assert response.status_code == 400

    @pytest.mark.parametrize("filename", ["results.txt", "results"])
    def test_bad_filename(self, client, filename):
        data = csv_upload("Name,Speed\nAnn,1\n", filename=filename, has_speed="true")
        response = client.post("/api/upload/preview", data=data, headers=ADMIN_HEADERS,
                               content_type="multipart/form-data")
        assert response.status_code == 400

    def test_missing_file(self, client):
        response = client.post("/api/upload/preview", data={"has_speed": "true"}, headers=ADMIN_HEADERS,
                               content_type="multipart/form-data")
        assert response.status_code == 400


class TestUploadCommit:
    def test_commit(self, client, session):
        response = client.post("/api/upload/commit", json=commit_payload(), headers=ADMIN_HEADERS)

        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] is True
        assert body["new_competitors"] == ["Ann", "Ben"]
        assert session.get(Tournament, body["tournament_id"]).total_points_speed == 100

        rankings = client.get("/api/rankings").get_json()
        assert [(r["name"], r["speed"]) for r in rankings] == [("Ann", 80), ("Ben", 50)]

    def test_duplicate_commit_is_409(self, client):
        client.post("/api/upload/commit", json=commit_payload(), headers=ADMIN_HEADERS)
        response = client.post("/api/upload/commit", json=commit_payload(), headers=ADMIN_HEADERS)
        assert response.status_code == 409
        assert response.get_json()["entity_type"] == "tournament"

    def test_commit_without_token(self, client, session):
        response = client.post("/api/upload/commit", json=commit_payload())
        assert response.status_code == 403
        assert session.query(Tournament).count() == 0

    def test_preview_errors_block_commit(self, client, session):
        response = client.post("/api/upload/commit", json=commit_payload(errors=["bad sheet"]),
                               headers=ADMIN_HEADERS)
        assert response.status_code == 422
        assert response.get_json()["errors"] == ["bad sheet"]
        assert session.query(Tournament).count() == 0

    def test_missing_date_is_400(self, client):
        response = client.post("/api/upload/commit", json=commit_payload(tournament_date=""),
                               headers=ADMIN_HEADERS)
        assert response.status_code == 400
