"""
Meta roadmap & roadmap API tests.
"""

from roadmap_platform.models import db
from roadmap_platform.models.roadmap import MetaRoadmap, Roadmap


def _create_meta(client, headers, **kwargs):
    payload = {"name": "Climate plan", "type": "MUNICIPAL", **kwargs}
    res = client.post("/api/v1/meta-roadmaps", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


class TestMetaRoadmapAPI:
    def test_create_and_get(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        meta = _create_meta(client, headers, actor="City of Lund", links=[{"url": "https://lund.se"}])
        assert meta["author"] == "alice"
        assert meta["links"][0]["url"] == "https://lund.se"
        assert isinstance(meta["timestamp"], int)

        res = client.get(f"/api/v1/meta-roadmaps/{meta['id']}", headers=headers)
        assert res.status_code == 200
        body = res.get_json()
        assert body["access_level"] == "EDIT"
        assert body["roadmaps"] == []

    def test_missing_fields(self, client, alice, auth_headers):
        res = client.post("/api/v1/meta-roadmaps", json={"type": "LOCAL"}, headers=auth_headers(alice))
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_INVALID_INPUT"
        assert body["details"] == {"name": "required"}

    def test_list_only_visible(self, client, alice, bob, make_user, auth_headers):
        member = make_user("pat", groups=["Public"])
        _create_meta(client, auth_headers(alice), name="Private")
        _create_meta(client, auth_headers(bob), name="Open", view_groups=["Public"])

        res = client.get("/api/v1/meta-roadmaps")
        assert res.status_code == 200
        body = res.get_json()
        assert body["total"] == 1
        assert body["items"][0]["name"] == "Open"
        assert body["items"][0]["access_level"] == "VIEW"

        res = client.get("/api/v1/meta-roadmaps", headers=auth_headers(member))
        assert [item["name"] for item in res.get_json()["items"]] == ["Open"]

        res = client.get("/api/v1/meta-roadmaps", headers=auth_headers(alice))
        assert [item["name"] for item in res.get_json()["items"]] == ["Private"]

    def test_list_pagination(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        for name in ("A", "B", "C"):
            _create_meta(client, headers, name=name)
        res = client.get("/api/v1/meta-roadmaps?limit=2&offset=1", headers=headers)
        body = res.get_json()
        assert body["total"] == 3
        assert [item["name"] for item in body["items"]] == ["B", "C"]

    def test_get_missing_is_forbidden(self, client, alice, auth_headers):
        res = client.get("/api/v1/meta-roadmaps/does-not-exist", headers=auth_headers(alice))
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_ACCESS_DENIED"

    def test_update_with_timestamp(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        meta = _create_meta(client, headers)
        res = client.put(
            f"/api/v1/meta-roadmaps/{meta['id']}",
            json={"description": "Updated", "timestamp": meta["timestamp"]},
            headers=headers,
        )
        assert res.status_code == 200
        assert res.get_json()["description"] == "Updated"

    def test_update_stale(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        meta = _create_meta(client, headers)
        res = client.put(
            f"/api/v1/meta-roadmaps/{meta['id']}",
            json={"description": "Updated", "timestamp": meta["timestamp"] - 1},
            headers=headers,
        )
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_STALE_DATA"
        assert db.session.get(MetaRoadmap, meta["id"]).description == ""

    def test_unknown_editor(self, client, alice, auth_headers):
        res = client.post(
            "/api/v1/meta-roadmaps",
            json={"name": "Plan", "type": "LOCAL", "editors": ["ghost"]},
            headers=auth_headers(alice),
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_REFERENTIAL_FAILURE"
        assert MetaRoadmap.query.count() == 0

    def test_delete(self, client, alice, bob, auth_headers):
        meta = _create_meta(client, auth_headers(alice), editors=["bob"])
        res = client.delete(f"/api/v1/meta-roadmaps/{meta['id']}", headers=auth_headers(bob))
        assert res.status_code == 403

        res = client.delete(f"/api/v1/meta-roadmaps/{meta['id']}", headers=auth_headers(alice))
        assert res.status_code == 200
        assert res.get_json() == {"deleted": meta["id"]}

    def test_non_json_body_rejected(self, client, alice, auth_headers):
        res = client.post(
            "/api/v1/meta-roadmaps", data="name=Plan",
            headers={**auth_headers(alice), "Content-Type": "text/plain"},
        )
        assert res.status_code == 415


class TestRoadmapAPI:
    def test_create_with_goals(self, client, alice, auth_headers):
        headers = auth_headers(alice)
        meta = _create_meta(client, headers)
        res = client.post("/api/v1/roadmaps", json={
            "meta_roadmap_id": meta["id"],
            "description": "First version",
            "goals": [{
                "name": "Transport",
                "indicator_parameter": "Emissions|CO2|Transport",
                "data_unit": "kt CO2e",
                "data_series": ["1,5", 2],
            }],
        }, headers=headers)
        assert res.status_code == 201
        body = res.get_json()
        assert body["version"] == 1
        assert body["goals"][0]["data_series"]["values"] == {"2020": 1.5, "2021": 2.0}

        second = client.post("/api/v1/roadmaps", json={"meta_roadmap_id": meta["id"]}, headers=headers)
        assert second.get_json()["version"] == 2

    def test_create_under_national_forbidden(self, client, alice, admin, auth_headers):
        meta = _create_meta(client, auth_headers(admin), type="NATIONAL", editors=["alice"])
        res = client.post("/api/v1/roadmaps", json={"meta_roadmap_id": meta["id"]}, headers=auth_headers(alice))
        assert res.status_code == 403
        assert Roadmap.query.count() == 0

    def test_create_missing_meta(self, client, alice, auth_headers):
        res = client.post("/api/v1/roadmaps", json={"meta_roadmap_id": "gone"}, headers=auth_headers(alice))
        assert res.status_code == 403

    def test_public_roadmap_is_readable_anonymously(self, client, alice, auth_headers, make_group):
        make_group("Public")
        headers = auth_headers(alice)
        meta = _create_meta(client, headers)
        roadmap = client.post(
            "/api/v1/roadmaps", json={"meta_roadmap_id": meta["id"], "view_groups": ["Public"]},
            headers=headers,
        ).get_json()

        res = client.get(f"/api/v1/roadmaps/{roadmap['id']}")
        assert res.status_code == 200
        assert res.get_json()["access_level"] == "VIEW"

        res = client.put(
            f"/api/v1/roadmaps/{roadmap['id']}",
            json={"description": "x", "timestamp": roadmap["timestamp"]},
        )
        assert res.status_code == 401

    def test_update_acl_by_author(self, client, alice, bob, auth_headers):
        headers = auth_headers(alice)
        meta = _create_meta(client, headers)
        roadmap = client.post("/api/v1/roadmaps", json={"meta_roadmap_id": meta["id"]}, headers=headers).get_json()

        res = client.put(
            f"/api/v1/roadmaps/{roadmap['id']}",
            json={"editors": ["bob"], "timestamp": roadmap["timestamp"]},
            headers=headers,
        )
        assert res.status_code == 200
        assert res.get_json()["editors"] == ["bob"]

        res = client.get(f"/api/v1/roadmaps/{roadmap['id']}", headers=auth_headers(bob))
        assert res.get_json()["access_level"] == "EDIT"

    def test_delete_by_admin(self, client, alice, admin, auth_headers):
        meta = _create_meta(client, auth_headers(alice))
        roadmap = client.post(
            "/api/v1/roadmaps", json={"meta_roadmap_id": meta["id"]}, headers=auth_headers(alice),
        ).get_json()
        res = client.delete(f"/api/v1/roadmaps/{roadmap['id']}", headers=auth_headers(admin))
        assert res.status_code == 200
        assert Roadmap.query.count() == 0
