"""
Entity API tests via the Flask test client.

Endpoints: GET/POST /api/<entity>, GET/PUT/DELETE /api/<entity>/<id>.
Uses shared fixtures from conftest.py: client, make, service, store.
"""

from datetime import datetime

import pytest

from eduadmin.services.entity_service import EntityService


def _qs(role, scope=None, **params):
    qs = {"userRole": role, **params}
    if scope is not None:
        qs["userScope"] = scope
    return qs


def _ids(res):
    return [r["id"] for r in res.get_json()["data"]]


# ── Example scenarios ────────────────────────────────────────────────────


class TestScenarios:
    def test_third_page_of_25_programs(self, client, make):
        for i in range(25):
            make("programs", name=f"Program {i}")
        res = client.get("/api/programs", query_string=_qs("HQ", page=3, limit=10))
        assert res.status_code == 200
        body = res.get_json()
        assert body["success"] is True
        assert len(body["data"]) == 5
        assert body["pagination"] == {"page": 3, "limit": 10, "total": 25, "totalPages": 3}
        assert body["message"] == "Programs retrieved successfully"

    def test_program_shared_with_other_mf_is_hidden(self, client, shared_program):
        res = client.get("/api/programs", query_string=_qs("MF", "mf_2"))
        assert shared_program["id"] not in _ids(res)
        assert res.get_json()["pagination"]["total"] == 0

        res = client.get(f"/api/programs/{shared_program['id']}", query_string=_qs("MF", "mf_2"))
        assert res.status_code == 403
        body = res.get_json()
        assert body == {"success": False, "message": "Access denied", "code": "ERR_FORBIDDEN"}

    def test_mf_cannot_create_program(self, client, store, public_program):
        before = store.for_entity("programs").list()
        res = client.post("/api/programs", json={"name": "Sneaky"}, query_string=_qs("MF", "mf_1"))
        assert res.status_code == 403
        assert res.get_json()["message"] == "Access denied. Only HQ can create programs."
        assert store.for_entity("programs").list() == before

    def test_partial_update_keeps_other_fields(self, client, public_program):
        pid = public_program["id"]
        before = client.get(f"/api/programs/{pid}", query_string=_qs("HQ")).get_json()["data"]

        res = client.put(f"/api/programs/{pid}", json={"status": "inactive"}, query_string=_qs("HQ"))
        assert res.status_code == 200
        after = res.get_json()["data"]
        assert after["status"] == "inactive"
        assert after["name"] == before["name"]
        assert datetime.fromisoformat(after["updatedAt"]) > datetime.fromisoformat(before["updatedAt"])
        for key in set(before) - {"status", "updatedAt"}:
            assert after[key] == before[key], key

    def test_search_without_match(self, client, public_program):
        res = client.get("/api/programs", query_string=_qs("HQ", search="zzz-no-match"))
        body = res.get_json()
        assert body["data"] == []
        assert body["pagination"]["total"] == 0
        assert body["pagination"]["totalPages"] == 0

    def test_sort_by_tied_field_keeps_insertion_order(self, client, make):
        created = [make("programs", name=f"P{i}", status="active")["id"] for i in range(5)]
        res = client.get("/api/programs", query_string=_qs("HQ", sortBy="status", sortOrder="asc"))
        assert _ids(res) == created


# ── Listing ──────────────────────────────────────────────────────────────


class TestList:
    def test_default_order_is_newest_first(self, client, make):
        created = [make("programs", name=f"P{i}")["id"] for i in range(3)]
        assert _ids(client.get("/api/programs", query_string=_qs("HQ"))) == created[::-1]

    def test_default_limit_is_ten(self, client, make):
        for i in range(12):
            make("programs", name=f"P{i}")
        body = client.get("/api/programs", query_string=_qs("HQ")).get_json()
        assert len(body["data"]) == 10
        assert body["pagination"]["limit"] == 10

    def test_filter_and_search_combine(self, client, make):
        make("programs", name="Math Basics", status="active")
        make("programs", name="Math Advanced", status="draft")
        make("programs", name="Reading", status="active")
        res = client.get("/api/programs", query_string=_qs("HQ", search="math", status="active"))
        assert [r["name"] for r in res.get_json()["data"]] == ["Math Basics"]

    def test_total_counts_only_visible_records(self, client, public_program, shared_program, private_program):
        assert client.get("/api/programs", query_string=_qs("HQ")).get_json()["pagination"]["total"] == 3
        assert client.get("/api/programs", query_string=_qs("MF", "mf_1")).get_json()["pagination"]["total"] == 2
        assert client.get("/api/programs", query_string=_qs("TT")).get_json()["pagination"]["total"] == 1

    def test_mf_sees_only_own_teachers(self, client, make):
        mine = make("teachers", firstName="A", lastName="A", email="a@x", mfId="mf_1", lcId="lc_1")
        make("teachers", firstName="B", lastName="B", email="b@x", mfId="mf_2", lcId="lc_2")
        assert _ids(client.get("/api/teachers", query_string=_qs("MF", "mf_1"))) == [mine["id"]]
        assert len(_ids(client.get("/api/teachers", query_string=_qs("HQ")))) == 2

    def test_headers_identify_the_caller(self, client, shared_program):
        res = client.get("/api/programs", headers={"X-User-Role": "MF", "X-User-Scope": "mf_1"})
        assert _ids(res) == [shared_program["id"]]

    def test_query_parameters_win_over_headers(self, client, shared_program):
        res = client.get(
            "/api/programs",
            query_string=_qs("TT"),
            headers={"X-User-Role": "HQ"},
        )
        assert _ids(res) == []


# ── Invalid input ────────────────────────────────────────────────────────


class TestInvalidInput:
    @pytest.mark.parametrize("params,field", [
        ({"page": "abc"}, "page"),
        ({"limit": "many"}, "limit"),
        ({"limit": "0"}, "limit"),
        ({"sortOrder": "random"}, "sortOrder"),
    ])
    def test_bad_query_parameters(self, client, params, field):
        res = client.get("/api/programs", query_string=_qs("HQ", **params))
        assert res.status_code == 400
        body = res.get_json()
        assert body["success"] is False
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert field in body["details"]

    def test_missing_role(self, client):
        res = client.get("/api/programs")
        assert res.status_code == 400
        assert res.get_json()["message"] == "userRole is required"

    def test_unknown_role(self, client):
        res = client.get("/api/programs", query_string={"userRole": "ADMIN"})
        assert res.status_code == 400
        assert res.get_json()["message"] == "Invalid user role"

    def test_mf_without_scope_on_org_entity(self, client):
        res = client.get("/api/students", query_string=_qs("MF"))
        assert res.status_code == 400
        assert res.get_json()["message"] == "MF user missing organizational information"

    def test_missing_required_fields(self, client):
        res = client.post("/api/programs", json={"description": "x"}, query_string=_qs("HQ"))
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_REQUIRED"
        assert body["message"] == "Missing required fields: name"

    def test_body_must_be_json_object(self, client):
        res = client.post("/api/programs", data="name=x", query_string=_qs("HQ"))
        assert res.status_code == 400
        assert res.get_json()["message"] == "Request body must be a JSON object"

    def test_invalid_enum(self, client):
        res = client.post("/api/programs", json={"name": "M", "visibility": "secret"}, query_string=_qs("HQ"))
        assert res.status_code == 400
        assert "visibility" in res.get_json()["details"]


# ── Create / update / delete ─────────────────────────────────────────────


class TestMutations:
    def test_hq_creates_program(self, client):
        res = client.post(
            "/api/programs",
            json={"name": "Chess", "visibility": "public", "id": "prog_mine", "createdAt": "1999-01-01"},
            query_string=_qs("HQ"),
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["message"] == "Program created successfully"
        data = body["data"]
        assert data["id"].startswith("prog_") and data["id"] != "prog_mine"
        assert data["createdAt"] == data["updatedAt"]
        assert data["status"] == "draft"

    def test_mf_creates_subprogram_under_shared_program(self, client, shared_program):
        res = client.post(
            "/api/subprograms",
            json={"programId": shared_program["id"], "name": "Module 1"},
            query_string=_qs("MF", "mf_1"),
        )
        assert res.status_code == 201
        assert res.get_json()["data"]["programId"] == shared_program["id"]

    def test_reference_to_hidden_program_is_forbidden(self, client, private_program):
        res = client.post(
            "/api/subprograms",
            json={"programId": private_program["id"], "name": "Module 1"},
            query_string=_qs("MF", "mf_1"),
        )
        assert res.status_code == 403
        assert res.get_json()["message"] == "Access denied. You can only use programs shared with your account."

    def test_reference_to_missing_program_is_invalid(self, client):
        res = client.post(
            "/api/subprograms",
            json={"programId": "prog_missing", "name": "Module 1"},
            query_string=_qs("MF", "mf_1"),
        )
        assert res.status_code == 400
        assert res.get_json()["message"] == "Invalid programId: Program not found"

    def test_hq_cannot_touch_subprograms(self, client, public_program):
        res = client.post(
            "/api/subprograms",
            json={"programId": public_program["id"], "name": "Module 1"},
            query_string=_qs("HQ"),
        )
        assert res.status_code == 403
        assert res.get_json()["message"] == "Access denied. Only MF can create subprograms."

    def test_caller_scope_is_stamped_on_org_records(self, client):
        res = client.post(
            "/api/teachers",
            json={"firstName": "Ana", "lastName": "Lee", "email": "ana@x"},
            query_string=_qs("LC", "lc_7"),
        )
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["lcId"] == "lc_7"
        assert data["status"] == "process"

    def test_update_unknown_id_is_404(self, client):
        res = client.put("/api/programs/prog_missing", json={"name": "x"}, query_string=_qs("HQ"))
        assert res.status_code == 404
        assert res.get_json()["message"] == "Program not found"

    def test_update_ignores_readonly_fields(self, client, public_program):
        res = client.put(
            f"/api/programs/{public_program['id']}",
            json={"id": "other", "name": "Renamed"},
            query_string=_qs("HQ"),
        )
        assert res.get_json()["data"]["id"] == public_program["id"]

    def test_delete(self, client, public_program):
        url = f"/api/programs/{public_program['id']}"
        res = client.delete(url, query_string=_qs("HQ"))
        assert res.status_code == 200
        assert res.get_json() == {"success": True, "data": None, "message": "Program deleted successfully"}
        assert client.get(url, query_string=_qs("HQ")).status_code == 404
        assert client.delete(url, query_string=_qs("HQ")).status_code == 404

    def test_program_with_subprograms_cannot_be_deleted(self, client, public_program):
        res = client.post(
            "/api/subprograms",
            json={"programId": public_program["id"], "name": "Module 1"},
            query_string=_qs("MF", "mf_1"),
        )
        sub_id = res.get_json()["data"]["id"]
        url = f"/api/programs/{public_program['id']}"

        res = client.delete(url, query_string=_qs("HQ"))
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert body["message"] == (
            "Cannot delete program with existing subprograms. Please delete subprograms first."
        )
        assert body["details"] == {"subprograms": 1}
        assert client.get(url, query_string=_qs("HQ")).status_code == 200

        assert client.delete(f"/api/subprograms/{sub_id}", query_string=_qs("MF", "mf_1")).status_code == 200
        assert client.delete(url, query_string=_qs("HQ")).status_code == 200

    def test_anyone_can_submit_application(self, client):
        res = client.post(
            "/api/applications",
            json={"applicantName": "Jo", "email": "jo@x", "applicationType": "MF"},
            query_string=_qs("TT"),
        )
        assert res.status_code == 201
        assert res.get_json()["data"]["applicationType"] == "mf"


# ── Routing ──────────────────────────────────────────────────────────────


class TestRouting:
    def test_unknown_entity_is_404(self, client):
        res = client.get("/api/widgets", query_string=_qs("HQ"))
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_unsupported_method_is_405(self, client):
        res = client.patch("/api/programs", query_string=_qs("HQ"))
        assert res.status_code == 405
        assert res.get_json()["code"] == "ERR_METHOD_NOT_ALLOWED"

    def test_unknown_path_is_enveloped(self, client):
        res = client.get("/nothing/here")
        assert res.status_code == 404
        assert res.get_json()["success"] is False

    def test_hyphenated_slug(self, client, make, public_program):
        make("learning-groups", name="G1", programId=public_program["id"], mfId="mf_1", lcId="lc_1")
        res = client.get("/api/learning-groups", query_string=_qs("LC", "lc_1"))
        assert res.status_code == 200
        assert res.get_json()["message"] == "Learning groups retrieved successfully"
        assert len(res.get_json()["data"]) == 1


# ── Scope ownership (opt-in) ─────────────────────────────────────────────


class TestScopeOwnership:
    @pytest.fixture()
    def subprogram(self, make, public_program):
        return make(
            "subprograms", programId=public_program["id"], name="Mod",
            visibility="shared", sharedWithMFs=["mf_1"],
        )

    def test_role_only_gate_by_default(self, service, subprogram, mf2):
        updated = service.update_record("subprograms", subprogram["id"], {"name": "Taken"}, mf2)
        assert updated["name"] == "Taken"

    def test_ownership_enforced_when_enabled(self, store, subprogram, mf1, mf2):
        from eduadmin.core.exceptions import ForbiddenError

        strict = EntityService(store, enforce_scope_ownership=True)
        with pytest.raises(ForbiddenError):
            strict.update_record("subprograms", subprogram["id"], {"name": "Taken"}, mf2)
        with pytest.raises(ForbiddenError):
            strict.delete_record("subprograms", subprogram["id"], mf2)
        assert strict.update_record("subprograms", subprogram["id"], {"name": "Mine"}, mf1)["name"] == "Mine"

    def test_creator_sees_own_private_subprogram(self, client, public_program):
        res = client.post(
            "/api/subprograms",
            json={"programId": public_program["id"], "name": "Draft module", "createdBy": "mf_2"},
            query_string=_qs("MF", "mf_1"),
        )
        data = res.get_json()["data"]
        assert data["visibility"] == "private"
        assert data["createdBy"] == "mf_1"

        url = f"/api/subprograms/{data['id']}"
        assert client.get(url, query_string=_qs("MF", "mf_1")).status_code == 200
        assert client.get(url, query_string=_qs("MF", "mf_2")).status_code == 403
        res = client.get("/api/subprograms", query_string=_qs("MF", "mf_1"))
        assert res.get_json()["pagination"]["total"] == 1

    def test_creator_can_edit_own_private_subprogram_when_enforced(
        self, store, public_program, mf1, mf2,
    ):
        from eduadmin.core.exceptions import ForbiddenError

        strict = EntityService(store, enforce_scope_ownership=True)
        created = strict.create_record(
            "subprograms", {"programId": public_program["id"], "name": "Draft"}, mf1,
        )
        assert strict.update_record("subprograms", created["id"], {"name": "Final"}, mf1)["name"] == "Final"
        with pytest.raises(ForbiddenError):
            strict.delete_record("subprograms", created["id"], mf2)
        strict.delete_record("subprograms", created["id"], mf1)
        assert not store.for_entity("subprograms").exists(created["id"])
