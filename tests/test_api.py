"""
test_api.py - HTTP surface against an in-memory database.

Walks a project through creation, BOM seeding, feature confirmation,
edits and cost recomputation.
"""


def components(bom):
    return [item["component"] for item in bom]


class TestHealthAndCatalog:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["catalog_version"]

    def test_catalog_overview(self, client):
        data = client.get("/bom/catalog").json()
        assert "zip_hoodie" in data["sub_types"]
        assert data["moq_tiers"][0]["multiplier"] == 1.15

    def test_material_detail(self, client):
        assert client.get("/bom/catalog/materials/Fleece").json()["unit_price"] == 3.80
        assert client.get("/bom/catalog/materials/Unobtainium").status_code == 404

    def test_template_preview(self, client):
        data = client.get("/bom/templates/hoodie", params={"sub_type": "zip_hoodie"}).json()
        assert "Zipper" in components(data["items"])
        assert data["default_features"]["hasZipper"] is True
        assert "zipper" in data["pom_groups"]


class TestProjects:

    def test_create_uses_subtype_defaults(self, hoodie_project):
        settings = hoodie_project["cost_settings"]
        assert settings["quantity"] == 250
        assert settings["cmt_cost"] == 4.00
        assert settings["shipping_per_unit"] == 0.80

    def test_create_with_overrides(self, client):
        response = client.post("/projects", json={
            "title": "Zip", "category": "hoodie", "sub_type": "Zip Hoodie",
            "overhead_pct": 15,
        })
        project = response.json()["project"]
        assert project["sub_type"] == "zip_hoodie"
        assert project["cost_settings"]["overhead_pct"] == 15.0
        assert project["cost_settings"]["cmt_cost"] == 4.50
        assert project["cost_settings"]["quantity"] == 500

    def test_list_and_get(self, client, hoodie_project):
        listing = client.get("/projects").json()
        assert listing["total"] == 1
        fetched = client.get(f"/projects/{hoodie_project['id']}").json()
        assert fetched["project"]["title"] == "Heavyweight Pullover"

    def test_missing_project(self, client):
        assert client.get("/projects/999").status_code == 404
        assert client.get("/projects/999/bom").status_code == 404
        assert client.get("/projects/999/cost").status_code == 404
        assert client.patch("/projects/999/cost", json={"quantity": 10}).status_code == 404
        assert client.patch("/projects/999/features", json={"hasZipper": True}).status_code == 404
        assert client.put("/projects/999/bom", json={"items": []}).status_code == 404
        assert client.delete("/projects/999").status_code == 404

    def test_delete_removes_bom(self, client, hoodie_project):
        pid = hoodie_project["id"]
        client.get(f"/projects/{pid}/bom")
        assert client.delete(f"/projects/{pid}").status_code == 200
        assert client.get(f"/projects/{pid}/bom").status_code == 404


class TestBom:

    def test_seeded_once(self, client, hoodie_project):
        pid = hoodie_project["id"]
        first = client.get(f"/projects/{pid}/bom").json()["bom"]
        second = client.get(f"/projects/{pid}/bom").json()["bom"]
        assert len(first) == 9
        assert [i["id"] for i in first] == [i["id"] for i in second]
        assert first[0]["total_cost"] == 8.23

    def test_features_rebuild(self, client, hoodie_project):
        pid = hoodie_project["id"]
        response = client.patch(f"/projects/{pid}/features", json={
            "hasDrawcord": True, "hasZipper": False, "hasPockets": False,
            "subType": "pullover_hoodie",
        })
        assert response.status_code == 200
        data = response.json()
        assert components(data["bom"]) == [
            "Body Fabric", "Rib Fabric", "Drawcord", "Grommets",
            "Main Label", "Size Label", "Care Label", "Thread", "Polybag",
        ]
        breakdown = data["cost_breakdown"]
        assert breakdown["moq_multiplier"] == 1.08
        assert breakdown["adjusted_landed_cost"] == 20.72
        assert breakdown["retail_price"] == 103.58

    def test_features_add_zipper(self, client, hoodie_project):
        pid = hoodie_project["id"]
        bom = client.patch(f"/projects/{pid}/features", json={"hasZipper": True}).json()["bom"]
        assert bom[-1]["component"] == "Zipper"
        assert bom[-1]["sort_order"] == 9

        project = client.get(f"/projects/{pid}").json()["project"]
        assert project["confirmed_features"] == {"hasZipper": True}

    def test_features_twice_is_stable(self, client, hoodie_project):
        pid = hoodie_project["id"]
        body = {"hasZipper": True, "hasDrawcord": False}
        first = client.patch(f"/projects/{pid}/features", json=body).json()["bom"]
        second = client.patch(f"/projects/{pid}/features", json=body).json()["bom"]
        assert components(first) == components(second)

    def test_replace_coerces_bad_numbers(self, client, hoodie_project):
        pid = hoodie_project["id"]
        response = client.put(f"/projects/{pid}/bom", json={"items": [
            {"category": "fabric", "component": "Body Fabric", "unit_price": 4.0,
             "consumption": 2, "wastage": 0},
            {"category": "trim", "component": "Toggle", "unit_price": "abc",
             "consumption": 1},
        ]})
        assert response.status_code == 200
        data = response.json()
        assert [i["sort_order"] for i in data["bom"]] == [0, 1]
        assert data["bom"][1]["total_cost"] == 0.0
        assert data["cost_breakdown"]["materials_subtotal"] == 8.0

    def test_replace_renumbers_colliding_sort_orders(self, client, hoodie_project):
        """Two rows at 3 plus one defaulting to its index 2 -> stable order 0, 1, 2."""
        pid = hoodie_project["id"]
        data = client.put(f"/projects/{pid}/bom", json={"items": [
            {"category": "fabric", "component": "Body Fabric", "sort_order": 3},
            {"category": "fabric", "component": "Rib Fabric", "sort_order": 3},
            {"category": "thread", "component": "Thread"},
        ]}).json()
        assert components(data["bom"]) == ["Thread", "Body Fabric", "Rib Fabric"]
        assert [i["sort_order"] for i in data["bom"]] == [0, 1, 2]

    def test_replace_keeps_unique_sort_orders(self, client, hoodie_project):
        pid = hoodie_project["id"]
        data = client.put(f"/projects/{pid}/bom", json={"items": [
            {"category": "fabric", "component": "Body Fabric", "sort_order": 10},
            {"category": "thread", "component": "Thread", "sort_order": 5},
        ]}).json()
        assert [(i["component"], i["sort_order"]) for i in data["bom"]] == [
            ("Thread", 5), ("Body Fabric", 10),
        ]

    def test_upsert_into_taken_slot_shifts_rows(self, client, hoodie_project):
        pid = hoodie_project["id"]
        client.get(f"/projects/{pid}/bom")
        item = client.patch(f"/projects/{pid}/bom/items", json={
            "category": "trim", "component": "Cord Lock", "sort_order": 2,
        }).json()["item"]
        assert item["sort_order"] == 2

        bom = client.get(f"/projects/{pid}/bom").json()["bom"]
        orders = [i["sort_order"] for i in bom]
        assert len(set(orders)) == len(orders) == 10
        assert components(bom)[1:4] == ["Rib Fabric", "Cord Lock", "Drawcord"]

    def test_upsert_move_to_taken_slot(self, client, hoodie_project):
        pid = hoodie_project["id"]
        polybag = client.get(f"/projects/{pid}/bom").json()["bom"][-1]
        client.patch(f"/projects/{pid}/bom/items", json={"id": polybag["id"], "sort_order": 0})
        bom = client.get(f"/projects/{pid}/bom").json()["bom"]
        orders = [i["sort_order"] for i in bom]
        assert len(set(orders)) == len(orders)
        assert bom[0]["component"] == "Polybag"

    def test_replace_rejects_unknown_category(self, client, hoodie_project):
        response = client.put(f"/projects/{hoodie_project['id']}/bom", json={"items": [
            {"category": "hardware", "component": "Rivet"},
        ]})
        assert response.status_code == 422

    def test_replace_with_empty_list(self, client, hoodie_project):
        pid = hoodie_project["id"]
        data = client.put(f"/projects/{pid}/bom", json={"items": []}).json()
        assert data["bom"] == []
        assert data["cost_breakdown"]["materials_subtotal"] == 0.0

    def test_upsert_new_item(self, client, hoodie_project):
        pid = hoodie_project["id"]
        client.get(f"/projects/{pid}/bom")
        response = client.patch(f"/projects/{pid}/bom/items", json={
            "category": "label", "component": "Hang Tag", "material": "Hang Tag",
            "unit_price": 0.06, "consumption": 1,
        })
        assert response.status_code == 200
        item = response.json()["item"]
        assert item["sort_order"] == 9
        assert item["price_source"] == "user_added"

    def test_upsert_new_item_requires_category(self, client, hoodie_project):
        response = client.patch(f"/projects/{hoodie_project['id']}/bom/items",
                                json={"component": "Mystery"})
        assert response.status_code == 400

    def test_upsert_existing_marks_edited(self, client, hoodie_project):
        pid = hoodie_project["id"]
        body = client.get(f"/projects/{pid}/bom").json()["bom"][0]
        response = client.patch(f"/projects/{pid}/bom/items",
                                json={"id": body["id"], "unit_price": 5.0})
        item = response.json()["item"]
        assert item["unit_price"] == 5.0
        assert item["price_source"] == "user_edited"
        assert item["component"] == "Body Fabric"
        assert item["consumption"] == 1.75

    def test_upsert_unknown_item(self, client, hoodie_project):
        response = client.patch(f"/projects/{hoodie_project['id']}/bom/items",
                                json={"id": 4242, "unit_price": 1.0})
        assert response.status_code == 404

    def test_select_material(self, client, hoodie_project):
        pid = hoodie_project["id"]
        client.get(f"/projects/{pid}/bom")
        data = client.patch(f"/projects/{pid}/materials", json={
            "component": "Body Fabric", "material": "Fleece",
        }).json()
        body = data["bom"][0]
        assert body["material"] == "Fleece"
        assert body["unit_price"] == 3.80
        assert body["price_source"] == "user_selected"
        assert len(data["bom"]) == 9

    def test_select_material_with_override(self, client, hoodie_project):
        pid = hoodie_project["id"]
        client.get(f"/projects/{pid}/bom")
        data = client.patch(f"/projects/{pid}/materials", json={
            "component": "Rib Fabric", "material": "2x2 Rib", "unit_price": 4.10,
        }).json()
        rib = data["bom"][1]
        assert rib["unit_price"] == 4.10
        assert rib["consumption"] == 0.25

    def test_select_material_keeps_fields_catalog_leaves_blank(self, client, hoodie_project):
        """Cord Lock has no catalog specification; the row keeps its own."""
        pid = hoodie_project["id"]
        client.get(f"/projects/{pid}/bom")
        data = client.patch(f"/projects/{pid}/materials", json={
            "component": "Drawcord", "material": "Cord Lock",
        }).json()
        drawcord = data["bom"][2]
        assert drawcord["component"] == "Drawcord"
        assert drawcord["material"] == "Cord Lock"
        assert drawcord["unit_price"] == 0.15
        assert drawcord["composition"] == "Plastic"
        assert drawcord["specification"] == "5mm flat"

    def test_construction_notes(self, client, hoodie_project):
        data = client.get(f"/projects/{hoodie_project['id']}/construction").json()
        assert data["construction"][0]["section"] == "seams"


class TestCost:

    def test_cost_seeds_and_computes(self, client, hoodie_project):
        data = client.get(f"/projects/{hoodie_project['id']}/cost").json()
        assert data["breakdown"]["fob_cost"] == 15.78
        assert [row["quantity"] for row in data["moq"]] == [100, 500, 1000]
        assert "pricing" not in data

    def test_target_retail(self, client, hoodie_project):
        data = client.get(f"/projects/{hoodie_project['id']}/cost",
                          params={"target_retail": 120}).json()
        assert data["pricing"]["implied_retail"] == 120.0
        assert data["pricing"]["implied_wholesale"] == 60.0

    def test_update_settings(self, client, hoodie_project):
        pid = hoodie_project["id"]
        client.get(f"/projects/{pid}/bom")
        data = client.patch(f"/projects/{pid}/cost", json={"quantity": 1200}).json()
        assert data["settings"]["quantity"] == 1200
        assert data["settings"]["overhead_pct"] == 12.0
        assert data["breakdown"]["moq_multiplier"] == 0.85

        stored = client.get(f"/projects/{pid}").json()["project"]["cost_settings"]
        assert stored["quantity"] == 1200

    def test_update_settings_invalid_value_keeps_default(self, client, hoodie_project):
        data = client.patch(f"/projects/{hoodie_project['id']}/cost",
                            json={"duty_pct": "free"}).json()
        assert data["settings"]["duty_pct"] == 16.5

    def test_export_json(self, client, hoodie_project):
        response = client.get(f"/projects/{hoodie_project['id']}/export/json")
        assert response.status_code == 200
        assert "attachment" in response.headers["content-disposition"]
        data = response.json()
        assert data["project"]["id"] == hoodie_project["id"]
        assert len(data["bom"]) == 9
        assert data["cost_breakdown"]["adjusted_landed_cost"] == 20.72
