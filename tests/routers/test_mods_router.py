from fastapi.testclient import TestClient

from deadlock_mod_manager.main import app
from deadlock_mod_manager.services.filenames import generate_mod_id


class TestListMods:
    def test_empty(self, client):
        r = client.get("/api/v1/mods/")
        assert r.status_code == 200
        assert r.json() == []

    def test_lists_enabled_and_disabled(self, client, make_vpk, store):
        make_vpk("pak02_b_dir.vpk", enabled=False)
        make_vpk("pak01_a_dir.vpk")
        store.upsert("pak01_a_dir.vpk", mod_name="Alpha Skin", gamebanana_id=77)

        data = client.get("/api/v1/mods/").json()

        assert [m["file_name"] for m in data] == ["pak01_a_dir.vpk", "pak02_b_dir.vpk"]
        assert data[0]["name"] == "Alpha Skin"
        assert data[0]["gamebanana_id"] == 77
        assert data[1]["enabled"] is False

    def test_no_game_path_configured(self, engine, monkeypatch):
        monkeypatch.setattr("deadlock_mod_manager.database.engine", engine)
        monkeypatch.setattr("deadlock_mod_manager.config.settings.game_path", None)
        with TestClient(app) as tc:
            r = tc.get("/api/v1/mods/")
        assert r.status_code == 400
        assert "No Deadlock path" in r.json()["detail"]


class TestEnableDisable:
    def test_disable_then_enable(self, client, make_vpk, game_root):
        make_vpk("pak03_skin_dir.vpk")
        mod_id = generate_mod_id("pak03_skin_dir.vpk")

        r = client.post(f"/api/v1/mods/{mod_id}/disable")
        assert r.status_code == 200
        assert r.json()["enabled"] is False
        assert (game_root / "addons" / ".disabled" / "pak03_skin_dir.vpk").exists()

        r = client.post(f"/api/v1/mods/{mod_id}/enable")
        assert r.status_code == 200
        assert r.json()["enabled"] is True
        assert r.json()["id"] == mod_id

    def test_unknown_mod(self, client):
        assert client.post("/api/v1/mods/nope/enable").status_code == 404
        assert client.post("/api/v1/mods/nope/disable").status_code == 404

    def test_collision(self, client, make_vpk):
        make_vpk("pak03_skin_dir.vpk")
        make_vpk("pak03_skin_dir.vpk", enabled=False)
        r = client.post(f"/api/v1/mods/{generate_mod_id('pak03_skin_dir.vpk')}/disable")
        assert r.status_code == 409


class TestPriority:
    def test_set_priority(self, client, make_vpk, store):
        make_vpk("pak03_skin_dir.vpk")
        store.upsert("pak03_skin_dir.vpk", mod_name="Skin")

        r = client.put(
            f"/api/v1/mods/{generate_mod_id('pak03_skin_dir.vpk')}/priority",
            json={"priority": 9},
        )

        assert r.status_code == 200
        body = r.json()
        assert body["file_name"] == "pak09_skin_dir.vpk"
        assert body["id"] == generate_mod_id("pak09_skin_dir.vpk")
        assert body["name"] == "Skin"

    def test_slot_in_use(self, client, make_vpk):
        make_vpk("pak03_skin_dir.vpk")
        make_vpk("pak09_other_dir.vpk", enabled=False)
        r = client.put(
            f"/api/v1/mods/{generate_mod_id('pak03_skin_dir.vpk')}/priority",
            json={"priority": 9},
        )
        assert r.status_code == 409

    def test_out_of_range(self, client, make_vpk):
        make_vpk("pak03_skin_dir.vpk")
        r = client.put(
            f"/api/v1/mods/{generate_mod_id('pak03_skin_dir.vpk')}/priority",
            json={"priority": 120},
        )
        assert r.status_code == 400

    def test_unknown(self, client):
        r = client.put("/api/v1/mods/nope/priority", json={"priority": 4})
        assert r.status_code == 404

    def test_next_priority(self, client, make_vpk):
        make_vpk("pak01_a.vpk")
        make_vpk("pak02_b.vpk", enabled=False)

        r = client.get("/api/v1/mods/priorities/next")

        assert r.status_code == 200
        assert r.json() == {"priority": 3, "used": [1, 2]}

    def test_next_priority_bad_start(self, client):
        assert client.get("/api/v1/mods/priorities/next?start_from=0").status_code == 400

    def test_next_priority_exhausted(self, client, make_vpk):
        for priority in range(90, 100):
            make_vpk(f"pak{priority:02d}_m.vpk", raw=b"")
        r = client.get("/api/v1/mods/priorities/next?start_from=90")
        assert r.status_code == 409


class TestDeleteAndCleanup:
    def test_delete(self, client, make_vpk, game_root):
        make_vpk("pak05_foo_dir.vpk")
        make_vpk("pak05_foo_000.vpk", raw=b"data")

        r = client.delete(f"/api/v1/mods/{generate_mod_id('pak05_foo_dir.vpk')}")

        assert r.status_code == 200
        assert sorted(r.json()["deleted"]) == ["pak05_foo_000.vpk", "pak05_foo_dir.vpk"]
        assert not any((game_root / "addons").glob("*.vpk"))

    def test_delete_unknown(self, client):
        assert client.delete("/api/v1/mods/nope").status_code == 404

    def test_cleanup(self, client, game_root):
        (game_root / "addons" / "left.zip").write_bytes(b"z")
        r = client.post("/api/v1/mods/cleanup")
        assert r.status_code == 200
        assert r.json()["removed_archives"] == 1


class TestContents:
    def test_heroes(self, client, make_vpk):
        make_vpk("pak01_a_dir.vpk", ["models/heroes/haze/haze.vmdl_c", "sounds/x.vsnd_c"])

        r = client.get(f"/api/v1/mods/{generate_mod_id('pak01_a_dir.vpk')}/contents")

        assert r.status_code == 200
        assert r.json()["heroes"] == ["haze"]
        assert r.json()["file_count"] == 2

    def test_unknown(self, client):
        assert client.get("/api/v1/mods/nope/contents").status_code == 404
