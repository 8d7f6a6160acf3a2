"""
test_map_routes.py — Tests for /api/map (layer registry, dream features, image export).
"""

import base64
import io

import pytest
from PIL import Image

from tests.fakes import dream_doc


def _png_b64(size=(320, 200), color=(30, 60, 120)) -> str:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode()


class TestLayerRegistry:
    async def test_lists_every_group(self, client):
        data = (await client.get("/api/map/layers")).json()
        groups = {layer["group"] for layer in data["layers"]}
        assert groups == {"dream", "reality", "heatmap", "critical_mass"}

    async def test_layer_ids_unique(self, client):
        ids = [layer["id"] for layer in (await client.get("/api/map/layers")).json()["layers"]]
        assert len(ids) == len(set(ids))

    async def test_clustered_sources(self, client):
        sources = {s["id"]: s for s in (await client.get("/api/map/layers")).json()["sources"]}
        assert sources["dream-stations"]["cluster"] is True
        assert sources["dream-stations"]["cluster_max_zoom"] == 14
        assert sources["reality-routes"]["cluster"] is False


class TestDreamFeatures:
    async def test_features_from_active_dreams(self, db_client_with, fake_db):
        await fake_db["dreams"].insert_one(dream_doc())
        await fake_db["dreams"].insert_one(dream_doc(name="Berta"))
        await fake_db["dreams"].insert_one(dream_doc(name="NoCoords", origin_coords=None, destination_coords=None))

        data = (await db_client_with.get("/api/map/features")).json()
        assert len(data["routes"]["features"]) == 2
        assert len(data["stations"]["features"]) == 2
        assert data["heat"]["features"]

    async def test_route_coordinates_are_lng_lat(self, db_client_with, fake_db):
        await fake_db["dreams"].insert_one(dream_doc())
        route = (await db_client_with.get("/api/map/features")).json()["routes"]["features"][0]
        assert route["geometry"]["coordinates"] == [[13.3691, 52.5251], [2.1404, 41.3794]]

    async def test_empty_without_database(self, client):
        data = (await client.get("/api/map/features")).json()
        assert data["routes"]["features"] == []
        assert data["heat"]["features"] == []


class TestMapExport:
    async def test_export_png(self, client):
        r = await client.post("/api/map/export", json={"image_b64": _png_b64(), "overlay_text": "Berlin → Barcelona"})
        assert r.status_code == 200
        data = r.json()
        assert data["content_type"] == "image/png"
        assert data["filename"].startswith("night-train-map-") and data["filename"].endswith(".png")
        image = Image.open(io.BytesIO(base64.b64decode(data["image_b64"])))
        assert image.size == (1200, 630)

    async def test_export_preset_and_jpeg(self, client):
        r = await client.post(
            "/api/map/export",
            json={"image_b64": _png_b64(), "preset": "instagram-post", "format": "jpeg", "quality": "low"},
        )
        data = r.json()
        assert (data["width"], data["height"]) == (1080, 1080)
        assert data["content_type"] == "image/jpeg"
        assert Image.open(io.BytesIO(base64.b64decode(data["image_b64"]))).format == "JPEG"

    async def test_share_links_included(self, client):
        data = (await client.post(
            "/api/map/export", json={"image_b64": _png_b64(), "share_text": "Night trains now"}
        )).json()
        links = data["share_links"]
        assert links["twitter"].startswith("https://twitter.com/intent/tweet?")
        assert "Night%20trains%20now" in links["twitter"]
        assert "#NightTrains" in links["instagram_caption"]

    async def test_unknown_preset_is_400(self, client):
        r = await client.post("/api/map/export", json={"image_b64": _png_b64(), "preset": "myspace"})
        assert r.status_code == 400
        assert r.json()["error"] == "Export failed"

    async def test_invalid_base64_is_400(self, client):
        r = await client.post("/api/map/export", json={"image_b64": "not base64!!"})
        assert r.status_code == 400

    async def test_non_image_is_400(self, client):
        payload = base64.b64encode(b"definitely not an image").decode()
        r = await client.post("/api/map/export", json={"image_b64": payload})
        assert r.status_code == 400
        assert "not a readable image" in r.json()["message"]
