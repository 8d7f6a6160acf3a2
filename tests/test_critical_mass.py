"""
test_critical_mass.py — Station readiness overlay.
"""

from datetime import timedelta

from pajama_party.map.critical_mass import CriticalMassOverlay, readiness_features
from pajama_party.map.layers import LayerGroup, layer_ids
from pajama_party.services.readiness import assess_station
from tests.fakes import NOW, FakeMap, make_dream


class TestReadinessFeatures:
    def test_properties_use_camel_case(self):
        station = assess_station("Wien", 25, coordinates=[16.37, 48.18], recent=2)
        feature = readiness_features([station])["features"][0]
        assert feature["geometry"]["coordinates"] == [16.37, 48.18]
        props = feature["properties"]
        assert props["readinessLevel"] == "high"
        assert props["dreamCount"] == 25
        assert "coordinates" not in props

    def test_stations_without_coordinates_skipped(self):
        assert readiness_features([assess_station("Nowhere", 3)])["features"] == []


class TestOverlay:
    def test_update_from_dreams(self):
        fake_map = FakeMap()
        overlay = CriticalMassOverlay(fake_map)
        dreams = [make_dream(str(i)) for i in range(3)] + [make_dream("w", origin="Wien Hbf", origin_coords=(16.37, 48.18))]
        assert overlay.update_from_dreams(dreams, NOW) is True
        assert [s.station for s in overlay.stations] == ["Berlin Hauptbahnhof", "Wien Hbf"]
        assert overlay.stations[0].recent_dreams == 3

    def test_unchanged_counts_not_recomputed(self):
        overlay = CriticalMassOverlay(FakeMap())
        dreams = [make_dream("1")]
        assert overlay.update_from_dreams(dreams, NOW) is True
        assert overlay.update_from_dreams(dreams, NOW) is False

    def test_old_dreams_are_not_recent(self):
        overlay = CriticalMassOverlay(FakeMap())
        overlay.update_from_dreams([make_dream("1", created_at=NOW - timedelta(days=10))], NOW)
        assert overlay.stations[0].recent_dreams == 0

    def test_visibility_toggles_layers(self):
        fake_map = FakeMap()
        overlay = CriticalMassOverlay(fake_map)
        overlay.update_from_dreams([make_dream("1")], NOW)

        overlay.set_visible(True)
        assert set(layer_ids(LayerGroup.CRITICAL_MASS)) <= fake_map.visible_layers()
        assert len(fake_map.sources["critical-mass-stations"]["data"]["features"]) == 1

        overlay.set_visible(False)
        assert not set(layer_ids(LayerGroup.CRITICAL_MASS)) & fake_map.visible_layers()

    def test_update_after_shown_pushes_data(self):
        fake_map = FakeMap()
        overlay = CriticalMassOverlay(fake_map)
        overlay.set_visible(True)
        overlay.update_from_dreams([make_dream("1")], NOW)
        assert fake_map.source_updates == ["critical-mass-stations"]
