"""
Tests for unified (.xml) model files

Tests cover:
1. Save and reload to an equal registry
2. Refusal to save inconsistent models unless errors are ignored
3. Partial loads that skip invalid components
4. Visual layout handling (first layout only)
5. Atomic writes
"""

import logging

import pytest

from plantmodel.config.settings import get_all_flags, set_flag
from plantmodel.core.errors import ModelIOError
from plantmodel.models.components import VehicleModel
from plantmodel.models.enums import ComponentKind, LocationRepresentation, PointType
from plantmodel.models.keys import MiscKeys, OverlayKeys, PropKeys
from plantmodel.persistence.unified_persistence import UnifiedModelPersistor, UnifiedModelReader
from tests.fixtures.plant_models import build_demo_model, build_path, build_two_point_model


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture
def persistor():
    return UnifiedModelPersistor()


@pytest.fixture
def reader():
    return UnifiedModelReader()


@pytest.fixture
def restore_flags():
    """Restore feature flags changed by a test."""
    saved = get_all_flags()
    yield
    for flag, enabled in saved.items():
        set_flag(flag, enabled)


def write(tmp_path, name: str, text: str):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


# ============================================================================
# Round Trip Tests
# ============================================================================

class TestRoundTrip:
    """Test save followed by load."""

    def test_two_points_and_path(self, persistor, reader, tmp_path):
        target = tmp_path / "demo.xml"

        assert persistor.serialize(build_two_point_model(), "demo", target) is True
        loaded = reader.deserialize(target)

        assert reader.get_deserialization_errors() == []
        assert loaded.name == "demo"
        assert set(loaded.names(ComponentKind.POINT)) == {"P1", "P2"}
        path = loaded.get("P1 --- P2")
        assert path.property_value(PropKeys.START_COMPONENT) == "P1"
        assert path.property_value(PropKeys.END_COMPONENT) == "P2"
        assert path.get_property(PropKeys.LENGTH).get_value_by_unit("mm") == pytest.approx(1000.0)
        assert path.property_value(PropKeys.ROUTING_COST) == 5

    def test_demo_model(self, persistor, reader, tmp_path):
        original = build_demo_model()
        persistor.serialize(original, "demo", tmp_path / "demo.xml")

        loaded = reader.deserialize(tmp_path / "demo.xml")

        assert reader.get_deserialization_errors() == []
        assert sorted(loaded.names()) == sorted(original.names())
        assert loaded.get("P2").property_value(PropKeys.TYPE) is PointType.PARK
        assert loaded.get("L1").property_value(OverlayKeys.POSITION_Y) == "1500"
        assert loaded.get("LT1").property_value(PropKeys.DEFAULT_REPRESENTATION) \
            is LocationRepresentation.LOAD_TRANSFER_GENERIC
        assert loaded.get("P1 --- L1").property_value(PropKeys.ALLOWED_OPERATIONS) == ["LOAD"]
        assert loaded.get("V1").miscellaneous.get("loadHandlingDevice") == "fork"
        assert loaded.get("G1").members == ["P1", "L1", "V1"]
        assert loaded.properties.get("author") == "plant team"

    def test_null_sentinel_preserved(self, persistor, reader, tmp_path):
        model = build_two_point_model()
        vehicle = VehicleModel("V1")
        vehicle.get_property(PropKeys.POINT).value = "null"
        model.add(vehicle)

        persistor.serialize(model, "demo", tmp_path / "demo.xml")
        loaded = reader.deserialize(tmp_path / "demo.xml")

        assert loaded.get("V1").property_value(PropKeys.POINT) == "null"

    def test_location_none_symbol_preserved(self, persistor, reader, tmp_path):
        model = build_demo_model()
        location = model.get("L1")
        location.miscellaneous.set(MiscKeys.DEFAULT_LOCATION_SYMBOL, "NONE")
        location.get_property(PropKeys.DEFAULT_REPRESENTATION).value = LocationRepresentation.NONE

        persistor.serialize(model, "demo", tmp_path / "demo.xml")
        loaded = reader.deserialize(tmp_path / "demo.xml").get("L1")

        assert loaded.miscellaneous.get(MiscKeys.DEFAULT_LOCATION_SYMBOL) == "NONE"
        assert loaded.property_value(PropKeys.DEFAULT_REPRESENTATION) is LocationRepresentation.NONE

    def test_fractional_length_rounded(self, reader, tmp_path):
        path = write(tmp_path, "fraction.xml", """<model name="fraction">
  <point name="P1"/>
  <point name="P2" xPosition="1000"/>
  <path name="P1 --- P2" sourcePoint="P1" destinationPoint="P2" length="1000.6"/>
</model>
""")

        model = reader.deserialize(path)

        assert reader.get_deserialization_errors() == []
        length = model.get("P1 --- P2").get_property(PropKeys.LENGTH)
        assert length.get_value_by_unit("mm") == 1001

    def test_extension_appended(self, persistor, tmp_path):
        persistor.serialize(build_two_point_model(), "demo", tmp_path / "plant")
        assert (tmp_path / "plant.xml").exists()

    def test_layout_scale_preserved(self, persistor, reader, tmp_path):
        model = build_two_point_model()
        model.layout.get_property(PropKeys.SCALE_X).set_value_and_unit(20.0, "mm")

        persistor.serialize(model, "demo", tmp_path / "demo.xml")
        loaded = reader.deserialize(tmp_path / "demo.xml")

        assert loaded.layout.get_property(PropKeys.SCALE_X).get_value_by_unit("mm") == 20.0
        assert len(loaded.components(ComponentKind.LAYOUT)) == 1


# ============================================================================
# Validation on Save Tests
# ============================================================================

class TestSaveValidation:
    """Test that inconsistent models are not written by default."""

    def test_invalid_model_not_written(self, tmp_path):
        batches = []
        persistor = UnifiedModelPersistor(error_handler=lambda title, errors: batches.append(errors))
        model = build_two_point_model()
        model.add(build_path("P1", "P9"))

        assert persistor.serialize(model, "demo", tmp_path / "demo.xml") is False
        assert not (tmp_path / "demo.xml").exists()
        assert persistor.get_validation_errors() == ["P1 --- P9: End component 'P9' does not exist"]
        assert len(batches) == 1

    def test_ignore_error_writes(self, persistor, tmp_path):
        model = build_two_point_model()
        model.add(build_path("P1", "P9"))

        assert persistor.serialize(model, "demo", tmp_path / "demo.xml", ignore_error=True) is True
        assert (tmp_path / "demo.xml").exists()

    def test_none_model_raises(self, persistor, tmp_path):
        with pytest.raises(ValueError):
            persistor.serialize(None, "demo", tmp_path / "demo.xml")


# ============================================================================
# Partial Load Tests
# ============================================================================

class TestPartialLoad:
    """Test that invalid components are skipped, the rest loaded."""

    def test_dangling_path_skipped(self, reader, tmp_path):
        path = write(tmp_path, "partial.xml", """<?xml version="1.0" encoding="UTF-8"?>
<model version="0.0.2" name="partial">
  <point name="P1" xPosition="0" yPosition="0"/>
  <path name="Path-A" sourcePoint="P1" destinationPoint="P9" length="1000"/>
  <visualLayout name="VLayout" scaleX="50.0" scaleY="50.0"/>
</model>
""")

        model = reader.deserialize(path)

        assert "P1" in model
        assert "Path-A" not in model
        errors = reader.get_deserialization_errors()
        assert len(errors) == 1
        assert "Path-A" in errors[0] and "P9" in errors[0]

    def test_duplicate_name_skipped(self, reader, tmp_path):
        path = write(tmp_path, "dup.xml", """<model name="dup">
  <point name="P1" xPosition="0" yPosition="0"/>
  <point name="P1" xPosition="5" yPosition="5"/>
</model>
""")

        model = reader.deserialize(path)

        assert model.get("P1").get_property(PropKeys.MODEL_X_POSITION).get_value_by_unit("mm") == 0
        assert reader.get_deserialization_errors() == ["P1: Component name 'P1' used multiple times"]

    def test_bad_colour_recorded(self, reader, tmp_path):
        path = write(tmp_path, "colour.xml", """<model name="colour">
  <point name="P1"/>
  <block name="B1"><member name="P1"/></block>
  <visualLayout name="VLayout">
    <modelLayoutElement visualizedObjectName="B1">
      <property name="COLOR" value="greenish"/>
    </modelLayoutElement>
  </visualLayout>
</model>
""")

        model = reader.deserialize(path)

        assert "B1" not in model
        assert reader.get_deserialization_errors()[0].startswith("B1: ")

    def test_path_without_start_point_skipped(self, reader, tmp_path):
        path = write(tmp_path, "no-start.xml", """<model name="no-start">
  <point name="P1"/>
  <path name="X" destinationPoint="P1" length="1000"/>
</model>
""")

        model = reader.deserialize(path)

        assert "P1" in model
        assert "X" not in model
        assert reader.get_deserialization_errors() == ["X: Start component is empty"]

    def test_location_without_type_skipped(self, reader, tmp_path):
        path = write(tmp_path, "no-type.xml", """<model name="no-type">
  <point name="P1"/>
  <location name="L1" xPosition="500"/>
</model>
""")

        model = reader.deserialize(path)

        assert "P1" in model
        assert "L1" not in model
        assert reader.get_deserialization_errors() == ["L1: Location type is empty"]

    def test_malformed_elements_skipped(self, reader, tmp_path):
        path = write(tmp_path, "malformed.xml", """<model name="malformed">
  <point name="P1"/>
  <point name="P2" xPosition="far"/>
  <point xPosition="5"/>
  <point name="P3" xPosition="3000"/>
</model>
""")

        model = reader.deserialize(path)

        assert sorted(model.names(ComponentKind.POINT)) == ["P1", "P3"]
        errors = reader.get_deserialization_errors()
        assert len(errors) == 2
        assert errors[0].startswith("Line 3: Malformed <point> 'P2': invalid x_position")
        assert errors[1].startswith("Line 4: Malformed <point> '': invalid name")

    def test_errors_reset_between_loads(self, persistor, reader, tmp_path):
        bad = write(tmp_path, "bad.xml",
                    '<model><path name="X" sourcePoint="A" destinationPoint="B"/></model>')
        reader.deserialize(bad)
        assert reader.get_deserialization_errors()

        persistor.serialize(build_two_point_model(), "demo", tmp_path / "good.xml")
        reader.deserialize(tmp_path / "good.xml")

        assert reader.get_deserialization_errors() == []


# ============================================================================
# Visual Layout Tests
# ============================================================================

class TestVisualLayouts:
    """Test that only the first visual layout is used."""

    def test_more_than_one_layout(self, reader, tmp_path, caplog):
        path = write(tmp_path, "layouts.xml", """<model name="layouts">
  <point name="P1" xPosition="1000" yPosition="0"/>
  <visualLayout name="First" scaleX="25.0" scaleY="25.0">
    <modelLayoutElement visualizedObjectName="P1">
      <property name="POSITION_X" value="11"/>
    </modelLayoutElement>
  </visualLayout>
  <visualLayout name="Second" scaleX="10.0" scaleY="10.0">
    <modelLayoutElement visualizedObjectName="P1">
      <property name="POSITION_X" value="22"/>
    </modelLayoutElement>
  </visualLayout>
</model>
""")

        with caplog.at_level(logging.WARNING):
            model = reader.deserialize(path)

        assert "There is more than one visual layout. Using only the first one." in caplog.text
        assert reader.get_deserialization_errors() == []
        assert model.layout.name == "First"
        assert model.layout.get_property(PropKeys.SCALE_X).get_value_by_unit("mm") == 25.0
        assert model.get("P1").property_value(OverlayKeys.POSITION_X) == "11"

    def test_no_layout_keeps_default(self, reader, tmp_path):
        path = write(tmp_path, "bare.xml", '<model><point name="P1" xPosition="300"/></model>')

        model = reader.deserialize(path)

        assert model.layout.name == "VLayout"
        assert model.get("P1").property_value(OverlayKeys.POSITION_X) == "300"


# ============================================================================
# File Handling Tests
# ============================================================================

class TestFiles:
    """Test file errors and atomic writes."""

    def test_missing_file(self, reader, tmp_path):
        with pytest.raises(ModelIOError, match="Cannot read model file"):
            reader.deserialize(tmp_path / "missing.xml")

    def test_not_a_model(self, reader, tmp_path):
        path = write(tmp_path, "other.xml", "<html/>")

        with pytest.raises(ModelIOError) as excinfo:
            reader.deserialize(path)
        assert excinfo.value.path == path

    def test_accepts(self, persistor, reader):
        assert persistor.accepts("plant.XML")
        assert reader.accepts("plant.xml")
        assert not reader.accepts("plant.opentcs")

    def test_atomic_write_leaves_no_temp_files(self, persistor, tmp_path, restore_flags):
        set_flag('atomic_file_writes', True)

        persistor.serialize(build_two_point_model(), "demo", tmp_path / "demo.xml")
        persistor.serialize(build_two_point_model(), "demo", tmp_path / "demo.xml")

        assert [p.name for p in tmp_path.iterdir()] == ["demo.xml"]

    def test_failed_replace_keeps_original(self, persistor, tmp_path, monkeypatch, restore_flags):
        set_flag('atomic_file_writes', True)
        target = write(tmp_path, "demo.xml", "original")

        def fail(src, dst):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr("plantmodel.persistence.base.os.replace", fail)

        with pytest.raises(ModelIOError, match="No space left on device"):
            persistor.serialize(build_two_point_model(), "demo", target)

        assert target.read_text(encoding="utf-8") == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["demo.xml"]

    def test_text_not_encodable_as_xml(self, persistor, tmp_path):
        model = build_two_point_model()
        model.get("P1").miscellaneous.set("note", "a\x01b")

        with pytest.raises(ModelIOError, match="Cannot encode model 'demo'"):
            persistor.serialize(model, "demo", tmp_path / "demo.xml")

        assert not (tmp_path / "demo.xml").exists()

    def test_direct_write_when_atomic_disabled(self, persistor, reader, tmp_path, restore_flags):
        set_flag('atomic_file_writes', False)

        assert persistor.serialize(build_two_point_model(), "demo", tmp_path / "demo.xml")
        assert "P1" in reader.deserialize(tmp_path / "demo.xml")
