"""
Tests for legacy (.opentcs) model files.
"""

import pytest
from lxml import etree

from plantmodel.config.settings import get_all_flags, set_flag
from plantmodel.core.errors import ModelIOError
from plantmodel.persistence.legacy_persistence import (
    KIND_ORDER,
    LegacyModelPersistor,
    LegacyModelReader,
)
from plantmodel.models.enums import ComponentKind
from plantmodel.models.keys import PropKeys
from tests.fixtures.plant_models import build_demo_model, build_point, build_two_point_model


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture
def persistor():
    return LegacyModelPersistor()


@pytest.fixture
def reader():
    return LegacyModelReader()


@pytest.fixture
def restore_flags():
    """Restore feature flags changed by a test."""
    saved = get_all_flags()
    yield
    for flag, enabled in saved.items():
        set_flag(flag, enabled)


@pytest.fixture
def saved_demo(persistor, tmp_path):
    """Path of the demo model saved in legacy format."""
    target = tmp_path / "demo.opentcs"
    assert persistor.serialize(build_demo_model(), "demo", target)
    return target


# ============================================================================
# Write Tests
# ============================================================================

class TestWrite:
    """Test the legacy document layout."""

    def test_root(self, saved_demo):
        root = etree.parse(str(saved_demo)).getroot()

        assert root.tag == "courseModel"
        assert root.get("name") == "demo"
        assert root.get("version") == "0.0.1"

    def test_model_properties_first(self, saved_demo):
        root = etree.parse(str(saved_demo)).getroot()

        properties = root[0]
        assert properties.tag == "keyValueSetProperty"
        assert properties.find("entry").get("key") == "author"

    def test_kinds_grouped_in_order(self, saved_demo):
        root = etree.parse(str(saved_demo)).getroot()
        tags = [element.tag for element in root[1:]]

        order = [kind.value for kind in KIND_ORDER]
        assert tags == sorted(tags, key=order.index)

    def test_sorted_by_name(self, persistor, tmp_path, restore_flags):
        set_flag('sort_legacy_output', True)
        model = build_two_point_model()
        model.add(build_point("A0", 5, 5))

        persistor.serialize(model, "demo", tmp_path / "demo.opentcs")
        root = etree.parse(str(tmp_path / "demo.opentcs")).getroot()

        names = [p.find("stringProperty[@key='Name']").text for p in root.findall("point")]
        assert names == ["A0", "P1", "P2"]

    def test_insertion_order_when_unsorted(self, persistor, tmp_path, restore_flags):
        set_flag('sort_legacy_output', False)
        model = build_two_point_model()
        model.add(build_point("A0", 5, 5))

        persistor.serialize(model, "demo", tmp_path / "demo.opentcs")
        root = etree.parse(str(tmp_path / "demo.opentcs")).getroot()

        names = [p.find("stringProperty[@key='Name']").text for p in root.findall("point")]
        assert names == ["P1", "P2", "A0"]

    def test_extension_appended(self, persistor, tmp_path):
        persistor.serialize(build_two_point_model(), "demo", tmp_path / "plant")
        assert (tmp_path / "plant.opentcs").exists()

    def test_text_not_encodable_as_xml(self, persistor, tmp_path):
        model = build_two_point_model()
        model.get("P1").miscellaneous.set("note", "a\x01b")

        with pytest.raises(ModelIOError, match="Cannot encode model 'demo'"):
            persistor.serialize(model, "demo", tmp_path / "demo.opentcs")

        assert not (tmp_path / "demo.opentcs").exists()


# ============================================================================
# Read Tests
# ============================================================================

class TestRead:
    """Test loading legacy documents."""

    def test_round_trip_equal_registry(self, reader, saved_demo):
        original = build_demo_model()

        loaded = reader.deserialize(saved_demo)

        assert reader.get_deserialization_errors() == []
        assert sorted(loaded.names()) == sorted(original.names())
        for component in original:
            assert loaded.get(component.name).properties == component.properties
        assert loaded.properties.items() == [("author", "plant team")]

    def test_layout_merged_not_duplicated(self, reader, saved_demo):
        loaded = reader.deserialize(saved_demo)
        assert len(loaded.components(ComponentKind.LAYOUT)) == 1

    def test_invalid_component_skipped_with_line(self, reader, tmp_path):
        path = tmp_path / "partial.opentcs"
        path.write_text("""<?xml version="1.0" encoding="UTF-8"?>
<courseModel version="0.0.1" name="partial">
  <point>
    <stringProperty key="Name">P1</stringProperty>
  </point>
  <locationType>
    <stringProperty key="Name">LT1</stringProperty>
    <stringSetProperty key="AllowedOperations"><item>LOAD</item></stringSetProperty>
  </locationType>
</courseModel>
""", encoding="utf-8")

        model = reader.deserialize(path)

        assert "P1" not in model
        assert "LT1" in model
        errors = reader.get_deserialization_errors()
        assert errors
        assert all(error.startswith("Line 3: P1: Missing property") for error in errors)

    def test_unknown_element_recorded(self, reader, tmp_path):
        path = tmp_path / "unknown.opentcs"
        path.write_text('<courseModel name="x"><conveyor/></courseModel>', encoding="utf-8")

        model = reader.deserialize(path)

        assert len(model) == 1
        assert reader.get_deserialization_errors() == ["Line 1: Unknown component type <conveyor>"]

    def test_non_numeric_value_reported(self, reader, persistor, tmp_path):
        saved = tmp_path / "demo.opentcs"
        persistor.serialize(build_two_point_model(), "demo", saved)
        text = saved.read_text(encoding="utf-8").replace(
            '<lengthProperty key="length" unit="mm">1000.0</lengthProperty>',
            '<lengthProperty key="length" unit="mm">long</lengthProperty>')
        saved.write_text(text, encoding="utf-8")

        model = reader.deserialize(saved)

        assert "P1 --- P2" not in model
        assert any("Length 'long' is not a number" in e for e in reader.get_deserialization_errors())

    def test_wrong_root(self, reader, tmp_path):
        path = tmp_path / "model.opentcs"
        path.write_text("<model/>", encoding="utf-8")

        with pytest.raises(ModelIOError, match="unexpected root <model>"):
            reader.deserialize(path)

    def test_not_xml(self, reader, tmp_path):
        path = tmp_path / "broken.opentcs"
        path.write_text("<courseModel>", encoding="utf-8")

        with pytest.raises(ModelIOError, match="Invalid legacy model file"):
            reader.deserialize(path)

    def test_values_keep_units(self, reader, persistor, tmp_path):
        model = build_two_point_model()
        model.get("P1 --- P2").get_property(PropKeys.LENGTH).set_value_and_unit(2.5, "m")
        persistor.serialize(model, "demo", tmp_path / "demo.opentcs")

        loaded = reader.deserialize(tmp_path / "demo.opentcs")
        length = loaded.get("P1 --- P2").get_property(PropKeys.LENGTH)

        assert length.unit == "m"
        assert length.get_value_by_unit("mm") == 2500.0
