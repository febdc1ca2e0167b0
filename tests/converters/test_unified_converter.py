"""
Tests for the unified converter

Tests cover:
1. Export of a system model to transfer objects, units fixed to mm/mm/s
2. The visual layout overlay on export and import
3. Import of every TO kind, with and without overlay entries
4. Default location symbols carried in the miscellaneous bag
"""

import math

import pytest

from plantmodel.converters.unified_converter import (
    LayoutOverlay,
    export_plant_model,
    import_block,
    import_layout,
    import_links,
    import_location,
    import_location_type,
    import_path,
    import_point,
    import_vehicle,
)
from plantmodel.models.enums import (
    BlockType,
    LinerType,
    LocationRepresentation,
    PointType,
)
from plantmodel.models.keys import MiscKeys, OverlayKeys, PropKeys
from plantmodel.models.transfer import (
    BlockTO,
    LinkTO,
    LocationTO,
    LocationTypeTO,
    ModelLayoutElementTO,
    PathTO,
    PointTO,
    PropertyTO,
    VehicleTO,
    VisualLayoutTO,
)
from tests.fixtures.plant_models import build_demo_model, build_two_point_model


# ============================================================================
# Test Fixtures
# ============================================================================

def layout_element(name, **properties):
    return ModelLayoutElementTO(
        visualized_object_name=name,
        properties=[PropertyTO(name=key, value=value) for key, value in properties.items()],
    )


@pytest.fixture
def overlay():
    """Overlay holding presentation data for P1, Path-A and B1."""
    return LayoutOverlay(VisualLayoutTO(
        name="VLayout",
        model_layout_elements=[
            layout_element("P1", POSITION_X="20", POSITION_Y="-40", LABEL_OFFSET_X="5"),
            layout_element("P1", POSITION_X="99"),
            layout_element("Path-A", CONN_TYPE="BEZIER", CONTROL_POINTS="1,1;2,2"),
            layout_element("B1", COLOR="#00ff00"),
        ],
    ))


@pytest.fixture
def empty_overlay():
    return LayoutOverlay()


# ============================================================================
# Export Tests
# ============================================================================

class TestExport:
    """Test SystemModel -> PlantModelTO."""

    def test_points_and_path(self):
        plant_model = export_plant_model(build_two_point_model())

        assert plant_model.name == "demo"
        assert [p.name for p in plant_model.points] == ["P1", "P2"]
        path = plant_model.paths[0]
        assert (path.source_point, path.destination_point) == ("P1", "P2")
        assert path.length == 1000
        assert path.routing_cost == 5

    def test_units_converted_to_mm(self):
        model = build_two_point_model()
        model.get("P1 --- P2").get_property(PropKeys.LENGTH).set_value_and_unit(1.5, "m")
        model.get("P2").get_property(PropKeys.MODEL_X_POSITION).set_value_and_unit(2.5, "m")

        plant_model = export_plant_model(model)

        assert plant_model.paths[0].length == 1500
        assert plant_model.points[1].x_position == 2500

    def test_exactly_one_visual_layout(self):
        plant_model = export_plant_model(build_demo_model())

        assert len(plant_model.visual_layouts) == 1
        layout = plant_model.visual_layouts[0]
        assert layout.name == "VLayout"
        assert layout.scale_x == 50.0

    def test_layout_elements_carry_presentation(self):
        layout = export_plant_model(build_demo_model()).visual_layouts[0]
        elements = {e.visualized_object_name: e.properties_dict() for e in layout.model_layout_elements}

        assert elements["P2"][OverlayKeys.POSITION_X] == "1000"
        assert elements["L1"][OverlayKeys.POSITION_Y] == "1500"
        assert elements["P1 --- P2"] == {OverlayKeys.CONN_TYPE: "DIRECT"}
        assert elements["B1"][OverlayKeys.COLOR] == "#FF0000"
        assert elements["V1"][OverlayKeys.ROUTE_COLOR] == "#FF0000"

    def test_links_nested_in_locations(self):
        location = export_plant_model(build_demo_model()).locations[0]

        assert location.name == "L1"
        assert location.type == "LT1"
        assert [(link.point, link.allowed_operations) for link in location.links] == [("P1", ["LOAD"])]

    def test_location_type_symbol_written_to_properties(self):
        location_type = export_plant_model(build_demo_model()).location_types[0]

        assert location_type.allowed_operations == ["LOAD", "UNLOAD"]
        assert location_type.get_property(MiscKeys.DEFAULT_LOCATION_TYPE_SYMBOL) == "LOAD_TRANSFER_GENERIC"

    def test_unset_symbol_removed_from_properties(self):
        model = build_demo_model()
        location_type = model.get("LT1")
        location_type.miscellaneous.set(MiscKeys.DEFAULT_LOCATION_TYPE_SYMBOL, "WORKING_GENERIC")
        location_type.get_property(PropKeys.DEFAULT_REPRESENTATION).value = None

        exported = export_plant_model(model).location_types[0]

        assert exported.get_property(MiscKeys.DEFAULT_LOCATION_TYPE_SYMBOL) is None
        assert MiscKeys.DEFAULT_LOCATION_TYPE_SYMBOL in location_type.miscellaneous

    def test_none_symbol_written_to_properties(self):
        model = build_demo_model()
        model.get("L1").get_property(PropKeys.DEFAULT_REPRESENTATION).value = LocationRepresentation.NONE

        exported = export_plant_model(model).locations[0]

        assert exported.get_property(MiscKeys.DEFAULT_LOCATION_SYMBOL) == "NONE"

    def test_unrecognised_symbol_text_kept(self):
        model = build_demo_model()
        location = model.get("L1")
        location.miscellaneous.set(MiscKeys.DEFAULT_LOCATION_SYMBOL, "CONVEYOR_BELT")
        location.get_property(PropKeys.DEFAULT_REPRESENTATION).value = "CONVEYOR_BELT"

        exported = export_plant_model(model).locations[0]

        assert exported.get_property(MiscKeys.DEFAULT_LOCATION_SYMBOL) == "CONVEYOR_BELT"

    def test_miscellaneous_and_model_properties(self):
        plant_model = export_plant_model(build_demo_model())

        assert plant_model.get_property("author") == "plant team"
        assert plant_model.vehicles[0].get_property("loadHandlingDevice") == "fork"

    def test_vehicle_and_members(self):
        plant_model = export_plant_model(build_demo_model())

        assert plant_model.vehicles[0].current_point == "P1"
        assert plant_model.blocks[0].members == ["P1", "P1 --- P2"]
        assert plant_model.blocks[0].type == "SINGLE_VEHICLE_ONLY"
        assert plant_model.static_routes[0].hops == ["P1", "P2"]
        assert plant_model.groups[0].members == ["P1", "L1", "V1"]

    def test_none_model_raises(self):
        with pytest.raises(ValueError):
            export_plant_model(None)


# ============================================================================
# Import Tests
# ============================================================================

class TestLayoutOverlay:
    """Test the name-indexed overlay."""

    def test_first_element_wins(self, overlay):
        assert overlay.get("P1", OverlayKeys.POSITION_X) == "20"

    def test_missing_name_or_key_gives_default(self, overlay):
        assert overlay.get("P9", OverlayKeys.POSITION_X, "d") == "d"
        assert overlay.get("P1", OverlayKeys.COLOR) is None
        assert "P1" in overlay
        assert len(overlay) == 3


class TestImport:
    """Test TO -> component conversion."""

    def test_point_with_overlay(self, overlay):
        point = import_point(
            PointTO(name="P1", x_position=1000, y_position=2000, type="REPORT_POSITION"), overlay)

        assert point.property_value(PropKeys.TYPE) is PointType.REPORT
        assert point.get_property(PropKeys.MODEL_X_POSITION).get_value_by_unit("mm") == 1000
        assert point.property_value(OverlayKeys.POSITION_X) == "20"
        assert point.property_value(OverlayKeys.LABEL_OFFSET_X) == "5"
        assert point.property_value(OverlayKeys.LABEL_OFFSET_Y) == "-20"
        assert math.isnan(point.property_value(PropKeys.VEHICLE_ORIENTATION_ANGLE))

    def test_point_without_overlay_uses_model_position(self, empty_overlay):
        point = import_point(PointTO(name="P5", x_position=300, y_position=-700), empty_overlay)

        assert point.property_value(OverlayKeys.POSITION_X) == "300"
        assert point.property_value(OverlayKeys.POSITION_Y) == "-700"

    def test_unknown_point_type_kept(self, empty_overlay):
        point = import_point(PointTO(name="P5", type="HOVER"), empty_overlay)
        assert point.property_value(PropKeys.TYPE) == "HOVER"

    def test_path(self, overlay):
        path = import_path(PathTO(
            name="Path-A", source_point="P1", destination_point="P2",
            length=1234, routing_cost=7, max_velocity=900, max_reverse_velocity=100, locked=True,
        ), overlay)

        assert path.get_property(PropKeys.LENGTH).get_value_by_unit("mm") == 1234
        assert path.property_value(PropKeys.ROUTING_COST) == 7
        assert path.property_value(PropKeys.LOCKED) is True
        assert path.property_value(OverlayKeys.CONN_TYPE) is LinerType.BEZIER
        assert path.property_value(OverlayKeys.CONTROL_POINTS) == "1,1;2,2"

    def test_path_defaults_to_direct(self, empty_overlay):
        path = import_path(PathTO(name="X", source_point="P1", destination_point="P2"), empty_overlay)
        assert path.property_value(OverlayKeys.CONN_TYPE) is LinerType.DIRECT

    def test_vehicle_keeps_sentinel(self, empty_overlay):
        vehicle = import_vehicle(
            VehicleTO(name="V1", energy_level_critical=15, current_point="null"), empty_overlay)

        assert vehicle.property_value(PropKeys.POINT) == "null"
        assert vehicle.property_value(PropKeys.NEXT_POINT) is None
        assert vehicle.property_value(PropKeys.ENERGY_LEVEL_CRITICAL) == 15
        assert vehicle.property_value(OverlayKeys.ROUTE_COLOR) == "#FF0000"

    def test_location_type_symbol_from_properties(self, empty_overlay):
        location_type = import_location_type(LocationTypeTO(
            name="LT1", allowed_operations=["LOAD"],
            properties=[PropertyTO(name=MiscKeys.DEFAULT_LOCATION_TYPE_SYMBOL, value="WORKING_GENERIC")],
        ), empty_overlay)

        assert location_type.property_value(PropKeys.ALLOWED_OPERATIONS) == ["LOAD"]
        assert location_type.property_value(PropKeys.DEFAULT_REPRESENTATION) \
            is LocationRepresentation.WORKING_GENERIC

    def test_location_and_links(self, empty_overlay):
        location_to = LocationTO(
            name="L1", x_position=10, y_position=20, type="LT1",
            links=[LinkTO(point="P1", allowed_operations=["LOAD"]), LinkTO(point="P2")],
            properties=[PropertyTO(name="a", value="1"), PropertyTO(name="b", value="2")],
        )

        location = import_location(location_to, empty_overlay)
        links = import_links(location_to)

        assert location.property_value(PropKeys.TYPE) == "LT1"
        assert location.miscellaneous.items() == [("a", "1"), ("b", "2")]
        assert [link.name for link in links] == ["P1 --- L1", "P2 --- L1"]
        assert links[0].property_value(PropKeys.START_COMPONENT) == "P1"
        assert links[0].property_value(PropKeys.END_COMPONENT) == "L1"
        assert links[0].property_value(PropKeys.ALLOWED_OPERATIONS) == ["LOAD"]

    def test_block_colour_from_overlay(self, overlay):
        block = import_block(BlockTO(name="B1", type="SAME_DIRECTION_ONLY", members=["P1"]), overlay)

        assert block.property_value(OverlayKeys.COLOR) == "#00FF00"
        assert block.property_value(PropKeys.TYPE) is BlockType.SAME_DIRECTION_ONLY
        assert block.members == ["P1"]

    def test_block_invalid_colour_raises(self):
        overlay = LayoutOverlay(VisualLayoutTO(
            name="VLayout", model_layout_elements=[layout_element("B1", COLOR="greenish")]))

        with pytest.raises(ValueError):
            import_block(BlockTO(name="B1"), overlay)

    def test_layout(self):
        layout = import_layout(VisualLayoutTO(name="Hall", scale_x=25.0, scale_y=10.0))

        assert layout.name == "Hall"
        assert layout.get_property(PropKeys.SCALE_Y).get_value_by_unit("mm") == 10.0
