"""Tests for the parameter catalogue and descriptor parsing."""

import json

import pytest

from puppet_expressions.exceptions import InvalidDescriptorError, UnknownParameterError
from puppet_expressions.model.catalogue import (
    ModelParameter,
    ParameterCatalogue,
    humanize_parameter_id,
)
from puppet_expressions.model.descriptor import (
    build_catalogue,
    load_descriptor,
    parse_descriptor,
)


class TestHumanize:
    """Display names derived from raw ids."""

    @pytest.mark.parametrize("parameter_id,expected", [
        ("ParamEyeLOpen", "Eye Left Open"),
        ("ParamAngleX", "Angle X-Axis"),
        ("ParamMouthForm", "Mouth Form"),
        ("param_brow_r_y", "Brow Right Y-Axis"),
    ])
    def test_humanize(self, parameter_id, expected):
        assert humanize_parameter_id(parameter_id) == expected

    def test_too_short_returns_id(self):
        assert humanize_parameter_id("ParamA") == "ParamA"


class TestModelParameter:
    """Tests for ModelParameter."""

    def test_clamp(self):
        param = ModelParameter("ParamAngleX", "Angle X", 0, 0.0, -30.0, 30.0)
        assert param.clamp(45.0) == 30.0
        assert param.clamp(-45.0) == -30.0
        assert param.clamp(12.5) == 12.5

    def test_default_outside_range_rejected(self):
        with pytest.raises(InvalidDescriptorError):
            ModelParameter("ParamX", "X", 0, 2.0, 0.0, 1.0)

    def test_empty_id_rejected(self):
        with pytest.raises(InvalidDescriptorError):
            ModelParameter("", "X", 0, 0.0, 0.0, 1.0)


class TestParameterCatalogue:
    """Tests for ParameterCatalogue."""

    def test_order_and_lookup(self, catalogue):
        assert catalogue.ids[:3] == ["ParamAngleX", "ParamEyeLOpen", "ParamMouthOpenY"]
        assert len(catalogue) == 7
        assert "ParamMouthOpenY" in catalogue
        assert "ParamNope" not in catalogue
        assert catalogue["ParamAngleX"].min_value == -30

    def test_require_unknown(self, catalogue):
        with pytest.raises(UnknownParameterError) as exc:
            catalogue.require("ParamNope")
        assert exc.value.details["model_name"] == "hiyori"
        assert catalogue.get("ParamNope") is None

    def test_defaults(self, catalogue):
        defaults = catalogue.defaults()
        assert defaults["ParamEyeLOpen"] == 1.0
        assert defaults["ParamMouthOpenY"] == 0.0

    def test_duplicate_ids_rejected(self):
        param = ModelParameter("ParamX", "X", 0, 0.0, 0.0, 1.0)
        with pytest.raises(InvalidDescriptorError, match="duplicate"):
            ParameterCatalogue([param, param])

    def test_clamp_by_id(self, catalogue):
        assert catalogue.clamp("ParamMouthForm", -3.0) == -1.0


class TestDescriptor:
    """Tests for CDI3 descriptor parsing."""

    def test_missing_ranges_fall_back(self, catalogue):
        cheek = catalogue["ParamCheek"]
        assert (cheek.default_value, cheek.min_value, cheek.max_value) == (0.0, 0.0, 1.0)
        assert cheek.group_id == "Face"

    def test_index_is_array_position(self, catalogue):
        assert [p.index for p in catalogue] == list(range(7))

    def test_explicit_index_kept(self):
        catalogue = parse_descriptor({"Parameters": [{"Id": "ParamX", "Index": 12}]})
        assert catalogue["ParamX"].index == 12

    def test_missing_name_is_humanized(self):
        catalogue = parse_descriptor({"Parameters": [{"Id": "ParamEyeLOpen"}]})
        assert catalogue["ParamEyeLOpen"].name == "Eye Left Open"

    def test_model_name_override(self, descriptor):
        catalogue = parse_descriptor(descriptor, model_name="custom")
        assert catalogue.model_name == "custom"
        assert catalogue.version == 3

    def test_accepts_json_text(self, descriptor):
        catalogue = parse_descriptor(json.dumps(descriptor))
        assert catalogue.model_name == "hiyori"

    def test_extra_fields_ignored(self):
        descriptor = load_descriptor({
            "Version": 3,
            "Parameters": [{"Id": "ParamX", "Unknown": True}],
            "Parts": [],
        })
        assert build_catalogue(descriptor).ids == ["ParamX"]

    @pytest.mark.parametrize("data,reason", [
        ("{not json", "malformed JSON"),
        ("[1, 2]", "descriptor must be a JSON object"),
        ({"Version": 3}, "missing Parameters array"),
        ({"Parameters": {"Id": "x"}}, "missing Parameters array"),
    ])
    def test_rejects(self, data, reason):
        with pytest.raises(InvalidDescriptorError) as exc:
            parse_descriptor(data)
        assert exc.value.reason.startswith(reason)

    def test_rejects_blank_id(self):
        with pytest.raises(InvalidDescriptorError) as exc:
            parse_descriptor({"Parameters": [{"Id": ""}]})
        assert exc.value.reason.startswith("Parameters.0.Id")

    def test_rejects_inconsistent_range(self):
        with pytest.raises(InvalidDescriptorError):
            parse_descriptor({"Parameters": [{"Id": "ParamX", "MinValue": 1, "MaxValue": 0}]})
