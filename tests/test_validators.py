"""Parameter validation"""
import pytest
from jsonschema.exceptions import SchemaError

from orchestration.safety import ExecutionValidator

from tests.helpers import ZIP_SCHEMA, make_descriptor


@pytest.fixture
def descriptor():
    return make_descriptor("census_demographics", parameter_schema=ZIP_SCHEMA)


class TestValidateParams:
    def test_valid(self, descriptor):
        result = ExecutionValidator().validate_params(descriptor, {"zip_code": "78701"})

        assert result.is_valid
        assert result.errors == []

    def test_missing_required_field_is_named(self, descriptor):
        result = ExecutionValidator().validate_params(descriptor, {"year": 2022})

        assert not result.is_valid
        assert result.fields == ["zip_code"]

    def test_every_offending_field_reported(self, descriptor):
        result = ExecutionValidator().validate_params(
            descriptor, {"zip_code": "abc", "year": "last"}
        )

        assert not result.is_valid
        assert sorted(result.fields) == ["year", "zip_code"]

    def test_previous_result_is_not_validated(self, descriptor):
        result = ExecutionValidator(strict_mode=True).validate_params(
            descriptor, {"zip_code": "78701", "previous_result": {"anything": 1}}
        )

        assert result.is_valid

    def test_unexpected_parameter_warns(self, descriptor):
        result = ExecutionValidator().validate_params(
            descriptor, {"zip_code": "78701", "radius": 5}
        )

        assert result.is_valid
        assert result.warnings

    def test_unexpected_parameter_rejected_in_strict_mode(self, descriptor):
        result = ExecutionValidator(strict_mode=True).validate_params(
            descriptor, {"zip_code": "78701", "radius": 5}
        )

        assert not result.is_valid
        assert result.fields == ["radius"]

    def test_non_mapping_params(self, descriptor):
        result = ExecutionValidator().validate_params(descriptor, ["78701"])

        assert not result.is_valid

    def test_non_string_parameter_names(self, descriptor):
        result = ExecutionValidator(strict_mode=True).validate_params(
            descriptor, {"zip_code": "78701", 2022: "year"}
        )

        assert not result.is_valid
        assert result.fields == ["2022"]


class TestCheckSchema:
    def test_malformed_schema(self):
        descriptor = make_descriptor("broken", parameter_schema={"type": "nonsense"})

        with pytest.raises(SchemaError):
            ExecutionValidator().check_schema(descriptor)
