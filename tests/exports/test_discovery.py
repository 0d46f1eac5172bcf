import pytest

from designhub.core.errors import ConfigurationError, NotFoundError
from designhub.exports.discovery import find_json_input_parameter, select_export
from tests.fakes import JSON_PARAM_ID, make_session


class TestFindJsonInputParameter:
    def test_finds_parameter_by_name(self) -> None:
        assert find_json_input_parameter(make_session()) == JSON_PARAM_ID

    def test_missing_parameter(self) -> None:
        session = make_session(parameters={"p-width": {"name": "width"}})
        with pytest.raises(ConfigurationError) as exc_info:
            find_json_input_parameter(session)
        assert exc_info.value.error == "Missing required input parameter"
        assert exc_info.value.status_code == 500


class TestSelectExport:
    def test_first_of_kind_without_name_filter(self) -> None:
        export_id, definition = select_export(make_session(), "download")
        assert export_id == "e-pdf"
        assert definition["name"] == "PlanPdf"

    def test_kind_is_case_insensitive(self) -> None:
        export_id, _ = select_export(make_session(), "DATA")
        assert export_id == "e-data"

    def test_name_filter_is_case_insensitive_substring(self) -> None:
        export_id, _ = select_export(make_session(), "download", "OBJ")
        assert export_id == "e-obj"

    def test_name_filter_is_not_a_pattern(self) -> None:
        session = make_session(exports={"e1": {"name": "PlanPdf", "type": "download"}})
        with pytest.raises(NotFoundError):
            select_export(session, "download", "Plan.*")

    def test_no_match_message_names_both_criteria(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            select_export(make_session(), "download", "zip")
        exc = exc_info.value
        assert exc.error == "Export not found"
        assert exc.message == 'No export matched type="download" and nameContains="zip"'

    def test_no_match_without_name_filter(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            select_export(make_session(), "image")
        assert exc_info.value.message == 'No export matched type="image"'
