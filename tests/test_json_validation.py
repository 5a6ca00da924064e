from utils.json_validation import validate_json_string


def test_empty_is_valid():
    assert validate_json_string("   ").is_valid


def test_reports_line():
    result = validate_json_string('{\n  "a": 1,\n  "b": \n}')
    assert not result.is_valid
    assert result.error_line == 4
    assert "Line 4" in result.error_message


def test_accepts_valid_json():
    result = validate_json_string('{"a": [1, 2]}')
    assert result.is_valid
    assert result.error_line is None
