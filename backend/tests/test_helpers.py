import pytest

from receipt_scanner.utils.helpers import decode_base64, parse_json_object, split_data_url


def test_parse_json_object_plain():
    assert parse_json_object('{"a": 1}') == {"a": 1}


def test_parse_json_object_wrapped_in_prose():
    text = 'Sure! ```json\n{"items": [{"name": "Tea"}]}\n``` Enjoy.'
    assert parse_json_object(text) == {"items": [{"name": "Tea"}]}


@pytest.mark.parametrize("text", [None, "", "no json here", "{broken"])
def test_parse_json_object_gives_up(text):
    assert parse_json_object(text) is None


def test_split_data_url():
    assert split_data_url("data:image/png;base64,QUJD") == ("image/png", "QUJD")
    assert split_data_url("QUJD") == (None, "QUJD")


def test_decode_base64_ignores_whitespace():
    assert decode_base64("QU\nJD") == b"ABC"


def test_decode_base64_rejects_garbage():
    with pytest.raises(ValueError):
        decode_base64("not base64!!")
