"""
Tests for JSON extraction from model replies.
"""
import pytest

from autocrm.core import extract_json


def test_plain_json():
    assert extract_json('{"priority": "High"}') == {"priority": "High"}


def test_fenced_json():
    reply = 'Here you go:\n```json\n{"tags": ["billing"]}\n```'
    assert extract_json(reply) == {"tags": ["billing"]}


def test_bare_fence():
    assert extract_json('```\n[1, 2]\n```') == [1, 2]


def test_leading_prose():
    assert extract_json('Sure! {"message": "hi"} Hope that helps') == {"message": "hi"}


def test_output_wrapper_with_string_payload():
    reply = '{"output": "{\\"priority\\": \\"Low\\", \\"reason\\": \\"minor\\"}"}'
    assert extract_json(reply) == {"priority": "Low", "reason": "minor"}


def test_output_wrapper_with_object_payload():
    assert extract_json('{"output": {"tags": []}}') == {"tags": []}


@pytest.mark.parametrize("reply", ["", "   ", None, "no json here", "{broken"])
def test_unrecoverable_reply_raises(reply):
    with pytest.raises(ValueError):
        extract_json(reply)
