import json

from turborabbit import letters
from turborabbit.letter import WrappedBody
from turborabbit.random import LETTER_BYTES, RANDOM_MAX, RANDOM_MIN


def test_create_letter():
    letter = letters.create_letter("MyExchange", "MyKey", b"payload")
    assert letter.body == b"payload"
    assert letter.retry_count == 3
    assert letter.envelope.exchange == "MyExchange"
    assert letter.envelope.routing_key == "MyKey"
    assert letter.envelope.content_type == "application/json"
    assert letter.envelope.delivery_mode == 0


def test_letters_get_distinct_ids():
    first = letters.create_letter("", "key", b"")
    second = letters.create_letter("", "key", b"")
    assert first.letter_id != second.letter_id
    assert first.letter_id.version == 4


def test_mock_letter_default_body():
    letter = letters.create_mock_letter("", "TestQueue", None)
    assert letter.body == b"hello world"
    assert letter.envelope.delivery_mode == 2
    assert letter.retry_count == 3


def test_mock_letter_keeps_body():
    letter = letters.create_mock_letter("ex", "key", b"given")
    assert letter.body == b"given"


def test_mock_random_letter():
    letter = letters.create_mock_random_letter("TestQueue")
    assert RANDOM_MIN <= len(letter.body) < RANDOM_MAX
    assert set(letter.body.decode("ascii")) <= set(LETTER_BYTES)
    assert letter.envelope.headers == {"x-tcr-testheader": "HelloWorldHeader"}
    assert letter.envelope.exchange == ""
    assert letter.envelope.routing_key == "TestQueue"
    assert letter.retry_count == 0


def test_mock_random_wrapped_body_letter():
    letter = letters.create_mock_random_wrapped_body_letter("TestQueue")
    wrapped = WrappedBody.from_dict(json.loads(letter.body))
    assert wrapped.letter_id == letter.letter_id
    assert wrapped.body.encrypted is False
    assert wrapped.body.compressed is False
    assert RANDOM_MIN <= len(wrapped.body.data) < RANDOM_MAX
    assert wrapped.body.utc_date_time.endswith("Z")
    assert letter.envelope.delivery_mode == 2