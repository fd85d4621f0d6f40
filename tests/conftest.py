"""Shared fixtures: a small Japanese card template and a fake annotator."""

from __future__ import annotations

import pytest

from ankikaji.domain.schema import CardMetadata

READINGS = {
    "猫": "猫[ねこ]",
    "犬": "犬[いぬ]",
    "猫が好きです。": "猫[ねこ]が 好[す]きです。",
}

TEMPLATE = {
    "name": "cards",
    "fields": [
        {"name": "index", "type": "Integer", "traits": ["PrimaryKey", "AutoIncrement"]},
        {"name": "word", "traits": ["NotNull", "Unique", "Key"]},
        {"name": "word_with_reading", "traits": [{"AutorubyOf": "word"}]},
        {"name": "definition", "type": "Text"},
        {"name": "example_sentence", "type": "Text"},
        {
            "name": "sentence_with_reading",
            "type": "Text",
            "traits": [{"AutorubyOf": "example_sentence"}],
        },
        {"name": "kanji", "type": "Boolean", "traits": [{"TrueIfExists": "word_with_reading"}]},
        {"name": "image", "traits": ["IsImage"]},
        {"name": "has_image", "type": "Boolean", "traits": [{"TrueIfExists": "image"}]},
    ],
}


class FakeAnnotator:
    def __init__(self, readings=None):
        self.readings = dict(READINGS if readings is None else readings)
        self.calls = []

    def __call__(self, text):
        self.calls.append(text)
        return self.readings.get(text, text)


@pytest.fixture
def template_payload():
    return {"name": TEMPLATE["name"], "fields": [dict(item) for item in TEMPLATE["fields"]]}


@pytest.fixture
def metadata(template_payload):
    return CardMetadata.from_dict(template_payload)


@pytest.fixture
def annotate():
    return FakeAnnotator()
