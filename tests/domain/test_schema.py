import pytest

from ankikaji.domain.schema import (
    CardMetadata,
    ConfigurationError,
    DerivationKind,
    FieldTrait,
    FieldType,
)


def test_template_parses_types_traits_and_directives(metadata):
    assert metadata.name == "cards"
    assert metadata.field_names[:3] == ["index", "word", "word_with_reading"]
    assert metadata.key_field.name == "word"

    index = metadata.get("index")
    assert index.type is FieldType.INTEGER
    assert index.is_auto_increment is True
    assert index.is_required is False

    word = metadata.get("word")
    assert word.type is FieldType.STRING
    assert word.traits == frozenset({FieldTrait.NOT_NULL, FieldTrait.UNIQUE, FieldTrait.KEY})
    assert word.is_required is True

    reading = metadata.get("word_with_reading")
    assert reading.derivation.kind is DerivationKind.AUTORUBY_OF
    assert reading.derivation.source == "word"

    kanji = metadata.get("kanji")
    assert kanji.derivation.kind is DerivationKind.TRUE_IF_EXISTS
    assert kanji.column_default == 0

    assert metadata.get("image").is_image is True
    assert metadata.position("image") == 7
    assert metadata.get("missing") is None


def test_trait_and_type_names_are_case_insensitive():
    metadata = CardMetadata.from_dict(
        {
            "name": "t",
            "fields": [
                {"name": "word", "type": "string", "traits": ["notnull", "naturalkey"]},
                {"name": "count", "type": "INTEGER"},
            ],
        }
    )

    assert metadata.key_field.name == "word"
    assert metadata.get("count").type is FieldType.INTEGER


@pytest.mark.parametrize(
    ("fields", "message"),
    [
        ([{"name": "word"}], "exactly one Key"),
        (
            [{"name": "a", "traits": ["Key"]}, {"name": "b", "traits": ["Key"]}],
            "exactly one Key",
        ),
        ([{"name": "word", "traits": ["Key"]}, {"name": "Word"}], "Duplicate field name"),
        ([{"name": "word", "traits": ["Key"]}, {"name": "export"}], "reserved"),
        ([{"name": "word", "traits": ["Key"]}, {"name": "RowID"}], "reserved"),
        ([{"name": "word", "traits": ["Key"]}, {"name": "_rowid_"}], "reserved"),
        (
            [{"name": "word", "traits": ["Key"]}, {"name": "r", "traits": [{"AutorubyOf": "nope"}]}],
            "unknown field",
        ),
        (
            [{"name": "word", "traits": ["Key", {"TrueIfExists": "word"}]}],
            "itself",
        ),
        (
            [{"name": "word", "traits": ["Key"]}, {"name": "id", "traits": ["AutoIncrement"]}],
            "Integer PrimaryKey",
        ),
        ([{"name": "word", "traits": ["Key", "Sparkly"]}], "Unknown field trait"),
        ([{"name": "word", "type": "Float", "traits": ["Key"]}], "Unknown field type"),
        ([{"name": "word", "traits": ["Key", {"Translate": "word"}]}], "Unknown derivation"),
        (
            [
                {"name": "word", "traits": ["Key"]},
                {"name": "x", "traits": [{"AutorubyOf": "word"}, {"TrueIfExists": "word"}]},
            ],
            "more than one derivation",
        ),
        ([{"traits": ["Key"]}], "missing a name"),
    ],
)
def test_invalid_templates_raise_configuration_error(fields, message):
    with pytest.raises(ConfigurationError, match=message):
        CardMetadata.from_dict({"name": "t", "fields": fields})


@pytest.mark.parametrize("payload", [None, [], {"fields": []}, {"name": "t"}, {"name": "t", "fields": []}])
def test_template_document_shape_is_checked(payload):
    with pytest.raises(ConfigurationError):
        CardMetadata.from_dict(payload)


def test_field_type_coerce_maps_text_to_storage_values():
    assert FieldType.STRING.coerce("猫") == "猫"
    assert FieldType.TEXT.coerce("") == ""
    assert FieldType.INTEGER.coerce(" 42 ") == 42
    assert FieldType.INTEGER.coerce("") is None
    assert FieldType.BOOLEAN.coerce("1") == 1
    assert FieldType.BOOLEAN.coerce("yes") == 1
    assert FieldType.BOOLEAN.coerce("False") == 0
    assert FieldType.BOOLEAN.coerce(None) is None

    with pytest.raises(ValueError):
        FieldType.INTEGER.coerce("four")
    with pytest.raises(ValueError):
        FieldType.BOOLEAN.coerce("maybe")
