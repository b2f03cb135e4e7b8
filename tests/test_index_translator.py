import pytest

from errors import IndexCreationError, MigrationCancelled
from index_translator import IndexTranslator, index_keys, translate_indexes

ID_INDEX = {"v": 2, "key": {"_id": 1}, "name": "_id_"}


def keys_of(model):
    return list(model.document["key"].items())


def test_default_id_index_is_dropped():
    assert translate_indexes([ID_INDEX]) == []


def test_key_order_name_and_unique_are_preserved():
    models = translate_indexes([
        ID_INDEX,
        {"v": 2, "key": {"b": -1, "a": 1}, "name": "b_-1_a_1", "unique": True},
        {"v": 2, "key": {"email": 1}, "name": "email_1"},
    ])

    assert [m.document["name"] for m in models] == ["b_-1_a_1", "email_1"]
    assert keys_of(models[0]) == [("b", -1), ("a", 1)]
    assert models[0].document["unique"] is True
    assert models[1].document["unique"] is False


def test_type_tokens_pass_through():
    models = translate_indexes([
        {"key": {"body": "text"}, "name": "body_text"},
        {"key": {"location": "2dsphere"}, "name": "location_2dsphere"},
        {"key": {"shard": "hashed", "day": -1}, "name": "shard_hashed_day_-1"},
    ])

    assert [keys_of(m) for m in models] == [
        [("body", "text")],
        [("location", "2dsphere")],
        [("shard", "hashed"), ("day", -1)],
    ]


def test_descriptor_made_only_of_reserved_fields_is_dropped():
    assert translate_indexes([{"key": {"_fts": "text", "_ftsx": 1}, "name": "body_text"}]) == []


def test_reserved_fields_are_stripped_from_compound_keys():
    assert index_keys({"key": {"_id": 1, "created": -1}}) == [("created", -1)]


def test_other_options_are_not_ported():
    (model,) = translate_indexes([
        {"key": {"ts": 1}, "name": "ts_ttl", "expireAfterSeconds": 60, "sparse": True,
         "partialFilterExpression": {"ts": {"$exists": True}}},
    ])

    assert set(model.document) == {"key", "name", "unique"}


def test_ensure_indexes_sends_one_request(source, target, token):
    source.indexes[("db", "users")] = [
        ID_INDEX,
        {"key": {"email": 1}, "name": "email_1", "unique": True},
        {"key": {"age": 1}, "name": "age_1"},
    ]

    names = IndexTranslator(source, target).ensure_indexes(token, "db", "users")

    assert names == ["email_1", "age_1"]
    assert target.ops("create_indexes") == [("create_indexes", "db", "users", 2)]


def test_ensure_indexes_skips_request_without_survivors(source, target, token):
    source.indexes[("db", "users")] = [ID_INDEX]

    assert IndexTranslator(source, target).ensure_indexes(token, "db", "users") == []
    assert target.ops("create_indexes") == []


def test_ensure_indexes_propagates_creation_failure(source, target, token):
    source.indexes[("db", "users")] = [{"key": {"email": 1}, "name": "email_1"}]
    target.fail(IndexCreationError("create indexes: conflict", "db", "users"), "create_indexes", "db", "users")

    with pytest.raises(IndexCreationError):
        IndexTranslator(source, target).ensure_indexes(token, "db", "users")


def test_ensure_indexes_observes_cancellation(source, target, token):
    token.cancel()

    with pytest.raises(MigrationCancelled):
        IndexTranslator(source, target).ensure_indexes(token, "db", "users")
    assert source.calls == []
