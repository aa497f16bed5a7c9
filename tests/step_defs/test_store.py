"""
Step definitions for the Document store feature.

BDD Flow: Feature file -> Step definitions -> Implementation
"""

from pytest_bdd import given, parsers, scenarios, then, when

# Load scenarios from feature file
scenarios("../features/store.feature")


@given(parsers.parse('a collection "{name}"'))
def collection(store, test_context, name: str):
    test_context["collection"] = store.collection(name)


@given(parsers.parse('a document "{name}" with id "{doc_id}"'))
def document_with_id(test_context, name: str, doc_id: str):
    test_context["collection"].insert_one({"_id": doc_id, "name": name})


@given(parsers.parse('a document with tags "{tags}"'))
def document_with_tags(test_context, tags: str):
    test_context["collection"].insert_one({"tags": tags.split(",")})


@when(parsers.parse('documents named "{a}", "{b}" and "{c}" are inserted with "{x}" and "{y}" active'))
def insert_documents(test_context, a: str, b: str, c: str, x: str, y: str):
    for name in (a, b, c):
        test_context["collection"].insert_one({"name": name, "active": name in (x, y)})


@when(parsers.parse('the document "{doc_id}" is updated with name "{name}" and id "{new_id}"'))
def update_document(test_context, doc_id: str, name: str, new_id: str):
    assert test_context["collection"].update_one({"_id": doc_id}, {"name": name, "_id": new_id})


@when("active documents are deleted")
def delete_active(test_context):
    assert test_context["collection"].delete_many({"active": True}) == 2


@then(parsers.parse('finding active documents returns "{names}"'))
def find_active(test_context, names: str):
    docs = test_context["collection"].find({"active": True})
    assert [doc["name"] for doc in docs] == names.split(",")


@then(parsers.parse("counting all documents returns {count:d}"))
def count_all(test_context, count: int):
    assert test_context["collection"].count() == count


@then(parsers.parse('the document "{doc_id}" has name "{name}"'))
def document_has_name(test_context, doc_id: str, name: str):
    doc = test_context["collection"].find_one({"_id": doc_id})
    assert doc is not None
    assert doc["name"] == name
    assert doc["_id"] == doc_id


@then(
    parsers.re(r'finding by tags "(?P<tags>[^"]+)" returns (?P<count>\d+) documents?'),
    converters={"count": int},
)
def find_by_tags(test_context, tags: str, count: int):
    assert len(test_context["collection"].find({"tags": tags.split(",")})) == count


@then(parsers.parse('the collection "{name}" is empty'))
def collection_empty(store, name: str):
    assert store.collection(name).count() == 0
