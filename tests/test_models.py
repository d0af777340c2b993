import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from storefront.errors import CatalogUnavailable
from storefront.models import CategoryDirectory, ProductDirectory, UserDirectory


class FakeCursor(list):
    def __init__(self, docs, log):
        super().__init__(docs)
        self.log = log

    def sort(self, key, direction):
        self.log.append(("sort", key, direction))
        return FakeCursor(sorted(self, key=lambda d: d[key], reverse=direction < 0), self.log)

    def skip(self, n):
        self.log.append(("skip", n))
        return FakeCursor(self[n:], self.log)

    def limit(self, n):
        return FakeCursor(self[:n], self.log)


class FakeCollection:
    def __init__(self, docs=(), fail=False):
        self.docs = list(docs)
        self.fail = fail
        self.log = []

    def _check(self):
        if self.fail:
            raise ServerSelectionTimeoutError("no servers")

    def find(self, query):
        self._check()
        self.log.append(("find", query))
        return FakeCursor(self.docs, self.log)

    def find_one(self, query):
        self._check()
        self.log.append(("find_one", query))
        return next((d for d in self.docs if all(d.get(k) == v for k, v in query.items())), None)

    def count_documents(self, query):
        self._check()
        return len(self.docs)

    def insert_one(self, doc):
        self._check()

        class Result:
            inserted_id = ObjectId()

        return Result()


def test_categories_sorted_by_title():
    collection = FakeCollection([
        {"_id": ObjectId(), "title": "Totes", "slug": "totes"},
        {"_id": ObjectId(), "title": "Backpacks", "slug": "backpacks"},
    ])
    categories = CategoryDirectory(collection).find_all()
    assert [c.title for c in categories] == ["Backpacks", "Totes"]
    assert ("sort", "title", 1) in collection.log


def test_database_errors_become_catalog_unavailable():
    with pytest.raises(CatalogUnavailable):
        CategoryDirectory(FakeCollection(fail=True)).find_all()
    with pytest.raises(CatalogUnavailable):
        ProductDirectory(FakeCollection(fail=True)).find_page(0, 9)


def test_invalid_object_id_is_not_found():
    collection = FakeCollection(fail=True)
    assert ProductDirectory(collection).find_by_id("not-an-id") is None
    assert UserDirectory(collection).find_by_id("nope") is None


def test_product_from_document():
    oid, category = ObjectId(), ObjectId()
    collection = FakeCollection([{"_id": oid, "title": "Tote", "price": 12, "category": category}])
    product = ProductDirectory(collection).find_by_id(str(oid))
    assert product.title == "Tote"
    assert product.price == 12.0
    assert product.category_id == str(category)
    assert product.available is True


def test_create_user_lowercases_email():
    user = UserDirectory(FakeCollection()).create("Ana", "Ana@Example.com", "hash")
    assert user.email == "ana@example.com"
    assert user.password_hash == "hash"


def test_page_is_clamped_before_querying():
    docs = [{"_id": ObjectId(), "title": f"Bag {i}", "price": i, "created_at": i} for i in range(12)]
    collection = FakeCollection(docs)

    result = ProductDirectory(collection).find_page(10 ** 20, 9)

    assert result.page == 2
    assert result.total_pages == 2
    assert [p.title for p in result.products] == ["Bag 2", "Bag 1", "Bag 0"]
    assert [entry for entry in collection.log if entry[0] == "skip"] == [("skip", 9)]
    assert [entry[0] for entry in collection.log].count("find") == 1
