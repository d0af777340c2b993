"""Fixtures compartilhadas: app de teste com catálogo em memória."""

from typing import Dict, List, Optional

import pytest
from cachelib.file import FileSystemCache
from pymongo.errors import OperationFailure

from storefront import create_app
from storefront.errors import CatalogUnavailable
from storefront.models import Catalog, Category, Page, Product, User, page_bounds


class FakeCategories:
    def __init__(self, categories: List[Category], fail: bool = False) -> None:
        self.categories = categories
        self.fail = fail
        self.calls = 0

    def find_all(self) -> List[Category]:
        self.calls += 1
        if self.fail:
            raise CatalogUnavailable("connection refused")
        return sorted(self.categories, key=lambda c: c.title)

    def find_by_slug(self, slug: str) -> Optional[Category]:
        return next((c for c in self.categories if c.slug == slug), None)


class FakeProducts:
    def __init__(self, products: List[Product]) -> None:
        self.products = products
        self.calls = 0

    def _slice(self, items, page, per_page):
        self.calls += 1
        page, total_pages = page_bounds(len(items), page, per_page)
        start = (page - 1) * per_page
        return Page(items[start:start + per_page], page, total_pages)

    def find_page(self, page: int, per_page: int):
        return self._slice(self.products, page, per_page)

    def find_by_category(self, category_id: str, page: int, per_page: int):
        return self._slice([p for p in self.products if p.category_id == category_id], page, per_page)

    def search(self, term: str, page: int, per_page: int):
        return self._slice([p for p in self.products if term.lower() in p.title.lower()], page, per_page)

    def find_by_id(self, product_id: str) -> Optional[Product]:
        self.calls += 1
        if product_id == "explode":
            raise RuntimeError("kaboom in product lookup")
        if product_id == "unauthorized":
            raise OperationFailure("not authorized", code=13)
        return next((p for p in self.products if p.id == product_id), None)

    def find_many(self, product_ids: List[str]) -> Dict[str, Product]:
        return {p.id: p for p in self.products if p.id in product_ids}


class FakeUsers:
    def __init__(self) -> None:
        self.users: Dict[str, User] = {}
        self.fail = False

    def find_by_id(self, user_id: str) -> Optional[User]:
        if self.fail:
            raise CatalogUnavailable("users collection unreachable")
        return self.users.get(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.email == email.lower()), None)

    def create(self, username: str, email: str, password_hash: str) -> User:
        user = User(id=f"u{len(self.users) + 1}", username=username, email=email.lower(), password_hash=password_hash)
        self.users[user.id] = user
        return user


CATEGORIES = [
    Category(id="c2", title="Shoes", slug="shoes"),
    Category(id="c1", title="Backpacks", slug="backpacks"),
    Category(id="c3", title="Wallets", slug="wallets"),
]


def make_products(count: int = 12) -> List[Product]:
    products = []
    for i in range(1, count + 1):
        category = CATEGORIES[i % len(CATEGORIES)]
        products.append(Product(id=f"p{i}", title=f"{category.title} model {i}", price=10.0 * i, category_id=category.id))
    return products


@pytest.fixture
def catalog():
    return Catalog(
        categories=FakeCategories(list(CATEGORIES)),
        products=FakeProducts(make_products()),
        users=FakeUsers(),
    )


@pytest.fixture
def make_app(tmp_path, catalog):
    def _make(**overrides):
        config = {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "ENVIRONMENT": "production",
            "SESSION_TYPE": "cachelib",
            "SESSION_CACHELIB": FileSystemCache(str(tmp_path / "sessions")),
        }
        config.update(overrides)
        return create_app(config, catalog=catalog)

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()
