from __future__ import annotations

import re
from math import ceil
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from flask import current_app
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from .errors import CatalogUnavailable


# --- Modelos simples para tipagem ---
@dataclass(frozen=True)
class Category:
    id: str
    title: str
    slug: str

    @classmethod
    def from_document(cls, doc: Dict) -> "Category":
        return cls(id=str(doc["_id"]), title=doc.get("title", ""), slug=doc.get("slug", ""))


@dataclass(frozen=True)
class Product:
    id: str
    title: str
    price: float
    category_id: Optional[str] = None
    description: str = ""
    image_path: Optional[str] = None
    manufacturer: Optional[str] = None
    available: bool = True
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict) -> "Product":
        category = doc.get("category")
        return cls(
            id=str(doc["_id"]),
            title=doc.get("title", ""),
            price=float(doc.get("price") or 0.0),
            category_id=str(category) if category is not None else None,
            description=doc.get("description", ""),
            image_path=doc.get("image_path"),
            manufacturer=doc.get("manufacturer"),
            available=bool(doc.get("available", True)),
            created_at=doc.get("created_at"),
        )


@dataclass(frozen=True)
class User:
    id: str
    username: str
    email: str
    password_hash: str

    @classmethod
    def from_document(cls, doc: Dict) -> "User":
        return cls(
            id=str(doc["_id"]),
            username=doc.get("username", ""),
            email=doc.get("email", ""),
            password_hash=doc.get("password", ""),
        )


@dataclass(frozen=True)
class Page:
    products: List[Product]
    page: int
    total_pages: int


def page_bounds(total: int, page: int, per_page: int) -> Tuple[int, int]:
    """Encaixa `page` em [1, total_pages]; devolve (page, total_pages)."""
    total_pages = max(ceil(total / per_page), 1)
    return min(max(page, 1), total_pages), total_pages


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


class CategoryDirectory:
    def __init__(self, collection) -> None:
        self._collection = collection

    def find_all(self) -> List[Category]:
        """Todas as categorias, ordenadas por título (ascendente)."""
        try:
            docs = self._collection.find({}).sort("title", ASCENDING)
            return [Category.from_document(d) for d in docs]
        except PyMongoError as exc:
            raise CatalogUnavailable(str(exc)) from exc

    def find_by_slug(self, slug: str) -> Optional[Category]:
        try:
            doc = self._collection.find_one({"slug": slug})
        except PyMongoError as exc:
            raise CatalogUnavailable(str(exc)) from exc
        return Category.from_document(doc) if doc else None


class ProductDirectory:
    def __init__(self, collection) -> None:
        self._collection = collection

    def _page(self, query: Dict, page: int, per_page: int) -> Page:
        # Conta antes: o skip nunca passa da última página
        try:
            total = self._collection.count_documents(query)
            page, total_pages = page_bounds(total, page, per_page)
            cursor = (self._collection.find(query).sort("created_at", DESCENDING)
                      .skip((page - 1) * per_page).limit(per_page))
            return Page([Product.from_document(d) for d in cursor], page, total_pages)
        except PyMongoError as exc:
            raise CatalogUnavailable(str(exc)) from exc

    def find_page(self, page: int, per_page: int) -> Page:
        return self._page({}, page, per_page)

    def find_by_category(self, category_id: str, page: int, per_page: int) -> Page:
        oid = _object_id(category_id)
        return self._page({"category": oid if oid is not None else category_id}, page, per_page)

    def search(self, term: str, page: int, per_page: int) -> Page:
        return self._page({"title": {"$regex": re.escape(term), "$options": "i"}}, page, per_page)

    def find_by_id(self, product_id: str) -> Optional[Product]:
        oid = _object_id(product_id)
        if oid is None:
            return None
        try:
            doc = self._collection.find_one({"_id": oid})
        except PyMongoError as exc:
            raise CatalogUnavailable(str(exc)) from exc
        return Product.from_document(doc) if doc else None

    def find_many(self, product_ids: List[str]) -> Dict[str, Product]:
        oids = [oid for oid in (_object_id(pid) for pid in product_ids) if oid is not None]
        if not oids:
            return {}
        try:
            docs = self._collection.find({"_id": {"$in": oids}})
            return {str(d["_id"]): Product.from_document(d) for d in docs}
        except PyMongoError as exc:
            raise CatalogUnavailable(str(exc)) from exc


class UserDirectory:
    def __init__(self, collection) -> None:
        self._collection = collection

    def find_by_id(self, user_id: str) -> Optional[User]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        try:
            doc = self._collection.find_one({"_id": oid})
        except PyMongoError as exc:
            raise CatalogUnavailable(str(exc)) from exc
        return User.from_document(doc) if doc else None

    def find_by_email(self, email: str) -> Optional[User]:
        try:
            doc = self._collection.find_one({"email": email.lower()})
        except PyMongoError as exc:
            raise CatalogUnavailable(str(exc)) from exc
        return User.from_document(doc) if doc else None

    def create(self, username: str, email: str, password_hash: str) -> User:
        doc = {"username": username, "email": email.lower(), "password": password_hash}
        try:
            result = self._collection.insert_one(doc)
        except PyMongoError as exc:
            raise CatalogUnavailable(str(exc)) from exc
        doc["_id"] = result.inserted_id
        return User.from_document(doc)


@dataclass
class Catalog:
    """Agrupa os diretórios usados pelas rotas e pelo pipeline de contexto."""

    categories: CategoryDirectory
    products: ProductDirectory
    users: UserDirectory

    @classmethod
    def from_database(cls, db) -> "Catalog":
        return cls(
            categories=CategoryDirectory(db.categories),
            products=ProductDirectory(db.products),
            users=UserDirectory(db.users),
        )


def get_catalog() -> Catalog:
    return current_app.extensions["storefront"]
