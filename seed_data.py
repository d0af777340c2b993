from datetime import datetime, timedelta, timezone
from pathlib import Path
import logging
import os
import re
from typing import Dict, List, Optional

from dotenv import load_dotenv
from PIL import Image, ImageDraw, ImageFont
from pymongo import MongoClient
import pandas as pd


DATA_DIR = Path("data")
IMG_DIR = Path("storefront/static/images")

logger = logging.getLogger("storefront.seed")

DEMO_CATEGORIES = ["Backpacks", "Briefcases", "Mini Wallets", "Large Handbags", "Travel", "Totes"]


def slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def read_tabular(filename_no_ext: str, data_dir: Path = DATA_DIR) -> Optional[pd.DataFrame]:
    """Tenta ler .xlsx (openpyxl) e, em fallback, .csv UTF-8."""
    xlsx = data_dir / f"{filename_no_ext}.xlsx"
    csv = data_dir / f"{filename_no_ext}.csv"
    if xlsx.exists():
        try:
            return pd.read_excel(xlsx, engine="openpyxl")
        except (ValueError, OSError) as exc:
            logger.warning("Falha lendo %s: %s", xlsx, exc)
    if csv.exists():
        try:
            return pd.read_csv(csv)
        except (ValueError, OSError) as exc:
            logger.warning("Falha lendo %s: %s", csv, exc)
    return None


def _safe_float(value) -> float:
    try:
        if pd.isna(value):
            return 0.0
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _clean(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    return str(value)


def load_categories(data_dir: Path = DATA_DIR) -> List[Dict]:
    df = read_tabular("categories", data_dir)
    titles = DEMO_CATEGORIES if df is None else [str(t) for t in df["title"].dropna()]
    return [{"title": t, "slug": slugify(t)} for t in titles]


def load_products(categories: List[Dict], data_dir: Path = DATA_DIR) -> List[Dict]:
    # Colunas esperadas: title, category (título), price, description, manufacturer, image (opcional)
    df = read_tabular("products", data_dir)
    if df is None:
        rows = []
        for c_index, category in enumerate(categories):
            for i in range(1, 4):
                rows.append({
                    "title": f"{category['title']} {i}",
                    "category": category["title"],
                    "price": 20.0 + 5 * i + c_index,
                    "description": f"Demo item {i} in {category['title']}.",
                    "manufacturer": "Demo Co.",
                    "image": None,
                })
        df = pd.DataFrame(rows)

    products = []
    now = datetime.now(timezone.utc)
    for n, (_, row) in enumerate(df.iterrows()):
        products.append({
            "title": str(row.get("title")),
            "category": _clean(row.get("category")),
            "price": _safe_float(row.get("price")),
            "description": _clean(row.get("description")) or "",
            "manufacturer": _clean(row.get("manufacturer")),
            "image": _clean(row.get("image")),
            "available": True,
            # Ordem da planilha preservada na listagem (mais recente primeiro)
            "created_at": now - timedelta(seconds=n),
        })
    return products


def create_placeholder(path: Path, text: str, size=(600, 400), bg=(230, 230, 230)) -> None:
    img = Image.new("RGB", size, bg)
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()
    tw, th = draw.textbbox((0, 0), text, font=font)[2:]
    x = (size[0] - tw) // 2
    y = (size[1] - th) // 2
    draw.text((x, y), text, fill=(40, 40, 40), font=font)
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path)


def seed(db) -> None:
    categories = load_categories()
    db.categories.delete_many({})
    result = db.categories.insert_many(categories)
    ids_by_title = {c["title"]: oid for c, oid in zip(categories, result.inserted_ids)}

    products = load_products(categories)
    for product in products:
        image = product.pop("image") or f"products/{slugify(product['title'])}.jpg"
        target = IMG_DIR / image
        if not target.exists():
            create_placeholder(target, product["title"])
        product["image_path"] = f"images/{image}"
        product["category"] = ids_by_title.get(product["category"])
    db.products.delete_many({})
    db.products.insert_many(products)

    logger.info("%d categorias e %d produtos gravados.", len(categories), len(products))


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    client = MongoClient(os.environ.get("MONGO_URI", "mongodb://localhost:27017/storefront"))
    seed(client.get_default_database())
