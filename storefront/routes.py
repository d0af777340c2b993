from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from flask import Blueprint, abort, flash, redirect, render_template, request, session, url_for

from .auth import authenticate, guest_only, hash_password, login_required, login_user, logout_user
from .models import Product, get_catalog


home_bp = Blueprint("home", __name__)
products_bp = Blueprint("products", __name__)
user_bp = Blueprint("user", __name__)
pages_bp = Blueprint("pages", __name__)

# Ordem importa: registrados nesta sequência
ROUTE_GROUPS: Tuple[Tuple[str, Blueprint], ...] = (
    ("/", home_bp),
    ("/products", products_bp),
    ("/user", user_bp),
    ("/pages", pages_bp),
)

PAGE_SIZE = 9


def _safe_next() -> Optional[str]:
    # Só caminhos locais, nada de redirecionar para outro host
    target = request.args.get("next")
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return None


def _current_page() -> int:
    try:
        return max(int(request.args.get("page", 1)), 1)
    except ValueError:
        return 1


def _paginate(finder, *args) -> Dict[str, object]:
    result = finder(*args, _current_page(), PAGE_SIZE)
    return {"products": result.products, "page": result.page, "total_pages": result.total_pages}


# --- Carrinho na sessão ---
def _get_cart() -> Dict[str, int]:
    cart: Dict[str, int] = session.get("cart", {})
    if not isinstance(cart, dict):
        cart = {}
    return cart


def _save_cart(cart: Dict[str, int]) -> None:
    session["cart"] = cart
    session["cart_qty"] = sum(cart.values())


def cart_lines(cart: Dict[str, int]) -> Tuple[List[Dict[str, object]], float]:
    products = get_catalog().products.find_many(list(cart))
    items = []
    total_value = 0.0
    for pid, qty in cart.items():
        product = products.get(pid)
        if not product:
            continue
        line_total = product.price * qty
        total_value += line_total
        items.append({"product": product, "qty": qty, "line_total": line_total})
    return items, total_value


@home_bp.get("/")
def index():
    listing = _paginate(get_catalog().products.find_page)
    return render_template("index.html", pagename="All Products", **listing)


@home_bp.get("/add-to-cart/<product_id>")
def add_to_cart(product_id: str):
    product: Product = get_catalog().products.find_by_id(product_id)
    if product is None:
        abort(404)
    cart = _get_cart()
    cart[product.id] = cart.get(product.id, 0) + 1
    _save_cart(cart)
    flash("Item added to the shopping cart", "success")
    return redirect(request.headers.get("Referer") or url_for("home.index"))


@home_bp.get("/reduce/<product_id>")
def reduce_by_one(product_id: str):
    cart = _get_cart()
    if product_id in cart:
        cart[product_id] -= 1
        if cart[product_id] <= 0:
            cart.pop(product_id)
        _save_cart(cart)
    return redirect(url_for("home.shopping_cart"))


@home_bp.get("/remove-all/<product_id>")
def remove_all(product_id: str):
    cart = _get_cart()
    if cart.pop(product_id, None) is not None:
        _save_cart(cart)
    return redirect(url_for("home.shopping_cart"))


@home_bp.get("/shopping-cart")
def shopping_cart():
    items, total_value = cart_lines(_get_cart())
    return render_template("shoppingCart.html", items=items, total_value=total_value)


@home_bp.route("/checkout", methods=["GET", "POST"])
@login_required
def checkout():
    cart = _get_cart()
    if not cart:
        flash("Your cart is empty", "warning")
        return redirect(url_for("home.shopping_cart"))
    if request.method == "POST":
        # Pagamento fica fora daqui: só limpa o carrinho
        session.pop("cart", None)
        session.pop("cart_qty", None)
        flash("Successfully purchased", "success")
        return redirect(url_for("user.profile"))
    items, total_value = cart_lines(cart)
    return render_template("checkout.html", items=items, total_value=total_value)


# --- Produtos ---
@products_bp.get("")
def all_products():
    listing = _paginate(get_catalog().products.find_page)
    return render_template("products/index.html", pagename="All Products", **listing)


@products_bp.get("/search")
def search():
    term = request.args.get("search", "").strip()
    listing = _paginate(get_catalog().products.search, term)
    return render_template("products/index.html", pagename="Search Results", search=term, **listing)


@products_bp.get("/<slug>")
def by_category(slug: str):
    catalog = get_catalog()
    category = catalog.categories.find_by_slug(slug)
    if category is None:
        abort(404)
    listing = _paginate(catalog.products.find_by_category, category.id)
    return render_template("products/index.html", pagename=category.title, category=category, **listing)


@products_bp.get("/<slug>/<product_id>")
def product_detail(slug: str, product_id: str):
    product = get_catalog().products.find_by_id(product_id)
    if product is None:
        abort(404)
    return render_template("products/product.html", product=product)


# --- Usuário ---
@user_bp.route("/signup", methods=["GET", "POST"])
@guest_only
def signup():
    if request.method == "GET":
        return render_template("user/signup.html")

    username = request.form.get("name", "").strip()
    email = request.form.get("email", "").strip()
    password = request.form.get("password", "")
    errors = []
    if not email or "@" not in email:
        errors.append("Please enter a valid email address")
    if len(password) < 4:
        errors.append("Please enter a password with 4 or more characters")
    users = get_catalog().users
    if not errors and users.find_by_email(email):
        errors.append("Email already in use")
    if errors:
        for message in errors:
            flash(message, "danger")
        return redirect(url_for("user.signup"))

    user = users.create(username=username, email=email, password_hash=hash_password(password))
    login_user(user)
    return redirect(_safe_next() or url_for("user.profile"))


@user_bp.route("/signin", methods=["GET", "POST"])
@guest_only
def signin():
    if request.method == "GET":
        return render_template("user/signin.html")

    email = request.form.get("email", "").strip()
    password = request.form.get("password", "")
    user = authenticate(email, password)
    if not user:
        flash("Wrong email or password", "danger")
        return redirect(url_for("user.signin", next=_safe_next()))
    login_user(user)
    flash(f"Welcome back, {user.username or user.email}!", "success")
    return redirect(_safe_next() or url_for("user.profile"))


@user_bp.get("/profile")
@login_required
def profile():
    return render_template("user/profile.html")


@user_bp.get("/logout")
@login_required
def logout():
    logout_user()
    session.pop("cart", None)
    session.pop("cart_qty", None)
    return redirect(url_for("home.index"))


# --- Páginas estáticas ---
@pages_bp.get("/about-us")
def about():
    return render_template("pages/about.html", pagename="About Us")


@pages_bp.get("/shipping-policy")
def shipping_policy():
    return render_template("pages/shipping-policy.html", pagename="Shipping Policy")


@pages_bp.get("/careers")
def careers():
    return render_template("pages/careers.html", pagename="Careers")
