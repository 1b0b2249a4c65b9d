from flask import Blueprint, request
from app.version import API_PREFIX
from app.services import products
from app.utils import ok

catalog_bp = Blueprint("catalog", __name__, url_prefix=f"{API_PREFIX}/products")


def _flag(value):
    if value is None:
        return None
    return value.lower() in ("1", "true", "yes")


@catalog_bp.route("", methods=["GET"])
def browse_products():
    """Public product listing.
    ---
    tags:
      - Catalog
    parameters:
      - in: query
        name: q
        type: string
      - in: query
        name: category
        type: string
      - in: query
        name: featured
        type: boolean
    responses:
      200:
        description: Products, newest first
    """
    items = products.list_products(
        search=request.args.get("q"),
        category=request.args.get("category"),
        featured=_flag(request.args.get("featured")),
    )
    return ok({"products": [p.to_dict() for p in items]})


@catalog_bp.route("/<product_id>", methods=["GET"])
def product_detail(product_id):
    return ok(products.get_product(product_id).to_dict())
