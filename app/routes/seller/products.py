from flask import request
from app.schemas.products import ProductCreateRequest
from app.services import products
from app.utils import ok, current_user, validate_schema
from . import seller_bp


@seller_bp.route("/products", methods=["POST"])
@validate_schema(ProductCreateRequest)
def add_product():
    product = products.create_product(current_user(), request.validated_data)
    return ok(product.to_dict(), message="Product added", status=201)


@seller_bp.route("/products", methods=["GET"])
def my_products():
    items = products.list_seller_products(current_user().id)
    return ok({"products": [p.to_dict() for p in items]})


@seller_bp.route("/products/<product_id>", methods=["DELETE"])
def delete_product(product_id):
    products.delete_product(current_user().id, product_id)
    return ok(message="Product deleted")
