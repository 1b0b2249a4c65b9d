from flask import request
from app.schemas.inventory import StockUpdateRequest, AdjustmentRequest, ReturnRestockRequest
from app.services import inventory
from app.utils import ok, current_user, validate_schema
from . import seller_bp


@seller_bp.route("/products/<product_id>/inventory", methods=["GET"])
def inventory_history(product_id):
    entries = inventory.history_for_seller(current_user().id, product_id)
    return ok({"history": [e.to_dict() for e in entries]})


@seller_bp.route("/products/<product_id>/stock", methods=["PUT"])
@validate_schema(StockUpdateRequest)
def update_stock(product_id):
    body = request.validated_data
    entry = inventory.set_stock(current_user().id, product_id, body.stock, reason=body.reason)
    if entry is None:
        return ok({"stock": body.stock, "entry": None}, message="Stock unchanged")
    return ok({"stock": entry.new_stock, "entry": entry.to_dict()}, message="Stock updated")


@seller_bp.route("/products/<product_id>/adjustments", methods=["POST"])
@validate_schema(AdjustmentRequest)
def adjust_stock(product_id):
    body = request.validated_data
    entry = inventory.record_adjustment(current_user().id, product_id, body.quantity, body.reason)
    return ok({"stock": entry.new_stock, "entry": entry.to_dict()}, message="Stock adjusted", status=201)


@seller_bp.route("/products/<product_id>/returns", methods=["POST"])
@validate_schema(ReturnRestockRequest)
def restock_return(product_id):
    body = request.validated_data
    entry = inventory.restock_return(
        current_user().id, product_id, body.quantity, order_id=body.order_id, reason=body.reason
    )
    return ok({"stock": entry.new_stock, "entry": entry.to_dict()}, message="Return restocked", status=201)
