from app.services.orders import list_buyer_orders, get_order_for
from app.utils import ok, current_user
from . import buyer_bp


@buyer_bp.route("/orders", methods=["GET"])
def my_orders():
    orders = list_buyer_orders(current_user().id)
    return ok({"orders": [o.to_dict(include_items=True) for o in orders]})


@buyer_bp.route("/orders/<order_id>", methods=["GET"])
def order_detail(order_id):
    order = get_order_for(current_user(), order_id)
    return ok(order.to_dict(include_items=True))
