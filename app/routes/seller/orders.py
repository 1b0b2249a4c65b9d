from flask import request
from pydantic import ValidationError as PydanticValidationError
from app.schemas.orders import ShipRequest, TrackingUpdateRequest
from app.services import order_state
from app.services.orders import list_seller_orders
from app.utils import ok, error, current_user, validate_schema, validation_error_response
from . import seller_bp


@seller_bp.route("/orders", methods=["GET"])
def seller_orders():
    orders = list_seller_orders(current_user().id, request.args.get("status"))
    return ok({"orders": [o.to_dict(include_items=True) for o in orders]})


@seller_bp.route("/orders/<order_id>/<action>", methods=["POST"])
def advance_order(order_id, action):
    if action not in order_state.ACTIONS:
        return error(f"Unknown order action: {action}", status=404)
    kwargs = {}
    if action == "ship":
        try:
            body = ShipRequest.model_validate(request.get_json(silent=True) or {})
        except PydanticValidationError as ve:
            return validation_error_response(ve.errors())
        kwargs = body.model_dump(exclude_none=True)
    order = order_state.ACTIONS[action](current_user(), order_id, **kwargs)
    return ok(order.to_dict(include_items=True), message=f"Order {order.status}")


@seller_bp.route("/orders/<order_id>/tracking", methods=["PATCH"])
@validate_schema(TrackingUpdateRequest)
def update_tracking(order_id):
    body = request.validated_data
    order = order_state.update_tracking(current_user(), order_id, **body.model_dump(exclude_none=True))
    return ok(order.to_dict(include_items=True), message="Tracking updated")
