"""
Central registry of allowed actions per role.
"""
ROLE_SCOPES = {
    "buyer":  {"manage_cart", "checkout", "view_own_orders"},
    "seller": {"accept_order", "reject_order", "ship_order", "deliver_order", "manage_stock"},
    "admin":  {"*"},
}


def role_has_scope(role: str, action: str) -> bool:
    scopes = ROLE_SCOPES.get(role, set())
    return "*" in scopes or action in scopes
