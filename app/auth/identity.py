from dataclasses import dataclass
from typing import Optional

ROLES = ("buyer", "seller", "admin")


@dataclass(frozen=True)
class CurrentUser:
    """The signed-in user as reported by the auth provider."""

    id: str
    role: str
    name: Optional[str] = None

    @property
    def is_seller(self) -> bool:
        return self.role == "seller"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
