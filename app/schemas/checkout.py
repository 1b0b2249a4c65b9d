from typing import Literal
from pydantic import BaseModel, constr

PaymentMethod = Literal["card", "upi", "wallet", "cod"]


class CheckoutDetails(BaseModel):
    full_name: constr(strip_whitespace=True, min_length=3)
    email: constr(strip_whitespace=True, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: constr(strip_whitespace=True, min_length=10)
    address: constr(strip_whitespace=True, min_length=5)
    city: constr(strip_whitespace=True, min_length=2)
    state: constr(strip_whitespace=True, min_length=2)
    zip_code: constr(strip_whitespace=True, min_length=5)
    payment_method: PaymentMethod = "card"

    @property
    def shipping_address(self) -> str:
        return f"{self.address}, {self.city}, {self.state} {self.zip_code}"
