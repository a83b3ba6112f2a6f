from pydantic import BaseModel


class CheckoutRequest(BaseModel):
    plan: str
