from pydantic import BaseModel
from typing import Any, Dict, Literal

from karma.signing import SignedRequest


class Proof(BaseModel):
    payload: Dict[str, Any]
    sig_b64: str

    def to_signed_request(self) -> SignedRequest:
        return SignedRequest(payload=dict(self.payload), sig_b64=self.sig_b64)


class CreateSoulRequest(BaseModel):
    authority: str
    proof: Proof


class InteractionRequest(BaseModel):
    direction: Literal["praise", "accuse"]
    actor: str
    target: str
    proof: Proof


class SunriseRequest(BaseModel):
    proof: Proof
