from fastapi import FastAPI
from pydantic import BaseModel
import hashlib
import os

app = FastAPI(title="Mock Transfer Gateway", version="1.0.0")
# Transfers to this address are rejected, for exercising failure paths
FAILING_RECIPIENT = os.getenv("MOCK_FAILING_RECIPIENT", "0x" + "0" * 40).lower()


class TransferBody(BaseModel):
    recipient_address: str
    amount: str
    currency: str
    order_id: str


@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/transfers")
def create_transfer(body: TransferBody):
    if body.recipient_address.lower() == FAILING_RECIPIENT:
        return {"success": False, "error": "Transfer rejected: recipient blocked"}
    digest = hashlib.sha256(f"{body.order_id}:{body.recipient_address}:{body.amount}".encode()).hexdigest()
    return {"success": True, "transaction_hash": f"0x{digest}"}
