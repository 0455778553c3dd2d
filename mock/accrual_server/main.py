from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, Response
from pathlib import Path
import json
import os
import time

app = FastAPI(title="Mock Accrual Server", version="1.0.0")
# Support both local development and Docker
DATA_FILE = Path("/accrual_stub/orders.json") if os.path.exists("/accrual_stub") else Path(__file__).resolve().parent / "orders.json"
# Requests allowed per minute before answering 429
RATE_LIMIT = int(os.getenv("MOCK_ACCRUAL_RATE_LIMIT", "60"))
_window = {"started": time.monotonic(), "count": 0}


def _orders() -> dict:
    if not DATA_FILE.exists():
        return {}
    return {o["order"]: o for o in json.loads(DATA_FILE.read_text())}


@app.get("/health")
def health(): return {"status": "ok"}

@app.get("/api/orders/{number}")
def get_order(number: str):
    now = time.monotonic()
    if now - _window["started"] >= 60:
        _window.update(started=now, count=0)
    _window["count"] += 1
    if _window["count"] > RATE_LIMIT:
        retry_after = int(60 - (now - _window["started"])) + 1
        return Response(status_code=429, headers={"Retry-After": str(retry_after)}, content=f"No more than {RATE_LIMIT} requests per minute allowed")

    order = _orders().get(number)
    if order is None:
        return Response(status_code=204)
    if order.get("status") == "ERROR":
        raise HTTPException(status_code=500, detail="accrual failure")
    return JSONResponse(content=order)
