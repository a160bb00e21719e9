import hashlib
import json

from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse

app = FastAPI(title="Mock Ledger Relay", version="1.0.0")

# idempotency key -> {"tx_hash": ..., "payload_digest": ..., "payload": ...}
COMMITS: dict[str, dict] = {}


def _digest(value: dict) -> str:
    canonical = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return "0x" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@app.get("/health")
def health(): return {"status": "ok"}


# Runs on the event loop with no await between the duplicate check and the write
@app.post("/commits", status_code=201)
async def commit(payload: dict, idempotency_key: str = Header(..., alias="Idempotency-Key")):
    existing = COMMITS.get(idempotency_key)
    if existing is not None:
        return JSONResponse(
            status_code=409,
            content={
                "detail": "already committed",
                "tx_hash": existing["tx_hash"],
                "payload_digest": existing["payload_digest"],
            },
        )
    if payload.get("credit_assessment_id") != idempotency_key:
        raise HTTPException(status_code=422, detail="credit_assessment_id must match Idempotency-Key")
    payload_digest = _digest(payload)
    tx_hash = _digest({"key": idempotency_key, "payload": payload})
    COMMITS[idempotency_key] = {"tx_hash": tx_hash, "payload_digest": payload_digest, "payload": payload}
    return {"tx_hash": tx_hash, "payload_digest": payload_digest, "status": "committed"}


@app.get("/commits/{key}")
def commit_status(key: str):
    if key not in COMMITS:
        raise HTTPException(status_code=404, detail="commit not found")
    record = COMMITS[key]
    return {"status": "committed", "tx_hash": record["tx_hash"], "payload_digest": record["payload_digest"]}
