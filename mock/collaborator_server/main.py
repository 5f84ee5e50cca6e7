from fastapi import FastAPI
import hashlib

# Serves both collaborators; run once per port (8001 documents, 8002 verification)
app = FastAPI(title="Mock Collaborator Server", version="1.0.0")

@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/documents")
def store_document(body: dict):
    if not body.get("data"):
        return {"status": "failed", "reason": "empty file"}
    digest = hashlib.sha256(body["data"].encode()).hexdigest()[:16]
    return {"status": "stored", "storage_key": f"{body['subscription_id']}/{digest}"}

@app.post("/verifications")
def verify(body: dict):
    if str(body.get("government_id", "")).startswith("REJECT"):
        return {"verified": False, "reason": "identity mismatch"}
    return {"verified": True}
