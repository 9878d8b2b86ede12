from fastapi import Header, HTTPException
import os
import secrets

def require_api_key(x_api_key: str | None = Header(None)):
    # read per request so tests and deployments can toggle the gate
    expected = os.getenv("API_KEY")
    if expected and not secrets.compare_digest((x_api_key or "").encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
