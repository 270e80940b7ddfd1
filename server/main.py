"""
FastAPI key server for GMA clients.

This server:
- Publishes the shared Diffie-Hellman prime (GET /auth/prime)
- Stores users' password-derived public keys (POST /users)
- Serves a user's public key for shared-secret computation (GET /users/{id}/publicKey)
"""

import base64
import binascii
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from gma_crypto.primitives import RFC3526_MODP_2048, int_to_bytes
from .directory import KeyDirectory


def load_prime() -> bytes:
    """Prime from the GMA_PRIME env var (base64), else the RFC 3526 2048-bit group"""
    configured = os.environ.get("GMA_PRIME")
    if configured:
        return base64.b64decode(configured, validate=True)
    return int_to_bytes(RFC3526_MODP_2048)


# Pydantic models for API
class UserRegister(BaseModel):
    username: str
    public_key: str = Field(alias="publicKey")


class UserInfo(BaseModel):
    id: int
    username: str


PRIME = load_prime()
directory = KeyDirectory()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    print(f"Serving {len(PRIME) * 8}-bit prime")
    yield
    print("Server shutting down")


app = FastAPI(
    title="GMA Key Server",
    description="Prime and public key exchange for password-derived DH keys",
    version="1.0.0",
    lifespan=lifespan
)


@app.get("/auth/prime")
async def get_prime():
    """Return the shared DH prime, base64-encoded"""
    return {"prime": base64.b64encode(PRIME).decode()}


@app.post("/users", response_model=UserInfo)
async def register(user_data: UserRegister):
    """
    Register a user's public key.

    The client derives its key pair from the user's credentials and uploads
    only the public half.
    """
    try:
        public_key = base64.b64decode(user_data.public_key, validate=True)
    except binascii.Error:
        raise HTTPException(status_code=400, detail="publicKey is not valid base64")

    if not public_key:
        raise HTTPException(status_code=400, detail="publicKey is empty")

    user = directory.register(user_data.username, public_key)
    if not user:
        raise HTTPException(status_code=400, detail="Username already exists")

    return UserInfo(id=user.id, username=user.username)


@app.get("/users/{user_id}/publicKey")
async def get_public_key(user_id: int):
    """Return a user's public key, base64-encoded"""
    user = directory.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return {"publicKey": base64.b64encode(user.public_key).decode()}


@app.get("/users")
async def list_users():
    """List all registered users"""
    return {"users": [{"id": u.id, "username": u.username} for u in directory.list_users()]}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
